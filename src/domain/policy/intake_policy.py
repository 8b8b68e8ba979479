from dataclasses import dataclass, field


@dataclass(frozen=True)
class IntakePolicy:
    """Policy for admitting uploads into duplicate detection."""

    pool_limit: int = 2
    min_size: int = 50
    normalize_max_bytes: int = 10 << 20
    allow_list: frozenset[bytes] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        """Validate intake policy."""
        if self.pool_limit < 1:
            raise ValueError(f"pool_limit must be >= 1, got {self.pool_limit}")
        if self.min_size < 0:
            raise ValueError(f"min_size must be >= 0, got {self.min_size}")
        if self.normalize_max_bytes < 0:
            raise ValueError(
                f"normalize_max_bytes must be >= 0, got {self.normalize_max_bytes}"
            )

    def is_too_small(self, size: int) -> bool:
        return size <= self.min_size

    def is_allow_listed(self, fingerprint: bytes) -> bool:
        return fingerprint in self.allow_list
