"""Domain model for the outcome of fingerprinting an upload."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

NORMALIZED = "normalized"
FALLBACK = "fallback"


@dataclass(frozen=True)
class Normalized:
    """
    Fingerprint derived from metadata-stripped content.

    Attributes:
        value: Lowercase hex SHA-256 of the normalized content, ASCII encoded
    """

    value: bytes
    provenance: str = NORMALIZED

    def __post_init__(self) -> None:
        """Validate fingerprint value."""
        if not self.value:
            raise ValueError("Normalized fingerprint value must be non-empty")

    def text(self) -> str:
        return self.value.decode("ascii")


@dataclass(frozen=True)
class Fallback:
    """
    Fingerprint taken from the checksum the host computed for the upload.

    Attributes:
        value: Checksum, UTF-8 encoded
    """

    value: bytes
    provenance: str = FALLBACK

    def __post_init__(self) -> None:
        """Validate fingerprint value."""
        if not self.value:
            raise ValueError("Fallback fingerprint value must be non-empty")

    def text(self) -> str:
        return self.value.decode("utf-8", errors="replace")


@dataclass(frozen=True)
class Unavailable:
    """
    No fingerprint could be derived.

    Attributes:
        reason: Human-readable reason, used in logs and results
    """

    reason: str


FingerprintResult = Union[Normalized, Fallback, Unavailable]
