"""Pydantic settings for dupewarden.toml configuration."""

import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

from src.domain.policy.enforcement_policy import DEFAULT_NOTICE_TEMPLATE, EnforcementPolicy
from src.domain.policy.intake_policy import IntakePolicy

from .environment import get_env, get_env_int, load_environment_variables

DEFAULT_CONFIG_PATH = "dupewarden.toml"


class IntakeSettings(BaseModel):
    """Intake pipeline configuration settings."""

    pool_limit: int = Field(default=2, ge=1)
    min_size: int = Field(default=50, ge=0)  # Uploads at or below this size are ignored
    normalize_max_mb: float = Field(default=10, ge=0)  # Larger images skip normalization
    allow_list: list[str] = Field(default_factory=list)  # Exempted fingerprints

    def __init__(self, **data: Any) -> None:
        """Initialize with environment variable precedence."""
        load_environment_variables()

        env_pool_limit = get_env_int("DUPEWARDEN_POOL_LIMIT")
        if env_pool_limit is not None:
            data["pool_limit"] = env_pool_limit

        super().__init__(**data)

    @property
    def normalize_max_bytes(self) -> int:
        return int(self.normalize_max_mb * (1 << 20))


class LedgerSettings(BaseModel):
    """Ledger storage configuration settings."""

    dir: str = "var/ledgers"
    busy_timeout_seconds: float = Field(default=5.0, gt=0)

    def __init__(self, **data: Any) -> None:
        """Initialize with environment variable precedence."""
        load_environment_variables()

        env_dir = get_env("DUPEWARDEN_LEDGER_DIR")
        if env_dir is not None:
            data["dir"] = env_dir

        super().__init__(**data)


class NormalizerSettings(BaseModel):
    """Metadata normalizer (exiftool) configuration settings."""

    executable: str = "exiftool"
    args: list[str] = Field(default_factory=lambda: ["-all=", "-"])
    chunk_size: int = Field(default=64 * 1024, gt=0)
    timeout_seconds: float | None = None

    def __init__(self, **data: Any) -> None:
        """Initialize with environment variable precedence."""
        load_environment_variables()

        env_executable = get_env("DUPEWARDEN_EXIFTOOL")
        if env_executable is not None:
            data["executable"] = env_executable

        super().__init__(**data)

    @field_validator("timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float | None) -> float | None:
        """Treat non-positive timeouts as no timeout."""
        if v is not None and v <= 0:
            return None
        return v


class EnforcementSettings(BaseModel):
    """Enforcement configuration settings."""

    timeout_minutes: float = Field(default=5, gt=0)
    ban_hours: float = Field(default=0.1, gt=0)
    ban_reason: str = "Dupe"
    notice_template: str = DEFAULT_NOTICE_TEMPLATE


class Settings(BaseModel):
    """Main settings loaded from dupewarden.toml."""

    intake: IntakeSettings = Field(default_factory=IntakeSettings)
    ledger: LedgerSettings = Field(default_factory=LedgerSettings)
    normalizer: NormalizerSettings = Field(default_factory=NormalizerSettings)
    enforcement: EnforcementSettings = Field(default_factory=EnforcementSettings)

    @classmethod
    def from_toml(cls, toml_path: Path | str | None = None) -> "Settings":
        """
        Load settings from dupewarden.toml file with environment variable precedence.

        Environment variables (system env > .env file) override TOML values.

        Args:
            toml_path: Path to the TOML file (defaults to $DUPEWARDEN_CONFIG or dupewarden.toml)

        Returns:
            Settings instance with loaded configuration
        """
        load_environment_variables()

        if toml_path is None:
            toml_path = get_env("DUPEWARDEN_CONFIG") or DEFAULT_CONFIG_PATH
        toml_path = Path(toml_path)

        if not toml_path.exists():
            # Return defaults if file doesn't exist
            return cls()

        with toml_path.open("rb") as f:
            data = tomllib.load(f)

        return cls(
            intake=IntakeSettings(**data.get("intake", {})),
            ledger=LedgerSettings(**data.get("ledger", {})),
            normalizer=NormalizerSettings(**data.get("normalizer", {})),
            enforcement=EnforcementSettings(**data.get("enforcement", {})),
        )

    def intake_policy(self) -> IntakePolicy:
        return IntakePolicy(
            pool_limit=self.intake.pool_limit,
            min_size=self.intake.min_size,
            normalize_max_bytes=self.intake.normalize_max_bytes,
            allow_list=frozenset(fp.encode("utf-8") for fp in self.intake.allow_list),
        )

    def enforcement_policy(self) -> EnforcementPolicy:
        return EnforcementPolicy(
            timeout_minutes=self.enforcement.timeout_minutes,
            ban_hours=self.enforcement.ban_hours,
            ban_reason=self.enforcement.ban_reason,
            notice_template=self.enforcement.notice_template,
        )
