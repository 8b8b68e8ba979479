from enum import Enum

from pydantic import BaseModel


class IntakeOutcome(str, Enum):
    """How the intake pipeline disposed of one upload."""

    SKIPPED_SMALL = "skipped_small"
    ALREADY_SEEN = "already_seen"
    ALREADY_ENFORCED = "already_enforced"
    UNFINGERPRINTABLE = "unfingerprintable"
    ALLOW_LISTED = "allow_listed"
    FIRST_OCCURRENCE = "first_occurrence"
    SAME_OWNER = "same_owner"
    DUPLICATE = "duplicate"
    FAILED = "failed"


class IntakeResult(BaseModel):
    """Result DTO for processing one upload event."""

    room_id: str
    upload_id: str
    outcome: IntakeOutcome
    fingerprint: str | None = None
    provenance: str | None = None  # "normalized" | "fallback"
    owner_id: str | None = None  # first upload with this fingerprint (duplicates only)
    actions: list[str] = []
    duration_seconds: float = 0.0
    error: str | None = None

    @property
    def enforced(self) -> bool:
        return self.outcome is IntakeOutcome.DUPLICATE
