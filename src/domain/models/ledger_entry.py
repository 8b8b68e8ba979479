"""Domain model for entries of a room's dedup ledger."""

from __future__ import annotations

from dataclasses import dataclass

# Value stored under an upload id once that upload has been processed.
SEEN_MARKER = b"true"

SEEN = "seen"
OWNER = "owner"


@dataclass(frozen=True)
class LedgerEntry:
    """
    One key/value pair of a room ledger.

    Upload ids and fingerprints share one key space. An upload-id key maps to
    SEEN_MARKER; a fingerprint key maps to the id of the first upload that
    produced it.

    Attributes:
        key: Raw key bytes
        value: Raw value bytes
    """

    key: bytes
    value: bytes

    @property
    def kind(self) -> str:
        return SEEN if self.value == SEEN_MARKER else OWNER

    def key_text(self) -> str:
        return self.key.decode("utf-8", errors="replace")

    def value_text(self) -> str:
        return self.value.decode("utf-8", errors="replace")
