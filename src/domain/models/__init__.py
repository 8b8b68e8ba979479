"""Domain models for duplicate upload detection."""

from .fingerprint_result import Fallback, FingerprintResult, Normalized, Unavailable
from .ledger_entry import SEEN_MARKER, LedgerEntry

__all__ = [
    "Fallback",
    "FingerprintResult",
    "LedgerEntry",
    "Normalized",
    "SEEN_MARKER",
    "Unavailable",
]
