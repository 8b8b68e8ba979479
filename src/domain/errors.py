"""Domain errors for duplicate upload detection."""


class ExtractionError(Exception):
    """
    Raised when content normalization fails while fingerprinting an upload.

    Covers spawn failures, non-zero exit status and stream errors of the
    normalizer. Recovered locally by falling back to the upload checksum.

    Attributes:
        upload_id: Upload identifier (optional, unknown inside the normalizer)
        reason: Why normalization failed
    """

    def __init__(self, reason: str, upload_id: str | None = None) -> None:
        self.upload_id = upload_id
        self.reason = reason
        msg = f"Content normalization failed: {reason}"
        if upload_id:
            msg = f"Content normalization failed for upload '{upload_id}': {reason}"
        super().__init__(msg)


class MissingChecksumError(Exception):
    """
    Raised when no fingerprint can be derived for an upload.

    Attributes:
        upload_id: Upload identifier
    """

    def __init__(self, upload_id: str) -> None:
        self.upload_id = upload_id
        super().__init__(f"No checksum available for upload '{upload_id}'")


class LedgerKeyNotFound(Exception):
    """
    Raised by a ledger store when a key is absent.

    This is an expected control-flow signal, not a fault.

    Attributes:
        key: Missing key (raw bytes)
    """

    def __init__(self, key: bytes) -> None:
        self.key = key
        super().__init__(f"Ledger key not found: {key!r}")


class LedgerAccessError(Exception):
    """
    Raised when a ledger store cannot be opened, read or written.

    Attributes:
        room_id: Room whose ledger failed
        reason: Detailed reason for failure
    """

    def __init__(self, room_id: str, reason: str) -> None:
        self.room_id = room_id
        self.reason = reason
        super().__init__(f"Ledger access failed for room '{room_id}': {reason}")


class PipelineClosedError(Exception):
    """Raised when an upload is submitted to an intake pipeline that is not running."""

    def __init__(self, upload_id: str) -> None:
        self.upload_id = upload_id
        super().__init__(f"Intake pipeline is not running; rejected upload '{upload_id}'")
