"""Domain service for content fingerprint computation."""

from __future__ import annotations

import hashlib

from src.domain.models.fingerprint_result import Fallback, Normalized

IMAGE_MEDIA_TYPE = "image"


class ContentFingerprintService:
    """
    Domain service for deciding how an upload is fingerprinted.

    This service is pure (no I/O) and deterministic.
    """

    @staticmethod
    def should_normalize(media_type: str, size: int, max_bytes: int) -> bool:
        """
        Check whether an upload is eligible for metadata normalization.

        Only images are normalized, and only up to max_bytes; anything else
        goes straight to the checksum fallback.

        Args:
            media_type: Upload media category (e.g. "image", "video")
            size: Upload size in bytes
            max_bytes: Largest size worth normalizing

        Returns:
            True if the upload should be streamed through the normalizer
        """
        return media_type == IMAGE_MEDIA_TYPE and size <= max_bytes

    @staticmethod
    def new_digest() -> "hashlib._Hash":
        return hashlib.sha256()

    @staticmethod
    def normalized(digest: "hashlib._Hash") -> Normalized:
        """Build a normalized fingerprint from a finished digest."""
        return Normalized(value=digest.hexdigest().encode("ascii"))

    @staticmethod
    def from_checksum(checksum: str | None) -> Fallback | None:
        """
        Build a fallback fingerprint from a host checksum.

        Args:
            checksum: Checksum reported by the host (may be None or empty)

        Returns:
            Fallback fingerprint, or None if no usable checksum was given
        """
        if not checksum:
            return None
        return Fallback(value=checksum.encode("utf-8"))
