"""Two-tier content fingerprinting for uploads."""

from __future__ import annotations

import logging

from ...domain.errors import ExtractionError, MissingChecksumError
from ...domain.models.fingerprint_result import (
    Fallback,
    FingerprintResult,
    Normalized,
    Unavailable,
)
from ...domain.services.content_fingerprint import ContentFingerprintService
from ..ports.chat_room import UploadPort
from ..ports.content_normalizer import ContentNormalizerPort

logger = logging.getLogger(__name__)


class FingerprintExtractor:
    """
    Derive a content fingerprint for an upload.

    Images up to normalize_max_bytes are streamed through the normalizer and
    hashed as the stripped bytes arrive, so re-uploads that only differ in
    embedded metadata collide. Everything else, and any normalization
    failure, falls back to the checksum the host computed.
    """

    def __init__(self, normalizer: ContentNormalizerPort, normalize_max_bytes: int = 10 << 20) -> None:
        self._normalizer = normalizer
        self._normalize_max_bytes = normalize_max_bytes

    async def extract(self, upload: UploadPort) -> FingerprintResult:
        """
        Fingerprint an upload, preferring normalized content.

        Never raises for normalization faults of any kind; those are logged
        and the checksum fallback is used instead.

        Returns:
            Normalized, Fallback, or Unavailable when neither provenance exists
        """
        if ContentFingerprintService.should_normalize(upload.type, upload.size, self._normalize_max_bytes):
            try:
                return await self._normalized(upload)
            except Exception as e:
                logger.warning(
                    f"Normalization failed, using checksum: {e}",
                    extra={"upload_id": upload.id},
                    exc_info=not isinstance(e, ExtractionError),
                )
        else:
            logger.debug(
                "Not normalizing upload",
                extra={"upload_id": upload.id, "type": upload.type, "size": upload.size},
            )
        return await self._fallback(upload)

    async def fingerprint(self, upload: UploadPort) -> bytes:
        """
        Fingerprint an upload and return the raw value.

        Raises:
            MissingChecksumError: If no fingerprint can be derived
        """
        result = await self.extract(upload)
        if isinstance(result, Unavailable):
            raise MissingChecksumError(upload.id)
        return result.value

    async def _normalized(self, upload: UploadPort) -> Normalized:
        digest = ContentFingerprintService.new_digest()
        try:
            async for chunk in self._normalizer.strip(upload.fetch()):
                digest.update(chunk)
        except ExtractionError as e:
            if e.upload_id is None:
                raise ExtractionError(e.reason, upload_id=upload.id) from e
            raise
        return ContentFingerprintService.normalized(digest)

    async def _fallback(self, upload: UploadPort) -> Fallback | Unavailable:
        info = await upload.infos()
        fallback = ContentFingerprintService.from_checksum(info.checksum)
        if fallback is None:
            return Unavailable(reason=f"no checksum for upload '{upload.id}'")
        return fallback
