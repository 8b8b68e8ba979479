from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, MutableSet

from ...domain.errors import LedgerKeyNotFound
from ...domain.models.fingerprint_result import Unavailable
from ...domain.models.ledger_entry import SEEN_MARKER
from ...domain.policy.intake_policy import IntakePolicy
from ..dto.intake import IntakeOutcome, IntakeResult
from ..ports.chat_room import RoomPort, UploadPort
from ..ports.ledger_store import LedgerRegistryPort

if TYPE_CHECKING:
    from ..services.enforcement import EnforcementService
    from ..services.fingerprint_extractor import FingerprintExtractor

logger = logging.getLogger(__name__)


async def process_upload(
    room: RoomPort,
    upload: UploadPort,
    ledgers: LedgerRegistryPort,
    extractor: FingerprintExtractor,
    enforcer: EnforcementService,
    policy: IntakePolicy,
    enforced: MutableSet[tuple[str, str]] | None = None,
) -> IntakeResult:
    """
    Decide whether one upload duplicates earlier content in its room.

    size filter → seen filter → fingerprint → allow-list → ownership claim →
    enforcement (duplicates only).

    Faults are contained here: whatever goes wrong, the upload is reported as
    FAILED and never penalized.

    Args:
        room: Room the upload was posted to
        upload: The upload event
        ledgers: Registry of per-room ledgers
        extractor: Fingerprint extractor
        enforcer: Enforcement service for confirmed duplicates
        policy: Intake thresholds and allow-list
        enforced: (room id, upload id) pairs already punished in this process;
            a duplicate found here is added to it

    Returns:
        IntakeResult describing the decision
    """
    start_time = time.monotonic()
    key = (room.id, upload.id)

    def result(outcome: IntakeOutcome, **fields) -> IntakeResult:
        return IntakeResult(
            room_id=room.id,
            upload_id=upload.id,
            outcome=outcome,
            duration_seconds=time.monotonic() - start_time,
            **fields,
        )

    if policy.is_too_small(upload.size):
        logger.info(
            f"Skipping small upload '{upload.id}' ({upload.size} bytes)",
            extra={"room_id": room.id, "upload_id": upload.id},
        )
        return result(IntakeOutcome.SKIPPED_SMALL)

    try:
        ledger = ledgers.for_room(room.id)
        upload_key = upload.id.encode("utf-8")

        try:
            await ledger.get(upload_key)
            return result(IntakeOutcome.ALREADY_SEEN)
        except LedgerKeyNotFound:
            pass

        if enforced is not None and key in enforced:
            return result(IntakeOutcome.ALREADY_ENFORCED)

        logger.info(
            f"Processing upload '{upload.id}'",
            extra={"room_id": room.id, "upload_id": upload.id, "type": upload.type, "size": upload.size},
        )
        fingerprint = await extractor.extract(upload)
        if isinstance(fingerprint, Unavailable):
            logger.error(
                f"Cannot fingerprint upload '{upload.id}': {fingerprint.reason}",
                extra={"room_id": room.id, "upload_id": upload.id},
            )
            return result(IntakeOutcome.UNFINGERPRINTABLE, error=fingerprint.reason)

        described = {"fingerprint": fingerprint.text(), "provenance": fingerprint.provenance}
        logger.debug(
            f"Fingerprint for '{upload.id}': {fingerprint.text()}",
            extra={"upload_id": upload.id, "provenance": fingerprint.provenance},
        )

        if policy.is_allow_listed(fingerprint.value):
            return result(IntakeOutcome.ALLOW_LISTED, **described)

        owner, created = await ledger.claim(fingerprint.value, upload_key)
        if created:
            await ledger.put(upload_key, SEEN_MARKER)
            logger.info(
                f"Added upload '{upload.id}' as first occurrence",
                extra={"room_id": room.id, "upload_id": upload.id},
            )
            return result(IntakeOutcome.FIRST_OCCURRENCE, **described)

        if not owner or owner == upload_key:
            await ledger.put(upload_key, SEEN_MARKER)
            logger.info(
                f"Upload '{upload.id}' already owns its fingerprint",
                extra={"room_id": room.id, "upload_id": upload.id},
            )
            return result(IntakeOutcome.SAME_OWNER, **described)

        owner_id = owner.decode("utf-8", errors="replace")
        logger.warning(
            f"Duplicate upload '{upload.id}' by {upload.uploader} matches '{owner_id}'",
            extra={"room_id": room.id, "upload_id": upload.id, "owner_id": owner_id},
        )
        if enforced is not None:
            enforced.add(key)
        actions = await enforcer.enforce(room, upload)
        return result(IntakeOutcome.DUPLICATE, owner_id=owner_id, actions=actions, **described)

    except Exception as e:
        logger.error(
            f"Failed to process upload '{upload.id}': {e}",
            extra={"room_id": room.id, "upload_id": upload.id},
            exc_info=True,
        )
        return result(IntakeOutcome.FAILED, error=str(e))
