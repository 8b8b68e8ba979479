"""Carry out enforcement decisions against duplicate uploads."""

from __future__ import annotations

import logging
from typing import Awaitable

from ...domain.policy.enforcement_policy import EnforcementDecision, EnforcementPolicy
from ..ports.chat_room import BanOptions, RoomPort, UploadPort

logger = logging.getLogger(__name__)


class EnforcementService:
    """
    Apply the enforcement policy to a confirmed duplicate.

    Each side effect is attempted exactly once. A failing side effect is
    logged and does not stop the remaining ones.
    """

    def __init__(self, policy: EnforcementPolicy | None = None) -> None:
        self.policy = policy or EnforcementPolicy()

    def decide(self, room: RoomPort, upload: UploadPort) -> EnforcementDecision:
        return self.policy.decide(
            room_owner=bool(room.owner),
            room_privileged=bool(room.privileged),
            uploader=upload.uploader,
            upload_id=upload.id,
            upload_ip=upload.ip,
        )

    async def enforce(self, room: RoomPort, upload: UploadPort) -> list[str]:
        """
        Enforce against a duplicate upload.

        Args:
            room: Room the duplicate was posted to
            upload: The duplicate upload

        Returns:
            Names of the actions that completed ("timeout", "ban", "notice", "delete")
        """
        decision = self.decide(room, upload)
        done: list[str] = []

        if decision.timeout_minutes is not None:
            await self._attempt("timeout", upload.timeout(decision.timeout_minutes), upload, done)
        elif decision.ban_address is not None:
            options = BanOptions(hours=decision.ban_hours, reason=decision.ban_reason, ban=True)
            await self._attempt("ban", room.ban(decision.ban_address, options), upload, done)

        await self._attempt("notice", room.chat(decision.notice), upload, done)
        if decision.delete:
            await self._attempt("delete", upload.delete(), upload, done)

        logger.info(
            f"Enforced against duplicate upload '{upload.id}': {', '.join(done) or 'nothing'}",
            extra={"room_id": room.id, "upload_id": upload.id, "uploader": upload.uploader},
        )
        return done

    @staticmethod
    async def _attempt(name: str, action: Awaitable[None], upload: UploadPort, done: list[str]) -> None:
        try:
            await action
        except Exception as e:
            logger.warning(
                f"Enforcement action '{name}' failed for upload '{upload.id}': {e}",
                extra={"upload_id": upload.id, "action": name},
                exc_info=True,
            )
            return
        done.append(name)
