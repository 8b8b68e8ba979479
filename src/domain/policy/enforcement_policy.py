from __future__ import annotations

from dataclasses import dataclass

DEFAULT_NOTICE_TEMPLATE = "{uploader}: pls, no dupes, not even @{upload_id}"


@dataclass(frozen=True)
class EnforcementDecision:
    """
    What to do about one confirmed duplicate.

    Attributes:
        notice: Public chat message naming the uploader and the upload
        timeout_minutes: Uploader timeout, or None
        ban_address: Network address to ban, or None
        ban_hours: Ban duration in hours (only meaningful with ban_address)
        ban_reason: Ban reason shown to moderators
        delete: Whether to delete the offending upload (always True today)
    """

    notice: str
    timeout_minutes: float | None = None
    ban_address: str | None = None
    ban_hours: float = 0.0
    ban_reason: str = ""
    delete: bool = True


@dataclass(frozen=True)
class EnforcementPolicy:
    """Policy mapping a duplicate plus room privileges to enforcement actions."""

    timeout_minutes: float = 5
    ban_hours: float = 0.1
    ban_reason: str = "Dupe"
    notice_template: str = DEFAULT_NOTICE_TEMPLATE

    def __post_init__(self) -> None:
        """Validate enforcement policy."""
        if self.timeout_minutes <= 0:
            raise ValueError(f"timeout_minutes must be > 0, got {self.timeout_minutes}")
        if self.ban_hours <= 0:
            raise ValueError(f"ban_hours must be > 0, got {self.ban_hours}")
        try:
            self.notice_template.format(uploader="", upload_id="")
        except (KeyError, IndexError) as e:
            raise ValueError(f"notice_template has unknown placeholder: {e}") from e

    def decide(
        self,
        *,
        room_owner: bool,
        room_privileged: bool,
        uploader: str,
        upload_id: str,
        upload_ip: str | None = None,
    ) -> EnforcementDecision:
        """
        Decide enforcement for a confirmed duplicate.

        Owner-moderated rooms time the uploader out. Otherwise, rooms with
        privileged moderation ban the upload's address when one is known.
        Every duplicate gets a public notice and is deleted.
        """
        notice = self.notice_template.format(uploader=uploader, upload_id=upload_id)
        if room_owner:
            return EnforcementDecision(notice=notice, timeout_minutes=self.timeout_minutes)
        if room_privileged and upload_ip:
            return EnforcementDecision(
                notice=notice,
                ban_address=upload_ip,
                ban_hours=self.ban_hours,
                ban_reason=self.ban_reason,
            )
        return EnforcementDecision(notice=notice)
