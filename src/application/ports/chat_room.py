"""Ports describing the rooms and uploads delivered by the chat host."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Protocol, runtime_checkable


@dataclass(frozen=True)
class BanOptions:
    """
    Options for banning a network address from a room.

    Attributes:
        hours: Ban duration in hours
        reason: Reason shown to moderators
        ban: True for a ban, False for a mute
    """

    hours: float
    reason: str
    ban: bool = True


@dataclass(frozen=True)
class UploadInfo:
    """
    Metadata the host knows about an upload.

    Attributes:
        checksum: Host-computed content checksum (None if the host has none)
        extra: Any other fields the host reports
    """

    checksum: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class UploadPort(Protocol):
    """An uploaded file under evaluation, owned by its room."""

    id: str
    size: int
    type: str
    uploader: str
    ip: str | None

    def fetch(self) -> AsyncIterator[bytes]:
        """
        Stream the upload's raw bytes.

        Returns:
            Async iterator of byte chunks
        """
        ...

    async def infos(self) -> UploadInfo:
        """Retrieve host metadata for the upload (including its checksum)."""
        ...

    async def timeout(self, minutes: float) -> None:
        """Place the uploader in a communication timeout."""
        ...

    async def delete(self) -> None:
        """Remove the upload from its room."""
        ...


@runtime_checkable
class RoomPort(Protocol):
    """The room an upload was posted to; the scope of deduplication."""

    id: str
    owner: bool
    privileged: bool

    async def chat(self, text: str) -> None:
        """Post a public message to the room."""
        ...

    async def ban(self, address: str, options: BanOptions) -> None:
        """Ban a network address from the room."""
        ...
