"""Local stand-ins for host uploads and rooms, used by the operator CLI."""

from __future__ import annotations

import asyncio
import hashlib
import mimetypes
from dataclasses import dataclass, field
from pathlib import Path
from typing import AsyncIterator

from rich.console import Console

from ...application.ports.chat_room import BanOptions, UploadInfo

READ_CHUNK_SIZE = 64 * 1024


def guess_media_type(path: Path) -> str:
    """Map a file name to a media category ("image", "video", ...), "file" if unknown."""
    mime, _ = mimetypes.guess_type(path.name)
    if not mime:
        return "file"
    return mime.split("/", 1)[0]


def file_checksum(path: Path) -> str:
    """SHA-1 of the file contents, the way hosts usually label uploads."""
    digest = hashlib.sha1()  # noqa: S324
    with path.open("rb") as f:
        for block in iter(lambda: f.read(READ_CHUNK_SIZE), b""):
            digest.update(block)
    return digest.hexdigest()


class LocalFileUpload:
    """
    Upload backed by a file on disk.

    Moderation calls (timeout, delete) are recorded and printed, never performed; the
    file itself is left untouched.
    """

    def __init__(
        self,
        path: Path,
        upload_id: str | None = None,
        uploader: str = "local",
        media_type: str | None = None,
        checksum: str | None = None,
        ip: str | None = None,
        console: Console | None = None,
    ) -> None:
        self.path = Path(path)
        self.id = upload_id or self.path.name
        self.size = self.path.stat().st_size
        self.type = media_type or guess_media_type(self.path)
        self.uploader = uploader
        self.ip = ip
        self._checksum = checksum
        self.console = console or Console()
        self.timeouts: list[float] = []
        self.deleted = False

    async def fetch(self) -> AsyncIterator[bytes]:
        with self.path.open("rb") as f:
            while True:
                block = await asyncio.to_thread(f.read, READ_CHUNK_SIZE)
                if not block:
                    break
                yield block

    async def infos(self) -> UploadInfo:
        checksum = self._checksum
        if checksum is None:
            checksum = await asyncio.to_thread(file_checksum, self.path)
        return UploadInfo(checksum=checksum, extra={"path": str(self.path)})

    async def timeout(self, minutes: float) -> None:
        self.timeouts.append(minutes)
        self.console.print(f"[yellow]timeout {self.uploader} for {minutes}m ({self.id})[/yellow]")

    async def delete(self) -> None:
        self.deleted = True
        self.console.print(f"[red]delete {self.id}[/red]")


@dataclass
class ConsoleRoomAdapter:
    """Room that prints moderation actions instead of performing them."""

    id: str
    owner: bool = False
    privileged: bool = False
    console: Console = field(default_factory=Console)
    messages: list[str] = field(default_factory=list)
    bans: list[tuple[str, BanOptions]] = field(default_factory=list)

    async def chat(self, text: str) -> None:
        self.messages.append(text)
        self.console.print(f"[bold]#{self.id}[/bold] {text}")

    async def ban(self, address: str, options: BanOptions) -> None:
        self.bans.append((address, options))
        kind = "ban" if options.ban else "mute"
        self.console.print(
            f"[red]#{self.id} {kind} {address} for {options.hours}h ({options.reason})[/red]"
        )
