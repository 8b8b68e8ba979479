"""Content normalizer adapter that strips metadata with exiftool."""

from __future__ import annotations

import asyncio
import logging
import shutil
from typing import AsyncIterator, Awaitable, Sequence, TypeVar

from ...domain.errors import ExtractionError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_ARGS = ("-all=", "-")


class ExiftoolNormalizerAdapter:
    """
    Adapter running `exiftool -all= -` as a pipe.

    Raw content is written to exiftool's stdin from a background task while
    the stripped bytes are read from its stdout and yielded as they arrive.
    exiftool's stderr is discarded.
    """

    def __init__(
        self,
        executable: str = "exiftool",
        args: Sequence[str] = DEFAULT_ARGS,
        chunk_size: int = 64 * 1024,
        timeout_seconds: float | None = None,
    ) -> None:
        """
        Initialize exiftool normalizer.

        Args:
            executable: exiftool binary name or path
            args: Arguments requesting metadata stripping with output to stdout
            chunk_size: Read size for stdout
            timeout_seconds: Overall limit for one normalization (None: no limit)
        """
        self.executable = executable
        self.args = tuple(args)
        self.chunk_size = chunk_size
        self.timeout_seconds = timeout_seconds

    def is_available(self) -> bool:
        return shutil.which(self.executable) is not None

    async def strip(self, chunks: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
        try:
            proc = await asyncio.create_subprocess_exec(
                self.executable,
                *self.args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            raise ExtractionError(f"cannot start {self.executable}: {e}") from e

        assert proc.stdin is not None and proc.stdout is not None
        feeder = asyncio.create_task(self._feed(proc.stdin, chunks))
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.timeout_seconds if self.timeout_seconds else None
        try:
            while True:
                block = await self._read(proc.stdout, deadline)
                if not block:
                    break
                yield block
            await self._bounded(feeder, deadline)
            code = await self._bounded(proc.wait(), deadline)
            if code:
                raise ExtractionError(f"{self.executable} exited with status {code}")
        finally:
            if not feeder.done():
                feeder.cancel()
            if proc.returncode is None:
                proc.kill()
                await proc.wait()

    async def _read(self, stdout: asyncio.StreamReader, deadline: float | None) -> bytes:
        try:
            return await self._bounded(stdout.read(self.chunk_size), deadline)
        except OSError as e:
            raise ExtractionError(f"reading {self.executable} output failed: {e}") from e

    async def _bounded(self, awaitable: Awaitable[T], deadline: float | None) -> T:
        if deadline is None:
            return await awaitable
        remaining = max(deadline - asyncio.get_running_loop().time(), 0)
        try:
            return await asyncio.wait_for(awaitable, timeout=remaining)
        except asyncio.TimeoutError as e:
            raise ExtractionError(
                f"{self.executable} exceeded timeout of {self.timeout_seconds}s"
            ) from e

    async def _feed(self, stdin: asyncio.StreamWriter, chunks: AsyncIterator[bytes]) -> None:
        try:
            async for chunk in chunks:
                stdin.write(chunk)
                await stdin.drain()
        except (BrokenPipeError, ConnectionResetError):
            # exiftool stopped reading; its exit status decides the outcome
            logger.debug(f"{self.executable} closed its input early")
        except Exception as e:
            raise ExtractionError(f"upload stream failed: {e}") from e
        finally:
            if not stdin.is_closing():
                stdin.close()
