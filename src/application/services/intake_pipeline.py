"""Bounded-concurrency intake of upload events."""

from __future__ import annotations

import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator

from ...domain.errors import PipelineClosedError
from ...domain.policy.intake_policy import IntakePolicy
from ...infrastructure.logging import set_correlation_id
from ..dto.intake import IntakeResult
from ..ports.chat_room import RoomPort, UploadPort
from ..ports.ledger_store import LedgerRegistryPort
from ..use_cases.process_upload import process_upload
from .enforcement import EnforcementService
from .fingerprint_extractor import FingerprintExtractor

logger = logging.getLogger(__name__)


@dataclass
class _Job:
    room: RoomPort
    upload: UploadPort
    done: asyncio.Future = field(repr=False)


class IntakePipeline:
    """
    Fixed-size worker pool over a FIFO queue of upload events.

    At most policy.pool_limit uploads are processed at once; further events
    wait in arrival order. Each worker runs one upload to completion before
    taking the next. Events for the same (room, upload) are serialized so a
    re-delivered event always observes the ledger state of the first one.
    """

    def __init__(
        self,
        ledgers: LedgerRegistryPort,
        extractor: FingerprintExtractor,
        enforcer: EnforcementService,
        policy: IntakePolicy | None = None,
    ) -> None:
        self.ledgers = ledgers
        self.extractor = extractor
        self.enforcer = enforcer
        self.policy = policy or IntakePolicy()
        self._queue: asyncio.Queue[_Job] | None = None
        self._workers: list[asyncio.Task] = []
        self._item_locks: dict[tuple[str, str], asyncio.Lock] = {}
        self._item_lock_users: dict[tuple[str, str], int] = {}
        self._enforced: set[tuple[str, str]] = set()
        self._active = 0
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    @property
    def pending(self) -> int:
        """Number of events waiting for a free worker."""
        return self._queue.qsize() if self._queue is not None else 0

    @property
    def active(self) -> int:
        """Number of events currently being processed."""
        return self._active

    async def start(self) -> None:
        if self._running:
            return
        self._queue = asyncio.Queue()
        self._workers = [
            asyncio.create_task(self._worker(n), name=f"intake-worker-{n}")
            for n in range(self.policy.pool_limit)
        ]
        self._running = True
        logger.info(f"Intake pipeline started with {self.policy.pool_limit} workers")

    async def stop(self) -> None:
        """Stop accepting events, finish queued ones, then shut the workers down."""
        if not self._running:
            return
        self._running = False
        assert self._queue is not None
        await self._queue.join()
        for worker in self._workers:
            worker.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        logger.info("Intake pipeline stopped")

    async def __aenter__(self) -> IntakePipeline:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    async def on_item(self, room: RoomPort, upload: UploadPort) -> IntakeResult:
        """
        Submit one upload event and wait for its decision.

        Returns once the decision has been recorded in the room ledger (or the
        upload was deliberately skipped).

        Raises:
            PipelineClosedError: If the pipeline is not running
        """
        if not self._running or self._queue is None:
            raise PipelineClosedError(upload.id)
        done = asyncio.get_running_loop().create_future()
        await self._queue.put(_Job(room=room, upload=upload, done=done))
        return await done

    async def _worker(self, n: int) -> None:
        assert self._queue is not None
        while True:
            job = await self._queue.get()
            self._active += 1
            try:
                result = await self._run(job)
            except Exception as e:
                logger.error(f"Intake worker {n} failed on upload: {e}", exc_info=True)
                if not job.done.done():
                    job.done.set_exception(e)
            else:
                if not job.done.done():
                    job.done.set_result(result)
            finally:
                self._active -= 1
                self._queue.task_done()

    async def _run(self, job: _Job) -> IntakeResult:
        set_correlation_id(str(uuid.uuid4()))
        async with self._item_lock((job.room.id, job.upload.id)):
            return await process_upload(
                job.room,
                job.upload,
                ledgers=self.ledgers,
                extractor=self.extractor,
                enforcer=self.enforcer,
                policy=self.policy,
                enforced=self._enforced,
            )

    @asynccontextmanager
    async def _item_lock(self, key: tuple[str, str]) -> AsyncIterator[None]:
        lock = self._item_locks.setdefault(key, asyncio.Lock())
        self._item_lock_users[key] = self._item_lock_users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._item_lock_users[key] -= 1
            if not self._item_lock_users[key]:
                del self._item_lock_users[key]
                del self._item_locks[key]
