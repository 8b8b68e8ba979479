"""Unit tests for IntakePipeline."""

from __future__ import annotations

import asyncio
from typing import AsyncIterator

import pytest

from src.application.dto.intake import IntakeOutcome
from src.application.services.enforcement import EnforcementService
from src.application.services.fingerprint_extractor import FingerprintExtractor
from src.application.services.intake_pipeline import IntakePipeline
from src.domain.errors import LedgerAccessError, PipelineClosedError
from src.domain.policy.intake_policy import IntakePolicy
from tests.fakes import FakeNormalizer, FakeRoom, FakeUpload, InMemoryLedgerRegistry


class TrackingNormalizer(FakeNormalizer):
    """Normalizer that records how many strips run at the same time."""

    def __init__(self, delay: float = 0.01) -> None:
        super().__init__(delay=delay)
        self.running = 0
        self.max_running = 0

    async def strip(self, chunks: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
        self.running += 1
        self.max_running = max(self.max_running, self.running)
        try:
            async for piece in super().strip(chunks):
                yield piece
        finally:
            self.running -= 1


class OrderedUpload(FakeUpload):
    """Upload that appends its id to a shared list when its content is fetched."""

    def __init__(self, upload_id: str, order: list[str], **kwargs) -> None:
        super().__init__(upload_id, **kwargs)
        self.order = order

    async def fetch(self) -> AsyncIterator[bytes]:
        self.order.append(self.id)
        async for chunk in super().fetch():
            yield chunk


def make_pipeline(
    normalizer: FakeNormalizer | None = None,
    pool_limit: int = 2,
    ledgers: InMemoryLedgerRegistry | None = None,
) -> IntakePipeline:
    return IntakePipeline(
        ledgers=ledgers or InMemoryLedgerRegistry(),
        extractor=FingerprintExtractor(normalizer or FakeNormalizer()),
        enforcer=EnforcementService(),
        policy=IntakePolicy(pool_limit=pool_limit),
    )


@pytest.mark.asyncio
async def test_concurrency_is_bounded_by_pool_limit():
    normalizer = TrackingNormalizer()
    uploads = [FakeUpload(f"u{n}", content=bytes([n]) * 100) for n in range(8)]

    async with make_pipeline(normalizer, pool_limit=2) as pipeline:
        results = await asyncio.gather(*(pipeline.on_item(FakeRoom(), u) for u in uploads))

    assert normalizer.calls == 8
    assert normalizer.max_running == 2
    assert all(r.outcome is IntakeOutcome.FIRST_OCCURRENCE for r in results)


@pytest.mark.asyncio
async def test_events_start_in_arrival_order():
    order: list[str] = []
    uploads = [OrderedUpload(f"u{n}", order, content=bytes([n]) * 100) for n in range(5)]

    async with make_pipeline(pool_limit=1) as pipeline:
        await asyncio.gather(*(pipeline.on_item(FakeRoom(), u) for u in uploads))

    assert order == ["u0", "u1", "u2", "u3", "u4"]


@pytest.mark.asyncio
async def test_identical_uploads_in_flight_yield_one_owner():
    room = FakeRoom(owner=True)
    a = FakeUpload("a")
    b = FakeUpload("b")

    async with make_pipeline(TrackingNormalizer(), pool_limit=2) as pipeline:
        results = await asyncio.gather(pipeline.on_item(room, a), pipeline.on_item(room, b))

    outcomes = sorted(r.outcome.value for r in results)
    assert outcomes == ["duplicate", "first_occurrence"]
    assert a.deleted + b.deleted == 1
    assert len(room.messages) == 1


@pytest.mark.asyncio
async def test_same_event_delivered_twice_is_processed_once():
    room = FakeRoom()
    a = FakeUpload("a")

    async with make_pipeline(TrackingNormalizer(), pool_limit=2) as pipeline:
        first, second = await asyncio.gather(pipeline.on_item(room, a), pipeline.on_item(room, a))

    assert first.outcome is IntakeOutcome.FIRST_OCCURRENCE
    assert second.outcome is IntakeOutcome.ALREADY_SEEN
    assert a.fetch_calls == 1


@pytest.mark.asyncio
async def test_failure_of_one_upload_does_not_affect_others():
    ledgers = InMemoryLedgerRegistry()
    ledgers.for_room("bad").fail_with = LedgerAccessError("bad", "corrupt")

    async with make_pipeline(pool_limit=2, ledgers=ledgers) as pipeline:
        bad, good = await asyncio.gather(
            pipeline.on_item(FakeRoom("bad"), FakeUpload("x")),
            pipeline.on_item(FakeRoom("good"), FakeUpload("y")),
        )

    assert bad.outcome is IntakeOutcome.FAILED
    assert good.outcome is IntakeOutcome.FIRST_OCCURRENCE


@pytest.mark.asyncio
async def test_small_uploads_pass_through_the_pool():
    async with make_pipeline() as pipeline:
        result = await pipeline.on_item(FakeRoom(), FakeUpload("tiny", content=b"x"))

    assert result.outcome is IntakeOutcome.SKIPPED_SMALL


@pytest.mark.asyncio
async def test_pipeline_rejects_events_when_not_running():
    pipeline = make_pipeline()

    with pytest.raises(PipelineClosedError):
        await pipeline.on_item(FakeRoom(), FakeUpload("a"))

    await pipeline.start()
    assert pipeline.running
    await pipeline.stop()
    assert not pipeline.running

    with pytest.raises(PipelineClosedError):
        await pipeline.on_item(FakeRoom(), FakeUpload("a"))


@pytest.mark.asyncio
async def test_stop_drains_queued_events():
    pipeline = make_pipeline(TrackingNormalizer(), pool_limit=1)
    await pipeline.start()
    tasks = [
        asyncio.create_task(pipeline.on_item(FakeRoom(), FakeUpload(f"u{n}", content=bytes([n]) * 100)))
        for n in range(3)
    ]
    await asyncio.sleep(0)
    assert pipeline.pending + pipeline.active == 3

    await pipeline.stop()

    results = await asyncio.gather(*tasks)
    assert [r.outcome for r in results] == [IntakeOutcome.FIRST_OCCURRENCE] * 3
    assert pipeline.pending == 0
    assert pipeline.active == 0
