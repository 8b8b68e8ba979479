"""Unit tests for process_upload use case."""

from __future__ import annotations

import hashlib

import pytest

from src.application.dto.intake import IntakeOutcome
from src.application.services.enforcement import EnforcementService
from src.application.services.fingerprint_extractor import FingerprintExtractor
from src.application.use_cases.process_upload import process_upload
from src.domain.errors import LedgerAccessError
from src.domain.models.ledger_entry import SEEN_MARKER
from src.domain.policy.intake_policy import IntakePolicy
from tests.fakes import DecoderErrorNormalizer, FakeNormalizer, FakeRoom, FakeUpload, InMemoryLedgerRegistry

PIXELS = b"pixels" * 20


def stripped_digest(content: bytes) -> bytes:
    return hashlib.sha256(content).hexdigest().encode("ascii")


@pytest.fixture
def ledgers() -> InMemoryLedgerRegistry:
    return InMemoryLedgerRegistry()


@pytest.fixture
def extractor() -> FingerprintExtractor:
    return FingerprintExtractor(FakeNormalizer())


@pytest.fixture
def enforcer() -> EnforcementService:
    return EnforcementService()


@pytest.fixture
def run(ledgers, extractor, enforcer):
    enforced: set[tuple[str, str]] = set()

    async def _run(room, upload, policy=None):
        return await process_upload(
            room,
            upload,
            ledgers=ledgers,
            extractor=extractor,
            enforcer=enforcer,
            policy=policy or IntakePolicy(),
            enforced=enforced,
        )

    return _run


@pytest.mark.asyncio
async def test_small_upload_never_touches_the_ledger(run, ledgers):
    room = FakeRoom()
    upload = FakeUpload("tiny", content=b"x" * 50)

    result = await run(room, upload)

    assert result.outcome is IntakeOutcome.SKIPPED_SMALL
    assert ledgers.stores == {}
    assert upload.fetch_calls == 0


@pytest.mark.asyncio
async def test_first_occurrence_records_owner_and_seen(run, ledgers):
    room = FakeRoom()
    upload = FakeUpload("a", content=PIXELS + b"#meta")

    result = await run(room, upload)

    assert result.outcome is IntakeOutcome.FIRST_OCCURRENCE
    assert result.provenance == "normalized"
    ledger = ledgers.stores["r1"]
    assert ledger.data[stripped_digest(PIXELS)] == b"a"
    assert ledger.data[b"a"] == SEEN_MARKER


@pytest.mark.asyncio
async def test_seen_upload_is_a_noop(run, ledgers):
    room = FakeRoom()
    ledgers.for_room("r1").data[b"a"] = SEEN_MARKER
    upload = FakeUpload("a")

    result = await run(room, upload)

    assert result.outcome is IntakeOutcome.ALREADY_SEEN
    assert upload.fetch_calls == 0
    assert room.messages == []


@pytest.mark.asyncio
async def test_reupload_with_different_metadata_is_enforced(run, ledgers):
    room = FakeRoom(owner=True)
    a = FakeUpload("a", content=PIXELS + b"#camera=x", uploader="alice")
    b = FakeUpload("b", content=PIXELS + b"#camera=y", uploader="bob")

    first = await run(room, a)
    second = await run(room, b)

    assert first.outcome is IntakeOutcome.FIRST_OCCURRENCE
    assert second.outcome is IntakeOutcome.DUPLICATE
    assert second.owner_id == "a"
    assert second.actions == ["timeout", "notice", "delete"]
    assert second.enforced
    assert b.timeouts == [5]
    assert b.deleted == 1
    assert room.messages == ["bob: pls, no dupes, not even @b"]

    ledger = ledgers.stores["r1"]
    assert ledger.data[stripped_digest(PIXELS)] == b"a"
    assert b"b" not in ledger.data
    assert a.deleted == 0


@pytest.mark.asyncio
async def test_duplicate_redelivered_is_not_enforced_twice(run):
    room = FakeRoom(owner=True)
    await run(room, FakeUpload("a"))
    b = FakeUpload("b")

    first = await run(room, b)
    again = await run(room, b)

    assert first.outcome is IntakeOutcome.DUPLICATE
    assert again.outcome is IntakeOutcome.ALREADY_ENFORCED
    assert b.timeouts == [5]
    assert b.deleted == 1
    assert len(room.messages) == 1


@pytest.mark.asyncio
async def test_owner_redelivered_is_already_seen(run, ledgers):
    room = FakeRoom()
    a = FakeUpload("a")
    await run(room, a)

    again = await run(room, a)

    assert again.outcome is IntakeOutcome.ALREADY_SEEN
    assert a.deleted == 0
    assert len(ledgers.stores["r1"].data) == 2


@pytest.mark.asyncio
async def test_owner_without_seen_marker_is_same_owner(run, ledgers):
    room = FakeRoom()
    ledgers.for_room("r1").data[stripped_digest(PIXELS)] = b"a"
    a = FakeUpload("a", content=PIXELS)

    result = await run(room, a)

    assert result.outcome is IntakeOutcome.SAME_OWNER
    assert ledgers.stores["r1"].data[b"a"] == SEEN_MARKER
    assert room.messages == []


@pytest.mark.asyncio
async def test_non_image_uses_checksum(run, ledgers):
    room = FakeRoom()
    c = FakeUpload("c", media_type="file", checksum="c1")

    result = await run(room, c)

    assert result.outcome is IntakeOutcome.FIRST_OCCURRENCE
    assert result.provenance == "fallback"
    assert result.fingerprint == "c1"
    assert ledgers.stores["r1"].data == {b"c1": b"c", b"c": SEEN_MARKER}
    assert c.fetch_calls == 0


@pytest.mark.asyncio
async def test_unfingerprintable_upload_is_reported(run, ledgers):
    room = FakeRoom()
    c = FakeUpload("c", media_type="file", checksum=None)

    result = await run(room, c)

    assert result.outcome is IntakeOutcome.UNFINGERPRINTABLE
    assert result.error
    assert ledgers.stores["r1"].data == {}


@pytest.mark.asyncio
async def test_allow_listed_fingerprint_is_never_enforced(run, ledgers):
    room = FakeRoom(owner=True)
    policy = IntakePolicy(allow_list=frozenset({b"c1"}))
    first = FakeUpload("c", media_type="file", checksum="c1")
    second = FakeUpload("d", media_type="file", checksum="c1")

    r1 = await run(room, first, policy)
    r2 = await run(room, second, policy)

    assert r1.outcome is IntakeOutcome.ALLOW_LISTED
    assert r2.outcome is IntakeOutcome.ALLOW_LISTED
    assert second.deleted == 0
    assert ledgers.stores["r1"].data == {}


@pytest.mark.asyncio
async def test_rooms_are_independent(run):
    r1 = FakeRoom("r1", owner=True)
    r2 = FakeRoom("r2", owner=True)

    first = await run(r1, FakeUpload("a"))
    other_room = await run(r2, FakeUpload("b"))

    assert first.outcome is IntakeOutcome.FIRST_OCCURRENCE
    assert other_room.outcome is IntakeOutcome.FIRST_OCCURRENCE


@pytest.mark.asyncio
async def test_ledger_fault_fails_without_enforcement(run, ledgers):
    room = FakeRoom(owner=True)
    ledgers.for_room("r1").fail_with = LedgerAccessError("r1", "disk full")
    upload = FakeUpload("b")

    result = await run(room, upload)

    assert result.outcome is IntakeOutcome.FAILED
    assert "disk full" in result.error
    assert upload.deleted == 0
    assert room.messages == []


@pytest.mark.asyncio
async def test_closed_registry_fails_the_upload(run, ledgers):
    ledgers.close()

    result = await run(FakeRoom(), FakeUpload("a"))

    assert result.outcome is IntakeOutcome.FAILED


@pytest.mark.asyncio
async def test_decoder_fault_still_records_checksum_owner(ledgers, enforcer):
    upload = FakeUpload("a", checksum="c-a")

    result = await process_upload(
        FakeRoom(),
        upload,
        ledgers=ledgers,
        extractor=FingerprintExtractor(DecoderErrorNormalizer()),
        enforcer=enforcer,
        policy=IntakePolicy(),
    )

    assert result.outcome is IntakeOutcome.FIRST_OCCURRENCE
    assert result.provenance == "fallback"
    assert ledgers.stores["r1"].data[b"c-a"] == b"a"
