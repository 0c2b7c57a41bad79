import uuid
from datetime import datetime

import pytest
import pytest_asyncio
from sqlalchemy.exc import OperationalError

from odontolegal.dental.models import DentalRecord
from odontolegal.dental.registry import MatchRegistry
from odontolegal.dental.schemas import CounterpartType
from odontolegal.history.reconciliation import pending_appends
from odontolegal.history.replay import replay_pending
from odontolegal.shared.exceptions import AuditAppendFailed, ValidationFailed


@pytest_asyncio.fixture
async def dental_record(db_session, expert_user) -> DentalRecord:
    record = DentalRecord(characteristics={"teeth": []}, created_by_id=expert_user.id)
    db_session.add(record)
    await db_session.commit()
    await db_session.refresh(record)
    return record


@pytest.mark.asyncio
async def test_repeated_matches_are_all_kept(db_session, dental_record):
    registry = MatchRegistry(db_session)
    counterpart = uuid.uuid4()

    await registry.record(dental_record.id, CounterpartType.DENTAL_RECORD, counterpart, 40.0, ["Same palate: deep"])
    await registry.record(dental_record.id, CounterpartType.DENTAL_RECORD, counterpart, 62.5, ["Same occlusion: class I"])

    matches = await registry.matches(dental_record.id)
    assert [m.score for m in matches] == [40.0, 62.5]
    assert all(m.counterpart_id == counterpart for m in matches)
    assert matches[1].details == ["Same occlusion: class I"]


@pytest.mark.asyncio
@pytest.mark.parametrize("score", [-0.01, 100.01])
async def test_out_of_range_score_is_rejected(db_session, dental_record, score):
    with pytest.raises(ValidationFailed):
        await MatchRegistry(db_session).record(dental_record.id, CounterpartType.CASE, uuid.uuid4(), score, [])
    assert await MatchRegistry(db_session).matches(dental_record.id) == []


@pytest.mark.asyncio
async def test_failed_registry_append_is_queued_and_replayed(db_session, dental_record, monkeypatch):
    registry = MatchRegistry(db_session)
    # rollback on failure expires loaded rows
    record_id = dental_record.id
    original_insert = MatchRegistry._insert

    async def failing_insert(self, payload):
        raise OperationalError("INSERT INTO match_records", {}, Exception("timeout"))

    monkeypatch.setattr(MatchRegistry, "_insert", failing_insert)
    with pytest.raises(AuditAppendFailed):
        await registry.record(record_id, CounterpartType.CASE, uuid.uuid4(), 88.0, [])

    assert await registry.record_or_queue(record_id, CounterpartType.CASE, uuid.uuid4(), 88.0, []) is None
    assert len(pending_appends) == 1

    monkeypatch.setattr(MatchRegistry, "_insert", original_insert)
    result = await replay_pending(db_session)

    assert result.replayed == 1
    matches = await registry.matches(record_id)
    assert len(matches) == 1
    assert matches[0].score == 88.0
    assert matches[0].counterpart_type == CounterpartType.CASE


@pytest.mark.asyncio
async def test_matches_with_identical_timestamps_keep_insertion_order(db_session, dental_record, monkeypatch):
    registry = MatchRegistry(db_session)
    frozen = datetime(2026, 5, 2, 14, 30, 0)
    monkeypatch.setattr("odontolegal.dental.registry.utcnow", lambda: frozen)

    for score in (30.0, 90.0, 55.0):
        await registry.record(dental_record.id, CounterpartType.CASE, uuid.uuid4(), score, [])

    matches = await registry.matches(dental_record.id)
    assert [m.score for m in matches] == [30.0, 90.0, 55.0]
    assert [m.sequence for m in matches] == [1, 2, 3]
    assert {m.matched_at for m in matches} == {frozen}


@pytest.mark.asyncio
async def test_sequence_collision_on_match_append_is_retried(db_session, dental_record, monkeypatch):
    registry = MatchRegistry(db_session)
    record_id = dental_record.id
    await registry.record(record_id, CounterpartType.CASE, uuid.uuid4(), 10.0, [])

    original_next_sequence = MatchRegistry._next_sequence
    allocated = []

    async def stale_then_fresh(self, dental_record_id):
        sequence = 1 if not allocated else await original_next_sequence(self, dental_record_id)
        allocated.append(sequence)
        return sequence

    monkeypatch.setattr(MatchRegistry, "_next_sequence", stale_then_fresh)
    await registry.record(record_id, CounterpartType.CASE, uuid.uuid4(), 20.0, [])

    assert allocated == [1, 2]
    assert len(pending_appends) == 0
    assert [(m.sequence, m.score) for m in await registry.matches(record_id)] == [(1, 10.0), (2, 20.0)]
