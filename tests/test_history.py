import pytest
from sqlalchemy.exc import OperationalError

from odontolegal.cases.models import CaseType
from odontolegal.cases.schemas import CaseCreate, CaseUpdate
from odontolegal.cases.service import CaseService
from odontolegal.history.models import AuditableEntity, CaseAction
from odontolegal.history.reconciliation import pending_appends
from odontolegal.history.replay import replay_pending
from odontolegal.history.service import HistoryTrail
from odontolegal.shared.exceptions import ValidationFailed


def case_payload(assignee) -> CaseCreate:
    return CaseCreate(
        title="Unidentified remains, river bank",
        description="Partial maxilla recovered by civil police",
        case_type=CaseType.IDENTIFICATION,
        assigned_to_id=assignee.id,
    )


@pytest.mark.asyncio
async def test_create_two_views_and_edit_give_four_ordered_entries(db_session, expert_user, make_actor):
    actor = make_actor(expert_user)
    service = CaseService(db_session)

    case = await service.create_case(case_payload(expert_user), actor)
    await service.get_case(case.id, actor)
    await service.get_case(case.id, actor)
    await service.update_case(case.id, CaseUpdate(title="Remains, river bank (revised)"), actor)

    entries = await service.get_history(case.id)

    assert [e.action for e in entries] == ["creation", "view", "view", "edit"]
    assert [e.sequence for e in entries] == [1, 2, 3, 4]
    assert all(e.actor_id == expert_user.id for e in entries)
    assert entries[0].actor_name == "Eduardo Expert"


@pytest.mark.asyncio
async def test_sequences_are_per_entity(db_session, expert_user, make_actor):
    actor = make_actor(expert_user)
    service = CaseService(db_session)

    first = await service.create_case(case_payload(expert_user), actor)
    second = await service.create_case(case_payload(expert_user), actor)
    await service.get_case(first.id, actor)

    assert [e.sequence for e in await service.get_history(first.id)] == [1, 2]
    assert [e.sequence for e in await service.get_history(second.id)] == [1]


@pytest.mark.asyncio
async def test_sequence_collision_retries_with_next_sequence(db_session, expert_user, make_actor, monkeypatch):
    actor = make_actor(expert_user)
    service = CaseService(db_session)
    case = await service.create_case(case_payload(expert_user), actor)

    original_next_sequence = HistoryTrail._next_sequence
    allocated = []

    async def stale_then_fresh(self, entity_type, entity_id):
        # First allocation reuses sequence 1, as a concurrent writer would have seen it
        sequence = 1 if not allocated else await original_next_sequence(self, entity_type, entity_id)
        allocated.append(sequence)
        return sequence

    monkeypatch.setattr(HistoryTrail, "_next_sequence", stale_then_fresh)
    await service.get_case(case.id, actor)

    assert allocated == [1, 2]
    assert len(pending_appends) == 0
    entries = await service.get_history(case.id)
    assert [(e.sequence, e.action) for e in entries] == [(1, "creation"), (2, "view")]


@pytest.mark.asyncio
async def test_unknown_action_is_rejected(db_session, expert_user, make_actor):
    trail = HistoryTrail(db_session)

    with pytest.raises(ValidationFailed):
        await trail.append(AuditableEntity.EVIDENCE, expert_user.id, "identification", make_actor(expert_user))
    with pytest.raises(ValidationFailed):
        await trail.append(AuditableEntity.CASE, expert_user.id, "deleted", make_actor(expert_user))


@pytest.mark.asyncio
async def test_failed_append_keeps_entity_and_queues_entry(db_session, expert_user, make_actor, monkeypatch):
    actor = make_actor(expert_user)
    service = CaseService(db_session)
    original_insert = HistoryTrail._insert

    async def failing_insert(self, payload):
        raise OperationalError("INSERT INTO history_entries", {}, Exception("connection reset"))

    monkeypatch.setattr(HistoryTrail, "_insert", failing_insert)
    case = await service.create_case(case_payload(expert_user), actor)

    assert case.id is not None
    assert len(pending_appends) == 1
    assert await service.get_history(case.id) == []

    monkeypatch.setattr(HistoryTrail, "_insert", original_insert)
    result = await replay_pending(db_session)

    assert result.replayed == 1
    assert result.remaining == 0
    entries = await service.get_history(case.id)
    assert [e.action for e in entries] == [CaseAction.CREATION.value]


@pytest.mark.asyncio
async def test_replay_failure_goes_back_on_queue(db_session, expert_user, make_actor, monkeypatch):
    async def failing_insert(self, payload):
        raise OperationalError("INSERT INTO history_entries", {}, Exception("still down"))

    monkeypatch.setattr(HistoryTrail, "_insert", failing_insert)
    await CaseService(db_session).create_case(case_payload(expert_user), make_actor(expert_user))

    result = await replay_pending(db_session)

    assert result.replayed == 0
    assert result.remaining == 1
    assert pending_appends.drain()[0].attempts == 1
