import uuid
from types import SimpleNamespace

import pytest

from odontolegal.auth import policy
from odontolegal.auth.models import UserRole
from odontolegal.auth.schemas import Actor
from odontolegal.shared.exceptions import Forbidden

OWNER = Actor(id=uuid.uuid4(), name="Owner", role=UserRole.STANDARD)
STRANGER = Actor(id=uuid.uuid4(), name="Stranger", role=UserRole.STANDARD)
EXPERT = Actor(id=uuid.uuid4(), name="Expert", role=UserRole.EXPERT)
ADMIN = Actor(id=uuid.uuid4(), name="Admin", role=UserRole.ADMIN)

ENTITY = SimpleNamespace(created_by_id=OWNER.id, assigned_to_id=None)


@pytest.mark.parametrize("rule, allowed", [
    (policy.owner_or_admin, {OWNER, ADMIN}),
    (policy.owner_admin_or_expert, {OWNER, ADMIN, EXPERT}),
    (policy.is_expert_or_admin, {ADMIN, EXPERT}),
])
def test_rules(rule, allowed):
    for actor in (OWNER, STRANGER, EXPERT, ADMIN):
        assert rule(actor, ENTITY) is (actor in allowed), actor.name


def test_assignee_can_edit_case():
    case = SimpleNamespace(created_by_id=OWNER.id, assigned_to_id=STRANGER.id)
    assert policy.case_editor(STRANGER, case)
    assert not policy.case_editor(STRANGER, ENTITY)


def test_authorize_raises_forbidden_with_message():
    with pytest.raises(Forbidden) as exc:
        policy.authorize(policy.owner_or_admin, EXPERT, ENTITY, "Not yours")
    assert exc.value.detail == "Not yours"
    assert exc.value.status_code == 403

    policy.authorize(policy.owner_or_admin, OWNER, ENTITY, "Not yours")
