"""Access rules for cases, evidence, reports and dental records.

Every rule takes ``(actor, entity)`` and answers allow/deny. Services call
:func:`authorize` so the denial message and exception type stay uniform.
"""
from typing import Any, Callable, Optional

from odontolegal.auth.models import UserRole
from odontolegal.auth.schemas import Actor
from odontolegal.shared.exceptions import Forbidden

Rule = Callable[[Actor, Any], bool]


def is_owner(actor: Actor, entity: Any) -> bool:
    return getattr(entity, "created_by_id", None) == actor.id


def is_admin(actor: Actor, entity: Any = None) -> bool:
    return actor.role == UserRole.ADMIN


def is_expert_or_admin(actor: Actor, entity: Any = None) -> bool:
    return actor.role in (UserRole.ADMIN, UserRole.EXPERT)


def owner_or_admin(actor: Actor, entity: Any) -> bool:
    return is_owner(actor, entity) or is_admin(actor)


def owner_admin_or_expert(actor: Actor, entity: Any) -> bool:
    return is_owner(actor, entity) or is_expert_or_admin(actor)


def case_editor(actor: Actor, entity: Any) -> bool:
    """Owner, assigned expert, admin or any expert."""
    if getattr(entity, "assigned_to_id", None) == actor.id:
        return True
    return owner_admin_or_expert(actor, entity)


def authorize(rule: Rule, actor: Actor, entity: Optional[Any], message: str) -> None:
    if not rule(actor, entity):
        raise Forbidden(message)
