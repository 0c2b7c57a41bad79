import logging
from typing import List, Optional, Union
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from odontolegal.auth.schemas import Actor
from odontolegal.config import settings
from odontolegal.history.models import ACTIONS, AuditableEntity, HistoryEntry
from odontolegal.history.reconciliation import PendingAppend, pending_appends
from odontolegal.shared.exceptions import AuditAppendFailed, ValidationFailed
from odontolegal.shared.models import utcnow

logger = logging.getLogger(__name__)


def validate_action(entity_type: AuditableEntity, action: Union[str, object]) -> str:
    """Return the canonical action string or raise if the entity does not know it."""
    allowed = ACTIONS[entity_type]
    value = getattr(action, "value", action)
    try:
        return allowed(value).value
    except ValueError:
        raise ValidationFailed(f"Unknown {entity_type.value} history action: {value!r}")


class HistoryTrail:
    """Append-only, per-entity action log.

    Entries are ordered by a per-entity ``sequence`` allocated at insert time.
    Two racing appends to the same entity collide on the unique
    ``(entity_type, entity_id, sequence)`` constraint; the loser rolls back
    and retries with a fresh sequence.

    ``append`` commits on its own. Callers commit their entity first, so a
    failed append never undoes the entity write.
    """

    def __init__(self, db: AsyncSession, retries: int = settings.HISTORY_APPEND_RETRIES):
        self.db = db
        self.retries = retries

    async def _next_sequence(self, entity_type: AuditableEntity, entity_id: UUID) -> int:
        result = await self.db.execute(
            select(func.coalesce(func.max(HistoryEntry.sequence), 0)).where(
                HistoryEntry.entity_type == entity_type,
                HistoryEntry.entity_id == entity_id,
            )
        )
        return result.scalar_one() + 1

    async def _insert(self, payload: dict) -> HistoryEntry:
        entity_type = AuditableEntity(payload["entity_type"])
        entry = HistoryEntry(
            entity_type=entity_type,
            entity_id=payload["entity_id"],
            sequence=await self._next_sequence(entity_type, payload["entity_id"]),
            action=payload["action"],
            actor_id=payload["actor_id"],
            actor_name=payload["actor_name"],
            details=payload["details"],
            timestamp=payload["timestamp"],
        )
        self.db.add(entry)
        await self.db.commit()
        return entry

    async def append(
        self,
        entity_type: AuditableEntity,
        entity_id: UUID,
        action,
        actor: Actor,
        details: Optional[str] = None,
    ) -> HistoryEntry:
        payload = {
            "entity_type": entity_type.value,
            "entity_id": entity_id,
            "action": validate_action(entity_type, action),
            "actor_id": actor.id,
            "actor_name": actor.name,
            "details": details,
            "timestamp": utcnow(),
        }
        return await self._insert_with_retry(payload)

    async def _insert_with_retry(self, payload: dict) -> HistoryEntry:
        last_error: Optional[Exception] = None
        for attempt in range(self.retries + 1):
            try:
                return await self._insert(payload)
            except SQLAlchemyError as e:
                await self.db.rollback()
                last_error = e
                logger.warning(
                    f"History append failed for {payload['entity_type']} {payload['entity_id']} "
                    f"(attempt {attempt + 1}/{self.retries + 1}): {e}"
                )
        raise AuditAppendFailed(
            f"Could not append {payload['action']} to {payload['entity_type']} {payload['entity_id']}",
            pending=PendingAppend(kind="history", payload=payload, error=str(last_error)),
        )

    async def record(
        self,
        entity_type: AuditableEntity,
        entity_id: UUID,
        action,
        actor: Actor,
        details: Optional[str] = None,
    ) -> Optional[HistoryEntry]:
        """``append`` for use after an entity write has committed.

        A failed append is logged and queued for reconciliation; the
        committed entity write stands.
        """
        try:
            return await self.append(entity_type, entity_id, action, actor, details)
        except AuditAppendFailed as e:
            logger.warning(f"Audit append failed, entity write kept: {e.detail}")
            pending_appends.put(e.pending)
            return None

    async def replay(self, pending: PendingAppend) -> HistoryEntry:
        """Insert a previously queued entry, keeping its original timestamp."""
        return await self._insert_with_retry(pending.payload)

    async def entries(self, entity_type: AuditableEntity, entity_id: UUID) -> List[HistoryEntry]:
        result = await self.db.execute(
            select(HistoryEntry)
            .where(HistoryEntry.entity_type == entity_type, HistoryEntry.entity_id == entity_id)
            .order_by(HistoryEntry.sequence)
        )
        return list(result.scalars().all())

    async def purge(self, entity_type: AuditableEntity, entity_id: UUID) -> None:
        """Cascade step for entity deletion. Does not commit."""
        await self.db.execute(
            delete(HistoryEntry).where(
                HistoryEntry.entity_type == entity_type,
                HistoryEntry.entity_id == entity_id,
            )
        )
