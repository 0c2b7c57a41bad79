import logging

from sqlalchemy.ext.asyncio import AsyncSession

from odontolegal.dental.registry import MatchRegistry
from odontolegal.history.reconciliation import PendingAppendQueue, pending_appends
from odontolegal.history.schemas import ReconciliationResult
from odontolegal.history.service import HistoryTrail
from odontolegal.shared.exceptions import AuditAppendFailed

logger = logging.getLogger(__name__)


async def replay_pending(db: AsyncSession, queue: PendingAppendQueue = pending_appends) -> ReconciliationResult:
    """Retry every queued trail/registry append once. Failures go back on the queue."""
    trail = HistoryTrail(db)
    registry = MatchRegistry(db)
    replayed = 0
    for item in queue.drain():
        item.attempts += 1
        try:
            if item.kind == "history":
                await trail.replay(item)
            else:
                await registry.replay(item)
            replayed += 1
        except AuditAppendFailed as e:
            item.error = e.detail
            queue.put(item)
    logger.info(f"Reconciliation replayed {replayed} appends, {len(queue)} still pending")
    return ReconciliationResult(replayed=replayed, remaining=len(queue))
