import logging
from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from odontolegal.config import settings
from odontolegal.dental.models import MatchRecord
from odontolegal.dental.schemas import CounterpartType
from odontolegal.history.reconciliation import PendingAppend, pending_appends
from odontolegal.shared.exceptions import AuditAppendFailed, ValidationFailed
from odontolegal.shared.models import utcnow

logger = logging.getLogger(__name__)


class MatchRegistry:
    """Per dental record list of match attempts.

    Every call appends. Re-running a comparison against the same counterpart
    adds another row, so superseded scores stay available for review.
    Rows read back oldest first; ties on ``matched_at`` fall back to a per
    record ``sequence`` allocated like ``HistoryTrail`` trail sequences.
    """

    def __init__(self, db: AsyncSession, retries: int = settings.HISTORY_APPEND_RETRIES):
        self.db = db
        self.retries = retries

    async def _next_sequence(self, dental_record_id: UUID) -> int:
        result = await self.db.execute(
            select(func.coalesce(func.max(MatchRecord.sequence), 0)).where(
                MatchRecord.dental_record_id == dental_record_id
            )
        )
        return result.scalar_one() + 1

    async def _insert(self, payload: dict) -> MatchRecord:
        match = MatchRecord(
            dental_record_id=payload["dental_record_id"],
            sequence=await self._next_sequence(payload["dental_record_id"]),
            counterpart_type=CounterpartType(payload["counterpart_type"]),
            counterpart_id=payload["counterpart_id"],
            score=payload["score"],
            details=list(payload["details"]),
            matched_at=payload["matched_at"],
        )
        self.db.add(match)
        await self.db.commit()
        return match

    async def _insert_with_retry(self, payload: dict) -> MatchRecord:
        last_error: Optional[Exception] = None
        for attempt in range(self.retries + 1):
            try:
                return await self._insert(payload)
            except SQLAlchemyError as e:
                await self.db.rollback()
                last_error = e
                logger.warning(
                    f"Match append failed for dental record {payload['dental_record_id']} "
                    f"(attempt {attempt + 1}/{self.retries + 1}): {e}"
                )
        raise AuditAppendFailed(
            f"Could not register match {payload['dental_record_id']} -> {payload['counterpart_id']}",
            pending=PendingAppend(kind="match", payload=payload, error=str(last_error)),
        )

    async def record(
        self,
        dental_record_id: UUID,
        counterpart_type: CounterpartType,
        counterpart_id: UUID,
        score: float,
        details: Sequence[str],
    ) -> MatchRecord:
        if not 0 <= score <= 100:
            raise ValidationFailed(f"Match score must be within [0, 100], got {score}")

        payload = {
            "dental_record_id": dental_record_id,
            "counterpart_type": CounterpartType(counterpart_type).value,
            "counterpart_id": counterpart_id,
            "score": score,
            "details": list(details),
            "matched_at": utcnow(),
        }
        return await self._insert_with_retry(payload)

    async def record_or_queue(
        self,
        dental_record_id: UUID,
        counterpart_type: CounterpartType,
        counterpart_id: UUID,
        score: float,
        details: Sequence[str],
    ) -> Optional[MatchRecord]:
        try:
            return await self.record(dental_record_id, counterpart_type, counterpart_id, score, details)
        except AuditAppendFailed as e:
            logger.warning(f"Match registry append failed: {e.detail}")
            pending_appends.put(e.pending)
            return None

    async def replay(self, pending: PendingAppend) -> MatchRecord:
        """Insert a queued match, keeping its original ``matched_at``."""
        return await self._insert_with_retry(pending.payload)

    async def matches(self, dental_record_id: UUID) -> List[MatchRecord]:
        result = await self.db.execute(
            select(MatchRecord)
            .where(MatchRecord.dental_record_id == dental_record_id)
            .order_by(MatchRecord.matched_at, MatchRecord.sequence)
        )
        return list(result.scalars().all())
