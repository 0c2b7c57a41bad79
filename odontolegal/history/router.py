from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from odontolegal.auth.dependencies import RequireRole
from odontolegal.auth.models import UserRole
from odontolegal.auth.schemas import Actor
from odontolegal.database import get_db
from odontolegal.history.reconciliation import pending_appends
from odontolegal.history.replay import replay_pending
from odontolegal.history.schemas import ReconciliationResult

router = APIRouter(prefix="/history", tags=["history"])


@router.get("/pending", response_model=ReconciliationResult)
async def pending_count(actor: Actor = Depends(RequireRole(UserRole.ADMIN))):
    return ReconciliationResult(replayed=0, remaining=len(pending_appends))


@router.post("/reconcile", response_model=ReconciliationResult)
async def reconcile(
    actor: Actor = Depends(RequireRole(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    """Replay trail and match-registry appends that failed after their entity write committed."""
    return await replay_pending(db)
