from datetime import datetime
from typing import List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession
from odontolegal.database import get_db
from odontolegal.auth.dependencies import get_current_actor
from odontolegal.auth.schemas import Actor
from odontolegal.cases.models import CaseStatus, CaseType
from odontolegal.cases.schemas import CaseCreate, CaseResponse, CaseStatusUpdate, CaseUpdate
from odontolegal.cases.service import CaseService
from odontolegal.evidence.schemas import EvidenceResponse
from odontolegal.evidence.service import EvidenceService
from odontolegal.history.schemas import HistoryEntryResponse

router = APIRouter(prefix="/cases", tags=["cases"])


@router.post("", response_model=CaseResponse, status_code=201)
async def create_case(
    case_in: CaseCreate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await CaseService(db).create_case(case_in, actor)


@router.get("", response_model=List[CaseResponse])
async def list_cases(
    status: Optional[CaseStatus] = None,
    case_type: Optional[CaseType] = None,
    assigned_to_id: Optional[UUID] = None,
    sort: Optional[str] = None,
    skip: int = 0,
    limit: int = 10,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await CaseService(db).list_cases(status, case_type, assigned_to_id, sort, skip, limit)


@router.get("/search", response_model=List[CaseResponse])
async def search_cases(
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    status: Optional[CaseStatus] = None,
    case_type: Optional[CaseType] = None,
    assigned_to_id: Optional[UUID] = None,
    term: Optional[str] = None,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await CaseService(db).search_cases(start_date, end_date, status, case_type, assigned_to_id, term)


@router.get("/{case_id}", response_model=CaseResponse)
async def get_case(
    case_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Returns the case and records the view on its history."""
    return await CaseService(db).get_case(case_id, actor)


@router.patch("/{case_id}", response_model=CaseResponse)
async def update_case(
    case_id: UUID,
    case_in: CaseUpdate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await CaseService(db).update_case(case_id, case_in, actor)


@router.patch("/{case_id}/status", response_model=CaseResponse)
async def update_case_status(
    case_id: UUID,
    status_in: CaseStatusUpdate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await CaseService(db).update_status(case_id, status_in.status, actor)


@router.delete("/{case_id}", status_code=204)
async def delete_case(
    case_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    await CaseService(db).delete_case(case_id, actor)
    return Response(status_code=204)


@router.get("/{case_id}/evidences", response_model=List[EvidenceResponse])
async def list_case_evidences(
    case_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await EvidenceService(db).list_by_case(case_id)


@router.get("/{case_id}/history", response_model=List[HistoryEntryResponse])
async def get_case_history(
    case_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await CaseService(db).get_history(case_id)
