from typing import List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from odontolegal.database import get_db
from odontolegal.auth.dependencies import get_current_actor
from odontolegal.auth.schemas import Actor
from odontolegal.dental.schemas import (
    CaseMatchCreate,
    CharacteristicSearch,
    ComparisonResponse,
    DentalRecordCreate,
    DentalRecordResponse,
    DentalRecordStatus,
    DentalRecordUpdate,
    IdentifyRequest,
    MatchRecordResponse,
)
from odontolegal.dental.service import DentalRecordService
from odontolegal.history.schemas import HistoryEntryResponse

router = APIRouter(prefix="/dental-records", tags=["dental-records"])


@router.post("", response_model=DentalRecordResponse, status_code=201)
async def create_dental_record(
    record_in: DentalRecordCreate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await DentalRecordService(db).create_record(record_in, actor)


@router.get("", response_model=List[DentalRecordResponse])
async def list_dental_records(
    status: Optional[DentalRecordStatus] = None,
    skip: int = 0,
    limit: int = 10,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await DentalRecordService(db).list_records(status, skip, limit)


@router.get("/search", response_model=List[DentalRecordResponse])
async def search_dental_records(
    query: str = Query(..., min_length=1),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Search by patient name or identification (case-insensitive substring)."""
    return await DentalRecordService(db).search_records(query)


@router.post("/search/characteristics", response_model=List[DentalRecordResponse])
async def search_by_characteristics(
    search: CharacteristicSearch,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await DentalRecordService(db).search_by_characteristics(search)


@router.post("/compare/{record_a_id}/{record_b_id}", response_model=ComparisonResponse)
async def compare_dental_records(
    record_a_id: UUID,
    record_b_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """
    Score two records against each other. Both records get a ``comparison``
    history entry and a match registry entry pointing at the other one.
    """
    return await DentalRecordService(db).compare_records(record_a_id, record_b_id, actor)


@router.get("/{record_id}", response_model=DentalRecordResponse)
async def get_dental_record(
    record_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await DentalRecordService(db).get_record(record_id, actor)


@router.patch("/{record_id}", response_model=DentalRecordResponse)
async def update_dental_record(
    record_id: UUID,
    record_in: DentalRecordUpdate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await DentalRecordService(db).update_record(record_id, record_in, actor)


@router.post("/{record_id}/identify", response_model=DentalRecordResponse)
async def identify_dental_record(
    record_id: UUID,
    identify_in: IdentifyRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await DentalRecordService(db).identify_record(record_id, identify_in, actor)


@router.get("/{record_id}/matches", response_model=List[MatchRecordResponse])
async def list_dental_record_matches(
    record_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await DentalRecordService(db).list_matches(record_id)


@router.post("/{record_id}/case-matches", response_model=MatchRecordResponse, status_code=201)
async def register_case_match(
    record_id: UUID,
    match_in: CaseMatchCreate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await DentalRecordService(db).register_case_match(record_id, match_in, actor)


@router.get("/{record_id}/history", response_model=List[HistoryEntryResponse])
async def get_dental_record_history(
    record_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await DentalRecordService(db).get_history(record_id)
