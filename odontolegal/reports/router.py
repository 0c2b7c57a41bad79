import io
from typing import List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from odontolegal.database import get_db
from odontolegal.auth.dependencies import get_current_actor
from odontolegal.auth.schemas import Actor
from odontolegal.history.schemas import HistoryEntryResponse
from odontolegal.reports.models import ReportStatus, ReportTemplate
from odontolegal.reports.schemas import ReportCreate, ReportResponse, ReportUpdate, ReportVersionResponse
from odontolegal.reports.service import ReportService

router = APIRouter(prefix="/reports", tags=["reports"])

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


@router.post("", response_model=ReportResponse, status_code=201)
async def create_report(
    report_in: ReportCreate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await ReportService(db).create_report(report_in, actor)


@router.get("", response_model=List[ReportResponse])
async def list_reports(
    case_id: Optional[UUID] = None,
    status: Optional[ReportStatus] = None,
    template: Optional[ReportTemplate] = None,
    sort: Optional[str] = None,
    skip: int = 0,
    limit: int = 10,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await ReportService(db).list_reports(case_id, status, template, sort, skip, limit)


@router.get("/{report_id}", response_model=ReportResponse)
async def get_report(
    report_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await ReportService(db).get_report(report_id, actor)


@router.patch("/{report_id}", response_model=ReportResponse)
async def update_report(
    report_id: UUID,
    report_in: ReportUpdate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """
    Edit a report. The pre-edit content is kept as a version snapshot and
    the report version goes up by one. Finalized reports are rejected with 409.
    """
    return await ReportService(db).update_report(report_id, report_in, actor)


@router.post("/{report_id}/review", response_model=ReportResponse)
async def submit_report_for_review(
    report_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await ReportService(db).submit_for_review(report_id, actor)


@router.post("/{report_id}/finalize", response_model=ReportResponse)
async def finalize_report(
    report_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await ReportService(db).finalize_report(report_id, actor)


@router.get("/{report_id}/versions", response_model=List[ReportVersionResponse])
async def list_report_versions(
    report_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await ReportService(db).list_versions(report_id)


@router.get("/{report_id}/export/docx")
async def export_report_docx(
    report_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    docx_bytes, filename = await ReportService(db).export_docx(report_id)
    return StreamingResponse(
        io.BytesIO(docx_bytes),
        media_type=DOCX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/{report_id}/history", response_model=List[HistoryEntryResponse])
async def get_report_history(
    report_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await ReportService(db).get_history(report_id)
