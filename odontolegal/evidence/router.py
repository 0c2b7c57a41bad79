from typing import List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, File, Form, Response, UploadFile
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from odontolegal.database import get_db
from odontolegal.auth.dependencies import get_current_actor
from odontolegal.auth.schemas import Actor
from odontolegal.evidence.models import EvidenceCategory, EvidenceType
from odontolegal.evidence.schemas import EvidenceCreate, EvidenceMetadata, EvidenceResponse, EvidenceUpdate
from odontolegal.evidence.service import EvidenceService
from odontolegal.evidence.storage import LocalFileStorage, get_storage
from odontolegal.history.schemas import HistoryEntryResponse
from odontolegal.shared.exceptions import NotFound, ValidationFailed

router = APIRouter(prefix="/evidences", tags=["evidences"])


def _validate(schema, **fields):
    try:
        return schema.model_validate(fields)
    except ValidationError as e:
        error = e.errors()[0]
        field = ".".join(str(part) for part in error["loc"])
        raise ValidationFailed(f"Invalid {field}: {error['msg']}")


def _parse_metadata(raw: Optional[str]) -> Optional[EvidenceMetadata]:
    if not raw:
        return None
    try:
        return EvidenceMetadata.model_validate_json(raw)
    except ValidationError as e:
        raise ValidationFailed(f"Invalid evidence metadata: {e.errors()[0]['msg']}")


@router.post("", response_model=EvidenceResponse, status_code=201)
async def create_evidence(
    case_id: UUID = Form(...),
    evidence_type: EvidenceType = Form(...),
    title: str = Form(...),
    description: str = Form(...),
    category: EvidenceCategory = Form(...),
    metadata: Optional[str] = Form(None),
    files: List[UploadFile] = File(default=[]),
    actor: Actor = Depends(get_current_actor),
    storage: LocalFileStorage = Depends(get_storage),
    db: AsyncSession = Depends(get_db),
):
    """Create an evidence item with its uploaded files (multipart form)."""
    evidence_in = _validate(
        EvidenceCreate,
        case_id=case_id,
        evidence_type=evidence_type,
        title=title,
        description=description,
        category=category,
        metadata=_parse_metadata(metadata) or EvidenceMetadata(),
    )
    service = EvidenceService(db)
    await service.ensure_case(evidence_in.case_id)
    stored = await storage.save_all(files)
    try:
        return await service.create_evidence(evidence_in, stored, actor)
    except (NotFound, SQLAlchemyError):
        await storage.discard(stored)
        raise


@router.get("", response_model=List[EvidenceResponse])
async def list_evidences(
    case_id: Optional[UUID] = None,
    evidence_type: Optional[EvidenceType] = None,
    category: Optional[EvidenceCategory] = None,
    sort: Optional[str] = None,
    skip: int = 0,
    limit: int = 10,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await EvidenceService(db).list_evidences(case_id, evidence_type, category, sort, skip, limit)


@router.get("/{evidence_id}", response_model=EvidenceResponse)
async def get_evidence(
    evidence_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await EvidenceService(db).get_evidence(evidence_id, actor)


@router.patch("/{evidence_id}", response_model=EvidenceResponse)
async def update_evidence(
    evidence_id: UUID,
    evidence_type: Optional[EvidenceType] = Form(None),
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    category: Optional[EvidenceCategory] = Form(None),
    metadata: Optional[str] = Form(None),
    files: List[UploadFile] = File(default=[]),
    actor: Actor = Depends(get_current_actor),
    storage: LocalFileStorage = Depends(get_storage),
    db: AsyncSession = Depends(get_db),
):
    """Update evidence fields; any uploaded files are appended to the existing ones."""
    evidence_in = _validate(
        EvidenceUpdate,
        evidence_type=evidence_type,
        title=title,
        description=description,
        category=category,
        metadata=_parse_metadata(metadata),
    )
    service = EvidenceService(db)
    # Permission check happens before any bytes are written
    await service.check_can_modify(evidence_id, actor)
    stored = await storage.save_all(files)
    try:
        return await service.update_evidence(evidence_id, evidence_in, stored, actor)
    except (NotFound, SQLAlchemyError):
        await storage.discard(stored)
        raise


@router.delete("/{evidence_id}", status_code=204)
async def delete_evidence(
    evidence_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    await EvidenceService(db).delete_evidence(evidence_id, actor)
    return Response(status_code=204)


@router.get("/{evidence_id}/history", response_model=List[HistoryEntryResponse])
async def get_evidence_history(
    evidence_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await EvidenceService(db).get_history(evidence_id)
