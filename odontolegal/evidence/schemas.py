from datetime import date as date_type, datetime
from uuid import UUID
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field

from odontolegal.evidence.models import EvidenceCategory, EvidenceType


class FileReference(BaseModel):
    filename: str
    original_name: str
    storage_path: str
    mime_type: str
    size_bytes: int
    uploaded_at: datetime


class EvidenceMetadata(BaseModel):
    date: Optional[date_type] = None
    location: Optional[str] = None
    equipment: Optional[str] = None
    additional_info: Optional[Dict[str, Any]] = None


class EvidenceCreate(BaseModel):
    case_id: UUID
    evidence_type: EvidenceType
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    category: EvidenceCategory
    metadata: EvidenceMetadata = Field(default_factory=EvidenceMetadata)


class EvidenceUpdate(BaseModel):
    evidence_type: Optional[EvidenceType] = None
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = Field(default=None, min_length=1)
    category: Optional[EvidenceCategory] = None
    metadata: Optional[EvidenceMetadata] = None


class EvidenceResponse(BaseModel):
    id: UUID
    case_id: UUID
    evidence_type: EvidenceType
    title: str
    description: str
    category: EvidenceCategory
    files: List[FileReference] = []
    metadata: EvidenceMetadata = Field(validation_alias="metadata_info")
    created_by_id: UUID
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
