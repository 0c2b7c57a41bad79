from datetime import datetime
from uuid import UUID
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from odontolegal.cases.models import CaseStatus, CaseType
from odontolegal.dental.schemas import PatientInfo

class CaseBase(BaseModel):
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    case_type: CaseType
    patient: PatientInfo = Field(default_factory=PatientInfo)

class CaseCreate(CaseBase):
    assigned_to_id: UUID

class CaseUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = Field(default=None, min_length=1)
    case_type: Optional[CaseType] = None
    patient: Optional[PatientInfo] = None
    assigned_to_id: Optional[UUID] = None

class CaseStatusUpdate(BaseModel):
    status: CaseStatus

class CaseResponse(CaseBase):
    id: UUID
    status: CaseStatus
    assigned_to_id: UUID
    created_by_id: UUID
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
