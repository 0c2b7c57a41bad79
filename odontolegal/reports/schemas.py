from datetime import datetime
from uuid import UUID
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from odontolegal.reports.models import ReportStatus, ReportTemplate


class ReportContent(BaseModel):
    introduction: str = Field(min_length=1)
    methodology: str = Field(min_length=1)
    analysis: str = Field(min_length=1)
    conclusion: str = Field(min_length=1)
    references: List[str] = []


class ReportAttachment(BaseModel):
    evidence_id: UUID
    description: Optional[str] = None
    page: Optional[int] = Field(default=None, ge=1)


class ReportCreate(BaseModel):
    case_id: UUID
    title: str = Field(min_length=1)
    template: ReportTemplate
    content: ReportContent
    attachments: List[ReportAttachment] = []


class ReportUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    template: Optional[ReportTemplate] = None
    content: Optional[ReportContent] = None
    attachments: Optional[List[ReportAttachment]] = None
    version_comments: Optional[str] = None


class ReportResponse(BaseModel):
    id: UUID
    case_id: UUID
    title: str
    template: ReportTemplate
    content: ReportContent
    attachments: List[ReportAttachment] = []
    status: ReportStatus
    version: int
    created_by_id: UUID
    reviewed_by_id: Optional[UUID] = None
    review_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ReportVersionResponse(BaseModel):
    report_id: UUID
    version: int
    content: ReportContent
    modified_by_id: Optional[UUID] = None
    modified_at: datetime
    comments: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
