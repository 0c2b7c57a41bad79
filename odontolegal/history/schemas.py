from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from odontolegal.history.models import AuditableEntity


class HistoryEntryResponse(BaseModel):
    entity_type: AuditableEntity
    entity_id: UUID
    sequence: int
    action: str
    actor_id: Optional[UUID] = None
    actor_name: Optional[str] = None
    details: Optional[str] = None
    timestamp: datetime

    model_config = ConfigDict(from_attributes=True)


class ReconciliationResult(BaseModel):
    replayed: int
    remaining: int
