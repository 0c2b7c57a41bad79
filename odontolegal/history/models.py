from enum import Enum
from typing import Dict, Type
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy import Enum as SAEnum
from odontolegal.database import Base
from odontolegal.shared.models import UUIDMixin, utcnow


class AuditableEntity(str, Enum):
    CASE = "case"
    EVIDENCE = "evidence"
    REPORT = "report"
    DENTAL_RECORD = "dental_record"


class CaseAction(str, Enum):
    CREATION = "creation"
    EDIT = "edit"
    VIEW = "view"
    STATUS_CHANGED = "status_changed"
    ATTACHMENT_ADDED = "attachment_added"


class EvidenceAction(str, Enum):
    CREATION = "creation"
    EDIT = "edit"
    VIEW = "view"


class ReportAction(str, Enum):
    CREATION = "creation"
    EDIT = "edit"
    VIEW = "view"
    REVIEW = "review"
    FINALIZATION = "finalization"


class DentalRecordAction(str, Enum):
    CREATION = "creation"
    EDIT = "edit"
    VIEW = "view"
    IDENTIFICATION = "identification"
    COMPARISON = "comparison"


# Closed action vocabulary per entity
ACTIONS: Dict[AuditableEntity, Type[Enum]] = {
    AuditableEntity.CASE: CaseAction,
    AuditableEntity.EVIDENCE: EvidenceAction,
    AuditableEntity.REPORT: ReportAction,
    AuditableEntity.DENTAL_RECORD: DentalRecordAction,
}


class HistoryEntry(Base, UUIDMixin):
    """One immutable line of an entity's provenance trail."""
    __tablename__ = "history_entries"
    __table_args__ = (
        UniqueConstraint("entity_type", "entity_id", "sequence", name="uq_history_entity_sequence"),
    )

    entity_type = Column(SAEnum(AuditableEntity), nullable=False)
    entity_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    sequence = Column(Integer, nullable=False)
    action = Column(String, nullable=False)
    actor_id = Column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    actor_name = Column(String, nullable=True)
    details = Column(Text, nullable=True)
    timestamp = Column(DateTime, default=utcnow, nullable=False)
