from enum import Enum
from sqlalchemy import Column, Date, String, Text, ForeignKey, Enum as SAEnum
from sqlalchemy.orm import relationship
from odontolegal.database import Base
from odontolegal.shared.models import AuditMixin, JSONType


class EvidenceType(str, Enum):
    IMAGE = "image"
    DOCUMENT = "document"
    STATEMENT = "statement"
    OTHER = "other"


class EvidenceCategory(str, Enum):
    RADIOGRAPH = "radiograph"
    PHOTOGRAPH = "photograph"
    PRIOR_REPORT = "prior_report"
    TESTIMONY = "testimony"
    OTHER = "other"


class Evidence(Base, AuditMixin):
    """File-backed artifact attached to a case."""
    __tablename__ = "evidences"

    case_id = Column(ForeignKey("cases.id", ondelete="CASCADE"), nullable=False, index=True)
    evidence_type = Column(SAEnum(EvidenceType), nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    category = Column(SAEnum(EvidenceCategory), nullable=False)

    # List of FileReference dicts; bytes live in storage, never in the row
    files = Column(JSONType, nullable=False, default=list)

    collected_on = Column(Date, nullable=True)
    location = Column(String, nullable=True)
    equipment = Column(String, nullable=True)
    additional_info = Column(JSONType, nullable=True)

    created_by_id = Column(ForeignKey("users.id"), nullable=False)

    case = relationship("odontolegal.cases.models.Case", back_populates="evidences")
    created_by = relationship("odontolegal.auth.models.User")

    @property
    def metadata_info(self) -> dict:
        return {
            "date": self.collected_on,
            "location": self.location,
            "equipment": self.equipment,
            "additional_info": self.additional_info,
        }
