from enum import Enum
from sqlalchemy import Column, Date, String, Text, ForeignKey, Enum as SAEnum
from sqlalchemy.orm import relationship
from odontolegal.database import Base
from odontolegal.shared.models import AuditMixin, Gender


class CaseType(str, Enum):
    IDENTIFICATION = "identification"
    AGE = "age"
    TRAUMA = "trauma"
    OTHER = "other"


class CaseStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    CLOSED = "closed"
    ARCHIVED = "archived"


class Case(Base, AuditMixin):
    __tablename__ = "cases"

    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    case_type = Column(SAEnum(CaseType), nullable=False)
    status = Column(SAEnum(CaseStatus), default=CaseStatus.PENDING, nullable=False, index=True)

    patient_name = Column(String, nullable=True)
    patient_birth_date = Column(Date, nullable=True)
    patient_gender = Column(SAEnum(Gender), default=Gender.NOT_INFORMED, nullable=False)
    patient_identification = Column(String, nullable=True)

    assigned_to_id = Column(ForeignKey("users.id"), nullable=False, index=True)
    created_by_id = Column(ForeignKey("users.id"), nullable=False)

    assigned_to = relationship("odontolegal.auth.models.User", foreign_keys=[assigned_to_id])
    created_by = relationship("odontolegal.auth.models.User", foreign_keys=[created_by_id])

    evidences = relationship("odontolegal.evidence.models.Evidence", back_populates="case", passive_deletes=True)
    reports = relationship("odontolegal.reports.models.Report", back_populates="case", passive_deletes=True)

    @property
    def patient(self) -> dict:
        return {
            "name": self.patient_name,
            "birth_date": self.patient_birth_date,
            "gender": self.patient_gender,
            "identification": self.patient_identification,
        }
