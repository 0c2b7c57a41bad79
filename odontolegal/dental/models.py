from sqlalchemy import Column, Date, DateTime, Float, ForeignKey, Integer, String, UniqueConstraint, Uuid
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import relationship
from odontolegal.database import Base
from odontolegal.dental.schemas import CounterpartType, DentalRecordStatus
from odontolegal.shared.models import AuditMixin, Gender, InsertOnlyMixin, JSONType, utcnow


class DentalRecord(Base, AuditMixin):
    """Dental characteristics of a person, identified or not."""
    __tablename__ = "dental_records"

    patient_name = Column(String, nullable=True, index=True)
    patient_birth_date = Column(Date, nullable=True)
    patient_gender = Column(SAEnum(Gender), default=Gender.NOT_INFORMED, nullable=False)
    patient_identification = Column(String, unique=True, nullable=True)

    status = Column(SAEnum(DentalRecordStatus), default=DentalRecordStatus.UNDER_ANALYSIS, nullable=False, index=True)
    # CharacteristicSet.model_dump(mode="json")
    characteristics = Column(JSONType, nullable=False, default=dict)
    radiograph_ids = Column(JSONType, nullable=False, default=list)
    photograph_ids = Column(JSONType, nullable=False, default=list)

    created_by_id = Column(ForeignKey("users.id"), nullable=False)

    created_by = relationship("odontolegal.auth.models.User")
    matches = relationship(
        "MatchRecord",
        back_populates="dental_record",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by=lambda: (MatchRecord.matched_at, MatchRecord.sequence),
    )

    @property
    def patient(self) -> dict:
        return {
            "name": self.patient_name,
            "birth_date": self.patient_birth_date,
            "gender": self.patient_gender,
            "identification": self.patient_identification,
        }


class MatchRecord(Base, InsertOnlyMixin):
    """One comparison outcome kept in a dental record's match registry."""
    __tablename__ = "match_records"
    __table_args__ = (
        UniqueConstraint("dental_record_id", "sequence", name="uq_match_record_sequence"),
    )

    dental_record_id = Column(ForeignKey("dental_records.id", ondelete="CASCADE"), nullable=False, index=True)
    sequence = Column(Integer, nullable=False)
    counterpart_type = Column(SAEnum(CounterpartType), nullable=False)
    counterpart_id = Column(Uuid(as_uuid=True), nullable=False)
    score = Column(Float, nullable=False)
    details = Column(JSONType, nullable=False, default=list)
    matched_at = Column(DateTime, default=utcnow, nullable=False)

    dental_record = relationship("DentalRecord", back_populates="matches")
