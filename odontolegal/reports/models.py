from enum import Enum
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import relationship
from odontolegal.database import Base
from odontolegal.shared.models import AuditMixin, InsertOnlyMixin, JSONType, utcnow


class ReportTemplate(str, Enum):
    IDENTIFICATION = "identification"
    AGE = "age"
    TRAUMA = "trauma"
    GENERAL = "general"


class ReportStatus(str, Enum):
    DRAFT = "draft"
    REVIEW = "review"
    FINALIZED = "finalized"


class Report(Base, AuditMixin):
    __tablename__ = "reports"

    case_id = Column(ForeignKey("cases.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String, nullable=False)
    template = Column(SAEnum(ReportTemplate), nullable=False)
    # {introduction, methodology, analysis, conclusion, references}
    content = Column(JSONType, nullable=False)
    attachments = Column(JSONType, nullable=False, default=list)
    status = Column(SAEnum(ReportStatus), default=ReportStatus.DRAFT, nullable=False)
    version = Column(Integer, default=1, nullable=False)

    created_by_id = Column(ForeignKey("users.id"), nullable=False)
    reviewed_by_id = Column(ForeignKey("users.id"), nullable=True)
    review_date = Column(DateTime, nullable=True)

    case = relationship("odontolegal.cases.models.Case", back_populates="reports")
    created_by = relationship("odontolegal.auth.models.User", foreign_keys=[created_by_id])
    reviewed_by = relationship("odontolegal.auth.models.User", foreign_keys=[reviewed_by_id])
    previous_versions = relationship(
        "ReportVersion",
        back_populates="report",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ReportVersion.version",
    )


class ReportVersion(Base, InsertOnlyMixin):
    """Snapshot of a report's content as it was before an edit."""
    __tablename__ = "report_versions"
    __table_args__ = (
        UniqueConstraint("report_id", "version", name="uq_report_versions_report_version"),
    )

    report_id = Column(ForeignKey("reports.id", ondelete="CASCADE"), nullable=False, index=True)
    version = Column(Integer, nullable=False)
    content = Column(JSONType, nullable=False)
    modified_by_id = Column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    modified_at = Column(DateTime, default=utcnow, nullable=False)
    comments = Column(Text, nullable=True)

    report = relationship("Report", back_populates="previous_versions")
