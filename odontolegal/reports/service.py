import logging
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from odontolegal.auth import policy
from odontolegal.auth.models import User
from odontolegal.auth.schemas import Actor
from odontolegal.cases.models import Case
from odontolegal.cases.service import CaseService
from odontolegal.history.models import AuditableEntity, HistoryEntry, ReportAction
from odontolegal.history.service import HistoryTrail
from odontolegal.reports.export import ReportRenderer
from odontolegal.reports.models import Report, ReportStatus, ReportTemplate, ReportVersion
from odontolegal.reports.schemas import ReportCreate, ReportResponse, ReportUpdate
from odontolegal.reports.versioning import VersionChain, ensure_editable
from odontolegal.shared.exceptions import InvalidState, NotFound
from odontolegal.shared.models import utcnow
from odontolegal.shared.query import apply_sort

logger = logging.getLogger(__name__)

ENTITY = AuditableEntity.REPORT
SORTABLE = ("created_at", "updated_at", "title", "status", "version")


class ReportService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.trail = HistoryTrail(db)
        self.chain = VersionChain(db)

    async def _load(self, report_id: UUID) -> Report:
        report = await self.db.get(Report, report_id)
        if not report:
            raise NotFound("Report not found")
        return report

    async def create_report(self, report_in: ReportCreate, actor: Actor) -> ReportResponse:
        if not await self.db.get(Case, report_in.case_id):
            raise NotFound("Case not found")

        report = Report(
            case_id=report_in.case_id,
            title=report_in.title,
            template=report_in.template,
            content=report_in.content.model_dump(mode="json"),
            attachments=[a.model_dump(mode="json") for a in report_in.attachments],
            status=ReportStatus.DRAFT,
            version=1,
            created_by_id=actor.id,
        )
        self.db.add(report)
        await self.db.commit()
        await self.db.refresh(report)
        response = ReportResponse.model_validate(report)

        await self.trail.record(ENTITY, report.id, ReportAction.CREATION, actor,
                                f"Report created by {actor.name}")
        await CaseService(self.db).note_attachment(
            report_in.case_id, actor, f'Report "{report_in.title}" created by {actor.name}'
        )
        return response

    async def list_reports(
        self,
        case_id: Optional[UUID] = None,
        status: Optional[ReportStatus] = None,
        template: Optional[ReportTemplate] = None,
        sort: Optional[str] = None,
        skip: int = 0,
        limit: int = 10,
    ) -> List[Report]:
        query = select(Report)
        if case_id:
            query = query.where(Report.case_id == case_id)
        if status:
            query = query.where(Report.status == status)
        if template:
            query = query.where(Report.template == template)
        query = apply_sort(query, Report, sort, SORTABLE)
        result = await self.db.execute(query.offset(skip).limit(limit))
        return list(result.scalars().all())

    async def get_report(self, report_id: UUID, actor: Actor) -> ReportResponse:
        """Fetch one report. Logs a ``view`` entry on the report trail before returning."""
        report = await self._load(report_id)
        response = ReportResponse.model_validate(report)
        await self.trail.record(ENTITY, report.id, ReportAction.VIEW, actor,
                                f"Report viewed by {actor.name}")
        return response

    async def update_report(self, report_id: UUID, report_in: ReportUpdate, actor: Actor) -> ReportResponse:
        report = await self._load(report_id)
        policy.authorize(policy.owner_admin_or_expert, actor, report,
                         "You do not have permission to edit this report")
        snapshot = self.chain.begin_edit(report)

        changes = {}
        if report_in.title is not None:
            changes["title"] = report_in.title
        if report_in.template is not None:
            changes["template"] = report_in.template
        if report_in.attachments is not None:
            changes["attachments"] = [a.model_dump(mode="json") for a in report_in.attachments]
        new_content = (
            report_in.content.model_dump(mode="json") if report_in.content is not None else snapshot.content
        )

        report = await self.chain.commit_edit(
            report, new_content, actor, report_in.version_comments, snapshot=snapshot, **changes
        )
        response = ReportResponse.model_validate(report)

        await self.trail.record(ENTITY, report.id, ReportAction.EDIT, actor,
                                f"Report edited by {actor.name} (version {report.version})")
        return response

    async def submit_for_review(self, report_id: UUID, actor: Actor) -> ReportResponse:
        report = await self._load(report_id)
        policy.authorize(policy.owner_admin_or_expert, actor, report,
                         "You do not have permission to submit this report for review")
        ensure_editable(report)
        if report.status == ReportStatus.REVIEW:
            raise InvalidState("This report is already under review")

        report.status = ReportStatus.REVIEW
        await self.db.commit()
        await self.db.refresh(report)
        response = ReportResponse.model_validate(report)

        await self.trail.record(ENTITY, report.id, ReportAction.REVIEW, actor,
                                f"Report submitted for review by {actor.name}")
        return response

    async def finalize_report(self, report_id: UUID, actor: Actor) -> ReportResponse:
        report = await self._load(report_id)
        if report.status == ReportStatus.FINALIZED:
            raise InvalidState("This report is already finalized")
        policy.authorize(policy.is_expert_or_admin, actor, report,
                         "You do not have permission to finalize this report")

        report.status = ReportStatus.FINALIZED
        report.reviewed_by_id = actor.id
        report.review_date = utcnow()
        await self.db.commit()
        await self.db.refresh(report)
        response = ReportResponse.model_validate(report)

        await self.trail.record(ENTITY, report.id, ReportAction.FINALIZATION, actor,
                                f"Report finalized by {actor.name}")
        return response

    async def list_versions(self, report_id: UUID) -> List[ReportVersion]:
        await self._load(report_id)
        return await self.chain.versions(report_id)

    async def export_docx(self, report_id: UUID) -> Tuple[bytes, str]:
        report = await self._load(report_id)
        if report.status != ReportStatus.FINALIZED:
            raise InvalidState("Only finalized reports can be exported")

        case = await self.db.get(Case, report.case_id)
        author = await self.db.get(User, report.created_by_id)
        reviewer = await self.db.get(User, report.reviewed_by_id) if report.reviewed_by_id else None

        docx_bytes = ReportRenderer().render(
            report, case, author.full_name if author else "", reviewer.full_name if reviewer else None
        )
        logger.info(f"Report {report.id} exported to DOCX ({len(docx_bytes)} bytes)")
        return docx_bytes, f"report_{report.id}_v{report.version}.docx"

    async def get_history(self, report_id: UUID) -> List[HistoryEntry]:
        await self._load(report_id)
        return await self.trail.entries(ENTITY, report_id)
