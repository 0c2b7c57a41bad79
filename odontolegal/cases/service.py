import logging
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from odontolegal.auth import policy
from odontolegal.auth.models import User
from odontolegal.auth.schemas import Actor
from odontolegal.cases.models import Case, CaseStatus, CaseType
from odontolegal.cases.schemas import CaseCreate, CaseResponse, CaseUpdate
from odontolegal.dental.schemas import PatientInfo
from odontolegal.evidence.models import Evidence
from odontolegal.history.models import AuditableEntity, CaseAction, HistoryEntry
from odontolegal.history.service import HistoryTrail
from odontolegal.reports.models import Report, ReportVersion
from odontolegal.shared.exceptions import NotFound, ValidationFailed
from odontolegal.shared.query import apply_sort

logger = logging.getLogger(__name__)

ENTITY = AuditableEntity.CASE
SORTABLE = ("created_at", "updated_at", "title", "status", "case_type")


def _apply_patient(case: Case, patient: PatientInfo) -> None:
    case.patient_name = patient.name
    case.patient_birth_date = patient.birth_date
    case.patient_gender = patient.gender
    case.patient_identification = patient.identification


class CaseService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.trail = HistoryTrail(db)

    async def _load(self, case_id: UUID) -> Case:
        case = await self.db.get(Case, case_id)
        if not case:
            raise NotFound("Case not found")
        return case

    async def _ensure_user(self, user_id: UUID) -> None:
        if not await self.db.get(User, user_id):
            raise ValidationFailed("Assigned user does not exist")

    async def _commit(self, case: Case) -> CaseResponse:
        await self.db.commit()
        await self.db.refresh(case)
        return CaseResponse.model_validate(case)

    async def create_case(self, case_in: CaseCreate, actor: Actor) -> CaseResponse:
        await self._ensure_user(case_in.assigned_to_id)
        case = Case(
            title=case_in.title,
            description=case_in.description,
            case_type=case_in.case_type,
            status=CaseStatus.PENDING,
            assigned_to_id=case_in.assigned_to_id,
            created_by_id=actor.id,
        )
        _apply_patient(case, case_in.patient)
        self.db.add(case)
        response = await self._commit(case)

        await self.trail.record(ENTITY, case.id, CaseAction.CREATION, actor, f"Case created by {actor.name}")
        return response

    async def list_cases(
        self,
        status: Optional[CaseStatus] = None,
        case_type: Optional[CaseType] = None,
        assigned_to_id: Optional[UUID] = None,
        sort: Optional[str] = None,
        skip: int = 0,
        limit: int = 10,
    ) -> List[Case]:
        query = select(Case)
        if status:
            query = query.where(Case.status == status)
        if case_type:
            query = query.where(Case.case_type == case_type)
        if assigned_to_id:
            query = query.where(Case.assigned_to_id == assigned_to_id)
        query = apply_sort(query, Case, sort, SORTABLE)
        result = await self.db.execute(query.offset(skip).limit(limit))
        return list(result.scalars().all())

    async def search_cases(
        self,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        status: Optional[CaseStatus] = None,
        case_type: Optional[CaseType] = None,
        assigned_to_id: Optional[UUID] = None,
        term: Optional[str] = None,
    ) -> List[Case]:
        query = select(Case)
        # Date range only applies when both ends are given
        if start_date and end_date:
            query = query.where(Case.created_at >= start_date, Case.created_at <= end_date)
        if status:
            query = query.where(Case.status == status)
        if case_type:
            query = query.where(Case.case_type == case_type)
        if assigned_to_id:
            query = query.where(Case.assigned_to_id == assigned_to_id)
        if term:
            pattern = f"%{term}%"
            query = query.where(or_(Case.title.ilike(pattern), Case.description.ilike(pattern)))
        result = await self.db.execute(query.order_by(Case.created_at.desc()))
        return list(result.scalars().all())

    async def get_case(self, case_id: UUID, actor: Actor) -> CaseResponse:
        """Fetch one case. Logs a ``view`` entry on the case trail before returning."""
        case = await self._load(case_id)
        response = CaseResponse.model_validate(case)
        await self.trail.record(ENTITY, case.id, CaseAction.VIEW, actor, f"Case viewed by {actor.name}")
        return response

    async def update_case(self, case_id: UUID, case_in: CaseUpdate, actor: Actor) -> CaseResponse:
        case = await self._load(case_id)
        policy.authorize(policy.case_editor, actor, case, "You do not have permission to edit this case")

        update_data = case_in.model_dump(exclude_unset=True, exclude={"patient"})
        if update_data.get("assigned_to_id"):
            await self._ensure_user(update_data["assigned_to_id"])
        for field, value in update_data.items():
            if value is not None:
                setattr(case, field, value)
        if case_in.patient is not None:
            _apply_patient(case, case_in.patient)
        response = await self._commit(case)

        await self.trail.record(ENTITY, case.id, CaseAction.EDIT, actor, f"Case edited by {actor.name}")
        return response

    async def update_status(self, case_id: UUID, new_status: CaseStatus, actor: Actor) -> CaseResponse:
        case = await self._load(case_id)
        policy.authorize(policy.case_editor, actor, case, "You do not have permission to change this case")

        case.status = new_status
        response = await self._commit(case)

        await self.trail.record(
            ENTITY, case.id, CaseAction.STATUS_CHANGED, actor,
            f"Status changed to {new_status.value} by {actor.name}",
        )
        return response

    async def note_attachment(self, case_id: UUID, actor: Actor, details: str) -> None:
        """Record on the case trail that evidence or a report was attached to it."""
        await self.trail.record(ENTITY, case_id, CaseAction.ATTACHMENT_ADDED, actor, details)

    async def delete_case(self, case_id: UUID, actor: Actor) -> None:
        """Delete a case with its evidence, reports, report versions and all their trails."""
        case = await self._load(case_id)
        policy.authorize(policy.owner_or_admin, actor, case, "You do not have permission to delete this case")

        evidence_ids = (await self.db.execute(
            select(Evidence.id).where(Evidence.case_id == case_id)
        )).scalars().all()
        report_ids = (await self.db.execute(
            select(Report.id).where(Report.case_id == case_id)
        )).scalars().all()

        for evidence_id in evidence_ids:
            await self.trail.purge(AuditableEntity.EVIDENCE, evidence_id)
        for report_id in report_ids:
            await self.trail.purge(AuditableEntity.REPORT, report_id)
        await self.trail.purge(ENTITY, case_id)

        if report_ids:
            await self.db.execute(delete(ReportVersion).where(ReportVersion.report_id.in_(report_ids)))
        await self.db.execute(delete(Report).where(Report.case_id == case_id))
        await self.db.execute(delete(Evidence).where(Evidence.case_id == case_id))
        await self.db.delete(case)
        await self.db.commit()
        logger.info(
            f"Case {case_id} deleted by {actor.id} with {len(evidence_ids)} evidence and {len(report_ids)} reports"
        )

    async def get_history(self, case_id: UUID) -> List[HistoryEntry]:
        await self._load(case_id)
        return await self.trail.entries(ENTITY, case_id)
