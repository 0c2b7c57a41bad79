from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from odontolegal.auth import policy
from odontolegal.auth.schemas import Actor
from odontolegal.cases.models import Case
from odontolegal.cases.service import CaseService
from odontolegal.evidence.models import Evidence, EvidenceCategory, EvidenceType
from odontolegal.evidence.schemas import EvidenceCreate, EvidenceMetadata, EvidenceResponse, EvidenceUpdate, FileReference
from odontolegal.history.models import AuditableEntity, EvidenceAction, HistoryEntry
from odontolegal.history.service import HistoryTrail
from odontolegal.shared.exceptions import NotFound
from odontolegal.shared.query import apply_sort

ENTITY = AuditableEntity.EVIDENCE
SORTABLE = ("created_at", "updated_at", "title", "category", "evidence_type")


def _apply_metadata(evidence: Evidence, metadata: EvidenceMetadata) -> None:
    evidence.collected_on = metadata.date
    evidence.location = metadata.location
    evidence.equipment = metadata.equipment
    evidence.additional_info = metadata.additional_info


class EvidenceService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.trail = HistoryTrail(db)

    async def _load(self, evidence_id: UUID) -> Evidence:
        evidence = await self.db.get(Evidence, evidence_id)
        if not evidence:
            raise NotFound("Evidence not found")
        return evidence

    async def ensure_case(self, case_id: UUID) -> Case:
        case = await self.db.get(Case, case_id)
        if not case:
            raise NotFound("Case not found")
        return case

    async def create_evidence(
        self, evidence_in: EvidenceCreate, files: List[FileReference], actor: Actor
    ) -> EvidenceResponse:
        await self.ensure_case(evidence_in.case_id)

        evidence = Evidence(
            case_id=evidence_in.case_id,
            evidence_type=evidence_in.evidence_type,
            title=evidence_in.title,
            description=evidence_in.description,
            category=evidence_in.category,
            files=[f.model_dump(mode="json") for f in files],
            created_by_id=actor.id,
        )
        _apply_metadata(evidence, evidence_in.metadata)
        self.db.add(evidence)
        await self.db.commit()
        await self.db.refresh(evidence)
        response = EvidenceResponse.model_validate(evidence)

        await self.trail.record(ENTITY, evidence.id, EvidenceAction.CREATION, actor,
                                f"Evidence created by {actor.name}")
        await CaseService(self.db).note_attachment(
            evidence_in.case_id, actor, f'Evidence "{evidence_in.title}" attached by {actor.name}'
        )
        return response

    async def list_evidences(
        self,
        case_id: Optional[UUID] = None,
        evidence_type: Optional[EvidenceType] = None,
        category: Optional[EvidenceCategory] = None,
        sort: Optional[str] = None,
        skip: int = 0,
        limit: int = 10,
    ) -> List[Evidence]:
        query = select(Evidence)
        if case_id:
            query = query.where(Evidence.case_id == case_id)
        if evidence_type:
            query = query.where(Evidence.evidence_type == evidence_type)
        if category:
            query = query.where(Evidence.category == category)
        query = apply_sort(query, Evidence, sort, SORTABLE)
        result = await self.db.execute(query.offset(skip).limit(limit))
        return list(result.scalars().all())

    async def list_by_case(self, case_id: UUID) -> List[Evidence]:
        result = await self.db.execute(
            select(Evidence).where(Evidence.case_id == case_id).order_by(Evidence.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_evidence(self, evidence_id: UUID, actor: Actor) -> EvidenceResponse:
        """Fetch one evidence item. Logs a ``view`` entry on its trail before returning."""
        evidence = await self._load(evidence_id)
        response = EvidenceResponse.model_validate(evidence)
        await self.trail.record(ENTITY, evidence.id, EvidenceAction.VIEW, actor,
                                f"Evidence viewed by {actor.name}")
        return response

    async def check_can_modify(self, evidence_id: UUID, actor: Actor) -> Evidence:
        evidence = await self._load(evidence_id)
        policy.authorize(policy.owner_or_admin, actor, evidence,
                         "You do not have permission to edit this evidence")
        return evidence

    async def update_evidence(
        self,
        evidence_id: UUID,
        evidence_in: EvidenceUpdate,
        new_files: List[FileReference],
        actor: Actor,
    ) -> EvidenceResponse:
        evidence = await self.check_can_modify(evidence_id, actor)

        if new_files:
            evidence.files = list(evidence.files or []) + [f.model_dump(mode="json") for f in new_files]
        update_data = evidence_in.model_dump(exclude_unset=True, exclude={"metadata"})
        for field, value in update_data.items():
            if value is not None:
                setattr(evidence, field, value)
        if evidence_in.metadata is not None:
            _apply_metadata(evidence, evidence_in.metadata)
        await self.db.commit()
        await self.db.refresh(evidence)
        response = EvidenceResponse.model_validate(evidence)

        await self.trail.record(ENTITY, evidence.id, EvidenceAction.EDIT, actor,
                                f"Evidence edited by {actor.name}")
        return response

    async def delete_evidence(self, evidence_id: UUID, actor: Actor) -> None:
        evidence = await self._load(evidence_id)
        policy.authorize(policy.owner_or_admin, actor, evidence,
                         "You do not have permission to delete this evidence")
        await self.trail.purge(ENTITY, evidence.id)
        await self.db.delete(evidence)
        await self.db.commit()

    async def get_history(self, evidence_id: UUID) -> List[HistoryEntry]:
        await self._load(evidence_id)
        return await self.trail.entries(ENTITY, evidence_id)
