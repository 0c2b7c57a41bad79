import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import Text, cast, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from odontolegal.auth import policy
from odontolegal.auth.schemas import Actor
from odontolegal.cases.models import Case
from odontolegal.dental.matching import match_engine
from odontolegal.dental.models import DentalRecord, MatchRecord
from odontolegal.dental.registry import MatchRegistry
from odontolegal.dental.schemas import (
    CaseMatchCreate,
    CharacteristicSearch,
    CharacteristicSet,
    ComparisonResponse,
    CounterpartType,
    DentalRecordCreate,
    DentalRecordResponse,
    DentalRecordStatus,
    DentalRecordUpdate,
    IdentifyRequest,
    MatchRecordResponse,
    PatientInfo,
)
from odontolegal.history.models import AuditableEntity, DentalRecordAction, HistoryEntry
from odontolegal.history.service import HistoryTrail
from odontolegal.shared.exceptions import InvalidState, NotFound

logger = logging.getLogger(__name__)

ENTITY = AuditableEntity.DENTAL_RECORD


def _apply_patient(record: DentalRecord, patient: PatientInfo) -> None:
    record.patient_name = patient.name
    record.patient_birth_date = patient.birth_date
    record.patient_gender = patient.gender
    record.patient_identification = patient.identification


def _contains(haystack: str, needle: str) -> bool:
    return needle.casefold() in (haystack or "").casefold()


def matches_search(characteristics: CharacteristicSet, search: CharacteristicSearch) -> bool:
    """Each given criterion must be met by the record (criteria are ANDed)."""
    if search.teeth_status and not any(t.status in search.teeth_status for t in characteristics.teeth):
        return False
    if search.treatments and not any(
        treatment in search.treatments for t in characteristics.teeth for treatment in t.treatments
    ):
        return False
    for key, needle in (search.general_characteristics or {}).items():
        if not needle:
            continue
        value = getattr(characteristics.general_characteristics, key)
        if isinstance(value, list):
            if not any(_contains(item, needle) for item in value):
                return False
        elif not _contains(value, needle):
            return False
    return True


def characteristic_filters(search: CharacteristicSearch) -> list:
    """SQL conditions narrowing a characteristic search to candidate rows.

    They match against the JSON text of ``characteristics``, so they can
    over-select; ``matches_search`` makes the final decision. Needles that
    JSON would escape are left to it.
    """
    text = func.lower(cast(DentalRecord.characteristics, Text), type_=Text)
    filters = []
    if search.teeth_status:
        filters.append(or_(*[text.contains(f'"{s.value}"') for s in search.teeth_status]))
    if search.treatments:
        filters.append(or_(*[text.contains(f'"{t.value}"') for t in search.treatments]))
    for needle in (search.general_characteristics or {}).values():
        if needle and needle.isascii() and needle.isprintable() and not set(needle) & {'"', "\\"}:
            filters.append(text.contains(needle.lower(), autoescape=True))
    return filters


class DentalRecordService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.trail = HistoryTrail(db)
        self.registry = MatchRegistry(db)

    async def _load(self, record_id: UUID) -> DentalRecord:
        record = await self.db.get(DentalRecord, record_id)
        if not record:
            raise NotFound("Dental record not found")
        return record

    async def _commit(self, record: DentalRecord) -> DentalRecordResponse:
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise InvalidState("Another dental record already uses this patient identification")
        await self.db.refresh(record)
        return DentalRecordResponse.model_validate(record)

    async def create_record(self, record_in: DentalRecordCreate, actor: Actor) -> DentalRecordResponse:
        record = DentalRecord(
            status=record_in.status,
            characteristics=record_in.characteristics.model_dump(mode="json"),
            radiograph_ids=[str(i) for i in record_in.radiograph_ids],
            photograph_ids=[str(i) for i in record_in.photograph_ids],
            created_by_id=actor.id,
        )
        _apply_patient(record, record_in.patient)
        self.db.add(record)
        response = await self._commit(record)

        await self.trail.record(ENTITY, record.id, DentalRecordAction.CREATION, actor,
                                f"Dental record created by {actor.name}")
        return response

    async def list_records(
        self,
        status: Optional[DentalRecordStatus] = None,
        skip: int = 0,
        limit: int = 10,
    ) -> List[DentalRecord]:
        query = select(DentalRecord).order_by(DentalRecord.created_at.desc())
        if status:
            query = query.where(DentalRecord.status == status)
        result = await self.db.execute(query.offset(skip).limit(limit))
        return list(result.scalars().all())

    async def get_record(self, record_id: UUID, actor: Actor) -> DentalRecordResponse:
        """Fetch one record. Logs a ``view`` entry on the record's trail before returning."""
        record = await self._load(record_id)
        response = DentalRecordResponse.model_validate(record)
        await self.trail.record(ENTITY, record.id, DentalRecordAction.VIEW, actor,
                                f"Dental record viewed by {actor.name}")
        return response

    async def update_record(
        self, record_id: UUID, record_in: DentalRecordUpdate, actor: Actor
    ) -> DentalRecordResponse:
        record = await self._load(record_id)
        policy.authorize(policy.owner_admin_or_expert, actor, record,
                         "You do not have permission to edit this dental record")

        if record_in.patient is not None:
            _apply_patient(record, record_in.patient)
        if record_in.status is not None:
            record.status = record_in.status
        if record_in.characteristics is not None:
            record.characteristics = record_in.characteristics.model_dump(mode="json")
        if record_in.radiograph_ids is not None:
            record.radiograph_ids = [str(i) for i in record_in.radiograph_ids]
        if record_in.photograph_ids is not None:
            record.photograph_ids = [str(i) for i in record_in.photograph_ids]
        response = await self._commit(record)

        await self.trail.record(ENTITY, record.id, DentalRecordAction.EDIT, actor,
                                f"Dental record edited by {actor.name}")
        return response

    async def identify_record(
        self, record_id: UUID, identify_in: IdentifyRequest, actor: Actor
    ) -> DentalRecordResponse:
        record = await self._load(record_id)
        policy.authorize(policy.owner_admin_or_expert, actor, record,
                         "You do not have permission to identify this dental record")
        if record.status == DentalRecordStatus.IDENTIFIED:
            raise InvalidState("Dental record is already identified")

        record.status = DentalRecordStatus.IDENTIFIED
        if identify_in.name is not None:
            record.patient_name = identify_in.name
        if identify_in.identification is not None:
            record.patient_identification = identify_in.identification
        response = await self._commit(record)

        details = identify_in.details or f"Record identified as {record.patient_name or 'unknown'} by {actor.name}"
        await self.trail.record(ENTITY, record.id, DentalRecordAction.IDENTIFICATION, actor, details)
        return response

    async def compare_records(self, record_a_id: UUID, record_b_id: UUID, actor: Actor) -> ComparisonResponse:
        record_a = await self.db.get(DentalRecord, record_a_id)
        record_b = await self.db.get(DentalRecord, record_b_id)
        if not record_a or not record_b:
            raise NotFound("One or more dental records not found")

        result = match_engine.compare(
            CharacteristicSet.model_validate(record_a.characteristics),
            CharacteristicSet.model_validate(record_b.characteristics),
        )
        response = ComparisonResponse(
            match_score=result.formatted_score,
            match_details=result.details,
            record_a_id=record_a.id,
            record_b_id=record_b.id,
        )

        # Each side is written on its own; one side may land without the other.
        summary = f"Comparison performed: score {result.formatted_score}%"
        for own_id, other_id in ((record_a.id, record_b.id), (record_b.id, record_a.id)):
            entry = await self.trail.record(
                ENTITY, own_id, DentalRecordAction.COMPARISON, actor, f"{summary} against {other_id}"
            )
            match = await self.registry.record_or_queue(
                own_id, CounterpartType.DENTAL_RECORD, other_id, result.score, result.details
            )
            if entry is None or match is None:
                logger.warning(f"Comparison {record_a_id} vs {record_b_id} left dental record {own_id} partially updated")
        return response

    async def register_case_match(
        self, record_id: UUID, match_in: CaseMatchCreate, actor: Actor
    ) -> MatchRecordResponse:
        record = await self._load(record_id)
        policy.authorize(policy.is_expert_or_admin, actor, record,
                         "Only experts and administrators can register case matches")
        if not await self.db.get(Case, match_in.case_id):
            raise NotFound("Case not found")

        match = await self.registry.record(
            record.id, CounterpartType.CASE, match_in.case_id, match_in.score, match_in.details
        )
        response = MatchRecordResponse.model_validate(match)
        await self.trail.record(
            ENTITY, record.id, DentalRecordAction.COMPARISON, actor,
            f"Match against case {match_in.case_id} registered with score {match_in.score:.2f}% by {actor.name}",
        )
        return response

    async def list_matches(self, record_id: UUID) -> List[MatchRecord]:
        await self._load(record_id)
        return await self.registry.matches(record_id)

    async def get_history(self, record_id: UUID) -> List[HistoryEntry]:
        await self._load(record_id)
        return await self.trail.entries(ENTITY, record_id)

    async def search_records(self, query: str) -> List[DentalRecord]:
        pattern = f"%{query}%"
        result = await self.db.execute(
            select(DentalRecord)
            .where(or_(
                DentalRecord.patient_name.ilike(pattern),
                DentalRecord.patient_identification.ilike(pattern),
            ))
            .order_by(DentalRecord.created_at.desc())
        )
        return list(result.scalars().all())

    async def search_by_characteristics(self, search: CharacteristicSearch) -> List[DentalRecord]:
        result = await self.db.execute(
            select(DentalRecord)
            .where(*characteristic_filters(search))
            .order_by(DentalRecord.created_at.desc())
        )
        return [
            record for record in result.scalars().all()
            if matches_search(CharacteristicSet.model_validate(record.characteristics), search)
        ]
