from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from odontolegal.shared.models import Gender


class ToothStatus(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"
    TREATED = "treated"
    DECAYED = "decayed"
    PROSTHETIC = "prosthetic"
    IMPLANT = "implant"


class Treatment(str, Enum):
    RESTORATION = "restoration"
    CANAL = "canal"
    CROWN = "crown"
    BRIDGE = "bridge"
    OTHER = "other"


class DentalRecordStatus(str, Enum):
    IDENTIFIED = "identified"
    UNIDENTIFIED = "unidentified"
    UNDER_ANALYSIS = "under_analysis"


class CounterpartType(str, Enum):
    CASE = "case"
    DENTAL_RECORD = "dental_record"


def _unique(values: List[Any]) -> List[Any]:
    """Set semantics with first-seen order kept, so explanations are stable."""
    seen = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return seen


class ToothRecord(BaseModel):
    number: int = Field(ge=11, le=48)
    status: ToothStatus
    observations: str = ""
    treatments: List[Treatment] = []

    @field_validator("observations", mode="before")
    @classmethod
    def _none_to_empty(cls, v):
        return "" if v is None else v

    @field_validator("treatments")
    @classmethod
    def _dedupe_treatments(cls, v: List[Treatment]) -> List[Treatment]:
        return _unique(v)


class GeneralCharacteristics(BaseModel):
    occlusion: str = ""
    palate: str = ""
    anomalies: List[str] = []
    other: str = ""

    @field_validator("occlusion", "palate", "other", mode="before")
    @classmethod
    def _none_to_empty(cls, v):
        return "" if v is None else v

    @field_validator("anomalies")
    @classmethod
    def _dedupe_anomalies(cls, v: List[str]) -> List[str]:
        return _unique(v)


class CharacteristicSet(BaseModel):
    """Structured dental features of one record: tooth-by-tooth plus general traits."""
    teeth: List[ToothRecord] = []
    general_characteristics: GeneralCharacteristics = Field(default_factory=GeneralCharacteristics)


class PatientInfo(BaseModel):
    name: Optional[str] = None
    birth_date: Optional[date] = None
    gender: Gender = Gender.NOT_INFORMED
    identification: Optional[str] = None


class DentalRecordCreate(BaseModel):
    patient: PatientInfo = Field(default_factory=PatientInfo)
    status: DentalRecordStatus = DentalRecordStatus.UNDER_ANALYSIS
    characteristics: CharacteristicSet = Field(default_factory=CharacteristicSet)
    radiograph_ids: List[UUID] = []
    photograph_ids: List[UUID] = []


class DentalRecordUpdate(BaseModel):
    patient: Optional[PatientInfo] = None
    status: Optional[DentalRecordStatus] = None
    characteristics: Optional[CharacteristicSet] = None
    radiograph_ids: Optional[List[UUID]] = None
    photograph_ids: Optional[List[UUID]] = None


class IdentifyRequest(BaseModel):
    name: Optional[str] = None
    identification: Optional[str] = None
    details: Optional[str] = None


class DentalRecordResponse(BaseModel):
    id: UUID
    patient: PatientInfo
    status: DentalRecordStatus
    characteristics: CharacteristicSet
    radiograph_ids: List[UUID] = []
    photograph_ids: List[UUID] = []
    created_by_id: UUID
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ComparisonResponse(BaseModel):
    """Outcome of a two-record comparison, snake_case like every other payload."""
    match_score: str  # "NN.NN"
    match_details: List[str]
    record_a_id: UUID
    record_b_id: UUID


class CaseMatchCreate(BaseModel):
    case_id: UUID
    score: float = Field(ge=0, le=100)
    details: List[str] = []


class MatchRecordResponse(BaseModel):
    id: UUID
    dental_record_id: UUID
    sequence: int
    counterpart_type: CounterpartType
    counterpart_id: UUID
    score: float
    details: List[str]
    matched_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CharacteristicSearch(BaseModel):
    teeth_status: List[ToothStatus] = []
    treatments: List[Treatment] = []
    general_characteristics: Optional[Dict[str, str]] = None

    @field_validator("general_characteristics")
    @classmethod
    def _known_fields(cls, v):
        if v:
            unknown = set(v) - set(GeneralCharacteristics.model_fields)
            if unknown:
                raise ValueError(f"Unknown general characteristics: {', '.join(sorted(unknown))}")
        return v
