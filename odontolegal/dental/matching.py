"""Rule-based similarity scoring between two dental characteristic sets.

Points are awarded per tooth of the first record (by FDI number, first match
in the second record), then for occlusion, palate and shared anomalies. The
raw total is normalised against the first record's tooth count:

    max_possible = len(a.teeth) * 2 + 2 + max(len(a.anomalies), len(b.anomalies)) * 0.5
    score = raw / max_possible * 100, rounded half-up to 2 decimals

The score is asymmetric whenever the two records hold a different number of
teeth, since only ``a`` drives the denominator.
"""
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List

from odontolegal.dental.schemas import CharacteristicSet, ToothRecord
from odontolegal.shared.exceptions import ValidationFailed

STATUS_POINTS = 1.0
TREATMENT_POINTS = 0.5
OCCLUSION_POINTS = 1.0
PALATE_POINTS = 1.0
ANOMALY_POINTS = 0.5
POINTS_PER_TOOTH = 2.0


@dataclass(frozen=True)
class MatchResult:
    score: float
    details: List[str] = field(default_factory=list)
    raw_score: float = 0.0
    max_possible: float = 0.0

    @property
    def formatted_score(self) -> str:
        return f"{self.score:.2f}"


def _first_by_number(teeth: List[ToothRecord]) -> Dict[int, ToothRecord]:
    index: Dict[int, ToothRecord] = {}
    for tooth in teeth:
        index.setdefault(tooth.number, tooth)
    return index


def _shared(left: List, right: List) -> List:
    return [item for item in left if item in right]


def _label(value) -> str:
    return getattr(value, "value", value)


def max_possible_score(a: CharacteristicSet, b: CharacteristicSet) -> float:
    anomalies = max(len(a.general_characteristics.anomalies), len(b.general_characteristics.anomalies))
    return len(a.teeth) * POINTS_PER_TOOTH + OCCLUSION_POINTS + PALATE_POINTS + anomalies * ANOMALY_POINTS


def normalize(raw: float, max_possible: float) -> float:
    pct = Decimal(str(raw)) / Decimal(str(max_possible)) * 100
    pct = min(max(pct, Decimal(0)), Decimal(100))
    return float(pct.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


class MatchEngine:
    def ensure_scoreable(self, a: CharacteristicSet, b: CharacteristicSet) -> None:
        no_anomalies = not a.general_characteristics.anomalies and not b.general_characteristics.anomalies
        if not a.teeth and no_anomalies:
            raise ValidationFailed(
                "Dental record has no teeth and no anomalies registered; it cannot be scored"
            )
        if max_possible_score(a, b) <= 0:
            raise ValidationFailed("Dental records cannot be scored")

    def compare(self, a: CharacteristicSet, b: CharacteristicSet) -> MatchResult:
        self.ensure_scoreable(a, b)

        raw = 0.0
        details: List[str] = []
        b_teeth = _first_by_number(b.teeth)

        for tooth in a.teeth:
            other = b_teeth.get(tooth.number)
            if other is None:
                continue
            if tooth.status == other.status:
                raw += STATUS_POINTS
                details.append(f"Tooth {tooth.number}: same status ({_label(tooth.status)})")
            common = _shared(tooth.treatments, other.treatments)
            raw += len(common) * TREATMENT_POINTS
            if common:
                joined = ", ".join(_label(t) for t in common)
                details.append(f"Tooth {tooth.number}: shared treatments ({joined})")

        gc_a = a.general_characteristics
        gc_b = b.general_characteristics

        if gc_a.occlusion == gc_b.occlusion:
            raw += OCCLUSION_POINTS
            details.append(f"Same occlusion: {gc_a.occlusion}")

        if gc_a.palate == gc_b.palate:
            raw += PALATE_POINTS
            details.append(f"Same palate: {gc_a.palate}")

        common_anomalies = _shared(gc_a.anomalies, gc_b.anomalies)
        raw += len(common_anomalies) * ANOMALY_POINTS
        if common_anomalies:
            details.append(f"Shared anomalies: {', '.join(common_anomalies)}")

        max_possible = max_possible_score(a, b)
        return MatchResult(
            score=normalize(raw, max_possible),
            details=details,
            raw_score=raw,
            max_possible=max_possible,
        )


match_engine = MatchEngine()
