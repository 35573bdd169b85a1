"""Stage 5: Metrics - Distinct-person aggregates per worksheet"""

from datetime import date
from typing import Any, Dict, Optional, Set

from core.interfaces import Stage
from core.models import WorksheetPayload, MetricsResult, GenderCounts, TierCount
from core.enums import ColumnRole, Gender
from utils.columns import ColumnRoles, classify_columns
from utils.dates import coerce_date, whole_years_between
from utils.keys import is_blank, cell_text


MARKED_TOKENS = {"yes", "ya", "v", "✓", "x", "1", "true"}

PRE_SENIOR_MIN = 45
SENIOR_MIN = 60
HIGH_RISK_MIN = 70


def is_marked(value: Any) -> bool:
    """Service or tier flag counts only for the fixed truthy vocabulary"""
    if is_blank(value):
        return False
    return cell_text(value).lower() in MARKED_TOKENS


def resolve_gender(value: Any) -> Optional[Gender]:
    """L/LAKI-LAKI and P/PEREMPUAN, by exact or prefix match"""
    text = cell_text(value).upper()
    if text.startswith("L"):
        return Gender.MALE
    if text.startswith("P"):
        return Gender.FEMALE
    return None


def resolve_age(row: Dict[str, Any], roles: ColumnRoles, today: date) -> Optional[float]:
    """Explicit age when numeric, otherwise completed years since the birth date"""
    if roles.age is not None and not is_blank(row.get(roles.age)):
        value = row.get(roles.age)
        if not isinstance(value, bool):
            try:
                return float(value)
            except (TypeError, ValueError):
                pass

    if roles.birth_date is not None:
        born = coerce_date(row.get(roles.birth_date))
        if born is not None:
            return whole_years_between(born, today)

    return None


class _GenderSets:
    def __init__(self):
        self.sets = {Gender.MALE: set(), Gender.FEMALE: set()}
        self.total: Set[str] = set()

    def add(self, gender: Gender, identifier: str) -> None:
        self.sets[gender].add(identifier)
        self.total.add(identifier)

    def counts(self) -> GenderCounts:
        return GenderCounts(
            L=len(self.sets[Gender.MALE]),
            P=len(self.sets[Gender.FEMALE]),
            T=len(self.total),
        )


def _tier(members: Set[str], denominator: int) -> TierCount:
    return TierCount(absolute=len(members), percent=round(len(members) / denominator * 100, 2))


def compute_metrics(payload: WorksheetPayload, today: date = None) -> MetricsResult:
    """
    Aggregate one worksheet

    Rows without an identifier, a resolvable age or a resolvable gender are
    left out of every figure. Each figure counts distinct identifiers.

    Args:
        payload: Stored or draft worksheet
        today: Reference date for birth-date ages (defaults to today)
    """
    today = today or date.today()
    roles = classify_columns(payload.header_keys, payload.header_labels)

    screening_key = roles.services.get(ColumnRole.SCREENING)
    empowerment_key = roles.services.get(ColumnRole.EMPOWERMENT)

    pre_senior, senior, high_risk, served = _GenderSets(), _GenderSets(), _GenderSets(), _GenderSets()
    screened_pre, screened_senior, screened_high = _GenderSets(), _GenderSets(), _GenderSets()
    tiers = {role: set() for role in (ColumnRole.TIER_A, ColumnRole.TIER_B, ColumnRole.TIER_C)}
    empowered: Set[str] = set()
    counted = 0

    for row in payload.row_data:
        identifier = cell_text(row.get(roles.identifier)) if roles.identifier else ""
        gender = resolve_gender(row.get(roles.gender)) if roles.gender else None
        age = resolve_age(row, roles, today)
        if not identifier or gender is None or age is None:
            continue
        counted += 1

        is_pre = PRE_SENIOR_MIN <= age < SENIOR_MIN
        is_senior = age >= SENIOR_MIN
        is_high = age >= HIGH_RISK_MIN

        if is_pre:
            pre_senior.add(gender, identifier)
        if is_senior:
            senior.add(gender, identifier)
        if is_high:
            high_risk.add(gender, identifier)

        if is_senior and any(is_marked(row.get(key)) for key in roles.service_keys):
            served.add(gender, identifier)

        if screening_key and is_marked(row.get(screening_key)):
            if is_pre:
                screened_pre.add(gender, identifier)
            if is_senior:
                screened_senior.add(gender, identifier)
            if is_high:
                screened_high.add(gender, identifier)

        if is_senior:
            for role, key in roles.tiers.items():
                if is_marked(row.get(key)):
                    tiers[role].add(identifier)
            if empowerment_key and is_marked(row.get(empowerment_key)):
                empowered.add(identifier)

    denominator = len(senior.total) or 1

    return MetricsResult(
        pre_senior=pre_senior.counts(),
        senior=senior.counts(),
        high_risk_senior=high_risk.counts(),
        served=served.counts(),
        screened_pre_senior=screened_pre.counts(),
        screened_senior=screened_senior.counts(),
        screened_high_risk_senior=screened_high.counts(),
        tier_a=_tier(tiers[ColumnRole.TIER_A], denominator),
        tier_b_mild=_tier(tiers[ColumnRole.TIER_B], denominator),
        tier_b_moderate=_tier(set(), denominator),
        tier_c_severe=_tier(tiers[ColumnRole.TIER_C], denominator),
        tier_c_total=_tier(set(), denominator),
        empowered=_tier(empowered, denominator),
        rows_total=len(payload.row_data),
        rows_counted=counted,
    )


class MetricsAggregator(Stage[WorksheetPayload, MetricsResult]):
    """Stage 5: Metrics - Recompute aggregates from stored rows"""

    @property
    def name(self) -> str:
        return "Metrics"

    @property
    def stage_number(self) -> int:
        return 5

    def __init__(self, today: date = None):
        self.today = today

    def validate_input(self, input_data: WorksheetPayload) -> bool:
        return isinstance(input_data, WorksheetPayload)

    async def execute(self, input_data: WorksheetPayload) -> MetricsResult:
        return compute_metrics(input_data, self.today)
