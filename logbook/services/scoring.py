"""
Rule-based 30-point SIWES grade.

    attendance          -> 10 marks (daily check-ins / expected days)
    weekly reports      -> 15 marks (submitted weeks / total weeks)
    supervisor approval ->  5 marks (approved weeks / submitted weeks)

Each component is rounded half-up to two decimals before the total is taken,
and every value is clamped to its maximum. The grading preview and the grading
commit both go through calculate() with the constants from grading_config().
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import NamedTuple, Optional

from django.conf import settings

from logbook.services.errors import ValidationError

DEFAULT_GRADING = {
    "MAX_ATTENDANCE_SCORE": 10,
    "MAX_WEEKLY_REPORTS_SCORE": 15,
    "MAX_SUPERVISOR_APPROVAL_SCORE": 5,
    "MAX_TOTAL_SCORE": 30,
    "TOTAL_WEEKS": 24,
    "MAX_EXPECTED_ATTENDANCE_DAYS": 144,
}

GRADE_BOUNDARIES = (
    (Decimal(25), "A"),
    (Decimal(20), "B"),
    (Decimal(15), "C"),
    (Decimal(12), "D"),
)

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0.00")


class GradingStats(NamedTuple):
    attendance_days: int
    submitted_weeks: int
    approved_weeks: int


class GradeBreakdown(NamedTuple):
    attendance: Decimal
    weekly_reports: Decimal
    supervisor_approval: Decimal
    total: Decimal
    grade: str
    overridden: bool


def grading_config() -> dict:
    config = dict(DEFAULT_GRADING)
    config.update(getattr(settings, "SIWES_GRADING", {}) or {})
    return config


def _round(value) -> Decimal:
    return Decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def _ratio_score(numerator, denominator, maximum) -> Decimal:
    numerator = max(int(numerator or 0), 0)
    denominator = int(denominator or 0)
    if denominator <= 0:
        return ZERO
    score = Decimal(numerator) / Decimal(denominator) * Decimal(maximum)
    return _round(min(Decimal(maximum), score))


def attendance_score(checked_in_days, config=None) -> Decimal:
    config = config or grading_config()
    return _ratio_score(checked_in_days, config["MAX_EXPECTED_ATTENDANCE_DAYS"], config["MAX_ATTENDANCE_SCORE"])


def weekly_reports_score(submitted_weeks, config=None) -> Decimal:
    config = config or grading_config()
    return _ratio_score(submitted_weeks, config["TOTAL_WEEKS"], config["MAX_WEEKLY_REPORTS_SCORE"])


def supervisor_approval_score(approved_weeks, submitted_weeks, config=None) -> Decimal:
    # no submitted weeks -> 0 rather than a division error
    config = config or grading_config()
    return _ratio_score(approved_weeks, submitted_weeks, config["MAX_SUPERVISOR_APPROVAL_SCORE"])


def letter_grade(total) -> str:
    total = Decimal(total)
    for floor, letter in GRADE_BOUNDARIES:
        if total >= floor:
            return letter
    return "F"


def validate_override(value, config=None) -> Optional[Decimal]:
    """Returns the override as a Decimal, None when absent, or raises ValidationError."""
    if value is None or value == "":
        return None
    config = config or grading_config()
    maximum = config["MAX_WEEKLY_REPORTS_SCORE"]
    try:
        override = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Weekly reports override must be a number between 0 and {maximum}")
    if not override.is_finite() or override < 0 or override > maximum:
        raise ValidationError(
            f"Weekly reports override must be between 0 and {maximum}", override=str(value)
        )
    return _round(override)


def calculate(stats: GradingStats, weekly_reports_override=None, config=None) -> GradeBreakdown:
    config = config or grading_config()
    override = validate_override(weekly_reports_override, config)

    attendance = attendance_score(stats.attendance_days, config)
    weekly = override if override is not None else weekly_reports_score(stats.submitted_weeks, config)
    approval = supervisor_approval_score(stats.approved_weeks, stats.submitted_weeks, config)

    total = _round(min(Decimal(config["MAX_TOTAL_SCORE"]), attendance + weekly + approval))
    return GradeBreakdown(
        attendance=attendance,
        weekly_reports=weekly,
        supervisor_approval=approval,
        total=total,
        grade=letter_grade(total),
        overridden=override is not None,
    )
