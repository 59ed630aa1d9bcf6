"""Frequency score derivation.

Scale:
    more than once a day -> 5
    once a day           -> 4
    weekly or more       -> 3
    4+ times a month     -> 4
    2-3 times a month    -> 2
    once a month         -> 1
    anything else        -> 1
"""
import re

from intake_planner.models.project import FrequencyUnit

_NUMBER = re.compile(r"(\d+(?:[.,]\d+)?)")
# Checked in order; Spanish and English keywords
_UNIT_PATTERNS: list[tuple[FrequencyUnit, re.Pattern[str]]] = [
    (FrequencyUnit.DAY, re.compile(r"\bd[ií]a|\bdiari|\bday|\bdaily")),
    (FrequencyUnit.WEEK, re.compile(r"\bsemana|\bweek")),
    (FrequencyUnit.MONTH, re.compile(r"\bmes(es)?\b|\bmensual|\bmonth")),
]


def derive_frequency_score(count: float | None, unit: FrequencyUnit | str | None) -> int:
    """Map a structured frequency to a 1-5 score. Never raises."""
    if count is None or unit is None:
        return 1
    try:
        unit = FrequencyUnit(unit)
    except ValueError:
        return 1
    if unit is FrequencyUnit.DAY:
        return 5 if count > 1 else 4
    if unit is FrequencyUnit.WEEK:
        if count >= 1:
            return 3
    elif unit is FrequencyUnit.MONTH:
        if count >= 4:
            return 4
        if count >= 2:
            return 2
        if count >= 1:
            return 1
    return 1


def parse_frequency_description(text: str | None) -> tuple[float, FrequencyUnit]:
    """Extract (count, unit) from free text such as "3 veces por semana"; defaults to once a week."""
    if not text:
        return 1.0, FrequencyUnit.WEEK
    lowered = text.lower()
    for unit, pattern in _UNIT_PATTERNS:
        if pattern.search(lowered):
            match = _NUMBER.search(lowered)
            count = float(match.group(1).replace(",", ".")) if match else 1.0
            return count, unit
    return 1.0, FrequencyUnit.WEEK
