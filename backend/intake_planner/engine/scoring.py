"""Priority scoring - pure functions over impact, frequency and urgency."""
from typing import Any, NamedTuple

from intake_planner.errors import InvalidEnumError
from intake_planner.models.project import UrgencyLevel
from intake_planner.schemas.weights import PriorityWeights

URGENCY_SCORES: dict[UrgencyLevel, int] = {
    UrgencyLevel.HIGH: 3,
    UrgencyLevel.MEDIUM: 2,
    UrgencyLevel.LOW: 1,
}

_unscored = [level.value for level in UrgencyLevel if level not in URGENCY_SCORES]
if _unscored:
    raise RuntimeError(f"Urgency levels without a score: {', '.join(_unscored)}")


class EffectiveInputs(NamedTuple):
    impact_score: int
    frequency_score: int
    urgency_level: UrgencyLevel | str


def urgency_to_score(level: UrgencyLevel | str) -> int:
    """high -> 3, medium -> 2, low -> 1."""
    try:
        return URGENCY_SCORES[UrgencyLevel(level)]
    except ValueError:
        raise InvalidEnumError(
            f"Unknown urgency level: {level!r}",
            enum_name="UrgencyLevel",
            value=level,
        ) from None


def raw_score(impact_score: int, frequency_score: int, urgency_score: int) -> int:
    return impact_score + frequency_score + urgency_score


def weighted_score(
    impact_score: int,
    frequency_score: int,
    urgency_level: UrgencyLevel | str,
    weights: PriorityWeights,
) -> float:
    return (
        impact_score * weights.impact_weight
        + frequency_score * weights.frequency_weight
        + urgency_to_score(urgency_level) * weights.urgency_weight
    )


def _first_set(override: Any, original: Any) -> Any:
    return original if override is None else override


def resolve_inputs(project: Any) -> EffectiveInputs:
    """Considered overrides supersede the requester's original inputs, field by field."""
    return EffectiveInputs(
        impact_score=_first_set(project.impact_score_considered, project.impact_score),
        frequency_score=_first_set(project.frequency_score_considered, project.frequency_score),
        urgency_level=_first_set(project.urgency_level_considered, project.urgency_level),
    )


def resolve_weights(project: Any, weights: PriorityWeights) -> PriorityWeights:
    """Custom weights supersede the global ones, component by component."""
    return PriorityWeights(
        impact_weight=_first_set(project.impact_weight_custom, weights.impact_weight),
        frequency_weight=_first_set(project.frequency_weight_custom, weights.frequency_weight),
        urgency_weight=_first_set(project.urgency_weight_custom, weights.urgency_weight),
    )


def project_raw_score(project: Any) -> int:
    inputs = resolve_inputs(project)
    return raw_score(inputs.impact_score, inputs.frequency_score, urgency_to_score(inputs.urgency_level))


def project_weighted_score(project: Any, weights: PriorityWeights) -> float:
    inputs = resolve_inputs(project)
    return weighted_score(
        inputs.impact_score,
        inputs.frequency_score,
        inputs.urgency_level,
        resolve_weights(project, weights),
    )
