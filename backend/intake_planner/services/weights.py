"""Active priority weights: validation and atomic replacement."""
import logging
import math
from typing import Any

from intake_planner.config import Settings, get_settings
from intake_planner.errors import NotConfiguredError, ValidationError
from intake_planner.repositories.base import Repositories
from intake_planner.schemas.weights import PriorityWeights, WeightsUpdate, WeightsUpdateResult

logger = logging.getLogger(__name__)

WEIGHT_FIELDS = ("impact_weight", "frequency_weight", "urgency_weight")


class WeightsManager:
    """Owns the single active weight configuration."""

    def __init__(self, repos: Repositories, settings: Settings | None = None) -> None:
        self.repos = repos
        self.settings = settings or get_settings()

    async def get_active(self) -> PriorityWeights:
        weights = await self.repos.weights.get_active()
        if weights is None:
            raise NotConfiguredError("No active priority weights are configured")
        return weights

    def validate(self, new_weights: WeightsUpdate | PriorityWeights | dict[str, Any]) -> PriorityWeights:
        """
        Check every component, then the sum.

        All offending fields are reported together; a bad sum flags all three.
        """
        values = new_weights if isinstance(new_weights, dict) else new_weights.model_dump()
        field_errors: dict[str, list[str]] = {}
        for name in WEIGHT_FIELDS:
            value = values.get(name)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or math.isnan(value):
                field_errors.setdefault(name, []).append("must be a number")
            elif not 0 <= value <= 1:
                field_errors.setdefault(name, []).append("must be between 0 and 1")
        if not field_errors:
            total = sum(values[name] for name in WEIGHT_FIELDS)
            if abs(total - 1) > self.settings.weights_sum_epsilon:
                for name in WEIGHT_FIELDS:
                    field_errors.setdefault(name, []).append(f"weights must sum to 1 (got {total:g})")
        if field_errors:
            raise ValidationError("Invalid priority weights", field_errors=field_errors)
        return PriorityWeights(**{name: float(values[name]) for name in WEIGHT_FIELDS})

    async def update(self, new_weights: WeightsUpdate | PriorityWeights | dict[str, Any]) -> PriorityWeights:
        weights = self.validate(new_weights)
        stored = await self.repos.weights.replace_active(weights)
        logger.info("Priority weights updated: %s", stored.model_dump())
        return stored


async def update_weights(
    repos: Repositories,
    new_weights: WeightsUpdate | PriorityWeights | dict[str, Any],
    settings: Settings | None = None,
) -> WeightsUpdateResult:
    """Replace the active weights, then bring every project's weighted score in line."""
    from intake_planner.services.recalculation import RecalculationCoordinator

    weights = await WeightsManager(repos, settings).update(new_weights)
    return await RecalculationCoordinator(repos, settings).recalculate(weights)
