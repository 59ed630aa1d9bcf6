"""Priority weights API routes."""
from fastapi import APIRouter

from intake_planner.deps import ReposDep, SettingsDep
from intake_planner.schemas.weights import PriorityWeights, WeightsUpdate, WeightsUpdateResult
from intake_planner.services.weights import WeightsManager, update_weights

router = APIRouter(prefix="/weights", tags=["weights"])


@router.get("", response_model=PriorityWeights)
async def get_weights(repos: ReposDep, settings: SettingsDep):
    return await WeightsManager(repos, settings).get_active()


@router.put("", response_model=WeightsUpdateResult)
async def put_weights(data: WeightsUpdate, repos: ReposDep, settings: SettingsDep):
    """Replace the active weights and recalculate every project's weighted score."""
    return await update_weights(repos, data, settings)
