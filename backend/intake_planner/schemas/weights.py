"""Priority weights schemas."""
from pydantic import BaseModel

from intake_planner.schemas.project import ProjectRead


class PriorityWeights(BaseModel):
    impact_weight: float
    frequency_weight: float
    urgency_weight: float

    class Config:
        from_attributes = True


class WeightsUpdate(BaseModel):
    # Range and sum are checked by WeightsManager so every offending field is reported
    impact_weight: float
    frequency_weight: float
    urgency_weight: float


class RecalculationFailure(BaseModel):
    project_id: int
    error_type: str
    message: str


class WeightsUpdateResult(BaseModel):
    weights: PriorityWeights
    projects: list[ProjectRead]
    updated_count: int
    failures: list[RecalculationFailure] = []
