"""Pydantic schemas."""
from intake_planner.schemas.project import (
    PointsConversion,
    ProjectAllocationRead,
    ProjectCreate,
    ProjectCreated,
    ProjectFilters,
    ProjectRead,
    ProjectReview,
    ProjectStatusUpdate,
)
from intake_planner.schemas.sprint import (
    AllocationCreate,
    AllocationRead,
    AllocationUpdate,
    AllocationWithProject,
    SprintCreate,
    SprintDetail,
    SprintFilters,
    SprintRead,
    SprintSummary,
    SprintUpdate,
)
from intake_planner.schemas.weights import (
    PriorityWeights,
    RecalculationFailure,
    WeightsUpdate,
    WeightsUpdateResult,
)

__all__ = [
    "PointsConversion",
    "ProjectAllocationRead",
    "ProjectCreate",
    "ProjectCreated",
    "ProjectFilters",
    "ProjectRead",
    "ProjectReview",
    "ProjectStatusUpdate",
    "AllocationCreate",
    "AllocationRead",
    "AllocationUpdate",
    "AllocationWithProject",
    "SprintCreate",
    "SprintDetail",
    "SprintFilters",
    "SprintRead",
    "SprintSummary",
    "SprintUpdate",
    "PriorityWeights",
    "RecalculationFailure",
    "WeightsUpdate",
    "WeightsUpdateResult",
]
