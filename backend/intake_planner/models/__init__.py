"""SQLAlchemy models."""
from intake_planner.models.priority_weights import PriorityWeightsConfig
from intake_planner.models.project import FrequencyUnit, Project, ProjectStatus, UrgencyLevel
from intake_planner.models.sprint import AllocationStatus, Sprint, SprintAllocation, SprintStatus

__all__ = [
    "AllocationStatus",
    "FrequencyUnit",
    "PriorityWeightsConfig",
    "Project",
    "ProjectStatus",
    "Sprint",
    "SprintAllocation",
    "SprintStatus",
    "UrgencyLevel",
]
