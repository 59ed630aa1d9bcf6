"""Project intake, review and listings."""
import logging
from datetime import datetime, timezone
from typing import Any

from intake_planner.config import Settings, get_settings
from intake_planner.engine.frequency import derive_frequency_score, parse_frequency_description
from intake_planner.engine.scoring import (
    project_raw_score,
    project_weighted_score,
    raw_score,
    urgency_to_score,
    weighted_score,
)
from intake_planner.errors import ConflictError, NotFoundError, ValidationError
from intake_planner.models.project import ProjectStatus
from intake_planner.repositories.base import Repositories
from intake_planner.schemas.project import (
    ProjectAllocationRead,
    ProjectCreate,
    ProjectFilters,
    ProjectRead,
    ProjectReview,
    ProjectStatusUpdate,
)
from intake_planner.schemas.weights import PriorityWeights
from intake_planner.services.weights import WeightsManager

logger = logging.getLogger(__name__)

REVIEW_ATTEMPTS = 2

# Any of these being set marks a project as reviewed by the team
OVERRIDE_FIELDS = (
    "impact_score_considered",
    "frequency_score_considered",
    "urgency_level_considered",
    "impact_weight_custom",
    "frequency_weight_custom",
    "urgency_weight_custom",
)


def frequency_migration_changes(project: ProjectRead, weights: PriorityWeights) -> dict[str, Any]:
    """Structured frequency parsed from the free-text description, with both scores recomputed."""
    number, unit = parse_frequency_description(project.frequency_description)
    frequency_score = derive_frequency_score(number, unit)
    migrated = project.model_copy(
        update={"frequency_number": number, "frequency_unit": unit, "frequency_score": frequency_score}
    )
    return {
        "frequency_number": number,
        "frequency_unit": unit,
        "frequency_score": frequency_score,
        "score_raw": project_raw_score(migrated),
        "score_weighted": project_weighted_score(migrated, weights),
    }


class ProjectService:
    def __init__(self, repos: Repositories, settings: Settings | None = None) -> None:
        self.repos = repos
        self.settings = settings or get_settings()

    async def create(self, data: ProjectCreate) -> ProjectRead:
        """Store a new request with its raw and weighted scores computed from the active weights."""
        if data.frequency_number is not None and data.frequency_unit is not None:
            frequency_score = derive_frequency_score(data.frequency_number, data.frequency_unit)
        elif data.frequency_score is not None:
            frequency_score = data.frequency_score
        else:
            message = "required unless frequency_number and frequency_unit are both given"
            raise ValidationError(
                "Frequency is missing",
                field_errors={"frequency_score": [message]},
            )
        weights = await WeightsManager(self.repos, self.settings).get_active()
        urgency_score = urgency_to_score(data.urgency_level)

        values = data.model_dump()
        values.update(
            frequency_score=frequency_score,
            urgency_score=urgency_score,
            score_raw=raw_score(data.impact_score, frequency_score, urgency_score),
            score_weighted=weighted_score(data.impact_score, frequency_score, data.urgency_level, weights),
            status=ProjectStatus.NEW,
        )
        project = await self.repos.projects.create(values)
        logger.info("Project %s created with weighted score %.4f", project.id, project.score_weighted)
        return project

    async def get(self, project_id: int) -> ProjectRead:
        project = await self.repos.projects.get(project_id)
        if project is None:
            raise NotFoundError(f"Project {project_id} not found", entity="project", entity_id=project_id)
        return project

    async def list_projects(self, filters: ProjectFilters | None = None) -> list[ProjectRead]:
        filters = filters or ProjectFilters()
        if filters.limit is None:
            filters = filters.model_copy(update={"limit": self.settings.default_list_limit})
        return await self.repos.projects.list(filters)

    async def top(self, n: int, filters: ProjectFilters | None = None) -> list[ProjectRead]:
        if n <= 0:
            raise ValidationError("n must be greater than zero", field_errors={"n": ["must be greater than zero"]})
        filters = (filters or ProjectFilters()).model_copy(update={"limit": n, "offset": 0})
        return await self.repos.projects.list(filters)

    async def review(self, project_id: int, review: ProjectReview) -> ProjectRead:
        """
        Apply a team review and recompute both scores from the effective inputs.

        Only fields present in the request change; an explicit null clears an
        override. Changing the structured frequency re-derives frequency_score.
        The write is conditional on the version that was read; if a concurrent
        write (such as a weights recalculation) lands first, the review is
        recomputed from a fresh read.
        """
        for attempt in range(1, REVIEW_ATTEMPTS + 1):
            try:
                project = await self._apply_review(project_id, review)
            except ConflictError:
                if attempt == REVIEW_ATTEMPTS:
                    raise
                logger.info("Project %s changed during review, retrying", project_id)
                continue
            logger.info("Project %s reviewed, weighted score %.4f", project_id, project.score_weighted)
            return project

    async def _apply_review(self, project_id: int, review: ProjectReview) -> ProjectRead:
        current = await self.get(project_id)
        changes = review.model_dump(exclude_unset=True)

        if "frequency_number" in changes or "frequency_unit" in changes:
            number = changes.get("frequency_number", current.frequency_number)
            unit = changes.get("frequency_unit", current.frequency_unit)
            if number is not None and unit is not None:
                changes["frequency_score"] = derive_frequency_score(number, unit)

        merged = current.model_copy(update=changes)
        if any(getattr(merged, name) is not None for name in OVERRIDE_FIELDS):
            changes["is_reviewed_by_team"] = True
            changes["reviewed_at"] = datetime.now(timezone.utc)

        weights = await WeightsManager(self.repos, self.settings).get_active()
        changes["score_raw"] = project_raw_score(merged)
        changes["score_weighted"] = project_weighted_score(merged, weights)
        return await self.repos.projects.update(project_id, changes, expected_version=current.version)

    async def update_status(self, project_id: int, update: ProjectStatusUpdate) -> ProjectRead:
        await self.get(project_id)
        return await self.repos.projects.update(project_id, update.model_dump(exclude_unset=True))

    async def list_allocations(self, project_id: int) -> list[ProjectAllocationRead]:
        """Allocations of one project joined with their sprints, earliest sprint first."""
        await self.get(project_id)
        rows: list[ProjectAllocationRead] = []
        for allocation in await self.repos.allocations.list_for_project(project_id):
            sprint = await self.repos.sprints.get(allocation.sprint_id)
            if sprint is None:
                continue
            rows.append(
                ProjectAllocationRead(
                    allocation_id=allocation.id,
                    sprint_id=sprint.id,
                    sprint_name=sprint.name,
                    sprint_status=sprint.status,
                    start_date=sprint.start_date,
                    end_date=sprint.end_date,
                    allocated_points=allocation.allocated_points,
                    allocation_status=allocation.sprint_status,
                    comments=allocation.comments,
                )
            )
        rows.sort(key=lambda r: (r.start_date, r.sprint_id))
        return rows
