"""Backlog-wide weighted score recalculation after a weights change."""
import logging

from intake_planner.config import Settings, get_settings
from intake_planner.engine.scoring import project_weighted_score
from intake_planner.errors import ConflictError, IntakeError, NotFoundError
from intake_planner.repositories.base import Repositories
from intake_planner.schemas.project import ProjectFilters, ProjectRead
from intake_planner.schemas.weights import PriorityWeights, RecalculationFailure, WeightsUpdateResult

logger = logging.getLogger(__name__)


class RecalculationCoordinator:
    """
    Recomputes weighted scores for every project.

    Each project is written on its own through a version check, so a failure
    on one project is recorded and the batch carries on. The batch as a
    whole is not atomic.
    """

    def __init__(self, repos: Repositories, settings: Settings | None = None) -> None:
        self.repos = repos
        self.settings = settings or get_settings()

    async def recalculate(self, weights: PriorityWeights) -> WeightsUpdateResult:
        projects = await self.repos.projects.list(ProjectFilters(limit=None))
        refreshed: list[ProjectRead] = []
        failures: list[RecalculationFailure] = []
        updated_count = 0

        for project in projects:
            try:
                result, written = await self._recalculate_one(project, weights)
            except IntakeError as e:
                logger.warning("Recalculation failed for project %s: %r", project.id, e)
                failures.append(
                    RecalculationFailure(project_id=project.id, error_type=e.error_type, message=e.message)
                )
                refreshed.append(project)
                continue
            except Exception as e:
                logger.exception("Unexpected error recalculating project %s", project.id)
                failures.append(
                    RecalculationFailure(project_id=project.id, error_type=type(e).__name__, message=str(e))
                )
                refreshed.append(project)
                continue
            refreshed.append(result)
            if written:
                updated_count += 1

        refreshed.sort(key=lambda p: (-p.score_weighted, p.id))
        logger.info(
            "Recalculated %d projects: %d updated, %d failed",
            len(projects),
            updated_count,
            len(failures),
        )
        return WeightsUpdateResult(
            weights=weights,
            projects=refreshed,
            updated_count=updated_count,
            failures=failures,
        )

    async def _recalculate_one(self, project: ProjectRead, weights: PriorityWeights) -> tuple[ProjectRead, bool]:
        retries = 0
        while True:
            score = project_weighted_score(project, weights)
            if abs(score - project.score_weighted) <= self.settings.score_change_epsilon:
                return project, False
            try:
                updated = await self.repos.projects.update_weighted_score(project.id, score, project.version)
                return updated, True
            except ConflictError:
                if retries >= self.settings.recalculation_conflict_retries:
                    raise
                retries += 1
                logger.info("Project %s changed during recalculation, retrying", project.id)
                fresh = await self.repos.projects.get(project.id)
                if fresh is None:
                    raise NotFoundError(
                        f"Project {project.id} not found", entity="project", entity_id=project.id
                    ) from None
                project = fresh
