"""Sprints, allocations and the per-sprint capacity invariant."""
import logging
from typing import Any

from intake_planner.config import Settings, get_settings
from intake_planner.errors import (
    CapacityExceededError,
    DuplicateAllocationError,
    HasDependentsError,
    InvalidArgumentError,
    NotFoundError,
    ValidationError,
)
from intake_planner.models.sprint import AllocationStatus
from intake_planner.repositories.base import Repositories
from intake_planner.schemas.project import ProjectFilters, ProjectRead
from intake_planner.schemas.sprint import (
    AllocationRead,
    AllocationWithProject,
    SprintCreate,
    SprintDetail,
    SprintFilters,
    SprintRead,
    SprintSummary,
    SprintUpdate,
)

logger = logging.getLogger(__name__)


def _check_points(points: int) -> None:
    if points < 0:
        raise InvalidArgumentError(
            "allocated_points must be non-negative",
            field_errors={"allocated_points": ["must be non-negative"]},
            allocated_points=points,
        )


class CapacityAllocator:
    """
    Owns sprints and allocations.

    For every sprint the allocated points never exceed capacity_points. Every
    check-then-write runs under the sprint's lock.
    """

    def __init__(self, repos: Repositories, settings: Settings | None = None) -> None:
        self.repos = repos
        self.settings = settings or get_settings()

    async def _get_sprint(self, sprint_id: int) -> SprintRead:
        sprint = await self.repos.sprints.get(sprint_id)
        if sprint is None:
            raise NotFoundError(f"Sprint {sprint_id} not found", entity="sprint", entity_id=sprint_id)
        return sprint

    async def _get_allocation(self, allocation_id: int) -> AllocationRead:
        allocation = await self.repos.allocations.get(allocation_id)
        if allocation is None:
            raise NotFoundError(
                f"Allocation {allocation_id} not found", entity="allocation", entity_id=allocation_id
            )
        return allocation

    def _check_capacity(self, sprint: SprintRead, requested_total: int) -> None:
        if requested_total > sprint.capacity_points:
            logger.info(
                "Sprint %s capacity exceeded: %d requested, %d available",
                sprint.id,
                requested_total,
                sprint.capacity_points,
            )
            raise CapacityExceededError(
                f"Sprint {sprint.id} has capacity {sprint.capacity_points}, requested total is {requested_total}",
                sprint_id=sprint.id,
                capacity_points=sprint.capacity_points,
                requested_total=requested_total,
            )

    # Sprints

    async def create_sprint(self, data: SprintCreate) -> SprintRead:
        if data.start_date > data.end_date:
            raise ValidationError(
                "start_date must not be after end_date",
                field_errors={"end_date": ["must be on or after start_date"]},
            )
        sprint = await self.repos.sprints.create(data.model_dump())
        logger.info("Sprint %s created with capacity %d", sprint.id, sprint.capacity_points)
        return sprint

    async def get_sprint(self, sprint_id: int) -> SprintRead:
        return await self._get_sprint(sprint_id)

    async def list_sprints(self, filters: SprintFilters | None = None) -> list[SprintRead]:
        return await self.repos.sprints.list(filters)

    async def update_sprint(self, sprint_id: int, data: SprintUpdate) -> SprintRead:
        changes = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None or k == "notes"}
        async with self.repos.sprints.lock(sprint_id):
            sprint = await self._get_sprint(sprint_id)
            start = changes.get("start_date", sprint.start_date)
            end = changes.get("end_date", sprint.end_date)
            if start > end:
                raise ValidationError(
                    "start_date must not be after end_date",
                    field_errors={"end_date": ["must be on or after start_date"]},
                )
            if "capacity_points" in changes:
                allocated = await self.repos.allocations.total_points(sprint_id)
                if allocated > changes["capacity_points"]:
                    raise CapacityExceededError(
                        f"Sprint {sprint_id} already has {allocated} points allocated",
                        sprint_id=sprint_id,
                        capacity_points=changes["capacity_points"],
                        requested_total=allocated,
                    )
            return await self.repos.sprints.update(sprint_id, changes)

    async def delete_sprint(self, sprint_id: int) -> None:
        async with self.repos.sprints.lock(sprint_id):
            await self._get_sprint(sprint_id)
            allocations = await self.repos.allocations.list_for_sprint(sprint_id)
            if allocations:
                raise HasDependentsError(
                    f"Sprint {sprint_id} still has {len(allocations)} allocations",
                    sprint_id=sprint_id,
                    allocation_count=len(allocations),
                )
            await self.repos.sprints.delete(sprint_id)
        logger.info("Sprint %s deleted", sprint_id)

    # Allocations

    async def allocate(
        self,
        sprint_id: int,
        project_id: int,
        points: int,
        status: AllocationStatus | None = None,
        comments: str | None = None,
    ) -> AllocationRead:
        _check_points(points)
        async with self.repos.sprints.lock(sprint_id):
            sprint = await self._get_sprint(sprint_id)
            if await self.repos.projects.get(project_id) is None:
                raise NotFoundError(f"Project {project_id} not found", entity="project", entity_id=project_id)
            # Pre-check; the store enforces uniqueness as well
            if await self.repos.allocations.find(sprint_id, project_id) is not None:
                raise DuplicateAllocationError(
                    f"Project {project_id} is already allocated to sprint {sprint_id}",
                    sprint_id=sprint_id,
                    project_id=project_id,
                )
            allocated = await self.repos.allocations.total_points(sprint_id)
            self._check_capacity(sprint, allocated + points)
            allocation = await self.repos.allocations.create(
                {
                    "sprint_id": sprint_id,
                    "project_id": project_id,
                    "allocated_points": points,
                    "sprint_status": status or AllocationStatus.PLANNED,
                    "comments": comments,
                }
            )
        logger.info("Allocated %d points of sprint %s to project %s", points, sprint_id, project_id)
        return allocation

    async def update_allocation(
        self,
        allocation_id: int,
        points: int | None = None,
        status: AllocationStatus | None = None,
        comments: str | None = None,
    ) -> AllocationRead:
        """Change only the supplied fields; new points are checked against capacity without the old ones."""
        if points is not None:
            _check_points(points)
        allocation = await self._get_allocation(allocation_id)
        async with self.repos.sprints.lock(allocation.sprint_id):
            sprint = await self._get_sprint(allocation.sprint_id)
            changes: dict[str, Any] = {}
            if points is not None:
                others = await self.repos.allocations.total_points(sprint.id, exclude_allocation_id=allocation_id)
                self._check_capacity(sprint, others + points)
                changes["allocated_points"] = points
            if status is not None:
                changes["sprint_status"] = status
            if comments is not None:
                changes["comments"] = comments
            if not changes:
                return await self._get_allocation(allocation_id)
            return await self.repos.allocations.update(allocation_id, changes)

    async def delete_allocation(self, allocation_id: int) -> None:
        allocation = await self._get_allocation(allocation_id)
        async with self.repos.sprints.lock(allocation.sprint_id):
            await self.repos.allocations.delete(allocation_id)
        logger.info("Allocation %s removed from sprint %s", allocation_id, allocation.sprint_id)

    # Views

    async def get_sprint_summary(self, sprint_id: int) -> SprintSummary:
        sprint = await self._get_sprint(sprint_id)
        return await self._summarize(sprint)

    async def _summarize(self, sprint: SprintRead) -> SprintSummary:
        allocated = await self.repos.allocations.total_points(sprint.id)
        return SprintSummary(
            sprint=sprint,
            allocated_points=allocated,
            available_points=max(0, sprint.capacity_points - allocated),
        )

    async def list_sprint_summaries(self, filters: SprintFilters | None = None) -> list[SprintSummary]:
        return [await self._summarize(sprint) for sprint in await self.repos.sprints.list(filters)]

    async def get_sprint_backlog(self, sprint_id: int) -> list[ProjectRead]:
        """Prioritized projects not yet allocated to this sprint, highest weighted score first."""
        await self._get_sprint(sprint_id)
        allocated = {a.project_id for a in await self.repos.allocations.list_for_sprint(sprint_id)}
        candidates = await self.repos.projects.list(
            ProjectFilters(
                status=[self.settings.backlog_status],
                sort_by="score_weighted",
                sort_desc=True,
                limit=None,
            )
        )
        return [p for p in candidates if p.id not in allocated]

    async def get_sprint_detail(self, sprint_id: int) -> SprintDetail:
        summary = await self.get_sprint_summary(sprint_id)
        rows: list[AllocationWithProject] = []
        for allocation in await self.repos.allocations.list_for_sprint(sprint_id):
            project = await self.repos.projects.get(allocation.project_id)
            if project is not None:
                rows.append(AllocationWithProject(allocation=allocation, project=project))
        rows.sort(key=lambda r: (-r.project.score_weighted, r.allocation.id))
        return SprintDetail(
            summary=summary,
            allocations=rows,
            backlog=await self.get_sprint_backlog(sprint_id),
        )
