"""In-memory backend. State lives in an InMemoryStore owned by the caller."""
import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator

from intake_planner.errors import ConflictError, DuplicateAllocationError, NotFoundError
from intake_planner.repositories.base import (
    AllocationRepository,
    ProjectRepository,
    Repositories,
    SprintRepository,
    Storage,
    WeightsRepository,
)
from intake_planner.schemas.project import ProjectFilters, ProjectRead
from intake_planner.schemas.sprint import AllocationRead, SprintFilters, SprintRead
from intake_planner.schemas.weights import PriorityWeights


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryStore:
    """Process-lifetime state for the in-memory backend."""

    def __init__(self, weights: PriorityWeights | None = None) -> None:
        self.weights: PriorityWeights | None = weights
        self.projects: dict[int, ProjectRead] = {}
        self.sprints: dict[int, SprintRead] = {}
        self.allocations: dict[int, AllocationRead] = {}
        self.sprint_locks: dict[int, asyncio.Lock] = {}
        self._ids = {"project": 0, "sprint": 0, "allocation": 0}

    def next_id(self, entity: str) -> int:
        self._ids[entity] += 1
        return self._ids[entity]


class MemoryWeightsRepository(WeightsRepository):
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    async def get_active(self) -> PriorityWeights | None:
        return self.store.weights.model_copy() if self.store.weights else None

    async def replace_active(self, weights: PriorityWeights) -> PriorityWeights:
        self.store.weights = weights.model_copy()
        return weights.model_copy()


def _matches(project: ProjectRead, filters: ProjectFilters) -> bool:
    if filters.department and project.requesting_department != filters.department:
        return False
    if filters.status and project.status not in filters.status:
        return False
    if filters.search:
        needle = filters.search.lower()
        haystack = f"{project.title} {project.short_description or ''}".lower()
        if needle not in haystack:
            return False
    if filters.min_score is not None and project.score_weighted < filters.min_score:
        return False
    if filters.max_score is not None and project.score_weighted > filters.max_score:
        return False
    return True


class MemoryProjectRepository(ProjectRepository):
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    async def create(self, data: dict[str, Any]) -> ProjectRead:
        now = _now()
        project = ProjectRead(
            **data,
            id=self.store.next_id("project"),
            version=1,
            created_at=now,
            updated_at=now,
        )
        self.store.projects[project.id] = project
        return project.model_copy()

    async def get(self, project_id: int) -> ProjectRead | None:
        project = self.store.projects.get(project_id)
        return project.model_copy() if project else None

    async def update(
        self, project_id: int, changes: dict[str, Any], expected_version: int | None = None
    ) -> ProjectRead:
        current = self.store.projects.get(project_id)
        if current is None:
            raise NotFoundError(f"Project {project_id} not found", entity="project", entity_id=project_id)
        if expected_version is not None and current.version != expected_version:
            raise ConflictError(
                f"Project {project_id} was modified concurrently",
                project_id=project_id,
                expected_version=expected_version,
                actual_version=current.version,
            )
        updated = ProjectRead.model_validate(
            {**current.model_dump(), **changes, "version": current.version + 1, "updated_at": _now()}
        )
        self.store.projects[project_id] = updated
        return updated.model_copy()

    async def update_weighted_score(self, project_id: int, score: float, expected_version: int) -> ProjectRead:
        current = self.store.projects.get(project_id)
        if current is None:
            raise NotFoundError(f"Project {project_id} not found", entity="project", entity_id=project_id)
        if current.version != expected_version:
            raise ConflictError(
                f"Project {project_id} changed during recalculation",
                project_id=project_id,
                expected_version=expected_version,
                actual_version=current.version,
            )
        return await self.update(project_id, {"score_weighted": score})

    async def list(self, filters: ProjectFilters | None = None) -> list[ProjectRead]:
        filters = filters or ProjectFilters()
        rows = [p for p in self.store.projects.values() if _matches(p, filters)]
        rows.sort(key=lambda p: p.id)
        rows.sort(key=lambda p: getattr(p, filters.sort_by), reverse=filters.sort_desc)
        end = None if filters.limit is None else filters.offset + filters.limit
        return [p.model_copy() for p in rows[filters.offset:end]]


class MemorySprintRepository(SprintRepository):
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    async def create(self, data: dict[str, Any]) -> SprintRead:
        now = _now()
        sprint = SprintRead(**data, id=self.store.next_id("sprint"), created_at=now, updated_at=now)
        self.store.sprints[sprint.id] = sprint
        return sprint.model_copy()

    async def get(self, sprint_id: int) -> SprintRead | None:
        sprint = self.store.sprints.get(sprint_id)
        return sprint.model_copy() if sprint else None

    async def update(self, sprint_id: int, changes: dict[str, Any]) -> SprintRead:
        current = self.store.sprints.get(sprint_id)
        if current is None:
            raise NotFoundError(f"Sprint {sprint_id} not found", entity="sprint", entity_id=sprint_id)
        updated = SprintRead.model_validate({**current.model_dump(), **changes, "updated_at": _now()})
        self.store.sprints[sprint_id] = updated
        return updated.model_copy()

    async def delete(self, sprint_id: int) -> None:
        if self.store.sprints.pop(sprint_id, None) is None:
            raise NotFoundError(f"Sprint {sprint_id} not found", entity="sprint", entity_id=sprint_id)
        self.store.sprint_locks.pop(sprint_id, None)

    async def list(self, filters: SprintFilters | None = None) -> list[SprintRead]:
        filters = filters or SprintFilters()
        rows = []
        for sprint in self.store.sprints.values():
            if filters.status and sprint.status not in filters.status:
                continue
            if filters.start_from and sprint.start_date < filters.start_from:
                continue
            if filters.start_to and sprint.start_date > filters.start_to:
                continue
            if filters.end_from and sprint.end_date < filters.end_from:
                continue
            if filters.end_to and sprint.end_date > filters.end_to:
                continue
            if filters.search and filters.search.lower() not in sprint.name.lower():
                continue
            rows.append(sprint.model_copy())
        return sorted(rows, key=lambda s: (s.start_date, s.id))

    @asynccontextmanager
    async def lock(self, sprint_id: int) -> AsyncIterator[None]:
        if sprint_id not in self.store.sprints:
            # Nothing to serialize; the caller's lookup reports the missing sprint
            yield
            return
        lock = self.store.sprint_locks.setdefault(sprint_id, asyncio.Lock())
        async with lock:
            yield


class MemoryAllocationRepository(AllocationRepository):
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    async def create(self, data: dict[str, Any]) -> AllocationRead:
        if await self.find(data["sprint_id"], data["project_id"]) is not None:
            raise DuplicateAllocationError(
                f"Project {data['project_id']} is already allocated to sprint {data['sprint_id']}",
                sprint_id=data["sprint_id"],
                project_id=data["project_id"],
            )
        now = _now()
        allocation = AllocationRead(**data, id=self.store.next_id("allocation"), created_at=now, updated_at=now)
        self.store.allocations[allocation.id] = allocation
        return allocation.model_copy()

    async def get(self, allocation_id: int) -> AllocationRead | None:
        allocation = self.store.allocations.get(allocation_id)
        return allocation.model_copy() if allocation else None

    async def find(self, sprint_id: int, project_id: int) -> AllocationRead | None:
        for allocation in self.store.allocations.values():
            if allocation.sprint_id == sprint_id and allocation.project_id == project_id:
                return allocation.model_copy()
        return None

    async def update(self, allocation_id: int, changes: dict[str, Any]) -> AllocationRead:
        current = self.store.allocations.get(allocation_id)
        if current is None:
            raise NotFoundError(
                f"Allocation {allocation_id} not found", entity="allocation", entity_id=allocation_id
            )
        updated = AllocationRead.model_validate({**current.model_dump(), **changes, "updated_at": _now()})
        self.store.allocations[allocation_id] = updated
        return updated.model_copy()

    async def delete(self, allocation_id: int) -> None:
        if self.store.allocations.pop(allocation_id, None) is None:
            raise NotFoundError(
                f"Allocation {allocation_id} not found", entity="allocation", entity_id=allocation_id
            )

    async def list_for_sprint(self, sprint_id: int) -> list[AllocationRead]:
        return [a.model_copy() for a in self.store.allocations.values() if a.sprint_id == sprint_id]

    async def list_for_project(self, project_id: int) -> list[AllocationRead]:
        return [a.model_copy() for a in self.store.allocations.values() if a.project_id == project_id]

    async def total_points(self, sprint_id: int, exclude_allocation_id: int | None = None) -> int:
        return sum(
            a.allocated_points
            for a in self.store.allocations.values()
            if a.sprint_id == sprint_id and a.id != exclude_allocation_id
        )


class MemoryStorage(Storage):
    """Storage over an InMemoryStore. Writes are applied immediately; there is no rollback."""

    name = "memory"

    def __init__(self, store: InMemoryStore | None = None) -> None:
        self.store = store or InMemoryStore()

    async def start(self, seed_weights: PriorityWeights) -> None:
        if self.store.weights is None:
            self.store.weights = seed_weights.model_copy()

    def repositories(self) -> Repositories:
        return Repositories(
            weights=MemoryWeightsRepository(self.store),
            projects=MemoryProjectRepository(self.store),
            sprints=MemorySprintRepository(self.store),
            allocations=MemoryAllocationRepository(self.store),
        )

    @asynccontextmanager
    async def session(self) -> AsyncIterator[Repositories]:
        yield self.repositories()
