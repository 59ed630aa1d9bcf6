"""Persistence interfaces shared by the database and in-memory backends."""
from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from typing import Any

from intake_planner.schemas.project import ProjectFilters, ProjectRead
from intake_planner.schemas.sprint import AllocationRead, SprintFilters, SprintRead
from intake_planner.schemas.weights import PriorityWeights


class WeightsRepository(ABC):
    @abstractmethod
    async def get_active(self) -> PriorityWeights | None: ...

    @abstractmethod
    async def replace_active(self, weights: PriorityWeights) -> PriorityWeights:
        """Swap all three components of the active configuration in one write."""


class ProjectRepository(ABC):
    @abstractmethod
    async def create(self, data: dict[str, Any]) -> ProjectRead: ...

    @abstractmethod
    async def get(self, project_id: int) -> ProjectRead | None: ...

    @abstractmethod
    async def update(
        self, project_id: int, changes: dict[str, Any], expected_version: int | None = None
    ) -> ProjectRead:
        """
        Apply a partial update and bump the row version. NotFoundError if missing.

        With expected_version the write only happens if the row is still at
        that version, else ConflictError.
        """

    @abstractmethod
    async def update_weighted_score(self, project_id: int, score: float, expected_version: int) -> ProjectRead:
        """Write score_weighted only if the row is still at expected_version, else ConflictError."""

    @abstractmethod
    async def list(self, filters: ProjectFilters | None = None) -> list[ProjectRead]: ...


class SprintRepository(ABC):
    @abstractmethod
    async def create(self, data: dict[str, Any]) -> SprintRead: ...

    @abstractmethod
    async def get(self, sprint_id: int) -> SprintRead | None: ...

    @abstractmethod
    async def update(self, sprint_id: int, changes: dict[str, Any]) -> SprintRead: ...

    @abstractmethod
    async def delete(self, sprint_id: int) -> None: ...

    @abstractmethod
    async def list(self, filters: SprintFilters | None = None) -> list[SprintRead]:
        """Sprints ordered by start date."""

    @abstractmethod
    def lock(self, sprint_id: int) -> AbstractAsyncContextManager[None]:
        """Serialize capacity check-then-write for one sprint."""


class AllocationRepository(ABC):
    @abstractmethod
    async def create(self, data: dict[str, Any]) -> AllocationRead:
        """DuplicateAllocationError if the (sprint, project) pair is taken."""

    @abstractmethod
    async def get(self, allocation_id: int) -> AllocationRead | None: ...

    @abstractmethod
    async def find(self, sprint_id: int, project_id: int) -> AllocationRead | None: ...

    @abstractmethod
    async def update(self, allocation_id: int, changes: dict[str, Any]) -> AllocationRead: ...

    @abstractmethod
    async def delete(self, allocation_id: int) -> None: ...

    @abstractmethod
    async def list_for_sprint(self, sprint_id: int) -> list[AllocationRead]: ...

    @abstractmethod
    async def list_for_project(self, project_id: int) -> list[AllocationRead]: ...

    @abstractmethod
    async def total_points(self, sprint_id: int, exclude_allocation_id: int | None = None) -> int: ...


@dataclass
class Repositories:
    """Repositories bound to one unit of work."""

    weights: WeightsRepository
    projects: ProjectRepository
    sprints: SprintRepository
    allocations: AllocationRepository


class Storage(ABC):
    """A storage backend, chosen once at start-up."""

    name: str

    @abstractmethod
    async def start(self, seed_weights: PriorityWeights) -> None:
        """Prepare the backend and make sure an active weight configuration exists."""

    @abstractmethod
    def session(self) -> AbstractAsyncContextManager[Repositories]:
        """One unit of work: committed on success, rolled back on error."""

    async def close(self) -> None:
        return None
