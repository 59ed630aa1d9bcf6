"""SQLAlchemy backend."""
import logging
from contextlib import asynccontextmanager, contextmanager
from typing import Any, AsyncIterator, Iterator

from sqlalchemy import Select, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from intake_planner.database import create_session_maker, init_db
from intake_planner.errors import ConflictError, DuplicateAllocationError, NotFoundError, StorageError
from intake_planner.models.priority_weights import PriorityWeightsConfig
from intake_planner.models.project import Project
from intake_planner.models.sprint import Sprint, SprintAllocation
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

logger = logging.getLogger(__name__)

_SORT_COLUMNS = {
    "score_weighted": Project.score_weighted,
    "score_raw": Project.score_raw,
    "created_at": Project.created_at,
}


@contextmanager
def _translate_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as e:
        raise StorageError(f"Storage failure during {operation}", operation=operation) from e


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def build_project_query(filters: ProjectFilters | None = None) -> Select:
    """SELECT for a filtered, sorted, paginated project listing."""
    filters = filters or ProjectFilters()
    query = select(Project)
    if filters.department:
        query = query.where(Project.requesting_department == filters.department)
    if filters.status:
        query = query.where(Project.status.in_([s.value for s in filters.status]))
    if filters.search:
        pattern = f"%{_escape_like(filters.search)}%"
        query = query.where(
            Project.title.ilike(pattern, escape="\\") | Project.short_description.ilike(pattern, escape="\\")
        )
    if filters.min_score is not None:
        query = query.where(Project.score_weighted >= filters.min_score)
    if filters.max_score is not None:
        query = query.where(Project.score_weighted <= filters.max_score)
    column = _SORT_COLUMNS[filters.sort_by]
    query = query.order_by(column.desc() if filters.sort_desc else column.asc(), Project.id.asc())
    if filters.offset:
        query = query.offset(filters.offset)
    if filters.limit is not None:
        query = query.limit(filters.limit)
    return query


def build_sprint_query(filters: SprintFilters | None = None) -> Select:
    filters = filters or SprintFilters()
    query = select(Sprint)
    if filters.status:
        query = query.where(Sprint.status.in_([s.value for s in filters.status]))
    if filters.start_from:
        query = query.where(Sprint.start_date >= filters.start_from)
    if filters.start_to:
        query = query.where(Sprint.start_date <= filters.start_to)
    if filters.end_from:
        query = query.where(Sprint.end_date >= filters.end_from)
    if filters.end_to:
        query = query.where(Sprint.end_date <= filters.end_to)
    if filters.search:
        query = query.where(Sprint.name.ilike(f"%{_escape_like(filters.search)}%", escape="\\"))
    return query.order_by(Sprint.start_date.asc(), Sprint.id.asc())


class SqlWeightsRepository(WeightsRepository):
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_active(self) -> PriorityWeights | None:
        with _translate_errors("get_active_weights"):
            result = await self.db.execute(
                select(PriorityWeightsConfig).where(PriorityWeightsConfig.is_active.is_(True))
            )
            row = result.scalar_one_or_none()
        return PriorityWeights.model_validate(row) if row else None

    async def replace_active(self, weights: PriorityWeights) -> PriorityWeights:
        with _translate_errors("replace_active_weights"):
            result = await self.db.execute(
                update(PriorityWeightsConfig)
                .where(PriorityWeightsConfig.is_active.is_(True))
                .values(**weights.model_dump())
            )
            if result.rowcount == 0:
                self.db.add(PriorityWeightsConfig(**weights.model_dump(), is_active=True))
            await self.db.flush()
        return weights.model_copy()


class SqlProjectRepository(ProjectRepository):
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _load(self, project_id: int) -> Project:
        project = await self.db.get(Project, project_id, populate_existing=True)
        if not project:
            raise NotFoundError(f"Project {project_id} not found", entity="project", entity_id=project_id)
        return project

    async def create(self, data: dict[str, Any]) -> ProjectRead:
        with _translate_errors("create_project"):
            project = Project(**data, version=1)
            self.db.add(project)
            await self.db.flush()
            await self.db.refresh(project)
        return ProjectRead.model_validate(project)

    async def get(self, project_id: int) -> ProjectRead | None:
        with _translate_errors("get_project"):
            project = await self.db.get(Project, project_id, populate_existing=True)
        return ProjectRead.model_validate(project) if project else None

    async def update(
        self, project_id: int, changes: dict[str, Any], expected_version: int | None = None
    ) -> ProjectRead:
        statement = update(Project).where(Project.id == project_id)
        if expected_version is not None:
            statement = statement.where(Project.version == expected_version)
        statement = statement.values(**changes, version=Project.version + 1, updated_at=func.now())
        with _translate_errors("update_project"):
            # Savepoint so a failed write leaves the surrounding transaction usable
            async with self.db.begin_nested():
                result = await self.db.execute(statement.execution_options(synchronize_session=False))
                if result.rowcount == 0:
                    await self._load(project_id)
                    raise ConflictError(
                        f"Project {project_id} was modified concurrently",
                        project_id=project_id,
                        expected_version=expected_version,
                    )
            project = await self._load(project_id)
        return ProjectRead.model_validate(project)

    async def update_weighted_score(self, project_id: int, score: float, expected_version: int) -> ProjectRead:
        with _translate_errors("update_weighted_score"):
            async with self.db.begin_nested():
                result = await self.db.execute(
                    update(Project)
                    .where(Project.id == project_id, Project.version == expected_version)
                    .values(score_weighted=score, version=Project.version + 1, updated_at=func.now())
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    raise ConflictError(
                        f"Project {project_id} changed during recalculation",
                        project_id=project_id,
                        expected_version=expected_version,
                    )
            project = await self._load(project_id)
        return ProjectRead.model_validate(project)

    async def list(self, filters: ProjectFilters | None = None) -> list[ProjectRead]:
        with _translate_errors("list_projects"):
            result = await self.db.execute(
                build_project_query(filters).execution_options(populate_existing=True)
            )
            rows = result.scalars().all()
        return [ProjectRead.model_validate(p) for p in rows]


class SqlSprintRepository(SprintRepository):
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _load(self, sprint_id: int) -> Sprint:
        sprint = await self.db.get(Sprint, sprint_id, populate_existing=True)
        if not sprint:
            raise NotFoundError(f"Sprint {sprint_id} not found", entity="sprint", entity_id=sprint_id)
        return sprint

    async def create(self, data: dict[str, Any]) -> SprintRead:
        with _translate_errors("create_sprint"):
            sprint = Sprint(**data)
            self.db.add(sprint)
            await self.db.flush()
            await self.db.refresh(sprint)
        return SprintRead.model_validate(sprint)

    async def get(self, sprint_id: int) -> SprintRead | None:
        with _translate_errors("get_sprint"):
            sprint = await self.db.get(Sprint, sprint_id, populate_existing=True)
        return SprintRead.model_validate(sprint) if sprint else None

    async def update(self, sprint_id: int, changes: dict[str, Any]) -> SprintRead:
        with _translate_errors("update_sprint"):
            sprint = await self._load(sprint_id)
            for key, value in changes.items():
                setattr(sprint, key, value)
            await self.db.flush()
            await self.db.refresh(sprint)
        return SprintRead.model_validate(sprint)

    async def delete(self, sprint_id: int) -> None:
        with _translate_errors("delete_sprint"):
            sprint = await self._load(sprint_id)
            await self.db.delete(sprint)
            await self.db.flush()

    async def list(self, filters: SprintFilters | None = None) -> list[SprintRead]:
        with _translate_errors("list_sprints"):
            result = await self.db.execute(build_sprint_query(filters))
            rows = result.scalars().all()
        return [SprintRead.model_validate(s) for s in rows]

    @asynccontextmanager
    async def lock(self, sprint_id: int) -> AsyncIterator[None]:
        # Row lock held until the request transaction ends
        with _translate_errors("lock_sprint"):
            await self.db.execute(select(Sprint.id).where(Sprint.id == sprint_id).with_for_update())
        yield


class SqlAllocationRepository(AllocationRepository):
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _load(self, allocation_id: int) -> SprintAllocation:
        allocation = await self.db.get(SprintAllocation, allocation_id, populate_existing=True)
        if not allocation:
            raise NotFoundError(
                f"Allocation {allocation_id} not found", entity="allocation", entity_id=allocation_id
            )
        return allocation

    async def create(self, data: dict[str, Any]) -> AllocationRead:
        allocation = SprintAllocation(**data)
        try:
            async with self.db.begin_nested():
                self.db.add(allocation)
                await self.db.flush()
        except IntegrityError as e:
            raise DuplicateAllocationError(
                f"Project {data['project_id']} is already allocated to sprint {data['sprint_id']}",
                sprint_id=data["sprint_id"],
                project_id=data["project_id"],
            ) from e
        except SQLAlchemyError as e:
            raise StorageError("Storage failure during create_allocation", operation="create_allocation") from e
        with _translate_errors("create_allocation"):
            await self.db.refresh(allocation)
        return AllocationRead.model_validate(allocation)

    async def get(self, allocation_id: int) -> AllocationRead | None:
        with _translate_errors("get_allocation"):
            allocation = await self.db.get(SprintAllocation, allocation_id, populate_existing=True)
        return AllocationRead.model_validate(allocation) if allocation else None

    async def find(self, sprint_id: int, project_id: int) -> AllocationRead | None:
        with _translate_errors("find_allocation"):
            result = await self.db.execute(
                select(SprintAllocation).where(
                    SprintAllocation.sprint_id == sprint_id,
                    SprintAllocation.project_id == project_id,
                )
            )
            allocation = result.scalar_one_or_none()
        return AllocationRead.model_validate(allocation) if allocation else None

    async def update(self, allocation_id: int, changes: dict[str, Any]) -> AllocationRead:
        with _translate_errors("update_allocation"):
            allocation = await self._load(allocation_id)
            for key, value in changes.items():
                setattr(allocation, key, value)
            await self.db.flush()
            await self.db.refresh(allocation)
        return AllocationRead.model_validate(allocation)

    async def delete(self, allocation_id: int) -> None:
        with _translate_errors("delete_allocation"):
            allocation = await self._load(allocation_id)
            await self.db.delete(allocation)
            await self.db.flush()

    async def list_for_sprint(self, sprint_id: int) -> list[AllocationRead]:
        with _translate_errors("list_sprint_allocations"):
            result = await self.db.execute(
                select(SprintAllocation)
                .where(SprintAllocation.sprint_id == sprint_id)
                .order_by(SprintAllocation.id)
            )
            rows = result.scalars().all()
        return [AllocationRead.model_validate(a) for a in rows]

    async def list_for_project(self, project_id: int) -> list[AllocationRead]:
        with _translate_errors("list_project_allocations"):
            result = await self.db.execute(
                select(SprintAllocation)
                .where(SprintAllocation.project_id == project_id)
                .order_by(SprintAllocation.id)
            )
            rows = result.scalars().all()
        return [AllocationRead.model_validate(a) for a in rows]

    async def total_points(self, sprint_id: int, exclude_allocation_id: int | None = None) -> int:
        query = select(func.coalesce(func.sum(SprintAllocation.allocated_points), 0)).where(
            SprintAllocation.sprint_id == sprint_id
        )
        if exclude_allocation_id is not None:
            query = query.where(SprintAllocation.id != exclude_allocation_id)
        with _translate_errors("sum_allocated_points"):
            result = await self.db.execute(query)
        return int(result.scalar_one())


class SqlStorage(Storage):
    name = "database"

    def __init__(self, engine: AsyncEngine) -> None:
        self.engine = engine
        self.session_maker = create_session_maker(engine)

    async def start(self, seed_weights: PriorityWeights) -> None:
        await init_db(self.engine)
        async with self.session() as repos:
            if await repos.weights.get_active() is None:
                await repos.weights.replace_active(seed_weights)
                logger.info("Seeded active priority weights: %s", seed_weights.model_dump())

    @asynccontextmanager
    async def session(self) -> AsyncIterator[Repositories]:
        async with self.session_maker() as db:
            try:
                yield Repositories(
                    weights=SqlWeightsRepository(db),
                    projects=SqlProjectRepository(db),
                    sprints=SqlSprintRepository(db),
                    allocations=SqlAllocationRepository(db),
                )
                with _translate_errors("commit"):
                    await db.commit()
            except Exception:
                await db.rollback()
                raise

    async def close(self) -> None:
        await self.engine.dispose()
