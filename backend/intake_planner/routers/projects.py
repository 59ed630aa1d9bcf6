"""Project API routes."""
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Query, status

from intake_planner.deps import ReposDep, SettingsDep, TicketingDep
from intake_planner.engine.points import conversion_table
from intake_planner.models.project import ProjectStatus
from intake_planner.schemas.project import (
    PointsConversion,
    ProjectAllocationRead,
    ProjectCreate,
    ProjectCreated,
    ProjectFilters,
    ProjectRead,
    ProjectReview,
    ProjectSortField,
    ProjectStatusUpdate,
)
from intake_planner.services.projects import ProjectService
from intake_planner.services.ticketing import dispatch_project_ticket

router = APIRouter(prefix="/projects", tags=["projects"])


@router.post("", response_model=ProjectCreated, status_code=status.HTTP_201_CREATED)
async def create_project(
    data: ProjectCreate,
    background_tasks: BackgroundTasks,
    repos: ReposDep,
    settings: SettingsDep,
    ticketing: TicketingDep,
):
    project = await ProjectService(repos, settings).create(data)
    background_tasks.add_task(dispatch_project_ticket, ticketing, project)
    return ProjectCreated(id=project.id, score_raw=project.score_raw, score_weighted=project.score_weighted)


@router.get("", response_model=list[ProjectRead])
async def list_projects(
    repos: ReposDep,
    settings: SettingsDep,
    department: str | None = None,
    status_filter: Annotated[list[ProjectStatus] | None, Query(alias="status")] = None,
    search: str | None = None,
    min_score: float | None = None,
    max_score: float | None = None,
    sort_by: ProjectSortField = "score_weighted",
    sort_desc: bool = True,
    limit: Annotated[int | None, Query(ge=1)] = None,
    offset: Annotated[int, Query(ge=0)] = 0,
):
    filters = ProjectFilters(
        department=department,
        status=status_filter,
        search=search,
        min_score=min_score,
        max_score=max_score,
        sort_by=sort_by,
        sort_desc=sort_desc,
        limit=limit,
        offset=offset,
    )
    return await ProjectService(repos, settings).list_projects(filters)


@router.get("/top", response_model=list[ProjectRead])
async def top_projects(repos: ReposDep, settings: SettingsDep, n: int = 10):
    return await ProjectService(repos, settings).top(n)


@router.get("/points-conversion", response_model=list[PointsConversion])
async def points_conversion():
    return conversion_table()


@router.get("/{project_id}", response_model=ProjectRead)
async def get_project(project_id: int, repos: ReposDep, settings: SettingsDep):
    return await ProjectService(repos, settings).get(project_id)


@router.patch("/{project_id}/review", response_model=ProjectRead)
async def review_project(project_id: int, data: ProjectReview, repos: ReposDep, settings: SettingsDep):
    return await ProjectService(repos, settings).review(project_id, data)


@router.patch("/{project_id}/status", response_model=ProjectRead)
async def update_project_status(project_id: int, data: ProjectStatusUpdate, repos: ReposDep, settings: SettingsDep):
    return await ProjectService(repos, settings).update_status(project_id, data)


@router.get("/{project_id}/allocations", response_model=list[ProjectAllocationRead])
async def list_project_allocations(project_id: int, repos: ReposDep, settings: SettingsDep):
    return await ProjectService(repos, settings).list_allocations(project_id)
