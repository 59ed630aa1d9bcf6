"""Sprint and allocation API routes."""
from datetime import date
from typing import Annotated

from fastapi import APIRouter, Query, Response, status

from intake_planner.deps import ReposDep, SettingsDep
from intake_planner.models.sprint import SprintStatus
from intake_planner.schemas.project import ProjectRead
from intake_planner.schemas.sprint import (
    AllocationCreate,
    AllocationRead,
    AllocationUpdate,
    SprintCreate,
    SprintDetail,
    SprintFilters,
    SprintRead,
    SprintSummary,
    SprintUpdate,
)
from intake_planner.services.capacity import CapacityAllocator

router = APIRouter(prefix="/sprints", tags=["sprints"])
allocations_router = APIRouter(prefix="/allocations", tags=["sprints"])


@router.post("", response_model=SprintRead, status_code=status.HTTP_201_CREATED)
async def create_sprint(data: SprintCreate, repos: ReposDep, settings: SettingsDep):
    return await CapacityAllocator(repos, settings).create_sprint(data)


@router.get("", response_model=list[SprintSummary])
async def list_sprints(
    repos: ReposDep,
    settings: SettingsDep,
    status_filter: Annotated[list[SprintStatus] | None, Query(alias="status")] = None,
    start_from: date | None = None,
    start_to: date | None = None,
    end_from: date | None = None,
    end_to: date | None = None,
    search: str | None = None,
):
    filters = SprintFilters(
        status=status_filter,
        start_from=start_from,
        start_to=start_to,
        end_from=end_from,
        end_to=end_to,
        search=search,
    )
    return await CapacityAllocator(repos, settings).list_sprint_summaries(filters)


@router.get("/{sprint_id}", response_model=SprintDetail)
async def get_sprint(sprint_id: int, repos: ReposDep, settings: SettingsDep):
    return await CapacityAllocator(repos, settings).get_sprint_detail(sprint_id)


@router.patch("/{sprint_id}", response_model=SprintRead)
async def update_sprint(sprint_id: int, data: SprintUpdate, repos: ReposDep, settings: SettingsDep):
    return await CapacityAllocator(repos, settings).update_sprint(sprint_id, data)


@router.delete("/{sprint_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_sprint(sprint_id: int, repos: ReposDep, settings: SettingsDep):
    await CapacityAllocator(repos, settings).delete_sprint(sprint_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{sprint_id}/summary", response_model=SprintSummary)
async def get_sprint_summary(sprint_id: int, repos: ReposDep, settings: SettingsDep):
    return await CapacityAllocator(repos, settings).get_sprint_summary(sprint_id)


@router.get("/{sprint_id}/backlog", response_model=list[ProjectRead])
async def get_sprint_backlog(sprint_id: int, repos: ReposDep, settings: SettingsDep):
    return await CapacityAllocator(repos, settings).get_sprint_backlog(sprint_id)


@router.post("/{sprint_id}/allocations", response_model=AllocationRead, status_code=status.HTTP_201_CREATED)
async def create_allocation(sprint_id: int, data: AllocationCreate, repos: ReposDep, settings: SettingsDep):
    return await CapacityAllocator(repos, settings).allocate(
        sprint_id,
        data.project_id,
        data.allocated_points,
        status=data.sprint_status,
        comments=data.comments,
    )


@allocations_router.patch("/{allocation_id}", response_model=AllocationRead)
async def update_allocation(allocation_id: int, data: AllocationUpdate, repos: ReposDep, settings: SettingsDep):
    return await CapacityAllocator(repos, settings).update_allocation(
        allocation_id,
        points=data.allocated_points,
        status=data.sprint_status,
        comments=data.comments,
    )


@allocations_router.delete("/{allocation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_allocation(allocation_id: int, repos: ReposDep, settings: SettingsDep):
    await CapacityAllocator(repos, settings).delete_allocation(allocation_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
