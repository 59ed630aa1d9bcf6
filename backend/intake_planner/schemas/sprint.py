"""Sprint and allocation schemas."""
from datetime import date, datetime

from pydantic import BaseModel, Field

from intake_planner.models.sprint import AllocationStatus, SprintStatus
from intake_planner.schemas.project import ProjectRead


class SprintCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    start_date: date
    end_date: date
    capacity_points: int = Field(..., ge=0)
    notes: str | None = None
    status: SprintStatus = SprintStatus.PLANNED


class SprintUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    start_date: date | None = None
    end_date: date | None = None
    capacity_points: int | None = Field(None, ge=0)
    notes: str | None = None
    status: SprintStatus | None = None


class SprintRead(BaseModel):
    id: int
    name: str
    start_date: date
    end_date: date
    capacity_points: int
    notes: str | None = None
    status: SprintStatus = SprintStatus.PLANNED
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class SprintFilters(BaseModel):
    status: list[SprintStatus] | None = None
    start_from: date | None = None
    start_to: date | None = None
    end_from: date | None = None
    end_to: date | None = None
    search: str | None = None


class SprintSummary(BaseModel):
    sprint: SprintRead
    allocated_points: int
    available_points: int


class AllocationCreate(BaseModel):
    project_id: int
    # Sign is checked by CapacityAllocator
    allocated_points: int
    sprint_status: AllocationStatus | None = None
    comments: str | None = None


class AllocationUpdate(BaseModel):
    allocated_points: int | None = None
    sprint_status: AllocationStatus | None = None
    comments: str | None = None


class AllocationRead(BaseModel):
    id: int
    sprint_id: int
    project_id: int
    allocated_points: int
    sprint_status: AllocationStatus = AllocationStatus.PLANNED
    comments: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class AllocationWithProject(BaseModel):
    allocation: AllocationRead
    project: ProjectRead


class SprintDetail(BaseModel):
    summary: SprintSummary
    allocations: list[AllocationWithProject]
    backlog: list[ProjectRead]
