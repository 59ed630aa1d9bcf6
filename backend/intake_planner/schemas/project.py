"""Project schemas."""
from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, EmailStr, Field

from intake_planner.models.project import FrequencyUnit, ProjectStatus, UrgencyLevel
from intake_planner.models.sprint import AllocationStatus, SprintStatus


class ProjectCreate(BaseModel):
    requesting_department: str = Field(..., min_length=1, max_length=100)
    title: str = Field(..., min_length=1, max_length=255)
    short_description: str | None = None
    problem_description: str = Field(..., min_length=1)
    context: str | None = None

    impact_categories: list[str] | None = None
    impact_description: str | None = None
    impact_score: int = Field(..., ge=1, le=5)
    frequency_description: str | None = None
    # Either a structured frequency or a manual score is required
    frequency_number: float | None = Field(None, gt=0)
    frequency_unit: FrequencyUnit | None = None
    frequency_score: int | None = Field(None, ge=1, le=5)
    urgency_level: UrgencyLevel

    has_external_dependencies: bool = False
    dependencies_detail: str | None = None
    other_departments_involved: str | None = None

    contact_name: str = Field(..., min_length=1, max_length=255)
    contact_department: str | None = None
    contact_email: EmailStr | None = None
    contact_phone: str | None = None


class ProjectCreated(BaseModel):
    id: int
    score_raw: int
    score_weighted: float


class ProjectRead(BaseModel):
    id: int
    version: int = 1
    created_at: datetime | None = None
    updated_at: datetime | None = None

    requesting_department: str
    title: str
    short_description: str | None = None
    problem_description: str
    context: str | None = None

    impact_categories: list[str] | None = None
    impact_description: str | None = None
    impact_score: int
    frequency_description: str | None = None
    frequency_number: float | None = None
    frequency_unit: FrequencyUnit | None = None
    frequency_score: int
    urgency_level: UrgencyLevel
    urgency_score: int

    impact_score_considered: int | None = None
    frequency_score_considered: int | None = None
    urgency_level_considered: UrgencyLevel | None = None
    impact_weight_custom: float | None = None
    frequency_weight_custom: float | None = None
    urgency_weight_custom: float | None = None

    score_raw: int
    score_weighted: float

    has_external_dependencies: bool = False
    dependencies_detail: str | None = None
    other_departments_involved: str | None = None

    contact_name: str
    contact_department: str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None

    status: ProjectStatus = ProjectStatus.NEW
    analysis_started_at: datetime | None = None
    development_started_at: datetime | None = None
    implemented_at: datetime | None = None
    closed_at: datetime | None = None
    management_comments: str | None = None

    development_points: int | None = None
    functional_points: int | None = None
    user_points: int | None = None
    is_reviewed_by_team: bool = False
    reviewed_at: datetime | None = None

    class Config:
        from_attributes = True


class ProjectReview(BaseModel):
    """Team review. An explicit null clears an override; omitted fields are left alone."""

    impact_score_considered: int | None = Field(None, ge=1, le=5)
    frequency_score_considered: int | None = Field(None, ge=1, le=5)
    urgency_level_considered: UrgencyLevel | None = None
    impact_weight_custom: float | None = Field(None, ge=0, le=1)
    frequency_weight_custom: float | None = Field(None, ge=0, le=1)
    urgency_weight_custom: float | None = Field(None, ge=0, le=1)
    frequency_number: float | None = Field(None, gt=0)
    frequency_unit: FrequencyUnit | None = None
    development_points: int | None = Field(None, ge=0)
    functional_points: int | None = Field(None, ge=0)
    user_points: int | None = Field(None, ge=0)
    management_comments: str | None = None


class ProjectStatusUpdate(BaseModel):
    status: ProjectStatus
    analysis_started_at: datetime | None = None
    development_started_at: datetime | None = None
    implemented_at: datetime | None = None
    closed_at: datetime | None = None
    management_comments: str | None = None


ProjectSortField = Literal["score_weighted", "score_raw", "created_at"]


class ProjectFilters(BaseModel):
    department: str | None = None
    status: list[ProjectStatus] | None = None
    search: str | None = None
    min_score: float | None = None
    max_score: float | None = None
    sort_by: ProjectSortField = "score_weighted"
    sort_desc: bool = True
    limit: int | None = Field(None, ge=1)
    offset: int = Field(0, ge=0)


class PointsConversion(BaseModel):
    points: int
    days: float
    label: str


class ProjectAllocationRead(BaseModel):
    """One allocation of a project, with the sprint it belongs to."""

    allocation_id: int
    sprint_id: int
    sprint_name: str
    sprint_status: SprintStatus
    start_date: date
    end_date: date
    allocated_points: int
    allocation_status: AllocationStatus
    comments: str | None = None
