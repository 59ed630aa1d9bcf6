"""Project (development request) model."""
from enum import Enum as PyEnum

from sqlalchemy import Boolean, DateTime, Enum, Float, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from intake_planner.database import Base


class UrgencyLevel(str, PyEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class FrequencyUnit(str, PyEnum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class ProjectStatus(str, PyEnum):
    NEW = "new"
    UNDER_ANALYSIS = "under_analysis"
    PRIORITIZED = "prioritized"
    IN_DEVELOPMENT = "in_development"
    IN_TESTING = "in_testing"
    IMPLEMENTED = "implemented"
    MAINTENANCE = "maintenance"
    CLOSED = "closed"
    REJECTED = "rejected"


def _enum_values(enum_cls: type[PyEnum]) -> list[str]:
    return [m.value for m in enum_cls]


class Project(Base):
    """Development request with its priority inputs and computed scores."""

    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    # Bumped on every write; recalculation compares it to detect lost updates
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    requesting_department: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    short_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    problem_description: Mapped[str] = mapped_column(Text, nullable=False)
    context: Mapped[str | None] = mapped_column(Text, nullable=True)

    impact_categories: Mapped[list[str] | None] = mapped_column(JSONB, nullable=True)
    impact_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    impact_score: Mapped[int] = mapped_column(Integer, nullable=False)
    frequency_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    frequency_number: Mapped[float | None] = mapped_column(Float, nullable=True)
    frequency_unit: Mapped[str | None] = mapped_column(
        Enum(FrequencyUnit, values_callable=_enum_values, native_enum=False),
        nullable=True,
    )
    frequency_score: Mapped[int] = mapped_column(Integer, nullable=False)
    urgency_level: Mapped[str] = mapped_column(
        Enum(UrgencyLevel, values_callable=_enum_values, native_enum=False),
        nullable=False,
    )
    urgency_score: Mapped[int] = mapped_column(Integer, nullable=False)

    # Team-reviewed replacements, each independent of the others
    impact_score_considered: Mapped[int | None] = mapped_column(Integer, nullable=True)
    frequency_score_considered: Mapped[int | None] = mapped_column(Integer, nullable=True)
    urgency_level_considered: Mapped[str | None] = mapped_column(
        Enum(UrgencyLevel, values_callable=_enum_values, native_enum=False),
        nullable=True,
    )
    # Per-project overrides of the global weights
    impact_weight_custom: Mapped[float | None] = mapped_column(Float, nullable=True)
    frequency_weight_custom: Mapped[float | None] = mapped_column(Float, nullable=True)
    urgency_weight_custom: Mapped[float | None] = mapped_column(Float, nullable=True)

    score_raw: Mapped[int] = mapped_column(Integer, nullable=False)
    score_weighted: Mapped[float] = mapped_column(Float, nullable=False, index=True)

    has_external_dependencies: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    dependencies_detail: Mapped[str | None] = mapped_column(Text, nullable=True)
    other_departments_involved: Mapped[str | None] = mapped_column(Text, nullable=True)

    contact_name: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_department: Mapped[str | None] = mapped_column(String(100), nullable=True)
    contact_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    contact_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)

    status: Mapped[str] = mapped_column(
        Enum(ProjectStatus, values_callable=_enum_values, native_enum=False),
        nullable=False,
        default=ProjectStatus.NEW,
        index=True,
    )
    analysis_started_at: Mapped[DateTime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    development_started_at: Mapped[DateTime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    implemented_at: Mapped[DateTime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    closed_at: Mapped[DateTime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    management_comments: Mapped[str | None] = mapped_column(Text, nullable=True)

    development_points: Mapped[int | None] = mapped_column(Integer, nullable=True)
    functional_points: Mapped[int | None] = mapped_column(Integer, nullable=True)
    user_points: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_reviewed_by_team: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    reviewed_at: Mapped[DateTime | None] = mapped_column(DateTime(timezone=True), nullable=True)
