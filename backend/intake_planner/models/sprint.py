"""Sprint and sprint allocation models."""
from enum import Enum as PyEnum

from sqlalchemy import Date, DateTime, Enum, ForeignKey, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from intake_planner.database import Base
from intake_planner.models.project import _enum_values


class SprintStatus(str, PyEnum):
    PLANNED = "planned"
    ONGOING = "ongoing"
    CLOSED = "closed"


class AllocationStatus(str, PyEnum):
    PLANNED = "planned"
    IN_PROGRESS = "in_progress"
    DONE = "done"
    CARRIED_OVER = "carried_over"


class Sprint(Base):
    """Time-boxed sprint with a fixed point budget."""

    __tablename__ = "sprints"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    start_date: Mapped[Date] = mapped_column(Date, nullable=False)
    end_date: Mapped[Date] = mapped_column(Date, nullable=False)
    capacity_points: Mapped[int] = mapped_column(Integer, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        Enum(SprintStatus, values_callable=_enum_values, native_enum=False),
        nullable=False,
        default=SprintStatus.PLANNED,
    )

    allocations: Mapped[list["SprintAllocation"]] = relationship(
        "SprintAllocation",
        back_populates="sprint",
        passive_deletes=True,
    )


class SprintAllocation(Base):
    """Points from one sprint's capacity assigned to one project."""

    __tablename__ = "sprint_allocations"
    __table_args__ = (
        UniqueConstraint("sprint_id", "project_id", name="uq_sprint_allocations_sprint_project"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    # RESTRICT: a sprint with allocations cannot be deleted
    sprint_id: Mapped[int] = mapped_column(
        ForeignKey("sprints.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    project_id: Mapped[int] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    allocated_points: Mapped[int] = mapped_column(Integer, nullable=False)
    sprint_status: Mapped[str] = mapped_column(
        Enum(AllocationStatus, values_callable=_enum_values, native_enum=False),
        nullable=False,
        default=AllocationStatus.PLANNED,
    )
    comments: Mapped[str | None] = mapped_column(Text, nullable=True)

    sprint: Mapped["Sprint"] = relationship("Sprint", back_populates="allocations")
