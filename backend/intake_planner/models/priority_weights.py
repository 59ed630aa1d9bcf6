"""Priority weights model."""
from sqlalchemy import Boolean, DateTime, Float, Index, func, text
from sqlalchemy.orm import Mapped, mapped_column

from intake_planner.database import Base


class PriorityWeightsConfig(Base):
    """Global weighting of the three priority criteria. Only one row is active."""

    __tablename__ = "priority_weights"
    __table_args__ = (
        # At most one active configuration
        Index(
            "uq_priority_weights_active",
            "is_active",
            unique=True,
            postgresql_where=text("is_active"),
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    impact_weight: Mapped[float] = mapped_column(Float, nullable=False)
    frequency_weight: Mapped[float] = mapped_column(Float, nullable=False)
    urgency_weight: Mapped[float] = mapped_column(Float, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
