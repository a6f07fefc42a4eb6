"""
Resolution Models for Monthly Zen.

Monthly and yearly resolutions are kept as two logically distinct
entities with identical columns. Progress is derived from linked tasks
and never stored. Archiving is a soft delete (``archived_at``); rows are
only removed on an explicit hard delete.
"""

from datetime import UTC, datetime
from enum import StrEnum

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, Text

from src.models.base import Base


class ResolutionKind(StrEnum):
    """Which resolution table a record (or a task link) refers to."""

    MONTHLY = "monthly"
    YEARLY = "yearly"


class ResolutionCategory(StrEnum):
    """Categories offered to users when creating a resolution."""

    HEALTH = "health"
    CAREER = "career"
    LEARNING = "learning"
    FINANCE = "finance"
    RELATIONSHIPS = "relationships"
    PERSONAL = "personal"
    PRODUCTIVITY = "productivity"
    OTHER = "other"


class ResolutionColumns:
    """Columns shared by both resolution tables."""

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False, index=True)

    text = Column(Text, nullable=False)
    category = Column(String(50), nullable=False, default=ResolutionCategory.OTHER.value)
    resolution_type = Column(String(10), nullable=False)
    priority = Column(Integer, nullable=False, default=2)  # 1=high, 2=medium, 3=low

    start_date = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    target_date = Column(DateTime(timezone=True), nullable=True)
    is_recurring = Column(Boolean, nullable=False, default=False)
    recurring_interval = Column(String(20), nullable=True)  # monthly | weekly

    is_achieved = Column(Boolean, nullable=False, default=False)
    achieved_at = Column(DateTime(timezone=True), nullable=True)
    archived_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<{type(self).__name__}(id={self.id}, user_id={self.user_id}, "
            f"category={self.category}, archived={self.archived_at is not None})>"
        )


class MonthlyResolution(ResolutionColumns, Base):
    """A resolution scoped to a single month."""

    __tablename__ = "monthly_resolutions"
    __table_args__ = (Index("idx_monthly_resolution_user_created", "user_id", "created_at"),)

    kind = ResolutionKind.MONTHLY


class YearlyResolution(ResolutionColumns, Base):
    """A resolution spanning a calendar year."""

    __tablename__ = "yearly_resolutions"
    __table_args__ = (Index("idx_yearly_resolution_user_start", "user_id", "start_date"),)

    kind = ResolutionKind.YEARLY


RESOLUTION_MODELS: dict[ResolutionKind, type[MonthlyResolution] | type[YearlyResolution]] = {
    ResolutionKind.MONTHLY: MonthlyResolution,
    ResolutionKind.YEARLY: YearlyResolution,
}


__all__ = [
    "ResolutionKind",
    "ResolutionCategory",
    "MonthlyResolution",
    "YearlyResolution",
    "RESOLUTION_MODELS",
]
