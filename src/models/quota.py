"""
Generation Quota Models for Monthly Zen.

GenerationQuota holds one row per user per period. Rows are superseded,
never deleted: when a period rolls over the expired row is copied into
QuotaHistory and a fresh row is inserted for the new period.

Invariants enforced by the database (not just application code):
- 0 <= generations_used <= total_allowed   (CHECK constraint)
- one quota row per (user_id, month_year)  (UNIQUE)
- one history row per (user_id, month_year) (UNIQUE), so a period is
  archived exactly once even under concurrent rollover
"""

from datetime import UTC, datetime

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Index,
    Integer,
    String,
    UniqueConstraint,
)

from src.models.base import Base


class GenerationQuota(Base):
    """
    Per-user, per-period allowance of AI plan generations.

    Attributes:
        id: Primary key (monotonic; "latest quota" means highest id)
        user_id: Owner
        month_year: Period key, first day of the period's month ("YYYY-MM-01")
        total_allowed: Allowance for the period (top-ups add to it)
        generations_used: Generations consumed so far
        total_requested: Sum of manual top-ups during the period
        resets_on: Date on which the period ends and a new one begins
    """

    __tablename__ = "generation_quota"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False, index=True)
    month_year = Column(String(10), nullable=False)
    total_allowed = Column(Integer, nullable=False)
    generations_used = Column(Integer, nullable=False, default=0)
    total_requested = Column(Integer, nullable=False, default=0)
    resets_on = Column(Date, nullable=False)
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("user_id", "month_year", name="uq_quota_user_period"),
        CheckConstraint(
            "generations_used >= 0 AND generations_used <= total_allowed",
            name="ck_quota_usage_bounds",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<GenerationQuota(id={self.id}, user_id={self.user_id}, month_year={self.month_year}, "
            f"used={self.generations_used}/{self.total_allowed}, resets_on={self.resets_on})>"
        )


class QuotaHistory(Base):
    """Append-only archive of a finished quota period."""

    __tablename__ = "quota_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False)
    period_start = Column(Date, nullable=False)
    period_end = Column(Date, nullable=False)
    month_year = Column(String(10), nullable=False)
    total_allowed = Column(Integer, nullable=False)
    generations_used = Column(Integer, nullable=False)
    total_requested = Column(Integer, nullable=False, default=0)
    was_auto_reset = Column(Date, nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("user_id", "month_year", name="uq_quota_history_user_period"),
        Index("idx_quota_history_user_created", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<QuotaHistory(user_id={self.user_id}, month_year={self.month_year}, "
            f"used={self.generations_used}/{self.total_allowed})>"
        )


__all__ = ["GenerationQuota", "QuotaHistory"]
