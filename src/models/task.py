"""
Plan Task Model for Monthly Zen.

Tasks are scheduled by the plan generator and owned by a monthly plan.
Only ``is_completed`` / ``completed_at`` change after scheduling; all
pattern analytics read this table by ``start_time`` window.

Resolution links live in ``task_resolution_links`` (one row per
task/resolution pair) instead of an array column on the task, so
set-membership queries are indexed and portable across databases.
"""

from datetime import UTC, datetime

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from src.models.base import Base


class PlanTask(Base):
    """
    A single scheduled task in a user's monthly plan.

    Attributes:
        id: Primary key
        user_id: Owner (external auth service id)
        plan_id: Monthly plan the task belongs to
        task_description: What to do
        focus_area: Category label used for focus-area analytics
        start_time / end_time: Scheduled slot (UTC)
        difficulty_level: simple | moderate | advanced (free text from generator)
        is_completed / completed_at: Completion state
    """

    __tablename__ = "plan_tasks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False, index=True)
    plan_id = Column(Integer, nullable=True, index=True)

    task_description = Column(Text, nullable=False, default="")
    focus_area = Column(String(50), nullable=True)

    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)

    difficulty_level = Column(String(20), nullable=True)
    scheduling_reason = Column(String(100), nullable=True)

    is_completed = Column(Boolean, default=False, nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    resolution_links = relationship(
        "TaskResolutionLink",
        back_populates="task",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        Index("idx_plan_task_user_start", "user_id", "start_time"),
        Index("idx_plan_task_user_focus", "user_id", "focus_area"),
    )

    @property
    def resolution_ids(self) -> list[int]:
        """Ids of resolutions this task supports, in link order."""
        return [link.resolution_id for link in self.resolution_links]

    def mark_completed(self, completed: bool = True) -> None:
        """Toggle completion, stamping ``completed_at`` when completing."""
        self.is_completed = completed
        self.completed_at = datetime.now(UTC) if completed else None

    def __repr__(self) -> str:
        return (
            f"<PlanTask(id={self.id}, user_id={self.user_id}, "
            f"focus_area={self.focus_area}, is_completed={self.is_completed})>"
        )


class TaskResolutionLink(Base):
    """
    Set membership of a task in a resolution.

    ``resolution_kind`` distinguishes monthly from yearly resolutions,
    which live in separate tables with independent id sequences.
    """

    __tablename__ = "task_resolution_links"

    id = Column(Integer, primary_key=True, autoincrement=True)
    task_id = Column(
        Integer,
        ForeignKey("plan_tasks.id", ondelete="CASCADE"),
        nullable=False,
    )
    resolution_kind = Column(String(10), nullable=False)  # monthly | yearly
    resolution_id = Column(Integer, nullable=False)
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    task = relationship("PlanTask", back_populates="resolution_links")

    __table_args__ = (
        UniqueConstraint("task_id", "resolution_kind", "resolution_id", name="uq_task_resolution"),
        Index("idx_link_resolution", "resolution_kind", "resolution_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<TaskResolutionLink(task_id={self.task_id}, "
            f"kind={self.resolution_kind}, resolution_id={self.resolution_id})>"
        )


__all__ = ["PlanTask", "TaskResolutionLink"]
