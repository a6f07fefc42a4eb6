"""
Resolution Service for Monthly Zen.

Manages monthly and yearly resolutions and derives their progress from
linked tasks. Progress is never stored:

    progress = round_half_up(100 * completed_linked / total_linked)

and is exactly 0 for a resolution with no linked tasks.

Ownership: every operation that takes a resolution or task id checks the
caller owns it first. A record owned by someone else is reported as not
found so its existence is not leaked.

Usage:
    service = ResolutionService(db)
    await service.link_task("user-1", ResolutionKind.YEARLY, 7, task_id=42)
    percent = await service.calculate_progress(ResolutionKind.YEARLY, 7)
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import case, delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from src.lib.database import translate_db_errors
from src.lib.exceptions import NotFoundError, ValidationError
from src.models.resolution import (
    RESOLUTION_MODELS,
    MonthlyResolution,
    ResolutionCategory,
    ResolutionKind,
    YearlyResolution,
)
from src.models.task import PlanTask, TaskResolutionLink

logger = logging.getLogger(__name__)

Resolution = MonthlyResolution | YearlyResolution

UPDATABLE_FIELDS = ("text", "category", "priority", "target_date", "is_achieved")
REQUIRED_FIELDS = ("text", "category", "priority", "is_achieved")


def progress_percent(completed: int, total: int) -> int:
    """Percentage of completed linked tasks, rounded half up; 0 when unlinked."""
    if total <= 0:
        return 0
    return int(100 * completed / total + 0.5)


@dataclass
class ResolutionProgress:
    """A resolution together with its derived progress."""

    resolution: Resolution
    progress_percent: int
    linked_task_count: int
    completed_task_count: int


@dataclass
class YearlySummary:
    """Headline numbers for a user's resolutions in one year."""

    year: int
    total_resolutions: int
    completed: int
    in_progress: int
    completion_rate: int
    average_progress: int


class ResolutionService:
    """CRUD and progress for monthly and yearly resolutions."""

    def __init__(self, db: Session):
        self.db = db

    # =========================================================================
    # Lookups
    # =========================================================================

    def _owned_resolution(self, user_id: str, kind: ResolutionKind, resolution_id: int) -> Resolution:
        model = RESOLUTION_MODELS[ResolutionKind(kind)]
        resolution = self.db.get(model, resolution_id)
        if resolution is None or resolution.user_id != user_id:
            raise NotFoundError("Resolution not found")
        return resolution

    def _owned_task(self, user_id: str, task_id: int) -> PlanTask:
        task = self.db.get(PlanTask, task_id)
        if task is None or task.user_id != user_id:
            raise NotFoundError("Task not found")
        return task

    async def get_resolution(self, user_id: str, kind: ResolutionKind, resolution_id: int) -> ResolutionProgress:
        """Fetch one owned resolution with its progress."""
        with translate_db_errors("get_resolution"):
            resolution = self._owned_resolution(user_id, kind, resolution_id)
            total, completed = self._link_counts(resolution.kind, resolution.id)
        return ResolutionProgress(
            resolution=resolution,
            progress_percent=progress_percent(completed, total),
            linked_task_count=total,
            completed_task_count=completed,
        )

    # =========================================================================
    # Progress
    # =========================================================================

    def _link_counts(self, kind: ResolutionKind, resolution_id: int) -> tuple[int, int]:
        stmt = (
            select(
                func.count(PlanTask.id),
                func.sum(case((PlanTask.is_completed.is_(True), 1), else_=0)),
            )
            .join(TaskResolutionLink, TaskResolutionLink.task_id == PlanTask.id)
            .where(
                TaskResolutionLink.resolution_kind == ResolutionKind(kind).value,
                TaskResolutionLink.resolution_id == resolution_id,
            )
        )
        total, completed = self.db.execute(stmt).one()
        return int(total or 0), int(completed or 0)

    async def calculate_progress(self, kind: ResolutionKind, resolution_id: int) -> int:
        """
        Percent of linked tasks completed (0-100).

        Returns 0, never None, for a resolution with no linked tasks.
        """
        with translate_db_errors("calculate_progress"):
            total, completed = self._link_counts(kind, resolution_id)
        return progress_percent(completed, total)

    # =========================================================================
    # Task links
    # =========================================================================

    async def link_task(self, user_id: str, kind: ResolutionKind, resolution_id: int, task_id: int) -> bool:
        """
        Add the task to the resolution's linked set.

        Returns:
            True if a link was created, False if it already existed.

        Raises:
            NotFoundError: If the caller does not own the resolution or task.
        """
        kind = ResolutionKind(kind)
        with translate_db_errors("link_task"):
            self._owned_resolution(user_id, kind, resolution_id)
            self._owned_task(user_id, task_id)

            exists = self.db.execute(
                select(TaskResolutionLink.id).where(
                    TaskResolutionLink.task_id == task_id,
                    TaskResolutionLink.resolution_kind == kind.value,
                    TaskResolutionLink.resolution_id == resolution_id,
                )
            ).scalar_one_or_none()
            if exists is not None:
                return False

            try:
                self.db.add(
                    TaskResolutionLink(
                        task_id=task_id,
                        resolution_kind=kind.value,
                        resolution_id=resolution_id,
                    )
                )
                self.db.commit()
            except IntegrityError:
                # Concurrent link of the same pair; the set already holds it.
                self.db.rollback()
                return False

        self.db.expire_all()
        logger.info("Linked task %s to %s resolution %s", task_id, kind.value, resolution_id)
        return True

    async def unlink_task(self, user_id: str, kind: ResolutionKind, resolution_id: int, task_id: int) -> bool:
        """
        Remove the task from the resolution's linked set.

        Returns:
            True if a link was removed, False if there was none.

        Raises:
            NotFoundError: If the caller does not own the resolution or task.
        """
        kind = ResolutionKind(kind)
        with translate_db_errors("unlink_task"):
            self._owned_resolution(user_id, kind, resolution_id)
            self._owned_task(user_id, task_id)

            result = self.db.execute(
                delete(TaskResolutionLink)
                .where(
                    TaskResolutionLink.task_id == task_id,
                    TaskResolutionLink.resolution_kind == kind.value,
                    TaskResolutionLink.resolution_id == resolution_id,
                )
                .execution_options(synchronize_session=False)
            )
            self.db.commit()

        self.db.expire_all()
        removed = bool(result.rowcount)
        if removed:
            logger.info("Unlinked task %s from %s resolution %s", task_id, kind.value, resolution_id)
        return removed

    # =========================================================================
    # CRUD
    # =========================================================================

    async def create_resolution(
        self,
        user_id: str,
        text: str,
        kind: ResolutionKind = ResolutionKind.MONTHLY,
        category: ResolutionCategory = ResolutionCategory.OTHER,
        priority: int = 2,
        target_date: datetime | None = None,
        is_recurring: bool = False,
        recurring_interval: str | None = None,
        start_date: datetime | None = None,
    ) -> Resolution:
        """Create a resolution of the given kind."""
        kind = ResolutionKind(kind)
        model = RESOLUTION_MODELS[kind]
        resolution = model(
            user_id=user_id,
            text=text,
            category=ResolutionCategory(category).value,
            resolution_type=kind.value,
            priority=priority,
            target_date=target_date,
            is_recurring=is_recurring,
            recurring_interval=recurring_interval,
            start_date=start_date or datetime.now(UTC),
        )
        with translate_db_errors("create_resolution"):
            self.db.add(resolution)
            self.db.commit()
            self.db.refresh(resolution)
        return resolution

    async def list_resolutions(
        self,
        user_id: str,
        kind: ResolutionKind | None = None,
        include_archived: bool = False,
    ) -> list[ResolutionProgress]:
        """
        List the user's resolutions with progress, newest first.

        Monthly resolutions come before yearly ones when no kind is given.
        """
        kinds = [ResolutionKind(kind)] if kind else list(ResolutionKind)
        results = []
        with translate_db_errors("list_resolutions"):
            for each_kind in kinds:
                model = RESOLUTION_MODELS[each_kind]
                stmt = select(model).where(model.user_id == user_id)
                if not include_archived:
                    stmt = stmt.where(model.archived_at.is_(None))
                stmt = stmt.order_by(model.created_at.desc(), model.id.desc())

                for resolution in self.db.execute(stmt).scalars():
                    total, completed = self._link_counts(each_kind, resolution.id)
                    results.append(
                        ResolutionProgress(
                            resolution=resolution,
                            progress_percent=progress_percent(completed, total),
                            linked_task_count=total,
                            completed_task_count=completed,
                        )
                    )
        return results

    async def update_resolution(
        self,
        user_id: str,
        kind: ResolutionKind,
        resolution_id: int,
        changes: dict[str, Any],
    ) -> Resolution:
        """
        Apply partial updates to an owned resolution.

        Setting ``is_achieved`` to True stamps ``achieved_at``. Only
        ``target_date`` may be cleared; a null for any other field raises
        ValidationError before anything is written.
        """
        cleared = sorted(name for name in REQUIRED_FIELDS if name in changes and changes[name] is None)
        if cleared:
            raise ValidationError(f"Fields cannot be null: {', '.join(cleared)}")

        with translate_db_errors("update_resolution"):
            resolution = self._owned_resolution(user_id, kind, resolution_id)
            for name, value in changes.items():
                if name not in UPDATABLE_FIELDS:
                    continue
                if name == "category":
                    value = ResolutionCategory(value).value
                setattr(resolution, name, value)
            if changes.get("is_achieved"):
                resolution.achieved_at = datetime.now(UTC)
            elif changes.get("is_achieved") is False:
                resolution.achieved_at = None
            try:
                self.db.commit()
            except IntegrityError as exc:
                self.db.rollback()
                raise ValidationError(f"Invalid update for {kind} resolution {resolution_id}") from exc
            self.db.refresh(resolution)
        return resolution

    async def archive_resolution(self, user_id: str, kind: ResolutionKind, resolution_id: int) -> Resolution:
        """Soft-delete an owned resolution."""
        with translate_db_errors("archive_resolution"):
            resolution = self._owned_resolution(user_id, kind, resolution_id)
            if resolution.archived_at is None:
                resolution.archived_at = datetime.now(UTC)
                self.db.commit()
                self.db.refresh(resolution)
        return resolution

    async def delete_resolution(self, user_id: str, kind: ResolutionKind, resolution_id: int) -> None:
        """Hard-delete an owned resolution and its task links."""
        kind = ResolutionKind(kind)
        with translate_db_errors("delete_resolution"):
            resolution = self._owned_resolution(user_id, kind, resolution_id)
            self.db.execute(
                delete(TaskResolutionLink)
                .where(
                    TaskResolutionLink.resolution_kind == kind.value,
                    TaskResolutionLink.resolution_id == resolution_id,
                )
                .execution_options(synchronize_session=False)
            )
            self.db.delete(resolution)
            self.db.commit()
        self.db.expire_all()
        logger.info("Deleted %s resolution %s for user %s", kind.value, resolution_id, user_id)

    # =========================================================================
    # Summary
    # =========================================================================

    async def yearly_summary(self, user_id: str, year: int) -> YearlySummary:
        """
        Summarise the user's active yearly resolutions started in ``year``.
        """
        start = datetime(year, 1, 1, tzinfo=UTC)
        end = datetime(year + 1, 1, 1, tzinfo=UTC)

        with translate_db_errors("yearly_summary"):
            resolutions = self.db.execute(
                select(YearlyResolution)
                .where(
                    YearlyResolution.user_id == user_id,
                    YearlyResolution.start_date >= start,
                    YearlyResolution.start_date < end,
                    YearlyResolution.archived_at.is_(None),
                )
                .order_by(YearlyResolution.priority)
            ).scalars().all()

            progress_values = [
                progress_percent(completed, total)
                for total, completed in (
                    self._link_counts(ResolutionKind.YEARLY, r.id) for r in resolutions
                )
            ]

        total = len(resolutions)
        achieved = sum(1 for r in resolutions if r.is_achieved)
        return YearlySummary(
            year=year,
            total_resolutions=total,
            completed=achieved,
            in_progress=total - achieved,
            completion_rate=int(100 * achieved / total + 0.5) if total else 0,
            average_progress=int(sum(progress_values) / total + 0.5) if total else 0,
        )


__all__ = [
    "ResolutionService",
    "ResolutionProgress",
    "YearlySummary",
    "progress_percent",
]
