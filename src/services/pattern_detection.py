"""
Pattern Aggregation Service for Monthly Zen.

Windowed aggregations over a user's scheduled tasks that describe when
and where they get work done:

- Day-of-week: completion rate per weekday, best day first
- Time-of-day: completion rate per hour, plus the peak hours
- Focus area: completion rate and average duration per focus area

Every aggregation reads tasks with ``start_time >= now - weeks * 7 days``.
They are read-only and deterministic for unchanged data, so results can be
cached for a short TTL keyed on (user_id, kind, weeks).

Peak hours are chosen by completion rate, not volume: the busiest hour
is not necessarily the hour the user finishes what they schedule.

Author: Monthly Zen Team
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from sqlalchemy import Float, case, cast, extract, func, select
from sqlalchemy.orm import Session

from src.lib.database import translate_db_errors
from src.models.task import PlanTask

if TYPE_CHECKING:
    from src.services.pattern_cache import PatternCache

logger = logging.getLogger(__name__)

# ============================================================================
# Constants
# ============================================================================

DEFAULT_LOOKBACK_WEEKS = 8
MIN_CONFIDENT_SAMPLE = 3      # fewer tasks than this -> low_confidence
PEAK_HOUR_FRACTION = 0.25     # top quarter of hours by completion rate
DECLINING_THRESHOLD = 0.5     # focus area below this rate is "declining"

# Index matches SQL day-of-week numbering: 0 = Sunday
DAY_NAMES = (
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
)


# ============================================================================
# Snapshots
# ============================================================================

@dataclass
class DayOfWeekPattern:
    """Completion statistics for one weekday."""

    day_of_week: int                # 0 = Sunday ... 6 = Saturday
    day_name: str
    completion_rate: float          # 0.0 - 1.0
    total_tasks: int
    completed_tasks: int
    avg_tasks_per_week: float
    trend: str = "stable"
    low_confidence: bool = False


@dataclass
class HourPattern:
    """Completion statistics for one hour of the day."""

    hour: int                       # 0 - 23
    completion_rate: float
    total_tasks: int
    completed_tasks: int


@dataclass
class TimeOfDayPatterns:
    """Hourly statistics plus the hours with the best completion rate."""

    patterns: list[HourPattern] = field(default_factory=list)
    peak_hours: list[int] = field(default_factory=list)


@dataclass
class FocusAreaPattern:
    """Completion statistics for one focus area."""

    focus_area: str
    completion_rate: float
    total_tasks: int
    completed_tasks: int
    avg_duration: float             # minutes
    trend: str                      # "declining" | "stable"


def focus_trend(completion_rate: float) -> str:
    """Binary trend heuristic: declining below 50% completion."""
    return "declining" if completion_rate < DECLINING_THRESHOLD else "stable"


def select_peak_hours(patterns: list[HourPattern]) -> list[int]:
    """
    Top 25% of hours by completion rate (at least one hour).

    Ties are broken by the earlier hour. Returns [] when there is no data.
    """
    if not patterns:
        return []
    count = max(1, int(len(patterns) * PEAK_HOUR_FRACTION))
    ranked = sorted(patterns, key=lambda p: (-p.completion_rate, p.hour))
    return [p.hour for p in ranked[:count]]


# ============================================================================
# Aggregator
# ============================================================================

_completed_count = func.sum(case((PlanTask.is_completed.is_(True), 1), else_=0))
_total_count = func.count(PlanTask.id)
_completion_rate = cast(_completed_count, Float) / func.nullif(_total_count, 0)


class PatternAggregator:
    """
    Computes behavioral pattern snapshots from task history.

    Usage:
        aggregator = PatternAggregator(db)
        days = await aggregator.get_day_of_week_patterns("user-1", weeks=8)
        best_day = days[0] if days else None
    """

    def __init__(
        self,
        db: Session,
        cache: PatternCache | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        """
        Args:
            db: SQLAlchemy database session
            cache: Optional snapshot cache (Redis-backed)
            clock: Returns the current aware datetime (tests pin it)
        """
        self.db = db
        self.cache = cache
        self._clock = clock or (lambda: datetime.now(UTC))

    def window_start(self, weeks: int) -> datetime:
        """Start of a lookback window of ``weeks`` weeks ending now."""
        return self._clock() - timedelta(days=weeks * 7)

    # ------------------------------------------------------------------------
    # Day of week
    # ------------------------------------------------------------------------

    async def get_day_of_week_patterns(
        self,
        user_id: str,
        weeks: int = DEFAULT_LOOKBACK_WEEKS,
    ) -> list[DayOfWeekPattern]:
        """
        Completion rate per weekday, ordered by rate (best day first).

        Weekdays with no scheduled tasks are omitted. Weekdays with fewer
        than MIN_CONFIDENT_SAMPLE tasks are kept but flagged low_confidence.
        """
        if self.cache is not None:
            cached = await self.cache.get_day_patterns(user_id, weeks)
            if cached is not None:
                return cached

        dow = extract("dow", PlanTask.start_time)
        stmt = (
            select(
                dow.label("day_of_week"),
                _total_count.label("total"),
                _completed_count.label("completed"),
                _completion_rate.label("rate"),
            )
            .where(
                PlanTask.user_id == user_id,
                PlanTask.start_time >= self.window_start(weeks),
            )
            .group_by(dow)
            .order_by(_completion_rate.desc(), dow.asc())
        )
        with translate_db_errors("day_of_week_patterns"):
            rows = self.db.execute(stmt).all()

        patterns = []
        for row in rows:
            day = int(row.day_of_week)
            total = int(row.total or 0)
            patterns.append(
                DayOfWeekPattern(
                    day_of_week=day,
                    day_name=DAY_NAMES[day],
                    completion_rate=float(row.rate or 0.0),
                    total_tasks=total,
                    completed_tasks=int(row.completed or 0),
                    avg_tasks_per_week=total / weeks,
                    trend="stable",
                    low_confidence=total < MIN_CONFIDENT_SAMPLE,
                )
            )

        if self.cache is not None:
            await self.cache.set_day_patterns(user_id, weeks, patterns)
        return patterns

    # ------------------------------------------------------------------------
    # Time of day
    # ------------------------------------------------------------------------

    async def get_time_of_day_patterns(
        self,
        user_id: str,
        weeks: int = DEFAULT_LOOKBACK_WEEKS,
    ) -> TimeOfDayPatterns:
        """Completion rate per hour of day and the peak hours."""
        if self.cache is not None:
            cached = await self.cache.get_time_patterns(user_id, weeks)
            if cached is not None:
                return cached

        hour = extract("hour", PlanTask.start_time)
        stmt = (
            select(
                hour.label("hour"),
                _total_count.label("total"),
                _completed_count.label("completed"),
                _completion_rate.label("rate"),
            )
            .where(
                PlanTask.user_id == user_id,
                PlanTask.start_time >= self.window_start(weeks),
            )
            .group_by(hour)
            .order_by(hour.asc())
        )
        with translate_db_errors("time_of_day_patterns"):
            rows = self.db.execute(stmt).all()

        patterns = [
            HourPattern(
                hour=int(row.hour),
                completion_rate=float(row.rate or 0.0),
                total_tasks=int(row.total or 0),
                completed_tasks=int(row.completed or 0),
            )
            for row in rows
        ]
        result = TimeOfDayPatterns(patterns=patterns, peak_hours=select_peak_hours(patterns))

        if self.cache is not None:
            await self.cache.set_time_patterns(user_id, weeks, result)
        return result

    # ------------------------------------------------------------------------
    # Focus areas
    # ------------------------------------------------------------------------

    async def get_focus_area_patterns(
        self,
        user_id: str,
        weeks: int = DEFAULT_LOOKBACK_WEEKS,
    ) -> list[FocusAreaPattern]:
        """Completion rate per focus area, weakest area first. Untagged tasks are skipped."""
        if self.cache is not None:
            cached = await self.cache.get_focus_patterns(user_id, weeks)
            if cached is not None:
                return cached

        duration_minutes = (
            extract("epoch", PlanTask.end_time) - extract("epoch", PlanTask.start_time)
        ) / 60.0
        stmt = (
            select(
                PlanTask.focus_area.label("focus_area"),
                _total_count.label("total"),
                _completed_count.label("completed"),
                _completion_rate.label("rate"),
                func.avg(duration_minutes).label("avg_duration"),
            )
            .where(
                PlanTask.user_id == user_id,
                PlanTask.start_time >= self.window_start(weeks),
                PlanTask.focus_area.is_not(None),
            )
            .group_by(PlanTask.focus_area)
            .order_by(_completion_rate.asc(), PlanTask.focus_area.asc())
        )
        with translate_db_errors("focus_area_patterns"):
            rows = self.db.execute(stmt).all()

        patterns = []
        for row in rows:
            rate = float(row.rate or 0.0)
            patterns.append(
                FocusAreaPattern(
                    focus_area=row.focus_area,
                    completion_rate=rate,
                    total_tasks=int(row.total or 0),
                    completed_tasks=int(row.completed or 0),
                    avg_duration=round(float(row.avg_duration or 0.0), 1),
                    trend=focus_trend(rate),
                )
            )

        if self.cache is not None:
            await self.cache.set_focus_patterns(user_id, weeks, patterns)
        return patterns

    # ------------------------------------------------------------------------
    # Raw window counts
    # ------------------------------------------------------------------------

    async def count_window(self, user_id: str, since: datetime) -> tuple[int, int]:
        """
        Count scheduled and completed tasks starting at or after ``since``.

        Returns:
            (total, completed)
        """
        stmt = select(_total_count, _completed_count).where(
            PlanTask.user_id == user_id,
            PlanTask.start_time >= since,
        )
        with translate_db_errors("count_window"):
            total, completed = self.db.execute(stmt).one()
        return int(total or 0), int(completed or 0)


__all__ = [
    "PatternAggregator",
    "DayOfWeekPattern",
    "HourPattern",
    "TimeOfDayPatterns",
    "FocusAreaPattern",
    "DAY_NAMES",
    "MIN_CONFIDENT_SAMPLE",
    "focus_trend",
    "select_peak_hours",
]
