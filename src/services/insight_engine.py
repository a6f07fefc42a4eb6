"""
Insight Engine for Monthly Zen.

Turns pattern snapshots into the short coaching messages shown in the
app: the morning intention banner and the stored coaching insight.

Both are priority-ordered decision lists over aggregated data, not
learned models, so the same inputs always give the same message.

Analytics are best-effort. generate_morning_intention() never raises:
any failure while gathering patterns degrades to a fixed low-confidence
message. generate_coaching_insight() returns None on failure.

References:
    - src/services/pattern_detection.py (day-of-week, focus-area snapshots)
    - src/services/burnout.py (risk level and indicators)
"""

import dataclasses
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from typing import Any

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from src.lib.database import translate_db_errors
from src.lib.exceptions import NotFoundError
from src.models.coaching import CoachingInsight, InsightPriority, InsightType
from src.services.burnout import BurnoutRisk, BurnoutRiskDetector, RiskLevel
from src.services.pattern_detection import (
    DAY_NAMES,
    DayOfWeekPattern,
    FocusAreaPattern,
    PatternAggregator,
)

logger = logging.getLogger(__name__)

MORNING_LOOKBACK_WEEKS = 3
COACHING_PATTERN_WEEKS = 8
COACHING_BURNOUT_WEEKS = 4
INSIGHT_TTL = timedelta(days=7)

_PRIORITY_ORDER = {
    InsightPriority.HIGH: 0,
    InsightPriority.MEDIUM: 1,
    InsightPriority.LOW: 2,
}


# =============================================================================
# Morning intention
# =============================================================================


class PatternType(StrEnum):
    """Which pattern produced a morning intention."""

    PEAK_ENERGY = "peak-energy"
    BURNOUT_RISK = "burnout-risk"
    FOCUS_AREA = "focus-area"
    GENERAL = "general"


@dataclass(frozen=True)
class MorningIntention:
    """One headline suggestion for the day."""

    title: str
    reason: str
    confidence: int                 # 0 - 100
    pattern_type: PatternType
    suggested_action: str | None = None


FALLBACK_INTENTION = MorningIntention(
    title="Stay Focused Today",
    reason="Take it one task at a time. You've got this!",
    confidence=50,
    pattern_type=PatternType.GENERAL,
)


def select_morning_intention(
    day_patterns: list[DayOfWeekPattern],
    burnout: BurnoutRisk,
    focus_patterns: list[FocusAreaPattern],
    today_dow: int,
) -> MorningIntention:
    """
    Pick the morning intention from aggregated patterns.

    Priority:
        1. High burnout risk -> rest (confidence 90)
        2. Today is the best weekday -> deep work (confidence = rate %)
        3. A declining focus area -> re-engagement (confidence 75)
        4. Otherwise -> keep momentum (confidence 50)

    Args:
        day_patterns: Weekday patterns ordered best first
        burnout: Burnout assessment
        focus_patterns: Focus-area patterns
        today_dow: Today's weekday, 0 = Sunday
    """
    if burnout.level == RiskLevel.HIGH:
        return MorningIntention(
            title="Prioritize Rest Today",
            reason="Your patterns show signs of burnout risk. Consider lighter tasks and more breaks.",
            confidence=90,
            pattern_type=PatternType.BURNOUT_RISK,
            suggested_action="Reduce workload by 30% and add recovery breaks",
        )

    if day_patterns:
        best_day = day_patterns[0]
        if best_day.day_of_week == today_dow:
            return MorningIntention(
                title="Schedule Deep Work Now",
                reason=(
                    f"{DAY_NAMES[best_day.day_of_week]} is your most productive day. "
                    "Save 2-3 hours for challenging tasks."
                ),
                confidence=round(best_day.completion_rate * 100),
                pattern_type=PatternType.PEAK_ENERGY,
                suggested_action="Block 2 hours for high-priority work",
            )

    declining = next((p for p in focus_patterns if p.trend == "declining"), None)
    if declining is not None:
        return MorningIntention(
            title="Revisit Your Goals",
            reason=(
                f'Your "{declining.focus_area}" focus area is showing declining trends. '
                "Small progress today can help."
            ),
            confidence=75,
            pattern_type=PatternType.FOCUS_AREA,
            suggested_action="Complete one small task in this area",
        )

    return MorningIntention(
        title="Maintain Your Momentum",
        reason="You're on track with your monthly goals. Keep up the consistent effort!",
        confidence=50,
        pattern_type=PatternType.GENERAL,
    )


# =============================================================================
# Coaching insight candidates
# =============================================================================


@dataclass
class InsightCandidate:
    """A coaching insight before it is stored."""

    insight_type: InsightType
    title: str
    description: str
    confidence: str                 # e.g. "75%"
    priority: InsightPriority
    category: str
    reasoning: str | None = None
    suggested_action: str | None = None
    trigger_data: dict[str, Any] = field(default_factory=dict)


def _percent(rate: float) -> int:
    return round(rate * 100)


def build_insight_candidates(
    day_patterns: list[DayOfWeekPattern],
    focus_patterns: list[FocusAreaPattern],
    burnout: BurnoutRisk,
) -> list[InsightCandidate]:
    """
    All insights the patterns support, highest priority first.

    Always returns at least one candidate (the healthy default).
    """
    candidates: list[InsightCandidate] = []

    if burnout.level == RiskLevel.HIGH:
        candidates.append(
            InsightCandidate(
                insight_type=InsightType.CHALLENGES,
                title="High Burnout Risk Detected",
                description=(
                    f"Your productivity has dropped to {burnout.score}%. "
                    "Consider taking breaks and reducing workload."
                ),
                reasoning=", ".join(burnout.indicators),
                suggested_action="Reduce tasks by 30% and add recovery breaks",
                confidence="90%",
                priority=InsightPriority.HIGH,
                category="burnout",
                trigger_data={"burnout_risk": dataclasses.asdict(burnout)},
            )
        )
    elif burnout.level == RiskLevel.MEDIUM and burnout.is_declining:
        candidates.append(
            InsightCandidate(
                insight_type=InsightType.COMPLETION_RATE,
                title="Productivity Declining",
                description=(
                    "Your completion rate is trending downward. "
                    "Small adjustments now can prevent larger issues."
                ),
                reasoning=", ".join(burnout.indicators),
                suggested_action="Review task list and prioritize essential items",
                confidence="75%",
                priority=InsightPriority.MEDIUM,
                category="productivity",
                trigger_data={"burnout_risk": dataclasses.asdict(burnout)},
            )
        )

    if day_patterns:
        best_day = max(day_patterns, key=lambda p: p.completion_rate)
        if best_day.completion_rate > 0.7 and best_day.total_tasks >= 5:
            candidates.append(
                InsightCandidate(
                    insight_type=InsightType.PEAK_ENERGY,
                    title=f"{best_day.day_name} is Your Peak Day",
                    description=(
                        f"You complete {_percent(best_day.completion_rate)}% of tasks on "
                        f"{best_day.day_name}s. Schedule important work then."
                    ),
                    suggested_action=f"Block 2-3 hours for deep work next {best_day.day_name}",
                    confidence=f"{_percent(best_day.completion_rate)}%",
                    priority=InsightPriority.MEDIUM,
                    category="scheduling",
                    trigger_data={"best_day": dataclasses.asdict(best_day)},
                )
            )

        worst_day = min(day_patterns, key=lambda p: p.completion_rate)
        if worst_day.completion_rate < 0.5 and worst_day.total_tasks >= 3:
            candidates.append(
                InsightCandidate(
                    insight_type=InsightType.CHALLENGES,
                    title=f"{worst_day.day_name} Productivity Gap",
                    description=(
                        f"Only {_percent(worst_day.completion_rate)}% completion on "
                        f"{worst_day.day_name}s. Consider lighter tasks or different scheduling."
                    ),
                    suggested_action="Schedule administrative or low-effort tasks on this day",
                    confidence=f"{_percent(worst_day.completion_rate)}%",
                    priority=InsightPriority.LOW,
                    category="scheduling",
                    trigger_data={"worst_day": dataclasses.asdict(worst_day)},
                )
            )

    struggling = next(
        (p for p in focus_patterns if p.completion_rate < 0.5 and p.total_tasks >= 3),
        None,
    )
    if struggling is not None:
        candidates.append(
            InsightCandidate(
                insight_type=InsightType.COMPLETION_RATE,
                title=f'"{struggling.focus_area}" Needs Attention',
                description=(
                    f"Only {_percent(struggling.completion_rate)}% completion rate. "
                    "Break into smaller tasks."
                ),
                suggested_action="Complete one small task in this area today",
                confidence="70%",
                priority=InsightPriority.MEDIUM,
                category="alignment",
                trigger_data={"focus_area": dataclasses.asdict(struggling)},
            )
        )

    if not candidates:
        candidates.append(
            InsightCandidate(
                insight_type=InsightType.COMPLETION_RATE,
                title="You're on Track!",
                description="Your productivity patterns look healthy. Keep maintaining your momentum!",
                confidence="80%",
                priority=InsightPriority.LOW,
                category="general",
                trigger_data={
                    "day_patterns": [dataclasses.asdict(p) for p in day_patterns],
                    "focus_patterns": [dataclasses.asdict(p) for p in focus_patterns],
                },
            )
        )

    # Stable sort keeps insertion order within a priority.
    return sorted(candidates, key=lambda c: _PRIORITY_ORDER[c.priority])


# =============================================================================
# Engine
# =============================================================================


class InsightEngine:
    """
    Gathers patterns for a user and produces coaching messages.

    Usage:
        aggregator = PatternAggregator(db)
        engine = InsightEngine(db, aggregator, BurnoutRiskDetector(aggregator))
        intention = await engine.generate_morning_intention("user-1")
    """

    def __init__(
        self,
        db: Session,
        aggregator: PatternAggregator,
        detector: BurnoutRiskDetector,
        clock: Callable[[], datetime] | None = None,
    ):
        self.db = db
        self.aggregator = aggregator
        self.detector = detector
        self._clock = clock or (lambda: datetime.now(UTC))

    def _today_dow(self) -> int:
        # Python: Monday = 0; SQL day-of-week: Sunday = 0
        return (self._clock().weekday() + 1) % 7

    async def generate_morning_intention(self, user_id: str) -> MorningIntention:
        """
        Headline suggestion for today from the last three weeks.

        Never raises; failures return FALLBACK_INTENTION.
        """
        try:
            day_patterns = await self.aggregator.get_day_of_week_patterns(user_id, MORNING_LOOKBACK_WEEKS)
            burnout = await self.detector.detect(user_id, weeks=MORNING_LOOKBACK_WEEKS)
            focus_patterns = await self.aggregator.get_focus_area_patterns(user_id, MORNING_LOOKBACK_WEEKS)
            return select_morning_intention(day_patterns, burnout, focus_patterns, self._today_dow())
        except Exception as exc:  # Intentional catch-all: analytics must never block the banner
            logger.warning("Morning intention failed for user %s: %s", user_id, exc)
            return FALLBACK_INTENTION

    async def generate_coaching_insight(self, user_id: str) -> CoachingInsight | None:
        """
        Build, pick and store the top coaching insight.

        The stored insight expires after seven days. Returns None if any
        step fails.
        """
        try:
            day_patterns = await self.aggregator.get_day_of_week_patterns(user_id, COACHING_PATTERN_WEEKS)
            focus_patterns = await self.aggregator.get_focus_area_patterns(user_id, COACHING_PATTERN_WEEKS)
            burnout = await self.detector.detect(user_id, weeks=COACHING_BURNOUT_WEEKS)

            best = build_insight_candidates(day_patterns, focus_patterns, burnout)[0]
            now = self._clock()
            insight = CoachingInsight(
                user_id=user_id,
                insight_type=best.insight_type.value,
                title=best.title,
                description=best.description,
                reasoning=best.reasoning,
                suggested_action=best.suggested_action,
                confidence=best.confidence,
                priority=best.priority.value,
                category=best.category,
                trigger_data=best.trigger_data,
                generated_at=now,
                expires_at=now + INSIGHT_TTL,
            )
            with translate_db_errors("store_insight"):
                self.db.add(insight)
                self.db.commit()
                self.db.refresh(insight)
            logger.info("Stored %s insight %s for user %s", insight.priority, insight.id, user_id)
            return insight
        except Exception as exc:  # Intentional catch-all: insight generation is best-effort
            self.db.rollback()
            logger.warning("Coaching insight failed for user %s: %s", user_id, exc)
            return None

    async def get_active_insights(self, user_id: str, limit: int = 5) -> list[CoachingInsight]:
        """Unexpired, undismissed insights, newest first."""
        now = self._clock()
        with translate_db_errors("get_active_insights"):
            return list(
                self.db.execute(
                    select(CoachingInsight)
                    .where(
                        CoachingInsight.user_id == user_id,
                        CoachingInsight.is_archived.is_(False),
                        CoachingInsight.dismissed_at.is_(None),
                        or_(CoachingInsight.expires_at.is_(None), CoachingInsight.expires_at > now),
                    )
                    .order_by(CoachingInsight.generated_at.desc(), CoachingInsight.id.desc())
                    .limit(limit)
                ).scalars()
            )

    async def dismiss_insight(
        self,
        user_id: str,
        insight_id: int,
        action_taken: str | None = None,
    ) -> CoachingInsight:
        """
        Dismiss an owned insight.

        Raises:
            NotFoundError: If the insight does not exist or belongs to another user.
        """
        with translate_db_errors("dismiss_insight"):
            insight = self.db.get(CoachingInsight, insight_id)
            if insight is None or insight.user_id != user_id:
                raise NotFoundError("Insight not found")
            insight.dismissed_at = self._clock()
            insight.is_read = True
            insight.is_archived = True
            if action_taken:
                insight.action_taken = action_taken
            self.db.commit()
            self.db.refresh(insight)
        return insight


__all__ = [
    "InsightEngine",
    "MorningIntention",
    "PatternType",
    "InsightCandidate",
    "FALLBACK_INTENTION",
    "select_morning_intention",
    "build_insight_candidates",
]
