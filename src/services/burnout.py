"""
Burnout Risk Detector for Monthly Zen.

Compares a user's completion rate over a baseline window (default 4
weeks) with the rate over the most recent part of it (default 2 weeks).

Risk levels:
- high: baseline completion rate below 20%
- medium: baseline completion rate below 40%
- low: otherwise

The indicator labels are shown verbatim in coaching text; changing a
label or its threshold changes user-facing copy.
"""

from dataclasses import dataclass, field
from enum import StrEnum

from src.services.pattern_detection import PatternAggregator

# =============================================================================
# Thresholds
# =============================================================================

HIGH_RISK_RATE = 0.2
MEDIUM_RISK_RATE = 0.4
DECLINE_MIN_RECENT_TASKS = 5       # recent sample must exceed this to count as declining
DECLINE_RISK_BASELINE = 0.6
HIGH_WORKLOAD_TASKS = 20

INDICATOR_LOW_COMPLETION = "Low completion rate"
INDICATOR_DECLINING = "Declining productivity"
INDICATOR_HIGH_WORKLOAD = "High workload"


class RiskLevel(StrEnum):
    """Burnout risk level."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass
class BurnoutRisk:
    """Burnout assessment derived from two completion-rate windows."""

    level: RiskLevel
    score: int                              # baseline completion rate, percent
    has_risk: bool
    is_declining: bool
    baseline_rate: float
    recent_rate: float
    recent_tasks: int
    indicators: list[str] = field(default_factory=list)


def _rate(total: int, completed: int) -> float:
    # An empty window is treated as fully on track.
    return completed / total if total > 0 else 1.0


def evaluate_burnout_risk(
    baseline_total: int,
    baseline_completed: int,
    recent_total: int,
    recent_completed: int,
) -> BurnoutRisk:
    """
    Derive burnout risk from baseline and recent task counts.

    Example:
        >>> risk = evaluate_burnout_risk(10, 3, 8, 1)   # 0.3 baseline, 0.125 recent
        >>> risk.level, risk.is_declining, risk.has_risk
        (<RiskLevel.MEDIUM: 'medium'>, True, True)
    """
    baseline_rate = _rate(baseline_total, baseline_completed)
    recent_rate = _rate(recent_total, recent_completed)

    is_declining = recent_rate < baseline_rate and recent_total > DECLINE_MIN_RECENT_TASKS

    if baseline_rate < HIGH_RISK_RATE:
        level = RiskLevel.HIGH
    elif baseline_rate < MEDIUM_RISK_RATE:
        level = RiskLevel.MEDIUM
    else:
        level = RiskLevel.LOW

    indicators = []
    if baseline_rate < MEDIUM_RISK_RATE:
        indicators.append(INDICATOR_LOW_COMPLETION)
    if is_declining:
        indicators.append(INDICATOR_DECLINING)
    if recent_total > HIGH_WORKLOAD_TASKS:
        indicators.append(INDICATOR_HIGH_WORKLOAD)

    return BurnoutRisk(
        level=level,
        score=round(baseline_rate * 100),
        has_risk=level != RiskLevel.LOW or (is_declining and baseline_rate < DECLINE_RISK_BASELINE),
        is_declining=is_declining,
        baseline_rate=baseline_rate,
        recent_rate=recent_rate,
        recent_tasks=recent_total,
        indicators=indicators,
    )


class BurnoutRiskDetector:
    """
    Reads windowed task counts and scores burnout risk.

    Usage:
        detector = BurnoutRiskDetector(PatternAggregator(db))
        risk = await detector.detect("user-1")
        if risk.has_risk:
            ...
    """

    BASELINE_WEEKS = 4
    RECENT_WEEKS = 2

    def __init__(self, aggregator: PatternAggregator):
        self.aggregator = aggregator

    async def detect(
        self,
        user_id: str,
        weeks: int = BASELINE_WEEKS,
        recent_weeks: int = RECENT_WEEKS,
    ) -> BurnoutRisk:
        """
        Score burnout risk for the user.

        The recent window is the last ``recent_weeks`` of the baseline
        window, so recent tasks are also counted in the baseline.
        """
        baseline_since = self.aggregator.window_start(weeks)
        recent_since = self.aggregator.window_start(min(recent_weeks, weeks))

        baseline_total, baseline_completed = await self.aggregator.count_window(user_id, baseline_since)
        recent_total, recent_completed = await self.aggregator.count_window(user_id, recent_since)

        return evaluate_burnout_risk(
            baseline_total,
            baseline_completed,
            recent_total,
            recent_completed,
        )


__all__ = [
    "BurnoutRisk",
    "BurnoutRiskDetector",
    "RiskLevel",
    "evaluate_burnout_risk",
    "INDICATOR_LOW_COMPLETION",
    "INDICATOR_DECLINING",
    "INDICATOR_HIGH_WORKLOAD",
]
