"""
Services for Monthly Zen.

Services:
    - QuotaStore: Per-period generation allowance and the generation gate
    - PatternAggregator: Day-of-week, time-of-day and focus-area patterns
    - BurnoutRiskDetector: Risk level from baseline vs recent completion
    - ResolutionService: Resolution CRUD and linked-task progress
    - Prompt builder: Plan and persona prompts for the plan writer
    - InsightEngine: Morning intention and stored coaching insights
    - PlanGenerationService: Quota-gated plan generation
"""

from .burnout import BurnoutRisk, BurnoutRiskDetector, RiskLevel, evaluate_burnout_risk
from .insight_engine import InsightEngine, MorningIntention, select_morning_intention
from .pattern_detection import (
    DayOfWeekPattern,
    FocusAreaPattern,
    HourPattern,
    PatternAggregator,
    TimeOfDayPatterns,
)
from .plan_generation import GeneratedPlan, PlanGenerationService
from .prompt_builder import (
    PlanGenerationInput,
    build_plan_prompt,
    build_planner_system_prompt,
    build_system_prompt,
)
from .quota_store import QuotaStatus, QuotaStore, quota_status
from .resolution_progress import ResolutionService, progress_percent

__all__ = [
    # Quota
    "QuotaStore",
    "QuotaStatus",
    "quota_status",
    # Patterns
    "PatternAggregator",
    "DayOfWeekPattern",
    "HourPattern",
    "TimeOfDayPatterns",
    "FocusAreaPattern",
    # Burnout
    "BurnoutRisk",
    "BurnoutRiskDetector",
    "RiskLevel",
    "evaluate_burnout_risk",
    # Resolutions
    "ResolutionService",
    "progress_percent",
    # Prompts
    "PlanGenerationInput",
    "build_plan_prompt",
    "build_system_prompt",
    "build_planner_system_prompt",
    # Insights
    "InsightEngine",
    "MorningIntention",
    "select_morning_intention",
    # Plans
    "PlanGenerationService",
    "GeneratedPlan",
]
