"""
Models package for Monthly Zen.

This package exports all SQLAlchemy models.

Usage:
    from src.models import PlanTask, GenerationQuota, QuotaHistory
    from src.models import MonthlyResolution, YearlyResolution, CoachingInsight
"""

from src.models.base import Base
from src.models.coaching import CoachingInsight, InsightPriority, InsightType
from src.models.quota import GenerationQuota, QuotaHistory
from src.models.resolution import (
    RESOLUTION_MODELS,
    MonthlyResolution,
    ResolutionCategory,
    ResolutionKind,
    YearlyResolution,
)
from src.models.task import PlanTask, TaskResolutionLink

__all__ = [
    # Base
    "Base",
    # Tasks
    "PlanTask",
    "TaskResolutionLink",
    # Quota
    "GenerationQuota",
    "QuotaHistory",
    # Resolutions
    "MonthlyResolution",
    "YearlyResolution",
    "ResolutionKind",
    "ResolutionCategory",
    "RESOLUTION_MODELS",
    # Coaching
    "CoachingInsight",
    "InsightType",
    "InsightPriority",
]
