"""
Coaching Insight Model for Monthly Zen.

Stores the headline coaching insight generated from a user's patterns so
the UI can show it until it is dismissed or expires.
"""

from datetime import UTC, datetime
from enum import StrEnum

from sqlalchemy import JSON, Boolean, Column, DateTime, Index, Integer, String, Text

from src.models.base import Base


class InsightType(StrEnum):
    """Kinds of generated insight."""

    PEAK_ENERGY = "PeakEnergy"
    COMPLETION_RATE = "CompletionRate"
    SESSION_DURATION = "SessionDuration"
    CHALLENGES = "Challenges"


class InsightPriority(StrEnum):
    """Display priority; ``high`` sorts first."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class CoachingInsight(Base):
    """A persisted coaching insight."""

    __tablename__ = "coaching_insights"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False, index=True)

    insight_type = Column(String(32), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    reasoning = Column(Text, nullable=True)
    suggested_action = Column(Text, nullable=True)

    confidence = Column(String(10), nullable=True)  # e.g. "85%"
    priority = Column(String(20), nullable=False, default=InsightPriority.MEDIUM.value)
    category = Column(String(50), nullable=True)  # burnout, productivity, scheduling, alignment, general

    trigger_data = Column(JSON, nullable=True)

    is_read = Column(Boolean, nullable=False, default=False)
    is_archived = Column(Boolean, nullable=False, default=False)
    dismissed_at = Column(DateTime(timezone=True), nullable=True)
    action_taken = Column(Text, nullable=True)

    generated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    expires_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_insight_user_active", "user_id", "is_archived"),
    )

    def __repr__(self) -> str:
        return f"<CoachingInsight(id={self.id}, user_id={self.user_id}, type={self.insight_type}, priority={self.priority})>"


__all__ = ["CoachingInsight", "InsightType", "InsightPriority"]
