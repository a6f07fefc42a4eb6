"""
Pydantic Schemas for the Monthly Zen REST API.

Defines the response envelope helpers, request bodies, and the
serializers that turn models and pattern snapshots into JSON-ready dicts.

Envelope:
    success: {"success": true, "data": ..., "message"?: ...}
    error:   {"success": false, "error": {"code", "message", "details"?}}
"""

from __future__ import annotations

import dataclasses
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from src.lib.errors import build_error_response
from src.models.coaching import CoachingInsight
from src.models.quota import GenerationQuota
from src.models.resolution import ResolutionCategory, ResolutionKind
from src.services.prompt_builder import (
    CoachTone,
    PlanGenerationInput,
    ResponseDepth,
    ResponseFormat,
)
from src.services.quota_store import QuotaStatus
from src.services.resolution_progress import ResolutionProgress

# =============================================================================
# Envelope
# =============================================================================


def success_response(data: Any = None, message: str | None = None) -> dict[str, Any]:
    """Wrap a payload in the success envelope."""
    body: dict[str, Any] = {"success": True, "data": data}
    if message is not None:
        body["message"] = message
    return body


def error_response(
    code: str,
    message: str | None = None,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Wrap an error in the failure envelope."""
    return {"success": False, "error": build_error_response(code, message, details)}


# =============================================================================
# Quota Schemas
# =============================================================================


class QuotaIncreaseRequest(BaseModel):
    """Request schema for a manual quota top-up."""

    amount: int = Field(..., ge=1, le=100)
    reason: str = Field(..., min_length=10, max_length=1000)


def quota_to_dict(quota: GenerationQuota, status: QuotaStatus) -> dict[str, Any]:
    return {
        "id": quota.id,
        "month_year": quota.month_year,
        "total_allowed": quota.total_allowed,
        "generations_used": quota.generations_used,
        "total_requested": quota.total_requested,
        "resets_on": quota.resets_on.isoformat(),
        "remaining": status.remaining,
        "usage_percentage": status.usage_percentage,
        "days_until_reset": status.days_until_reset,
        "status": status.status.value,
    }


# =============================================================================
# Resolution Schemas
# =============================================================================


class ResolutionCreate(BaseModel):
    """Request schema for creating a resolution."""

    text: str = Field(..., min_length=1, max_length=500)
    category: ResolutionCategory = ResolutionCategory.OTHER
    kind: ResolutionKind = ResolutionKind.MONTHLY
    priority: int = Field(2, ge=1, le=3)  # 1=high, 2=medium, 3=low
    target_date: datetime | None = None
    is_recurring: bool = False
    recurring_interval: str | None = None

    @field_validator("recurring_interval")
    @classmethod
    def validate_interval(cls, value: str | None) -> str | None:
        if value is not None and value not in ("monthly", "weekly"):
            raise ValueError("recurring_interval must be 'monthly' or 'weekly'")
        return value


class ResolutionUpdate(BaseModel):
    """Request schema for partially updating a resolution."""

    text: str | None = Field(None, min_length=1, max_length=500)
    category: ResolutionCategory | None = None
    priority: int | None = Field(None, ge=1, le=3)
    target_date: datetime | None = None
    is_achieved: bool | None = None


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def resolution_to_dict(item: ResolutionProgress) -> dict[str, Any]:
    resolution = item.resolution
    return {
        "id": resolution.id,
        "kind": resolution.kind.value,
        "text": resolution.text,
        "category": resolution.category,
        "resolution_type": resolution.resolution_type,
        "priority": resolution.priority,
        "start_date": _iso(resolution.start_date),
        "target_date": _iso(resolution.target_date),
        "is_recurring": resolution.is_recurring,
        "recurring_interval": resolution.recurring_interval,
        "is_achieved": resolution.is_achieved,
        "achieved_at": _iso(resolution.achieved_at),
        "archived_at": _iso(resolution.archived_at),
        "progress_percent": item.progress_percent,
        "linked_task_count": item.linked_task_count,
        "completed_task_count": item.completed_task_count,
    }


# =============================================================================
# Insight Schemas
# =============================================================================


class InsightDismissRequest(BaseModel):
    """Request schema for dismissing an insight."""

    action_taken: str | None = Field(None, max_length=500)


def insight_to_dict(insight: CoachingInsight) -> dict[str, Any]:
    return {
        "id": insight.id,
        "type": insight.insight_type,
        "title": insight.title,
        "description": insight.description,
        "reasoning": insight.reasoning,
        "suggested_action": insight.suggested_action,
        "confidence": insight.confidence,
        "priority": insight.priority,
        "category": insight.category,
        "is_read": insight.is_read,
        "generated_at": _iso(insight.generated_at),
        "expires_at": _iso(insight.expires_at),
    }


def snapshot_to_dict(snapshot: Any) -> Any:
    """Convert pattern dataclasses (or lists of them) to plain dicts."""
    if isinstance(snapshot, list):
        return [snapshot_to_dict(item) for item in snapshot]
    if dataclasses.is_dataclass(snapshot) and not isinstance(snapshot, type):
        return dataclasses.asdict(snapshot)
    return snapshot


# =============================================================================
# Plan Prompt Schemas
# =============================================================================


class PlanPromptRequest(BaseModel):
    """Request schema for previewing the plan prompts."""

    plan_input: PlanGenerationInput
    month_year: str | None = Field(None, pattern=r"^\d{4}-\d{2}-01$")
    response_tone: CoachTone | None = None
    depth: ResponseDepth | None = None
    response_format: ResponseFormat | None = None
    extra_instructions: str | None = Field(None, max_length=2000)


__all__ = [
    "success_response",
    "error_response",
    "QuotaIncreaseRequest",
    "ResolutionCreate",
    "ResolutionUpdate",
    "InsightDismissRequest",
    "PlanPromptRequest",
    "quota_to_dict",
    "resolution_to_dict",
    "insight_to_dict",
    "snapshot_to_dict",
]
