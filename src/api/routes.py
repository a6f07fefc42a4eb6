"""
REST API Routes for Monthly Zen.

All responses use the success/error envelope from src.api.schemas.
Domain exceptions are translated to HTTP status codes by the handlers
registered in src.api.create_app.

Endpoints (all under /api/v1 prefix):
- /health - Health check
- /quota, /quota/initialize, /quota/request, /quota/history - Generation quota
- /patterns - Day/time/focus patterns and burnout risk
- /insights/morning-intention, /insights/generate, /insights - Coaching
- /resolutions - Resolutions, progress and task links
- /plans/prompt - Plan prompt preview (no quota spent)
"""

from __future__ import annotations

import dataclasses
import logging
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Depends, Query

from src.api.dependencies import (
    get_current_user_id,
    get_insight_engine,
    get_pattern_aggregator,
    get_plan_generation_service,
    get_quota_store,
    get_resolution_service,
)
from src.api.schemas import (
    InsightDismissRequest,
    PlanPromptRequest,
    QuotaIncreaseRequest,
    ResolutionCreate,
    ResolutionUpdate,
    insight_to_dict,
    quota_to_dict,
    resolution_to_dict,
    snapshot_to_dict,
    success_response,
)
from src.models.resolution import ResolutionKind
from src.services.burnout import BurnoutRiskDetector
from src.services.insight_engine import InsightEngine
from src.services.pattern_detection import PatternAggregator
from src.services.plan_generation import PlanGenerationService
from src.services.prompt_builder import build_planner_system_prompt
from src.services.quota_store import QuotaStore, quota_status
from src.services.resolution_progress import ResolutionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1")


# =============================================================================
# Health
# =============================================================================


@router.get("/health")
async def health_check() -> dict[str, Any]:
    """Health check endpoint (unauthenticated)."""
    return success_response({"status": "ok"})


# =============================================================================
# Quota
# =============================================================================


@router.get("/quota")
async def get_current_quota(
    user_id: str = Depends(get_current_user_id),
    store: QuotaStore = Depends(get_quota_store),
) -> dict[str, Any]:
    """Current-period quota, created or rolled over on demand."""
    quota = await store.get_or_create_quota(user_id)
    return success_response(quota_to_dict(quota, quota_status(quota)))


@router.post("/quota/initialize")
async def initialize_quota(
    user_id: str = Depends(get_current_user_id),
    store: QuotaStore = Depends(get_quota_store),
) -> dict[str, Any]:
    """Create the first quota for a new user."""
    quota, created = await store.initialize(user_id)
    if created:
        message = f"Welcome! You have received {quota.total_allowed} free tokens to get started."
    else:
        message = "Quota already exists"
    return success_response(quota_to_dict(quota, quota_status(quota)), message=message)


@router.post("/quota/request")
async def request_quota_increase(
    body: QuotaIncreaseRequest,
    user_id: str = Depends(get_current_user_id),
    store: QuotaStore = Depends(get_quota_store),
) -> dict[str, Any]:
    """Top up the latest quota by 1-100 generations."""
    quota = await store.request_increase(user_id, body.amount, body.reason)
    return success_response(
        quota_to_dict(quota, quota_status(quota)),
        message=f"Successfully added {body.amount} tokens to your quota. Reason: {body.reason}",
    )


@router.get("/quota/history")
async def get_quota_history(
    months: int = Query(6, ge=1, le=12),
    user_id: str = Depends(get_current_user_id),
    store: QuotaStore = Depends(get_quota_store),
) -> dict[str, Any]:
    """Usage per archived period, padded to ``months`` entries."""
    history = await store.get_history(user_id, months)
    return success_response([dataclasses.asdict(entry) for entry in history])


# =============================================================================
# Patterns
# =============================================================================


@router.get("/patterns")
async def get_patterns(
    weeks: int = Query(8, ge=1, le=52),
    user_id: str = Depends(get_current_user_id),
    aggregator: PatternAggregator = Depends(get_pattern_aggregator),
) -> dict[str, Any]:
    """Day-of-week, time-of-day and focus-area patterns plus burnout risk."""
    day_patterns = await aggregator.get_day_of_week_patterns(user_id, weeks)
    time_patterns = await aggregator.get_time_of_day_patterns(user_id, weeks)
    focus_patterns = await aggregator.get_focus_area_patterns(user_id, weeks)
    burnout = await BurnoutRiskDetector(aggregator).detect(user_id)
    return success_response(
        {
            "weeks": weeks,
            "day_of_week": snapshot_to_dict(day_patterns),
            "time_of_day": snapshot_to_dict(time_patterns),
            "focus_areas": snapshot_to_dict(focus_patterns),
            "burnout_risk": snapshot_to_dict(burnout),
        }
    )


# =============================================================================
# Insights
# =============================================================================


@router.get("/insights/morning-intention")
async def get_morning_intention(
    user_id: str = Depends(get_current_user_id),
    engine: InsightEngine = Depends(get_insight_engine),
) -> dict[str, Any]:
    """Today's headline suggestion. Falls back to a generic message on failure."""
    intention = await engine.generate_morning_intention(user_id)
    return success_response(dataclasses.asdict(intention))


@router.post("/insights/generate")
async def generate_insight(
    user_id: str = Depends(get_current_user_id),
    engine: InsightEngine = Depends(get_insight_engine),
) -> dict[str, Any]:
    """Generate and store the top coaching insight."""
    insight = await engine.generate_coaching_insight(user_id)
    if insight is None:
        return success_response(None, message="No insight could be generated right now")
    return success_response(insight_to_dict(insight))


@router.get("/insights")
async def list_insights(
    limit: int = Query(5, ge=1, le=50),
    user_id: str = Depends(get_current_user_id),
    engine: InsightEngine = Depends(get_insight_engine),
) -> dict[str, Any]:
    """Active (unexpired, undismissed) insights, newest first."""
    insights = await engine.get_active_insights(user_id, limit)
    return success_response([insight_to_dict(i) for i in insights])


@router.post("/insights/{insight_id}/dismiss")
async def dismiss_insight(
    insight_id: int,
    body: InsightDismissRequest | None = None,
    user_id: str = Depends(get_current_user_id),
    engine: InsightEngine = Depends(get_insight_engine),
) -> dict[str, Any]:
    """Dismiss an insight, optionally recording the action taken."""
    action = body.action_taken if body else None
    insight = await engine.dismiss_insight(user_id, insight_id, action)
    return success_response(insight_to_dict(insight), message="Insight dismissed")


# =============================================================================
# Resolutions
# =============================================================================


@router.get("/resolutions")
async def list_resolutions(
    kind: ResolutionKind | None = None,
    include_archived: bool = False,
    user_id: str = Depends(get_current_user_id),
    service: ResolutionService = Depends(get_resolution_service),
) -> dict[str, Any]:
    """The caller's resolutions with derived progress."""
    items = await service.list_resolutions(user_id, kind, include_archived)
    return success_response([resolution_to_dict(item) for item in items])


@router.post("/resolutions", status_code=201)
async def create_resolution(
    body: ResolutionCreate,
    user_id: str = Depends(get_current_user_id),
    service: ResolutionService = Depends(get_resolution_service),
) -> dict[str, Any]:
    """Create a monthly or yearly resolution."""
    resolution = await service.create_resolution(
        user_id,
        body.text,
        kind=body.kind,
        category=body.category,
        priority=body.priority,
        target_date=body.target_date,
        is_recurring=body.is_recurring,
        recurring_interval=body.recurring_interval,
    )
    item = await service.get_resolution(user_id, resolution.kind, resolution.id)
    return success_response(resolution_to_dict(item))


@router.get("/resolutions/yearly-summary")
async def get_yearly_summary(
    year: int | None = Query(None, ge=2000, le=2100),
    user_id: str = Depends(get_current_user_id),
    service: ResolutionService = Depends(get_resolution_service),
) -> dict[str, Any]:
    """Totals and average progress for the year's yearly resolutions."""
    summary = await service.yearly_summary(user_id, year or datetime.now(UTC).year)
    return success_response(dataclasses.asdict(summary))


@router.get("/resolutions/{kind}/{resolution_id}")
async def get_resolution(
    kind: ResolutionKind,
    resolution_id: int,
    user_id: str = Depends(get_current_user_id),
    service: ResolutionService = Depends(get_resolution_service),
) -> dict[str, Any]:
    item = await service.get_resolution(user_id, kind, resolution_id)
    return success_response(resolution_to_dict(item))


@router.patch("/resolutions/{kind}/{resolution_id}")
async def update_resolution(
    kind: ResolutionKind,
    resolution_id: int,
    body: ResolutionUpdate,
    user_id: str = Depends(get_current_user_id),
    service: ResolutionService = Depends(get_resolution_service),
) -> dict[str, Any]:
    await service.update_resolution(user_id, kind, resolution_id, body.model_dump(exclude_unset=True))
    item = await service.get_resolution(user_id, kind, resolution_id)
    return success_response(resolution_to_dict(item))


@router.get("/resolutions/{kind}/{resolution_id}/progress")
async def get_resolution_progress(
    kind: ResolutionKind,
    resolution_id: int,
    user_id: str = Depends(get_current_user_id),
    service: ResolutionService = Depends(get_resolution_service),
) -> dict[str, Any]:
    item = await service.get_resolution(user_id, kind, resolution_id)
    return success_response(
        {
            "progress_percent": item.progress_percent,
            "linked_task_count": item.linked_task_count,
            "completed_task_count": item.completed_task_count,
        }
    )


@router.put("/resolutions/{kind}/{resolution_id}/tasks/{task_id}")
async def link_task(
    kind: ResolutionKind,
    resolution_id: int,
    task_id: int,
    user_id: str = Depends(get_current_user_id),
    service: ResolutionService = Depends(get_resolution_service),
) -> dict[str, Any]:
    """Link a task to a resolution (no-op if already linked)."""
    created = await service.link_task(user_id, kind, resolution_id, task_id)
    return success_response({"linked": True, "created": created}, message="Task linked to resolution")


@router.delete("/resolutions/{kind}/{resolution_id}/tasks/{task_id}")
async def unlink_task(
    kind: ResolutionKind,
    resolution_id: int,
    task_id: int,
    user_id: str = Depends(get_current_user_id),
    service: ResolutionService = Depends(get_resolution_service),
) -> dict[str, Any]:
    """Unlink a task from a resolution (no-op if not linked)."""
    removed = await service.unlink_task(user_id, kind, resolution_id, task_id)
    return success_response({"linked": False, "removed": removed}, message="Task unlinked from resolution")


@router.post("/resolutions/{kind}/{resolution_id}/archive")
async def archive_resolution(
    kind: ResolutionKind,
    resolution_id: int,
    user_id: str = Depends(get_current_user_id),
    service: ResolutionService = Depends(get_resolution_service),
) -> dict[str, Any]:
    await service.archive_resolution(user_id, kind, resolution_id)
    return success_response(None, message="Resolution archived")


@router.delete("/resolutions/{kind}/{resolution_id}")
async def delete_resolution(
    kind: ResolutionKind,
    resolution_id: int,
    user_id: str = Depends(get_current_user_id),
    service: ResolutionService = Depends(get_resolution_service),
) -> dict[str, Any]:
    await service.delete_resolution(user_id, kind, resolution_id)
    return success_response(None, message="Resolution deleted")


# =============================================================================
# Plans
# =============================================================================


@router.post("/plans/prompt")
async def preview_plan_prompt(
    body: PlanPromptRequest,
    user_id: str = Depends(get_current_user_id),
    service: PlanGenerationService = Depends(get_plan_generation_service),
) -> dict[str, Any]:
    """Build the system and plan prompts without spending quota."""
    prompt = service.preview_prompt(body.plan_input, body.month_year)
    user_prompt = prompt.user_prompt
    if body.response_tone or body.depth or body.response_format or body.extra_instructions:
        user_prompt = build_planner_system_prompt(
            body.plan_input,
            prompt.month_year,
            response_tone=body.response_tone,
            depth=body.depth,
            response_format=body.response_format,
            extra_instructions=body.extra_instructions,
        )
    return success_response(
        {
            "system_prompt": prompt.system_prompt,
            "user_prompt": user_prompt,
            "month_year": prompt.month_year,
        }
    )


__all__ = ["router"]
