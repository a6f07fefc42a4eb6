"""
Plan Generation Gate for Monthly Zen.

Wraps the external plan-writing model call with quota accounting: one
generation is consumed before the model is called. An exhausted quota
raises QuotaExceededError and nothing is retried.

The model call itself is injected as an async callable
``(system_prompt, user_prompt) -> str`` so the service never depends on
a particular provider SDK.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime

from src.lib.exceptions import ExternalServiceError
from src.models.quota import GenerationQuota
from src.services.prompt_builder import (
    PlanGenerationInput,
    build_plan_prompt,
    build_system_prompt,
    current_month_year,
)
from src.services.quota_store import QuotaStore

logger = logging.getLogger(__name__)

CompletionFn = Callable[[str, str], Awaitable[str]]


@dataclass
class PlanPrompt:
    """The pair of prompts sent to the plan writer."""

    system_prompt: str
    user_prompt: str
    month_year: str


@dataclass
class GeneratedPlan:
    """Raw model output plus the quota row after the generation was counted."""

    raw_response: str
    quota: GenerationQuota
    prompt: PlanPrompt


class PlanGenerationService:
    """
    Quota-gated plan generation.

    Usage:
        service = PlanGenerationService(QuotaStore(db), completion=openrouter_complete)
        plan = await service.generate("user-1", plan_input)
    """

    def __init__(self, quota_store: QuotaStore, completion: CompletionFn | None = None):
        self.quota_store = quota_store
        self.completion = completion

    def preview_prompt(
        self,
        data: PlanGenerationInput,
        month_year: str | None = None,
        plan_start: datetime | None = None,
    ) -> PlanPrompt:
        """Build both prompts without spending quota."""
        month_year = month_year or current_month_year()
        system_prompt = build_system_prompt(
            coach_name=data.coach_name,
            response_tone=data.coach_tone,
            task_complexity=data.task_complexity,
            weekend_preference=data.weekend_preference,
            focus_area=data.focus_areas,
        )
        user_prompt = build_plan_prompt(data, month_year, plan_start=plan_start)
        return PlanPrompt(system_prompt=system_prompt, user_prompt=user_prompt, month_year=month_year)

    async def generate(
        self,
        user_id: str,
        data: PlanGenerationInput,
        month_year: str | None = None,
        plan_start: datetime | None = None,
    ) -> GeneratedPlan:
        """
        Consume one generation and call the plan writer.

        Raises:
            QuotaExceededError: If the user's allowance for the period is used up.
            ExternalServiceError: If no plan writer is configured or it fails.
        """
        if self.completion is None:
            raise ExternalServiceError("No plan writer configured")

        quota = await self.quota_store.consume_generation(user_id)
        prompt = self.preview_prompt(data, month_year, plan_start)

        try:
            raw = await self.completion(prompt.system_prompt, prompt.user_prompt)
        except Exception as exc:
            logger.error("Plan writer failed for user %s: %s", user_id, exc)
            raise ExternalServiceError(f"Plan writer failed: {exc}") from exc

        logger.info(
            "Generated plan for user %s (%s/%s generations used)",
            user_id,
            quota.generations_used,
            quota.total_allowed,
        )
        return GeneratedPlan(raw_response=raw, quota=quota, prompt=prompt)


__all__ = [
    "PlanGenerationService",
    "PlanPrompt",
    "GeneratedPlan",
    "CompletionFn",
]
