"""
Tests for the plan prompt builder.

Covers:
- Determinism for identical inputs
- Resolution / commitment sections, including the empty-list wording
- Plan start date rendering
- Persona prompt defaults
- Response tuning and extra instructions
- Input validation
"""

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from src.services.prompt_builder import (
    BASE_SYSTEM_PROMPT,
    CoachTone,
    FixedCommitment,
    PlanGenerationInput,
    ResolutionTarget,
    ResponseDepth,
    ResponseFormat,
    TaskComplexity,
    WeekendPreference,
    base_system_prompt,
    build_plan_prompt,
    build_planner_system_prompt,
    build_system_prompt,
    current_month_year,
)

PLAN_START = datetime(2026, 10, 14, 8, 30, tzinfo=UTC)


@pytest.fixture
def plan_input():
    return PlanGenerationInput(
        main_goal="Ship the beta and keep training for the half marathon",
        task_complexity=TaskComplexity.BALANCED,
        focus_areas="Work, Health",
        weekend_preference=WeekendPreference.REST,
        resolutions=[ResolutionTarget(title="Run 3x a week", category="health", target_count=150)],
        fixed_commitments=[
            FixedCommitment(day_of_week="Tuesday", start_time="18:00", end_time="19:30", description="Choir"),
        ],
    )


class TestBuildPlanPrompt:

    def test_deterministic(self, plan_input):
        first = build_plan_prompt(plan_input, "2026-10-01", plan_start=PLAN_START)
        second = build_plan_prompt(plan_input, "2026-10-01", plan_start=PLAN_START)

        assert first == second

    def test_sections_rendered(self, plan_input):
        prompt = build_plan_prompt(plan_input, "2026-10-01", plan_start=PLAN_START)

        assert "Ship the beta and keep training for the half marathon" in prompt
        assert "- Run 3x a week (health): 150 sessions/year" in prompt
        assert "- Tuesday from 18:00 to 19:30: Choir" in prompt
        assert "- Task Complexity: Balanced" in prompt
        assert "- Weekend Preference: Rest" in prompt
        assert "- Month: 2026-10-01" in prompt
        assert "Plan Start Date: 2026-10-14T08:30:00.000Z" in prompt
        assert "Begin scheduling tasks from 2026-10-14" in prompt
        assert '"weekly_breakdown"' in prompt

    def test_empty_lists_use_placeholder_text(self):
        data = PlanGenerationInput(
            main_goal="Rest more",
            task_complexity=TaskComplexity.SIMPLE,
            focus_areas="Health",
            weekend_preference=WeekendPreference.MIXED,
        )

        prompt = build_plan_prompt(data, "2026-10-01", plan_start=PLAN_START)

        assert "No resolutions set for this year" in prompt
        assert "No fixed commitments" in prompt

    def test_naive_start_treated_as_utc(self, plan_input):
        naive = build_plan_prompt(plan_input, "2026-10-01", plan_start=PLAN_START.replace(tzinfo=None))

        assert naive == build_plan_prompt(plan_input, "2026-10-01", plan_start=PLAN_START)


class TestSystemPrompts:

    def test_defaults(self):
        prompt = build_system_prompt()

        assert prompt.startswith("You are Monthly Zen, a productivity coach for monthly planning.")
        assert "Use a encouraging tone and focus on general planning." in prompt
        assert "Balanced complexity" in prompt
        assert "Mixed weekend preference" in prompt

    def test_custom_values(self):
        prompt = build_system_prompt(
            coach_name="  Sage ",
            response_tone=CoachTone.DIRECT,
            task_complexity="Ambitious",
            weekend_preference=WeekendPreference.WORK,
            focus_area="Career",
        )

        assert prompt.startswith("You are Sage,")
        assert "direct tone and focus on Career" in prompt
        assert "Ambitious complexity" in prompt

    def test_blank_name_falls_back(self):
        assert build_system_prompt(coach_name="   ").startswith("You are Monthly Zen,")

    def test_base_prompt(self):
        assert base_system_prompt() == BASE_SYSTEM_PROMPT


class TestPlannerSystemPrompt:

    def test_without_tuning_equals_plan_prompt(self, plan_input):
        plain = build_planner_system_prompt(plan_input, "2026-10-01", plan_start=PLAN_START)

        assert plain == build_plan_prompt(plan_input, "2026-10-01", plan_start=PLAN_START)

    def test_tuning_and_extra_instructions(self, plan_input):
        prompt = build_planner_system_prompt(
            plan_input,
            "2026-10-01",
            response_tone=CoachTone.ANALYTICAL,
            depth=ResponseDepth.DEEP,
            response_format=ResponseFormat.CHECKLIST,
            extra_instructions="  Keep Fridays light.  ",
            plan_start=PLAN_START,
        )

        assert "**Response Tuning (Apply to every reply):**" in prompt
        assert "- Tone: analytical\n- Depth: Deep\n- Format: Checklist" in prompt
        assert prompt.endswith("\n\nKeep Fridays light.")

    def test_current_month_year(self):
        assert current_month_year(datetime(2026, 2, 28, 23, 59, tzinfo=UTC)) == "2026-02-01"


class TestInputValidation:

    def test_rejects_empty_goal(self):
        with pytest.raises(ValidationError):
            PlanGenerationInput(
                main_goal="",
                task_complexity=TaskComplexity.SIMPLE,
                focus_areas="Health",
                weekend_preference=WeekendPreference.REST,
            )

    def test_rejects_zero_target(self):
        with pytest.raises(ValidationError):
            ResolutionTarget(title="Swim", category="health", target_count=0)

    def test_rejects_unknown_complexity(self):
        with pytest.raises(ValidationError):
            PlanGenerationInput(
                main_goal="Focus",
                task_complexity="Extreme",
                focus_areas="Work",
                weekend_preference=WeekendPreference.REST,
            )
