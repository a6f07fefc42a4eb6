"""
Plan Prompt Builder for Monthly Zen.

Pure string assembly: turns a user's goal, preferences, yearly
resolutions and fixed commitments into the generation request sent to
the plan-writing model, plus the short persona prompt that frames it.

The JSON schema embedded in the plan prompt (monthly_summary,
weekly_breakdown[].daily_tasks[day][]) is what the plan parser expects
back; keep the two in step.

Output depends only on the arguments. The plan start moment defaults to
the start of the current UTC day so repeated builds within a day match;
pass ``plan_start`` explicitly for fully reproducible output.
"""

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, Field

BUSINESS_HOURS_START = "09:00"
BUSINESS_HOURS_END = "18:00"

DEFAULT_COACH_NAME = "Monthly Zen"
DEFAULT_FOCUS_AREA = "general planning"

BASE_SYSTEM_PROMPT = "You are Monthly Zen, a productivity coach focused on building structured monthly plans."


# =============================================================================
# Inputs
# =============================================================================


class TaskComplexity(StrEnum):
    SIMPLE = "Simple"
    BALANCED = "Balanced"
    AMBITIOUS = "Ambitious"


class WeekendPreference(StrEnum):
    WORK = "Work"
    REST = "Rest"
    MIXED = "Mixed"


class CoachTone(StrEnum):
    ENCOURAGING = "encouraging"
    DIRECT = "direct"
    ANALYTICAL = "analytical"
    FRIENDLY = "friendly"


class ResponseDepth(StrEnum):
    BRIEF = "Brief"
    BALANCED = "Balanced"
    DEEP = "Deep"


class ResponseFormat(StrEnum):
    BULLETS = "Bullets"
    NARRATIVE = "Narrative"
    CHECKLIST = "Checklist"


class FixedCommitment(BaseModel):
    """A recurring time slot the plan must not schedule over."""

    day_of_week: str = Field(..., min_length=1)
    start_time: str = Field(..., min_length=1)   # "HH:MM"
    end_time: str = Field(..., min_length=1)
    description: str = ""


class ResolutionTarget(BaseModel):
    """A yearly resolution with its annual session target."""

    title: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    target_count: int = Field(..., ge=1)


class PlanGenerationInput(BaseModel):
    """Everything the plan prompt is built from."""

    main_goal: str = Field(..., min_length=1)
    coach_name: str | None = Field(None, min_length=1)
    coach_tone: CoachTone | None = None
    task_complexity: TaskComplexity
    focus_areas: str = Field(..., min_length=1)
    weekend_preference: WeekendPreference
    resolutions: list[ResolutionTarget] = Field(default_factory=list)
    fixed_commitments: list[FixedCommitment] = Field(default_factory=list)


# =============================================================================
# Helpers
# =============================================================================


def current_month_year(now: datetime | None = None) -> str:
    """Period key for the current month, e.g. "2026-10-01"."""
    now = now or datetime.now(UTC)
    return f"{now.year:04d}-{now.month:02d}-01"


def _default_plan_start() -> datetime:
    return datetime.now(UTC).replace(hour=0, minute=0, second=0, microsecond=0)


def _iso_utc(moment: datetime) -> str:
    # 2026-10-19T08:30:00.000Z
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _resolutions_text(resolutions: list[ResolutionTarget]) -> str:
    if not resolutions:
        return "No resolutions set for this year"
    return "\n".join(
        f"- {r.title} ({r.category}): {r.target_count} sessions/year" for r in resolutions
    )


def _commitments_text(commitments: list[FixedCommitment]) -> str:
    if not commitments:
        return "No fixed commitments"
    return "\n".join(
        f"- {c.day_of_week} from {c.start_time} to {c.end_time}: {c.description}" for c in commitments
    )


_OUTPUT_SCHEMA = """{
  "monthly_summary": "A clear overview of the plan and key objectives",
  "weekly_breakdown": [
    {
      "week": 1,
      "focus": "Main theme for this week",
      "goals": ["Weekly goal 1", "Weekly goal 2"],
      "daily_tasks": {
        "Monday": [
          {
            "task_description": "Specific, actionable task",
            "focus_area": "Category from user's focus areas",
            "start_time": "ISO 8601 combined date and time (e.g., 2025-01-01T09:00:00Z)",
            "end_time": "ISO 8601 combined date and time",
            "difficulty_level": "simple|moderate|advanced",
            "scheduling_reason": "Why this task is scheduled at this time"
          }
        ],
        "Tuesday": [],
        "Wednesday": [],
        "Thursday": [],
        "Friday": [],
        "Saturday": [],
        "Sunday": []
      }
    }
  ]
}"""


# =============================================================================
# Builders
# =============================================================================


def build_plan_prompt(
    data: PlanGenerationInput,
    month_year: str,
    *,
    plan_start: datetime | None = None,
) -> str:
    """
    Build the monthly plan generation request.

    Args:
        data: Validated generation input
        month_year: Period key ("YYYY-MM-01")
        plan_start: Moment scheduling starts from (defaults to today 00:00 UTC)

    Returns:
        Prompt text; identical for identical arguments
    """
    start = plan_start or _default_plan_start()
    start_iso = _iso_utc(start)
    start_day = start_iso.split("T")[0]
    complexity = data.task_complexity.value
    weekend = data.weekend_preference.value

    return f"""Generate a monthly productivity plan with the following requirements:

**User Goals:**
{data.main_goal}

**Yearly Resolutions (Integrate these into your task planning):**
{_resolutions_text(data.resolutions)}

**Preferences:**
- Task Complexity: {complexity}
- Focus Areas: {data.focus_areas}
- Weekend Preference: {weekend}

**Fixed Commitments (IMPORTANT - Do NOT schedule tasks during these times):**
{_commitments_text(data.fixed_commitments)}

**Context:**
- Month: {month_year}
- Plan Start Date: {start_iso} (Start scheduling tasks from this date, NOT from the beginning of the month)
- Typical business hours: {BUSINESS_HOURS_START} - {BUSINESS_HOURS_END}

**Output Format (Strict JSON):**
{_OUTPUT_SCHEMA}

**Scheduling Requirements (CRITICAL):**
1. **START FROM CURRENT DATE**: Begin scheduling tasks from {start_day}, NOT from the beginning of the month
2. **RESPECT FIXED COMMITMENTS**: Absolutely DO NOT schedule any tasks during the user's fixed commitment time slots listed above
3. For each scheduled task, verify start_time and end_time do NOT overlap with any fixed commitment
4. On days with fixed commitments, avoid advanced tasks; keep workloads lighter where possible
5. Create realistic, achievable tasks based on complexity level ({complexity})
6. Respect the user's weekend preference ({weekend})
7. **PRIORITIZE RESOLUTIONS**: When generating tasks, actively work toward completing the user's yearly resolutions listed above. Each resolution should have at least 1-2 supporting tasks per week
8. Focus primarily on these areas: {data.focus_areas}
9. Provide clear, actionable task descriptions with estimated durations
10. Consider business hours ({BUSINESS_HOURS_START}-{BUSINESS_HOURS_END}) when scheduling, unless the user's commitments indicate otherwise
11. Spread tasks evenly throughout the week when possible

**Task Complexity Guide:**
- Simple: 3-5 shorter tasks per day, 30-60 minutes each
- Balanced: 2-3 medium tasks per day, 1-2 hours each
- Ambitious: 1-2 complex tasks per day, 2-4 hours each

Please generate a complete monthly plan following this structure."""


def build_system_prompt(
    coach_name: str | None = None,
    response_tone: CoachTone | str | None = None,
    task_complexity: TaskComplexity | str | None = None,
    weekend_preference: WeekendPreference | str | None = None,
    focus_area: str | None = None,
) -> str:
    """Persona directive for the plan writer; absent fields take defaults."""
    tone = CoachTone(response_tone or CoachTone.ENCOURAGING).value
    complexity = TaskComplexity(task_complexity or TaskComplexity.BALANCED).value
    weekend = WeekendPreference(weekend_preference or WeekendPreference.MIXED).value
    area = focus_area.strip() if focus_area and focus_area.strip() else DEFAULT_FOCUS_AREA
    name = coach_name.strip() if coach_name and coach_name.strip() else DEFAULT_COACH_NAME

    return (
        f"You are {name}, a productivity coach for monthly planning. "
        f"Use a {tone} tone and focus on {area}. "
        f"Build schedules that match {complexity} complexity and respect a {weekend} weekend preference. "
        "Output should stay concise, actionable, and aligned with the user's planning goals."
    )


def build_planner_system_prompt(
    data: PlanGenerationInput,
    month_year: str | None = None,
    response_tone: CoachTone | None = None,
    depth: ResponseDepth | None = None,
    response_format: ResponseFormat | None = None,
    extra_instructions: str | None = None,
    *,
    plan_start: datetime | None = None,
) -> str:
    """Plan prompt followed by optional response tuning and extra instructions."""
    base = build_plan_prompt(data, month_year or current_month_year(), plan_start=plan_start)

    tuning = []
    if response_tone:
        tuning.append(f"- Tone: {CoachTone(response_tone).value}")
    if depth:
        tuning.append(f"- Depth: {ResponseDepth(depth).value}")
    if response_format:
        tuning.append(f"- Format: {ResponseFormat(response_format).value}")
    tuning_text = (
        "\n\n**Response Tuning (Apply to every reply):**\n" + "\n".join(tuning) if tuning else ""
    )

    extra = extra_instructions.strip() if extra_instructions else ""
    extra_text = f"\n\n{extra}" if extra else ""

    return f"{base}{tuning_text}{extra_text}"


def base_system_prompt() -> str:
    return BASE_SYSTEM_PROMPT


__all__ = [
    "TaskComplexity",
    "WeekendPreference",
    "CoachTone",
    "ResponseDepth",
    "ResponseFormat",
    "FixedCommitment",
    "ResolutionTarget",
    "PlanGenerationInput",
    "current_month_year",
    "build_plan_prompt",
    "build_system_prompt",
    "build_planner_system_prompt",
    "base_system_prompt",
]
