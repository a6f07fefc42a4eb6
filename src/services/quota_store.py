"""
Generation Quota Store for Monthly Zen.

Tracks how many AI plan generations each user may run per period and
gates every generation request on that allowance.

Concurrency model:
- decrement() is a single conditional UPDATE ... RETURNING. The guard
  ``generations_used < total_allowed`` is evaluated by the database on
  the row being updated, so two concurrent requests at the boundary can
  never both succeed.
- check_and_reset() runs in one transaction that re-reads the latest row
  (FOR UPDATE where supported) and re-checks the reset condition. The
  UNIQUE (user_id, month_year) constraints on both the quota and history
  tables turn a lost race into an IntegrityError, which is rolled back
  and answered with the winner's row.

Failure semantics:
- Missing quota row where one is required -> NotFoundError
- Exhausted quota -> decrement() returns None; consume_generation()
  raises QuotaExceededError. Never retried here.
"""

from __future__ import annotations

import calendar
import math
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, date, datetime, time
from enum import StrEnum

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from src.lib.database import translate_db_errors
from src.lib.exceptions import NotFoundError, QuotaExceededError
from src.models.quota import GenerationQuota, QuotaHistory

logger = structlog.get_logger(__name__)

DEFAULT_ALLOWANCE = 50
DEFAULT_PERIOD_MONTHS = 1
LOW_USAGE_THRESHOLD = 80  # percent


# =============================================================================
# Pure helpers
# =============================================================================

def add_months(start: date, months: int) -> date:
    """
    Add calendar months to a date, clamping to the last day of the month.

    >>> add_months(date(2026, 1, 31), 1)
    datetime.date(2026, 2, 28)
    """
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def month_key(day: date) -> str:
    """Period key for the month containing ``day`` ("YYYY-MM-01")."""
    return day.replace(day=1).isoformat()


class QuotaState(StrEnum):
    """Derived status of a quota."""

    ACTIVE = "active"
    LOW = "low"
    EXCEEDED = "exceeded"


@dataclass(frozen=True)
class QuotaStatus:
    """Derived, never stored, view of a quota's consumption."""

    remaining: int
    usage_percentage: int
    days_until_reset: int
    status: QuotaState


def quota_status(quota: GenerationQuota, now: datetime | None = None) -> QuotaStatus:
    """
    Derive remaining generations, usage percentage and status.

    status = exceeded if used >= total, low if usage >= 80%, else active.
    days_until_reset = ceil((resets_on - now) / 1 day), floored at 0.
    """
    now = now or datetime.now(UTC)
    total = int(quota.total_allowed or 0)
    used = int(quota.generations_used or 0)

    remaining = max(0, total - used)
    usage = (used / total) * 100 if total > 0 else 0.0

    reset_at = datetime.combine(quota.resets_on, time.min, tzinfo=UTC)
    days = math.ceil((reset_at - now).total_seconds() / 86400)

    if used >= total:
        state = QuotaState.EXCEEDED
    elif usage >= LOW_USAGE_THRESHOLD:
        state = QuotaState.LOW
    else:
        state = QuotaState.ACTIVE

    return QuotaStatus(
        remaining=remaining,
        usage_percentage=round(usage),
        days_until_reset=max(0, days),
        status=state,
    )


@dataclass(frozen=True)
class HistoryEntry:
    """One month of quota usage as shown in the usage chart."""

    month: str               # "YYYY-MM"
    total_allowed: int
    generations_used: int
    plans_generated: int


# =============================================================================
# Store
# =============================================================================

class QuotaStore:
    """
    Persists and gates per-user generation allowances.

    Usage:
        store = QuotaStore(db, default_allowance=50, period_months=1)
        quota = await store.get_or_create_quota("user-1")
        if await store.decrement(quota.id) is None:
            ...  # quota exceeded
    """

    def __init__(
        self,
        db: Session,
        default_allowance: int = DEFAULT_ALLOWANCE,
        period_months: int = DEFAULT_PERIOD_MONTHS,
        clock: Callable[[], datetime] | None = None,
    ):
        """
        Args:
            db: SQLAlchemy database session
            default_allowance: Generations granted to each fresh period
            period_months: Length of a quota period
            clock: Returns the current aware datetime (tests pin it)
        """
        self.db = db
        self.default_allowance = default_allowance
        self.period_months = period_months
        self._clock = clock or (lambda: datetime.now(UTC))

    def _today(self) -> date:
        return self._clock().date()

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def get_latest_quota(self, user_id: str) -> GenerationQuota | None:
        """
        Return the most recently created quota row for the user.

        Ordered by id, not by period: callers validate freshness through
        check_and_reset().
        """
        with translate_db_errors("get_latest_quota"):
            return self.db.execute(
                select(GenerationQuota)
                .where(GenerationQuota.user_id == user_id)
                .order_by(GenerationQuota.id.desc())
                .limit(1)
            ).scalar_one_or_none()

    async def get_history(self, user_id: str, months: int = 6) -> list[HistoryEntry]:
        """
        Return the newest ``months`` archived periods, padded to ``months``.

        Months with no archived period are filled with default entries
        (default allowance, zero usage) going back from the oldest entry.
        """
        with translate_db_errors("get_history"):
            rows = self.db.execute(
                select(QuotaHistory)
                .where(QuotaHistory.user_id == user_id)
                .order_by(QuotaHistory.created_at.desc(), QuotaHistory.id.desc())
                .limit(months)
            ).scalars().all()

        history = [
            HistoryEntry(
                month=row.month_year[:7],
                total_allowed=row.total_allowed,
                generations_used=row.generations_used or 0,
                plans_generated=(row.generations_used or 0) // 2,
            )
            for row in rows
        ]

        current_length = len(history)
        today = self._today().replace(day=1)
        for i in range(months - current_length):
            padded_month = add_months(today, -(current_length + i))
            history.insert(
                0,
                HistoryEntry(
                    month=padded_month.isoformat()[:7],
                    total_allowed=self.default_allowance,
                    generations_used=0,
                    plans_generated=0,
                ),
            )
        return history

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def _create_quota(self, user_id: str, period_start: date) -> GenerationQuota:
        quota = GenerationQuota(
            user_id=user_id,
            month_year=month_key(period_start),
            total_allowed=self.default_allowance,
            generations_used=0,
            total_requested=0,
            resets_on=add_months(period_start, self.period_months),
        )
        with translate_db_errors("create_quota"):
            try:
                self.db.add(quota)
                self.db.commit()
            except IntegrityError:
                # Another request created this period's row first.
                self.db.rollback()
                existing = await self.get_latest_quota(user_id)
                if existing is None:
                    raise
                return existing
        self.db.refresh(quota)
        logger.info("quota_created", user_id=user_id, month_year=quota.month_year, resets_on=str(quota.resets_on))
        return quota

    async def initialize(self, user_id: str) -> tuple[GenerationQuota, bool]:
        """
        Create the user's first quota if none exists.

        Returns:
            (quota, created) where created is False when a quota already existed
        """
        existing = await self.get_latest_quota(user_id)
        if existing is not None:
            return existing, False
        return await self._create_quota(user_id, self._today()), True

    async def get_or_create_quota(self, user_id: str) -> GenerationQuota:
        """Return the user's current-period quota, creating or rolling it over as needed."""
        quota = await self.get_latest_quota(user_id)
        if quota is None:
            return await self._create_quota(user_id, self._today())
        return await self.check_and_reset(user_id, quota)

    async def check_and_reset(self, user_id: str, quota: GenerationQuota) -> GenerationQuota:
        """
        Roll an expired quota over into a fresh period.

        If ``quota.resets_on`` is still in the future the quota is returned
        unchanged. Otherwise, in a single transaction:
            1. Re-read the user's latest row (locked where supported). If
               it is already current, another caller won: return it.
            2. Archive the expired period (period_start = resets_on - period).
            3. Archive any wholly skipped periods with zero usage.
            4. Insert the fresh quota for the period containing today.

        Safe to call concurrently: exactly one history entry per period.
        """
        today = self._today()
        if quota.resets_on > today:
            return quota

        with translate_db_errors("check_and_reset"):
            try:
                latest = self.db.execute(
                    select(GenerationQuota)
                    .where(GenerationQuota.user_id == user_id)
                    .order_by(GenerationQuota.id.desc())
                    .limit(1)
                    .with_for_update()
                    .execution_options(populate_existing=True)
                ).scalar_one_or_none()

                if latest is None:
                    raise NotFoundError(f"Quota for user {user_id} not found")
                if latest.resets_on > today:
                    self.db.commit()
                    return latest

                period_end = latest.resets_on
                self.db.add(
                    QuotaHistory(
                        user_id=user_id,
                        period_start=add_months(period_end, -self.period_months),
                        period_end=period_end,
                        month_year=latest.month_year,
                        total_allowed=latest.total_allowed,
                        generations_used=latest.generations_used or 0,
                        total_requested=latest.total_requested or 0,
                        was_auto_reset=period_end,
                    )
                )

                periods_rolled = 1
                period_start = period_end
                next_reset = add_months(period_start, self.period_months)
                while next_reset <= today:
                    self.db.add(
                        QuotaHistory(
                            user_id=user_id,
                            period_start=period_start,
                            period_end=next_reset,
                            month_year=month_key(period_start),
                            total_allowed=self.default_allowance,
                            generations_used=0,
                            total_requested=0,
                            was_auto_reset=period_start,
                        )
                    )
                    periods_rolled += 1
                    period_start = next_reset
                    next_reset = add_months(period_start, self.period_months)

                fresh = GenerationQuota(
                    user_id=user_id,
                    month_year=month_key(period_start),
                    total_allowed=self.default_allowance,
                    generations_used=0,
                    total_requested=0,
                    resets_on=next_reset,
                )
                self.db.add(fresh)
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                logger.info("quota_rollover_lost_race", user_id=user_id)
                winner = await self.get_latest_quota(user_id)
                if winner is None:
                    raise
                return winner
            except NotFoundError:
                self.db.rollback()
                raise

        self.db.refresh(fresh)
        logger.info(
            "quota_rollover",
            user_id=user_id,
            periods_rolled=periods_rolled,
            month_year=fresh.month_year,
            resets_on=str(fresh.resets_on),
        )
        return fresh

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    async def decrement(self, quota_id: int) -> GenerationQuota | None:
        """
        Atomically consume one generation.

        Returns:
            The updated quota, or None when the quota is exhausted.

        Raises:
            NotFoundError: If no quota row has this id.
        """
        stmt = (
            update(GenerationQuota)
            .where(
                GenerationQuota.id == quota_id,
                GenerationQuota.generations_used < GenerationQuota.total_allowed,
            )
            .values(generations_used=GenerationQuota.generations_used + 1)
            .returning(GenerationQuota.id)
            .execution_options(synchronize_session=False)
        )
        with translate_db_errors("decrement"):
            updated_id = self.db.execute(stmt).scalar_one_or_none()
            self.db.commit()

            if updated_id is None:
                exists = self.db.execute(
                    select(GenerationQuota.id).where(GenerationQuota.id == quota_id)
                ).scalar_one_or_none()
                if exists is None:
                    raise NotFoundError(f"Quota with ID {quota_id} not found")
                logger.info("quota_exhausted", quota_id=quota_id)
                return None

            quota = self.db.get(GenerationQuota, quota_id, populate_existing=True)
        return quota

    async def consume_generation(self, user_id: str) -> GenerationQuota:
        """
        Gate one plan generation for the user.

        Raises:
            QuotaExceededError: If the current period's allowance is used up.
        """
        quota = await self.get_or_create_quota(user_id)
        updated = await self.decrement(quota.id)
        if updated is None:
            raise QuotaExceededError(
                "You have used all plan generations for this period",
                quota_id=quota.id,
            )
        return updated

    async def request_increase(self, user_id: str, amount: int, reason: str) -> GenerationQuota:
        """
        Add ``amount`` generations to the user's latest quota.

        No upper bound is enforced here; the API caps a single request.

        Raises:
            NotFoundError: If the user has no quota yet.
        """
        quota = await self.get_latest_quota(user_id)
        if quota is None:
            raise NotFoundError("No existing quota found")

        with translate_db_errors("request_increase"):
            self.db.execute(
                update(GenerationQuota)
                .where(GenerationQuota.id == quota.id)
                .values(
                    total_allowed=GenerationQuota.total_allowed + amount,
                    total_requested=GenerationQuota.total_requested + amount,
                )
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
            updated = self.db.get(GenerationQuota, quota.id, populate_existing=True)

        logger.info("quota_increase", user_id=user_id, amount=amount, reason=reason)
        return updated


__all__ = [
    "QuotaStore",
    "QuotaStatus",
    "QuotaState",
    "HistoryEntry",
    "quota_status",
    "add_months",
    "month_key",
]
