"""
Shared test fixtures for Monthly Zen.

This module provides common fixtures used across all test modules:
- Environment setup (dev mode logging, no Redis-backed cache)
- Database session (in-memory SQLite)
- A pinned clock
- Factories for tasks, quotas and resolutions

Usage:
    All fixtures are automatically available to any test in the tests/ directory.
"""

from __future__ import annotations

import os
from datetime import UTC, date, datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# ---------------------------------------------------------------------------
# 1. Environment setup -- must run before any application imports
# ---------------------------------------------------------------------------

os.environ.setdefault("ZEN_DEV_MODE", "1")
os.environ.setdefault("ZEN_DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("ZEN_PATTERN_CACHE_TTL", "0")

# ---------------------------------------------------------------------------
# Application imports (after env vars are set)
# ---------------------------------------------------------------------------

from src.models import (  # noqa: E402
    Base,
    GenerationQuota,
    MonthlyResolution,
    PlanTask,
    YearlyResolution,
)
from src.models.resolution import ResolutionKind  # noqa: E402

# Wednesday 2026-10-14 12:00 UTC
FIXED_NOW = datetime(2026, 10, 14, 12, 0, tzinfo=UTC)


# ---------------------------------------------------------------------------
# 2. engine / db_session -- in-memory SQLite for unit tests
# ---------------------------------------------------------------------------

@pytest.fixture()
def engine():
    """
    In-memory SQLite engine shared across threads via StaticPool.

    StaticPool keeps the single in-memory connection alive so the API
    tests can open sessions from the request handlers.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine)


@pytest.fixture()
def db_session(session_factory):
    """
    Provide a SQLAlchemy session backed by an in-memory SQLite database.

    A fresh database is created for every test that requests this fixture.
    """
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def fixed_now():
    return FIXED_NOW


@pytest.fixture()
def clock(fixed_now):
    return lambda: fixed_now


# ---------------------------------------------------------------------------
# 3. Factories
# ---------------------------------------------------------------------------

@pytest.fixture()
def make_task(db_session):
    """
    Create and persist a PlanTask.

    Example::

        task = make_task(start=FIXED_NOW - timedelta(days=1), completed=True)
    """

    def _make(
        start: datetime,
        completed: bool = False,
        user_id: str = "user-1",
        focus_area: str | None = "Work",
        duration_minutes: int = 60,
    ) -> PlanTask:
        task = PlanTask(
            user_id=user_id,
            plan_id=1,
            task_description="Write report",
            focus_area=focus_area,
            start_time=start,
            end_time=start + timedelta(minutes=duration_minutes),
            difficulty_level="moderate",
            is_completed=completed,
            completed_at=start + timedelta(minutes=duration_minutes) if completed else None,
        )
        db_session.add(task)
        db_session.commit()
        return task

    return _make


@pytest.fixture()
def make_quota(db_session):
    """Create and persist a GenerationQuota."""

    def _make(
        user_id: str = "user-1",
        total_allowed: int = 50,
        generations_used: int = 0,
        month_year: str = "2026-10-01",
        resets_on: date = date(2026, 11, 10),
    ) -> GenerationQuota:
        quota = GenerationQuota(
            user_id=user_id,
            month_year=month_year,
            total_allowed=total_allowed,
            generations_used=generations_used,
            total_requested=0,
            resets_on=resets_on,
        )
        db_session.add(quota)
        db_session.commit()
        return quota

    return _make


@pytest.fixture()
def make_resolution(db_session):
    """Create and persist a monthly or yearly resolution."""

    def _make(
        user_id: str = "user-1",
        kind: ResolutionKind = ResolutionKind.YEARLY,
        text: str = "Run a marathon",
        category: str = "health",
        start_date: datetime = FIXED_NOW,
        is_achieved: bool = False,
    ):
        model = YearlyResolution if kind == ResolutionKind.YEARLY else MonthlyResolution
        resolution = model(
            user_id=user_id,
            text=text,
            category=category,
            resolution_type=kind.value,
            priority=2,
            start_date=start_date,
            is_achieved=is_achieved,
        )
        db_session.add(resolution)
        db_session.commit()
        return resolution

    return _make
