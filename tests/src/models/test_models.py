"""
Tests for the SQLAlchemy models.

Covers:
- Database-enforced quota invariants (usage bounds, one row per period)
- Task/resolution link uniqueness
- PlanTask helpers
"""

from datetime import UTC, date, datetime

import pytest
from sqlalchemy.exc import IntegrityError

from src.models import GenerationQuota, QuotaHistory, TaskResolutionLink


def _quota(**overrides):
    values = {
        "user_id": "user-1",
        "month_year": "2026-10-01",
        "total_allowed": 50,
        "generations_used": 0,
        "total_requested": 0,
        "resets_on": date(2026, 11, 10),
    }
    values.update(overrides)
    return GenerationQuota(**values)


class TestGenerationQuota:

    def test_usage_cannot_exceed_allowance(self, db_session):
        db_session.add(_quota(generations_used=51))

        with pytest.raises(IntegrityError):
            db_session.commit()

    def test_usage_cannot_be_negative(self, db_session):
        db_session.add(_quota(generations_used=-1))

        with pytest.raises(IntegrityError):
            db_session.commit()

    def test_one_quota_per_period(self, db_session):
        db_session.add(_quota())
        db_session.commit()
        db_session.add(_quota())

        with pytest.raises(IntegrityError):
            db_session.commit()

    def test_one_history_row_per_period(self, db_session):
        for _ in range(2):
            db_session.add(
                QuotaHistory(
                    user_id="user-1",
                    period_start=date(2026, 9, 10),
                    period_end=date(2026, 10, 10),
                    month_year="2026-09-01",
                    total_allowed=50,
                    generations_used=3,
                )
            )

        with pytest.raises(IntegrityError):
            db_session.commit()


class TestPlanTask:

    def test_mark_completed(self, make_task):
        task = make_task(datetime(2026, 10, 13, 9, tzinfo=UTC))

        task.mark_completed()
        assert task.is_completed is True
        assert task.completed_at is not None

        task.mark_completed(False)
        assert task.is_completed is False
        assert task.completed_at is None

    def test_duplicate_link_rejected(self, db_session, make_task):
        task = make_task(datetime(2026, 10, 13, 9, tzinfo=UTC))
        for _ in range(2):
            db_session.add(TaskResolutionLink(task_id=task.id, resolution_kind="yearly", resolution_id=1))

        with pytest.raises(IntegrityError):
            db_session.commit()

    def test_same_id_different_kind_allowed(self, db_session, make_task):
        task = make_task(datetime(2026, 10, 13, 9, tzinfo=UTC))
        db_session.add(TaskResolutionLink(task_id=task.id, resolution_kind="yearly", resolution_id=1))
        db_session.add(TaskResolutionLink(task_id=task.id, resolution_kind="monthly", resolution_id=1))
        db_session.commit()

        db_session.refresh(task)
        assert sorted(link.resolution_kind for link in task.resolution_links) == ["monthly", "yearly"]
