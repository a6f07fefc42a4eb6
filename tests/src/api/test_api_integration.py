"""
Integration tests for the Monthly Zen REST API.

Tests the full HTTP request/response cycle using httpx AsyncClient
against the actual FastAPI application. The database is an in-memory
SQLite shared with the test through the ``get_db`` override; the Redis
pattern cache is disabled.

Covers:
- Health endpoints (root + versioned, no identity required)
- Identity gate (401 without X-User-ID)
- Quota lifecycle (initialize, current, top-up, history)
- Resolutions (create, link/unlink, progress, update, archive, delete, summary)
- Patterns, morning intention and coaching insights
- Plan prompt preview
- Error envelope and status mapping (404, 422, 429, 503)
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from httpx import ASGITransport, AsyncClient

from src.api import create_app
from src.api.dependencies import get_db, get_pattern_cache, get_zen_settings
from src.config.settings import ZenSettings
from src.lib.exceptions import ConfigurationError, DatabaseError, QuotaExceededError
from src.models import PlanTask

USER = {"X-User-ID": "user-1"}
OTHER_USER = {"X-User-ID": "user-2"}

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings():
    return ZenSettings(database_url="sqlite:///:memory:", pattern_cache_ttl=0, dev_mode=True)


@pytest.fixture
def app(settings, session_factory):
    app = create_app(settings)

    async def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_zen_settings] = lambda: settings
    app.dependency_overrides[get_pattern_cache] = lambda: None
    return app


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac


@pytest.fixture
def task_id(session_factory):
    """A completed task owned by user-1, scheduled yesterday."""
    start = datetime.now(UTC) - timedelta(days=1)
    with session_factory() as session:
        task = PlanTask(
            user_id="user-1",
            task_description="Morning run",
            focus_area="Health",
            start_time=start,
            end_time=start + timedelta(minutes=45),
            is_completed=True,
            completed_at=start + timedelta(minutes=45),
        )
        session.add(task)
        session.commit()
        return task.id


# ---------------------------------------------------------------------------
# Health and identity
# ---------------------------------------------------------------------------


class TestHealthAndIdentity:

    @pytest.mark.asyncio
    async def test_root_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    @pytest.mark.asyncio
    async def test_versioned_health(self, client):
        response = await client.get("/api/v1/health")

        assert response.status_code == 200
        assert response.json() == {"success": True, "data": {"status": "ok"}}

    @pytest.mark.asyncio
    async def test_missing_identity_is_401(self, client):
        response = await client.get("/api/v1/quota")

        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "AUTH_REQUIRED"

    @pytest.mark.asyncio
    async def test_blank_identity_is_401(self, client):
        response = await client.get("/api/v1/quota", headers={"X-User-ID": "   "})

        assert response.status_code == 401

    def test_wildcard_cors_rejected_in_production(self):
        with pytest.raises(ConfigurationError):
            create_app(ZenSettings(environment="production", cors_origins=["*"]))


# ---------------------------------------------------------------------------
# Quota
# ---------------------------------------------------------------------------


class TestQuotaEndpoints:

    @pytest.mark.asyncio
    async def test_initialize_once(self, client):
        first = await client.post("/api/v1/quota/initialize", headers=USER)
        second = await client.post("/api/v1/quota/initialize", headers=USER)

        assert first.status_code == 200
        assert first.json()["message"] == "Welcome! You have received 50 free tokens to get started."
        assert second.json()["message"] == "Quota already exists"
        assert first.json()["data"]["id"] == second.json()["data"]["id"]

    @pytest.mark.asyncio
    async def test_current_quota_created_on_demand(self, client):
        response = await client.get("/api/v1/quota", headers=USER)

        data = response.json()["data"]
        assert data["total_allowed"] == 50
        assert data["generations_used"] == 0
        assert data["remaining"] == 50
        assert data["status"] == "active"
        assert data["month_year"].endswith("-01")

    @pytest.mark.asyncio
    async def test_request_increase(self, client):
        await client.post("/api/v1/quota/initialize", headers=USER)

        response = await client.post(
            "/api/v1/quota/request",
            json={"amount": 10, "reason": "Planning a product launch"},
            headers=USER,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["data"]["total_allowed"] == 60
        assert body["data"]["total_requested"] == 10
        assert body["message"] == "Successfully added 10 tokens to your quota. Reason: Planning a product launch"

    @pytest.mark.asyncio
    async def test_request_increase_without_quota_is_404(self, client):
        response = await client.post(
            "/api/v1/quota/request",
            json={"amount": 10, "reason": "Planning a product launch"},
            headers=USER,
        )

        assert response.status_code == 404
        assert response.json()["error"] == {"code": "NOT_FOUND", "message": "No existing quota found"}

    @pytest.mark.asyncio
    async def test_request_increase_validation(self, client):
        response = await client.post(
            "/api/v1/quota/request",
            json={"amount": 500, "reason": "short"},
            headers=USER,
        )

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert len(error["details"]["errors"]) == 2

    @pytest.mark.asyncio
    async def test_history_padded(self, client):
        response = await client.get("/api/v1/quota/history?months=3", headers=USER)

        history = response.json()["data"]
        assert len(history) == 3
        assert all(entry["generations_used"] == 0 for entry in history)


# ---------------------------------------------------------------------------
# Resolutions
# ---------------------------------------------------------------------------


class TestResolutionEndpoints:

    async def _create(self, client, **overrides):
        payload = {"text": "Run a marathon", "category": "health", "kind": "yearly"}
        payload.update(overrides)
        response = await client.post("/api/v1/resolutions", json=payload, headers=USER)
        assert response.status_code == 201
        return response.json()["data"]

    @pytest.mark.asyncio
    async def test_create_starts_at_zero_progress(self, client):
        created = await self._create(client)

        assert created["kind"] == "yearly"
        assert created["progress_percent"] == 0
        assert created["linked_task_count"] == 0

    @pytest.mark.asyncio
    async def test_invalid_recurring_interval(self, client):
        response = await client.post(
            "/api/v1/resolutions",
            json={"text": "Stretch", "is_recurring": True, "recurring_interval": "daily"},
            headers=USER,
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_link_progress_and_unlink(self, client, task_id):
        created = await self._create(client)
        base = f"/api/v1/resolutions/yearly/{created['id']}"

        first = await client.put(f"{base}/tasks/{task_id}", headers=USER)
        again = await client.put(f"{base}/tasks/{task_id}", headers=USER)

        assert first.json()["data"] == {"linked": True, "created": True}
        assert again.json()["data"] == {"linked": True, "created": False}
        assert first.json()["message"] == "Task linked to resolution"

        progress = await client.get(f"{base}/progress", headers=USER)
        assert progress.json()["data"] == {
            "progress_percent": 100,
            "linked_task_count": 1,
            "completed_task_count": 1,
        }

        removed = await client.delete(f"{base}/tasks/{task_id}", headers=USER)
        assert removed.json()["data"] == {"linked": False, "removed": True}
        progress = await client.get(f"{base}/progress", headers=USER)
        assert progress.json()["data"]["progress_percent"] == 0

    @pytest.mark.asyncio
    async def test_other_users_resolution_is_404(self, client):
        created = await self._create(client)

        response = await client.get(f"/api/v1/resolutions/yearly/{created['id']}", headers=OTHER_USER)

        assert response.status_code == 404
        assert response.json()["error"]["message"] == "Resolution not found"

    @pytest.mark.asyncio
    async def test_update(self, client):
        created = await self._create(client)

        response = await client.patch(
            f"/api/v1/resolutions/yearly/{created['id']}",
            json={"text": "Run two marathons", "is_achieved": True},
            headers=USER,
        )

        data = response.json()["data"]
        assert data["text"] == "Run two marathons"
        assert data["is_achieved"] is True
        assert data["achieved_at"] is not None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field", ["text", "priority", "category"])
    async def test_null_required_field_is_422(self, client, field):
        created = await self._create(client)
        url = f"/api/v1/resolutions/yearly/{created['id']}"

        response = await client.patch(url, json={field: None}, headers=USER)

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"
        unchanged = await client.get(url, headers=USER)
        assert unchanged.json()["data"]["text"] == "Run a marathon"

    @pytest.mark.asyncio
    async def test_clearing_target_date_allowed(self, client):
        created = await self._create(client, target_date="2026-12-31T00:00:00Z")

        response = await client.patch(
            f"/api/v1/resolutions/yearly/{created['id']}",
            json={"target_date": None},
            headers=USER,
        )

        assert response.status_code == 200
        assert response.json()["data"]["target_date"] is None

    @pytest.mark.asyncio
    async def test_archive_and_delete(self, client):
        monthly = await self._create(client, kind="monthly", text="Walk daily")
        yearly = await self._create(client)

        archived = await client.post(f"/api/v1/resolutions/monthly/{monthly['id']}/archive", headers=USER)
        deleted = await client.delete(f"/api/v1/resolutions/yearly/{yearly['id']}", headers=USER)

        assert archived.json()["message"] == "Resolution archived"
        assert deleted.json()["message"] == "Resolution deleted"
        listed = await client.get("/api/v1/resolutions", headers=USER)
        assert listed.json()["data"] == []
        with_archived = await client.get("/api/v1/resolutions?include_archived=true", headers=USER)
        assert [r["id"] for r in with_archived.json()["data"]] == [monthly["id"]]

    @pytest.mark.asyncio
    async def test_yearly_summary(self, client):
        await self._create(client)

        response = await client.get("/api/v1/resolutions/yearly-summary", headers=USER)

        data = response.json()["data"]
        assert data["year"] == datetime.now(UTC).year
        assert data["total_resolutions"] == 1
        assert data["completion_rate"] == 0

    @pytest.mark.asyncio
    async def test_unknown_kind_is_422(self, client):
        response = await client.get("/api/v1/resolutions/weekly/1", headers=USER)

        assert response.status_code == 422


# ---------------------------------------------------------------------------
# Patterns and insights
# ---------------------------------------------------------------------------


class TestPatternAndInsightEndpoints:

    @pytest.mark.asyncio
    async def test_patterns(self, client, task_id):
        response = await client.get("/api/v1/patterns?weeks=4", headers=USER)

        data = response.json()["data"]
        assert data["weeks"] == 4
        assert data["day_of_week"][0]["completion_rate"] == 1.0
        assert data["focus_areas"][0]["focus_area"] == "Health"
        assert data["time_of_day"]["peak_hours"] != []
        assert data["burnout_risk"]["level"] == "low"

    @pytest.mark.asyncio
    async def test_morning_intention(self, client):
        response = await client.get("/api/v1/insights/morning-intention", headers=USER)

        data = response.json()["data"]
        assert data["title"] == "Maintain Your Momentum"
        assert data["confidence"] == 50

    @pytest.mark.asyncio
    async def test_generate_list_and_dismiss(self, client):
        generated = await client.post("/api/v1/insights/generate", headers=USER)
        insight = generated.json()["data"]
        assert insight["title"] == "You're on Track!"

        listed = await client.get("/api/v1/insights", headers=USER)
        assert [i["id"] for i in listed.json()["data"]] == [insight["id"]]

        dismissed = await client.post(
            f"/api/v1/insights/{insight['id']}/dismiss",
            json={"action_taken": "Kept going"},
            headers=USER,
        )
        assert dismissed.json()["message"] == "Insight dismissed"
        assert dismissed.json()["data"]["is_read"] is True

        listed = await client.get("/api/v1/insights", headers=USER)
        assert listed.json()["data"] == []

    @pytest.mark.asyncio
    async def test_dismiss_unknown_insight_is_404(self, client):
        response = await client.post("/api/v1/insights/999/dismiss", headers=USER)

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"


# ---------------------------------------------------------------------------
# Plans
# ---------------------------------------------------------------------------


class TestPlanPromptEndpoint:

    PLAN_INPUT = {
        "main_goal": "Finish the thesis draft",
        "task_complexity": "Balanced",
        "focus_areas": "Writing",
        "weekend_preference": "Rest",
    }

    @pytest.mark.asyncio
    async def test_preview(self, client):
        response = await client.post(
            "/api/v1/plans/prompt",
            json={"plan_input": self.PLAN_INPUT, "month_year": "2026-11-01"},
            headers=USER,
        )

        data = response.json()["data"]
        assert data["month_year"] == "2026-11-01"
        assert data["system_prompt"].startswith("You are Monthly Zen,")
        assert "Finish the thesis draft" in data["user_prompt"]
        assert "No fixed commitments" in data["user_prompt"]

    @pytest.mark.asyncio
    async def test_preview_with_tuning(self, client):
        response = await client.post(
            "/api/v1/plans/prompt",
            json={"plan_input": self.PLAN_INPUT, "depth": "Brief", "extra_instructions": "No early mornings."},
            headers=USER,
        )

        user_prompt = response.json()["data"]["user_prompt"]
        assert "- Depth: Brief" in user_prompt
        assert user_prompt.endswith("No early mornings.")

    @pytest.mark.asyncio
    async def test_bad_month_year(self, client):
        response = await client.post(
            "/api/v1/plans/prompt",
            json={"plan_input": self.PLAN_INPUT, "month_year": "2026-11-15"},
            headers=USER,
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_preview_does_not_spend_quota(self, client):
        await client.post("/api/v1/quota/initialize", headers=USER)
        await client.post("/api/v1/plans/prompt", json={"plan_input": self.PLAN_INPUT}, headers=USER)

        quota = await client.get("/api/v1/quota", headers=USER)
        assert quota.json()["data"]["generations_used"] == 0


# ---------------------------------------------------------------------------
# Status mapping
# ---------------------------------------------------------------------------


class TestStatusMapping:

    @pytest.mark.asyncio
    async def test_quota_exceeded_is_429(self, app, client):
        @app.get("/api/v1/_test/quota-exceeded")
        async def _raise_quota():
            raise QuotaExceededError("You have used all plan generations for this period", quota_id=1)

        response = await client.get("/api/v1/_test/quota-exceeded", headers=USER)

        assert response.status_code == 429
        assert response.json() == {
            "success": False,
            "error": {
                "code": "QUOTA_EXCEEDED",
                "message": "You have used all plan generations for this period",
            },
        }

    @pytest.mark.asyncio
    async def test_database_error_is_retryable_503(self, app, client):
        @app.get("/api/v1/_test/db-down")
        async def _raise_db():
            raise DatabaseError("Database unavailable during decrement")

        response = await client.get("/api/v1/_test/db-down", headers=USER)

        assert response.status_code == 503
        error = response.json()["error"]
        assert error["code"] == "SERVICE_UNAVAILABLE"
        assert error["details"] == {"retryable": True}

    @pytest.mark.asyncio
    async def test_unknown_route_is_404_envelope(self, client):
        response = await client.get("/api/v1/nope", headers=USER)

        assert response.status_code == 404
        assert response.json()["success"] is False
