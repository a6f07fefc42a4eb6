"""
FastAPI Dependencies for the database session, caller identity and services.

Authentication happens upstream: the gateway verifies the session and
forwards the user id in the ``X-User-ID`` header.
"""

import logging
from collections.abc import AsyncIterator

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from src.config.settings import ZenSettings, get_settings
from src.lib.database import get_session_factory
from src.services.burnout import BurnoutRiskDetector
from src.services.insight_engine import InsightEngine
from src.services.pattern_cache import PatternCache
from src.services.pattern_detection import PatternAggregator
from src.services.plan_generation import PlanGenerationService
from src.services.quota_store import QuotaStore
from src.services.resolution_progress import ResolutionService

logger = logging.getLogger(__name__)

USER_ID_HEADER = "X-User-ID"


async def get_db() -> AsyncIterator[Session]:
    """Yield a session per request; always closed afterwards."""
    session = get_session_factory()()
    try:
        yield session
    finally:
        session.close()


async def get_current_user_id(
    x_user_id: str | None = Header(default=None, alias=USER_ID_HEADER),
) -> str:
    """
    Caller identity forwarded by the auth gateway.

    Raises HTTPException 401 if the header is missing or blank.
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return x_user_id.strip()


def get_zen_settings() -> ZenSettings:
    return get_settings()


def get_pattern_cache(settings: ZenSettings = Depends(get_zen_settings)) -> PatternCache | None:
    """Redis snapshot cache, or None when caching is disabled (TTL 0)."""
    if settings.pattern_cache_ttl <= 0:
        return None
    return PatternCache(ttl=settings.pattern_cache_ttl)


def get_quota_store(
    db: Session = Depends(get_db),
    settings: ZenSettings = Depends(get_zen_settings),
) -> QuotaStore:
    return QuotaStore(
        db,
        default_allowance=settings.default_allowance,
        period_months=settings.quota_period_months,
    )


def get_pattern_aggregator(
    db: Session = Depends(get_db),
    cache: PatternCache | None = Depends(get_pattern_cache),
) -> PatternAggregator:
    return PatternAggregator(db, cache=cache)


def get_insight_engine(
    db: Session = Depends(get_db),
    aggregator: PatternAggregator = Depends(get_pattern_aggregator),
) -> InsightEngine:
    return InsightEngine(db, aggregator, BurnoutRiskDetector(aggregator))


def get_resolution_service(db: Session = Depends(get_db)) -> ResolutionService:
    return ResolutionService(db)


def get_plan_generation_service(
    quota_store: QuotaStore = Depends(get_quota_store),
) -> PlanGenerationService:
    # The plan writer is wired by the deployment; previews need none.
    return PlanGenerationService(quota_store)


__all__ = [
    "USER_ID_HEADER",
    "get_db",
    "get_current_user_id",
    "get_zen_settings",
    "get_pattern_cache",
    "get_quota_store",
    "get_pattern_aggregator",
    "get_insight_engine",
    "get_resolution_service",
    "get_plan_generation_service",
]
