"""
Redis cache for pattern snapshots.

Pattern aggregations are pure functions of task history within a
window, so repeated reads for the same user within a few minutes can be
served from Redis instead of re-running the GROUP BY queries.

Cache strategy:
    - Key format: patterns:{kind}:{user_id}:{weeks}
    - Kinds: dow, hour, focus
    - TTL: ZEN_PATTERN_CACHE_TTL (default 300 seconds)
    - Invalidation: none; snapshots expire by TTL, so a task completed
      after a read shows up within one TTL

A cache failure is always a cache miss; it never fails the request.
"""

import json
import logging
from collections.abc import Callable
from typing import Any, TypeVar

from src.services.pattern_detection import (
    DayOfWeekPattern,
    FocusAreaPattern,
    HourPattern,
    TimeOfDayPatterns,
)
from src.services.redis_service import RedisService, get_redis_service

logger = logging.getLogger(__name__)

PATTERN_CACHE_PREFIX = "patterns:"
PATTERN_CACHE_TTL = 300  # 5 minutes

T = TypeVar("T")


def _cache_key(kind: str, user_id: str, weeks: int) -> str:
    return f"{PATTERN_CACHE_PREFIX}{kind}:{user_id}:{weeks}"


def _time_patterns_from_dict(data: dict[str, Any]) -> TimeOfDayPatterns:
    return TimeOfDayPatterns(
        patterns=[HourPattern(**item) for item in data.get("patterns", [])],
        peak_hours=list(data.get("peak_hours", [])),
    )


class PatternCache:
    """
    Read-through cache for PatternAggregator results.

    Usage:
        cache = PatternCache(ttl=settings.pattern_cache_ttl)
        aggregator = PatternAggregator(db, cache=cache)
    """

    def __init__(self, redis_service: RedisService | None = None, ttl: int = PATTERN_CACHE_TTL):
        self.redis = redis_service or get_redis_service()
        self.ttl = ttl

    async def _read(self, key: str, decode: Callable[[Any], T]) -> T | None:
        if self.ttl <= 0:
            return None
        try:
            raw = await self.redis.get(key)
            if raw is None:
                return None
            return decode(json.loads(raw))
        except (json.JSONDecodeError, TypeError, KeyError) as exc:
            logger.warning("Invalid pattern cache data for %s: %s", key, exc)
            return None
        except Exception as exc:  # Intentional catch-all: cache miss is acceptable, never block on cache errors
            logger.warning("Unexpected error reading pattern cache: %s", exc)
            return None

    async def _write(self, key: str, value: Any) -> bool:
        if self.ttl <= 0:
            return False
        try:
            return await self.redis.set(key, value, ttl=self.ttl)
        except Exception as exc:  # Intentional catch-all: cache write failure is non-critical
            logger.warning("Failed to write pattern cache for %s: %s", key, exc)
            return False

    async def get_day_patterns(self, user_id: str, weeks: int) -> list[DayOfWeekPattern] | None:
        return await self._read(
            _cache_key("dow", user_id, weeks),
            lambda data: [DayOfWeekPattern(**item) for item in data],
        )

    async def set_day_patterns(self, user_id: str, weeks: int, patterns: list[DayOfWeekPattern]) -> bool:
        return await self._write(_cache_key("dow", user_id, weeks), patterns)

    async def get_time_patterns(self, user_id: str, weeks: int) -> TimeOfDayPatterns | None:
        return await self._read(_cache_key("hour", user_id, weeks), _time_patterns_from_dict)

    async def set_time_patterns(self, user_id: str, weeks: int, patterns: TimeOfDayPatterns) -> bool:
        return await self._write(_cache_key("hour", user_id, weeks), patterns)

    async def get_focus_patterns(self, user_id: str, weeks: int) -> list[FocusAreaPattern] | None:
        return await self._read(
            _cache_key("focus", user_id, weeks),
            lambda data: [FocusAreaPattern(**item) for item in data],
        )

    async def set_focus_patterns(self, user_id: str, weeks: int, patterns: list[FocusAreaPattern]) -> bool:
        return await self._write(_cache_key("focus", user_id, weeks), patterns)


__all__ = [
    "PATTERN_CACHE_PREFIX",
    "PATTERN_CACHE_TTL",
    "PatternCache",
]
