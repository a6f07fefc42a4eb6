"""Redis service for shared caching across API workers."""

import dataclasses
import json
import os
from datetime import date, datetime
from enum import Enum
from typing import Any

import redis.asyncio as redis


class ZenJSONEncoder(json.JSONEncoder):
    """
    JSON encoder for cached values:
    - dataclasses -> dict via dataclasses.asdict()
    - datetime/date -> .isoformat()
    - Enum -> .value
    - set -> list

    Anything else falls back to str() so encoding never raises.
    """

    def default(self, obj: Any) -> Any:
        if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
            return dataclasses.asdict(obj)
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, set):
            return sorted(obj)
        try:
            return str(obj)
        except Exception:  # Intentional catch-all: JSON encoder last-resort fallback, must never raise
            return f"<non-serializable: {type(obj).__name__}>"


class RedisService:
    """Async Redis wrapper that degrades to a no-op when Redis is unreachable."""

    def __init__(self, redis_url: str | None = None) -> None:
        self._redis_url = redis_url or os.environ.get("REDIS_URL", "redis://localhost:6379/0")
        self._client: redis.Redis | None = None

    async def _ensure_client(self) -> redis.Redis | None:
        """Get or create the async client; None when Redis is down."""
        if self._client is None:
            try:
                client = redis.from_url(self._redis_url, decode_responses=True)  # type: ignore[no-untyped-call]
                await client.ping()
                self._client = client
            except (redis.ConnectionError, redis.TimeoutError, OSError):
                self._client = None
        return self._client

    async def get(self, key: str) -> str | None:
        """Get value by key."""
        client = await self._ensure_client()
        if client is None:
            return None
        result = await client.get(key)
        return str(result) if result is not None else None

    async def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        """Set key-value (JSON-encoded) with optional TTL in seconds."""
        client = await self._ensure_client()
        if client is None:
            return False
        payload = json.dumps(value, cls=ZenJSONEncoder)
        if ttl:
            return bool(await client.setex(key, ttl, payload))
        return bool(await client.set(key, payload))

    async def close(self) -> None:
        """Close the underlying connection pool."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None


# Singleton instance
_redis_service: RedisService | None = None


def get_redis_service() -> RedisService:
    """Get Redis service singleton."""
    global _redis_service
    if _redis_service is None:
        _redis_service = RedisService()
    return _redis_service


__all__ = ["RedisService", "ZenJSONEncoder", "get_redis_service"]
