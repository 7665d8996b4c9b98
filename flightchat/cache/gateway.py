"""Cache Gateway: retrying, fail-soft access to the key-value store.

Every read returns ``None`` and every write is skipped once retries are
exhausted, so callers always fall back to the source of truth when the
cache is down. Caching is a performance optimisation, never a correctness
boundary.
"""

import json
from typing import Any, Optional, Protocol

from flightchat.infrastructure.retry import RetryPolicy
from flightchat.obs.logger import log_event
from flightchat.obs.metrics import inc_counter


class CacheBackend(Protocol):
    async def get(self, key: str) -> Optional[str]: ...

    async def set(self, key: str, value: str, expire_seconds: Optional[int] = None) -> None: ...

    async def ping(self) -> bool: ...

    async def close(self) -> None: ...


class CacheGateway:
    def __init__(self, backend: CacheBackend, retry: Optional[RetryPolicy] = None):
        self.backend = backend
        self.retry = retry or RetryPolicy(max_attempts=3, base_delay=0.5, backoff="linear")

    async def get(self, key: str) -> Optional[str]:
        try:
            value = await self.retry.run(lambda: self.backend.get(key), name="cache_get")
        except Exception as e:
            log_event("cache_unavailable", level="WARNING", op="get", key=key, error=str(e))
            inc_counter("cache_errors_total", {"op": "get"})
            return None
        inc_counter("cache_hits_total" if value is not None else "cache_misses_total",
                    {"prefix": key.split(":", 1)[0]})
        return value

    async def set(self, key: str, value: str, expire_seconds: Optional[int] = None) -> bool:
        """Store ``value``; returns False when the write was skipped."""
        try:
            await self.retry.run(lambda: self.backend.set(key, value, expire_seconds), name="cache_set")
        except Exception as e:
            log_event("cache_unavailable", level="WARNING", op="set", key=key, error=str(e))
            inc_counter("cache_errors_total", {"op": "set"})
            return False
        return True

    async def get_json(self, key: str) -> Optional[Any]:
        raw = await self.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            log_event("cache_corrupt_entry", level="WARNING", key=key)
            return None

    async def set_json(self, key: str, value: Any, expire_seconds: Optional[int] = None) -> bool:
        return await self.set(key, json.dumps(value, separators=(",", ":")), expire_seconds)

    async def ping(self) -> bool:
        try:
            return await self.backend.ping()
        except Exception:
            return False

    async def close(self) -> None:
        await self.backend.close()
