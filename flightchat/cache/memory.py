"""In-memory TTL key-value store.

Used when Redis is not configured or unreachable, and by the test suite.
Values are strings, exactly as Redis with ``decode_responses=True`` returns
them.
"""

from typing import Optional, Dict, Tuple, Callable
import asyncio
import time


class MemoryCache:
    """Process-local dictionary with per-key expiry."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._lock = asyncio.Lock()
        self._data: Dict[str, Tuple[str, Optional[float]]] = {}

    def _expired(self, expires_at: Optional[float]) -> bool:
        return expires_at is not None and self._clock() >= expires_at

    async def get(self, key: str) -> Optional[str]:
        async with self._lock:
            rec = self._data.get(key)
            if rec is None:
                return None
            value, expires_at = rec
            if self._expired(expires_at):
                self._data.pop(key, None)
                return None
            return value

    async def set(self, key: str, value: str, expire_seconds: Optional[int] = None) -> None:
        expires_at = self._clock() + expire_seconds if expire_seconds else None
        async with self._lock:
            self._data[key] = (value, expires_at)

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        async with self._lock:
            self._data.clear()
