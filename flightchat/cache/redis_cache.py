from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from flightchat.obs.logger import log_event


class RedisCache:
    """Thin async wrapper over a Redis connection pool.

    Errors propagate; retrying and failing soft is the gateway's job.
    """

    def __init__(self, redis_url: str, client: Optional[redis.Redis] = None):
        self.redis_url = redis_url
        self.client = client or redis.from_url(redis_url, decode_responses=True)

    async def get(self, key: str) -> Optional[str]:
        return await self.client.get(key)

    async def set(self, key: str, value: str, expire_seconds: Optional[int] = None) -> None:
        await self.client.set(key, value, ex=expire_seconds)

    async def ping(self) -> bool:
        try:
            return bool(await self.client.ping())
        except (RedisError, OSError) as e:
            log_event("redis_ping_failed", level="WARNING", error=str(e))
            return False

    async def close(self) -> None:
        await self.client.aclose()
