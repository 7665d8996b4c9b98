import asyncio
import weakref
from typing import List, Union

from pydantic import ValidationError

from flightchat.cache.gateway import CacheGateway
from flightchat.obs.logger import log_event
from flightchat.types import ChatMessage


class ConversationStore:
    """Full message history per chat, one JSON array per cache key.

    Writers for the same chat are serialised within this process through
    ``lock()``. Separate processes sharing Redis can still interleave
    read-modify-write cycles on one chat and lose an append; chats are
    assumed to have a single active client.
    """

    def __init__(self, cache: CacheGateway, ttl_seconds: int = 86400):
        self.cache = cache
        self.ttl_seconds = ttl_seconds
        self.prefix = "chat:"
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _get_key(self, chat_id: Union[str, int]) -> str:
        return f"{self.prefix}{chat_id}"

    def lock(self, chat_id: Union[str, int]) -> asyncio.Lock:
        key = self._get_key(chat_id)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    async def load(self, chat_id: Union[str, int]) -> List[ChatMessage]:
        raw = await self.cache.get_json(self._get_key(chat_id))
        if not isinstance(raw, list):
            return []
        try:
            return [ChatMessage.model_validate(m) for m in raw]
        except ValidationError as e:
            log_event("chat_history_invalid", level="WARNING", errors=e.error_count())
            return []

    async def save(self, chat_id: Union[str, int], messages: List[ChatMessage]) -> bool:
        payload = [m.model_dump(mode="json") for m in messages]
        saved = await self.cache.set_json(self._get_key(chat_id), payload, expire_seconds=self.ttl_seconds)
        if not saved:
            log_event("chat_history_not_saved", level="WARNING", messages=len(messages))
        return saved
