"""
Per-conversation storage for quotes and message history.

Both come in an in-memory flavour (TTL plus least-recently-used eviction)
and a Redis flavour (key expiry). Engines depend on the protocols only.
"""

import json
import time
from collections import OrderedDict
from typing import Any, Generic, Optional, Protocol, TypeVar

from langchain_core.messages import (
    BaseMessage,
    HumanMessage,
    messages_from_dict,
    messages_to_dict,
)
from redis.asyncio import Redis

from grafibot.config import settings
from grafibot.core.quotes.models import Quote

T = TypeVar("T")


class QuoteStore(Protocol):
    async def get(self, conversation_id: str) -> Optional[Quote]: ...

    async def put(self, quote: Quote) -> None: ...

    async def delete(self, conversation_id: str) -> None: ...


class HistoryStore(Protocol):
    async def get_messages(self, conversation_id: str) -> list[BaseMessage]: ...

    async def append_messages(
        self, conversation_id: str, messages: list[BaseMessage]
    ) -> None: ...

    async def clear(self, conversation_id: str) -> None: ...


def trim_to_turn_boundary(messages: list[BaseMessage]) -> list[BaseMessage]:
    """
    Drop leading messages until the first user message.

    A capped history may start in the middle of a turn, e.g. with a tool
    result whose invoking call was trimmed away.
    """
    for i, message in enumerate(messages):
        if isinstance(message, HumanMessage):
            return messages[i:]
    return []


class ExpiringLRU(Generic[T]):
    """Mapping with per-entry expiry and a size cap."""

    def __init__(self, ttl: int, max_entries: int):
        self.ttl = ttl
        self.max_entries = max_entries
        self._entries: "OrderedDict[str, tuple[float, T]]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> Optional[T]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if time.monotonic() >= expires_at:
            del self._entries[key]
            return None
        self._entries.move_to_end(key)
        return value

    def set(self, key: str, value: T) -> None:
        self._entries[key] = (time.monotonic() + self.ttl, value)
        self._entries.move_to_end(key)
        self._evict()

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def _evict(self) -> None:
        now = time.monotonic()
        expired = [k for k, (expires_at, _) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)


class InMemoryQuoteStore:
    """Quotes kept in process memory; values are copied in and out."""

    def __init__(self, ttl: int | None = None, max_entries: int | None = None):
        self._cache: ExpiringLRU[dict] = ExpiringLRU(
            ttl or settings.conversation_ttl,
            max_entries or settings.max_conversations,
        )

    async def get(self, conversation_id: str) -> Optional[Quote]:
        data = self._cache.get(conversation_id)
        return Quote.from_dict(data) if data is not None else None

    async def put(self, quote: Quote) -> None:
        self._cache.set(quote.conversation_id, quote.to_dict())

    async def delete(self, conversation_id: str) -> None:
        self._cache.delete(conversation_id)


class InMemoryHistoryStore:
    """Append-only message history kept in process memory."""

    def __init__(
        self,
        ttl: int | None = None,
        max_entries: int | None = None,
        max_messages: int | None = None,
    ):
        self.max_messages = max_messages or settings.history_max_messages
        self._cache: ExpiringLRU[list[dict]] = ExpiringLRU(
            ttl or settings.conversation_ttl,
            max_entries or settings.max_conversations,
        )

    async def get_messages(self, conversation_id: str) -> list[BaseMessage]:
        data = self._cache.get(conversation_id) or []
        return trim_to_turn_boundary(messages_from_dict(data))

    async def append_messages(
        self, conversation_id: str, messages: list[BaseMessage]
    ) -> None:
        data = list(self._cache.get(conversation_id) or [])
        data.extend(messages_to_dict(messages))
        self._cache.set(conversation_id, data[-self.max_messages:])

    async def clear(self, conversation_id: str) -> None:
        self._cache.delete(conversation_id)


class RedisQuoteStore:
    """Quotes stored as JSON strings with expiry."""

    def __init__(self, client: Redis, ttl: int | None = None, prefix: str = "grafibot:quote:"):
        self.client = client
        self.ttl = ttl or settings.conversation_ttl
        self.prefix = prefix

    def _key(self, conversation_id: str) -> str:
        return f"{self.prefix}{conversation_id}"

    async def get(self, conversation_id: str) -> Optional[Quote]:
        raw = await self.client.get(self._key(conversation_id))
        if raw is None:
            return None
        return Quote.from_dict(json.loads(raw))

    async def put(self, quote: Quote) -> None:
        await self.client.set(
            self._key(quote.conversation_id),
            json.dumps(quote.to_dict(), ensure_ascii=False),
            ex=self.ttl,
        )

    async def delete(self, conversation_id: str) -> None:
        await self.client.delete(self._key(conversation_id))


class RedisHistoryStore:
    """Message history stored as a Redis list of JSON messages."""

    def __init__(
        self,
        client: Redis,
        ttl: int | None = None,
        max_messages: int | None = None,
        prefix: str = "grafibot:history:",
    ):
        self.client = client
        self.ttl = ttl or settings.conversation_ttl
        self.max_messages = max_messages or settings.history_max_messages
        self.prefix = prefix

    def _key(self, conversation_id: str) -> str:
        return f"{self.prefix}{conversation_id}"

    async def get_messages(self, conversation_id: str) -> list[BaseMessage]:
        raw_items = await self.client.lrange(self._key(conversation_id), 0, -1)
        data: list[dict[str, Any]] = [json.loads(raw) for raw in raw_items]
        return trim_to_turn_boundary(messages_from_dict(data))

    async def append_messages(
        self, conversation_id: str, messages: list[BaseMessage]
    ) -> None:
        if not messages:
            return
        key = self._key(conversation_id)
        encoded = [json.dumps(m, ensure_ascii=False) for m in messages_to_dict(messages)]
        async with self.client.pipeline(transaction=True) as pipe:
            pipe.rpush(key, *encoded)
            pipe.ltrim(key, -self.max_messages, -1)
            pipe.expire(key, self.ttl)
            await pipe.execute()

    async def clear(self, conversation_id: str) -> None:
        await self.client.delete(self._key(conversation_id))
