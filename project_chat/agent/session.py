"""
Chat sessions: per-visitor conversation state between requests.

Expiry is lazy: get() drops an entry whose last activity is older than
max_age_seconds. Nothing evicts entries that are never read again.
"""
from __future__ import annotations

import logging
import time
from typing import Any, Callable, Protocol

from pydantic import BaseModel, Field, ValidationError, model_validator
from redis.asyncio import Redis

logger = logging.getLogger(__name__)

DEFAULT_MAX_AGE_SECONDS = 24 * 60 * 60


class SessionData(BaseModel):
    session_id: str
    created_at: float
    last_active_at: float
    message_count: int = Field(default=0, ge=0)
    # Authoritative for history-replaying callers
    history: list[dict[str, Any]] | None = None
    # Authoritative for callers that keep the conversation themselves
    resume_handle: str | None = None

    @model_validator(mode="after")
    def _check_times(self) -> "SessionData":
        if self.last_active_at < self.created_at:
            raise ValueError("last_active_at must not precede created_at")
        return self

    @classmethod
    def new(cls, session_id: str, now: float | None = None) -> "SessionData":
        now = time.time() if now is None else now
        return cls(session_id=session_id, created_at=now, last_active_at=now)


class SessionStore(Protocol):
    async def get(self, session_id: str) -> SessionData | None: ...

    async def set(self, session_id: str, data: SessionData) -> None: ...

    async def delete(self, session_id: str) -> None: ...


class MemorySessionStore:
    """Process-local store. Sessions are lost on restart."""

    def __init__(self, max_age_seconds: float = DEFAULT_MAX_AGE_SECONDS, clock: Callable[[], float] = time.time):
        self.max_age_seconds = max_age_seconds
        self._clock = clock
        self._store: dict[str, SessionData] = {}

    def __len__(self) -> int:
        return len(self._store)

    async def get(self, session_id: str) -> SessionData | None:
        entry = self._store.get(session_id)
        if entry is None:
            return None
        if self._clock() - entry.last_active_at > self.max_age_seconds:
            del self._store[session_id]
            logger.debug(f"Session {session_id} expired")
            return None
        return entry.model_copy(deep=True)

    async def set(self, session_id: str, data: SessionData) -> None:
        now = self._clock()
        self._store[session_id] = data.model_copy(
            update={"last_active_at": max(now, data.created_at)}, deep=True
        )

    async def delete(self, session_id: str) -> None:
        self._store.pop(session_id, None)


class RedisSessionStore:
    """Sessions as JSON strings in Redis, written with a TTL of max_age_seconds."""

    def __init__(
        self,
        redis: Redis,
        max_age_seconds: int = DEFAULT_MAX_AGE_SECONDS,
        key_prefix: str = "project_chat:session:",
        clock: Callable[[], float] = time.time,
    ):
        self._redis = redis
        self.max_age_seconds = max_age_seconds
        self.key_prefix = key_prefix
        self._clock = clock

    @classmethod
    def from_url(cls, url: str, **kwargs) -> "RedisSessionStore":
        return cls(Redis.from_url(url, decode_responses=True), **kwargs)

    def _key(self, session_id: str) -> str:
        return f"{self.key_prefix}{session_id}"

    async def get(self, session_id: str) -> SessionData | None:
        raw = await self._redis.get(self._key(session_id))
        if not raw:
            return None
        try:
            entry = SessionData.model_validate_json(raw)
        except ValidationError:
            logger.warning(f"Discarding unreadable session {session_id}")
            await self.delete(session_id)
            return None
        if self._clock() - entry.last_active_at > self.max_age_seconds:
            await self.delete(session_id)
            return None
        return entry

    async def set(self, session_id: str, data: SessionData) -> None:
        now = self._clock()
        entry = data.model_copy(update={"last_active_at": max(now, data.created_at)})
        await self._redis.set(self._key(session_id), entry.model_dump_json(), ex=int(self.max_age_seconds))

    async def delete(self, session_id: str) -> None:
        await self._redis.delete(self._key(session_id))
