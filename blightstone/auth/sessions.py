"""Server-side session records and the backends that hold them.

A backend is a cache: whether a session is still valid is always decided by
the credential store, never by the presence of a record here.
"""

import logging
import secrets
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone

from pydantic import BaseModel, Field
from redis.asyncio import Redis

from blightstone.auth.models import AuthTokens
from blightstone.auth.settings import auth_settings
from blightstone.settings import app_settings
from blightstone.users.models import SessionUser
from blightstone.utils.store_calls import store_call

logger = logging.getLogger(__name__)


class SessionRecord(BaseModel):
    user: SessionUser
    access_token: str
    refresh_token: str
    expires_at: datetime
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def with_tokens(self, tokens: AuthTokens) -> "SessionRecord":
        return self.model_copy(
            update={
                "access_token": tokens.access_token,
                "refresh_token": tokens.refresh_token,
                "expires_at": tokens.expires_at,
            }
        )


def new_session_id() -> str:
    return secrets.token_urlsafe(32)


class SessionBackend(ABC):
    @abstractmethod
    async def get(self, session_id: str) -> SessionRecord | None: ...

    @abstractmethod
    async def set(self, session_id: str, record: SessionRecord, ttl_seconds: int) -> None: ...

    @abstractmethod
    async def delete(self, session_id: str) -> None: ...

    async def aclose(self) -> None:
        return None


class MemorySessionBackend(SessionBackend):
    """Process-local sessions for development, single-process deployments and tests."""

    def __init__(self):
        self._records: dict[str, tuple[float, str]] = {}

    async def get(self, session_id: str) -> SessionRecord | None:
        entry = self._records.get(session_id)
        if entry is None:
            return None
        expires_at, raw = entry
        if expires_at <= time.monotonic():
            self._records.pop(session_id, None)
            return None
        return SessionRecord.model_validate_json(raw)

    async def set(self, session_id: str, record: SessionRecord, ttl_seconds: int) -> None:
        self._records[session_id] = (
            time.monotonic() + ttl_seconds,
            record.model_dump_json(),
        )

    async def delete(self, session_id: str) -> None:
        self._records.pop(session_id, None)

    def __len__(self) -> int:
        return len(self._records)


class RedisSessionBackend(SessionBackend):
    """Redis-backed sessions keyed by ``<prefix>:<session_id>``."""

    def __init__(
        self,
        *,
        host: str = "localhost",
        port: int = 6379,
        db: int = 0,
        prefix: str = "blightstone:session",
        redis: Redis | None = None,
    ):
        self.redis: Redis = redis or Redis(
            host=host, port=port, db=db, decode_responses=True
        )
        self._prefix = prefix

    def _key(self, session_id: str) -> str:
        return f"{self._prefix}:{session_id}"

    async def get(self, session_id: str) -> SessionRecord | None:
        async with store_call("session read"):
            raw = await self.redis.get(self._key(session_id))
        if not raw:
            return None
        return SessionRecord.model_validate_json(raw)

    async def set(self, session_id: str, record: SessionRecord, ttl_seconds: int) -> None:
        async with store_call("session write"):
            await self.redis.set(
                self._key(session_id),
                record.model_dump_json(),
                ex=ttl_seconds,
            )

    async def delete(self, session_id: str) -> None:
        async with store_call("session delete"):
            await self.redis.delete(self._key(session_id))

    async def aclose(self) -> None:
        await self.redis.aclose()


def build_session_backend(kind: str | None = None) -> SessionBackend:
    kind = (kind or auth_settings.SESSION_BACKEND).lower()
    if kind == "redis":
        return RedisSessionBackend(
            host=app_settings.redis_host,
            port=app_settings.redis_port,
            db=app_settings.redis_db,
            prefix=auth_settings.SESSION_KEY_PREFIX,
        )
    if kind == "memory":
        return MemorySessionBackend()
    raise ValueError(f"Unknown SESSION_BACKEND {kind!r}; expected 'memory' or 'redis'")


_session_backend: SessionBackend | None = None


def get_session_backend() -> SessionBackend:
    """FastAPI dependency returning the process-wide session backend."""
    global _session_backend
    if _session_backend is None:
        _session_backend = build_session_backend()
        logger.info("Using %s", type(_session_backend).__name__)
    return _session_backend


async def close_session_backend() -> None:
    global _session_backend
    if _session_backend is not None:
        await _session_backend.aclose()
        _session_backend = None
