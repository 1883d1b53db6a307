"""
Agent response cache.

Caches complete agent replies for reusable questions (queries, help)
keyed by user and normalized message text. Replies that log or touch
transactions are never cached. A cache failure is always a miss; the
cache must never break message handling.
"""

from __future__ import annotations

import hashlib
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hilm.core.logging import get_logger
from hilm.db.models.base import utcnow
from hilm.db.models.response_cache_entry import ResponseCacheEntry

logger = get_logger(__name__)

NON_CACHEABLE_KEYWORDS = (
    "spent",
    "bought",
    "paid",
    "purchased",
    "cost",
    "expense",
    "receipt",
    "transaction",
)


@dataclass
class CachedResponse:
    """A cached agent reply."""

    response: str
    metadata: dict[str, Any] = field(default_factory=dict)


def normalize_message(message: str) -> str:
    return message.strip().lower()


def cache_key(user_id: int, message: str, context: dict[str, Any] | None = None) -> str:
    """SHA-256 hex digest of ``user_id:normalized:context``."""
    context_str = json.dumps(context, separators=(",", ":"), ensure_ascii=False) if context else ""
    raw = f"{user_id}:{normalize_message(message)}:{context_str}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def should_cache_response(message: str) -> bool:
    """False for anything that looks like a transaction being logged."""
    lowered = message.lower()
    return not any(keyword in lowered for keyword in NON_CACHEABLE_KEYWORDS)


class ResponseCache(ABC):
    """Lookup/store of agent replies by (user, normalized text)."""

    @abstractmethod
    async def get(
        self,
        user_id: int,
        message: str,
        context: dict[str, Any] | None = None,
    ) -> CachedResponse | None:
        ...

    @abstractmethod
    async def set(
        self,
        user_id: int,
        message: str,
        response: CachedResponse,
        context: dict[str, Any] | None = None,
    ) -> None:
        ...


class SqlResponseCache(ResponseCache):
    """PostgreSQL-backed cache with TTL and version-based invalidation."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        ttl_seconds: int = 3600,
        version: int = 1,
    ) -> None:
        self._session_factory = session_factory
        self.ttl_seconds = ttl_seconds
        self.version = version

    async def get(
        self,
        user_id: int,
        message: str,
        context: dict[str, Any] | None = None,
    ) -> CachedResponse | None:
        key = cache_key(user_id, message, context)
        stmt = select(ResponseCacheEntry.response).where(
            ResponseCacheEntry.cache_key == key,
            ResponseCacheEntry.user_id == user_id,
            ResponseCacheEntry.expires_at > utcnow(),
            ResponseCacheEntry.version == self.version,
        )
        try:
            async with self._session_factory() as session:
                payload = (await session.execute(stmt)).scalar_one_or_none()
        except Exception as exc:
            logger.warning("Response cache get failed", user_id=user_id, error=str(exc))
            return None

        if payload is None:
            logger.debug("Response cache miss", user_id=user_id)
            return None

        logger.info("Response cache hit", user_id=user_id, key=key[:8])
        return CachedResponse(
            response=payload.get("response", ""),
            metadata=payload.get("metadata", {}),
        )

    async def set(
        self,
        user_id: int,
        message: str,
        response: CachedResponse,
        context: dict[str, Any] | None = None,
    ) -> None:
        key = cache_key(user_id, message, context)
        values = {
            "cache_key": key,
            "user_id": user_id,
            "query_text": normalize_message(message),
            "response": {"response": response.response, "metadata": response.metadata},
            "version": self.version,
            "expires_at": utcnow() + timedelta(seconds=self.ttl_seconds),
        }
        stmt = insert(ResponseCacheEntry).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[ResponseCacheEntry.cache_key],
            set_={
                "response": stmt.excluded.response,
                "version": stmt.excluded.version,
                "expires_at": stmt.excluded.expires_at,
            },
        )
        try:
            async with self._session_factory() as session:
                await session.execute(stmt)
                await session.commit()
        except Exception as exc:
            logger.warning("Response cache set failed", user_id=user_id, error=str(exc))
            return

        logger.debug("Response cached", user_id=user_id, ttl_seconds=self.ttl_seconds)
