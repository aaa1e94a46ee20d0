"""
Read-through query cache with explicit invalidation.

Lookups (a supplier's leads, a client's projects) are cached by query
identity; after a successful order commit the affected keys are
invalidated so the next lookup fetches fresh data.

Keys are built from segments and always end with ":" so that a prefix
invalidates exactly a key and its descendants:

    supplier_projects_key("s1")        → "supplier-projects:s1:"
    supplier_projects_key("s1", "c7")  → "supplier-projects:s1:c7:"

Two implementations share one interface:
  - PgQueryCache     — UNLOGGED "cache" table via cache_get/cache_set/
                       cache_invalidate SQL functions (see migrations)
  - MemoryQueryCache — process-local dict, for tests and single-instance runs

Usage:
    leads = await cache.cached(
        supplier_leads_key(supplier_id),
        lambda: fetch_leads_as_dicts(supplier_id),
        ttl=300,
    )
    await cache.invalidate(supplier_leads_key(supplier_id))
"""

import json
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = logging.getLogger(__name__)


# ── Query keys ───────────────────────────────────────────────

SUPPLIER_ORDERS = "supplier-orders"
SUPPLIER_LEADS = "supplier-leads"
SUPPLIER_PROJECTS = "supplier-projects"


def query_key(*parts: Any) -> str:
    return "".join(f"{part}:" for part in parts)


def supplier_orders_key(supplier_id: str) -> str:
    return query_key(SUPPLIER_ORDERS, supplier_id)


def supplier_leads_key(supplier_id: str) -> str:
    return query_key(SUPPLIER_LEADS, supplier_id)


def supplier_projects_key(supplier_id: str, client_id: str | None = None) -> str:
    if client_id is None:
        return query_key(SUPPLIER_PROJECTS, supplier_id)
    return query_key(SUPPLIER_PROJECTS, supplier_id, client_id)


def commit_invalidation_keys(supplier_id: str, client_id: str | None) -> list[str]:
    """Keys to invalidate after an order bundle is committed."""
    keys = [supplier_orders_key(supplier_id), supplier_leads_key(supplier_id)]
    if client_id:
        keys.append(supplier_projects_key(supplier_id, client_id))
    return keys


# ── Interface ────────────────────────────────────────────────


class QueryCache(ABC):
    """Key-value cache of JSON-compatible query results."""

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Return the cached value, or None on miss or expiry."""
        ...

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: int = 300) -> None:
        """Store a value for ttl seconds."""
        ...

    @abstractmethod
    async def invalidate(self, prefix: str) -> int:
        """Drop every entry whose key starts with prefix. Returns the count."""
        ...

    @abstractmethod
    async def cleanup(self) -> int:
        """Remove expired entries. Returns the count."""
        ...

    async def cached(
        self,
        key: str,
        compute_fn: Callable[[], Awaitable[Any]],
        ttl: int = 300,
    ) -> Any:
        """Get from cache or compute and store."""
        value = await self.get(key)
        if value is not None:
            return value

        value = await compute_fn()
        await self.set(key, value, ttl=ttl)
        return value


# ── In-process implementation ────────────────────────────────


class MemoryQueryCache(QueryCache):
    """Dict-backed cache with TTL. Not shared between processes."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, tuple[float, Any]] = {}

    async def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            logger.debug("Cache MISS: %s", key)
            return None
        expires_at, value = entry
        if expires_at <= self._clock():
            del self._entries[key]
            logger.debug("Cache EXPIRED: %s", key)
            return None
        logger.debug("Cache HIT: %s", key)
        return value

    async def set(self, key: str, value: Any, ttl: int = 300) -> None:
        self._entries[key] = (self._clock() + ttl, value)
        logger.debug("Cache SET: %s (ttl=%ds)", key, ttl)

    async def invalidate(self, prefix: str) -> int:
        doomed = [key for key in self._entries if key.startswith(prefix)]
        for key in doomed:
            del self._entries[key]
        if doomed:
            logger.debug("Cache INVALIDATE: %s (%d entries)", prefix, len(doomed))
        return len(doomed)

    async def cleanup(self) -> int:
        now = self._clock()
        expired = [key for key, (expires_at, _) in self._entries.items() if expires_at <= now]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def __contains__(self, key: str) -> bool:
        return key in self._entries


# ── PostgreSQL implementation ────────────────────────────────


class PgQueryCache(QueryCache):
    """
    Cache stored in the UNLOGGED "cache" table.

    UNLOGGED tables skip WAL writes, and losing entries on crash is fine
    since they are refetched on miss. Cache failures are logged and
    treated as misses; they never fail the caller's operation.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get(self, key: str) -> Any | None:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    text("SELECT cache_get(:key) AS value"),
                    {"key": key},
                )
                row = result.fetchone()
        except SQLAlchemyError as e:
            logger.warning("Cache GET failed for %s: %s", key, e)
            return None
        if row and row.value is not None:
            logger.debug("Cache HIT: %s", key)
            return row.value
        logger.debug("Cache MISS: %s", key)
        return None

    async def set(self, key: str, value: Any, ttl: int = 300) -> None:
        try:
            async with self._session_factory() as session:
                await session.execute(
                    text("SELECT cache_set(:key, CAST(:value AS jsonb), :ttl)"),
                    {"key": key, "value": json.dumps(value, default=str, ensure_ascii=False), "ttl": ttl},
                )
                await session.commit()
        except SQLAlchemyError as e:
            logger.warning("Cache SET failed for %s: %s", key, e)
            return
        logger.debug("Cache SET: %s (ttl=%ds)", key, ttl)

    async def invalidate(self, prefix: str) -> int:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    text("SELECT cache_invalidate(:prefix) AS count"),
                    {"prefix": prefix},
                )
                count = result.scalar() or 0
                await session.commit()
        except SQLAlchemyError as e:
            logger.warning("Cache INVALIDATE failed for %s: %s", prefix, e)
            return 0
        if count:
            logger.debug("Cache INVALIDATE: %s (%d entries)", prefix, count)
        return count

    async def cleanup(self) -> int:
        """Remove all expired cache entries. Returns count of removed entries."""
        try:
            async with self._session_factory() as session:
                result = await session.execute(text("SELECT cache_cleanup() AS count"))
                count = result.scalar() or 0
                await session.commit()
        except SQLAlchemyError as e:
            logger.warning("Cache cleanup failed: %s", e)
            return 0
        if count:
            logger.info("Cache cleanup: removed %d expired entries", count)
        return count


def build_query_cache() -> QueryCache:
    """Create the cache selected by settings.cache_backend."""
    from orderbot.config import settings

    if settings.cache_backend == "postgres":
        from orderbot.db.session import async_session_factory

        logger.info("Using PostgreSQL query cache")
        return PgQueryCache(async_session_factory)
    logger.info("Using in-memory query cache")
    return MemoryQueryCache()
