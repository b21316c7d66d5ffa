"""Response caches with a fixed time-to-live.

Two backends share one contract: ``get`` returns content only while
``now - stored_at < ttl``; stale entries read as misses and are left in place
until ``cleanup_expired`` sweeps them. ``put`` always overwrites.

The SQLite backend catches ``aiosqlite.Error`` internally and degrades
gracefully: read failures and rows with an unreadable timestamp are misses,
write failures are logged and ignored.
A broken cache must never prevent a tutoring answer from being returned.
"""

from __future__ import annotations

import hashlib
import json
from collections import OrderedDict
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import aiosqlite
import structlog

from coursetutor.models.cache import CacheEntry

if TYPE_CHECKING:
    from coursetutor.config import CacheSettings

log = structlog.get_logger()


def _utcnow() -> datetime:
    return datetime.now(UTC)


def make_cache_key(operation: str, **params: object) -> str:
    """Build a composite key from an operation name and every output-affecting parameter.

    Parameters are JSON-encoded with sorted keys before hashing, so values
    containing separator characters cannot collide and keyword order does
    not matter.
    """
    encoded = json.dumps(params, sort_keys=True, ensure_ascii=False, default=str)
    digest = hashlib.sha256(encoded.encode("utf-8")).hexdigest()
    return f"{operation}:{digest}"


class InMemoryResponseCache:
    """Process-local cache bounded to ``max_entries`` (oldest write evicted first)."""

    def __init__(
        self,
        ttl: timedelta,
        *,
        max_entries: int | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._ttl = ttl
        self._max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, key: str) -> str | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.stored_at >= self._ttl:
            return None
        return entry.content

    async def put(self, key: str, content: str) -> None:
        self._entries.pop(key, None)
        self._entries[key] = CacheEntry(key=key, content=content, stored_at=self._clock())
        if self._max_entries is not None:
            while len(self._entries) > self._max_entries:
                evicted, _ = self._entries.popitem(last=False)
                log.debug("cache_evicted", key=evicted)

    async def cleanup_expired(self) -> int:
        now = self._clock()
        stale = [k for k, e in self._entries.items() if now - e.stored_at >= self._ttl]
        for key in stale:
            del self._entries[key]
        log.info("cache_cleanup_complete", backend="memory", deleted=len(stale))
        return len(stale)


_CREATE_RESPONSE_TABLE = """
CREATE TABLE IF NOT EXISTS response_cache (
    key        TEXT PRIMARY KEY,
    content    TEXT NOT NULL,
    stored_at  TEXT NOT NULL
)
"""

_CREATE_RESPONSE_INDEX = (
    "CREATE INDEX IF NOT EXISTS idx_response_stored_at ON response_cache(stored_at)"
)


class SqliteResponseCache:
    """SQLite-backed cache that survives restarts. Implements ResponseCacheProtocol."""

    def __init__(
        self,
        db: aiosqlite.Connection,
        ttl: timedelta,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._db = db
        self._ttl = ttl
        self._clock = clock

    async def init_db(self) -> None:
        """Create the table and set WAL mode. Called once at startup."""
        await self._db.execute("PRAGMA journal_mode = WAL")
        await self._db.execute(_CREATE_RESPONSE_TABLE)
        await self._db.execute(_CREATE_RESPONSE_INDEX)
        await self._db.commit()

    async def get_entry(self, key: str) -> CacheEntry | None:
        """Read the raw entry regardless of age. Returns ``None`` on miss or read failure."""
        try:
            cursor = await self._db.execute(
                "SELECT key, content, stored_at FROM response_cache WHERE key = ?",
                (key,),
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            stored_at = datetime.fromisoformat(row[2])
            if stored_at.tzinfo is None:
                stored_at = stored_at.replace(tzinfo=UTC)
            return CacheEntry(key=row[0], content=row[1], stored_at=stored_at)
        except (aiosqlite.Error, ValueError, TypeError):
            log.warning("cache_read_error", key=key, exc_info=True)
            return None

    async def get(self, key: str) -> str | None:
        entry = await self.get_entry(key)
        if entry is None:
            return None
        if self._clock() - entry.stored_at >= self._ttl:
            return None
        return entry.content

    async def put(self, key: str, content: str) -> None:
        """Write an entry. Non-fatal on failure."""
        try:
            await self._db.execute(
                "INSERT OR REPLACE INTO response_cache (key, content, stored_at) VALUES (?, ?, ?)",
                (key, content, self._clock().isoformat()),
            )
            await self._db.commit()
        except aiosqlite.Error:
            log.warning("cache_write_error", key=key, exc_info=True)

    async def cleanup_expired(self) -> int:
        """Delete entries older than the TTL. Non-fatal on failure."""
        try:
            cutoff = (self._clock() - self._ttl).isoformat()
            cursor = await self._db.execute(
                "DELETE FROM response_cache WHERE stored_at <= ?", (cutoff,)
            )
            deleted = cursor.rowcount
            await self._db.commit()
            log.info("cache_cleanup_complete", backend="sqlite", deleted=deleted)
            return deleted
        except aiosqlite.Error:
            log.warning("cache_cleanup_error", exc_info=True)
            return 0


def build_memory_cache(settings: CacheSettings) -> InMemoryResponseCache:
    return InMemoryResponseCache(
        timedelta(seconds=settings.ttl_seconds),
        max_entries=settings.max_entries,
    )
