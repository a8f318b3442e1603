"""
Cache store for RSI Digest.

Key/value storage of the last successful upstream refresh per key. Values are
JSON documents; timestamps are epoch milliseconds.

Implementations:
- SQLiteCacheStore: durable across restarts (aiosqlite, table ``cache_entries``)
- MemoryCacheStore: process-local dict, useful for one-shot runs and tests
"""
import json
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

import aiosqlite

from rsi_digest.config import DB_PATH

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """A cached value and the epoch-ms time of its last successful refresh."""
    value: Any
    timestamp: Optional[int]


class CacheStoreBase(ABC):
    """
    Abstract async key/value store used by the FreshnessGuard.

    ``get`` returns None for unknown keys. ``put`` returns False instead of
    raising when the write fails.
    """

    async def initialize(self) -> None:
        """Prepare the backing storage. Safe to call more than once."""

    @abstractmethod
    async def get(self, key: str) -> Optional[CacheEntry]:
        pass

    @abstractmethod
    async def put(self, key: str, entry: CacheEntry) -> bool:
        pass


class MemoryCacheStore(CacheStoreBase):
    """In-process store; entries are lost on exit."""

    def __init__(self):
        self._entries: Dict[str, CacheEntry] = {}

    async def get(self, key: str) -> Optional[CacheEntry]:
        return self._entries.get(key)

    async def put(self, key: str, entry: CacheEntry) -> bool:
        self._entries[key] = CacheEntry(value=entry.value, timestamp=entry.timestamp)
        return True

    def __len__(self) -> int:
        return len(self._entries)


class SQLiteCacheStore(CacheStoreBase):
    def __init__(self, db_path=DB_PATH):
        self.db_path = str(db_path)
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

    @asynccontextmanager
    async def connect(self):
        """Open a SQLite connection with WAL journaling."""
        db = await aiosqlite.connect(self.db_path)
        try:
            await db.execute("PRAGMA journal_mode=WAL;")
            await db.execute("PRAGMA synchronous=NORMAL;")
            yield db
        finally:
            await db.close()

    async def initialize(self) -> None:
        """Create the cache table if it doesn't exist."""
        async with self.connect() as db:
            await db.execute("""
                CREATE TABLE IF NOT EXISTS cache_entries (
                    key TEXT PRIMARY KEY,
                    value_json TEXT NOT NULL,
                    timestamp_ms INTEGER,
                    updated_at TEXT NOT NULL
                )
            """)
            await db.commit()
            logger.info("Cache store initialized successfully")

    async def get(self, key: str) -> Optional[CacheEntry]:
        """Get the cached entry for a key, or None (also when the read fails)."""
        try:
            async with self.connect() as db:
                db.row_factory = aiosqlite.Row
                async with db.execute(
                    "SELECT value_json, timestamp_ms FROM cache_entries WHERE key = ?",
                    (key,)
                ) as cursor:
                    row = await cursor.fetchone()
        except aiosqlite.Error as e:
            logger.error(f"Failed to read cache entry {key}: {e}")
            return None

        if not row:
            return None

        try:
            value = json.loads(row['value_json'])
        except ValueError:
            logger.warning(f"Discarding unreadable cache entry {key}")
            return None

        return CacheEntry(value=value, timestamp=row['timestamp_ms'])

    async def put(self, key: str, entry: CacheEntry) -> bool:
        """Insert or replace the entry for a key."""
        try:
            value_json = json.dumps(entry.value)
            async with self.connect() as db:
                await db.execute(
                    """INSERT INTO cache_entries (key, value_json, timestamp_ms, updated_at)
                       VALUES (?, ?, ?, ?)
                       ON CONFLICT(key) DO UPDATE SET
                           value_json = excluded.value_json,
                           timestamp_ms = excluded.timestamp_ms,
                           updated_at = excluded.updated_at
                    """,
                    (key, value_json, entry.timestamp, datetime.utcnow().isoformat())
                )
                await db.commit()
            return True
        except (TypeError, ValueError, aiosqlite.Error) as e:
            logger.error(f"Failed to write cache entry {key}: {e}")
            return False
