"""Database store for cache, suppression and settings persistence.

This module provides the DatabaseStore class that encapsulates all database
operations for the feed filter. It uses aiosqlite for async access. Every
method wraps aiosqlite failures into DatabaseError so callers handle a
single storage error type.

Usage:
    from feedfilter.db.store import DatabaseStore

    store = DatabaseStore("data/feedfilter.db")
    await store.initialize()

    await store.put_cache_entry(fingerprint, "suppress", datetime.now(UTC))
    entry = await store.get_cache_entry(fingerprint)

    await store.add_suppressed("item-123")
    suppressed = await store.get_suppressed_identifiers()
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Literal

import aiosqlite

from feedfilter.core.errors import DatabaseError
from feedfilter.core.logging import get_logger
from feedfilter.db.models import init_database

logger = get_logger(__name__)

Decision = Literal["keep", "suppress"]


@dataclass(frozen=True)
class CacheEntry:
    """Cached classification decision for one text fingerprint."""

    fingerprint: str
    decision: Decision
    created_at: datetime


class DatabaseStore:
    """Database store for all persistent feed filter state.

    Attributes:
        db_path: Path to the SQLite database file
        _initialized: Whether the database has been initialized
    """

    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path)
        self._initialized = False

    async def initialize(self) -> None:
        """Initialize the database, creating tables if needed.

        This must be called before any other operations.
        """
        await init_database(self.db_path)
        self._initialized = True

    @asynccontextmanager
    async def _db(self) -> AsyncIterator[aiosqlite.Connection]:
        """Get a configured database connection.

        Usage:
            async with self._db() as db:
                await db.execute(...)
        """
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute("PRAGMA busy_timeout = 10000")
            await db.execute("PRAGMA synchronous = NORMAL")
            db.row_factory = aiosqlite.Row
            yield db

    # =========================================================================
    # Settings
    # =========================================================================

    async def get_setting(self, key: str) -> str | None:
        """Get a raw settings value, or None if never written."""
        try:
            async with self._db() as db:
                cursor = await db.execute("SELECT value FROM settings WHERE key = ?", (key,))
                row = await cursor.fetchone()
                return row["value"] if row else None

        except aiosqlite.Error as e:
            logger.error("Failed to get setting", key=key, error=str(e))
            raise DatabaseError(f"Failed to get setting '{key}': {e}") from e

    async def get_settings(self) -> dict[str, str]:
        """Get every stored settings value keyed by name."""
        try:
            async with self._db() as db:
                cursor = await db.execute("SELECT key, value FROM settings")
                rows = await cursor.fetchall()
                return {row["key"]: row["value"] for row in rows}

        except aiosqlite.Error as e:
            logger.error("Failed to get settings", error=str(e))
            raise DatabaseError(f"Failed to get settings: {e}") from e

    async def set_setting(self, key: str, value: str) -> None:
        """Upsert a settings value."""
        try:
            async with self._db() as db:
                await db.execute(
                    """
                    INSERT INTO settings (key, value, updated_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        updated_at = excluded.updated_at
                    """,
                    (key, value, datetime.now(UTC).isoformat()),
                )
                await db.commit()

        except aiosqlite.Error as e:
            logger.error("Failed to set setting", key=key, error=str(e))
            raise DatabaseError(f"Failed to set setting '{key}': {e}") from e

    # =========================================================================
    # Evaluation cache
    # =========================================================================

    async def get_cache_entry(self, fingerprint: str) -> CacheEntry | None:
        """Get the cached decision for a fingerprint regardless of age.

        Expiry is the caller's concern (see engine.cache.EvaluationCache).
        """
        try:
            async with self._db() as db:
                cursor = await db.execute(
                    "SELECT fingerprint, decision, created_at FROM evaluation_cache "
                    "WHERE fingerprint = ?",
                    (fingerprint,),
                )
                row = await cursor.fetchone()
                if row is None:
                    return None
                return CacheEntry(
                    fingerprint=row["fingerprint"],
                    decision=row["decision"],
                    created_at=datetime.fromisoformat(row["created_at"]),
                )

        except aiosqlite.Error as e:
            logger.error("Failed to get cache entry", fingerprint=fingerprint[:12], error=str(e))
            raise DatabaseError(f"Failed to get cache entry: {e}") from e

    async def put_cache_entry(
        self,
        fingerprint: str,
        decision: Decision,
        created_at: datetime,
    ) -> None:
        """Upsert a cache entry. Last write wins."""
        try:
            async with self._db() as db:
                await db.execute(
                    """
                    INSERT INTO evaluation_cache (fingerprint, decision, created_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(fingerprint) DO UPDATE SET
                        decision = excluded.decision,
                        created_at = excluded.created_at
                    """,
                    (fingerprint, decision, created_at.isoformat()),
                )
                await db.commit()

        except aiosqlite.Error as e:
            logger.error("Failed to put cache entry", fingerprint=fingerprint[:12], error=str(e))
            raise DatabaseError(f"Failed to put cache entry: {e}") from e

    async def delete_cache_entry(self, fingerprint: str) -> None:
        """Remove a single cache entry."""
        try:
            async with self._db() as db:
                await db.execute(
                    "DELETE FROM evaluation_cache WHERE fingerprint = ?", (fingerprint,)
                )
                await db.commit()

        except aiosqlite.Error as e:
            logger.error(
                "Failed to delete cache entry", fingerprint=fingerprint[:12], error=str(e)
            )
            raise DatabaseError(f"Failed to delete cache entry: {e}") from e

    async def clear_cache(self) -> int:
        """Remove every cache entry.

        Returns:
            Number of entries removed
        """
        try:
            async with self._db() as db:
                cursor = await db.execute("DELETE FROM evaluation_cache")
                await db.commit()
                return cursor.rowcount

        except aiosqlite.Error as e:
            logger.error("Failed to clear cache", error=str(e))
            raise DatabaseError(f"Failed to clear cache: {e}") from e

    # =========================================================================
    # Suppressed items
    # =========================================================================

    async def add_suppressed(self, identifier: str) -> None:
        """Record an identifier as suppressed. Re-adding is a no-op."""
        try:
            async with self._db() as db:
                await db.execute(
                    "INSERT OR IGNORE INTO suppressed_items (identifier, suppressed_at) "
                    "VALUES (?, ?)",
                    (identifier, datetime.now(UTC).isoformat()),
                )
                await db.commit()

        except aiosqlite.Error as e:
            logger.error("Failed to add suppressed item", identifier=identifier, error=str(e))
            raise DatabaseError(f"Failed to add suppressed item '{identifier}': {e}") from e

    async def get_suppressed_identifiers(self) -> set[str]:
        """Get every suppressed identifier."""
        try:
            async with self._db() as db:
                cursor = await db.execute("SELECT identifier FROM suppressed_items")
                rows = await cursor.fetchall()
                return {row["identifier"] for row in rows}

        except aiosqlite.Error as e:
            logger.error("Failed to get suppressed items", error=str(e))
            raise DatabaseError(f"Failed to get suppressed items: {e}") from e

    async def clear_suppressed(self) -> int:
        """Remove every suppressed identifier.

        Returns:
            Number of identifiers removed
        """
        try:
            async with self._db() as db:
                cursor = await db.execute("DELETE FROM suppressed_items")
                await db.commit()
                return cursor.rowcount

        except aiosqlite.Error as e:
            logger.error("Failed to clear suppressed items", error=str(e))
            raise DatabaseError(f"Failed to clear suppressed items: {e}") from e

    # =========================================================================
    # Stats
    # =========================================================================

    async def get_stats(self) -> dict[str, Any]:
        """Get row counts for the status command."""
        try:
            async with self._db() as db:
                cursor = await db.execute(
                    "SELECT decision, COUNT(*) AS n FROM evaluation_cache GROUP BY decision"
                )
                by_decision = {row["decision"]: row["n"] for row in await cursor.fetchall()}

                cursor = await db.execute("SELECT COUNT(*) AS n FROM suppressed_items")
                suppressed = (await cursor.fetchone())["n"]

            return {
                "cache_entries": sum(by_decision.values()),
                "cached_keep": by_decision.get("keep", 0),
                "cached_suppress": by_decision.get("suppress", 0),
                "suppressed_items": suppressed,
            }

        except aiosqlite.Error as e:
            logger.error("Failed to get stats", error=str(e))
            raise DatabaseError(f"Failed to get stats: {e}") from e
