"""SQLite database schema and initialization for the feed filter.

This module defines the database schema with 3 tables:
- settings: Key-value runtime filter settings (enabled flag, endpoint, ...)
- evaluation_cache: Text fingerprint -> classification decision, with timestamp
- suppressed_items: Identifiers of items currently suppressed

Usage:
    from feedfilter.db.models import init_database

    await init_database("data/feedfilter.db")
"""

import stat
from pathlib import Path

import aiosqlite

from feedfilter.core.errors import DatabaseError
from feedfilter.core.logging import get_logger

logger = get_logger(__name__)

# Schema version for migrations (increment when schema changes)
SCHEMA_VERSION = 1

REQUIRED_TABLES = ("settings", "evaluation_cache", "suppressed_items")

SCHEMA_SQL = """
-- MUST be set before creating tables. Persists across connections.
PRAGMA journal_mode=WAL;

-- Runtime filter settings written by the CLI
CREATE TABLE IF NOT EXISTS settings (
    key TEXT PRIMARY KEY,
    value TEXT,
    updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
);
-- Keys: 'enabled', 'endpoint', 'modelName', 'promptTemplate', 'suppressKeyword'

-- Prior classification decisions keyed by text fingerprint
CREATE TABLE IF NOT EXISTS evaluation_cache (
    fingerprint TEXT PRIMARY KEY,           -- SHA-256 hex digest of the item text
    decision TEXT NOT NULL,                 -- 'keep' or 'suppress'
    created_at DATETIME NOT NULL            -- ISO-8601 UTC; entries expire after the TTL
);

-- Items currently suppressed; reapplied on reload without re-classifying
CREATE TABLE IF NOT EXISTS suppressed_items (
    identifier TEXT PRIMARY KEY,
    suppressed_at DATETIME DEFAULT CURRENT_TIMESTAMP
);
"""


async def init_database(db_path: str | Path) -> None:
    """Initialize the SQLite database with schema and WAL mode.

    Creates the database file if it doesn't exist, enables WAL mode and
    creates all tables.

    Args:
        db_path: Path to the SQLite database file

    Raises:
        DatabaseError: If database initialization fails
    """
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    try:
        async with aiosqlite.connect(db_path) as db:
            await db.execute("PRAGMA journal_mode=WAL")
            journal_mode = await db.execute("PRAGMA journal_mode")
            mode = await journal_mode.fetchone()
            if mode and mode[0].lower() != "wal":
                logger.warning(
                    "WAL mode not enabled",
                    requested="wal",
                    actual=mode[0],
                    db_path=str(db_path),
                )

            await db.executescript(SCHEMA_SQL)
            await db.commit()

        # Owner read/write only
        db_path.chmod(stat.S_IRUSR | stat.S_IWUSR)

        logger.info(
            "Database initialized",
            db_path=str(db_path),
            schema_version=SCHEMA_VERSION,
        )

    except aiosqlite.Error as e:
        logger.error("Database initialization failed", db_path=str(db_path), error=str(e))
        raise DatabaseError(
            f"Failed to initialize database at {db_path}: {e}. "
            "Check that the directory is writable and the database file is not corrupted."
        ) from e


async def verify_schema(db_path: str | Path) -> bool:
    """Verify that the database has the expected schema.

    Returns:
        True if all tables exist, False otherwise
    """
    try:
        async with aiosqlite.connect(db_path) as db:
            cursor = await db.execute("SELECT name FROM sqlite_master WHERE type='table'")
            existing_tables = {row[0] for row in await cursor.fetchall()}

            missing = set(REQUIRED_TABLES) - existing_tables
            if missing:
                logger.warning(
                    "Missing database tables",
                    missing=sorted(missing),
                    db_path=str(db_path),
                )
                return False

            return True

    except aiosqlite.Error as e:
        logger.error("Schema verification failed", db_path=str(db_path), error=str(e))
        return False
