"""Tests for the database layer.

Tests initialization and the operations on all 3 tables:
- settings
- evaluation_cache
- suppressed_items
"""

from datetime import UTC, datetime
from pathlib import Path

import aiosqlite
import pytest

from feedfilter.core.errors import DatabaseError
from feedfilter.db import DatabaseStore, init_database, verify_schema


@pytest.fixture
def db_path(data_dir: Path) -> Path:
    """Create a test database path."""
    return data_dir / "test_db.db"


class TestDatabaseInitialization:
    """Tests for database initialization."""

    async def test_init_database_creates_file(self, db_path: Path) -> None:
        assert not db_path.exists()
        await init_database(db_path)
        assert db_path.exists()

    async def test_init_database_enables_wal_mode(self, db_path: Path) -> None:
        await init_database(db_path)

        async with aiosqlite.connect(db_path) as db:
            cursor = await db.execute("PRAGMA journal_mode")
            row = await cursor.fetchone()
            assert row[0].lower() == "wal"

    async def test_verify_schema(self, db_path: Path) -> None:
        await init_database(db_path)
        assert await verify_schema(db_path)

    async def test_verify_schema_missing_tables(self, db_path: Path) -> None:
        async with aiosqlite.connect(db_path) as db:
            await db.execute("CREATE TABLE unrelated (x INTEGER)")
            await db.commit()
        assert not await verify_schema(db_path)

    async def test_init_database_is_idempotent(self, db_path: Path) -> None:
        await init_database(db_path)
        await init_database(db_path)
        assert await verify_schema(db_path)


class TestSettings:
    """Tests for the settings table."""

    async def test_missing_setting_is_none(self, store: DatabaseStore) -> None:
        assert await store.get_setting("endpoint") is None

    async def test_set_and_get(self, store: DatabaseStore) -> None:
        await store.set_setting("endpoint", "http://a.test")
        await store.set_setting("endpoint", "http://b.test")
        assert await store.get_setting("endpoint") == "http://b.test"
        assert await store.get_settings() == {"endpoint": "http://b.test"}


class TestEvaluationCache:
    """Tests for the evaluation_cache table."""

    async def test_put_and_get(self, store: DatabaseStore) -> None:
        created = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)
        await store.put_cache_entry("abc", "suppress", created)

        entry = await store.get_cache_entry("abc")
        assert entry is not None
        assert entry.decision == "suppress"
        assert entry.created_at == created

    async def test_put_overwrites(self, store: DatabaseStore) -> None:
        await store.put_cache_entry("abc", "suppress", datetime(2026, 1, 1, tzinfo=UTC))
        await store.put_cache_entry("abc", "keep", datetime(2026, 1, 2, tzinfo=UTC))

        entry = await store.get_cache_entry("abc")
        assert entry.decision == "keep"
        assert entry.created_at.day == 2

    async def test_delete_and_clear(self, store: DatabaseStore) -> None:
        now = datetime.now(UTC)
        await store.put_cache_entry("a", "keep", now)
        await store.put_cache_entry("b", "keep", now)
        await store.put_cache_entry("c", "suppress", now)

        await store.delete_cache_entry("a")
        assert await store.get_cache_entry("a") is None
        assert await store.clear_cache() == 2
        assert await store.get_cache_entry("c") is None


class TestSuppressedItems:
    """Tests for the suppressed_items table."""

    async def test_add_is_idempotent(self, store: DatabaseStore) -> None:
        await store.add_suppressed("item-1")
        await store.add_suppressed("item-1")
        await store.add_suppressed("item-2")
        assert await store.get_suppressed_identifiers() == {"item-1", "item-2"}

    async def test_clear(self, store: DatabaseStore) -> None:
        await store.add_suppressed("item-1")
        assert await store.clear_suppressed() == 1
        assert await store.get_suppressed_identifiers() == set()

    async def test_survives_new_store_instance(self, store: DatabaseStore) -> None:
        await store.add_suppressed("item-1")
        reopened = DatabaseStore(store.db_path)
        assert await reopened.get_suppressed_identifiers() == {"item-1"}


async def test_get_stats(store: DatabaseStore) -> None:
    now = datetime.now(UTC)
    await store.put_cache_entry("a", "keep", now)
    await store.put_cache_entry("b", "suppress", now)
    await store.add_suppressed("item-1")

    stats = await store.get_stats()
    assert stats == {
        "cache_entries": 2,
        "cached_keep": 1,
        "cached_suppress": 1,
        "suppressed_items": 1,
    }


async def test_operations_on_missing_schema_raise_database_error(data_dir: Path) -> None:
    store = DatabaseStore(data_dir / "uninitialized.db")
    with pytest.raises(DatabaseError):
        await store.get_cache_entry("abc")
