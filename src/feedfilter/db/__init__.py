"""Database layer for the feed filter.

This module provides SQLite database access with async operations.

Usage:
    from feedfilter.db import DatabaseStore

    store = DatabaseStore("data/feedfilter.db")
    await store.initialize()
"""

from feedfilter.db.models import SCHEMA_VERSION, init_database, verify_schema
from feedfilter.db.store import CacheEntry, DatabaseStore, Decision

__all__ = [
    # Models
    "SCHEMA_VERSION",
    "init_database",
    "verify_schema",
    # Store
    "DatabaseStore",
    "CacheEntry",
    "Decision",
]
