"""Time-bounded cache of classification decisions keyed by text fingerprint.

Expiry is lazy: an entry past its TTL is deleted when get() touches it and
reported as a miss. There is no background sweep.
"""

from __future__ import annotations

import hashlib
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from feedfilter.core.logging import get_logger

if TYPE_CHECKING:
    from feedfilter.db.store import DatabaseStore, Decision

logger = get_logger(__name__)

DEFAULT_TTL = timedelta(hours=24)

VALID_DECISIONS = frozenset({"keep", "suppress"})


def fingerprint(text: str) -> str:
    """Deterministic, order-sensitive digest of item text."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def utcnow() -> datetime:
    return datetime.now(UTC)


class EvaluationCache:
    """Decision cache over DatabaseStore.

    Storage errors (DatabaseError) propagate; the classification client
    decides how to degrade.

    Attributes:
        _store: Backing database store
        _ttl: Maximum age of a usable entry
        _clock: Returns the current UTC time (injectable for tests)
    """

    def __init__(
        self,
        store: DatabaseStore,
        ttl: timedelta = DEFAULT_TTL,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._store = store
        self._ttl = ttl
        self._clock = clock

    async def get(self, text: str) -> Decision | None:
        """Return the cached decision for text, or None on a miss."""
        key = fingerprint(text)
        entry = await self._store.get_cache_entry(key)
        if entry is None:
            return None

        age = self._clock() - entry.created_at
        if age < self._ttl and entry.decision in VALID_DECISIONS:
            return entry.decision

        await self._store.delete_cache_entry(key)
        logger.debug(
            "cache_entry_evicted",
            fingerprint=key[:12],
            age_seconds=int(age.total_seconds()),
            decision=entry.decision,
        )
        return None

    async def put(self, text: str, decision: Decision) -> None:
        """Store a decision for text, replacing any previous one."""
        await self._store.put_cache_entry(fingerprint(text), decision, self._clock())
