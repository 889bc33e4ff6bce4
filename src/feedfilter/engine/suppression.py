"""Persistent set of suppressed item identifiers.

The set is the only source of truth for what the presentation layer shows
as suppressed. It is rebuilt from storage on load, so a reload restores
suppression without classifying anything again.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from typing import TYPE_CHECKING, Protocol

from feedfilter.core.errors import DatabaseError
from feedfilter.core.logging import get_logger

if TYPE_CHECKING:
    from feedfilter.db.store import DatabaseStore

logger = get_logger(__name__)


class Presenter(Protocol):
    """Presentation layer that renders suppression."""

    def show_suppressed(self, identifier: str) -> None: ...

    def clear_suppressed(self) -> None: ...


class SuppressionState:
    """Suppressed identifiers, kept in memory and mirrored to storage.

    suppress() and clear_all() are serialized by a lock so a clear that
    lands while a suppress is persisting cannot leave a stale row or a
    stale visual behind.

    Storage failures are logged and do not stop the presentation signal:
    the item is still suppressed for this session, only durability is lost.
    """

    def __init__(self, store: DatabaseStore, presenter: Presenter):
        self._store = store
        self._presenter = presenter
        self._identifiers: set[str] = set()
        self._lock = asyncio.Lock()

    @property
    def identifiers(self) -> frozenset[str]:
        return frozenset(self._identifiers)

    async def load(self) -> int:
        """Replace the in-memory set with the persisted one.

        Returns:
            Number of identifiers loaded
        """
        try:
            persisted = await self._store.get_suppressed_identifiers()
        except DatabaseError as e:
            logger.warning("suppression_load_failed", error=str(e))
            return len(self._identifiers)

        self._identifiers = set(persisted)
        logger.debug("suppression_loaded", count=len(self._identifiers))
        return len(self._identifiers)

    def is_suppressed(self, identifier: str) -> bool:
        return identifier in self._identifiers

    async def suppress(self, identifier: str) -> None:
        """Add, persist and render one suppressed identifier."""
        async with self._lock:
            self._identifiers.add(identifier)
            try:
                await self._store.add_suppressed(identifier)
            except DatabaseError as e:
                logger.warning("suppression_persist_failed", identifier=identifier, error=str(e))
            self._presenter.show_suppressed(identifier)
            logger.info("item_suppressed", identifier=identifier)

    async def clear_all(self) -> int:
        """Empty the set, persist the empty set and clear all rendering.

        Returns:
            Number of identifiers that were suppressed
        """
        async with self._lock:
            count = len(self._identifiers)
            self._identifiers.clear()
            try:
                await self._store.clear_suppressed()
            except DatabaseError as e:
                logger.warning("suppression_clear_failed", error=str(e))
            self._presenter.clear_suppressed()
            logger.info("suppression_cleared", count=count)
            return count

    def reapply(self, known_identifiers: Iterable[str]) -> list[str]:
        """Render suppression for visible items already in the set.

        Args:
            known_identifiers: Identifiers of items currently in the document

        Returns:
            Identifiers that were re-signalled
        """
        reapplied = []
        for identifier in known_identifiers:
            if identifier in self._identifiers:
                self._presenter.show_suppressed(identifier)
                reapplied.append(identifier)
        if reapplied:
            logger.info("suppression_reapplied", count=len(reapplied))
        return reapplied
