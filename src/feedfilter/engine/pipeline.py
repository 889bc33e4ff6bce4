"""Filter pipeline: owns the session state and wires the components together.

One FilterPipeline corresponds to one page session. It owns the document,
dedup tracker, filter epoch, cache, suppression state, scanner and client,
and reacts to three kinds of input:

- load_page(): a fresh document snapshot (page load or reload)
- handle_mutation(): nodes inserted into the document
- handle_status_change(): the filter was enabled or disabled

Each input runs under its own scan_pass_id so all log lines it causes,
including those of the evaluation tasks it spawns, can be correlated.

Usage:
    pipeline = FilterPipeline(store, settings, service, config, presenter)
    await pipeline.load_page(root)
    await pipeline.handle_mutation([node])
    await pipeline.handle_status_change(enabled=False)
    await pipeline.drain()
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from feedfilter.core.errors import DatabaseError
from feedfilter.core.logging import get_logger, set_correlation_id
from feedfilter.engine.cache import EvaluationCache, utcnow
from feedfilter.engine.client import ClassificationClient, FilterEpoch
from feedfilter.engine.dedup import DedupTracker
from feedfilter.engine.document import ContentItem, ContentNode, Document
from feedfilter.engine.identifier import ItemIdentifier
from feedfilter.engine.scanner import ContentScanner
from feedfilter.engine.suppression import Presenter, SuppressionState

if TYPE_CHECKING:
    from feedfilter.classifier.service import ClassificationService
    from feedfilter.config_schema import AppConfig
    from feedfilter.db.store import DatabaseStore
    from feedfilter.settings import SettingsProvider

logger = get_logger(__name__)


class FilterPipeline:
    """Coordinates scanning, evaluation and suppression for one session."""

    def __init__(
        self,
        store: DatabaseStore,
        settings: SettingsProvider,
        service: ClassificationService,
        config: AppConfig,
        presenter: Presenter,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._settings = settings
        self.document = Document()
        self.dedup = DedupTracker()
        self.epoch = FilterEpoch()
        self.cache = EvaluationCache(store, ttl=timedelta(hours=config.cache.ttl_hours), clock=clock)
        self.suppression = SuppressionState(store, presenter)
        self.scanner = ContentScanner(ItemIdentifier(config.scanner.label_attribute), config.scanner)
        self.client = ClassificationClient(
            settings=settings,
            dedup=self.dedup,
            cache=self.cache,
            service=service,
            suppression=self.suppression,
            epoch=self.epoch,
        )
        self._tasks: set[asyncio.Task[None]] = set()
        self.scanner.subscribe(self._on_item_discovered)

    async def load_page(self, root: ContentNode) -> int:
        """Start a page session from a document snapshot.

        Restores persisted suppression for visible items without
        classifying them, then scans everything else.

        Returns:
            Number of items discovered
        """
        set_correlation_id(str(uuid.uuid4()))
        self.document.replace(root)
        self.dedup.reset()

        settings = await self._settings.get()
        await self.suppression.load()

        if not settings.enabled:
            # Disabled means no suppression may be visible
            if self.suppression.identifiers:
                await self.suppression.clear_all()
        else:
            visible = [item.identifier for item in self.scanner.find_items([root])]
            for identifier in self.suppression.reapply(visible):
                self.dedup.try_claim(identifier)

        count = await self.scanner.scan_all(root)
        logger.info("page_loaded", items=count, enabled=settings.enabled)
        return count

    async def handle_mutation(
        self,
        added_nodes: Iterable[ContentNode],
        removed: Iterable[str] = (),
    ) -> int:
        """Apply a structural mutation and scan inserted nodes for items.

        Removed items leave the document and release their claim, so a
        later re-insert is evaluated again (normally a cache hit) or has
        its suppression re-applied. An inserted item whose identifier is
        already in the document replaces the old node.

        Args:
            added_nodes: Nodes inserted into the page
            removed: Identifiers of items that left the page

        Returns:
            Number of items discovered
        """
        nodes = list(added_nodes)
        gone = set(removed)
        set_correlation_id(str(uuid.uuid4()))

        for identifier in gone:
            self.dedup.release(identifier)

        replaced = {item.identifier for item in self.scanner.find_items(nodes)}
        stale = gone | replaced
        if stale:
            dropped = self.document.prune(lambda node: self.scanner.identify_item(node) in stale)
            logger.debug("document_pruned", removed=len(gone), nodes=dropped)

        self.document.insert(nodes)
        return await self.scanner.handle_mutation(nodes)

    async def handle_status_change(self, enabled: bool) -> None:
        """Apply a filterStatusChanged notification.

        Only a real transition has an effect; a repeated notification for
        the current state is persisted and otherwise ignored, so evaluations
        in flight keep their epoch.

        Disabling clears every suppression and forgets claims so a later
        re-enable evaluates visible items again (cache hits make that cheap).
        Enabling re-processes every visible item, paced.
        """
        set_correlation_id(str(uuid.uuid4()))
        was_enabled = (await self._settings.get()).enabled
        try:
            await self._settings.set_enabled(enabled)
        except DatabaseError as e:
            logger.warning("enabled_flag_persist_failed", enabled=enabled, error=str(e))
            self._settings.invalidate()

        if enabled == was_enabled:
            logger.debug("filter_status_unchanged", enabled=enabled)
            return

        epoch = self.epoch.advance()
        logger.info("filter_status_changed", enabled=enabled, epoch=epoch)

        if not enabled:
            self.scanner.cancel_pending()
            self.dedup.reset()
            await self.suppression.clear_all()
        else:
            self.scanner.rescan_paced(self.document.root)

    async def drain(self) -> None:
        """Wait for paced rescans and in-flight evaluations to finish."""
        while self._tasks or self.scanner.pending:
            await self.scanner.wait_pending()
            if self._tasks:
                await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _on_item_discovered(self, item: ContentItem) -> None:
        if self.suppression.is_suppressed(item.identifier):
            # Known from a previous session: render it, never re-classify
            if self.dedup.try_claim(item.identifier):
                self.suppression.reapply([item.identifier])
            return

        task = asyncio.create_task(self._evaluate(item))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _evaluate(self, item: ContentItem) -> None:
        try:
            await self.client.evaluate(item)
        except Exception:
            # Never let one item take down the scanning loop
            logger.exception("evaluation_crashed", identifier=item.identifier)
