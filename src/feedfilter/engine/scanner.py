"""Content scanner: finds content items in the document and publishes them.

The scanner knows nothing about classification. It turns document nodes
into ContentItems and hands each one to its subscribers, which is how the
pipeline learns about new items.

Sources of items:
- scan_all(): every item under a root (page load)
- handle_mutation(): items inside nodes reported as inserted
- rescan_paced(): every item under a root, published one per interval so a
  bulk re-enable does not fire a burst of requests
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable

from feedfilter.config_schema import ScannerConfig
from feedfilter.core.logging import get_logger, truncate_text
from feedfilter.engine.document import ContentItem, ContentNode
from feedfilter.engine.identifier import ItemIdentifier

logger = get_logger(__name__)

ItemHandler = Callable[[ContentItem], Awaitable[None]]


class ContentScanner:
    """Locates content items and publishes "item discovered" events.

    Attributes:
        _identifier: Identifier extraction strategy
        _config: Item/text selectors and rescan pacing
        _handlers: Async subscribers called once per discovered item
        _paced: Outstanding paced-rescan tasks
    """

    def __init__(self, identifier: ItemIdentifier, config: ScannerConfig):
        self._identifier = identifier
        self._config = config
        self._handlers: list[ItemHandler] = []
        self._paced: set[asyncio.Task[None]] = set()

    def subscribe(self, handler: ItemHandler) -> None:
        self._handlers.append(handler)

    @property
    def pending(self) -> int:
        """Number of paced publications not yet delivered."""
        return len(self._paced)

    def is_item(self, node: ContentNode) -> bool:
        return node.tag == self._config.item_tag and node.has_attr(
            self._config.item_attribute, self._config.item_value
        )

    def identify_item(self, node: ContentNode) -> str | None:
        """Identifier of node if it is an item, else None."""
        if not self.is_item(node):
            return None
        return self._identifier.identify(node)

    def extract_text(self, node: ContentNode) -> str:
        """Text of the item's text container, falling back to the whole item."""
        for candidate in node.iter_descendants():
            if candidate.has_attr(self._config.text_attribute, self._config.text_value):
                return candidate.inner_text().strip()
        return node.inner_text().strip()

    def find_items(self, nodes: Iterable[ContentNode]) -> list[ContentItem]:
        """Collect items from nodes, each node being an item or containing items.

        Nodes without an identifier or without text are skipped.
        """
        items: list[ContentItem] = []
        for node in nodes:
            if self.is_item(node):
                candidates = [node]
            else:
                candidates = [d for d in node.iter_descendants() if self.is_item(d)]

            for candidate in candidates:
                identifier = self._identifier.identify(candidate)
                if identifier is None:
                    logger.debug("item_without_identifier", tag=candidate.tag)
                    continue
                text = self.extract_text(candidate)
                if not text:
                    logger.debug("item_without_text", identifier=identifier)
                    continue
                items.append(ContentItem(identifier=identifier, text=text))
        return items

    async def scan_all(self, root: ContentNode) -> int:
        """Publish every item currently under root.

        Returns:
            Number of items published
        """
        items = self.find_items([root])
        for item in items:
            await self._publish(item)
        logger.debug("scan_complete", items=len(items))
        return len(items)

    async def handle_mutation(self, added_nodes: Iterable[ContentNode]) -> int:
        """Publish items inside nodes inserted by a structural mutation.

        Returns:
            Number of items published
        """
        items = self.find_items(added_nodes)
        for item in items:
            await self._publish(item)
        return len(items)

    def rescan_paced(self, root: ContentNode) -> int:
        """Schedule every item under root, item i after i * rescan_interval.

        Returns:
            Number of items scheduled
        """
        interval = self._config.rescan_interval_ms / 1000
        items = self.find_items([root])
        for index, item in enumerate(items):
            task = asyncio.create_task(self._publish_after(item, index * interval))
            self._paced.add(task)
            task.add_done_callback(self._paced.discard)

        logger.info("rescan_scheduled", items=len(items), interval_ms=self._config.rescan_interval_ms)
        return len(items)

    def cancel_pending(self) -> int:
        """Cancel paced publications that have not fired yet.

        Returns:
            Number of tasks cancelled
        """
        count = 0
        for task in list(self._paced):
            if task.cancel():
                count += 1
        if count:
            logger.debug("rescan_cancelled", cancelled=count)
        return count

    async def wait_pending(self) -> None:
        """Wait until every paced publication has fired or been cancelled."""
        while self._paced:
            await asyncio.gather(*list(self._paced), return_exceptions=True)

    async def _publish_after(self, item: ContentItem, delay: float) -> None:
        if delay > 0:
            await asyncio.sleep(delay)
        await self._publish(item)

    async def _publish(self, item: ContentItem) -> None:
        logger.debug("item_discovered", identifier=item.identifier, text=truncate_text(item.text))
        for handler in self._handlers:
            await handler(item)
