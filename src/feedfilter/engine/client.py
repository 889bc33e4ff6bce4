"""Classification client: per-item evaluation protocol.

Evaluation flow for one item:
1. Filter disabled -> keep, nothing else happens
2. Dedup claim -> already claimed this session means stop here
3. Cache lookup -> on hit, apply the cached decision, no network call
4. Cache miss -> classify via the service, cache the decision, apply it
5. Service failure -> keep, nothing cached (fail open)

Each request is tagged with the filter epoch current at submission. A
decision that arrives after the filter was toggled is still cached (it is
a fact about the text) but is not applied, because the suppression set it
would land in has since been cleared or rebuilt.

Usage:
    client = ClassificationClient(settings, dedup, cache, service, suppression, epoch)
    decision = await client.evaluate(item)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from feedfilter.core.errors import ClassificationError, DatabaseError
from feedfilter.core.logging import get_logger, truncate_text

if TYPE_CHECKING:
    from feedfilter.classifier.service import ClassificationService
    from feedfilter.db.store import Decision
    from feedfilter.engine.cache import EvaluationCache
    from feedfilter.engine.dedup import DedupTracker
    from feedfilter.engine.document import ContentItem
    from feedfilter.engine.suppression import SuppressionState
    from feedfilter.settings import SettingsProvider

logger = get_logger(__name__)


class FilterEpoch:
    """Counter advanced on every filter status transition."""

    def __init__(self) -> None:
        self.value = 0

    def advance(self) -> int:
        self.value += 1
        return self.value


class ClassificationClient:
    """Runs the cache-then-classify protocol for one item at a time.

    Attributes:
        _settings: Source of the enabled flag
        _dedup: Single-flight gate
        _cache: Decision cache
        _service: Classification service (network)
        _suppression: Suppression state receiving "suppress" decisions
        _epoch: Filter epoch shared with the pipeline
    """

    def __init__(
        self,
        settings: SettingsProvider,
        dedup: DedupTracker,
        cache: EvaluationCache,
        service: ClassificationService,
        suppression: SuppressionState,
        epoch: FilterEpoch,
    ):
        self._settings = settings
        self._dedup = dedup
        self._cache = cache
        self._service = service
        self._suppression = suppression
        self._epoch = epoch

    async def evaluate(self, item: ContentItem) -> Decision:
        """Evaluate one item and apply suppression if warranted.

        Returns:
            The decision that was applied: "suppress" only if the item was
            suppressed by this call, otherwise "keep"
        """
        settings = await self._settings.get()
        if not settings.enabled:
            return "keep"

        if not self._dedup.try_claim(item.identifier):
            logger.debug("item_already_claimed", identifier=item.identifier)
            return "keep"

        epoch = self._epoch.value

        try:
            cached = await self._cache.get(item.text)
        except DatabaseError as e:
            logger.warning("cache_read_failed", identifier=item.identifier, error=str(e))
            cached = None

        if cached is not None:
            logger.debug("cache_hit", identifier=item.identifier, decision=cached)
            return await self._apply(item, cached, epoch)

        try:
            result = await self._service.classify(item.text)
        except ClassificationError as e:
            logger.warning(
                "classification_failed",
                identifier=item.identifier,
                text=truncate_text(item.text),
                status_code=e.status_code,
                error=str(e),
            )
            return "keep"

        try:
            await self._cache.put(item.text, result.decision)
        except DatabaseError as e:
            logger.warning("cache_write_failed", identifier=item.identifier, error=str(e))

        return await self._apply(item, result.decision, epoch)

    async def _apply(self, item: ContentItem, decision: Decision, epoch: int) -> Decision:
        if decision != "suppress":
            return "keep"

        if epoch != self._epoch.value:
            logger.info(
                "stale_decision_dropped",
                identifier=item.identifier,
                submitted_epoch=epoch,
                current_epoch=self._epoch.value,
            )
            return "keep"

        await self._suppression.suppress(item.identifier)
        return "suppress"
