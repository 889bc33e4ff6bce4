"""Content evaluation engine.

This package provides the pipeline components:
- Document model and content items
- Item identifier extraction
- Dedup tracker (single-flight gate)
- Evaluation cache with lazy TTL eviction
- Suppression state with reapplication
- Content scanner publishing discovered items
- Classification client (cache-then-classify protocol)
- Filter pipeline coordinating a page session
"""

from feedfilter.engine.cache import EvaluationCache, fingerprint
from feedfilter.engine.client import ClassificationClient, FilterEpoch
from feedfilter.engine.dedup import DedupTracker
from feedfilter.engine.document import ContentItem, ContentNode, Document
from feedfilter.engine.identifier import ItemIdentifier
from feedfilter.engine.pipeline import FilterPipeline
from feedfilter.engine.scanner import ContentScanner
from feedfilter.engine.suppression import Presenter, SuppressionState

__all__ = [
    # Document
    "ContentItem",
    "ContentNode",
    "Document",
    # Components
    "ItemIdentifier",
    "DedupTracker",
    "EvaluationCache",
    "fingerprint",
    "Presenter",
    "SuppressionState",
    "ContentScanner",
    "ClassificationClient",
    "FilterEpoch",
    # Pipeline
    "FilterPipeline",
]
