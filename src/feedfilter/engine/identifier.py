"""Stable identifiers for content items.

Primary source is a structural label attribute on the item node. When the
renderer omits it, the identifier comes from the item's timestamp link: the
first `a[href]` wrapping a `time` element, whose trailing path segment is
the item's permalink id (e.g. `/someone/status/1790012345` -> `1790012345`).
"""

from __future__ import annotations

from urllib.parse import urlsplit

from feedfilter.engine.document import ContentNode


class ItemIdentifier:
    """Derives identifiers from item nodes."""

    def __init__(self, label_attribute: str = "aria-labelledby"):
        self._label_attribute = label_attribute

    def identify(self, node: ContentNode) -> str | None:
        """Return the item's identifier, or None if neither source yields one.

        Items without an identifier cannot be deduplicated or persisted
        against, so callers skip them entirely.
        """
        label = node.attrs.get(self._label_attribute, "").strip()
        if label:
            return label

        link = _find_timestamp_link(node)
        if link is None:
            return None
        return trailing_path_segment(link.attrs["href"])


def _find_timestamp_link(node: ContentNode) -> ContentNode | None:
    for candidate in node.iter_descendants():
        if candidate.tag != "a" or not candidate.attrs.get("href"):
            continue
        if any(child.tag == "time" for child in candidate.iter_descendants()):
            return candidate
    return None


def trailing_path_segment(href: str) -> str | None:
    """Last non-empty path segment of a URL or path, ignoring query and fragment."""
    path = urlsplit(href.strip()).path.rstrip("/")
    segment = path.rsplit("/", 1)[-1]
    return segment or None
