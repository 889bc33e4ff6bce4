"""Rendering-independent model of the observed document.

The page side of the bridge serializes DOM nodes as nested dicts:

    {"tag": "article", "attrs": {"data-testid": "tweet"}, "text": "",
     "children": [...]}

Only what the scanner needs survives serialization: tag name, attributes,
direct text and children.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any

from feedfilter.core.errors import BridgeProtocolError

# Deeper trees are rejected before traversal can exhaust the interpreter stack
MAX_NODE_DEPTH = 200


@dataclass(frozen=True, slots=True)
class ContentItem:
    """A content item found in the document.

    Attributes:
        identifier: Stable key derived from the item's structure
        text: Item text, fixed at extraction time
    """

    identifier: str
    text: str


@dataclass
class ContentNode:
    """One element of the observed document."""

    tag: str
    attrs: dict[str, str] = field(default_factory=dict)
    text: str = ""
    children: list[ContentNode] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any, depth: int = 0) -> ContentNode:
        """Build a node tree from its serialized form.

        Raises:
            BridgeProtocolError: If the structure is not a node dict or is
                nested deeper than MAX_NODE_DEPTH
        """
        if depth > MAX_NODE_DEPTH:
            raise BridgeProtocolError(f"Node tree is nested deeper than {MAX_NODE_DEPTH} levels")
        if not isinstance(data, dict) or not isinstance(data.get("tag"), str):
            raise BridgeProtocolError(f"Node must be an object with a 'tag' string, got {data!r:.80}")

        attrs = data.get("attrs") or {}
        children = data.get("children") or []
        if not isinstance(attrs, dict) or not isinstance(children, list):
            raise BridgeProtocolError("Node 'attrs' must be an object and 'children' a list")

        return cls(
            tag=data["tag"].lower(),
            attrs={str(k): str(v) for k, v in attrs.items()},
            text=str(data.get("text") or ""),
            children=[cls.from_dict(child, depth + 1) for child in children],
        )

    def iter_descendants(self) -> Iterator[ContentNode]:
        """Yield every descendant in document order, excluding self."""
        for child in self.children:
            yield child
            yield from child.iter_descendants()

    def has_attr(self, name: str, value: str) -> bool:
        return self.attrs.get(name) == value

    def inner_text(self) -> str:
        """Concatenated text of this node and all descendants."""
        return self.text + "".join(child.inner_text() for child in self.children)


class Document:
    """Current state of the observed document.

    Inserted nodes are appended under the root; the scanner only ever
    needs to enumerate what is present, not where. Nodes leave the
    document through prune().
    """

    def __init__(self, root: ContentNode | None = None):
        self.root = root or ContentNode(tag="body")

    def replace(self, root: ContentNode) -> None:
        """Swap in a fresh snapshot (page load or reload)."""
        self.root = root

    def insert(self, nodes: Iterable[ContentNode]) -> None:
        """Record nodes reported by a structural mutation."""
        self.root.children.extend(nodes)

    def prune(self, predicate: Callable[[ContentNode], bool]) -> int:
        """Remove every subtree whose top node matches predicate.

        Returns:
            Number of subtrees removed
        """
        return _prune(self.root, predicate)


def _prune(node: ContentNode, predicate: Callable[[ContentNode], bool]) -> int:
    removed = 0
    kept: list[ContentNode] = []
    for child in node.children:
        if predicate(child):
            removed += 1
            continue
        removed += _prune(child, predicate)
        kept.append(child)
    node.children = kept
    return removed
