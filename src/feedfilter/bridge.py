"""JSON-lines bridge between the page and the filter pipeline.

The page side sends one JSON object per line on stdin:

    {"type": "snapshot", "root": {...node...}}
    {"type": "mutation", "added": [{...node...}, ...], "removed": ["1790012345", ...]}
    {"type": "filterStatusChanged", "enabled": true}

"removed" is optional and lists identifiers of items that left the page.

The page side receives presentation commands, one per line, on stdout:

    {"action": "suppress", "identifier": "1790012345"}
    {"action": "clear"}

Logs must therefore go to stderr while the bridge runs.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal, TextIO

from feedfilter.core.errors import BridgeProtocolError
from feedfilter.core.logging import get_logger
from feedfilter.engine.document import ContentNode

if TYPE_CHECKING:
    from feedfilter.engine.pipeline import FilterPipeline

logger = get_logger(__name__)

MessageType = Literal["snapshot", "mutation", "filterStatusChanged"]


@dataclass(frozen=True, slots=True)
class BridgeMessage:
    """One parsed inbound message."""

    type: MessageType
    root: ContentNode | None = None
    added: list[ContentNode] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    enabled: bool | None = None


def parse_message(line: str) -> BridgeMessage:
    """Parse one inbound line.

    Raises:
        BridgeProtocolError: If the line is not a well-formed message
    """
    try:
        data: Any = json.loads(line)
    except json.JSONDecodeError as e:
        raise BridgeProtocolError(f"Line is not valid JSON: {e}") from e
    except RecursionError as e:
        raise BridgeProtocolError("Message is nested too deeply") from e

    if not isinstance(data, dict):
        raise BridgeProtocolError("Message must be a JSON object")

    message_type = data.get("type")
    if message_type == "snapshot":
        return BridgeMessage(type="snapshot", root=ContentNode.from_dict(data.get("root")))

    if message_type == "mutation":
        added = data.get("added")
        removed = data.get("removed", [])
        if not isinstance(added, list):
            raise BridgeProtocolError("Mutation message needs an 'added' list")
        if not isinstance(removed, list) or not all(isinstance(i, str) for i in removed):
            raise BridgeProtocolError("Mutation 'removed' must be a list of identifiers")
        return BridgeMessage(
            type="mutation",
            added=[ContentNode.from_dict(node) for node in added],
            removed=removed,
        )

    if message_type == "filterStatusChanged":
        enabled = data.get("enabled")
        if not isinstance(enabled, bool):
            raise BridgeProtocolError("filterStatusChanged needs a boolean 'enabled'")
        return BridgeMessage(type="filterStatusChanged", enabled=enabled)

    raise BridgeProtocolError(f"Unknown message type: {message_type!r}")


class JsonLinesPresenter:
    """Presenter that emits suppression commands as JSON lines."""

    def __init__(self, stream: TextIO):
        self._stream = stream

    def show_suppressed(self, identifier: str) -> None:
        self._write({"action": "suppress", "identifier": identifier})

    def clear_suppressed(self) -> None:
        self._write({"action": "clear"})

    def _write(self, command: dict[str, str]) -> None:
        self._stream.write(json.dumps(command) + "\n")
        self._stream.flush()


async def dispatch(pipeline: FilterPipeline, message: BridgeMessage) -> None:
    """Route one parsed message to the pipeline."""
    if message.type == "snapshot" and message.root is not None:
        await pipeline.load_page(message.root)
    elif message.type == "mutation":
        await pipeline.handle_mutation(message.added, removed=message.removed)
    elif message.type == "filterStatusChanged" and message.enabled is not None:
        await pipeline.handle_status_change(message.enabled)


async def run_bridge(pipeline: FilterPipeline, stream: TextIO) -> int:
    """Read messages until EOF, then wait for in-flight work.

    The pipeline starts on an empty page so persisted suppression is
    loaded before the first mutation arrives.

    Returns:
        Number of messages handled
    """
    await pipeline.load_page(ContentNode(tag="body"))

    handled = 0
    while True:
        line = await asyncio.to_thread(stream.readline)
        if not line:
            break
        if not line.strip():
            continue

        try:
            message = parse_message(line)
        except BridgeProtocolError as e:
            logger.warning("bridge_message_invalid", error=str(e))
            continue

        await dispatch(pipeline, message)
        handled += 1

    await pipeline.drain()
    logger.info("bridge_stopped", messages=handled)
    return handled
