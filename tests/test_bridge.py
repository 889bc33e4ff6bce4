"""Tests for the JSON-lines bridge."""

import io
import json
from unittest.mock import AsyncMock

import pytest

from feedfilter.bridge import JsonLinesPresenter, dispatch, parse_message, run_bridge
from feedfilter.classifier.service import ClassificationResult, ClassificationService
from feedfilter.config_schema import AppConfig
from feedfilter.core.errors import BridgeProtocolError
from feedfilter.db.store import DatabaseStore
from feedfilter.engine.document import MAX_NODE_DEPTH, ContentNode
from feedfilter.engine.pipeline import FilterPipeline
from feedfilter.settings import SettingsProvider


def _item(identifier: str, text: str) -> dict:
    return {
        "tag": "article",
        "attrs": {"data-testid": "tweet", "aria-labelledby": identifier},
        "children": [{"tag": "div", "attrs": {"data-testid": "tweetText"}, "text": text}],
    }


def _lines(*messages: dict) -> io.StringIO:
    return io.StringIO("".join(json.dumps(message) + "\n" for message in messages))


# ---------------------------------------------------------------------------
# Tests: Parsing
# ---------------------------------------------------------------------------


class TestParseMessage:
    """Tests for parse_message()."""

    def test_snapshot(self) -> None:
        message = parse_message(json.dumps({"type": "snapshot", "root": {"tag": "body"}}))
        assert message.type == "snapshot"
        assert message.root == ContentNode(tag="body")

    def test_mutation(self) -> None:
        message = parse_message(json.dumps({"type": "mutation", "added": [_item("1", "x")]}))
        assert message.type == "mutation"
        assert message.added[0].attrs["aria-labelledby"] == "1"

    def test_mutation_with_removed_identifiers(self) -> None:
        message = parse_message(
            json.dumps({"type": "mutation", "added": [], "removed": ["1", "2"]})
        )
        assert message.added == []
        assert message.removed == ["1", "2"]

    def test_mutation_removed_defaults_to_empty(self) -> None:
        message = parse_message(json.dumps({"type": "mutation", "added": []}))
        assert message.removed == []

    def test_status_change(self) -> None:
        message = parse_message('{"type": "filterStatusChanged", "enabled": false}')
        assert message.type == "filterStatusChanged"
        assert message.enabled is False

    @pytest.mark.parametrize(
        "line",
        [
            "not json",
            "[1, 2]",
            '{"type": "unknown"}',
            '{"type": "mutation"}',
            '{"type": "mutation", "added": [{"attrs": {}}]}',
            '{"type": "filterStatusChanged", "enabled": "yes"}',
            '{"type": "snapshot"}',
            '{"type": "mutation", "added": [], "removed": [1]}',
            '{"type": "mutation", "added": [], "removed": "1"}',
        ],
    )
    def test_invalid(self, line: str) -> None:
        with pytest.raises(BridgeProtocolError):
            parse_message(line)


def test_deeply_nested_json_rejected() -> None:
    with pytest.raises(BridgeProtocolError, match="nested too deeply"):
        parse_message("[" * 100_000 + "]" * 100_000)


def test_deeply_nested_node_tree_rejected() -> None:
    node: dict = {"tag": "span", "text": "leaf"}
    for _ in range(MAX_NODE_DEPTH + 5):
        node = {"tag": "div", "children": [node]}

    with pytest.raises(BridgeProtocolError, match="nested deeper"):
        parse_message(json.dumps({"type": "mutation", "added": [node]}))


def test_presenter_writes_json_lines() -> None:
    out = io.StringIO()
    presenter = JsonLinesPresenter(out)
    presenter.show_suppressed("1790012345")
    presenter.clear_suppressed()

    assert [json.loads(line) for line in out.getvalue().splitlines()] == [
        {"action": "suppress", "identifier": "1790012345"},
        {"action": "clear"},
    ]


async def test_dispatch_routes_status_change() -> None:
    pipeline = AsyncMock(spec=FilterPipeline)
    await dispatch(pipeline, parse_message('{"type": "filterStatusChanged", "enabled": true}'))
    pipeline.handle_status_change.assert_awaited_once_with(True)


# ---------------------------------------------------------------------------
# Tests: Bridge loop
# ---------------------------------------------------------------------------


@pytest.fixture
def bridge_pipeline(store: DatabaseStore, sample_config: AppConfig):
    """Pipeline writing commands to an in-memory stdout."""
    service = AsyncMock(spec=ClassificationService)

    async def classify(text: str) -> ClassificationResult:
        return ClassificationResult(decision="suppress" if "motivational" in text else "keep")

    service.classify.side_effect = classify
    out = io.StringIO()
    pipeline = FilterPipeline(
        store=store,
        settings=SettingsProvider(store, sample_config.defaults),
        service=service,
        config=sample_config,
        presenter=JsonLinesPresenter(out),
    )
    return pipeline, out, service


async def test_run_bridge_end_to_end(bridge_pipeline) -> None:
    pipeline, out, service = bridge_pipeline
    stream = _lines(
        {
            "type": "snapshot",
            "root": {
                "tag": "body",
                "children": [
                    _item("1", "Great new study on battery chemistry"),
                    _item("2", "10 motivational quotes you need today"),
                ],
            },
        },
        {"type": "mutation", "added": [_item("3", "More motivational quotes")]},
    )

    handled = await run_bridge(pipeline, stream)

    assert handled == 2
    commands = [json.loads(line) for line in out.getvalue().splitlines()]
    assert service.classify.await_count == 3
    suppressed = {c["identifier"] for c in commands if c["action"] == "suppress"}
    assert suppressed == {"2", "3"}


async def test_run_bridge_skips_invalid_lines(bridge_pipeline) -> None:
    pipeline, out, service = bridge_pipeline
    stream = io.StringIO(
        "garbage\n"
        "\n"
        + json.dumps({"type": "mutation", "added": [_item("9", "motivational monday")]})
        + "\n"
    )

    assert await run_bridge(pipeline, stream) == 1
    assert json.loads(out.getvalue().splitlines()[0]) == {"action": "suppress", "identifier": "9"}


async def test_run_bridge_restores_persisted_suppression(
    bridge_pipeline, store: DatabaseStore
) -> None:
    pipeline, out, service = bridge_pipeline
    await store.add_suppressed("4")
    stream = _lines({"type": "mutation", "added": [_item("4", "seen before")]})

    await run_bridge(pipeline, stream)

    assert out.getvalue().splitlines() == [json.dumps({"action": "suppress", "identifier": "4"})]
    service.classify.assert_not_called()


async def test_run_bridge_disable_clears(bridge_pipeline, store: DatabaseStore) -> None:
    pipeline, out, service = bridge_pipeline
    await store.add_suppressed("4")
    stream = _lines({"type": "filterStatusChanged", "enabled": False})

    await run_bridge(pipeline, stream)

    assert out.getvalue().splitlines() == [json.dumps({"action": "clear"})]
    assert await store.get_suppressed_identifiers() == set()
    assert await store.get_setting("enabled") == "false"


async def test_run_bridge_survives_deeply_nested_line(bridge_pipeline) -> None:
    pipeline, out, service = bridge_pipeline
    stream = io.StringIO(
        "[" * 100_000
        + "]" * 100_000
        + "\n"
        + json.dumps({"type": "mutation", "added": [_item("9", "motivational monday")]})
        + "\n"
    )

    assert await run_bridge(pipeline, stream) == 1
    assert json.loads(out.getvalue().splitlines()[0]) == {"action": "suppress", "identifier": "9"}


async def test_dispatch_passes_removed_identifiers() -> None:
    pipeline = AsyncMock(spec=FilterPipeline)
    await dispatch(pipeline, parse_message('{"type": "mutation", "added": [], "removed": ["4"]}'))
    pipeline.handle_mutation.assert_awaited_once_with([], removed=["4"])
