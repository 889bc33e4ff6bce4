"""Pytest fixtures and configuration for feed filter tests.

Provides common fixtures for configuration, database, settings and a
recording presenter.
"""

import os
from pathlib import Path
from typing import Any, Generator

import pytest

from feedfilter.config import reset_config
from feedfilter.config_schema import AppConfig
from feedfilter.db.store import DatabaseStore
from feedfilter.engine.document import ContentNode
from feedfilter.settings import SettingsProvider


class RecordingPresenter:
    """Presenter that records every command it receives."""

    def __init__(self) -> None:
        self.commands: list[tuple[str, str | None]] = []

    def show_suppressed(self, identifier: str) -> None:
        self.commands.append(("suppress", identifier))

    def clear_suppressed(self) -> None:
        self.commands.append(("clear", None))

    @property
    def suppressed(self) -> list[str]:
        return [identifier for action, identifier in self.commands if action == "suppress"]


def item_node(identifier: str, text: str, *, labelled: bool = True) -> ContentNode:
    """Build a serialized-DOM item node the way the page renders one.

    With labelled=False the identifier is only reachable through the
    timestamp permalink.
    """
    attrs = {"data-testid": "tweet"}
    if labelled:
        attrs["aria-labelledby"] = identifier
    return ContentNode(
        tag="article",
        attrs=attrs,
        children=[
            ContentNode(
                tag="a",
                attrs={"href": f"/someone/status/{identifier}"},
                children=[ContentNode(tag="time", text="2h")],
            ),
            ContentNode(tag="div", attrs={"data-testid": "tweetText"}, text=text),
        ],
    )


def page(*items: ContentNode) -> ContentNode:
    """Wrap item nodes in a timeline container under a body root."""
    return ContentNode(
        tag="body",
        children=[ContentNode(tag="div", attrs={"aria-label": "Timeline"}, children=list(items))],
    )


@pytest.fixture(autouse=True)
def reset_config_singleton() -> Generator[None, None, None]:
    """Reset the config singleton before each test."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def temp_config_dir(tmp_path: Path) -> Path:
    """Create a temporary config directory."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    """Create a temporary data directory."""
    data = tmp_path / "data"
    data.mkdir()
    return data


@pytest.fixture
def sample_config_yaml(data_dir: Path) -> str:
    """Return a minimal valid config.yaml content."""
    return f"""
schema_version: 1

database:
  path: "{data_dir / 'feedfilter.db'}"

defaults:
  enabled: true
  endpoint: "http://llm.test"
  model_name: "test-model"
  suppress_keyword: "hide"

scanner:
  rescan_interval_ms: 0
"""


@pytest.fixture
def sample_config_dict(data_dir: Path) -> dict[str, Any]:
    """Return a minimal valid config as a dictionary."""
    return {
        "schema_version": 1,
        "database": {"path": str(data_dir / "feedfilter.db")},
        "defaults": {
            "enabled": True,
            "endpoint": "http://llm.test",
            "model_name": "test-model",
            "suppress_keyword": "hide",
        },
        "scanner": {"rescan_interval_ms": 0},
    }


@pytest.fixture
def sample_config(sample_config_dict: dict[str, Any]) -> AppConfig:
    """Return a minimal valid AppConfig instance."""
    return AppConfig(**sample_config_dict)


@pytest.fixture
def config_file(temp_config_dir: Path, sample_config_yaml: str) -> Path:
    """Create a temporary config file with valid content."""
    config_path = temp_config_dir / "config.yaml"
    config_path.write_text(sample_config_yaml)
    return config_path


@pytest.fixture
def set_config_env(config_file: Path) -> Generator[None, None, None]:
    """Set the FEEDFILTER_CONFIG_PATH environment variable."""
    old_value = os.environ.get("FEEDFILTER_CONFIG_PATH")
    os.environ["FEEDFILTER_CONFIG_PATH"] = str(config_file)
    yield
    if old_value is None:
        del os.environ["FEEDFILTER_CONFIG_PATH"]
    else:
        os.environ["FEEDFILTER_CONFIG_PATH"] = old_value


@pytest.fixture
async def store(data_dir: Path) -> DatabaseStore:
    """Return an initialized DatabaseStore."""
    s = DatabaseStore(data_dir / "test.db")
    await s.initialize()
    return s


@pytest.fixture
def settings(store: DatabaseStore, sample_config: AppConfig) -> SettingsProvider:
    """Return a SettingsProvider seeded from the sample config (filter enabled)."""
    return SettingsProvider(store, sample_config.defaults)


@pytest.fixture
def presenter() -> RecordingPresenter:
    """Return a presenter that records suppress/clear commands."""
    return RecordingPresenter()
