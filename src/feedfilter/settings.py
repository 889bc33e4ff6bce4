"""Runtime filter settings backed by the database `settings` table.

Values written by the CLI (`feedfilter enable`, `feedfilter set ...`) are
stored under the keys below; anything never written falls back to the
`defaults` section of config.yaml.

The core reads settings through SettingsProvider, which loads lazily on
first use and reloads only after invalidate() (a status change notification).

Usage:
    provider = SettingsProvider(store, config.defaults)
    settings = await provider.get()
    if settings.enabled:
        ...
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from pydantic import ValidationError

from feedfilter.config_schema import FilterDefaultsConfig
from feedfilter.core.errors import DatabaseError
from feedfilter.core.logging import get_logger

if TYPE_CHECKING:
    from feedfilter.db.store import DatabaseStore

logger = get_logger(__name__)

# Storage key -> FilterDefaultsConfig field
SETTING_KEYS = {
    "enabled": "enabled",
    "endpoint": "endpoint",
    "modelName": "model_name",
    "promptTemplate": "prompt_template",
    "suppressKeyword": "suppress_keyword",
}


@dataclass(frozen=True, slots=True)
class FilterSettings:
    """Snapshot of the runtime filter settings."""

    enabled: bool
    endpoint: str
    model_name: str
    prompt_template: str
    suppress_keyword: str


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class SettingsProvider:
    """Lazily loaded, explicitly refreshed view of the filter settings.

    Storage failures fall back to the configured defaults so the scanning
    loop keeps running; the failure is logged.
    """

    def __init__(self, store: DatabaseStore, defaults: FilterDefaultsConfig):
        self._store = store
        self._defaults = defaults
        self._settings: FilterSettings | None = None

    async def get(self) -> FilterSettings:
        """Return the current settings, loading them on first use."""
        if self._settings is None:
            self._settings = await self._load()
        return self._settings

    def invalidate(self) -> None:
        """Drop the loaded snapshot; the next get() reads storage again."""
        self._settings = None

    async def set_enabled(self, enabled: bool) -> FilterSettings:
        """Persist the enabled flag and return the refreshed settings."""
        return await self.update("enabled", "true" if enabled else "false")

    async def update(self, key: str, value: str) -> FilterSettings:
        """Validate and persist one setting, then reload.

        Args:
            key: Storage key (see SETTING_KEYS)
            value: Raw string value

        Raises:
            ValueError: Unknown key or a value the schema rejects
            DatabaseError: If the value cannot be written
        """
        if key not in SETTING_KEYS:
            raise ValueError(
                f"Unknown setting '{key}'. Valid keys: {', '.join(sorted(SETTING_KEYS))}"
            )

        # Run the value through the schema before it reaches storage
        merged = self._defaults.model_dump()
        merged[SETTING_KEYS[key]] = _parse_bool(value) if key == "enabled" else value
        try:
            validated = FilterDefaultsConfig(**merged)
        except ValidationError as e:
            raise ValueError(f"Invalid value for '{key}': {e.errors()[0]['msg']}") from e

        stored = getattr(validated, SETTING_KEYS[key])
        await self._store.set_setting(key, str(stored).lower() if key == "enabled" else stored)
        self.invalidate()
        return await self.get()

    async def _load(self) -> FilterSettings:
        try:
            stored = await self._store.get_settings()
        except DatabaseError as e:
            logger.warning("settings_load_failed", error=str(e))
            stored = {}

        values = self._defaults.model_dump()
        for key, field_name in SETTING_KEYS.items():
            if key not in stored or stored[key] is None:
                continue
            raw = stored[key]
            values[field_name] = _parse_bool(raw) if key == "enabled" else raw

        try:
            validated = FilterDefaultsConfig(**values)
        except ValidationError as e:
            logger.warning("stored_settings_invalid", error=str(e))
            validated = self._defaults

        settings = FilterSettings(
            enabled=validated.enabled,
            endpoint=validated.endpoint,
            model_name=validated.model_name,
            prompt_template=validated.prompt_template,
            suppress_keyword=validated.suppress_keyword,
        )
        logger.debug(
            "settings_loaded",
            enabled=settings.enabled,
            endpoint=settings.endpoint,
            model=settings.model_name,
        )
        return settings
