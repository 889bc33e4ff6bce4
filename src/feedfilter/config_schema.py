"""Pydantic configuration schema for the feed filter.

This module defines the configuration schema that mirrors config.yaml structure.
All configuration is validated against these models on startup.

The `defaults` section only seeds the runtime filter settings; once a value
is written to the database `settings` table (via the CLI), the stored value wins.

Usage:
    from feedfilter.config_schema import AppConfig

    config = AppConfig(**yaml_data)
"""

from pydantic import BaseModel, Field, field_validator

# Highest config file format this release understands
CURRENT_SCHEMA_VERSION = 1

# Placeholder substituted with the item text in prompt templates
PROMPT_PLACEHOLDER = "{tweet}"

DEFAULT_PROMPT_TEMPLATE = (
    "You are a content quality filter. Evaluate if the following tweet contains "
    "valuable information about books, events, non-incremental AI research, "
    "scientific news, or other substantive content. "
    'Respond with only "keep" or "hide".\n'
    "\n"
    'Tweet: "{tweet}"\n'
    "\n"
    "Decision:"
)


class DatabaseConfig(BaseModel):
    """SQLite persistence configuration."""

    path: str = Field(
        default="data/feedfilter.db",
        description="Path to the SQLite database holding cache and suppression state",
    )

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        """Ensure database path is not empty and doesn't contain traversal."""
        if not v or not v.strip():
            raise ValueError("Database path cannot be empty")
        if ".." in v:
            raise ValueError("Database path cannot contain '..' (path traversal)")
        return v


class FilterDefaultsConfig(BaseModel):
    """Initial values for the runtime filter settings."""

    enabled: bool = Field(default=False, description="Whether filtering starts enabled")
    endpoint: str = Field(
        default="http://localhost:8080",
        description="Base URL of the OpenAI-compatible completion server",
    )
    model_name: str = Field(
        default="llama-3.2-3b-instruct",
        description="Model name sent with each completion request",
    )
    prompt_template: str = Field(
        default=DEFAULT_PROMPT_TEMPLATE,
        description=f"Prompt template; {PROMPT_PLACEHOLDER} is replaced by the item text",
    )
    suppress_keyword: str = Field(
        default="hide",
        description="Word in the model output that marks an item for suppression",
    )

    @field_validator("endpoint")
    @classmethod
    def validate_endpoint(cls, v: str) -> str:
        """Require an http(s) URL and drop the trailing slash."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("Endpoint must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("suppress_keyword")
    @classmethod
    def validate_keyword(cls, v: str) -> str:
        """Keyword is matched against lower-cased output, so store it lower-cased."""
        if not v.strip():
            raise ValueError("Suppress keyword cannot be empty")
        return v.strip().lower()


class CompletionConfig(BaseModel):
    """Completion request parameters."""

    max_tokens: int = Field(
        default=10,
        ge=1,
        le=256,
        description="Upper bound on generated tokens (the answer is a single word)",
    )
    temperature: float = Field(
        default=0.1,
        ge=0.0,
        le=2.0,
        description="Sampling temperature; keep low for near-deterministic answers",
    )
    timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        le=600,
        description="Transport timeout for one completion request",
    )


class CacheConfig(BaseModel):
    """Decision cache configuration."""

    ttl_hours: float = Field(
        default=24.0,
        gt=0,
        le=24 * 30,
        description="Cached decisions older than this are evicted on access",
    )


class ScannerConfig(BaseModel):
    """How content items are located inside the observed document."""

    item_tag: str = Field(default="article", description="Tag name of a content item")
    item_attribute: str = Field(
        default="data-testid",
        description="Attribute that marks a node as a content item",
    )
    item_value: str = Field(default="tweet", description="Required value of item_attribute")
    label_attribute: str = Field(
        default="aria-labelledby",
        description="Structural label attribute used as the primary identifier",
    )
    text_attribute: str = Field(
        default="data-testid",
        description="Attribute marking the text container inside an item",
    )
    text_value: str = Field(default="tweetText", description="Required value of text_attribute")
    rescan_interval_ms: int = Field(
        default=500,
        ge=0,
        le=60_000,
        description="Delay added per item when re-processing after the filter is re-enabled",
    )


class AppConfig(BaseModel):
    """Root configuration schema for the feed filter.

    If validation fails on startup, the CLI exits with a clear error.
    """

    schema_version: int = Field(
        default=CURRENT_SCHEMA_VERSION,
        ge=1,
        le=CURRENT_SCHEMA_VERSION,
        description="Config file format version; newer files need a newer feedfilter",
    )

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    defaults: FilterDefaultsConfig = Field(default_factory=FilterDefaultsConfig)
    completion: CompletionConfig = Field(default_factory=CompletionConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    scanner: ScannerConfig = Field(default_factory=ScannerConfig)
