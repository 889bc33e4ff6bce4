"""Command-line interface for the feed filter.

Provides commands for configuration validation, runtime settings, the
JSON-lines bridge and one-off classification.

Usage:
    python -m feedfilter validate-config
    python -m feedfilter enable
    python -m feedfilter set model-name meta-llama-3.1-8b-instruct
    python -m feedfilter classify "10 motivational quotes you need today"
    python -m feedfilter run < events.jsonl
"""

from __future__ import annotations

import asyncio
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import click
from rich.console import Console
from rich.table import Table

from feedfilter.config import validate_config_file
from feedfilter.core.logging import configure_logging

if TYPE_CHECKING:
    from feedfilter.config_schema import AppConfig
    from feedfilter.db.store import DatabaseStore
    from feedfilter.settings import SettingsProvider

console = Console()
err_console = Console(stderr=True)

# CLI option name -> settings storage key
SETTABLE_KEYS = {
    "endpoint": "endpoint",
    "model-name": "modelName",
    "prompt-template": "promptTemplate",
    "suppress-keyword": "suppressKeyword",
}


@dataclass(frozen=True, slots=True)
class CLIDeps:
    """Shared dependencies initialized by _init_cli_deps()."""

    config: AppConfig
    store: DatabaseStore
    settings: SettingsProvider


async def _init_cli_deps() -> CLIDeps:
    """Initialize shared CLI dependencies.

    Loads config and opens the database. Prints actionable error messages
    and calls sys.exit(1) on failure.
    """
    from feedfilter.config import get_config
    from feedfilter.core.errors import ConfigLoadError, ConfigValidationError, DatabaseError
    from feedfilter.db.store import DatabaseStore
    from feedfilter.settings import SettingsProvider

    try:
        config = get_config()
    except (ConfigLoadError, ConfigValidationError) as e:
        err_console.print(
            f"[red]Config error:[/red] {e}\n\n"
            "Copy config/config.yaml.example to config/config.yaml "
            "or point FEEDFILTER_CONFIG_PATH at your config file."
        )
        sys.exit(1)

    store = DatabaseStore(Path(config.database.path))
    try:
        await store.initialize()
    except DatabaseError as e:
        err_console.print(f"[red]Database error:[/red] {e}")
        sys.exit(1)

    return CLIDeps(
        config=config,
        store=store,
        settings=SettingsProvider(store, config.defaults),
    )


def _run(coro) -> None:
    """Run a command coroutine with the CLI's standard error handling."""
    try:
        asyncio.run(coro)
    except KeyboardInterrupt:
        err_console.print("\n[yellow]Cancelled.[/yellow]")
        sys.exit(130)
    except SystemExit:
        raise
    except Exception as e:
        err_console.print(f"\n[red]Error:[/red] {e}")
        sys.exit(1)


@click.group()
@click.option("--debug/--no-debug", default=False, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, debug: bool) -> None:
    """Feed filter - LLM-backed suppression of low-value feed items."""
    ctx.ensure_object(dict)
    ctx.obj["log_level"] = "DEBUG" if debug else "INFO"
    # Human-readable output for interactive commands; `run` switches to JSON on stderr
    configure_logging(log_level=ctx.obj["log_level"], json_output=False, stream=sys.stderr)


@cli.command("validate-config")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False, path_type=Path),
    default=None,
    help="Path to config file (default: config/config.yaml)",
)
def validate_config(config_path: Path | None) -> None:
    """Validate the configuration file.

    Checks that config.yaml exists and passes Pydantic schema validation.
    """
    console.print(f"Validating config: [cyan]{config_path or 'config/config.yaml'}[/cyan]")

    is_valid, message = validate_config_file(config_path)

    if is_valid:
        console.print(f"\n[green]✓[/green] {message}")
        sys.exit(0)
    else:
        console.print(f"\n[red]✗[/red] {message}")
        sys.exit(1)


@cli.command("run")
@click.pass_context
def run(ctx: click.Context) -> None:
    """Run the JSON-lines bridge on stdin/stdout.

    Reads snapshot, mutation and filterStatusChanged messages from stdin
    and writes suppress/clear commands to stdout until EOF.
    """
    configure_logging(log_level=ctx.obj["log_level"], json_output=True, stream=sys.stderr)
    _run(_run_bridge())


async def _run_bridge() -> None:
    """Async implementation of the run command."""
    import httpx

    from feedfilter.bridge import JsonLinesPresenter, run_bridge
    from feedfilter.classifier.service import ClassificationService
    from feedfilter.engine.pipeline import FilterPipeline

    deps = await _init_cli_deps()

    async with httpx.AsyncClient(timeout=deps.config.completion.timeout_seconds) as http:
        service = ClassificationService(http, deps.settings, deps.config.completion)
        pipeline = FilterPipeline(
            store=deps.store,
            settings=deps.settings,
            service=service,
            config=deps.config,
            presenter=JsonLinesPresenter(sys.stdout),
        )
        await run_bridge(pipeline, sys.stdin)


@cli.command("classify")
@click.argument("text")
def classify(text: str) -> None:
    """Classify TEXT once with the configured model (bypasses the cache)."""
    _run(_classify(text))


async def _classify(text: str) -> None:
    """Async implementation of the classify command."""
    import httpx

    from feedfilter.classifier.service import ClassificationService
    from feedfilter.core.errors import ClassificationError

    deps = await _init_cli_deps()

    async with httpx.AsyncClient(timeout=deps.config.completion.timeout_seconds) as http:
        service = ClassificationService(http, deps.settings, deps.config.completion)
        try:
            result = await service.classify(text)
        except ClassificationError as e:
            console.print(f"[red]Classification failed:[/red] {e}")
            sys.exit(1)

    color = "green" if result.should_keep else "yellow"
    console.print(f"[{color}]{result.decision}[/{color}] ({result.duration_ms}ms)")


@cli.command("enable")
def enable() -> None:
    """Enable filtering."""
    _run(_set_enabled(True))


@cli.command("disable")
def disable() -> None:
    """Disable filtering and clear every suppressed item."""
    _run(_set_enabled(False))


async def _set_enabled(enabled: bool) -> None:
    deps = await _init_cli_deps()
    await deps.settings.set_enabled(enabled)

    if enabled:
        console.print("Filter is [green]enabled[/green]")
    else:
        cleared = await deps.store.clear_suppressed()
        console.print(f"Filter is [yellow]disabled[/yellow] ({cleared} suppressed items cleared)")


@cli.command("set")
@click.argument("key", type=click.Choice(sorted(SETTABLE_KEYS)))
@click.argument("value")
def set_setting(key: str, value: str) -> None:
    """Persist a runtime setting (endpoint, model name, prompt, keyword)."""
    _run(_set_setting(SETTABLE_KEYS[key], value))


async def _set_setting(key: str, value: str) -> None:
    deps = await _init_cli_deps()
    try:
        await deps.settings.update(key, value)
    except ValueError as e:
        console.print(f"[red]✗[/red] {e}")
        sys.exit(1)
    console.print(f"[green]✓[/green] {key} updated")


@cli.command("status")
def status() -> None:
    """Show current settings and stored state."""
    _run(_status())


async def _status() -> None:
    deps = await _init_cli_deps()
    settings = await deps.settings.get()
    stats = await deps.store.get_stats()

    table = Table(title="Feed filter", show_header=False)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("Enabled", "yes" if settings.enabled else "no")
    table.add_row("Endpoint", settings.endpoint)
    table.add_row("Model", settings.model_name)
    table.add_row("Suppress keyword", settings.suppress_keyword)
    table.add_row("Cache TTL", f"{deps.config.cache.ttl_hours}h")
    table.add_row(
        "Cached decisions",
        f"{stats['cache_entries']} (keep {stats['cached_keep']}, "
        f"suppress {stats['cached_suppress']})",
    )
    table.add_row("Suppressed items", str(stats["suppressed_items"]))
    console.print(table)


@cli.command("clear-cache")
def clear_cache() -> None:
    """Drop every cached classification decision."""
    _run(_clear_cache())


async def _clear_cache() -> None:
    deps = await _init_cli_deps()
    removed = await deps.store.clear_cache()
    console.print(f"Removed {removed} cached decisions")


def main() -> None:
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
