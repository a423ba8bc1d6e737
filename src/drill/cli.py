"""CLI entry point for drill."""

from __future__ import annotations

import sys

import click

from .cache.store import CacheEntry
from .core.config import Settings, load_settings
from .core.enums import CommandStatus
from .core.errors import AggregationError, CacheSaveError, ConfigError
from .observability.logger import get_logger, new_trace_id, setup_logging
from .timeline import build_timeline, format_payload, group_by_correlation

logger = get_logger(__name__)


def _settings(config: str | None, overrides: dict | None = None) -> Settings:
    """Load settings and configure logging, or exit with a message."""
    try:
        settings = load_settings(config_path=config, overrides=overrides)
    except ConfigError as exc:
        click.echo(f"Configuration error: {exc}", err=True)
        sys.exit(2)
    setup_logging(
        level=settings.observability.log_level,
        format=settings.observability.log_format,
    )
    new_trace_id()
    return settings


@click.group()
def main() -> None:
    """Pull and inspect the command/event history of one aggregate."""


@main.command()
@click.argument("aggregate_id")
@click.option("--config", default=None, help="Config file path (TOML)")
@click.option("--timeout", default=None, type=float, help="Per-request timeout in seconds")
@click.option("--no-cache", is_flag=True, help="Do not write the result to the cache file")
@click.option("--detail", is_flag=True, help="Print payloads")
def fetch(
    aggregate_id: str,
    config: str | None,
    timeout: float | None,
    no_cache: bool,
    detail: bool,
) -> None:
    """Fetch AGGREGATE_ID from every configured service."""
    import asyncio

    from .cache.storage import InMemoryCacheStorage
    from .main import run_fetch

    overrides: dict = {}
    if timeout is not None:
        overrides["request_timeout"] = timeout
    settings = _settings(config, overrides)
    storage = InMemoryCacheStorage(capacity=settings.cache_capacity) if no_cache else None

    try:
        entry, outcome = asyncio.run(run_fetch(settings, aggregate_id, storage=storage))
    except ConfigError as exc:
        click.echo(f"Configuration error: {exc}", err=True)
        sys.exit(2)
    except AggregationError as exc:
        click.echo(f"No data available for {aggregate_id}.", err=True)
        for cause in exc.causes:
            click.echo(f"  - {cause}", err=True)
        sys.exit(1)
    except CacheSaveError as exc:
        click.echo(f"Fetched, but could not save the cache: {exc}", err=True)
        sys.exit(1)

    logger.info(
        "fetch complete",
        aggregate_id=aggregate_id,
        events=len(outcome.events),
        commands=len(outcome.commands),
        failures=len(outcome.failures),
    )
    for failure in outcome.failures:
        click.echo(f"warning: skipped {failure}", err=True)
    _print_entry(entry, detail=detail)


@main.command()
@click.option("--config", default=None, help="Config file path (TOML)")
@click.option("--aggregate-id", default=None, help="Aggregate id to use (default: random)")
@click.option("--detail", is_flag=True, help="Print payloads")
def mock(config: str | None, aggregate_id: str | None, detail: bool) -> None:
    """Generate a synthetic history and cache it."""
    from .main import run_mock

    settings = _settings(config)
    try:
        entry = run_mock(settings, aggregate_id=aggregate_id)
    except CacheSaveError as exc:
        click.echo(f"Could not save the cache: {exc}", err=True)
        sys.exit(1)
    _print_entry(entry, detail=detail)


@main.command()
@click.option("--config", default=None, help="Config file path (TOML)")
def recent(config: str | None) -> None:
    """List cached requests, newest first."""
    from .main import open_storage

    settings = _settings(config)
    entries = open_storage(settings).load().list_recent()
    if not entries:
        click.echo("No previous requests.")
        return

    for i, entry in enumerate(entries, 1):
        tag = "  (mock)" if entry.is_mock else ""
        click.echo(
            f"{i}. {entry.aggregate_id}  "
            f"{entry.timestamp:%Y-%m-%d %H:%M:%S}  "
            f"{len(entry.events)} events, {len(entry.commands)} commands{tag}"
        )


@main.command()
@click.argument("aggregate_id")
@click.option("--config", default=None, help="Config file path (TOML)")
@click.option("--correlation", default=None, help="Only records with this correlation id")
@click.option("--detail", is_flag=True, help="Print payloads")
def show(aggregate_id: str, config: str | None, correlation: str | None, detail: bool) -> None:
    """Print the cached history of AGGREGATE_ID."""
    from .main import open_storage

    settings = _settings(config)
    entry = open_storage(settings).load().get_entry(aggregate_id)
    if entry is None:
        click.echo(f"{aggregate_id} is not cached. Run 'drill fetch {aggregate_id}'.", err=True)
        sys.exit(1)
    _print_entry(entry, correlation=correlation, detail=detail)


@main.command()
@click.option("--config", default=None, help="Config file path (TOML)")
def services(config: str | None) -> None:
    """Show the services that would be queried."""
    from .core.config import resolve_services

    settings = _settings(config)
    try:
        resolved = resolve_services(settings)
    except ConfigError as exc:
        click.echo(f"Configuration error: {exc}", err=True)
        sys.exit(2)
    if not resolved:
        click.echo("No services configured.")
        return
    for svc in resolved:
        click.echo(f"{svc.name:24s} {svc.id_type.value:12s} {svc.url}")


def _print_entry(
    entry: CacheEntry,
    *,
    correlation: str | None = None,
    detail: bool = False,
) -> None:
    """Print a chronological table of one cached history."""
    items = build_timeline(entry.events, entry.commands)
    if correlation is not None:
        items = group_by_correlation(items).get(correlation, [])

    header = f"Aggregate {entry.aggregate_id}"
    if entry.is_mock:
        header += " (mock data)"
    click.echo(f"\n{'=' * 70}")
    click.echo(header)
    click.echo(
        f"  {len(entry.events)} events, {len(entry.commands)} commands, "
        f"captured {entry.timestamp:%Y-%m-%d %H:%M:%S}"
    )
    click.echo(f"{'=' * 70}")

    if not items:
        click.echo("  No events found")
        return

    for item in items:
        status = ""
        if item.status is not None:
            status = "OK" if item.status is CommandStatus.SUCCEEDED else "FAILED"
        click.echo(
            f"  {item.persisted_at:%Y-%m-%d %H:%M:%S}  "
            f"{item.service:22s} {item.kind:8s} {item.alias:24s} "
            f"{status:7s}{item.correlation_id}"
        )
        if detail:
            for line in format_payload(item.payload).splitlines():
                click.echo(f"      {line}")
