"""CLI report command: one day's usage in the terminal.

Runs the same two queries the dashboard runs (grouped by API key and grouped
by model) and prints totals, a per-key table with mapped names, and the
model-tier allowances.

Usage:
    usageboard report                    # today
    usageboard report --date 2026-10-16
"""

from __future__ import annotations

import asyncio
import datetime

import httpx
import typer
from rich.console import Console
from rich.table import Table

from usageboard.config import default_environment, settings
from usageboard.fetch.errors import FetchError
from usageboard.mappings.store import build_mapping_store
from usageboard.usage.client import UsageClient
from usageboard.usage.models import AggregatedResult, UsageQuery
from usageboard.usage.summary import calculate_totals, tier_usage, usage_by_key

console = Console()


def day_range(day: datetime.date) -> tuple[int, int]:
    """Epoch seconds for local midnight and the last second of ``day``."""
    start = datetime.datetime.combine(day, datetime.time.min)
    end = datetime.datetime.combine(day, datetime.time(23, 59, 59))
    return int(start.timestamp()), int(end.timestamp())


async def _fetch_day(api_key: str, start_time: int, end_time: int) -> tuple[AggregatedResult, AggregatedResult, dict[str, str]]:
    store = build_mapping_store(
        settings.redis_url, settings.mappings_redis_key, settings.mappings_seed_file
    )
    try:
        async with httpx.AsyncClient(timeout=settings.request_timeout_ms / 1000.0) as http_client:
            client = UsageClient.from_settings(http_client, api_key, settings)
            by_key = await client.fetch_usage(
                UsageQuery(start_time=start_time, end_time=end_time, group_by="api_key_id")
            )
            by_model = await client.fetch_usage(
                UsageQuery(start_time=start_time, end_time=end_time, group_by="model")
            )
        mappings = await store.get_all()
    finally:
        await store.close()
    return by_key, by_model, mappings


def _fmt(value: int) -> str:
    return f"{value:,}"


def _print_report(by_key: AggregatedResult, by_model: AggregatedResult, mappings: dict[str, str]) -> None:
    totals = calculate_totals(by_key.data)

    summary = Table(title="Totals")
    for column in ("Input tokens", "Output tokens", "Cached tokens", "Requests", "Total tokens"):
        summary.add_column(column, justify="right")
    summary.add_row(
        _fmt(totals.input_tokens),
        _fmt(totals.output_tokens),
        _fmt(totals.cached_tokens),
        _fmt(totals.requests),
        _fmt(totals.total_tokens),
    )
    console.print(summary)

    keys = Table(title="Usage by API key")
    keys.add_column("User", no_wrap=True)
    keys.add_column("API key", style="dim")
    for column in ("Input", "Output", "Cached", "Requests"):
        keys.add_column(column, justify="right")
    for row in usage_by_key(by_key.data, mappings):
        keys.add_row(
            row.user_name,
            row.api_key_id,
            _fmt(row.input_tokens),
            _fmt(row.output_tokens),
            _fmt(row.cached_tokens),
            _fmt(row.requests),
        )
    console.print(keys)

    tiers = Table(title="Model tiers")
    tiers.add_column("Tier", no_wrap=True)
    tiers.add_column("Used / limit", justify="right")
    tiers.add_column("%", justify="right")
    tiers.add_column("Models")
    for name, usage in tier_usage(by_model.data).items():
        pct = usage.percentage
        color = "green" if pct < 50 else "yellow" if pct < 80 else "red"
        models = ", ".join(f"{model}: {_fmt(tokens)}" for model, tokens in usage.models.items())
        tiers.add_row(
            name,
            f"{_fmt(usage.used)} / {_fmt(usage.limit)}",
            f"[{color}]{pct:.2f}%[/{color}]",
            models or "[dim]-[/dim]",
        )
    console.print(tiers)

    if by_key.has_more or by_model.has_more:
        console.print("[yellow]Partial data: more pages exist beyond what was fetched.[/yellow]")


def report(
    date: str = typer.Option(
        None,
        "--date",
        help="Day to report as YYYY-MM-DD (defaults to today).",
    ),
) -> None:
    """Print one day's usage: totals, per-key rows and model-tier allowances."""
    try:
        day = datetime.date.fromisoformat(date) if date else datetime.date.today()
    except ValueError:
        console.print(f"[red]Invalid date {date!r}; expected YYYY-MM-DD.[/red]")
        raise typer.Exit(code=1)

    api_key = default_environment(settings).get(settings.admin_key_variable)
    if not api_key:
        console.print(f"[red]{settings.admin_key_variable} is not configured.[/red]")
        raise typer.Exit(code=1)

    start_time, end_time = day_range(day)
    try:
        by_key, by_model, mappings = asyncio.run(_fetch_day(api_key, start_time, end_time))
    except FetchError as exc:
        console.print(f"[red]Failed to fetch usage:[/red] {exc}")
        raise typer.Exit(code=1)
    except ValueError as exc:
        console.print(f"[red]Failed to read mappings:[/red] {exc}")
        raise typer.Exit(code=1)

    console.print(f"[bold]Usage for {day.isoformat()}[/bold]")
    _print_report(by_key, by_model, mappings)
