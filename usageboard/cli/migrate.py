"""CLI command that copies seed-file mappings into the configured store."""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console

from usageboard.config import settings
from usageboard.mappings.migrate import MigrationReport, load_seed_mappings, migrate_seed
from usageboard.mappings.store import build_mapping_store

console = Console()


async def _migrate(seed: dict[str, str]) -> MigrationReport:
    store = build_mapping_store(settings.redis_url, settings.mappings_redis_key, "")
    try:
        return await migrate_seed(store, seed)
    finally:
        await store.close()


def migrate_mappings(
    seed_file: str = typer.Option(
        None,
        "--seed-file",
        help="JSON file of {key_id: name}. Defaults to USAGEBOARD_MAPPINGS_SEED_FILE.",
    ),
) -> None:
    """Merge seed-file mappings into the store; existing entries are kept."""
    if not settings.redis_url:
        console.print(
            "[red]USAGEBOARD_REDIS_URL is not set; the in-memory store only lives "
            "inside the server process.[/red]"
        )
        raise typer.Exit(code=1)

    path = seed_file or settings.mappings_seed_file
    try:
        seed = load_seed_mappings(path)
        report = asyncio.run(_migrate(seed))
    except ValueError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1)

    for key_id, name in report.mappings.items():
        marker = "[green]+[/green]" if key_id in seed else " "
        console.print(f"{marker} {key_id} -> {name}")
    console.print(
        f"[bold]Migrated {report.from_seed} from seed, {report.existing} already stored, "
        f"{report.after_merge} total.[/bold]"
    )
