"""usageboard CLI — usage reports and API key mapping maintenance.

Entry point registered in pyproject.toml:
    usageboard = "usageboard.cli:app"

Commands:
    usageboard report            — one day's usage, per key and per model tier
    usageboard migrate-mappings  — merge the seed file into the Redis store

Usage:
    usageboard --help
    usageboard report --date 2026-10-16
    USAGEBOARD_REDIS_URL=redis://localhost:6379/0 usageboard migrate-mappings
"""

import typer

from usageboard.cli.migrate import migrate_mappings
from usageboard.cli.report import report
from usageboard.config import configure_logging

app = typer.Typer(
    name="usageboard",
    help="usageboard CLI — usage reports and API key mappings",
    no_args_is_help=True,
)


@app.callback()
def main(
    log_level: str = typer.Option("WARNING", "--log-level", help="Logging level."),
) -> None:
    configure_logging(log_level)


app.command()(report)
app.command("migrate-mappings")(migrate_mappings)
