"""recallsync CLI — main entry point and shared utilities."""

from __future__ import annotations

import json
import sys
from functools import wraps
from pathlib import Path

import click
from rich.console import Console

from recallsync.core.errors import RecallError, atomic_write
from recallsync.core.logging import RecallLogger, Verbosity

console = Console()

STATUS_STYLES = {
    "new": "green",
    "stale": "yellow",
    "unchanged": "dim",
    "orphan": "magenta",
    "unknown": "red",
    "processed": "green",
    "pending": "yellow",
}


def get_status_style(status: str) -> str:
    """Return Rich style string for a diff status."""
    return STATUS_STYLES.get(status, "white")


def handle_errors(fn):
    """Print RecallError as a one-line error and exit with status 1."""

    @wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except RecallError as e:
            console.print(f"[red]Error:[/red] {e}")
            sys.exit(1)

    return wrapper


def verbosity_option(fn):
    """Shared -v/--verbose counter (-v verbose, -vv debug)."""
    return click.option(
        "-v", "--verbose", "verbose", count=True,
        help="Increase output detail (-v progress, -vv per-call debug).",
    )(fn)


def make_logger(verbose: int, log_dir: Path | None) -> RecallLogger:
    return RecallLogger(
        verbosity=Verbosity(min(verbose, Verbosity.DEBUG)),
        log_dir=log_dir,
        console=console,
    )


def write_json(path: Path, data: dict) -> None:
    atomic_write(path, json.dumps(data, indent=2) + "\n")


@click.group()
def main():
    """recallsync — keep session summaries in sync with their sessions."""
    pass


def cli():
    """Entrypoint that loads .env before running the CLI."""
    from dotenv import load_dotenv

    load_dotenv()
    main()


# Import subcommand modules to register commands
from recallsync.cli.diff_commands import diff, plan  # noqa: E402, F401
from recallsync.cli.merge_commands import merge  # noqa: E402, F401
from recallsync.cli.sync_commands import record  # noqa: E402, F401

# Register commands
main.add_command(diff)
main.add_command(plan)
main.add_command(merge)
main.add_command(record)
