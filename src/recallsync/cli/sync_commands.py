"""Sync commands — recallsync record."""

from __future__ import annotations

import json
from pathlib import Path

import click
from rich import box
from rich.table import Table

from recallsync.build.ledger import build_sync_ledger, update_sync_ledger
from recallsync.cli.main import (
    console,
    get_status_style,
    handle_errors,
    make_logger,
    verbosity_option,
    write_json,
)
from recallsync.config import get_settings
from recallsync.core.errors import LedgerError
from recallsync.core.models import LEDGER_STATUSES, RESULT_STATUSES, SyncLedger, SyncPlan, SyncResult


def _read_json(path: Path, what: str):
    try:
        return json.loads(path.read_text())
    except (OSError, ValueError) as exc:
        raise LedgerError(f"Cannot read {what} {path}: {exc}") from exc


def load_plan(path: Path) -> SyncPlan:
    data = _read_json(path, "sync plan")
    if not isinstance(data, dict):
        raise LedgerError(f"Sync plan {path} is not a JSON object")
    try:
        return SyncPlan.from_dict(data)
    except (AttributeError, TypeError) as exc:
        raise LedgerError(f"Malformed sync plan {path}: {exc}") from exc


def load_ledger(path: Path) -> SyncLedger | None:
    """The ledger stored at path, or None when there is none yet."""
    if not path.exists():
        return None
    data = _read_json(path, "ledger")
    if not isinstance(data, dict):
        raise LedgerError(f"Ledger {path} is not a JSON object")
    try:
        return SyncLedger.from_dict(data)
    except (AttributeError, TypeError) as exc:
        raise LedgerError(f"Malformed ledger {path}: {exc}") from exc


def load_results(path: Path, plan: SyncPlan) -> list[SyncResult]:
    """Results file entries matched to the plan items they report on.

    The file holds a JSON list of ``{"key": ..., "status": ..., "error": ...}``
    objects, status being one of success, failed or skipped.
    """
    data = _read_json(path, "results file")
    if not isinstance(data, list):
        raise LedgerError(f"Results file must hold a JSON list: {path}")
    items = {item.key: item for item in plan.items}
    results = []
    for position, raw in enumerate(data, start=1):
        if not isinstance(raw, dict):
            raise LedgerError(f"Result {position} is not an object: {path}")
        key = raw.get("key")
        if not isinstance(key, str) or key not in items:
            raise LedgerError(f"Result {position}: {key!r} is not in the sync plan")
        status = raw.get("status")
        if status not in RESULT_STATUSES:
            raise LedgerError(
                f"Result {position}: status {status!r} is not one of {', '.join(RESULT_STATUSES)}"
            )
        error = raw.get("error")
        results.append(SyncResult(item=items[key], status=status, error=None if error is None else str(error)))
    return results


@click.command()
@click.argument("results_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--plan", "plan_file", type=click.Path(path_type=Path), default=None,
              help="Sync plan the results refer to (default: OUTPUT_DIR/sync-plan.json)")
@click.option("--ledger", "ledger_file", type=click.Path(path_type=Path), default=None,
              help="Ledger file to update (default: OUTPUT_DIR/state.json)")
@click.option("--output-dir", type=click.Path(path_type=Path), default=None,
              help="Where the plan, ledger and logs live")
@click.option("--summary-dir", type=click.Path(path_type=Path), default=None,
              help="Summary directory recorded in a new ledger (default: RECALLSYNC_SUMMARY_DIR)")
@click.option("--processed-version", type=click.IntRange(min=1), default=1, show_default=True,
              help="Version stamped on the ledger")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print the ledger JSON instead of tables")
@verbosity_option
@handle_errors
def record(results_file, plan_file, ledger_file, output_dir, summary_dir, processed_version, as_json, verbose):
    """Record sync results from RESULTS_FILE in the ledger (state.json)."""
    settings = get_settings()
    output_dir = output_dir or settings.output_dir
    plan_file = plan_file or output_dir / "sync-plan.json"
    ledger_file = ledger_file or output_dir / "state.json"

    sync_plan = load_plan(plan_file)
    results = load_results(results_file, sync_plan)
    if not results:
        console.print("No results to record; ledger left untouched.")
        return

    ledger = load_ledger(ledger_file) or build_sync_ledger(
        sync_plan, processed_version, summary_dir=str(summary_dir or settings.summary_dir),
    )
    ledger.processed_version = processed_version
    updated = update_sync_ledger(ledger, results)
    write_json(ledger_file, updated.to_dict())

    run_logger = make_logger(verbose, output_dir if verbose else None)
    try:
        run_logger.ledger_finish(len(results), updated.stats)
    finally:
        run_logger.close()

    if as_json:
        click.echo(json.dumps(updated.to_dict(), indent=2))
        return

    table = Table(title="Sync Ledger", box=box.ROUNDED)
    table.add_column("Status", style="bold")
    table.add_column("Count", justify="right")
    for status in LEDGER_STATUSES:
        style = get_status_style(status)
        table.add_row(f"[{style}]{status}[/{style}]", str(updated.stats[status]))
    console.print(table)
    console.print(f"{len(results)} results recorded. Ledger written to [bold]{ledger_file}[/bold]")
