"""Diff commands — recallsync diff, recallsync plan."""

from __future__ import annotations

import json
from pathlib import Path

import click
from rich import box
from rich.table import Table

from recallsync.build.diff import build_diff_report
from recallsync.build.plan import build_sync_plan
from recallsync.build.summary_index import filter_sources, filter_summaries, index_summaries
from recallsync.cli.main import (
    console,
    get_status_style,
    handle_errors,
    make_logger,
    verbosity_option,
    write_json,
)
from recallsync.config import get_settings
from recallsync.core.config import DiffScope
from recallsync.core.models import DIFF_STATUSES, DiffReport
from recallsync.sources.storage import load_projects, load_source_records, resolve_project_id_for_repo
from recallsync.sources.summaries import load_summary_records


def diff_options(fn):
    """Options shared by diff and plan."""
    options = [
        click.option("--storage-dir", type=click.Path(path_type=Path), default=None,
                     help="Session storage root (default: RECALLSYNC_STORAGE_DIR)"),
        click.option("--summary-dir", type=click.Path(path_type=Path), default=None,
                     help="Directory of summary files (default: RECALLSYNC_SUMMARY_DIR)"),
        click.option("--output-dir", type=click.Path(path_type=Path), default=None,
                     help="Where JSON outputs and logs are written"),
        click.option("--project", default=None, help="Project id to diff"),
        click.option("--repo", type=click.Path(path_type=Path), default=None,
                     help="Repository used to look up the project (default: cwd)"),
        click.option("--include-global", is_flag=True, default=False,
                     help="Also include sessions of the global project"),
        click.option("--all-projects", is_flag=True, default=False,
                     help="Do not filter by project"),
        click.option("--json", "as_json", is_flag=True, default=False,
                     help="Print the JSON document instead of tables"),
        verbosity_option,
    ]
    for option in reversed(options):
        fn = option(fn)
    return fn


def _resolve_scope(storage_dir: Path, project: str | None, repo: Path | None,
                   include_global: bool, all_projects: bool) -> DiffScope | None:
    if all_projects:
        return None
    repo_path = (repo or Path.cwd()).resolve()
    project_id = project or resolve_project_id_for_repo(load_projects(storage_dir), repo_path)
    return DiffScope.build(project_id, include_global=include_global, repo_path=str(repo_path))


def run_diff(storage_dir, summary_dir, project, repo, include_global, all_projects) -> DiffReport:
    """Load both sides from disk, filter them to the scope, and diff them."""
    settings = get_settings()
    storage_dir = storage_dir or settings.storage_dir
    summary_dir = summary_dir or settings.summary_dir

    scope = _resolve_scope(storage_dir, project, repo, include_global, all_projects)
    sources = load_source_records(storage_dir)
    summaries = load_summary_records(summary_dir, settings.summary_prefix)
    if scope is not None:
        sources = filter_sources(sources, scope)
        summaries = filter_summaries(summaries, scope)

    indexed, duplicates = index_summaries(summaries)
    return build_diff_report(sources, indexed, duplicates, scope=scope)


def _print_report(report: DiffReport, show_unchanged: bool) -> None:
    stats = Table(title="Summary Diff", box=box.ROUNDED)
    stats.add_column("Status", style="bold")
    stats.add_column("Count", justify="right")
    for status in DIFF_STATUSES:
        style = get_status_style(status)
        stats.add_row(f"[{style}]{status}[/{style}]", str(len(report.bucket(status))))
    console.print(stats)
    console.print(
        f"[dim]{report.source_count} sessions, {report.summary_count} summaries, "
        f"{len(report.duplicates)} duplicates[/dim]"
    )

    entries = [e for e in report.entries() if show_unchanged or e.status != "unchanged"]
    if not entries:
        return
    table = Table(box=box.SIMPLE)
    table.add_column("Status")
    table.add_column("Key")
    table.add_column("Title")
    table.add_column("Reason", style="dim")
    for entry in entries:
        style = get_status_style(entry.status)
        table.add_row(f"[{style}]{entry.status}[/{style}]", entry.key or "-", entry.title or "", entry.reason or "")
    console.print(table)


@click.command()
@diff_options
@click.option("--show-unchanged", is_flag=True, default=False, help="List unchanged sessions too")
@handle_errors
def diff(storage_dir, summary_dir, output_dir, project, repo, include_global, all_projects,
         as_json, verbose, show_unchanged):
    """Compare sessions against their summaries and write diff-report.json."""
    settings = get_settings()
    output_dir = output_dir or settings.output_dir
    run_logger = make_logger(verbose, output_dir if verbose else None)
    try:
        report = run_diff(storage_dir, summary_dir, project, repo, include_global, all_projects)
        run_logger.diff_finish(report.stats)
    finally:
        run_logger.close()

    report_path = output_dir / "diff-report.json"
    write_json(report_path, report.to_dict())

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
        return
    _print_report(report, show_unchanged)
    console.print(f"Report written to [bold]{report_path}[/bold]")


@click.command()
@diff_options
@handle_errors
def plan(storage_dir, summary_dir, output_dir, project, repo, include_global, all_projects,
         as_json, verbose):
    """Diff, then write sync-plan.json listing the summaries to regenerate."""
    settings = get_settings()
    output_dir = output_dir or settings.output_dir
    run_logger = make_logger(verbose, output_dir if verbose else None)
    try:
        report = run_diff(storage_dir, summary_dir, project, repo, include_global, all_projects)
        run_logger.diff_finish(report.stats)
    finally:
        run_logger.close()

    report_path = output_dir / "diff-report.json"
    plan_path = output_dir / "sync-plan.json"
    write_json(report_path, report.to_dict())
    sync_plan = build_sync_plan(report, report_file=str(report_path))
    write_json(plan_path, sync_plan.to_dict())

    if as_json:
        click.echo(json.dumps(sync_plan.to_dict(), indent=2))
        return

    if not sync_plan.items:
        console.print("[green]All summaries are current.[/green]")
    else:
        table = Table(title="Sync Plan", box=box.ROUNDED)
        table.add_column("Status")
        table.add_column("Key")
        table.add_column("Title")
        for item in sync_plan.items:
            style = get_status_style(item.status)
            table.add_row(f"[{style}]{item.status}[/{style}]", item.key, item.title or "")
        console.print(table)
    stats = sync_plan.stats
    console.print(
        f"{stats['total']} to sync ({stats['new']} new, {stats['stale']} stale). "
        f"Plan written to [bold]{plan_path}[/bold]"
    )
