"""Merge command — recallsync merge."""

from __future__ import annotations

import json
from pathlib import Path

import click
from rich import box
from rich.table import Table

from recallsync.cli.main import console, handle_errors, make_logger, verbosity_option, write_json
from recallsync.config import get_settings
from recallsync.core.config import MergeConfig
from recallsync.core.errors import MergeError
from recallsync.merge.combiners import union_combine
from recallsync.merge.grouping import build_summary_item
from recallsync.merge.reducer import reduce_summaries


def load_summaries(path: Path) -> list:
    """Summaries from a JSON file: a list, or an object with a "summaries" list."""
    try:
        data = json.loads(path.read_text())
    except ValueError as e:
        raise MergeError(f"Cannot parse {path}: {e}") from e
    if isinstance(data, dict):
        data = data.get("summaries")
    if not isinstance(data, list):
        raise MergeError(f"{path} must contain a list of summaries")
    return data


@click.command()
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--output", "-o", type=click.Path(path_type=Path), default=None,
              help="Where to write the merge result (default: <output-dir>/merged-summary.json)")
@click.option("--max-tokens", type=int, default=None, help="Token budget per merge group")
@click.option("--concurrency", "-j", type=int, default=None, help="Concurrent combine calls per pass")
@verbosity_option
@handle_errors
def merge(input_file: Path, output: Path | None, max_tokens: int | None, concurrency: int | None, verbose: int):
    """Merge the summaries in INPUT_FILE into one with the union combiner."""
    settings = get_settings()
    config = MergeConfig(
        max_tokens=max_tokens if max_tokens is not None else settings.merge_max_tokens,
        concurrency=concurrency if concurrency is not None else settings.merge_concurrency,
    )
    output = output or settings.output_dir / "merged-summary.json"

    items = [build_summary_item(summary) for summary in load_summaries(input_file)]
    run_logger = make_logger(verbose, output.parent if verbose else None)
    try:
        result = reduce_summaries(items, config, union_combine, run_logger=run_logger)
    finally:
        run_logger.close()

    write_json(output, result.to_dict())

    table = Table(title="Merge Passes", box=box.ROUNDED)
    table.add_column("Pass", justify="right")
    table.add_column("Mode")
    table.add_column("Group sizes")
    table.add_column("Group tokens")
    for merge_pass in result.report.passes:
        style = "yellow" if merge_pass.mode == "pair-fallback" else "green"
        table.add_row(
            str(merge_pass.pass_number),
            f"[{style}]{merge_pass.mode}[/{style}]",
            ", ".join(str(s) for s in merge_pass.group_sizes),
            ", ".join(str(t) for t in merge_pass.group_est_tokens),
        )
    console.print(table)
    console.print(f"Merged {len(items)} summaries. Result written to [bold]{output}[/bold]")
