"""Structured logging and verbosity levels for recallsync runs."""

from __future__ import annotations

import json
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import IntEnum
from pathlib import Path
from typing import Any

from rich.console import Console


class Verbosity(IntEnum):
    """Verbosity levels for console output."""

    DEFAULT = 0   # Final tables only
    VERBOSE = 1   # + per-pass progress, diff stats
    DEBUG = 2     # + per-group combine calls, timing


@dataclass
class MergeLog:
    """Statistics for one merge reduction."""

    input_items: int = 0
    passes: int = 0
    combine_calls: int = 0
    passthrough_groups: int = 0
    fallback_passes: int = 0
    time_seconds: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "input_items": self.input_items,
            "passes": self.passes,
            "combine_calls": self.combine_calls,
            "passthrough_groups": self.passthrough_groups,
            "fallback_passes": self.fallback_passes,
            "time_seconds": self.time_seconds,
        }


@dataclass
class RunLog:
    """Structured log of a complete run.

    The dict format is::

        {
            "run_id": "20250101T000000Z",
            "diff": {"new": 2, "stale": 1, ...},
            "merge": {"input_items": 8, "passes": 3, "combine_calls": 7, ...},
            "ledger": {"processed": 3, "pending": 1, ...},
            "total_time": 1.2,
        }
    """

    run_id: str = ""
    diff: dict[str, int] = field(default_factory=dict)
    merge: MergeLog = field(default_factory=MergeLog)
    ledger: dict[str, int] = field(default_factory=dict)
    total_time: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "diff": dict(self.diff),
            "merge": self.merge.to_dict(),
            "ledger": dict(self.ledger),
            "total_time": self.total_time,
        }


class RecallLogger:
    """Structured logger for recallsync runs.

    Writes JSONL log files to log_dir/logs/ and optionally emits
    console output via Rich based on verbosity level. Safe to call
    from the reducer's worker threads: counter updates and log writes
    share one lock, so events are whole lines.
    """

    def __init__(
        self,
        verbosity: Verbosity = Verbosity.DEFAULT,
        log_dir: Path | None = None,
        console: Console | None = None,
    ):
        self.verbosity = verbosity
        self.log_dir = log_dir
        self.console = console or Console(stderr=True)
        self.run_log = RunLog(
            run_id=datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ"),
        )
        self._log_file = None
        self._log_path: Path | None = None
        self._run_start = time.time()
        self._merge_start = 0.0
        self._lock = threading.RLock()

        if log_dir is not None:
            logs_dir = log_dir / "logs"
            logs_dir.mkdir(parents=True, exist_ok=True)
            self._log_path = logs_dir / f"{self.run_log.run_id}.jsonl"
            self._log_file = open(self._log_path, "a")

    @property
    def log_path(self) -> Path | None:
        return self._log_path

    def _write_event(self, event: dict[str, Any]) -> None:
        """Write a JSON event to the JSONL log file."""
        with self._lock:
            if self._log_file is not None:
                event["timestamp"] = datetime.now(timezone.utc).isoformat()
                self._log_file.write(json.dumps(event) + "\n")
                self._log_file.flush()

    def _console_print(self, message: str, min_verbosity: Verbosity) -> None:
        if self.verbosity >= min_verbosity:
            self.console.print(message)

    # -- Diff events --

    def diff_finish(self, stats: dict[str, int]) -> None:
        """Log the stats of a finished diff report."""
        self.run_log.diff = dict(stats)
        self._write_event({"event": "diff_finish", "stats": dict(stats)})
        self._console_print(
            "  [bold]Diff:[/bold] "
            + ", ".join(f"{name}={count}" for name, count in stats.items()),
            Verbosity.VERBOSE,
        )

    # -- Ledger events --

    def ledger_finish(self, results: int, stats: dict[str, int]) -> None:
        """Log the ledger stats after recording sync results."""
        self.run_log.ledger = dict(stats)
        self._write_event({"event": "ledger_finish", "results": results, "stats": dict(stats)})
        self._console_print(
            f"  [bold]Ledger:[/bold] {results} results recorded, "
            + ", ".join(f"{name}={count}" for name, count in stats.items()),
            Verbosity.VERBOSE,
        )

    # -- Merge events --

    def merge_start(self, item_count: int, max_tokens: int) -> None:
        self._merge_start = time.time()
        self.run_log.merge = MergeLog(input_items=item_count)
        self._write_event({
            "event": "merge_start",
            "items": item_count,
            "max_tokens": max_tokens,
        })
        self._console_print(
            f"  [bold]Merging[/bold] {item_count} summaries (budget {max_tokens} tokens)",
            Verbosity.VERBOSE,
        )

    def merge_pass(self, pass_number: int, mode: str, group_sizes: list[int],
                   group_est_tokens: list[int]) -> None:
        merge = self.run_log.merge
        with self._lock:
            merge.passes += 1
            if mode == "pair-fallback":
                merge.fallback_passes += 1
            merge.passthrough_groups += sum(1 for size in group_sizes if size == 1)

        self._write_event({
            "event": "merge_pass",
            "pass": pass_number,
            "mode": mode,
            "group_sizes": list(group_sizes),
            "group_est_tokens": list(group_est_tokens),
        })
        style = "yellow" if mode == "pair-fallback" else "green"
        self._console_print(
            f"    pass {pass_number}: [{style}]{mode}[/{style}], "
            f"{len(group_sizes)} groups {group_sizes}",
            Verbosity.VERBOSE,
        )

    def combine_start(self, pass_number: int, group_index: int, size: int) -> float:
        """Log the start of a combine call. Returns start time for combine_finish."""
        start = time.time()
        self._write_event({
            "event": "combine_start",
            "pass": pass_number,
            "group": group_index,
            "size": size,
        })
        self._console_print(
            f"      [dim]combine pass {pass_number} group {group_index} ({size} items)[/dim]",
            Verbosity.DEBUG,
        )
        return start

    def combine_finish(self, pass_number: int, group_index: int, start_time: float,
                       est_tokens: int) -> None:
        elapsed = time.time() - start_time
        with self._lock:
            self.run_log.merge.combine_calls += 1
        self._write_event({
            "event": "combine_finish",
            "pass": pass_number,
            "group": group_index,
            "duration_seconds": round(elapsed, 3),
            "est_tokens": est_tokens,
        })
        self._console_print(
            f"      [dim]  -> {elapsed:.1f}s, ~{est_tokens} tokens[/dim]",
            Verbosity.DEBUG,
        )

    def merge_finish(self, passes: int) -> None:
        elapsed = time.time() - self._merge_start
        self.run_log.merge.time_seconds = elapsed
        self._write_event({
            "event": "merge_finish",
            "passes": passes,
            "combine_calls": self.run_log.merge.combine_calls,
            "time_seconds": round(elapsed, 3),
        })
        self._console_print(
            f"  [bold]Merged[/bold] in {passes} passes ({elapsed:.1f}s)",
            Verbosity.VERBOSE,
        )

    # -- Lifecycle --

    def close(self) -> None:
        """Finalize totals and close the log file if open."""
        self.run_log.total_time = time.time() - self._run_start
        with self._lock:
            if self._log_file is not None:
                self._write_event({"event": "run_finish", "total_time": round(self.run_log.total_time, 3)})
                self._log_file.close()
                self._log_file = None
