"""recallsync - keep session summaries in sync with their sessions.

Usage:
    from recallsync import build_diff_report, reduce_summaries_async, MergeConfig

    report = build_diff_report(sources, summaries)
    for entry in report.stale:
        regenerate(entry.key)

    result = await reduce_summaries_async(items, MergeConfig(max_tokens=6000), combine)
"""

from recallsync.build.diff import build_diff_report
from recallsync.build.fingerprint import fingerprint_session
from recallsync.build.ledger import build_sync_ledger, update_sync_ledger
from recallsync.build.plan import build_sync_plan
from recallsync.core.config import DiffScope, MergeConfig
from recallsync.core.errors import CombineError, MergeError, RecallError
from recallsync.core.models import (
    ChildStat,
    DiffEntry,
    DiffReport,
    MergeReport,
    MergeResult,
    SourceRecord,
    SummaryItem,
    SummaryRecord,
    SyncLedger,
    SyncPlan,
    SyncResult,
)
from recallsync.merge.reducer import reduce_summaries, reduce_summaries_async

__all__ = [
    "ChildStat",
    "CombineError",
    "DiffEntry",
    "DiffReport",
    "DiffScope",
    "MergeConfig",
    "MergeError",
    "MergeReport",
    "MergeResult",
    "RecallError",
    "SourceRecord",
    "SummaryItem",
    "SummaryRecord",
    "SyncLedger",
    "SyncPlan",
    "SyncResult",
    "build_diff_report",
    "build_sync_ledger",
    "build_sync_plan",
    "fingerprint_session",
    "reduce_summaries",
    "reduce_summaries_async",
    "update_sync_ledger",
]

__version__ = "0.1.0"
