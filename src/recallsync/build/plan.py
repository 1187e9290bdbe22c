"""Sync planning — turn a diff report into the list of summaries to regenerate."""

from __future__ import annotations

from datetime import datetime, timezone

from recallsync.core.models import DiffReport, SyncPlan, SyncPlanItem


def build_sync_plan(report: DiffReport, report_file: str | None = None) -> SyncPlan:
    """Collect the `new` and `stale` entries of a report, new first.

    Entries without both a session id and a project id cannot be
    regenerated and are left out.
    """
    items = [
        SyncPlanItem(
            key=entry.key,
            session_id=entry.session_id,
            project_id=entry.project_id,
            status=entry.status,
            reason=entry.reason,
            title=entry.title,
            source_fingerprint=entry.source_fingerprint,
            source_updated_at=entry.source_updated_at,
            summary_fingerprint=entry.summary_fingerprint,
            summary_generated_at=entry.summary_generated_at,
            summary_path=entry.summary_path,
        )
        for entry in [*report.new, *report.stale]
        if entry.session_id and entry.project_id
    ]
    return SyncPlan(
        generated_at=datetime.now(timezone.utc).isoformat(),
        report_file=report_file,
        scope=report.scope,
        items=items,
    )

