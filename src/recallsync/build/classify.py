"""Change classification — decide whether a session's summary needs regeneration.

Staleness is decided by timestamps only. Both sides carry a fingerprint, but
they are copied into the entry for reference and never compared here: a source
that reverts its content without moving its clock forward stays `unchanged`.
"""

from __future__ import annotations

from datetime import datetime, timezone

from recallsync.core.models import (
    STATUS_NEW,
    STATUS_ORPHAN,
    STATUS_STALE,
    STATUS_UNCHANGED,
    STATUS_UNKNOWN,
    DiffEntry,
    SourceRecord,
    SummaryRecord,
)

REASON_MISSING_SUMMARY = "missing-summary"
REASON_MISSING_TIMESTAMP = "missing-timestamp"
REASON_SOURCE_NEWER = "source-newer"
REASON_SUMMARY_CURRENT = "summary-current"
REASON_MISSING_SOURCE = "missing-source"
REASON_MISSING_KEY = "missing-key"


def parse_timestamp_ms(value: str | None) -> float | None:
    """Parse an ISO-8601 timestamp to epoch milliseconds; None when absent or invalid.

    Naive timestamps are taken as UTC.
    """
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp() * 1000


def _max_present(*candidates: float | None) -> float | None:
    present = [c for c in candidates if c is not None]
    if not present:
        return None
    return max(present)


def source_latest_ms(source: SourceRecord) -> float | None:
    """Latest activity of a session: max of updated_at, own mtime, descendant mtimes."""
    return _max_present(
        parse_timestamp_ms(source.updated_at),
        source.mtime_ms,
        source.latest_child_mtime_ms,
    )


def summary_recency_ms(summary: SummaryRecord) -> float | None:
    """Recency of a summary: max of generation time and file mtime."""
    return _max_present(summary.generated_at_ms, summary.mtime_ms)


def build_diff_entry(
    source: SourceRecord | None,
    summary: SummaryRecord | None,
    status: str,
    reason: str | None,
) -> DiffEntry:
    """Cross-reference both sides of a classification into one entry."""
    key = (source.key if source else None) or (summary.key if summary else None) or ""
    return DiffEntry(
        key=key,
        status=status,
        reason=reason,
        session_id=(source.session_id if source else None) or (summary.session_id if summary else None),
        project_id=(source.project_id if source else None) or (summary.project_id if summary else None),
        title=source.title if source else None,
        source_fingerprint=source.fingerprint if source else None,
        source_updated_at=source.updated_at if source else None,
        source_latest_ms=source_latest_ms(source) if source else None,
        summary_fingerprint=summary.fingerprint if summary else None,
        summary_generated_at=summary.generated_at if summary else None,
        summary_recency_ms=summary_recency_ms(summary) if summary else None,
        summary_mtime_ms=summary.mtime_ms if summary else None,
        summary_path=summary.path if summary else None,
    )


def classify_source(source: SourceRecord, summary: SummaryRecord | None) -> DiffEntry:
    """Classify one session against its summary (or the lack of one).

    Equal timestamps resolve to `unchanged`: only a strictly newer source
    is stale.
    """
    if not source.key:
        return build_diff_entry(source, summary, STATUS_UNKNOWN, REASON_MISSING_KEY)

    if summary is None:
        return build_diff_entry(source, None, STATUS_NEW, REASON_MISSING_SUMMARY)

    source_latest = source_latest_ms(source)
    summary_latest = summary_recency_ms(summary)

    if source_latest is None or summary_latest is None:
        return build_diff_entry(source, summary, STATUS_UNKNOWN, REASON_MISSING_TIMESTAMP)

    if source_latest > summary_latest:
        return build_diff_entry(source, summary, STATUS_STALE, REASON_SOURCE_NEWER)

    return build_diff_entry(source, summary, STATUS_UNCHANGED, REASON_SUMMARY_CURRENT)


def classify_orphan(summary: SummaryRecord) -> DiffEntry:
    """A summary without a source. Keyless summaries are `unknown` instead."""
    if not summary.key:
        return build_diff_entry(None, summary, STATUS_UNKNOWN, REASON_MISSING_KEY)
    return build_diff_entry(None, summary, STATUS_ORPHAN, REASON_MISSING_SOURCE)
