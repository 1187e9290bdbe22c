"""Session diffing — compare sessions against their summaries and bucket the results."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone

from recallsync.build.classify import classify_orphan, classify_source
from recallsync.core.config import DiffScope
from recallsync.core.errors import DiffError
from recallsync.core.models import (
    DIFF_STATUSES,
    DiffEntry,
    DiffReport,
    SourceRecord,
    SummaryDuplicate,
    SummaryRecord,
)

logger = logging.getLogger(__name__)


def _sort_key(entry: DiffEntry) -> tuple[float, str]:
    return (-(entry.latest_ms or 0), entry.key)


def sort_by_latest(entries: Iterable[DiffEntry]) -> list[DiffEntry]:
    """Newest activity first (missing timestamps count as 0), ties by ascending key."""
    return sorted(entries, key=_sort_key)


def _index_summaries(
    summaries: Mapping[str, SummaryRecord] | Iterable[SummaryRecord],
) -> tuple[dict[str, SummaryRecord], list[SummaryRecord]]:
    """Split summaries into a by-key map and the keyless ones."""
    if isinstance(summaries, Mapping):
        records = list(summaries.values())
    else:
        records = list(summaries)

    by_key: dict[str, SummaryRecord] = {}
    keyless: list[SummaryRecord] = []
    for record in records:
        if not record.key:
            keyless.append(record)
            continue
        if record.key in by_key:
            raise DiffError(
                f"Duplicate summary for key {record.key!r}; "
                "resolve duplicates with index_summaries() first"
            )
        by_key[record.key] = record
    return by_key, keyless


def build_diff_report(
    sources: Iterable[SourceRecord],
    summaries: Mapping[str, SummaryRecord] | Iterable[SummaryRecord],
    duplicates: Iterable[SummaryDuplicate] = (),
    scope: DiffScope | None = None,
) -> DiffReport:
    """Classify every session and every orphaned summary into a DiffReport.

    Args:
        sources: Sessions, already filtered to the wanted scope.
        summaries: At most one summary per key, as a mapping or an iterable.
        duplicates: Duplicate resolutions applied upstream, reported verbatim.
        scope: The scope the inputs were filtered with, recorded in the report.

    Returns:
        DiffReport with entries bucketed by status and ordered within each
        bucket by latest activity, newest first.

    Raises:
        DiffError: Two sessions or two summaries share a key.
    """
    source_list = list(sources)
    summary_map, keyless_summaries = _index_summaries(summaries)

    source_keys: set[str] = set()
    for source in source_list:
        if not source.key:
            continue
        if source.key in source_keys:
            raise DiffError(f"Duplicate session key {source.key!r}")
        source_keys.add(source.key)

    classified = [
        classify_source(source, summary_map.get(source.key) if source.key else None)
        for source in source_list
    ]
    orphans = [
        classify_orphan(summary)
        for key, summary in summary_map.items()
        if key not in source_keys
    ]
    orphans.extend(classify_orphan(summary) for summary in keyless_summaries)

    buckets: dict[str, list[DiffEntry]] = {status: [] for status in DIFF_STATUSES}
    for entry in classified + orphans:
        buckets[entry.status].append(entry)

    report = DiffReport(
        generated_at=datetime.now(timezone.utc).isoformat(),
        duplicates=list(duplicates),
        source_count=len(source_list),
        summary_count=len(summary_map) + len(keyless_summaries),
        scope=scope.to_dict() if scope is not None else None,
        **{status: sort_by_latest(entries) for status, entries in buckets.items()},
    )
    logger.debug("Diff report: %s", report.stats)
    return report
