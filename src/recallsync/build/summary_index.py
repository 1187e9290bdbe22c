"""Summary indexing — one summary per key, duplicates recorded, scope filtering."""

from __future__ import annotations

from collections.abc import Iterable

from recallsync.build.classify import summary_recency_ms
from recallsync.core.config import DiffScope
from recallsync.core.models import SourceRecord, SummaryDuplicate, SummaryRecord


def _is_newer(candidate: SummaryRecord, existing: SummaryRecord) -> bool:
    """True if candidate is strictly more recent; unknown recency never wins."""
    candidate_ms = summary_recency_ms(candidate)
    existing_ms = summary_recency_ms(existing)
    if candidate_ms is None:
        return False
    if existing_ms is None:
        return True
    return candidate_ms > existing_ms


def _label(record: SummaryRecord) -> str:
    return record.path or record.fingerprint


def index_summaries(
    records: Iterable[SummaryRecord],
) -> tuple[dict[str, SummaryRecord], list[SummaryDuplicate]]:
    """Keep the most recent summary per key and record every dropped one.

    On equal recency the summary seen first is kept. Keyless records are
    indexed under the empty key and never deduplicated against each other.
    """
    summaries: dict[str, SummaryRecord] = {}
    duplicates: list[SummaryDuplicate] = []
    keyless: list[SummaryRecord] = []

    for record in records:
        if not record.key:
            keyless.append(record)
            continue
        existing = summaries.get(record.key)
        if existing is None:
            summaries[record.key] = record
        elif _is_newer(record, existing):
            summaries[record.key] = record
            duplicates.append(SummaryDuplicate(record.key, kept=_label(record), dropped=_label(existing)))
        else:
            duplicates.append(SummaryDuplicate(record.key, kept=_label(existing), dropped=_label(record)))

    if keyless:
        # Keyless records are kept apart; build_diff_report tags them unknown.
        return {**summaries, **{f"#keyless-{i}": r for i, r in enumerate(keyless)}}, duplicates
    return summaries, duplicates


def filter_sources(sources: Iterable[SourceRecord], scope: DiffScope) -> list[SourceRecord]:
    """Sessions whose project is in scope. Keyless sessions are always kept."""
    return [s for s in sources if not s.key or scope.allows(s.project_id)]


def filter_summaries(summaries: Iterable[SummaryRecord], scope: DiffScope) -> list[SummaryRecord]:
    """Summaries whose project is in scope. Keyless summaries are always kept."""
    return [s for s in summaries if not s.key or scope.allows(s.project_id)]
