"""Sync ledger — remember which planned summaries were regenerated."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import replace
from datetime import datetime, timezone

from recallsync.core.models import (
    LEDGER_PENDING,
    LEDGER_PROCESSED,
    RESULT_FAILED,
    RESULT_SKIPPED,
    RESULT_SUCCESS,
    SyncLedger,
    SyncLedgerEntry,
    SyncPlan,
    SyncPlanItem,
    SyncResult,
)

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def build_sync_ledger(
    plan: SyncPlan,
    processed_version: int = 1,
    summary_dir: str | None = None,
    now: str | None = None,
) -> SyncLedger:
    """An empty ledger for the given plan."""
    return SyncLedger(
        processed_version=processed_version,
        generated_at=now or _now(),
        report_file=plan.report_file,
        summary_dir=summary_dir,
    )


def ledger_reason(result: SyncResult) -> str:
    """``failed: <detail>`` or ``skipped: <detail>``, whitespace collapsed."""
    base = RESULT_FAILED if result.status == RESULT_FAILED else RESULT_SKIPPED
    detail = _WHITESPACE.sub(" ", result.error or "").strip()
    return f"{base}: {detail}" if detail else base


def _entry(existing: SyncLedgerEntry | None, item: SyncPlanItem, **state) -> SyncLedgerEntry:
    def pick(name: str):
        value = getattr(item, name)
        if value is None and existing is not None:
            return getattr(existing, name)
        return value

    return SyncLedgerEntry(
        key=item.key,
        session_id=item.session_id,
        project_id=item.project_id,
        source_fingerprint=pick("source_fingerprint"),
        source_updated_at=pick("source_updated_at"),
        summary_fingerprint=pick("summary_fingerprint"),
        summary_path=pick("summary_path"),
        summary_generated_at=pick("summary_generated_at"),
        **state,
    )


def update_sync_ledger(
    ledger: SyncLedger,
    results: Iterable[SyncResult],
    now: str | None = None,
) -> SyncLedger:
    """Return a new ledger with one entry per result; the input is not modified.

    A success marks the entry processed. A failure or skip marks it pending
    and keeps the time it was last processed. Provenance fields missing from
    the plan item are carried over from the existing entry. Results with any
    other status are ignored; when nothing applies the ledger is returned
    as is.
    """
    now = now or _now()
    entries = dict(ledger.entries)
    updated = 0
    for result in results:
        key = result.item.key
        existing = entries.get(key)
        if result.status == RESULT_SUCCESS:
            entries[key] = _entry(
                existing, result.item,
                status=LEDGER_PROCESSED, reason=LEDGER_PROCESSED, processed_at=now, verified_at=now,
            )
        elif result.status in (RESULT_FAILED, RESULT_SKIPPED):
            entries[key] = _entry(
                existing, result.item,
                status=LEDGER_PENDING,
                reason=ledger_reason(result),
                processed_at=existing.processed_at if existing is not None else None,
                verified_at=now,
            )
        else:
            logger.warning("Ignoring result for %s with status %r", key, result.status)
            continue
        updated += 1

    if not updated:
        return ledger
    logger.debug("Ledger updated for %d results", updated)
    return replace(ledger, generated_at=now, entries=entries)
