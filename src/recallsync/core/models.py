"""Core data models for recallsync."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any, NamedTuple

STATUS_NEW = "new"
STATUS_STALE = "stale"
STATUS_UNCHANGED = "unchanged"
STATUS_ORPHAN = "orphan"
STATUS_UNKNOWN = "unknown"

DIFF_STATUSES = (STATUS_NEW, STATUS_STALE, STATUS_UNCHANGED, STATUS_ORPHAN, STATUS_UNKNOWN)

MODE_BUDGETED = "budgeted"
MODE_PAIR_FALLBACK = "pair-fallback"

RESULT_SUCCESS = "success"
RESULT_FAILED = "failed"
RESULT_SKIPPED = "skipped"

RESULT_STATUSES = (RESULT_SUCCESS, RESULT_FAILED, RESULT_SKIPPED)

LEDGER_PROCESSED = "processed"
LEDGER_PENDING = "pending"

LEDGER_STATUSES = (LEDGER_PROCESSED, LEDGER_PENDING, STATUS_ORPHAN, STATUS_UNKNOWN)


class ChildStat(NamedTuple):
    """Metadata for one child file of a session (a message), fed into the fingerprint."""

    name: str
    size: int
    mtime_ms: float | None
    grandchild_count: int = 0
    grandchild_latest_mtime_ms: float | None = None
    grandchild_size_total: int = 0


@dataclass(frozen=True)
class SourceRecord:
    """One session tracked for change detection."""

    key: str
    fingerprint: str
    updated_at: str | None = None  # ISO-8601
    mtime_ms: float | None = None
    latest_child_mtime_ms: float | None = None
    session_id: str | None = None
    project_id: str | None = None
    title: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SummaryRecord:
    """Provenance of a previously generated summary for one session."""

    key: str
    fingerprint: str
    generated_at_ms: float | None = None
    mtime_ms: float | None = None
    generated_at: str | None = None
    session_id: str | None = None
    project_id: str | None = None
    path: str | None = None
    model: str | None = None
    chunks: int | float | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SummaryDuplicate:
    """A duplicate summary resolved upstream: which one was kept, which dropped."""

    key: str
    kept: str
    dropped: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class DiffEntry:
    """Classification result for one key."""

    key: str
    status: str  # one of DIFF_STATUSES
    reason: str | None
    session_id: str | None = None
    project_id: str | None = None
    title: str | None = None
    source_fingerprint: str | None = None
    source_updated_at: str | None = None
    source_latest_ms: float | None = None
    summary_fingerprint: str | None = None
    summary_generated_at: str | None = None
    summary_recency_ms: float | None = None
    summary_mtime_ms: float | None = None
    summary_path: str | None = None

    @property
    def latest_ms(self) -> float | None:
        """Timestamp used for ordering: source activity, else summary recency."""
        if self.source_latest_ms is not None:
            return self.source_latest_ms
        return self.summary_recency_ms

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class DiffReport:
    """All DiffEntries of one run, grouped by status."""

    generated_at: str = ""
    new: list[DiffEntry] = field(default_factory=list)
    stale: list[DiffEntry] = field(default_factory=list)
    unchanged: list[DiffEntry] = field(default_factory=list)
    orphan: list[DiffEntry] = field(default_factory=list)
    unknown: list[DiffEntry] = field(default_factory=list)
    duplicates: list[SummaryDuplicate] = field(default_factory=list)
    source_count: int = 0
    summary_count: int = 0
    scope: dict | None = None

    def bucket(self, status: str) -> list[DiffEntry]:
        if status not in DIFF_STATUSES:
            raise KeyError(status)
        return getattr(self, status)

    def entries(self) -> list[DiffEntry]:
        """All entries, bucket by bucket in status order."""
        return [entry for status in DIFF_STATUSES for entry in self.bucket(status)]

    @property
    def stats(self) -> dict[str, int]:
        stats = {
            "source_sessions": self.source_count,
            "local_summaries": self.summary_count,
            "local_duplicates": len(self.duplicates),
        }
        for status in DIFF_STATUSES:
            stats[status] = len(self.bucket(status))
        return stats

    @property
    def needs_sync(self) -> bool:
        return bool(self.new or self.stale)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "generated_at": self.generated_at,
            "scope": self.scope,
            "stats": self.stats,
        }
        for status in DIFF_STATUSES:
            data[status] = [entry.to_dict() for entry in self.bucket(status)]
        data["duplicates"] = [dup.to_dict() for dup in self.duplicates]
        return data


@dataclass
class SyncPlanItem:
    """One session whose summary must be (re)generated."""

    key: str
    session_id: str
    project_id: str
    status: str  # "new" or "stale"
    reason: str | None
    title: str | None = None
    source_fingerprint: str | None = None
    source_updated_at: str | None = None
    summary_fingerprint: str | None = None
    summary_generated_at: str | None = None
    summary_path: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SyncPlanItem:
        return cls(**_known_fields(cls, data))


@dataclass
class SyncPlan:
    """Work list derived from a DiffReport."""

    version: int = 1
    generated_at: str = ""
    report_file: str | None = None
    scope: dict | None = None
    items: list[SyncPlanItem] = field(default_factory=list)

    @property
    def stats(self) -> dict[str, int]:
        return {
            "total": len(self.items),
            "new": sum(1 for item in self.items if item.status == STATUS_NEW),
            "stale": sum(1 for item in self.items if item.status == STATUS_STALE),
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "generated_at": self.generated_at,
            "report_file": self.report_file,
            "scope": self.scope,
            "stats": self.stats,
            "items": [item.to_dict() for item in self.items],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SyncPlan:
        return cls(
            version=data.get("version", 1),
            generated_at=data.get("generated_at", ""),
            report_file=data.get("report_file"),
            scope=data.get("scope"),
            items=[SyncPlanItem.from_dict(item) for item in data.get("items", [])],
        )


@dataclass(frozen=True)
class SyncResult:
    """Outcome of regenerating the summary for one plan item."""

    item: SyncPlanItem
    status: str  # one of RESULT_STATUSES
    error: str | None = None


@dataclass
class SyncLedgerEntry:
    """What the ledger knows about one session's summary."""

    key: str
    session_id: str | None
    project_id: str | None
    status: str  # one of LEDGER_STATUSES
    reason: str | None = None
    source_fingerprint: str | None = None
    source_updated_at: str | None = None
    summary_fingerprint: str | None = None
    summary_path: str | None = None
    summary_generated_at: str | None = None
    processed_at: str | None = None
    verified_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SyncLedgerEntry:
        return cls(**_known_fields(cls, data))


@dataclass
class SyncLedger:
    """Persistent record of which summaries were regenerated, keyed by session key.

    Serialized as state.json::

        {
            "version": 1,
            "processed_version": 1,
            "generated_at": "2025-01-01T00:00:00+00:00",
            "report_file": "out/diff-report.json",
            "summary_dir": "summaries",
            "entries": {"p1:s1": {"status": "processed", ...}},
            "stats": {"processed": 1, "pending": 0, "orphan": 0, "unknown": 0},
        }
    """

    version: int = 1
    processed_version: int = 1
    generated_at: str = ""
    report_file: str | None = None
    summary_dir: str | None = None
    entries: dict[str, SyncLedgerEntry] = field(default_factory=dict)

    @property
    def stats(self) -> dict[str, int]:
        counts = {status: 0 for status in LEDGER_STATUSES}
        for entry in self.entries.values():
            counts[entry.status] = counts.get(entry.status, 0) + 1
        return counts

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "processed_version": self.processed_version,
            "generated_at": self.generated_at,
            "report_file": self.report_file,
            "summary_dir": self.summary_dir,
            "entries": {key: entry.to_dict() for key, entry in self.entries.items()},
            "stats": self.stats,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SyncLedger:
        return cls(
            version=data.get("version", 1),
            processed_version=data.get("processed_version", 1),
            generated_at=data.get("generated_at", ""),
            report_file=data.get("report_file"),
            summary_dir=data.get("summary_dir"),
            entries={
                key: SyncLedgerEntry.from_dict(entry)
                for key, entry in (data.get("entries") or {}).items()
            },
        )


@dataclass(frozen=True)
class SummaryItem:
    """A summary payload with its estimated token cost."""

    summary: Any
    est_tokens: int


@dataclass(frozen=True)
class MergeContext:
    """Passed to the combine function for each group it merges."""

    pass_number: int
    group_index: int  # 1-based
    group_count: int
    mode: str


@dataclass(frozen=True)
class CombineResult:
    """Optional richer return value of a combine function."""

    summary: Any
    max_tokens_used: int | None = None


@dataclass
class MergePass:
    """Record of one reduction round."""

    pass_number: int
    mode: str  # MODE_BUDGETED or MODE_PAIR_FALLBACK
    group_sizes: list[int] = field(default_factory=list)
    group_est_tokens: list[int] = field(default_factory=list)
    max_tokens_used: list[int | None] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "pass": self.pass_number,
            "mode": self.mode,
            "group_sizes": list(self.group_sizes),
            "group_est_tokens": list(self.group_est_tokens),
            "max_tokens_used": list(self.max_tokens_used),
        }


@dataclass
class MergeReport:
    passes: list[MergePass] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"passes": [p.to_dict() for p in self.passes]}


@dataclass
class MergeResult:
    """Final merged summary plus the pass-by-pass report."""

    summary: Any
    report: MergeReport

    def to_dict(self) -> dict[str, Any]:
        return {"summary": self.summary, "report": self.report.to_dict()}


def _known_fields(cls, data: dict[str, Any]) -> dict[str, Any]:
    names = {f.name for f in fields(cls)}
    return {key: value for key, value in data.items() if key in names}
