"""Unit tests for sync planning."""

from __future__ import annotations

from recallsync.build.diff import build_diff_report
from recallsync.build.plan import build_sync_plan
from recallsync.core.config import DiffScope

T0 = 1_735_689_600_000


def _report(make_source, make_summary):
    sources = [
        make_source("p1:new-old", mtime_ms=T0),
        make_source("p1:new-recent", mtime_ms=T0 + 10),
        make_source("p1:stale", mtime_ms=T0 + 100),
        make_source("p1:same", mtime_ms=T0),
    ]
    summaries = [
        make_summary("p1:stale", mtime_ms=T0),
        make_summary("p1:same", mtime_ms=T0),
        make_summary("p1:gone", mtime_ms=T0),
    ]
    return build_diff_report(sources, summaries, scope=DiffScope.build("p1"))


class TestBuildSyncPlan:
    def test_new_then_stale(self, make_source, make_summary):
        plan = build_sync_plan(_report(make_source, make_summary))
        assert [item.key for item in plan.items] == ["p1:new-recent", "p1:new-old", "p1:stale"]
        assert [item.status for item in plan.items] == ["new", "new", "stale"]

    def test_excludes_unchanged_orphan_unknown(self, make_source, make_summary):
        keys = {item.key for item in build_sync_plan(_report(make_source, make_summary)).items}
        assert "p1:same" not in keys
        assert "p1:gone" not in keys

    def test_stats(self, make_source, make_summary):
        plan = build_sync_plan(_report(make_source, make_summary))
        assert plan.stats == {"total": 3, "new": 2, "stale": 1}

    def test_item_fields(self, make_source, make_summary):
        plan = build_sync_plan(_report(make_source, make_summary))
        stale = plan.items[-1]
        assert stale.session_id == "stale"
        assert stale.project_id == "p1"
        assert stale.reason == "source-newer"
        assert stale.source_fingerprint == "fp-p1:stale"
        assert stale.summary_fingerprint == "sum-p1:stale"
        assert stale.summary_path == "/summaries/summary-p1-stale.md"

    def test_skips_entries_without_ids(self, make_source):
        report = build_diff_report([make_source("p1:s1", mtime_ms=T0, session_id=None)], [])
        assert build_sync_plan(report).items == []

    def test_report_file_and_scope(self, make_source, make_summary):
        plan = build_sync_plan(_report(make_source, make_summary), report_file="out/diff-report.json")
        data = plan.to_dict()
        assert data["version"] == 1
        assert data["report_file"] == "out/diff-report.json"
        assert data["scope"]["project_ids"] == ["p1"]
        assert data["stats"]["total"] == 3
        assert len(data["items"]) == 3

    def test_empty_when_current(self, make_source, make_summary):
        report = build_diff_report([make_source(mtime_ms=T0)], [make_summary(mtime_ms=T0)])
        plan = build_sync_plan(report)
        assert plan.items == []
        assert plan.stats == {"total": 0, "new": 0, "stale": 0}
