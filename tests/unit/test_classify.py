"""Tests for change classification."""

from __future__ import annotations

import pytest

from recallsync.build.classify import (
    classify_orphan,
    classify_source,
    parse_timestamp_ms,
    source_latest_ms,
    summary_recency_ms,
)

T0 = 1_735_689_600_000  # 2025-01-01T00:00:00Z


class TestParseTimestamp:
    def test_zulu(self):
        assert parse_timestamp_ms("2025-01-01T00:00:00Z") == T0

    def test_offset(self):
        assert parse_timestamp_ms("2025-01-01T01:00:00+01:00") == T0

    def test_naive_is_utc(self):
        assert parse_timestamp_ms("2025-01-01T00:00:00") == T0

    @pytest.mark.parametrize("value", [None, "", "not a date", "   "])
    def test_unparseable(self, value):
        assert parse_timestamp_ms(value) is None


class TestLatestActivity:
    def test_max_of_candidates(self, make_source):
        source = make_source(updated_at="2025-01-01T00:00:00Z", mtime_ms=T0 + 10, latest_child_mtime_ms=T0 + 20)
        assert source_latest_ms(source) == T0 + 20

    def test_ignores_absent_candidates(self, make_source):
        assert source_latest_ms(make_source(mtime_ms=T0)) == T0

    def test_unparseable_updated_at_ignored(self, make_source):
        assert source_latest_ms(make_source(updated_at="garbage", mtime_ms=5.0)) == 5.0

    def test_no_candidates_is_none(self, make_source):
        assert source_latest_ms(make_source()) is None

    def test_summary_recency_max(self, make_summary):
        assert summary_recency_ms(make_summary(generated_at_ms=T0, mtime_ms=T0 + 1)) == T0 + 1
        assert summary_recency_ms(make_summary(generated_at_ms=T0 + 2, mtime_ms=T0)) == T0 + 2

    def test_summary_recency_none(self, make_summary):
        assert summary_recency_ms(make_summary()) is None


class TestClassifySource:
    def test_new_when_no_summary(self, make_source):
        entry = classify_source(make_source(mtime_ms=T0), None)
        assert entry.status == "new"
        assert entry.reason == "missing-summary"
        assert entry.summary_fingerprint is None

    def test_stale_when_source_newer(self, make_source, make_summary):
        entry = classify_source(make_source(mtime_ms=T0 + 1), make_summary(mtime_ms=T0))
        assert entry.status == "stale"
        assert entry.reason == "source-newer"

    def test_tie_is_unchanged(self, make_source, make_summary):
        """Equal timestamps never count as stale."""
        entry = classify_source(make_source(mtime_ms=T0), make_summary(generated_at_ms=T0))
        assert entry.status == "unchanged"
        assert entry.reason == "summary-current"

    def test_unchanged_when_summary_newer(self, make_source, make_summary):
        entry = classify_source(make_source(mtime_ms=T0), make_summary(mtime_ms=T0 + 1))
        assert entry.status == "unchanged"

    def test_unknown_when_source_has_no_timestamp(self, make_source, make_summary):
        entry = classify_source(make_source(), make_summary(mtime_ms=T0))
        assert entry.status == "unknown"
        assert entry.reason == "missing-timestamp"

    def test_unknown_when_summary_has_no_timestamp(self, make_source, make_summary):
        entry = classify_source(make_source(mtime_ms=T0), make_summary())
        assert entry.status == "unknown"
        assert entry.reason == "missing-timestamp"

    def test_unknown_when_key_missing(self, make_source):
        entry = classify_source(make_source(key="", mtime_ms=T0), None)
        assert entry.status == "unknown"
        assert entry.reason == "missing-key"

    def test_fingerprints_do_not_affect_status(self, make_source, make_summary):
        """Matching or differing digests leave the timestamp decision alone."""
        same = classify_source(
            make_source(fingerprint="abc", mtime_ms=T0 + 5), make_summary(fingerprint="abc", mtime_ms=T0),
        )
        different = classify_source(
            make_source(fingerprint="abc", mtime_ms=T0), make_summary(fingerprint="xyz", mtime_ms=T0 + 5),
        )
        assert same.status == "stale"
        assert different.status == "unchanged"

    def test_entry_cross_references_both_sides(self, make_source, make_summary):
        source = make_source(updated_at="2025-01-01T00:00:00Z", title="Hello")
        summary = make_summary(generated_at="2025-01-02T00:00:00Z", generated_at_ms=T0 + 86_400_000, mtime_ms=T0)
        entry = classify_source(source, summary)
        assert entry.key == "p1:s1"
        assert entry.session_id == "s1"
        assert entry.project_id == "p1"
        assert entry.title == "Hello"
        assert entry.source_fingerprint == "fp-p1:s1"
        assert entry.source_updated_at == "2025-01-01T00:00:00Z"
        assert entry.source_latest_ms == T0
        assert entry.summary_fingerprint == "sum-p1:s1"
        assert entry.summary_generated_at == "2025-01-02T00:00:00Z"
        assert entry.summary_mtime_ms == T0
        assert entry.summary_path == "/summaries/summary-p1-s1.md"


class TestClassifyOrphan:
    def test_orphan(self, make_summary):
        entry = classify_orphan(make_summary(key="p1:gone", mtime_ms=T0))
        assert entry.status == "orphan"
        assert entry.reason == "missing-source"
        assert entry.source_fingerprint is None
        assert entry.latest_ms == T0

    def test_orphan_regardless_of_timestamps(self, make_summary):
        assert classify_orphan(make_summary(key="p1:gone")).status == "orphan"

    def test_keyless_summary_is_unknown(self, make_summary):
        entry = classify_orphan(make_summary(key=""))
        assert entry.status == "unknown"
        assert entry.reason == "missing-key"
