"""Tests for reading summary provenance from markdown frontmatter."""

from __future__ import annotations

import pytest

from recallsync.build.diff import build_diff_report
from recallsync.sources.summaries import (
    list_summary_files,
    load_summary_records,
    parse_summary_file,
    split_frontmatter,
)

T0 = 1_735_689_600_000


class TestSplitFrontmatter:
    def test_basic(self):
        data, body = split_frontmatter("---\nsession_id: s1\n---\n# Title\n")
        assert data == {"session_id": "s1"}
        assert body == "# Title\n"

    def test_no_frontmatter(self):
        assert split_frontmatter("# Title\n") == (None, "# Title\n")

    def test_unterminated(self):
        assert split_frontmatter("---\nsession_id: s1\n")[0] is None

    def test_non_mapping(self):
        assert split_frontmatter("---\n- a\n- b\n---\nbody")[0] is None

    def test_invalid_yaml(self):
        assert split_frontmatter("---\nkey: [unclosed\n---\nbody")[0] is None


class TestParseSummaryFile:
    def test_record_fields(self, tmp_path, summary_file):
        path = summary_file(
            tmp_path, "summary-s1.md", "s1", "p1", generated_at="2025-01-01T00:00:00Z", mtime_ms=T0 - 5000,
        )
        record = parse_summary_file(path)
        assert record.key == "p1:s1"
        assert record.session_id == "s1"
        assert record.project_id == "p1"
        assert record.generated_at == "2025-01-01T00:00:00Z"
        assert record.generated_at_ms == T0
        assert record.mtime_ms == T0 - 5000
        assert record.model == "test-model"
        assert record.chunks == 1
        assert record.path == str(path)
        assert len(record.fingerprint) == 64

    def test_unquoted_timestamp(self, tmp_path):
        path = tmp_path / "summary-s1.md"
        path.write_text("---\nsession_id: s1\nproject_id: p1\nsummary_generated_at: 2025-01-01T00:00:00Z\n---\nbody\n")
        assert parse_summary_file(path).generated_at_ms == T0

    def test_numeric_ids_become_strings(self, tmp_path):
        path = tmp_path / "summary-1.md"
        path.write_text("---\nsession_id: 1\nproject_id: 2\n---\n")
        assert parse_summary_file(path).key == "2:1"

    def test_missing_generated_at(self, tmp_path, summary_file):
        record = parse_summary_file(summary_file(tmp_path, "summary-s1.md", "s1", "p1"))
        assert record.generated_at is None
        assert record.generated_at_ms is None

    def test_missing_ids_skipped(self, tmp_path):
        path = tmp_path / "summary-x.md"
        path.write_text("---\nproject_id: p1\n---\nbody\n")
        assert parse_summary_file(path) is None

    def test_no_frontmatter_skipped(self, tmp_path):
        path = tmp_path / "summary-x.md"
        path.write_text("# just notes\n")
        assert parse_summary_file(path) is None

    def test_content_change_changes_fingerprint(self, tmp_path, summary_file):
        path = summary_file(tmp_path, "summary-s1.md", "s1", "p1")
        before = parse_summary_file(path).fingerprint
        path.write_text(path.read_text() + "more\n")
        assert parse_summary_file(path).fingerprint != before

    def test_numeric_generated_at_kept(self, tmp_path):
        path = tmp_path / "summary-s1.md"
        path.write_text("---\nsession_id: s1\nproject_id: p1\nsummary_generated_at: 1700000000000\n---\nbody\n")
        record = parse_summary_file(path)
        assert record is not None
        assert record.key == "p1:s1"
        assert record.generated_at == "1700000000000"

    @pytest.mark.parametrize("raw,expected", [
        ("2.5", 2.5),
        ("3", 3),
        ("'3'", 3),
        ("2.0", 2),
        ("[1, 2]", None),
        ("many", None),
        ("true", None),
    ])
    def test_chunks_coerced(self, tmp_path, raw, expected):
        path = tmp_path / "summary-s1.md"
        path.write_text(f"---\nsession_id: s1\nproject_id: p1\nsummary_chunks: {raw}\n---\nbody\n")
        record = parse_summary_file(path)
        assert record is not None
        assert record.chunks == expected

    def test_non_text_model_dropped(self, tmp_path):
        path = tmp_path / "summary-s1.md"
        path.write_text("---\nsession_id: s1\nproject_id: p1\nsummary_model: [a, b]\n---\nbody\n")
        assert parse_summary_file(path).model is None

    def test_numeric_timestamp_summary_reported_as_orphan(self, tmp_path):
        path = tmp_path / "summary-gone.md"
        path.write_text("---\nsession_id: gone\nproject_id: p1\nsummary_generated_at: 1700000000000\n---\nbody\n")
        records = load_summary_records(tmp_path)
        report = build_diff_report([], records)
        assert [e.key for e in report.orphan] == ["p1:gone"]


class TestLoadSummaryRecords:
    def test_prefix_and_suffix_filter(self, tmp_path, summary_file):
        summary_file(tmp_path, "summary-s1.md", "s1", "p1")
        summary_file(tmp_path, "notes-s2.md", "s2", "p1")
        summary_file(tmp_path, "summary-s3.txt", "s3", "p1")
        assert [p.name for p in list_summary_files(tmp_path)] == ["summary-s1.md"]

    def test_custom_prefix(self, tmp_path, summary_file):
        summary_file(tmp_path, "recap-s1.md", "s1", "p1")
        assert [r.key for r in load_summary_records(tmp_path, prefix="recap-")] == ["p1:s1"]

    def test_skips_unusable_files(self, tmp_path, summary_file):
        summary_file(tmp_path, "summary-s1.md", "s1", "p1")
        (tmp_path / "summary-bad.md").write_text("no frontmatter")
        assert [r.key for r in load_summary_records(tmp_path)] == ["p1:s1"]

    def test_missing_directory(self, tmp_path):
        assert load_summary_records(tmp_path / "nowhere") == []
