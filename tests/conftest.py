"""Shared test fixtures for recallsync."""

from __future__ import annotations

import json
import os
from pathlib import Path

import pytest

from recallsync import SourceRecord, SummaryRecord
from recallsync.config import reset_settings

# 2025-01-01T00:00:00Z in epoch milliseconds
T0 = 1_735_689_600_000


def write_json_file(path: Path, data, mtime_ms: float | None = None) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data))
    if mtime_ms is not None:
        os.utime(path, ns=(int(mtime_ms * 1_000_000), int(mtime_ms * 1_000_000)))
    return path


def write_summary_file(
    summary_dir: Path,
    name: str,
    session_id: str,
    project_id: str,
    generated_at: str | None = None,
    mtime_ms: float | None = None,
    body: str = "# Summary\n",
) -> Path:
    lines = ["---", f"session_id: {session_id}", f"project_id: {project_id}"]
    if generated_at is not None:
        lines.append(f'summary_generated_at: "{generated_at}"')
    lines.append("summary_model: test-model")
    lines.append("summary_chunks: 1")
    lines.append("---")
    path = summary_dir / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(lines) + "\n" + body)
    if mtime_ms is not None:
        os.utime(path, ns=(int(mtime_ms * 1_000_000), int(mtime_ms * 1_000_000)))
    return path


@pytest.fixture(autouse=True)
def _clean_settings(monkeypatch, tmp_path):
    """Isolate every test from RECALLSYNC_* variables and cached settings."""
    for name in list(os.environ):
        if name.startswith("RECALLSYNC_"):
            monkeypatch.delenv(name)
    monkeypatch.setenv("RECALLSYNC_OUTPUT_DIR", str(tmp_path / "out"))
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def make_source():
    def _make(key: str = "p1:s1", **kwargs) -> SourceRecord:
        kwargs.setdefault("fingerprint", f"fp-{key}")
        project_id, _, session_id = key.partition(":")
        kwargs.setdefault("project_id", project_id or None)
        kwargs.setdefault("session_id", session_id or None)
        return SourceRecord(key=key, **kwargs)

    return _make


@pytest.fixture
def make_summary():
    def _make(key: str = "p1:s1", **kwargs) -> SummaryRecord:
        kwargs.setdefault("fingerprint", f"sum-{key}")
        kwargs.setdefault("path", f"/summaries/summary-{key.replace(':', '-')}.md")
        project_id, _, session_id = key.partition(":")
        kwargs.setdefault("project_id", project_id or None)
        kwargs.setdefault("session_id", session_id or None)
        return SummaryRecord(key=key, **kwargs)

    return _make


@pytest.fixture
def storage_tree(tmp_path):
    """Storage root with project p1 (two sessions) and the global project (one session).

    - p1:s1 has two messages, the first with two parts; all files at T0
    - p1:s2 has no messages; updated at T0 + 5000
    - global:g1 has one message at T0 + 9000
    """
    root = tmp_path / "storage"
    write_json_file(root / "project" / "p1.json", {"id": "p1", "worktree": str(tmp_path / "repo")})
    write_json_file(root / "project" / "global.json", {"id": "global", "worktree": "/"})

    write_json_file(
        root / "session" / "p1" / "s1.json",
        {"id": "s1", "projectID": "p1", "title": "First", "time": {"created": T0 - 1000, "updated": T0}},
        mtime_ms=T0,
    )
    write_json_file(root / "message" / "s1" / "m1.json", {"id": "m1"}, mtime_ms=T0)
    write_json_file(root / "message" / "s1" / "m2.json", {"id": "m2"}, mtime_ms=T0)
    write_json_file(root / "part" / "m1" / "a.json", {"text": "hello"}, mtime_ms=T0)
    write_json_file(root / "part" / "m1" / "b.json", {"text": "world"}, mtime_ms=T0)

    write_json_file(
        root / "session" / "p1" / "s2.json",
        {"id": "s2", "projectID": "p1", "title": "Second", "time": {"created": T0, "updated": T0 + 5000}},
        mtime_ms=T0,
    )

    write_json_file(
        root / "session" / "global" / "g1.json",
        {"id": "g1", "projectID": "global", "title": "Global", "time": {"updated": T0}},
        mtime_ms=T0,
    )
    write_json_file(root / "message" / "g1" / "m9.json", {"id": "m9"}, mtime_ms=T0 + 9000)

    (tmp_path / "repo").mkdir()
    return root


@pytest.fixture
def json_file():
    """The write_json_file helper, for tests that build storage trees."""
    return write_json_file


@pytest.fixture
def summary_file():
    """The write_summary_file helper, for tests that build summary directories."""
    return write_summary_file
