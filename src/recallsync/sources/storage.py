"""Session storage provider — read sessions, messages and parts from a storage tree.

Layout::

    <root>/project/<project_id>.json               {"id", "worktree"}
    <root>/session/<project_id>/<session_id>.json  {"id", "projectID", "title", "time": {...}}
    <root>/message/<session_id>/<message_id>.json
    <root>/part/<message_id>/<part_id>.json

Messages are a session's children and parts are its grandchildren. Every
listing is sorted by name so fingerprints are stable across runs.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from recallsync.build.fingerprint import fingerprint_file
from recallsync.core.models import ChildStat, SourceRecord

logger = logging.getLogger(__name__)


class SessionTime(BaseModel):
    model_config = ConfigDict(extra="ignore")

    created: float | None = None
    updated: float | None = None


class SessionFile(BaseModel):
    """The fields of a session file that the index uses."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str = Field(min_length=1)
    project_id: str | None = Field(default=None, alias="projectID")
    title: str | None = None
    time: SessionTime | None = None


@dataclass(frozen=True)
class ProjectRecord:
    id: str
    worktree: str | None = None


def _mtime_ms(path: Path) -> float:
    return path.stat().st_mtime_ns / 1_000_000


def _to_iso(value_ms: float | None) -> str | None:
    if value_ms is None:
        return None
    return datetime.fromtimestamp(value_ms / 1000, tz=timezone.utc).isoformat()


def _json_files(directory: Path) -> list[Path]:
    if not directory.is_dir():
        return []
    return sorted(p for p in directory.iterdir() if p.is_file() and p.suffix == ".json")


def collect_child_stats(root: Path, session_id: str) -> list[ChildStat]:
    """One ChildStat per message file of a session, sorted by file name."""
    stats = []
    for message_path in _json_files(root / "message" / session_id):
        parts = _json_files(root / "part" / message_path.stem)
        part_mtimes = [_mtime_ms(p) for p in parts]
        stats.append(
            ChildStat(
                name=message_path.name,
                size=message_path.stat().st_size,
                mtime_ms=_mtime_ms(message_path),
                grandchild_count=len(parts),
                grandchild_latest_mtime_ms=max(part_mtimes) if part_mtimes else None,
                grandchild_size_total=sum(p.stat().st_size for p in parts),
            )
        )
    return stats


def latest_child_mtime_ms(stats: list[ChildStat]) -> float | None:
    candidates = [
        value
        for stat in stats
        for value in (stat.mtime_ms, stat.grandchild_latest_mtime_ms)
        if value is not None
    ]
    return max(candidates) if candidates else None


def read_session_record(root: Path, session_path: Path) -> SourceRecord:
    """Build the SourceRecord for one session file.

    A file that does not parse or validate yields a keyless record so the
    diff can report it as unknown. Unreadable files raise FingerprintError.
    """
    session: SessionFile | None = None
    try:
        session = SessionFile.model_validate(json.loads(session_path.read_text()))
    except (ValueError, ValidationError) as exc:
        logger.warning("Malformed session file %s: %s", session_path, exc)
    except OSError:
        # Let fingerprint_file raise the FingerprintError for this path.
        pass

    session_id = session.id if session else session_path.stem
    child_stats = collect_child_stats(root, session_id)
    fingerprint = fingerprint_file(session_path, child_stats)

    if session is None:
        return SourceRecord(
            key="",
            fingerprint=fingerprint,
            mtime_ms=_mtime_ms(session_path),
            latest_child_mtime_ms=latest_child_mtime_ms(child_stats),
            session_id=None,
            project_id=session_path.parent.name,
        )

    project_id = session.project_id or session_path.parent.name
    return SourceRecord(
        key=f"{project_id}:{session.id}",
        fingerprint=fingerprint,
        updated_at=_to_iso(session.time.updated if session.time else None),
        mtime_ms=_mtime_ms(session_path),
        latest_child_mtime_ms=latest_child_mtime_ms(child_stats),
        session_id=session.id,
        project_id=project_id,
        title=session.title,
    )


def load_source_records(
    root: Path,
    project_id: str | None = None,
    session_id: str | None = None,
) -> list[SourceRecord]:
    """Read every session under root, optionally limited to one project or session."""
    session_root = Path(root) / "session"
    if not session_root.is_dir():
        logger.info("No session directory under %s", root)
        return []

    records = []
    for project_dir in sorted(p for p in session_root.iterdir() if p.is_dir()):
        if project_id is not None and project_dir.name != project_id:
            continue
        for session_path in _json_files(project_dir):
            if session_id is not None and session_path.stem != session_id:
                continue
            records.append(read_session_record(Path(root), session_path))
    logger.debug("Loaded %d sessions from %s", len(records), root)
    return records


def load_projects(root: Path) -> dict[str, ProjectRecord]:
    """Project id to project record, skipping files that do not parse."""
    projects: dict[str, ProjectRecord] = {}
    for path in _json_files(Path(root) / "project"):
        try:
            data = json.loads(path.read_text())
        except (OSError, ValueError) as exc:
            logger.warning("Malformed project file %s: %s", path, exc)
            continue
        if not isinstance(data, dict):
            logger.warning("Project file %s is not a JSON object", path)
            continue
        project_id = data.get("id")
        if not isinstance(project_id, str) or not project_id:
            project_id = path.stem
        worktree = data.get("worktree")
        projects[project_id] = ProjectRecord(
            id=project_id, worktree=worktree if isinstance(worktree, str) and worktree else None,
        )
    return projects


def resolve_project_id_for_repo(projects: dict[str, ProjectRecord], repo_path: str | Path) -> str | None:
    """The project whose worktree is repo_path, if any."""
    target = Path(repo_path).resolve()
    for project in projects.values():
        if project.worktree and Path(project.worktree).resolve() == target:
            return project.id
    return None
