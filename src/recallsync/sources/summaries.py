"""Summary file provider — read summary provenance from markdown frontmatter."""

from __future__ import annotations

import logging
import math
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from recallsync.build.classify import parse_timestamp_ms
from recallsync.build.fingerprint import hash_content
from recallsync.core.models import SummaryRecord

logger = logging.getLogger(__name__)

DEFAULT_SUMMARY_PREFIX = "summary-"
FRONTMATTER_DELIMITER = "---"


class SummaryFrontmatter(BaseModel):
    """Provenance fields written into a summary file's frontmatter."""

    model_config = ConfigDict(extra="ignore")

    session_id: str
    project_id: str
    summary_generated_at: str | None = None
    summary_model: str | None = None
    summary_chunks: int | float | None = None

    @field_validator("session_id", "project_id", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("summary_model", mode="before")
    @classmethod
    def _optional_text(cls, value: Any) -> str | None:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        if isinstance(value, str) and value.strip():
            return value
        return None

    @field_validator("summary_generated_at", mode="before")
    @classmethod
    def _timestamp_text(cls, value: Any) -> str | None:
        # YAML turns unquoted timestamps into datetime objects.
        if isinstance(value, datetime):
            if value.tzinfo is None:
                value = value.replace(tzinfo=timezone.utc)
            return value.isoformat()
        if isinstance(value, date):
            return value.isoformat()
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        if isinstance(value, str) and value.strip():
            return value
        return None

    @field_validator("summary_chunks", mode="before")
    @classmethod
    def _chunks(cls, value: Any) -> int | float | None:
        if isinstance(value, bool):
            return None
        if isinstance(value, str):
            try:
                value = float(value.strip())
            except ValueError:
                return None
        if not isinstance(value, (int, float)) or not math.isfinite(value):
            return None
        if isinstance(value, float) and value.is_integer():
            return int(value)
        return value


def split_frontmatter(text: str) -> tuple[dict | None, str]:
    """Split a markdown document into (frontmatter dict, body).

    Returns (None, text) when the document has no frontmatter block.
    """
    stripped = text.lstrip()
    if not stripped.startswith(FRONTMATTER_DELIMITER + "\n"):
        return None, text
    start = text.index(FRONTMATTER_DELIMITER + "\n") + len(FRONTMATTER_DELIMITER) + 1
    end = text.find("\n" + FRONTMATTER_DELIMITER, start - 1)
    if end == -1:
        return None, text
    block = text[start:end]
    body = text[end + len(FRONTMATTER_DELIMITER) + 1:].lstrip("\n")
    try:
        data = yaml.safe_load(block) if block.strip() else {}
    except yaml.YAMLError as exc:
        logger.debug("Unparseable frontmatter: %s", exc)
        return None, text
    if not isinstance(data, dict):
        return None, text
    return data, body


def list_summary_files(summary_dir: Path, prefix: str = DEFAULT_SUMMARY_PREFIX) -> list[Path]:
    summary_dir = Path(summary_dir)
    if not summary_dir.is_dir():
        return []
    return sorted(
        p for p in summary_dir.iterdir()
        if p.is_file() and p.name.startswith(prefix) and p.suffix == ".md"
    )


def parse_summary_file(path: Path) -> SummaryRecord | None:
    """SummaryRecord for one summary file, or None if it carries no usable frontmatter."""
    content = Path(path).read_text()
    frontmatter, _ = split_frontmatter(content)
    if frontmatter is None:
        logger.debug("Skipping %s: no frontmatter", path)
        return None
    try:
        meta = SummaryFrontmatter.model_validate(frontmatter)
    except ValidationError as exc:
        logger.debug("Skipping %s: %s", path, exc)
        return None

    return SummaryRecord(
        key=f"{meta.project_id}:{meta.session_id}",
        fingerprint=hash_content(content),
        generated_at_ms=parse_timestamp_ms(meta.summary_generated_at),
        mtime_ms=Path(path).stat().st_mtime_ns / 1_000_000,
        generated_at=meta.summary_generated_at,
        session_id=meta.session_id,
        project_id=meta.project_id,
        path=str(path),
        model=meta.summary_model,
        chunks=meta.summary_chunks,
    )


def load_summary_records(summary_dir: Path, prefix: str = DEFAULT_SUMMARY_PREFIX) -> list[SummaryRecord]:
    records = [parse_summary_file(p) for p in list_summary_files(summary_dir, prefix)]
    return [r for r in records if r is not None]
