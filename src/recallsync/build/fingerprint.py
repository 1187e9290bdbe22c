"""Session fingerprinting — content-addressed digests over a session and its children."""

from __future__ import annotations

import hashlib
from collections.abc import Sequence
from pathlib import Path

from recallsync.core.errors import FingerprintError
from recallsync.core.models import ChildStat

# Separators keep adjacent fields from running together ("ab"+"c" vs "a"+"bc").
_FIELD_SEP = b"\x1f"
_RECORD_SEP = b"\x1e"


def _encode_field(value) -> bytes:
    if value is None:
        return b""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).encode()


def encode_child_stat(stat: ChildStat) -> bytes:
    """Canonical byte form of one child tuple."""
    return _FIELD_SEP.join(_encode_field(v) for v in stat) + _RECORD_SEP


def fingerprint_session(raw: bytes, child_stats: Sequence[ChildStat]) -> str:
    """SHA256 hex digest over the raw session bytes followed by each child tuple.

    child_stats must already be sorted by name; the order is part of the
    digest. A None value for a timestamp is hashed as an empty field.
    """
    h = hashlib.sha256()
    h.update(raw)
    h.update(_RECORD_SEP)
    for stat in child_stats:
        h.update(encode_child_stat(ChildStat(*stat)))
    return h.hexdigest()


def fingerprint_file(path: Path, child_stats: Sequence[ChildStat]) -> str:
    """Read a session file and fingerprint it together with its children."""
    try:
        raw = Path(path).read_bytes()
    except OSError as exc:
        raise FingerprintError(f"Cannot read session file {path}: {exc}") from exc
    return fingerprint_session(raw, child_stats)


def hash_content(content: str) -> str:
    """SHA256 of a summary file's text."""
    return hashlib.sha256(content.encode()).hexdigest()
