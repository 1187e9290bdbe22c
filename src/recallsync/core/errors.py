"""recallsync error types and utilities."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path


def atomic_write(path: Path, content: str) -> None:
    """Write content to a file atomically using temp file + rename.

    Writes to a temporary file in the same directory, fsyncs it,
    then atomically replaces the target path. Missing parent
    directories are created.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        os.write(fd, content.encode())
        os.fsync(fd)
        os.close(fd)
        os.replace(tmp, str(path))
    except BaseException:
        try:
            os.close(fd)
        except OSError:
            pass
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise


class RecallError(Exception):
    """Base exception for recallsync."""

    pass


class ConfigError(RecallError):
    """Invalid configuration value."""

    pass


class FingerprintError(RecallError):
    """Source content could not be read for fingerprinting."""

    pass


class DiffError(RecallError):
    """Inputs to the diff reporter violate its contract."""

    pass


class LedgerError(RecallError):
    """Sync plan, results or ledger file is unreadable or inconsistent."""

    pass


class MergeError(RecallError):
    """Error during summary merge reduction."""

    pass


class CombineError(MergeError):
    """The injected combine function failed for one group of a merge pass."""

    def __init__(self, pass_number: int, group_index: int, group_count: int, cause: BaseException):
        self.pass_number = pass_number
        self.group_index = group_index
        self.group_count = group_count
        super().__init__(
            f"Combine failed in pass {pass_number}, group {group_index}/{group_count}: {cause}"
        )
