"""Explicit configuration values passed into the core entry points.

Nothing here reads the environment. Environment and ``.env`` handling lives in
``recallsync.config.Settings``; the CLI turns settings and flags into these
values.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from recallsync.core.errors import ConfigError

DEFAULT_MERGE_MAX_TOKENS = 6000
DEFAULT_MERGE_CONCURRENCY = 4
GLOBAL_PROJECT_ID = "global"


def _positive_int(value, label: str) -> int:
    """Validate a positive finite number and floor it to an int."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{label} must be a positive number, got {value!r}")
    if not math.isfinite(value) or value <= 0:
        raise ConfigError(f"{label} must be a positive number, got {value!r}")
    return max(1, math.floor(value))


@dataclass(frozen=True)
class MergeConfig:
    """Configuration for a merge reduction.

    - max_tokens: budget for the estimated token total of one merge group
    - concurrency: worker threads used by the synchronous reducer
    """

    max_tokens: int = DEFAULT_MERGE_MAX_TOKENS
    concurrency: int = DEFAULT_MERGE_CONCURRENCY

    def __post_init__(self):
        object.__setattr__(self, "max_tokens", _positive_int(self.max_tokens, "max_tokens"))
        object.__setattr__(self, "concurrency", _positive_int(self.concurrency, "concurrency"))


@dataclass(frozen=True)
class DiffScope:
    """Project ids a diff is restricted to."""

    project_ids: tuple[str, ...] = field(default_factory=tuple)
    include_global: bool = False
    repo_path: str | None = None

    @classmethod
    def build(
        cls,
        project_id: str | None,
        include_global: bool = False,
        repo_path: str | None = None,
    ) -> DiffScope:
        """Build a scope from an explicit project id and the include-global flag.

        Raises ConfigError when the result would be empty.
        """
        ids: list[str] = [project_id] if project_id else []
        if include_global and GLOBAL_PROJECT_ID not in ids:
            ids.append(GLOBAL_PROJECT_ID)
        if not ids:
            where = f" for repo: {repo_path}" if repo_path else ""
            raise ConfigError(
                f"No project found{where}. Use --project or --include-global."
            )
        return cls(project_ids=tuple(ids), include_global=include_global, repo_path=repo_path)

    def allows(self, project_id: str | None) -> bool:
        return project_id is not None and project_id in self.project_ids

    def to_dict(self) -> dict:
        return {
            "project_ids": list(self.project_ids),
            "include_global": self.include_global,
            "repo_path": self.repo_path,
        }
