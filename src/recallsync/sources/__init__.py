"""Providers that read sessions and summaries from disk."""

from recallsync.sources.storage import load_projects, load_source_records
from recallsync.sources.summaries import load_summary_records

__all__ = [
    "load_projects",
    "load_source_records",
    "load_summary_records",
]
