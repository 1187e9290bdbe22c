"""Budgeted grouping and merge reduction of summaries."""

from recallsync.merge.grouping import build_summary_item, group_by_budget, pair_groups, plan_groups
from recallsync.merge.reducer import reduce_summaries, reduce_summaries_async

__all__ = [
    "build_summary_item",
    "group_by_budget",
    "pair_groups",
    "plan_groups",
    "reduce_summaries",
    "reduce_summaries_async",
]
