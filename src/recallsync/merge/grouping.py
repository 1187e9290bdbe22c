"""Budgeted grouping — pack cost-weighted items into contiguous groups under a cap."""

from __future__ import annotations

import json
import math
from collections.abc import Sequence
from typing import Any

from recallsync.core.models import MODE_BUDGETED, MODE_PAIR_FALLBACK, SummaryItem


def estimate_tokens(text: str) -> int:
    """Rough token count: four characters per token, rounded up."""
    return math.ceil(len(text) / 4)


def estimate_summary_tokens(summary: Any) -> int:
    """Token estimate of a summary payload serialized as JSON."""
    if isinstance(summary, str):
        return estimate_tokens(summary)
    return estimate_tokens(json.dumps(summary, sort_keys=True, default=str))


def build_summary_item(summary: Any) -> SummaryItem:
    return SummaryItem(summary=summary, est_tokens=estimate_summary_tokens(summary))


def group_by_budget(costs: Sequence[int], max_cost: int) -> list[list[int]]:
    """Greedy sequential packing of item indices.

    An item joins the running group while the group total stays at or under
    max_cost; otherwise the running group is closed and the item starts a
    new one. An item costlier than max_cost ends up alone in its group.
    """
    groups: list[list[int]] = []
    current: list[int] = []
    current_cost = 0
    for index, cost in enumerate(costs):
        if current and current_cost + cost > max_cost:
            groups.append(current)
            current = []
            current_cost = 0
        current.append(index)
        current_cost += cost
    if current:
        groups.append(current)
    return groups


def pair_groups(count: int) -> list[list[int]]:
    """Consecutive pairs of indices; an odd trailing index stands alone."""
    return [list(range(start, min(start + 2, count))) for start in range(0, count, 2)]


def plan_groups(costs: Sequence[int], max_cost: int) -> tuple[str, list[list[int]]]:
    """Pick the grouping for one merge pass.

    Falls back to pairing when greedy packing leaves every item alone,
    which guarantees the item count at least halves each pass.
    """
    grouped = group_by_budget(costs, max_cost)
    if len(costs) > 1 and all(len(group) == 1 for group in grouped):
        return MODE_PAIR_FALLBACK, pair_groups(len(costs))
    return MODE_BUDGETED, grouped


def group_cost(costs: Sequence[int], group: Sequence[int]) -> int:
    return sum(costs[i] for i in group)
