"""Tests for budgeted grouping and token estimation."""

from __future__ import annotations

import pytest

from recallsync.merge.grouping import (
    build_summary_item,
    estimate_summary_tokens,
    estimate_tokens,
    group_by_budget,
    group_cost,
    pair_groups,
    plan_groups,
)


class TestEstimateTokens:
    @pytest.mark.parametrize("text,expected", [("", 0), ("a", 1), ("abcd", 1), ("abcde", 2)])
    def test_four_chars_per_token(self, text, expected):
        assert estimate_tokens(text) == expected

    def test_string_summary_uses_text(self):
        assert estimate_summary_tokens("x" * 40) == 10

    def test_dict_summary_uses_sorted_json(self):
        # {"a": 1} is 8 characters
        assert estimate_summary_tokens({"a": 1}) == 2
        assert estimate_summary_tokens({"b": [1], "a": 2}) == estimate_summary_tokens({"a": 2, "b": [1]})

    def test_build_summary_item(self):
        item = build_summary_item("x" * 12)
        assert item.summary == "x" * 12
        assert item.est_tokens == 3


class TestGroupByBudget:
    def test_packs_sequentially(self):
        assert group_by_budget([3, 2, 2], 6) == [[0, 1], [2]]

    def test_total_equal_to_cap_fits(self):
        assert group_by_budget([3, 3], 6) == [[0, 1]]

    def test_oversized_item_alone(self):
        assert group_by_budget([1, 50, 1], 10) == [[0], [1], [2]]

    def test_oversized_first_item_then_small(self):
        assert group_by_budget([50, 1, 1], 10) == [[0], [1, 2]]

    def test_contiguous_and_order_preserving(self):
        groups = group_by_budget([4, 1, 4, 1, 4, 1], 5)
        assert [i for group in groups for i in group] == list(range(6))

    def test_empty(self):
        assert group_by_budget([], 10) == []

    def test_group_cost(self):
        assert group_cost([3, 2, 2], [0, 1]) == 5


class TestPlanGroups:
    def test_budgeted_mode(self):
        mode, groups = plan_groups([3, 2, 2], 6)
        assert mode == "budgeted"
        assert groups == [[0, 1], [2]]

    def test_pair_fallback_when_all_singletons(self):
        mode, groups = plan_groups([10, 10, 10, 10], 5)
        assert mode == "pair-fallback"
        assert groups == [[0, 1], [2, 3]]

    def test_pair_fallback_odd_count(self):
        mode, groups = plan_groups([10, 10, 10], 5)
        assert mode == "pair-fallback"
        assert groups == [[0, 1], [2]]

    def test_single_item_is_budgeted(self):
        assert plan_groups([100], 5) == ("budgeted", [[0]])

    def test_pair_groups(self):
        assert pair_groups(5) == [[0, 1], [2, 3], [4]]
        assert pair_groups(0) == []
