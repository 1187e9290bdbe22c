"""Deterministic combine functions for structured session summaries.

A model-backed combine is the normal choice; these work without one and keep
merge runs reproducible in tests and offline use.
"""

from __future__ import annotations

from typing import Any

SUMMARY_LIST_FIELDS = (
    "decisions",
    "discoveries",
    "patterns",
    "tasks",
    "files",
    "blockers",
    "open_questions",
    "next_steps",
)
CONFIDENCE_ORDER = ("low", "med", "high")


def _unique(values) -> list:
    seen = set()
    out = []
    for value in values:
        marker = repr(value)
        if marker in seen:
            continue
        seen.add(marker)
        out.append(value)
    return out


def _merge_keywords(blocks: list[dict]) -> dict[str, list]:
    groups = _unique(name for block in blocks for name in block)
    return {name: _unique(v for block in blocks for v in block.get(name, [])) for name in groups}


def union_combine(summaries: list[Any]) -> Any:
    """Union structured summaries field by field.

    - focus: distinct focus lines joined with "; "
    - list fields: order-preserving union
    - confidence: the lowest confidence among the inputs
    - keywords: per-group union, when any input has them

    Plain-text summaries are joined with blank lines instead.
    """
    if all(isinstance(s, str) for s in summaries):
        return "\n\n".join(s for s in summaries if s)

    dicts = [s for s in summaries if isinstance(s, dict)]
    if len(dicts) != len(summaries):
        raise TypeError("union_combine needs all-dict or all-str summaries")

    merged: dict[str, Any] = {
        "focus": "; ".join(_unique(d["focus"] for d in dicts if d.get("focus"))),
    }
    for name in SUMMARY_LIST_FIELDS:
        merged[name] = _unique(v for d in dicts for v in d.get(name, []))

    ranks = [CONFIDENCE_ORDER.index(d["confidence"]) for d in dicts if d.get("confidence") in CONFIDENCE_ORDER]
    merged["confidence"] = CONFIDENCE_ORDER[min(ranks)] if ranks else "low"

    keyword_blocks = [d["keywords"] for d in dicts if isinstance(d.get("keywords"), dict)]
    if keyword_blocks:
        merged["keywords"] = _merge_keywords(keyword_blocks)
    return merged
