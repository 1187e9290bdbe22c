"""Merge reduction — collapse many summaries into one under a token budget.

Each pass groups the current items with the budgeted grouper, combines every
group of two or more items with the injected combine function, and records
the pass. Passes repeat until one item remains. Groups within a pass run
concurrently; a pass starts only after every group of the previous pass
finished. A failing combine aborts the whole reduction.

The combine function is called as ``combine(summaries, context)`` when its
second positional parameter is required, named ``context``, or absorbed by
``*args``; otherwise as ``combine(summaries)``. Optional second parameters
such as the ``start`` of ``sum(iterable, /, start=0)`` never receive the
context. It may return a summary, a ``CombineResult``, or an awaitable of
either.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable, Sequence
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import Any

from recallsync.core.config import MergeConfig
from recallsync.core.errors import CombineError, MergeError
from recallsync.core.logging import RecallLogger
from recallsync.core.models import (
    CombineResult,
    MergeContext,
    MergePass,
    MergeReport,
    MergeResult,
    SummaryItem,
)
from recallsync.merge.grouping import estimate_summary_tokens, group_cost, plan_groups

logger = logging.getLogger(__name__)

CombineFunction = Callable[..., Any]
TokenEstimator = Callable[[Any], int]

_POSITIONAL = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)


def _accepts_context(combine: CombineFunction) -> bool:
    """True if combine should be called with (summaries, context)."""
    try:
        params = list(inspect.signature(combine).parameters.values())
    except (TypeError, ValueError):
        return False
    if any(p.kind is inspect.Parameter.VAR_POSITIONAL for p in params):
        return True
    positional = [p for p in params if p.kind in _POSITIONAL]
    if len(positional) < 2:
        return False
    second = positional[1]
    return second.default is inspect.Parameter.empty or second.name == "context"


def _normalize(value: Any) -> CombineResult:
    if isinstance(value, CombineResult):
        return value
    return CombineResult(summary=value)


async def _await(awaitable):
    return await awaitable


def _plan_pass(
    current: list[SummaryItem], max_tokens: int,
) -> tuple[str, list[list[SummaryItem]], list[int]]:
    costs = [item.est_tokens for item in current]
    mode, index_groups = plan_groups(costs, max_tokens)
    groups = [[current[i] for i in group] for group in index_groups]
    return mode, groups, [group_cost(costs, group) for group in index_groups]


class _Reduction:
    """Shared bookkeeping for the sync and async reducers."""

    def __init__(
        self,
        items: Sequence[SummaryItem],
        config: MergeConfig,
        combine: CombineFunction,
        run_logger: RecallLogger | None,
        estimator: TokenEstimator,
    ):
        if not items:
            raise MergeError("No summary items provided for merge.")
        self.current = list(items)
        self.config = config
        self.combine = combine
        self.with_context = _accepts_context(combine)
        self.run_logger = run_logger
        self.estimator = estimator
        self.report = MergeReport()
        self.pass_number = 1

    def start(self) -> None:
        logger.debug("Merging %d summaries, max_tokens=%d", len(self.current), self.config.max_tokens)
        if self.run_logger is not None:
            self.run_logger.merge_start(len(self.current), self.config.max_tokens)

    def call(self, summaries: list[Any], context: MergeContext):
        if self.with_context:
            return self.combine(summaries, context)
        return self.combine(summaries)

    def contexts(self, mode: str, groups: list[list[SummaryItem]]) -> list[MergeContext]:
        return [
            MergeContext(
                pass_number=self.pass_number,
                group_index=index,
                group_count=len(groups),
                mode=mode,
            )
            for index in range(1, len(groups) + 1)
        ]

    def combine_started(self, context: MergeContext, size: int) -> float | None:
        if self.run_logger is None:
            return None
        return self.run_logger.combine_start(context.pass_number, context.group_index, size)

    def finish_group(self, context: MergeContext, value: Any, started: float | None) -> tuple[SummaryItem, int | None]:
        result = _normalize(value)
        item = SummaryItem(summary=result.summary, est_tokens=self.estimator(result.summary))
        if self.run_logger is not None and started is not None:
            self.run_logger.combine_finish(context.pass_number, context.group_index, started, item.est_tokens)
        return item, result.max_tokens_used

    def commit_pass(self, mode: str, groups: list[list[SummaryItem]], tokens: list[int],
                    merged: list[tuple[SummaryItem, int | None]]) -> None:
        sizes = [len(group) for group in groups]
        self.report.passes.append(
            MergePass(
                pass_number=self.pass_number,
                mode=mode,
                group_sizes=sizes,
                group_est_tokens=tokens,
                max_tokens_used=[used for _, used in merged],
            )
        )
        logger.debug("Pass %d (%s): sizes=%s tokens=%s", self.pass_number, mode, sizes, tokens)
        if self.run_logger is not None:
            self.run_logger.merge_pass(self.pass_number, mode, sizes, tokens)
        self.current = [item for item, _ in merged]
        self.pass_number += 1

    def result(self) -> MergeResult:
        if self.run_logger is not None:
            self.run_logger.merge_finish(len(self.report.passes))
        return MergeResult(summary=self.current[0].summary, report=self.report)


async def reduce_summaries_async(
    items: Sequence[SummaryItem],
    config: MergeConfig,
    combine: CombineFunction,
    run_logger: RecallLogger | None = None,
    estimator: TokenEstimator = estimate_summary_tokens,
) -> MergeResult:
    """Reduce summaries to one, running each pass's groups with asyncio.gather.

    Coroutine combine functions are awaited on the running loop; plain
    functions run in worker threads via asyncio.to_thread.

    Raises:
        MergeError: items is empty.
        CombineError: combine failed; chained from the original exception.
    """
    run = _Reduction(items, config, combine, run_logger, estimator)
    run.start()
    is_coroutine = inspect.iscoroutinefunction(combine)

    async def merge_group(group: list[SummaryItem], context: MergeContext):
        if len(group) == 1:
            return group[0], None
        started = run.combine_started(context, len(group))
        summaries = [item.summary for item in group]
        try:
            if is_coroutine:
                value = await run.call(summaries, context)
            else:
                value = await asyncio.to_thread(run.call, summaries, context)
                if inspect.isawaitable(value):
                    value = await value
        except Exception as exc:
            raise CombineError(context.pass_number, context.group_index, context.group_count, exc) from exc
        return run.finish_group(context, value, started)

    while len(run.current) > 1:
        mode, groups, tokens = _plan_pass(run.current, config.max_tokens)
        tasks = [
            asyncio.ensure_future(merge_group(group, context))
            for group, context in zip(groups, run.contexts(mode, groups))
        ]
        try:
            merged = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        run.commit_pass(mode, groups, tokens, list(merged))

    return run.result()


def reduce_summaries(
    items: Sequence[SummaryItem],
    config: MergeConfig,
    combine: CombineFunction,
    run_logger: RecallLogger | None = None,
    estimator: TokenEstimator = estimate_summary_tokens,
) -> MergeResult:
    """Reduce summaries to one, running each pass's groups on a thread pool.

    Uses up to config.concurrency worker threads. An awaitable returned by
    combine is run to completion inside its worker thread. On failure the
    call returns without waiting for sibling groups still running.

    Raises:
        MergeError: items is empty.
        CombineError: combine failed; chained from the original exception.
    """
    run = _Reduction(items, config, combine, run_logger, estimator)
    run.start()

    def merge_group(group: list[SummaryItem], context: MergeContext):
        started = run.combine_started(context, len(group))
        value = run.call([item.summary for item in group], context)
        if inspect.isawaitable(value):
            value = asyncio.run(_await(value))
        return run.finish_group(context, value, started)

    pool = ThreadPoolExecutor(max_workers=config.concurrency)
    try:
        while len(run.current) > 1:
            mode, groups, tokens = _plan_pass(run.current, config.max_tokens)
            contexts = run.contexts(mode, groups)
            merged: list[tuple[SummaryItem, int | None] | None] = [None] * len(groups)
            futures = {}
            for index, (group, context) in enumerate(zip(groups, contexts)):
                if len(group) == 1:
                    merged[index] = (group[0], None)
                else:
                    futures[pool.submit(merge_group, group, context)] = index

            done, _ = wait(futures, return_when=FIRST_EXCEPTION)
            failed = sorted(
                (futures[future] for future in done if future.exception() is not None)
            )
            if failed:
                index = failed[0]
                context = contexts[index]
                exc = next(f.exception() for f in done if futures[f] == index)
                raise CombineError(context.pass_number, context.group_index, context.group_count, exc) from exc

            for future, index in futures.items():
                merged[index] = future.result()
            run.commit_pass(mode, groups, tokens, merged)  # type: ignore[arg-type]
    except BaseException:
        # Queued groups are dropped; running ones are left to finish unobserved.
        pool.shutdown(wait=False, cancel_futures=True)
        raise
    pool.shutdown(wait=True)

    return run.result()
