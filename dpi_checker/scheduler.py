"""
Bounded worker pool running `check_target` across many targets.

Workers are asyncio tasks sharing one claim cursor and one completed
counter. Both are only touched between awaits, so on a single event
loop no lock is needed. Each index is claimed by exactly one worker,
which is the only writer of that slot in the results list.
"""

import asyncio
import itertools
from dataclasses import dataclass
from functools import partial
from typing import AsyncIterator, Awaitable, Callable, Iterable
from .checker import Prober, check_target
from .metrics import CheckResult
from .settings import CheckConfig, DEFAULT_CHECK_CONFIG
from .targets import Target
from .utils import pending_result


ResultCallback = Callable[[int, CheckResult], None]
OverallProgressCallback = Callable[[int, int], None]


@dataclass(frozen=True)
class ResultEvent:
    index: int
    result: CheckResult


@dataclass(frozen=True)
class ProgressEvent:
    completed: int
    total: int


def pool_size(concurrency: int, target_count: int) -> int:
    """Never spawn more workers than there are targets."""
    return min(concurrency, target_count)


async def run_all_checks(
    targets: Iterable[Target],
    prober: Prober,
    concurrency: int | None = None,
    on_result: ResultCallback | None = None,
    on_progress: OverallProgressCallback | None = None,
    cancel: asyncio.Event | None = None,
    config: CheckConfig | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> list[CheckResult]:
    """
    Check every target with at most `concurrency` targets in flight.

    `on_result(index, snapshot)` receives every interim and terminal
    snapshot; `on_progress(completed, total)` fires once per finished
    target. Setting `cancel` stops workers from claiming new targets;
    claimed ones finish their current attempt and report what they have.

    Returns one result per input target, in input order. Targets never
    claimed (cancelled run) stay "pending". Exceptions raised by the
    callbacks are not swallowed.
    """
    cfg = config or DEFAULT_CHECK_CONFIG
    concurrency = cfg.concurrency if concurrency is None else concurrency
    if concurrency < 1:
        raise ValueError(f"concurrency must be a positive integer, got {concurrency}")

    targets = list(targets)
    total = len(targets)
    results = [pending_result(t) for t in targets]

    cursor = itertools.count()
    completed = 0

    def publish(index: int, snapshot: CheckResult) -> None:
        results[index] = snapshot
        if on_result:
            on_result(index, snapshot)

    async def worker() -> None:
        nonlocal completed
        while True:
            if cancel is not None and cancel.is_set():
                return
            index = next(cursor)
            if index >= total:
                return

            result = await check_target(
                targets[index], prober, cfg,
                on_progress=partial(publish, index),
                sleep=sleep, cancel=cancel,
            )
            publish(index, result)

            completed += 1
            if on_progress:
                on_progress(completed, total)

    tasks = [asyncio.create_task(worker()) for _ in range(pool_size(concurrency, total))]
    try:
        await asyncio.gather(*tasks)
    except BaseException:
        for t in tasks:
            t.cancel()
        raise

    return results


_DONE = object()


async def iter_checks(
    targets: Iterable[Target],
    prober: Prober,
    concurrency: int | None = None,
    cancel: asyncio.Event | None = None,
    config: CheckConfig | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> AsyncIterator[ResultEvent | ProgressEvent]:
    """
    Channel form of `run_all_checks`: yields ResultEvent / ProgressEvent
    in publication order while the pool runs.

    For a given index events arrive as zero or more "checking" snapshots
    followed by the final one. Leaving the loop early cancels the pool.
    """
    queue: asyncio.Queue = asyncio.Queue()

    async def run() -> None:
        try:
            await run_all_checks(
                targets, prober, concurrency,
                on_result=lambda i, r: queue.put_nowait(ResultEvent(i, r)),
                on_progress=lambda c, t: queue.put_nowait(ProgressEvent(c, t)),
                cancel=cancel, config=config, sleep=sleep,
            )
        finally:
            queue.put_nowait(_DONE)

    task = asyncio.create_task(run())
    try:
        while True:
            event = await queue.get()
            if event is _DONE:
                break
            yield event
        await task
    finally:
        if not task.done():
            task.cancel()
