"""Ordered, bounded-concurrency map over a thread pool.

Used for the two fan-outs of a request: statement files during extraction
and transactions during AI categorization. Both are I/O bound (network calls
to the assistant), so threads are sufficient.

Behavior
--------
- At most ``concurrency`` mapper calls run at once; new work is submitted
  only as earlier calls complete.
- The result list preserves input order.
- A mapper error propagates immediately and cancels not-yet-started work.
- ``cancel`` (a :class:`threading.Event`) is checked before every submission
  and after every completion. Once set, queued work is dropped, running calls
  are left to finish in the background, and :class:`PipelineCancelled` is
  raised. No partial results are returned.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import TypeVar

from .errors import PipelineCancelled

InT = TypeVar("InT")
OutT = TypeVar("OutT")


def _check_cancelled(cancel: threading.Event | None) -> None:
    if cancel is not None and cancel.is_set():
        raise PipelineCancelled("request cancelled before all work completed")


def p_map(
    iterable: Iterable[InT],
    mapper: Callable[[InT], OutT],
    *,
    concurrency: int,
    cancel: threading.Event | None = None,
) -> list[OutT]:
    """Map ``iterable`` through ``mapper`` with at most ``concurrency`` calls in flight."""

    if not isinstance(concurrency, int) or isinstance(concurrency, bool) or concurrency < 1:
        raise ValueError("concurrency must be a positive integer")

    items = list(iterable)
    if not items:
        _check_cancelled(cancel)
        return []

    results: list[OutT | None] = [None] * len(items)
    pending = iter(enumerate(items))
    in_flight: dict[Future[OutT], int] = {}

    pool = ThreadPoolExecutor(max_workers=min(concurrency, len(items)))
    try:

        def _top_up() -> None:
            while len(in_flight) < concurrency:
                _check_cancelled(cancel)
                nxt = next(pending, None)
                if nxt is None:
                    return
                idx, item = nxt
                in_flight[pool.submit(mapper, item)] = idx

        _top_up()
        while in_flight:
            done, _ = wait(in_flight, return_when=FIRST_COMPLETED)
            for fut in done:
                idx = in_flight.pop(fut)
                # Re-raises the mapper's exception as-is.
                results[idx] = fut.result()
            _check_cancelled(cancel)
            _top_up()
    except BaseException:
        pool.shutdown(wait=False, cancel_futures=True)
        raise
    else:
        pool.shutdown(wait=True)

    return results  # type: ignore[return-value]


__all__ = ["p_map"]
