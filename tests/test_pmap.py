from __future__ import annotations

import threading
import time

import pytest

from statement_budget.errors import PipelineCancelled
from statement_budget.pmap import p_map


def test_preserves_input_order() -> None:
    def slow_square(x: int) -> int:
        time.sleep(0.01 * (5 - x))
        return x * x

    assert p_map(range(5), slow_square, concurrency=3) == [0, 1, 4, 9, 16]


def test_respects_concurrency_cap() -> None:
    lock = threading.Lock()
    state = {"inflight": 0, "max": 0}

    def work(x: int) -> int:
        with lock:
            state["inflight"] += 1
            state["max"] = max(state["max"], state["inflight"])
        time.sleep(0.02)
        with lock:
            state["inflight"] -= 1
        return x

    p_map(range(12), work, concurrency=3)
    assert 1 <= state["max"] <= 3


def test_mapper_error_propagates() -> None:
    def boom(x: int) -> int:
        if x == 2:
            raise RuntimeError("bad item")
        return x

    with pytest.raises(RuntimeError, match="bad item"):
        p_map(range(5), boom, concurrency=2)


def test_cancel_before_start_raises() -> None:
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(PipelineCancelled):
        p_map([1, 2, 3], lambda x: x, concurrency=2, cancel=cancel)
    with pytest.raises(PipelineCancelled):
        p_map([], lambda x: x, concurrency=2, cancel=cancel)


def test_cancel_midway_abandons_remaining_work() -> None:
    cancel = threading.Event()
    seen: list[int] = []
    lock = threading.Lock()

    def work(x: int) -> int:
        with lock:
            seen.append(x)
        if x == 1:
            cancel.set()
        return x

    with pytest.raises(PipelineCancelled):
        p_map(range(50), work, concurrency=1, cancel=cancel)
    assert len(seen) < 50


def test_empty_input_and_invalid_concurrency() -> None:
    assert p_map([], lambda x: x, concurrency=1) == []
    with pytest.raises(ValueError):
        p_map([1], lambda x: x, concurrency=0)
