"""Decorators that turn async functions into blocking ones run by the runtime."""

from __future__ import annotations

import functools
import inspect
from collections.abc import Callable
from typing import Any

from .runtime import block_on, init_with_threads


def _check_threads(worker_threads: Any) -> None:
    if worker_threads is None:
        return
    if isinstance(worker_threads, bool) or not isinstance(worker_threads, int):
        raise TypeError("expected valid integer, e.g. 2")
    if worker_threads < 0:
        raise ValueError("worker_threads must not be negative")


def _wrap(func: Callable[..., Any], worker_threads: int | None, as_test: bool) -> Callable[..., Any]:
    if not inspect.iscoroutinefunction(func):
        raise TypeError("expected function to be async")

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        coro = func(*args, **kwargs)
        if worker_threads is None:
            return block_on(coro)
        executor = init_with_threads(worker_threads)
        return executor.block_on(coro)

    if as_test:
        wrapper.__test__ = True  # type: ignore[attr-defined]
    return wrapper


def main(func: Callable[..., Any] | None = None, *, worker_threads: int | None = None) -> Any:
    """Make an async function run to completion on the runtime when called."""
    _check_threads(worker_threads)
    if func is None:
        return lambda f: _wrap(f, worker_threads, as_test=False)
    return _wrap(func, worker_threads, as_test=False)


def test(func: Callable[..., Any] | None = None, *, worker_threads: int | None = None) -> Any:
    """Like `main`, and also mark the function as a test to collect."""
    _check_threads(worker_threads)
    if func is None:
        return lambda f: _wrap(f, worker_threads, as_test=True)
    return _wrap(func, worker_threads, as_test=True)