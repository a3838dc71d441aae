"""Entry points for starting the runtime and running coroutines."""

from __future__ import annotations

from collections.abc import Awaitable
from typing import TypeVar

from . import reactor as _reactor
from .executor import Executor, Task

T = TypeVar("T")


def block_on(coro: Awaitable[T]) -> T:
    """Run `coro` on the calling thread until it completes."""
    executor = init()
    return executor.block_on(coro)


def init() -> Executor:
    """Start the reactor and an executor with one worker per CPU."""
    _reactor.start()
    executor = Executor()
    executor.start()
    return executor


def init_with_threads(num_threads: int) -> Executor:
    """Start the reactor and an executor with `num_threads` workers."""
    _reactor.start()
    executor = Executor(num_threads)
    executor.start()
    return executor


def spawn(coro: Awaitable[T]) -> Task[T]:
    """Schedule `coro` on the worker threads and return its task."""
    return Executor.spawn(coro)