"""Multi-threaded executor that runs coroutines on a pool of worker threads."""

from __future__ import annotations

import inspect
import logging
import os
import queue
import threading
from collections.abc import Awaitable, Callable, Coroutine, Generator
from typing import Any, Generic, TypeVar

from .parker import Parker

T = TypeVar("T")

_log = logging.getLogger(__name__)

_GLOBAL_QUEUE: queue.SimpleQueue[Task[Any]] = queue.SimpleQueue()
_IDLE_WAIT = 0.01
_local = threading.local()


class Waker:
    """Handle that a pending awaitable calls to have its task polled again."""

    __slots__ = ("_callback",)

    def __init__(self, callback: Callable[[], None]) -> None:
        self._callback = callback

    def wake(self) -> None:
        self._callback()


def current_waker() -> Waker:
    """Return the waker of the task being polled on this thread."""
    waker = getattr(_local, "waker", None)
    if waker is None:
        raise RuntimeError("no task is being polled on this thread")
    return waker


class _Pending:
    def __await__(self) -> Generator[None, None, None]:
        yield


def yield_pending() -> _Pending:
    """Awaitable that suspends the current task once.

    Store `current_waker()` somewhere that will wake it before awaiting this.
    """
    return _Pending()


def _poll(coro: Coroutine[Any, Any, T], waker: Waker) -> tuple[bool, T | None]:
    previous = getattr(_local, "waker", None)
    _local.waker = waker
    try:
        yielded = coro.send(None)
    except StopIteration as stop:
        return True, stop.value
    finally:
        _local.waker = previous
    if yielded is not None:
        raise RuntimeError(f"awaited object yielded {yielded!r}, which this runtime cannot drive")
    return False, None


async def _await(awaitable: Awaitable[T]) -> T:
    return await awaitable


def _as_coroutine(obj: Any) -> Coroutine[Any, Any, Any]:
    if inspect.iscoroutine(obj):
        return obj
    if inspect.isawaitable(obj):
        return _await(obj)
    raise TypeError(f"expected a coroutine or awaitable, got {type(obj).__name__}")


class Task(Generic[T]):
    """A spawned coroutine; await it to get its result."""

    def __init__(self, coro: Coroutine[Any, Any, T]) -> None:
        self._coro = coro
        self._lock = threading.Lock()
        self._waker = Waker(self._schedule)
        self._scheduled = False
        self._running = False
        self._notified = False
        self._done = False
        self._result: T | None = None
        self._exception: BaseException | None = None
        self._awaiters: list[Waker] = []

    def done(self) -> bool:
        """Whether the coroutine has finished."""
        with self._lock:
            return self._done

    def _schedule(self) -> None:
        with self._lock:
            if self._done:
                return
            if self._running:
                self._notified = True
                return
            if self._scheduled:
                return
            self._scheduled = True
        _GLOBAL_QUEUE.put(self)

    def _run(self) -> None:
        with self._lock:
            self._scheduled = False
            if self._done:
                return
            self._running = True

        result: T | None = None
        error: BaseException | None = None
        try:
            finished, result = _poll(self._coro, self._waker)
        except BaseException as exc:
            self._coro.close()
            finished, error = True, exc

        with self._lock:
            self._running = False
            if finished:
                self._done = True
                self._result = result
                self._exception = error
                awaiters, self._awaiters = self._awaiters, []
                reschedule = False
            else:
                awaiters = []
                reschedule, self._notified = self._notified, False

        for waker in awaiters:
            waker.wake()
        if reschedule:
            self._schedule()

    def __await__(self) -> Generator[None, None, T]:
        while True:
            with self._lock:
                if self._done:
                    break
                waker = current_waker()
                if all(existing is not waker for existing in self._awaiters):
                    self._awaiters.append(waker)
            yield
        if self._exception is not None:
            raise self._exception
        return self._result  # type: ignore[return-value]


def _worker_loop(index: int, running: threading.Event) -> None:
    _log.debug("worker thread %d started", index)
    while running.is_set():
        try:
            task = _GLOBAL_QUEUE.get(timeout=_IDLE_WAIT)
        except queue.Empty:
            continue
        task._run()
    _log.debug("worker thread %d stopped", index)


class Executor:
    """Pool of worker threads that run spawned tasks from a shared queue."""

    def __init__(self, num_threads: int | None = None) -> None:
        if num_threads is None:
            num_threads = os.cpu_count() or 1
        if num_threads < 0:
            raise ValueError("num_threads must not be negative")
        self.num_threads = num_threads
        self._threads: list[threading.Thread] = []
        self._running = threading.Event()
        self._running.set()

    def start(self) -> None:
        """Start the worker threads, unless they are already started."""
        if self._threads:
            return
        for index in range(self.num_threads):
            thread = threading.Thread(
                target=_worker_loop,
                args=(index, self._running),
                name=f"executor-{index}",
                daemon=True,
            )
            thread.start()
            self._threads.append(thread)

    @staticmethod
    def spawn(coro: Awaitable[T]) -> Task[T]:
        """Schedule a coroutine on the worker threads and return its task."""
        task: Task[T] = Task(_as_coroutine(coro))
        task._schedule()
        return task

    def block_on(self, coro: Awaitable[T]) -> T:
        """Run a coroutine on the calling thread until it completes."""
        self.start()
        coroutine = _as_coroutine(coro)
        parker = Parker()
        waker = Waker(parker.unpark)
        try:
            while True:
                finished, value = _poll(coroutine, waker)
                if finished:
                    return value  # type: ignore[return-value]
                parker.park()
        except BaseException:
            coroutine.close()
            raise

    def shutdown(self) -> None:
        """Stop the worker threads and wait for them to exit."""
        self._running.clear()
        threads, self._threads = self._threads, []
        for thread in threads:
            thread.join()

    def __enter__(self) -> Executor:
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()

    def __del__(self) -> None:
        running = getattr(self, "_running", None)
        if running is not None:
            running.clear()