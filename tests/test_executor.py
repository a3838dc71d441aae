import threading
import time

import pytest

from cmoon.executor import Executor, Waker, current_waker, yield_pending


async def delay(seconds):
    when = time.monotonic() + seconds
    while time.monotonic() < when:
        waker = current_waker()
        timer = threading.Timer(max(0.0, when - time.monotonic()), waker.wake)
        timer.daemon = True
        timer.start()
        await yield_pending()


def _alive_workers():
    return [t for t in threading.enumerate() if t.name.startswith("executor-")]


@pytest.fixture
def executor():
    with Executor(4) as ex:
        yield ex


def test_block_on_returns_value(executor):
    async def answer():
        return 42

    assert executor.block_on(answer()) == 42


def test_block_on_propagates_exception(executor):
    async def failing():
        raise ValueError("boom")

    with pytest.raises(ValueError, match="boom"):
        executor.block_on(failing())


def test_block_on_runs_on_calling_thread(executor):
    async def which_thread():
        data = [1, 2, 3, 4, 5]
        return threading.current_thread(), sum(data)

    thread, total = executor.block_on(which_thread())
    assert thread is threading.current_thread()
    assert total == 15


def test_self_wake_before_pending_completes(executor):
    async def self_wake():
        current_waker().wake()
        await yield_pending()
        return "done"

    assert executor.block_on(self_wake()) == "done"


def test_concurrent_tasks(executor):
    async def job(i):
        await delay(0.2)
        return i

    start = time.monotonic()
    tasks = [Executor.spawn(job(i)) for i in range(10)]

    async def gather():
        return [await task for task in tasks]

    results = executor.block_on(gather())
    assert results == list(range(10))
    assert time.monotonic() - start < 2.0


def test_spawned_task_runs_on_worker_thread(executor):
    async def name():
        return threading.current_thread().name

    assert executor.block_on(Executor.spawn(name())).startswith("executor-")


def test_task_done_after_completion(executor):
    async def value():
        return "x"

    task = Executor.spawn(value())
    assert executor.block_on(task) == "x"
    assert task.done() is True


def test_task_exception_is_raised_on_await(executor):
    async def failing():
        raise KeyError("missing")

    task = Executor.spawn(failing())
    with pytest.raises(KeyError):
        executor.block_on(task)
    assert task.done() is True


def test_task_awaiting_task(executor):
    async def inner():
        await delay(0.05)
        return 7

    async def outer():
        return await Executor.spawn(inner()) * 2

    assert executor.block_on(Executor.spawn(outer())) == 14


def test_many_awaiters_of_one_task(executor):
    async def slow():
        await delay(0.1)
        return "shared"

    shared = Executor.spawn(slow())

    async def waiter():
        return await shared

    waiters = [Executor.spawn(waiter()) for _ in range(5)]

    async def gather():
        return [await w for w in waiters]

    assert executor.block_on(gather()) == ["shared"] * 5


def test_spawn_rejects_non_awaitable():
    with pytest.raises(TypeError):
        Executor.spawn(42)


def test_current_waker_outside_task_raises():
    with pytest.raises(RuntimeError):
        current_waker()


def test_unsupported_yield_raises(executor):
    class Foreign:
        def __await__(self):
            yield "foreign"

    async def uses_foreign():
        await Foreign()

    with pytest.raises(RuntimeError):
        executor.block_on(uses_foreign())


def test_negative_thread_count_raises():
    with pytest.raises(ValueError):
        Executor(-1)


def test_waker_calls_callback():
    calls = []
    waker = Waker(lambda: calls.append("woken"))
    waker.wake()
    waker.wake()
    assert calls == ["woken", "woken"]


def test_shutdown_stops_workers():
    before = len(_alive_workers())
    ex = Executor(3)
    ex.start()
    started = (ex.start(), len(_alive_workers()))
    assert started == (None, before + 3)
    stopped = (ex.shutdown(), len(_alive_workers()))
    assert stopped == (None, before)