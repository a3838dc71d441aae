# cmoon

A small async runtime built from plain threads and selectors. It has:

- an **executor** (`cmoon.executor`) that runs spawned coroutines on a pool
  of worker threads sharing one global queue;
- a **reactor** (`cmoon.reactor`) thread that waits for socket readiness and
  wakes the task that is waiting on that socket;
- **`block_on`** (`cmoon.runtime`), which drives a coroutine to completion on
  the calling thread and parks that thread while the coroutine waits;
- a non-blocking **HTTP GET** client (`cmoon.http`) on top of the reactor;
- decorators (`cmoon.macros`) that turn an `async def` into a plain function
  or test;
- a **delays server** (`cmoon.delays_server`) for trying it all out: an HTTP
  server that waits a given number of milliseconds before it answers.

There are no dependencies outside the standard library.

## Installing

```
pip install .
```

For the tests:

```
pip install ".[test]"
pytest
```

## Running a coroutine

```python
from cmoon.runtime import block_on

async def answer():
    return 42

print(block_on(answer()))  # 42
```

`block_on` starts the reactor and an executor with one worker per CPU, then
runs the coroutine on the current thread. The coroutine does not go to
another thread, so it may hold objects that are not safe to share. Any
awaitable is accepted, not only coroutines; anything else raises `TypeError`.

## Spawning tasks

```python
from cmoon.runtime import init_with_threads, spawn

async def work(i):
    return i * 2

executor = init_with_threads(4)

tasks = [spawn(work(i)) for i in range(10)]

async def gather():
    return [await task for task in tasks]

results = executor.block_on(gather())
executor.shutdown()
```

`spawn` puts the coroutine on the global queue and returns a `Task`.
Awaiting the task gives its result, or raises the exception the coroutine
raised; `Task.done()` tells whether it has finished. `init()` does the same as
`init_with_threads` with one worker per CPU.

`Executor(num_threads=None)` can also be built directly (the default is one
worker per CPU; a negative count raises `ValueError`). `Executor.start()`
starts the workers if they are not running yet, `Executor.block_on()` starts
them and runs a coroutine on the calling thread, and `Executor.shutdown()`
tells the workers to stop and waits for them to exit; tasks still on the
queue at that point are not run. An `Executor` is also a context manager that
starts its workers on entry and shuts them down on exit. Note that
`Executor` on its own does not start the reactor; the functions in
`cmoon.runtime` do.

## Writing your own awaitables

Inside a running task, `cmoon.executor.current_waker()` returns the `Waker`
of that task (it raises `RuntimeError` when no task is being polled), and
awaiting `cmoon.executor.yield_pending()` hands control back to the executor
until someone calls `Waker.wake()`. Store the waker, arrange for `wake()` to
be called from another thread or from the reactor, then yield:

```python
import threading
import time

from cmoon.executor import current_waker, yield_pending

async def sleep(seconds):
    deadline = time.monotonic() + seconds
    while time.monotonic() < deadline:
        waker = current_waker()
        threading.Timer(max(0.0, deadline - time.monotonic()), waker.wake).start()
        await yield_pending()
```

Awaitables that yield anything other than `None` (such as those of
`asyncio`) cannot be driven by this runtime and raise `RuntimeError`.

The reactor can be used the same way for sockets: `cmoon.reactor.reactor()`
returns the running `Reactor` (after `cmoon.reactor.start()`), whose
`next_id()`, `register(sock, Interest.READABLE, id)`, `set_waker(waker, id)`
and `deregister(sock, id)` tie a socket's readiness to a waker. Each
registration wakes once and is then paused until `set_waker` is called for
it again.

`cmoon.parker.Parker` is the primitive `block_on` parks on: `park()` blocks
until `unpark()` is called, and an `unpark()` that comes first is remembered.

## HTTP GET

```python
from cmoon.http import Http
from cmoon.runtime import block_on

async def fetch():
    return await Http.get("/100/hello")

print(block_on(fetch()))
```

`Http.get` connects to `127.0.0.1:8080` (`cmoon.http.SERVER_ADDRESS`), sends
a `GET` with `Connection: close`, registers the socket with the reactor and
returns the whole response, status line and headers included, as text once
the server closes the connection. `cmoon.http.get_req(path)` builds the
request text that is sent. The reactor must be running, as it is under
`cmoon.runtime`; otherwise `RuntimeError` is raised. A refused connection
raises the usual `OSError`.

## Decorators

```python
from cmoon.macros import main
from cmoon.runtime import spawn

async def job():
    return "job done"

@main(worker_threads=2)
async def run():
    return await spawn(job())

print(run())  # "job done", called like a plain function
```

`main` wraps an `async def` so that calling it runs the body under
`block_on`; with `worker_threads` it uses an executor with that many
workers. It can be applied bare (`@main`) or with the keyword. `test` does
the same and also marks the function as a test for collection. Applying
either to a function that is not `async def`, or giving `worker_threads` a
value that is not an integer, raises `TypeError`; a negative count raises
`ValueError`.

## The delays server

```
cmoon-delays-server [HOST]
```

or `python -m cmoon.delays_server [HOST]`.

Listens on `HOST:8080` (default `127.0.0.1`). `HOST` may be an IPv4 address
or a bracketed IPv6 address; anything else falls back to `127.0.0.1`. A
`GET` of `/<delay>/<message>` waits `delay` milliseconds and answers with
`message` as plain text, and each such request is printed with a running
counter. A delay that is not a non-negative integer gets `400`, other paths
get `404`, and other methods get `405`.
`cmoon.delays_server.make_server(host, port)` builds the same server for use
in code; call `serve_forever()` on it to run it.

## What it does not do

The HTTP client only sends `GET` requests, only to `127.0.0.1:8080`, and does
not parse the response. The runtime has no timers, no cancellation of
spawned tasks and no way to wait for the queue to drain on shutdown.