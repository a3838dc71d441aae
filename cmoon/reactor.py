"""Event loop that watches sockets and wakes the tasks waiting on them."""

from __future__ import annotations

import enum
import itertools
import logging
import selectors
import socket
import threading
from typing import Any, Protocol

_log = logging.getLogger(__name__)


class _Wakeable(Protocol):
    def wake(self) -> None: ...


class Interest(enum.Flag):
    """Readiness a socket is registered for."""

    READABLE = selectors.EVENT_READ
    WRITABLE = selectors.EVENT_WRITE


class Reactor:
    """Dispatches socket readiness events to registered wakers.

    A registration fires at most once per arming: after an event the socket
    is paused until `set_waker` is called for its id again, so a waker is
    never called in a tight loop while the socket stays ready.
    """

    def __init__(self) -> None:
        self._selector = selectors.DefaultSelector()
        self._lock = threading.RLock()
        self._wakers: dict[int, _Wakeable] = {}
        self._registered: dict[int, tuple[Any, int]] = {}
        self._armed: set[int] = set()
        self._ids = itertools.count(1)
        self._id_lock = threading.Lock()
        self._wake_recv, self._wake_send = socket.socketpair()
        self._wake_recv.setblocking(False)
        self._wake_send.setblocking(False)
        self._selector.register(self._wake_recv, selectors.EVENT_READ, None)

    def register(self, sock: Any, interest: Interest, id: int) -> None:
        """Watch `sock` for `interest`, reporting events under `id`."""
        events = Interest(interest).value
        if not events:
            raise ValueError("interest must not be empty")
        with self._lock:
            if id in self._registered:
                raise ValueError(f"id {id} is already registered")
            self._selector.register(sock, events, id)
            self._registered[id] = (sock, events)
            self._armed.add(id)
        self._notify()

    def set_waker(self, waker: _Wakeable, id: int) -> None:
        """Store the waker for `id` and re-arm its socket if it was paused."""
        rearmed = False
        with self._lock:
            self._wakers[id] = waker
            entry = self._registered.get(id)
            if entry is not None and id not in self._armed:
                sock, events = entry
                self._selector.register(sock, events, id)
                self._armed.add(id)
                rearmed = True
        if rearmed:
            self._notify()

    def deregister(self, sock: Any, id: int) -> None:
        """Stop watching `sock` and forget the waker stored for `id`."""
        with self._lock:
            self._wakers.pop(id, None)
            if id not in self._registered:
                raise KeyError(id)
            del self._registered[id]
            if id in self._armed:
                self._armed.discard(id)
                self._selector.unregister(sock)

    def next_id(self) -> int:
        """Return a fresh registration id."""
        with self._id_lock:
            return next(self._ids)

    def _notify(self) -> None:
        try:
            self._wake_send.send(b"\0")
        except OSError:
            pass

    def _drain(self) -> None:
        try:
            while self._wake_recv.recv(4096):
                pass
        except OSError:
            pass

    def _dispatch(self, id: int) -> None:
        with self._lock:
            if id in self._armed:
                sock, _ = self._registered[id]
                self._armed.discard(id)
                try:
                    self._selector.unregister(sock)
                except (KeyError, ValueError):
                    pass
            waker = self._wakers.get(id)
        if waker is not None:
            try:
                waker.wake()
            except Exception:
                _log.exception("waker for id %d failed", id)

    def _run(self) -> None:
        while True:
            for key, _mask in self._selector.select():
                if key.data is None:
                    self._drain()
                else:
                    self._dispatch(key.data)


_REACTOR: Reactor | None = None
_START_LOCK = threading.Lock()


def reactor() -> Reactor:
    """Return the running reactor."""
    if _REACTOR is None:
        raise RuntimeError("Called outside a runtime context")
    return _REACTOR


def start() -> None:
    """Start the reactor's event loop thread, once per process."""
    global _REACTOR
    with _START_LOCK:
        if _REACTOR is not None:
            return
        instance = Reactor()
        _REACTOR = instance
        threading.Thread(target=instance._run, name="reactor", daemon=True).start()