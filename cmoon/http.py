"""Minimal non-blocking HTTP GET client driven by the reactor."""

from __future__ import annotations

import socket
from collections.abc import Coroutine
from typing import Any

from .executor import current_waker, yield_pending
from .reactor import Interest, reactor

SERVER_ADDRESS: tuple[str, int] = ("127.0.0.1", 8080)

_CHUNK_SIZE = 147


def get_req(path: str) -> str:
    """Build the raw request text for a GET of `path`."""
    return (
        f"GET {path} HTTP/1.1\r\n"
        "Host: localhost\r\n"
        "Connection: close\r\n"
        "\r\n"
    )


async def _fetch(path: str, address: tuple[str, int]) -> str:
    events = reactor()
    id = events.next_id()
    buffer = bytearray()
    with socket.create_connection(address) as sock:
        sock.sendall(get_req(path).encode("ascii"))
        sock.setblocking(False)
        events.register(sock, Interest.READABLE, id)
        try:
            events.set_waker(current_waker(), id)
            while True:
                try:
                    chunk = sock.recv(_CHUNK_SIZE)
                except BlockingIOError:
                    # Always store the most recent waker before suspending.
                    events.set_waker(current_waker(), id)
                    await yield_pending()
                    continue
                if not chunk:
                    break
                buffer.extend(chunk)
        finally:
            events.deregister(sock, id)
    return buffer.decode("utf-8", errors="replace")


class Http:
    """HTTP requests against the local delay server."""

    @staticmethod
    def get(path: str) -> Coroutine[Any, Any, str]:
        """Return a coroutine that fetches `path` and yields the raw response."""
        return _fetch(path, SERVER_ADDRESS)