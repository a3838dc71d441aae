"""HTTP server that answers each request with its message after a delay.

A GET of /<delay_ms>/<message> waits delay_ms milliseconds and returns message.
"""

from __future__ import annotations

import ipaddress
import itertools
import logging
import re
import socket
import sys
import threading
import time
from collections.abc import Sequence
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import unquote, urlsplit

_log = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8080
_MAX_DELAY = 2**64 - 1
_DELAY_RE = re.compile(r"\+?[0-9]+")


class _DelayServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, address: tuple[str, int], handler: type[BaseHTTPRequestHandler]) -> None:
        if ":" in address[0]:
            self.address_family = socket.AF_INET6
        self._counter = itertools.count(1)
        self._counter_lock = threading.Lock()
        super().__init__(address, handler)

    def next_count(self) -> int:
        with self._counter_lock:
            return next(self._counter)


def _parse_delay(text: str) -> int | None:
    if not _DELAY_RE.fullmatch(text):
        return None
    value = int(text)
    return value if value <= _MAX_DELAY else None


class DelayHandler(BaseHTTPRequestHandler):
    """Serves GET /<delay_ms>/<message>."""

    def do_GET(self) -> None:
        segments = urlsplit(self.path).path.split("/")
        if len(segments) != 3 or segments[0] or not segments[1] or not segments[2]:
            self._reply(HTTPStatus.NOT_FOUND, "")
            return
        raw_delay, message = (unquote(segment) for segment in segments[1:])
        delay_ms = _parse_delay(raw_delay)
        if delay_ms is None:
            self._reply(
                HTTPStatus.BAD_REQUEST,
                f"Invalid URL: Cannot parse `{raw_delay}` as a delay in milliseconds",
            )
            return
        count = self.server.next_count()  # type: ignore[attr-defined]
        print(f"#{count} - {delay_ms}ms: {message}", flush=True)
        time.sleep(delay_ms / 1000)
        self._reply(HTTPStatus.OK, message)

    def _method_not_allowed(self) -> None:
        self._reply(HTTPStatus.METHOD_NOT_ALLOWED, "")

    do_POST = do_PUT = do_DELETE = do_PATCH = _method_not_allowed

    def _reply(self, status: HTTPStatus, body: str) -> None:
        data = body.encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "text/plain; charset=utf-8")
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)

    def log_message(self, format: str, *args: object) -> None:
        _log.info("%s - %s", self.address_string(), format % args)


def _resolve_host(host: str) -> str:
    """Return the address to bind for `host`, falling back to localhost."""
    try:
        return str(ipaddress.IPv4Address(host))
    except ValueError:
        pass
    if host.startswith("[") and host.endswith("]"):
        try:
            return str(ipaddress.IPv6Address(host[1:-1]))
        except ValueError:
            pass
    return DEFAULT_HOST


def make_server(host: str = DEFAULT_HOST, port: int = DEFAULT_PORT) -> ThreadingHTTPServer:
    """Create a delay server bound to `host` and `port`."""
    return _DelayServer((host, port), DelayHandler)


def main(argv: Sequence[str] | None = None) -> None:
    """Run the delay server on port 8080 of the host given as first argument."""
    args = list(sys.argv[1:] if argv is None else argv)
    logging.basicConfig(level=logging.INFO)
    host = _resolve_host(args[0] if args else DEFAULT_HOST)
    server = make_server(host, DEFAULT_PORT)
    shown = f"[{host}]" if ":" in host else host
    print(f"Server starting on http://{shown}:{DEFAULT_PORT}", flush=True)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()


if __name__ == "__main__":
    main()