import socket
import threading
import time

import pytest

from cmoon import delays_server, runtime
from cmoon import http as cmoon_http
from cmoon.http import Http, get_req


@pytest.fixture
def server(monkeypatch):
    srv = delays_server.make_server("127.0.0.1", 0)
    thread = threading.Thread(target=srv.serve_forever, daemon=True)
    thread.start()
    monkeypatch.setattr(cmoon_http, "SERVER_ADDRESS", srv.server_address[:2])
    yield srv
    srv.shutdown()
    srv.server_close()


def test_get_req_wire_format():
    assert get_req("/100/hello") == (
        "GET /100/hello HTTP/1.1\r\nHost: localhost\r\nConnection: close\r\n\r\n"
    )


def test_http_works(server):
    async def fetch_both():
        first = await Http.get("/100/hello")
        second = await Http.get("/200/world")
        return first, second

    first, second = runtime.block_on(fetch_both())
    assert first.endswith("\r\n\r\nhello")
    assert second.endswith("\r\n\r\nworld")
    assert first.split("\r\n", 1)[0].endswith("200 OK")


def test_http_concurrent_works(server):
    executor = runtime.init_with_threads(4)
    start = time.monotonic()
    tasks = [
        runtime.spawn(Http.get("/300/hello")),
        runtime.spawn(Http.get("/300/hello")),
    ]

    async def collect():
        return [await task for task in tasks]

    results = executor.block_on(collect())
    elapsed = time.monotonic() - start
    assert [r.endswith("\r\n\r\nhello") for r in results] == [True, True]
    assert elapsed < 0.55


def test_http_error_status_is_returned_as_text(server):
    response = runtime.block_on(Http.get("/not-a-number/hello"))
    assert response.split("\r\n", 1)[0].endswith("400 Bad Request")


def test_connection_refused_raises(monkeypatch):
    probe = socket.socket()
    probe.bind(("127.0.0.1", 0))
    port = probe.getsockname()[1]
    probe.close()
    monkeypatch.setattr(cmoon_http, "SERVER_ADDRESS", ("127.0.0.1", port))
    with pytest.raises(ConnectionRefusedError):
        runtime.block_on(Http.get("/0/hello"))