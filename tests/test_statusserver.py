import socket
import threading
import time
import urllib.error
import urllib.request

import pytest

from titan.metrics import Counter, Registry
from titan.statusserver import ServerClosedError, StatusServer


def _listening_socket():
    return socket.create_server(("127.0.0.1", 0))


def _start(server, sock):
    errors = []

    def run():
        try:
            server.serve(sock)
        except Exception as exc:  # collected for assertions
            errors.append(exc)

    thread = threading.Thread(target=run, daemon=True)
    thread.start()
    return thread, errors


def _get(port, path):
    deadline = time.monotonic() + 5
    while True:
        try:
            with urllib.request.urlopen(f"http://127.0.0.1:{port}{path}", timeout=5) as resp:
                return resp.status, resp.headers["Content-Type"], resp.read().decode()
        except urllib.error.URLError as exc:
            if isinstance(exc, urllib.error.HTTPError) or time.monotonic() > deadline:
                raise
            time.sleep(0.05)


@pytest.fixture
def registry():
    reg = Registry()
    counter = reg.register(Counter("hits_total", "Hits.", namespace="probe"))
    counter.add(3)
    return reg


def test_serves_metrics(registry):
    server = StatusServer("127.0.0.1:0", registry=registry)
    sock = _listening_socket()
    port = sock.getsockname()[1]
    thread, errors = _start(server, sock)

    status, content_type, body = _get(port, "/metrics")
    assert status == 200
    assert content_type.startswith("text/plain")
    assert "probe_hits_total 3\n" in body

    server.stop()
    thread.join(5)
    assert not thread.is_alive()
    assert errors == []


def test_unknown_path_is_404(registry):
    server = StatusServer("127.0.0.1:0", registry=registry)
    sock = _listening_socket()
    port = sock.getsockname()[1]
    thread, errors = _start(server, sock)
    code = None
    try:
        try:
            _get(port, "/nothing")
        except urllib.error.HTTPError as exc:
            code = exc.code
    finally:
        server.stop()
        thread.join(5)
    assert code == 404
    assert errors == []


def test_graceful_stop_ends_serving(registry):
    server = StatusServer("127.0.0.1:0", registry=registry)
    sock = _listening_socket()
    port = sock.getsockname()[1]
    thread, errors = _start(server, sock)
    assert _get(port, "/metrics")[0] == 200

    server.graceful_stop()
    thread.join(5)
    assert not thread.is_alive()
    assert errors == []


def test_stop_before_serve_then_serve_refused(registry):
    server = StatusServer("127.0.0.1:0", registry=registry)
    server.stop()
    sock = _listening_socket()
    with pytest.raises(ServerClosedError):
        server.serve(sock)
    assert sock.fileno() == -1


def test_listen_and_serve_then_stop(registry):
    server = StatusServer("127.0.0.1:0", registry=registry)
    errors = []

    def run():
        try:
            server.listen_and_serve("127.0.0.1:0")
        except Exception as exc:  # collected for assertions
            errors.append(exc)

    thread = threading.Thread(target=run, daemon=True)
    thread.start()
    time.sleep(0.1)
    server.stop()
    thread.join(5)
    assert not thread.is_alive()
    assert [type(e) for e in errors] in ([], [ServerClosedError])

    again = _listening_socket()
    with pytest.raises(ServerClosedError):
        server.serve(again)
    assert again.fileno() == -1


@pytest.mark.parametrize("addr", ["no-port-here", "127.0.0.1:http"])
def test_listen_and_serve_rejects_bad_address(registry, addr):
    server = StatusServer(addr, registry=registry)
    with pytest.raises(ValueError):
        server.listen_and_serve(addr)