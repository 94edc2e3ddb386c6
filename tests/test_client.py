import socketserver
import threading

import pytest

from titan.client import (
    NilReplyError,
    Pool,
    ReplyError,
    dial,
    to_bytes,
    to_float,
    to_int,
    to_string,
    to_strings,
)
from titan.resp import Decoder, Encoder


class _Handler(socketserver.StreamRequestHandler):
    def handle(self):
        with self.server.lock:
            self.server.connections += 1
        decoder = Decoder(self.rfile)
        while True:
            try:
                size = decoder.array()
            except (EOFError, OSError):
                return
            parts = [decoder.bulk_string() for _ in range(size)]
            with self.server.lock:
                self.server.commands.append(parts)
            self._reply(parts)
            self.wfile.flush()

    def _reply(self, parts):
        enc = Encoder(self.wfile)
        name = parts[0].upper()
        if name == "PING":
            enc.simple_string("PONG")
        elif name == "ECHO":
            enc.bulk_string(parts[1])
        elif name == "NIL":
            enc.null_bulk_string()
        elif name == "BOOM":
            enc.error("ERR boom")
        elif name == "NUM":
            enc.integer(42)
        elif name == "ARR":
            enc.array(3)
            enc.bulk_string("a")
            enc.null_bulk_string()
            enc.integer(7)
        elif name == "ERRARR":
            enc.array(2)
            enc.simple_string("OK")
            enc.error("ERR inner")
        elif name == "NILARR":
            enc.array(-1)
        else:
            enc.error("ERR unknown command")


class _Server(socketserver.ThreadingTCPServer):
    daemon_threads = True
    block_on_close = False
    allow_reuse_address = True


@pytest.fixture
def server():
    srv = _Server(("127.0.0.1", 0), _Handler)
    srv.lock = threading.Lock()
    srv.connections = 0
    srv.commands = []
    thread = threading.Thread(target=srv.serve_forever, daemon=True)
    thread.start()
    yield srv
    srv.shutdown()
    srv.server_close()


def _addr(srv):
    host, port = srv.server_address[:2]
    return f"{host}:{port}"


def test_ping_status_reply(server):
    with dial(_addr(server)) as conn:
        assert conn.do("PING") == "PONG"


def test_bulk_round_trip_and_recorded_command(server):
    payload = b"a\r\nb\x00c"
    with dial(_addr(server)) as conn:
        assert conn.do("ECHO", payload) == payload
        assert conn.do("ECHO", "hi") == b"hi"
    assert server.commands[-1] == ["ECHO", "hi"]


def test_argument_formatting(server):
    with dial(_addr(server)) as conn:
        assert conn.do("ECHO", 5) == b"5"
        assert conn.do("ECHO", 2.1e2) == b"210"
        assert conn.do("ECHO", 1.111111) == b"1.111111"


def test_nil_reply_and_conversion(server):
    with dial(_addr(server)) as conn:
        reply = conn.do("NIL")
    assert reply is None
    with pytest.raises(NilReplyError, match="nil returned"):
        to_int(reply)


def test_error_reply_raises(server):
    with dial(_addr(server)) as conn:
        with pytest.raises(ReplyError) as info:
            conn.do("BOOM")
        assert str(info.value) == "ERR boom"
        assert conn.do("PING") == "PONG"


def test_integer_and_arrays(server):
    with dial(_addr(server)) as conn:
        assert conn.do("NUM") == 42
        assert conn.do("ARR") == [b"a", None, 7]
        assert conn.do("NILARR") is None
        status, err = conn.do("ERRARR")
    assert status == "OK"
    assert isinstance(err, ReplyError)
    assert str(err) == "ERR inner"


def test_closed_connection_refuses_commands(server):
    conn = dial(_addr(server))
    conn.close()
    conn.close()
    with pytest.raises(ConnectionError):
        conn.do("PING")


def test_converters():
    assert to_int(b"12") == 12
    assert to_float(b"1.5") == 1.5
    assert to_string(b"x") == "x"
    assert to_bytes("OK") == b"OK"
    assert to_strings([b"a", None, "b"]) == ["a", "", "b"]
    with pytest.raises(ValueError):
        to_int(b"zz")
    with pytest.raises(ValueError):
        to_strings([b"a", 3])
    with pytest.raises(NilReplyError):
        to_strings(None)
    with pytest.raises(ReplyError):
        to_string(ReplyError("ERR x"))


def test_pool_reuses_idle_connection(server):
    pool = Pool(_addr(server))
    first = pool.get()
    assert first.do("PING") == "PONG"
    first.close()
    second = pool.get()
    assert second.do("ECHO", "x") == b"x"
    second.close()
    pool.close()
    assert server.connections == 1


def test_pool_keeps_at_most_max_idle(server):
    pool = Pool(_addr(server), max_idle=3)
    borrowed = [pool.get() for _ in range(5)]
    for conn in borrowed:
        assert conn.do("PING") == "PONG"
    for conn in borrowed:
        conn.close()
    again = [pool.get() for _ in range(5)]
    for conn in again:
        assert conn.do("PING") == "PONG"
    for conn in again:
        conn.close()
    pool.close()
    assert server.connections == 7


def test_closed_pool_refuses_get(server):
    pool = Pool(_addr(server))
    pool.close()
    with pytest.raises(RuntimeError):
        pool.get()


def test_returned_connection_cannot_be_used(server):
    pool = Pool(_addr(server))
    conn = pool.get()
    conn.close()
    with pytest.raises(ConnectionError):
        conn.do("PING")
    pool.close()