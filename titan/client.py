"""A small blocking RESP client with a connection pool."""

from __future__ import annotations

import io
import socket
import threading
import time
from collections import deque
from typing import Any, Callable, Deque, List, Optional, Tuple, Union

from titan.resp import Encoder, ProtocolError

Address = Union[str, Tuple[str, int]]


class ReplyError(Exception):
    """An error reply sent by the server; ``str()`` gives its message."""


class NilReplyError(Exception):
    """Raised when a nil reply is converted to a concrete value."""

    def __init__(self, message: str = "nil returned") -> None:
        super().__init__(message)


def _encode_arg(value: Any) -> bytes:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        return value.encode("utf-8", "surrogateescape")
    if isinstance(value, bool):
        return b"1" if value else b"0"
    if isinstance(value, int):
        return str(value).encode()
    if isinstance(value, float):
        text = repr(value)
        if text.endswith(".0"):
            text = text[:-2]
        return text.encode()
    if value is None:
        return b""
    return str(value).encode("utf-8", "surrogateescape")


class Connection:
    """One connection to a RESP server."""

    def __init__(self, sock: socket.socket) -> None:
        self._sock = sock
        self._reader = sock.makefile("rb")
        self._closed = False

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def do(self, command: Any, *args: Any) -> Any:
        """Send one command and return its reply.

        Status replies come back as ``str``, bulk strings as ``bytes``,
        integers as ``int``, arrays as lists and nil as ``None``. An error
        reply at the top level raises ``ReplyError``; inside an array it is
        returned as a ``ReplyError`` instance.
        """
        if self._closed:
            raise ConnectionError("connection is closed")
        buf = io.BytesIO()
        encoder = Encoder(buf)
        encoder.array(1 + len(args))
        for part in (command, *args):
            encoder.bulk_string(_encode_arg(part))
        self._sock.sendall(buf.getvalue())
        reply = self._read_reply()
        if isinstance(reply, ReplyError):
            raise reply
        return reply

    def _read_reply(self) -> Any:
        line = self._reader.readline()
        if not line:
            raise ConnectionError("connection closed by server")
        if not line.endswith(b"\r\n") or len(line) < 3:
            raise ProtocolError()
        kind, body = line[:1], line[1:-2]
        if kind == b"+":
            return body.decode("utf-8", "surrogateescape")
        if kind == b"-":
            return ReplyError(body.decode("utf-8", "surrogateescape"))
        if kind == b":":
            return self._parse_int(body)
        if kind == b"$":
            length = self._parse_int(body)
            if length < 0:
                return None
            data = self._reader.read(length + 2)
            if len(data) != length + 2 or not data.endswith(b"\r\n"):
                raise ProtocolError()
            return data[:-2]
        if kind == b"*":
            size = self._parse_int(body)
            if size < 0:
                return None
            return [self._read_reply() for _ in range(size)]
        raise ProtocolError()

    @staticmethod
    def _parse_int(raw: bytes) -> int:
        try:
            return int(raw)
        except ValueError:
            raise ProtocolError() from None

    def close(self) -> None:
        """Close the connection; closing twice is harmless."""
        if self._closed:
            return
        self._closed = True
        try:
            self._reader.close()
        finally:
            self._sock.close()


def _parse_address(address: Address) -> Tuple[str, int]:
    if isinstance(address, tuple):
        host, port = address
        return host or "127.0.0.1", int(port)
    host, sep, port = address.rpartition(":")
    if not sep:
        raise ValueError(f"missing port in address {address!r}")
    try:
        return host.strip("[]") or "127.0.0.1", int(port)
    except ValueError:
        raise ValueError(f"invalid port in address {address!r}") from None


def dial(address: Address) -> Connection:
    """Connect over TCP to ``host:port`` (an empty host means this machine)."""
    return Connection(socket.create_connection(_parse_address(address)))


class _PooledConnection:
    """A borrowed connection; closing it hands it back to the pool."""

    def __init__(self, pool: "Pool", conn: Connection) -> None:
        self._pool = pool
        self._conn: Optional[Connection] = conn

    def __enter__(self) -> "_PooledConnection":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def do(self, command: Any, *args: Any) -> Any:
        if self._conn is None:
            raise ConnectionError("connection returned to the pool")
        return self._conn.do(command, *args)

    def close(self) -> None:
        conn, self._conn = self._conn, None
        if conn is not None:
            self._pool._release(conn)


class Pool:
    """Keeps up to ``max_idle`` idle connections, checked with PING on borrow."""

    def __init__(
        self,
        server: Address,
        max_idle: int = 3,
        idle_timeout: float = 240.0,
        dialer: Optional[Callable[[], Connection]] = None,
    ) -> None:
        self._dial = dialer if dialer is not None else (lambda: dial(server))
        self.max_idle = max_idle
        self.idle_timeout = idle_timeout
        self._idle: Deque[Tuple[Connection, float]] = deque()
        self._lock = threading.Lock()
        self._closed = False

    def get(self) -> _PooledConnection:
        """Borrow a live connection, dialling a new one when none is idle."""
        while True:
            with self._lock:
                if self._closed:
                    raise RuntimeError("connection pool is closed")
                stale = self._take_stale()
                conn = self._idle.pop()[0] if self._idle else None
            for old in stale:
                old.close()
            if conn is None:
                break
            try:
                conn.do("PING")
            except (OSError, ReplyError, ProtocolError):
                conn.close()
                continue
            return _PooledConnection(self, conn)
        return _PooledConnection(self, self._dial())

    def _take_stale(self) -> List[Connection]:
        deadline = time.monotonic() - self.idle_timeout
        stale = []
        while self._idle and self._idle[0][1] < deadline:
            stale.append(self._idle.popleft()[0])
        return stale

    def _release(self, conn: Connection) -> None:
        with self._lock:
            if self._closed:
                surplus = [conn]
            else:
                self._idle.append((conn, time.monotonic()))
                surplus = []
                while len(self._idle) > self.max_idle:
                    surplus.append(self._idle.popleft()[0])
        for extra in surplus:
            extra.close()

    def close(self) -> None:
        """Close every idle connection and refuse further borrowing."""
        with self._lock:
            self._closed = True
            idle = [conn for conn, _ in self._idle]
            self._idle.clear()
        for conn in idle:
            conn.close()


def _check_reply(reply: Any) -> None:
    if reply is None:
        raise NilReplyError()
    if isinstance(reply, ReplyError):
        raise reply


def to_int(reply: Any) -> int:
    """Convert an integer or numeric bulk reply to ``int``."""
    _check_reply(reply)
    if isinstance(reply, bool):
        raise ValueError(f"unexpected type for int: {type(reply).__name__}")
    if isinstance(reply, int):
        return reply
    if isinstance(reply, (bytes, str)):
        try:
            return int(reply)
        except ValueError:
            raise ValueError(f"reply {reply!r} is not an integer") from None
    raise ValueError(f"unexpected type for int: {type(reply).__name__}")


def to_float(reply: Any) -> float:
    """Convert a numeric reply to ``float``."""
    _check_reply(reply)
    if isinstance(reply, (bytes, str, int)) and not isinstance(reply, bool):
        try:
            return float(reply)
        except ValueError:
            raise ValueError(f"reply {reply!r} is not a float") from None
    raise ValueError(f"unexpected type for float: {type(reply).__name__}")


def to_string(reply: Any) -> str:
    """Convert a status or bulk reply to ``str``."""
    _check_reply(reply)
    if isinstance(reply, str):
        return reply
    if isinstance(reply, bytes):
        return reply.decode("utf-8", "surrogateescape")
    raise ValueError(f"unexpected type for string: {type(reply).__name__}")


def to_bytes(reply: Any) -> bytes:
    """Convert a status or bulk reply to ``bytes``."""
    _check_reply(reply)
    if isinstance(reply, bytes):
        return reply
    if isinstance(reply, str):
        return reply.encode("utf-8", "surrogateescape")
    raise ValueError(f"unexpected type for bytes: {type(reply).__name__}")


def to_strings(reply: Any) -> List[str]:
    """Convert an array reply to a list of ``str``; nil elements become ``""``."""
    _check_reply(reply)
    if not isinstance(reply, list):
        raise ValueError(f"unexpected type for strings: {type(reply).__name__}")
    return ["" if item is None else to_string(item) for item in reply]