"""Encoding and decoding of the Redis serialization protocol (RESP)."""

from __future__ import annotations

import re
from typing import BinaryIO, Union

_CRLF = b"\r\n"
_INT_PATTERN = re.compile(rb"[+-]?[0-9]+")
_INT64_MIN = -(1 << 63)
_INT64_MAX = (1 << 63) - 1

Text = Union[str, bytes, bytearray, memoryview]


class ProtocolError(ValueError):
    """Raised when input does not follow the RESP wire format."""

    def __init__(self, message: str = "invalid protocol") -> None:
        super().__init__(message)


def _to_bytes(value: Text) -> bytes:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    return value.encode("utf-8", "surrogateescape")


def _to_str(value: bytes) -> str:
    return value.decode("utf-8", "surrogateescape")


def _parse_int(raw: bytes) -> int:
    if not _INT_PATTERN.fullmatch(raw):
        raise ProtocolError()
    value = int(raw)
    if not _INT64_MIN <= value <= _INT64_MAX:
        raise ProtocolError()
    return value


class Reader:
    """Reads from a binary stream without consuming more than it needs."""

    def __init__(self, stream: BinaryIO) -> None:
        self._stream = stream

    def read_bytes(self, delim: Union[int, bytes]) -> bytes:
        """Read byte by byte up to and including ``delim``.

        Raises EOFError, carrying the bytes read so far as its argument,
        when the stream ends before the delimiter is seen.
        """
        if isinstance(delim, int):
            delim = bytes([delim])
        buf = bytearray()
        while True:
            chunk = self._stream.read(1)
            if chunk is None:
                continue
            if not chunk:
                raise EOFError(bytes(buf))
            buf += chunk
            if chunk == delim:
                return bytes(buf)

    def read(self, size: int) -> bytes:
        """Read at most ``size`` bytes from the underlying stream."""
        return self._stream.read(size)


class Encoder:
    """Writes RESP values to a binary stream."""

    def __init__(self, stream: BinaryIO) -> None:
        self._stream = stream

    def _write(self, data: bytes) -> None:
        self._stream.write(data)

    def error(self, s: Text) -> None:
        self._write(b"-" + _to_bytes(s) + _CRLF)

    def simple_string(self, s: Text) -> None:
        self._write(b"+" + _to_bytes(s) + _CRLF)

    def bulk_string(self, s: Text) -> None:
        data = _to_bytes(s)
        self._write(b"$%d\r\n" % len(data) + data + _CRLF)

    def null_bulk_string(self) -> None:
        self._write(b"$-1\r\n")

    def integer(self, v: int) -> None:
        self._write(b":%d\r\n" % v)

    def array(self, size: int) -> None:
        self._write(b"*%d\r\n" % size)


class Decoder:
    """Reads RESP values from a binary stream."""

    def __init__(self, stream: BinaryIO) -> None:
        self._reader = Reader(stream)

    def _header(self, marker: bytes) -> bytes:
        line = self._reader.read_bytes(b"\n")
        if len(line) < 3 or line[-2:-1] != b"\r" or line[:1] != marker:
            raise ProtocolError()
        return line[1:-2]

    def _read_full(self, size: int) -> bytes:
        buf = bytearray()
        while len(buf) < size:
            chunk = self._reader.read(size - len(buf))
            if chunk is None:
                continue
            if not chunk:
                raise ProtocolError()
            buf += chunk
        return bytes(buf)

    def error(self) -> str:
        return _to_str(self._header(b"-"))

    def simple_string(self) -> str:
        return _to_str(self._header(b"+"))

    def bulk_string(self) -> str:
        length = _parse_int(self._header(b"$"))
        if length < 0:
            raise ProtocolError()
        body = self._read_full(length + 2)
        return _to_str(body[:-2])

    def integer(self) -> int:
        return _parse_int(self._header(b":"))

    def array(self) -> int:
        size = _parse_int(self._header(b"*"))
        if size < 0:
            raise ProtocolError()
        return size


def reply_error(w: BinaryIO, msg: Text) -> None:
    Encoder(w).error(msg)


def reply_simple_string(w: BinaryIO, msg: Text) -> None:
    Encoder(w).simple_string(msg)


def reply_bulk_string(w: BinaryIO, msg: Text) -> None:
    Encoder(w).bulk_string(msg)


def reply_null_bulk_string(w: BinaryIO) -> None:
    Encoder(w).null_bulk_string()


def reply_integer(w: BinaryIO, val: int) -> None:
    Encoder(w).integer(val)


def reply_array(w: BinaryIO, size: int) -> Encoder:
    """Write an array header and return the encoder for its elements."""
    encoder = Encoder(w)
    encoder.array(size)
    return encoder


def read_error(r: BinaryIO) -> str:
    return Decoder(r).error()


def read_simple_string(r: BinaryIO) -> str:
    return Decoder(r).simple_string()


def read_bulk_string(r: BinaryIO) -> str:
    return Decoder(r).bulk_string()


def read_integer(r: BinaryIO) -> int:
    return Decoder(r).integer()


def read_array(r: BinaryIO) -> int:
    return Decoder(r).array()