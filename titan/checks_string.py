"""Checks of the string commands against a model of the expected values."""

from __future__ import annotations

import time
from typing import Any, Callable, Dict

from titan.client import NilReplyError, ReplyError, to_bytes, to_float, to_int, to_string, to_strings


def _expect_equal(expected: Any, actual: Any, what: str) -> None:
    if expected != actual:
        raise AssertionError(f"{what}: expected {expected!r}, got {actual!r}")


def _text(reply: Any) -> str:
    return to_bytes(reply).decode("utf-8", "surrogateescape")


def _byte_len(value: str) -> int:
    return len(value.encode("utf-8", "surrogateescape"))


def _as_int(value: str) -> int:
    try:
        return int(value)
    except ValueError:
        return 0


def _as_float(value: str) -> float:
    try:
        return float(value)
    except ValueError:
        return 0.0


def _pairs(args: tuple) -> list:
    if len(args) % 2:
        raise ValueError("arguments must come in key/value pairs")
    return list(zip(args[::2], args[1::2]))


class StringChecker:
    """Runs string commands and checks each reply against tracked values."""

    def __init__(self, conn, sleep: Callable[[float], None] = time.sleep) -> None:
        self.conn = conn
        self.values: Dict[str, str] = {}
        self._sleep = sleep

    def _expect_error(self, err_value: str, command: str, *args: Any) -> None:
        try:
            self.conn.do(command, *args)
        except (ReplyError, NilReplyError) as exc:
            _expect_equal(err_value, str(exc), command)
        else:
            raise AssertionError(f"{command}: expected error {err_value!r}, got a reply")

    def _get_text(self, key: str) -> str:
        reply = self.conn.do("GET", key)
        return "" if reply is None else _text(reply)

    def set_equal(self, key: str, value: str) -> None:
        self.values[key] = value
        _expect_equal("OK", to_string(self.conn.do("SET", key, value)), "set")
        _expect_equal(value, _text(self.conn.do("GET", key)), "get")

    def get_equal(self, key: str) -> None:
        _expect_equal(self.values.get(key, ""), _text(self.conn.do("GET", key)), "get")

    def set_equal_err(self, err_value: str, *args: Any) -> None:
        self._expect_error(err_value, "set", *args)

    def get_equal_err(self, err_value: str, *args: Any) -> None:
        self._expect_error(err_value, "get", *args)

    def setnx_equal(self, key: str, value: str) -> None:
        self.values[key] = value
        _expect_equal(1, to_int(self.conn.do("SETNX", key, value)), "setnx")
        _expect_equal(value, _text(self.conn.do("GET", key)), "get")

    def setex_equal(self, key: str, value: str, delta: int) -> None:
        """SETEX with ``delta`` seconds, then check the key is gone after that time."""
        self.values[key] = value
        _expect_equal("OK", to_string(self.conn.do("SETEX", key, delta, value)), "setex")
        _expect_equal(value, _text(self.conn.do("GET", key)), "get")
        self._sleep(float(delta))
        _expect_equal("", self._get_text(key), "get after expiry")

    def psetex_equal(self, key: str, value: str, delta: int) -> None:
        """PSETEX with ``delta`` milliseconds, then check the key is gone after that time."""
        self.values[key] = value
        _expect_equal("OK", to_string(self.conn.do("PSETEX", key, delta, value)), "psetex")
        _expect_equal(value, _text(self.conn.do("GET", key)), "get")
        self._sleep(delta / 1000.0)
        _expect_equal("", self._get_text(key), "get after expiry")

    def msetnx_equal(self, expect_value: int, *args: str) -> None:
        for key, value in _pairs(args):
            self.values[key] = value
        _expect_equal(expect_value, to_int(self.conn.do("MSETNX", *args)), "msetnx")

    def append_equal(self, key: str, value: str) -> None:
        self.values[key] = self.values.get(key, "") + value
        expected = self.values[key]
        _expect_equal(_byte_len(expected), to_int(self.conn.do("Append", key, value)), "append")
        _expect_equal(expected, _text(self.conn.do("GET", key)), "get")

    def append_equal_err(self, err_value: str, *args: Any) -> None:
        self._expect_error(err_value, "append", *args)

    def _step(self, key: str, command: str, delta: int, *args: Any) -> None:
        current = self.values.get(key)
        expected = delta if current is None else _as_int(current) + delta
        self.values[key] = str(expected)
        _expect_equal(expected, to_int(self.conn.do(command, key, *args)), command)

    def incr_equal(self, key: str) -> None:
        self._step(key, "incr", 1)

    def decr_equal(self, key: str) -> None:
        self._step(key, "decr", -1)

    def incr_by_equal(self, key: str, delta: int) -> None:
        self._step(key, "incrby", delta, delta)

    def decr_by_equal(self, key: str, delta: int) -> None:
        self._step(key, "decrby", -delta, delta)

    def incr_by_float_equal(self, key: str, delta: float) -> None:
        current = self.values.get(key)
        expected = delta if current is None else _as_float(current) + delta
        self.values[key] = f"{expected:.10e}"
        actual = to_float(self.conn.do("incrbyfloat", key, delta))
        _expect_equal(expected, actual, "incrbyfloat")

    def incr_equal_err(self, err_value: str, *args: Any) -> None:
        self._expect_error(err_value, "incr", *args)

    def strlen_equal(self, key: str) -> None:
        expected = _byte_len(self.values.get(key, ""))
        _expect_equal(expected, to_int(self.conn.do("strlen", key)), "strlen")

    def strlen_equal_err(self, err_value: str, *args: Any) -> None:
        self._expect_error(err_value, "strlen", *args)

    def mget_equal(self, *args: str) -> None:
        reply = to_strings(self.conn.do("MGET", *args))
        if len(reply) != len(args):
            raise AssertionError(f"mget: expected {len(args)} values, got {len(reply)}")
        for key, actual in zip(args, reply):
            _expect_equal(self.values.get(key, ""), actual, f"mget {key}")

    def mget_equal_err(self, err_value: str, *args: Any) -> None:
        self._expect_error(err_value, "Mget", *args)

    def mset_equal(self, *args: str) -> None:
        pairs = _pairs(args)
        for key, value in pairs:
            self.values[key] = value
        _expect_equal("OK", to_string(self.conn.do("MSET", *args)), "mset")
        for key, _ in pairs:
            self.get_equal(key)

    def mset_equal_err(self, err_value: str, *args: Any) -> None:
        self._expect_error(err_value, "Mset", *args)