"""Checks of the list commands against a model of the expected lists."""

from __future__ import annotations

from typing import Any, Dict, List

from titan.client import NilReplyError, ReplyError, to_int, to_string, to_strings


def _expect_equal(expected: Any, actual: Any, what: str) -> None:
    if expected != actual:
        raise AssertionError(f"{what}: expected {expected!r}, got {actual!r}")


class ListChecker:
    """Runs list commands and checks each reply against tracked lists."""

    def __init__(self, conn) -> None:
        self.conn = conn
        self.map_list: Dict[str, List[str]] = {}

    def _expect_error(self, err_value: str, command: str, *args: Any) -> None:
        try:
            self.conn.do(command, *args)
        except (ReplyError, NilReplyError) as exc:
            _expect_equal(err_value, str(exc), command)
        else:
            raise AssertionError(f"{command}: expected error {err_value!r}, got a reply")

    def _expect_nil(self, command: str, *args: Any) -> None:
        reply = self.conn.do(command, *args)
        if reply is not None:
            raise AssertionError(f"{command}: expected nil, got {reply!r}")

    def lset_equal(self, key: str, index: int, value: str) -> None:
        """LSET at ``abs(index)``; the tracked list must already hold that position."""
        values = self.map_list.setdefault(key, [])
        index = abs(index)
        values[index] = value
        _expect_equal("OK", to_string(self.conn.do("lset", key, index, value)), "lset")
        _expect_equal(len(values), to_int(self.conn.do("llen", key)), "llen")

    def lset_equal_err(self, err_value: str, *args: Any) -> None:
        self._expect_error(err_value, "lset", *args)

    def lpush_equal(self, key: str, *args: str) -> None:
        current = self.map_list.get(key, [])
        self.map_list[key] = list(reversed(args)) + current
        reply = to_int(self.conn.do("lpush", key, *args))
        _expect_equal(len(self.map_list[key]), reply, "lpush")

    def lpush_equal_err(self, err_value: str, *args: Any) -> None:
        self._expect_error(err_value, "lpush", *args)

    def lpop_equal(self, key: str) -> None:
        values = self.map_list.get(key)
        if values:
            expected = values.pop(0)
            _expect_equal(expected, to_string(self.conn.do("lpop", key)), "lpop")
        else:
            self._expect_nil("lpop", key)

    def lpop_equal_err(self, err_value: str, *args: Any) -> None:
        self._expect_error(err_value, "lpop", *args)

    def lindex_equal(self, key: str, index: int) -> None:
        index = abs(index)
        values = self.map_list.get(key)
        if values is not None:
            expected = values[index]
            _expect_equal(expected, to_string(self.conn.do("lindex", key, index)), "lindex")
        else:
            self._expect_nil("lindex", key, index)

    def lindex_equal_err(self, err_value: str, *args: Any) -> None:
        self._expect_error(err_value, "lindex", *args)

    def lrange_equal(self, key: str, start: int, end: int) -> None:
        values = self.map_list.get(key)
        if start > len(values or ()) or values is None:
            _expect_equal([], to_strings(self.conn.do("lrange", key, start, end)), "lrange")
            return
        start, end = abs(start), abs(end)
        expected = values[start:end + 1] if end <= len(values) else list(values)
        _expect_equal(expected, to_strings(self.conn.do("lrange", key, start, end)), "lrange")

    def lrange_equal_err(self, err_value: str, *args: Any) -> None:
        self._expect_error(err_value, "lrange", *args)

    def rpush_equal(self, key: str, values: List[str]) -> None:
        tracked = self.map_list.setdefault(key, [])
        tracked.extend(values)
        reply = to_int(self.conn.do("rpush", key, *values))
        _expect_equal(len(tracked), reply, "rpush")

    def rpush_equal_err(self, err_value: str, *args: Any) -> None:
        self._expect_error(err_value, "Rpush", *args)

    def rpop_equal(self, key: str) -> None:
        expected = self.map_list[key].pop()
        _expect_equal(expected, to_string(self.conn.do("rpop", key)), "rpop")

    def rpop_equal_err(self, err_value: str, *args: Any) -> None:
        self._expect_error(err_value, "Rpop", *args)

    def llen_equal(self, key: str) -> None:
        expected = len(self.map_list.get(key, ()))
        _expect_equal(expected, to_int(self.conn.do("llen", key)), "llen")

    def llen_equal_err(self, err_value: str, *args: Any) -> None:
        self._expect_error(err_value, "Llen", *args)