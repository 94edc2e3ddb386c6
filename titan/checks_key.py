"""Checks of the key-space commands."""

from __future__ import annotations

from typing import Any

from titan.client import NilReplyError, ReplyError, to_int, to_string, to_strings


def _expect_equal(expected: Any, actual: Any, what: str) -> None:
    if expected != actual:
        raise AssertionError(f"{what}: expected {expected!r}, got {actual!r}")


class KeyChecker:
    """Runs key commands and checks their replies."""

    def __init__(self, conn) -> None:
        self.conn = conn

    def _expect_error(self, err_value: str, command: str, *args: Any) -> None:
        try:
            self.conn.do(command, *args)
        except (ReplyError, NilReplyError) as exc:
            _expect_equal(err_value, str(exc), command)
        else:
            raise AssertionError(f"{command}: expected error {err_value!r}, got a reply")

    def _expect_int(self, expected: int, command: str, *args: Any) -> None:
        _expect_equal(expected, to_int(self.conn.do(command, *args)), command)

    def del_equal(self, expect_reply: int, *args: str) -> None:
        self._expect_int(expect_reply, "Del", *args)

    def del_equal_err(self, err_value: str, *args: Any) -> None:
        self._expect_error(err_value, "del", *args)

    def exists_equal(self, expect_reply: int, *args: str) -> None:
        self._expect_int(expect_reply, "exists", *args)

    def exists_equal_err(self, err_value: str, *args: Any) -> None:
        self._expect_error(err_value, "exists", *args)

    def ttl_equal(self, key: str, expect_reply: int) -> None:
        self._expect_int(expect_reply, "ttl", key)

    def ttl_equal_err(self, err_value: str, *args: Any) -> None:
        self._expect_error(err_value, "ttl", *args)

    def pttl_equal(self, key: str, expect_reply: int) -> None:
        self._expect_int(expect_reply, "ttl", key)

    def pttl_equal_err(self, err_value: str, *args: Any) -> None:
        self._expect_error(err_value, "ttl", *args)

    def info_equal_err(self, err_value: str, *args: Any) -> None:
        self._expect_error(err_value, "info", *args)

    def scan_equal(self, match: str, expect_count: int) -> None:
        """Scan the whole key space, optionally by pattern, and count the keys."""
        if match:
            reply = self.conn.do("Scan", 0, "match", match, "count", 10000)
        else:
            reply = self.conn.do("Scan", 0, "count", 10000)
        if not isinstance(reply, list) or len(reply) < 2:
            raise AssertionError(f"scan: malformed reply {reply!r}")
        _expect_equal(expect_count, len(to_strings(reply[1])), "scan")

    def scan_equal_err(self, err_value: str, *args: Any) -> None:
        self._expect_error(err_value, "scan", *args)

    def random_key_equal(self) -> Any:
        """Run RANDOMKEY and return its reply; an error reply raises."""
        return self.conn.do("RANDOMKEY")

    def random_key_equal_err(self, err_value: str, *args: Any) -> None:
        self._expect_error(err_value, "Randomkey", *args)

    def expire_equal(self, key: str, value: int, expect_value: int) -> None:
        self._expect_int(expect_value, "expire", key, value)

    def expire_equal_err(self, err_value: str, *args: Any) -> None:
        self._expect_error(err_value, "expire", *args)

    def expire_at_equal(self, key: str, value: int, expect_value: int) -> None:
        self._expect_int(expect_value, "expireat", key, value)

    def expire_at_equal_err(self, err_value: str, *args: Any) -> None:
        self._expect_error(err_value, "expireat", *args)

    def pexpire_equal(self, key: str, value: int, expect_value: int) -> None:
        self._expect_int(expect_value, "pexpire", key, value)

    def pexpire_equal_err(self, err_value: str, *args: Any) -> None:
        self._expect_error(err_value, "pexpire", *args)

    def pexpire_at_equal(self, key: str, value: int, expect_value: int) -> None:
        self._expect_int(expect_value, "pexpireat", key, value)

    def pexpire_at_equal_err(self, err_value: str, *args: Any) -> None:
        self._expect_error(err_value, "pexpireat", *args)

    def type_equal(self, key: str, expect_value: str) -> None:
        _expect_equal(expect_value, to_string(self.conn.do("type", key)), "type")

    def type_equal_err(self, err_value: str, *args: Any) -> None:
        self._expect_error(err_value, "type", *args)

    def object_equal(self, key: str, expect_value: str) -> None:
        reply = to_string(self.conn.do("object", "encoding", key))
        _expect_equal(expect_value, reply, "object encoding")

    def object_equal_err(self, err_value: str, *args: Any) -> None:
        self._expect_error(err_value, "object", "encoding", *args)

    def persist_equal(self, key: str, expect_value: int) -> None:
        self._expect_int(expect_value, "persist", key)

    def persist_equal_err(self, err_value: str, *args: Any) -> None:
        self._expect_error(err_value, "persist", *args)