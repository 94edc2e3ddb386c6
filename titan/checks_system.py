"""Checks of the connection and transaction commands."""

from __future__ import annotations

from typing import Any, List

from titan.client import NilReplyError, ReplyError, to_string


def _expect_equal(expected: Any, actual: Any, what: str) -> None:
    if expected != actual:
        raise AssertionError(f"{what}: expected {expected!r}, got {actual!r}")


def _expect_error(conn, err_value: str, command: str, *args: Any) -> None:
    try:
        conn.do(command, *args)
    except (ReplyError, NilReplyError) as exc:
        _expect_equal(err_value, str(exc), command)
    else:
        raise AssertionError(f"{command}: expected error {err_value!r}, got a reply")


class SystemChecker:
    """Checks AUTH and PING."""

    def __init__(self, conn) -> None:
        self.conn = conn

    def auth_equal(self, password: str) -> None:
        _expect_equal("OK", to_string(self.conn.do("auth", password)), "auth")

    def auth_equal_err(self, err_value: str, *args: Any) -> None:
        _expect_error(self.conn, err_value, "auth", *args)

    def ping_equal(self) -> None:
        _expect_equal("hello", to_string(self.conn.do("ping", "hello")), "ping")
        _expect_equal("PONG", to_string(self.conn.do("ping")), "ping")

    def ping_equal_err(self, err_value: str, *args: Any) -> None:
        _expect_error(self.conn, err_value, "ping", *args)


class MultiChecker:
    """Checks MULTI/EXEC, remembering the replies queued commands should give."""

    def __init__(self, conn) -> None:
        self.conn = conn
        self.value: List[Any] = []

    def multi_equal(self) -> None:
        _expect_equal("OK", to_string(self.conn.do("multi")), "multi")

    def multi_equal_err(self, err_value: str, *args: Any) -> None:
        _expect_error(self.conn, err_value, "multi", *args)

    def exec_equal(self) -> None:
        reply = self.conn.do("exec")
        _expect_equal(self.value, reply, "exec")

    def exec_equal_err(self, err_value: str, *args: Any) -> None:
        """Run EXEC; an empty ``err_value`` accepts any outcome."""
        if err_value:
            _expect_error(self.conn, err_value, "exec", *args)
            return
        try:
            self.conn.do("exec", *args)
        except (ReplyError, NilReplyError):
            pass

    def cmd(self) -> None:
        """Queue a SET and an LPUSH inside a transaction."""
        reply = to_string(self.conn.do("SET", "key-mulit-string", "value"))
        _expect_equal("QUEUED", reply, "set")
        self.value.append("OK")
        reply = to_string(self.conn.do("lpush", "key-mulit-list", "value", "value", "value"))
        _expect_equal("QUEUED", reply, "lpush")
        self.value.append(3)