import pytest

from titan.checks_system import MultiChecker, SystemChecker
from titan.client import ReplyError


class ScriptedConn:
    def __init__(self, *replies):
        self.replies = list(replies)
        self.calls = []

    def do(self, command, *args):
        self.calls.append((command, *args))
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


def test_ping_equal_checks_both_forms():
    checker = SystemChecker(ScriptedConn(b"hello", "PONG"))
    checker.ping_equal()
    assert checker.conn.calls == [("ping", "hello"), ("ping",)]


def test_ping_equal_wrong_reply_fails():
    checker = SystemChecker(ScriptedConn(b"hello", "NOPE"))
    with pytest.raises(AssertionError):
        checker.ping_equal()
    assert checker.conn.calls == [("ping", "hello"), ("ping",)]


def test_auth_equal():
    password = "password"
    checker = SystemChecker(ScriptedConn("OK", ReplyError("ERR invalid password")))
    checker.auth_equal(password)
    assert checker.conn.calls[0] == ("auth", password)
    with pytest.raises(ReplyError):
        checker.auth_equal(password)


def test_ping_equal_err():
    message = "ERR wrong number of arguments for 'ping' command"
    checker = SystemChecker(ScriptedConn(ReplyError(message)))
    checker.ping_equal_err(message, "ping", "hello", "fuck")
    assert checker.conn.calls == [("ping", "ping", "hello", "fuck")]


def test_multi_transaction_round_trip():
    checker = MultiChecker(ScriptedConn("OK", "QUEUED", "QUEUED", ["OK", 3]))
    checker.multi_equal()
    checker.cmd()
    checker.exec_equal()
    assert checker.value == ["OK", 3]
    assert checker.conn.calls[-1] == ("exec",)


def test_exec_equal_mismatch_fails():
    checker = MultiChecker(ScriptedConn(["OK"]))
    checker.value = ["OK", 3]
    with pytest.raises(AssertionError):
        checker.exec_equal()
    assert checker.conn.calls == [("exec",)]
    assert checker.value == ["OK", 3]


def test_cmd_requires_queued():
    checker = MultiChecker(ScriptedConn("OK"))
    with pytest.raises(AssertionError):
        checker.cmd()
    assert checker.conn.calls == [("SET", "key-mulit-string", "value")]


def test_exec_equal_err_variants():
    checker = MultiChecker(
        ScriptedConn(ReplyError("ERR EXEC without MULTI"), ReplyError("ERR EXEC without MULTI"), [])
    )
    checker.exec_equal_err("ERR EXEC without MULTI")
    checker.exec_equal_err("")
    with pytest.raises(AssertionError):
        checker.exec_equal_err("ERR EXEC without MULTI")
    assert len(checker.conn.calls) == 3


def test_multi_nested_error():
    message = "ERR MULTI calls can not be nested"
    checker = MultiChecker(ScriptedConn(ReplyError(message), "OK"))
    checker.multi_equal_err(message)
    with pytest.raises(AssertionError):
        checker.multi_equal_err(message)
    assert checker.conn.calls == [("multi",), ("multi",)]