"""Checks that a running server rejects malformed commands with the right errors."""

from __future__ import annotations

import time
from typing import Callable, Optional

from titan.checks_key import KeyChecker
from titan.checks_list import ListChecker
from titan.checks_string import StringChecker
from titan.checks_system import MultiChecker, SystemChecker
from titan.checks_zset import ZSetChecker
from titan.client import dial, to_string

_WRONG_TYPE = "WRONGTYPE Operation against a key holding the wrong kind of value"
_NOT_INTEGER = "ERR value is not an integer or out of range"
_SYNTAX = "ERR syntax error"
_BAD_SCORE = "ERR min or max is not a float"
_ZSET_KEY = "key-zset-abnormal"


def _arity(command: str) -> str:
    return f"ERR wrong number of arguments for '{command}' command"


class Abnormal:
    """Drives the error-path checks over one authenticated connection."""

    def __init__(self, dialer: Callable = dial, sleep: Callable[[float], None] = time.sleep) -> None:
        self._dialer = dialer
        self._sleep = sleep
        self._conn = None
        self.es: Optional[StringChecker] = None
        self.el: Optional[ListChecker] = None
        self.ek: Optional[KeyChecker] = None
        self.ez: Optional[ZSetChecker] = None
        self.ess: Optional[SystemChecker] = None
        self.em: Optional[MultiChecker] = None

    def __enter__(self) -> "Abnormal":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def start(self, addr, password: str) -> None:
        """Connect to ``addr``, authenticate and set up the checkers."""
        conn = self._dialer(addr)
        try:
            to_string(conn.do("auth", password))
        except BaseException:
            conn.close()
            raise
        self._conn = conn
        self.es = StringChecker(conn, sleep=self._sleep)
        self.ek = KeyChecker(conn)
        self.el = ListChecker(conn)
        self.ez = ZSetChecker(conn)
        self.ess = SystemChecker(conn)
        self.em = MultiChecker(conn)

    def close(self) -> None:
        """Close the connection; closing twice is harmless."""
        conn, self._conn = self._conn, None
        if conn is not None:
            conn.close()

    def _ensure_started(self) -> None:
        if self._conn is None:
            raise RuntimeError("client not started")

    def string_case(self) -> None:
        self._ensure_started()
        es, el = self.es, self.el
        el.lpush_equal("lpush", "key")

        es.set_equal_err(_arity("set"), "fuck")
        es.set_equal_err(_NOT_INTEGER, "key", "v", "ex", "second")
        es.set_equal_err("ERR invalid expire time in set", "key", "v", "ex", -10)
        es.set_equal_err(_SYNTAX, "key", "v", "nx", "second")

        es.get_equal_err(_arity("get"), "hello", "fuck")
        es.get_equal_err(_WRONG_TYPE, "lpush")

        es.mset_equal_err(_arity("mset"))
        es.mset_equal_err(_arity("mset"), "key")

        es.mget_equal_err(_arity("mget"))
        es.mget_equal("lpush")

        es.append_equal_err(_arity("append"), "he", "he", "he")
        es.append_equal_err(_arity("append"), "he")
        es.append_equal_err(_WRONG_TYPE, "lpush", "hehe")

        es.incr_equal_err(_arity("incr"), "1", "m")
        es.incr_equal_err(_WRONG_TYPE, "lpush")

        es.strlen_equal_err(_arity("strlen"), "heng", "heng")
        es.strlen_equal_err(_WRONG_TYPE, "lpush")

        el.lpop_equal("lpush")

    def list_case(self) -> None:
        self._ensure_started()
        es, el, ek = self.es, self.el, self.ek
        es.set_equal("set", "v")
        el.lpush_equal("lpush", "key")

        el.llen_equal_err(_arity("llen"), "fuck", "z")
        el.llen_equal_err(_WRONG_TYPE, "set")

        el.lpop_equal_err(_arity("lpop"), "hello", "fuck")
        el.lpop_equal_err(_WRONG_TYPE, "set")

        el.lpush_equal_err(_arity("lpush"), "z")
        el.lpush_equal_err(_WRONG_TYPE, "set", "key")

        el.lindex_equal_err(_arity("lindex"), "z", "z", "z")
        el.lindex_equal_err(_WRONG_TYPE, "set", 1)

        el.lrange_equal_err(_arity("lrange"), "he", "he", "he", "he")
        el.lrange_equal_err(_WRONG_TYPE, "set", "1", "1")
        el.lrange_equal_err(_NOT_INTEGER, "setx", "z", "1")
        el.lrange_equal_err(_NOT_INTEGER, "setx", "1", "z")

        el.lset_equal_err(_arity("lset"), "1", "h")
        el.lset_equal_err(_WRONG_TYPE, "set", "1", "z")
        el.lset_equal_err("ERR no such key", "setx", "1", "z")
        el.lset_equal_err(_NOT_INTEGER, "lpush", "x", "z")
        el.lset_equal_err("ERR index out of range", "lpush", "-100", "z")

        el.rpush_equal_err(_arity("rpush"), "heng")
        el.rpush_equal_err(_WRONG_TYPE, "set", "k")

        el.lpop_equal("lpush")
        ek.del_equal(1, "set")

    def zset_case(self) -> None:
        self._ensure_started()
        es, ez, ek = self.es, self.ez, self.ek
        es.set_equal("set", "v")
        ez.zadd_equal(_ZSET_KEY, "1.2", "member1")

        ez.zcard_equal_err(_arity("zcard"))
        ez.zcard_equal_err(_arity("zcard"), "set", "v")
        ez.zcard_equal_err(_WRONG_TYPE, "set")

        ez.zadd_equal_err(_arity("zadd"))
        ez.zadd_equal_err(_arity("zadd"), "set")
        ez.zadd_equal_err(_arity("zadd"), "set", "v")
        ez.zadd_equal_err(_SYNTAX, "set", "v", "m1", "v2")
        ez.zadd_equal_err(_WRONG_TYPE, "set", "1", "m1")
        ez.zadd_equal_err("ERR value is not a valid float", _ZSET_KEY, "v", "m1")
        ez.zadd_equal_err("ERR value is not a valid float", _ZSET_KEY, "nan", "m1")

        for check, name in ((ez.zrange_equal_err, "zrange"),
                            (ez.zrevrange_equal_err, "zrevrange")):
            check(_arity(name))
            check(_arity(name), "set")
            check(_arity(name), "set", "0")
            check(_WRONG_TYPE, "set", "0", "1")
            check(_NOT_INTEGER, _ZSET_KEY, "0", "a")
            check(_NOT_INTEGER, _ZSET_KEY, "a", "0")
            check(_NOT_INTEGER, _ZSET_KEY, "0", "9223372036854775808")
            check(_NOT_INTEGER, _ZSET_KEY, "9223372036854775808", "0")

        by_score = ez.zrange_by_score_equal_err
        by_score(_arity("zrangebyscore"))
        by_score(_arity("zrangebyscore"), "set")
        by_score(_arity("zrangebyscore"), "set", "0")
        by_score(_WRONG_TYPE, "set", "0", "1")
        by_score(_BAD_SCORE, _ZSET_KEY, "0", "a")
        by_score(_BAD_SCORE, _ZSET_KEY, "a", "0")
        by_score(_BAD_SCORE, _ZSET_KEY, "--3", "3")
        by_score(_BAD_SCORE, _ZSET_KEY, "-3", "++3")
        by_score(_BAD_SCORE, _ZSET_KEY, ")-3", "3")
        by_score(_BAD_SCORE, _ZSET_KEY, "-3", ")3")
        by_score(_SYNTAX, _ZSET_KEY, "-3", "3", "WITHSCORE")
        by_score(_SYNTAX, _ZSET_KEY, "-3", "3", "LIMIT")
        by_score(_SYNTAX, _ZSET_KEY, "-3", "3", "LIMIT", "0")
        by_score(_SYNTAX, _ZSET_KEY, "-3", "3", "LIMI", "0", "3")
        by_score(_NOT_INTEGER, _ZSET_KEY, "-3", "3", "LIMIT", "0", "a")
        by_score(_NOT_INTEGER, _ZSET_KEY, "-3", "3", "LIMIT", "a", "0")

        ez.zscore_equal_err(_arity("zscore"))
        ez.zscore_equal_err(_arity("zscore"), "set")
        ez.zscore_equal_err(_arity("zscore"), "set", "m1", "m2")
        ez.zscore_equal_err(_WRONG_TYPE, "set", "m1")

        ez.zrem_equal_err(_arity("zrem"))
        ez.zrem_equal_err(_arity("zrem"), "set")
        ez.zrem_equal_err(_WRONG_TYPE, "set", "m1")

        ek.del_equal(1, _ZSET_KEY)
        ek.del_equal(1, "set")

    def key_case(self) -> None:
        self._ensure_started()
        ek = self.ek
        ek.del_equal_err(_arity("del"))
        ek.exists_equal_err(_arity("exists"))
        ek.expire_equal_err(_arity("expire"))
        ek.expire_equal_err(_NOT_INTEGER, "key", "z")
        ek.random_key_equal_err(_arity("randomkey"), "", "", "")
        ek.scan_equal_err(_arity("scan"))
        ek.ttl_equal_err(_arity("ttl"), "heng", "heng")

    def system_case(self) -> None:
        self._ensure_started()
        self.ess.ping_equal_err(_arity("ping"), "ping", "hello", "fuck")

    def multi_case(self) -> None:
        self._ensure_started()
        em = self.em
        em.multi_equal_err(_arity("multi"), "he", "he")
        em.exec_equal_err(_arity("exec"), "he", "he")
        em.exec_equal_err("ERR EXEC without MULTI")
        em.multi_equal()
        em.multi_equal_err("ERR MULTI calls can not be nested")
        em.exec_equal_err("")