"""End-to-end checks of a running server's commands, case by case."""

from __future__ import annotations

import argparse
import sys
import time
from typing import Callable, List, Optional

from titan.checks_key import KeyChecker
from titan.checks_list import ListChecker
from titan.checks_string import StringChecker
from titan.checks_system import MultiChecker, SystemChecker
from titan.checks_zset import ZSetChecker
from titan.client import dial, to_string

_DEFAULT_ADDR = ":7369"
_DEFAULT_PASSWORD = "password"

_ZSET_ALL = "member4 -3.5 member5 0 member2 1.5 member1 2 member11 2 member6 2.05 member3 3.6"


def _long_list_values() -> List[str]:
    return [part for i in range(4000) for part in ("v", str(i))]


class AutoClient:
    """Drives the normal-path checks over one authenticated connection."""

    def __init__(
        self,
        dialer: Callable = dial,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._dialer = dialer
        self._sleep = sleep
        self._clock = clock
        self._conn = None
        self._password = ""
        self.es: Optional[StringChecker] = None
        self.el: Optional[ListChecker] = None
        self.ek: Optional[KeyChecker] = None
        self.ez: Optional[ZSetChecker] = None
        self.system: Optional[SystemChecker] = None
        self.em: Optional[MultiChecker] = None

    def __enter__(self) -> "AutoClient":
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
        self._password = password
        self.es = StringChecker(conn, sleep=self._sleep)
        self.ek = KeyChecker(conn)
        self.el = ListChecker(conn)
        self.ez = ZSetChecker(conn)
        self.system = SystemChecker(conn)
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
        es = self.es
        es.setnx_equal("key-setx", "v1")
        es.setex_equal("key-set", "v2", 1)
        es.psetex_equal("key-set", "v3", 3000)

        es.set_equal("key-set", "value")
        es.append_equal("key-set", "value")
        es.append_equal("append", "value")
        es.strlen_equal("key-set")

        es.mset_equal("key-set", "value")
        es.mget_equal("key-not-exist")
        es.incr_equal("incr")
        es.incr_equal("incr")
        es.incr_by_equal("incr", 19)
        es.decr_equal("incr")
        es.decr_by_equal("incr", 19)
        es.incr_by_float_equal("incr", 1.111111)
        es.incr_by_float_equal("incr", 2.1e2)
        es.strlen_equal("heng")

    def list_case(self) -> None:
        self._ensure_started()
        el = self.el
        el.lpush_equal("key-list", "v1", "v2", "v3", "v4")
        el.llen_equal("key-list")
        el.lset_equal("key-list", 3, "v0")
        el.lindex_equal("key-list", 3)
        el.lrange_equal("key-list", 0, 10)
        el.lrange_equal("key-list", 99, 100)
        el.lpop_equal("key-list")
        el.lpop_equal("key-list-l")

        el.lpush_equal("zkey-list", *_long_list_values())
        el.llen_equal("zkey-list")
        el.lset_equal("zkey-list", 3, "v0")
        el.lindex_equal("zkey-list", 3)
        el.lrange_equal("zkey-list", 0, 10)
        el.lrange_equal("zkey-list", 99, 100)
        el.lpop_equal("zkey-list")

    def zset_case(self) -> None:
        self._ensure_started()
        ez, ek = self.ez, self.ek
        ez.zadd_equal("key-zset", "2.0", "member1", "-1.5", "member2", "3.6", "member3",
                      "-3.5", "member4", "2.5", "member1")
        ez.zcard_equal("key-zset")
        ez.zcard_equal("key-zset1")
        ez.zscore_equal("key-zset1", "member1")
        ez.zscore_equal("key-zset", "member1")
        ez.zscore_equal("key-zset", "member5")
        for start, stop, with_score in ((0, -1, True), (0, -1, False), (1, 4, True),
                                        (-4, 5, True), (-6, 5, True), (4, 1, True),
                                        (6, 10, True)):
            ez.zrange_equal("key-zset", start, stop, with_score)
        for start, stop, with_score in ((0, -1, True), (0, -1, False), (1, 4, True),
                                        (-4, 5, True), (-6, 5, True), (4, 1, True),
                                        (6, 10, True)):
            ez.zrevrange_equal("key-zset", start, stop, with_score)

        ez.zadd_equal("key-zset", "0.0", "member5", "1.5", "member2")
        ez.zrange_equal("key-zset", 0, -1, True)

        ez.zadd_equal("key-zset", "3.6", "member3", "0.0", "member5")
        ez.zrange_equal("key-zset", 0, -1, True)

        ez.zadd_equal("key-zset", "2.0", "member11", "2.05", "member6")
        ez.zrange_equal("key-zset", 0, -1, True)

        by_score = ez.zrange_by_score_equal
        by_score("key-zset", "-inf", "+inf", True, "", _ZSET_ALL)
        by_score("key-zset", "(-inf", "+inf", True, "", _ZSET_ALL)
        by_score("key-zset", "-inf", "(+inf", True, "", _ZSET_ALL)
        by_score("key-zset", "-inf", "inf", True, "", _ZSET_ALL)
        by_score("key-zset", "-inf", "inf", False, "",
                 "member4 member5 member2 member1 member11 member6 member3")
        by_score("key-zset", "-3.5", "inf", True, "", _ZSET_ALL)
        by_score("key-zset", "(-3.5", "inf", True, "",
                 "member5 0 member2 1.5 member1 2 member11 2 member6 2.05 member3 3.6")
        by_score("key-zset", "0.0", "inf", True, "",
                 "member5 0 member2 1.5 member1 2 member11 2 member6 2.05 member3 3.6")
        by_score("key-zset", "(0.0", "inf", True, "",
                 "member2 1.5 member1 2 member11 2 member6 2.05 member3 3.6")
        by_score("key-zset", "(0.0", "3.6", True, "",
                 "member2 1.5 member1 2 member11 2 member6 2.05 member3 3.6")
        by_score("key-zset", "(0.0", "+3.6", True, "",
                 "member2 1.5 member1 2 member11 2 member6 2.05 member3 3.6")
        by_score("key-zset", "(0.0", "(3.6", True, "",
                 "member2 1.5 member1 2 member11 2 member6 2.05")
        by_score("key-zset", "(0.0", "2.05", True, "",
                 "member2 1.5 member1 2 member11 2 member6 2.05")
        by_score("key-zset", "(0.0", "2.05", True, "LIMIT -1 1", "")
        by_score("key-zset", "(0.0", "2.05", True, "limit 0 -1",
                 "member2 1.5 member1 2 member11 2 member6 2.05")
        by_score("key-zset", "(0.0", "2.05", True, "LIMIT 0 0", "")
        by_score("key-zset", "(0.0", "2.05", True, "LIMIT 0 2", "member2 1.5 member1 2")
        by_score("key-zset", "(0.0", "2.05", True, "LIMIT 0 4",
                 "member2 1.5 member1 2 member11 2 member6 2.05")
        by_score("key-zset", "(0.0", "2.05", True, "LIMIT 0 5",
                 "member2 1.5 member1 2 member11 2 member6 2.05")
        by_score("key-zset", "(0.0", "2.05", True, "LIMIT 1 2", "member1 2 member11 2")
        by_score("key-zset", "(0.0", "2.05", True, "LIMIT 3 2", "member6 2.05")
        by_score("key-zset", "(0.0", "2.05", True, "LIMIT 4 2", "")
        by_score("key-zset", "(2", "3.6", True, "", "member6 2.05 member3 3.6")
        by_score("key-zset", "0", "(2", True, "", "member5 0 member2 1.5")

        ez.zrem_equal("key-zset", "member2", "member1", "member3", "member4", "member1")
        ez.zrange_equal("key-zset", 0, -1, True)

        ek.expire_equal("key-zset", 5, 1)
        ez.zrem_equal("key-zset", "member5", "member11", "member6", "member7")
        ez.zrange_equal("key-zset", 0, -1, True)
        ek.exists_equal(0, "key-zset")
        ek.ttl_equal("key-set", -2)
        # an expiry left over from the old object must not delete the new one
        ez.zadd_equal("key-zset", "1.0", "m1")
        self._sleep(10.0)
        ek.exists_equal(1, "key-zset")
        ek.del_equal(1, "key-zset")

        ez.zadd_equal("key-zset-short-key", "2.0", "a", "2.05", "b")
        ez.zrem_equal("key-zset-short-key", "a", "e")
        ek.del_equal(1, "key-zset-short-key")

    def key_case(self) -> None:
        self._ensure_started()
        es, el, ek, ez = self.es, self.el, self.ek, self.ez
        ek.ttl_equal("key-set", -1)
        ek.random_key_equal()
        ek.scan_equal("", 4)
        ek.exists_equal(3, "key-set", "incr", "foo", "append")
        ek.del_equal(4, "key-set", "incr", "foo", "append", "key-setx")
        ek.ttl_equal("key-set", -2)
        ek.random_key_equal()
        ek.scan_equal("", 0)

        es.set_equal("key-set", "value")
        ek.type_equal("key-set", "string")
        ek.object_equal("key-set", "raw")
        ek.expire_equal("key-set", 2, 1)
        self._sleep(0.001)
        ek.ttl_equal("key-set", 1)
        self._sleep(2.0)
        ek.expire_equal("key-set", 1, 0)
        ek.expire_equal("key-set", 0, 0)

        el.lpush_equal("key-set", "value")
        ek.type_equal("key-set", "list")
        ek.pexpire_equal("key-set", 2000, 1)
        self._sleep(0.001)
        ek.ttl_equal("key-set", 1)
        self._sleep(2.0)
        ek.pexpire_equal("key-set", 1, 0)
        ek.pexpire_equal("key-set", 0, 0)

        at = int(self._clock()) + 1
        el.lpush_equal("zkey-listx", *_long_list_values())
        ek.type_equal("zkey-listx", "list")
        ek.object_equal("zkey-listx", "ziplist")
        ek.expire_at_equal("zkey-listx", at, 1)
        self._sleep(1.0)
        ek.expire_at_equal("zkey-listx", at, 0)

        at = (int(self._clock()) + 1) * 1000
        el.lpush_equal("key-setz", "value")
        ek.type_equal("key-setz", "list")
        ek.object_equal("key-setz", "linkedlist")
        ek.pexpire_at_equal("key-setz", at, 1)
        ek.ttl_equal("key-setz", 0)
        self._sleep(2.0)
        ek.pexpire_at_equal("key-setz", at, 0)

        at = int(self._clock()) + 1
        es.set_equal("zkey-listx", "value")
        ek.expire_at_equal("zkey-listx", at, 1)
        ek.persist_equal("zkey-listx", 1)
        ek.persist_equal("zkey-listx", 0)

        ez.zadd_equal("key-zset", "2.0", "member1")
        ek.exists_equal(1, "key-zset")
        ek.type_equal("key-zset", "zset")
        ek.object_equal("key-zset", "hashtable")
        ek.ttl_equal("key-zset", -1)
        ek.expire_equal("key-zset", 2, 1)
        self._sleep(0.001)
        ek.ttl_equal("key-zset", 1)
        self._sleep(2.0)
        ek.expire_equal("key-zset", 1, 0)

        ez.zadd_equal("key-zset1", "2.0", "member1")
        ek.del_equal(1, "key-zset1")
        ek.exists_equal(0, "key-zset1")

    def system_case(self) -> None:
        self._ensure_started()
        self.system.auth_equal(self._password)
        self.system.ping_equal()

    def multi_case(self) -> None:
        self._ensure_started()
        self.em.multi_equal()
        self.em.cmd()
        self.em.exec_equal()


def main(argv=None) -> int:
    """Run the selected check cases against a server."""
    parser = argparse.ArgumentParser(description="Check a server's command replies.")
    parser.add_argument("--addr", default=_DEFAULT_ADDR, help="server address")
    parser.add_argument("--testcase", default="", help="string, list or key; empty runs all")
    parser.add_argument("--password", default=_DEFAULT_PASSWORD, help="AUTH argument")
    options = parser.parse_args(argv)

    client = AutoClient()
    client.start(options.addr, options.password)
    cases = {
        "string": [client.string_case],
        "list": [client.list_case],
        "key": [client.key_case],
    }.get(options.testcase, [client.string_case, client.list_case, client.key_case])
    failed = False
    try:
        for case in cases:
            try:
                case()
            except AssertionError as exc:
                print(f"{case.__name__} failed: {exc}", file=sys.stderr)
                failed = True
    finally:
        client.close()
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())