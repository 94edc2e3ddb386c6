import pytest

from titan.checks_zset import ZSetChecker, expected_output
from titan.client import ReplyError

SCORES = {
    "member1": 2.0,
    "member2": 1.5,
    "member3": 3.6,
    "member4": -3.5,
    "member5": 0.0,
    "member6": 2.05,
    "member11": 2.0,
}
FULL = "member4 -3.5 member5 0 member2 1.5 member1 2 member11 2 member6 2.05 member3 3.6"


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


def test_expected_output_with_scores():
    assert expected_output(SCORES, True, True) == FULL.split(" ")


def test_expected_output_reverse_is_mirror():
    forward = expected_output(SCORES, True, False)
    assert expected_output(SCORES, False, False) == list(reversed(forward))
    assert forward == FULL.split(" ")[::2]


def test_zadd_counts_new_members_first_pair_wins():
    checker = ZSetChecker(ScriptedConn(2))
    checker.zadd_equal("key-zset", "2.0", "member1", "-1.5", "member2", "2.5", "member1")
    assert checker.member_scores["key-zset"] == {"member1": 2.0, "member2": -1.5}
    assert checker.conn.calls[0][0] == "zadd"


def test_zadd_wrong_count_fails():
    checker = ZSetChecker(ScriptedConn(1))
    with pytest.raises(AssertionError):
        checker.zadd_equal("k", "1.0", "a", "2.0", "b")
    assert checker.member_scores["k"] == {"a": 1.0, "b": 2.0}
    assert checker.conn.calls == [("zadd", "k", "1.0", "a", "2.0", "b")]


def test_zadd_odd_args_must_be_refused():
    checker = ZSetChecker(ScriptedConn(ReplyError("ERR syntax error"), 1))
    checker.zadd_equal("k", "1.0")
    assert checker.member_scores["k"] == {}
    with pytest.raises(AssertionError):
        checker.zadd_equal("k", "1.0")


def test_zadd_bad_float_leaves_model_untouched():
    checker = ZSetChecker(ScriptedConn(ReplyError("ERR value is not a valid float")))
    checker.zadd_equal("k", "1.0", "a", "v", "b")
    assert checker.member_scores["k"] == {}


def test_zrem_counts_tracked_members():
    checker = ZSetChecker(ScriptedConn(2, 1))
    checker.zadd_equal("k", "2.0", "a", "2.05", "b")
    checker.zrem_equal("k", "a", "e")
    assert checker.member_scores["k"] == {"b": 2.05}


def test_zrange_with_scores_slices_model():
    checker = ZSetChecker(ScriptedConn())
    checker.member_scores["key-zset"] = dict(SCORES)
    full = FULL.split(" ")
    checker.conn.replies.append([s.encode() for s in full])
    checker.zrange_equal("key-zset", 0, -1, True)
    assert checker.conn.calls[-1] == ("zrange", "key-zset", 0, -1, "WITHSCORES")
    checker.conn.replies.append([s.encode() for s in full[:2]])
    with pytest.raises(AssertionError):
        checker.zrange_equal("key-zset", 0, -1, True)


def test_zrevrange_missing_key_expects_empty():
    checker = ZSetChecker(ScriptedConn([]))
    checker.zrevrange_equal("nothing", 0, -1, True)
    assert checker.conn.calls == [("zrevrange", "nothing", 0, -1)]


def test_zrange_by_score_builds_request():
    checker = ZSetChecker(ScriptedConn([b"member2", b"1.5", b"member1", b"2"]))
    checker.zrange_by_score_equal("key-zset", "(0.0", "2.05", True, "LIMIT 0 2", "member2 1.5 member1 2")
    assert checker.conn.calls[0] == (
        "zrangebyscore", "key-zset", "(0.0", "2.05", "WITHSCORES", "LIMIT", "0", "2",
    )


def test_zrange_by_score_empty_expected():
    checker = ZSetChecker(ScriptedConn([], [b"member6"]))
    checker.zrange_by_score_equal("key-zset", "(0.0", "2.05", True, "LIMIT 4 2", "")
    with pytest.raises(AssertionError):
        checker.zrange_by_score_equal("key-zset", "(0.0", "2.05", True, "LIMIT 4 2", "")
    request = ("zrangebyscore", "key-zset", "(0.0", "2.05", "WITHSCORES", "LIMIT", "4", "2")
    assert checker.conn.calls == [request, request]


def test_zscore_present_and_missing():
    checker = ZSetChecker(ScriptedConn(b"2", None, b"2"))
    checker.member_scores["key-zset"] = {"member1": 2.0}
    checker.zscore_equal("key-zset", "member1")
    checker.zscore_equal("key-zset", "member5")
    with pytest.raises(AssertionError):
        checker.zscore_equal("key-zset1", "member1")
    assert checker.conn.calls == [
        ("zscore", "key-zset", "member1"),
        ("zscore", "key-zset", "member5"),
        ("zscore", "key-zset1", "member1"),
    ]


def test_zcard_and_errors():
    message = "ERR wrong number of arguments for 'zcard' command"
    checker = ZSetChecker(ScriptedConn(0, ReplyError(message), 1))
    checker.zcard_equal("key-zset1")
    checker.zcard_equal_err(message, "set", "v")
    assert checker.conn.calls[1] == ("zcard", "set", "v")
    with pytest.raises(AssertionError):
        checker.zcard_equal_err(message)