"""Checks of the sorted-set commands against a model of members and scores."""

from __future__ import annotations

import math
from decimal import Decimal
from typing import Any, Dict, List, Mapping

from titan.client import NilReplyError, ReplyError, to_int, to_string, to_strings


def _expect_equal(expected: Any, actual: Any, what: str) -> None:
    if expected != actual:
        raise AssertionError(f"{what}: expected {expected!r}, got {actual!r}")


def _format_score(score: float) -> str:
    """Shortest decimal form of a score, never in exponent notation."""
    if math.isnan(score):
        return "NaN"
    if math.isinf(score):
        return "+Inf" if score > 0 else "-Inf"
    return format(Decimal(repr(float(score))).normalize(), "f")


def expected_output(
    member_scores: Mapping[str, float], positive_order: bool, with_score: bool
) -> List[str]:
    """Full ordered range reply for a set of members: by score, then by member."""
    by_score: Dict[float, List[str]] = {}
    for member, score in member_scores.items():
        by_score.setdefault(score, []).append(member)
    output: List[str] = []
    for score in sorted(by_score, reverse=not positive_order):
        for member in sorted(by_score[score], reverse=not positive_order):
            output.append(member)
            if with_score:
                output.append(_format_score(score))
    return output


class ZSetChecker:
    """Runs sorted-set commands and checks each reply against tracked scores."""

    def __init__(self, conn) -> None:
        self.conn = conn
        self.member_scores: Dict[str, Dict[str, float]] = {}

    def _expect_error(self, err_value: str, command: str, *args: Any) -> None:
        try:
            self.conn.do(command, *args)
        except (ReplyError, NilReplyError) as exc:
            _expect_equal(err_value, str(exc), command)
        else:
            raise AssertionError(f"{command}: expected error {err_value!r}, got a reply")

    def _expect_any_error(self, command: str, *args: Any) -> None:
        try:
            self.conn.do(command, *args)
        except ReplyError:
            return
        raise AssertionError(f"{command}: expected an error, got a reply")

    def zadd_equal(self, key: str, *args: str) -> None:
        """ZADD score/member pairs; a bad argument list must be refused untouched."""
        tracked = self.member_scores.setdefault(key, {})
        old_len = len(tracked)
        if len(args) % 2:
            self._expect_any_error("zadd", key, *args)
            _expect_equal(old_len, len(tracked), "zadd members")
            return
        updates: Dict[str, float] = {}
        for raw_score, member in zip(args[::2], args[1::2]):
            if member in updates:
                continue
            try:
                updates[member] = float(raw_score)
            except ValueError:
                self._expect_any_error("zadd", key, *args)
                _expect_equal(old_len, len(tracked), "zadd members")
                return
        tracked.update(updates)
        reply = to_int(self.conn.do("zadd", key, *args))
        _expect_equal(len(tracked) - old_len, reply, "zadd")

    def zadd_equal_err(self, err_value: str, *args: Any) -> None:
        self._expect_error(err_value, "zadd", *args)

    def zrem_equal(self, key: str, *args: str) -> None:
        tracked = self.member_scores.get(key)
        deleted = 0
        if tracked is not None:
            for member in args:
                if member in tracked:
                    del tracked[member]
                    deleted += 1
        _expect_equal(deleted, to_int(self.conn.do("zrem", key, *args)), "zrem")

    def zrem_equal_err(self, err_value: str, *args: Any) -> None:
        self._expect_error(err_value, "zrem", *args)

    def zany_order_range_equal(
        self, key: str, start: int, stop: int, positive_order: bool, with_score: bool
    ) -> None:
        command = "zrange" if positive_order else "zrevrange"
        tracked = self.member_scores.get(key)
        if tracked is None or start >= len(tracked):
            _expect_equal([], to_strings(self.conn.do(command, key, start, stop)), command)
            return
        full = expected_output(tracked, positive_order, with_score)
        if with_score:
            reply = to_strings(self.conn.do(command, key, start, stop, "WITHSCORES"))
        else:
            reply = to_strings(self.conn.do(command, key, start, stop))
        size = len(tracked)
        if start < 0:
            start = max(start + size, 0)
        if stop < 0:
            stop = max(stop + size, 0)
        elif stop >= size:
            stop = size - 1
        expected = full[2 * start:2 * stop + 2] if with_score else full[start:stop + 1]
        _expect_equal(expected, reply, command)

    def zrange_equal(self, key: str, start: int, stop: int, with_score: bool) -> None:
        self.zany_order_range_equal(key, start, stop, True, with_score)

    def zrange_equal_err(self, err_value: str, *args: Any) -> None:
        self._expect_error(err_value, "zrange", *args)

    def zrevrange_equal(self, key: str, start: int, stop: int, with_score: bool) -> None:
        self.zany_order_range_equal(key, start, stop, False, with_score)

    def zrevrange_equal_err(self, err_value: str, *args: Any) -> None:
        self._expect_error(err_value, "zrevrange", *args)

    def zrange_by_score_equal(
        self, key: str, start: str, stop: str, with_scores: bool, limit: str, expected: str
    ) -> None:
        self.zany_order_range_by_score_equal(key, start, stop, with_scores, True, limit, expected)

    def zrevrange_by_score_equal(
        self, key: str, start: str, stop: str, with_scores: bool, limit: str, expected: str
    ) -> None:
        self.zany_order_range_by_score_equal(key, start, stop, with_scores, False, limit, expected)

    def zany_order_range_by_score_equal(
        self,
        key: str,
        start: str,
        stop: str,
        with_scores: bool,
        positive_order: bool,
        limit: str,
        expected: str,
    ) -> None:
        """Compare a by-score range with ``expected``, a space separated reply."""
        command = "zrangebyscore" if positive_order else "zrevrangebyscore"
        request: List[Any] = [key, start, stop]
        if with_scores:
            request.append("WITHSCORES")
        if limit:
            request.extend(limit.split(" "))
        reply = to_strings(self.conn.do(command, *request))
        _expect_equal(expected.split(" ") if expected else [], reply, command)

    def zrange_by_score_equal_err(self, err_value: str, *args: Any) -> None:
        self._expect_error(err_value, "zrangebyscore", *args)

    def zrevrange_by_score_equal_err(self, err_value: str, *args: Any) -> None:
        self._expect_error(err_value, "zrevrangebyscore", *args)

    def zcard_equal(self, key: str) -> None:
        expected = len(self.member_scores.get(key, {}))
        _expect_equal(expected, to_int(self.conn.do("zcard", key)), "zcard")

    def zcard_equal_err(self, err_value: str, *args: Any) -> None:
        self._expect_error(err_value, "zcard", *args)

    def zscore_equal(self, key: str, member: str) -> None:
        reply = self.conn.do("zscore", key, member)
        tracked = self.member_scores.get(key)
        if tracked is None or member not in tracked:
            if reply is not None:
                raise AssertionError(f"zscore: expected nil, got {reply!r}")
            return
        _expect_equal(_format_score(tracked[member]), to_string(reply), "zscore")

    def zscore_equal_err(self, err_value: str, *args: Any) -> None:
        self._expect_error(err_value, "zscore", *args)