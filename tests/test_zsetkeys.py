import pytest

from titan.zsetkeys import (
    MemberScore,
    zset_member_key,
    zset_score_key,
    zset_score_prefix,
)


def test_member_key_layout():
    assert zset_member_key(b"dkey", b"member") == b"dkey:M:member"


def test_score_prefix_layout():
    assert zset_score_prefix(b"dkey") == b"dkey:S:"


def test_score_key_layout():
    score = bytes(range(8))
    assert zset_score_key(b"dkey", score, b"m") == b"dkey:S:" + score + b":m"


def test_score_key_starts_with_prefix():
    dkey = b"ns:0:D:abc"
    key = zset_score_key(dkey, b"\x80" * 8, b"member1")
    assert key.startswith(zset_score_prefix(dkey))
    assert key.endswith(b":member1")


def test_score_keys_sort_by_score_bytes():
    dkey = b"data"
    low = zset_score_key(dkey, b"\x00" * 7 + b"\x01", b"z")
    high = zset_score_key(dkey, b"\x00" * 7 + b"\x02", b"a")
    assert low < high


def test_member_and_score_keys_differ():
    dkey = b"data"
    assert not zset_member_key(dkey, b"m").startswith(zset_score_prefix(dkey))


def test_member_score_is_frozen():
    item = MemberScore(member="m", score=1.5)
    assert item == MemberScore("m", 1.5)
    with pytest.raises(AttributeError):
        item.score = 2.0  # type: ignore[misc]