"""Key layout for sorted-set members and scores."""

from __future__ import annotations

from dataclasses import dataclass

BYTE_SCORE_LEN = 8


@dataclass(frozen=True)
class MemberScore:
    """A sorted-set member together with its score."""

    member: str
    score: float


def zset_member_key(dkey: bytes, member: bytes) -> bytes:
    """Key that maps a member to its encoded score."""
    return bytes(dkey) + b":M:" + bytes(member)


def zset_score_prefix(dkey: bytes) -> bytes:
    """Prefix shared by every score key of a sorted set."""
    return bytes(dkey) + b":S:"


def zset_score_key(dkey: bytes, score: bytes, member: bytes) -> bytes:
    """Key ordered by encoded score, then by member."""
    return zset_score_prefix(dkey) + bytes(score) + b":" + bytes(member)