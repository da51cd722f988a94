"""Sorted set commands that work on ranges of scores, ranks or members.

Like the set commands, each function checks its arguments and returns a
callable that runs the command against a database. Argument errors are raised
at once; errors that depend on the stored data are raised when the callable runs.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, TypeVar

from memredis.db import (
    MSG_INVALID_INT,
    ZSET,
    CommandError,
    RedisDB,
    ScoredMember,
    WrongTypeError,
    format_float,
)
from memredis.sets import MSG_SYNTAX_ERROR, Handler, Reply

MSG_INVALID_MIN_MAX = "ERR min or max is not a float"
MSG_INVALID_RANGE_ITEM = "ERR min or max not valid string range item"

_INT_RE = re.compile(r"[+-]?[0-9]+")
_INT_MIN = -(2**63)
_INT_MAX = 2**63 - 1

_T = TypeVar("_T")


def _wrong_number(command: str) -> CommandError:
    return CommandError(f"ERR wrong number of arguments for '{command}' command")


def _atoi(text: str) -> int:
    """Parse a signed 64-bit integer, raising CommandError when invalid."""
    if not _INT_RE.fullmatch(text):
        raise CommandError(MSG_INVALID_INT)
    value = int(text)
    if not _INT_MIN <= value <= _INT_MAX:
        raise CommandError(MSG_INVALID_INT)
    return value


def _parse_float(text: str) -> float:
    if not text or text != text.strip() or "_" in text:
        raise ValueError(f"invalid float: {text!r}")
    value = float(text)
    if math.isinf(value) and text.lower().lstrip("+-") not in ("inf", "infinity"):
        raise ValueError(f"float out of range: {text!r}")
    return value


def _require_zset(db: RedisDB, key: str) -> None:
    if db.exists(key) and db.key_type(key) != ZSET:
        raise WrongTypeError()


def parse_float_range(text: str) -> Tuple[float, bool]:
    """Parse a score bound: inclusive unless it starts with '('.

    An empty string is 0, exclusive. Raises ValueError for anything else that
    is not a float.
    """
    if not text:
        return 0.0, False
    inclusive = True
    if text.startswith("("):
        text = text[1:]
        inclusive = False
    return _parse_float(text), inclusive


def parse_lex_range(text: str) -> Tuple[str, bool]:
    """Parse a lexicographic bound: '[x' inclusive, '(x' exclusive, or '+' / '-'."""
    if not text:
        raise CommandError(MSG_INVALID_RANGE_ITEM)
    if text in ("+", "-"):
        return text, False
    if text[0] == "(":
        return text[1:], False
    if text[0] == "[":
        return text[1:], True
    raise CommandError(MSG_INVALID_RANGE_ITEM)


def _score_bounds(low_text: str, high_text: str) -> Tuple[float, bool, float, bool]:
    try:
        low, low_incl = parse_float_range(low_text)
        high, high_incl = parse_float_range(high_text)
    except ValueError:
        raise CommandError(MSG_INVALID_MIN_MAX) from None
    return low, low_incl, high, high_incl


def with_ss_range(
    members: Sequence[ScoredMember],
    low: float,
    low_incl: bool,
    high: float,
    high_incl: bool,
) -> List[ScoredMember]:
    """Limit score-ordered elements to those within the score range."""

    def above_low(score: float) -> bool:
        return score >= low if low_incl else score > low

    def beyond_high(score: float) -> bool:
        return score > high if high_incl else score >= high

    start = next((i for i, el in enumerate(members) if above_low(el.score)), None)
    if start is None:
        return []
    selected = list(members[start:])
    end = next((i for i, el in enumerate(selected) if beyond_high(el.score)), len(selected))
    return selected[:end]


def with_lex_range(
    members: Sequence[str],
    low: str,
    low_incl: bool,
    high: str,
    high_incl: bool,
) -> List[str]:
    """Limit sorted member names to those within the lexicographic range."""
    if high == "-" or low == "+":
        return []
    selected = list(members)
    if low != "-":
        start = next(
            (i for i, m in enumerate(selected) if (m >= low if low_incl else m > low)),
            0,
        )
        selected = selected[start:]
    if high != "+":
        end = next(
            (i for i, m in enumerate(selected) if (m > high if high_incl else m >= high)),
            len(selected),
        )
        selected = selected[:end]
    return selected


def redis_range(length: int, start: int, end: int) -> Tuple[int, int]:
    """Turn inclusive, possibly negative, indexes into slice bounds."""
    if start < 0:
        start = max(length + start, 0)
    start = min(start, length)
    if end < 0:
        end = length + end
        if end < 0:
            end = -1
    end = min(end + 1, length)
    if end < start:
        return 0, 0
    return start, end


@dataclass(frozen=True)
class _Limit:
    offset: int
    count: int

    def apply(self, items: List[_T]) -> List[_T]:
        """SQL-like LIMIT: skip offset items, keep count (all when negative)."""
        if self.offset < 0 or self.offset >= len(items):
            return []
        items = items[self.offset :]
        if self.count >= 0:
            items = items[: self.count]
        return items


def _parse_options(rest: Sequence[str], allow_withscores: bool) -> Tuple[Optional[_Limit], bool]:
    limit: Optional[_Limit] = None
    with_scores = False
    rest = list(rest)
    while rest:
        option = rest[0].lower()
        if option == "limit":
            if len(rest) < 3:
                raise CommandError(MSG_SYNTAX_ERROR)
            limit = _Limit(_atoi(rest[1]), _atoi(rest[2]))
            rest = rest[3:]
        elif option == "withscores" and allow_withscores:
            with_scores = True
            rest = rest[1:]
        else:
            raise CommandError(MSG_SYNTAX_ERROR)
    return limit, with_scores


def _lex_sorted(db: RedisDB, key: str) -> List[str]:
    return sorted(db.sset_members(key))


def zcount(args: Sequence[str]) -> Handler:
    """ZCOUNT key min max: the number of members within the score range."""
    if len(args) != 3:
        raise _wrong_number("zcount")
    key = args[0]
    low, low_incl, high, high_incl = _score_bounds(args[1], args[2])

    def run(db: RedisDB) -> Reply:
        if not db.exists(key):
            return 0
        _require_zset(db, key)
        return len(with_ss_range(db.sset_elements(key), low, low_incl, high, high_incl))

    return run


def zlexcount(args: Sequence[str]) -> Handler:
    """ZLEXCOUNT key min max: the number of members within the lexicographic range."""
    if len(args) != 3:
        raise _wrong_number("zlexcount")
    key = args[0]
    low, low_incl = parse_lex_range(args[1])
    high, high_incl = parse_lex_range(args[2])

    def run(db: RedisDB) -> Reply:
        if not db.exists(key):
            return 0
        _require_zset(db, key)
        return len(with_lex_range(_lex_sorted(db, key), low, low_incl, high, high_incl))

    return run


def _rank_range(args: Sequence[str], command: str, reverse: bool) -> Handler:
    if len(args) < 3:
        raise _wrong_number(command)
    key = args[0]
    start = _atoi(args[1])
    end = _atoi(args[2])
    if len(args) > 4:
        raise CommandError(MSG_SYNTAX_ERROR)
    with_scores = False
    if len(args) == 4:
        if args[3].lower() != "withscores":
            raise CommandError(MSG_SYNTAX_ERROR)
        with_scores = True

    def run(db: RedisDB) -> Reply:
        if not db.exists(key):
            return []
        _require_zset(db, key)
        members = db.sset_members(key)
        if reverse:
            members.reverse()
        rs, re_ = redis_range(len(members), start, end)
        reply: List[Reply] = []
        for member in members[rs:re_]:
            reply.append(member)
            if with_scores:
                reply.append(format_float(db.sset_score(key, member)))
        return reply

    return run


def zrange(args: Sequence[str]) -> Handler:
    """ZRANGE key start stop [WITHSCORES]: members by rank, lowest score first."""
    return _rank_range(args, "zrange", reverse=False)


def zrevrange(args: Sequence[str]) -> Handler:
    """ZREVRANGE key start stop [WITHSCORES]: members by rank, highest score first."""
    return _rank_range(args, "zrevrange", reverse=True)


def _lex_range(args: Sequence[str], command: str, reverse: bool) -> Handler:
    if len(args) < 3:
        raise _wrong_number(command)
    key = args[0]
    low, low_incl = parse_lex_range(args[1])
    high, high_incl = parse_lex_range(args[2])
    limit, _ = _parse_options(args[3:], allow_withscores=False)
    if reverse:
        low, high = high, low
        low_incl, high_incl = high_incl, low_incl

    def run(db: RedisDB) -> Reply:
        if not db.exists(key):
            return []
        _require_zset(db, key)
        members = with_lex_range(_lex_sorted(db, key), low, low_incl, high, high_incl)
        if reverse:
            members.reverse()
        if limit is not None:
            members = limit.apply(members)
        return list(members)

    return run


def zrangebylex(args: Sequence[str]) -> Handler:
    """ZRANGEBYLEX key min max [LIMIT offset count]."""
    return _lex_range(args, "zrangebylex", reverse=False)


def zrevrangebylex(args: Sequence[str]) -> Handler:
    """ZREVRANGEBYLEX key max min [LIMIT offset count]."""
    return _lex_range(args, "zrevrangebylex", reverse=True)


def _score_range(args: Sequence[str], command: str, reverse: bool) -> Handler:
    if len(args) < 3:
        raise _wrong_number(command)
    key = args[0]
    low, low_incl, high, high_incl = _score_bounds(args[1], args[2])
    limit, with_scores = _parse_options(args[3:], allow_withscores=True)
    if reverse:
        low, high = high, low
        low_incl, high_incl = high_incl, low_incl

    def run(db: RedisDB) -> Reply:
        if not db.exists(key):
            return []
        _require_zset(db, key)
        elements = with_ss_range(db.sset_elements(key), low, low_incl, high, high_incl)
        if reverse:
            elements.reverse()
        if limit is not None:
            elements = limit.apply(elements)
        reply: List[Reply] = []
        for el in elements:
            reply.append(el.member)
            if with_scores:
                reply.append(format_float(el.score))
        return reply

    return run


def zrangebyscore(args: Sequence[str]) -> Handler:
    """ZRANGEBYSCORE key min max [WITHSCORES] [LIMIT offset count]."""
    return _score_range(args, "zrangebyscore", reverse=False)


def zrevrangebyscore(args: Sequence[str]) -> Handler:
    """ZREVRANGEBYSCORE key max min [WITHSCORES] [LIMIT offset count]."""
    return _score_range(args, "zrevrangebyscore", reverse=True)


def zremrangebylex(args: Sequence[str]) -> Handler:
    """ZREMRANGEBYLEX key min max: remove members in the range, return how many."""
    if len(args) != 3:
        raise _wrong_number("zremrangebylex")
    key = args[0]
    low, low_incl = parse_lex_range(args[1])
    high, high_incl = parse_lex_range(args[2])

    def run(db: RedisDB) -> Reply:
        if not db.exists(key):
            return 0
        _require_zset(db, key)
        members = with_lex_range(_lex_sorted(db, key), low, low_incl, high, high_incl)
        for member in members:
            db.sset_rem(key, member)
        return len(members)

    return run


def zremrangebyrank(args: Sequence[str]) -> Handler:
    """ZREMRANGEBYRANK key start stop: remove members by rank, return how many."""
    if len(args) != 3:
        raise _wrong_number("zremrangebyrank")
    key = args[0]
    start = _atoi(args[1])
    end = _atoi(args[2])

    def run(db: RedisDB) -> Reply:
        if not db.exists(key):
            return 0
        _require_zset(db, key)
        members = db.sset_members(key)
        rs, re_ = redis_range(len(members), start, end)
        for member in members[rs:re_]:
            db.sset_rem(key, member)
        return re_ - rs

    return run


def zremrangebyscore(args: Sequence[str]) -> Handler:
    """ZREMRANGEBYSCORE key min max: remove members by score, return how many."""
    if len(args) != 3:
        raise _wrong_number("zremrangebyscore")
    key = args[0]
    low, low_incl, high, high_incl = _score_bounds(args[1], args[2])

    def run(db: RedisDB) -> Reply:
        if not db.exists(key):
            return 0
        _require_zset(db, key)
        elements = with_ss_range(db.sset_elements(key), low, low_incl, high, high_incl)
        for el in elements:
            db.sset_rem(key, el.member)
        return len(elements)

    return run