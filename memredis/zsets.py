"""Sorted set commands that add, remove, combine, rank and scan members.

Each function checks its arguments and returns a callable that runs the
command against a database. Argument errors are raised at once; errors that
depend on the stored data are raised when the callable runs.
"""

from __future__ import annotations

import math
import re
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from memredis.db import (
    MSG_INVALID_FLOAT,
    MSG_INVALID_INT,
    ZSET,
    CommandError,
    RedisDB,
    WrongTypeError,
    format_float,
    match_keys,
)
from memredis.sets import MSG_INVALID_CURSOR, MSG_SYNTAX_ERROR, Handler, Reply
from memredis.zset_ranges import redis_range

MSG_XX_AND_NX = "ERR XX and NX options at the same time are not compatible"
MSG_SINGLE_ELEMENT_PAIR = "ERR INCR option supports a single increment-element pair"
MSG_WEIGHT_NOT_FLOAT = "ERR weight value is not a float"
MSG_NEED_INPUT_KEY = "ERR at least 1 input key is needed for ZUNIONSTORE/ZINTERSTORE"

_INT_RE = re.compile(r"[+-]?[0-9]+")
_INT_MIN = -(2**63)
_INT_MAX = 2**63 - 1

_AGGREGATES: Dict[str, Callable[[float, float], float]] = {
    "sum": lambda old, new: old + new,
    "min": lambda old, new: new if new < old else old,
    "max": lambda old, new: new if new > old else old,
}


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


def zadd(args: Sequence[str]) -> Handler:
    """ZADD key [NX|XX] [CH] [INCR] score member [score member ...].

    Returns the number of added (or, with CH, changed) members; with INCR the
    new score, or None when NX/XX prevented the update.
    """
    if len(args) < 3:
        raise _wrong_number("zadd")
    key = args[0]
    rest = list(args[1:])
    flags = {"NX": False, "XX": False, "CH": False, "INCR": False}
    while rest and rest[0].upper() in flags:
        flags[rest.pop(0).upper()] = True
    nx, xx, ch, incr = flags["NX"], flags["XX"], flags["CH"], flags["INCR"]

    if not rest or len(rest) % 2 != 0:
        raise CommandError(MSG_SYNTAX_ERROR)
    elems: Dict[str, float] = {}
    for score_text, member in zip(rest[::2], rest[1::2]):
        try:
            elems[member] = _parse_float(score_text)
        except ValueError:
            raise CommandError(MSG_INVALID_FLOAT) from None

    if xx and nx:
        raise CommandError(MSG_XX_AND_NX)
    if incr and len(elems) > 1:
        raise CommandError(MSG_SINGLE_ELEMENT_PAIR)

    def run(db: RedisDB) -> Reply:
        _require_zset(db, key)
        if incr:
            ((member, delta),) = elems.items()
            exists = db.sset_exists(key, member)
            if (nx and exists) or (xx and not exists):
                return None
            return format_float(db.sset_incrby(key, member, delta))

        changed = 0
        for member, score in elems.items():
            exists = db.sset_exists(key, member)
            if (nx and exists) or (xx and not exists):
                continue
            old = db.sset_score(key, member)
            if db.sset_add(key, score, member):
                changed += 1
            elif ch and old != score:
                changed += 1
        return changed

    return run


def zcard(args: Sequence[str]) -> Handler:
    """ZCARD key: the number of members, 0 for a missing key."""
    if len(args) != 1:
        raise _wrong_number("zcard")
    (key,) = args

    def run(db: RedisDB) -> Reply:
        if not db.exists(key):
            return 0
        _require_zset(db, key)
        return db.sset_card(key)

    return run


def zincrby(args: Sequence[str]) -> Handler:
    """ZINCRBY key increment member: the new score."""
    if len(args) != 3:
        raise _wrong_number("zincrby")
    key, delta_text, member = args
    try:
        delta = _parse_float(delta_text)
    except ValueError:
        raise CommandError(MSG_INVALID_FLOAT) from None

    def run(db: RedisDB) -> Reply:
        _require_zset(db, key)
        return format_float(db.sset_incrby(key, member, delta))

    return run


def _parse_store(
    args: Sequence[str], command: str
) -> Tuple[str, List[str], Optional[List[float]], Callable[[float, float], float]]:
    if len(args) < 3:
        raise _wrong_number(command)
    destination = args[0]
    num_keys = _atoi(args[1])
    rest = list(args[2:])
    if len(rest) < num_keys:
        raise CommandError(MSG_SYNTAX_ERROR)
    if num_keys <= 0:
        raise CommandError(MSG_NEED_INPUT_KEY)
    keys, rest = rest[:num_keys], rest[num_keys:]

    weights: Optional[List[float]] = None
    aggregate = _AGGREGATES["sum"]
    while rest:
        option = rest[0].lower()
        if option == "weights":
            if len(rest) < num_keys + 1:
                raise CommandError(MSG_SYNTAX_ERROR)
            try:
                weights = [_parse_float(text) for text in rest[1 : num_keys + 1]]
            except ValueError:
                raise CommandError(MSG_WEIGHT_NOT_FLOAT) from None
            rest = rest[num_keys + 1 :]
        elif option == "aggregate":
            if len(rest) < 2:
                raise CommandError(MSG_SYNTAX_ERROR)
            name = rest[1].lower()
            if name not in _AGGREGATES:
                raise CommandError(MSG_SYNTAX_ERROR)
            aggregate = _AGGREGATES[name]
            rest = rest[2:]
        else:
            raise CommandError(MSG_SYNTAX_ERROR)
    return destination, keys, weights, aggregate


def _combine(
    db: RedisDB,
    keys: Sequence[str],
    weights: Optional[Sequence[float]],
    aggregate: Callable[[float, float], float],
) -> Tuple[Dict[str, float], Dict[str, int]]:
    """Merge the sorted sets; also count in how many sets each member was."""
    merged: Dict[str, float] = {}
    counts: Dict[str, int] = {}
    for index, key in enumerate(keys):
        if not db.exists(key):
            continue
        if db.key_type(key) != ZSET:
            raise WrongTypeError()
        for el in db.sset_elements(key):
            score = el.score * weights[index] if weights is not None else el.score
            counts[el.member] = counts.get(el.member, 0) + 1
            if el.member in merged:
                merged[el.member] = aggregate(merged[el.member], score)
            else:
                merged[el.member] = score
    return merged, counts


def zinterstore(args: Sequence[str]) -> Handler:
    """ZINTERSTORE destination numkeys key [key ...] [WEIGHTS ...] [AGGREGATE SUM|MIN|MAX]."""
    destination, keys, weights, aggregate = _parse_store(args, "zinterstore")

    def run(db: RedisDB) -> Reply:
        db.delete(destination, True)
        merged, counts = _combine(db, keys, weights, aggregate)
        result = {m: s for m, s in merged.items() if counts[m] == len(keys)}
        db.sset_set(destination, result)
        return len(result)

    return run


def zunionstore(args: Sequence[str]) -> Handler:
    """ZUNIONSTORE destination numkeys key [key ...] [WEIGHTS ...] [AGGREGATE SUM|MIN|MAX]."""
    destination, keys, weights, aggregate = _parse_store(args, "zunionstore")

    def run(db: RedisDB) -> Reply:
        if destination not in keys:
            db.delete(destination, True)
        merged, _ = _combine(db, keys, weights, aggregate)
        db.sset_set(destination, merged)
        return len(merged)

    return run


def _rank(args: Sequence[str], command: str, reverse: bool) -> Handler:
    if len(args) != 2:
        raise _wrong_number(command)
    key, member = args

    def run(db: RedisDB) -> Reply:
        if not db.exists(key):
            return None
        _require_zset(db, key)
        return db.sset_rank(key, member, reverse)

    return run


def zrank(args: Sequence[str]) -> Handler:
    """ZRANK key member: the rank by ascending score, or None."""
    return _rank(args, "zrank", reverse=False)


def zrevrank(args: Sequence[str]) -> Handler:
    """ZREVRANK key member: the rank by descending score, or None."""
    return _rank(args, "zrevrank", reverse=True)


def zrem(args: Sequence[str]) -> Handler:
    """ZREM key member [member ...]: the number of removed members."""
    if len(args) < 2:
        raise _wrong_number("zrem")
    key, *members = args

    def run(db: RedisDB) -> Reply:
        if not db.exists(key):
            return 0
        _require_zset(db, key)
        return sum(1 for member in members if db.sset_rem(key, member))

    return run


def zscore(args: Sequence[str]) -> Handler:
    """ZSCORE key member: the score, or None when missing."""
    if len(args) != 2:
        raise _wrong_number("zscore")
    key, member = args

    def run(db: RedisDB) -> Reply:
        if not db.exists(key):
            return None
        _require_zset(db, key)
        if not db.sset_exists(key, member):
            return None
        return format_float(db.sset_score(key, member))

    return run


def zscan(args: Sequence[str]) -> Handler:
    """ZSCAN key cursor [MATCH pattern] [COUNT count].

    Every (matching) member is returned with its score in one go, with the
    next cursor "0"; any cursor other than 0 gives an empty page.
    """
    if len(args) < 2:
        raise _wrong_number("zscan")
    key = args[0]
    try:
        cursor = _atoi(args[1])
    except CommandError:
        raise CommandError(MSG_INVALID_CURSOR) from None
    pattern: Optional[str] = None
    rest = list(args[2:])
    while rest:
        option = rest[0].lower()
        if option not in ("count", "match") or len(rest) < 2:
            raise CommandError(MSG_SYNTAX_ERROR)
        if option == "count":
            _atoi(rest[1])
        else:
            pattern = rest[1]
        rest = rest[2:]

    def run(db: RedisDB) -> Reply:
        if cursor != 0:
            return ["0", []]
        _require_zset(db, key)
        members = db.sset_members(key)
        if pattern is not None:
            members = match_keys(members, pattern)
        page: List[Reply] = []
        for member in members:
            page.append(member)
            page.append(format_float(db.sset_score(key, member)))
        return ["0", page]

    return run


def _pop(args: Sequence[str], command: str, highest: bool) -> Handler:
    if len(args) < 1:
        raise _wrong_number(command)
    key = args[0]
    count = _atoi(args[1]) if len(args) > 1 else 1
    if len(args) > 2:
        raise CommandError(MSG_SYNTAX_ERROR)

    def run(db: RedisDB) -> Reply:
        if not db.exists(key):
            return []
        _require_zset(db, key)
        members = db.sset_members(key)
        if highest:
            members.reverse()
        rs, re_ = redis_range(len(members), 0, count - 1)
        reply: List[Reply] = []
        for member in members[rs:re_]:
            reply.append(member)
            reply.append(format_float(db.sset_score(key, member)))
            db.sset_rem(key, member)
        return reply

    return run


def zpopmax(args: Sequence[str]) -> Handler:
    """ZPOPMAX key [count]: remove and return the highest scored members with scores."""
    return _pop(args, "zpopmax", highest=True)


def zpopmin(args: Sequence[str]) -> Handler:
    """ZPOPMIN key [count]: remove and return the lowest scored members with scores."""
    return _pop(args, "zpopmin", highest=False)