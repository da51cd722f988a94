"""Set commands.

Each command function checks its arguments and returns a callable that runs
the command against a database. An argument error is raised straight away,
so a transaction can reject the command before it is queued. Errors that
depend on the stored data, such as a key of the wrong type, are raised when
the returned callable runs.
"""

from __future__ import annotations

import random
import re
from typing import Callable, List, Optional, Sequence, Union

from memredis.db import (
    MSG_INVALID_INT,
    SET,
    CommandError,
    RedisDB,
    WrongTypeError,
    match_keys,
)

Reply = Union[int, str, None, List["Reply"]]
Handler = Callable[[RedisDB], Reply]

MSG_SYNTAX_ERROR = "ERR syntax error"
MSG_INVALID_CURSOR = "ERR invalid cursor"

_INT_RE = re.compile(r"[+-]?[0-9]+")
_INT_MIN = -(2**63)
_INT_MAX = 2**63 - 1


def _wrong_number(command: str) -> CommandError:
    return CommandError(f"ERR wrong number of arguments for '{command}' command")


def _atoi(text: str) -> Optional[int]:
    """Parse a signed 64-bit integer, or return None."""
    if not _INT_RE.fullmatch(text):
        return None
    value = int(text)
    if not _INT_MIN <= value <= _INT_MAX:
        return None
    return value


def _require_set(db: RedisDB, key: str) -> None:
    if db.exists(key) and db.key_type(key) != SET:
        raise WrongTypeError()


def sadd(args: Sequence[str]) -> Handler:
    """SADD key member [member ...]: the number of new members."""
    if len(args) < 2:
        raise _wrong_number("sadd")
    key, *elems = args

    def run(db: RedisDB) -> Reply:
        _require_set(db, key)
        return db.set_add(key, *elems)

    return run


def scard(args: Sequence[str]) -> Handler:
    """SCARD key: the number of members, 0 for a missing key."""
    if len(args) != 1:
        raise _wrong_number("scard")
    (key,) = args

    def run(db: RedisDB) -> Reply:
        if not db.exists(key):
            return 0
        _require_set(db, key)
        return len(db.set_members(key))

    return run


def sdiff(args: Sequence[str]) -> Handler:
    """SDIFF key [key ...]: members of the first set not in the others."""
    if len(args) < 1:
        raise _wrong_number("sdiff")
    keys = list(args)

    def run(db: RedisDB) -> Reply:
        return sorted(db.set_diff(keys))

    return run


def sdiffstore(args: Sequence[str]) -> Handler:
    """SDIFFSTORE destination key [key ...]: store the difference, return its size."""
    if len(args) < 2:
        raise _wrong_number("sdiffstore")
    dest, *keys = args

    def run(db: RedisDB) -> Reply:
        result = db.set_diff(keys)
        db.delete(dest, True)
        db.set_set(dest, result)
        return len(result)

    return run


def sinter(args: Sequence[str]) -> Handler:
    """SINTER key [key ...]: members present in every set."""
    if len(args) < 1:
        raise _wrong_number("sinter")
    keys = list(args)

    def run(db: RedisDB) -> Reply:
        return sorted(db.set_inter(keys))

    return run


def sinterstore(args: Sequence[str]) -> Handler:
    """SINTERSTORE destination key [key ...]: store the intersection, return its size."""
    if len(args) < 2:
        raise _wrong_number("sinterstore")
    dest, *keys = args

    def run(db: RedisDB) -> Reply:
        result = db.set_inter(keys)
        db.delete(dest, True)
        db.set_set(dest, result)
        return len(result)

    return run


def sismember(args: Sequence[str]) -> Handler:
    """SISMEMBER key member: 1 if the member is in the set, else 0."""
    if len(args) != 2:
        raise _wrong_number("sismember")
    key, value = args

    def run(db: RedisDB) -> Reply:
        if not db.exists(key):
            return 0
        _require_set(db, key)
        return 1 if db.set_is_member(key, value) else 0

    return run


def smembers(args: Sequence[str]) -> Handler:
    """SMEMBERS key: all members, sorted."""
    if len(args) != 1:
        raise _wrong_number("smembers")
    (key,) = args

    def run(db: RedisDB) -> Reply:
        if not db.exists(key):
            return []
        _require_set(db, key)
        return db.set_members(key)

    return run


def smove(args: Sequence[str]) -> Handler:
    """SMOVE source destination member: 1 if the member was moved, else 0."""
    if len(args) != 3:
        raise _wrong_number("smove")
    src, dst, member = args

    def run(db: RedisDB) -> Reply:
        if not db.exists(src):
            return 0
        _require_set(db, src)
        _require_set(db, dst)
        if not db.set_is_member(src, member):
            return 0
        db.set_rem(src, member)
        db.set_add(dst, member)
        return 1

    return run


def spop(args: Sequence[str]) -> Handler:
    """SPOP key [count]: remove random members.

    Without a count a single member (or None) is returned, with a count a list.
    """
    if len(args) == 0:
        raise _wrong_number("spop")
    key, *options = args
    with_count = False
    count = 1
    if options:
        parsed = _atoi(options[0])
        if parsed is None:
            raise CommandError(MSG_INVALID_INT)
        count = parsed
        with_count = True
        options = options[1:]
    if options:
        raise CommandError(MSG_INVALID_INT)

    def run(db: RedisDB) -> Reply:
        if not db.exists(key):
            return [] if with_count else None
        _require_set(db, key)
        deleted: list[str] = []
        for _ in range(count):
            members = db.set_members(key)
            if not members:
                break
            member = random.choice(members)
            db.set_rem(key, member)
            deleted.append(member)
        if not with_count:
            return deleted[0] if deleted else None
        return deleted

    return run


def srandmember(args: Sequence[str]) -> Handler:
    """SRANDMEMBER key [count]: random members, without removing them.

    A negative count allows the same member more than once.
    """
    if len(args) < 1:
        raise _wrong_number("srandmember")
    if len(args) > 2:
        raise CommandError(MSG_SYNTAX_ERROR)
    key = args[0]
    count = 0
    with_count = False
    if len(args) == 2:
        parsed = _atoi(args[1])
        if parsed is None:
            raise CommandError(MSG_INVALID_INT)
        count = parsed
        with_count = True

    def run(db: RedisDB) -> Reply:
        if not db.exists(key):
            return None
        _require_set(db, key)
        members = db.set_members(key)
        if count < 0:
            return [random.choice(members) for _ in range(-count)]
        random.shuffle(members)
        if not with_count:
            return members[0]
        return members[: min(count, len(members))]

    return run


def srem(args: Sequence[str]) -> Handler:
    """SREM key member [member ...]: the number of removed members."""
    if len(args) < 2:
        raise _wrong_number("srem")
    key, *fields = args

    def run(db: RedisDB) -> Reply:
        if not db.exists(key):
            return 0
        _require_set(db, key)
        return db.set_rem(key, *fields)

    return run


def sunion(args: Sequence[str]) -> Handler:
    """SUNION key [key ...]: members present in any set."""
    if len(args) < 1:
        raise _wrong_number("sunion")
    keys = list(args)

    def run(db: RedisDB) -> Reply:
        return sorted(db.set_union(keys))

    return run


def sunionstore(args: Sequence[str]) -> Handler:
    """SUNIONSTORE destination key [key ...]: store the union, return its size."""
    if len(args) < 2:
        raise _wrong_number("sunionstore")
    dest, *keys = args

    def run(db: RedisDB) -> Reply:
        result = db.set_union(keys)
        db.delete(dest, True)
        db.set_set(dest, result)
        return len(result)

    return run


def sscan(args: Sequence[str]) -> Handler:
    """SSCAN key cursor [MATCH pattern] [COUNT count].

    Every (matching) member is returned in one go with the next cursor "0";
    any cursor other than 0 gives an empty page.
    """
    if len(args) < 2:
        raise _wrong_number("sscan")
    key = args[0]
    cursor = _atoi(args[1])
    if cursor is None:
        raise CommandError(MSG_INVALID_CURSOR)
    pattern: Optional[str] = None
    rest = list(args[2:])
    while rest:
        option = rest[0].lower()
        if option not in ("count", "match") or len(rest) < 2:
            raise CommandError(MSG_SYNTAX_ERROR)
        if option == "count":
            if _atoi(rest[1]) is None:
                raise CommandError(MSG_INVALID_INT)
        else:
            pattern = rest[1]
        rest = rest[2:]

    def run(db: RedisDB) -> Reply:
        if cursor != 0:
            return ["0", []]
        _require_set(db, key)
        members = db.set_members(key)
        if pattern is not None:
            members = match_keys(members, pattern)
        return ["0", members]

    return run