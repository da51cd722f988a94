"""In-memory key space of a single logical database."""

from __future__ import annotations

import math
import re
from collections import defaultdict
from dataclasses import dataclass
from datetime import timedelta
from typing import Iterable, Mapping

STRING = "string"
HASH = "hash"
LIST = "list"
SET = "set"
ZSET = "zset"

MSG_WRONG_TYPE = "WRONGTYPE Operation against a key holding the wrong kind of value"
MSG_KEY_NOT_FOUND = "ERR no such key"
MSG_INVALID_INT = "ERR value is not an integer or out of range"
MSG_INVALID_FLOAT = "ERR value is not a valid float"

_INT_RE = re.compile(r"[+-]?[0-9]+")
_INT_MIN = -(2**63)
_INT_MAX = 2**63 - 1


class RedisError(Exception):
    """Base class for errors reported to clients."""

    default_message = "ERR"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return self.args[0]


class WrongTypeError(RedisError):
    """The key holds a value of another type."""

    default_message = MSG_WRONG_TYPE


class KeyNotFoundError(RedisError):
    """The key does not exist."""

    default_message = MSG_KEY_NOT_FOUND


class IntValueError(RedisError):
    """A value is not a valid integer."""

    default_message = MSG_INVALID_INT


class FloatValueError(RedisError):
    """A value is not a valid float."""

    default_message = MSG_INVALID_FLOAT


class CommandError(RedisError):
    """A command was given bad arguments or failed."""


@dataclass(frozen=True)
class ScoredMember:
    """A sorted set member with its score."""

    member: str
    score: float


def format_float(value: float) -> str:
    """Format a float the way replies show it: 12 decimals, trailing zeros removed."""
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    text = f"{value:.12f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def _parse_int(text: str) -> int:
    if not _INT_RE.fullmatch(text):
        raise ValueError(f"invalid integer: {text!r}")
    value = int(text)
    if not _INT_MIN <= value <= _INT_MAX:
        raise ValueError(f"integer out of range: {text!r}")
    return value


def _parse_float(text: str) -> float:
    if text != text.strip() or "_" in text or not text:
        raise ValueError(f"invalid float: {text!r}")
    value = float(text)
    if math.isinf(value) and text.lower().lstrip("+-") not in ("inf", "infinity"):
        raise ValueError(f"float out of range: {text!r}")
    return value


def _glob_to_regex(pattern: str) -> str | None:
    parts: list[str] = []
    chars = iter(pattern)
    for ch in chars:
        if ch == "*":
            parts.append(".*")
        elif ch == "?":
            parts.append(".")
        elif ch == "\\":
            nxt = next(chars, None)
            if nxt is None:
                return None
            parts.append(re.escape(nxt))
        elif ch == "[":
            klass: list[str] = []
            closed = False
            first = True
            for c in chars:
                if c == "]":
                    closed = True
                    break
                if first and c == "^":
                    klass.append("^")
                elif c == "\\":
                    escaped = next(chars, None)
                    if escaped is None:
                        return None
                    klass.append(re.escape(escaped))
                elif c == "-":
                    klass.append("-")
                else:
                    klass.append(re.escape(c))
                first = False
            if not closed or not klass or klass == ["^"]:
                return None
            parts.append("[" + "".join(klass) + "]")
        else:
            parts.append(re.escape(ch))
    return "".join(parts)


def match_keys(keys: Iterable[str], pattern: str) -> list[str]:
    """Keep the keys that match a glob-style pattern, in their given order."""
    source = _glob_to_regex(pattern)
    if source is None:
        return []
    try:
        regex = re.compile(source, re.DOTALL)
    except re.error:
        return []
    return [key for key in keys if regex.fullmatch(key)]


class RedisDB:
    """All keys and values of one database, without any locking."""

    def __init__(self) -> None:
        self.key_version: defaultdict[str, int] = defaultdict(int)
        self.flush()

    def _storage(self, type_name: str) -> dict:
        try:
            return {
                STRING: self.string_keys,
                HASH: self.hash_keys,
                LIST: self.list_keys,
                SET: self.set_keys,
                ZSET: self.sortedset_keys,
            }[type_name]
        except KeyError:
            raise ValueError(f"unknown key type: {type_name!r}") from None

    def exists(self, key: str) -> bool:
        return key in self.key_types

    def key_type(self, key: str) -> str:
        """The type name of a key, or "" when it does not exist."""
        return self.key_types.get(key, "")

    def all_keys(self) -> list[str]:
        return sorted(self.key_types)

    def flush(self) -> None:
        """Remove all keys and values."""
        self.key_types: dict[str, str] = {}
        self.string_keys: dict[str, str] = {}
        self.hash_keys: dict[str, dict[str, str]] = {}
        self.list_keys: dict[str, list[str]] = {}
        self.set_keys: dict[str, set[str]] = {}
        self.sortedset_keys: dict[str, dict[str, float]] = {}
        self.ttl: dict[str, timedelta] = {}

    def move(self, key: str, to: RedisDB) -> bool:
        """Move a key to another database; False if absent here or present there."""
        if to.exists(key) or not self.exists(key):
            return False
        type_name = self.key_types[key]
        to.key_types[key] = type_name
        to._storage(type_name)[key] = self._storage(type_name)[key]
        to.key_version[key] += 1
        if key in self.ttl:
            to.ttl[key] = self.ttl[key]
        self.delete(key, True)
        return True

    def rename(self, src: str, dst: str) -> None:
        if not self.exists(src):
            raise KeyNotFoundError()
        if src == dst:
            return
        self.delete(dst, True)
        type_name = self.key_types[src]
        storage = self._storage(type_name)
        storage[dst] = storage[src]
        self.key_types[dst] = type_name
        self.key_version[dst] += 1
        if src in self.ttl:
            self.ttl[dst] = self.ttl[src]
        self.delete(src, True)

    def delete(self, key: str, del_ttl: bool) -> None:
        if not self.exists(key):
            return
        type_name = self.key_types.pop(key)
        self.key_version[key] += 1
        if del_ttl:
            self.ttl.pop(key, None)
        del self._storage(type_name)[key]

    def string_get(self, key: str) -> str:
        """The string value, or "" when missing or of another type."""
        if self.key_types.get(key) != STRING:
            return ""
        return self.string_keys[key]

    def string_set(self, key: str, value: str) -> None:
        """Force-set a string key, keeping any expire."""
        self.delete(key, False)
        self.key_types[key] = STRING
        self.string_keys[key] = value
        self.key_version[key] += 1

    def string_incr(self, key: str, delta: int) -> int:
        current = 0
        if key in self.string_keys:
            try:
                current = _parse_int(self.string_keys[key])
            except ValueError:
                raise IntValueError() from None
        current += delta
        self.string_set(key, str(current))
        return current

    def string_incrfloat(self, key: str, delta: float) -> float:
        current = 0.0
        if key in self.string_keys:
            try:
                current = _parse_float(self.string_keys[key])
            except ValueError:
                raise FloatValueError() from None
        current += delta
        self.string_set(key, format_float(current))
        return current

    def list_lpush(self, key: str, value: str) -> int:
        """Prepend a value; returns the new length."""
        items = self.list_keys.get(key)
        if items is None:
            self.key_types[key] = LIST
            items = []
        items.insert(0, value)
        self.list_keys[key] = items
        self.key_version[key] += 1
        return len(items)

    def list_lpop(self, key: str) -> str:
        items = self.list_keys[key]
        value = items.pop(0)
        if not items:
            self.delete(key, True)
        self.key_version[key] += 1
        return value

    def list_push(self, key: str, *args: str) -> int:
        """Append values; returns the new length."""
        items = self.list_keys.get(key)
        if items is None:
            self.key_types[key] = LIST
            items = []
        items.extend(args)
        self.list_keys[key] = items
        self.key_version[key] += 1
        return len(items)

    def list_pop(self, key: str) -> str:
        items = self.list_keys[key]
        value = items.pop()
        if not items:
            self.delete(key, True)
        else:
            self.key_version[key] += 1
        return value

    def set_set(self, key: str, members: Iterable[str]) -> None:
        """Replace a whole set."""
        self.key_types[key] = SET
        self.set_keys[key] = set(members)
        self.key_version[key] += 1

    def set_add(self, key: str, *args: str) -> int:
        """Add members; returns how many were new."""
        members = self.set_keys.get(key)
        if members is None:
            members = set()
            self.key_types[key] = SET
        before = len(members)
        members.update(args)
        self.set_keys[key] = members
        self.key_version[key] += 1
        return len(members) - before

    def set_rem(self, key: str, *args: str) -> int:
        """Remove members; returns how many were removed."""
        members = self.set_keys.get(key)
        if members is None:
            return 0
        present = members.intersection(args)
        members.difference_update(present)
        if not members:
            self.delete(key, True)
        self.key_version[key] += 1
        return len(present)

    def set_members(self, key: str) -> list[str]:
        return sorted(self.set_keys.get(key, ()))

    def set_is_member(self, key: str, value: str) -> bool:
        return value in self.set_keys.get(key, ())

    def hash_fields(self, key: str) -> list[str]:
        return sorted(self.hash_keys.get(key, {}))

    def hash_get(self, key: str, field: str) -> str:
        return self.hash_keys.get(key, {}).get(field, "")

    def hash_set(self, key: str, field: str, value: str) -> bool:
        """Set a field, replacing a key of another type; True if the field existed."""
        if self.key_types.get(key, HASH) != HASH:
            self.delete(key, True)
        self.key_types[key] = HASH
        fields = self.hash_keys.setdefault(key, {})
        existed = field in fields
        fields[field] = value
        self.key_version[key] += 1
        return existed

    def hash_del(self, key: str, field: str) -> None:
        fields = self.hash_keys.get(key)
        if fields is None:
            return
        fields.pop(field, None)
        self.key_version[key] += 1

    def hash_incr(self, key: str, field: str, delta: int) -> int:
        current = 0
        raw = self.hash_keys.get(key, {}).get(field)
        if raw is not None:
            try:
                current = _parse_int(raw)
            except ValueError:
                raise IntValueError() from None
        current += delta
        self.hash_set(key, field, str(current))
        return current

    def hash_incrfloat(self, key: str, field: str, delta: float) -> float:
        current = 0.0
        raw = self.hash_keys.get(key, {}).get(field)
        if raw is not None:
            try:
                current = _parse_float(raw)
            except ValueError:
                raise FloatValueError() from None
        current += delta
        self.hash_set(key, field, format_float(current))
        return current

    def sorted_set(self, key: str) -> dict[str, float]:
        """A copy of a sorted set as a member to score mapping."""
        return dict(self.sortedset_keys.get(key, {}))

    def sset_set(self, key: str, sset: Mapping[str, float]) -> None:
        """Replace a whole sorted set."""
        self.key_types[key] = ZSET
        self.key_version[key] += 1
        self.sortedset_keys[key] = dict(sset)

    def sset_add(self, key: str, score: float, member: str) -> bool:
        """Add or update a member; True if it was new."""
        sset = self.sortedset_keys.get(key)
        if sset is None:
            sset = {}
            self.key_types[key] = ZSET
        is_new = member not in sset
        sset[member] = score
        self.sortedset_keys[key] = sset
        self.key_version[key] += 1
        return is_new

    def _by_score(self, key: str, reverse: bool = False) -> list[ScoredMember]:
        elements = sorted(
            (ScoredMember(member, score) for member, score in self.sortedset_keys.get(key, {}).items()),
            key=lambda el: (el.score, el.member),
        )
        if reverse:
            elements.reverse()
        return elements

    def sset_members(self, key: str) -> list[str]:
        """All members ordered by score, then by member."""
        return [el.member for el in self._by_score(key)]

    def sset_elements(self, key: str) -> list[ScoredMember]:
        """All members with scores, ordered by score, then by member."""
        return self._by_score(key)

    def sset_card(self, key: str) -> int:
        return len(self.sortedset_keys.get(key, {}))

    def sset_rank(self, key: str, member: str, reverse: bool) -> int | None:
        """The rank of a member, or None when it is absent."""
        for rank, el in enumerate(self._by_score(key, reverse)):
            if el.member == member:
                return rank
        return None

    def sset_score(self, key: str, member: str) -> float:
        return self.sortedset_keys.get(key, {}).get(member, 0.0)

    def sset_rem(self, key: str, member: str) -> bool:
        """Remove a member, dropping the key when it becomes empty."""
        sset = self.sortedset_keys.get(key, {})
        removed = sset.pop(member, None) is not None
        if not sset:
            self.delete(key, True)
        return removed

    def sset_exists(self, key: str, member: str) -> bool:
        return member in self.sortedset_keys.get(key, {})

    def sset_incrby(self, key: str, member: str, delta: float) -> float:
        sset = self.sortedset_keys.get(key)
        if sset is None:
            sset = {}
            self.key_types[key] = ZSET
            self.sortedset_keys[key] = sset
        score = sset.get(member, 0.0) + delta
        sset[member] = score
        self.key_version[key] += 1
        return score

    def _check_set(self, key: str) -> None:
        if self.exists(key) and self.key_types[key] != SET:
            raise WrongTypeError()

    def set_diff(self, keys: Iterable[str]) -> set[str]:
        """Members of the first set that are in none of the others."""
        first, *rest = keys
        self._check_set(first)
        result = set(self.set_keys.get(first, ()))
        for other in rest:
            if not self.exists(other):
                continue
            self._check_set(other)
            result -= self.set_keys[other]
        return result

    def set_inter(self, keys: Iterable[str]) -> set[str]:
        """Members present in every set; empty as soon as a key is missing."""
        first, *rest = keys
        if not self.exists(first):
            return set()
        self._check_set(first)
        result = set(self.set_keys[first])
        for other in rest:
            if not self.exists(other):
                return set()
            self._check_set(other)
            result &= self.set_keys[other]
        return result

    def set_union(self, keys: Iterable[str]) -> set[str]:
        """Members present in any of the sets."""
        first, *rest = keys
        self._check_set(first)
        result = set(self.set_keys.get(first, ()))
        for other in rest:
            if not self.exists(other):
                continue
            self._check_set(other)
            result |= self.set_keys[other]
        return result

    def fast_forward(self, duration: timedelta) -> None:
        """Move time forward, expiring keys whose TTL runs out."""
        for key in self.all_keys():
            if key in self.ttl:
                self.ttl[key] -= duration
                self.check_ttl(key)

    def check_ttl(self, key: str) -> None:
        remaining = self.ttl.get(key)
        if remaining is not None and remaining <= timedelta(0):
            self.delete(key, True)