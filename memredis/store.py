"""Direct, thread-safe access to the databases of an in-memory server."""

from __future__ import annotations

import threading
from datetime import timedelta
from typing import Iterator

from memredis.db import (
    HASH,
    LIST,
    SET,
    STRING,
    ZSET,
    KeyNotFoundError,
    RedisDB,
    WrongTypeError,
)


class Database:
    """One database, with every operation taken under the server lock."""

    def __init__(self, db: RedisDB, lock: threading.RLock) -> None:
        self._db = db
        self._lock = lock

    def _require(self, key: str, type_name: str) -> None:
        """Raise unless the key exists and has the given type."""
        if not self._db.exists(key):
            raise KeyNotFoundError()
        if self._db.key_type(key) != type_name:
            raise WrongTypeError()

    def _allow(self, key: str, type_name: str) -> None:
        """Raise if the key exists with another type."""
        if self._db.exists(key) and self._db.key_type(key) != type_name:
            raise WrongTypeError()

    def keys(self) -> list[str]:
        """All keys, sorted."""
        with self._lock:
            return self._db.all_keys()

    def flush_db(self) -> None:
        """Remove all keys."""
        with self._lock:
            self._db.flush()

    def get(self, key: str) -> str:
        """The value of a string key."""
        with self._lock:
            self._require(key, STRING)
            return self._db.string_get(key)

    def set(self, key: str, value: str) -> None:
        """Set a string key and remove its expire; other types are refused."""
        with self._lock:
            self._allow(key, STRING)
            self._db.delete(key, True)
            self._db.string_set(key, value)

    def incr(self, key: str, delta: int) -> int:
        """Change an integer string value by delta."""
        with self._lock:
            self._allow(key, STRING)
            return self._db.string_incr(key, delta)

    def incrfloat(self, key: str, delta: float) -> float:
        """Change a float string value by delta."""
        with self._lock:
            self._allow(key, STRING)
            return self._db.string_incrfloat(key, delta)

    def list(self, key: str) -> list[str]:
        """All elements of a list."""
        with self._lock:
            self._require(key, LIST)
            return list(self._db.list_keys[key])

    def lpush(self, key: str, value: str) -> int:
        """Prepend a value; returns the new length."""
        with self._lock:
            self._allow(key, LIST)
            return self._db.list_lpush(key, value)

    def lpop(self, key: str) -> str:
        """Remove and return the first element."""
        with self._lock:
            self._require(key, LIST)
            return self._db.list_lpop(key)

    def push(self, key: str, *args: str) -> int:
        """Append values; returns the new length."""
        with self._lock:
            self._allow(key, LIST)
            return self._db.list_push(key, *args)

    def pop(self, key: str) -> str:
        """Remove and return the last element."""
        with self._lock:
            self._require(key, LIST)
            return self._db.list_pop(key)

    def set_add(self, key: str, *args: str) -> int:
        """Add members to a set; returns how many were new."""
        with self._lock:
            self._allow(key, SET)
            return self._db.set_add(key, *args)

    def members(self, key: str) -> list[str]:
        """All members of a set, sorted."""
        with self._lock:
            self._require(key, SET)
            return self._db.set_members(key)

    def is_member(self, key: str, value: str) -> bool:
        with self._lock:
            self._require(key, SET)
            return self._db.set_is_member(key, value)

    def hkeys(self, key: str) -> list[str]:
        """All fields of a hash, sorted."""
        with self._lock:
            self._require(key, HASH)
            return self._db.hash_fields(key)

    def delete(self, key: str) -> bool:
        """Delete a key and its expire; True if there was a key."""
        with self._lock:
            if not self._db.exists(key):
                return False
            self._db.delete(key, True)
            return True

    def ttl(self, key: str) -> timedelta:
        """The time left to live, zero when none is set."""
        with self._lock:
            return self._db.ttl.get(key, timedelta(0))

    def set_ttl(self, key: str, ttl: timedelta) -> None:
        with self._lock:
            self._db.ttl[key] = ttl
            self._db.key_version[key] += 1

    def type(self, key: str) -> str:
        """The type name of a key, or "" when it does not exist."""
        with self._lock:
            return self._db.key_type(key)

    def exists(self, key: str) -> bool:
        with self._lock:
            return self._db.exists(key)

    def hget(self, key: str, field: str) -> str:
        """A hash field, or "" when the key or field is missing."""
        with self._lock:
            return self._db.hash_get(key, field)

    def hset(self, key: str, field: str, value: str) -> None:
        """Set a hash field; a key of another type is replaced."""
        with self._lock:
            self._db.hash_set(key, field, value)

    def hdel(self, key: str, field: str) -> None:
        with self._lock:
            self._db.hash_del(key, field)

    def hincr(self, key: str, field: str, delta: int) -> int:
        with self._lock:
            return self._db.hash_incr(key, field, delta)

    def hincrfloat(self, key: str, field: str, delta: float) -> float:
        with self._lock:
            return self._db.hash_incrfloat(key, field, delta)

    def srem(self, key: str, *args: str) -> int:
        """Remove members from a set; returns how many were removed."""
        with self._lock:
            self._require(key, SET)
            return self._db.set_rem(key, *args)

    def zadd(self, key: str, score: float, member: str) -> bool:
        """Add a member to a sorted set; True if it was new."""
        with self._lock:
            self._allow(key, ZSET)
            return self._db.sset_add(key, score, member)

    def zmembers(self, key: str) -> list[str]:
        """All sorted set members, ordered by score."""
        with self._lock:
            self._require(key, ZSET)
            return self._db.sset_members(key)

    def sorted_set(self, key: str) -> dict[str, float]:
        """A sorted set as a member to score mapping."""
        with self._lock:
            self._require(key, ZSET)
            return self._db.sorted_set(key)

    def zrem(self, key: str, member: str) -> bool:
        """Remove a member; True if it was there."""
        with self._lock:
            self._require(key, ZSET)
            return self._db.sset_rem(key, member)

    def zscore(self, key: str, member: str) -> float:
        with self._lock:
            self._require(key, ZSET)
            return self._db.sset_score(key, member)


class Miniredis:
    """A set of numbered databases sharing one lock, with a selected database."""

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.signal = threading.Condition(self.lock)
        self.dbs: dict[int, RedisDB] = {}
        self.selected_db = 0

    def raw_db(self, index: int) -> RedisDB:
        """The unlocked database with this index, created when first used."""
        with self.lock:
            db = self.dbs.get(index)
            if db is None:
                db = self.dbs[index] = RedisDB()
            return db

    def db(self, index: int) -> Database:
        """A locked view of the database with this index."""
        return Database(self.raw_db(index), self.lock)

    def _iter_dbs(self) -> Iterator[RedisDB]:
        return iter(list(self.dbs.values()))

    @property
    def _current(self) -> Database:
        return self.db(self.selected_db)

    def select(self, index: int) -> None:
        """Choose the database used by the direct methods."""
        with self.lock:
            self.selected_db = index

    def keys(self) -> list[str]:
        return self._current.keys()

    def flush_all(self) -> None:
        """Remove all keys from all databases."""
        with self.lock:
            for db in self._iter_dbs():
                db.flush()

    def flush_db(self) -> None:
        self._current.flush_db()

    def get(self, key: str) -> str:
        return self._current.get(key)

    def set(self, key: str, value: str) -> None:
        self._current.set(key, value)

    def incr(self, key: str, delta: int) -> int:
        return self._current.incr(key, delta)

    def incrfloat(self, key: str, delta: float) -> float:
        return self._current.incrfloat(key, delta)

    def list(self, key: str) -> list[str]:
        return self._current.list(key)

    def lpush(self, key: str, value: str) -> int:
        return self._current.lpush(key, value)

    def lpop(self, key: str) -> str:
        return self._current.lpop(key)

    def push(self, key: str, *args: str) -> int:
        return self._current.push(key, *args)

    def pop(self, key: str) -> str:
        return self._current.pop(key)

    def set_add(self, key: str, *args: str) -> int:
        return self._current.set_add(key, *args)

    def members(self, key: str) -> list[str]:
        return self._current.members(key)

    def is_member(self, key: str, value: str) -> bool:
        return self._current.is_member(key, value)

    def hkeys(self, key: str) -> list[str]:
        return self._current.hkeys(key)

    def delete(self, key: str) -> bool:
        return self._current.delete(key)

    def ttl(self, key: str) -> timedelta:
        return self._current.ttl(key)

    def set_ttl(self, key: str, ttl: timedelta) -> None:
        self._current.set_ttl(key, ttl)

    def type(self, key: str) -> str:
        return self._current.type(key)

    def exists(self, key: str) -> bool:
        return self._current.exists(key)

    def hget(self, key: str, field: str) -> str:
        return self._current.hget(key, field)

    def hset(self, key: str, field: str, value: str) -> None:
        self._current.hset(key, field, value)

    def hdel(self, key: str, field: str) -> None:
        self._current.hdel(key, field)

    def hincr(self, key: str, field: str, delta: int) -> int:
        return self._current.hincr(key, field, delta)

    def hincrfloat(self, key: str, field: str, delta: float) -> float:
        return self._current.hincrfloat(key, field, delta)

    def srem(self, key: str, *args: str) -> int:
        return self._current.srem(key, *args)

    def zadd(self, key: str, score: float, member: str) -> bool:
        return self._current.zadd(key, score, member)

    def zmembers(self, key: str) -> list[str]:
        return self._current.zmembers(key)

    def sorted_set(self, key: str) -> dict[str, float]:
        return self._current.sorted_set(key)

    def zrem(self, key: str, member: str) -> bool:
        return self._current.zrem(key, member)

    def zscore(self, key: str, member: str) -> float:
        return self._current.zscore(key, member)