"""A client connection: command dispatch and MULTI/EXEC transactions."""

from __future__ import annotations

from typing import Callable, Dict, List, Optional, Sequence, Tuple

from memredis import sets, zset_ranges, zsets
from memredis.db import CommandError, RedisError
from memredis.sets import Handler, Reply
from memredis.store import Miniredis

_FACTORIES: Tuple[Callable[[Sequence[str]], Handler], ...] = (
    sets.sadd,
    sets.scard,
    sets.sdiff,
    sets.sdiffstore,
    sets.sinter,
    sets.sinterstore,
    sets.sismember,
    sets.smembers,
    sets.smove,
    sets.spop,
    sets.srandmember,
    sets.srem,
    sets.sunion,
    sets.sunionstore,
    sets.sscan,
    zset_ranges.zcount,
    zset_ranges.zlexcount,
    zset_ranges.zrange,
    zset_ranges.zrevrange,
    zset_ranges.zrangebylex,
    zset_ranges.zrevrangebylex,
    zset_ranges.zrangebyscore,
    zset_ranges.zrevrangebyscore,
    zset_ranges.zremrangebylex,
    zset_ranges.zremrangebyrank,
    zset_ranges.zremrangebyscore,
    zsets.zadd,
    zsets.zcard,
    zsets.zincrby,
    zsets.zinterstore,
    zsets.zunionstore,
    zsets.zrank,
    zsets.zrevrank,
    zsets.zrem,
    zsets.zscore,
    zsets.zscan,
    zsets.zpopmax,
    zsets.zpopmin,
)

COMMANDS: Dict[str, Callable[[Sequence[str]], Handler]] = {
    factory.__name__.upper(): factory for factory in _FACTORIES
}


def _wrong_number(command: str) -> CommandError:
    return CommandError(f"ERR wrong number of arguments for '{command.lower()}' command")


class Connection:
    """One client of a server, with its own selected database and transaction."""

    def __init__(self, server: Miniredis) -> None:
        self.server = server
        self.selected_db = 0
        self._queue: Optional[List[Handler]] = None
        self._dirty = False
        self._watch: Dict[Tuple[int, str], int] = {}
        self._special: Dict[str, Callable[[List[str]], Reply]] = {
            "MULTI": self._multi,
            "EXEC": self._exec,
            "DISCARD": self._discard,
            "WATCH": self._watch_keys,
            "UNWATCH": self._unwatch,
        }

    def in_transaction(self) -> bool:
        """Whether MULTI was given and commands are being queued."""
        return self._queue is not None

    def execute(self, command: str, *args: str) -> Reply:
        """Run a command and return its reply; errors are raised as RedisError.

        Inside a transaction commands are queued and "QUEUED" is returned.
        EXEC returns a list in which a failed command shows as its error.
        """
        name = command.upper()
        special = self._special.get(name)
        if special is not None:
            return special(list(args))
        factory = COMMANDS.get(name)
        if factory is None:
            self._mark_dirty()
            raise CommandError(f"ERR unknown command '{command}'")
        try:
            handler = factory(list(args))
        except RedisError:
            self._mark_dirty()
            raise
        return self._with_tx(handler)

    def _mark_dirty(self) -> None:
        if self.in_transaction():
            self._dirty = True

    def _stop_tx(self) -> None:
        self._queue = None
        self._dirty = False
        self._watch.clear()

    def _with_tx(self, handler: Handler) -> Reply:
        if self._queue is not None:
            self._queue.append(handler)
            return "QUEUED"
        with self.server.lock:
            try:
                return handler(self.server.raw_db(self.selected_db))
            finally:
                self.server.signal.notify_all()

    def _multi(self, args: List[str]) -> Reply:
        if args:
            raise _wrong_number("multi")
        if self.in_transaction():
            raise CommandError("ERR MULTI calls can not be nested")
        self._queue = []
        self._dirty = False
        return "OK"

    def _exec(self, args: List[str]) -> Reply:
        if args:
            self._mark_dirty()
            raise _wrong_number("exec")
        if self._queue is None:
            raise CommandError("ERR EXEC without MULTI")
        if self._dirty:
            self._stop_tx()
            raise CommandError("EXECABORT Transaction discarded because of previous errors.")

        with self.server.lock:
            for (index, key), version in self._watch.items():
                if self.server.raw_db(index).key_version[key] > version:
                    self._stop_tx()
                    return []
            queue = self._queue
            results: List[Reply] = []
            for handler in queue:
                try:
                    results.append(handler(self.server.raw_db(self.selected_db)))
                except RedisError as err:
                    results.append(err)  # type: ignore[arg-type]
            self.server.signal.notify_all()
            self._stop_tx()
            return results

    def _discard(self, args: List[str]) -> Reply:
        if args:
            self._mark_dirty()
            raise _wrong_number("discard")
        if not self.in_transaction():
            raise CommandError("ERR DISCARD without MULTI")
        self._stop_tx()
        return "OK"

    def _watch_keys(self, args: List[str]) -> Reply:
        if not args:
            self._mark_dirty()
            raise _wrong_number("watch")
        if self.in_transaction():
            raise CommandError("ERR WATCH in MULTI")
        with self.server.lock:
            db = self.server.raw_db(self.selected_db)
            for key in args:
                self._watch[(self.selected_db, key)] = db.key_version[key]
        return "OK"

    def _unwatch(self, args: List[str]) -> Reply:
        if args:
            self._mark_dirty()
            raise _wrong_number("unwatch")
        self._watch.clear()
        return self._with_tx(lambda db: "OK")