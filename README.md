# memredis

An in-memory data store that behaves like Redis, meant for use in tests.
It keeps strings, lists, hashes, sets and sorted sets in numbered
databases, answers Redis-style set and sorted set commands, and supports
`MULTI`/`EXEC` transactions with `WATCH`.

Everything lives in your Python process.

## Installing

```
pip install memredis
```

For running the test suite:

```
pip install "memredis[test]"
pytest
```

## Direct access

`memredis.store.Miniredis` lets you read and change the data directly,
which is handy for setting up fixtures and checking results. All calls
are taken under one shared lock, so it is safe to use from several
threads.

```python
from datetime import timedelta
from memredis.store import Miniredis

m = Miniredis()
m.set("greeting", "hello")
m.get("greeting")                 # "hello"
m.incr("counter", 5)              # 5

m.push("queue", "a", "b")         # 2
m.lpop("queue")                   # "a"

m.hset("user", "name", "ann")
m.hkeys("user")                   # ["name"]

m.set_add("fruit", "apple", "pear")
m.members("fruit")                # ["apple", "pear"]

m.zadd("scores", 3.5, "alice")
m.zadd("scores", 1.0, "bob")
m.zmembers("scores")              # ["bob", "alice"]
m.sorted_set("scores")            # {"alice": 3.5, "bob": 1.0}

m.set_ttl("greeting", timedelta(seconds=30))
m.ttl("greeting")                 # timedelta(seconds=30)

m.select(1)                       # further calls work on database 1
m.db(0).get("greeting")           # a single database, by index
```

Reading a missing key raises `KeyNotFoundError`; using a key of the wrong
kind raises `WrongTypeError`; incrementing a value that is not a number
raises `IntValueError` or `FloatValueError`. All live in `memredis.db`
and derive from `RedisError`, whose `message` holds the Redis-style error
text.

## Commands

`memredis.connection.Connection` sends commands by name, as a Redis
client would. Arguments are strings; replies are integers, strings,
`None` or lists.

```python
from memredis.store import Miniredis
from memredis.connection import Connection

m = Miniredis()
conn = Connection(m)

conn.execute("SADD", "s", "a", "b", "c")      # 3
conn.execute("ZADD", "z", "1", "one", "2", "two")
conn.execute("ZRANGE", "z", "0", "-1", "WITHSCORES")
# ["one", "1", "two", "2"]
```

A command with bad arguments, an unknown command, or a key of the wrong
type raises a `RedisError`.

Transactions queue commands until `EXEC`:

```python
conn.execute("MULTI")
conn.execute("SADD", "k", "v")                # "QUEUED"
conn.execute("EXEC")                          # [1]
```

A command rejected while queuing makes `EXEC` fail with an `EXECABORT`
error. A command that fails while `EXEC` runs shows up in the result
list as its `RedisError`. If a key named in `WATCH` changes before
`EXEC`, the transaction is dropped and `EXEC` returns an empty list.

## Supported commands

- Sets: `SADD`, `SCARD`, `SDIFF`, `SDIFFSTORE`, `SINTER`, `SINTERSTORE`,
  `SISMEMBER`, `SMEMBERS`, `SMOVE`, `SPOP`, `SRANDMEMBER`, `SREM`,
  `SUNION`, `SUNIONSTORE`, `SSCAN`
- Sorted sets: `ZADD`, `ZCARD`, `ZCOUNT`, `ZINCRBY`, `ZINTERSTORE`,
  `ZLEXCOUNT`, `ZRANGE`, `ZRANGEBYLEX`, `ZRANGEBYSCORE`, `ZRANK`, `ZREM`,
  `ZREMRANGEBYLEX`, `ZREMRANGEBYRANK`, `ZREMRANGEBYSCORE`, `ZREVRANGE`,
  `ZREVRANGEBYLEX`, `ZREVRANGEBYSCORE`, `ZREVRANK`, `ZSCORE`,
  `ZUNIONSTORE`, `ZSCAN`, `ZPOPMAX`, `ZPOPMIN`
- Transactions: `MULTI`, `EXEC`, `DISCARD`, `WATCH`, `UNWATCH`

`SSCAN` and `ZSCAN` always return every matching element in one go, with
a next cursor of `"0"`.

## What it does not do

- There is no network server and no wire protocol: commands go through
  `Connection.execute` in the same process.
- Strings, lists and hashes can only be used through `Miniredis`; there
  are no `GET`, `SET`, `LPUSH`, `HSET` or similar commands, and no
  `SELECT`, `AUTH` or pub/sub commands.
- TTLs are stored but do not run out with the clock. Time only moves when
  you call `fast_forward` on a database from `Miniredis.raw_db`, which
  deletes the keys whose TTL has run out.
- Nothing is written to disk.