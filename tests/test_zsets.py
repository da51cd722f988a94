import math

import pytest

from memredis.db import CommandError, RedisDB, WrongTypeError, MSG_WRONG_TYPE
from memredis.zsets import (
    zadd,
    zcard,
    zincrby,
    zinterstore,
    zpopmax,
    zpopmin,
    zrank,
    zrem,
    zrevrank,
    zscan,
    zscore,
    zunionstore,
)


def call(db, factory, *args):
    return factory(list(args))(db)


def command_error(factory, *args):
    with pytest.raises(CommandError) as exc:
        factory(list(args))
    return exc.value.message


@pytest.fixture
def db():
    return RedisDB()


@pytest.fixture
def six(db):
    for score, member in [
        (1, "one"),
        (2, "two"),
        (2, "zwei"),
        (3, "three"),
        (3, "drei"),
        (math.inf, "inf"),
    ]:
        db.sset_add("z", score, member)
    return db


def test_sorted_set_basics(db):
    assert call(db, zadd, "z", "1", "one", "2", "two", "3", "three") == 3
    assert call(db, zcard, "z") == 3
    assert call(db, zrank, "z", "one") == 0
    assert call(db, zrank, "z", "three") == 2
    assert call(db, zrevrank, "z", "one") == 2
    assert call(db, zrevrank, "z", "three") == 0
    assert db.key_type("z") == "zset"

    assert call(db, zadd, "z", "2.1", "two") == 0
    assert call(db, zcard, "z") == 3


def test_zadd_infinity(db):
    assert call(db, zadd, "zinf", "inf", "plus inf", "-inf", "minus inf", "10", "ten") == 3
    assert call(db, zcard, "zinf") == 3
    assert db.sorted_set("zinf") == {
        "plus inf": math.inf,
        "minus inf": -math.inf,
        "ten": 10.0,
    }


def test_zrank_missing(db):
    call(db, zadd, "z", "1", "one")
    assert call(db, zrank, "z", "nosuch") is None
    assert call(db, zrank, "nosuch", "nosuch") is None


def test_basic_errors(db):
    assert command_error(zadd, "z", "noint", "two") == "ERR value is not a valid float"
    assert "wrong number" in command_error(zrank, "str")
    assert "wrong number" in command_error(zrank)
    assert "wrong number" in command_error(zcard)
    assert "wrong number" in command_error(zcard, "set", "spurious")
    db.string_set("str", "value")
    with pytest.raises(WrongTypeError):
        call(db, zcard, "str")
    with pytest.raises(WrongTypeError):
        call(db, zrank, "str", "x")


def test_zadd_flags(db):
    assert call(db, zadd, "z", "1", "one", "2", "two", "3", "three") == 3
    assert call(db, zadd, "z", "1", "one", "2.1", "two", "3", "three") == 0
    assert call(db, zadd, "z", "CH", "1", "one", "2.2", "two", "3", "three") == 1
    assert call(db, zadd, "z", "NX", "1", "one", "2.2", "two", "3", "three") == 0
    assert call(db, zadd, "z", "NX", "1", "one", "4", "four") == 1
    assert call(db, zadd, "z", "XX", "1.1", "one", "4", "four") == 0
    assert call(db, zadd, "z", "XX", "CH", "1.2", "one", "4", "four") == 1

    assert call(db, zadd, "z", "INCR", "1.2", "one") == "2.4"
    assert call(db, zadd, "z", "INCR", "NX", "1.2", "one") is None
    assert call(db, zadd, "z", "INCR", "XX", "1.2", "one") == "3.6"
    assert call(db, zadd, "q", "INCR", "XX", "1.2", "one") is None
    assert call(db, zadd, "q", "INCR", "NX", "1.2", "one") == "1.2"
    assert call(db, zadd, "q", "INCR", "NX", "1.2", "one") is None
    assert call(db, zadd, "z", "INCR", "CH", "1.2", "one") == "4.8"


def test_zadd_errors(db):
    db.string_set("str", "value")
    with pytest.raises(WrongTypeError) as exc:
        call(db, zadd, "str", "1.0", "hi")
    assert exc.value.message == MSG_WRONG_TYPE

    assert "wrong number" in command_error(zadd)
    assert "wrong number" in command_error(zadd, "set")
    assert "wrong number" in command_error(zadd, "set", "1.0")
    assert command_error(zadd, "set", "1.0", "foo", "1.0") == "ERR syntax error"
    assert command_error(zadd, "set", "MX", "1.0") == "ERR value is not a valid float"
    assert command_error(zadd, "set", "1.0", "key", "MX") == "ERR syntax error"
    assert command_error(zadd, "set", "MX", "XX", "1.0", "foo") == "ERR value is not a valid float"
    assert (
        command_error(zadd, "set", "INCR", "1.0", "foo", "2.3", "bar")
        == "ERR INCR option supports a single increment-element pair"
    )
    assert (
        command_error(zadd, "set", "XX", "NX", "1", "a")
        == "ERR XX and NX options at the same time are not compatible"
    )


def test_zrem(db):
    for score, member in [(1, "one"), (2, "two"), (2, "zwei")]:
        db.sset_add("z", score, member)
    assert call(db, zrem, "z", "two", "zwei", "nosuch") == 2
    assert db.exists("z")
    assert call(db, zrem, "z", "one") == 1
    assert not db.exists("z")
    assert call(db, zrem, "nosuch", "member") == 0

    assert "wrong number" in command_error(zrem)
    assert "wrong number" in command_error(zrem, "set")
    db.string_set("str", "value")
    with pytest.raises(WrongTypeError):
        call(db, zrem, "str", "aap")


def test_zscore(db):
    for score, member in [(1, "one"), (2, "two"), (2, "zwei")]:
        db.sset_add("z", score, member)
    assert call(db, zscore, "z", "two") == "2"
    assert call(db, zscore, "z", "nosuch") is None
    assert call(db, zscore, "nosuch", "nosuch") is None

    assert "wrong number" in command_error(zscore)
    assert "wrong number" in command_error(zscore, "key")
    assert "wrong number" in command_error(zscore, "too", "many", "arguments")
    db.string_set("str", "value")
    with pytest.raises(WrongTypeError):
        call(db, zscore, "str", "aap")


def test_zincrby(db):
    assert call(db, zincrby, "z", "1", "member") == "1"
    assert call(db, zincrby, "z", "2.5", "member") == "3.5"
    assert call(db, zincrby, "z", "1", "othermember") == "1"
    assert db.sorted_set("z") == {"member": 3.5, "othermember": 1.0}

    assert "wrong number" in command_error(zincrby)
    assert "wrong number" in command_error(zincrby, "set")
    assert command_error(zincrby, "set", "nofloat", "a") == "ERR value is not a valid float"
    assert "wrong number" in command_error(zincrby, "set", "1.0", "too", "many")
    db.string_set("str", "value")
    with pytest.raises(WrongTypeError):
        call(db, zincrby, "str", "1.0", "member")


def test_zscan(db):
    db.sset_add("h", 1.0, "field1")
    db.sset_add("h", 2.0, "field2")
    assert call(db, zscan, "h", "0") == ["0", ["field1", "1", "field2", "2"]]
    assert call(db, zscan, "h", "42") == ["0", []]
    assert call(db, zscan, "h", "0", "COUNT", "200") == ["0", ["field1", "1", "field2", "2"]]

    db.sset_add("h", 3.0, "aap")
    db.sset_add("h", 4.0, "noot")
    db.sset_add("h", 5.0, "mies")
    assert call(db, zscan, "h", "0", "MATCH", "mi*") == ["0", ["mies", "5"]]


def test_zscan_errors(db):
    assert "wrong number" in command_error(zscan)
    assert "wrong number" in command_error(zscan, "set")
    assert command_error(zscan, "set", "noint") == "ERR invalid cursor"
    assert command_error(zscan, "set", "1", "MATCH") == "ERR syntax error"
    assert command_error(zscan, "set", "1", "COUNT") == "ERR syntax error"
    assert (
        command_error(zscan, "set", "1", "COUNT", "noint")
        == "ERR value is not an integer or out of range"
    )
    db.string_set("str", "value")
    with pytest.raises(WrongTypeError):
        call(db, zscan, "str", "0")
    assert call(db, zscan, "str", "1") == ["0", []]


@pytest.fixture
def pair(db):
    db.sset_add("h1", 1.0, "field1")
    db.sset_add("h1", 2.0, "field2")
    db.sset_add("h2", 1.0, "field1")
    db.sset_add("h2", 2.0, "field2")
    return db


def test_zunionstore(pair):
    db = pair
    assert call(db, zunionstore, "new", "2", "h1", "h2") == 2
    assert db.sorted_set("new") == {"field1": 2, "field2": 4}

    db.sset_add("h3", 1.0, "field1")
    db.sset_add("h3", 3.0, "field3")
    assert call(db, zunionstore, "h3", "2", "h1", "h3") == 3
    assert db.sorted_set("h3") == {"field1": 2, "field2": 2, "field3": 3}

    assert call(db, zunionstore, "weighted", "2", "h1", "h2", "WeIgHtS", "4.5", "12") == 2
    assert db.sorted_set("weighted") == {"field1": 16.5, "field2": 33}

    assert call(db, zunionstore, "aggr", "2", "h1", "h2", "AgGrEgAtE", "min") == 2
    assert db.sorted_set("aggr") == {"field1": 1.0, "field2": 2.0}


@pytest.mark.parametrize("factory", [zunionstore, zinterstore])
def test_store_argument_errors(factory):
    assert "wrong number" in command_error(factory)
    assert "wrong number" in command_error(factory, "set")
    assert "wrong number" in command_error(factory, "set", "noint")
    assert command_error(factory, "set", "noint", "key") == "ERR value is not an integer or out of range"
    needed = "ERR at least 1 input key is needed for ZUNIONSTORE/ZINTERSTORE"
    assert command_error(factory, "set", "0", "key") == needed
    assert command_error(factory, "set", "-1", "key") == needed
    assert command_error(factory, "set", "1", "too", "many") == "ERR syntax error"
    assert command_error(factory, "set", "2", "key") == "ERR syntax error"
    assert command_error(factory, "set", "2", "k1", "k2", "WEIGHTS") == "ERR syntax error"
    assert command_error(factory, "set", "2", "k1", "k2", "WEIGHTS", "1", "2", "3") == "ERR syntax error"
    assert (
        command_error(factory, "set", "2", "k1", "k2", "WEIGHTS", "1", "nof")
        == "ERR weight value is not a float"
    )
    assert command_error(factory, "set", "2", "k1", "k2", "AGGREGATE") == "ERR syntax error"
    assert command_error(factory, "set", "2", "k1", "k2", "AGGREGATE", "foo") == "ERR syntax error"
    assert (
        command_error(factory, "set", "2", "k1", "k2", "AGGREGATE", "sum", "foo")
        == "ERR syntax error"
    )


@pytest.mark.parametrize("factory", [zunionstore, zinterstore])
def test_store_wrong_type(db, factory):
    db.string_set("str", "value")
    with pytest.raises(WrongTypeError):
        call(db, factory, "set", "1", "str")


def test_zinterstore(db):
    for key, score, member in [
        ("h1", 1.0, "field1"),
        ("h1", 2.0, "field2"),
        ("h1", 3.0, "field3"),
        ("h2", 1.0, "field1"),
        ("h2", 2.0, "field2"),
        ("h2", 4.0, "field4"),
    ]:
        db.sset_add(key, score, member)

    assert call(db, zinterstore, "new", "2", "h1", "h2") == 2
    assert db.sorted_set("new") == {"field1": 2, "field2": 4}

    assert call(db, zinterstore, "weighted", "2", "h1", "h2", "WeIgHtS", "4.5", "12") == 2
    assert db.sorted_set("weighted") == {"field1": 16.5, "field2": 33}

    assert call(db, zinterstore, "aggr", "2", "h1", "h2", "AgGrEgAtE", "min") == 2
    assert db.sorted_set("aggr") == {"field1": 1.0, "field2": 2.0}

    db.string_set("str", "value")
    with pytest.raises(WrongTypeError):
        call(db, zinterstore, "set", "2", "set", "str")


def test_zpopmin(six):
    db = six
    assert call(db, zpopmin, "z", "2") == ["one", "1", "two", "2"]
    assert call(db, zpopmin, "z") == ["zwei", "2"]
    assert call(db, zpopmin, "z", "-100") == []
    assert call(db, zpopmin, "nosuch", "1") == []
    assert call(db, zpopmin, "z", "100") == ["drei", "3", "three", "3", "inf", "inf"]
    assert not db.exists("z")


def test_zpopmax(six):
    db = six
    assert call(db, zpopmax, "z", "2") == ["inf", "inf", "three", "3"]
    assert call(db, zpopmax, "z") == ["drei", "3"]
    assert call(db, zpopmax, "z", "-100") == []
    assert call(db, zpopmax, "nosuch", "1") == []
    assert call(db, zpopmax, "z", "100") == ["zwei", "2", "two", "2", "one", "1"]


@pytest.mark.parametrize("factory", [zpopmin, zpopmax])
def test_pop_errors(db, factory):
    assert "wrong number" in command_error(factory)
    assert command_error(factory, "set", "noint") == "ERR value is not an integer or out of range"
    assert command_error(factory, "set", "1", "toomany") == "ERR syntax error"
    db.string_set("str", "value")
    with pytest.raises(WrongTypeError):
        call(db, factory, "str")