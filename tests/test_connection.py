import asyncio
import logging

import pymysql
import pytest

from backoffice.core.config import Settings
from backoffice.database.connection import Database, PoolExhaustedError, is_connection_lost


class FakeCursor:
    def __init__(self, pool):
        self.pool = pool
        self.rowcount = 0
        self.lastrowid = None
        self._rows = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    async def execute(self, sql, params=None):
        self.pool.executed.append((sql, params))
        if self.pool.error is not None:
            raise self.pool.error
        self._rows = [{"value": 1}]
        self.rowcount = 1
        self.lastrowid = 7

    async def fetchall(self):
        return self._rows


class FakeConnection:
    def __init__(self, pool):
        self.pool = pool

    def cursor(self):
        return FakeCursor(self.pool)


class FakePool:
    def __init__(self, error=None, busy=False, maxsize=2):
        self.error = error
        self.busy = busy
        self.maxsize = maxsize
        self.gate = asyncio.Event()
        self.executed = []
        self.released = 0
        self.closed = False

    @property
    def freesize(self):
        return 0 if self.busy else 1

    @property
    def size(self):
        return self.maxsize if self.busy else 1

    async def acquire(self):
        await asyncio.sleep(0)
        if self.busy:
            await self.gate.wait()
        return FakeConnection(self)

    def release(self, conn):
        self.released += 1

    def close(self):
        self.closed = True

    async def wait_closed(self):
        pass


class PoolFactory:
    def __init__(self, *pools):
        self.pools = list(pools)
        self.created = []

    async def __call__(self, settings):
        pool = self.pools.pop(0)
        self.created.append(pool)
        return pool


def make_db(factory, **overrides):
    return Database(Settings(**overrides), pool_factory=factory)


def gone_away():
    return pymysql.err.OperationalError(2006, "MySQL server has gone away")


@pytest.mark.parametrize("error, expected", [
    (pymysql.err.OperationalError(2006, "gone away"), True),
    (pymysql.err.OperationalError(2013, "lost connection"), True),
    (pymysql.err.OperationalError(2003, "can't connect"), True),
    (pymysql.err.OperationalError(2055, "lost connection at system error"), True),
    (pymysql.err.InterfaceError(0, ""), True),
    (ConnectionResetError("reset by peer"), True),
    (asyncio.TimeoutError(), True),
    (RuntimeError("Cannot acquire connection after closing pool"), True),
    (pymysql.err.OperationalError(1045, "access denied"), False),
    (pymysql.err.ProgrammingError(1064, "syntax error"), False),
    (pymysql.err.IntegrityError(1062, "duplicate entry"), False),
    (ValueError("bad value"), False),
])
def test_is_connection_lost(error, expected):
    assert is_connection_lost(error) is expected


async def test_pool_created_lazily():
    factory = PoolFactory(FakePool())
    db = make_db(factory)
    assert factory.created == []
    assert await db.fetch_all("SELECT 1") == [{"value": 1}]
    assert await db.fetch_one("SELECT 1") == {"value": 1}
    assert len(factory.created) == 1


async def test_execute_returns_driver_counts():
    pool = FakePool()
    db = make_db(PoolFactory(pool))
    result = await db.execute("DELETE FROM stores WHERE id = %s", ["s1"])
    assert result.rowcount == 1
    assert result.lastrowid == 7
    assert pool.executed == [("DELETE FROM stores WHERE id = %s", ("s1",))]
    assert pool.released == 1


async def test_retries_once_on_new_pool_after_connection_loss():
    broken = FakePool(error=gone_away())
    healthy = FakePool()
    factory = PoolFactory(broken, healthy)
    db = make_db(factory)

    assert await db.fetch_all("SELECT 1") == [{"value": 1}]
    assert factory.created == [broken, healthy]
    assert broken.closed
    assert broken.released == 1


async def test_second_connection_loss_propagates():
    factory = PoolFactory(FakePool(error=gone_away()), FakePool(error=gone_away()))
    db = make_db(factory)
    with pytest.raises(pymysql.err.OperationalError):
        await db.execute("UPDATE stores SET name = %s", ["x"])
    assert len(factory.created) == 2


async def test_other_errors_are_not_retried():
    factory = PoolFactory(FakePool(error=pymysql.err.IntegrityError(1062, "Duplicate entry")), FakePool())
    db = make_db(factory)
    with pytest.raises(pymysql.err.IntegrityError):
        await db.execute("INSERT INTO users (email) VALUES (%s)", ["a@example.com"])
    assert len(factory.created) == 1


async def test_concurrent_failures_recreate_the_pool_once():
    factory = PoolFactory(FakePool(error=gone_away()), FakePool(), FakePool())
    db = make_db(factory)
    results = await asyncio.gather(db.fetch_one("SELECT 1"), db.fetch_one("SELECT 1"))
    assert results == [{"value": 1}, {"value": 1}]
    assert len(factory.created) == 2


async def test_wait_queue_is_bounded():
    pool = FakePool(busy=True)
    db = make_db(PoolFactory(pool), db_queue_limit=1)

    waiting = asyncio.create_task(db.fetch_one("SELECT 1"))
    for _ in range(3):
        await asyncio.sleep(0)

    with pytest.raises(PoolExhaustedError):
        await db.fetch_one("SELECT 1")

    pool.gate.set()
    assert await waiting == {"value": 1}


async def test_keepalive_logs_failed_pings(caplog):
    pool = FakePool(error=pymysql.err.OperationalError(1045, "access denied"))
    db = make_db(PoolFactory(pool), db_keepalive_interval=0.01)

    with caplog.at_level(logging.WARNING, logger="backoffice.database.connection"):
        db.start_keepalive()
        await asyncio.sleep(0.05)
        await db.close()

    assert any("keep-alive ping failed" in r.message for r in caplog.records)
    assert pool.closed
    assert db._keepalive_task is None


async def test_close_without_pool():
    db = make_db(PoolFactory())
    await db.close()
