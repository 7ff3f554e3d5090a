import asyncio
import functools
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Sequence, TypeVar

import aiomysql
import pymysql

from backoffice.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

# MySQL client error codes for a severed or unreachable server connection:
# 2003 can't connect, 2006 server has gone away, 2013 lost connection during
# query, 2055 lost connection at system error.
CONNECTION_LOST_CODES = frozenset({2003, 2006, 2013, 2055})

POOL_CLOSED_MESSAGES = ("closing pool", "pool is closed", "pool closed")

PoolFactory = Callable[[Settings], Awaitable[Any]]


class PoolExhaustedError(RuntimeError):
    """Raised when the bounded connection wait queue is full."""


@dataclass(frozen=True)
class ExecuteResult:
    """What the driver reports for a statement that returns no rows."""

    rowcount: int
    lastrowid: Optional[int] = None


def is_connection_lost(error: BaseException) -> bool:
    """Return True if the error means the connection (or pool) is gone."""
    if isinstance(error, pymysql.err.InterfaceError):
        # InterfaceError(0, '') is raised on a connection closed under us
        return True
    if isinstance(error, pymysql.err.OperationalError):
        code = error.args[0] if error.args else None
        return code in CONNECTION_LOST_CODES
    if isinstance(error, (ConnectionError, TimeoutError, asyncio.TimeoutError)):
        return True
    message = str(error).lower()
    return any(marker in message for marker in POOL_CLOSED_MESSAGES)


def with_retry(max_retries: int = 1, delay: float = 0.0) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Decorator that retries Database operations on connection-loss errors.

    The pool is recreated before each retry. Any other error, or a failure
    once the retries are used up, propagates to the caller.

    Args:
        max_retries: Maximum number of retry attempts (default 1)
        delay: Delay in seconds before retrying (default 0)
    """
    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(self: "Database", *args, **kwargs) -> T:
            for attempt in range(max_retries + 1):
                generation = self._generation
                try:
                    return await func(self, *args, **kwargs)
                except Exception as e:
                    if not is_connection_lost(e) or attempt >= max_retries:
                        if is_connection_lost(e):
                            logger.error(f"Connection error in {func.__name__} after {max_retries} retries: {e}")
                        raise
                    logger.warning(
                        f"Connection error in {func.__name__}, recreating pool and retrying "
                        f"({attempt + 1}/{max_retries}): {e}"
                    )
                    await self.reset_pool(generation)
                    if delay:
                        await asyncio.sleep(delay)
            raise AssertionError("unreachable")
        return wrapper
    return decorator


async def create_mysql_pool(settings: Settings):
    return await aiomysql.create_pool(
        host=settings.db_host,
        port=settings.db_port,
        user=settings.db_user,
        password=settings.db_password,
        db=settings.db_name,
        minsize=settings.db_pool_min,
        maxsize=settings.db_pool_max,
        pool_recycle=settings.db_pool_recycle,
        connect_timeout=settings.db_connect_timeout,
        autocommit=True,
        cursorclass=aiomysql.DictCursor,
        charset="utf8mb4",
    )


class Database:
    """Owns the MySQL connection pool for the process.

    The pool is created lazily on the first query and recreated once when a
    query fails because the connection was severed. A background task pings
    the server at a fixed interval so dead connections surface early.
    """

    def __init__(self, settings: Settings | None = None, pool_factory: PoolFactory | None = None):
        self.settings = settings or get_settings()
        self._pool_factory = pool_factory or create_mysql_pool
        self._pool = None
        self._pool_lock = asyncio.Lock()
        self._generation = 0
        self._waiting = 0
        self._keepalive_task: asyncio.Task | None = None

    async def _get_pool(self):
        if self._pool is not None:
            return self._pool
        async with self._pool_lock:
            if self._pool is None:
                logger.info(
                    f"Creating MySQL pool for {self.settings.db_host}:{self.settings.db_port}/{self.settings.db_name}"
                )
                self._pool = await self._pool_factory(self.settings)
        return self._pool

    async def reset_pool(self, generation: int | None = None) -> None:
        """Close the current pool so the next query creates a fresh one.

        When ``generation`` is given the reset only happens if no other
        caller has already replaced the pool since that generation.
        """
        async with self._pool_lock:
            if generation is not None and generation != self._generation:
                return
            pool, self._pool = self._pool, None
            self._generation += 1
        if pool is not None:
            await self._close_pool(pool)

    async def _close_pool(self, pool) -> None:
        try:
            pool.close()
            await pool.wait_closed()
        except Exception as e:
            logger.warning(f"Error while closing MySQL pool: {e}")

    @asynccontextmanager
    async def _connection(self):
        pool = await self._get_pool()
        queued = pool.freesize == 0 and pool.size >= pool.maxsize
        if queued:
            limit = self.settings.db_queue_limit
            if limit and self._waiting >= limit:
                raise PoolExhaustedError(f"Connection queue is full ({limit} waiting)")
            self._waiting += 1
        try:
            conn = await pool.acquire()
        finally:
            if queued:
                self._waiting -= 1
        try:
            yield conn
        finally:
            pool.release(conn)

    async def _run(self, sql: str, params: Sequence[Any] | None, fetch: bool):
        async with self._connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(sql, tuple(params) if params else None)
                if fetch:
                    return list(await cur.fetchall())
                return ExecuteResult(rowcount=cur.rowcount, lastrowid=cur.lastrowid)

    @with_retry()
    async def fetch_all(self, sql: str, params: Sequence[Any] | None = None) -> list[dict]:
        """Run a query and return every row as a dict."""
        return await self._run(sql, params, fetch=True)

    @with_retry()
    async def fetch_one(self, sql: str, params: Sequence[Any] | None = None) -> dict | None:
        """Run a query and return the first row, or None."""
        rows = await self._run(sql, params, fetch=True)
        return rows[0] if rows else None

    @with_retry()
    async def execute(self, sql: str, params: Sequence[Any] | None = None) -> ExecuteResult:
        """Run a statement that returns no rows."""
        return await self._run(sql, params, fetch=False)

    async def ping(self) -> bool:
        await self.fetch_one("SELECT 1")
        return True

    def start_keepalive(self) -> None:
        if self._keepalive_task is None or self._keepalive_task.done():
            self._keepalive_task = asyncio.create_task(self._keepalive())

    async def _keepalive(self) -> None:
        interval = self.settings.db_keepalive_interval
        while True:
            await asyncio.sleep(interval)
            try:
                await self.ping()
            except Exception as e:
                logger.warning(f"Database keep-alive ping failed: {e}")

    async def close(self) -> None:
        """Cancel the keep-alive task and drain the pool."""
        if self._keepalive_task is not None:
            self._keepalive_task.cancel()
            try:
                await self._keepalive_task
            except asyncio.CancelledError:
                pass
            self._keepalive_task = None
        async with self._pool_lock:
            pool, self._pool = self._pool, None
        if pool is not None:
            await self._close_pool(pool)
            logger.info("MySQL pool closed")


_database: Optional[Database] = None


def get_db() -> Database:
    """Get or create the process-wide Database."""
    global _database
    if _database is None:
        _database = Database()
    return _database
