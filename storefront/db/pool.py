from __future__ import annotations

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from dataclasses import dataclass

import asyncpg

from storefront.errors import OperationTimeout, PoolExhausted

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PgConfig:
    host: str
    port: int
    database: str
    user: str
    password: str
    sslmode: str = "disable"
    pool_size: int = 20
    queue_limit: int = 100
    acquire_timeout: float = 60.0
    command_timeout: float = 30.0

    @classmethod
    def from_env(cls) -> "PgConfig":
        return cls(
            host=os.getenv("PG_HOST", "localhost"),
            port=int(os.getenv("PG_PORT", "5432")),
            database=os.getenv("PG_DB", "storefront"),
            user=os.getenv("PG_USER", "postgres"),
            password=os.getenv("PG_PASS", ""),
            sslmode=os.getenv("PG_SSLMODE", "disable"),
            pool_size=int(os.getenv("PG_POOL_SIZE", "20")),
            queue_limit=int(os.getenv("PG_QUEUE_LIMIT", "100")),
            acquire_timeout=float(os.getenv("PG_ACQUIRE_TIMEOUT", "60")),
            command_timeout=float(os.getenv("PG_COMMAND_TIMEOUT", "30")),
        )


def _ssl_arg(sslmode: str):
    return None if sslmode == "disable" else True


class BoundedPool:
    """Fixed-size asyncpg pool with a bounded wait queue.

    At most `queue_limit` callers may wait for a connection at once and no
    caller waits longer than `acquire_timeout`; both conditions surface as
    PoolExhausted instead of blocking forever.
    """

    def __init__(self, pool: asyncpg.Pool, *, queue_limit: int = 100, acquire_timeout: float = 60.0):
        self.pool = pool
        self.queue_limit = queue_limit
        self.acquire_timeout = acquire_timeout
        self._waiting = 0

    @property
    def waiting(self) -> int:
        return self._waiting

    @asynccontextmanager
    async def acquire(self):
        if self._waiting >= self.queue_limit:
            logger.warning("db.pool.queue_full waiting=%s", self._waiting)
            raise PoolExhausted()

        self._waiting += 1
        try:
            conn = await self.pool.acquire(timeout=self.acquire_timeout)
        except asyncio.TimeoutError as e:
            logger.warning("db.pool.acquire_timeout timeout=%s", self.acquire_timeout)
            raise PoolExhausted() from e
        finally:
            self._waiting -= 1

        try:
            yield conn
        except asyncio.TimeoutError as e:
            # asyncpg command_timeout
            logger.warning("db.query.timeout")
            raise OperationTimeout() from e
        finally:
            await self.pool.release(conn)

    @asynccontextmanager
    async def transaction(self):
        async with self.acquire() as conn:
            async with conn.transaction():
                yield conn

    async def execute(self, sql: str, *args) -> str:
        async with self.acquire() as conn:
            return await conn.execute(sql, *args)

    async def close(self) -> None:
        await self.pool.close()


async def create_pool(cfg: PgConfig) -> BoundedPool:
    pool = await asyncpg.create_pool(
        host=cfg.host,
        port=cfg.port,
        database=cfg.database,
        user=cfg.user,
        password=cfg.password,
        ssl=_ssl_arg(cfg.sslmode),
        min_size=1,
        max_size=cfg.pool_size,
        command_timeout=cfg.command_timeout,
    )
    logger.info(
        "db.pool.ready host=%s database=%s size=%s queue_limit=%s",
        cfg.host, cfg.database, cfg.pool_size, cfg.queue_limit,
    )
    return BoundedPool(pool, queue_limit=cfg.queue_limit, acquire_timeout=cfg.acquire_timeout)


def affected_rows(status: str) -> int:
    """asyncpg returns command tags like 'UPDATE 1' / 'DELETE 0'."""
    last = (status or "").split()[-1:]
    return int(last[0]) if last and last[0].isdigit() else 0
