import logging
from typing import Optional

import asyncpg

logger = logging.getLogger(__name__)

LOCAL_DSN = "postgresql://postgres@localhost:5432/fairway_strategy"


class DatabasePool:
    """Owns the asyncpg pool for the lifetime of the API process."""

    def __init__(self, min_size: int = 2, max_size: int = 10, command_timeout: float = 30.0):
        self._pool: Optional[asyncpg.Pool] = None
        self._min_size = min_size
        self._max_size = max_size
        self._command_timeout = command_timeout

    @property
    def is_ready(self) -> bool:
        return self._pool is not None

    async def initialize(self, dsn: Optional[str] = None) -> None:
        """Open the pool once at startup. Without a DSN the local database is used."""
        if self._pool is not None:
            return
        self._pool = await asyncpg.create_pool(
            dsn=dsn or LOCAL_DSN,
            min_size=self._min_size,
            max_size=self._max_size,
            command_timeout=self._command_timeout,
        )
        logger.info("Database pool ready (min=%d, max=%d)", self._min_size, self._max_size)

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            logger.info("Database pool closed")

    @property
    def pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise RuntimeError("Database pool not initialized; call db.initialize() at startup")
        return self._pool

    async def health_check(self) -> bool:
        """True when a pooled connection answers SELECT 1."""
        if self._pool is None:
            return False
        try:
            async with self._pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
        except (OSError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
            logger.warning("Database health check failed: %s", e)
            return False
        return True


db = DatabasePool()
