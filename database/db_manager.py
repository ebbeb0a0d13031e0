from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import asyncpg

from database.exceptions import DatabaseError
from database.repositories import (
    AnalysisRepositoryDB,
    CourseStrategyRepositoryDB,
    RoundRepositoryDB,
    UserRepositoryDB,
)

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).with_name("schema.sql")


class DatabaseManager:
    """
    Repository container bound to one asyncpg pool.

    Route handlers receive this through a dependency, so tests can swap in
    an in-memory equivalent with the same attributes.
    """

    def __init__(self, pool: asyncpg.Pool):
        self._pool = pool
        self.users = UserRepositoryDB(pool)
        self.analyses = AnalysisRepositoryDB(pool)
        self.rounds = RoundRepositoryDB(pool)
        self.course_strategies = CourseStrategyRepositoryDB(pool)

    async def initialize_schema(self, schema_path: Optional[Path] = None) -> None:
        """Create schemas/tables defined in `database/schema.sql`."""
        path = Path(schema_path or SCHEMA_PATH)
        if not path.exists():
            raise DatabaseError(f"Schema file not found: {path}")
        sql_text = path.read_text(encoding="utf-8")
        async with self._pool.acquire() as conn:
            await conn.execute(sql_text)
        logger.info("Database schema ensured from %s", path.name)
