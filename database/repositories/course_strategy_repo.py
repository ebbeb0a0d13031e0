"""CRUD operations for saved course strategies."""

import asyncpg
from typing import List, Optional

from models import CourseStrategyRecord
from database.converters import course_strategy_from_row, course_strategy_to_row, parse_id


class CourseStrategyRepositoryDB:
    """Async CRUD for users.course_strategies."""

    def __init__(self, pool: asyncpg.Pool):
        self._pool = pool

    async def save_strategy(self, record: CourseStrategyRecord) -> CourseStrategyRecord:
        data = course_strategy_to_row(record)
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                """INSERT INTO users.course_strategies (user_id, course_name, tees, strategy)
                   VALUES ($1, $2, $3, $4::jsonb) RETURNING *""",
                data["user_id"], data["course_name"], data["tees"], data["strategy"],
            )
            return course_strategy_from_row(row)

    async def get_strategy(self, strategy_id: str) -> Optional[CourseStrategyRecord]:
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                "SELECT * FROM users.course_strategies WHERE id = $1", parse_id(strategy_id)
            )
            return course_strategy_from_row(row) if row else None

    async def list_strategies(self, user_id: str, *, limit: int = 50) -> List[CourseStrategyRecord]:
        """A user's course strategies, newest first."""
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(
                """SELECT * FROM users.course_strategies
                   WHERE user_id = $1
                   ORDER BY created_at DESC
                   LIMIT $2""",
                parse_id(user_id), limit,
            )
            return [course_strategy_from_row(r) for r in rows]
