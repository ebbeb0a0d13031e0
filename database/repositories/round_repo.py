"""CRUD operations for rounds the user logs after playing."""

import asyncpg
from typing import List

from models import TrackedRound
from database.converters import parse_id, tracked_round_from_row, tracked_round_to_row
from database.exceptions import IntegrityError


class RoundRepositoryDB:
    """Async CRUD for users.rounds."""

    def __init__(self, pool: asyncpg.Pool):
        self._pool = pool

    async def create_round(self, tracked: TrackedRound) -> TrackedRound:
        """Insert a tracked round. Returns it with DB-generated id."""
        data = tracked_round_to_row(tracked)
        try:
            async with self._pool.acquire() as conn:
                row = await conn.fetchrow(
                    """INSERT INTO users.rounds
                       (user_id, analysis_id, course_name, round_date, score,
                        fairways_hit, greens_in_regulation, putts, penalties,
                        notes, hole_scores)
                       VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11::jsonb)
                       RETURNING *""",
                    data["user_id"], data["analysis_id"], data["course_name"],
                    data["round_date"], data["score"], data["fairways_hit"],
                    data["greens_in_regulation"], data["putts"], data["penalties"],
                    data["notes"], data["hole_scores"],
                )
        except asyncpg.ForeignKeyViolationError as e:
            raise IntegrityError(f"Unknown user or analysis for round: {e}") from e
        return tracked_round_from_row(row)

    async def get_rounds_for_user(
        self, user_id: str, *, limit: int = 50, offset: int = 0
    ) -> List[TrackedRound]:
        """Get a user's rounds ordered by date DESC."""
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(
                """SELECT * FROM users.rounds
                   WHERE user_id = $1
                   ORDER BY round_date DESC NULLS LAST, created_at DESC
                   LIMIT $2 OFFSET $3""",
                parse_id(user_id), limit, offset,
            )
            return [tracked_round_from_row(r) for r in rows]
