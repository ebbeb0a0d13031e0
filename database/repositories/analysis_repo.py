"""Persistence for saved analyses, including the credit charge for saving one."""

import asyncpg
from typing import List, Optional, Tuple

from models import AnalysisRecord
from database.converters import analysis_from_row, analysis_to_row, parse_id
from database.exceptions import InsufficientCreditsError, IntegrityError


class AnalysisRepositoryDB:
    """Async CRUD for users.analyses."""

    def __init__(self, pool: asyncpg.Pool):
        self._pool = pool

    async def save_analysis(
        self,
        record: AnalysisRecord,
        *,
        charge_credit: bool,
    ) -> Tuple[AnalysisRecord, Optional[int]]:
        """
        Insert an analysis and, when charge_credit is set, spend one credit.

        Both writes share one transaction and the decrement only succeeds
        while the balance is positive, so either both happen or neither does.
        Returns the saved record and the remaining credits (None if not charged).
        """
        data = analysis_to_row(record)
        credits_remaining: Optional[int] = None
        try:
            async with self._pool.acquire() as conn:
                async with conn.transaction():
                    if charge_credit:
                        credits_remaining = await conn.fetchval(
                            """UPDATE users.users SET credits = credits - 1
                               WHERE id = $1 AND credits > 0
                               RETURNING credits""",
                            data["user_id"],
                        )
                        if credits_remaining is None:
                            raise InsufficientCreditsError(
                                f"User {record.user_id} has no credits remaining"
                            )

                    row = await conn.fetchrow(
                        """INSERT INTO users.analyses
                           (user_id, name, handicap, home_course, miss_pattern, analysis)
                           VALUES ($1, $2, $3, $4, $5, $6::jsonb)
                           RETURNING *""",
                        data["user_id"], data["name"], data["handicap"],
                        data["home_course"], data["miss_pattern"], data["analysis"],
                    )
        except asyncpg.ForeignKeyViolationError as e:
            raise IntegrityError(f"User {record.user_id} does not exist: {e}") from e

        return analysis_from_row(row), credits_remaining

    async def get_analysis(self, analysis_id: str) -> Optional[AnalysisRecord]:
        """Get one analysis regardless of owner (callers check ownership)."""
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                "SELECT * FROM users.analyses WHERE id = $1", parse_id(analysis_id)
            )
            return analysis_from_row(row) if row else None

    async def list_analyses(self, user_id: str, *, limit: int = 50) -> List[AnalysisRecord]:
        """A user's analyses, newest first."""
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(
                """SELECT * FROM users.analyses
                   WHERE user_id = $1
                   ORDER BY created_at DESC
                   LIMIT $2""",
                parse_id(user_id), limit,
            )
            return [analysis_from_row(r) for r in rows]
