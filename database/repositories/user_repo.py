"""CRUD operations for the users.users table."""

import asyncpg
from typing import Optional

from models import SubscriptionStatus, User
from database.converters import parse_id, user_from_row
from database.exceptions import DuplicateError, NotFoundError


class UserRepositoryDB:
    """Async CRUD for users, their plan and credit balance."""

    PROFILE_FIELDS = {"name", "handicap", "home_course", "ghin_number"}

    def __init__(self, pool: asyncpg.Pool):
        self._pool = pool

    # ================================================================
    # Read
    # ================================================================

    async def get_user(self, user_id: str) -> Optional[User]:
        """Get user by ID."""
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                "SELECT * FROM users.users WHERE id = $1", parse_id(user_id)
            )
            return user_from_row(row) if row else None

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """Get user by email (case-insensitive)."""
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                "SELECT * FROM users.users WHERE LOWER(email) = LOWER($1)", email
            )
            return user_from_row(row) if row else None

    async def get_user_by_subscription_id(self, subscription_id: str) -> Optional[User]:
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                "SELECT * FROM users.users WHERE subscription_id = $1", subscription_id
            )
            return user_from_row(row) if row else None

    # ================================================================
    # Create
    # ================================================================

    async def create_user(
        self,
        email: str,
        password_hash: str,
        *,
        name: Optional[str] = None,
        handicap: Optional[float] = None,
        home_course: Optional[str] = None,
    ) -> User:
        """Create a free account with the starting credit. Returns User with DB-generated id."""
        try:
            async with self._pool.acquire() as conn:
                row = await conn.fetchrow(
                    """INSERT INTO users.users (email, password_hash, name, handicap, home_course)
                       VALUES ($1, $2, $3, $4, $5) RETURNING *""",
                    email.strip().lower(), password_hash, name, handicap, home_course,
                )
                return user_from_row(row)
        except asyncpg.UniqueViolationError as e:
            raise DuplicateError(f"Email already in use: {e}") from e

    # ================================================================
    # Update
    # ================================================================

    async def update_user(self, user_id: str, **fields) -> User:
        """Update profile fields (name, handicap, home_course, ghin_number)."""
        updates = {k: v for k, v in fields.items() if k in self.PROFILE_FIELDS}
        if not updates:
            user = await self.get_user(user_id)
            if user is None:
                raise NotFoundError(f"User {user_id} not found")
            return user

        set_clause = ", ".join(f"{k} = ${i+2}" for i, k in enumerate(updates))
        values = [parse_id(user_id)] + list(updates.values())

        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                f"UPDATE users.users SET {set_clause} WHERE id = $1 RETURNING *",
                *values,
            )
            if not row:
                raise NotFoundError(f"User {user_id} not found")
            return user_from_row(row)

    async def add_credits(self, user_id: str, amount: int) -> int:
        """Increase the credit balance. Returns the new balance."""
        async with self._pool.acquire() as conn:
            credits = await conn.fetchval(
                "UPDATE users.users SET credits = credits + $2 WHERE id = $1 RETURNING credits",
                parse_id(user_id), amount,
            )
            if credits is None:
                raise NotFoundError(f"User {user_id} not found")
            return credits

    async def set_subscription(
        self,
        user_id: str,
        status: SubscriptionStatus,
        subscription_id: Optional[str] = None,
    ) -> User:
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                """UPDATE users.users
                   SET subscription_status = $2,
                       subscription_id = COALESCE($3, subscription_id)
                   WHERE id = $1 RETURNING *""",
                parse_id(user_id), status.value, subscription_id,
            )
            if not row:
                raise NotFoundError(f"User {user_id} not found")
            return user_from_row(row)

    async def update_subscription_by_id(
        self,
        subscription_id: str,
        status: SubscriptionStatus,
        *,
        clear_subscription: bool = False,
    ) -> Optional[User]:
        """Set status for whoever holds subscription_id. Returns None if nobody does."""
        if not subscription_id:
            return None
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                """UPDATE users.users
                   SET subscription_status = $2,
                       subscription_id = CASE WHEN $3::boolean THEN NULL ELSE subscription_id END
                   WHERE subscription_id = $1 RETURNING *""",
                subscription_id, status.value, clear_subscription,
            )
            return user_from_row(row) if row else None

    async def activate_trial(self, user_id: str, credits: int) -> User:
        """Grant pro status and set the credit balance."""
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                """UPDATE users.users
                   SET subscription_status = 'pro', credits = $2
                   WHERE id = $1 RETURNING *""",
                parse_id(user_id), credits,
            )
            if not row:
                raise NotFoundError(f"User {user_id} not found")
            return user_from_row(row)
