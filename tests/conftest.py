from datetime import datetime, timezone
from typing import Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from api.dependencies import get_app_settings, get_db, get_ghin
from api.main import create_app
from api.rate_limit import ANALYZE_LIMITER, AUTH_LIMITER
from api.security import create_access_token, hash_password
from config import Settings
from database.exceptions import DuplicateError, InsufficientCreditsError, NotFoundError
from models import (
    AnalysisRecord,
    CourseStrategyRecord,
    SubscriptionStatus,
    TrackedRound,
    User,
)


# ================================================================
# In-memory repositories (same method signatures as the asyncpg ones)
# ================================================================

def _now() -> datetime:
    return datetime.now(timezone.utc)


class FakeUserRepository:
    def __init__(self):
        self.users: Dict[str, User] = {}

    async def get_user(self, user_id: str) -> Optional[User]:
        user = self.users.get(user_id)
        return user.model_copy() if user else None

    async def get_user_by_email(self, email: str) -> Optional[User]:
        for user in self.users.values():
            if user.email.lower() == email.strip().lower():
                return user.model_copy()
        return None

    async def get_user_by_subscription_id(self, subscription_id: str) -> Optional[User]:
        for user in self.users.values():
            if user.subscription_id == subscription_id:
                return user.model_copy()
        return None

    async def create_user(self, email, password_hash, *, name=None, handicap=None, home_course=None) -> User:
        if await self.get_user_by_email(email):
            raise DuplicateError(f"Email already in use: {email}")
        user = User(
            id=str(uuid4()),
            email=email.strip().lower(),
            password_hash=password_hash,
            name=name,
            handicap=handicap,
            home_course=home_course,
            created_at=_now(),
        )
        self.users[user.id] = user
        return user.model_copy()

    async def update_user(self, user_id: str, **fields) -> User:
        user = self.users.get(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        for key, value in fields.items():
            setattr(user, key, value)
        return user.model_copy()

    async def add_credits(self, user_id: str, amount: int) -> int:
        user = self.users.get(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        user.credits += amount
        return user.credits

    async def set_subscription(self, user_id, status, subscription_id=None) -> User:
        user = self.users.get(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        user.subscription_status = status
        if subscription_id is not None:
            user.subscription_id = subscription_id
        return user.model_copy()

    async def update_subscription_by_id(self, subscription_id, status, *, clear_subscription=False):
        for user in self.users.values():
            if subscription_id and user.subscription_id == subscription_id:
                user.subscription_status = status
                if clear_subscription:
                    user.subscription_id = None
                return user.model_copy()
        return None

    async def activate_trial(self, user_id: str, credits: int) -> User:
        user = self.users.get(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        user.subscription_status = SubscriptionStatus.PRO
        user.credits = credits
        return user.model_copy()


class FakeAnalysisRepository:
    def __init__(self, users: FakeUserRepository):
        self._users = users
        self.records: Dict[str, AnalysisRecord] = {}

    async def save_analysis(self, record: AnalysisRecord, *, charge_credit: bool):
        remaining = None
        if charge_credit:
            user = self._users.users[record.user_id]
            if user.credits <= 0:
                raise InsufficientCreditsError(f"User {record.user_id} has no credits remaining")
            user.credits -= 1
            remaining = user.credits
        saved = record.model_copy(update={"id": str(uuid4()), "created_at": _now()})
        self.records[saved.id] = saved
        return saved, remaining

    async def get_analysis(self, analysis_id: str) -> Optional[AnalysisRecord]:
        return self.records.get(analysis_id)

    async def list_analyses(self, user_id: str, *, limit: int = 50) -> List[AnalysisRecord]:
        mine = [r for r in self.records.values() if r.user_id == user_id]
        return sorted(mine, key=lambda r: r.created_at, reverse=True)[:limit]


class FakeRoundRepository:
    def __init__(self):
        self.rounds: List[TrackedRound] = []

    async def create_round(self, tracked: TrackedRound) -> TrackedRound:
        saved = tracked.model_copy(update={"id": str(uuid4()), "created_at": _now()})
        self.rounds.append(saved)
        return saved

    async def get_rounds_for_user(self, user_id: str, *, limit: int = 50, offset: int = 0):
        mine = [r for r in self.rounds if r.user_id == user_id]
        return mine[offset:offset + limit]


class FakeCourseStrategyRepository:
    def __init__(self):
        self.records: Dict[str, CourseStrategyRecord] = {}

    async def save_strategy(self, record: CourseStrategyRecord) -> CourseStrategyRecord:
        saved = record.model_copy(update={"id": str(uuid4()), "created_at": _now()})
        self.records[saved.id] = saved
        return saved

    async def get_strategy(self, strategy_id: str) -> Optional[CourseStrategyRecord]:
        return self.records.get(strategy_id)

    async def list_strategies(self, user_id: str, *, limit: int = 50):
        return [r for r in self.records.values() if r.user_id == user_id][:limit]


class FakeDatabaseManager:
    def __init__(self):
        self.users = FakeUserRepository()
        self.analyses = FakeAnalysisRepository(self.users)
        self.rounds = FakeRoundRepository()
        self.course_strategies = FakeCourseStrategyRepository()


# ================================================================
# Fixtures
# ================================================================

@pytest.fixture
def mock_pool():
    pool = MagicMock()
    conn = AsyncMock()
    pool.acquire.return_value.__aenter__.return_value = conn
    return pool, conn


@pytest.fixture
def settings():
    return Settings(
        jwt_secret="test-secret",
        stripe_secret_key="sk_test_123",
        stripe_webhook_secret="whsec_test",
        stripe_price_monthly="price_monthly",
        stripe_price_yearly="price_yearly",
        stripe_price_credits="price_credits",
        trial_code="LETMEIN",
    )


@pytest.fixture
def fake_db():
    return FakeDatabaseManager()


@pytest.fixture
def fake_ghin():
    ghin = MagicMock()
    ghin.configured = True
    return ghin


@pytest.fixture(autouse=True)
def reset_rate_limits():
    ANALYZE_LIMITER.reset()
    AUTH_LIMITER.reset()
    yield
    ANALYZE_LIMITER.reset()
    AUTH_LIMITER.reset()


@pytest.fixture
def client(fake_db, fake_ghin, settings):
    app = create_app()
    app.dependency_overrides[get_db] = lambda: fake_db
    app.dependency_overrides[get_ghin] = lambda: fake_ghin
    app.dependency_overrides[get_app_settings] = lambda: settings
    return TestClient(app)


@pytest.fixture
def make_user(fake_db):
    """Insert a user directly into the fake store."""
    def _make(email="golfer@example.com", password="secret", **fields):
        user = User(
            id=str(uuid4()),
            email=email,
            password_hash=hash_password(password),
            created_at=_now(),
            **fields,
        )
        fake_db.users.users[user.id] = user
        return user
    return _make


@pytest.fixture
def auth_headers(settings):
    def _headers(user: User) -> Dict[str, str]:
        token = create_access_token(settings, user.id, user.email)
        return {"Authorization": f"Bearer {token}"}
    return _headers
