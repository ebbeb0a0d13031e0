"""Request and response bodies for the HTTP API (camelCase on the wire)."""

from datetime import date as date_type, datetime
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Any, Dict, List, Optional, Union

from models import AnalysisRecord, CourseStrategyRecord, HoleScore, TrackedRound, User


class ApiModel(BaseModel):
    """Accepts camelCase or snake_case input, serializes camelCase."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


CreditsRemaining = Union[int, str]


# ================================================================
# Auth
# ================================================================

class RegisterRequest(ApiModel):
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)
    name: Optional[str] = None
    handicap: Optional[float] = Field(None, ge=-10, le=54)
    home_course: Optional[str] = None


class LoginRequest(ApiModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class ProfileUpdateRequest(ApiModel):
    name: Optional[str] = None
    handicap: Optional[float] = Field(None, ge=-10, le=54)
    home_course: Optional[str] = None


class UserResponse(ApiModel):
    id: str
    email: str
    name: Optional[str] = None
    handicap: Optional[float] = None
    home_course: Optional[str] = None
    ghin_number: Optional[str] = None
    credits: int
    subscription_status: str

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            email=user.email,
            name=user.name,
            handicap=user.handicap,
            home_course=user.home_course,
            ghin_number=user.ghin_number,
            credits=user.credits,
            subscription_status=user.subscription_status.value,
        )


class AuthResponse(ApiModel):
    success: bool = True
    token: str
    user: UserResponse


# ================================================================
# Analyses
# ================================================================

class AnalyzeResponse(ApiModel):
    success: bool = True
    analysis: Dict[str, Any]
    analysis_id: Optional[str] = None
    credits_remaining: Optional[CreditsRemaining] = None
    preview: Optional[bool] = None


class SaveAnalysisRequest(ApiModel):
    name: Optional[str] = None
    handicap: Optional[float] = None
    home_course: Optional[str] = None
    miss_pattern: Optional[str] = None
    analysis: Dict[str, Any]


class SaveAnalysisResponse(ApiModel):
    success: bool = True
    analysis_id: str
    credits_remaining: CreditsRemaining


class AnalysisResponse(ApiModel):
    id: str
    name: Optional[str] = None
    handicap: Optional[float] = None
    home_course: Optional[str] = None
    miss_pattern: Optional[str] = None
    analysis: Dict[str, Any]
    created_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: AnalysisRecord) -> "AnalysisResponse":
        return cls(**record.model_dump(exclude={"user_id"}))


# ================================================================
# Rounds & stats
# ================================================================

class RoundCreateRequest(ApiModel):
    analysis_id: Optional[str] = None
    course_name: Optional[str] = None
    date: Optional[date_type] = None
    score: Optional[int] = None
    fairways_hit: Optional[int] = None
    greens_in_regulation: Optional[int] = None
    putts: Optional[int] = None
    penalties: Optional[int] = None
    notes: Optional[str] = None
    hole_scores: List[HoleScore] = Field(default_factory=list)


class RoundResponse(ApiModel):
    id: str
    analysis_id: Optional[str] = None
    course_name: Optional[str] = None
    date: Optional[date_type] = None
    score: Optional[int] = None
    fairways_hit: Optional[int] = None
    greens_in_regulation: Optional[int] = None
    putts: Optional[int] = None
    penalties: Optional[int] = None
    notes: Optional[str] = None
    hole_scores: List[HoleScore] = Field(default_factory=list)
    created_at: Optional[datetime] = None

    @classmethod
    def from_tracked(cls, tracked: TrackedRound) -> "RoundResponse":
        return cls(**tracked.model_dump(exclude={"user_id"}))


class StatsResponse(ApiModel):
    """Tracked-round totals plus the full aggregate breakdown."""
    total_rounds: int
    average_score: Optional[float] = None
    best_score: Optional[int] = None
    stats: Dict[str, Any]
    trend: List[Dict[str, Any]] = Field(default_factory=list)


# ================================================================
# GHIN
# ================================================================

class GhinLinkRequest(ApiModel):
    ghin_number: str = Field(..., min_length=1)


class GhinRefreshRequest(ApiModel):
    ghin_number: Optional[str] = None


class GhinDetailedScoresRequest(ApiModel):
    email_or_ghin: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
    limit: int = Field(20, ge=1, le=100)
    course_id: Optional[str] = None
    tee_name: Optional[str] = None


# ================================================================
# Course strategies
# ================================================================

class CourseStrategyResponse(ApiModel):
    id: str
    course_name: str
    tees: Optional[str] = None
    strategy: Dict[str, Any]
    created_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: CourseStrategyRecord) -> "CourseStrategyResponse":
        return cls(**record.model_dump(exclude={"user_id"}))


# ================================================================
# Payments
# ================================================================

class CheckoutRequest(ApiModel):
    price_type: str


class TrialRequest(ApiModel):
    code: Optional[str] = None


class PaymentStatusResponse(ApiModel):
    subscription_status: str
    credits: int
    can_analyze: bool
