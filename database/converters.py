"""Conversion between asyncpg database rows and Pydantic domain models.

Centralizes all mapping logic between the DB schema and the models,
including JSONB payload encoding.
"""

import json
from typing import Any, Optional
from uuid import UUID

from models import AnalysisRecord, CourseStrategyRecord, HoleScore, TrackedRound, User
from database.exceptions import NotFoundError


def parse_id(value: str) -> UUID:
    """String id -> UUID; a malformed id cannot exist, so it is NotFound."""
    try:
        return UUID(str(value))
    except ValueError as e:
        raise NotFoundError(f"Invalid id: {value}") from e


def load_json(value: Any) -> Any:
    """JSONB comes back as text unless a codec is registered."""
    if isinstance(value, (str, bytes)):
        return json.loads(value)
    return value


def dump_json(value: Any) -> str:
    return json.dumps(value)


def _float_or_none(value: Any) -> Optional[float]:
    return float(value) if value is not None else None


# ================================================================
# Row -> Model (reads)
# ================================================================

def user_from_row(row) -> User:
    """users.users row -> User model."""
    return User(
        id=str(row["id"]),
        email=row["email"],
        password_hash=row["password_hash"],
        name=row["name"],
        handicap=_float_or_none(row["handicap"]),
        home_course=row["home_course"],
        ghin_number=row["ghin_number"],
        subscription_status=row["subscription_status"],
        subscription_id=row["subscription_id"],
        credits=row["credits"],
        created_at=row["created_at"],
    )


def analysis_from_row(row) -> AnalysisRecord:
    """users.analyses row -> AnalysisRecord."""
    return AnalysisRecord(
        id=str(row["id"]),
        user_id=str(row["user_id"]),
        name=row["name"],
        handicap=_float_or_none(row["handicap"]),
        home_course=row["home_course"],
        miss_pattern=row["miss_pattern"],
        analysis=load_json(row["analysis"]),
        created_at=row["created_at"],
    )


def tracked_round_from_row(row) -> TrackedRound:
    """users.rounds row -> TrackedRound (hole scores from JSONB)."""
    hole_scores = [HoleScore.model_validate(h) for h in load_json(row["hole_scores"]) or []]
    return TrackedRound(
        id=str(row["id"]),
        user_id=str(row["user_id"]),
        analysis_id=str(row["analysis_id"]) if row["analysis_id"] else None,
        course_name=row["course_name"],
        date=row["round_date"],
        score=row["score"],
        fairways_hit=row["fairways_hit"],
        greens_in_regulation=row["greens_in_regulation"],
        putts=row["putts"],
        penalties=row["penalties"],
        notes=row["notes"],
        hole_scores=sorted(hole_scores, key=lambda hs: hs.hole_number),
        created_at=row["created_at"],
    )


def course_strategy_from_row(row) -> CourseStrategyRecord:
    """users.course_strategies row -> CourseStrategyRecord."""
    return CourseStrategyRecord(
        id=str(row["id"]),
        user_id=str(row["user_id"]),
        course_name=row["course_name"],
        tees=row["tees"],
        strategy=load_json(row["strategy"]),
        created_at=row["created_at"],
    )


# ================================================================
# Model -> Row dict (writes)
# ================================================================

def analysis_to_row(record: AnalysisRecord) -> dict:
    """AnalysisRecord -> dict for users.analyses INSERT."""
    return {
        "user_id": parse_id(record.user_id),
        "name": record.name,
        "handicap": record.handicap,
        "home_course": record.home_course,
        "miss_pattern": record.miss_pattern,
        "analysis": dump_json(record.analysis),
    }


def tracked_round_to_row(tr: TrackedRound) -> dict:
    """TrackedRound -> dict for users.rounds INSERT."""
    return {
        "user_id": parse_id(tr.user_id),
        "analysis_id": parse_id(tr.analysis_id) if tr.analysis_id else None,
        "course_name": tr.course_name,
        "round_date": tr.date,
        "score": tr.score,
        "fairways_hit": tr.fairways_hit,
        "greens_in_regulation": tr.greens_in_regulation,
        "putts": tr.putts,
        "penalties": tr.penalties,
        "notes": tr.notes,
        "hole_scores": dump_json(
            [hs.model_dump(mode="json", exclude_none=True) for hs in tr.hole_scores]
        ),
    }


def course_strategy_to_row(record: CourseStrategyRecord) -> dict:
    """CourseStrategyRecord -> dict for users.course_strategies INSERT."""
    return {
        "user_id": parse_id(record.user_id),
        "course_name": record.course_name,
        "tees": record.tees,
        "strategy": dump_json(record.strategy),
    }
