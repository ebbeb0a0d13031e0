"""Stats endpoint over the rounds a user has tracked."""

from fastapi import APIRouter, Depends

from analytics import calculate_aggregate_stats, score_trend
from api.dependencies import get_current_user, get_db
from api.schemas import StatsResponse
from database.db_manager import DatabaseManager
from models import User

router = APIRouter()

MAX_STATS_ROUNDS = 500


@router.get("", response_model=StatsResponse)
async def get_stats(
    user: User = Depends(get_current_user),
    db: DatabaseManager = Depends(get_db),
):
    tracked = await db.rounds.get_rounds_for_user(user.id, limit=MAX_STATS_ROUNDS, offset=0)
    rounds = [t.to_round() for t in tracked]
    scores = [t.score for t in tracked if t.score is not None]

    return StatsResponse(
        total_rounds=len(tracked),
        average_score=round(sum(scores) / len(scores), 1) if scores else None,
        best_score=min(scores) if scores else None,
        stats=calculate_aggregate_stats(rounds).model_dump(mode="json"),
        trend=score_trend(rounds),
    )
