"""Round tracking endpoints."""

import logging
from typing import Dict, List

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import ValidationError

from api.dependencies import get_current_user, get_db
from api.schemas import RoundCreateRequest, RoundResponse
from database.db_manager import DatabaseManager
from database.exceptions import IntegrityError, NotFoundError
from models import TrackedRound, User
from models.base import first_error

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=Dict[str, RoundResponse])
async def create_round(
    body: RoundCreateRequest,
    user: User = Depends(get_current_user),
    db: DatabaseManager = Depends(get_db),
):
    """Log a round played, optionally against one of the user's analyses."""
    if body.analysis_id:
        try:
            analysis = await db.analyses.get_analysis(body.analysis_id)
        except NotFoundError:
            analysis = None
        if analysis is None:
            raise HTTPException(404, "Analysis not found")
        if analysis.user_id != user.id:
            raise HTTPException(403, "Not your analysis")

    try:
        tracked = TrackedRound(user_id=user.id, **body.model_dump())
    except ValidationError as e:
        raise HTTPException(400, f"Invalid round: {first_error(e)}")

    try:
        saved = await db.rounds.create_round(tracked)
    except IntegrityError:
        raise HTTPException(400, "Unknown analysis for round")
    logger.info("User %s logged round %s", user.id, saved.id)
    return {"round": RoundResponse.from_tracked(saved)}


@router.get("", response_model=Dict[str, List[RoundResponse]])
async def list_rounds(
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    user: User = Depends(get_current_user),
    db: DatabaseManager = Depends(get_db),
):
    rounds = await db.rounds.get_rounds_for_user(user.id, limit=limit, offset=offset)
    return {"rounds": [RoundResponse.from_tracked(r) for r in rounds]}
