"""Course strategy generation and history endpoints."""

import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from api.dependencies import get_current_user, get_db
from api.rate_limit import limit_analyze
from api.routers.analyses import MAX_IMAGE_BYTES
from api.schemas import CourseStrategyResponse
from database.db_manager import DatabaseManager
from database.exceptions import NotFoundError
from llm import LLMError, generate_course_strategy
from models import CourseStrategyRecord, User

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/course-strategy", dependencies=[Depends(limit_analyze)])
async def create_course_strategy(
    course_name: Optional[str] = Form(None, alias="courseName"),
    tees: Optional[str] = Form(None),
    notes: Optional[str] = Form(None),
    handicap: Optional[float] = Form(None),
    miss_pattern: Optional[str] = Form(None, alias="missPattern"),
    scorecard: Optional[UploadFile] = File(None),
    user: User = Depends(get_current_user),
    db: DatabaseManager = Depends(get_db),
):
    """Generate and save a game plan for one course."""
    if not course_name or not course_name.strip():
        raise HTTPException(400, "Course name is required")

    image = None
    if scorecard is not None:
        mime_type = scorecard.content_type or ""
        if not mime_type.startswith("image/"):
            raise HTTPException(400, "Only image files are allowed")
        data = await scorecard.read(MAX_IMAGE_BYTES + 1)
        if len(data) > MAX_IMAGE_BYTES:
            raise HTTPException(413, "Scorecard exceeds 10MB")
        image = (data, mime_type)

    try:
        strategy = await generate_course_strategy(
            course_name.strip(),
            tees=tees or None,
            notes=notes or None,
            handicap=handicap if handicap is not None else user.handicap,
            miss_pattern=miss_pattern or None,
            scorecard=image,
        )
    except (LLMError, EnvironmentError):
        logger.exception("Course strategy failed for %s", course_name)
        raise HTTPException(500, "Failed to generate course strategy")

    record = await db.course_strategies.save_strategy(
        CourseStrategyRecord(
            user_id=user.id,
            course_name=course_name.strip(),
            tees=tees or None,
            strategy=strategy.model_dump(mode="json", by_alias=True),
        )
    )
    return {
        "success": True,
        "strategy": record.strategy,
        "strategyId": record.id,
    }


@router.get("/course-strategies", response_model=Dict[str, List[CourseStrategyResponse]])
async def list_course_strategies(
    user: User = Depends(get_current_user),
    db: DatabaseManager = Depends(get_db),
):
    records = await db.course_strategies.list_strategies(user.id)
    return {"strategies": [CourseStrategyResponse.from_record(r) for r in records]}


@router.get("/course-strategies/{strategy_id}", response_model=Dict[str, CourseStrategyResponse])
async def get_course_strategy(
    strategy_id: str,
    user: User = Depends(get_current_user),
    db: DatabaseManager = Depends(get_db),
):
    try:
        record = await db.course_strategies.get_strategy(strategy_id)
    except NotFoundError:
        record = None
    if record is None:
        raise HTTPException(404, "Course strategy not found")
    if record.user_id != user.id:
        raise HTTPException(403, "Not your course strategy")
    return {"strategy": CourseStrategyResponse.from_record(record)}
