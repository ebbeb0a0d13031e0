"""Game analysis endpoints: run an analysis, save it, list it, export it."""

import asyncio
import json
import logging
import re
from functools import partial
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from fastapi.responses import Response
from pydantic import ValidationError

from api.dependencies import get_current_user, get_db, get_ghin, get_optional_user
from api.rate_limit import limit_analyze
from api.schemas import (
    AnalysisResponse,
    AnalyzeResponse,
    CreditsRemaining,
    SaveAnalysisRequest,
    SaveAnalysisResponse,
)
from database.db_manager import DatabaseManager
from database.exceptions import InsufficientCreditsError, NotFoundError
from integrations.ghin import GhinClient, GhinError
from llm import LLMError, analyze_golf_game
from models import AnalysisRecord, AnalysisResult, CourseLayout, GolferProfile, Round, User
from models.base import first_error
from reports import render_practice_plan, render_strategy_card

logger = logging.getLogger(__name__)

router = APIRouter()

MAX_SCORECARDS = 10
MAX_IMAGE_BYTES = 10 * 1024 * 1024
MAX_TOTAL_UPLOAD_BYTES = 50 * 1024 * 1024

NO_CREDITS = {"error": "No credits remaining", "needsUpgrade": True}


def _parse_strengths(raw: Optional[str]) -> List[str]:
    """Strengths arrive as a JSON list or a comma separated string."""
    if not raw or not raw.strip():
        return []
    text = raw.strip()
    if text.startswith("["):
        try:
            values = json.loads(text)
        except json.JSONDecodeError:
            raise HTTPException(400, "strengths must be a JSON list or comma separated")
        if not isinstance(values, list):
            raise HTTPException(400, "strengths must be a JSON list or comma separated")
        return [str(v).strip() for v in values if str(v).strip()]
    return [s.strip() for s in text.split(",") if s.strip()]


def _parse_course_layout(raw: Optional[str]) -> Optional[CourseLayout]:
    if not raw or not raw.strip():
        return None
    try:
        return CourseLayout.model_validate_json(raw)
    except ValidationError as e:
        raise HTTPException(400, f"Invalid courseLayout: {first_error(e)}")


def _parse_ghin_scores(raw: Optional[str]) -> List[Round]:
    if not raw or not raw.strip():
        return []
    try:
        values = json.loads(raw)
    except json.JSONDecodeError:
        raise HTTPException(400, "ghinScores must be a JSON list")
    if not isinstance(values, list):
        raise HTTPException(400, "ghinScores must be a JSON list")
    try:
        return [Round.model_validate(v) for v in values]
    except ValidationError as e:
        raise HTTPException(400, f"Invalid ghinScores: {first_error(e)}")


async def _read_scorecards(files: List[UploadFile]) -> List[tuple]:
    """Read uploads into (bytes, mime type) pairs, enforcing type and size limits."""
    if len(files) > MAX_SCORECARDS:
        raise HTTPException(400, f"At most {MAX_SCORECARDS} scorecard images are allowed")
    images = []
    total = 0
    for upload in files:
        mime_type = upload.content_type or ""
        if not mime_type.startswith("image/"):
            raise HTTPException(400, "Only image files are allowed")
        data = await upload.read(MAX_IMAGE_BYTES + 1)
        if len(data) > MAX_IMAGE_BYTES:
            raise HTTPException(413, f"{upload.filename or 'Scorecard'} exceeds 10MB")
        total += len(data)
        if total > MAX_TOTAL_UPLOAD_BYTES:
            raise HTTPException(413, "Scorecard uploads exceed 50MB in total")
        images.append((data, mime_type))
    return images


async def _ghin_history(ghin: Optional[GhinClient], ghin_number: str) -> List[Round]:
    """Score history by GHIN number; an unreachable GHIN just means no history."""
    if ghin is None or not ghin.configured:
        return []
    try:
        return await ghin.get_scores(ghin_number)
    except GhinError as e:
        logger.warning("GHIN history unavailable for %s: %s", ghin_number, e)
        return []


async def _save_and_charge(db: DatabaseManager, user: User, record: AnalysisRecord) -> tuple:
    """Persist the analysis, charging one credit unless the user is pro."""
    try:
        saved, credits = await db.analyses.save_analysis(record, charge_credit=not user.is_pro)
    except InsufficientCreditsError:
        raise HTTPException(403, NO_CREDITS)
    remaining: CreditsRemaining = "unlimited" if user.is_pro else credits
    return saved, remaining


@router.post(
    "/analyze",
    response_model=AnalyzeResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(limit_analyze)],
)
async def analyze(
    name: Optional[str] = Form(None),
    handicap: Optional[float] = Form(None),
    home_course: Optional[str] = Form(None, alias="homeCourse"),
    miss_pattern: Optional[str] = Form(None, alias="missPattern"),
    miss_description: Optional[str] = Form(None, alias="missDescription"),
    strengths: Optional[str] = Form(None),
    preview: bool = Form(False),
    ghin_scores: Optional[str] = Form(None, alias="ghinScores"),
    ghin_number: Optional[str] = Form(None, alias="ghinNumber"),
    course_layout: Optional[str] = Form(None, alias="courseLayout"),
    scorecards: Optional[List[UploadFile]] = File(None),
    user: Optional[User] = Depends(get_optional_user),
    db: DatabaseManager = Depends(get_db),
    ghin: Optional[GhinClient] = Depends(get_ghin),
):
    """
    Analyze a golfer's game from their profile plus scorecards or GHIN history.

    Preview runs are free and nothing is stored. Full runs need an account
    and a credit (pro accounts are unlimited); the analysis is saved and the
    credit spent together.
    """
    if not preview:
        if user is None:
            raise HTTPException(401, "Authentication required")
        if not user.can_analyze():
            raise HTTPException(403, NO_CREDITS)

    if not name or handicap is None or not home_course or not miss_pattern:
        raise HTTPException(400, "Missing required fields")
    try:
        profile = GolferProfile(
            name=name,
            handicap=handicap,
            home_course=home_course,
            miss_pattern=miss_pattern,
            miss_description=miss_description or None,
            strengths=_parse_strengths(strengths),
        )
    except ValidationError as e:
        raise HTTPException(400, f"Invalid profile: {first_error(e)}")

    ghin_rounds = _parse_ghin_scores(ghin_scores)
    layout = _parse_course_layout(course_layout)
    images = await _read_scorecards(scorecards or [])
    if not ghin_rounds and ghin_number:
        ghin_rounds = await _ghin_history(ghin, ghin_number)

    try:
        result = await analyze_golf_game(
            profile, images=images, ghin_rounds=ghin_rounds, course_layout=layout
        )
    except (LLMError, EnvironmentError):
        logger.exception("Analysis failed for %s", profile.name)
        raise HTTPException(500, "Analysis failed")

    document = result.to_document()
    if preview:
        return AnalyzeResponse(analysis=document, preview=True)

    record = AnalysisRecord(
        user_id=user.id,
        name=profile.name,
        handicap=profile.handicap,
        home_course=profile.home_course,
        miss_pattern=profile.miss_pattern,
        analysis=document,
    )
    saved, remaining = await _save_and_charge(db, user, record)
    logger.info("Saved analysis %s for user %s", saved.id, user.id)
    return AnalyzeResponse(analysis=document, analysis_id=saved.id, credits_remaining=remaining)


@router.post("/analyses/save", response_model=SaveAnalysisResponse)
async def save_analysis(
    body: SaveAnalysisRequest,
    user: User = Depends(get_current_user),
    db: DatabaseManager = Depends(get_db),
):
    """Keep a preview analysis after signing up. Costs a credit like a full run."""
    if not user.can_analyze():
        raise HTTPException(403, NO_CREDITS)
    try:
        document = AnalysisResult.model_validate(body.analysis).to_document()
    except ValidationError as e:
        raise HTTPException(400, f"Invalid analysis: {first_error(e)}")

    record = AnalysisRecord(
        user_id=user.id,
        name=body.name,
        handicap=body.handicap,
        home_course=body.home_course,
        miss_pattern=body.miss_pattern,
        analysis=document,
    )
    saved, remaining = await _save_and_charge(db, user, record)
    return SaveAnalysisResponse(analysis_id=saved.id, credits_remaining=remaining)


@router.get("/analyses", response_model=Dict[str, List[AnalysisResponse]])
async def list_analyses(
    user: User = Depends(get_current_user),
    db: DatabaseManager = Depends(get_db),
):
    records = await db.analyses.list_analyses(user.id)
    return {"analyses": [AnalysisResponse.from_record(r) for r in records]}


async def _owned_analysis(db: DatabaseManager, analysis_id: str, user: User) -> AnalysisRecord:
    try:
        record = await db.analyses.get_analysis(analysis_id)
    except NotFoundError:
        record = None
    if record is None:
        raise HTTPException(404, "Analysis not found")
    if record.user_id != user.id:
        raise HTTPException(403, "Not your analysis")
    return record


@router.get("/analyses/{analysis_id}", response_model=Dict[str, AnalysisResponse])
async def get_analysis(
    analysis_id: str,
    user: User = Depends(get_current_user),
    db: DatabaseManager = Depends(get_db),
):
    record = await _owned_analysis(db, analysis_id, user)
    return {"analysis": AnalysisResponse.from_record(record)}


@router.get("/analyses/{analysis_id}/pdf")
async def get_analysis_pdf(
    analysis_id: str,
    type: str = Query("strategy", pattern="^(strategy|practice)$"),
    user: User = Depends(get_current_user),
    db: DatabaseManager = Depends(get_db),
):
    """Download the strategy card or the practice plan as a PDF."""
    record = await _owned_analysis(db, analysis_id, user)
    golfer = {
        "name": record.name,
        "handicap": record.handicap,
        "home_course": record.home_course,
        "miss_pattern": record.miss_pattern,
    }
    render = render_practice_plan if type == "practice" else render_strategy_card
    suffix = "Practice_Plan" if type == "practice" else "Strategy_Card"

    loop = asyncio.get_running_loop()
    try:
        pdf = await loop.run_in_executor(None, partial(render, record.analysis, golfer))
    except ValidationError:
        logger.exception("Stored analysis %s cannot be rendered", record.id)
        raise HTTPException(500, "Failed to generate PDF")

    stem = re.sub(r"\s+", "_", record.name or "Golfer")
    filename = f"{stem}_{suffix}.pdf"
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
