"""GHIN handicap lookup, account linking and score history endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from api.dependencies import get_current_user, get_db, get_ghin
from api.schemas import (
    GhinDetailedScoresRequest,
    GhinLinkRequest,
    GhinRefreshRequest,
    UserResponse,
)
from database.db_manager import DatabaseManager
from integrations.ghin import (
    GhinAuthError,
    GhinClient,
    GhinError,
    GhinNotFoundError,
)
from models import User

logger = logging.getLogger(__name__)

router = APIRouter()


def _ghin_http_error(e: GhinError, action: str) -> HTTPException:
    """Map a GHIN failure to the response the client sees."""
    if isinstance(e, GhinNotFoundError):
        return HTTPException(404, {"error": "GHIN number not found", "success": False})
    if isinstance(e, GhinAuthError):
        return HTTPException(401, {"error": "GHIN login failed"})
    logger.error("GHIN %s failed: %s", action, e)
    return HTTPException(500, {"error": f"Failed to {action}", "requiresManualEntry": True})


@router.get("/public/ghin-lookup/{ghin_number}")
async def public_lookup(ghin_number: str, ghin: GhinClient = Depends(get_ghin)):
    """Limited golfer info for the signup form. No account needed."""
    try:
        golfer = await ghin.lookup_golfer(ghin_number)
    except GhinError as e:
        raise _ghin_http_error(e, "lookup GHIN")
    return {
        "success": True,
        "golfer": {
            "firstName": golfer["first_name"],
            "lastName": golfer["last_name"],
            "handicapIndex": golfer["handicap_index"],
            "club": golfer["club"],
            "state": golfer["state"],
        },
    }


@router.get("/ghin/{ghin_number}")
async def lookup(
    ghin_number: str,
    user: User = Depends(get_current_user),
    ghin: GhinClient = Depends(get_ghin),
):
    try:
        golfer = await ghin.lookup_golfer(ghin_number)
    except GhinError as e:
        raise _ghin_http_error(e, "lookup GHIN")
    return {"success": True, "golfer": golfer}


@router.post("/ghin/link")
async def link(
    body: GhinLinkRequest,
    user: User = Depends(get_current_user),
    db: DatabaseManager = Depends(get_db),
    ghin: GhinClient = Depends(get_ghin),
):
    """Attach a GHIN number to the account and adopt its handicap index."""
    try:
        golfer = await ghin.lookup_golfer(body.ghin_number)
    except GhinError as e:
        raise _ghin_http_error(e, "link GHIN")

    updates = {"ghin_number": body.ghin_number}
    if golfer["handicap_index"] is not None:
        updates["handicap"] = golfer["handicap_index"]
    if golfer["full_name"]:
        updates["name"] = golfer["full_name"]
    updated = await db.users.update_user(user.id, **updates)
    logger.info("User %s linked GHIN %s", user.id, body.ghin_number)
    return {"success": True, "ghin": golfer, "user": UserResponse.from_user(updated)}


@router.post("/ghin/refresh")
async def refresh(
    body: GhinRefreshRequest,
    user: User = Depends(get_current_user),
    db: DatabaseManager = Depends(get_db),
    ghin: GhinClient = Depends(get_ghin),
):
    """Pull the current handicap index for the linked (or given) GHIN number."""
    ghin_number = body.ghin_number or user.ghin_number
    if not ghin_number:
        raise HTTPException(400, "No GHIN number linked")
    try:
        stats = await ghin.get_golfer_stats(ghin_number)
    except GhinError as e:
        raise _ghin_http_error(e, "refresh handicap")

    if stats["handicap_index"] is not None:
        await db.users.update_user(user.id, handicap=stats["handicap_index"])
    return {
        "success": True,
        "handicapIndex": stats["handicap_index"],
        "trend": stats["trend"],
        "lastRevision": stats["last_revision"],
    }


@router.get("/ghin/{ghin_number}/scores")
async def scores(
    ghin_number: str,
    limit: int = Query(20, ge=1, le=100),
    user: User = Depends(get_current_user),
    ghin: GhinClient = Depends(get_ghin),
):
    try:
        rounds = await ghin.get_scores(ghin_number, limit=limit)
    except GhinError as e:
        raise _ghin_http_error(e, "get GHIN scores")
    return {
        "success": True,
        "scores": [r.model_dump(mode="json", exclude_none=True) for r in rounds],
    }


@router.post("/ghin/detailed-scores")
async def detailed_scores(
    body: GhinDetailedScoresRequest,
    user: User = Depends(get_current_user),
    ghin: GhinClient = Depends(get_ghin),
):
    """
    Hole-by-hole history using the golfer's own GHIN login.

    The admin account only sees score totals; per-hole detail (fairways,
    GIR, putts) needs the golfer's token. Credentials are used for this
    request only and never stored.
    """
    try:
        session = await ghin.authenticate_user(body.email_or_ghin, body.password)
        ghin_number = session.golfer["ghin_number"]
        rounds = await ghin.get_detailed_scores(ghin_number, session.token, limit=body.limit)
        layout = None
        if body.course_id:
            layout = await ghin.get_course_layout(body.course_id, session.token, body.tee_name)
    except GhinError as e:
        raise _ghin_http_error(e, "get detailed GHIN scores")

    return {
        "success": True,
        "golfer": session.golfer,
        "rounds": [r.model_dump(mode="json", exclude_none=True) for r in rounds],
        "courseLayout": layout.model_dump(mode="json") if layout else None,
    }
