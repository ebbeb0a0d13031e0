"""Account registration, login and profile endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from api.dependencies import get_app_settings, get_current_user, get_db
from api.rate_limit import limit_auth
from api.schemas import (
    AuthResponse,
    LoginRequest,
    ProfileUpdateRequest,
    RegisterRequest,
    UserResponse,
)
from api.security import create_access_token, hash_password, verify_password
from config import Settings
from database.db_manager import DatabaseManager
from database.exceptions import DuplicateError, NotFoundError
from models import User

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(limit_auth)],
)
async def register(
    body: RegisterRequest,
    db: DatabaseManager = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    """Create a free account with one analysis credit."""
    existing = await db.users.get_user_by_email(body.email)
    if existing is not None:
        raise HTTPException(400, "Email already registered")
    try:
        user = await db.users.create_user(
            body.email,
            hash_password(body.password),
            name=body.name,
            handicap=body.handicap,
            home_course=body.home_course,
        )
    except DuplicateError:
        raise HTTPException(400, "Email already registered")

    logger.info("Registered user %s", user.id)
    token = create_access_token(settings, user.id, user.email)
    return AuthResponse(token=token, user=UserResponse.from_user(user))


@router.post("/login", response_model=AuthResponse, dependencies=[Depends(limit_auth)])
async def login(
    body: LoginRequest,
    db: DatabaseManager = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    user = await db.users.get_user_by_email(body.email)
    if user is None or not verify_password(body.password, user.password_hash):
        raise HTTPException(401, "Invalid credentials")
    token = create_access_token(settings, user.id, user.email)
    return AuthResponse(token=token, user=UserResponse.from_user(user))


@router.get("/me", response_model=UserResponse)
async def me(user: User = Depends(get_current_user)):
    return UserResponse.from_user(user)


@router.put("/profile", response_model=UserResponse)
async def update_profile(
    body: ProfileUpdateRequest,
    user: User = Depends(get_current_user),
    db: DatabaseManager = Depends(get_db),
):
    """Update only the fields present in the request body."""
    updates = body.model_dump(exclude_unset=True)
    try:
        updated = await db.users.update_user(user.id, **updates)
    except NotFoundError:
        raise HTTPException(404, "User not found")
    return UserResponse.from_user(updated)
