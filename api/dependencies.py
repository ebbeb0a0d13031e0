from typing import Optional

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from api.security import TokenError, decode_access_token
from config import Settings, get_settings
from database.db_manager import DatabaseManager
from integrations.ghin import GhinClient
from models import User

bearer_scheme = HTTPBearer(auto_error=False)


def get_db(request: Request) -> DatabaseManager:
    """FastAPI dependency that provides the DatabaseManager."""
    return request.app.state.db_manager


def get_ghin(request: Request) -> GhinClient:
    """The GHIN client shared by every request (one admin token cache)."""
    return request.app.state.ghin


def get_app_settings() -> Settings:
    return get_settings()


async def _user_from_token(token: str, db: DatabaseManager, settings: Settings) -> Optional[User]:
    try:
        payload = decode_access_token(settings, token)
    except TokenError as e:
        raise HTTPException(403, "Invalid or expired token") from e
    return await db.users.get_user(payload["userId"])


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: DatabaseManager = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> User:
    """Authenticated user. 401 without a token, 403 for a bad one."""
    if credentials is None:
        raise HTTPException(401, "Authentication required")
    user = await _user_from_token(credentials.credentials, db, settings)
    if user is None:
        raise HTTPException(404, "User not found")
    return user


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: DatabaseManager = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> Optional[User]:
    """The user when a valid token is sent, otherwise None."""
    if credentials is None:
        return None
    try:
        payload = decode_access_token(settings, credentials.credentials)
    except TokenError:
        return None
    return await db.users.get_user(payload["userId"])
