"""GHIN handicap service client."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional

import httpx
from pydantic import ValidationError

from analytics.course_layout import layout_from_course_data
from models.base import first_error
from models.course_layout import CourseLayout
from models.hole_score import FairwayResult, GreenMiss, HoleScore
from models.round import Round, RoundSource

logger = logging.getLogger(__name__)

TOKEN_TTL_SECONDS = 12 * 60 * 60
DEFAULT_SCORE_LIMIT = 20

_JSON_HEADERS = {"Content-Type": "application/json", "Accept": "application/json"}


class GhinError(Exception):
    """Base exception for GHIN failures."""
    pass


class GhinUnavailableError(GhinError):
    """Service credentials missing, admin login failed, or transport error."""
    pass


class GhinNotFoundError(GhinError):
    """No golfer, score or course for the given identifier."""
    pass


class GhinAuthError(GhinError):
    """A golfer's own GHIN credentials were rejected."""
    pass


@dataclass
class GhinSession:
    """A golfer logged in with their own credentials."""
    token: str
    golfer: Dict[str, Any]


class TokenCache:
    """
    Service-scoped admin bearer token.

    The token is checked for expiry on every read; refreshes run under a
    lock so concurrent callers share a single login.
    """

    def __init__(self, ttl_seconds: float = TOKEN_TTL_SECONDS, clock: Callable[[], float] = time.monotonic):
        self._ttl = ttl_seconds
        self._clock = clock
        self._token: Optional[str] = None
        self._expires_at: float = 0.0
        self._lock = asyncio.Lock()

    def peek(self) -> Optional[str]:
        if self._token and self._clock() < self._expires_at:
            return self._token
        return None

    async def get(self, fetch: Callable) -> str:
        token = self.peek()
        if token:
            return token
        async with self._lock:
            token = self.peek()
            if token:
                return token
            token = await fetch()
            self._token = token
            self._expires_at = self._clock() + self._ttl
            return token

    def invalidate(self) -> None:
        self._token = None
        self._expires_at = 0.0


# ================================================================
# Normalization
# ================================================================

_FAIRWAY_VALUES = {
    "hit": FairwayResult.HIT,
    "missedleft": FairwayResult.LEFT,
    "left": FairwayResult.LEFT,
    "missedright": FairwayResult.RIGHT,
    "right": FairwayResult.RIGHT,
    "missedshort": FairwayResult.SHORT,
    "short": FairwayResult.SHORT,
}

_GREEN_MISS_VALUES = {
    "missedleft": GreenMiss.LEFT,
    "left": GreenMiss.LEFT,
    "missedright": GreenMiss.RIGHT,
    "right": GreenMiss.RIGHT,
    "missedshort": GreenMiss.SHORT,
    "short": GreenMiss.SHORT,
    "missedlong": GreenMiss.LONG,
    "long": GreenMiss.LONG,
}


def _first(data: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = data.get(key)
        if value is not None and value != "":
            return value
    return None


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(float(value)) if value is not None else None
    except (TypeError, ValueError):
        return None


def _as_float(value: Any) -> Optional[float]:
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def parse_handicap_index(value: Any) -> Optional[float]:
    """GHIN index as a float. Plus handicaps ("+1.2") are below scratch; "NH" is none."""
    if isinstance(value, str) and value.strip().startswith("+"):
        plus = _as_float(value.strip()[1:])
        return -plus if plus is not None else None
    return _as_float(value)


def _key(value: Any) -> str:
    return str(value).replace("_", "").replace(" ", "").lower()


def _parse_fairway(hole: Mapping[str, Any]) -> Optional[FairwayResult]:
    accuracy = _first(hole, "drive_accuracy", "fairway")
    if accuracy is not None and not isinstance(accuracy, bool):
        return _FAIRWAY_VALUES.get(_key(accuracy))
    hit = _first(hole, "fairway_hit", "fairway")
    if isinstance(hit, bool):
        return FairwayResult.HIT if hit else None
    return None


def _parse_gir(hole: Mapping[str, Any]) -> Optional[bool]:
    value = _first(hole, "gir_flag", "gir", "green_in_regulation")
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1", "hit")
    return None


def normalize_hole(hole: Mapping[str, Any]) -> Optional[HoleScore]:
    """Convert one GHIN hole record, returning None when it is unusable."""
    number = _as_int(_first(hole, "hole_number", "number", "hole"))
    if number is None:
        return None
    gir = _parse_gir(hole)
    green_miss = None
    if gir is False:
        approach = _first(hole, "approach_shot_accuracy", "green_miss")
        green_miss = _GREEN_MISS_VALUES.get(_key(approach)) if approach is not None else None
    try:
        return HoleScore(
            hole_number=number,
            par=_as_int(hole.get("par")),
            yardage=_as_int(_first(hole, "yardage", "length")),
            score=_as_int(_first(hole, "raw_score", "adjusted_gross_score", "score", "strokes")),
            fairway=_parse_fairway(hole),
            green_in_regulation=gir,
            green_miss=green_miss,
            putts=_as_int(hole.get("putts")),
            penalties=_as_int(_first(hole, "penalties", "penalty_strokes")),
        )
    except ValidationError as e:
        logger.debug("Dropping GHIN hole %s: %s", number, first_error(e))
        return None


def normalize_score(score: Mapping[str, Any], hole_details: Optional[List[Mapping[str, Any]]] = None) -> Optional[Round]:
    """Convert a GHIN score record (plus optional hole detail) to a Round."""
    holes_raw = hole_details if hole_details is not None else score.get("hole_details") or []
    holes = [h for h in (normalize_hole(raw) for raw in holes_raw) if h is not None]
    try:
        return Round(
            id=str(score["id"]) if score.get("id") is not None else None,
            date=score.get("played_at"),
            course_name=score.get("course_name"),
            total_score=_as_int(_first(score, "adjusted_gross_score", "total_score")),
            course_rating=_as_float(score.get("course_rating")),
            slope_rating=_as_int(score.get("slope_rating")),
            differential=_as_float(score.get("differential")),
            tees=score.get("tee_name"),
            holes_played=_as_int(score.get("number_of_holes")),
            source=RoundSource.GHIN,
            fairways_hit=_as_int(score.get("fairways_hit")),
            greens_in_regulation=_as_int(score.get("gir")),
            putts=_as_int(score.get("putts")),
            hole_scores=holes,
        )
    except ValidationError as e:
        logger.info("Dropping GHIN score %s: %s", score.get("id"), first_error(e))
        return None


def normalize_golfer(golfer: Mapping[str, Any]) -> Dict[str, Any]:
    first = golfer.get("first_name") or ""
    last = golfer.get("last_name") or ""
    return {
        "ghin_number": str(_first(golfer, "ghin", "ghin_number", "golfer_id") or ""),
        "first_name": first,
        "last_name": last,
        "full_name": f"{first} {last}".strip(),
        "handicap_index": parse_handicap_index(golfer.get("handicap_index")),
        "low_handicap_index": parse_handicap_index(golfer.get("low_hi")),
        "club": golfer.get("club_name"),
        "association": golfer.get("assoc_name"),
        "state": golfer.get("state"),
        "status": golfer.get("status"),
        "revision_date": golfer.get("rev_date"),
    }


# ================================================================
# Client
# ================================================================

def _json_body(response: httpx.Response, what: str) -> Dict[str, Any]:
    try:
        body = response.json()
    except ValueError as e:
        raise GhinUnavailableError(f"GHIN sent a non-JSON reply for {what}") from e
    if not isinstance(body, dict):
        raise GhinUnavailableError(f"GHIN sent an unexpected reply for {what}")
    return body


class GhinClient:
    """Async GHIN API client sharing one admin token across requests."""

    def __init__(
        self,
        email: Optional[str],
        password: Optional[str],
        base_url: str = "https://api2.ghin.com/api/v1",
        http: Optional[httpx.AsyncClient] = None,
        token_cache: Optional[TokenCache] = None,
    ):
        self._email = email
        self._password = password
        self._http = http or httpx.AsyncClient(base_url=base_url, headers=_JSON_HEADERS)
        self._tokens = token_cache or TokenCache()

    async def aclose(self) -> None:
        await self._http.aclose()

    @property
    def configured(self) -> bool:
        return bool(self._email and self._password)

    # --- Auth ---

    async def _login(self, email_or_ghin: str, password: str) -> Dict[str, Any]:
        payload = {"user": {"email_or_ghin": email_or_ghin, "password": password, "remember_me": True}}
        try:
            response = await self._http.post("/golfer_login.json", json=payload)
        except httpx.RequestError as e:
            raise GhinUnavailableError(f"GHIN login request failed: {e}") from e
        if response.status_code >= 400:
            raise GhinAuthError(f"GHIN login rejected ({response.status_code})")
        user = _json_body(response, "login").get("golfer_user") or {}
        if not user.get("golfer_user_token"):
            raise GhinAuthError("GHIN login response missing token")
        return user

    async def _fetch_admin_token(self) -> str:
        if not self.configured:
            raise GhinUnavailableError("GHIN credentials not configured")
        logger.info("Authenticating with GHIN (admin)")
        try:
            user = await self._login(self._email, self._password)
        except GhinAuthError as e:
            raise GhinUnavailableError(f"GHIN admin authentication failed: {e}") from e
        return user["golfer_user_token"]

    async def _admin_token(self) -> str:
        return await self._tokens.get(self._fetch_admin_token)

    async def authenticate_user(self, email_or_ghin: str, password: str) -> GhinSession:
        """Log in with a golfer's own credentials (needed for hole-by-hole detail)."""
        user = await self._login(email_or_ghin, password)
        golfer = {
            "id": user.get("golfer_id"),
            "ghin_number": str(user.get("ghin_number") or user.get("golfer_id") or ""),
            "first_name": user.get("first_name"),
            "last_name": user.get("last_name"),
            "email": user.get("email"),
            "handicap_index": parse_handicap_index(user.get("handicap_index")),
            "club": user.get("club_name"),
        }
        return GhinSession(token=user["golfer_user_token"], golfer=golfer)

    # --- Requests ---

    async def _get(self, path: str, token: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            response = await self._http.get(
                path, params=params, headers={"Authorization": f"Bearer {token}"}
            )
        except httpx.RequestError as e:
            raise GhinUnavailableError(f"GHIN request failed: {e}") from e
        if response.status_code == 404:
            raise GhinNotFoundError(f"GHIN resource not found: {path}")
        if response.status_code == 401:
            raise GhinAuthError("GHIN token rejected")
        if response.status_code >= 400:
            raise GhinUnavailableError(f"GHIN returned {response.status_code} for {path}")
        return _json_body(response, path)

    async def _admin_get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        token = await self._admin_token()
        try:
            return await self._get(path, token, params)
        except GhinAuthError:
            # Admin token revoked before expiry
            self._tokens.invalidate()
            raise GhinUnavailableError("GHIN admin token rejected")

    async def lookup_golfer(self, ghin_number: str) -> Dict[str, Any]:
        data = await self._admin_get("/golfers.json", {"golfer_id": ghin_number, "from_ghin": "true"})
        golfers = data.get("golfers") or []
        if not golfers:
            raise GhinNotFoundError(f"GHIN number {ghin_number} not found")
        return normalize_golfer(golfers[0])

    async def get_golfer_stats(self, ghin_number: str) -> Dict[str, Any]:
        data = await self._admin_get(f"/golfers/{ghin_number}.json")
        golfer = data.get("golfer")
        if not golfer:
            raise GhinNotFoundError(f"No stats for GHIN number {ghin_number}")
        return {
            "handicap_index": parse_handicap_index(golfer.get("handicap_index")),
            "low_index": golfer.get("low_hi"),
            "trend": golfer.get("handicap_trend"),
            "scores_to_count": golfer.get("number_of_scores"),
            "last_revision": golfer.get("rev_date"),
        }

    async def get_scores(self, ghin_number: str, limit: int = DEFAULT_SCORE_LIMIT) -> List[Round]:
        data = await self._admin_get(
            f"/golfers/{ghin_number}/scores.json", {"limit": limit, "page": 1}
        )
        return [r for r in (normalize_score(s) for s in data.get("scores") or []) if r is not None]

    async def _score_hole_details(self, score_id: Any, token: str) -> Optional[List[Dict[str, Any]]]:
        try:
            data = await self._get(f"/scores/{score_id}.json", token)
        except (GhinNotFoundError, GhinUnavailableError) as e:
            logger.info("No hole details for score %s: %s", score_id, e)
            return None
        detail = data.get("score") or {}
        return detail.get("hole_details") or detail.get("hole_scores") or detail.get("holes")

    async def get_detailed_scores(
        self,
        ghin_number: str,
        user_token: str,
        limit: int = DEFAULT_SCORE_LIMIT,
    ) -> List[Round]:
        """Scores with hole-by-hole detail where GHIN has it (golfer token required)."""
        data = await self._get(
            f"/golfers/{ghin_number}/scores.json", user_token, {"limit": limit, "page": 1}
        )
        scores = data.get("scores") or []
        details = await asyncio.gather(
            *(self._score_hole_details(s.get("id"), user_token) for s in scores)
        )
        rounds = []
        for score, holes in zip(scores, details):
            round_obj = normalize_score(score, holes)
            if round_obj is not None:
                rounds.append(round_obj)
        logger.info(
            "Fetched %d GHIN score(s) for %s, %d with hole detail",
            len(rounds), ghin_number, sum(1 for r in rounds if r.has_hole_detail()),
        )
        return rounds

    async def get_course_layout(
        self,
        course_id: Any,
        user_token: str,
        tee_name: Optional[str] = None,
    ) -> Optional[CourseLayout]:
        """Authoritative layout for one tee (the named one, else the first listed)."""
        data = await self._get(f"/courses/{course_id}.json", user_token)
        course = data.get("course")
        if not course:
            raise GhinNotFoundError(f"Course {course_id} not found")
        tees = course.get("tees") or []
        if not tees:
            return None
        chosen = tees[0]
        if tee_name:
            wanted = tee_name.strip().lower()
            chosen = next((t for t in tees if (t.get("name") or "").strip().lower() == wanted), chosen)
        return layout_from_course_data(course.get("name"), chosen.get("holes"))
