import asyncio
import json

import httpx
import pytest

from integrations.ghin import (
    GhinAuthError,
    GhinClient,
    GhinNotFoundError,
    GhinUnavailableError,
    TokenCache,
    normalize_hole,
    normalize_score,
    parse_handicap_index,
)
from models import FairwayResult, GreenMiss, RoundSource

BASE_URL = "https://ghin.test/api/v1"

GOLFER = {
    "ghin": 1234567,
    "first_name": "Sam",
    "last_name": "Snead",
    "handicap_index": "14.2",
    "low_hi": "+0.4",
    "club_name": "Oak Hill CC",
    "state": "NY",
}

SCORES = {
    "scores": [
        {"id": 11, "played_at": "2024-06-01", "course_name": "Oak Hill", "adjusted_gross_score": 88,
         "course_rating": 71.2, "slope_rating": 131, "differential": 13.8, "number_of_holes": 18},
        {"id": 12, "played_at": "2024-05-20", "course_name": "Muni", "adjusted_gross_score": 91},
    ]
}

SCORE_DETAIL = {
    "score": {
        "hole_details": [
            {"hole_number": 1, "par": 4, "raw_score": 5, "putts": 2,
             "drive_accuracy": "MissedLeft", "gir_flag": False, "approach_shot_accuracy": "MissedShort"},
            {"hole_number": 2, "par": 3, "raw_score": 3, "putts": 2, "gir_flag": True},
        ]
    }
}


class FakeGhin:
    """Routes requests like the GHIN API and records what was asked."""

    def __init__(self):
        self.logins = 0
        self.requests = []
        self.reject_admin_token = False
        self.html_paths = set()

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.replace("/api/v1", "")
        if path in self.html_paths:
            return httpx.Response(200, text="<html>maintenance</html>")

        if path == "/golfer_login.json":
            self.logins += 1
            body = json.loads(request.content)["user"]
            if body["password"] != "secret":
                return httpx.Response(401, json={"errors": "bad login"})
            return httpx.Response(200, json={"golfer_user": {
                "golfer_user_token": f"token-{body['email_or_ghin']}",
                "golfer_id": 1234567,
                "first_name": "Sam",
                "last_name": "Snead",
                "handicap_index": "+1.2",
            }})

        if self.reject_admin_token:
            return httpx.Response(401)
        if path == "/golfers.json":
            if request.url.params["golfer_id"] == "1234567":
                return httpx.Response(200, json={"golfers": [GOLFER]})
            return httpx.Response(200, json={"golfers": []})
        if path == "/golfers/1234567.json":
            return httpx.Response(200, json={"golfer": {**GOLFER, "handicap_trend": "down"}})
        if path == "/golfers/1234567/scores.json":
            return httpx.Response(200, json=SCORES)
        if path == "/scores/11.json":
            return httpx.Response(200, json=SCORE_DETAIL)
        if path == "/courses/77.json":
            return httpx.Response(200, json={"course": {"name": "Oak Hill", "tees": [
                {"name": "Blue", "holes": [{"number": 1, "par": 4, "length": 410}]},
                {"name": "White", "holes": [{"number": 1, "par": 4, "length": 380}]},
            ]}})
        return httpx.Response(404)


@pytest.fixture
def fake_api():
    return FakeGhin()


@pytest.fixture
def ghin(fake_api):
    http = httpx.AsyncClient(transport=httpx.MockTransport(fake_api), base_url=BASE_URL)
    return GhinClient("admin@example.com", "secret", http=http)


# ================================================================
# Normalization
# ================================================================

@pytest.mark.parametrize("raw, expected", [
    ("14.2", 14.2),
    (9.1, 9.1),
    ("+1.2", -1.2),
    ("NH", None),
    (None, None),
])
def test_parse_handicap_index(raw, expected):
    assert parse_handicap_index(raw) == expected


def test_normalize_hole_directional_misses():
    hole = normalize_hole(SCORE_DETAIL["score"]["hole_details"][0])
    assert hole.fairway == FairwayResult.LEFT
    assert hole.green_in_regulation is False
    assert hole.green_miss == GreenMiss.SHORT

    assert normalize_hole({"par": 4, "raw_score": 4}) is None
    assert normalize_hole({"hole_number": 1, "par": 4, "raw_score": 3, "putts": 5}) is None


def test_normalize_score_drops_impossible_totals():
    assert normalize_score({"id": 1, "adjusted_gross_score": 5}) is None
    round_obj = normalize_score(SCORES["scores"][0])
    assert round_obj.source == RoundSource.GHIN
    assert round_obj.total_score == 88
    assert round_obj.slope_rating == 131


# ================================================================
# Token cache
# ================================================================

@pytest.mark.asyncio
async def test_token_cache_single_flight():
    calls = 0

    async def fetch():
        nonlocal calls
        calls += 1
        await asyncio.sleep(0.01)
        return f"token-{calls}"

    cache = TokenCache()
    tokens = await asyncio.gather(*(cache.get(fetch) for _ in range(10)))
    assert calls == 1
    assert set(tokens) == {"token-1"}


@pytest.mark.asyncio
async def test_token_cache_expires():
    now = [0.0]
    cache = TokenCache(ttl_seconds=10, clock=lambda: now[0])
    fetch_results = iter(["first", "second"])

    async def fetch():
        return next(fetch_results)

    assert await cache.get(fetch) == "first"
    now[0] = 9.9
    assert await cache.get(fetch) == "first"
    now[0] = 10.0
    assert await cache.get(fetch) == "second"


# ================================================================
# Client
# ================================================================

@pytest.mark.asyncio
async def test_lookup_golfer_reuses_admin_token(ghin, fake_api):
    golfer = await ghin.lookup_golfer("1234567")
    await ghin.get_golfer_stats("1234567")

    assert golfer["full_name"] == "Sam Snead"
    assert golfer["handicap_index"] == 14.2
    assert golfer["low_handicap_index"] == -0.4
    assert golfer["club"] == "Oak Hill CC"
    assert fake_api.logins == 1
    assert fake_api.requests[-1].headers["Authorization"] == "Bearer token-admin@example.com"


@pytest.mark.asyncio
async def test_lookup_unknown_golfer(ghin):
    with pytest.raises(GhinNotFoundError):
        await ghin.lookup_golfer("999")


@pytest.mark.asyncio
async def test_unconfigured_client_is_unavailable(fake_api):
    http = httpx.AsyncClient(transport=httpx.MockTransport(fake_api), base_url=BASE_URL)
    client = GhinClient(None, None, http=http)
    assert not client.configured
    with pytest.raises(GhinUnavailableError):
        await client.lookup_golfer("1234567")
    assert fake_api.logins == 0


@pytest.mark.asyncio
async def test_rejected_admin_token_is_dropped(ghin, fake_api):
    fake_api.reject_admin_token = True
    with pytest.raises(GhinUnavailableError):
        await ghin.lookup_golfer("1234567")

    fake_api.reject_admin_token = False
    await ghin.lookup_golfer("1234567")
    assert fake_api.logins == 2


@pytest.mark.asyncio
async def test_get_scores(ghin):
    rounds = await ghin.get_scores("1234567", limit=5)
    assert [r.total_score for r in rounds] == [88, 91]
    assert rounds[0].course_name == "Oak Hill"
    assert not rounds[0].has_hole_detail()


@pytest.mark.asyncio
async def test_user_login_and_detailed_scores(ghin):
    session = await ghin.authenticate_user("sam@example.com", "secret")
    assert session.token == "token-sam@example.com"
    assert session.golfer["ghin_number"] == "1234567"
    assert session.golfer["handicap_index"] == -1.2

    rounds = await ghin.get_detailed_scores("1234567", session.token)
    assert [len(r.hole_scores) for r in rounds] == [2, 0]
    assert rounds[0].hole_scores[0].fairway == FairwayResult.LEFT


@pytest.mark.asyncio
async def test_user_login_rejected(ghin):
    with pytest.raises(GhinAuthError):
        await ghin.authenticate_user("sam@example.com", "wrong")


@pytest.mark.asyncio
async def test_course_layout_picks_named_tee(ghin):
    layout = await ghin.get_course_layout(77, "token", tee_name="white")
    assert layout.is_authoritative
    assert layout.holes[0].yardage == 380

    layout = await ghin.get_course_layout(77, "token")
    assert layout.holes[0].yardage == 410

    with pytest.raises(GhinNotFoundError):
        await ghin.get_course_layout(78, "token")


@pytest.mark.asyncio
async def test_transport_failure_is_unavailable():
    def boom(request):
        raise httpx.ConnectError("unreachable", request=request)

    http = httpx.AsyncClient(transport=httpx.MockTransport(boom), base_url=BASE_URL)
    client = GhinClient("admin@example.com", "secret", http=http)
    with pytest.raises(GhinUnavailableError):
        await client.get_scores("1234567")


@pytest.mark.asyncio
async def test_non_json_reply_is_unavailable(ghin, fake_api):
    fake_api.html_paths.add("/golfers/1234567/scores.json")
    with pytest.raises(GhinUnavailableError):
        await ghin.get_scores("1234567")


@pytest.mark.asyncio
async def test_non_json_login_reply_is_unavailable(ghin, fake_api):
    fake_api.html_paths.add("/golfer_login.json")
    with pytest.raises(GhinUnavailableError):
        await ghin.lookup_golfer("1234567")
    with pytest.raises(GhinUnavailableError):
        await ghin.authenticate_user("sam@example.com", "secret")
