import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

import api.routers.course_strategy as course_strategy_router
import llm.analyzer as analyzer
from api.routers.analyses import NO_CREDITS
from config import get_settings
from integrations.ghin import GhinNotFoundError, GhinSession, GhinUnavailableError
from integrations.payments import TRIAL_CREDITS
from models import AnalysisRecord, CourseStrategyResult, Round, RoundSource, SubscriptionStatus

ANALYSIS = {
    "summary": {"currentHandicap": 15, "targetHandicap": 11, "keyInsight": "Tee it forward"},
    "courseStrategy": {"redLightHoles": [4], "greenLightHoles": [5]},
}

PROFILE_FORM = {
    "name": "Sam Snead",
    "handicap": "15",
    "homeCourse": "Oak Hill",
    "missPattern": "slice",
    "strengths": "putting, chipping",
}


@pytest.fixture
def model_reply(monkeypatch):
    """Stub the Gemini client so analyses return ANALYSIS."""
    call = AsyncMock(return_value=json.dumps(ANALYSIS))
    monkeypatch.setattr(analyzer, "create_client", lambda: MagicMock())
    monkeypatch.setattr(analyzer, "call_gemini_async", call)
    return call


def _save(fake_db, user, **fields):
    record = AnalysisRecord(user_id=user.id, name="Sam Snead", analysis=ANALYSIS, **fields)
    saved = record.model_copy(update={
        "id": f"analysis-{len(fake_db.analyses.records) + 1}",
        "created_at": datetime.now(timezone.utc),
    })
    fake_db.analyses.records[saved.id] = saved
    return saved


# ================================================================
# Auth
# ================================================================

def test_register_login_and_me(client):
    resp = client.post("/api/auth/register", json={
        "email": "Sam@Example.com", "password": "secret", "name": "Sam", "homeCourse": "Oak Hill",
    })
    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    assert body["user"]["credits"] == 1
    assert body["user"]["subscriptionStatus"] == "free"
    assert body["user"]["homeCourse"] == "Oak Hill"

    resp = client.post("/api/auth/register", json={"email": "sam@example.com", "password": "x"})
    assert resp.status_code == 400

    resp = client.post("/api/auth/login", json={"email": "sam@example.com", "password": "secret"})
    assert resp.status_code == 200
    token = resp.json()["token"]

    resp = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.json()["email"] == "sam@example.com"


def test_login_wrong_password(client, make_user):
    make_user("sam@example.com", "secret")
    resp = client.post("/api/auth/login", json={"email": "sam@example.com", "password": "nope"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid credentials"


def test_missing_and_bad_tokens(client):
    assert client.get("/api/auth/me").status_code == 401
    resp = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-token"})
    assert resp.status_code == 403


def test_token_for_deleted_user(client, make_user, auth_headers, fake_db):
    user = make_user()
    headers = auth_headers(user)
    del fake_db.users.users[user.id]
    assert client.get("/api/auth/me", headers=headers).status_code == 404


def test_update_profile_only_sent_fields(client, make_user, auth_headers):
    user = make_user(name="Sam", home_course="Oak Hill")
    resp = client.put("/api/auth/profile", json={"handicap": 9.4}, headers=auth_headers(user))
    assert resp.status_code == 200
    assert resp.json()["handicap"] == 9.4
    assert resp.json()["homeCourse"] == "Oak Hill"


def test_malformed_body_is_400(client):
    resp = client.post("/api/auth/register", json={"email": "sam@example.com"})
    assert resp.status_code == 400


# ================================================================
# Analyze
# ================================================================

def test_preview_is_free_and_not_saved(client, fake_db, model_reply):
    resp = client.post("/api/analyze", data={**PROFILE_FORM, "preview": "true"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["preview"] is True
    assert body["analysis"]["summary"]["keyInsight"] == "Tee it forward"
    assert "analysisId" not in body
    assert fake_db.analyses.records == {}

    prompt = model_reply.call_args.args[1]
    assert "Self-Reported Strengths: putting, chipping" in prompt


def test_full_analysis_spends_credit(client, fake_db, make_user, auth_headers, model_reply):
    user = make_user(credits=1)
    resp = client.post("/api/analyze", data=PROFILE_FORM, headers=auth_headers(user))

    assert resp.status_code == 200
    body = resp.json()
    assert body["creditsRemaining"] == 0
    assert body["analysisId"] in fake_db.analyses.records
    assert fake_db.users.users[user.id].credits == 0
    assert len(fake_db.analyses.records) == 1


def test_pro_analysis_is_unlimited(client, fake_db, make_user, auth_headers, model_reply):
    user = make_user(credits=0, subscription_status=SubscriptionStatus.PRO)
    resp = client.post("/api/analyze", data=PROFILE_FORM, headers=auth_headers(user))

    assert resp.status_code == 200
    assert resp.json()["creditsRemaining"] == "unlimited"
    assert fake_db.users.users[user.id].credits == 0


def test_analysis_requires_login_unless_preview(client, model_reply):
    resp = client.post("/api/analyze", data=PROFILE_FORM)
    assert resp.status_code == 401
    model_reply.assert_not_called()


def test_analysis_without_credits(client, fake_db, make_user, auth_headers, model_reply):
    user = make_user(credits=0)
    resp = client.post("/api/analyze", data=PROFILE_FORM, headers=auth_headers(user))

    assert resp.status_code == 403
    assert resp.json()["detail"] == NO_CREDITS
    assert fake_db.analyses.records == {}
    model_reply.assert_not_called()


@pytest.mark.parametrize("missing", ["name", "handicap", "homeCourse", "missPattern"])
def test_analysis_missing_profile_field(client, model_reply, missing):
    form = {k: v for k, v in PROFILE_FORM.items() if k != missing}
    resp = client.post("/api/analyze", data={**form, "preview": "true"})
    assert resp.status_code == 400


def test_analysis_rejects_non_images(client, model_reply):
    resp = client.post(
        "/api/analyze",
        data={**PROFILE_FORM, "preview": "true"},
        files=[("scorecards", ("notes.txt", b"hello", "text/plain"))],
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Only image files are allowed"


def test_analysis_too_many_images(client, model_reply):
    files = [("scorecards", (f"card{i}.jpg", b"img", "image/jpeg")) for i in range(11)]
    resp = client.post("/api/analyze", data={**PROFILE_FORM, "preview": "true"}, files=files)
    assert resp.status_code == 400


def test_analysis_with_ghin_scores_skips_images(client, monkeypatch, model_reply):
    extract = AsyncMock(return_value=[])
    monkeypatch.setattr(analyzer, "extract_rounds_from_images", extract)
    ghin_scores = [{"course_name": "Oak Hill", "total_score": 88,
                    "hole_scores": [{"hole_number": 1, "par": 4, "score": 5}]}]

    resp = client.post(
        "/api/analyze",
        data={**PROFILE_FORM, "preview": "true", "ghinScores": json.dumps(ghin_scores)},
        files=[("scorecards", ("card.jpg", b"img", "image/jpeg"))],
    )
    assert resp.status_code == 200
    extract.assert_not_called()
    assert resp.json()["analysis"]["extractedScores"]["source"] == "ghin"


def test_analysis_bad_ghin_scores(client, model_reply):
    resp = client.post("/api/analyze", data={**PROFILE_FORM, "preview": "true", "ghinScores": "{oops"})
    assert resp.status_code == 400


def test_analysis_ghin_number_fetches_history(client, fake_ghin, model_reply):
    fake_ghin.get_scores = AsyncMock(return_value=[
        Round(course_name="Oak Hill", total_score=90, source=RoundSource.GHIN)
    ])
    resp = client.post("/api/analyze", data={**PROFILE_FORM, "preview": "true", "ghinNumber": "1234567"})

    assert resp.status_code == 200
    fake_ghin.get_scores.assert_awaited_once_with("1234567")
    assert resp.json()["analysis"]["extractedScores"]["rounds"][0]["total_score"] == 90


def test_analysis_ghin_outage_falls_back(client, fake_ghin, model_reply):
    fake_ghin.get_scores = AsyncMock(side_effect=GhinUnavailableError("down"))
    resp = client.post("/api/analyze", data={**PROFILE_FORM, "preview": "true", "ghinNumber": "1234567"})
    assert resp.status_code == 200
    assert resp.json()["analysis"]["extractedScores"]["source"] is None


def test_analysis_model_failure_is_500(client, monkeypatch):
    monkeypatch.setattr(analyzer, "create_client", lambda: MagicMock())
    monkeypatch.setattr(analyzer, "call_gemini_async", AsyncMock(return_value="not json"))
    resp = client.post("/api/analyze", data={**PROFILE_FORM, "preview": "true"})
    assert resp.status_code == 500
    assert resp.json()["detail"] == "Analysis failed"


def test_analyze_is_rate_limited(client):
    limit = get_settings().rate_limit_analyze_per_minute
    for _ in range(limit):
        assert client.post("/api/analyze", data={"preview": "true"}).status_code == 400
    resp = client.post("/api/analyze", data={"preview": "true"})
    assert resp.status_code == 429


# ================================================================
# Saved analyses
# ================================================================

def test_save_preview_analysis(client, fake_db, make_user, auth_headers):
    user = make_user(credits=1)
    resp = client.post(
        "/api/analyses/save",
        json={"name": "Sam", "homeCourse": "Oak Hill", "analysis": ANALYSIS},
        headers=auth_headers(user),
    )
    assert resp.status_code == 200
    assert resp.json()["creditsRemaining"] == 0
    saved = fake_db.analyses.records[resp.json()["analysisId"]]
    assert saved.home_course == "Oak Hill"


def test_save_invalid_analysis(client, make_user, auth_headers):
    user = make_user(credits=1)
    resp = client.post("/api/analyses/save", json={"analysis": {"summary": {}}}, headers=auth_headers(user))
    assert resp.status_code == 400


def test_list_and_get_analyses(client, fake_db, make_user, auth_headers):
    user = make_user()
    other = make_user("other@example.com")
    mine = _save(fake_db, user)
    _save(fake_db, other)

    resp = client.get("/api/analyses", headers=auth_headers(user))
    assert [a["id"] for a in resp.json()["analyses"]] == [mine.id]

    resp = client.get(f"/api/analyses/{mine.id}", headers=auth_headers(user))
    assert resp.json()["analysis"]["analysis"]["summary"]["keyInsight"] == "Tee it forward"

    assert client.get(f"/api/analyses/{mine.id}", headers=auth_headers(other)).status_code == 403
    assert client.get("/api/analyses/missing", headers=auth_headers(user)).status_code == 404


def test_pdf_download(client, fake_db, make_user, auth_headers):
    user = make_user()
    record = _save(fake_db, user, home_course="Oak Hill", handicap=15.0)

    resp = client.get(f"/api/analyses/{record.id}/pdf", headers=auth_headers(user))
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/pdf"
    assert resp.content.startswith(b"%PDF")
    assert 'filename="Sam_Snead_Strategy_Card.pdf"' in resp.headers["content-disposition"]

    resp = client.get(f"/api/analyses/{record.id}/pdf?type=practice", headers=auth_headers(user))
    assert 'filename="Sam_Snead_Practice_Plan.pdf"' in resp.headers["content-disposition"]


def test_pdf_access_rules(client, fake_db, make_user, auth_headers):
    user = make_user()
    other = make_user("other@example.com")
    record = _save(fake_db, user)

    assert client.get(f"/api/analyses/{record.id}/pdf").status_code == 401
    assert client.get(f"/api/analyses/{record.id}/pdf", headers=auth_headers(other)).status_code == 403
    assert client.get("/api/analyses/nope/pdf", headers=auth_headers(user)).status_code == 404
    resp = client.get(f"/api/analyses/{record.id}/pdf?type=poster", headers=auth_headers(user))
    assert resp.status_code == 400


# ================================================================
# Rounds and stats
# ================================================================

def test_track_rounds_and_stats(client, fake_db, make_user, auth_headers):
    user = make_user()
    analysis = _save(fake_db, user)
    headers = auth_headers(user)

    for score, day in ((90, "2024-05-01"), (84, "2024-06-01")):
        resp = client.post("/api/rounds", json={
            "analysisId": analysis.id,
            "courseName": "Oak Hill",
            "date": day,
            "score": score,
            "holeScores": [{"hole_number": 1, "par": 4, "score": 5, "putts": 2}],
        }, headers=headers)
        assert resp.status_code == 200
        assert resp.json()["round"]["score"] == score

    resp = client.get("/api/rounds", headers=headers)
    assert len(resp.json()["rounds"]) == 2

    stats = client.get("/api/stats", headers=headers).json()
    assert stats["totalRounds"] == 2
    assert stats["averageScore"] == 87.0
    assert stats["bestScore"] == 84
    assert stats["stats"]["rounds_analyzed"] == 2
    assert [t["total_score"] for t in stats["trend"]] == [90, 84]


def test_round_against_someone_elses_analysis(client, fake_db, make_user, auth_headers):
    owner = make_user()
    other = make_user("other@example.com")
    analysis = _save(fake_db, owner)

    resp = client.post("/api/rounds", json={"analysisId": analysis.id, "score": 90}, headers=auth_headers(other))
    assert resp.status_code == 403
    assert fake_db.rounds.rounds == []


def test_round_with_impossible_score(client, make_user, auth_headers):
    user = make_user()
    resp = client.post("/api/rounds", json={"score": 5}, headers=auth_headers(user))
    assert resp.status_code == 400


def test_stats_without_rounds(client, make_user, auth_headers):
    stats = client.get("/api/stats", headers=auth_headers(make_user())).json()
    assert stats["totalRounds"] == 0
    assert stats["averageScore"] is None
    assert stats["trend"] == []


# ================================================================
# GHIN
# ================================================================

GOLFER = {
    "ghin_number": "1234567", "first_name": "Sam", "last_name": "Snead", "full_name": "Sam Snead",
    "handicap_index": 14.2, "low_handicap_index": 12.0, "club": "Oak Hill CC",
    "association": "NYSGA", "state": "NY", "status": "Active", "revision_date": None,
}


def test_public_ghin_lookup(client, fake_ghin):
    fake_ghin.lookup_golfer = AsyncMock(return_value=GOLFER)
    resp = client.get("/api/public/ghin-lookup/1234567")
    assert resp.status_code == 200
    assert resp.json()["golfer"] == {
        "firstName": "Sam", "lastName": "Snead", "handicapIndex": 14.2, "club": "Oak Hill CC", "state": "NY",
    }


def test_public_ghin_lookup_not_found(client, fake_ghin):
    fake_ghin.lookup_golfer = AsyncMock(side_effect=GhinNotFoundError("nope"))
    resp = client.get("/api/public/ghin-lookup/999")
    assert resp.status_code == 404
    assert resp.json()["detail"] == {"error": "GHIN number not found", "success": False}


def test_ghin_outage_asks_for_manual_entry(client, fake_ghin, make_user, auth_headers):
    fake_ghin.lookup_golfer = AsyncMock(side_effect=GhinUnavailableError("down"))
    resp = client.get("/api/ghin/1234567", headers=auth_headers(make_user()))
    assert resp.status_code == 500
    assert resp.json()["detail"]["requiresManualEntry"] is True


def test_link_ghin_updates_profile(client, fake_db, fake_ghin, make_user, auth_headers):
    fake_ghin.lookup_golfer = AsyncMock(return_value=GOLFER)
    user = make_user(handicap=20.0)
    resp = client.post("/api/ghin/link", json={"ghinNumber": "1234567"}, headers=auth_headers(user))

    assert resp.status_code == 200
    stored = fake_db.users.users[user.id]
    assert stored.ghin_number == "1234567"
    assert stored.handicap == 14.2
    assert stored.name == "Sam Snead"


def test_refresh_without_linked_number(client, make_user, auth_headers):
    resp = client.post("/api/ghin/refresh", json={}, headers=auth_headers(make_user()))
    assert resp.status_code == 400


def test_detailed_scores(client, fake_ghin, make_user, auth_headers):
    fake_ghin.authenticate_user = AsyncMock(
        return_value=GhinSession(token="user-token", golfer={"ghin_number": "1234567"})
    )
    fake_ghin.get_detailed_scores = AsyncMock(return_value=[Round(total_score=88, source=RoundSource.GHIN)])
    fake_ghin.get_course_layout = AsyncMock()

    resp = client.post(
        "/api/ghin/detailed-scores",
        json={"emailOrGhin": "sam@example.com", "password": "secret", "limit": 5},
        headers=auth_headers(make_user()),
    )
    assert resp.status_code == 200
    assert resp.json()["rounds"][0]["total_score"] == 88
    assert resp.json()["courseLayout"] is None
    fake_ghin.get_detailed_scores.assert_awaited_once_with("1234567", "user-token", limit=5)
    fake_ghin.get_course_layout.assert_not_called()


# ================================================================
# Course strategy
# ================================================================

def test_course_strategy(client, fake_db, monkeypatch, make_user, auth_headers):
    generate = AsyncMock(return_value=CourseStrategyResult(course_name="Merion", overview="Short and tight"))
    monkeypatch.setattr(course_strategy_router, "generate_course_strategy", generate)
    user = make_user(handicap=12.0)
    headers = auth_headers(user)

    resp = client.post("/api/course-strategy", data={"courseName": "Merion", "tees": "White"}, headers=headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["strategy"]["overview"] == "Short and tight"
    assert generate.call_args.kwargs["handicap"] == 12.0

    listed = client.get("/api/course-strategies", headers=headers).json()["strategies"]
    assert [s["id"] for s in listed] == [body["strategyId"]]
    assert client.get(f"/api/course-strategies/{body['strategyId']}", headers=headers).status_code == 200

    other = auth_headers(make_user("other@example.com"))
    assert client.get(f"/api/course-strategies/{body['strategyId']}", headers=other).status_code == 403


def test_course_strategy_requires_name(client, make_user, auth_headers):
    resp = client.post("/api/course-strategy", data={"tees": "White"}, headers=auth_headers(make_user()))
    assert resp.status_code == 400


# ================================================================
# Payments
# ================================================================

def test_payment_status(client, make_user, auth_headers):
    resp = client.get("/api/payments/status", headers=auth_headers(make_user(credits=0)))
    assert resp.json() == {"subscriptionStatus": "free", "credits": 0, "canAnalyze": False}


def test_webhook_bad_signature(client, monkeypatch):
    import stripe

    monkeypatch.setattr(
        stripe.Webhook, "construct_event",
        MagicMock(side_effect=stripe.SignatureVerificationError("bad", "sig")),
    )
    resp = client.post("/api/payments/webhook", content=b"{}", headers={"Stripe-Signature": "sig"})
    assert resp.status_code == 400
    assert resp.json()["detail"].startswith("Webhook Error")


def test_webhook_adds_credit(client, fake_db, monkeypatch, make_user):
    import stripe

    monkeypatch.setattr(stripe.Webhook, "construct_event", MagicMock())
    user = make_user(credits=0)
    event = {"type": "checkout.session.completed",
             "data": {"object": {"metadata": {"userId": user.id, "priceType": "credits"}}}}

    resp = client.post("/api/payments/webhook", content=json.dumps(event), headers={"Stripe-Signature": "sig"})
    assert resp.json() == {"received": True}
    assert fake_db.users.users[user.id].credits == 1


def test_webhook_for_unknown_user_still_returns_200(client, monkeypatch):
    import stripe

    monkeypatch.setattr(stripe.Webhook, "construct_event", MagicMock())
    event = {"type": "checkout.session.completed",
             "data": {"object": {"metadata": {"userId": "no-such-user", "priceType": "credits"}}}}

    resp = client.post("/api/payments/webhook", content=json.dumps(event), headers={"Stripe-Signature": "sig"})
    assert resp.status_code == 200
    assert resp.json() == {"received": True}


def test_checkout_invalid_price(client, make_user, auth_headers):
    resp = client.post("/api/payments/create-checkout", json={"priceType": "lifetime"},
                       headers=auth_headers(make_user()))
    assert resp.status_code == 400


def test_activate_trial(client, fake_db, make_user, auth_headers):
    user = make_user()
    headers = auth_headers(user)
    assert client.post("/api/payments/activate-trial", json={"code": "nope"}, headers=headers).status_code == 400

    resp = client.post("/api/payments/activate-trial", json={"code": "LETMEIN"}, headers=headers)
    assert resp.status_code == 200
    assert fake_db.users.users[user.id].credits == TRIAL_CREDITS
    assert resp.json()["user"]["subscriptionStatus"] == "pro"


def test_health_reports_degraded_without_database(client):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json()["database"] is False
