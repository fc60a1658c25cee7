import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from app.dependencies.tasks import get_profile_refresh_dispatcher
from app.exceptions import PersistenceError
from app.main import app
from app.models.user_affinity import UserCategoryAffinity
from app.models.user_interaction import UserModelInteraction
from app.services.recommendation_engine import RecommendationEngine


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_track_without_model_id_is_rejected(client, refresh_calls):
    response = await client.post(
        "/api/v1/interactions/track",
        json={"userId": 1, "interactionType": "bookmark", "engagementLevel": 8},
    )

    assert response.status_code == 400
    payload = response.json()
    assert payload["error"] == "Validation failed"
    assert any("modelId" in detail for detail in payload["details"])
    assert refresh_calls == []


@pytest.mark.asyncio
async def test_track_rejects_unknown_interaction_type(client, catalog):
    response = await client.post(
        "/api/v1/interactions/track",
        json={"userId": 1, "modelId": catalog["runware:101@1"], "interactionType": "poke"},
    )

    assert response.status_code == 400
    assert any("interactionType" in detail for detail in response.json()["details"])


@pytest.mark.asyncio
async def test_track_rejects_out_of_range_engagement(client, catalog):
    response = await client.post(
        "/api/v1/interactions/track",
        json={"userId": 1, "modelId": catalog["runware:101@1"], "interactionType": "like", "engagementLevel": 11},
    )

    assert response.status_code == 400
    assert any("engagementLevel" in detail for detail in response.json()["details"])


@pytest.mark.asyncio
async def test_track_records_interaction_and_updates_affinities(client, catalog, refresh_calls):
    model_id = catalog["rundiffusion:130@100"]

    response = await client.post(
        "/api/v1/interactions/track",
        json={"userId": 1, "modelId": model_id, "interactionType": "bookmark", "engagementLevel": 8},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert isinstance(body["interactionId"], int)
    assert refresh_calls == [1]

    insights = (await client.get("/api/v1/users/1/recommendation-insights")).json()
    assert insights["topCategories"][0]["category"] == "Photorealistic"
    assert insights["topCategories"][0]["score"] == pytest.approx(0.6)
    assert insights["topProviders"][0]["provider"] == "RunDiffusion"
    assert insights["recentActivity"]["interactions"] == 1
    assert insights["profile"]["totalInteractions"] == 1


@pytest.mark.asyncio
async def test_track_can_estimate_engagement(client, catalog, session_maker):
    response = await client.post(
        "/api/v1/interactions/track",
        json={
            "userId": 2,
            "modelId": catalog["runware:101@1"],
            "interactionType": "generate",
            "sessionDuration": 400,
            "deviceType": "mobile",
            "estimateEngagement": True,
        },
    )
    assert response.status_code == 200

    async with session_maker() as session:
        interaction = (await session.execute(select(UserModelInteraction))).scalar_one()
    assert interaction.engagement_level == 10
    assert interaction.device_type == "mobile"


@pytest.mark.asyncio
async def test_track_defaults_engagement_to_five(client, catalog, session_maker):
    await client.post(
        "/api/v1/interactions/track",
        json={"userId": 2, "modelId": catalog["runware:101@1"], "interactionType": "view"},
    )

    async with session_maker() as session:
        interaction = (await session.execute(select(UserModelInteraction))).scalar_one()
    assert interaction.engagement_level == 5
    assert interaction.referral_source == "direct"


@pytest.mark.asyncio
async def test_recommendations_carry_recommendation_block(client, catalog):
    response = await client.get("/api/v1/recommendations", params={"userId": 9, "limit": 4})

    assert response.status_code == 200
    body = response.json()
    assert len(body["recommendations"]) == 4
    assert body["totalCandidates"] == len(catalog)
    assert body["userProfile"]["isColdStart"] is True
    assert body["metadata"]["fallback"] is False
    for model in body["recommendations"]:
        assert {"id", "name", "category", "provider", "modelKey"} <= model.keys()
        meta = model["_recommendation"]
        assert 0.0 <= meta["relevanceScore"] <= 1.0
        assert 0.0 <= meta["confidenceScore"] <= 1.0
        assert meta["reasons"]


@pytest.mark.asyncio
async def test_recommendations_skip_excluded_and_viewed(client, catalog):
    excluded = catalog["runware:101@1"]
    viewed = catalog["rundiffusion:130@100"]

    response = await client.get(
        "/api/v1/recommendations",
        params={"userId": 9, "excludeIds": str(excluded), "viewedIds": str(viewed)},
    )

    ids = {m["id"] for m in response.json()["recommendations"]}
    assert excluded not in ids
    assert viewed not in ids
    assert len(ids) == len(catalog) - 2


@pytest.mark.asyncio
async def test_recommendations_require_user_id(client):
    response = await client.get("/api/v1/recommendations")

    assert response.status_code == 400
    assert any("userId" in detail for detail in response.json()["details"])


@pytest.mark.asyncio
async def test_recommendations_reject_malformed_id_list(client):
    response = await client.get("/api/v1/recommendations", params={"userId": 9, "excludeIds": "3,abc"})

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_empty_catalog_returns_empty_list(client):
    response = await client.get("/api/v1/recommendations", params={"userId": 9})

    assert response.status_code == 200
    assert response.json()["recommendations"] == []


@pytest.mark.asyncio
async def test_tracking_invalidates_cached_recommendations(client, catalog):
    params = {"userId": 4, "limit": 3}

    first = (await client.get("/api/v1/recommendations", params=params)).json()
    second = (await client.get("/api/v1/recommendations", params=params)).json()
    assert first["metadata"]["cached"] is False
    assert second["metadata"]["cached"] is True

    await client.post(
        "/api/v1/interactions/track",
        json={"userId": 4, "modelId": catalog["civitai:141592@992642"], "interactionType": "like"},
    )

    third = (await client.get("/api/v1/recommendations", params=params)).json()
    assert third["metadata"]["cached"] is False


@pytest.mark.asyncio
async def test_behavior_analytics_for_new_user(client):
    response = await client.get("/api/v1/users/77/behavior-analytics")

    assert response.status_code == 200
    body = response.json()
    assert body["profile"]["isColdStart"] is True
    assert body["profile"]["explorationScore"] == 60
    assert body["profile"]["qualityThreshold"] == 70
    assert body["patterns"]["totalInteractions"] == 0
    assert body["patterns"]["peakUsageHours"] == [14, 15, 16]


@pytest.mark.asyncio
async def test_behavior_analytics_reflects_tracked_activity(client, catalog):
    for key in ("runware:101@1", "runware:97@3", "civitai:112902@351306"):
        await client.post(
            "/api/v1/interactions/track",
            json={"userId": 8, "modelId": catalog[key], "interactionType": "like", "engagementLevel": 7},
        )

    body = (await client.get("/api/v1/users/8/behavior-analytics", params={"days": 7})).json()

    assert body["patterns"]["totalInteractions"] == 3
    assert body["patterns"]["categoryBreakdown"] == {"General": 1, "Artistic": 1, "Fantasy": 1}
    assert body["patterns"]["interactionTypeBreakdown"] == {"like": 3}
    assert len(body["patterns"]["engagementTrends"]) == 7


@pytest.mark.asyncio
async def test_featured_models_and_lookup(client, catalog):
    featured = (await client.get("/api/v1/models/featured", params={"limit": 2})).json()
    assert [m["modelKey"] for m in featured] == ["rundiffusion:130@100", "runware:101@1"]

    model_id = catalog["civitai:112902@351306"]
    model = (await client.get(f"/api/v1/models/{model_id}")).json()
    assert model["name"] == "DreamShaper XL"

    missing = await client.get("/api/v1/models/99999")
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_track_reports_failure_when_the_event_cannot_be_written(client, catalog, refresh_calls, monkeypatch):
    async def failing_flush(self, objects=None):
        raise OperationalError("INSERT INTO user_model_interactions", {}, Exception("disk I/O error"))

    monkeypatch.setattr(AsyncSession, "flush", failing_flush)

    response = await client.post(
        "/api/v1/interactions/track",
        json={"userId": 3, "modelId": catalog["runware:101@1"], "interactionType": "like"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Failed to track interaction"
    assert refresh_calls == []


@pytest.mark.asyncio
async def test_affinity_failure_keeps_the_tracked_event(client, catalog, session_maker, monkeypatch):
    async def failing_signal(db, interaction, model, settings=None):
        raise PersistenceError("affinity table locked")

    monkeypatch.setattr("app.api.v1.interactions.apply_interaction_signal", failing_signal)

    response = await client.post(
        "/api/v1/interactions/track",
        json={"userId": 3, "modelId": catalog["runware:101@1"], "interactionType": "like"},
    )

    assert response.status_code == 200
    assert response.json()["success"] is True
    async with session_maker() as session:
        interactions = (await session.execute(select(UserModelInteraction))).scalars().all()
        affinities = (await session.execute(select(UserCategoryAffinity))).scalars().all()
    assert len(interactions) == 1
    assert affinities == []


@pytest.mark.asyncio
async def test_profile_is_refreshed_in_request_when_no_worker_is_available(client, catalog):
    app.dependency_overrides[get_profile_refresh_dispatcher] = lambda: (lambda user_id: False)

    response = await client.post(
        "/api/v1/interactions/track",
        json={"userId": 6, "modelId": catalog["runware:101@1"], "interactionType": "like", "engagementLevel": 7},
    )
    assert response.json()["success"] is True

    profile = (await client.get("/api/v1/users/6/behavior-analytics")).json()["profile"]
    # One interaction in one category, blended with the defaults by evidence weight 1/6
    assert profile["explorationScore"] == 53
    assert profile["qualityThreshold"] == 73
    assert profile["totalInteractions"] == 1


@pytest.mark.asyncio
async def test_recommendations_fall_back_when_the_engine_raises(client, catalog, monkeypatch):
    async def exploding_recommend(self, db, user_id, limit, exclude_ids=(), session_context=None):
        raise RuntimeError("scoring crashed")

    monkeypatch.setattr(RecommendationEngine, "recommend", exploding_recommend)

    response = await client.get("/api/v1/recommendations", params={"userId": 9, "limit": 3})

    assert response.status_code == 200
    body = response.json()
    assert body["metadata"]["fallback"] is True
    assert len(body["recommendations"]) == 3
