import pytest
from sqlalchemy import select

from app.models.user_affinity import UserCategoryAffinity, UserProviderAffinity
from app.models.user_behavior_profile import UserBehaviorProfile
from app.models.user_interaction import UserModelInteraction
from app.services.affinity_service import (
    affinity_decay_factor,
    apply_interaction_signal,
    calculate_affinity_boost,
    decay_affinity_score,
    get_category_affinities,
    next_affinity_score,
    provider_rating_multiplier,
    update_category_affinity,
    update_provider_affinity,
)
from app.services.catalog_service import get_model


def test_bookmark_boost_at_engagement_eight():
    assert calculate_affinity_boost("bookmark", 8) == pytest.approx(0.6)


def test_boost_is_capped_at_one():
    assert calculate_affinity_boost("generate", 10) == 1.0


def test_view_is_weakest_signal():
    view = calculate_affinity_boost("view", 5)
    for kind in ("like", "bookmark", "generate", "share", "download"):
        assert calculate_affinity_boost(kind, 5) > view


def test_decay_factor_shrinks_with_interaction_count():
    assert affinity_decay_factor(0) == 1.0
    assert affinity_decay_factor(10) == pytest.approx(0.5)
    assert affinity_decay_factor(20) < affinity_decay_factor(10)


def test_next_score_never_exceeds_one():
    score = 0.0
    for count in range(100):
        score = next_affinity_score(score, 1.0, count)
        assert 0.0 <= score <= 1.0
    assert score == 1.0


def test_provider_rating_multiplier_range():
    assert provider_rating_multiplier(None) == 1.0
    assert provider_rating_multiplier(50) == pytest.approx(1.0)
    assert provider_rating_multiplier(100) == pytest.approx(1.5)
    assert provider_rating_multiplier(1) == pytest.approx(0.51)


def test_time_decay_halves_score_after_half_life():
    assert decay_affinity_score(0.8, days=30, half_life=30) == pytest.approx(0.4)
    assert decay_affinity_score(0.0) == 0.0


@pytest.mark.asyncio
async def test_new_category_row_starts_at_boost(db):
    affinity = await update_category_affinity(db, 1, "Photorealistic", 0.6)

    assert affinity.affinity_score == pytest.approx(0.6)
    assert affinity.interaction_count == 1


@pytest.mark.asyncio
async def test_existing_category_affinity_strictly_increases(db):
    db.add(UserCategoryAffinity(user_id=1, category="Photorealistic", affinity_score=0.2, interaction_count=1))
    await db.flush()

    affinity = await update_category_affinity(db, 1, "Photorealistic", 0.6)

    assert 0.2 < affinity.affinity_score <= 1.0
    assert affinity.interaction_count == 2


@pytest.mark.asyncio
async def test_repeated_boosts_stay_clamped(db):
    for _ in range(30):
        affinity = await update_category_affinity(db, 1, "General", 1.0)

    assert affinity.affinity_score <= 1.0
    assert affinity.interaction_count == 30

    rows = (await db.execute(select(UserCategoryAffinity))).scalars().all()
    assert len(rows) == 1


@pytest.mark.asyncio
async def test_provider_affinity_records_quality_rating(db):
    affinity = await update_provider_affinity(db, 1, "RunDiffusion", 0.4, rating=92)

    assert affinity.affinity_score == pytest.approx(0.4 * 1.42, abs=1e-4)
    assert affinity.quality_rating == 92


@pytest.mark.asyncio
async def test_apply_interaction_signal_updates_both_dimensions_and_profile(db, catalog):
    model = await get_model(db, catalog["rundiffusion:130@100"])
    interaction = UserModelInteraction(
        user_id=7, model_id=model.id, interaction_type="bookmark", engagement_level=8,
    )
    db.add(interaction)
    await db.flush()

    boost = await apply_interaction_signal(db, interaction, model)

    assert boost == pytest.approx(0.6)
    categories = await get_category_affinities(db, 7)
    assert [a.category for a in categories] == ["Photorealistic"]

    provider = (await db.execute(
        select(UserProviderAffinity).where(UserProviderAffinity.user_id == 7)
    )).scalar_one()
    assert provider.provider == "RunDiffusion"

    profile = (await db.execute(
        select(UserBehaviorProfile).where(UserBehaviorProfile.user_id == 7)
    )).scalar_one()
    assert profile.total_interactions == 1
    assert profile.exploration_score == 60


@pytest.mark.asyncio
async def test_category_affinities_are_ordered_by_score(db):
    await update_category_affinity(db, 1, "Anime", 0.2)
    await update_category_affinity(db, 1, "General", 0.7)
    await update_category_affinity(db, 1, "Artistic", 0.5)

    ordered = await get_category_affinities(db, 1)
    assert [a.category for a in ordered] == ["General", "Artistic", "Anime"]

    top = await get_category_affinities(db, 1, limit=1)
    assert [a.category for a in top] == ["General"]


@pytest.mark.asyncio
async def test_tiny_increments_on_saturated_rows_are_kept(db):
    db.add(UserCategoryAffinity(user_id=1, category="General", affinity_score=0.5, interaction_count=20000))
    db.add(UserProviderAffinity(user_id=1, provider="Lykon", affinity_score=0.5, interaction_count=20000))
    await db.flush()

    category = await update_category_affinity(db, 1, "General", 0.015)
    provider = await update_provider_affinity(db, 1, "Lykon", 0.015, rating=83)

    assert category.affinity_score > 0.5
    assert category.interaction_count == 20001
    assert provider.affinity_score > 0.5
    assert provider.interaction_count == 20001
