from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.dependencies.cache import get_recommendation_cache
from app.dependencies.tasks import get_profile_refresh_dispatcher
from app.main import app
from app.models import AIModel
from app.models.base import Base, get_db
from app.services.cache import InMemoryTTLCache

BASE_TIME = datetime(2026, 1, 1, tzinfo=timezone.utc)

CATALOG = [
    # (model_key, name, category, provider, rating, downloads, featured)
    ("runware:101@1", "FLUX Dev", "General", "Black Forest Labs", 90, 52000, True),
    ("rundiffusion:130@100", "Juggernaut Pro Flux", "Photorealistic", "RunDiffusion", 92, 45230, True),
    ("runware:100@1", "FLUX Schnell", "General", "Black Forest Labs", 84, 38000, False),
    ("runware:97@3", "HiDream-I1-Full", "Artistic", "HiDream", 86, 9700, False),
    ("civitai:112902@351306", "DreamShaper XL", "Fantasy", "Lykon", 83, 27400, False),
    ("civitai:141592@992642", "PixelWave", "Anime", "Community", 62, 6400, False),
]



@pytest_asyncio.fixture
async def session_maker(tmp_path):
    db_path = tmp_path / "recs.db"
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}")
    maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield maker
    await engine.dispose()


@pytest_asyncio.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def catalog(session_maker):
    """Seed the catalog; returns {model_key: id}."""
    async with session_maker() as session:
        models = []
        for i, (key, name, category, provider, rating, downloads, featured) in enumerate(CATALOG):
            model = AIModel(
                model_key=key,
                name=name,
                category=category,
                provider=provider,
                rating=rating,
                downloads=downloads,
                featured=featured,
                tags=[],
                created_at=BASE_TIME + timedelta(days=i),
            )
            session.add(model)
            models.append(model)
        await session.commit()
        return {m.model_key: m.id for m in models}


@pytest.fixture
def cache():
    return InMemoryTTLCache(ttl_seconds=300)


@pytest.fixture
def refresh_calls():
    return []


@pytest_asyncio.fixture
async def client(session_maker, cache, refresh_calls):
    async def override_get_db():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_recommendation_cache] = lambda: cache

    def queue_refresh(user_id):
        refresh_calls.append(user_id)
        return True

    app.dependency_overrides[get_profile_refresh_dispatcher] = lambda: queue_refresh

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
