"""Cache dependency for FastAPI routes."""

from fastapi import Request

from app.services.cache import InMemoryTTLCache, RedisCache, build_cache


def get_recommendation_cache(request: Request) -> InMemoryTTLCache | RedisCache:
    """Return the app-wide recommendation cache, creating it on first use."""
    cache = getattr(request.app.state, "recommendation_cache", None)
    if cache is None:
        cache = build_cache()
        request.app.state.recommendation_cache = cache
    return cache
