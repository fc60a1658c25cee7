"""Pydantic schemas for the AI model catalog."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """JSON uses camelCase keys; Python code uses snake_case names."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        protected_namespaces=(),
    )


class AIModelRead(CamelModel):
    """Catalog model as returned to clients."""

    id: int
    model_key: str
    name: str
    description: str = ""
    category: str
    provider: str
    version: str | None = None
    featured: bool = False
    rating: int = 50
    downloads: int = 0
    likes: int = 0
    discussions: int = 0
    images_generated: int = 0
    tags: list[str] = []
    thumbnail: str | None = None
    created_at: datetime | None = None
