"""Episode, search query and page request models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _rendered_text(value: Any) -> Any:
    """Unwrap ``{"rendered": "..."}`` objects returned by the posts API."""
    if isinstance(value, dict):
        return value.get("rendered")
    return value


class Episode(BaseModel):
    """A single podcast episode as returned by the posts API."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(..., validation_alias="_id", serialization_alias="_id")
    date: str | None = None
    title: str | None = None
    excerpt: str | None = None
    link: str | None = None
    mp3: str | None = None
    thumbnail_url: str | None = Field(
        None, validation_alias="featuredImage", serialization_alias="featuredImage"
    )
    categories: list[str] = Field(default_factory=list)

    @field_validator("title", "excerpt", mode="before")
    @classmethod
    def unwrap_rendered(cls, v):
        return _rendered_text(v)

    @field_validator("categories", mode="before")
    @classmethod
    def coerce_categories(cls, v):
        if v is None:
            return []
        return [str(category) for category in v]

    @property
    def key(self) -> str:
        """Paging key; episodes without a date share the empty key."""
        return self.date or ""

    def to_payload(self) -> dict[str, Any]:
        """Serialize back to the API's wire shape."""
        return self.model_dump(by_alias=True, mode="json")


class SearchQuery(BaseModel):
    """Filters narrowing the remote episode list. One paging session per query."""

    model_config = ConfigDict(frozen=True)

    search_term: str | None = None
    category_id: str | None = None


class PageRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    cursor: str | None = None
    page_size: int = Field(..., gt=0)
    is_initial: bool = False
