"""Feed source configuration schema."""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from devfeed.config.schemas.base import SourceTier


class FeedSource(BaseModel):
    """Configuration for a single feed source.

    Attributes:
        id: Unique identifier for the source.
        name: Human-readable name.
        feed_url: RSS/Atom feed URL.
        website: Public website of the source; used for domain matching.
        color: Display color.
        tier: Source tier.
        lookback_days: Maximum item age in days (capped globally).
        max_unread_visible: Per-source unread cap in the inbox.
        priority: Explicit priority score (clamped to [0, 20]).
        include_categories: Categories that mark an item as on-topic.
        exclude_categories: Categories that mark an item as off-topic.
        exclude_keywords: Source-specific noise keywords.
        is_youtube: Mark the source as a YouTube channel even when feed_url
            is not a youtube.com feed URL.
        include_shorts: Keep YouTube Shorts (YouTube sources only).
        include_live: Keep live streams and premieres (YouTube sources only).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: Annotated[str, Field(min_length=1, max_length=100)]
    name: Annotated[str, Field(min_length=1, max_length=200)]
    feed_url: Annotated[str, Field(min_length=1)]
    website: Annotated[str, Field(min_length=1)]
    color: str = "#6b7280"
    tier: SourceTier = SourceTier.NORMAL
    lookback_days: Annotated[float, Field(gt=0)] | None = None
    max_unread_visible: Annotated[int, Field(ge=0)] | None = None
    priority: float | None = None
    include_categories: tuple[str, ...] = ()
    exclude_categories: tuple[str, ...] = ()
    exclude_keywords: tuple[str, ...] = ()
    is_youtube: bool = False
    include_shorts: bool = True
    include_live: bool = True

    @field_validator("feed_url", "website")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate URL starts with http:// or https://."""
        if not v.startswith(("http://", "https://")):
            msg = "URL must start with http:// or https://"
            raise ValueError(msg)
        return v


class SourcesConfig(BaseModel):
    """Root configuration for a sources YAML file.

    Attributes:
        version: Schema version.
        sources: List of source configurations.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    version: Annotated[str, Field(pattern=r"^\d+\.\d+$")] = "1.0"
    sources: list[FeedSource]

    @model_validator(mode="after")
    def validate_unique_ids(self) -> "SourcesConfig":
        """Ensure all source IDs are unique."""
        ids = [s.id for s in self.sources]
        duplicates = [id_ for id_ in ids if ids.count(id_) > 1]
        if duplicates:
            msg = f"Duplicate source IDs found: {set(duplicates)}"
            raise ValueError(msg)
        return self
