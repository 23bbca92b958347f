"""Result models for article content resolution."""

from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class ContentMode(str, Enum):
    """Whether resolved content is the full article body or a feed snippet."""

    FULL = "full"
    SUMMARY = "summary"


class FailureReason(str, Enum):
    """Why a resolution produced no content.

    - NETWORK_FAILURE: Non-2xx response or connection error
    - TIMEOUT: The fetch exceeded its time budget
    - EXTRACTION_FAILURE: Page fetched but no main content found
    - FEED_FALLBACK_EXHAUSTED: No candidate feed matched the article
    - INVALID_INPUT: Malformed article URL
    """

    NETWORK_FAILURE = "network_failure"
    TIMEOUT = "timeout"
    EXTRACTION_FAILURE = "extraction_failure"
    FEED_FALLBACK_EXHAUSTED = "feed_fallback_exhausted"
    INVALID_INPUT = "invalid_input"


class AuthorProfile(BaseModel):
    """A linked article author."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: Annotated[str, Field(min_length=1)]
    profile_url: Annotated[str, Field(min_length=1)]
    avatar_url: str | None = None


class ArticleContent(BaseModel):
    """Successful resolution: sanitized article HTML plus metadata."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["content"] = "content"
    title: str
    content: str
    site_name: str | None = None
    excerpt: str | None = None
    reading_time_label: str | None = None
    author_name: str | None = None
    author_avatar_url: str | None = None
    authors: tuple[AuthorProfile, ...] = ()
    content_mode: ContentMode = ContentMode.FULL


class ArticleContentError(BaseModel):
    """Failed resolution with a short human-readable reason."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["error"] = "error"
    error: Annotated[str, Field(min_length=1)]
    reason: FailureReason


ArticleResult = Annotated[
    ArticleContent | ArticleContentError, Field(discriminator="kind")
]

article_result_adapter: TypeAdapter[ArticleContent | ArticleContentError] = (
    TypeAdapter(ArticleResult)
)


def is_error(result: ArticleContent | ArticleContentError) -> bool:
    """Check which variant a resolution result is."""
    return result.kind == "error"
