"""Article content resolution.

Fetches an article page, extracts its main content, sanitizes and cleans
it, and falls back to the article's feed entry when the page is
unavailable. The resolver lives in ``devfeed.content.resolver`` and the
session cache in ``devfeed.content.client_cache``; both depend on the fetch
layer, which in turn uses the URL helpers exported here.
"""

from devfeed.content.models import (
    ArticleContent,
    ArticleContentError,
    ArticleResult,
    AuthorProfile,
    ContentMode,
    FailureReason,
    article_result_adapter,
    is_error,
)
from devfeed.content.urls import article_cache_key, canonicalize_url


__all__ = [
    "ArticleContent",
    "ArticleContentError",
    "ArticleResult",
    "AuthorProfile",
    "ContentMode",
    "FailureReason",
    "article_cache_key",
    "article_result_adapter",
    "canonicalize_url",
    "is_error",
]
