"""Article content resolution: fetch, extract, clean, fall back, cache."""

import asyncio
import time
from collections.abc import Sequence

import httpx
import structlog

from devfeed.cache import Clock, InFlightRegistry, TimedCache
from devfeed.config import DEFAULT_FEED_SOURCES, FeedSource
from devfeed.content.authors import extract_author_info, merge_author_profiles
from devfeed.content.dom import decode_document, parse_document
from devfeed.content.extractor import MainContentExtractor, ReadabilityExtractor
from devfeed.content.fallback import FeedFallback
from devfeed.content.feeds import FeedReader, build_feed_reader
from devfeed.content.metrics import ContentMetrics
from devfeed.content.models import (
    ArticleContent,
    ArticleContentError,
    ContentMode,
    FailureReason,
)
from devfeed.content.postprocess import postprocess_article_html
from devfeed.content.text import decode_html_entities, normalize_whitespace
from devfeed.content.urls import (
    article_cache_key,
    is_http_url,
    normalize_article_url_for_fetch,
)
from devfeed.fetch import (
    FetchConfig,
    FetchErrorClass,
    FetchResult,
    HttpFetcher,
    fetch_with_trailing_slash_retry,
)
from devfeed.settings import AppSettings


logger = structlog.get_logger()

ArticleResult = ArticleContent | ArticleContentError

TIMEOUT_MESSAGE = "Request timed out"
EXTRACTION_FAILED_MESSAGE = "Could not extract article content"
UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred while fetching the article"
INVALID_URL_MESSAGE = "Invalid article URL"


class ArticleContentResolver:
    """Resolves article URLs to sanitized content.

    Results are cached per ``(source feed, article)`` pair; successes and
    failures get separate TTLs. Concurrent calls for the same pair share a
    single resolution, which runs to completion and is cached even if
    every caller has gone away. ``resolve`` never raises.
    """

    def __init__(
        self,
        fetcher: HttpFetcher,
        extractor: MainContentExtractor,
        fallback: FeedFallback,
        success_ttl_seconds: float = 300.0,
        error_ttl_seconds: float = 30.0,
        max_entries: int = 300,
        clock: Clock = time.monotonic,
    ) -> None:
        """Initialize the resolver.

        Args:
            fetcher: Fetcher for article pages.
            extractor: Main-content extractor.
            fallback: Feed-content fallback.
            success_ttl_seconds: Lifetime of cached successes.
            error_ttl_seconds: Lifetime of cached failures.
            max_entries: Maximum number of cached results.
            clock: Time source for the cache.
        """
        self._fetcher = fetcher
        self._extractor = extractor
        self._fallback = fallback
        self._success_ttl_seconds = success_ttl_seconds
        self._error_ttl_seconds = error_ttl_seconds
        self._cache: TimedCache[ArticleResult] = TimedCache(max_entries, clock=clock)
        self._inflight: InFlightRegistry[ArticleResult] = InFlightRegistry()
        self._metrics = ContentMetrics.get_instance()
        self._log = logger.bind(component="content")

    def get_cached(
        self, url: str, source_feed_url: str | None = None
    ) -> ArticleResult | None:
        """Return a live cached result without resolving."""
        return self._cache.get(article_cache_key(url, source_feed_url))

    def is_pending(self, url: str, source_feed_url: str | None = None) -> bool:
        return self._inflight.is_pending(article_cache_key(url, source_feed_url))

    async def resolve(
        self, url: str, source_feed_url: str | None = None
    ) -> ArticleResult:
        """Resolve an article URL to content.

        Args:
            url: Article URL.
            source_feed_url: Feed the article came from, if known.

        Returns:
            ArticleContent, or ArticleContentError with a reason.
        """
        key = article_cache_key(url, source_feed_url)

        cached = self._cache.get(key)
        if cached is not None:
            self._metrics.record_cache_hit()
            self._log.debug("cache_hit", url=url)
            return cached

        if self._inflight.is_pending(key):
            self._metrics.record_coalesced_wait()
            self._log.debug("coalesced_wait", url=url)
        else:
            self._metrics.record_cache_miss()

        return await self._inflight.run(
            key, lambda: self._resolve_and_cache(key, url, source_feed_url)
        )

    async def _resolve_and_cache(
        self, key: str, url: str, source_feed_url: str | None
    ) -> ArticleResult:
        start_time_ns = time.perf_counter_ns()
        try:
            result = await self._resolve_uncached(url, source_feed_url)
        except Exception as e:  # noqa: BLE001
            self._log.exception("resolution_crashed", url=url, error=str(e))
            result = ArticleContentError(
                error=UNEXPECTED_ERROR_MESSAGE,
                reason=FailureReason.FEED_FALLBACK_EXHAUSTED,
            )

        if isinstance(result, ArticleContentError):
            self._metrics.record_failure(result.reason.value)
            ttl = self._error_ttl_seconds
        else:
            ttl = self._success_ttl_seconds
        self._cache.set(key, result, ttl)

        self._log.info(
            "resolution_complete",
            url=url,
            kind=result.kind,
            content_mode=result.content_mode.value
            if isinstance(result, ArticleContent)
            else None,
            reason=result.reason.value if isinstance(result, ArticleContentError) else None,
            duration_ms=round((time.perf_counter_ns() - start_time_ns) / 1_000_000, 2),
        )
        return result

    async def _resolve_uncached(
        self, url: str, source_feed_url: str | None
    ) -> ArticleResult:
        if not is_http_url(url):
            return ArticleContentError(
                error=INVALID_URL_MESSAGE, reason=FailureReason.INVALID_INPUT
            )

        response = await fetch_with_trailing_slash_retry(
            self._fetcher, normalize_article_url_for_fetch(url)
        )

        if not response.is_success:
            fallback = await self._try_fallback(url, source_feed_url)
            return fallback or _fetch_failure(response)

        page_url = response.final_url or url
        try:
            html = decode_document(response.body_bytes, response.encoding)
            content = await asyncio.to_thread(self._process_page, html, page_url)
        except Exception as e:  # noqa: BLE001
            self._log.warning("extraction_crashed", url=page_url, error=str(e))
            fallback = await self._try_fallback(url, source_feed_url)
            return fallback or ArticleContentError(
                error=UNEXPECTED_ERROR_MESSAGE,
                reason=FailureReason.FEED_FALLBACK_EXHAUSTED,
            )

        if content is None:
            fallback = await self._try_fallback(url, source_feed_url)
            return fallback or ArticleContentError(
                error=EXTRACTION_FAILED_MESSAGE,
                reason=FailureReason.EXTRACTION_FAILURE,
            )

        return content

    def _process_page(self, html: str, page_url: str) -> ArticleContent | None:
        """Extract and clean a fetched page; runs in a worker thread."""
        extracted = self._extractor.extract(html, page_url)
        if extracted is None or not extracted.content.strip():
            return None
        self._metrics.record_extraction()

        author_info = extract_author_info(parse_document(html), page_url, extracted.byline)
        processed = postprocess_article_html(
            extracted.content, page_url, extracted.title or None
        )
        if not processed.content.strip():
            return None

        authors = merge_author_profiles(author_info.authors, processed.byline_authors)
        author_name = (
            ", ".join(author.name for author in authors)
            if authors
            else author_info.author_name
        )

        return ArticleContent(
            title=extracted.title,
            content=processed.content,
            site_name=extracted.site_name or None,
            excerpt=normalize_whitespace(decode_html_entities(extracted.excerpt))
            if extracted.excerpt
            else None,
            reading_time_label=processed.reading_time_label,
            author_name=author_name,
            author_avatar_url=author_info.author_avatar_url,
            authors=authors,
            content_mode=ContentMode.FULL,
        )

    async def _try_fallback(
        self, url: str, source_feed_url: str | None
    ) -> ArticleContent | None:
        content = await self._fallback.resolve(url, source_feed_url)
        if content is not None:
            self._metrics.record_fallback()
        else:
            self._log.info("feed_fallback_exhausted", url=url)
        return content


def _fetch_failure(response: FetchResult) -> ArticleContentError:
    """Describe a failed page fetch for the reader."""
    error_class = response.error.error_class if response.error else FetchErrorClass.UNKNOWN

    if error_class == FetchErrorClass.NETWORK_TIMEOUT:
        return ArticleContentError(error=TIMEOUT_MESSAGE, reason=FailureReason.TIMEOUT)

    if error_class == FetchErrorClass.INVALID_URL:
        return ArticleContentError(
            error=INVALID_URL_MESSAGE, reason=FailureReason.INVALID_INPUT
        )

    if response.status_code > 0:
        return ArticleContentError(
            error=f"Failed to fetch article (HTTP {response.status_code})",
            reason=FailureReason.NETWORK_FAILURE,
        )

    if error_class in (FetchErrorClass.CONNECTION_ERROR, FetchErrorClass.SSL_ERROR):
        return ArticleContentError(
            error=UNEXPECTED_ERROR_MESSAGE, reason=FailureReason.NETWORK_FAILURE
        )

    return ArticleContentError(
        error=UNEXPECTED_ERROR_MESSAGE, reason=FailureReason.FEED_FALLBACK_EXHAUSTED
    )


def build_resolver(
    settings: AppSettings,
    sources: Sequence[FeedSource] = DEFAULT_FEED_SOURCES,
    article_transport: httpx.AsyncBaseTransport | None = None,
    feed_transport: httpx.AsyncBaseTransport | None = None,
    clock: Clock = time.monotonic,
    reader: FeedReader | None = None,
) -> ArticleContentResolver:
    """Wire a resolver from settings.

    Args:
        settings: Application settings.
        sources: Sources consulted by the feed fallback.
        article_transport: Optional transport for article fetches (tests).
        feed_transport: Optional transport for feed fetches (tests).
        clock: Time source for both caches.
        reader: Feed reader to share with a collector; built if omitted.

    Returns:
        A ready ArticleContentResolver.
    """
    article_fetcher = HttpFetcher(
        FetchConfig(
            user_agent=settings.article_user_agent,
            timeout_seconds=settings.article_timeout_seconds,
            accept="text/html",
            verify_tls=True,
        ),
        transport=article_transport,
    )
    feed_reader = reader or build_feed_reader(settings, transport=feed_transport, clock=clock)

    return ArticleContentResolver(
        fetcher=article_fetcher,
        extractor=ReadabilityExtractor(),
        fallback=FeedFallback(feed_reader, sources),
        success_ttl_seconds=settings.article_cache_ttl_seconds,
        error_ttl_seconds=settings.article_error_cache_ttl_seconds,
        max_entries=settings.article_cache_max_entries,
        clock=clock,
    )
