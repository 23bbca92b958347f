"""Unit tests for the article content resolver."""

import asyncio
import html
import time
from collections.abc import Generator, Sequence

import httpx
import pytest

from devfeed.config.schemas import FeedSource
from devfeed.content.metrics import ContentMetrics
from devfeed.content.models import ArticleContent, ArticleContentError, ContentMode, FailureReason
from devfeed.content.resolver import (
    EXTRACTION_FAILED_MESSAGE,
    INVALID_URL_MESSAGE,
    TIMEOUT_MESSAGE,
    ArticleContentResolver,
    build_resolver,
)
from devfeed.fetch import FetchMetrics
from devfeed.settings import AppSettings
from tests.helpers.factories import make_source
from tests.helpers.http import RSS_HEADERS, RouteTransport, html_page, rss_feed, trickle_response
from tests.helpers.time import ManualClock


ARTICLE_URL = "https://blog.example.com/posts/postgres"
FEED_URL = "https://blog.example.com/feed.xml"

ARTICLE_BODY = (
    "<p>Our primary database cluster had grown to hold several terabytes of data, "
    "and routine maintenance windows were becoming longer every quarter.</p>"
    "<p>We evaluated logical replication, sharding by tenant, and a move to a new "
    "storage engine, measuring write amplification and tail latency for each.</p>"
    "<p>In the end we chose tenant sharding, which cut our largest table by a factor "
    "of twenty and brought vacuum times back under an hour.</p>"
)


@pytest.fixture(autouse=True)
def reset_metrics() -> Generator[None]:
    """Reset singletons before and after each test."""
    ContentMetrics.reset()
    FetchMetrics.reset()
    yield
    ContentMetrics.reset()
    FetchMetrics.reset()


def _resolver(
    article_transport: httpx.AsyncBaseTransport,
    feed_transport: httpx.AsyncBaseTransport | None = None,
    sources: Sequence[FeedSource] = (),
    clock: ManualClock | None = None,
    settings: AppSettings | None = None,
) -> ArticleContentResolver:
    return build_resolver(
        settings or AppSettings(),
        sources=sources,
        article_transport=article_transport,
        feed_transport=feed_transport or RouteTransport(),
        clock=clock or ManualClock(),
    )


class TestResolveSuccess:
    """Tests for successful page extraction."""

    def test_extracts_article(self) -> None:
        """Test a full page resolution."""
        transport = RouteTransport(
            {ARTICLE_URL: (200, html_page("Sharding Postgres", ARTICLE_BODY))}
        )

        result = asyncio.run(_resolver(transport).resolve(ARTICLE_URL))

        assert isinstance(result, ArticleContent)
        assert result.title == "Sharding Postgres"
        assert result.site_name == "Example Engineering"
        assert result.excerpt == "A short description of the post."
        assert result.content_mode == ContentMode.FULL
        assert "tenant sharding" in result.content
        assert "Copyright Example" not in result.content
        assert result.reading_time_label is None

    def test_success_is_cached(self) -> None:
        """Test that a second resolve is served from the cache."""
        transport = RouteTransport(
            {ARTICLE_URL: (200, html_page("Sharding Postgres", ARTICLE_BODY))}
        )
        resolver = _resolver(transport)

        first = asyncio.run(resolver.resolve(ARTICLE_URL))
        second = asyncio.run(resolver.resolve(ARTICLE_URL + "/"))

        assert second == first
        assert transport.count(ARTICLE_URL) == 1
        assert resolver.get_cached(ARTICLE_URL) == first
        assert ContentMetrics.get_instance().article_cache_hits_total == 1

    def test_meta_charset_page_decoded(self) -> None:
        """Test that a Latin-1 page declared only by meta charset keeps its accents."""
        page = html_page(
            "Café internals", ARTICLE_BODY + "<p>Naïve café crème brûlée benchmarks.</p>"
        ).replace("<head>", '<head><meta charset="iso-8859-1">')
        transport = RouteTransport(
            {
                ARTICLE_URL: lambda request: httpx.Response(
                    200, content=page.encode("latin-1"), headers={"content-type": "text/html"}
                )
            }
        )

        result = asyncio.run(_resolver(transport).resolve(ARTICLE_URL))

        assert isinstance(result, ArticleContent)
        assert result.title == "Café internals"
        assert "Naïve café crème brûlée" in html.unescape(result.content)


class TestResolveFailures:
    """Tests for failure results."""

    def test_invalid_url(self) -> None:
        """Test that malformed URLs fail without fetching."""
        transport = RouteTransport()

        result = asyncio.run(_resolver(transport).resolve("not a url"))

        assert isinstance(result, ArticleContentError)
        assert result.error == INVALID_URL_MESSAGE
        assert result.reason == FailureReason.INVALID_INPUT
        assert transport.requests == []

    def test_http_error_without_fallback(self) -> None:
        """Test the message for an HTTP failure with no feed match."""
        transport = RouteTransport({ARTICLE_URL: (500, "boom")})

        result = asyncio.run(_resolver(transport).resolve(ARTICLE_URL))

        assert isinstance(result, ArticleContentError)
        assert result.error == "Failed to fetch article (HTTP 500)"
        assert result.reason == FailureReason.NETWORK_FAILURE

    def test_timeout(self) -> None:
        """Test the message for a timed out fetch."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        result = asyncio.run(_resolver(httpx.MockTransport(handler)).resolve(ARTICLE_URL))

        assert isinstance(result, ArticleContentError)
        assert result.error == TIMEOUT_MESSAGE
        assert result.reason == FailureReason.TIMEOUT

    def test_slow_page_bounded_by_article_timeout(self) -> None:
        """Test that a page trickling in past the article timeout fails as TIMEOUT."""
        transport = RouteTransport({ARTICLE_URL: trickle_response})
        resolver = _resolver(transport, settings=AppSettings(article_timeout_seconds=0.5))

        started = time.monotonic()
        result = asyncio.run(resolver.resolve(ARTICLE_URL))
        elapsed = time.monotonic() - started

        assert elapsed < 2.0
        assert isinstance(result, ArticleContentError)
        assert result.error == TIMEOUT_MESSAGE
        assert result.reason == FailureReason.TIMEOUT
        assert transport.count(ARTICLE_URL + "/") == 0

    def test_extraction_failure(self) -> None:
        """Test a page without readable content."""
        transport = RouteTransport(
            {ARTICLE_URL: (200, "<html><body><p>Hi</p></body></html>")}
        )

        result = asyncio.run(_resolver(transport).resolve(ARTICLE_URL))

        assert isinstance(result, ArticleContentError)
        assert result.error == EXTRACTION_FAILED_MESSAGE
        assert result.reason == FailureReason.EXTRACTION_FAILURE

    def test_failure_counted_by_reason(self) -> None:
        """Test that failures are recorded in metrics."""
        transport = RouteTransport({ARTICLE_URL: (404, "gone")})

        asyncio.run(_resolver(transport).resolve(ARTICLE_URL))

        assert ContentMetrics.get_instance().failures_total == {"network_failure": 1}


class TestResolveFallback:
    """Tests for the feed fallback path."""

    def test_http_failure_uses_feed_item(self) -> None:
        """Test that a failing page falls back to its feed entry."""
        article_transport = RouteTransport({ARTICLE_URL: (500, "boom")})
        feed_transport = RouteTransport(
            {
                FEED_URL: (
                    200,
                    rss_feed(
                        "Example Engineering",
                        [
                            {
                                "title": "Sharding Postgres",
                                "link": ARTICLE_URL,
                                "content:encoded": ARTICLE_BODY,
                            }
                        ],
                    ),
                    RSS_HEADERS,
                )
            }
        )
        resolver = _resolver(
            article_transport, feed_transport, sources=[make_source("blog")]
        )

        result = asyncio.run(resolver.resolve(ARTICLE_URL))

        assert isinstance(result, ArticleContent)
        assert result.content_mode == ContentMode.FULL
        assert result.site_name == "Example Engineering"
        assert "tenant sharding" in result.content
        assert ContentMetrics.get_instance().fallbacks_used_total == 1

    def test_source_feed_url_consulted_first(self) -> None:
        """Test that the originating feed is searched without a configured source."""
        mirror_feed = "https://feeds.example.org/postgres.xml"
        article_transport = RouteTransport({ARTICLE_URL: (503, "busy")})
        feed_transport = RouteTransport(
            {
                mirror_feed: (
                    200,
                    rss_feed(
                        "Mirror",
                        [
                            {
                                "title": "Sharding Postgres",
                                "link": ARTICLE_URL,
                                "description": "<p>A teaser paragraph.</p>",
                            }
                        ],
                    ),
                    RSS_HEADERS,
                )
            }
        )
        resolver = _resolver(article_transport, feed_transport)

        result = asyncio.run(resolver.resolve(ARTICLE_URL, mirror_feed))

        assert isinstance(result, ArticleContent)
        assert result.content_mode == ContentMode.SUMMARY


class TestResolveCaching:
    """Tests for TTLs and coalescing."""

    def test_error_ttl_shorter_than_success(self) -> None:
        """Test that failures expire after 30 seconds."""
        clock = ManualClock()
        transport = RouteTransport({ARTICLE_URL: (500, "boom")})
        resolver = _resolver(transport, clock=clock)

        asyncio.run(resolver.resolve(ARTICLE_URL))
        clock.advance(29)
        asyncio.run(resolver.resolve(ARTICLE_URL))
        assert transport.count(ARTICLE_URL) == 1

        clock.advance(1)
        asyncio.run(resolver.resolve(ARTICLE_URL))
        assert transport.count(ARTICLE_URL) == 2

    def test_success_ttl(self) -> None:
        """Test that successes live for five minutes."""
        clock = ManualClock()
        transport = RouteTransport(
            {ARTICLE_URL: (200, html_page("Sharding Postgres", ARTICLE_BODY))}
        )
        resolver = _resolver(transport, clock=clock)

        asyncio.run(resolver.resolve(ARTICLE_URL))
        clock.advance(299)
        asyncio.run(resolver.resolve(ARTICLE_URL))
        assert transport.count(ARTICLE_URL) == 1

        clock.advance(1)
        asyncio.run(resolver.resolve(ARTICLE_URL))
        assert transport.count(ARTICLE_URL) == 2

    def test_concurrent_resolves_fetch_once(self) -> None:
        """Test that overlapping requests share one fetch."""
        transport = RouteTransport(
            {ARTICLE_URL: (200, html_page("Sharding Postgres", ARTICLE_BODY))}, delay=0.01
        )
        resolver = _resolver(transport)

        async def scenario() -> list:
            return await asyncio.gather(*(resolver.resolve(ARTICLE_URL) for _ in range(4)))

        results = asyncio.run(scenario())

        assert transport.count(ARTICLE_URL) == 1
        assert all(result == results[0] for result in results)
        assert ContentMetrics.get_instance().coalesced_waits_total == 3

    def test_feed_pairing_separates_cache_entries(self) -> None:
        """Test that a different source feed is a different entry."""
        transport = RouteTransport(
            {ARTICLE_URL: (200, html_page("Sharding Postgres", ARTICLE_BODY))}
        )
        resolver = _resolver(transport)

        asyncio.run(resolver.resolve(ARTICLE_URL))
        asyncio.run(resolver.resolve(ARTICLE_URL, "https://other.example.com/feed"))

        assert transport.count(ARTICLE_URL) == 2
