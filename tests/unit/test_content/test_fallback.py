"""Unit tests for the feed-content fallback."""

import asyncio
from collections.abc import Generator

import pytest

from devfeed.content.fallback import FeedFallback, feed_candidates, find_matching_item
from devfeed.content.feeds import FeedItem, FeedReader, ParsedFeed
from devfeed.content.metrics import ContentMetrics
from devfeed.content.models import ContentMode
from devfeed.fetch import FetchConfig, FetchMetrics, HttpFetcher
from tests.helpers.factories import make_source
from tests.helpers.http import RSS_HEADERS, RouteTransport, rss_feed
from tests.helpers.time import ManualClock


ARTICLE_URL = "https://blog.example.com/posts/postgres"
FEED_URL = "https://blog.example.com/feed.xml"


@pytest.fixture(autouse=True)
def reset_metrics() -> Generator[None]:
    """Reset singletons before and after each test."""
    ContentMetrics.reset()
    FetchMetrics.reset()
    yield
    ContentMetrics.reset()
    FetchMetrics.reset()


def _fallback(transport: RouteTransport, sources: list | None = None) -> FeedFallback:
    fetcher = HttpFetcher(FetchConfig(), transport=transport, component="feeds")
    reader = FeedReader(fetcher, clock=ManualClock())
    return FeedFallback(reader, sources if sources is not None else [make_source("blog")])


class TestFeedCandidates:
    """Tests for feed_candidates."""

    def test_source_feed_first_then_domain_matches(self) -> None:
        """Test candidate order and de-duplication."""
        sources = [
            make_source("blog"),
            make_source("other"),
        ]

        candidates = feed_candidates(ARTICLE_URL, "https://mirror.example.org/rss", sources)

        assert candidates == ["https://mirror.example.org/rss", FEED_URL]

    def test_source_feed_not_repeated(self) -> None:
        """Test that a matching source feed is listed once."""
        candidates = feed_candidates(ARTICLE_URL, FEED_URL, [make_source("blog")])

        assert candidates == [FEED_URL]

    def test_subdomain_articles_match_parent_site(self) -> None:
        """Test that subdomains count as the same site."""
        source = make_source("acme", website="https://acme.com", feed_url="https://acme.com/rss")

        assert feed_candidates("https://eng.acme.com/post", None, [source]) == [
            "https://acme.com/rss"
        ]

    def test_no_candidates(self) -> None:
        """Test an unrelated article without a source feed."""
        assert feed_candidates("https://unrelated.net/a", None, [make_source("blog")]) == []


class TestFindMatchingItem:
    """Tests for find_matching_item."""

    def test_matches_normalized_link(self) -> None:
        """Test that trailing slashes and tracking params are ignored."""
        feed = ParsedFeed(
            url=FEED_URL,
            items=(FeedItem(link=ARTICLE_URL + "/?utm_source=rss"),),
        )

        assert find_matching_item(feed, ARTICLE_URL) is feed.items[0]

    def test_matches_guid(self) -> None:
        """Test that a permalink guid matches."""
        feed = ParsedFeed(
            url=FEED_URL,
            items=(FeedItem(link="https://feedproxy.example/x", guid=ARTICLE_URL),),
        )

        assert find_matching_item(feed, ARTICLE_URL) is feed.items[0]

    def test_no_match(self) -> None:
        """Test that other articles do not match."""
        feed = ParsedFeed(url=FEED_URL, items=(FeedItem(link="https://x.com/a"),))

        assert find_matching_item(feed, ARTICLE_URL) is None


class TestFeedFallback:
    """Tests for FeedFallback.resolve."""

    def test_builds_content_from_matching_item(self) -> None:
        """Test that a matching item becomes article content."""
        body = rss_feed(
            "Example Engineering",
            [
                {
                    "title": "Scaling Postgres",
                    "link": ARTICLE_URL,
                    "description": "<p>We moved our fleet to a new storage engine.</p>",
                }
            ],
        )
        transport = RouteTransport({FEED_URL: (200, body, RSS_HEADERS)})

        content = asyncio.run(_fallback(transport).resolve(ARTICLE_URL))

        assert content is not None
        assert content.title == "Scaling Postgres"
        assert content.site_name == "Example Engineering"
        assert content.content_mode == ContentMode.SUMMARY
        assert "new storage engine" in content.content

    def test_encoded_content_is_full(self) -> None:
        """Test that full feed bodies are marked full."""
        body = rss_feed(
            "Example Engineering",
            [
                {
                    "title": "Scaling Postgres",
                    "link": ARTICLE_URL,
                    "description": "Teaser",
                    "content:encoded": "<p>The whole article body lives here.</p>",
                }
            ],
        )
        transport = RouteTransport({FEED_URL: (200, body, RSS_HEADERS)})

        content = asyncio.run(_fallback(transport).resolve(ARTICLE_URL))

        assert content is not None
        assert content.content_mode == ContentMode.FULL
        assert "whole article body" in content.content

    def test_skips_failed_feed_and_tries_next(self) -> None:
        """Test that a broken candidate feed does not stop the search."""
        body = rss_feed(
            "Example Engineering",
            [{"title": "Scaling Postgres", "link": ARTICLE_URL, "description": "<p>Body.</p>"}],
        )
        transport = RouteTransport(
            {
                "https://mirror.example.org/rss": (500, "broken"),
                FEED_URL: (200, body, RSS_HEADERS),
            }
        )

        content = asyncio.run(
            _fallback(transport).resolve(ARTICLE_URL, "https://mirror.example.org/rss")
        )

        assert content is not None
        assert transport.count("https://mirror.example.org/rss") == 1

    def test_returns_none_without_match(self) -> None:
        """Test exhaustion when no feed has the article."""
        body = rss_feed("Example Engineering", [{"title": "Other", "link": "https://x.com/a"}])
        transport = RouteTransport({FEED_URL: (200, body, RSS_HEADERS)})

        assert asyncio.run(_fallback(transport).resolve(ARTICLE_URL)) is None

    def test_invalid_article_url(self) -> None:
        """Test that unparseable URLs are not looked up."""
        transport = RouteTransport()

        assert asyncio.run(_fallback(transport).resolve("not a url")) is None
        assert transport.requests == []
