"""Unit tests for the RSS/Atom feed collector."""

import asyncio
from collections.abc import Generator
from datetime import timedelta
from email.utils import format_datetime

import pytest
import structlog

from devfeed.collectors.rss import (
    FeedCollector,
    excerpt_from_raw_content,
    is_within_fetch_window,
    matches_category_filter,
    normalize_article,
)
from devfeed.content.feeds import FeedItem, FeedReader
from devfeed.fetch import FetchConfig, FetchMetrics, HttpFetcher
from devfeed.ranker.metrics import RankerMetrics
from tests.helpers.factories import make_source
from tests.helpers.http import RSS_HEADERS, RouteTransport, rss_feed
from tests.helpers.time import FIXED_NOW, ManualClock, days_ago


FEED_URL = "https://blog.example.com/feed.xml"


@pytest.fixture(autouse=True)
def reset_metrics() -> Generator[None]:
    """Reset singletons before and after each test."""
    FetchMetrics.reset()
    RankerMetrics.reset()
    yield
    FetchMetrics.reset()
    RankerMetrics.reset()


def _pub_date(age_days: float) -> str:
    return format_datetime(FIXED_NOW - timedelta(days=age_days), usegmt=True)


def _item(slug: str, age_days: float, **extra: str) -> dict[str, str]:
    item = {
        "title": f"Post {slug}",
        "link": f"https://blog.example.com/posts/{slug}",
        "guid": f"https://blog.example.com/posts/{slug}",
        "pubDate": _pub_date(age_days),
        "description": f"<p>About {slug}.</p>",
    }
    item.update(extra)
    return item


def _collector(transport: RouteTransport) -> FeedCollector:
    fetcher = HttpFetcher(FetchConfig(), transport=transport, component="feeds")
    return FeedCollector(FeedReader(fetcher, clock=ManualClock()), now=FIXED_NOW)


class TestExcerpt:
    """Tests for excerpt_from_raw_content."""

    def test_strips_markup_and_entities(self) -> None:
        """Test plain-text conversion."""
        assert excerpt_from_raw_content("<p>Fish &amp;\n <b>chips</b></p>") == "Fish & chips"

    def test_drops_leading_linkedin_authors(self) -> None:
        """Test that a leading paragraph of author links is removed."""
        raw = (
            '<p><a href="https://www.linkedin.com/in/jane">Jane</a>, '
            '<a href="https://linkedin.com/in/john">John</a></p><p>Body text.</p>'
        )

        assert excerpt_from_raw_content(raw) == "Body text."

    def test_empty(self) -> None:
        """Test empty content."""
        assert excerpt_from_raw_content("") == ""


class TestNormalizeArticle:
    """Tests for normalize_article."""

    def test_maps_fields(self) -> None:
        """Test the mapping from feed item to article."""
        item = FeedItem(
            title="Scaling &amp; Sharding",
            link="https://blog.example.com/posts/1",
            guid="post-1",
            published_at=days_ago(1),
            categories=("databases",),
            content="<p>Full body.</p>",
            summary="Teaser",
            fields={"author": "Jane Doe", "readingTime": 6},
        )

        article = normalize_article(item, make_source(), FEED_URL)

        assert article.id == "blog::post-1"
        assert article.title == "Scaling & Sharding"
        assert article.source_feed_url == FEED_URL
        assert article.excerpt == "Full body."
        assert article.author_name == "Jane Doe"
        assert article.reading_time_label == "6 min read"
        assert article.categories == ("databases",)

    def test_defaults_for_missing_fields(self) -> None:
        """Test the untitled, website-link and epoch fallbacks."""
        article = normalize_article(FeedItem(), make_source(), FEED_URL)

        assert article.title == "Untitled"
        assert article.link == "https://blog.example.com"
        assert article.published_at == "1970-01-01T00:00:00+00:00"

    def test_openai_author_fallback(self) -> None:
        """Test the publisher author fallback for OpenAI sources."""
        source = make_source("openai", website="https://openai.com/news")

        item = FeedItem(title="x", link="https://openai.com/x")

        article = normalize_article(item, source, FEED_URL)

        assert article.author_name == "OpenAI"


class TestFilters:
    """Tests for the category filter and fetch window."""

    def test_category_filter(self) -> None:
        """Test include categories, ignoring case and whitespace."""
        source = make_source(include_categories=(" Engineering ",))

        assert matches_category_filter(FeedItem(categories=("engineering",)), source)
        assert not matches_category_filter(FeedItem(categories=("news",)), source)
        assert matches_category_filter(FeedItem(), make_source())

    @pytest.mark.parametrize(
        ("age_days", "expected"),
        [(0, True), (6.9, True), (7.1, False), (-1, False)],
    )
    def test_fetch_window(self, age_days: float, expected: bool) -> None:
        """Test the seven-day window and future dates."""
        assert is_within_fetch_window(days_ago(age_days), FIXED_NOW) is expected

    def test_fetch_window_bad_date(self) -> None:
        """Test that unparseable dates are outside the window."""
        assert not is_within_fetch_window("soon", FIXED_NOW)


class TestFeedCollector:
    """Tests for FeedCollector."""

    def test_logs_as_collector_component(self) -> None:
        """Test that collector log events carry the collector component name."""
        context = structlog.get_context(_collector(RouteTransport())._log)

        assert context["component"] == "collector"
        assert context["method"] == "rss"

    def test_fetch_source_ranks_recent_items(self) -> None:
        """Test window filtering and newest-first order."""
        body = rss_feed(
            "Blog",
            [_item("old", 10), _item("a", 2), _item("b", 1), _item("future", -1)],
        )
        transport = RouteTransport({FEED_URL: (200, body, RSS_HEADERS)})

        result = asyncio.run(_collector(transport).fetch_source(make_source()))

        assert result.error is None
        assert [a.title for a in result.articles] == ["Post b", "Post a"]

    def test_fetch_source_failure(self) -> None:
        """Test that a failing feed is reported, not raised."""
        transport = RouteTransport({FEED_URL: (500, "boom")})

        result = asyncio.run(_collector(transport).fetch_source(make_source()))

        assert result.articles == ()
        assert result.error == "Failed to fetch Blog"

    def test_fetch_all_skips_failed_sources(self) -> None:
        """Test that one broken source does not block the rest."""
        good = rss_feed("Blog", [_item("a", 1)])
        transport = RouteTransport(
            {
                FEED_URL: (200, good, RSS_HEADERS),
                "https://broken.example.com/feed.xml": (503, "busy"),
            }
        )

        articles = asyncio.run(
            _collector(transport).fetch_all([make_source(), make_source("broken")])
        )

        assert [a.id for a in articles] == ["blog::https://blog.example.com/posts/a"]

    def test_fetch_all_merges_and_orders(self) -> None:
        """Test that articles from all sources are merged newest first."""
        transport = RouteTransport(
            {
                FEED_URL: (200, rss_feed("Blog", [_item("a", 3)]), RSS_HEADERS),
                "https://news.example.com/feed.xml": (
                    200,
                    rss_feed(
                        "News",
                        [
                            {
                                "title": "Release notes",
                                "link": "https://news.example.com/posts/r",
                                "pubDate": _pub_date(1),
                            }
                        ],
                    ),
                    RSS_HEADERS,
                ),
            }
        )

        articles = asyncio.run(
            _collector(transport).fetch_all([make_source(), make_source("news")])
        )

        assert [a.source_id for a in articles] == ["news", "blog"]
