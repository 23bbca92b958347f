"""RSS/Atom feed collector producing ranked Articles per source."""

import asyncio
import re
from collections.abc import Sequence
from datetime import UTC, datetime

import structlog

from devfeed.collectors.youtube import (
    YouTubeFeedResolver,
    is_youtube_feed_url,
    is_youtube_url,
    should_keep_item,
)
from devfeed.config.schemas.sources import FeedSource
from devfeed.content.feeds import FeedItem, FeedReader, FeedReadError
from devfeed.content.text import (
    decode_html_entities,
    extract_feed_author_name,
    extract_feed_read_time_label,
    normalize_whitespace,
)
from devfeed.content.urls import host_of
from devfeed.data_model.article import Article, FeedFetchResult
from devfeed.ranker import FEED_LOOKBACK_DAYS, rank_articles
from devfeed.ranker.dates import age_in_days


logger = structlog.get_logger()

# Maximum items kept per source before ranking
MAX_ITEMS_PER_SOURCE = 30

UNTITLED = "Untitled"
EPOCH_ISO = "1970-01-01T00:00:00+00:00"

# A leading paragraph made of two or more LinkedIn profile links
_LEADING_LINKEDIN_AUTHORS = re.compile(
    r"^\s*<p>\s*"
    r"(?:<a[^>]*href=[\"'][^\"']*linkedin\.com/in/[^\"']*[\"'][^>]*>[\s\S]*?</a>\s*[,\s]*){2,}"
    r"[\s\S]*?</p>",
    re.IGNORECASE,
)
_TAG = re.compile(r"<[^>]+>")


def excerpt_from_raw_content(raw_content: str) -> str:
    """Plain-text excerpt without a leading LinkedIn author paragraph."""
    if not raw_content:
        return ""
    without_authors = _LEADING_LINKEDIN_AUTHORS.sub("", raw_content, count=1)
    return normalize_whitespace(decode_html_entities(_TAG.sub(" ", without_authors)))


def openai_author_fallback(source: FeedSource) -> str | None:
    host = host_of(source.website)
    if host and (host == "openai.com" or host.endswith(".openai.com")):
        return "OpenAI"
    return None


def matches_category_filter(item: FeedItem, source: FeedSource) -> bool:
    """Keep items in one of the source's include categories, if it has any."""
    allowed = {c.strip().lower() for c in source.include_categories if c.strip()}
    if not allowed:
        return True
    return any(c.strip().lower() in allowed for c in item.categories)


def normalize_article(item: FeedItem, source: FeedSource, feed_url: str) -> Article:
    """Map a feed item onto an Article.

    Args:
        item: Parsed feed item.
        source: Source the item came from.
        feed_url: Feed URL the item was read from.

    Returns:
        Normalized Article.
    """
    author_name = extract_feed_author_name(item.fields) or openai_author_fallback(source)
    title = decode_html_entities(item.title.strip() or UNTITLED).strip() or UNTITLED

    return Article(
        id=f"{source.id}::{item.guid or item.link or item.title}",
        title=title,
        source_id=source.id,
        source_name=source.name,
        source_color=source.color,
        source_feed_url=feed_url,
        link=item.link or source.website,
        published_at=item.published_at or EPOCH_ISO,
        excerpt=excerpt_from_raw_content(item.content or item.summary or item.content_snippet),
        categories=item.categories,
        author_name=author_name,
        reading_time_label=extract_feed_read_time_label(item.fields),
    )


def is_within_fetch_window(
    published_at: str,
    now: datetime,
    window_days: float = FEED_LOOKBACK_DAYS,
) -> bool:
    age_days = age_in_days(published_at, now)
    return age_days is not None and 0 <= age_days <= window_days


class FeedCollector:
    """Collects articles from configured feed sources.

    Feeds are read through a FeedReader, so a collection also warms the
    parse cache used by the article content fallback.
    """

    def __init__(
        self,
        reader: FeedReader,
        now: datetime | None = None,
        lookback_cap_days: float = FEED_LOOKBACK_DAYS,
        youtube: YouTubeFeedResolver | None = None,
    ) -> None:
        """Initialize the collector.

        Args:
            reader: Feed reader used to fetch and parse feeds.
            now: Reference time for the fetch window and ranking.
            lookback_cap_days: Fetch window and global lookback cap.
            youtube: Channel feed resolver; defaults to one sharing the
                reader's fetcher.
        """
        self._reader = reader
        self._youtube = youtube or YouTubeFeedResolver(reader.fetcher)
        self._now = now
        self._lookback_cap_days = lookback_cap_days
        self._log = logger.bind(component="collector", method="rss")

    def _current_time(self) -> datetime:
        return self._now or datetime.now(UTC)

    async def fetch_source(self, source: FeedSource) -> FeedFetchResult:
        """Fetch, normalize and rank one source's articles.

        Args:
            source: Source configuration.

        Returns:
            FeedFetchResult; a failure is reported in ``error``.
        """
        log = self._log.bind(source_id=source.id)
        try:
            feed_url = await self._resolve_feed_url(source)
            feed = await self._reader.parse(feed_url)
        except FeedReadError as e:
            log.warning("source_fetch_failed", **e.to_dict())
            return FeedFetchResult(source_id=source.id, error=f"Failed to fetch {source.name}")
        except Exception as e:  # noqa: BLE001
            log.warning("source_fetch_failed", error=str(e), error_type=type(e).__name__)
            return FeedFetchResult(source_id=source.id, error=f"Failed to fetch {source.name}")

        now = self._current_time()
        articles = [
            normalize_article(item, source, feed_url)
            for item in feed.items
            if matches_category_filter(item, source) and should_keep_item(item, source)
        ]
        in_window = [
            article
            for article in articles
            if is_within_fetch_window(article.published_at, now, self._lookback_cap_days)
        ][:MAX_ITEMS_PER_SOURCE]

        ranked = rank_articles(
            in_window,
            [source],
            now=now,
            lookback_cap_days=self._lookback_cap_days,
        )

        log.info(
            "source_collected",
            items_parsed=len(feed.items),
            items_in_window=len(in_window),
            articles=len(ranked),
        )
        return FeedFetchResult(source_id=source.id, articles=tuple(ranked))

    async def _resolve_feed_url(self, source: FeedSource) -> str:
        if is_youtube_url(source.feed_url) and not is_youtube_feed_url(source.feed_url):
            return await self._youtube.resolve(source.feed_url)
        return source.feed_url

    async def fetch_all(self, sources: Sequence[FeedSource]) -> list[Article]:
        """Collect every source concurrently and rank the union.

        Failed sources contribute nothing.

        Args:
            sources: Source configurations.

        Returns:
            Ranked articles across all sources.
        """
        results = await asyncio.gather(
            *(self.fetch_source(source) for source in sources),
            return_exceptions=True,
        )

        articles: list[Article] = []
        failed = 0
        for result in results:
            if isinstance(result, BaseException):
                failed += 1
                self._log.warning("source_task_failed", error=str(result))
                continue
            if result.error:
                failed += 1
            articles.extend(result.articles)

        ranked = rank_articles(
            articles,
            sources,
            now=self._current_time(),
            lookback_cap_days=self._lookback_cap_days,
        )
        self._log.info(
            "collection_complete",
            sources=len(sources),
            sources_failed=failed,
            articles=len(ranked),
        )
        return ranked
