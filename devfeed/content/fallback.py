"""Fallback to the article's embedded feed content."""

import asyncio
from collections.abc import Sequence

import structlog

from devfeed.config.schemas import FeedSource
from devfeed.content.authors import merge_author_profiles
from devfeed.content.feeds import (
    FeedItem,
    FeedReader,
    FeedReadError,
    ParsedFeed,
    resolve_feed_item_content,
)
from devfeed.content.models import ArticleContent
from devfeed.content.postprocess import postprocess_article_html
from devfeed.content.sanitize import to_html_content
from devfeed.content.text import extract_feed_author_name
from devfeed.content.urls import canonicalize_url, host_of, is_same_domain


logger = structlog.get_logger()


def feed_candidates(
    article_url: str,
    source_feed_url: str | None,
    sources: Sequence[FeedSource],
) -> list[str]:
    """List the feeds that may carry an article.

    The originating feed comes first, followed by every configured source
    whose website shares a domain with the article.

    Args:
        article_url: Article URL.
        source_feed_url: Feed the article came from, if known.
        sources: Configured sources.

    Returns:
        De-duplicated feed URLs in lookup order.
    """
    candidates: list[str] = []
    if source_feed_url:
        candidates.append(source_feed_url)

    article_host = host_of(article_url)
    if article_host:
        for source in sources:
            source_host = host_of(source.website)
            if (
                source_host
                and is_same_domain(article_host, source_host)
                and source.feed_url not in candidates
            ):
                candidates.append(source.feed_url)

    return candidates


def find_matching_item(feed: ParsedFeed, target: str) -> FeedItem | None:
    """Find the item whose link or guid normalizes to ``target``."""
    for item in feed.items:
        if canonicalize_url(item.link) == target:
            return item
        if item.guid and canonicalize_url(item.guid) == target:
            return item
    return None


class FeedFallback:
    """Builds article content from a matching feed item."""

    def __init__(self, reader: FeedReader, sources: Sequence[FeedSource]) -> None:
        """Initialize the fallback.

        Args:
            reader: Cached feed reader.
            sources: Configured sources, for domain matching.
        """
        self._reader = reader
        self._sources = tuple(sources)
        self._log = logger.bind(component="content")

    async def resolve(
        self,
        article_url: str,
        source_feed_url: str | None = None,
    ) -> ArticleContent | None:
        """Look the article up in candidate feeds.

        Args:
            article_url: Article URL.
            source_feed_url: Feed the article came from, if known.

        Returns:
            ArticleContent built from the first matching item with a body,
            or None when no candidate feed has one.
        """
        target = canonicalize_url(article_url)
        if target is None:
            return None

        for feed_url in feed_candidates(article_url, source_feed_url, self._sources):
            log = self._log.bind(feed_url=feed_url, url=article_url)
            try:
                feed = await self._reader.parse(feed_url)
                item = find_matching_item(feed, target)
                if item is None:
                    log.debug("feed_fallback_no_match")
                    continue

                content = await self._build_content(feed, item, article_url)
            except FeedReadError as e:
                log.warning("feed_fallback_failed", **e.to_dict())
                continue
            except Exception as e:  # noqa: BLE001
                log.warning("feed_fallback_failed", error=str(e))
                continue

            if content is not None:
                log.info("feed_fallback_matched", content_mode=content.content_mode.value)
                return content

        return None

    async def _build_content(
        self, feed: ParsedFeed, item: FeedItem, article_url: str
    ) -> ArticleContent | None:
        raw_content, excerpt, content_mode = resolve_feed_item_content(item)
        if not raw_content.strip():
            return None

        title = item.title.strip()
        processed = await asyncio.to_thread(
            postprocess_article_html,
            to_html_content(raw_content),
            article_url,
            title or None,
        )
        if not processed.content.strip():
            return None

        authors = merge_author_profiles(processed.byline_authors)
        author_name = (
            ", ".join(author.name for author in authors)
            if authors
            else extract_feed_author_name(item.fields)
        )

        return ArticleContent(
            title=title,
            content=processed.content,
            site_name=feed.title or None,
            excerpt=excerpt,
            reading_time_label=processed.reading_time_label,
            author_name=author_name,
            authors=authors,
            content_mode=content_mode,
        )
