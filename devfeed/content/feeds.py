"""Feed parsing with feedparser, cached and coalesced per feed URL."""

import calendar
import time
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

import feedparser  # type: ignore[import-untyped]
import httpx
import structlog
from dateutil import parser as date_parser
from pydantic import BaseModel, ConfigDict, Field

from devfeed.cache import Clock, InFlightRegistry, TimedCache
from devfeed.content.metrics import ContentMetrics
from devfeed.content.models import ContentMode
from devfeed.content.text import decode_html_entities, html_to_text, normalize_whitespace
from devfeed.fetch import FetchConfig, FetchErrorClass, HttpFetcher
from devfeed.fetch.constants import FEED_ACCEPT
from devfeed.settings import AppSettings


logger = structlog.get_logger()

# An encoded body must beat the plain snippet by this much to count as full
FULL_CONTENT_MIN_EXTRA_CHARS = 200


class FeedReadError(Exception):
    """Raised when a feed cannot be fetched or parsed."""

    def __init__(
        self,
        feed_url: str,
        message: str,
        error_class: FetchErrorClass | None = None,
    ) -> None:
        """Initialize the feed read error.

        Args:
            feed_url: Feed that failed.
            message: Human-readable error message.
            error_class: Fetch failure classification, if the fetch failed.
        """
        super().__init__(message)
        self.feed_url = feed_url
        self.message = message
        self.error_class = error_class

    def to_dict(self) -> dict[str, str | None]:
        """Convert error to dictionary for logging.

        Returns:
            Dictionary representation of the error.
        """
        return {
            "feed_url": self.feed_url,
            "message": self.message,
            "error_class": self.error_class.value if self.error_class else None,
        }


class FeedItem(BaseModel):
    """One parsed feed entry.

    ``fields`` keeps every field feedparser produced so that author and
    reading-time hints can be read from publisher-specific elements.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    title: str = ""
    link: str = ""
    guid: str = ""
    published_at: str | None = None
    categories: tuple[str, ...] = ()
    content_encoded: str = ""
    content: str = ""
    summary: str = ""
    content_snippet: str = ""
    fields: dict[str, Any] = Field(default_factory=dict)


class ParsedFeed(BaseModel):
    """A parsed RSS/Atom feed."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    url: str
    title: str = ""
    link: str = ""
    items: tuple[FeedItem, ...] = ()


def _struct_to_datetime(value: time.struct_time | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromtimestamp(calendar.timegm(value), tz=UTC)
    except (ValueError, OverflowError, TypeError):
        return None


def extract_entry_date(entry: Mapping[str, Any]) -> str | None:
    """Extract an entry's publication date as ISO-8601 text.

    Parsed dates are preferred; failing that, the raw date text is returned
    unchanged so callers can decide what to do with it.

    Args:
        entry: Feedparser entry.

    Returns:
        ISO-8601 timestamp, raw date text, or None.
    """
    for key in ("published_parsed", "updated_parsed"):
        parsed = _struct_to_datetime(entry.get(key))
        if parsed is not None:
            return parsed.isoformat()

    for key in ("published", "updated"):
        raw = entry.get(key)
        if not raw:
            continue
        try:
            parsed = date_parser.parse(raw)
        except (ValueError, TypeError, OverflowError):
            return str(raw)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=UTC)
        return parsed.astimezone(UTC).isoformat()

    return None


def _entry_link(entry: Mapping[str, Any]) -> str:
    link = entry.get("link", "")
    if link:
        return str(link)

    links = entry.get("links", [])
    for link_entry in links:
        if link_entry.get("rel") == "alternate" and link_entry.get("href"):
            return str(link_entry["href"])
    if links:
        return str(links[0].get("href", ""))
    return ""


def feed_item_from_entry(entry: Mapping[str, Any], atom: bool = False) -> FeedItem:
    """Map a feedparser entry onto a FeedItem.

    feedparser files both RSS ``description`` and Atom ``summary`` under
    ``summary``, and both ``content:encoded`` and Atom ``content`` under
    ``content``. For RSS the description is the item content and
    ``content:encoded`` the encoded body. For Atom the ``content`` element
    is the item content and ``summary`` stays a separate summary.
    """
    content_parts = [
        part.get("value", "") for part in entry.get("content", []) if part.get("value")
    ]
    described = str(entry.get("summary", "") or entry.get("description", "") or "")
    if atom:
        encoded_parts: list[str] = []
        content = "\n".join(content_parts)
        summary = described
    else:
        encoded_parts = content_parts
        content = described
        summary = ""
    categories = tuple(
        term
        for term in (str(tag.get("term", "")).strip() for tag in entry.get("tags", []))
        if term
    )

    return FeedItem(
        title=normalize_whitespace(decode_html_entities(str(entry.get("title", "")))),
        link=_entry_link(entry).strip(),
        guid=str(entry.get("id", "") or "").strip(),
        published_at=extract_entry_date(entry),
        categories=categories,
        content_encoded="\n".join(encoded_parts),
        content=content,
        summary=summary,
        content_snippet=html_to_text(content),
        fields=dict(entry),
    )


def parse_feed(body: bytes | str, feed_url: str) -> ParsedFeed:
    """Parse a feed document.

    Args:
        body: Raw feed bytes.
        feed_url: Feed URL, for error reporting.

    Returns:
        ParsedFeed.

    Raises:
        FeedReadError: If the document is not a usable feed.
    """
    parsed = feedparser.parse(body)

    if parsed.bozo and not parsed.entries and not parsed.feed.get("title"):
        message = f"Not a valid feed: {parsed.get('bozo_exception')}"
        raise FeedReadError(feed_url, message)

    if parsed.bozo:
        logger.warning(
            "feed_parse_warning",
            component="feeds",
            feed_url=feed_url,
            bozo_exception=str(parsed.get("bozo_exception")),
        )

    atom = str(parsed.get("version", "")).startswith("atom")
    return ParsedFeed(
        url=feed_url,
        title=normalize_whitespace(str(parsed.feed.get("title", ""))),
        link=str(parsed.feed.get("link", "")),
        items=tuple(feed_item_from_entry(entry, atom=atom) for entry in parsed.entries),
    )


def resolve_feed_item_content(item: FeedItem) -> tuple[str, str | None, ContentMode]:
    """Pick a feed item's body, excerpt and content mode.

    The body is the first non-empty of the encoded content, the content,
    the summary and the snippet. The item counts as full content when it
    has encoded content, or content without a snippet, or content clearly
    longer than its snippet.

    Args:
        item: Feed item.

    Returns:
        Tuple of (raw body, plain-text excerpt, content mode).
    """
    encoded = item.content_encoded.strip()
    content = item.content.strip()
    summary = item.summary.strip()
    snippet = item.content_snippet.strip()

    raw_content = encoded or content or summary or snippet

    excerpt_raw = snippet or summary
    excerpt = html_to_text(excerpt_raw) if excerpt_raw else None

    is_full = bool(
        encoded
        or (content and not snippet)
        or (content and snippet and len(content) > len(snippet) + FULL_CONTENT_MIN_EXTRA_CHARS)
    )

    return raw_content, excerpt or None, ContentMode.FULL if is_full else ContentMode.SUMMARY


class FeedReader:
    """Fetches and parses feeds through a TTL cache.

    Concurrent reads of the same feed share one fetch. Only successful
    parses are cached.
    """

    def __init__(
        self,
        fetcher: HttpFetcher,
        ttl_seconds: float = 300.0,
        max_entries: int = 20,
        clock: Clock = time.monotonic,
    ) -> None:
        """Initialize the feed reader.

        Args:
            fetcher: HTTP fetcher for feed documents.
            ttl_seconds: How long a parsed feed is reused.
            max_entries: Maximum number of feeds kept.
            clock: Time source for the cache.
        """
        self._fetcher = fetcher
        self._ttl_seconds = ttl_seconds
        self._cache: TimedCache[ParsedFeed] = TimedCache(max_entries, clock=clock)
        self._inflight: InFlightRegistry[ParsedFeed] = InFlightRegistry()
        self._metrics = ContentMetrics.get_instance()
        self._log = logger.bind(component="feeds")

    @property
    def fetcher(self) -> HttpFetcher:
        """Fetcher used for feed documents."""
        return self._fetcher

    async def parse(self, feed_url: str) -> ParsedFeed:
        """Fetch and parse a feed.

        Args:
            feed_url: Feed URL.

        Returns:
            ParsedFeed.

        Raises:
            FeedReadError: If the feed cannot be fetched or parsed.
        """
        cached = self._cache.get(feed_url)
        if cached is not None:
            self._metrics.record_feed_cache_hit()
            return cached

        if self._inflight.is_pending(feed_url):
            self._metrics.record_coalesced_wait()

        return await self._inflight.run(feed_url, lambda: self._load(feed_url))

    async def _load(self, feed_url: str) -> ParsedFeed:
        result = await self._fetcher.fetch(feed_url)
        if not result.is_success:
            error_class = result.error.error_class if result.error else None
            message = result.error.message if result.error else "Feed fetch failed"
            raise FeedReadError(feed_url, message, error_class)

        feed = parse_feed(result.body_bytes, feed_url)
        self._cache.set(feed_url, feed, self._ttl_seconds)
        self._log.info("feed_parsed", feed_url=feed_url, items=len(feed.items))
        return feed


def build_feed_reader(
    settings: AppSettings,
    transport: httpx.AsyncBaseTransport | None = None,
    clock: Clock = time.monotonic,
) -> FeedReader:
    """Wire a FeedReader with the feed fetch settings.

    Args:
        settings: Application settings.
        transport: Optional transport for feed fetches (tests).
        clock: Time source for the parse cache.

    Returns:
        A ready FeedReader.
    """
    fetcher = HttpFetcher(
        FetchConfig(
            user_agent=settings.feed_user_agent,
            timeout_seconds=settings.feed_timeout_seconds,
            accept=FEED_ACCEPT,
            verify_tls=settings.feed_verify_tls,
        ),
        transport=transport,
        component="feeds",
    )
    return FeedReader(
        fetcher,
        ttl_seconds=settings.feed_cache_ttl_seconds,
        max_entries=settings.feed_cache_max_entries,
        clock=clock,
    )
