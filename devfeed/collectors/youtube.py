"""YouTube channel feeds: feed URL resolution and shorts/live filtering."""

import re
from urllib.parse import parse_qs, quote, urlsplit, urlunsplit

import structlog

from devfeed.config.schemas.sources import FeedSource
from devfeed.content.dom import attr_text, decode_document, parse_document
from devfeed.content.feeds import FeedItem
from devfeed.content.urls import host_of
from devfeed.fetch import HttpFetcher
from devfeed.fetch.constants import DEFAULT_ACCEPT


logger = structlog.get_logger()

CHANNEL_FEED_PATH = "/feeds/videos.xml"
CHANNEL_FEED_TEMPLATE = "https://www.youtube.com/feeds/videos.xml?channel_id={channel_id}"

_CHANNEL_ID = re.compile(r"^UC[0-9A-Za-z_-]{22}$")
_CHANNEL_PATH = re.compile(r"^/channel/(UC[0-9A-Za-z_-]{22})$")

# Channel id markers in a channel page, strongest first
_PAGE_CHANNEL_ID_PATTERNS = (
    re.compile(r'"externalId":"(UC[0-9A-Za-z_-]{22})"'),
    re.compile(r"/channel/(UC[0-9A-Za-z_-]{22})"),
    re.compile(r'"channelId":"(UC[0-9A-Za-z_-]{22})"'),
)

# Channel page paths that only a page fetch can turn into a channel id
_PAGE_RESOLVABLE_PREFIXES = ("/@", "/c/", "/user/")

_LIVE_TITLE = re.compile(r"\b(?:live|premiere)\b")


def is_youtube_host(host: str | None) -> bool:
    if not host:
        return False
    return host == "youtube.com" or host.endswith(".youtube.com")


def is_youtube_url(url: str) -> bool:
    """Check whether a URL points at youtube.com or one of its subdomains."""
    return is_youtube_host(host_of(url))


def _trimmed_path(url: str) -> str:
    return urlsplit(url).path.rstrip("/")


def is_youtube_feed_url(url: str) -> bool:
    """Check whether a URL is a YouTube channel or playlist feed."""
    return is_youtube_url(url) and _trimmed_path(url) == CHANNEL_FEED_PATH


def is_valid_channel_id(channel_id: str) -> bool:
    return bool(_CHANNEL_ID.match(channel_id))


def build_channel_feed_url(channel_id: str) -> str:
    """Atom feed URL for a channel id."""
    return CHANNEL_FEED_TEMPLATE.format(channel_id=quote(channel_id, safe=""))


def channel_id_from_url(url: str) -> str | None:
    """Read a channel id straight from a URL (``?channel_id=`` or ``/channel/UC...``).

    Args:
        url: Any URL.

    Returns:
        The channel id, or None when the URL does not carry one.
    """
    if not is_youtube_url(url):
        return None

    parts = urlsplit(url)
    for value in parse_qs(parts.query).get("channel_id", []):
        if is_valid_channel_id(value):
            return value

    match = _CHANNEL_PATH.match(parts.path.rstrip("/"))
    return match.group(1) if match else None


def channel_id_from_html(html: str) -> str | None:
    """Find the channel id in a channel page.

    The canonical link is trusted first, then the ids embedded in the
    page's inline data.

    Args:
        html: Channel page HTML.

    Returns:
        The channel id, or None.
    """
    soup = parse_document(html)
    for link in soup.find_all("link", rel="canonical"):
        match = _CHANNEL_PATH.match(_trimmed_path(attr_text(link, "href")))
        if match and is_youtube_url(attr_text(link, "href")):
            return match.group(1)

    for pattern in _PAGE_CHANNEL_ID_PATTERNS:
        match = pattern.search(html)
        if match and is_valid_channel_id(match.group(1)):
            return match.group(1)
    return None


def is_youtube_source(source: FeedSource) -> bool:
    """A source is a YouTube source when flagged so or when it reads a YouTube feed."""
    return source.is_youtube or is_youtube_feed_url(source.feed_url)


def is_likely_short(link: str) -> bool:
    """Shorts are published under ``/shorts/``."""
    return is_youtube_url(link) and urlsplit(link).path.lower().startswith("/shorts/")


def is_likely_live_item(item: FeedItem) -> bool:
    """Guess whether a video entry is a live stream or a premiere."""
    title = item.title.lower()
    link = item.link.lower()
    text = f"{item.content_snippet} {item.summary}".lower()

    return (
        "/live/" in link
        or bool(_LIVE_TITLE.search(title))
        or "live stream" in text
        or "premiere" in text
    )


def should_keep_item(item: FeedItem, source: FeedSource) -> bool:
    """Apply a YouTube source's shorts and live settings to one entry.

    Entries of non-YouTube sources are always kept.
    """
    if not is_youtube_source(source):
        return True
    if not source.include_shorts and is_likely_short(item.link):
        return False
    if not source.include_live and is_likely_live_item(item):
        return False
    return True


class YouTubeFeedResolver:
    """Turns YouTube channel page URLs into channel feed URLs.

    ``/channel/UC...`` and ``?channel_id=`` URLs resolve without a request.
    Handle, ``/c/``, ``/user/`` and root pages are fetched and searched for
    the channel id. Anything unresolvable is returned unchanged, so the
    feed read that follows reports the failure.
    """

    def __init__(self, fetcher: HttpFetcher) -> None:
        """Initialize the resolver.

        Args:
            fetcher: HTTP fetcher for channel pages.
        """
        self._fetcher = fetcher
        self._log = logger.bind(component="collector", method="youtube")

    async def resolve(self, url: str) -> str:
        """Resolve a YouTube URL to its channel feed URL.

        Args:
            url: Configured source URL.

        Returns:
            The channel feed URL, or ``url`` when it cannot be resolved.
        """
        direct = channel_id_from_url(url)
        if direct:
            return build_channel_feed_url(direct)

        if not is_youtube_url(url) or is_youtube_feed_url(url):
            return url

        parts = urlsplit(url)
        path = parts.path.rstrip("/") or "/"
        if path != "/" and not path.startswith(_PAGE_RESOLVABLE_PREFIXES):
            return url

        page_url = urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))
        log = self._log.bind(page_url=page_url)

        result = await self._fetcher.fetch(page_url, {"Accept": DEFAULT_ACCEPT})
        if not result.is_success:
            log.warning(
                "channel_page_fetch_failed",
                status_code=result.status_code,
                error_class=result.error.error_class.value if result.error else None,
            )
            return url

        channel_id = channel_id_from_html(decode_document(result.body_bytes, result.encoding))
        if channel_id is None:
            log.warning("channel_id_not_found")
            return url

        feed_url = build_channel_feed_url(channel_id)
        log.info("channel_feed_resolved", feed_url=feed_url)
        return feed_url
