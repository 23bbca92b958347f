"""Boilerplate stripping applied to article bodies after sanitizing."""

import re

from devfeed.content.dom import (
    attr_text,
    first_meaningful_element,
    parse_fragment,
    serialize_fragment,
)
from devfeed.content.text import normalize_whitespace
from devfeed.content.urls import host_of


MAX_LEADING_BLOCKS_REMOVED = 6
MAX_METADATA_TEXT_LENGTH = 48
MAX_TAG_SECTION_TEXT_LENGTH = 260

DATE_TEXT_PATTERN = r"(?:\d{4}-\d{2}-\d{2}|[A-Za-z]{3,9}\s+\d{1,2},?\s+\d{4})"
READ_TIME_TEXT_PATTERN = r"\d{1,3}\s*(?:min|mins|minute|minutes)\s*read"

_DATE_ONLY = re.compile(rf"^{DATE_TEXT_PATTERN}$", re.IGNORECASE)
_READ_TIME_ONLY = re.compile(rf"^{READ_TIME_TEXT_PATTERN}$", re.IGNORECASE)
_DATE_AND_READ_TIME = re.compile(
    rf"^{DATE_TEXT_PATTERN}\s+{READ_TIME_TEXT_PATTERN}$", re.IGNORECASE
)
_METADATA_SEPARATORS = re.compile(r"[|·•]")
_COMPARISON_PUNCTUATION = re.compile(r"[\"'`.,:;!?()\[\]{}]")

TAG_HEADING_SELECTOR = "h2, h3, h4, p, div"
TAG_SECTION_SELECTOR = "section, div, ul, ol"
TAG_HEADING_TEXTS = frozenset({"tags", "topics"})
_TAG_MARKER = re.compile(r"\b(tag|tags|topic|topics)\b")
_TAG_LEADING_TEXT = re.compile(r"^(tags?|topics?)\b", re.IGNORECASE)
_TAG_LIKE_HREF = re.compile(r"(^|/)(tag|tags|topic|topics)(/|$)", re.IGNORECASE)


def normalize_for_comparison(value: str) -> str:
    """Lowercase, drop punctuation and collapse whitespace."""
    text = _COMPARISON_PUNCTUATION.sub("", normalize_whitespace(value).lower())
    return normalize_whitespace(text)


def is_leading_metadata_text(value: str) -> bool:
    """Check for a short date and/or read-time line such as
    ``"Jan 5, 2025 · 6 min read"``."""
    normalized = normalize_whitespace(_METADATA_SEPARATORS.sub(" ", value))
    if not normalized or len(normalized) > MAX_METADATA_TEXT_LENGTH:
        return False

    return bool(
        _DATE_ONLY.match(normalized)
        or _READ_TIME_ONLY.match(normalized)
        or _DATE_AND_READ_TIME.match(normalized)
    )


def is_leading_title_text(value: str, title: str | None) -> bool:
    """Check whether text repeats the title (either may prefix the other)."""
    if not title:
        return False

    normalized_value = normalize_for_comparison(value)
    normalized_title = normalize_for_comparison(title)
    if not normalized_value or not normalized_title:
        return False

    return normalized_value.startswith(normalized_title) or normalized_title.startswith(
        normalized_value
    )


def strip_leading_feed_metadata(html: str, title: str | None = None) -> str:
    """Remove leading blocks that repeat the title or only hold metadata.

    At most six leading blocks are removed.

    Args:
        html: Article HTML fragment.
        title: Article title.

    Returns:
        HTML without the leading title/date/read-time blocks.
    """
    root = parse_fragment(html)

    for _ in range(MAX_LEADING_BLOCKS_REMOVED):
        first = first_meaningful_element(root)
        if first is None:
            break

        text = normalize_whitespace(first.get_text())
        if not (is_leading_title_text(text, title) or is_leading_metadata_text(text)):
            break

        first.decompose()

    return serialize_fragment(root)


def _is_openai_url(url: str) -> bool:
    host = host_of(url) or ""
    return host == "openai.com" or host.endswith(".openai.com")


def strip_publisher_tag_section(html: str, article_url: str) -> str:
    """Remove the "Tags"/"Topics" navigation OpenAI appends to articles.

    A heading reading exactly "Tags" or "Topics" is removed along with its
    next sibling when that sibling is short and has links. Short sections
    and lists marked as tag blocks (by class, id, leading text or tag-like
    link targets) are removed too. Other publishers are left untouched.

    Args:
        html: Article HTML fragment.
        article_url: Article URL, used to recognize the publisher.

    Returns:
        HTML without tag navigation.
    """
    if not _is_openai_url(article_url):
        return html

    root = parse_fragment(html)

    for heading in root.select(TAG_HEADING_SELECTOR):
        if normalize_whitespace(heading.get_text()).lower() not in TAG_HEADING_TEXTS:
            continue

        following = heading.find_next_sibling()
        heading.extract()

        if following is not None:
            following_text = normalize_whitespace(following.get_text())
            if following.select("a[href]") and len(following_text) < MAX_TAG_SECTION_TEXT_LENGTH:
                following.extract()

    for element in root.select(TAG_SECTION_SELECTOR):
        text = normalize_whitespace(element.get_text())
        links = element.select("a[href]")
        if not text or not links:
            continue

        class_name = attr_text(element, "class").lower()
        element_id = attr_text(element, "id").lower()
        has_tag_marker = bool(
            _TAG_MARKER.search(class_name)
            or _TAG_MARKER.search(element_id)
            or _TAG_LEADING_TEXT.match(text)
        )
        has_tag_like_link = any(
            _TAG_LIKE_HREF.search(attr_text(link, "href")) for link in links
        )

        if (has_tag_marker or has_tag_like_link) and len(text) <= MAX_TAG_SECTION_TEXT_LENGTH:
            element.extract()

    return serialize_fragment(root)
