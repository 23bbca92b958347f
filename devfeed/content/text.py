"""Plain-text helpers: entities, whitespace, reading time and author names."""

import html
import math
import re
from collections.abc import Mapping
from typing import Any

from bs4 import BeautifulSoup


WORDS_PER_MINUTE = 220
MAX_READING_MINUTES = 240
MAX_AUTHOR_NAME_LENGTH = 120

READ_TIME_IN_CONTENT_PATTERN = re.compile(
    r"\b(\d{1,3})\s*(?:min|mins|minute|minutes)\s*read\b", re.IGNORECASE
)
READ_TIME_VALUE_PATTERN = re.compile(
    r"\b(\d{1,3})\s*(?:min|mins|minute|minutes)\s*(?:read)?\b", re.IGNORECASE
)

FEED_READ_TIME_KEYS = (
    "readingTime",
    "reading_time",
    "readTime",
    "read_time",
    "timeToRead",
    "time_to_read",
    "minutesToRead",
    "minutes_to_read",
    "readDuration",
    "read_duration",
)
FEED_READ_TIME_KEY_PATTERN = re.compile(
    r"(?:read(ing)?[-_: ]?time|time[-_: ]?to[-_: ]?read|minutes?[-_: ]?to[-_: ]?read)",
    re.IGNORECASE,
)
READ_TIME_NESTED_KEYS = ("value", "text", "_", "#", "minutes", "duration")

FEED_AUTHOR_KEYS = ("creator", "dc:creator", "author", "dc:author", "authors", "byline")
FEED_AUTHOR_KEY_PATTERN = re.compile(r"(?:author|creator|byline)", re.IGNORECASE)
AUTHOR_NESTED_KEYS = ("name", "displayName", "creator", "author", "value", "text", "_", "#")

_WHITESPACE = re.compile(r"\s+")
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z])(?=[A-Z][a-z])")
_TITLE_CASE_WORD = re.compile(r"^[A-Z](?:[^\W\d_]|['-])*$")


def normalize_whitespace(value: str) -> str:
    """Collapse runs of whitespace into single spaces and trim."""
    return _WHITESPACE.sub(" ", value).strip()


def decode_html_entities(value: str) -> str:
    """Decode HTML entities, turning non-breaking spaces into plain spaces."""
    return html.unescape(value).replace("\xa0", " ")


def html_to_text(content: str) -> str:
    """Strip markup from an HTML fragment and normalize whitespace."""
    if not content:
        return ""
    if "<" not in content:
        return normalize_whitespace(decode_html_entities(content))
    soup = BeautifulSoup(content, "html.parser")
    return normalize_whitespace(soup.get_text(" "))


def count_words(content: str) -> int:
    text = html_to_text(content)
    return len(text.split()) if text else 0


def format_reading_time(minutes: int) -> str:
    return f"{minutes} min read"


def estimate_reading_minutes(content: str, words_per_minute: int = WORDS_PER_MINUTE) -> int:
    """Estimate reading time from word count, at least one minute."""
    words = count_words(content)
    if words == 0:
        return 1
    return max(1, math.ceil(words / words_per_minute))


def estimate_reading_time(content: str) -> str:
    return format_reading_time(estimate_reading_minutes(content))


def display_reading_time(content: str, known_label: str | None = None) -> str:
    """Reading time to show for an article.

    A label already known (from the feed or the page) wins, then an explicit
    label found in the content, then a word-count estimate.
    """
    if known_label:
        return known_label
    return extract_read_time_label_from_content(content) or estimate_reading_time(content)


def _minutes_in_range(minutes: int) -> bool:
    return 0 < minutes <= MAX_READING_MINUTES


def extract_read_time_label_from_content(content: str) -> str | None:
    """Find an explicit "N min read" label in article HTML.

    Args:
        content: Article HTML.

    Returns:
        Normalized label, or None if absent or out of range.
    """
    match = READ_TIME_IN_CONTENT_PATTERN.search(html_to_text(content))
    if not match:
        return None

    minutes = int(match.group(1))
    return format_reading_time(minutes) if _minutes_in_range(minutes) else None


def _normalize_read_time_value(value: Any) -> str | None:
    if isinstance(value, bool):
        return None

    if isinstance(value, int | float):
        if not math.isfinite(value):
            return None
        minutes = round(value)
        return format_reading_time(minutes) if _minutes_in_range(minutes) else None

    if not isinstance(value, str):
        return None

    match = READ_TIME_VALUE_PATTERN.search(value.strip())
    if not match:
        return None

    minutes = int(match.group(1))
    return format_reading_time(minutes) if _minutes_in_range(minutes) else None


def _read_time_from_unknown(value: Any) -> str | None:
    direct = _normalize_read_time_value(value)
    if direct:
        return direct

    if isinstance(value, list | tuple):
        for item in value:
            parsed = _read_time_from_unknown(item)
            if parsed:
                return parsed
        return None

    if isinstance(value, Mapping):
        for key in READ_TIME_NESTED_KEYS:
            if key in value:
                parsed = _read_time_from_unknown(value[key])
                if parsed:
                    return parsed

    return None


def extract_feed_read_time_label(item: Mapping[str, Any]) -> str | None:
    """Read a reading-time label from arbitrary feed item fields.

    Known keys are tried first, then any key that looks like a reading-time
    field. Values may be numbers, strings like ``"6 min"``, lists or nested
    mappings.

    Args:
        item: Feed item fields.

    Returns:
        ``"N min read"`` label, or None.
    """
    for key in FEED_READ_TIME_KEYS:
        if key in item:
            parsed = _read_time_from_unknown(item[key])
            if parsed:
                return parsed

    for key, value in item.items():
        if not isinstance(key, str) or not FEED_READ_TIME_KEY_PATTERN.search(key):
            continue
        parsed = _read_time_from_unknown(value)
        if parsed:
            return parsed

    return None


def normalize_author_name(value: str) -> str | None:
    """Collapse whitespace; reject empty or implausibly long names."""
    normalized = normalize_whitespace(value)
    if not normalized or len(normalized) > MAX_AUTHOR_NAME_LENGTH:
        return None
    return normalized


def format_author_name_list(value: str | None) -> str | None:
    """Turn a run-together author string into a readable list.

    ``"JaneDoeJohnSmith"`` becomes ``"Jane Doe, John Smith"``: CamelCase
    boundaries are split, and an even number (at least four) of title-case
    words is paired into first/last names. Strings that already contain a
    comma are returned as is.
    """
    if not value:
        return None

    normalized = normalize_whitespace(value)
    if not normalized:
        return None

    if "," in normalized:
        return normalized

    split = _CAMEL_BOUNDARY.sub(" ", normalized)
    words = split.split()
    looks_like_title_case = all(_TITLE_CASE_WORD.match(word) for word in words)

    if looks_like_title_case and len(words) >= 4 and len(words) % 2 == 0:
        return ", ".join(f"{words[i]} {words[i + 1]}" for i in range(0, len(words), 2))

    return split


def _author_name_from_unknown(value: Any) -> str | None:
    if isinstance(value, str):
        name = normalize_author_name(value)
        return format_author_name_list(name) if name else None

    if isinstance(value, list | tuple):
        for item in value:
            parsed = _author_name_from_unknown(item)
            if parsed:
                return parsed
        return None

    if isinstance(value, Mapping):
        for key in AUTHOR_NESTED_KEYS:
            if key in value:
                parsed = _author_name_from_unknown(value[key])
                if parsed:
                    return parsed

    return None


def extract_feed_author_name(item: Mapping[str, Any]) -> str | None:
    """Read an author name from arbitrary feed item fields.

    Args:
        item: Feed item fields.

    Returns:
        Formatted author name, or None.
    """
    for key in FEED_AUTHOR_KEYS:
        if key in item:
            parsed = _author_name_from_unknown(item[key])
            if parsed:
                return format_author_name_list(parsed)

    for key, value in item.items():
        if not isinstance(key, str) or not FEED_AUTHOR_KEY_PATTERN.search(key):
            continue
        parsed = _author_name_from_unknown(value)
        if parsed:
            return format_author_name_list(parsed)

    return None
