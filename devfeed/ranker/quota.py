"""Inbox limits: per-source and total unread caps over a ranked list."""

import math
from collections.abc import Callable, Iterable, Mapping, Sequence
from datetime import UTC, datetime

import structlog

from devfeed.config.schemas.sources import FeedSource
from devfeed.content.urls import canonicalize_url
from devfeed.data_model.article import Article
from devfeed.ranker.constants import (
    DEFAULT_READ_ARCHIVE_DAYS,
    DEFAULT_UNREAD_TOTAL_LIMIT,
    INCLUDE_READ_TOTAL_FLOOR,
    INCLUDE_READ_TOTAL_MULTIPLIER,
    READ_STORAGE_RETENTION_DAYS,
)
from devfeed.ranker.dates import MS_PER_DAY, to_epoch_ms
from devfeed.ranker.metrics import RankerMetrics
from devfeed.ranker.sources import resolve_unread_per_source_limit


logger = structlog.get_logger()

ReadKeyFn = Callable[[Article], str]


def default_read_key(article: Article) -> str:
    """Key under which an article's read timestamp is stored.

    ``<feed url>::<normalized link>`` when both are known, else
    ``<source id>::<normalized link>``, else the article id.
    """
    normalized_link = canonicalize_url(article.link)
    if normalized_link and article.source_feed_url:
        return f"{article.source_feed_url}::{normalized_link}"
    if normalized_link:
        return f"{article.source_id}::{normalized_link}"
    return article.id


def _is_timestamp(value: object) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool) and math.isfinite(value)


def _now_ms(now: datetime | None) -> int:
    current = now or datetime.now(UTC)
    if current.tzinfo is None:
        current = current.replace(tzinfo=UTC)
    return to_epoch_ms(current)


class InboxLimiter:
    """Selects the visible inbox from a ranked article list.

    Enforces:
    - a per-source unread cap (``max_unread_visible`` or the tier default)
    - a total unread cap
    - read items only when ``include_read`` is set, and only when they
      were read inside the archive window
    - a hard total of ``max(3 * limit, 60)`` when read items are shown
    """

    def __init__(
        self,
        sources: Iterable[FeedSource],
        read_key: ReadKeyFn = default_read_key,
        unread_total_limit: int = DEFAULT_UNREAD_TOTAL_LIMIT,
        read_archive_days: float = DEFAULT_READ_ARCHIVE_DAYS,
        metrics: RankerMetrics | None = None,
    ) -> None:
        """Initialize the limiter.

        Args:
            sources: Known sources; articles of other sources are skipped.
            read_key: Maps an article to its read-state key.
            unread_total_limit: Maximum unread articles shown.
            read_archive_days: How long a read article stays visible.
            metrics: Optional metrics instance.
        """
        self._source_by_id = {source.id: source for source in sources}
        self._read_key = read_key
        self._unread_total_limit = unread_total_limit
        self._read_archive_days = read_archive_days
        self._metrics = metrics or RankerMetrics.get_instance()
        self._log = logger.bind(component="ranker", subcomponent="quota")

    def apply(
        self,
        ranked_articles: Sequence[Article],
        read_timestamps: Mapping[str, float] | None = None,
        include_read: bool = False,
        now: datetime | None = None,
    ) -> list[Article]:
        """Apply the inbox limits, preserving ranked order.

        Args:
            ranked_articles: Articles in ranked order.
            read_timestamps: Read time in epoch milliseconds, by read key.
            include_read: Whether read articles may be shown.
            now: Reference time for the archive window.

        Returns:
            The selected articles.
        """
        timestamps = read_timestamps or {}
        archive_threshold = _now_ms(now) - self._read_archive_days * MS_PER_DAY
        hard_total_limit = (
            max(self._unread_total_limit * INCLUDE_READ_TOTAL_MULTIPLIER, INCLUDE_READ_TOTAL_FLOOR)
            if include_read
            else self._unread_total_limit
        )

        unread_by_source: dict[str, int] = {}
        unread_total = 0
        selected: list[Article] = []

        for article in ranked_articles:
            source = self._source_by_id.get(article.source_id)
            if source is None:
                continue

            read_at = timestamps.get(self._read_key(article))
            is_read = _is_timestamp(read_at)

            if is_read and not include_read:
                continue

            if is_read and read_at < archive_threshold:  # type: ignore[operator]
                continue

            source_unread = unread_by_source.get(source.id, 0)
            if not is_read and source_unread >= resolve_unread_per_source_limit(source):
                continue

            if not is_read and unread_total >= self._unread_total_limit:
                continue

            selected.append(article)

            if not is_read:
                unread_by_source[source.id] = source_unread + 1
                unread_total += 1

            if not include_read and unread_total >= self._unread_total_limit:
                break

            if len(selected) >= hard_total_limit:
                break

        self._metrics.record_inbox_selected(len(selected))
        self._log.info(
            "inbox_limits_applied",
            articles_in=len(ranked_articles),
            selected=len(selected),
            unread=unread_total,
            include_read=include_read,
        )
        return selected


def apply_inbox_limits(
    ranked_articles: Sequence[Article],
    sources: Iterable[FeedSource],
    read_timestamps: Mapping[str, float] | None = None,
    read_key: ReadKeyFn = default_read_key,
    include_read: bool = False,
    unread_total_limit: int = DEFAULT_UNREAD_TOTAL_LIMIT,
    read_archive_days: float = DEFAULT_READ_ARCHIVE_DAYS,
    now: datetime | None = None,
) -> list[Article]:
    """Pure function API for the inbox limits.

    Args:
        ranked_articles: Articles in ranked order.
        sources: Known sources.
        read_timestamps: Read time in epoch milliseconds, by read key.
        read_key: Maps an article to its read-state key.
        include_read: Whether read articles may be shown.
        unread_total_limit: Maximum unread articles shown.
        read_archive_days: How long a read article stays visible.
        now: Reference time (defaults to the current time).

    Returns:
        The selected articles in ranked order.
    """
    limiter = InboxLimiter(
        sources=sources,
        read_key=read_key,
        unread_total_limit=unread_total_limit,
        read_archive_days=read_archive_days,
    )
    return limiter.apply(
        ranked_articles,
        read_timestamps=read_timestamps,
        include_read=include_read,
        now=now,
    )


def prune_read_timestamps(
    read_timestamps: Mapping[str, float],
    now: datetime | None = None,
    retention_days: float = READ_STORAGE_RETENTION_DAYS,
) -> dict[str, float]:
    """Drop read timestamps older than the retention window.

    Args:
        read_timestamps: Read time in epoch milliseconds, by read key.
        now: Reference time (defaults to the current time).
        retention_days: Retention window in days.

    Returns:
        A new mapping with the retained entries.
    """
    threshold = _now_ms(now) - retention_days * MS_PER_DAY
    return {
        key: read_at
        for key, read_at in read_timestamps.items()
        if _is_timestamp(read_at) and read_at >= threshold
    }
