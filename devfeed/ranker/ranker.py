"""Article ranker: recency gate, scoring, de-duplication and ordering."""

import time
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime

import structlog

from devfeed.config.schemas.sources import FeedSource
from devfeed.content.urls import canonicalize_url
from devfeed.data_model.article import Article
from devfeed.ranker.constants import FEED_LOOKBACK_DAYS
from devfeed.ranker.dates import MS_PER_DAY, parse_timestamp, to_epoch_ms
from devfeed.ranker.metrics import RankerMetrics
from devfeed.ranker.models import DropReason, DroppedEntry, RankedCandidate, RankerResult
from devfeed.ranker.scorer import ArticleScorer, normalize_text
from devfeed.ranker.sources import resolve_lookback_days


logger = structlog.get_logger()


def dedupe_key(article: Article) -> str:
    """Identity of an article for de-duplication.

    Normalized link if it parses, else the normalized title, else the id.
    """
    normalized_link = canonicalize_url(article.link)
    if normalized_link:
        return normalized_link
    normalized_title = normalize_text(article.title)
    if normalized_title:
        return f"title:{normalized_title}"
    return f"id:{article.id}"


def _replaces(candidate: RankedCandidate, existing: RankedCandidate) -> bool:
    if candidate.score > existing.score:
        return True
    if candidate.score != existing.score:
        return False
    if candidate.published_at_ms != existing.published_at_ms:
        return candidate.published_at_ms > existing.published_at_ms
    return candidate.article.id < existing.article.id


class ArticleRanker:
    """Turns a multi-source article stream into one ordered list.

    Flow:
        gate (unknown source, bad date, future date, outside lookback)
        -> score -> de-duplicate -> order -> truncate

    The output is ordered by publication time descending, then by score
    descending. Ranking is pure: inputs are not mutated and the result
    depends only on the inputs and ``now``.
    """

    def __init__(
        self,
        now: datetime | None = None,
        lookback_cap_days: float = FEED_LOOKBACK_DAYS,
        metrics: RankerMetrics | None = None,
    ) -> None:
        """Initialize the ranker.

        Args:
            now: Reference time for the recency gate and scoring.
            lookback_cap_days: Global cap on source lookback windows.
            metrics: Optional metrics instance.
        """
        self._now = now or datetime.now(UTC)
        if self._now.tzinfo is None:
            self._now = self._now.replace(tzinfo=UTC)
        self._lookback_cap_days = lookback_cap_days
        self._scorer = ArticleScorer(now=self._now, lookback_cap_days=lookback_cap_days)
        self._metrics = metrics or RankerMetrics.get_instance()
        self._log = logger.bind(component="ranker")

    def rank(
        self,
        articles: Sequence[Article],
        sources: Iterable[FeedSource],
        max_total: int | None = None,
    ) -> RankerResult:
        """Rank articles against their sources.

        Args:
            articles: Articles from any number of sources.
            sources: Known sources; articles of other sources are dropped.
            max_total: Optional cap applied after ordering.

        Returns:
            RankerResult with the ordered articles and drop details.
        """
        start = time.perf_counter()
        self._metrics.record_articles_in(len(articles))

        source_by_id = {source.id: source for source in sources}
        dropped: list[DroppedEntry] = []
        deduped: dict[str, RankedCandidate] = {}
        now_ms = to_epoch_ms(self._now)

        for article in articles:
            source = source_by_id.get(article.source_id)
            if source is None:
                dropped.append(self._drop(article, DropReason.UNKNOWN_SOURCE))
                continue

            published = parse_timestamp(article.published_at)
            if published is None:
                dropped.append(self._drop(article, DropReason.UNPARSEABLE_DATE))
                continue

            published_at_ms = to_epoch_ms(published)
            age_days = (now_ms - published_at_ms) / MS_PER_DAY
            if age_days < 0:
                dropped.append(self._drop(article, DropReason.FUTURE_DATED))
                continue

            if age_days > resolve_lookback_days(source, self._lookback_cap_days):
                dropped.append(self._drop(article, DropReason.OUTSIDE_LOOKBACK))
                continue

            components = self._scorer.score(article, source)
            self._metrics.record_score(components.total_score)
            candidate = RankedCandidate(
                article=article,
                source=source,
                components=components,
                published_at_ms=published_at_ms,
                dedupe_key=dedupe_key(article),
            )

            existing = deduped.get(candidate.dedupe_key)
            if existing is None:
                deduped[candidate.dedupe_key] = candidate
            elif _replaces(candidate, existing):
                deduped[candidate.dedupe_key] = candidate
                dropped.append(self._drop(existing.article, DropReason.DUPLICATE, existing.score))
            else:
                dropped.append(self._drop(article, DropReason.DUPLICATE, candidate.score))

        ordered = sorted(
            deduped.values(),
            key=lambda c: (-c.published_at_ms, -c.score, c.article.id),
        )

        if max_total is not None and max_total >= 0:
            for candidate in ordered[max_total:]:
                dropped.append(
                    self._drop(candidate.article, DropReason.TRUNCATED, candidate.score)
                )
            ordered = ordered[:max_total]

        result = RankerResult(
            articles=tuple(c.article for c in ordered),
            candidates=tuple(ordered),
            articles_in=len(articles),
            articles_out=len(ordered),
            dropped_total=len(dropped),
            dropped_entries=tuple(dropped),
        )

        self._metrics.record_articles_out(len(ordered))
        self._metrics.record_ranking_duration((time.perf_counter() - start) * 1000)
        self._log.info(
            "ranking_complete",
            articles_in=result.articles_in,
            articles_out=result.articles_out,
            dropped_total=result.dropped_total,
            dropped_by_reason=result.dropped_by_reason(),
        )
        return result

    def _drop(
        self,
        article: Article,
        reason: DropReason,
        score: float | None = None,
    ) -> DroppedEntry:
        self._metrics.record_drop(article.source_id, reason.value)
        self._log.debug(
            "article_dropped",
            article_id=article.id,
            source_id=article.source_id,
            reason=reason.value,
        )
        return DroppedEntry(
            article_id=article.id,
            source_id=article.source_id,
            drop_reason=reason,
            score=score,
        )


def rank_articles(
    articles: Sequence[Article],
    sources: Iterable[FeedSource],
    now: datetime | None = None,
    max_total: int | None = None,
    lookback_cap_days: float = FEED_LOOKBACK_DAYS,
) -> list[Article]:
    """Rank and filter articles for the developer feed.

    Args:
        articles: Articles from any number of sources.
        sources: Known sources.
        now: Reference time (defaults to the current time).
        max_total: Optional cap applied after ordering.
        lookback_cap_days: Global cap on source lookback windows.

    Returns:
        Ordered articles, most recent first.
    """
    ranker = ArticleRanker(now=now, lookback_cap_days=lookback_cap_days)
    return list(ranker.rank(articles, sources, max_total=max_total).articles)


rank = rank_articles
