"""Scoring engine for developer feed articles."""

import re
from datetime import UTC, datetime

import structlog

from devfeed.config.schemas.sources import FeedSource
from devfeed.data_model.article import Article
from devfeed.ranker.constants import (
    CATEGORY_SCORE_MAX,
    CATEGORY_SCORE_MIN,
    ENGINEERING_HIT_CAP,
    ENGINEERING_HIT_SCORE,
    ENGINEERING_KEYWORDS,
    EXCLUDE_MATCH_PENALTY,
    FEED_LOOKBACK_DAYS,
    GITHUB_BOOST,
    GITHUB_MARKER,
    INCLUDE_MATCH_SCORE,
    INCLUDE_MISS_PENALTY,
    MAX_SCORE,
    MIN_SCORE,
    NOISE_HIT_CAP,
    NOISE_HIT_PENALTY,
    NOISE_KEYWORDS,
    READ_TIME_ACCEPTABLE,
    READ_TIME_ACCEPTABLE_SCORE,
    READ_TIME_LONG_MINUTES,
    READ_TIME_LONG_PENALTY,
    READ_TIME_MAX_MINUTES,
    READ_TIME_OTHER_PENALTY,
    READ_TIME_SHORT_PENALTY,
    READ_TIME_SWEET_SPOT,
    READ_TIME_SWEET_SPOT_SCORE,
    RECENCY_MAX_SCORE,
    TITLE_NOISE_CAP,
    TITLE_NOISE_HIT_PENALTY,
    TRENDING_BOOST,
    TRENDING_MARKER,
    UNPARSEABLE_DATE_SCORE,
)
from devfeed.ranker.dates import age_in_days
from devfeed.ranker.models import ScoreComponents
from devfeed.ranker.sources import resolve_lookback_days, resolve_source_priority_score


logger = structlog.get_logger()

_WHITESPACE = re.compile(r"\s+")
_READING_MINUTES = re.compile(r"(\d{1,3})\s*(?:min|mins|minute|minutes)", re.IGNORECASE)


def clamp(value: float, minimum: float, maximum: float) -> float:
    return min(maximum, max(minimum, value))


def normalize_text(value: str) -> str:
    """Collapse whitespace, trim and lowercase."""
    return _WHITESPACE.sub(" ", value).strip().lower()


def parse_reading_minutes(label: str | None) -> int | None:
    """Read the minute count out of a label like ``"6 min read"``.

    Returns:
        Minutes in [1, 240], or None.
    """
    if not label:
        return None
    match = _READING_MINUTES.search(label)
    if match is None:
        return None
    minutes = int(match.group(1))
    if minutes <= 0 or minutes > READ_TIME_MAX_MINUTES:
        return None
    return minutes


def count_keyword_hits(text: str, keywords: tuple[str, ...] | list[str]) -> int:
    """Count keywords occurring anywhere in ``text`` (substring match)."""
    return sum(1 for keyword in keywords if keyword and keyword in text)


class ArticleScorer:
    """Computes numeric scores for articles of a developer feed.

    Scoring formula:
        score = recency + priority + category + read_time + trend + noise

    clamped to [0, 100], where:
        - recency: 40 at publication, decaying linearly to 0 at the edge
          of the source's lookback window
        - priority: explicit source priority or tier default
        - category: include/exclude lists plus keyword heuristics,
          clamped to [-10, 15]
        - read_time: fit of the reading-time label to a 4-12 minute sweet spot
        - trend: boost for trending and GitHub sources
        - noise: penalty for noise keywords in title and excerpt
    """

    def __init__(
        self,
        now: datetime | None = None,
        lookback_cap_days: float = FEED_LOOKBACK_DAYS,
    ) -> None:
        """Initialize the scorer.

        Args:
            now: Reference time for recency.
            lookback_cap_days: Global cap on source lookback windows.
        """
        self._now = now or datetime.now(UTC)
        self._lookback_cap_days = lookback_cap_days
        self._log = logger.bind(component="ranker", subcomponent="scorer")

    def score(self, article: Article, source: FeedSource) -> ScoreComponents:
        """Compute the score breakdown for one article.

        Args:
            article: Article to score.
            source: Source the article belongs to.

        Returns:
            Score components; an unparseable date yields a total of -999.
        """
        age_days = age_in_days(article.published_at, self._now)
        if age_days is None:
            return ScoreComponents(
                recency_score=0.0,
                priority_score=0.0,
                category_score=0.0,
                read_time_score=0.0,
                trend_score=0.0,
                noise_penalty=0.0,
                total_score=UNPARSEABLE_DATE_SCORE,
            )

        recency_score = self._compute_recency_score(age_days, source)
        priority_score = resolve_source_priority_score(source)
        category_score = self._compute_category_score(article, source)
        read_time_score = self._compute_read_time_score(article)
        trend_score = self._compute_trend_score(source)
        noise_penalty = self._compute_noise_penalty(article, source)

        total_score = clamp(
            recency_score
            + priority_score
            + category_score
            + read_time_score
            + trend_score
            + noise_penalty,
            MIN_SCORE,
            MAX_SCORE,
        )

        return ScoreComponents(
            recency_score=recency_score,
            priority_score=priority_score,
            category_score=category_score,
            read_time_score=read_time_score,
            trend_score=trend_score,
            noise_penalty=noise_penalty,
            total_score=total_score,
        )

    def _compute_recency_score(self, age_days: float, source: FeedSource) -> float:
        lookback_days = resolve_lookback_days(source, self._lookback_cap_days)
        return clamp(RECENCY_MAX_SCORE * (1 - age_days / lookback_days), 0.0, RECENCY_MAX_SCORE)

    def _compute_category_score(self, article: Article, source: FeedSource) -> float:
        """Compute the category and keyword score.

        Args:
            article: Article to score.
            source: Source with include/exclude category lists.

        Returns:
            Category score in [-10, 15].
        """
        categories = [normalize_text(c) for c in article.categories]
        include = [normalize_text(c) for c in source.include_categories]
        exclude = [normalize_text(c) for c in source.exclude_categories]

        score = 0.0
        if include:
            matched = any(c in include for c in categories)
            score += INCLUDE_MATCH_SCORE if matched else -INCLUDE_MISS_PENALTY

        if exclude and any(c in exclude for c in categories):
            score -= EXCLUDE_MATCH_PENALTY

        semantic_text = normalize_text(
            f"{article.title} {article.excerpt} {' '.join(article.categories)}"
        )
        positive_hits = count_keyword_hits(semantic_text, ENGINEERING_KEYWORDS)
        negative_hits = count_keyword_hits(semantic_text, NOISE_KEYWORDS)

        score += min(ENGINEERING_HIT_CAP, positive_hits * ENGINEERING_HIT_SCORE)
        score -= min(NOISE_HIT_CAP, negative_hits * NOISE_HIT_PENALTY)

        return clamp(score, CATEGORY_SCORE_MIN, CATEGORY_SCORE_MAX)

    def _compute_read_time_score(self, article: Article) -> float:
        minutes = parse_reading_minutes(article.reading_time_label)
        if not minutes:
            return 0.0

        sweet_min, sweet_max = READ_TIME_SWEET_SPOT
        if sweet_min <= minutes <= sweet_max:
            return READ_TIME_SWEET_SPOT_SCORE

        ok_min, ok_max = READ_TIME_ACCEPTABLE
        if ok_min <= minutes <= ok_max:
            return READ_TIME_ACCEPTABLE_SCORE

        if minutes < ok_min:
            return -READ_TIME_SHORT_PENALTY

        if minutes > READ_TIME_LONG_MINUTES:
            return -READ_TIME_LONG_PENALTY

        return -READ_TIME_OTHER_PENALTY

    def _compute_trend_score(self, source: FeedSource) -> float:
        source_id = source.id.lower()
        source_name = source.name.lower()
        website = source.website.lower()

        if TRENDING_MARKER in source_id or TRENDING_MARKER in source_name:
            return TRENDING_BOOST

        if GITHUB_MARKER in source_id or GITHUB_MARKER in source_name or GITHUB_MARKER in website:
            return GITHUB_BOOST

        return 0.0

    def _compute_noise_penalty(self, article: Article, source: FeedSource) -> float:
        """Penalize noise keywords in title and excerpt, capped at -20."""
        text = normalize_text(f"{article.title} {article.excerpt}")
        source_keywords = [normalize_text(k) for k in source.exclude_keywords]
        hits = count_keyword_hits(text, NOISE_KEYWORDS) + count_keyword_hits(
            text, source_keywords
        )
        return -min(TITLE_NOISE_CAP, hits * TITLE_NOISE_HIT_PENALTY)


def score_article_for_developer_feed(
    article: Article,
    source: FeedSource,
    now: datetime | None = None,
    lookback_cap_days: float = FEED_LOOKBACK_DAYS,
) -> float:
    """Score one article against its source.

    Args:
        article: Article to score.
        source: Source the article belongs to.
        now: Reference time (defaults to the current time).
        lookback_cap_days: Global cap on source lookback windows.

    Returns:
        Score in [0, 100], or -999 when the publication date is unparseable.
    """
    scorer = ArticleScorer(now=now, lookback_cap_days=lookback_cap_days)
    return scorer.score(article, source).total_score
