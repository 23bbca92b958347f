"""Data models for the article ranker."""

from dataclasses import dataclass
from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from devfeed.config.schemas.sources import FeedSource
from devfeed.data_model.article import Article


class DropReason(str, Enum):
    """Why an article did not make it into the ranked list."""

    UNKNOWN_SOURCE = "unknown_source"
    UNPARSEABLE_DATE = "unparseable_date"
    FUTURE_DATED = "future_dated"
    OUTSIDE_LOOKBACK = "outside_lookback"
    DUPLICATE = "duplicate"
    TRUNCATED = "truncated"


@dataclass(frozen=True)
class ScoreComponents:
    """Breakdown of an article's score into components.

    Attributes:
        recency_score: Linear decay across the lookback window, in [0, 40].
        priority_score: Explicit source priority or tier default.
        category_score: Include/exclude lists and keyword heuristics.
        read_time_score: Reading-time fit.
        trend_score: Trending or GitHub source boost.
        noise_penalty: Noise keyword penalty (zero or negative).
        total_score: Sum of all components clamped to [0, 100].
    """

    recency_score: float
    priority_score: float
    category_score: float
    read_time_score: float
    trend_score: float
    noise_penalty: float
    total_score: float

    def to_dict(self) -> dict[str, float]:
        """Convert to dictionary for serialization.

        Returns:
            Dictionary of component name to value.
        """
        return {
            "recency_score": self.recency_score,
            "priority_score": self.priority_score,
            "category_score": self.category_score,
            "read_time_score": self.read_time_score,
            "trend_score": self.trend_score,
            "noise_penalty": self.noise_penalty,
            "total_score": self.total_score,
        }


@dataclass(frozen=True)
class RankedCandidate:
    """An article paired with its source and score for one ranking call.

    Attributes:
        article: The article being ranked.
        source: Source the article belongs to.
        components: Score breakdown.
        published_at_ms: Publication time in epoch milliseconds.
        dedupe_key: Identity used for de-duplication.
    """

    article: Article
    source: FeedSource
    components: ScoreComponents
    published_at_ms: int
    dedupe_key: str

    @property
    def score(self) -> float:
        """Total score of the candidate."""
        return self.components.total_score


@dataclass(frozen=True)
class DroppedEntry:
    """Record of an article removed by the ranker.

    Attributes:
        article_id: ID of the dropped article.
        source_id: Source ID of the dropped article.
        drop_reason: Why the article was dropped.
        score: Score at time of drop, when one was computed.
    """

    article_id: str
    source_id: str
    drop_reason: DropReason
    score: float | None = None


class RankerResult(BaseModel):
    """Complete result of one ranking call.

    Attributes:
        articles: Ranked articles, most recent first.
        candidates: Scored candidates in output order (for audit).
        dropped_entries: Details of dropped articles.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    articles: tuple[Article, ...] = ()
    candidates: tuple[RankedCandidate, ...] = ()
    articles_in: Annotated[int, Field(ge=0, description="Input article count")] = 0
    articles_out: Annotated[int, Field(ge=0, description="Output article count")] = 0
    dropped_total: Annotated[int, Field(ge=0, description="Total dropped count")] = 0
    dropped_entries: tuple[DroppedEntry, ...] = ()

    def dropped_by_reason(self) -> dict[str, int]:
        """Count dropped entries per reason.

        Returns:
            Mapping of reason value to count.
        """
        counts: dict[str, int] = {}
        for entry in self.dropped_entries:
            key = entry.drop_reason.value
            counts[key] = counts.get(key, 0) + 1
        return counts
