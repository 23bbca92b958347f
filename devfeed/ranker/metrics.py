"""Metrics collection for the ranker module."""

from dataclasses import dataclass, field
from typing import ClassVar


@dataclass
class RankerMetrics:
    """Metrics for ranker operations.

    Attributes:
        articles_in: Number of input articles in the last ranking call.
        articles_out: Number of output articles in the last ranking call.
        dropped_total: Total articles dropped.
        dropped_by_reason: Dropped count per reason.
        dropped_by_source: Dropped count per source.
        score_values: All scores for percentile calculation.
        ranking_duration_ms: Time spent in the last ranking call.
        inbox_selected: Articles kept by the last inbox limit pass.
    """

    articles_in: int = 0
    articles_out: int = 0
    dropped_total: int = 0
    dropped_by_reason: dict[str, int] = field(default_factory=dict)
    dropped_by_source: dict[str, int] = field(default_factory=dict)
    score_values: list[float] = field(default_factory=list)
    ranking_duration_ms: float = 0.0
    inbox_selected: int = 0

    _instance: ClassVar["RankerMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "RankerMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def record_articles_in(self, count: int) -> None:
        self.articles_in = count

    def record_articles_out(self, count: int) -> None:
        self.articles_out = count

    def record_drop(self, source_id: str, reason: str) -> None:
        """Record a dropped article.

        Args:
            source_id: Source ID of the dropped article.
            reason: Drop reason value.
        """
        self.dropped_total += 1
        self.dropped_by_source[source_id] = self.dropped_by_source.get(source_id, 0) + 1
        self.dropped_by_reason[reason] = self.dropped_by_reason.get(reason, 0) + 1

    def record_score(self, score: float) -> None:
        self.score_values.append(score)

    def record_ranking_duration(self, duration_ms: float) -> None:
        self.ranking_duration_ms = duration_ms

    def record_inbox_selected(self, count: int) -> None:
        self.inbox_selected = count

    def get_score_percentiles(self) -> dict[str, float]:
        """Calculate score percentiles (p50/p90/p99).

        Returns:
            Dictionary with p50, p90, p99 values.
        """
        if not self.score_values:
            return {"p50": 0.0, "p90": 0.0, "p99": 0.0}

        sorted_scores = sorted(self.score_values)
        n = len(sorted_scores)

        def percentile(p: float) -> float:
            idx = int(p * n / 100)
            return sorted_scores[min(idx, n - 1)]

        return {
            "p50": percentile(50),
            "p90": percentile(90),
            "p99": percentile(99),
        }

    def to_dict(self) -> dict[str, object]:
        """Convert metrics to dictionary.

        Returns:
            Dictionary of metric name to value.
        """
        return {
            "articles_in": self.articles_in,
            "articles_out": self.articles_out,
            "dropped_total": self.dropped_total,
            "dropped_by_reason": dict(self.dropped_by_reason),
            "dropped_by_source": dict(self.dropped_by_source),
            "ranking_duration_ms": self.ranking_duration_ms,
            "inbox_selected": self.inbox_selected,
            "score_percentiles": self.get_score_percentiles(),
        }
