"""Metrics collection for article content resolution."""

from dataclasses import dataclass, field
from typing import ClassVar


@dataclass
class ContentMetrics:
    """Metrics for content resolution.

    Singleton class that tracks cache behavior, coalescing, feed fallbacks
    and failures by reason.
    """

    article_cache_hits_total: int = 0
    article_cache_misses_total: int = 0
    feed_cache_hits_total: int = 0
    coalesced_waits_total: int = 0
    extractions_total: int = 0
    fallbacks_used_total: int = 0
    failures_total: dict[str, int] = field(default_factory=dict)
    prefetch_failures_total: int = 0

    _instance: ClassVar["ContentMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "ContentMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def record_cache_hit(self) -> None:
        self.article_cache_hits_total += 1

    def record_cache_miss(self) -> None:
        self.article_cache_misses_total += 1

    def record_feed_cache_hit(self) -> None:
        self.feed_cache_hits_total += 1

    def record_coalesced_wait(self) -> None:
        """Record a caller that joined an in-flight request."""
        self.coalesced_waits_total += 1

    def record_extraction(self) -> None:
        self.extractions_total += 1

    def record_fallback(self) -> None:
        """Record a resolution served from feed content."""
        self.fallbacks_used_total += 1

    def record_failure(self, reason: str) -> None:
        """Record a failed resolution.

        Args:
            reason: Failure reason value.
        """
        self.failures_total[reason] = self.failures_total.get(reason, 0) + 1

    def record_prefetch_failure(self) -> None:
        self.prefetch_failures_total += 1

    def to_dict(self) -> dict[str, int | dict[str, int]]:
        """Convert metrics to dictionary.

        Returns:
            Dictionary of metric name to value.
        """
        return {
            "article_cache_hits_total": self.article_cache_hits_total,
            "article_cache_misses_total": self.article_cache_misses_total,
            "feed_cache_hits_total": self.feed_cache_hits_total,
            "coalesced_waits_total": self.coalesced_waits_total,
            "extractions_total": self.extractions_total,
            "fallbacks_used_total": self.fallbacks_used_total,
            "failures_total": dict(self.failures_total),
            "prefetch_failures_total": self.prefetch_failures_total,
        }
