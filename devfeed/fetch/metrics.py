"""Counters for the HTTP fetch layer, split by calling component."""

from dataclasses import dataclass, field
from typing import ClassVar

from devfeed.fetch.models import FetchErrorClass


@dataclass
class ComponentFetchStats:
    """Fetch counters for one component (article pages, feeds)."""

    requests: int = 0
    status_counts: dict[int, int] = field(default_factory=dict)
    failures: dict[str, int] = field(default_factory=dict)
    bytes_received: int = 0
    duration_ms_total: float = 0.0
    duration_ms_max: float = 0.0

    def to_dict(self) -> dict[str, int | float | dict[str, int]]:
        return {
            "requests": self.requests,
            "status_counts": {str(code): n for code, n in sorted(self.status_counts.items())},
            "failures": dict(sorted(self.failures.items())),
            "bytes_received": self.bytes_received,
            "duration_ms_total": round(self.duration_ms_total, 2),
            "duration_ms_max": round(self.duration_ms_max, 2),
        }


@dataclass
class FetchMetrics:
    """Process-wide fetch metrics.

    Attempts are counted per component so that article page loads and
    feed reads can be told apart. Trailing-slash retries are counted
    separately from the attempts they trigger.
    """

    components: dict[str, ComponentFetchStats] = field(default_factory=dict)
    slash_retries: int = 0

    _instance: ClassVar["FetchMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "FetchMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def stats(self, component: str) -> ComponentFetchStats:
        """Counters for a component, created on first use."""
        if component not in self.components:
            self.components[component] = ComponentFetchStats()
        return self.components[component]

    def record_attempt(
        self,
        component: str,
        duration_ms: float,
        status_code: int | None = None,
        bytes_received: int = 0,
        error_class: FetchErrorClass | None = None,
    ) -> None:
        """Record one finished fetch attempt.

        Args:
            component: Component that issued the request.
            duration_ms: Wall time of the attempt.
            status_code: Response status, when a response arrived.
            bytes_received: Body bytes read.
            error_class: Failure class, when the attempt failed.
        """
        stats = self.stats(component)
        stats.requests += 1
        stats.bytes_received += bytes_received
        stats.duration_ms_total += duration_ms
        stats.duration_ms_max = max(stats.duration_ms_max, duration_ms)
        if status_code:
            stats.status_counts[status_code] = stats.status_counts.get(status_code, 0) + 1
        if error_class is not None:
            key = error_class.value
            stats.failures[key] = stats.failures.get(key, 0) + 1

    def record_slash_retry(self) -> None:
        """Record a retry against the trailing-slash variant of a URL."""
        self.slash_retries += 1

    @property
    def total_requests(self) -> int:
        return sum(stats.requests for stats in self.components.values())

    def to_dict(self) -> dict[str, object]:
        """Convert metrics to a JSON-friendly dictionary."""
        return {
            "components": {
                name: stats.to_dict() for name, stats in sorted(self.components.items())
            },
            "slash_retries": self.slash_retries,
            "total_requests": self.total_requests,
        }
