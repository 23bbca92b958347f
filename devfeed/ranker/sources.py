"""Per-source ranking policy derived from source configuration."""

import math

from devfeed.config.schemas.base import SourceTier
from devfeed.config.schemas.sources import FeedSource
from devfeed.ranker.constants import (
    DEFAULT_SOURCE_PRIORITY_BY_TIER,
    DEFAULT_UNREAD_PER_SOURCE_BY_TIER,
    FEED_LOOKBACK_DAYS,
    PRIORITY_MAX,
    PRIORITY_MIN,
)


def resolve_source_tier(source: FeedSource) -> SourceTier:
    return source.tier or SourceTier.NORMAL


def resolve_lookback_days(source: FeedSource, cap_days: float = FEED_LOOKBACK_DAYS) -> float:
    """Lookback window for a source: its own setting, never above the cap."""
    configured = source.lookback_days
    if configured is not None and math.isfinite(configured) and configured > 0:
        return min(configured, cap_days)
    return cap_days


def resolve_unread_per_source_limit(source: FeedSource) -> int:
    """Unread items a source may show: explicit limit or tier default."""
    if source.max_unread_visible is not None:
        return source.max_unread_visible
    return DEFAULT_UNREAD_PER_SOURCE_BY_TIER[resolve_source_tier(source)]


def resolve_source_priority_score(source: FeedSource) -> float:
    """Explicit priority rounded and clamped to [0, 20], or the tier default."""
    if source.priority is not None and math.isfinite(source.priority):
        # Halves round up
        rounded = math.floor(source.priority + 0.5)
        return float(min(PRIORITY_MAX, max(PRIORITY_MIN, rounded)))
    return float(DEFAULT_SOURCE_PRIORITY_BY_TIER[resolve_source_tier(source)])
