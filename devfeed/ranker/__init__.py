"""Article ranker for the developer feed.

This module turns a multi-source article stream into one bounded,
de-duplicated, deterministic list:
- Hard recency gate per source lookback window
- Scoring (recency, priority, categories, reading time, trend, noise)
- De-duplication by normalized link, title or id
- Ordering by publication time, then score
- Inbox limits per source and in total
"""

from devfeed.ranker.constants import (
    DEFAULT_READ_ARCHIVE_DAYS,
    DEFAULT_UNREAD_TOTAL_LIMIT,
    FEED_LOOKBACK_DAYS,
    READ_STORAGE_RETENTION_DAYS,
)
from devfeed.ranker.metrics import RankerMetrics
from devfeed.ranker.models import (
    DropReason,
    DroppedEntry,
    RankedCandidate,
    RankerResult,
    ScoreComponents,
)
from devfeed.ranker.quota import (
    InboxLimiter,
    apply_inbox_limits,
    default_read_key,
    prune_read_timestamps,
)
from devfeed.ranker.ranker import ArticleRanker, dedupe_key, rank, rank_articles
from devfeed.ranker.scorer import ArticleScorer, score_article_for_developer_feed
from devfeed.ranker.sources import (
    resolve_lookback_days,
    resolve_source_priority_score,
    resolve_unread_per_source_limit,
)


__all__ = [
    "DEFAULT_READ_ARCHIVE_DAYS",
    "DEFAULT_UNREAD_TOTAL_LIMIT",
    "FEED_LOOKBACK_DAYS",
    "READ_STORAGE_RETENTION_DAYS",
    "ArticleRanker",
    "ArticleScorer",
    "DropReason",
    "DroppedEntry",
    "InboxLimiter",
    "RankedCandidate",
    "RankerMetrics",
    "RankerResult",
    "ScoreComponents",
    "apply_inbox_limits",
    "dedupe_key",
    "default_read_key",
    "prune_read_timestamps",
    "rank",
    "rank_articles",
    "resolve_lookback_days",
    "resolve_source_priority_score",
    "resolve_unread_per_source_limit",
    "score_article_for_developer_feed",
]
