"""Feed collectors."""

from devfeed.collectors.rss import (
    FeedCollector,
    excerpt_from_raw_content,
    is_within_fetch_window,
    matches_category_filter,
    normalize_article,
)
from devfeed.collectors.youtube import (
    YouTubeFeedResolver,
    is_youtube_feed_url,
    is_youtube_source,
    should_keep_item,
)


__all__ = [
    "FeedCollector",
    "YouTubeFeedResolver",
    "excerpt_from_raw_content",
    "is_within_fetch_window",
    "is_youtube_feed_url",
    "is_youtube_source",
    "matches_category_filter",
    "normalize_article",
    "should_keep_item",
]
