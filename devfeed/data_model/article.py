"""Article model shared by the collectors, the ranker and the reader."""

from devfeed.data_model.base import StrictBaseModel


class Article(StrictBaseModel):
    """A normalized feed item.

    Immutable once produced by a fetch; a new fetch cycle produces new
    values. ``published_at`` is kept as the feed's ISO-8601 text so that
    unparseable dates reach the ranker, which drops them.
    """

    id: str
    title: str
    source_id: str
    source_name: str
    source_color: str = "#6b7280"
    source_feed_url: str | None = None
    link: str
    published_at: str
    excerpt: str = ""
    categories: tuple[str, ...] = ()
    author_name: str | None = None
    author_avatar_url: str | None = None
    reading_time_label: str | None = None


class FeedFetchResult(StrictBaseModel):
    """Outcome of collecting one source's feed."""

    source_id: str
    articles: tuple[Article, ...] = ()
    error: str | None = None
