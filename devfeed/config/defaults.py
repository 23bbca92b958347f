"""Built-in feed sources."""

from devfeed.config.schemas import FeedSource, SourceTier


DEFAULT_FEED_SOURCES: tuple[FeedSource, ...] = (
    FeedSource(
        id="openai",
        name="OpenAI",
        feed_url="https://openai.com/news/rss.xml",
        website="https://openai.com/news",
        color="#10a37f",
        tier=SourceTier.CORE,
        include_categories=("Engineering",),
    ),
    FeedSource(
        id="cloudflare",
        name="Cloudflare",
        feed_url="https://blog.cloudflare.com/rss",
        website="https://blog.cloudflare.com",
        color="#f6821f",
        tier=SourceTier.CORE,
    ),
    FeedSource(
        id="stripe",
        name="Stripe",
        feed_url="https://stripe.com/blog/feed.rss",
        website="https://stripe.com/blog",
        color="#635bff",
    ),
    FeedSource(
        id="netflix",
        name="Netflix",
        feed_url="https://netflixtechblog.com/feed",
        website="https://netflixtechblog.com",
        color="#e50914",
    ),
    FeedSource(
        id="github",
        name="GitHub",
        feed_url="https://github.blog/engineering.atom",
        website="https://github.blog/category/engineering",
        color="#24292f",
    ),
)
