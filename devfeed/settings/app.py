"""Application settings powered by Pydantic BaseSettings."""

from typing import Annotated

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BROWSER_USER_AGENT = "Mozilla/5.0 (compatible; RSSDevFeed/1.0)"
FEED_USER_AGENT = "RSSDevFeed/1.0"


class AppSettings(BaseSettings):
    """Centralized environment configuration.

    Every field can be overridden with a ``DEVFEED_`` prefixed environment
    variable, e.g. ``DEVFEED_ARTICLE_TIMEOUT_SECONDS=20``.
    """

    model_config = SettingsConfigDict(
        env_prefix="DEVFEED_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        frozen=True,
    )

    log_level: str = "INFO"
    log_json: bool = True

    # Article page fetch
    article_timeout_seconds: Annotated[float, Field(gt=0, le=120)] = 15.0
    article_user_agent: str = BROWSER_USER_AGENT

    # Feed fetch (used by collectors and by the content fallback)
    feed_timeout_seconds: Annotated[float, Field(gt=0, le=120)] = 10.0
    feed_user_agent: str = FEED_USER_AGENT
    feed_verify_tls: bool = False

    # Article result cache
    article_cache_ttl_seconds: Annotated[float, Field(gt=0)] = 300.0
    article_error_cache_ttl_seconds: Annotated[float, Field(gt=0)] = 30.0
    article_cache_max_entries: Annotated[int, Field(ge=1)] = 300

    # Parsed feed cache
    feed_cache_ttl_seconds: Annotated[float, Field(gt=0)] = 300.0
    feed_cache_max_entries: Annotated[int, Field(ge=1)] = 20

    # Client session
    max_concurrent_prefetches: Annotated[int, Field(ge=1, le=16)] = 2

    # Ranking
    lookback_cap_days: Annotated[float, Field(gt=0)] = 7.0
    unread_total_limit: Annotated[int, Field(ge=0)] = 20


def get_settings() -> AppSettings:
    """Get a settings instance."""
    return AppSettings()
