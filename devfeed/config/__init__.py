"""Feed source configuration."""

from devfeed.config.defaults import DEFAULT_FEED_SOURCES
from devfeed.config.loader import ConfigValidationError, load_sources_config
from devfeed.config.schemas import FeedSource, SourcesConfig, SourceTier


__all__ = [
    "DEFAULT_FEED_SOURCES",
    "ConfigValidationError",
    "FeedSource",
    "SourceTier",
    "SourcesConfig",
    "load_sources_config",
]
