"""Configuration schemas."""

from devfeed.config.schemas.base import SourceTier
from devfeed.config.schemas.sources import FeedSource, SourcesConfig


__all__ = ["FeedSource", "SourceTier", "SourcesConfig"]
