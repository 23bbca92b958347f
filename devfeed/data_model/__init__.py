"""Shared data models."""

from devfeed.data_model.article import Article, FeedFetchResult
from devfeed.data_model.base import StrictBaseModel


__all__ = ["Article", "FeedFetchResult", "StrictBaseModel"]
