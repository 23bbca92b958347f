"""Unit tests for the sources YAML loader and schemas."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from devfeed.config import (
    DEFAULT_FEED_SOURCES,
    ConfigValidationError,
    FeedSource,
    SourcesConfig,
    SourceTier,
    load_sources_config,
)


VALID_YAML = """
version: "1.0"
sources:
  - id: cloudflare
    name: Cloudflare
    feed_url: https://blog.cloudflare.com/rss
    website: https://blog.cloudflare.com
    tier: core
    priority: 18
  - id: stripe
    name: Stripe
    feed_url: https://stripe.com/blog/feed.rss
    website: https://stripe.com/blog
    lookback_days: 3
    include_categories: [Engineering]
"""


def _write(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "sources.yaml"
    path.write_text(content, encoding="utf-8")
    return path


class TestLoadSourcesConfig:
    """Tests for load_sources_config."""

    def test_youtube_flags(self, tmp_path: Path) -> None:
        """Test that YouTube options load and default to keeping everything."""
        content = VALID_YAML + (
            "  - id: talks\n"
            "    name: Talks\n"
            "    feed_url: https://www.youtube.com/@exampletalks\n"
            "    website: https://www.youtube.com/@exampletalks\n"
            "    is_youtube: true\n"
            "    include_shorts: false\n"
        )

        config = load_sources_config(_write(tmp_path, content))

        talks = config.sources[2]
        assert talks.is_youtube
        assert not talks.include_shorts
        assert talks.include_live
        assert not config.sources[0].is_youtube

    def test_valid_file(self, tmp_path: Path) -> None:
        """Test that a valid file loads into typed sources."""
        config = load_sources_config(_write(tmp_path, VALID_YAML))

        cloudflare, stripe = config.sources
        assert cloudflare.tier == SourceTier.CORE
        assert cloudflare.priority == 18
        assert stripe.tier == SourceTier.NORMAL
        assert stripe.lookback_days == 3
        assert stripe.include_categories == ("Engineering",)

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test that a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_sources_config(tmp_path / "absent.yaml")

    def test_malformed_yaml(self, tmp_path: Path) -> None:
        """Test that broken YAML is reported as a validation error."""
        with pytest.raises(ConfigValidationError) as exc_info:
            load_sources_config(_write(tmp_path, "sources: [unclosed"))

        assert exc_info.value.errors[0]["type"] == "yaml_error"

    def test_error_locations(self, tmp_path: Path) -> None:
        """Test that schema errors carry their location."""
        content = VALID_YAML.replace("https://stripe.com/blog/feed.rss", "ftp://stripe.com/feed")

        with pytest.raises(ConfigValidationError) as exc_info:
            load_sources_config(_write(tmp_path, content))

        locations = [error["location"] for error in exc_info.value.errors]
        assert "sources.1.feed_url" in locations
        assert str(tmp_path) in exc_info.value.file_path

    def test_duplicate_ids(self, tmp_path: Path) -> None:
        """Test that duplicate source ids are rejected."""
        content = VALID_YAML.replace("id: stripe", "id: cloudflare")

        with pytest.raises(ConfigValidationError):
            load_sources_config(_write(tmp_path, content))

    def test_unknown_fields_rejected(self, tmp_path: Path) -> None:
        """Test that typos in field names fail loudly."""
        content = VALID_YAML.replace("priority: 18", "priorty: 18")

        with pytest.raises(ConfigValidationError):
            load_sources_config(_write(tmp_path, content))


class TestFeedSourceSchema:
    """Tests for FeedSource validation."""

    def test_non_positive_lookback_rejected(self) -> None:
        """Test that lookback must be positive."""
        with pytest.raises(ValidationError):
            FeedSource(
                id="x",
                name="X",
                feed_url="https://x.example/feed",
                website="https://x.example",
                lookback_days=0,
            )

    def test_frozen(self) -> None:
        """Test that sources are immutable."""
        source = DEFAULT_FEED_SOURCES[0]

        with pytest.raises(ValidationError):
            source.name = "Changed"  # type: ignore[misc]


class TestDefaultSources:
    """Tests for the built-in source list."""

    def test_defaults_are_valid(self) -> None:
        """Test that the built-in list passes root validation."""
        config = SourcesConfig(sources=list(DEFAULT_FEED_SOURCES))

        assert len(config.sources) == len(DEFAULT_FEED_SOURCES)
        assert all(s.feed_url.startswith("https://") for s in config.sources)

    def test_shipped_sources_file(self) -> None:
        """Test that the repository's sources.yaml loads."""
        path = Path(__file__).resolve().parents[3] / "config" / "sources.yaml"

        config = load_sources_config(path)

        assert {s.id for s in config.sources} >= {"openai", "cloudflare", "stripe"}
