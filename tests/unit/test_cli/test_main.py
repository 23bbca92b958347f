"""Unit tests for the CLI commands."""

import json
import logging
from collections.abc import Generator, Sequence
from pathlib import Path

import httpx
import pytest
import structlog
from click.testing import CliRunner

from devfeed.cli import main as cli_module
from devfeed.cli.main import cli
from devfeed.config.schemas import FeedSource
from devfeed.content.resolver import ArticleContentResolver, build_resolver
from devfeed.settings import AppSettings
from tests.helpers.factories import make_article
from tests.helpers.http import RSS_HEADERS, RouteTransport, html_page, rss_feed
from tests.helpers.time import FIXED_NOW


SOURCES_YAML = """
sources:
  - id: blog
    name: Blog
    feed_url: https://blog.example.com/feed.xml
    website: https://blog.example.com
"""

ARTICLE_URL = "https://blog.example.com/posts/postgres"
ARTICLE_BODY = (
    "<p>Our primary database cluster had grown to hold several terabytes of data, "
    "and routine maintenance windows were becoming longer every quarter.</p>"
    "<p>We evaluated logical replication, sharding by tenant, and a move to a new "
    "storage engine, measuring write amplification and tail latency for each.</p>"
)


@pytest.fixture(autouse=True)
def reset_logging() -> Generator[None]:
    """Drop logging configured against the runner's captured streams."""
    yield
    structlog.reset_defaults()
    logging.basicConfig(force=True)


def _write_inputs(tmp_path: Path) -> tuple[Path, Path]:
    sources_path = tmp_path / "sources.yaml"
    sources_path.write_text(SOURCES_YAML, encoding="utf-8")

    articles = [
        make_article("old", age_days=3),
        make_article("new", age_days=1),
        make_article("stale", age_days=20),
        make_article("other", "stranger"),
    ]
    articles_path = tmp_path / "articles.json"
    articles_path.write_text(
        json.dumps([a.model_dump(mode="json") for a in articles]), encoding="utf-8"
    )
    return sources_path, articles_path


def _offline_resolver(
    monkeypatch: pytest.MonkeyPatch,
    transport: httpx.MockTransport,
    feed_transport: httpx.MockTransport | None = None,
) -> None:
    def factory(
        settings: AppSettings, sources: Sequence[FeedSource] = ()
    ) -> ArticleContentResolver:
        return build_resolver(
            settings,
            sources=sources,
            article_transport=transport,
            feed_transport=feed_transport or RouteTransport(),
        )

    monkeypatch.setattr(cli_module, "build_resolver", factory)


class TestRankCommand:
    """Tests for the rank command."""

    def test_ranks_articles(self, tmp_path: Path) -> None:
        """Test that the command prints ranked articles as JSON."""
        sources_path, articles_path = _write_inputs(tmp_path)

        result = CliRunner().invoke(
            cli,
            [
                "--log-level",
                "ERROR",
                "rank",
                str(sources_path),
                str(articles_path),
                "--now",
                FIXED_NOW.isoformat(),
            ],
        )

        assert result.exit_code == 0
        assert [a["id"] for a in json.loads(result.stdout)] == ["blog::new", "blog::old"]

    def test_max_total(self, tmp_path: Path) -> None:
        """Test truncation from the command line."""
        sources_path, articles_path = _write_inputs(tmp_path)

        result = CliRunner().invoke(
            cli,
            [
                "--log-level",
                "ERROR",
                "rank",
                str(sources_path),
                str(articles_path),
                "--now",
                FIXED_NOW.isoformat(),
                "--max-total",
                "1",
            ],
        )

        assert [a["id"] for a in json.loads(result.stdout)] == ["blog::new"]

    def test_invalid_sources_exit_code(self, tmp_path: Path) -> None:
        """Test that bad configuration exits with status 1."""
        _, articles_path = _write_inputs(tmp_path)
        bad = tmp_path / "bad.yaml"
        bad.write_text("sources:\n  - id: x\n", encoding="utf-8")

        result = CliRunner().invoke(
            cli, ["--log-level", "ERROR", "rank", str(bad), str(articles_path)]
        )

        assert result.exit_code == 1

    def test_invalid_now(self, tmp_path: Path) -> None:
        """Test that an unparseable --now is a usage error."""
        sources_path, articles_path = _write_inputs(tmp_path)

        result = CliRunner().invoke(
            cli,
            [
                "--log-level",
                "ERROR",
                "rank",
                str(sources_path),
                str(articles_path),
                "--now",
                "someday",
            ],
        )

        assert result.exit_code == 2


class TestResolveAndRenderCommands:
    """Tests for the resolve and render commands."""

    def test_resolve_prints_content(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test a successful resolution."""
        _offline_resolver(
            monkeypatch,
            RouteTransport({ARTICLE_URL: (200, html_page("Sharding Postgres", ARTICLE_BODY))}),
        )

        result = CliRunner().invoke(cli, ["--log-level", "ERROR", "resolve", ARTICLE_URL])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["kind"] == "content"
        assert data["title"] == "Sharding Postgres"

    def test_resolve_failure_exit_code(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that failures print the error and exit with status 1."""
        _offline_resolver(monkeypatch, RouteTransport({ARTICLE_URL: (500, "boom")}))

        result = CliRunner().invoke(cli, ["--log-level", "ERROR", "resolve", ARTICLE_URL])

        assert result.exit_code == 1
        assert json.loads(result.stdout)["error"] == "Failed to fetch article (HTTP 500)"

    def test_render_prints_nodes(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that render prints the node tree."""
        _offline_resolver(
            monkeypatch,
            RouteTransport({ARTICLE_URL: (200, html_page("Sharding Postgres", ARTICLE_BODY))}),
        )

        result = CliRunner().invoke(cli, ["--log-level", "ERROR", "render", ARTICLE_URL])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["content_mode"] == "full"
        assert data["reading_time"].endswith(" min read")
        assert any(node.get("tag") == "p" for node in _walk(data["nodes"]))

    def test_sources_option_feeds_the_fallback(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test that --sources feeds are searched when the page fails."""
        sources_path, _ = _write_inputs(tmp_path)
        feed = rss_feed(
            "Blog",
            [{"title": "Sharding Postgres", "link": ARTICLE_URL, "content:encoded": ARTICLE_BODY}],
        )
        _offline_resolver(
            monkeypatch,
            RouteTransport({ARTICLE_URL: (500, "boom")}),
            RouteTransport({"https://blog.example.com/feed.xml": (200, feed, RSS_HEADERS)}),
        )
        runner = CliRunner()

        without = runner.invoke(cli, ["--log-level", "ERROR", "resolve", ARTICLE_URL])
        with_sources = runner.invoke(
            cli,
            ["--log-level", "ERROR", "render", ARTICLE_URL, "--sources", str(sources_path)],
        )

        assert without.exit_code == 1
        assert with_sources.exit_code == 0
        assert json.loads(with_sources.stdout)["title"] == "Sharding Postgres"


def _walk(nodes: list[dict]) -> list[dict]:
    found: list[dict] = []
    for node in nodes:
        found.append(node)
        found.extend(_walk(node.get("children", [])))
    return found
