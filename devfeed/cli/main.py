"""CLI commands for the developer feed."""

import asyncio
import json
import logging
import sys
import uuid
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import click
import structlog
from pydantic import TypeAdapter, ValidationError

from devfeed.collectors import FeedCollector
from devfeed.config import (
    DEFAULT_FEED_SOURCES,
    ConfigValidationError,
    FeedSource,
    load_sources_config,
)
from devfeed.content.feeds import build_feed_reader
from devfeed.content.models import ArticleContentError
from devfeed.content.resolver import build_resolver
from devfeed.content.text import display_reading_time
from devfeed.data_model.article import Article
from devfeed.observability.logging import (
    bind_run_context,
    clear_run_context,
    configure_logging,
)
from devfeed.ranker import apply_inbox_limits, rank_articles
from devfeed.ranker.dates import parse_timestamp
from devfeed.render import nodes_to_dicts, transform_html_to_nodes
from devfeed.settings import AppSettings, get_settings


logger = structlog.get_logger()

_ARTICLES_ADAPTER = TypeAdapter(list[Article])


def _echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, ensure_ascii=False))


def _load_sources(path: Path | None) -> list[FeedSource]:
    """Load sources from YAML, or fall back to the built-in list; exit on error."""
    if path is None:
        return list(DEFAULT_FEED_SOURCES)
    try:
        return list(load_sources_config(path).sources)
    except ConfigValidationError as e:
        click.echo(f"Configuration validation failed: {e.file_path}", err=True)
        for error in e.errors:
            click.echo(f"  - {error['location']}: {error['message']}", err=True)
        sys.exit(1)


def _parse_now(value: str | None) -> datetime:
    if value is None:
        return datetime.now(UTC)
    parsed = parse_timestamp(value)
    if parsed is None:
        raise click.BadParameter(f"not a timestamp: {value}", param_hint="--now")
    return parsed


@click.group()
@click.version_option(version="0.1.0")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Log level (default: from DEVFEED_LOG_LEVEL, else INFO).",
)
@click.option(
    "--json-logs/--no-json-logs",
    default=None,
    help="Use JSON format for logs (default: from DEVFEED_LOG_JSON).",
)
@click.pass_context
def cli(ctx: click.Context, log_level: str | None, json_logs: bool | None) -> None:
    """Developer feed: rank engineering blogs and read articles safely."""
    settings = get_settings()
    level_name = (log_level or settings.log_level).upper()
    configure_logging(
        level=getattr(logging, level_name, logging.INFO),
        output=sys.stderr,
        json_format=settings.log_json if json_logs is None else json_logs,
    )
    bind_run_context(str(uuid.uuid4()), command=ctx.invoked_subcommand)
    ctx.call_on_close(clear_run_context)
    ctx.obj = settings


@cli.command()
@click.argument("sources_path", type=click.Path(exists=True, path_type=Path))
@click.argument("articles_path", type=click.Path(exists=True, path_type=Path))
@click.option("--max-total", type=int, default=None, help="Truncate the ranked list.")
@click.option("--now", "now_text", default=None, help="Reference time (ISO-8601).")
@click.pass_obj
def rank(
    settings: AppSettings,
    sources_path: Path,
    articles_path: Path,
    max_total: int | None,
    now_text: str | None,
) -> None:
    """Rank the articles in ARTICLES_PATH (JSON) against SOURCES_PATH (YAML)."""
    sources = _load_sources(sources_path)
    try:
        articles = _ARTICLES_ADAPTER.validate_json(articles_path.read_bytes())
    except ValidationError as e:
        click.echo(f"Invalid articles file: {articles_path}", err=True)
        for error in e.errors():
            location = ".".join(str(part) for part in error["loc"])
            click.echo(f"  - {location}: {error['msg']}", err=True)
        sys.exit(1)

    ranked = rank_articles(
        articles,
        sources,
        now=_parse_now(now_text),
        max_total=max_total,
        lookback_cap_days=settings.lookback_cap_days,
    )
    _echo_json([article.model_dump(mode="json") for article in ranked])


sources_option = click.option(
    "--sources",
    "sources_path",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Path to sources.yaml (default: built-in sources).",
)


@cli.command()
@sources_option
@click.option("--limit", type=int, default=None, help="Total unread limit.")
@click.option("--json", "as_json", is_flag=True, help="Print articles as JSON.")
@click.pass_obj
def inbox(
    settings: AppSettings,
    sources_path: Path | None,
    limit: int | None,
    as_json: bool,
) -> None:
    """Collect all sources and print the inbox."""
    sources = _load_sources(sources_path)
    unread_limit = settings.unread_total_limit if limit is None else limit
    log = logger.bind(component="cli")

    async def collect() -> list[Article]:
        collector = FeedCollector(
            build_feed_reader(settings),
            lookback_cap_days=settings.lookback_cap_days,
        )
        return await collector.fetch_all(sources)

    ranked = asyncio.run(collect())
    selected = apply_inbox_limits(ranked, sources, unread_total_limit=unread_limit)
    log.info("inbox_ready", ranked=len(ranked), selected=len(selected))

    if as_json:
        _echo_json([article.model_dump(mode="json") for article in selected])
        return

    for article in selected:
        click.echo(f"{article.published_at[:10]}  [{article.source_name}] {article.title}")
        click.echo(f"    {article.link}")


@cli.command()
@click.argument("url")
@click.option("--feed-url", default=None, help="Feed the article came from.")
@sources_option
@click.pass_obj
def resolve(
    settings: AppSettings, url: str, feed_url: str | None, sources_path: Path | None
) -> None:
    """Fetch and clean the article at URL; print the result as JSON.

    The sources' feeds are searched when the page cannot be used.
    """
    resolver = build_resolver(settings, sources=_load_sources(sources_path))
    result = asyncio.run(resolver.resolve(url, feed_url))
    _echo_json(result.model_dump(mode="json"))
    if isinstance(result, ArticleContentError):
        sys.exit(1)


@cli.command()
@click.argument("url")
@click.option("--feed-url", default=None, help="Feed the article came from.")
@sources_option
@click.pass_obj
def render(
    settings: AppSettings, url: str, feed_url: str | None, sources_path: Path | None
) -> None:
    """Resolve the article at URL and print its node tree as JSON."""
    resolver = build_resolver(settings, sources=_load_sources(sources_path))
    result = asyncio.run(resolver.resolve(url, feed_url))
    if isinstance(result, ArticleContentError):
        _echo_json(result.model_dump(mode="json"))
        sys.exit(1)

    _echo_json(
        {
            "title": result.title,
            "content_mode": result.content_mode.value,
            "reading_time": display_reading_time(result.content, result.reading_time_label),
            "nodes": nodes_to_dicts(transform_html_to_nodes(result.content)),
        }
    )


if __name__ == "__main__":
    cli()
