"""Unit tests for the session article cache and prefetch queue."""

import asyncio
from collections.abc import Generator

import pytest

from devfeed.content.client_cache import ClientArticleCache
from devfeed.content.metrics import ContentMetrics
from devfeed.content.models import ArticleContent, ArticleContentError, FailureReason
from tests.helpers.time import ManualClock


@pytest.fixture(autouse=True)
def reset_metrics() -> Generator[None]:
    """Reset singleton before and after each test."""
    ContentMetrics.reset()
    yield
    ContentMetrics.reset()


class FakeLoader:
    """Records calls and answers with content, an error, or an exception."""

    def __init__(self, fail_with: Exception | None = None, error: bool = False) -> None:
        self.calls: list[tuple[str, str | None]] = []
        self.gate: asyncio.Event | None = None
        self.fail_with = fail_with
        self.error = error

    async def __call__(
        self, url: str, source_feed_url: str | None
    ) -> ArticleContent | ArticleContentError:
        self.calls.append((url, source_feed_url))
        if self.gate is not None:
            await self.gate.wait()
        else:
            await asyncio.sleep(0)
        if self.fail_with is not None:
            raise self.fail_with
        if self.error:
            return ArticleContentError(
                error="Request timed out", reason=FailureReason.TIMEOUT
            )
        return ArticleContent(title=url, content=f"<p>{url}</p>")


def _url(n: int) -> str:
    return f"https://blog.example.com/posts/{n}"


class TestLoadArticleContent:
    """Tests for load_article_content."""

    def test_caches_result(self) -> None:
        """Test that repeated loads reuse the cached value."""
        loader = FakeLoader()
        cache = ClientArticleCache(loader, clock=ManualClock())

        async def scenario() -> None:
            await cache.load_article_content(_url(1))
            await cache.load_article_content(_url(1) + "/")

        asyncio.run(scenario())

        assert len(loader.calls) == 1
        assert cache.get_cached_article_content(_url(1)) is not None

    def test_concurrent_loads_share(self) -> None:
        """Test that overlapping loads call the loader once."""
        loader = FakeLoader()
        cache = ClientArticleCache(loader, clock=ManualClock())

        async def scenario() -> None:
            await asyncio.gather(*(cache.load_article_content(_url(1)) for _ in range(3)))

        asyncio.run(scenario())

        assert len(loader.calls) == 1

    def test_errors_expire_after_error_ttl(self) -> None:
        """Test that failures are cached for 30 seconds only."""
        clock = ManualClock()
        cache = ClientArticleCache(FakeLoader(error=True), clock=clock)

        asyncio.run(cache.load_article_content(_url(1)))
        clock.advance(29)
        assert cache.get_cached_article_content(_url(1)) is not None

        clock.advance(1)
        assert cache.get_cached_article_content(_url(1)) is None

    def test_successes_expire_after_success_ttl(self) -> None:
        """Test that successes are cached for five minutes."""
        clock = ManualClock()
        cache = ClientArticleCache(FakeLoader(), clock=clock)

        asyncio.run(cache.load_article_content(_url(1)))
        clock.advance(299)
        assert cache.get_cached_article_content(_url(1)) is not None

        clock.advance(1)
        assert cache.get_cached_article_content(_url(1)) is None

    def test_bounded_entries(self) -> None:
        """Test that the oldest entries are evicted."""
        cache = ClientArticleCache(FakeLoader(), max_entries=2, clock=ManualClock())

        async def scenario() -> None:
            for n in range(3):
                await cache.load_article_content(_url(n))

        asyncio.run(scenario())

        assert cache.get_cached_article_content(_url(0)) is None
        assert cache.get_cached_article_content(_url(2)) is not None


class TestPrefetch:
    """Tests for prefetch_article_content."""

    def test_concurrency_is_bounded(self) -> None:
        """Test that at most two prefetches run and the rest queue."""
        loader = FakeLoader()
        cache = ClientArticleCache(loader, clock=ManualClock())

        async def scenario() -> tuple[int, int]:
            loader.gate = asyncio.Event()
            for n in range(5):
                cache.prefetch_article_content(_url(n))
            counts = (cache.active_prefetches, cache.queued_prefetches)
            loader.gate.set()
            await cache.wait_idle()
            return counts

        active, queued = asyncio.run(scenario())

        assert (active, queued) == (2, 3)
        assert [call[0] for call in loader.calls] == [_url(n) for n in range(5)]
        assert cache.active_prefetches == 0
        assert all(cache.get_cached_article_content(_url(n)) is not None for n in range(5))

    def test_duplicates_not_queued(self) -> None:
        """Test that queued, loading and cached keys are skipped."""
        loader = FakeLoader()
        cache = ClientArticleCache(loader, max_concurrent_prefetches=1, clock=ManualClock())

        async def scenario() -> None:
            loader.gate = asyncio.Event()
            cache.prefetch_article_content(_url(1))
            cache.prefetch_article_content(_url(2))
            cache.prefetch_article_content(_url(2))
            assert cache.queued_prefetches == 1
            loader.gate.set()
            await cache.wait_idle()
            cache.prefetch_article_content(_url(1))
            await cache.wait_idle()

        asyncio.run(scenario())

        assert len(loader.calls) == 2

    def test_failures_are_swallowed(self) -> None:
        """Test that a crashing loader does not break the queue."""
        loader = FakeLoader(fail_with=RuntimeError("boom"))
        cache = ClientArticleCache(loader, clock=ManualClock())

        async def scenario() -> None:
            cache.prefetch_article_content(_url(1))
            cache.prefetch_article_content(_url(2))
            cache.prefetch_article_content(_url(3))
            await cache.wait_idle()

        asyncio.run(scenario())

        assert len(loader.calls) == 3
        assert cache.get_cached_article_content(_url(1)) is None
        assert ContentMetrics.get_instance().prefetch_failures_total == 3
