"""Session-scoped article cache with bounded speculative prefetching."""

import asyncio
import time
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import structlog

from devfeed.cache import Clock, InFlightRegistry, TimedCache
from devfeed.content.metrics import ContentMetrics
from devfeed.content.models import ArticleContent, ArticleContentError
from devfeed.content.urls import article_cache_key


logger = structlog.get_logger()

ArticleResult = ArticleContent | ArticleContentError
ArticleLoader = Callable[[str, str | None], Awaitable[ArticleResult]]


@dataclass(frozen=True)
class _PrefetchRequest:
    key: str
    url: str
    source_feed_url: str | None


class ClientArticleCache:
    """Per-session cache in front of an article loader.

    Has the same eviction rules as the resolver's cache but its own
    lifetime. Prefetches run at most ``max_concurrent_prefetches`` at a
    time; further requests wait in a FIFO queue, and a key that is cached,
    loading or already queued is not queued again. Prefetch failures are
    logged and swallowed.
    """

    def __init__(
        self,
        loader: ArticleLoader,
        success_ttl_seconds: float = 300.0,
        error_ttl_seconds: float = 30.0,
        max_entries: int = 300,
        max_concurrent_prefetches: int = 2,
        clock: Clock = time.monotonic,
    ) -> None:
        """Initialize the session cache.

        Args:
            loader: Resolves an article, e.g. ``ArticleContentResolver.resolve``.
            success_ttl_seconds: Lifetime of cached successes.
            error_ttl_seconds: Lifetime of cached failures.
            max_entries: Maximum number of cached results.
            max_concurrent_prefetches: Prefetches allowed to run at once.
            clock: Time source for the cache.
        """
        self._loader = loader
        self._success_ttl_seconds = success_ttl_seconds
        self._error_ttl_seconds = error_ttl_seconds
        self._max_concurrent_prefetches = max_concurrent_prefetches
        self._cache: TimedCache[ArticleResult] = TimedCache(max_entries, clock=clock)
        self._inflight: InFlightRegistry[ArticleResult] = InFlightRegistry()
        self._queue: deque[_PrefetchRequest] = deque()
        self._queued_keys: set[str] = set()
        self._active_prefetches = 0
        self._prefetch_tasks: set[asyncio.Task[None]] = set()
        self._metrics = ContentMetrics.get_instance()
        self._log = logger.bind(component="client_cache")

    @property
    def active_prefetches(self) -> int:
        return self._active_prefetches

    @property
    def queued_prefetches(self) -> int:
        return len(self._queue)

    def get_cached_article_content(
        self, url: str, source_feed_url: str | None = None
    ) -> ArticleResult | None:
        """Return a live cached result, or None."""
        return self._cache.get(article_cache_key(url, source_feed_url))

    async def load_article_content(
        self, url: str, source_feed_url: str | None = None
    ) -> ArticleResult:
        """Return the cached result or load it, sharing concurrent loads."""
        key = article_cache_key(url, source_feed_url)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        return await self._inflight.run(
            key, lambda: self._load_and_cache(key, url, source_feed_url)
        )

    async def _load_and_cache(
        self, key: str, url: str, source_feed_url: str | None
    ) -> ArticleResult:
        result = await self._loader(url, source_feed_url)
        ttl = (
            self._error_ttl_seconds
            if isinstance(result, ArticleContentError)
            else self._success_ttl_seconds
        )
        self._cache.set(key, result, ttl)
        return result

    def prefetch_article_content(
        self, url: str, source_feed_url: str | None = None
    ) -> None:
        """Queue a speculative load; returns immediately.

        Must be called from within a running event loop.
        """
        key = article_cache_key(url, source_feed_url)
        if (
            self._cache.get(key) is not None
            or self._inflight.is_pending(key)
            or key in self._queued_keys
        ):
            return

        self._queue.append(_PrefetchRequest(key, url, source_feed_url))
        self._queued_keys.add(key)
        self._run_queue()

    def _run_queue(self) -> None:
        while self._active_prefetches < self._max_concurrent_prefetches and self._queue:
            request = self._queue.popleft()
            self._queued_keys.discard(request.key)

            if self._cache.get(request.key) is not None or self._inflight.is_pending(
                request.key
            ):
                continue

            self._active_prefetches += 1
            task = asyncio.get_running_loop().create_task(self._prefetch(request))
            self._prefetch_tasks.add(task)
            task.add_done_callback(self._prefetch_tasks.discard)

    async def _prefetch(self, request: _PrefetchRequest) -> None:
        try:
            await self.load_article_content(request.url, request.source_feed_url)
        except Exception as e:  # noqa: BLE001
            self._metrics.record_prefetch_failure()
            self._log.info("prefetch_failed", url=request.url, error=str(e))
        finally:
            self._active_prefetches -= 1
            self._run_queue()

    async def wait_idle(self) -> None:
        """Wait until no prefetch is running or queued."""
        while self._prefetch_tasks:
            await asyncio.gather(*list(self._prefetch_tasks), return_exceptions=True)
