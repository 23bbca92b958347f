"""Async HTTP client with size limits and failure classification."""

import asyncio
import ssl
import time
from io import BytesIO
from urllib.parse import urlsplit

import httpx
import structlog

from devfeed.content.urls import to_trailing_slash_url
from devfeed.fetch.config import FetchConfig
from devfeed.fetch.constants import (
    DEFAULT_CHUNK_SIZE,
    HTTP_STATUS_BAD_REQUEST,
    HTTP_STATUS_OK_MAX,
    HTTP_STATUS_OK_MIN,
    HTTP_STATUS_SERVER_ERROR_MAX,
    HTTP_STATUS_SERVER_ERROR_MIN,
    HTTP_STATUS_TOO_MANY_REQUESTS,
)
from devfeed.fetch.metrics import FetchMetrics
from devfeed.fetch.models import (
    FetchError,
    FetchErrorClass,
    FetchResult,
    ResponseSizeExceededError,
)
from devfeed.fetch.redact import redact_headers, redact_url_credentials


logger = structlog.get_logger()


class HttpFetcher:
    """Async HTTP GET client.

    Provides HTTP GET operations with:
    - Redirect following
    - Maximum response size enforcement via streaming reads
    - Classified errors instead of exceptions
    - Header redaction for logging
    - Metrics collection

    ``fetch`` never raises; every transport failure is returned as a
    FetchResult carrying a FetchError.
    """

    def __init__(
        self,
        config: FetchConfig,
        transport: httpx.AsyncBaseTransport | None = None,
        component: str = "fetch",
    ) -> None:
        """Initialize the HTTP fetcher.

        Args:
            config: Fetch configuration.
            transport: Optional transport override (used by tests).
            component: Component name bound to log events.
        """
        self._config = config
        self._transport = transport
        self._component = component
        self._log = logger.bind(component=component)

    @property
    def config(self) -> FetchConfig:
        """Configuration this fetcher was built with."""
        return self._config

    async def fetch(
        self,
        url: str,
        extra_headers: dict[str, str] | None = None,
        timeout_seconds: float | None = None,
    ) -> FetchResult:
        """Fetch a URL.

        The whole attempt, body read included, is bounded by
        ``timeout_seconds`` (the configured timeout by default).

        Args:
            url: The URL to fetch.
            extra_headers: Additional headers to include.
            timeout_seconds: Total budget for this attempt.

        Returns:
            FetchResult with status, body and error information.
        """
        start_time_ns = time.perf_counter_ns()
        parsed = urlsplit(url)

        log = self._log.bind(
            url=redact_url_credentials(url),
            domain=parsed.hostname,
        )

        if parsed.scheme not in ("http", "https") or not parsed.hostname:
            result = self._error_result(
                url,
                FetchErrorClass.INVALID_URL,
                f"Unsupported or malformed URL: {redact_url_credentials(url)}",
            )
        else:
            headers = self._build_headers(extra_headers)
            budget = self._config.timeout_seconds if timeout_seconds is None else timeout_seconds
            result = await self._execute(url, headers, log, budget)

        duration_ms = (time.perf_counter_ns() - start_time_ns) / 1_000_000
        FetchMetrics.get_instance().record_attempt(
            self._component,
            duration_ms,
            status_code=result.status_code,
            bytes_received=result.body_size,
            error_class=result.error.error_class if result.error else None,
        )

        log.info(
            "fetch_complete",
            status_code=result.status_code,
            bytes=result.body_size,
            duration_ms=round(duration_ms, 2),
            error_class=result.error.error_class.value if result.error else None,
        )

        return result

    def _build_headers(self, extra_headers: dict[str, str] | None) -> dict[str, str]:
        headers: dict[str, str] = {
            "User-Agent": self._config.user_agent,
            "Accept": self._config.accept,
            "Accept-Encoding": "gzip, deflate",
        }
        headers.update(self._config.headers)

        if extra_headers:
            headers.update(extra_headers)

        return headers

    async def _execute(
        self,
        url: str,
        headers: dict[str, str],
        log: structlog.stdlib.BoundLogger,
        budget_seconds: float,
    ) -> FetchResult:
        """Execute a single HTTP request.

        Args:
            url: URL to fetch.
            headers: Request headers.
            log: Bound logger.
            budget_seconds: Wall-clock limit for the request and body read.

        Returns:
            FetchResult from the request.
        """
        log.debug("fetch_start", headers=redact_headers(headers))

        try:
            async with (
                asyncio.timeout(budget_seconds),
                httpx.AsyncClient(
                    timeout=self._config.timeout_seconds,
                    follow_redirects=True,
                    verify=self._config.verify_tls,
                    transport=self._transport,
                ) as client,
                client.stream("GET", url, headers=headers) as response,
            ):
                content_length = response.headers.get("content-length")
                if content_length and content_length.isdigit():
                    size = int(content_length)
                    if size > self._config.max_response_size_bytes:
                        return self._error_result(
                            str(response.url),
                            FetchErrorClass.RESPONSE_SIZE_EXCEEDED,
                            f"Response size {size} exceeds limit "
                            f"{self._config.max_response_size_bytes}",
                            status_code=response.status_code,
                        )

                body = await self._read_body_with_limit(response)

                return FetchResult(
                    status_code=response.status_code,
                    final_url=str(response.url),
                    headers=dict(response.headers),
                    body_bytes=body,
                    encoding=response.charset_encoding,
                    error=self._classify_http_error(response.status_code),
                )

        except httpx.TimeoutException as e:
            return self._error_result(
                url, FetchErrorClass.NETWORK_TIMEOUT, f"Request timed out: {e}"
            )

        except TimeoutError:
            return self._error_result(
                url,
                FetchErrorClass.NETWORK_TIMEOUT,
                f"Request timed out after {budget_seconds:g}s",
            )

        except ResponseSizeExceededError as e:
            return self._error_result(
                url, FetchErrorClass.RESPONSE_SIZE_EXCEEDED, str(e)
            )

        except (httpx.InvalidURL, httpx.UnsupportedProtocol) as e:
            return self._error_result(
                url, FetchErrorClass.INVALID_URL, f"Invalid URL: {e}"
            )

        except httpx.ConnectError as e:
            if _is_ssl_error(e):
                return self._error_result(
                    url, FetchErrorClass.SSL_ERROR, f"TLS handshake failed: {e}"
                )
            return self._error_result(
                url, FetchErrorClass.CONNECTION_ERROR, f"Connection failed: {e}"
            )

        except Exception as e:  # noqa: BLE001
            return self._error_result(
                url, FetchErrorClass.UNKNOWN, f"Unexpected error: {e}"
            )

    async def _read_body_with_limit(self, response: httpx.Response) -> bytes:
        """Read response body with size limit.

        Args:
            response: Streamed HTTP response.

        Returns:
            Response body bytes.

        Raises:
            ResponseSizeExceededError: If the size limit is exceeded.
        """
        buffer = BytesIO()
        total_read = 0
        max_size = self._config.max_response_size_bytes

        async for chunk in response.aiter_bytes(chunk_size=DEFAULT_CHUNK_SIZE):
            total_read += len(chunk)
            if total_read > max_size:
                msg = (
                    f"Response size exceeded limit of {max_size} bytes "
                    f"(read {total_read} bytes)"
                )
                raise ResponseSizeExceededError(msg)
            buffer.write(chunk)

        return buffer.getvalue()

    def _classify_http_error(self, status_code: int) -> FetchError | None:
        """Classify HTTP status code as error.

        Args:
            status_code: HTTP status code.

        Returns:
            FetchError if status indicates error, None otherwise.
        """
        if HTTP_STATUS_OK_MIN <= status_code < HTTP_STATUS_OK_MAX:
            return None

        if status_code == HTTP_STATUS_TOO_MANY_REQUESTS:
            return FetchError(
                error_class=FetchErrorClass.RATE_LIMITED,
                message="Rate limited (429 Too Many Requests)",
                status_code=status_code,
            )

        if HTTP_STATUS_BAD_REQUEST <= status_code < HTTP_STATUS_SERVER_ERROR_MIN:
            return FetchError(
                error_class=FetchErrorClass.HTTP_4XX,
                message=f"Client error ({status_code})",
                status_code=status_code,
            )

        if HTTP_STATUS_SERVER_ERROR_MIN <= status_code < HTTP_STATUS_SERVER_ERROR_MAX:
            return FetchError(
                error_class=FetchErrorClass.HTTP_5XX,
                message=f"Server error ({status_code})",
                status_code=status_code,
            )

        # 1xx and unfollowed 3xx
        return FetchError(
            error_class=FetchErrorClass.UNKNOWN,
            message=f"Unexpected status ({status_code})",
            status_code=status_code,
        )

    def _error_result(
        self,
        url: str,
        error_class: FetchErrorClass,
        message: str,
        status_code: int | None = None,
    ) -> FetchResult:
        return FetchResult(
            status_code=status_code or 0,
            final_url=url or "about:blank",
            error=FetchError(
                error_class=error_class,
                message=message or error_class.value,
                status_code=status_code,
            ),
        )


def _is_ssl_error(exc: BaseException) -> bool:
    """Walk the exception chain looking for an SSL failure."""
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        if isinstance(current, ssl.SSLError):
            return True
        seen.add(id(current))
        current = current.__cause__ or current.__context__
    return "CERTIFICATE_VERIFY_FAILED" in str(exc)


async def fetch_with_trailing_slash_retry(
    fetcher: HttpFetcher,
    url: str,
    extra_headers: dict[str, str] | None = None,
) -> FetchResult:
    """Fetch a URL, retrying once against its trailing-slash variant.

    Some sites answer 404 for ``/post`` but serve ``/post/``. The variant's
    response is kept only when it succeeds; otherwise the original failure
    is returned. When the first attempt got no response at all, the
    variant's outcome is returned as is.

    Both attempts share one budget of ``fetcher.config.timeout_seconds``;
    the retry only gets what the first attempt left over, and is skipped
    when nothing is left.

    Args:
        fetcher: HTTP fetcher.
        url: URL to fetch.
        extra_headers: Additional headers to include.

    Returns:
        The successful response, or the most informative failure.
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + fetcher.config.timeout_seconds

    result = await fetcher.fetch(url, extra_headers)
    if result.is_success:
        return result

    fallback_url = to_trailing_slash_url(url)
    if fallback_url is None:
        return result

    remaining = deadline - loop.time()
    if remaining <= 0:
        return result

    FetchMetrics.get_instance().record_slash_retry()
    retry = await fetcher.fetch(fallback_url, extra_headers, timeout_seconds=remaining)

    if retry.is_success:
        return retry
    if result.error is not None and not result.error.has_response:
        return retry
    return result
