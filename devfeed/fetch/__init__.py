"""HTTP fetch layer.

Provides async HTTP GET operations with:
- Maximum response size enforcement
- Classified, never-raised failures
- A trailing-slash retry helper for article pages
- Header redaction for security
- Metrics collection for observability
"""

from devfeed.fetch.client import HttpFetcher, fetch_with_trailing_slash_retry
from devfeed.fetch.config import FetchConfig
from devfeed.fetch.constants import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_MAX_RESPONSE_SIZE_BYTES,
    HTTP_STATUS_OK_MAX,
    HTTP_STATUS_OK_MIN,
)
from devfeed.fetch.metrics import FetchMetrics
from devfeed.fetch.models import (
    FetchError,
    FetchErrorClass,
    FetchResult,
    ResponseSizeExceededError,
)
from devfeed.fetch.redact import redact_headers, redact_url_credentials


__all__ = [
    # Client
    "HttpFetcher",
    "fetch_with_trailing_slash_retry",
    # Config
    "FetchConfig",
    # Models
    "FetchResult",
    "FetchError",
    "FetchErrorClass",
    "ResponseSizeExceededError",
    # Constants
    "HTTP_STATUS_OK_MIN",
    "HTTP_STATUS_OK_MAX",
    "DEFAULT_MAX_RESPONSE_SIZE_BYTES",
    "DEFAULT_CHUNK_SIZE",
    # Metrics
    "FetchMetrics",
    # Redaction
    "redact_headers",
    "redact_url_credentials",
]
