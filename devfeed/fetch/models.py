"""Data models for the HTTP fetch layer."""

from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from devfeed.fetch.constants import HTTP_STATUS_OK_MAX, HTTP_STATUS_OK_MIN


class FetchErrorClass(str, Enum):
    """Classification of fetch errors for metrics and failure reasons.

    - NETWORK_TIMEOUT: Request timed out
    - CONNECTION_ERROR: Could not establish connection
    - RESPONSE_SIZE_EXCEEDED: Response exceeded max size limit
    - HTTP_4XX: 4xx client error (except 429)
    - HTTP_5XX: 5xx server error
    - RATE_LIMITED: 429 Too Many Requests
    - SSL_ERROR: SSL/TLS certificate or handshake error
    - INVALID_URL: URL could not be requested at all
    - UNKNOWN: Unclassified error
    """

    NETWORK_TIMEOUT = "NETWORK_TIMEOUT"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    RESPONSE_SIZE_EXCEEDED = "RESPONSE_SIZE_EXCEEDED"
    HTTP_4XX = "HTTP_4XX"
    HTTP_5XX = "HTTP_5XX"
    RATE_LIMITED = "RATE_LIMITED"
    SSL_ERROR = "SSL_ERROR"
    INVALID_URL = "INVALID_URL"
    UNKNOWN = "UNKNOWN"


class FetchError(BaseModel):
    """Typed error from a fetch operation."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    error_class: FetchErrorClass = Field(description="Classification of the error")
    message: Annotated[str, Field(min_length=1, description="Human-readable message")]
    status_code: int | None = Field(
        default=None, description="HTTP status code if available"
    )

    @property
    def has_response(self) -> bool:
        """Whether the server answered at all."""
        return self.status_code is not None


class FetchResult(BaseModel):
    """Result of a fetch operation.

    ``status_code`` is 0 when no response was received.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    status_code: int = Field(ge=0, le=599, description="HTTP status code")
    final_url: Annotated[
        str, Field(min_length=1, description="Final URL after redirects")
    ]
    headers: dict[str, str] = Field(
        default_factory=dict, description="Response headers"
    )
    body_bytes: bytes = Field(default=b"", description="Response body")
    encoding: str | None = Field(
        default=None, description="Charset declared by the response"
    )
    error: FetchError | None = Field(
        default=None, description="Error details if fetch failed"
    )

    @property
    def is_success(self) -> bool:
        """Check if the fetch was successful (2xx status, no error)."""
        return (
            self.error is None
            and HTTP_STATUS_OK_MIN <= self.status_code < HTTP_STATUS_OK_MAX
        )

    @property
    def body_size(self) -> int:
        """Get the size of the response body in bytes."""
        return len(self.body_bytes)

    @property
    def text(self) -> str:
        """Decode the body using the declared charset, falling back to UTF-8."""
        encoding = self.encoding or "utf-8"
        try:
            return self.body_bytes.decode(encoding, errors="replace")
        except LookupError:
            return self.body_bytes.decode("utf-8", errors="replace")


class ResponseSizeExceededError(Exception):
    """Raised when response size exceeds the configured limit."""
