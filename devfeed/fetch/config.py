"""Configuration models for the HTTP fetch layer."""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator

from devfeed.fetch.constants import DEFAULT_ACCEPT, DEFAULT_MAX_RESPONSE_SIZE_BYTES


class FetchConfig(BaseModel):
    """Configuration for one HTTP fetcher.

    The article fetcher and the feed fetcher each get their own config:
    they differ in user agent, timeout, accepted media types and TLS
    strictness.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    user_agent: Annotated[str, Field(min_length=1, max_length=500)] = (
        "RSSDevFeed/1.0"
    )
    timeout_seconds: Annotated[float, Field(gt=0, le=300.0)] = 15.0
    max_response_size_bytes: Annotated[int, Field(ge=1024, le=100 * 1024 * 1024)] = (
        DEFAULT_MAX_RESPONSE_SIZE_BYTES
    )
    accept: str = DEFAULT_ACCEPT
    verify_tls: bool = True
    headers: dict[str, str] = Field(default_factory=dict)

    @field_validator("headers")
    @classmethod
    def validate_no_auth_headers(cls, v: dict[str, str]) -> dict[str, str]:
        """Ensure no credential headers are stored in config."""
        forbidden = {"authorization", "cookie", "x-api-key"}
        for key in v:
            if key.lower() in forbidden:
                msg = (
                    f"Header '{key}' must not be stored in config; "
                    "use environment variables"
                )
                raise ValueError(msg)
        return v
