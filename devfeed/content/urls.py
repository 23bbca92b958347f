"""URL canonicalization utilities.

The same comparable form is used as the ranker's deduplication key, as the
article cache key and for matching feed items against an article URL, so
all three agree on when two URLs are "the same article".
"""

import re
from urllib.parse import parse_qsl, urlencode, urljoin, urlsplit, urlunsplit


# Tracking parameters to strip, in addition to every ``utm_*`` parameter
DEFAULT_STRIP_PARAMS: frozenset[str] = frozenset({"fbclid", "gclid", "ref", "source"})

HTTP_SCHEMES: frozenset[str] = frozenset({"http", "https"})

DEFAULT_PORTS: dict[str, int] = {"http": 80, "https": 443}

_FILE_EXTENSION_PATTERN = re.compile(r"\.[a-z0-9]{2,8}$", re.IGNORECASE)


def _origin(scheme: str, hostname: str, port: int | None) -> str:
    if port is None or DEFAULT_PORTS.get(scheme) == port:
        return f"{scheme}://{hostname}"
    return f"{scheme}://{hostname}:{port}"


def canonicalize_url(url: str) -> str | None:
    """Canonicalize a URL for comparison.

    Canonicalization includes:
    - Lowercasing the scheme and host, dropping credentials and default ports
    - Removing trailing slashes (except for the root path)
    - Stripping ``utm_*``, ``fbclid``, ``gclid``, ``ref`` and ``source``
    - Sorting the remaining query parameters by key
    - Removing fragments

    Args:
        url: The URL to canonicalize.

    Returns:
        Canonical URL, or None if the URL is not an absolute http(s) URL.
    """
    if not url:
        return None

    try:
        parsed = urlsplit(url.strip())
        port = parsed.port
    except ValueError:
        return None

    scheme = parsed.scheme.lower()
    hostname = (parsed.hostname or "").lower()
    if scheme not in HTTP_SCHEMES or not hostname:
        return None

    path = parsed.path or "/"
    if path != "/":
        path = path.rstrip("/") or "/"

    params = [
        (key, value)
        for key, value in parse_qsl(parsed.query, keep_blank_values=True)
        if not key.startswith("utm_") and key not in DEFAULT_STRIP_PARAMS
    ]
    params.sort(key=lambda pair: pair[0])
    query = urlencode(params)

    return _origin(scheme, hostname, port) + path + (f"?{query}" if query else "")


def to_trailing_slash_url(url: str) -> str | None:
    """Return the same URL with a trailing slash appended to its path.

    Args:
        url: Absolute URL.

    Returns:
        The trailing-slash variant, or None if the path already ends in a
        slash or the URL cannot be parsed.
    """
    try:
        parsed = urlsplit(url)
    except ValueError:
        return None

    if not parsed.scheme or not parsed.netloc:
        return None
    if not parsed.path or parsed.path.endswith("/"):
        return None

    return urlunsplit(parsed._replace(path=f"{parsed.path}/"))


def normalize_host(hostname: str) -> str:
    """Lowercase a hostname and strip a leading ``www.``."""
    host = hostname.lower()
    return host.removeprefix("www.")


def host_of(url: str) -> str | None:
    """Return the normalized host of a URL, or None if it has none."""
    try:
        hostname = urlsplit(url).hostname
    except ValueError:
        return None
    return normalize_host(hostname) if hostname else None


def is_same_domain(host_a: str, host_b: str) -> bool:
    """Check whether two normalized hosts are equal or nested subdomains."""
    return (
        host_a == host_b
        or host_a.endswith(f".{host_b}")
        or host_b.endswith(f".{host_a}")
    )


def is_http_url(url: str) -> bool:
    """Check whether a string is an absolute http(s) URL with a host."""
    try:
        parsed = urlsplit(url)
    except ValueError:
        return False
    return parsed.scheme.lower() in HTTP_SCHEMES and bool(parsed.hostname)


def to_absolute_url(url: str | None, base_url: str) -> str | None:
    """Resolve a possibly relative URL against a base.

    Args:
        url: URL or path to resolve.
        base_url: Base URL.

    Returns:
        Absolute http(s) URL, or None for empty input or other schemes.
    """
    if not url or not url.strip():
        return None

    try:
        resolved = urljoin(base_url, url.strip())
    except ValueError:
        return None

    return resolved if is_http_url(resolved) else None


def normalize_article_url_for_fetch(url: str) -> str:
    """Adjust an article URL before fetching it.

    OpenAI article pages under ``/index/`` only respond with a trailing
    slash, so one is appended unless the path looks like a file.

    Args:
        url: Article URL.

    Returns:
        URL to fetch.
    """
    try:
        parsed = urlsplit(url)
    except ValueError:
        return url

    host = normalize_host(parsed.hostname or "")
    is_openai_host = host == "openai.com" or host.endswith(".openai.com")

    if (
        is_openai_host
        and parsed.path.startswith("/index/")
        and not parsed.path.endswith("/")
        and not _FILE_EXTENSION_PATTERN.search(parsed.path)
    ):
        return urlunsplit(parsed._replace(path=f"{parsed.path}/"))

    return url


def article_cache_key(url: str, source_feed_url: str | None = None) -> str:
    """Build the cache key for an article resolution.

    Args:
        url: Article URL.
        source_feed_url: Feed the article came from, if known.

    Returns:
        ``"<normalized feed url>::<normalized article url>"``.
    """
    article_key = canonicalize_url(url) or url
    feed_key = (canonicalize_url(source_feed_url) or source_feed_url) if source_feed_url else ""
    return f"{feed_key}::{article_key}"
