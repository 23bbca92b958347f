"""Allow-list HTML sanitizer for extracted article bodies.

Built on BeautifulSoup: disallowed tags are unwrapped (their children are
kept), while script-like tags are dropped along with their content.
Attributes are filtered per tag after the anchor and image rewrites run,
so lazy-loading attributes can be promoted before they are stripped.
"""

import html
import re

import structlog
from bs4.element import (
    CData,
    Comment,
    Declaration,
    Doctype,
    NavigableString,
    ProcessingInstruction,
    Tag,
)

from devfeed.content.dom import attr_text, parse_fragment, serialize_fragment


logger = structlog.get_logger()

DEFAULT_ALLOWED_TAGS: frozenset[str] = frozenset(
    {
        "address", "article", "aside", "footer", "header", "hgroup", "main",
        "nav", "section", "dd", "div", "dl", "dt", "hr", "li", "ol", "p",
        "ul", "a", "abbr", "b", "bdi", "bdo", "br", "cite", "data", "dfn",
        "em", "i", "kbd", "mark", "q", "rb", "rp", "rt", "rtc", "ruby", "s",
        "samp", "small", "span", "strong", "sub", "sup", "time", "u", "var",
        "wbr", "col", "colgroup", "tfoot",
    }
)

ARTICLE_TAGS: frozenset[str] = frozenset(
    {
        "img", "figure", "figcaption", "picture", "source",
        "h1", "h2", "h3", "h4", "h5", "h6",
        "pre", "code", "blockquote",
        "table", "thead", "tbody", "tr", "th", "td", "caption",
        "details", "summary",
    }
)

ALLOWED_TAGS: frozenset[str] = DEFAULT_ALLOWED_TAGS | ARTICLE_TAGS

# Dropped together with everything inside them
DISCARD_CONTENT_TAGS: frozenset[str] = frozenset(
    {"script", "style", "textarea", "option", "noscript", "template", "iframe", "object"}
)

ALLOWED_ATTRIBUTES: dict[str, frozenset[str]] = {
    "img": frozenset(
        {"src", "srcset", "sizes", "alt", "width", "height", "loading", "decoding", "fetchpriority"}
    ),
    "a": frozenset({"href", "title", "target", "rel"}),
    "source": frozenset({"src", "srcset", "sizes", "type", "media"}),
    "span": frozenset({"class"}),
    "code": frozenset({"class", "data-language", "data-lang"}),
    "pre": frozenset({"class", "data-language", "data-lang"}),
    "td": frozenset({"colspan", "rowspan"}),
    "th": frozenset({"colspan", "rowspan", "scope"}),
}

URL_ATTRIBUTES: frozenset[str] = frozenset({"href", "src"})
SRCSET_ATTRIBUTES: frozenset[str] = frozenset({"srcset"})
ALLOWED_SCHEMES: frozenset[str] = frozenset({"http", "https", "ftp", "mailto", "tel"})

SCREEN_READER_CLASS_PATTERN = re.compile(
    r"\b(sr-only|screen-reader-text|visually-hidden|visuallyhidden|assistive-text"
    r"|a11y-hidden|u-screen-reader-text|offscreen)\b",
    re.IGNORECASE,
)

_SCHEME_PATTERN = re.compile(r"^([a-z][a-z0-9+.\-]*):", re.IGNORECASE)
_CONTROL_CHARS = re.compile(r"[\x00-\x20]+")
_ANCHOR_FOLLOWED_BY_WORD = re.compile(r"</a>(?=[^\W_])")
_HAS_MARKUP = re.compile(r"<[^>]+>")

_SKIPPED_STRINGS = (Comment, CData, ProcessingInstruction, Declaration, Doctype)


def is_safe_url(value: str) -> bool:
    """Allow relative URLs and the http(s), ftp, mailto and tel schemes."""
    candidate = _CONTROL_CHARS.sub("", value)
    match = _SCHEME_PATTERN.match(candidate)
    if match is None:
        # Protocol-relative URLs are treated as relative
        return True
    return match.group(1).lower() in ALLOWED_SCHEMES


def _is_safe_srcset(value: str) -> bool:
    for candidate in value.split(","):
        url = candidate.strip().split(" ", 1)[0]
        if url and not is_safe_url(url):
            return False
    return True


def _rewrite_anchor(tag: Tag) -> None:
    tag["target"] = "_blank"
    tag["rel"] = "noopener noreferrer"


def _rewrite_image(tag: Tag) -> None:
    """Promote lazy-loading attributes to ``src``/``srcset`` and load eagerly."""
    src = attr_text(tag, "src")
    fallback_src = (
        attr_text(tag, "data-src")
        or attr_text(tag, "data-lazy-src")
        or attr_text(tag, "data-original")
    )
    normalized_src = (
        src if src and not src.startswith("data:image/") else (fallback_src or src)
    )

    srcset = attr_text(tag, "srcset") or (
        attr_text(tag, "data-srcset") or attr_text(tag, "data-lazy-srcset")
    )
    sizes = attr_text(tag, "sizes")

    tag["loading"] = "eager"
    tag["decoding"] = "async"
    tag["fetchpriority"] = "high"

    if normalized_src:
        tag["src"] = normalized_src

    if srcset:
        tag["srcset"] = srcset
        tag["sizes"] = sizes or "100vw"
    elif sizes:
        tag["sizes"] = sizes


def _filter_attributes(tag: Tag) -> None:
    allowed = ALLOWED_ATTRIBUTES.get(tag.name, frozenset())
    kept: dict[str, str] = {}

    for name in list(tag.attrs):
        if name not in allowed:
            continue
        value = attr_text(tag, name)
        if name in URL_ATTRIBUTES and not is_safe_url(value):
            continue
        if name in SRCSET_ATTRIBUTES and not _is_safe_srcset(value):
            continue
        kept[name] = value

    tag.attrs = kept


def _is_screen_reader_only(tag: Tag) -> bool:
    return tag.name == "span" and bool(
        SCREEN_READER_CLASS_PATTERN.search(attr_text(tag, "class"))
    )


def _clean_children(node: Tag) -> None:
    for child in list(node.children):
        if isinstance(child, _SKIPPED_STRINGS):
            child.extract()
            continue

        if isinstance(child, NavigableString) or not isinstance(child, Tag):
            continue

        name = child.name.lower()
        if name in DISCARD_CONTENT_TAGS:
            child.decompose()
            continue

        _clean_children(child)

        if name not in ALLOWED_TAGS:
            child.unwrap()
            continue

        if _is_screen_reader_only(child):
            child.decompose()
            continue

        if name == "a":
            _rewrite_anchor(child)
        elif name == "img":
            _rewrite_image(child)

        _filter_attributes(child)


def sanitize_article_html(raw_html: str) -> str:
    """Reduce article HTML to the allow-listed tags and attributes.

    Anchors are forced to open in a new context with a safe ``rel``;
    lazily loaded images are normalized; screen-reader-only spans are
    removed; a space is inserted after ``</a>`` when a letter or digit
    follows directly.

    Args:
        raw_html: Untrusted HTML fragment.

    Returns:
        Sanitized HTML, or the input escaped into a single paragraph if
        it cannot be processed.
    """
    if not raw_html or not raw_html.strip():
        return ""

    try:
        soup = parse_fragment(raw_html)
        _clean_children(soup)
        sanitized = serialize_fragment(soup)
    except Exception as e:  # noqa: BLE001
        logger.warning("sanitize_failed", component="content", error=str(e))
        return f"<p>{html.escape(raw_html.strip(), quote=False)}</p>"

    return _ANCHOR_FOLLOWED_BY_WORD.sub("</a> ", sanitized)


def to_html_content(content: str) -> str:
    """Wrap plain text in an escaped paragraph; return HTML unchanged."""
    if _HAS_MARKUP.search(content):
        return content
    return f"<p>{html.escape(content.strip(), quote=False)}</p>"
