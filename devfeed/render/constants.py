"""Tag and attribute tables for the render transform."""

import re


VOID_TAGS: frozenset[str] = frozenset(
    {
        "area", "base", "br", "col", "embed", "hr", "img", "input",
        "link", "meta", "param", "source", "track", "wbr",
    }
)

ALLOWED_TAGS: frozenset[str] = frozenset(
    {
        "a", "article", "aside", "blockquote", "br", "caption", "code",
        "details", "div", "em", "figcaption", "figure",
        "h1", "h2", "h3", "h4", "h5", "h6",
        "hr", "i", "img", "li", "main", "ol", "p", "picture", "pre",
        "section", "source", "span", "strong", "sub", "summary", "sup",
        "table", "tbody", "td", "thead", "th", "tr", "u", "ul",
    }
)

# Subtrees dropped entirely
DROPPED_TAGS: frozenset[str] = frozenset({"script", "style"})

GLOBAL_ATTRIBUTES: frozenset[str] = frozenset({"title"})
GLOBAL_ATTRIBUTE_PREFIXES: tuple[str, ...] = ("data-", "aria-")
FORBIDDEN_ATTRIBUTES: frozenset[str] = frozenset({"style"})

TAG_ATTRIBUTES: dict[str, frozenset[str]] = {
    "a": frozenset({"href", "target", "rel"}),
    "img": frozenset({"src", "alt", "width", "height", "loading"}),
    "source": frozenset({"src", "srcset", "type", "media"}),
    "code": frozenset({"class"}),
    "pre": frozenset({"class"}),
    "span": frozenset({"class"}),
    "td": frozenset({"colspan", "rowspan"}),
    "th": frozenset({"colspan", "rowspan", "scope"}),
}

# Whitespace-only text directly inside these is always dropped
TABLE_STRUCTURE_TAGS: frozenset[str] = frozenset(
    {"table", "thead", "tbody", "tfoot", "tr", "colgroup"}
)

# Whitespace-only text inside these collapses to a single space
INLINE_WHITESPACE_PARENTS: frozenset[str] = frozenset(
    {"a", "code", "em", "i", "span", "strong", "sub", "sup", "td", "th", "u"}
)

PREFORMATTED_TAGS: frozenset[str] = frozenset({"pre", "code"})

LINE_BREAK_SPACER_CLASS = "line-break-spacer"

EXTERNAL_LINK_MARKER = re.compile(r"\(?\s*opens in a new window\s*\)?", re.IGNORECASE)
EXTERNAL_LINK_ICON = "external-link"
EXTERNAL_LINK_LABEL = "Opens in a new window"

# Quote attribution
QUOTE_OWNER_ATTRIBUTE = "data-quote-owner"
QUOTE_OWNER_SIBLING_TAGS: frozenset[str] = frozenset({"p", "div", "cite"})
QUOTE_OWNER_BLOCKING_TAGS: tuple[str, ...] = (
    "blockquote", "h1", "h2", "h3", "h4", "h5", "h6",
    "pre", "table", "ul", "ol", "figure",
)
QUOTE_OWNER_RICH_TAGS: tuple[str, ...] = ("a", "strong", "em", "span", "code")
QUOTE_OWNER_MIN_CHARS = 3
QUOTE_OWNER_MAX_CHARS = 140
QUOTE_OWNER_MAX_WORDS = 18
QUOTE_MIN_CHARS = 30

# Publisher badge that must not get rounded image corners
DEPLOY_BADGE_ALT_MARKER = "deploy to cloudflare"
DEPLOY_BADGE_SRC_MARKERS: tuple[str, ...] = ("cloudflare", "deploy")
DEPLOY_BADGE_STYLE: dict[str, str] = {"border-radius": "0"}
