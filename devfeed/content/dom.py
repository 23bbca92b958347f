"""Helpers for parsing and re-serializing HTML fragments with BeautifulSoup."""

from bs4 import BeautifulSoup, NavigableString, Tag, UnicodeDammit
from bs4.element import Comment


CONTAINER_TAGS: frozenset[str] = frozenset({"div", "section", "article", "main", "header"})


def parse_fragment(html: str) -> BeautifulSoup:
    """Parse an HTML fragment without adding ``html``/``body`` wrappers."""
    return BeautifulSoup(html, "html.parser")


def parse_document(html: str | bytes) -> BeautifulSoup:
    """Parse a full HTML document."""
    return BeautifulSoup(html, "lxml")


def decode_document(body: bytes, declared_encoding: str | None = None) -> str:
    """Decode a fetched HTML page.

    A charset from the Content-Type header wins. Without one, a byte order
    mark or a ``<meta charset>`` declaration in the page decides, and UTF-8
    then Windows-1252 are tried last.
    """
    known = [declared_encoding] if declared_encoding else []
    dammit = UnicodeDammit(body, known_definite_encodings=known, is_html=True)
    if dammit.unicode_markup is None:
        return body.decode("utf-8", errors="replace")
    return dammit.unicode_markup


def serialize_fragment(soup: BeautifulSoup | Tag) -> str:
    """Serialize a parsed fragment back to HTML5 text."""
    return soup.decode_contents(formatter="html5").strip()


def class_list(tag: Tag) -> list[str]:
    """Return a tag's classes, whatever form the parser stored them in."""
    value = tag.get("class")
    if value is None:
        return []
    if isinstance(value, str):
        return value.split()
    return [name for name in value if name]


def attr_text(tag: Tag, name: str) -> str:
    """Return an attribute as stripped text (multi-valued ones space-joined)."""
    value = tag.get(name)
    if value is None:
        return ""
    if isinstance(value, list):
        return " ".join(value).strip()
    return str(value).strip()


def has_direct_text(tag: Tag) -> bool:
    """Check whether a tag has non-blank text as an immediate child."""
    return any(
        isinstance(child, NavigableString)
        and not isinstance(child, Comment)
        and child.strip()
        for child in tag.children
    )


def first_meaningful_element(root: BeautifulSoup | Tag) -> Tag | None:
    """Find the first leading element, descending through bare containers.

    Returns None when non-blank text comes before any element.
    """
    current: BeautifulSoup | Tag = root

    while True:
        first: Tag | None = None
        for child in current.children:
            if isinstance(child, Tag):
                first = child
                break
            if isinstance(child, NavigableString) and not isinstance(child, Comment):
                if child.strip():
                    return None

        if first is None:
            return None

        if first.name in CONTAINER_TAGS and not has_direct_text(first):
            current = first
            continue

        return first
