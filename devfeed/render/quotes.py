"""Quote attribution: move a blockquote's byline sibling inside it."""

import re

from bs4 import BeautifulSoup
from bs4.element import Tag

from devfeed.render.constants import (
    QUOTE_MIN_CHARS,
    QUOTE_OWNER_ATTRIBUTE,
    QUOTE_OWNER_BLOCKING_TAGS,
    QUOTE_OWNER_MAX_CHARS,
    QUOTE_OWNER_MAX_WORDS,
    QUOTE_OWNER_MIN_CHARS,
    QUOTE_OWNER_RICH_TAGS,
    QUOTE_OWNER_SIBLING_TAGS,
)


_WHITESPACE = re.compile(r"\s+")
_LEADING_DASHES = re.compile(r"^[–—-]+\s*")
_LEADING_BY = re.compile(r"^by\s+", re.IGNORECASE)
_HAS_LETTER = re.compile(r"[A-Za-z]")
_TERMINAL_PUNCTUATION = re.compile(r"[.!?]$")
_INITIAL = re.compile(r"[A-Z]\.")
_CAPITALIZED_WORD = re.compile(r"^[A-Z](?:[^\W\d_]|['-])+$")


def normalize_quote_owner_text(value: str) -> str:
    """Collapse whitespace and drop a leading dash or ``by``."""
    text = _WHITESPACE.sub(" ", value)
    text = _LEADING_DASHES.sub("", text)
    text = _LEADING_BY.sub("", text)
    return text.strip()


def looks_like_quote_owner(text: str) -> bool:
    """Whether normalized text reads like a person or byline.

    3-140 characters, at most 18 words, containing a comma or a
    capitalized word, and not ending a sentence unless it holds an
    initial such as ``J.``.
    """
    if not text:
        return False
    if len(text) < QUOTE_OWNER_MIN_CHARS or len(text) > QUOTE_OWNER_MAX_CHARS:
        return False
    if not _HAS_LETTER.search(text):
        return False

    words = text.split()
    if len(words) > QUOTE_OWNER_MAX_WORDS:
        return False

    if _TERMINAL_PUNCTUATION.search(text) and not _INITIAL.search(text):
        return False

    return "," in text or any(_CAPITALIZED_WORD.match(word) for word in words)


def _owner_candidate(blockquote: Tag) -> Tag | None:
    sibling = blockquote.find_next_sibling()
    if not isinstance(sibling, Tag):
        return None
    if sibling.name.lower() not in QUOTE_OWNER_SIBLING_TAGS:
        return None
    if sibling.has_attr(QUOTE_OWNER_ATTRIBUTE):
        return None
    if sibling.find(list(QUOTE_OWNER_BLOCKING_TAGS)) is not None:
        return None
    return sibling


def move_quote_owners_inside_blockquotes(root: BeautifulSoup | Tag) -> int:
    """Relocate byline siblings into their blockquotes, in place.

    Args:
        root: Parsed document.

    Returns:
        Number of bylines moved.
    """
    moved = 0
    for blockquote in list(root.find_all("blockquote")):
        candidate = _owner_candidate(blockquote)
        if candidate is None:
            continue

        owner_text = normalize_quote_owner_text(candidate.get_text())
        quote_text = _WHITESPACE.sub(" ", blockquote.get_text()).strip()
        if not looks_like_quote_owner(owner_text) or len(quote_text) < QUOTE_MIN_CHARS:
            continue

        if candidate.find(list(QUOTE_OWNER_RICH_TAGS)) is None:
            candidate.string = owner_text

        candidate[QUOTE_OWNER_ATTRIBUTE] = "true"
        blockquote.append(candidate.extract())
        moved += 1

    return moved
