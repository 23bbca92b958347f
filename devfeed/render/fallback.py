"""Plain-text paragraph fallback for HTML that cannot be transformed."""

import html
import re

from devfeed.render.nodes import ElementNode, TextNode


_DROPPED_BLOCKS = re.compile(r"<(script|style)\b[^>]*>[\s\S]*?</\1\s*>", re.IGNORECASE)
_LINE_BREAK = re.compile(r"<br\s*/?\s*>", re.IGNORECASE)
_BLOCK_END = re.compile(r"</(p|div|section|article|h[1-6]|li|blockquote|tr)>", re.IGNORECASE)
_TAG = re.compile(r"<[^>]+>")
_EXTRA_NEWLINES = re.compile(r"\n{3,}")
_HORIZONTAL_SPACE = re.compile(r"[ \t]+")
_SPACE_AROUND_NEWLINE = re.compile(r"[ \t]*\n[ \t]*")
_PARAGRAPH_BREAK = re.compile(r"\n\n+")


def html_to_plain_text(value: str) -> str:
    """Reduce HTML to text with blank lines between blocks."""
    text = _DROPPED_BLOCKS.sub("", value)
    text = _LINE_BREAK.sub("\n\n", text)
    text = _BLOCK_END.sub("\n\n", text)
    text = _TAG.sub(" ", text)
    text = html.unescape(text).replace("\xa0", " ")
    text = _HORIZONTAL_SPACE.sub(" ", text)
    text = _SPACE_AROUND_NEWLINE.sub("\n", text)
    text = _EXTRA_NEWLINES.sub("\n\n", text)
    return text.strip()


def fallback_nodes_from_html(value: str) -> tuple[ElementNode, ...]:
    """Split HTML into plain-text paragraph nodes.

    Args:
        value: HTML that could not be transformed.

    Returns:
        One ``p`` node per non-empty paragraph.
    """
    text = html_to_plain_text(value)
    if not text:
        return ()

    paragraphs = (p.strip() for p in _PARAGRAPH_BREAK.split(text))
    return tuple(
        ElementNode(tag="p", children=(TextNode(paragraph),))
        for paragraph in paragraphs
        if paragraph
    )
