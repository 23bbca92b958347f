"""Safe HTML-to-node rendering for article content."""

from devfeed.render.fallback import fallback_nodes_from_html, html_to_plain_text
from devfeed.render.nodes import ElementNode, IconNode, Node, TextNode, nodes_to_dicts
from devfeed.render.quotes import (
    looks_like_quote_owner,
    move_quote_owners_inside_blockquotes,
    normalize_quote_owner_text,
)
from devfeed.render.transform import transform_html_to_nodes


__all__ = [
    "ElementNode",
    "IconNode",
    "Node",
    "TextNode",
    "fallback_nodes_from_html",
    "html_to_plain_text",
    "looks_like_quote_owner",
    "move_quote_owners_inside_blockquotes",
    "nodes_to_dicts",
    "normalize_quote_owner_text",
    "transform_html_to_nodes",
]
