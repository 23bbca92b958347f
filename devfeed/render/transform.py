"""Safe HTML-to-node transform.

Converts sanitized article HTML into a tree of primitive nodes under a
fixed tag and attribute allow-list. Tags outside the allow-list are
unwrapped (their children are spliced into the parent); ``script`` and
``style`` subtrees are dropped. The transform never raises: when the
document cannot be walked, or the walk produces nothing visible, the
input is split into plain-text paragraphs instead.
"""

import structlog
from bs4 import BeautifulSoup
from bs4.element import NavigableString, PageElement, PreformattedString, Tag

from devfeed.render.constants import (
    ALLOWED_TAGS,
    DEPLOY_BADGE_ALT_MARKER,
    DEPLOY_BADGE_SRC_MARKERS,
    DEPLOY_BADGE_STYLE,
    DROPPED_TAGS,
    EXTERNAL_LINK_ICON,
    EXTERNAL_LINK_LABEL,
    EXTERNAL_LINK_MARKER,
    FORBIDDEN_ATTRIBUTES,
    GLOBAL_ATTRIBUTE_PREFIXES,
    GLOBAL_ATTRIBUTES,
    INLINE_WHITESPACE_PARENTS,
    LINE_BREAK_SPACER_CLASS,
    PREFORMATTED_TAGS,
    QUOTE_OWNER_ATTRIBUTE,
    TABLE_STRUCTURE_TAGS,
    TAG_ATTRIBUTES,
    VOID_TAGS,
)
from devfeed.render.fallback import fallback_nodes_from_html
from devfeed.render.nodes import ElementNode, IconNode, Node, TextNode
from devfeed.render.quotes import move_quote_owners_inside_blockquotes


logger = structlog.get_logger()

# Parser-internal name of the document root
_ROOT_NAME = "[document]"


def parse_html(html: str) -> BeautifulSoup:
    """Parse HTML keeping every attribute value as written."""
    return BeautifulSoup(html, "html.parser", multi_valued_attributes=None)


def is_allowed_attribute(tag: str, name: str) -> bool:
    if name in FORBIDDEN_ATTRIBUTES:
        return False
    if name in GLOBAL_ATTRIBUTES:
        return True
    if name.startswith(GLOBAL_ATTRIBUTE_PREFIXES):
        return True
    return name in TAG_ATTRIBUTES.get(tag, frozenset())


def _attribute_text(value: object) -> str:
    if isinstance(value, list):
        return " ".join(str(v) for v in value)
    return "" if value is None else str(value)


def _allowed_attributes(element: Tag, tag: str) -> dict[str, str]:
    attributes: dict[str, str] = {}
    for raw_name, raw_value in element.attrs.items():
        name = raw_name.lower()
        if not is_allowed_attribute(tag, name):
            continue
        value = _attribute_text(raw_value)
        if name == "href" and not value.strip():
            continue
        attributes[name] = value
    return attributes


def is_deploy_badge(element: Tag) -> bool:
    """Whether an image is the publisher's deploy badge."""
    if element.name.lower() != "img":
        return False
    alt = _attribute_text(element.get("alt")).lower()
    src = _attribute_text(element.get("src")).lower()
    if DEPLOY_BADGE_ALT_MARKER in alt:
        return True
    return all(marker in src for marker in DEPLOY_BADGE_SRC_MARKERS)


def _parent_tag_name(node: PageElement) -> str | None:
    parent = node.parent
    if parent is None or parent.name == _ROOT_NAME:
        return None
    return parent.name.lower()


def _within_preformatted(node: PageElement) -> bool:
    current = node.parent
    while current is not None and current.name != _ROOT_NAME:
        if current.name.lower() in PREFORMATTED_TAGS:
            return True
        current = current.parent
    return False


def replace_external_link_markers(text: str) -> list[Node]:
    """Swap each "opens in a new window" phrase for an icon node.

    Text before a marker loses trailing whitespace; text after it keeps
    a single separating space.
    """
    nodes: list[Node] = []
    remaining = text
    spliced = False

    while True:
        match = EXTERNAL_LINK_MARKER.search(remaining)
        if match is None:
            break
        before = remaining[: match.start()].rstrip()
        if spliced and before:
            before = f" {before}"
        if before:
            nodes.append(TextNode(before))
        nodes.append(IconNode(name=EXTERNAL_LINK_ICON, label=EXTERNAL_LINK_LABEL))
        remaining = remaining[match.end() :].lstrip()
        spliced = True

    if not spliced:
        return [TextNode(text)]

    if remaining:
        nodes.append(TextNode(f" {remaining}"))
    return nodes


def _convert_text(node: NavigableString) -> list[Node]:
    text = str(node)

    if _within_preformatted(node):
        return [TextNode(text)] if text else []

    if not text.strip():
        parent = _parent_tag_name(node)
        if parent is None or parent in TABLE_STRUCTURE_TAGS:
            return []
        if parent in INLINE_WHITESPACE_PARENTS:
            return [TextNode(" ")]
        return []

    return replace_external_link_markers(text)


def _convert_children(element: Tag) -> tuple[Node, ...]:
    children: list[Node] = []
    for child in element.children:
        children.extend(_convert(child))
    return tuple(children)


def _convert_element(element: Tag) -> list[Node]:
    tag = element.name.lower()

    if tag in DROPPED_TAGS:
        return []

    if tag not in ALLOWED_TAGS:
        return list(_convert_children(element))

    if tag == "br":
        return [
            ElementNode(tag="br"),
            ElementNode(
                tag="span",
                attributes={"class": LINE_BREAK_SPACER_CLASS, "aria-hidden": "true"},
            ),
        ]

    attributes = _allowed_attributes(element, tag)
    style = dict(DEPLOY_BADGE_STYLE) if is_deploy_badge(element) else None
    attribution = attributes.get(QUOTE_OWNER_ATTRIBUTE) == "true"

    if tag in VOID_TAGS:
        return [ElementNode(tag=tag, attributes=attributes, style=style)]

    return [
        ElementNode(
            tag=tag,
            attributes=attributes,
            children=_convert_children(element),
            attribution=attribution,
            style=style,
        )
    ]


def _convert(node: PageElement) -> list[Node]:
    # Comments, doctypes and CDATA
    if isinstance(node, PreformattedString):
        return []
    if isinstance(node, NavigableString):
        return _convert_text(node)
    if isinstance(node, Tag):
        return _convert_element(node)
    return []


def _is_visible(node: Node) -> bool:
    if isinstance(node, TextNode):
        return bool(node.text.strip())
    return True


def transform_html_to_nodes(html: str) -> tuple[Node, ...]:
    """Transform sanitized HTML into renderable nodes.

    Quote bylines are relocated first, directly on the parsed document;
    the tree is then walked once.

    Args:
        html: Sanitized HTML.

    Returns:
        Top-level nodes; empty for blank input.
    """
    if not html or not html.strip():
        return ()

    try:
        document = parse_html(html)
        move_quote_owners_inside_blockquotes(document)
        nodes = _convert_children(document)
    except Exception as e:  # noqa: BLE001
        logger.warning("render_transform_failed", component="render", error=str(e))
        return fallback_nodes_from_html(html)

    if any(_is_visible(node) for node in nodes):
        return nodes

    logger.debug("render_no_visible_nodes", component="render")
    return fallback_nodes_from_html(html)
