"""Renderable node types produced by the HTML transform."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class TextNode:
    """A run of text."""

    text: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": "text", "text": self.text}


@dataclass(frozen=True)
class IconNode:
    """An inline icon glyph with an accessible label."""

    name: str
    label: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": "icon", "name": self.name, "label": self.label}


@dataclass(frozen=True)
class ElementNode:
    """An allow-listed element.

    Attributes:
        tag: Lowercase tag name.
        attributes: Allow-listed attributes, in document order.
        children: Child nodes; always empty for void tags.
        attribution: Whether this is a quote's relocated byline.
        style: Style overrides set by the transform itself.
    """

    tag: str
    attributes: dict[str, str] = field(default_factory=dict)
    children: tuple["Node", ...] = ()
    attribution: bool = False
    style: dict[str, str] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary.

        Returns:
            Dictionary with the node and its subtree.
        """
        data: dict[str, Any] = {
            "type": "element",
            "tag": self.tag,
            "attributes": dict(self.attributes),
            "children": [child.to_dict() for child in self.children],
        }
        if self.attribution:
            data["attribution"] = True
        if self.style:
            data["style"] = dict(self.style)
        return data

    def text_content(self) -> str:
        """Concatenated text of the subtree."""
        parts: list[str] = []
        for child in self.children:
            if isinstance(child, TextNode):
                parts.append(child.text)
            elif isinstance(child, ElementNode):
                parts.append(child.text_content())
        return "".join(parts)


Node = ElementNode | TextNode | IconNode


def nodes_to_dicts(nodes: tuple[Node, ...] | list[Node]) -> list[dict[str, Any]]:
    return [node.to_dict() for node in nodes]
