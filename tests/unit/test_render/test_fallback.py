"""Unit tests for the plain-text fallback."""

from devfeed.render.fallback import fallback_nodes_from_html, html_to_plain_text
from devfeed.render.nodes import ElementNode, TextNode


class TestHtmlToPlainText:
    """Tests for html_to_plain_text."""

    def test_blocks_become_paragraphs(self) -> None:
        """Test blank lines between block elements."""
        text = html_to_plain_text("<h2>Title</h2><p>One</p><p>Two<br>Three</p>")

        assert text == "Title\n\nOne\n\nTwo\n\nThree"

    def test_scripts_and_entities(self) -> None:
        """Test script removal and entity decoding."""
        text = html_to_plain_text("<script>alert(1)</script><p>Fish&nbsp;&amp;&nbsp;chips</p>")

        assert text == "Fish & chips"

    def test_inline_tags_become_spaces(self) -> None:
        """Test that inline markup collapses to single spaces."""
        assert html_to_plain_text("<p>a<em>b</em>c</p>") == "a b c"


class TestFallbackNodes:
    """Tests for fallback_nodes_from_html."""

    def test_paragraph_nodes(self) -> None:
        """Test one p node per paragraph."""
        nodes = fallback_nodes_from_html("<p>One</p>\n<p>Two</p>")

        assert nodes == (
            ElementNode(tag="p", children=(TextNode("One"),)),
            ElementNode(tag="p", children=(TextNode("Two"),)),
        )

    def test_empty(self) -> None:
        """Test that markup without text yields nothing."""
        assert fallback_nodes_from_html("<div><br></div>") == ()
