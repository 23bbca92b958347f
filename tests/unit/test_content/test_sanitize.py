"""Unit tests for the article HTML sanitizer."""

from bs4 import BeautifulSoup

from devfeed.content.sanitize import is_safe_url, sanitize_article_html, to_html_content


def _soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


class TestSanitizeTags:
    """Tests for tag filtering."""

    def test_drops_script_with_content(self) -> None:
        """Test that scripts disappear entirely."""
        result = sanitize_article_html("<p>Hi <script>steal()</script><b>there</b></p>")

        assert result == "<p>Hi <b>there</b></p>"

    def test_unwraps_unknown_tags(self) -> None:
        """Test that disallowed tags keep their children."""
        result = sanitize_article_html("<custom-card><p>Inner</p></custom-card>")

        assert result == "<p>Inner</p>"

    def test_drops_iframes_and_forms(self) -> None:
        """Test that embedded frames and form fields are removed."""
        result = sanitize_article_html(
            '<p>a</p><iframe src="https://x.com"></iframe><textarea>t</textarea>'
        )

        assert result == "<p>a</p>"

    def test_removes_comments(self) -> None:
        """Test that HTML comments are stripped."""
        assert sanitize_article_html("<p>a<!-- hidden --></p>") == "<p>a</p>"

    def test_removes_screen_reader_spans(self) -> None:
        """Test that visually hidden text is dropped."""
        result = sanitize_article_html('<p>Read<span class="sr-only"> more</span></p>')

        assert result == "<p>Read</p>"

    def test_blank_input(self) -> None:
        """Test that blank input yields an empty string."""
        assert sanitize_article_html("   ") == ""


class TestSanitizeAttributes:
    """Tests for attribute filtering and rewrites."""

    def test_strips_event_handlers_and_styles(self) -> None:
        """Test that non-listed attributes are removed."""
        result = sanitize_article_html('<p onclick="x()" style="color:red">a</p>')

        assert result == "<p>a</p>"

    def test_anchor_opens_safely(self) -> None:
        """Test that links get target and rel."""
        anchor = _soup(sanitize_article_html('<a href="https://x.com">x</a>')).a

        assert anchor is not None
        assert anchor["href"] == "https://x.com"
        assert anchor["target"] == "_blank"
        assert anchor.get("rel") == ["noopener", "noreferrer"]

    def test_unsafe_href_removed(self) -> None:
        """Test that javascript: links lose their href."""
        anchor = _soup(sanitize_article_html('<a href="javascript:alert(1)">x</a>')).a

        assert anchor is not None
        assert anchor.get("href") is None

    def test_space_after_anchor_before_word(self) -> None:
        """Test that a glued word after a link is separated."""
        result = sanitize_article_html('<p><a href="https://x.com">link</a>word</p>')

        assert "</a> word" in result

    def test_lazy_image_promoted(self) -> None:
        """Test that data-src replaces a placeholder src."""
        result = sanitize_article_html(
            '<img src="data:image/gif;base64,R0l" data-src="https://x.com/a.png" alt="A">'
        )
        image = _soup(result).img

        assert image is not None
        assert image["src"] == "https://x.com/a.png"
        assert image["loading"] == "eager"
        assert image["alt"] == "A"
        assert image.get("data-src") is None

    def test_code_class_kept(self) -> None:
        """Test that language classes on code survive."""
        result = sanitize_article_html('<pre><code class="language-go">x</code></pre>')

        assert 'class="language-go"' in result


class TestSafeUrl:
    """Tests for URL scheme checks."""

    def test_allowed_schemes(self) -> None:
        """Test allowed and relative URLs."""
        assert is_safe_url("https://x.com")
        assert is_safe_url("mailto:a@x.com")
        assert is_safe_url("/relative")
        assert is_safe_url("//cdn.x.com/a.png")

    def test_disallowed_schemes(self) -> None:
        """Test that script and data URLs are refused, even obfuscated."""
        assert not is_safe_url("javascript:alert(1)")
        assert not is_safe_url(" java\tscript:alert(1)")
        assert not is_safe_url("data:text/html,x")


class TestToHtmlContent:
    """Tests for to_html_content."""

    def test_wraps_plain_text(self) -> None:
        """Test that plain text is escaped into a paragraph."""
        assert to_html_content("a < b & c") == "<p>a &lt; b &amp; c</p>"

    def test_keeps_markup(self) -> None:
        """Test that HTML passes through."""
        assert to_html_content("<p>x</p>") == "<p>x</p>"
