"""Unit tests for boilerplate stripping."""

from devfeed.content.cleanup import (
    is_leading_metadata_text,
    is_leading_title_text,
    strip_leading_feed_metadata,
    strip_publisher_tag_section,
)


class TestLeadingMetadata:
    """Tests for leading title and metadata detection."""

    def test_date_and_read_time(self) -> None:
        """Test common metadata lines."""
        assert is_leading_metadata_text("Jan 5, 2025 · 6 min read")
        assert is_leading_metadata_text("2025-01-05")
        assert is_leading_metadata_text("8 minutes read")

    def test_prose_is_not_metadata(self) -> None:
        """Test that sentences are kept."""
        assert not is_leading_metadata_text("We shipped a new database engine in 2025.")

    def test_title_prefix_match(self) -> None:
        """Test that repeated titles match regardless of punctuation."""
        assert is_leading_title_text("Scaling Postgres!", "Scaling Postgres")
        assert not is_leading_title_text("Something else", "Scaling Postgres")
        assert not is_leading_title_text("Scaling Postgres", None)

    def test_strips_title_and_metadata(self) -> None:
        """Test that leading repeats are removed and the body kept."""
        html = (
            "<h1>Scaling Postgres</h1>"
            "<p>Jan 5, 2025 · 6 min read</p>"
            "<p>Body text stays.</p>"
        )

        assert strip_leading_feed_metadata(html, "Scaling Postgres") == "<p>Body text stays.</p>"

    def test_descends_into_wrappers(self) -> None:
        """Test that bare wrapper divs are looked through."""
        html = "<div><p>6 min read</p><p>Body</p></div>"

        assert strip_leading_feed_metadata(html) == "<div><p>Body</p></div>"

    def test_stops_at_content(self) -> None:
        """Test that nothing is removed when the first block is content."""
        html = "<p>Body first.</p><p>6 min read</p>"

        assert strip_leading_feed_metadata(html, "Title") == html


class TestPublisherTagSection:
    """Tests for strip_publisher_tag_section."""

    def test_removes_tag_heading_and_list(self) -> None:
        """Test removal of a Tags heading and its link list."""
        html = '<p>Body</p><h3>Tags</h3><ul><li><a href="/tags/ai">AI</a></li></ul>'

        result = strip_publisher_tag_section(html, "https://openai.com/index/post/")

        assert result == "<p>Body</p>"

    def test_removes_marked_section(self) -> None:
        """Test removal of a section marked by class."""
        html = '<p>Body</p><div class="post-tags"><a href="/topics/research">Research</a></div>'

        result = strip_publisher_tag_section(html, "https://openai.com/index/post/")

        assert result == "<p>Body</p>"

    def test_other_publishers_untouched(self) -> None:
        """Test that only OpenAI articles are rewritten."""
        html = '<p>Body</p><h3>Tags</h3><ul><li><a href="/tags/ai">AI</a></li></ul>'

        assert strip_publisher_tag_section(html, "https://example.com/post") == html
