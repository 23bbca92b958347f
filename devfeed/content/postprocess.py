"""Post-processing chain shared by extracted pages and feed fallbacks."""

from dataclasses import dataclass

from devfeed.content.authors import extract_leading_linkedin_authors
from devfeed.content.cleanup import strip_leading_feed_metadata, strip_publisher_tag_section
from devfeed.content.highlight import apply_syntax_highlighting
from devfeed.content.models import AuthorProfile
from devfeed.content.sanitize import sanitize_article_html
from devfeed.content.text import extract_read_time_label_from_content


@dataclass(frozen=True)
class ProcessedContent:
    """Cleaned article HTML with what was lifted out of it."""

    content: str
    reading_time_label: str | None
    byline_authors: tuple[AuthorProfile, ...]


def postprocess_article_html(
    raw_html: str,
    article_url: str,
    title: str | None = None,
) -> ProcessedContent:
    """Sanitize, highlight and de-clutter an article body.

    The reading-time label is read before the leading metadata lines that
    usually carry it are stripped.

    Args:
        raw_html: Extracted or feed-provided article HTML.
        article_url: Article URL, for link resolution and publisher rules.
        title: Article title, to strip a repeated leading title.

    Returns:
        ProcessedContent.
    """
    sanitized = sanitize_article_html(raw_html)
    highlighted = apply_syntax_highlighting(sanitized)
    reading_time_label = extract_read_time_label_from_content(highlighted)

    byline_authors, without_byline = extract_leading_linkedin_authors(
        highlighted, article_url
    )
    without_metadata = strip_leading_feed_metadata(without_byline, title)
    content = strip_publisher_tag_section(without_metadata, article_url)

    return ProcessedContent(
        content=content,
        reading_time_label=reading_time_label,
        byline_authors=byline_authors,
    )
