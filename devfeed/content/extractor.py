"""Main-content extraction with readability-lxml."""

from dataclasses import dataclass
from typing import Protocol

import structlog
from bs4 import BeautifulSoup
from readability import Document
from readability.readability import Unparseable

from devfeed.content.dom import attr_text, parse_document
from devfeed.content.text import decode_html_entities, html_to_text, normalize_whitespace


logger = structlog.get_logger()

# Extracted bodies with less visible text than this are treated as empty
MIN_CONTENT_TEXT_LENGTH = 25
MAX_BYLINE_LENGTH = 100

TITLE_META_SELECTORS = ('meta[property="og:title"]', 'meta[name="twitter:title"]')
SITE_NAME_META_SELECTORS = ('meta[property="og:site_name"]', 'meta[name="application-name"]')
EXCERPT_META_SELECTORS = (
    'meta[name="description"]',
    'meta[property="og:description"]',
    'meta[name="twitter:description"]',
)
BYLINE_SELECTOR = '[rel~="author"], [itemprop~="author"], .byline, .p-author'


@dataclass(frozen=True)
class ExtractedArticle:
    """Main content of an article page."""

    title: str
    content: str
    byline: str | None = None
    site_name: str | None = None
    excerpt: str | None = None


class MainContentExtractor(Protocol):
    """Protocol for readability-style extractors."""

    def extract(self, html: str, url: str) -> ExtractedArticle | None:
        """Extract the main content of a page.

        Args:
            html: Full page HTML.
            url: Final page URL.

        Returns:
            ExtractedArticle, or None if no usable content was found.
        """
        ...


def _first_meta(document: BeautifulSoup, selectors: tuple[str, ...]) -> str | None:
    for selector in selectors:
        meta = document.select_one(selector)
        content = attr_text(meta, "content") if meta is not None else ""
        if content:
            return normalize_whitespace(decode_html_entities(content))
    return None


def _byline(document: BeautifulSoup) -> str | None:
    for element in document.select(BYLINE_SELECTOR):
        if element.name == "meta":
            continue
        text = element.get_text("\n").strip()
        if text and len(normalize_whitespace(text)) <= MAX_BYLINE_LENGTH:
            return text
    return None


class ReadabilityExtractor:
    """Extractor backed by readability-lxml.

    readability-lxml only returns the body and the title, so the byline,
    site name and excerpt are read from the page's metadata.
    """

    def __init__(self, min_text_length: int = MIN_CONTENT_TEXT_LENGTH) -> None:
        self._min_text_length = min_text_length
        self._log = logger.bind(component="content")

    def extract(self, html: str, url: str) -> ExtractedArticle | None:
        """Extract the main content of a page.

        Args:
            html: Full page HTML.
            url: Final page URL, used to absolutize links.

        Returns:
            ExtractedArticle, or None if no usable content was found.
        """
        if not html.strip():
            return None

        try:
            readable = Document(html, url=url)
            content = readable.summary(html_partial=True)
            readable_title = readable.short_title() or readable.title()
        except Unparseable as e:
            self._log.info("extraction_unparseable", url=url, error=str(e))
            return None

        if len(html_to_text(content)) < self._min_text_length:
            self._log.info("extraction_empty", url=url)
            return None

        document = parse_document(html)
        title = _first_meta(document, TITLE_META_SELECTORS) or readable_title or ""
        if title == "[no-title]":
            title = ""

        return ExtractedArticle(
            title=normalize_whitespace(title),
            content=content,
            byline=_byline(document),
            site_name=_first_meta(document, SITE_NAME_META_SELECTORS),
            excerpt=_first_meta(document, EXCERPT_META_SELECTORS),
        )
