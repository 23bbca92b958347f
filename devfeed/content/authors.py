"""Author extraction from article documents and leading byline blocks.

Publisher markup differs wildly, so the link and avatar patterns are kept
as an explicit table of CSS selectors per known publisher. Supporting a
new publisher means adding a row to ``PUBLISHER_AUTHOR_RULES``.
"""

import re
from dataclasses import dataclass
from urllib.parse import urlsplit

from bs4 import BeautifulSoup, Tag

from devfeed.content.dom import (
    attr_text,
    first_meaningful_element,
    parse_fragment,
    serialize_fragment,
)
from devfeed.content.models import AuthorProfile
from devfeed.content.text import (
    decode_html_entities,
    format_author_name_list,
    normalize_author_name,
    normalize_whitespace,
)
from devfeed.content.urls import canonicalize_url, normalize_host, to_absolute_url


MAX_BYLINE_LINKS = 8
MAX_BYLINE_TEXT_LENGTH = 180


@dataclass(frozen=True)
class PublisherAuthorRules:
    """Selectors locating author links and avatars for one publisher.

    Attributes:
        publisher: Publisher name, for readability only.
        author_links: Anchors whose text is an author name and whose
            href is the author's profile.
        avatar_images: Images whose ``alt`` is an author name.
        avatar_cards: Containers holding one author's name and avatar.
        card_name: Selectors for the name inside a card, first match wins.
        card_avatar: Selector for the avatar image inside a card.
        fallback_links: Anchors searched document-wide when
            ``author_links`` matches nothing.
        fallback_container: Byline container around the first fallback
            anchor; every fallback anchor inside it is used.
    """

    publisher: str
    author_links: str
    avatar_images: str | None = None
    avatar_cards: str | None = None
    card_name: tuple[str, ...] = ()
    card_avatar: str | None = None
    fallback_links: str | None = None
    fallback_container: str | None = None


_GITHUB_AUTHOR_ANCHORS = "a[rel='author'][href*='/author/'], a.author[href*='/author/']"
_GITHUB_BYLINE = "div.d-flex.flex-items-center.mb-6px"

PUBLISHER_AUTHOR_RULES: tuple[PublisherAuthorRules, ...] = (
    PublisherAuthorRules(
        publisher="cloudflare",
        author_links=".author-lists .author-name-tooltip a[href]",
        avatar_images=".author-lists img[alt][src]",
    ),
    PublisherAuthorRules(
        publisher="github",
        author_links=(
            f"div.mb-4.mb-lg-0 {_GITHUB_BYLINE} a[rel='author'][href*='/author/'], "
            f"div.mb-4.mb-lg-0 {_GITHUB_BYLINE} a.author[href*='/author/']"
        ),
        avatar_images="article.author-bio img[alt][src]",
        fallback_links=_GITHUB_AUTHOR_ANCHORS,
        fallback_container=_GITHUB_BYLINE,
    ),
    PublisherAuthorRules(
        publisher="stripe",
        author_links="a.BlogAuthor__link[href]",
        avatar_cards="figure.BlogAuthor",
        card_name=("a.BlogAuthor__link", "figcaption a[href]"),
        card_avatar="img.BlogAuthor__avatar",
    ),
)

# Images whose alt text names an author when no linked author is found
ALT_NAME_SELECTOR = ".author-lists img[alt]"

AVATAR_FALLBACK_SELECTORS: tuple[str, ...] = (
    ".author-lists img.author-profile-image",
    "article.author-bio img[src]",
    "img.author-profile-image",
    ".author-lists img[alt]",
    "img.BlogAuthor__avatar[src]",
    '[class*="author"] img[src]',
)

META_AUTHOR_SELECTORS: tuple[str, ...] = (
    'meta[name="author"]',
    'meta[property="article:author:name"]',
)

_LEADING_PUNCTUATION = re.compile(r"^[,;:\s-]+")
_TRAILING_PUNCTUATION = re.compile(r"[,;:\s]+$")
_SENTENCE_PUNCTUATION = re.compile(r"[.!?]")
_BYLINE_SEPARATORS = re.compile(r"[·•,&/|]")
_BYLINE_WORDS = re.compile(r"\b(?:by|and)\b", re.IGNORECASE)


@dataclass(frozen=True)
class AuthorInfo:
    """Authorship extracted from an article document."""

    author_name: str | None = None
    author_avatar_url: str | None = None
    authors: tuple[AuthorProfile, ...] = ()


def normalize_byline_author_name(value: str | None) -> str | None:
    """Format a byline; multi-line bylines keep only their first line."""
    if not value:
        return None

    lines = [
        line
        for line in (normalize_author_name(raw) for raw in value.splitlines())
        if line
    ]
    if len(lines) > 1:
        first_line = format_author_name_list(lines[0])
        if first_line:
            return first_line

    return format_author_name_list(normalize_author_name(value))


def _name_key(value: str | None) -> str | None:
    normalized = normalize_author_name(value or "")
    return normalized.lower() if normalized else None


def merge_author_profiles(
    *groups: tuple[AuthorProfile, ...] | list[AuthorProfile],
) -> tuple[AuthorProfile, ...]:
    """Merge author lists, de-duplicating by profile URL.

    The first name seen for a URL wins; a missing avatar is backfilled from
    a later duplicate. Entries without a usable name or absolute profile
    URL are dropped.

    Args:
        *groups: Author lists in priority order.

    Returns:
        Merged authors in first-seen order.
    """
    merged: list[dict[str, str | None]] = []
    index_by_url: dict[str, int] = {}

    for group in groups:
        for author in group:
            name = normalize_author_name(author.name)
            profile_url = to_absolute_url(author.profile_url, author.profile_url)
            if not name or not profile_url:
                continue

            avatar_url = to_absolute_url(author.avatar_url, profile_url)
            url_key = profile_url.lower()

            existing = index_by_url.get(url_key)
            if existing is not None:
                if not merged[existing]["avatar_url"] and avatar_url:
                    merged[existing]["avatar_url"] = avatar_url
                continue

            index_by_url[url_key] = len(merged)
            merged.append(
                {"name": name, "profile_url": profile_url, "avatar_url": avatar_url}
            )

    return tuple(AuthorProfile(**entry) for entry in merged)


def _collect_avatars(
    document: BeautifulSoup, rules: PublisherAuthorRules, base_url: str
) -> dict[str, str]:
    avatars: dict[str, str] = {}

    def remember(name: str | None, src: str | None) -> None:
        key = _name_key(name)
        resolved = to_absolute_url(src, base_url)
        if key and resolved and key not in avatars:
            avatars[key] = resolved

    if rules.avatar_images:
        for image in document.select(rules.avatar_images):
            remember(attr_text(image, "alt"), attr_text(image, "src"))

    if rules.avatar_cards:
        for card in document.select(rules.avatar_cards):
            name = ""
            for selector in rules.card_name:
                found = card.select_one(selector)
                if found is not None and found.get_text():
                    name = found.get_text()
                    break
            image = card.select_one(rules.card_avatar) if rules.card_avatar else None
            remember(name, attr_text(image, "src") if image is not None else None)

    return avatars


def _profiles_from_links(
    links: list[Tag], base_url: str, avatars: dict[str, str]
) -> list[AuthorProfile]:
    profiles: list[AuthorProfile] = []
    for link in links:
        name = normalize_author_name(link.get_text())
        profile_url = to_absolute_url(attr_text(link, "href"), base_url)
        if not name or not profile_url:
            continue
        profiles.append(
            AuthorProfile(
                name=name,
                profile_url=profile_url,
                avatar_url=avatars.get(name.lower()),
            )
        )
    return profiles


def _publisher_links(
    document: BeautifulSoup,
    rules: PublisherAuthorRules,
    base_url: str,
    avatars: dict[str, str],
) -> list[AuthorProfile]:
    profiles = _profiles_from_links(document.select(rules.author_links), base_url, avatars)
    if profiles or not rules.fallback_links:
        return profiles

    first = document.select_one(rules.fallback_links)
    if first is None or not rules.fallback_container:
        return profiles

    container = first.css.closest(rules.fallback_container)
    if container is None:
        return profiles

    return _profiles_from_links(container.select(rules.fallback_links), base_url, avatars)


def _meta_author(document: BeautifulSoup) -> str | None:
    for selector in META_AUTHOR_SELECTORS:
        meta = document.select_one(selector)
        content = attr_text(meta, "content") if meta is not None else ""
        if content:
            return format_author_name_list(normalize_author_name(content))
    return None


def _fallback_avatar_src(document: BeautifulSoup) -> str | None:
    for selector in AVATAR_FALLBACK_SELECTORS:
        image = document.select_one(selector)
        if image is not None and attr_text(image, "src"):
            return attr_text(image, "src")
    return None


def extract_author_info(
    document: BeautifulSoup,
    base_url: str,
    byline: str | None = None,
) -> AuthorInfo:
    """Extract authors from a full article document.

    Linked authors from the publisher table take precedence, then the
    extractor's byline, then the ``author`` meta tags. The avatar comes from
    the first linked author with one, then the byline author's avatar, then
    a chain of generic avatar selectors.

    Args:
        document: Parsed article page.
        base_url: Final page URL for resolving relative links.
        byline: Byline reported by the main-content extractor.

    Returns:
        AuthorInfo for the page.
    """
    from_byline = normalize_byline_author_name(byline)
    from_meta = _meta_author(document)

    avatar_maps: list[dict[str, str]] = []
    link_groups: list[list[AuthorProfile]] = []
    for rules in PUBLISHER_AUTHOR_RULES:
        avatars = _collect_avatars(document, rules, base_url)
        avatar_maps.append(avatars)
        link_groups.append(_publisher_links(document, rules, base_url, avatars))

    linked_authors = merge_author_profiles(*link_groups)
    linked_names = [author.name for author in linked_authors]

    if not linked_names:
        for image in document.select(ALT_NAME_SELECTOR):
            name = normalize_author_name(attr_text(image, "alt"))
            if name and name not in linked_names:
                linked_names.append(name)

    author_name = format_author_name_list(
        (", ".join(linked_names) if linked_names else None) or from_byline or from_meta
    )

    linked_avatar = next(
        (author.avatar_url for author in linked_authors if author.avatar_url), None
    )

    byline_avatar: str | None = None
    byline_key = _name_key(from_byline.split(",")[0] if from_byline else None)
    if byline_key:
        byline_avatar = next(
            (avatars[byline_key] for avatars in avatar_maps if byline_key in avatars),
            None,
        )

    author_avatar_url = (
        linked_avatar
        or byline_avatar
        or to_absolute_url(_fallback_avatar_src(document), base_url)
    )

    return AuthorInfo(
        author_name=author_name,
        author_avatar_url=author_avatar_url,
        authors=linked_authors,
    )


def _is_linkedin_profile_url(url: str) -> bool:
    try:
        parsed = urlsplit(url)
    except ValueError:
        return False

    host = normalize_host(parsed.hostname or "")
    if host != "linkedin.com" and not host.endswith(".linkedin.com"):
        return False

    return parsed.path.startswith(("/in/", "/pub/"))


def _normalize_author_line_text(value: str) -> str:
    text = decode_html_entities(value)
    text = _LEADING_PUNCTUATION.sub(" ", text)
    text = _TRAILING_PUNCTUATION.sub(" ", text)
    return normalize_whitespace(text)


def _resolve_href(href: str, article_url: str | None) -> str | None:
    if article_url:
        return to_absolute_url(href, article_url)
    return href if canonicalize_url(href) else None


def extract_leading_linkedin_authors(
    html: str, article_url: str | None = None
) -> tuple[tuple[AuthorProfile, ...], str]:
    """Lift a leading "by <LinkedIn profiles>" line out of article HTML.

    The first meaningful element qualifies when it holds 1 to 8 links, at
    least one of them a LinkedIn profile, its text is a short line without
    sentence punctuation, and nothing but the author names, separators,
    "by" and "and" remains once the names are removed.

    Args:
        html: Article HTML fragment.
        article_url: Article URL for resolving relative links.

    Returns:
        The authors found and the HTML with the byline element removed, or
        no authors and the HTML unchanged.
    """
    root = parse_fragment(html)
    unchanged: tuple[tuple[AuthorProfile, ...], str] = ((), serialize_fragment(root))

    first = first_meaningful_element(root)
    if first is None:
        return unchanged

    links = first.select("a[href]")
    if not links or len(links) > MAX_BYLINE_LINKS:
        return unchanged

    authors: list[AuthorProfile] = []
    seen_urls: set[str] = set()
    for link in links:
        resolved = _resolve_href(attr_text(link, "href"), article_url)
        if not resolved or not _is_linkedin_profile_url(resolved):
            continue

        profile_url = canonicalize_url(resolved) or resolved
        if profile_url in seen_urls:
            continue

        name = _normalize_author_line_text(link.get_text())
        if not name:
            continue

        seen_urls.add(profile_url)
        authors.append(AuthorProfile(name=name, profile_url=profile_url))

    if not authors:
        return unchanged

    line_text = _normalize_author_line_text(first.get_text())
    if (
        not line_text
        or len(line_text) > MAX_BYLINE_TEXT_LENGTH
        or _SENTENCE_PUNCTUATION.search(line_text)
    ):
        return unchanged

    remainder = line_text
    for author in authors:
        remainder = re.sub(re.escape(author.name), " ", remainder, flags=re.IGNORECASE)
    remainder = _BYLINE_SEPARATORS.sub(" ", remainder)
    remainder = normalize_whitespace(_BYLINE_WORDS.sub(" ", remainder))

    if remainder:
        return unchanged

    first.decompose()
    return tuple(authors), serialize_fragment(root)
