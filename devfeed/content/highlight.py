"""Syntax highlighting of ``<pre><code>`` blocks with Pygments."""

import html
import re
from dataclasses import dataclass

import structlog
from bs4 import Tag
from pygments import highlight as pygments_highlight
from pygments.formatters import HtmlFormatter
from pygments.lexer import Lexer
from pygments.lexers import get_lexer_by_name, guess_lexer
from pygments.util import ClassNotFound

from devfeed.content.dom import attr_text, class_list, parse_fragment, serialize_fragment


logger = structlog.get_logger()

HIGHLIGHT_MARKER_CLASS = "hljs"

LANGUAGE_ALIASES: dict[str, str] = {
    "js": "javascript",
    "jsx": "javascript",
    "ts": "typescript",
    "tsx": "typescript",
    "sh": "bash",
    "zsh": "bash",
    "shell": "bash",
    "yml": "yaml",
    "md": "markdown",
    "py": "python",
    "rb": "ruby",
    "rs": "rust",
    "cs": "csharp",
    "c++": "cpp",
}

_LANGUAGE_CLASS = re.compile(r"^language-([a-z0-9_+\-#.]+)$", re.IGNORECASE)
_LANG_CLASS = re.compile(r"^lang-([a-z0-9_+\-#.]+)$", re.IGNORECASE)

_FORMATTER = HtmlFormatter(nowrap=True)
_LEXER_OPTIONS = {"stripnl": False, "ensurenl": False}


@dataclass(frozen=True)
class HighlightResult:
    """Highlighted markup and the language it was highlighted as."""

    html: str
    detected_language: str | None


def _lexer_for(name: str) -> Lexer | None:
    try:
        return get_lexer_by_name(name, **_LEXER_OPTIONS)
    except ClassNotFound:
        return None


def resolve_language(raw: str) -> str | None:
    """Map a language hint to a name Pygments knows, or None."""
    normalized = raw.strip().lower()
    if not normalized:
        return None

    if _lexer_for(normalized) is not None:
        return normalized

    alias = LANGUAGE_ALIASES.get(normalized)
    if alias and _lexer_for(alias) is not None:
        return alias

    return None


def highlight(code: str, language: str | None = None) -> HighlightResult:
    """Highlight source code.

    Args:
        code: Source text.
        language: Language name; detected automatically when omitted.

    Returns:
        HighlightResult with token-span HTML and the language used. When no
        lexer applies, the code is returned escaped with no language.
    """
    lexer = _lexer_for(language) if language else None
    detected = language if lexer is not None else None

    if lexer is None:
        try:
            lexer = guess_lexer(code, **_LEXER_OPTIONS)
        except ClassNotFound:
            return HighlightResult(html=html.escape(code, quote=False), detected_language=None)
        detected = lexer.aliases[0] if lexer.aliases else lexer.name.lower()

    return HighlightResult(
        html=pygments_highlight(code, lexer, _FORMATTER),
        detected_language=detected,
    )


def language_hints(tag: Tag | None) -> list[str]:
    """Collect language hints from data attributes, then class names."""
    if tag is None:
        return []

    data_hints = [
        value
        for value in (attr_text(tag, "data-language"), attr_text(tag, "data-lang"))
        if value
    ]

    class_hints: list[str] = []
    for name in class_list(tag):
        match = _LANGUAGE_CLASS.match(name) or _LANG_CLASS.match(name)
        if match:
            class_hints.append(match.group(1))

    return data_hints + class_hints


def _add_classes(tag: Tag, *names: str) -> None:
    classes = class_list(tag)
    for name in names:
        if name not in classes:
            classes.append(name)
    tag["class"] = classes


def _highlight_block(code: Tag) -> None:
    pre = code.parent if isinstance(code.parent, Tag) else None
    code_text = code.get_text()
    if not code_text.strip():
        return

    language: str | None = None
    for hint in language_hints(code) + language_hints(pre):
        language = resolve_language(hint)
        if language:
            break

    result = highlight(code_text, language)

    code.clear()
    for node in list(parse_fragment(result.html).contents):
        code.append(node.extract())

    _add_classes(code, HIGHLIGHT_MARKER_CLASS)
    if result.detected_language:
        _add_classes(code, f"language-{result.detected_language}")
        code["data-language"] = result.detected_language

    if pre is not None:
        _add_classes(pre, HIGHLIGHT_MARKER_CLASS)


def apply_syntax_highlighting(html_content: str) -> str:
    """Highlight every ``pre > code`` block in an HTML fragment.

    A block that fails to highlight is left untouched; the fragment is
    returned unchanged when it holds no code blocks or cannot be parsed.
    """
    if "<pre" not in html_content or "<code" not in html_content:
        return html_content

    try:
        soup = parse_fragment(html_content)
    except Exception as e:  # noqa: BLE001
        logger.warning("highlight_parse_failed", component="content", error=str(e))
        return html_content

    for code in soup.select("pre > code"):
        try:
            _highlight_block(code)
        except Exception as e:  # noqa: BLE001
            logger.warning("highlight_block_failed", component="content", error=str(e))

    return serialize_fragment(soup)
