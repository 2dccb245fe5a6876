"""HTML utility functions for Folio.

Functions:
    escape_html: Escape special HTML characters in a string.
    strip_tags: Remove markup, keeping text.
    text_content: Visible text of a fragment, whitespace collapsed.
    join_root_url: Join a base URL with a path.
    minify_html: Reduce whitespace and comments in rendered HTML.
"""

from __future__ import annotations

import re
from html import unescape

_TAG_RE = re.compile(r"<[^>]+>")

# Elements whose bodies are whitespace-sensitive or not HTML at all
_PRESERVE_RE = re.compile(
    r"<(pre|textarea|script|style)\b[^>]*>.*?</\1\s*>", re.IGNORECASE | re.DOTALL
)
# Comments, except IE conditional comments
_COMMENT_RE = re.compile(r"<!--(?!\[if).*?-->", re.DOTALL)
_INTERTAG_NEWLINE_RE = re.compile(r"(?<=>)\s*\n\s*(?=<)")
_TAG_NAME_RE = re.compile(r"</?([a-zA-Z][a-zA-Z0-9-]*)")
# Whitespace next to these tags does not render
BLOCK_TAGS = frozenset(
    {
        "address", "article", "aside", "blockquote", "body", "br", "dd", "details",
        "div", "dl", "dt", "fieldset", "figcaption", "figure", "footer", "form",
        "h1", "h2", "h3", "h4", "h5", "h6", "head", "header", "hr", "html", "li",
        "link", "main", "meta", "nav", "ol", "p", "pre", "section", "summary",
        "table", "tbody", "td", "tfoot", "th", "thead", "title", "tr", "ul",
    }
)
_WHITESPACE_RE = re.compile(r"\s+")
_PLACEHOLDER = "\x00folio-preserved-{}\x00"
_PLACEHOLDER_RE = re.compile(r"\x00folio-preserved-(\d+)\x00")


def escape_html(text: str) -> str:
    """Escape special HTML characters in a string.

    Examples:
        >>> escape_html('Tom & "Jerry"')
        'Tom &amp; &quot;Jerry&quot;'
    """
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


def strip_tags(html: str) -> str:
    """Remove HTML tags from a fragment."""
    return _TAG_RE.sub("", html)


def text_content(html: str) -> str:
    """Visible text of a fragment with entities decoded and whitespace collapsed."""
    return " ".join(unescape(strip_tags(html)).split())


def join_root_url(root_url: str, path: str) -> str:
    """Safely join a root URL and a path, avoiding double slashes.

    Examples:
        >>> join_root_url('https://example.com/', '/about/')
        'https://example.com/about/'
    """
    if not root_url:
        return path
    base = root_url.rstrip("/")
    suffix = path if path.startswith("/") else f"/{path}"
    return f"{base}{suffix}"


def minify_html(html: str) -> str:
    """Reduce the size of an HTML document without changing how it renders.

    Removes comments, drops line-spanning whitespace next to block-level
    tags, and collapses other whitespace runs to one space. ``<pre>``,
    ``<textarea>``, ``<script>`` and ``<style>`` elements are kept verbatim.
    """
    preserved: list[str] = []

    def stash(match: re.Match) -> str:
        preserved.append(match.group(0))
        return _PLACEHOLDER.format(len(preserved) - 1)

    text = _PRESERVE_RE.sub(stash, html)
    text = _COMMENT_RE.sub("", text)
    text = _INTERTAG_NEWLINE_RE.sub(_intertag_space, text)
    text = _WHITESPACE_RE.sub(" ", text).strip()
    return _PLACEHOLDER_RE.sub(lambda m: preserved[int(m.group(1))], text)


def _is_block_tag(tag: str) -> bool:
    match = _TAG_NAME_RE.match(tag)
    # comments and doctypes count as block boundaries
    return match is None or match.group(1).lower() in BLOCK_TAGS


def _intertag_space(match: re.Match) -> str:
    text = match.string
    before = text[text.rfind("<", 0, match.start()) : match.start()]
    after = text[match.end() : text.find(">", match.end()) + 1]
    if _is_block_tag(before) or _is_block_tag(after):
        return ""
    return " "
