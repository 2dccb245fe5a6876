"""Markdown rendering for Folio.

Converts document bodies from markdown to HTML with mistune, highlighting
fenced code blocks with Pygments. Output is a pure function of the input
text, so unchanged content renders to byte-identical HTML.

Key classes:
- MarkdownRenderer: Renders a Document's body, summary and TOC.
"""

from __future__ import annotations

import re

import mistune
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

from .content import Document, Heading
from .html_utils import escape_html, strip_tags, text_content
from .utils import first_paragraph

MORE_MARKER_RE = re.compile(r"<!--\s*more\s*-->", re.IGNORECASE)
PLUGINS = ["strikethrough", "footnotes", "table", "url"]


def _generate_heading_id(text: str) -> str:
    """Generate a URL-friendly ID from heading text.

    Args:
        text: The heading text (may contain inline HTML).

    Returns:
        URL-friendly slug suitable for anchor links.
    """
    slug = strip_tags(text).lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[-\s]+", "-", slug)
    return slug.strip("-") or "section"


class _HighlightRenderer(mistune.HTMLRenderer):
    """HTML renderer with heading anchors and syntax highlighting.

    Attributes:
        headings: List of Heading objects extracted during rendering.
    """

    def __init__(self):
        super().__init__(escape=False)
        self.headings: list[Heading] = []
        self._heading_id_counts: dict[str, int] = {}

    def heading(self, text: str, level: int, **attrs) -> str:
        """Render a heading with a unique id and track it for the TOC."""
        base_id = _generate_heading_id(text)

        if base_id in self._heading_id_counts:
            self._heading_id_counts[base_id] += 1
            heading_id = f"{base_id}-{self._heading_id_counts[base_id]}"
        else:
            self._heading_id_counts[base_id] = 0
            heading_id = base_id

        self.headings.append(Heading(id=heading_id, text=strip_tags(text), level=level))
        return f'<h{level} id="{heading_id}">{text}</h{level}>\n'

    def block_code(self, code: str, info: str | None = None) -> str:
        """Render a code block, highlighted when the language is known."""
        lang = info.split()[0] if info else ""
        if lang:
            try:
                lexer = get_lexer_by_name(lang, stripall=True)
            except ClassNotFound:
                lexer = None
            if lexer is not None:
                formatter = HtmlFormatter(nowrap=False, cssclass="highlight")
                return highlight(code, lexer, formatter)
        lang_class = f' class="language-{escape_html(lang)}"' if lang else ""
        return f"<pre><code{lang_class}>{escape_html(code)}</code></pre>\n"


def markdown_to_html(text: str) -> tuple[str, list[Heading]]:
    """Render markdown to HTML.

    A fresh parser is created per call so heading ids never leak between
    documents.

    Returns:
        Tuple of (rendered HTML, list of Heading objects).
    """
    renderer = _HighlightRenderer()
    markdown = mistune.create_markdown(renderer=renderer, plugins=PLUGINS)
    return markdown(text), renderer.headings


class MarkdownRenderer:
    """Renders Document bodies and summaries.

    Attributes:
        summary_length: Character limit for automatic summaries.
    """

    def __init__(self, summary_length: int = 160):
        self.summary_length = summary_length

    def render(self, document: Document) -> Document:
        """Fill ``content``, ``summary``, ``truncated`` and ``toc`` on a document.

        The summary is, in order of preference: the markdown before a
        ``<!--more-->`` marker, the ``summary`` header, the description, or
        the first paragraph of the body.
        """
        content, toc = markdown_to_html(document.body)
        document.content = content
        document.toc = toc

        parts = MORE_MARKER_RE.split(document.body, maxsplit=1)
        if len(parts) == 2:
            document.summary, _ = markdown_to_html(parts[0])
            document.truncated = True
            return document

        summary_text = (
            document.summary_source
            or document.description
            or first_paragraph(document.body, self.summary_length)
        )
        document.summary = f"<p>{escape_html(summary_text)}</p>\n" if summary_text else ""
        # truncated when the summary does not cover the whole body
        document.truncated = bool(summary_text) and summary_text != text_content(content)
        return document
