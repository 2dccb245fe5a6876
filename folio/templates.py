"""Template rendering engine for Folio.

This module uses Jinja2 to render documents and listing pages through the
layouts of the configured theme.

Layouts are looked up in the project's ``layouts/`` directory first, then in
the theme's ``layouts/``, then in the built-in default theme, so a project
can override any single template.

Key classes:
- TemplateEngine: Handles template selection and provides context to templates.
- ListPage: A generated listing page (home, section, tag index, tag).
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, Template, select_autoescape
from markupsafe import Markup

from .collections import PageCollection, TagCollection
from .config import BUILTIN_THEMES_DIR, SiteConfig
from .content import Document, Heading
from .dates import format_timestamp, isoformat
from .html_utils import escape_html, join_root_url
from .utils import slugify

__all__ = ["ListPage", "TemplateEngine", "render_toc"]


@dataclass
class ListPage:
    """A listing page generated from other documents.

    Attributes:
        kind: "home", "section", "taxonomy" (all tags), "term" (one tag) or "404".
        title: Heading for the page.
        url: Root-relative output URL.
        pages: Documents listed on the page.
        section: Section name for section listings.
        content: Rendered intro from the section's ``_index.md``, if any.
        document: The ``_index.md`` Document backing the page, if any.
    """

    kind: str
    title: str
    url: str
    pages: PageCollection = field(default_factory=lambda: PageCollection([]))
    section: str = ""
    content: str = ""
    document: Document | None = None

    @property
    def date(self) -> datetime | None:
        return self.pages[0].date if len(self.pages) else None


def render_toc(page: Document) -> Markup:
    """Render a table of contents as nested HTML from page headings.

    Generates nested ``<ul><li><a href="#id">text</a></li></ul>`` structure
    based on heading levels.

    Args:
        page: Document containing the toc (list of Heading objects).

    Returns:
        Markup-safe HTML string of the nested TOC, or empty Markup if no headings.
    """
    headings: list[Heading] = getattr(page, "toc", None) or []
    if not headings:
        return Markup("")

    html_parts: list[str] = []
    level_stack: list[int] = []

    for heading in headings:
        level = heading.level

        while level_stack and level_stack[-1] > level:
            level_stack.pop()
            html_parts.append("</li></ul>")

        if level_stack and level_stack[-1] == level:
            html_parts.append("</li>")
        elif not level_stack or level > level_stack[-1]:  # pragma: no branch
            html_parts.append("<ul>")
            level_stack.append(level)

        html_parts.append(
            f'<li><a href="#{escape_html(heading.id)}">{escape_html(heading.text)}</a>'
        )

    while level_stack:
        level_stack.pop()
        html_parts.append("</li></ul>")

    return Markup("".join(html_parts))


class TemplateEngine:
    """Template rendering engine using Jinja2.

    Attributes:
        config: Site configuration.
        env: Jinja2 environment.
        pages: All visible documents, newest first.
        tags: Documents by tag.
    """

    def __init__(self, config: SiteConfig):
        """Initialize the template engine.

        Args:
            config: Site configuration; its theme must resolve.
        """
        self.config = config
        self.env = Environment(
            loader=FileSystemLoader([str(p) for p in self.search_path()]),
            autoescape=select_autoescape(["html", "xml"]),
            keep_trailing_newline=True,
        )
        self.pages = PageCollection([])
        self.tags = TagCollection({})
        self._install_globals()

    def search_path(self) -> list[Path]:
        """Layout directories in lookup order."""
        candidates = [
            self.config.project_root / "layouts",
            self.config.theme_dir() / "layouts",
            BUILTIN_THEMES_DIR / "default" / "layouts",
        ]
        paths: list[Path] = []
        for path in candidates:
            if path.is_dir() and path not in paths:
                paths.append(path)
        return paths

    def _install_globals(self) -> None:
        """Install global variables, functions and filters in the Jinja environment."""
        self.env.globals["site"] = self.config
        self.env.globals["menu"] = self.config.menu
        self.env.globals["pages"] = self.pages
        self.env.globals["tags"] = self.tags
        self.env.globals["render_toc"] = render_toc
        self.env.globals["relurl"] = self.relurl
        self.env.globals["absurl"] = self.absurl
        self.env.filters["date"] = self.format_date
        self.env.filters["isodate"] = self.iso_date
        self.env.filters["relurl"] = self.relurl
        self.env.filters["absurl"] = self.absurl
        self.env.filters["slug"] = slugify

    def update_collections(
        self, pages: Iterable[Document], tags: dict[str, list[Document]]
    ) -> None:
        """Update the page and tag collections.

        Args:
            pages: Iterable of all visible documents.
            tags: Dictionary mapping tag names to document lists.
        """
        self.pages = PageCollection(pages)
        self.tags = TagCollection(tags)
        self.env.globals["pages"] = self.pages
        self.env.globals["tags"] = self.tags

    def format_date(self, value: datetime | None, fmt: str | None = None) -> str:
        """Display form of a timestamp in the site timezone."""
        if value is None:
            return ""
        return format_timestamp(value, fmt or self.config.date_format, self.config.timezone)

    def iso_date(self, value: datetime | None) -> str:
        """RFC 3339 form of a timestamp in the site timezone."""
        if value is None:
            return ""
        return isoformat(value, self.config.timezone)

    def relurl(self, path: str) -> str:
        """Root-relative URL, prefixed with the path part of ``base_url``."""
        if path.startswith(("http://", "https://", "//", "mailto:", "#")):
            return path
        return join_root_url(self.config.base_path, path) or "/"

    def absurl(self, path: str) -> str:
        """Absolute URL under ``base_url``."""
        if path.startswith(("http://", "https://", "//")):
            return path
        return join_root_url(self.config.base_url, path)

    def render_document(self, document: Document) -> str:
        """Render a single document with its layout."""
        candidates = []
        if document.layout:
            candidates.append(_template_name(document.layout))
        if document.section:
            candidates.append(f"{document.section}/single.html")
        candidates.append("single.html")
        return self._render(candidates, document)

    def render_list(self, listing: ListPage) -> str:
        """Render a listing page with its layout."""
        candidates = []
        if listing.document is not None and listing.document.layout:
            candidates.append(_template_name(listing.document.layout))
        if listing.kind == "home":
            candidates.append("index.html")
        elif listing.kind == "section":
            candidates.append(f"{listing.section}/list.html")
        elif listing.kind == "taxonomy":
            candidates.append("taxonomy.html")
        elif listing.kind == "term":
            candidates.append("term.html")
        elif listing.kind == "404":
            return self._render(["404.html"], listing)
        candidates.append("list.html")
        return self._render(candidates, listing)

    def _render(self, candidates: list[str], page: Document | ListPage) -> str:
        template = self._select(candidates)
        return template.render(page=page, **self._context())

    def _select(self, candidates: list[str]) -> Template:
        """Return the first template that exists.

        Raises:
            jinja2.TemplatesNotFound: If none of the candidates exist.
        """
        return self.env.select_template(candidates)

    def _context(self) -> dict[str, Any]:
        return {"site": self.config, "pages": self.pages, "tags": self.tags}

    def render_string(self, template: str, context: dict[str, Any]) -> str:
        """Render a template string.

        Args:
            template: Template string to render.
            context: Variables to make available in the template.

        Returns:
            Rendered string.
        """
        tmpl = self.env.from_string(template)
        return tmpl.render(**context)


def _template_name(layout: str) -> str:
    return layout if layout.endswith(".html") else f"{layout}.html"
