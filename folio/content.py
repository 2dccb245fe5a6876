"""Content collection for Folio.

This module reads the content tree and turns each markdown file into a
Document: metadata from its header, markdown body, derived slug, section and
URL. Drafts are filtered here, before anything is rendered.

Key classes:
- Document: Dataclass representing a content file and its metadata.
- Heading: Dataclass representing a heading for TOC generation.
- ContentCollector: Discovers content files and builds Documents.
- DocumentError: Malformed metadata, naming the offending file.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from .dates import parse_timestamp
from .frontmatter import FrontmatterError, split_frontmatter
from .utils import is_ignored, is_markdown, normalize_url, slugify, titleize

RECOGNIZED_KEYS = frozenset(
    {"title", "date", "draft", "url", "slug", "description", "summary", "tags", "layout"}
)
SECTION_INDEX = "_index.md"


class DocumentError(Exception):
    """Malformed document metadata.

    Attributes:
        source_path: Path to the document that caused the error.
        message: Human-readable error message.
        original_error: The original exception, if any.
    """

    def __init__(
        self,
        source_path: Path,
        message: str,
        original_error: Exception | None = None,
    ):
        self.source_path = source_path
        self.message = message
        self.original_error = original_error
        super().__init__(f"{source_path}: {message}")


@dataclass
class Heading:
    """Represents a heading extracted from markdown content for TOC generation.

    Attributes:
        id: Anchor ID for the heading (URL-friendly slug).
        text: The text content of the heading.
        level: Heading level (1-6).
    """

    id: str
    text: str
    level: int


@dataclass
class Document:
    """A content file with its metadata header and markdown body.

    ``kind`` is ``"page"`` for regular documents, ``"section"`` for a
    directory's ``_index.md`` and ``"home"`` for the content root's
    ``_index.md``. Only pages require a title and a date.

    The renderer fills ``content``, ``summary``, ``truncated`` and ``toc``.

    Attributes:
        path: Path to the source file.
        rel_path: Path relative to the content root.
        title: Document title.
        date: Publication timestamp (timezone-aware), None for section indexes.
        draft: Whether the document is a draft.
        body: Markdown body, header removed.
        url: Root-relative output URL.
        slug: URL-friendly slug.
        section: First directory under the content root, or "".
        description: Short description from the header.
        summary_source: Explicit ``summary`` header value.
        tags: Tag names.
        layout: Explicit template name from the header.
        params: Header keys Folio does not interpret.
    """

    path: Path
    rel_path: Path
    title: str
    date: datetime | None
    draft: bool
    body: str
    url: str
    slug: str
    section: str
    kind: str = "page"
    description: str = ""
    summary_source: str = ""
    tags: list[str] = field(default_factory=list)
    layout: str | None = None
    params: dict[str, Any] = field(default_factory=dict)
    content: str = ""
    summary: str = ""
    truncated: bool = False
    toc: list[Heading] = field(default_factory=list)

    @property
    def is_page(self) -> bool:
        return self.kind == "page"


def is_visible(draft: bool, include_drafts: bool = False) -> bool:
    """Draft filter: drafts are only rendered when explicitly included."""
    return include_drafts or not draft


class ContentCollector:
    """Discovers content files and builds Document objects.

    Attributes:
        content_dir: Root of the content tree.
        default_tz: Timezone for header timestamps without an offset.
    """

    def __init__(self, content_dir: Path, default_tz: str | None = None):
        self.content_dir = content_dir
        self.default_tz = default_tz

    def iter_files(self) -> list[Path]:
        """List markdown files under the content root in sorted order.

        Raises:
            FileNotFoundError: If the content root does not exist.
        """
        if not self.content_dir.is_dir():
            raise FileNotFoundError(f"Content directory not found: {self.content_dir}")
        files: list[Path] = []
        for path in sorted(self.content_dir.rglob("*")):
            if not path.is_file() or not is_markdown(path):
                continue
            if is_ignored(path.relative_to(self.content_dir)):
                continue
            files.append(path)
        return files

    def collect(self, include_drafts: bool = False) -> Iterator[Document]:
        """Lazily yield visible documents.

        Headers are parsed for every file, so a broken header is reported
        even on a draft. Title and date are only enforced on documents that
        will be rendered.

        Args:
            include_drafts: Whether to yield draft documents.

        Raises:
            DocumentError: On malformed metadata.
        """
        for path in self.iter_files():
            metadata, body = self._read(path)
            draft = _parse_draft(path, metadata)
            if not is_visible(draft, include_drafts):
                continue
            yield self.build(path, metadata, body, draft)

    def load(self, path: Path) -> Document:
        """Read and validate a single file, regardless of its draft flag."""
        metadata, body = self._read(path)
        return self.build(path, metadata, body, _parse_draft(path, metadata))

    def _read(self, path: Path) -> tuple[dict[str, Any], str]:
        try:
            raw = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise DocumentError(path, "File is not valid UTF-8", exc) from exc
        try:
            return split_frontmatter(raw)
        except FrontmatterError as exc:
            raise DocumentError(path, str(exc), exc) from exc

    def build(
        self, path: Path, metadata: dict[str, Any], body: str, draft: bool
    ) -> Document:
        """Validate header metadata and derive the Document's URL fields."""
        rel = path.relative_to(self.content_dir)
        parents = list(rel.parent.parts)

        if rel.name == SECTION_INDEX:
            kind = "section" if parents else "home"
            section = parents[0] if parents else ""
            slug = slugify(parents[-1]) if parents else "index"
            default_url = "/" + "/".join(parents)
            default_title = titleize(parents[-1]) if parents else ""
        else:
            kind = "page"
            # ``dir/index.md`` is a page bundle: the directory names the page
            bundle = path.stem.lower() == "index"
            section_parts = parents[:-1] if bundle else parents
            section = section_parts[0] if section_parts else ""
            slug = _optional_str(path, metadata, "slug") or slugify(
                parents[-1] if bundle and parents else path.stem
            )
            segments = section_parts + [slug] if parents or not bundle else []
            default_url = "/" + "/".join(segments)
            default_title = ""

        title = _parse_title(path, metadata) or default_title
        date = _parse_date(path, metadata, self.default_tz)
        if kind == "page":
            if not title:
                raise DocumentError(path, "Missing required field 'title'")
            if date is None:
                raise DocumentError(path, "Missing required field 'date'")

        url = _optional_str(path, metadata, "url") or default_url
        return Document(
            path=path,
            rel_path=rel,
            title=title,
            date=date,
            draft=draft,
            body=body,
            url=normalize_url(url),
            slug=slug,
            section=section,
            kind=kind,
            description=_optional_str(path, metadata, "description") or "",
            summary_source=_optional_str(path, metadata, "summary") or "",
            tags=_parse_tags(path, metadata),
            layout=_optional_str(path, metadata, "layout"),
            params={k: v for k, v in metadata.items() if k not in RECOGNIZED_KEYS},
        )


def collect(
    content_dir: Path, include_drafts: bool = False, default_tz: str | None = None
) -> Iterator[Document]:
    """Lazily yield the visible documents under ``content_dir``."""
    return ContentCollector(content_dir, default_tz).collect(include_drafts)


def _parse_draft(path: Path, metadata: dict[str, Any]) -> bool:
    value = metadata.get("draft", False)
    if not isinstance(value, bool):
        raise DocumentError(path, f"Field 'draft' must be true or false, got {value!r}")
    return value


def _parse_title(path: Path, metadata: dict[str, Any]) -> str:
    value = metadata.get("title")
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        raise DocumentError(path, "Field 'title' must be text")
    return str(value).strip()


def _parse_date(path: Path, metadata: dict[str, Any], default_tz: str | None):
    value = metadata.get("date")
    if value is None or value == "":
        return None
    try:
        return parse_timestamp(value, default_tz)
    except (ValueError, OverflowError) as exc:
        raise DocumentError(path, f"Invalid date {value!r}: {exc}", exc) from exc


def _parse_tags(path: Path, metadata: dict[str, Any]) -> list[str]:
    value = metadata.get("tags")
    if value is None:
        return []
    if not isinstance(value, list):
        raise DocumentError(path, "Field 'tags' must be a list")
    tags: list[str] = []
    for tag in value:
        name = str(tag).strip()
        if name and name not in tags:
            tags.append(name)
    return tags


def _optional_str(path: Path, metadata: dict[str, Any], key: str) -> str | None:
    value = metadata.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise DocumentError(path, f"Field '{key}' must be text")
    return value.strip() or None
