"""Utility functions for Folio.

String and path helpers shared by the collector, renderer and publisher.

Key functions:
    slugify: Convert filenames and tag names to URL slugs.
    titleize: Convert filenames to human-readable titles.
    first_paragraph: Plain-text first paragraph of a markdown body.
    build_tags_index: Build index of documents by tag.
    normalize_url: Canonical form of a root-relative page URL.
    is_markdown: Check if a path is a Markdown file.
    is_ignored: Check if a content path should be skipped.
    ensure_clean_dir: Ensure a directory exists and is empty.
    replace_dir: Swap a fully built directory into place.
"""

from __future__ import annotations

import os
import re
import shutil
from collections.abc import Iterable
from pathlib import Path

DATE_PREFIX_RE = re.compile(r"^\d{4}-\d{2}-\d{2}-")


def strip_date_prefix(name: str) -> str:
    """Drop a leading ``YYYY-MM-DD-`` from a filename stem."""
    stripped = DATE_PREFIX_RE.sub("", name)
    return stripped or name


def slugify(name: str) -> str:
    """Convert filename (without extension) to slug, dropping date prefix.

    Args:
        name: Filename stem or free text such as a tag.

    Returns:
        URL-friendly slug.

    Examples:
        >>> slugify("2021-04-10-Hello World")
        'hello-world'
    """
    cleaned = strip_date_prefix(name)
    cleaned = re.sub(r"[^a-zA-Z0-9]+", "-", cleaned)
    cleaned = cleaned.strip("-").lower()
    return cleaned or "index"


def titleize(filename: str) -> str:
    """Convert a filename to a human-readable title.

    Removes date prefixes (YYYY-MM-DD), replaces hyphens and underscores
    with spaces, and capitalizes each word.

    Examples:
        >>> titleize("2024-01-15-hello-world.md")
        'Hello World'
    """
    base = strip_date_prefix(Path(filename).stem)
    words = re.split(r"[\s\-_]+", base)
    return " ".join(word.capitalize() for word in words if word) or "Untitled"


def first_paragraph(text: str, limit: int = 160) -> str:
    """Extract and clean the first paragraph from markdown text.

    Skips headings, images, code fences and rules. Strips HTML tags and
    inline markdown emphasis, collapses whitespace and truncates to
    ``limit`` characters on a word boundary.

    Args:
        text: Markdown body.
        limit: Maximum character length of result.

    Returns:
        Cleaned first paragraph, or an empty string.
    """
    paragraphs = [p.strip() for p in text.split("\n\n") if p.strip()]
    for para in paragraphs:
        if para.startswith(("#", "![", "```", "---", "<!--")):
            continue
        para = re.sub(r"<[^>]+>", "", para)
        para = re.sub(r"!?\[([^\]]*)\]\([^)]*\)", r"\1", para)
        para = re.sub(r"[*_`]", "", para)
        collapsed = " ".join(para.split())
        if len(collapsed) <= limit:
            return collapsed
        cut = collapsed[:limit].rsplit(" ", 1)[0]
        return f"{cut}…"
    return ""


def normalize_url(url: str) -> str:
    """Return a root-relative URL with a leading slash.

    Directory-style URLs get a trailing slash; URLs naming a file
    (``/feed.xml``, ``/old/post.html``) keep their extension.

    Examples:
        >>> normalize_url("about")
        '/about/'
        >>> normalize_url("/legacy/page.html")
        '/legacy/page.html'
    """
    path = "/" + url.strip().strip("/")
    if path == "/":
        return path
    if Path(path).suffix:
        return path
    return f"{path}/"


def url_to_output_path(output_dir: Path, url: str) -> Path:
    """Map a page URL to the file it is written to under ``output_dir``."""
    rel = url.strip("/")
    if rel and Path(rel).suffix:
        return output_dir / rel
    return output_dir / rel / "index.html"


def build_tags_index(documents: Iterable) -> dict[str, list]:
    """Build an index mapping tags to lists of documents carrying that tag.

    Tags are sorted alphabetically so the index iterates deterministically.

    Args:
        documents: Iterable of objects with a 'tags' attribute.

    Returns:
        Dictionary mapping tag names to lists of documents.
    """
    tags: dict[str, list] = {}
    for document in documents:
        for tag in document.tags:
            tags.setdefault(tag, []).append(document)
    return {tag: tags[tag] for tag in sorted(tags)}


def is_markdown(path: Path) -> bool:
    """Check if a path is a Markdown file (case-insensitive ``.md``)."""
    return path.suffix.lower() == ".md"


def is_ignored(rel: Path) -> bool:
    """Check if a content path should be skipped.

    Hidden files and directories (``.git``, ``.DS_Store``) and
    underscore-prefixed names are ignored. ``_index.md`` is the one
    underscore file the collector reads, as a section's metadata.
    """
    for part in rel.parts[:-1]:
        if part.startswith((".", "_")):
            return True
    name = rel.name
    if name == "_index.md":
        return False
    return name.startswith((".", "_"))


def ensure_clean_dir(path: Path) -> None:
    """Ensure a directory exists and is empty.

    If the directory exists, removes all contents. Creates the
    directory if it doesn't exist.

    Args:
        path: Directory path to clean or create.
    """
    if path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True, exist_ok=True)


def replace_dir(staging: Path, target: Path) -> None:
    """Move a fully built ``staging`` directory to ``target``.

    The previous ``target`` is removed only once ``staging`` is complete,
    so a failed build never leaves a half-written target behind.
    """
    if target.exists():
        shutil.rmtree(target)
    target.parent.mkdir(parents=True, exist_ok=True)
    os.replace(staging, target)
