"""Metadata header parsing for Folio documents.

A document starts with a metadata header fenced by ``---`` (YAML) or
``+++`` (TOML), followed by the markdown body. Documents without a header
have empty metadata.
"""

from __future__ import annotations

import re
import tomllib
from typing import Any

import yaml

YAML_FRONTMATTER_RE = re.compile(r"\A---[ \t]*\r?\n(?:(.*?)\r?\n)?---[ \t]*(?:\r?\n|\Z)", re.DOTALL)
TOML_FRONTMATTER_RE = re.compile(r"\A\+\+\+[ \t]*\r?\n(?:(.*?)\r?\n)?\+\+\+[ \t]*(?:\r?\n|\Z)", re.DOTALL)


class FrontmatterError(ValueError):
    """Raised when a metadata header cannot be parsed."""


def split_frontmatter(text: str) -> tuple[dict[str, Any], str]:
    """Split raw file content into header metadata and body.

    Args:
        text: Raw file content.

    Returns:
        Tuple of (metadata dict, body).

    Raises:
        FrontmatterError: If a fenced header is present but malformed,
            unterminated, or not a mapping.
    """
    text = text.removeprefix("\ufeff")
    match = YAML_FRONTMATTER_RE.match(text)
    if match:
        try:
            data = yaml.safe_load(match.group(1) or "")
        except yaml.YAMLError as exc:
            raise FrontmatterError(f"Invalid YAML header: {exc}") from exc
        return _as_mapping(data), text[match.end() :]

    match = TOML_FRONTMATTER_RE.match(text)
    if match:
        try:
            data = tomllib.loads(match.group(1) or "")
        except tomllib.TOMLDecodeError as exc:
            raise FrontmatterError(f"Invalid TOML header: {exc}") from exc
        return data, text[match.end() :]

    first_line = text.split("\n", 1)[0].strip()
    if first_line in ("---", "+++"):
        raise FrontmatterError(f"Unterminated metadata header (missing closing '{first_line}')")
    return {}, text


def _as_mapping(data: Any) -> dict[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise FrontmatterError("Metadata header must be a mapping of keys to values")
    return data
