from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence

from .content import Document


def _sort_key(document: Document):
    timestamp = document.date.timestamp() if document.date else 0.0
    return (-timestamp, document.title, str(document.rel_path))


class PageCollection(Sequence[Document]):
    """Lightweight helper for working with lists of Documents in templates and code.

    Iteration order is newest first; ties break on title, then path, so
    listings are stable across builds.
    """

    def __init__(self, documents: Iterable[Document], presorted: bool = False):
        docs = list(documents)
        self._documents = docs if presorted else sorted(docs, key=_sort_key)

    def __iter__(self) -> Iterator[Document]:
        return iter(self._documents)

    def __len__(self) -> int:
        return len(self._documents)

    def __getitem__(self, item):
        if isinstance(item, slice):
            return PageCollection(self._documents[item], presorted=True)
        return self._documents[item]

    def section(self, name: str) -> PageCollection:
        return PageCollection((d for d in self._documents if d.section == name), presorted=True)

    def with_tag(self, tag: str) -> PageCollection:
        return PageCollection((d for d in self._documents if tag in d.tags), presorted=True)

    def drafts(self) -> PageCollection:
        return PageCollection((d for d in self._documents if d.draft), presorted=True)

    def published(self) -> PageCollection:
        return PageCollection((d for d in self._documents if not d.draft), presorted=True)

    def oldest_first(self) -> PageCollection:
        return PageCollection(reversed(self._documents), presorted=True)

    def latest(self, count: int = 5) -> PageCollection:
        return self[:count]

    def sections(self) -> list[str]:
        return sorted({d.section for d in self._documents if d.section})

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"PageCollection({len(self._documents)} pages)"


class TagCollection(Mapping[str, PageCollection]):
    """Mapping of tag name to PageCollection, iterated alphabetically."""

    def __init__(self, mapping: Mapping[str, Iterable[Document]]):
        self._mapping = {k: PageCollection(mapping[k]) for k in sorted(mapping)}

    def __getitem__(self, key: str) -> PageCollection:
        return self._mapping[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._mapping)

    def __len__(self) -> int:
        return len(self._mapping)

    def by_count(self) -> list[tuple[str, PageCollection]]:
        """Tags with the most documents first."""
        return sorted(self._mapping.items(), key=lambda item: (-len(item[1]), item[0]))

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"TagCollection({len(self._mapping)} tags)"
