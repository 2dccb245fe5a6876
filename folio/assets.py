"""Static file pipeline for Folio.

Copies the theme's ``static/`` directory and then the project's ``static/``
directory into the output root, so a project file replaces a theme file of
the same name. Non-markdown files inside a page bundle (`dir/index.md`) are
copied next to the rendered page. Files go through the asset processor registry, which
minifies them when the build asks for it.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from .asset_processors import AssetProcessorRegistry, create_default_registry
from .config import SiteConfig
from .content import Document
from .utils import is_ignored, is_markdown


class AssetPipeline:
    """Copies and optionally minifies static files for the site.

    Attributes:
        config: Site configuration.
        output_dir: Directory where processed files are written.
        processor_registry: Registry of asset processors.
    """

    def __init__(
        self,
        config: SiteConfig,
        output_dir: Path,
        minify: bool = False,
        processor_registry: AssetProcessorRegistry | None = None,
    ):
        self.config = config
        self.output_dir = output_dir
        self.processor_registry = processor_registry or create_default_registry(minify)

    def source_dirs(self) -> list[Path]:
        """Static directories in copy order; later directories win."""
        dirs = [self.config.theme_dir() / "static", self.config.project_root / "static"]
        return [d for d in dirs if d.is_dir()]

    def run(self) -> list[Path]:
        """Process every static file into the output directory.

        Returns:
            Output paths written, relative to the output directory, sorted.
        """
        written: set[Path] = set()
        for static_dir in self.source_dirs():
            for item in sorted(static_dir.rglob("*")):
                if item.is_dir():
                    continue
                rel = item.relative_to(static_dir)
                self.processor_registry.process(item, self.output_dir / rel)
                written.add(rel)
        return sorted(written)

    def copy_bundle_resources(self, documents: Iterable[Document]) -> list[Path]:
        """Copy each page bundle's resources into the page's output directory.

        Nested bundles keep their own resources. Hidden and underscore
        files are skipped.

        Returns:
            Output paths written, relative to the output directory, sorted.
        """
        written: set[Path] = set()
        for document in documents:
            if not _is_bundle(document):
                continue
            bundle_dir = document.path.parent
            target = Path(document.url.strip("/"))
            for item in sorted(bundle_dir.rglob("*")):
                if item.is_dir() or is_markdown(item):
                    continue
                rel = item.relative_to(bundle_dir)
                if is_ignored(rel) or _in_nested_bundle(bundle_dir, rel):
                    continue
                self.processor_registry.process(item, self.output_dir / target / rel)
                written.add(target / rel)
        return sorted(written)


def _is_bundle(document: Document) -> bool:
    return (
        document.is_page
        and document.path.stem.lower() == "index"
        and document.rel_path.parent != Path(".")
    )


def _in_nested_bundle(bundle_dir: Path, rel: Path) -> bool:
    current = bundle_dir
    for part in rel.parts[:-1]:
        current = current / part
        if (current / "index.md").exists():
            return True
    return False
