"""Site building functionality for Folio.

This module runs the Collector and Renderer stages: it loads the site
configuration, collects visible documents, renders every page through the
theme's templates, copies static files and writes the feeds.

Everything is rendered into a staging directory next to the destination.
Only when the whole site has rendered is the destination replaced, so a
failing build never leaves a partially written output directory.

Key functions:
- build_site: Main function to build the entire site.
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from pathlib import Path

from jinja2 import TemplatesNotFound, TemplateSyntaxError

from .assets import AssetPipeline
from .collections import PageCollection
from .config import ConfigError, SiteConfig, load_config
from .content import ContentCollector, Document, DocumentError
from .feeds import create_default_feed_registry
from .html_utils import minify_html
from .renderers import MarkdownRenderer
from .templates import ListPage, TemplateEngine
from .utils import (
    build_tags_index,
    ensure_clean_dir,
    replace_dir,
    slugify,
    titleize,
    url_to_output_path,
)

FEED_URLS = ("/index.xml", "/sitemap.xml")
NO_TIMEZONE_WARNING = (
    "No timezone configured; timestamps are rendered in UTC. "
    "Set 'timezone' in folio.yaml or the TZ environment variable."
)


class BuildError(Exception):
    """Error during site rendering with file context.

    Attributes:
        source_path: Path to the source file that caused the error.
        message: Human-readable error message.
        original_error: The original exception that was caught.
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
class BuildResult:
    """Result of a site build operation.

    Attributes:
        documents: Visible documents, including section indexes.
        pages: URLs of every rendered HTML page, sorted.
        output_dir: Directory where the site was built.
        config: The site configuration used.
        warnings: Non-fatal problems to report.
    """

    documents: list[Document]
    pages: list[str]
    output_dir: Path
    config: SiteConfig
    warnings: list[str] = field(default_factory=list)


def build_site(
    project_root: Path,
    include_drafts: bool = False,
    minify: bool = False,
    content_dir: Path | None = None,
    output_dir: Path | None = None,
    config_path: Path | None = None,
    timezone: str | None = None,
) -> BuildResult:
    """Build the entire static site.

    Args:
        project_root: Root directory of the project.
        include_drafts: Whether to render draft documents.
        minify: Whether to minify HTML, CSS, JS and images.
        content_dir: Content root; defaults to the configured ``content_dir``.
        output_dir: Destination; defaults to the configured ``output_dir``.
        config_path: Configuration file; defaults to ``folio.yaml``.
        timezone: Timezone overriding the configuration.

    Returns:
        BuildResult describing the rendered site.

    Raises:
        ConfigError: Missing or invalid configuration.
        DocumentError: Malformed document metadata or conflicting URLs.
        BuildError: A template failed to render.
        OSError: Filesystem errors, unchanged.
    """
    config = load_config(project_root, config_path, timezone)
    warnings = [] if config.timezone else [NO_TIMEZONE_WARNING]
    content_root = content_dir or project_root / config.content_dir
    destination = output_dir or project_root / config.output_dir
    _check_destination(config, content_root, destination)

    collector = ContentCollector(content_root, config.timezone)
    documents = list(collector.collect(include_drafts=include_drafts))

    staging = destination.with_name(destination.name + ".staging")
    ensure_clean_dir(staging)
    try:
        pages = SiteRenderer(config, minify=minify).render(documents, staging)
    except BaseException:
        shutil.rmtree(staging, ignore_errors=True)
        raise
    replace_dir(staging, destination)
    return BuildResult(
        documents=documents,
        pages=pages,
        output_dir=destination,
        config=config,
        warnings=warnings,
    )


def _check_destination(config: SiteConfig, content_root: Path, destination: Path) -> None:
    """Refuse destinations whose cleanup would delete sources."""
    dest = destination.resolve()
    project = config.project_root.resolve()
    content = content_root.resolve()
    if project.is_relative_to(dest):
        raise ConfigError(
            config.source_path,
            f"Output directory {destination} would overwrite the project at {project}",
        )
    if content.is_relative_to(dest) or dest.is_relative_to(content):
        raise ConfigError(
            config.source_path,
            f"Output directory {destination} overlaps the content directory",
        )


class SiteRenderer:
    """Renders collected documents into an output directory.

    Attributes:
        config: Site configuration.
        minify: Whether rendered HTML and static files are minified.
    """

    def __init__(self, config: SiteConfig, minify: bool = False):
        self.config = config
        self.minify = minify
        self.markdown = MarkdownRenderer(config.summary_length)

    def render(self, documents: list[Document], output_dir: Path) -> list[str]:
        """Render every page, listing, static file and feed.

        Returns:
            URLs of the rendered HTML pages, sorted.
        """
        for document in documents:
            self.markdown.render(document)

        pages = [d for d in documents if d.is_page]
        indexes = [d for d in documents if not d.is_page]
        tags = build_tags_index(pages)

        engine = TemplateEngine(self.config)
        engine.update_collections(pages, tags)
        listings = self.listings(engine.pages, indexes)
        _check_urls(pages, listings)

        assets = AssetPipeline(self.config, output_dir, minify=self.minify)
        assets.run()
        assets.copy_bundle_resources(sorted(pages, key=lambda d: str(d.rel_path)))

        written: list[str] = []
        for document in sorted(pages, key=lambda d: str(d.rel_path)):
            html = self._render(document.path, lambda: engine.render_document(document))
            self._write(output_dir, document.url, html)
            written.append(document.url)
        for listing in listings:
            source = listing.document.path if listing.document else self.config.source_path
            html = self._render(source, lambda: engine.render_list(listing))
            self._write(output_dir, listing.url, html)
            written.append(listing.url)

        listing_urls = [item.url for item in listings if item.kind not in ("home", "404")]
        create_default_feed_registry(listing_urls).generate_all(
            output_dir, engine.pages, self.config
        )
        return sorted(written)

    def listings(self, pages: PageCollection, indexes: list[Document]) -> list[ListPage]:
        """Build the home page, section, tag and 404 listings."""
        by_dir = {"/".join(d.rel_path.parent.parts): d for d in indexes}
        home_doc = by_dir.get("")
        listings = [
            ListPage(
                kind="home",
                title=self.config.title,
                url="/",
                pages=pages,
                content=home_doc.content if home_doc else "",
                document=home_doc,
            )
        ]

        section_dirs = {d.section for d in pages if d.section}
        section_dirs.update(key for key in by_dir if key)
        for section_dir in sorted(section_dirs):
            parts = tuple(section_dir.split("/"))
            index_doc = by_dir.get(section_dir)
            listings.append(
                ListPage(
                    kind="section",
                    title=index_doc.title if index_doc else titleize(parts[-1]),
                    url=index_doc.url if index_doc else f"/{section_dir}/",
                    pages=PageCollection(
                        (p for p in pages if p.rel_path.parts[: len(parts)] == parts),
                        presorted=True,
                    ),
                    section=parts[0],
                    content=index_doc.content if index_doc else "",
                    document=index_doc,
                )
            )

        terms: dict[str, ListPage] = {}
        for document in pages:
            for tag in document.tags:
                slug = slugify(tag)
                if slug not in terms:
                    terms[slug] = ListPage(kind="term", title=tag, url=f"/tags/{slug}/")
        if terms:
            listings.append(ListPage(kind="taxonomy", title="Tags", url="/tags/"))
            for slug in sorted(terms):
                term = terms[slug]
                term.pages = PageCollection(
                    (p for p in pages if any(slugify(t) == slug for t in p.tags)),
                    presorted=True,
                )
                listings.append(term)

        listings.append(ListPage(kind="404", title="Page not found", url="/404.html"))
        return listings

    def _render(self, source: Path, render) -> str:
        try:
            html = render()
        except TemplateSyntaxError as exc:
            template = Path(exc.filename) if exc.filename else source
            raise BuildError(
                template,
                f"Template syntax error on line {exc.lineno}: {exc.message}",
                exc,
            ) from exc
        except TemplatesNotFound as exc:
            raise BuildError(
                source, f"No template found (tried {', '.join(exc.templates)})", exc
            ) from exc
        except Exception as exc:
            raise BuildError(source, _format_error_message(exc), exc) from exc
        return minify_html(html) if self.minify else html

    def _write(self, output_dir: Path, url: str, html: str) -> None:
        target = url_to_output_path(output_dir, url)
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "w", encoding="utf-8") as f:
            f.write(html)


def _check_urls(pages: list[Document], listings: list[ListPage]) -> None:
    """Fail when two outputs would be written to the same URL."""
    owners: dict[str, str] = {url: "a generated feed" for url in FEED_URLS}
    for listing in listings:
        owners[listing.url] = f"the {listing.kind} page '{listing.title}'"
    for document in sorted(pages, key=lambda d: str(d.rel_path)):
        if document.url in owners:
            raise DocumentError(
                document.path, f"URL {document.url} is already used by {owners[document.url]}"
            )
        owners[document.url] = str(document.rel_path)


def _format_error_message(exc: Exception) -> str:
    """Format a template exception into a user-friendly error message."""
    error_type = type(exc).__name__
    error_msg = str(exc)

    if error_type == "UndefinedError":
        return f"Undefined variable: {error_msg}"
    return f"{error_type}: {error_msg}"
