"""Feed generation for Folio.

Generates the RSS feed (``index.xml``) and ``sitemap.xml`` from the visible
documents. Neither output depends on the wall clock: RSS ``lastBuildDate``
is the newest document's date, so rebuilding unchanged content yields
identical files.

Classes:
    FeedGenerator: Base class for feed generators.
    SitemapGenerator: Generates sitemap.xml files.
    RSSGenerator: Generates the RSS 2.0 feed.
    FeedRegistry: Registry for managing feed generators.

Functions:
    create_default_feed_registry: Create a registry with default generators.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING
from xml.sax.saxutils import escape

from .dates import localize, rfc822
from .html_utils import join_root_url, strip_tags

if TYPE_CHECKING:
    from .config import SiteConfig
    from .content import Document


class FeedGenerator(ABC):
    """Abstract base class for feed generators."""

    @property
    @abstractmethod
    def filename(self) -> str:
        """Return the output filename for this feed."""
        ...

    @abstractmethod
    def generate(self, documents: list[Document], config: SiteConfig) -> str:
        """Generate feed content.

        Args:
            documents: Visible documents, newest first.
            config: Site configuration.

        Returns:
            Feed content as a string.
        """
        ...

    def write(self, output_dir: Path, documents: list[Document], config: SiteConfig) -> Path:
        """Generate and write the feed into the output directory."""
        output_path = output_dir / self.filename
        output_path.write_text(self.generate(documents, config), encoding="utf-8")
        return output_path


class SitemapGenerator(FeedGenerator):
    """Generates sitemap.xml following the sitemaps.org protocol.

    Lists the home page, the given listing URLs and every document.
    """

    def __init__(self, extra_urls: Iterable[str] = ()):
        self.extra_urls = list(extra_urls)

    @property
    def filename(self) -> str:
        return "sitemap.xml"

    def generate(self, documents: list[Document], config: SiteConfig) -> str:
        lines = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">',
        ]
        for url in ["/", *self.extra_urls]:
            lines.append(f"  <url><loc>{escape(join_root_url(config.base_url, url))}</loc></url>")
        for document in documents:
            loc = escape(join_root_url(config.base_url, document.url))
            if document.date is not None:
                lastmod = localize(document.date, config.timezone).strftime("%Y-%m-%d")
                lines.append(f"  <url><loc>{loc}</loc><lastmod>{lastmod}</lastmod></url>")
            else:
                lines.append(f"  <url><loc>{loc}</loc></url>")
        lines.append("</urlset>")
        return "\n".join(lines) + "\n"


class RSSGenerator(FeedGenerator):
    """Generates an RSS 2.0 feed with documents sorted newest first."""

    def __init__(self, limit: int | None = None):
        self.limit = limit

    @property
    def filename(self) -> str:
        return "index.xml"

    def generate(self, documents: list[Document], config: SiteConfig) -> str:
        dated = [d for d in documents if d.date is not None]
        dated.sort(key=lambda d: (-d.date.timestamp(), d.title, str(d.rel_path)))
        if self.limit is not None:
            dated = dated[: self.limit]

        rss = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<rss version="2.0"><channel>',
            f"<title>{escape(config.title)}</title>",
            f"<link>{escape(config.base_url)}</link>",
            f"<description>{escape(config.title)}</description>",
            f"<language>{escape(config.language_code)}</language>",
        ]
        if dated:
            rss.append(f"<lastBuildDate>{rfc822(dated[0].date)}</lastBuildDate>")
        for document in dated:
            link = escape(join_root_url(config.base_url, document.url))
            description = escape(strip_tags(document.summary).strip() or document.title)
            rss.append(
                f"<item><title>{escape(document.title)}</title><link>{link}</link>"
                f"<guid>{link}</guid><description>{description}</description>"
                f"<pubDate>{rfc822(document.date)}</pubDate></item>"
            )
        rss.append("</channel></rss>")
        return "\n".join(rss) + "\n"


class FeedRegistry:
    """Registry for managing feed generators.

    Attributes:
        _generators: List of registered feed generators.
    """

    def __init__(self) -> None:
        self._generators: list[FeedGenerator] = []

    def register(self, generator: FeedGenerator) -> None:
        self._generators.append(generator)

    def generate_all(
        self, output_dir: Path, documents: Iterable[Document], config: SiteConfig
    ) -> list[str]:
        """Generate all registered feeds.

        Returns:
            List of filenames that were generated.
        """
        documents_list = list(documents)
        return [
            generator.write(output_dir, documents_list, config).name
            for generator in self._generators
        ]


def create_default_feed_registry(listing_urls: Iterable[str] = ()) -> FeedRegistry:
    """Create a registry with the sitemap and RSS generators."""
    registry = FeedRegistry()
    registry.register(SitemapGenerator(listing_urls))
    registry.register(RSSGenerator())
    return registry
