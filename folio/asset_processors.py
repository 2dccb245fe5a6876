"""Asset processors for Folio.

Each processor handles one type of static file. Without ``--minify`` every
file is copied byte for byte; with it, CSS, JavaScript, HTML and raster
images are size-reduced. All processors are deterministic.

Key classes:
- ImageProcessor: Losslessly re-encodes PNG/JPEG images with Pillow's optimizer.
- CSSProcessor: Minifies CSS with csscompressor.
- JSProcessor: Minifies JavaScript with rjsmin.
- HTMLProcessor: Minifies static HTML files.
- StaticAssetProcessor: Copies files without modification.
- AssetProcessorRegistry: Registry for managing asset processors.
"""

from __future__ import annotations

import shutil
from abc import ABC, abstractmethod
from pathlib import Path

import csscompressor
from PIL import Image
from rjsmin import jsmin

from .html_utils import minify_html


class BaseAssetProcessor(ABC):
    """Base class for asset processors."""

    @property
    @abstractmethod
    def priority(self) -> int:
        """Return processor priority (higher = checked first)."""
        ...

    @abstractmethod
    def can_process(self, path: Path) -> bool:
        """Check if this processor can handle the given asset."""
        ...

    @abstractmethod
    def process(self, source: Path, dest: Path) -> None:
        """Write the processed ``source`` to ``dest``."""
        ...

    def ensure_dest_dir(self, dest: Path) -> None:
        """Ensure the parent directory of the destination exists."""
        dest.parent.mkdir(parents=True, exist_ok=True)


class ImageProcessor(BaseAssetProcessor):
    """Losslessly optimizes PNG and JPEG images using Pillow.

    JPEGs keep their original quantization tables. Animated images, and
    images the optimizer cannot shrink, are copied unchanged.
    """

    SUPPORTED_EXTENSIONS = {".png", ".jpg", ".jpeg"}

    @property
    def priority(self) -> int:
        return 100

    def can_process(self, path: Path) -> bool:
        return path.suffix.lower() in self.SUPPORTED_EXTENSIONS

    def process(self, source: Path, dest: Path) -> None:
        self.ensure_dest_dir(dest)
        with Image.open(source) as img:
            if getattr(img, "is_animated", False):
                shutil.copy2(source, dest)
                return
            if img.format == "JPEG":
                img.save(dest, format="JPEG", quality="keep", optimize=True)
            else:
                img.save(dest, format=img.format, optimize=True)
        if dest.stat().st_size >= source.stat().st_size:
            shutil.copy2(source, dest)


class CSSProcessor(BaseAssetProcessor):
    """Minifies stylesheets."""

    @property
    def priority(self) -> int:
        return 90

    def can_process(self, path: Path) -> bool:
        return path.suffix.lower() == ".css"

    def process(self, source: Path, dest: Path) -> None:
        self.ensure_dest_dir(dest)
        css = source.read_text(encoding="utf-8")
        dest.write_text(csscompressor.compress(css), encoding="utf-8")


class JSProcessor(BaseAssetProcessor):
    """Minifies JavaScript files.

    Files already named ``*.min.js`` are copied as is.
    """

    @property
    def priority(self) -> int:
        return 80

    def can_process(self, path: Path) -> bool:
        return path.suffix.lower() == ".js" and not path.name.endswith(".min.js")

    def process(self, source: Path, dest: Path) -> None:
        self.ensure_dest_dir(dest)
        with open(source, encoding="utf-8") as f_in:
            minified = jsmin(f_in.read())
        with open(dest, "w", encoding="utf-8") as f_out:
            f_out.write(minified)


class HTMLProcessor(BaseAssetProcessor):
    """Minifies hand-written HTML files found among static files."""

    @property
    def priority(self) -> int:
        return 70

    def can_process(self, path: Path) -> bool:
        return path.suffix.lower() in (".html", ".htm")

    def process(self, source: Path, dest: Path) -> None:
        self.ensure_dest_dir(dest)
        dest.write_text(minify_html(source.read_text(encoding="utf-8")), encoding="utf-8")


class StaticAssetProcessor(BaseAssetProcessor):
    """Copies files without modification; the fallback for everything else."""

    @property
    def priority(self) -> int:
        return 0

    def can_process(self, path: Path) -> bool:
        return True

    def process(self, source: Path, dest: Path) -> None:
        self.ensure_dest_dir(dest)
        shutil.copy2(source, dest)


class AssetProcessorRegistry:
    """Registry for managing asset processors.

    Processors are consulted in priority order; the first that accepts a
    file processes it.
    """

    def __init__(self):
        self._processors: list[BaseAssetProcessor] = []

    def register(self, processor: BaseAssetProcessor) -> None:
        """Register a processor, keeping the list sorted by priority (highest first)."""
        self._processors.append(processor)
        self._processors.sort(key=lambda p: p.priority, reverse=True)

    def get_processor(self, path: Path) -> BaseAssetProcessor | None:
        for processor in self._processors:
            if processor.can_process(path):
                return processor
        return None

    def process(self, source: Path, dest: Path) -> bool:
        """Process an asset using the appropriate processor.

        Returns:
            True if a processor handled the file, False if none accepted it.
        """
        processor = self.get_processor(source)
        if processor is None:
            return False
        processor.process(source, dest)
        return True


def create_default_registry(minify: bool = False) -> AssetProcessorRegistry:
    """Create a registry for a build.

    Args:
        minify: Whether to register the size-reducing processors.

    Returns:
        Configured AssetProcessorRegistry.
    """
    registry = AssetProcessorRegistry()
    registry.register(StaticAssetProcessor())
    if minify:
        registry.register(ImageProcessor())
        registry.register(CSSProcessor())
        registry.register(JSProcessor())
        registry.register(HTMLProcessor())
    return registry
