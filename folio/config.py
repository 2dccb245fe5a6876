"""Site configuration for Folio.

The site configuration is read from ``folio.yaml`` at the project root at the
start of every build and stays read-only for the rest of it. Values found in
the file are merged over ``DEFAULT_CONFIG`` and validated into a
``SiteConfig``.

Key functions:
- load_config: Load and validate the site configuration.
- load_data: Load site data from YAML files in the data directory.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

import yaml

from .dates import get_timezone

CONFIG_FILENAME = "folio.yaml"
BUILTIN_THEMES_DIR = Path(__file__).parent / "themes"

DEFAULT_CONFIG: dict[str, Any] = {
    "language_code": "en-us",
    "timezone": None,
    "theme": "default",
    "date_format": "%B %d, %Y %H:%M %Z",
    "summary_length": 160,
    "content_dir": "content",
    "output_dir": "public",
    "menu": {},
    "params": {},
    "publish": {
        "port": 80,
        "root": "/usr/share/nginx/html",
        "base_image": "nginx:alpine",
    },
}

REQUIRED_KEYS = ("base_url", "title")


class ConfigError(Exception):
    """Missing or invalid site configuration.

    Attributes:
        source_path: The configuration file that was read.
        message: Human-readable error message.
    """

    def __init__(self, source_path: Path, message: str):
        self.source_path = source_path
        self.message = message
        super().__init__(f"{source_path}: {message}")


@dataclass(frozen=True)
class MenuEntry:
    """A navigation link.

    Attributes:
        name: Link text.
        url: Target URL, root-relative or absolute.
        weight: Sort key; lower weights come first.
    """

    name: str
    url: str
    weight: int = 0


@dataclass(frozen=True)
class PublishSettings:
    """Fixed parameters of the serving image."""

    port: int = 80
    root: str = "/usr/share/nginx/html"
    base_image: str = "nginx:alpine"


@dataclass
class SiteConfig:
    """Global build-time settings applied to all documents.

    Attributes:
        base_url: Absolute URL the site is served from.
        title: Site title.
        timezone: IANA timezone for rendered timestamps, or None for UTC.
        theme: Theme name, resolved under ``themes/`` or the built-in themes.
        menus: Navigation menus by name, each sorted by weight.
        source_path: The file the configuration was read from.
    """

    base_url: str
    title: str
    source_path: Path
    language_code: str = "en-us"
    timezone: str | None = None
    theme: str = "default"
    date_format: str = "%B %d, %Y %H:%M %Z"
    summary_length: int = 160
    content_dir: str = "content"
    output_dir: str = "public"
    menus: dict[str, list[MenuEntry]] = field(default_factory=dict)
    params: dict[str, Any] = field(default_factory=dict)
    publish: PublishSettings = field(default_factory=PublishSettings)
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def project_root(self) -> Path:
        return self.source_path.parent

    @property
    def base_path(self) -> str:
        """Path component of ``base_url``, e.g. ``/blog`` for ``https://x.org/blog/``."""
        path = urlsplit(self.base_url).path.strip("/")
        return f"/{path}" if path else ""

    @property
    def menu(self) -> list[MenuEntry]:
        """The ``main`` menu, which the default theme renders."""
        return self.menus.get("main", [])

    def theme_dir(self) -> Path:
        """Directory of the configured theme.

        Raises:
            ConfigError: If no project or built-in theme has that name.
        """
        local = self.project_root / "themes" / self.theme
        if local.is_dir():
            return local
        builtin = BUILTIN_THEMES_DIR / self.theme
        if builtin.is_dir():
            return builtin
        raise ConfigError(
            self.source_path,
            f"Theme '{self.theme}' not found in {self.project_root / 'themes'}",
        )


def load_config(
    project_root: Path,
    config_path: Path | None = None,
    timezone: str | None = None,
) -> SiteConfig:
    """Load site configuration from folio.yaml.

    Args:
        project_root: Root directory of the project.
        config_path: Optional explicit configuration file.
        timezone: Optional timezone overriding the file's ``timezone``.

    Returns:
        Validated SiteConfig, with ``data`` populated from ``data/``.

    Raises:
        ConfigError: If the file is missing, unreadable as YAML, lacks a
            required key or holds an invalid value.
    """
    path = config_path or project_root / CONFIG_FILENAME
    if not path.exists():
        raise ConfigError(path, "Configuration file not found")

    config = copy.deepcopy(DEFAULT_CONFIG)
    with open(path, encoding="utf-8") as f:
        try:
            loaded = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(path, f"Invalid YAML: {exc}") from exc
    if not isinstance(loaded, dict):
        raise ConfigError(path, "Top level must be a mapping")
    config.update(loaded)
    if timezone:
        config["timezone"] = timezone

    for key in REQUIRED_KEYS:
        value = config.get(key)
        if not isinstance(value, str) or not value.strip():
            raise ConfigError(path, f"Missing required setting '{key}'")

    base_url = config["base_url"].strip()
    if not base_url.startswith(("http://", "https://")):
        raise ConfigError(path, f"base_url must be an absolute http(s) URL, got {base_url!r}")

    tz_name = config.get("timezone") or None
    if tz_name is not None:
        try:
            get_timezone(str(tz_name))
        except ValueError as exc:
            raise ConfigError(path, str(exc)) from exc
        tz_name = str(tz_name)

    summary_length = config.get("summary_length")
    if not isinstance(summary_length, int) or summary_length <= 0:
        raise ConfigError(path, "summary_length must be a positive integer")

    params = config.get("params") or {}
    if not isinstance(params, dict):
        raise ConfigError(path, "params must be a mapping")

    site = SiteConfig(
        base_url=base_url.rstrip("/") + "/",
        title=config["title"].strip(),
        source_path=path,
        language_code=str(config.get("language_code") or "en-us"),
        timezone=tz_name,
        theme=str(config.get("theme") or "default"),
        date_format=str(config.get("date_format")),
        summary_length=summary_length,
        content_dir=str(config.get("content_dir") or "content"),
        output_dir=str(config.get("output_dir") or "public"),
        menus=_parse_menus(path, config.get("menu")),
        params=params,
        publish=_parse_publish(path, config.get("publish")),
        data=load_data(project_root),
    )
    site.theme_dir()
    return site


def _parse_menus(path: Path, raw: Any) -> dict[str, list[MenuEntry]]:
    """Validate the ``menu`` mapping into sorted MenuEntry lists."""
    if not raw:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(path, "menu must map menu names to lists of entries")
    menus: dict[str, list[MenuEntry]] = {}
    for name, entries in raw.items():
        if not isinstance(entries, list):
            raise ConfigError(path, f"menu '{name}' must be a list")
        parsed = []
        for entry in entries:
            if not isinstance(entry, dict) or "name" not in entry or "url" not in entry:
                raise ConfigError(
                    path, f"menu '{name}' entries need 'name' and 'url': {entry!r}"
                )
            try:
                weight = int(entry.get("weight", 0))
            except (TypeError, ValueError) as exc:
                raise ConfigError(path, f"menu '{name}' weight must be an integer") from exc
            parsed.append(MenuEntry(str(entry["name"]), str(entry["url"]), weight))
        menus[str(name)] = sorted(parsed, key=lambda e: (e.weight, e.name))
    return menus


def _parse_publish(path: Path, raw: Any) -> PublishSettings:
    """Merge the ``publish`` mapping over the default serving settings."""
    merged = dict(DEFAULT_CONFIG["publish"])
    if raw:
        if not isinstance(raw, dict):
            raise ConfigError(path, "publish must be a mapping")
        merged.update(raw)
    port = merged.get("port")
    if not isinstance(port, int) or not 0 < port < 65536:
        raise ConfigError(path, f"publish.port must be a TCP port number, got {port!r}")
    root = str(merged.get("root") or "")
    if not root.startswith("/"):
        raise ConfigError(path, "publish.root must be an absolute path")
    return PublishSettings(
        port=port, root=root.rstrip("/") or "/", base_image=str(merged["base_image"])
    )


def load_data(project_root: Path) -> dict[str, Any]:
    """Load site data from YAML files in the data directory.

    Each ``data/<name>.yaml`` becomes ``data[<name>]``; files are read in
    sorted order.

    Args:
        project_root: Root directory of the project.

    Returns:
        Dictionary containing data from all YAML files.
    """
    data_dir = project_root / "data"
    data: dict[str, Any] = {}
    if not data_dir.exists():
        return data
    for path in sorted(data_dir.glob("*.yaml")):
        with open(path, encoding="utf-8") as f:
            try:
                payload = yaml.safe_load(f)
            except yaml.YAMLError as exc:
                raise ConfigError(path, f"Invalid YAML: {exc}") from exc
        data[path.stem] = payload
    return data
