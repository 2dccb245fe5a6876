"""Command-line interface for Folio.

This module defines the CLI commands using Click framework.
It runs the pipeline stages and scaffolds projects and documents.

Commands:
- build: Collect and render the site into the output directory.
- publish: Build, then write the serving image's build context.
- serve: Preview a built site over HTTP, optionally rebuilding on changes.
- init: Scaffold a new Folio project.
- new: Create a draft document, interactively when no path is given.
"""

from __future__ import annotations

import functools
import os
import shutil
import subprocess
from pathlib import Path

import click
import questionary
import yaml

from . import __version__
from .build import BuildError, BuildResult, build_site
from .config import CONFIG_FILENAME, ConfigError, load_config
from .content import DocumentError
from .dates import now
from .publish import PublishError, publish as publish_site
from .utils import is_markdown, slugify, titleize

# Path to the project skeleton copied by ``init``
_SKELETON_DIR = Path(__file__).parent / "skeleton"


@click.group()
@click.version_option(version=__version__, prog_name="folio")
def cli():
    """Folio static blog builder."""


def build_options(func):
    """Options shared by every command that runs a build."""

    @click.option(
        "--source",
        "-s",
        type=click.Path(file_okay=False, path_type=Path),
        default=".",
        show_default=True,
        help="Project root containing folio.yaml",
    )
    @click.option(
        "--content",
        "-c",
        type=click.Path(file_okay=False, path_type=Path),
        help="Content directory (overrides folio.yaml content_dir)",
    )
    @click.option(
        "--destination",
        "-d",
        type=click.Path(file_okay=False, path_type=Path),
        help="Output directory (overrides folio.yaml output_dir)",
    )
    @click.option("--minify", is_flag=True, help="Minify HTML, CSS, JS and images")
    @click.option("--drafts", "-D", is_flag=True, help="Include draft content")
    @click.option(
        "--timezone",
        envvar="TZ",
        help="Timezone for rendered timestamps (overrides folio.yaml)",
    )
    @click.option(
        "--config",
        "config_path",
        type=click.Path(dir_okay=False, path_type=Path),
        help="Configuration file (default: folio.yaml in the project root)",
    )
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        return func(*args, **kwargs)

    return wrapper


@cli.command()
@build_options
def build(source, content, destination, minify, drafts, timezone, config_path):
    """Build the site into the output directory."""
    result = _run_build(source, content, destination, minify, drafts, timezone, config_path)
    click.echo(f"Built {len(result.pages)} pages into {result.output_dir}")


@cli.command()
@build_options
@click.option(
    "--image-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Image build context directory (default: image/ in the project root)",
)
def publish(source, content, destination, minify, drafts, timezone, config_path, image_dir):
    """Build the site and write the serving image's build context."""
    result = _run_build(source, content, destination, minify, drafts, timezone, config_path)
    click.echo(f"Built {len(result.pages)} pages into {result.output_dir}")
    image_dir = image_dir or source / "image"
    try:
        published = publish_site(result.output_dir, image_dir, result.config.publish)
    except (OSError, PublishError) as exc:
        _fail_plain(exc)
    click.echo(f"Wrote image context with {len(published.files)} files to {published.image_dir}")
    click.echo(f"Run: docker build -t {slugify(result.config.title)} {published.image_dir}")


@cli.command()
@click.argument(
    "directory",
    required=False,
    type=click.Path(file_okay=False, path_type=Path),
)
@click.option(
    "--source",
    "-s",
    type=click.Path(file_okay=False, path_type=Path),
    default=".",
    show_default=True,
    help="Project root containing folio.yaml",
)
@click.option("--port", "-p", type=int, default=1313, show_default=True, help="HTTP port")
@click.option("--watch", "-w", is_flag=True, help="Rebuild when sources change")
@click.option("--drafts", "-D", is_flag=True, help="Include draft content")
def serve(directory: Path | None, source: Path, port: int, watch: bool, drafts: bool):
    """Preview the site over HTTP.

    DIRECTORY is served as is. Without it, or with --watch, the project is
    built first.
    """
    from .server import PreviewServer

    if directory is not None and not watch:
        if not directory.is_dir():
            raise click.ClickException(f"Directory not found: {directory}")
        server = PreviewServer(directory, port=port)
    else:
        result = _run_build(source, None, directory, False, drafts, None, None)
        click.echo(f"Built {len(result.pages)} pages into {result.output_dir}")

        def rebuild():
            try:
                rebuilt = build_site(source, include_drafts=drafts, output_dir=directory)
            except (ConfigError, DocumentError, BuildError, OSError) as exc:
                click.echo(click.style(f"Rebuild failed: {exc}", fg="red"), err=True)
                return
            click.echo(f"Rebuilt {len(rebuilt.pages)} pages")

        watch_paths = [
            source / CONFIG_FILENAME,
            source / result.config.content_dir,
            source / "layouts",
            source / "static",
            source / "themes",
            source / "data",
        ]
        server = PreviewServer(
            result.output_dir,
            port=port,
            rebuild_callback=rebuild if watch else None,
            watch_paths=watch_paths if watch else (),
        )
    click.echo(f"Serving {server.directory} at http://{server.host}:{port}/")
    server.start()


@cli.command()
@click.argument("name")
def init(name: str):
    """Scaffold a new Folio project."""
    target = Path(name).resolve()
    if target.exists() and any(target.iterdir()):
        raise click.ClickException(f"Refusing to initialize into non-empty directory: {target}")
    _scaffold(target)
    click.echo(f"New Folio site created at {target}")


@cli.command()
@click.argument("path", required=False)
@click.option(
    "--source",
    "-s",
    type=click.Path(file_okay=False, path_type=Path),
    default=".",
    show_default=True,
    help="Project root containing folio.yaml",
)
def new(path: str | None, source: Path):
    """Create a draft document with a pre-filled header.

    PATH is relative to the content directory, e.g. ``posts/my-first-post.md``.
    Without PATH, the section and name are asked for interactively.
    """
    try:
        config = load_config(source)
    except ConfigError as exc:
        _report(exc.source_path, exc.message, source)
    content_dir = source / config.content_dir

    if path is None:
        target_path = _prompt_document_path(content_dir, config.timezone)
    else:
        rel = Path(path)
        if not is_markdown(rel):
            rel = rel.with_name(rel.name + ".md")
        target_path = content_dir / rel

    if target_path.exists():
        raise click.ClickException(f"File already exists: {target_path}")

    # Also check for slug collision (same name with different date)
    slug = slugify(target_path.stem)
    if target_path.parent.is_dir():
        for existing in sorted(target_path.parent.iterdir()):
            if existing.is_file() and is_markdown(existing) and slugify(existing.stem) == slug:
                raise click.ClickException(
                    f"A file with slug '{slug}' already exists: {existing.name}"
                )

    target_path.parent.mkdir(parents=True, exist_ok=True)
    header = {
        "title": titleize(target_path.name),
        "date": now(config.timezone).isoformat(),
        "draft": True,
    }
    text = "---\n" + yaml.safe_dump(header, sort_keys=False, allow_unicode=True) + "---\n\n"
    target_path.write_text(text, encoding="utf-8")
    click.echo(f"Created {target_path}")


def _prompt_document_path(content_dir: Path, tz_name: str | None) -> Path:
    """Ask for section, name and date prefix of a new document."""
    if not content_dir.is_dir():
        raise click.ClickException(f"Content directory not found: {content_dir}")

    folders = _get_content_folders(content_dir)
    folder = questionary.select(
        "Select section:",
        choices=folders,
        style=_questionary_style(),
    ).ask()
    if folder is None:
        raise click.Abort()

    name = questionary.text(
        "Filename (without .md extension):",
        validate=lambda x: len(x.strip()) > 0 or "Filename cannot be empty",
        style=_questionary_style(),
    ).ask()
    if name is None:
        raise click.Abort()

    add_date = questionary.confirm(
        "Prefix with today's date? (YYYY-MM-DD-)",
        default=True,
        style=_questionary_style(),
    ).ask()
    if add_date is None:
        raise click.Abort()

    filename = f"{name.strip()}.md"
    if add_date:
        filename = now(tz_name).strftime("%Y-%m-%d-") + filename
    target_dir = content_dir if folder == ". (root)" else content_dir / folder
    return target_dir / filename


def _get_content_folders(content_dir: Path) -> list[str]:
    """List sections under the content root, root option first.

    Underscore and dot directories are skipped, as the collector skips them.
    """
    folders = sorted(
        path.name
        for path in content_dir.iterdir()
        if path.is_dir() and not path.name.startswith(("_", "."))
    )
    folders.insert(0, ". (root)")
    return folders


def _questionary_style():
    """Return consistent questionary style."""
    return questionary.Style(
        [
            ("qmark", "fg:cyan bold"),
            ("question", "bold"),
            ("answer", "fg:cyan"),
            ("pointer", "fg:cyan bold"),
            ("highlighted", "fg:cyan bold"),
            ("selected", "fg:cyan"),
        ]
    )


def _run_build(
    source: Path,
    content: Path | None,
    destination: Path | None,
    minify: bool,
    drafts: bool,
    timezone: str | None,
    config_path: Path | None,
) -> BuildResult:
    """Run a build, turning pipeline errors into a failure report and exit 1."""
    try:
        result = build_site(
            source,
            include_drafts=drafts,
            minify=minify,
            content_dir=content,
            output_dir=destination,
            config_path=config_path,
            timezone=timezone,
        )
    except (ConfigError, DocumentError, BuildError) as exc:
        _report(exc.source_path, exc.message, source)
    except OSError as exc:
        _fail_plain(exc)
    for warning in result.warnings:
        click.echo(click.style(f"Warning: {warning}", fg="yellow"), err=True)
    return result


def _report(source_path: Path, message: str, project_root: Path):
    """Display a user-friendly error message and exit with status 1."""
    try:
        rel_path = source_path.resolve().relative_to(project_root.resolve())
    except ValueError:
        rel_path = source_path
    click.echo(click.style("Build failed:", fg="red", bold=True), err=True)
    click.echo(click.style(f"  File: {rel_path}", fg="yellow"), err=True)
    click.echo(click.style(f"  Error: {message}", fg="white"), err=True)
    raise SystemExit(1) from None


def _fail_plain(exc: Exception):
    click.echo(click.style("Build failed:", fg="red", bold=True), err=True)
    click.echo(click.style(f"  Error: {exc}", fg="white"), err=True)
    raise SystemExit(1) from None


def main():
    """Entry point for the CLI application."""
    cli()


def _scaffold(root: Path) -> None:
    """Create the directory structure and files for a new Folio project.

    Args:
        root: Root directory for the new project.
    """
    # Copy skeleton directory contents to new project
    for src_path in _SKELETON_DIR.rglob("*"):
        if src_path.is_dir():
            continue
        rel_path = src_path.relative_to(_SKELETON_DIR)
        dest_path = root / rel_path
        dest_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(src_path, dest_path)
    for dirname in ("layouts", "static", "data"):
        (root / dirname).mkdir(parents=True, exist_ok=True)

    # Generate folio.yaml with the project name as title
    config = {
        "base_url": "https://example.com/",
        "title": titleize(root.name),
        "language_code": "en-us",
        "timezone": "UTC",
        "theme": "default",
        "menu": {
            "main": [
                {"name": "Home", "url": "/", "weight": 1},
                {"name": "Posts", "url": "/posts/", "weight": 2},
                {"name": "Tags", "url": "/tags/", "weight": 3},
            ]
        },
        "params": {"description": "", "footer": ""},
    }
    (root / CONFIG_FILENAME).write_text(
        yaml.safe_dump(config, sort_keys=False), encoding="utf-8"
    )
    (root / ".gitignore").write_text("public/\nimage/\n*.staging/\n", encoding="utf-8")

    _try_git_init(root)


def _try_git_init(root: Path) -> None:
    """Initialize a git repository if git is available."""
    if os.environ.get("FOLIO_SKIP_GIT_INIT") == "1":
        return
    git_bin = shutil.which("git")
    if not git_bin:
        return
    try:
        subprocess.run(
            [git_bin, "init"],
            cwd=root,
            check=True,
            capture_output=True,
        )
    except (OSError, subprocess.CalledProcessError):
        # Non-fatal: user can run git init manually
        pass
