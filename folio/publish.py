"""Publishing stage for Folio.

Turns a rendered output directory into the build context of a minimal
file-serving image: the output copied verbatim under ``public/``, a fixed
nginx server configuration and a Dockerfile that puts the files at the
configured document root. The stage has no logic beyond the copy.

Key functions:
- publish: Write the image build context for an output directory.
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from pathlib import Path

from .config import PublishSettings
from .utils import ensure_clean_dir, replace_dir

PUBLIC_DIRNAME = "public"

NGINX_CONF_TEMPLATE = """\
server {{
    listen {port};
    listen [::]:{port};
    server_name _;

    root {root};
    index index.html;
    autoindex off;

    location / {{
        try_files $uri $uri/ =404;
    }}

    error_page 404 /404.html;
}}
"""

DOCKERFILE_TEMPLATE = """\
FROM {base_image}
COPY {public}/ {root}/
COPY nginx.conf /etc/nginx/conf.d/default.conf
EXPOSE {port}
"""


class PublishError(Exception):
    """The image build context cannot be written where requested."""


@dataclass
class PublishResult:
    """Result of a publish operation.

    Attributes:
        image_dir: The image build context directory.
        public_dir: Where the output was copied inside the context.
        files: Copied files, relative to ``public_dir``, sorted.
    """

    image_dir: Path
    public_dir: Path
    files: list[Path]


def render_nginx_conf(settings: PublishSettings) -> str:
    """Fixed server configuration: one port, static root, no dynamic routes."""
    return NGINX_CONF_TEMPLATE.format(port=settings.port, root=settings.root)


def render_dockerfile(settings: PublishSettings) -> str:
    return DOCKERFILE_TEMPLATE.format(
        base_image=settings.base_image,
        public=PUBLIC_DIRNAME,
        root=settings.root,
        port=settings.port,
    )


def publish(
    output_dir: Path, image_dir: Path, settings: PublishSettings | None = None
) -> PublishResult:
    """Write the image build context for a rendered site.

    The context is assembled in a staging directory and swapped into
    ``image_dir`` once complete.

    Args:
        output_dir: Rendered site from a successful build.
        image_dir: Destination for the build context; replaced as a whole.
        settings: Serving settings; defaults to nginx on port 80.

    Returns:
        PublishResult listing the copied files.

    Raises:
        FileNotFoundError: If ``output_dir`` does not exist.
        PublishError: If ``image_dir`` and ``output_dir`` overlap.
    """
    settings = settings or PublishSettings()
    if not output_dir.is_dir():
        raise FileNotFoundError(f"Output directory not found: {output_dir}")
    image, output = image_dir.resolve(), output_dir.resolve()
    if image.is_relative_to(output) or output.is_relative_to(image):
        raise PublishError(f"Image directory {image_dir} must not overlap {output_dir}")

    staging = image_dir.with_name(image_dir.name + ".staging")
    ensure_clean_dir(staging)
    try:
        shutil.copytree(output_dir, staging / PUBLIC_DIRNAME)
        (staging / "nginx.conf").write_text(render_nginx_conf(settings), encoding="utf-8")
        (staging / "Dockerfile").write_text(render_dockerfile(settings), encoding="utf-8")
        (staging / ".dockerignore").write_text("*\n!public\n!nginx.conf\n", encoding="utf-8")
    except BaseException:
        shutil.rmtree(staging, ignore_errors=True)
        raise
    replace_dir(staging, image_dir)

    public_dir = image_dir / PUBLIC_DIRNAME
    files = sorted(p.relative_to(public_dir) for p in public_dir.rglob("*") if p.is_file())
    return PublishResult(image_dir=image_dir, public_dir=public_dir, files=files)
