"""Folio static blog builder.

Folio turns a directory of markdown documents with a metadata header into a
static site, and packages the result as the build context of a small
file-serving container image.

The pipeline has three stages, run once per invocation and in order:

- Collector (content module): reads documents and filters drafts.
- Renderer (build, renderers and templates modules): markdown to HTML through
  Jinja2 layouts, into a fully rebuilt output directory.
- Publisher (publish module): copies the output into an nginx image context.

The main entry point is the CLI module.
"""

__all__ = ["__version__"]
__version__ = "0.3.0"
