from pathlib import Path

import pytest
from PIL import Image

from folio.build import NO_TIMEZONE_WARNING, BuildError, _format_error_message, build_site
from folio.config import ConfigError
from folio.content import DocumentError


def create_project(tmp_path: Path, timezone: str | None = "Pacific/Auckland") -> Path:
    project = tmp_path / "blog"
    content = project / "content"
    (content / "posts").mkdir(parents=True)
    (project / "static").mkdir()

    config = "base_url: https://example.com/\ntitle: Test Blog\n"
    if timezone:
        config += f"timezone: {timezone}\n"
    config += "menu:\n  main:\n    - {name: Posts, url: /posts/, weight: 1}\n"
    (project / "folio.yaml").write_text(config, encoding="utf-8")

    (content / "_index.md").write_text("---\ntitle: Home\n---\nWelcome here.\n", encoding="utf-8")
    (content / "posts" / "2021-04-10-hello.md").write_text(
        "---\n"
        "title: Hello\n"
        "date: 2021-04-10T13:17:49+12:00\n"
        "tags: [python, Web Dev]\n"
        "---\n"
        "Intro paragraph.\n\n<!--more-->\n\n## Details\n\nMore text.\n",
        encoding="utf-8",
    )
    (content / "posts" / "draft.md").write_text(
        "---\ntitle: Secret Draft\ndate: 2021-05-01\ndraft: true\n---\nHidden.\n",
        encoding="utf-8",
    )
    (content / "about.md").write_text(
        "---\ntitle: About\ndate: 2020-01-01\n---\nAbout me.\n", encoding="utf-8"
    )
    (project / "static" / "robots.txt").write_text("User-agent: *\n", encoding="utf-8")
    return project


def snapshot(root: Path) -> dict[str, bytes]:
    return {
        str(p.relative_to(root)): p.read_bytes() for p in sorted(root.rglob("*")) if p.is_file()
    }


def test_build_site_writes_pages_listings_and_feeds(tmp_path):
    project = create_project(tmp_path)
    result = build_site(project)

    out = project / "public"
    assert result.output_dir == out
    assert result.warnings == []
    assert set(snapshot(out)) == {
        "index.html",
        "404.html",
        "index.xml",
        "sitemap.xml",
        "robots.txt",
        "css/style.css",
        "about/index.html",
        "posts/index.html",
        "posts/hello/index.html",
        "tags/index.html",
        "tags/python/index.html",
        "tags/web-dev/index.html",
    }
    assert "/posts/hello/" in result.pages
    assert "/404.html" in result.pages
    assert result.pages == sorted(result.pages)

    home = (out / "index.html").read_text(encoding="utf-8")
    assert "Welcome here." in home
    assert "Intro paragraph." in home
    assert "More text." not in home
    assert home.index("/posts/hello/") < home.index("/about/")

    post = (out / "posts" / "hello" / "index.html").read_text(encoding="utf-8")
    assert '<h2 id="details">Details</h2>' in post
    assert '<time datetime="2021-04-10T13:17:49+12:00">' in post
    assert "NZST" in post

    assert "#Web Dev" in (out / "tags" / "web-dev" / "index.html").read_text(encoding="utf-8")
    assert "https://example.com/posts/hello/" in (out / "index.xml").read_text(encoding="utf-8")
    assert "https://example.com/tags/python/" in (out / "sitemap.xml").read_text(encoding="utf-8")


def test_drafts_never_rendered_unless_included(tmp_path):
    project = create_project(tmp_path)
    build_site(project)
    out = project / "public"
    assert not (out / "posts" / "draft").exists()
    assert all(b"Secret Draft" not in data for data in snapshot(out).values())

    build_site(project, include_drafts=True)
    draft = (out / "posts" / "draft" / "index.html").read_text(encoding="utf-8")
    assert "Secret Draft" in draft
    assert '<span class="draft">Draft</span>' in draft


def test_builds_are_byte_identical(tmp_path):
    project = create_project(tmp_path)
    build_site(project)
    first = snapshot(project / "public")
    build_site(project)
    assert snapshot(project / "public") == first


def test_missing_title_leaves_no_output(tmp_path):
    project = create_project(tmp_path)
    bad = project / "content" / "posts" / "bad.md"
    bad.write_text("---\ndate: 2021-01-01\n---\nNo title.\n", encoding="utf-8")

    with pytest.raises(DocumentError) as excinfo:
        build_site(project)
    assert excinfo.value.source_path == bad
    assert not (project / "public").exists()
    assert not (project / "public.staging").exists()


def test_failed_build_keeps_previous_output(tmp_path):
    project = create_project(tmp_path)
    build_site(project)
    before = snapshot(project / "public")

    (project / "layouts").mkdir()
    (project / "layouts" / "single.html").write_text("{% if %}", encoding="utf-8")
    with pytest.raises(BuildError) as excinfo:
        build_site(project)

    assert excinfo.value.source_path.name == "single.html"
    assert "Template syntax error" in excinfo.value.message
    assert snapshot(project / "public") == before
    assert not (project / "public.staging").exists()


def test_missing_timezone_falls_back_to_utc(tmp_path):
    project = create_project(tmp_path, timezone=None)
    result = build_site(project)
    assert result.warnings == [NO_TIMEZONE_WARNING]
    post = (project / "public" / "posts" / "hello" / "index.html").read_text(encoding="utf-8")
    assert '<time datetime="2021-04-10T01:17:49+00:00">' in post

    result = build_site(project, timezone="Pacific/Auckland")
    assert result.warnings == []
    assert result.config.timezone == "Pacific/Auckland"


def test_empty_content_builds_only_site_pages(tmp_path):
    project = tmp_path / "empty"
    (project / "content").mkdir(parents=True)
    (project / "folio.yaml").write_text(
        "base_url: https://example.com/\ntitle: Empty\ntimezone: UTC\n", encoding="utf-8"
    )
    result = build_site(project)
    assert result.documents == []
    assert set(snapshot(project / "public")) == {
        "index.html",
        "404.html",
        "index.xml",
        "sitemap.xml",
        "css/style.css",
    }
    assert "No posts yet." in (project / "public" / "index.html").read_text(encoding="utf-8")


def test_duplicate_urls_are_fatal(tmp_path):
    project = create_project(tmp_path)
    (project / "content" / "posts" / "copy.md").write_text(
        "---\ntitle: Copy\ndate: 2021-01-01\nurl: /posts/hello/\n---\n", encoding="utf-8"
    )
    with pytest.raises(DocumentError, match="already used"):
        build_site(project)


def test_document_cannot_take_a_listing_url(tmp_path):
    project = create_project(tmp_path)
    (project / "content" / "tags.md").write_text(
        "---\ntitle: Tags\ndate: 2021-01-01\n---\n", encoding="utf-8"
    )
    with pytest.raises(DocumentError, match="taxonomy"):
        build_site(project)


def test_destination_overrides_and_guards(tmp_path):
    project = create_project(tmp_path)
    dest = tmp_path / "site-out"
    result = build_site(project, output_dir=dest)
    assert result.output_dir == dest
    assert (dest / "index.html").exists()

    with pytest.raises(ConfigError, match="overwrite the project"):
        build_site(project, output_dir=project)
    with pytest.raises(ConfigError, match="content directory"):
        build_site(project, output_dir=project / "content")


def test_alternate_content_dir(tmp_path):
    project = create_project(tmp_path)
    other = tmp_path / "other-content"
    other.mkdir()
    (other / "only.md").write_text("---\ntitle: Only\ndate: 2021-01-01\n---\n", encoding="utf-8")
    result = build_site(project, content_dir=other)
    assert [d.title for d in result.documents] == ["Only"]
    assert (project / "public" / "only" / "index.html").exists()


def test_minified_build(tmp_path):
    project = create_project(tmp_path)
    build_site(project, minify=True)
    out = project / "public"
    assert "\n" not in (out / "index.html").read_text(encoding="utf-8")
    assert "\n" not in (out / "css" / "style.css").read_text(encoding="utf-8").strip()
    assert (out / "robots.txt").read_text(encoding="utf-8") == "User-agent: *\n"


def test_format_error_message():
    class UndefinedError(Exception):
        pass

    assert _format_error_message(UndefinedError("'x' is undefined")) == (
        "Undefined variable: 'x' is undefined"
    )
    assert _format_error_message(ValueError("bad")) == "ValueError: bad"


def test_page_bundle_resources_are_copied(tmp_path):
    project = create_project(tmp_path)
    trip = project / "content" / "posts" / "trip"
    (trip / "day1").mkdir(parents=True)
    (trip / "index.md").write_text(
        "---\ntitle: Trip\ndate: 2021-06-01\n---\n![cover](cover.png)\n", encoding="utf-8"
    )
    Image.new("RGB", (4, 4), color="blue").save(trip / "cover.png")
    (trip / "notes.txt").write_text("packing list\n", encoding="utf-8")
    (trip / ".DS_Store").write_bytes(b"junk")
    (trip / "day1" / "index.md").write_text(
        "---\ntitle: Day One\ndate: 2021-06-02\nurl: /day-one/\n---\n", encoding="utf-8"
    )
    (trip / "day1" / "map.txt").write_text("map\n", encoding="utf-8")

    build_site(project, minify=True)
    out = project / "public" / "posts" / "trip"
    assert '<img src="cover.png"' in (out / "index.html").read_text(encoding="utf-8")
    with Image.open(out / "cover.png") as img:
        assert img.size == (4, 4)
    assert (out / "notes.txt").read_text(encoding="utf-8") == "packing list\n"
    assert not (out / ".DS_Store").exists()
    # nested bundle keeps its own resources
    assert (project / "public" / "day-one" / "map.txt").exists()
    assert not (out / "day1").exists()
