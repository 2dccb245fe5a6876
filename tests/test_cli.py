import subprocess
from datetime import datetime, timezone
from pathlib import Path

import pytest
import yaml
from click.testing import CliRunner

from folio.cli import _get_content_folders, _try_git_init, cli


@pytest.fixture(autouse=True)
def no_tz(monkeypatch):
    monkeypatch.delenv("TZ", raising=False)
    monkeypatch.setenv("FOLIO_SKIP_GIT_INIT", "1")


def init_project(tmp_path: Path) -> Path:
    target = tmp_path / "my-blog"
    result = CliRunner().invoke(cli, ["init", str(target)], catch_exceptions=False)
    assert result.exit_code == 0
    return target


def test_init_scaffolds_project(tmp_path):
    target = init_project(tmp_path)
    assert (target / "content" / "_index.md").exists()
    assert (target / "content" / "posts" / "hello-world.md").exists()
    assert (target / "Dockerfile").exists()
    assert (target / "layouts").is_dir()
    assert (target / "static").is_dir()
    config = yaml.safe_load((target / "folio.yaml").read_text(encoding="utf-8"))
    assert config["title"] == "My Blog"
    assert config["base_url"] == "https://example.com/"

    # fails on non-empty directory
    result = CliRunner().invoke(cli, ["init", str(target)])
    assert result.exit_code != 0
    assert "non-empty" in result.output


def test_build_scaffolded_project(tmp_path):
    project = init_project(tmp_path)
    result = CliRunner().invoke(cli, ["build", "--source", str(project)], catch_exceptions=False)
    assert result.exit_code == 0, result.output
    assert "Built" in result.output
    assert (project / "public" / "posts" / "hello-world" / "index.html").exists()
    assert (project / "public" / "about" / "index.html").exists()


def test_build_options(tmp_path):
    project = init_project(tmp_path)
    dest = tmp_path / "out"
    (project / "content" / "posts" / "wip.md").write_text(
        "---\ntitle: Wip\ndate: 2024-02-01\ndraft: true\n---\n", encoding="utf-8"
    )
    result = CliRunner().invoke(
        cli,
        ["build", "-s", str(project), "-d", str(dest), "-D", "--minify", "--timezone", "Pacific/Auckland"],
        catch_exceptions=False,
    )
    assert result.exit_code == 0, result.output
    assert (dest / "posts" / "wip" / "index.html").exists()
    assert "\n" not in (dest / "index.html").read_text(encoding="utf-8")
    assert "NZ" in (dest / "posts" / "hello-world" / "index.html").read_text(encoding="utf-8")


def test_timezone_from_environment(tmp_path, monkeypatch):
    project = init_project(tmp_path)
    monkeypatch.setenv("TZ", "Pacific/Auckland")
    result = CliRunner().invoke(cli, ["build", "-s", str(project)], catch_exceptions=False)
    assert result.exit_code == 0
    post = (project / "public" / "posts" / "hello-world" / "index.html").read_text(encoding="utf-8")
    assert '<time datetime="2024-01-01T22:00:00+13:00">' in post


def test_missing_timezone_warns(tmp_path):
    project = init_project(tmp_path)
    config = project / "folio.yaml"
    config.write_text(
        config.read_text(encoding="utf-8").replace("timezone: UTC\n", ""), encoding="utf-8"
    )
    result = CliRunner().invoke(cli, ["build", "-s", str(project)])
    assert result.exit_code == 0
    assert "Warning: No timezone configured" in result.output


def test_build_failure_exits_nonzero_without_output(tmp_path):
    project = init_project(tmp_path)
    (project / "content" / "posts" / "bad.md").write_text(
        "---\ndate: 2024-01-01\n---\nNo title.\n", encoding="utf-8"
    )
    result = CliRunner().invoke(cli, ["build", "-s", str(project)])
    assert result.exit_code == 1
    assert "Build failed:" in result.output
    assert "bad.md" in result.output
    assert "Missing required field 'title'" in result.output
    assert not (project / "public").exists()


def test_config_errors_exit_nonzero(tmp_path):
    result = CliRunner().invoke(cli, ["build", "-s", str(tmp_path)])
    assert result.exit_code == 1
    assert "Configuration file not found" in result.output

    project = init_project(tmp_path)
    result = CliRunner().invoke(cli, ["build", "-s", str(project), "--timezone", "Nowhere/Land"])
    assert result.exit_code == 1
    assert "Unknown timezone" in result.output


def test_publish_writes_image_context(tmp_path):
    project = init_project(tmp_path)
    image = tmp_path / "image"
    result = CliRunner().invoke(
        cli, ["publish", "-s", str(project), "--image-dir", str(image)], catch_exceptions=False
    )
    assert result.exit_code == 0, result.output
    assert "docker build" in result.output
    assert (image / "Dockerfile").exists()
    assert (image / "nginx.conf").exists()
    assert (image / "public" / "index.html").read_bytes() == (
        project / "public" / "index.html"
    ).read_bytes()


def test_serve_directory(tmp_path, monkeypatch):
    site = tmp_path / "site"
    site.mkdir()
    started = {}

    class DummyServer:
        def __init__(self, directory, port=1313, host="127.0.0.1", rebuild_callback=None, watch_paths=()):
            self.directory = directory
            self.host = host
            started["port"] = port
            started["rebuild"] = rebuild_callback

        def start(self):
            started["started"] = True

    monkeypatch.setattr("folio.server.PreviewServer", DummyServer)
    result = CliRunner().invoke(cli, ["serve", str(site), "--port", "5050"], catch_exceptions=False)
    assert result.exit_code == 0
    assert started == {"port": 5050, "rebuild": None, "started": True}

    project = init_project(tmp_path)
    result = CliRunner().invoke(cli, ["serve", "-s", str(project), "--watch"], catch_exceptions=False)
    assert result.exit_code == 0
    assert callable(started["rebuild"])
    assert (project / "public" / "index.html").exists()

    result = CliRunner().invoke(cli, ["serve", str(tmp_path / "missing")])
    assert result.exit_code != 0


def test_new_with_path(tmp_path):
    project = init_project(tmp_path)
    result = CliRunner().invoke(
        cli, ["new", "posts/second-post", "-s", str(project)], catch_exceptions=False
    )
    assert result.exit_code == 0
    created = project / "content" / "posts" / "second-post.md"
    text = created.read_text(encoding="utf-8")
    assert text.startswith("---\ntitle: Second Post\n")
    assert "draft: true" in text

    result = CliRunner().invoke(cli, ["new", "posts/second-post.md", "-s", str(project)])
    assert result.exit_code != 0
    assert "already exists" in result.output


def mock_prompts(monkeypatch, answers):
    responses = iter(answers)

    class MockQuestion:
        def ask(self):
            return next(responses)

    for name in ("select", "text", "confirm"):
        monkeypatch.setattr(f"folio.cli.questionary.{name}", lambda *a, **k: MockQuestion())


def test_new_interactive(tmp_path, monkeypatch):
    project = init_project(tmp_path)
    mock_prompts(monkeypatch, ["posts", "my-new-post", True])

    result = CliRunner().invoke(cli, ["new", "-s", str(project)], catch_exceptions=False)
    assert result.exit_code == 0

    date_prefix = datetime.now(timezone.utc).strftime("%Y-%m-%d")
    expected = project / "content" / "posts" / f"{date_prefix}-my-new-post.md"
    assert expected.exists()
    assert "title: My New Post" in expected.read_text(encoding="utf-8")

    # the new draft does not appear in a normal build
    result = CliRunner().invoke(cli, ["build", "-s", str(project)], catch_exceptions=False)
    assert result.exit_code == 0
    assert not (project / "public" / "posts" / "my-new-post").exists()


def test_new_detects_slug_collision(tmp_path, monkeypatch):
    project = init_project(tmp_path)
    mock_prompts(monkeypatch, ["posts", "hello-world", True])
    result = CliRunner().invoke(cli, ["new", "-s", str(project)])
    assert result.exit_code != 0
    assert "already exists" in result.output


def test_new_aborts_on_cancel(tmp_path, monkeypatch):
    project = init_project(tmp_path)
    mock_prompts(monkeypatch, [None])
    result = CliRunner().invoke(cli, ["new", "-s", str(project)])
    assert result.exit_code != 0


def test_get_content_folders(tmp_path):
    (tmp_path / "posts").mkdir()
    (tmp_path / "notes").mkdir()
    (tmp_path / "_drafts").mkdir()
    (tmp_path / "readme.md").write_text("x", encoding="utf-8")
    assert _get_content_folders(tmp_path) == [". (root)", "notes", "posts"]


def test_try_git_init(monkeypatch, tmp_path):
    called = {}
    monkeypatch.setenv("FOLIO_SKIP_GIT_INIT", "0")
    monkeypatch.setattr("folio.cli.shutil.which", lambda cmd: "/usr/bin/git")

    def fake_run(cmd, cwd=None, check=None, capture_output=None):
        called["cmd"] = cmd
        called["cwd"] = cwd
        return subprocess.CompletedProcess(cmd, 0)

    monkeypatch.setattr("folio.cli.subprocess.run", fake_run)
    _try_git_init(tmp_path)
    assert called["cmd"] == ["/usr/bin/git", "init"]
    assert called["cwd"] == tmp_path


def test_try_git_init_failure(monkeypatch, tmp_path):
    monkeypatch.setenv("FOLIO_SKIP_GIT_INIT", "0")
    monkeypatch.setattr("folio.cli.shutil.which", lambda cmd: "/usr/bin/git")

    def fake_run(cmd, cwd=None, check=None, capture_output=None):
        raise subprocess.CalledProcessError(1, cmd)

    monkeypatch.setattr("folio.cli.subprocess.run", fake_run)
    _try_git_init(tmp_path)  # should not raise


def test_module_main_entrypoint():
    from folio.__main__ import main

    assert callable(main)


def test_scaffold_dockerfile_publishes_in_configured_timezone(tmp_path):
    project = init_project(tmp_path)
    config = project / "folio.yaml"
    config.write_text(
        config.read_text(encoding="utf-8").replace("timezone: UTC", "timezone: Pacific/Auckland"),
        encoding="utf-8",
    )
    run_line = next(
        line
        for line in (project / "Dockerfile").read_text(encoding="utf-8").splitlines()
        if line.startswith("RUN folio ")
    )
    args = run_line.split()[2:]
    assert "--timezone" not in args
    image = tmp_path / "image"
    args[args.index("/image")] = str(image)

    result = CliRunner().invoke(cli, [*args, "-s", str(project)], catch_exceptions=False)
    assert result.exit_code == 0, result.output
    post = (image / "public" / "posts" / "hello-world" / "index.html").read_text(encoding="utf-8")
    assert '<time datetime="2024-01-01T22:00:00+13:00">' in post
