"""Local preview server for Folio.

Serves a built site the way the published image does: files from one root
directory, ``index.html`` as the default document, ``404.html`` for missing
paths and no directory listings. With watching enabled, source changes
trigger a rebuild.

Key classes:
- PreviewServer: Serves a directory and optionally rebuilds on changes.
- _StaticHandler: HTTP request handler with default document and 404 handling.
- _ChangeHandler: File system event handler for triggering rebuilds.
"""

from __future__ import annotations

import functools
import threading
import time
from collections.abc import Callable, Iterable
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer


class _StaticHandler(SimpleHTTPRequestHandler):
    """Static file handler: default document, 404 page, no listings."""

    def end_headers(self):
        self.send_header("Cache-Control", "no-cache")
        super().end_headers()

    def list_directory(self, path):  # pragma: no cover - exercised via send_head
        return self._serve_404()

    def _serve_404(self):
        """Serve 404.html (when present) with a 404 status."""
        error_page = Path(self.directory) / "404.html"
        if error_page.is_file():
            encoded = error_page.read_bytes()
            self.send_response(404)
            self.send_header("Content-type", "text/html; charset=utf-8")
            self.send_header("Content-Length", str(len(encoded)))
            self.end_headers()
            if self.command != "HEAD":
                self.wfile.write(encoded)
            return None
        self.send_error(404, "File not found")
        return None

    def send_head(self):
        path_obj = Path(self.translate_path(self.path))
        if path_obj.is_dir():
            if not self.path.split("?", 1)[0].endswith("/"):
                return super().send_head()
            if not (path_obj / "index.html").is_file():
                return self._serve_404()
        elif not path_obj.is_file():
            return self._serve_404()
        return super().send_head()

    def log_message(self, format, *args):  # pragma: no cover - console noise
        pass


class PreviewServer:
    """Serves a directory over HTTP, optionally rebuilding on source changes.

    Attributes:
        directory: Root directory to serve.
        port: HTTP port.
        host: Interface to bind.
        rebuild_callback: Called to rebuild the site when sources change.
        watch_paths: Source files and directories to watch.
    """

    def __init__(
        self,
        directory: Path,
        port: int = 1313,
        host: str = "127.0.0.1",
        rebuild_callback: Callable[[], None] | None = None,
        watch_paths: Iterable[Path] = (),
    ):
        self.directory = directory
        self.port = port
        self.host = host
        self.rebuild_callback = rebuild_callback
        self.watch_paths = [p for p in watch_paths if p.exists()]
        self._ignored = [directory, directory.with_name(directory.name + ".staging")]
        self._observer: Observer | None = None
        self._httpd: ThreadingHTTPServer | None = None
        self._rebuilding = False
        self._last_rebuild_at = 0.0
        self._last_signature: tuple | None = None
        self._debounce_seconds = 0.2

    def make_server(self) -> ThreadingHTTPServer:
        handler = functools.partial(_StaticHandler, directory=str(self.directory))
        return ThreadingHTTPServer((self.host, self.port), handler)

    def start(self) -> None:  # pragma: no cover - integration path
        """Serve until interrupted."""
        self._httpd = self.make_server()
        if self.rebuild_callback is not None:
            self._last_signature = self._compute_signature()
            self._start_watcher()
        thread = threading.Thread(target=self._httpd.serve_forever, daemon=True)
        thread.start()
        try:
            while thread.is_alive():
                time.sleep(1)
        except KeyboardInterrupt:
            pass
        finally:
            self.stop()

    def stop(self) -> None:
        if self._observer:
            self._observer.stop()
            self._observer.join()
            self._observer = None
        if self._httpd:
            self._httpd.shutdown()
            self._httpd.server_close()
            self._httpd = None

    def _start_watcher(self) -> None:
        handler = _ChangeHandler(self)
        observer = Observer()
        for path in self.watch_paths:
            if path.is_dir():
                observer.schedule(handler, str(path), recursive=True)
            else:
                observer.schedule(handler, str(path.parent), recursive=False)
        observer.start()
        self._observer = observer

    def is_ignored(self, path: Path) -> bool:
        """Changes inside the served output or its staging directory are ignored."""
        return any(path.is_relative_to(ignored) for ignored in self._ignored)

    def rebuild(self) -> bool:
        """Rebuild if sources changed since the last build.

        Returns:
            True if the rebuild callback ran.
        """
        now = time.time()
        if self._rebuilding or (now - self._last_rebuild_at) < self._debounce_seconds:
            return False
        signature = self._compute_signature()
        if signature is not None and signature == self._last_signature:
            return False
        self._rebuilding = True
        try:
            if self.rebuild_callback is not None:
                self.rebuild_callback()
            self._last_signature = signature
        finally:
            self._rebuilding = False
            self._last_rebuild_at = time.time()
        return True

    def _compute_signature(self) -> tuple | None:
        entries: list[tuple] = []
        for root in self.watch_paths:
            paths = sorted(root.rglob("*")) if root.is_dir() else [root]
            for path in paths:
                if path.is_dir() or self.is_ignored(path):
                    continue
                try:
                    stat = path.stat()
                except OSError:
                    continue
                entries.append((str(path), stat.st_mtime_ns, stat.st_size))
        return tuple(entries) if entries else None


class _ChangeHandler(FileSystemEventHandler):
    def __init__(self, server: PreviewServer):
        super().__init__()
        self.server = server

    def on_any_event(self, event):
        if event.is_directory:
            return
        path = Path(event.src_path)
        if self.server.is_ignored(path):
            return
        self.server.rebuild()
