"""Local HTTP preview of a built book."""

from __future__ import annotations

import contextlib
from http import HTTPStatus
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Any, Iterator


class _ThreadingHTTPServer(ThreadingHTTPServer):
    daemon_threads = True
    allow_reuse_address = True


def make_request_handler(directory: Path, *, not_found: str | None = None) -> type[SimpleHTTPRequestHandler]:
    """Create a request handler rooted at ``directory``.

    When ``not_found`` names a page inside ``directory`` it is served with a
    404 status for unknown paths, mirroring how Pages treats ``404.html``.
    """
    directory_path = str(directory)
    not_found_page = directory / not_found if not_found else None

    class PreviewRequestHandler(SimpleHTTPRequestHandler):
        def __init__(self, *args: Any, **kwargs: Any) -> None:
            super().__init__(*args, directory=directory_path, **kwargs)

        extensions_map = dict(SimpleHTTPRequestHandler.extensions_map)
        extensions_map.update(
            {
                ".svg": "image/svg+xml",
                ".json": "application/json; charset=utf-8",
                ".js": "application/javascript; charset=utf-8",
                ".css": "text/css; charset=utf-8",
                ".html": "text/html; charset=utf-8",
            }
        )

        def send_error(self, code: int, message: str | None = None, explain: str | None = None) -> None:
            if code != HTTPStatus.NOT_FOUND or not_found_page is None or not not_found_page.is_file():
                super().send_error(code, message, explain)
                return
            body = not_found_page.read_bytes()
            self.send_response(code, message)
            self.send_header("Content-Type", "text/html; charset=utf-8")
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            if self.command != "HEAD":
                self.wfile.write(body)

    return PreviewRequestHandler


@contextlib.contextmanager
def serve(
    host: str,
    port: int,
    handler: type[SimpleHTTPRequestHandler],
) -> Iterator[ThreadingHTTPServer]:
    """Bind a preview server on ``host:port`` and close it on exit."""
    server = _ThreadingHTTPServer((host, port), handler)
    try:
        yield server
    finally:
        server.server_close()
