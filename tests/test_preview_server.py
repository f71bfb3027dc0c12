from __future__ import annotations

import http.client
import threading
from pathlib import Path

from quire.preview_server import make_request_handler, serve


def _get(port: int, path: str) -> tuple[int, bytes, str | None]:
    connection = http.client.HTTPConnection("127.0.0.1", port, timeout=5)
    try:
        connection.request("GET", path)
        response = connection.getresponse()
        return response.status, response.read(), response.getheader("Content-Type")
    finally:
        connection.close()


def test_preview_serves_pages_and_the_not_found_page(tmp_path: Path) -> None:
    (tmp_path / "index.html").write_text("<h1>Home</h1>", encoding="utf-8")
    (tmp_path / "404.html").write_text("<h1>Lost</h1>", encoding="utf-8")
    handler = make_request_handler(tmp_path, not_found="404.html")

    with serve("127.0.0.1", 0, handler) as server:
        thread = threading.Thread(target=server.serve_forever, daemon=True)
        thread.start()
        try:
            port = int(server.server_address[1])

            status, body, content_type = _get(port, "/index.html")
            assert status == 200
            assert body == b"<h1>Home</h1>"
            assert content_type == "text/html; charset=utf-8"

            status, body, _ = _get(port, "/missing/page.html")
            assert status == 404
            assert body == b"<h1>Lost</h1>"
        finally:
            server.shutdown()
            thread.join(timeout=5)


def test_preview_falls_back_to_default_error_page(tmp_path: Path) -> None:
    handler = make_request_handler(tmp_path)

    with serve("127.0.0.1", 0, handler) as server:
        thread = threading.Thread(target=server.serve_forever, daemon=True)
        thread.start()
        try:
            status, body, _ = _get(int(server.server_address[1]), "/nothing.html")
            assert status == 404
            assert b"File not found" in body
        finally:
            server.shutdown()
            thread.join(timeout=5)
