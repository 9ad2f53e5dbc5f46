"""Shared test fixtures for pdbharvest integration tests."""

import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

import pytest

from pdbharvest.lib.logging import reset_logging


class LocalWeb:
    """
    Route table and request log served by a local HTTP server.

    ``routes`` maps a request path (e.g. ``/uniprot/P00533.txt``) to the
    response body; unknown paths answer 404.
    """

    def __init__(self):
        self.routes: dict[str, bytes] = {}
        self.requests: list[str] = []
        self.lock = threading.Lock()
        self.base_url = ""

    def url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def count(self, path: str) -> int:
        with self.lock:
            return self.requests.count(path)


def _make_handler(web: LocalWeb):
    class Handler(BaseHTTPRequestHandler):
        def do_GET(self):
            with web.lock:
                web.requests.append(self.path)
                body = web.routes.get(self.path)
            if body is None:
                self.send_error(404)
                return
            self.send_response(200)
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)

        def log_message(self, format, *args):
            pass

    return Handler


@pytest.fixture
def project_root():
    """Return the project root directory."""
    return Path(__file__).resolve().parent.parent


@pytest.fixture
def fixtures_dir():
    """Return the test fixtures directory."""
    return Path(__file__).resolve().parent / "fixtures"


@pytest.fixture
def local_web():
    """Run a local HTTP server for the duration of a test."""
    web = LocalWeb()
    server = ThreadingHTTPServer(("127.0.0.1", 0), _make_handler(web))
    web.base_url = f"http://127.0.0.1:{server.server_address[1]}"
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield web
    finally:
        server.shutdown()
        server.server_close()
        thread.join()


@pytest.fixture(autouse=True)
def _clean_logging():
    yield
    reset_logging()
