"""
Shared fixtures: a scriptable local upstream server and config helpers.
"""

import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

from fastcode.core.config import ConfigProvider, ConfigSnapshot
from fastcode.handler import read_chunked


class UpstreamHandler(BaseHTTPRequestHandler):
    """Answers from `routes` and records every request it sees."""

    routes: dict = {}
    received: list = []

    def log_message(self, format, *args):
        pass

    def serve(self):
        if "chunked" in self.headers.get("Transfer-Encoding", "").lower():
            body = b"".join(read_chunked(self.rfile))
        else:
            length = int(self.headers.get("Content-Length") or 0)
            body = self.rfile.read(length) if length else b""

        self.received.append({
            "method": self.command,
            "path": self.path,
            "headers": self.headers,
            "body": body,
        })

        status, headers, payload = self.routes.get(self.path, (404, [], b"not found"))
        self.send_response_only(status)
        for key, value in headers:
            self.send_header(key, value)
        if not any(key.lower() == "content-length" for key, _ in headers):
            self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        if self.command != "HEAD":
            self.wfile.write(payload)

    do_GET = serve
    do_HEAD = serve
    do_POST = serve
    do_PUT = serve
    do_DELETE = serve


class Upstream:
    def __init__(self, server: ThreadingHTTPServer, handler: type):
        self.server = server
        self.handler = handler
        host, port = server.server_address[:2]
        self.url = f"http://{host}:{port}"

    @property
    def routes(self) -> dict:
        return self.handler.routes

    @property
    def received(self) -> list:
        return self.handler.received


def serve_in_thread(server):
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    return thread


@pytest.fixture
def upstream():
    """Local HTTP server standing in for GitHub or any other host."""
    handler = type("TestUpstreamHandler", (UpstreamHandler,), {"routes": {}, "received": []})
    server = ThreadingHTTPServer(("127.0.0.1", 0), handler)
    server.daemon_threads = True
    serve_in_thread(server)
    yield Upstream(server, handler)
    server.shutdown()
    server.server_close()


@pytest.fixture
def make_provider():
    """Build a ConfigProvider around an in-memory snapshot."""
    def _make(**fields) -> ConfigProvider:
        return ConfigProvider(initial=ConfigSnapshot(**fields))
    return _make
