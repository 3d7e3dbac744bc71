"""
HTTP request handler for fastcode proxy.
"""

import logging
from http.server import BaseHTTPRequestHandler

from .exchange import InboundRequest, ProxyResponse, State
from .pipeline import RequestPipeline

logger = logging.getLogger(__name__)

BODY_CHUNK_SIZE = 64 * 1024


def read_length(rfile, length: int, chunk_size: int = BODY_CHUNK_SIZE):
    """Yield exactly `length` bytes from rfile in bounded chunks."""
    remaining = length
    while remaining > 0:
        chunk = rfile.read(min(chunk_size, remaining))
        if not chunk:
            raise ConnectionError(f"Client body ended {remaining} bytes early")
        remaining -= len(chunk)
        yield chunk


def read_chunked(rfile, chunk_size: int = BODY_CHUNK_SIZE):
    """Decode a chunked transfer-encoded body from rfile."""
    while True:
        line = rfile.readline(65537)
        if not line:
            raise ConnectionError("Client body ended inside chunked encoding")
        try:
            size = int(line.split(b";", 1)[0].strip(), 16)
        except ValueError:
            raise ConnectionError(f"Invalid chunk size line: {line[:32]!r}") from None
        if size == 0:
            # Trailer section ends with an empty line
            while rfile.readline(65537) not in (b"\r\n", b"\n", b""):
                pass
            return
        yield from read_length(rfile, size, chunk_size)
        rfile.readline(3)  # CRLF after chunk data


class ProxyHandler(BaseHTTPRequestHandler):
    """Hands every request to the pipeline and writes back its response."""

    pipeline: RequestPipeline | None = None

    def log_message(self, format, *args):
        logger.info("%s - %s", self.address_string(), format % args)

    def inbound_request(self, method: str) -> InboundRequest:
        """Wrap the request line, headers and body stream."""
        headers = list(self.headers.items())

        if self.headers.get("Expect", "").lower() == "100-continue":
            self.send_continue()

        body = None
        content_length = None
        transfer_encoding = self.headers.get("Transfer-Encoding", "")
        if "chunked" in transfer_encoding.lower():
            body = read_chunked(self.rfile)
        elif self.headers.get("Content-Length"):
            content_length = int(self.headers["Content-Length"])
            if content_length < 0:
                raise ValueError(f"Negative Content-Length: {content_length}")
            body = read_length(self.rfile, content_length)

        return InboundRequest(
            method=method,
            path=self.path,
            headers=headers,
            body=body,
            content_length=content_length,
        )

    def send_continue(self):
        """Ask the client for its body. Only HTTP/1.1 clients wait for this."""
        if self.request_version != "HTTP/1.1":
            return
        self.wfile.write(b"HTTP/1.1 100 Continue\r\n\r\n")
        self.wfile.flush()

    def route_request(self, method: str):
        """Run the request through the pipeline."""
        try:
            inbound = self.inbound_request(method)
        except ValueError:
            self.send_error(400, "Invalid Content-Length")
            return

        response = self.pipeline.handle(inbound)
        self.send_proxy_response(response)

    def send_proxy_response(self, response: ProxyResponse):
        """Commit status and headers, then stream the body."""
        try:
            self.send_response_only(response.status)
            for key, value in response.headers:
                self.send_header(key, value)
            self.end_headers()
        except OSError as e:
            logger.warning("Client went away before headers were sent: %s", e)
            response.state = State.FAILED
            if response.close is not None:
                response.close()
            self.close_connection = True
            return
        self.log_request(response.status)

        if self.command == "HEAD":
            if response.close is not None:
                response.close()
            return

        response.write_body(self.wfile)
        self.close_connection = True

    # =========================================================================
    # HTTP method handlers
    # =========================================================================

    def do_GET(self):
        self.route_request("GET")

    def do_HEAD(self):
        self.route_request("HEAD")

    def do_POST(self):
        self.route_request("POST")

    def do_PUT(self):
        self.route_request("PUT")

    def do_PATCH(self):
        self.route_request("PATCH")

    def do_DELETE(self):
        self.route_request("DELETE")

    def do_OPTIONS(self):
        self.route_request("OPTIONS")
