"""
Upstream forwarding.

Sends the client's request to the target URL over a shared pooled session
and turns the upstream reply into a streamed ProxyResponse.
"""

import logging
import socket

import requests
from requests.adapters import HTTPAdapter
from urllib3.connection import HTTPConnection

from .core.classify import classify
from .errors import UpstreamConnectError, UpstreamSizeExceeded
from .exchange import InboundRequest, ProxyResponse, State

logger = logging.getLogger(__name__)

CHUNK_SIZE = 32 * 1024

# Upstream pool limits and timeouts
POOL_HOSTS = 100           # host pools kept alive
POOL_PER_HOST = 100        # connections kept per host
CONNECT_TIMEOUT = 30       # seconds, covers dial and TLS handshake

# Request headers owned by the outbound transport
SKIP_REQUEST_HEADERS = {
    "host",
    "connection",
    "keep-alive",
    "proxy-connection",
    "transfer-encoding",
    "expect",
}

# Response headers dropped before replying
STRIP_RESPONSE_HEADERS = {
    "content-security-policy",
    "referrer-policy",
    "strict-transport-security",
}

# Framing headers; the local server frames the body itself
HOP_BY_HOP_RESPONSE_HEADERS = {
    "connection",
    "keep-alive",
    "transfer-encoding",
}

GB = 1024 * 1024 * 1024


def format_size(size: int) -> str:
    """Human readable byte count: 10737418240 → "10 GB"."""
    for unit, scale in (("GB", GB), ("MB", 1024 * 1024), ("KB", 1024)):
        if size >= scale:
            return f"{size / scale:g} {unit}"
    return f"{size} bytes"


class KeepAliveAdapter(HTTPAdapter):
    """HTTPAdapter that turns on TCP keep-alive for pooled sockets."""

    def init_poolmanager(self, *args, **kwargs):
        kwargs["socket_options"] = HTTPConnection.default_socket_options + [
            (socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1),
        ]
        super().init_poolmanager(*args, **kwargs)


def build_session(pool_hosts: int = POOL_HOSTS, pool_per_host: int = POOL_PER_HOST) -> requests.Session:
    """Create the shared upstream session."""
    session = requests.Session()
    # Only the client's own headers go upstream
    session.headers.clear()
    adapter = KeepAliveAdapter(
        pool_connections=pool_hosts,
        pool_maxsize=pool_per_host,
        max_retries=0,
    )
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


class _SizedBody:
    """Request body stream with a known length, so requests sends Content-Length."""

    def __init__(self, chunks, length: int):
        self._chunks = chunks
        self._length = length

    def __iter__(self):
        return iter(self._chunks)

    def __len__(self):
        return self._length


# =============================================================================
# Forwarding Engine
# =============================================================================

class ForwardingEngine:
    """Forwards requests upstream and streams the responses back."""

    def __init__(self, session: requests.Session | None = None, connect_timeout: float = CONNECT_TIMEOUT):
        self.session = session if session is not None else build_session()
        self.connect_timeout = connect_timeout

    def forward(self, inbound: InboundRequest, target_url: str, size_limit: int) -> ProxyResponse:
        """
        Proxy one request.

        Raises:
            UpstreamConnectError: Request could not be built or sent
            UpstreamSizeExceeded: Declared Content-Length is above size_limit
        """
        upstream = self._send(inbound, target_url)

        try:
            self._check_size(upstream, size_limit)
        except UpstreamSizeExceeded:
            upstream.close()
            raise

        return ProxyResponse(
            status=upstream.status_code,
            headers=self._response_headers(upstream),
            body=upstream.raw.stream(CHUNK_SIZE, decode_content=False),
            state=State.FORWARDED,
            close=upstream.close,
        )

    def _send(self, inbound: InboundRequest, target_url: str) -> requests.Response:
        headers = [
            (key, value) for key, value in inbound.headers
            if key.lower() not in SKIP_REQUEST_HEADERS
        ]

        data = None
        if inbound.body is not None:
            if inbound.content_length is None:
                data = inbound.body  # chunked upstream
            elif inbound.content_length > 0:
                data = _SizedBody(inbound.body, inbound.content_length)

        try:
            return self.session.request(
                method=inbound.method,
                url=target_url,
                headers=_merge_headers(headers),
                data=data,
                stream=True,
                allow_redirects=False,
                timeout=(self.connect_timeout, None),
            )
        except (requests.RequestException, ValueError) as e:
            logger.warning("Upstream request to %s failed: %s", target_url, e)
            raise UpstreamConnectError(f"Failed to request upstream: {e}") from e

    def _check_size(self, upstream: requests.Response, size_limit: int) -> None:
        declared = upstream.headers.get("Content-Length")
        if declared is None:
            return
        try:
            size = int(declared)
        except ValueError:
            return
        if size > size_limit:
            logger.info("Upstream %s declares %d bytes, limit is %d", upstream.url, size, size_limit)
            raise UpstreamSizeExceeded(
                f"File too large, exceeds size limit of {format_size(size_limit)}"
            )

    def _response_headers(self, upstream: requests.Response) -> list[tuple[str, str]]:
        headers = []
        raw_headers = upstream.raw.headers
        for key in raw_headers:
            lower = key.lower()
            if lower in STRIP_RESPONSE_HEADERS or lower in HOP_BY_HOP_RESPONSE_HEADERS:
                continue
            for value in raw_headers.getlist(key):
                if lower == "location":
                    value = rewrite_location(value)
                headers.append((key, value))
        return headers


def rewrite_location(location: str) -> str:
    """Send redirects to GitHub resources back through the proxy."""
    if classify(location) is not None:
        return "/" + location
    return location


def _merge_headers(headers: list[tuple[str, str]]) -> dict[str, str]:
    """Fold repeated request headers into one comma-joined value."""
    merged: dict[str, str] = {}
    lower_names: dict[str, str] = {}
    for key, value in headers:
        existing = lower_names.get(key.lower())
        if existing is None:
            lower_names[key.lower()] = key
            merged[key] = value
        else:
            merged[existing] = f"{merged[existing]}, {value}"
    return merged
