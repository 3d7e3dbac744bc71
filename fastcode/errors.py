"""
Error types raised along the request pipeline.
"""


class ProxyError(Exception):
    """Base class for failures that map to an HTTP response."""

    status = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class PolicyDenied(ProxyError):
    """Request rejected by the access lists or the proxy-all switch."""

    status = 403


class UpstreamConnectError(ProxyError):
    """Request could not be built or sent (DNS, dial, TLS)."""

    status = 500


class UpstreamSizeExceeded(ProxyError):
    """Upstream declared a Content-Length above the configured limit."""

    status = 413


class StreamCopyError(ProxyError):
    """Body copy failed after status and headers were committed."""


class ConfigError(ValueError):
    """Config file content has the wrong shape."""
