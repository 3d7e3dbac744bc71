"""
Request and response values passed between the HTTP handler, the pipeline
and the forwarding engine.
"""

import enum
import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Iterator

import requests
import urllib3

from .errors import StreamCopyError

logger = logging.getLogger(__name__)


class State(enum.Enum):
    """Pipeline stages a request passes through."""

    RECEIVED = "received"
    NORMALIZED = "normalized"
    CLASSIFIED = "classified"
    ACCESS_CHECKED = "access_checked"
    REWRITTEN = "rewritten"
    FORWARDED = "forwarded"
    COMPLETED = "completed"
    REJECTED = "rejected"
    FAILED = "failed"


@dataclass
class InboundRequest:
    """
    A client request as seen by the pipeline.

    `path` is the raw request target (path and query). `body` is a lazy
    iterator over the request body; `content_length` is None when the
    client sent a chunked body or none at all.
    """

    method: str
    path: str
    headers: list[tuple[str, str]] = field(default_factory=list)
    body: Iterable[bytes] | None = None
    content_length: int | None = None


@dataclass
class ProxyResponse:
    """A response ready to be written back to the client."""

    status: int
    headers: list[tuple[str, str]] = field(default_factory=list)
    body: Iterable[bytes] = ()
    state: State = State.FORWARDED
    close: Callable[[], None] | None = None

    @classmethod
    def text(cls, status: int, message: str, state: State) -> "ProxyResponse":
        data = message.encode("utf-8")
        headers = [
            ("Content-Type", "text/plain; charset=utf-8"),
            ("Content-Length", str(len(data))),
        ]
        return cls(status, headers, [data], state)

    def header(self, name: str) -> str | None:
        """First value of a header, case-insensitive."""
        name = name.lower()
        for key, value in self.headers:
            if key.lower() == name:
                return value
        return None

    def iter_body(self) -> Iterator[bytes]:
        """Yield body chunks, closing the upstream side when done or abandoned."""
        try:
            yield from self.body
        finally:
            if self.close is not None:
                self.close()

    def write_body(self, out) -> int:
        """
        Copy the body to a writable stream.

        Status and headers are already on the wire at this point, so a failure
        on either side is logged and the request marked failed instead of
        raising. Returns the number of bytes written.
        """
        written = 0
        chunks = self.iter_body()
        try:
            for chunk in chunks:
                out.write(chunk)
                written += len(chunk)
            out.flush()
            if self.state == State.FORWARDED:
                self.state = State.COMPLETED
        except (OSError, urllib3.exceptions.HTTPError, requests.RequestException) as e:
            error = StreamCopyError(f"Response copy failed after {written} bytes: {e}")
            logger.warning("%s", error)
            self.state = State.FAILED
        finally:
            chunks.close()
        return written
