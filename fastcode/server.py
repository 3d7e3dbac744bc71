"""
HTTP server for fastcode proxy.
"""

import argparse
import logging
from http.server import ThreadingHTTPServer
from pathlib import Path

from .core.config import (
    ConfigProvider,
    DEFAULT_CONFIG_PATH,
    DEFAULT_REFRESH_INTERVAL,
)
from .forward import ForwardingEngine
from .handler import ProxyHandler
from .pipeline import RequestPipeline

logger = logging.getLogger(__name__)

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"


def build_server(
    provider: ConfigProvider,
    host: str | None = None,
    port: int | None = None,
    engine: ForwardingEngine | None = None,
) -> ThreadingHTTPServer:
    """Bind a threaded server whose handler runs the proxy pipeline."""
    snapshot = provider.current()
    address = (host or snapshot.host, snapshot.port if port is None else port)

    handler = type("BoundProxyHandler", (ProxyHandler,), {
        "pipeline": RequestPipeline(provider, engine),
    })
    server = ThreadingHTTPServer(address, handler)
    server.daemon_threads = True
    return server


def main():
    """Run the fastcode proxy server."""
    parser = argparse.ArgumentParser(description="FastCode GitHub acceleration proxy")
    parser.add_argument(
        "--config", type=Path, default=DEFAULT_CONFIG_PATH,
        help=f"Config file path (default: {DEFAULT_CONFIG_PATH})"
    )
    parser.add_argument(
        "--host", default=None,
        help="Address to listen on (default: host from config)"
    )
    parser.add_argument(
        "--port", type=int, default=None,
        help="Port to listen on (default: port from config)"
    )
    parser.add_argument(
        "--refresh-interval", type=float, default=DEFAULT_REFRESH_INTERVAL,
        help=f"Seconds between config reloads (default: {DEFAULT_REFRESH_INTERVAL})"
    )
    parser.add_argument(
        "--log-level", default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: INFO)"
    )
    args = parser.parse_args()

    logging.basicConfig(level=args.log_level, format=LOG_FORMAT)

    provider = ConfigProvider(args.config, refresh_interval=args.refresh_interval)
    server = build_server(provider, host=args.host, port=args.port)
    provider.start()

    host, port = server.server_address[:2]
    snapshot = provider.current()
    logger.info("FastCode proxy listening on http://%s:%s", host, port)
    logger.info("Config: %s (reload every %ss)", args.config, args.refresh_interval)
    logger.info(
        "Size limit: %d bytes, GitHub lists: %d white / %d black, proxy all: %s",
        snapshot.size_limit, len(snapshot.white_list), len(snapshot.black_list),
        snapshot.allow_proxy_all,
    )

    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    finally:
        provider.stop()
        server.server_close()


if __name__ == "__main__":
    main()
