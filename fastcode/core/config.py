"""
Configuration snapshots and live reloading.

The config file is JSON5. Each load produces an immutable ConfigSnapshot;
ConfigProvider hands the current one to requests and swaps in a fresh one
on a fixed interval.
"""

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path

import json5

from ..errors import ConfigError
from .policy import ListPattern, compile_patterns

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config") / "fastcode.json5"
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8080
DEFAULT_SIZE_LIMIT = 1024 * 1024 * 1024 * 10  # 10 GiB
DEFAULT_REFRESH_INTERVAL = 10 * 60  # seconds

# config file key → snapshot field
LIST_FIELDS = {
    "whiteList": "white_list",
    "blackList": "black_list",
    "otherWhiteList": "other_white_list",
    "otherBlackList": "other_black_list",
}


# =============================================================================
# Snapshot
# =============================================================================

@dataclass(frozen=True)
class ConfigSnapshot:
    """Point-in-time configuration. Never mutated once built."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    size_limit: int = DEFAULT_SIZE_LIMIT
    white_list: tuple[str, ...] = ()
    black_list: tuple[str, ...] = ()
    allow_proxy_all: bool = False
    other_white_list: tuple[str, ...] = ()
    other_black_list: tuple[str, ...] = ()
    white_patterns: tuple[ListPattern, ...] = field(init=False, repr=False, compare=False)
    black_patterns: tuple[ListPattern, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        for name in LIST_FIELDS.values():
            object.__setattr__(self, name, tuple(getattr(self, name)))
        object.__setattr__(self, "white_patterns", compile_patterns(self.white_list))
        object.__setattr__(self, "black_patterns", compile_patterns(self.black_list))


def snapshot_from_dict(data: dict) -> ConfigSnapshot:
    """
    Build a snapshot from parsed config file content.

    Missing or null fields take their defaults, as do a zero port and a
    non-positive sizeLimit. Unknown keys (version, uuid, ...) are ignored.

    Raises:
        ConfigError: If a present field has the wrong type
    """
    if not isinstance(data, dict):
        raise ConfigError("config root must be an object")

    kwargs = {}

    host = data.get("host")
    if host is not None:
        if not isinstance(host, str):
            raise ConfigError("host must be a string")
        if host:
            kwargs["host"] = host

    port = data.get("port")
    if port is not None:
        if isinstance(port, bool) or not isinstance(port, int):
            raise ConfigError("port must be an integer")
        if port != 0:
            kwargs["port"] = port

    size_limit = data.get("sizeLimit")
    if size_limit is not None:
        if isinstance(size_limit, bool) or not isinstance(size_limit, int):
            raise ConfigError("sizeLimit must be an integer")
        if size_limit > 0:
            kwargs["size_limit"] = size_limit

    allow_proxy_all = data.get("allowProxyAll")
    if allow_proxy_all is not None:
        if not isinstance(allow_proxy_all, bool):
            raise ConfigError("allowProxyAll must be a boolean")
        kwargs["allow_proxy_all"] = allow_proxy_all

    for key, name in LIST_FIELDS.items():
        entries = data.get(key)
        if entries is None:
            continue
        if not isinstance(entries, list) or not all(isinstance(e, str) for e in entries):
            raise ConfigError(f"{key} must be a list of strings")
        kwargs[name] = tuple(entries)

    return ConfigSnapshot(**kwargs)


def load_config(config_path: Path) -> ConfigSnapshot:
    """
    Load a snapshot from a JSON5 file.

    Raises:
        OSError: If the file cannot be read
        ConfigError: If the content is not valid JSON5 or has the wrong shape
    """
    with open(config_path, encoding="utf-8") as f:
        try:
            data = json5.load(f)
        except ValueError as e:
            raise ConfigError(f"Invalid JSON5 in config file: {e}") from e
    return snapshot_from_dict(data)


# =============================================================================
# Provider
# =============================================================================

class ConfigProvider:
    """
    Shares the current ConfigSnapshot with every request thread.

    Readers call current(); the refresher thread is the only writer. The lock
    is held just long enough to read or replace the reference, so a reload
    never stalls a request.
    """

    def __init__(
        self,
        config_path: Path | None = None,
        refresh_interval: float = DEFAULT_REFRESH_INTERVAL,
        initial: ConfigSnapshot | None = None,
    ):
        self.config_path = config_path
        self.refresh_interval = refresh_interval
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._snapshot = initial if initial is not None else self._initial_load()

    def _initial_load(self) -> ConfigSnapshot:
        if self.config_path is None:
            return ConfigSnapshot()
        try:
            snapshot = load_config(self.config_path)
        except FileNotFoundError:
            logger.warning("Config file not found: %s, using defaults", self.config_path)
            return ConfigSnapshot()
        except (OSError, ConfigError) as e:
            logger.warning("Failed to load config %s: %s, using defaults", self.config_path, e)
            return ConfigSnapshot()
        logger.info("Config loaded from %s", self.config_path)
        return snapshot

    def current(self) -> ConfigSnapshot:
        """Return the snapshot in effect right now."""
        with self._lock:
            return self._snapshot

    def replace(self, snapshot: ConfigSnapshot) -> None:
        """Swap in a new snapshot."""
        with self._lock:
            self._snapshot = snapshot

    def refresh(self) -> bool:
        """
        Reload the config file.

        On failure the previous snapshot stays in effect. Returns True if a
        new snapshot was installed.
        """
        if self.config_path is None:
            return False
        try:
            snapshot = load_config(self.config_path)
        except (OSError, ConfigError) as e:
            logger.error("Config reload failed, keeping previous config: %s", e)
            return False
        self.replace(snapshot)
        logger.info("Config reloaded from %s", self.config_path)
        return True

    def _run(self) -> None:
        while not self._stop.wait(self.refresh_interval):
            self.refresh()

    def start(self) -> None:
        """Start the background refresher."""
        if self._thread is not None:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="config-refresher", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Stop the background refresher and wait for it to exit."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None
