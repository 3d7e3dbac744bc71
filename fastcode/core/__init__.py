"""Core functionality for fastcode proxy."""

from .classify import (
    classify,
    is_blob_url,
    GitHubResource,
    GITHUB_PATTERNS,
)
from .config import (
    load_config,
    snapshot_from_dict,
    ConfigProvider,
    ConfigSnapshot,
    DEFAULT_CONFIG_PATH,
    DEFAULT_REFRESH_INTERVAL,
)
from .policy import (
    compile_pattern,
    compile_patterns,
    decide,
    match_list,
    match_other_list,
    AnyPattern,
    Decision,
    PairPattern,
    PrefixPattern,
)
from .rewrite import normalize_target, rewrite

__all__ = [
    "classify",
    "is_blob_url",
    "load_config",
    "snapshot_from_dict",
    "compile_pattern",
    "compile_patterns",
    "decide",
    "match_list",
    "match_other_list",
    "normalize_target",
    "rewrite",
    "AnyPattern",
    "ConfigProvider",
    "ConfigSnapshot",
    "Decision",
    "GitHubResource",
    "PairPattern",
    "PrefixPattern",
    "DEFAULT_CONFIG_PATH",
    "DEFAULT_REFRESH_INTERVAL",
    "GITHUB_PATTERNS",
]
