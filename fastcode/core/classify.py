"""
URL classification.

Maps a normalized target URL to the GitHub owner/repo it belongs to.
"""

import re
from dataclasses import dataclass

# =============================================================================
# GitHub URL Patterns
# =============================================================================

# (kind, pattern), checked top to bottom. The first match wins: a release URL
# also satisfies looser shapes further down, so the order must not change.
GITHUB_PATTERNS = [
    ("release", re.compile(
        r"^(?:https?://)?github\.com/(?P<owner>[^/]+)/(?P<repo>[^/]+)/(?:releases|archive)/.*$")),
    ("blob", re.compile(
        r"^(?:https?://)?github\.com/(?P<owner>[^/]+)/(?P<repo>[^/]+)/(?:blob|raw)/.*$")),
    ("git", re.compile(
        r"^(?:https?://)?github\.com/(?P<owner>[^/]+)/(?P<repo>[^/]+)/(?:info|git-).*$")),
    ("raw", re.compile(
        r"^(?:https?://)?raw\.github(?:usercontent)?\.com/(?P<owner>[^/]+)/(?P<repo>[^/]+)/.+?/.+$")),
    ("gist", re.compile(
        r"^(?:https?://)?gist\.github\.com/(?P<owner>[^/]+)/.+?/.+$")),
    ("api", re.compile(
        r"^(?:https?://)?api\.github\.com/"
        r"(?:repos/(?P<owner>[^/?#]+)(?:/(?P<repo>[^/?#]+))?)?.*$")),
    ("api_prefix", re.compile(
        r"^(?:https?://)?github\.com/api/"
        r"(?:(?:v3/)?repos/(?P<owner>[^/?#]+)(?:/(?P<repo>[^/?#]+))?)?.*$")),
]

BLOB_PATTERN = GITHUB_PATTERNS[1][1]


@dataclass(frozen=True)
class GitHubResource:
    """A URL identified as belonging to a GitHub repository."""

    owner: str
    repo: str
    kind: str = ""


# =============================================================================
# Classification
# =============================================================================

def classify(url: str) -> GitHubResource | None:
    """
    Classify a target URL.

    Returns the owner/repo captured by the first matching pattern, or None
    when the URL is not a recognised GitHub resource. Shapes without a repo
    (gists, API calls outside /repos/) capture empty strings.
    """
    for kind, pattern in GITHUB_PATTERNS:
        match = pattern.match(url)
        if match:
            groups = match.groupdict()
            return GitHubResource(
                owner=groups.get("owner") or "",
                repo=groups.get("repo") or "",
                kind=kind,
            )
    return None


def is_blob_url(url: str) -> bool:
    """Check if URL points at a blob/raw page on github.com."""
    return BLOB_PATTERN.match(url) is not None
