"""
Target URL normalization and rewriting.
"""

from .classify import GitHubResource, is_blob_url

SCHEMES = ("http://", "https://")


def normalize_target(raw_path: str) -> str:
    """
    Turn an inbound request path into an absolute upstream URL.

    - "/github.com/a/b"          → "https://github.com/a/b"
    - "/https://github.com/a/b"  → "https://github.com/a/b"
    - "/https:/github.com/a/b"   → "https://github.com/a/b"  (collapsed slash)
    """
    path = raw_path.lstrip("/")

    for scheme in SCHEMES:
        collapsed = scheme[:-1]
        if path.startswith(collapsed) and not path.startswith(scheme):
            path = scheme + path[len(collapsed):]
            break

    if path.startswith(SCHEMES):
        return path
    return "https://" + path


def rewrite(url: str, resource: GitHubResource | None) -> str:
    """Point blob pages at their raw content. Other URLs are left alone."""
    if resource is not None and is_blob_url(url):
        return url.replace("/blob/", "/raw/", 1)
    return url
