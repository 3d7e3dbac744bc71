"""
Access control for proxied URLs.

GitHub resources are checked against owner/repo lists; any other host is
checked against substring lists, and only when proxying arbitrary hosts is
enabled at all.
"""

from dataclasses import dataclass

from .classify import GitHubResource

# =============================================================================
# List Patterns
# =============================================================================


@dataclass(frozen=True)
class AnyPattern:
    """Matches every owner/repo pair."""

    def matches(self, owner: str, repo: str) -> bool:
        return True


@dataclass(frozen=True)
class PairPattern:
    """"owner/repo" with either side a literal or "*"."""

    owner: str
    repo: str

    def matches(self, owner: str, repo: str) -> bool:
        owner_match = self.owner == "*" or self.owner == owner
        repo_match = self.repo == "*" or self.repo == repo
        return owner_match and repo_match


@dataclass(frozen=True)
class PrefixPattern:
    """Bare token, matching when it starts the owner or the repo name."""

    token: str

    def matches(self, owner: str, repo: str) -> bool:
        return owner.startswith(self.token) or repo.startswith(self.token)


ListPattern = AnyPattern | PairPattern | PrefixPattern


def compile_pattern(entry: str) -> ListPattern:
    """
    Compile one list entry.

    - "*"       → AnyPattern
    - "foo/*"   → PairPattern("foo", "*")
    - "foo/bar" → PairPattern("foo", "bar")
    - "foo"     → PrefixPattern("foo")

    Entries with more than one "/" fall back to a prefix token, which can
    never match since owner and repo names contain no "/".
    """
    if entry == "*":
        return AnyPattern()

    parts = entry.split("/")
    if len(parts) == 2:
        return PairPattern(parts[0], parts[1])
    return PrefixPattern(entry)


def compile_patterns(entries) -> tuple[ListPattern, ...]:
    """Compile a whole list, keeping entry order."""
    return tuple(compile_pattern(entry) for entry in entries)


def match_list(resource: GitHubResource, patterns) -> bool:
    """Check if any compiled pattern matches the resource."""
    return any(p.matches(resource.owner, resource.repo) for p in patterns)


def match_other_list(url: str, entries) -> bool:
    """Check if the URL contains any entry as a substring."""
    return any(entry in url for entry in entries)


# =============================================================================
# Decision
# =============================================================================

GITHUB_BLACKLISTED = "This GitHub repository is blacklisted"
GITHUB_NOT_WHITELISTED = "This GitHub repository is not whitelisted"
PROXY_ALL_DISABLED = "Invalid URL: proxying non-GitHub addresses is disabled"
OTHER_BLACKLISTED = "This address is blacklisted"
OTHER_NOT_WHITELISTED = "This address is not whitelisted"


@dataclass(frozen=True)
class Decision:
    """Outcome of an access check. `reason` is empty when allowed."""

    allowed: bool
    reason: str = ""

    @classmethod
    def allow(cls) -> "Decision":
        return cls(True)

    @classmethod
    def deny(cls, reason: str) -> "Decision":
        return cls(False, reason)


def decide(resource: GitHubResource | None, url: str, snapshot) -> Decision:
    """
    Decide whether a target may be proxied.

    Logic for GitHub resources:
    1. Any blacklist match → deny (blacklist always wins)
    2. Non-empty whitelist without a match → deny
    3. Otherwise → allow

    Logic for everything else:
    1. allowProxyAll off → deny
    2. URL contains an otherBlackList entry → deny
    3. Non-empty otherWhiteList and URL contains none of it → deny
    4. Otherwise → allow
    """
    if resource is not None:
        if snapshot.black_patterns and match_list(resource, snapshot.black_patterns):
            return Decision.deny(GITHUB_BLACKLISTED)
        if snapshot.white_patterns and not match_list(resource, snapshot.white_patterns):
            return Decision.deny(GITHUB_NOT_WHITELISTED)
        return Decision.allow()

    if not snapshot.allow_proxy_all:
        return Decision.deny(PROXY_ALL_DISABLED)
    if snapshot.other_black_list and match_other_list(url, snapshot.other_black_list):
        return Decision.deny(OTHER_BLACKLISTED)
    if snapshot.other_white_list and not match_other_list(url, snapshot.other_white_list):
        return Decision.deny(OTHER_NOT_WHITELISTED)
    return Decision.allow()
