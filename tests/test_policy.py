"""Tests for list patterns and access decisions."""

import itertools

import pytest

from fastcode.core.classify import GitHubResource, classify
from fastcode.core.config import ConfigSnapshot
from fastcode.core.policy import (
    AnyPattern,
    Decision,
    PairPattern,
    PrefixPattern,
    compile_pattern,
    compile_patterns,
    decide,
    match_list,
    match_other_list,
    GITHUB_BLACKLISTED,
    GITHUB_NOT_WHITELISTED,
    OTHER_BLACKLISTED,
    OTHER_NOT_WHITELISTED,
    PROXY_ALL_DISABLED,
)

HELLO = GitHubResource("octocat", "Hello-World")
OTHER_URL = "https://evil.com/payload"


class TestCompilePattern:
    def test_star(self):
        assert compile_pattern("*") == AnyPattern()

    def test_pair(self):
        assert compile_pattern("foo/bar") == PairPattern("foo", "bar")
        assert compile_pattern("foo/*") == PairPattern("foo", "*")
        assert compile_pattern("*/bar") == PairPattern("*", "bar")

    def test_bare_token(self):
        assert compile_pattern("foo") == PrefixPattern("foo")

    def test_too_many_slashes(self):
        assert compile_pattern("a/b/c") == PrefixPattern("a/b/c")

    def test_keeps_order(self):
        assert compile_patterns(["a", "*", "b/c"]) == (
            PrefixPattern("a"), AnyPattern(), PairPattern("b", "c"),
        )


class TestPatternSemantics:
    @pytest.mark.parametrize("owner, repo", [("a", "b"), ("octocat", "x"), ("", "")])
    def test_star_matches_any_pair(self, owner, repo):
        assert match_list(GitHubResource(owner, repo), compile_patterns(["*"]))

    def test_owner_wildcard(self):
        patterns = compile_patterns(["foo/*"])
        assert match_list(GitHubResource("foo", "anything"), patterns)
        assert not match_list(GitHubResource("foobar", "anything"), patterns)

    def test_repo_wildcard(self):
        patterns = compile_patterns(["*/bar"])
        assert match_list(GitHubResource("x", "bar"), patterns)
        assert not match_list(GitHubResource("x", "bark"), patterns)

    def test_exact_pair(self):
        patterns = compile_patterns(["foo/bar"])
        assert match_list(GitHubResource("foo", "bar"), patterns)
        assert not match_list(GitHubResource("foo", "baz"), patterns)
        assert not match_list(GitHubResource("bar", "foo"), patterns)

    def test_bare_token_prefix_of_owner_or_repo(self):
        patterns = compile_patterns(["foo"])
        assert match_list(GitHubResource("foo", "x"), patterns)
        assert match_list(GitHubResource("foobar", "x"), patterns)
        assert match_list(GitHubResource("x", "foo-tools"), patterns)
        assert not match_list(GitHubResource("xfoo", "barfoo"), patterns)

    def test_prefix_looseness_kept(self):
        # "Hello" also covers the owner "HelloWorld"
        assert match_list(GitHubResource("HelloWorld", "r"), compile_patterns(["Hello"]))

    def test_other_list_is_substring(self):
        assert match_other_list("https://good.com/file", ["good.com"])
        assert match_other_list("https://notreallya.com.evil.org/x", ["a.com"])
        assert not match_other_list("https://evil.com/x", ["good.com"])


class TestDecideGitHub:
    def test_empty_lists_allow(self):
        assert decide(HELLO, "", ConfigSnapshot()) == Decision.allow()

    def test_blacklisted(self):
        snapshot = ConfigSnapshot(black_list=("octocat/*",))
        assert decide(HELLO, "", snapshot) == Decision.deny(GITHUB_BLACKLISTED)

    def test_not_whitelisted(self):
        snapshot = ConfigSnapshot(white_list=("torvalds/*",))
        assert decide(HELLO, "", snapshot) == Decision.deny(GITHUB_NOT_WHITELISTED)

    def test_whitelisted(self):
        snapshot = ConfigSnapshot(white_list=("octocat/Hello-World",))
        assert decide(HELLO, "", snapshot).allowed

    def test_blacklist_checked_before_whitelist(self):
        snapshot = ConfigSnapshot(white_list=("*",), black_list=("octocat",))
        assert decide(HELLO, "", snapshot) == Decision.deny(GITHUB_BLACKLISTED)

    def test_other_lists_ignored_for_github(self):
        snapshot = ConfigSnapshot(allow_proxy_all=False, other_black_list=("github.com",))
        assert decide(HELLO, "https://github.com/octocat/Hello-World/archive/a.zip", snapshot).allowed


class TestDecideOther:
    def test_proxy_all_disabled(self):
        snapshot = ConfigSnapshot(allow_proxy_all=False, other_white_list=("evil.com",))
        assert decide(None, OTHER_URL, snapshot) == Decision.deny(PROXY_ALL_DISABLED)

    def test_gist_content_host_needs_proxy_all(self):
        url = "https://gist.githubusercontent.com/someone/abc123/raw/file.txt"
        snapshot = ConfigSnapshot(allow_proxy_all=False)
        assert decide(classify(url), url, snapshot) == Decision.deny(PROXY_ALL_DISABLED)

    def test_not_in_other_whitelist(self):
        snapshot = ConfigSnapshot(allow_proxy_all=True, other_white_list=("good.com",))
        assert decide(None, OTHER_URL, snapshot) == Decision.deny(OTHER_NOT_WHITELISTED)

    def test_in_other_blacklist(self):
        snapshot = ConfigSnapshot(allow_proxy_all=True, other_black_list=("evil",))
        assert decide(None, OTHER_URL, snapshot) == Decision.deny(OTHER_BLACKLISTED)

    def test_other_blacklist_before_whitelist(self):
        snapshot = ConfigSnapshot(
            allow_proxy_all=True, other_white_list=("evil.com",), other_black_list=("payload",),
        )
        assert decide(None, OTHER_URL, snapshot) == Decision.deny(OTHER_BLACKLISTED)

    def test_allowed(self):
        snapshot = ConfigSnapshot(allow_proxy_all=True, other_white_list=("evil.com",))
        assert decide(None, OTHER_URL, snapshot).allowed

    def test_github_lists_ignored_for_other(self):
        snapshot = ConfigSnapshot(allow_proxy_all=True, black_list=("*",))
        assert decide(None, OTHER_URL, snapshot).allowed


def test_decide_is_total():
    """Every combination yields exactly one Allow or Deny, the same each time."""
    lists = [(), ("*",), ("octocat/*",), ("nobody",)]
    targets = [(HELLO, ""), (GitHubResource("", ""), ""), (None, OTHER_URL)]
    for white, black, other_white, other_black, proxy_all in itertools.product(
        lists, lists, [(), ("good.com",)], [(), ("evil",)], [True, False],
    ):
        snapshot = ConfigSnapshot(
            white_list=white, black_list=black, allow_proxy_all=proxy_all,
            other_white_list=other_white, other_black_list=other_black,
        )
        for resource, url in targets:
            first = decide(resource, url, snapshot)
            assert isinstance(first, Decision)
            assert first.allowed == (first.reason == "")
            assert decide(resource, url, snapshot) == first
