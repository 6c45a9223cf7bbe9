"""Tests for argument sanitization."""

import pytest

from mcp_git_ops.error_handling import InvalidArgumentError
from mcp_git_ops.git.security import (
    ensure_safe_argument,
    sanitize_argv,
    validate_commit_message,
    validate_reference,
)


class TestValidateReference:
    @pytest.mark.parametrize(
        "ref", ["HEAD", "HEAD~2", "HEAD^", "main", "feature/x", "v1.0", "a1b2c3d", "stash@{1}"]
    )
    def test_accepts_revisions(self, ref):
        assert validate_reference(ref) == ref

    def test_strips_whitespace(self):
        assert validate_reference("  HEAD~1 \n") == "HEAD~1"

    @pytest.mark.parametrize(
        "ref", ["-rf", "--output=/tmp/x", "", "   ", "a b", "main..dev", "x*", "a\\b", "a\x00b"]
    )
    def test_rejects_unsafe_refs(self, ref):
        with pytest.raises(InvalidArgumentError):
            validate_reference(ref)


class TestArguments:
    def test_nul_bytes_rejected(self):
        with pytest.raises(InvalidArgumentError, match="NUL"):
            ensure_safe_argument("a\x00b", "path")

    def test_commit_message_allows_multiline(self):
        message = "Subject\n\nBody with -dashes and 'quotes'"
        assert validate_commit_message(message) == message

    def test_commit_message_rejects_blank(self):
        with pytest.raises(InvalidArgumentError):
            validate_commit_message(" \n\t")

    def test_sanitize_argv_returns_tuple(self):
        assert sanitize_argv(["stash", "list"]) == ("stash", "list")

    def test_sanitize_argv_rejects_non_strings(self):
        with pytest.raises(InvalidArgumentError, match="argv\\[1\\]"):
            sanitize_argv(["log", 5])

    def test_sanitize_argv_rejects_nul(self):
        with pytest.raises(InvalidArgumentError):
            sanitize_argv(["log", "x\x00y"])
