"""Tests for failure classification and the error types."""

import pytest

from mcp_git_ops.error_handling import (
    CLASSIFICATION_RULES,
    ENVIRONMENTAL_KINDS,
    ErrorKind,
    InvalidArgumentError,
    InvalidPathError,
    OperationAborted,
    classify_error_text,
    classify_failure,
)


class TestClassifyErrorText:
    """Rule table matching on a single text block."""

    @pytest.mark.parametrize(
        "text, expected",
        [
            (
                "fatal: not a git repository (or any of the parent directories): .git",
                ErrorKind.NOT_A_GIT_REPOSITORY,
            ),
            ("no changes added to commit", ErrorKind.NO_CHANGES_TO_COMMIT),
            (
                "fatal: ambiguous argument 'nope': unknown revision or path",
                ErrorKind.INVALID_REFERENCE,
            ),
            ("fatal: bad revision 'deadbeef'", ErrorKind.INVALID_REFERENCE),
            ("CONFLICT (content): Merge conflict in a.txt", ErrorKind.MERGE_CONFLICT),
            ("error: open(\"a.txt\"): Permission denied", ErrorKind.PERMISSION_DENIED),
            ("fatal: something unexpected", ErrorKind.UNKNOWN),
        ],
    )
    def test_rules(self, text, expected):
        assert classify_error_text(text) is expected

    def test_matching_is_case_insensitive(self):
        assert classify_error_text("FATAL: NOT A GIT REPOSITORY") is ErrorKind.NOT_A_GIT_REPOSITORY

    def test_first_rule_wins(self):
        text = "not a git repository; merge conflict; permission denied"
        assert classify_error_text(text) is ErrorKind.NOT_A_GIT_REPOSITORY

    def test_no_changes_beats_conflict(self):
        assert classify_error_text("no changes, no conflict") is ErrorKind.NO_CHANGES_TO_COMMIT

    def test_empty_input(self):
        assert classify_error_text(None) is ErrorKind.UNKNOWN
        assert classify_error_text("") is ErrorKind.UNKNOWN

    def test_rule_table_order(self):
        kinds = [kind for _, kind in CLASSIFICATION_RULES]
        assert kinds == [
            ErrorKind.NOT_A_GIT_REPOSITORY,
            ErrorKind.NO_CHANGES_TO_COMMIT,
            ErrorKind.INVALID_REFERENCE,
            ErrorKind.MERGE_CONFLICT,
            ErrorKind.PERMISSION_DENIED,
        ]


class TestClassifyFailure:
    """Source priority: stderr, then stdout, then the exception message."""

    def test_stderr_decides_first(self):
        kind = classify_failure(
            stderr="fatal: bad revision 'x'", stdout="CONFLICT (content): Merge conflict in a"
        )
        assert kind is ErrorKind.INVALID_REFERENCE

    def test_falls_back_to_stdout(self):
        kind = classify_failure(
            stderr="error: something", stdout="CONFLICT (content): Merge conflict in a"
        )
        assert kind is ErrorKind.MERGE_CONFLICT

    def test_falls_back_to_message(self):
        kind = classify_failure(stderr="", stdout="", message="[Errno 13] Permission denied")
        assert kind is ErrorKind.PERMISSION_DENIED

    def test_nothing_matches(self):
        assert classify_failure() is ErrorKind.UNKNOWN
        assert classify_failure(stderr="boom", stdout="bang", message="oops") is ErrorKind.UNKNOWN


class TestErrorTypes:
    def test_environmental_kinds(self):
        assert ENVIRONMENTAL_KINDS == {
            ErrorKind.NOT_A_GIT_REPOSITORY,
            ErrorKind.PERMISSION_DENIED,
        }

    def test_error_kind_values_are_wire_names(self):
        assert ErrorKind.INVALID_REFERENCE.value == "InvalidReference"
        assert ErrorKind("NoChangesToCommit") is ErrorKind.NO_CHANGES_TO_COMMIT

    def test_invalid_path_error_message(self):
        error = InvalidPathError("/etc", "path is outside the allowed roots")
        assert error.path == "/etc"
        assert "outside the allowed roots" in str(error)

    def test_invalid_argument_error_is_value_error(self):
        assert issubclass(InvalidArgumentError, ValueError)

    def test_operation_aborted_defaults(self):
        aborted = OperationAborted(ErrorKind.UNKNOWN, "failed")
        assert aborted.detail is None
        assert aborted.metadata == {}
        assert str(aborted) == "failed"
