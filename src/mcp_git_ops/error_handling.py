"""Error taxonomy and classification for MCP Git Ops."""

import logging
from enum import Enum
from typing import Any, Dict, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    """Closed set of semantic failure kinds reported to callers."""

    NOT_A_GIT_REPOSITORY = "NotAGitRepository"
    INVALID_REFERENCE = "InvalidReference"
    NO_CHANGES_TO_COMMIT = "NoChangesToCommit"
    MERGE_CONFLICT = "MergeConflict"
    PERMISSION_DENIED = "PermissionDenied"
    UNKNOWN = "Unknown"


class ErrorSeverity(Enum):
    """How the failure of a single git step affects its operation."""

    HIGH = "high"  # Operation must abort
    LOW = "low"  # Cosmetic, log and substitute an empty value


# Checked top to bottom. Order matters: some phrases appear inside others.
CLASSIFICATION_RULES: Tuple[Tuple[Tuple[str, ...], ErrorKind], ...] = (
    (("not a git repository",), ErrorKind.NOT_A_GIT_REPOSITORY),
    (("no changes",), ErrorKind.NO_CHANGES_TO_COMMIT),
    (
        ("unknown revision", "bad revision", "ambiguous argument"),
        ErrorKind.INVALID_REFERENCE,
    ),
    (("conflict",), ErrorKind.MERGE_CONFLICT),
    (("permission denied",), ErrorKind.PERMISSION_DENIED),
)

# Kinds that describe the environment rather than the requested operation.
ENVIRONMENTAL_KINDS = frozenset(
    {ErrorKind.NOT_A_GIT_REPOSITORY, ErrorKind.PERMISSION_DENIED}
)


def _match_rules(text: str) -> Optional[ErrorKind]:
    lowered = text.lower()
    for needles, kind in CLASSIFICATION_RULES:
        if any(needle in lowered for needle in needles):
            return kind
    return None


def classify_error_text(text: Optional[str]) -> ErrorKind:
    """Classify a single block of failure text. Never raises."""
    if not text:
        return ErrorKind.UNKNOWN
    return _match_rules(str(text)) or ErrorKind.UNKNOWN


def classify_failure(
    stderr: Optional[str] = None,
    stdout: Optional[str] = None,
    message: Optional[str] = None,
) -> ErrorKind:
    """
    Classify a failed git invocation.

    Sources are consulted in priority order: stderr, then stdout, then the
    message of a raised error. The first source that matches a rule decides
    the kind; when none matches the result is ``ErrorKind.UNKNOWN``.

    Args:
        stderr: Standard error of the failed command
        stdout: Standard output of the failed command
        message: Message of an exception raised around the command

    Returns:
        The classified ErrorKind
    """
    sources: Sequence[Optional[str]] = (stderr, stdout, message)
    for source in sources:
        kind = classify_error_text(source)
        if kind is not ErrorKind.UNKNOWN:
            return kind
    return ErrorKind.UNKNOWN


class GitOpsError(Exception):
    """Base class for errors raised by the orchestration core."""


class InvalidPathError(GitOpsError):
    """A requested path is malformed or outside the allowed roots."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid path {path!r}: {reason}")


class InvalidArgumentError(GitOpsError, ValueError):
    """A user supplied value cannot be passed safely to git."""


class CommandSpawnError(GitOpsError):
    """The git process could not be started at all."""

    def __init__(self, argv: Sequence[str], message: str):
        self.argv = tuple(argv)
        super().__init__(message)


class OperationAborted(GitOpsError):
    """
    A fatal step failed and the operation cannot continue.

    Raised inside dispatchers and converted to a failed OperationResult by
    the dispatcher framework; never surfaces to the caller.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        detail: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        self.kind = kind
        self.message = message
        self.detail = detail
        self.metadata = metadata or {}
        super().__init__(message)
