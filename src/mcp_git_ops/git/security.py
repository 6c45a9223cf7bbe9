"""Validation of user supplied values before they reach a git argv"""

import logging
import re
from typing import Iterable, Tuple

from ..error_handling import InvalidArgumentError

logger = logging.getLogger(__name__)

# git check-ref-format forbids these anywhere in a ref; revision suffixes
# such as ^, ~N and @{N} remain allowed.
_FORBIDDEN_REF_CHARS = re.compile(r"[\x00-\x20\x7f\\*?\[]")


def ensure_safe_argument(value: str, field: str = "argument") -> str:
    """Reject values that cannot be passed to a process as one argv element."""
    if "\x00" in value:
        raise InvalidArgumentError(f"{field} must not contain NUL bytes")
    return value


def validate_reference(ref: str) -> str:
    """Validate a commit reference supplied by a caller.

    A reference starting with '-' would be parsed by git as an option, so
    it is rejected outright rather than escaped.

    Args:
        ref: Commit hash, branch, tag or revision expression

    Returns:
        The stripped reference

    Raises:
        InvalidArgumentError: If the reference is empty or unsafe
    """
    ref = ref.strip()
    if not ref:
        raise InvalidArgumentError("reference must not be empty")
    if ref.startswith("-"):
        raise InvalidArgumentError(f"reference must not start with '-': {ref!r}")
    if _FORBIDDEN_REF_CHARS.search(ref) or ".." in ref:
        raise InvalidArgumentError(f"reference contains forbidden characters: {ref!r}")
    return ref


def validate_commit_message(message: str) -> str:
    """A commit message travels on stdin, so only NUL bytes and blank text are refused."""
    ensure_safe_argument(message, "message")
    if not message.strip():
        raise InvalidArgumentError("message must not be blank")
    return message


def sanitize_argv(argv: Iterable[str]) -> Tuple[str, ...]:
    """Freeze an argv into a tuple of validated discrete arguments."""
    frozen = tuple(argv)
    for position, value in enumerate(frozen):
        if not isinstance(value, str):
            raise InvalidArgumentError(
                f"argv[{position}] must be a string, got {type(value).__name__}"
            )
        ensure_safe_argument(value, f"argv[{position}]")
    return frozen
