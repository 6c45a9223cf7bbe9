"""Working directory resolution for git operations"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Sequence, Union

from ..error_handling import InvalidPathError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass(frozen=True)
class ResolvedTarget:
    """Absolute directory a request operates on.

    ``is_git_repo`` stays ``None`` until a git command has run against the
    path; only git itself can answer that question authoritatively.
    """

    path: str
    exists: bool
    is_git_repo: Optional[bool] = None


class PathResolver:
    """Turns an optional requested path plus session state into one absolute path."""

    def __init__(
        self,
        allowed_roots: Optional[Iterable[PathLike]] = None,
        default_directory: Optional[PathLike] = None,
    ):
        self.allowed_roots: Sequence[Path] = tuple(
            Path(os.path.normpath(Path(root).expanduser().absolute()))
            for root in (allowed_roots or ())
        )
        self.default_directory = (
            Path(default_directory).expanduser() if default_directory else None
        )

    def resolve(
        self,
        requested_path: Optional[str] = None,
        session_working_directory: Optional[str] = None,
    ) -> ResolvedTarget:
        """Resolve the directory for a request.

        Precedence: explicit requested path, then the session's working
        directory, then the default directory (process cwd when unset).
        A relative requested path is anchored at the next directory in that
        order.

        Raises:
            InvalidPathError: For NUL bytes or paths outside the allowed roots
        """
        for candidate in (requested_path, session_working_directory):
            if candidate is not None and "\x00" in candidate:
                raise InvalidPathError(candidate, "path contains NUL bytes")

        base = self._base_directory(session_working_directory)
        if requested_path:
            raw = Path(requested_path).expanduser()
            path = raw if raw.is_absolute() else base / raw
        else:
            path = base

        # normpath keeps symlinks intact but collapses '..' so the
        # allow-list check sees the real destination
        normalized = Path(os.path.normpath(path.absolute()))
        self._check_allowed(normalized)

        return ResolvedTarget(path=str(normalized), exists=normalized.is_dir())

    def _base_directory(self, session_working_directory: Optional[str]) -> Path:
        if session_working_directory:
            return Path(session_working_directory).expanduser()
        if self.default_directory is not None:
            return self.default_directory
        return Path.cwd()

    def _check_allowed(self, path: Path) -> None:
        if not self.allowed_roots:
            return
        for root in self.allowed_roots:
            if path == root or root in path.parents:
                return
        logger.warning(f"Rejected path outside allowed roots: {path}")
        raise InvalidPathError(str(path), "path is outside the allowed roots")
