"""Git command execution, path resolution and request models"""

from .models import *
from .paths import PathResolver, ResolvedTarget
from .runner import CommandOutcome, CommandRunner, CommandSpec

__all__ = [
    # Execution
    "CommandOutcome",
    "CommandRunner",
    "CommandSpec",
    "PathResolver",
    "ResolvedTarget",
    # Requests
    "GitReword",
    "GitStash",
    "GitStashSchema",
    "GitSetWorkingDir",
    "GitClearWorkingDir",
    # Results
    "ConflictDescriptor",
    "ConflictKind",
    "OperationResult",
    "StashEntry",
]
