"""Shared machinery for git operation dispatchers"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Generic, List, Optional, Sequence, TypeVar

from pydantic import BaseModel

from ..error_handling import (
    ENVIRONMENTAL_KINDS,
    CommandSpawnError,
    ErrorKind,
    ErrorSeverity,
    OperationAborted,
    classify_failure,
)
from ..git.models import OperationResult
from ..git.paths import PathResolver, ResolvedTarget
from ..git.runner import CommandOutcome, CommandRunner, CommandSpec

logger = logging.getLogger(__name__)

RequestT = TypeVar("RequestT", bound=BaseModel)

WorkingDirectoryLookup = Callable[[Optional[str]], Optional[str]]


def _no_working_directory(session_id: Optional[str]) -> Optional[str]:
    return None


@dataclass(frozen=True)
class OperationContext:
    """Per-request context handed to dispatchers by the transport layer."""

    request_id: str
    session_id: Optional[str] = None
    get_working_directory: WorkingDirectoryLookup = _no_working_directory

    def working_directory(self) -> Optional[str]:
        return self.get_working_directory(self.session_id)

    def log_extra(self, operation: str) -> Dict[str, Any]:
        return {
            "request_id": self.request_id,
            "session_id": self.session_id,
            "operation": operation,
        }


@dataclass(frozen=True)
class GitStep:
    """A git invocation inside an operation and what its failure means.

    LOW severity steps are cosmetic: a failure is logged and the caller gets
    ``None``. HIGH severity steps abort the operation. ``failure_kind`` pins
    the reported kind unless git reported an environmental problem.
    """

    name: str
    severity: ErrorSeverity
    failure_kind: Optional[ErrorKind] = None

    @property
    def is_fatal(self) -> bool:
        return self.severity is ErrorSeverity.HIGH


@dataclass
class OperationRun:
    """State of one request: the target directory and the steps run so far."""

    operation: str
    target: ResolvedTarget
    context: OperationContext
    runner: CommandRunner
    timeout: Optional[float] = None
    steps: List[str] = field(default_factory=list)

    @property
    def log_extra(self) -> Dict[str, Any]:
        return self.context.log_extra(self.operation)

    async def execute(
        self, argv: Sequence[str], stdin: Optional[bytes] = None
    ) -> CommandOutcome:
        """Run git without judging the outcome."""
        spec = CommandSpec(
            working_directory=self.target.path, argv=tuple(argv), stdin_payload=stdin
        )
        outcome = await self.runner.run(spec, timeout=self.timeout, log_extra=self.log_extra)
        self._observe(outcome)
        return outcome

    async def git(
        self, step: GitStep, argv: Sequence[str], stdin: Optional[bytes] = None
    ) -> Optional[CommandOutcome]:
        """Run a declared step.

        Returns the outcome on success, ``None`` when a LOW severity step
        failed, and raises OperationAborted when a HIGH severity step failed.
        """
        outcome = await self.execute(argv, stdin=stdin)
        self.steps.append(step.name)
        if outcome.ok:
            return outcome
        if not step.is_fatal:
            logger.warning(
                f"Could not {step.name}, continuing without it: "
                f"{_first_line(outcome.stderr or outcome.stdout)}",
                extra=self.log_extra,
            )
            return None
        raise self.abort(step, outcome)

    def abort(self, step: GitStep, outcome: CommandOutcome) -> OperationAborted:
        kind = classify_outcome(outcome)
        if step.failure_kind is not None and kind not in ENVIRONMENTAL_KINDS:
            kind = step.failure_kind
        if outcome.timed_out:
            message = f"Could not {step.name}: {outcome.stderr}"
        else:
            message = f"Could not {step.name}: {describe_failure(kind, self.target.path)}"
        return OperationAborted(kind, message, detail=outcome.combined_output.strip())

    def _observe(self, outcome: CommandOutcome) -> None:
        if self.target.is_git_repo is not None:
            return
        if outcome.ok:
            self.target = replace(self.target, is_git_repo=True)
        elif classify_outcome(outcome) is ErrorKind.NOT_A_GIT_REPOSITORY:
            self.target = replace(self.target, is_git_repo=False)


def classify_outcome(outcome: CommandOutcome) -> ErrorKind:
    if outcome.timed_out:
        return ErrorKind.UNKNOWN
    return classify_failure(stderr=outcome.stderr, stdout=outcome.stdout)


def describe_failure(kind: ErrorKind, path: str) -> str:
    descriptions = {
        ErrorKind.NOT_A_GIT_REPOSITORY: f"path is not a Git repository: {path}",
        ErrorKind.INVALID_REFERENCE: "the reference does not exist",
        ErrorKind.NO_CHANGES_TO_COMMIT: "there are no changes to commit",
        ErrorKind.MERGE_CONFLICT: "the operation produced merge conflicts",
        ErrorKind.PERMISSION_DENIED: f"permission denied in {path}",
    }
    return descriptions.get(kind, "git reported an unexpected error")


def _first_line(text: str) -> str:
    stripped = text.strip()
    return stripped.splitlines()[0] if stripped else "no output"


class OperationDispatcher(ABC, Generic[RequestT]):
    """
    Base class for one capability family.

    Resolves the target directory, runs the subclass's dispatch logic and
    turns aborted steps and spawn failures into failed OperationResults.
    Invalid paths propagate as InvalidPathError for the transport to report.
    """

    operation: str = "git_operation"

    def __init__(
        self,
        runner: CommandRunner,
        resolver: PathResolver,
        timeout: Optional[float] = None,
    ):
        self.runner = runner
        self.resolver = resolver
        self.timeout = timeout

    async def execute(
        self, request: RequestT, context: OperationContext
    ) -> OperationResult:
        target = self.resolver.resolve(
            getattr(request, "path", None), context.working_directory()
        )
        extra = context.log_extra(self.operation)
        logger.info(f"{self.operation} on {target.path}", extra=extra)

        if not target.exists:
            return OperationResult.failed(
                ErrorKind.NOT_A_GIT_REPOSITORY,
                f"Path does not exist or is not a directory: {target.path}",
                path=target.path,
            )

        run = OperationRun(
            operation=self.operation,
            target=target,
            context=context,
            runner=self.runner,
            timeout=self.timeout,
        )
        try:
            result = await self.dispatch(request, run)
        except OperationAborted as e:
            logger.error(
                f"{self.operation} failed ({e.kind.value}): {e.message}", extra=extra
            )
            result = OperationResult.failed(
                e.kind, e.message, detail=e.detail, path=target.path, **e.metadata
            )
        except CommandSpawnError as e:
            kind = classify_failure(message=str(e))
            logger.error(f"{self.operation} could not start git: {e}", extra=extra)
            result = OperationResult.failed(kind, str(e), path=target.path)

        if result.success:
            logger.info(f"{self.operation} succeeded: {result.message}", extra=extra)
        elif result.is_advisory:
            logger.info(
                f"{self.operation} completed with non-fatal condition: {result.message}",
                extra=extra,
            )
        return result

    @abstractmethod
    async def dispatch(self, request: RequestT, run: OperationRun) -> OperationResult:
        """Capability specific logic."""
