"""Subprocess execution of git commands"""

import asyncio
import logging
import os
import signal
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from ..error_handling import CommandSpawnError
from .security import ensure_safe_argument, sanitize_argv

logger = logging.getLogger(__name__)

# Anything git might start interactively is replaced by a no-op.
NON_INTERACTIVE_ENV: Dict[str, str] = {
    "GIT_EDITOR": "true",
    "GIT_SEQUENCE_EDITOR": "true",
    "GIT_PAGER": "cat",
    "PAGER": "cat",
    "GIT_TERMINAL_PROMPT": "0",
    "GIT_MERGE_AUTOEDIT": "no",
    # The classifier matches English diagnostics
    "LC_ALL": "C",
    "LANGUAGE": "C",
}

_STRIPPED_ENV = ("GIT_ASKPASS", "SSH_ASKPASS", "GIT_DIR", "GIT_WORK_TREE", "GIT_INDEX_FILE")


@dataclass(frozen=True)
class CommandSpec:
    """One git invocation: subcommand argv, target directory and optional stdin."""

    working_directory: str
    argv: Tuple[str, ...]
    stdin_payload: Optional[bytes] = None

    def __post_init__(self):
        object.__setattr__(self, "argv", sanitize_argv(self.argv))
        ensure_safe_argument(self.working_directory, "working_directory")


@dataclass(frozen=True)
class CommandOutcome:
    exit_code: int
    stdout: str
    stderr: str
    timed_out: bool = False
    duration_ms: float = field(default=0.0, compare=False)

    @property
    def ok(self) -> bool:
        return self.exit_code == 0 and not self.timed_out

    @property
    def combined_output(self) -> str:
        return "\n".join(part for part in (self.stdout, self.stderr) if part)


class CommandRunner:
    """
    Runs git as a discrete argument vector, never through a shell.

    Non-zero exit codes come back as a normal CommandOutcome. Only failing to
    start the process raises (CommandSpawnError). A timed out process is
    killed together with anything it spawned, and so is a process whose
    awaiting task gets cancelled.
    """

    def __init__(
        self,
        git_executable: str = "git",
        default_timeout: Optional[float] = 30.0,
        extra_env: Optional[Mapping[str, str]] = None,
    ):
        self.git_executable = git_executable
        self.default_timeout = default_timeout
        self.extra_env = dict(extra_env or {})

    def build_command(self, spec: CommandSpec) -> Tuple[str, ...]:
        return (
            self.git_executable,
            "--no-pager",
            "-C",
            spec.working_directory,
            *spec.argv,
        )

    def build_env(self) -> Dict[str, str]:
        env = {k: v for k, v in os.environ.items() if k not in _STRIPPED_ENV}
        env.update(NON_INTERACTIVE_ENV)
        env.update(self.extra_env)
        return env

    async def run(
        self,
        spec: CommandSpec,
        timeout: Optional[float] = None,
        log_extra: Optional[Dict[str, Any]] = None,
    ) -> CommandOutcome:
        """Execute a command and capture stdout and stderr separately.

        Args:
            spec: The command to run
            timeout: Seconds before the process is killed; falls back to the
                runner default, ``None`` for both means unbounded
            log_extra: Contextual fields for log records

        Returns:
            CommandOutcome, also for non-zero exits and timeouts

        Raises:
            CommandSpawnError: If the git executable cannot be started
        """
        argv = self.build_command(spec)
        effective_timeout = timeout if timeout is not None else self.default_timeout
        extra = dict(log_extra or {})
        logger.debug(f"Executing: {_display(argv)}", extra=extra)

        start_time = time.monotonic()
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.PIPE
                if spec.stdin_payload is not None
                else asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self.build_env(),
                start_new_session=os.name == "posix",
            )
        except (FileNotFoundError, PermissionError, NotADirectoryError) as e:
            raise CommandSpawnError(
                argv, f"Could not start {self.git_executable!r}: {e}"
            ) from e

        try:
            raw_stdout, raw_stderr = await asyncio.wait_for(
                process.communicate(spec.stdin_payload), timeout=effective_timeout
            )
        except asyncio.TimeoutError:
            _kill_process_group(process)
            await process.wait()
            duration_ms = (time.monotonic() - start_time) * 1000
            extra["duration_ms"] = round(duration_ms, 1)
            logger.warning(
                f"Command timed out after {effective_timeout}s: {_display(argv)}",
                extra=extra,
            )
            return CommandOutcome(
                exit_code=-1,
                stdout="",
                stderr=f"Command timed out after {effective_timeout}s and was terminated",
                timed_out=True,
                duration_ms=duration_ms,
            )
        except asyncio.CancelledError:
            # Kill synchronously: a cancelled scope may refuse further awaits
            _kill_process_group(process)
            logger.info(f"Command cancelled, process terminated: {_display(argv)}", extra=extra)
            raise

        duration_ms = (time.monotonic() - start_time) * 1000
        outcome = CommandOutcome(
            exit_code=process.returncode if process.returncode is not None else -1,
            stdout=raw_stdout.decode("utf-8", errors="replace"),
            stderr=raw_stderr.decode("utf-8", errors="replace"),
            duration_ms=duration_ms,
        )
        extra["duration_ms"] = round(duration_ms, 1)
        logger.debug(
            f"Command exited with {outcome.exit_code}: {_display(argv)}", extra=extra
        )
        if outcome.stderr and outcome.exit_code == 0:
            logger.debug(f"git stderr: {outcome.stderr.strip()}", extra=extra)
        return outcome


def _kill_process_group(process: "asyncio.subprocess.Process") -> None:
    if process.returncode is not None:
        return
    try:
        if os.name == "posix":
            os.killpg(process.pid, signal.SIGKILL)
        else:
            process.kill()
    except ProcessLookupError:
        pass


def _display(argv: Sequence[str]) -> str:
    # Logged only; never executed
    return " ".join(argv)
