"""Reword a commit message"""

import logging
import textwrap
from typing import List, Optional, Tuple

from ..error_handling import ErrorKind, ErrorSeverity, OperationAborted
from ..git.models import GitReword, OperationResult
from .base import GitStep, OperationDispatcher, OperationRun

logger = logging.getLogger(__name__)

HEAD = "HEAD"

READ_ORIGINAL = GitStep("read the original commit message", ErrorSeverity.LOW)
AMEND = GitStep("amend the commit message", ErrorSeverity.HIGH)
CONFIRM = GitStep("read the amended commit", ErrorSeverity.HIGH)
RESOLVE_TARGET = GitStep(
    "resolve the target commit", ErrorSeverity.HIGH, ErrorKind.INVALID_REFERENCE
)
RESOLVE_TIP = GitStep("resolve HEAD", ErrorSeverity.HIGH, ErrorKind.INVALID_REFERENCE)

_NOTHING_TO_AMEND = ("nothing to amend", "no changes")


def parse_commit_record(stdout: str) -> Tuple[str, str]:
    """Split ``%H%x00%B`` output into hash and message."""
    commit_hash, _, body = stdout.partition("\x00")
    return commit_hash.strip(), body.strip()


def build_rebase_procedure(
    reference: str,
    resolved_hash: str,
    parent_hash: Optional[str],
    new_message: str,
) -> Tuple[str, str]:
    """Return the rebase command and the numbered steps for rewording a past commit."""
    short = resolved_hash[:7]
    rebase_command = (
        f"git rebase -i {parent_hash}" if parent_hash else "git rebase -i --root"
    )
    quoted_message = textwrap.indent(new_message, "    ")
    steps: List[str] = [
        "Make sure the working tree is clean: commit or stash pending changes.",
        f"Run: {rebase_command}",
        f"In the todo list, change 'pick {short}' to 'reword {short}' "
        f"(commit {reference}), then save and close the editor.",
        f"When the message editor opens for {reference}, replace the message with:\n"
        f"{quoted_message}",
        "Save and close the editor. If conflicts are reported, resolve them, "
        "stage the files and run 'git rebase --continue'.",
        f"Rewording changes the hash of {reference} and of every later commit; "
        "force-push only branches nobody else has built on.",
    ]
    procedure = "\n".join(f"{number}. {step}" for number, step in enumerate(steps, 1))
    return rebase_command, procedure


class RewordDispatcher(OperationDispatcher[GitReword]):
    """
    Rewords HEAD in place; advises an interactive rebase for older commits.

    Rewriting an arbitrary ancestor non-interactively would need an
    editor-driven history rewrite that can corrupt a dirty working tree, so
    for those commits the caller receives an advisory result with a
    step-by-step procedure instead.
    """

    operation = "git_reword"

    async def dispatch(self, request: GitReword, run: OperationRun) -> OperationResult:
        reference = request.reference
        previous_hash, original_message = await self._read_commit(run, reference)

        if reference == HEAD:
            return await self._amend_head(request, run, previous_hash, original_message)

        resolved_hash, parents = await self._resolve_commit(run, reference)
        tip = await run.git(RESOLVE_TIP, ["rev-parse", "--verify", HEAD])
        if tip.stdout.strip() == resolved_hash:
            logger.debug(f"{reference} is the tip commit, amending in place", extra=run.log_extra)
            return await self._amend_head(request, run, resolved_hash, original_message)

        parent_hash = parents[0] if parents else None
        rebase_command, procedure = build_rebase_procedure(
            reference, resolved_hash, parent_hash, request.new_message
        )
        return OperationResult.advisory(
            f"Rewording a past commit ({reference}) requires an interactive rebase. "
            f"Run '{rebase_command}' and change 'pick' to 'reword' for the commit.",
            commitHash=reference,
            resolvedHash=resolved_hash,
            parentHash=parent_hash,
            isRootCommit=parent_hash is None,
            originalMessage=original_message,
            newMessage=request.new_message,
            rebaseCommand=rebase_command,
            procedure=procedure,
        )

    async def _read_commit(
        self, run: OperationRun, reference: str
    ) -> Tuple[Optional[str], str]:
        outcome = await run.git(
            READ_ORIGINAL, ["log", "-1", "--format=%H%x00%B", reference, "--"]
        )
        if outcome is None:
            return None, ""
        commit_hash, message = parse_commit_record(outcome.stdout)
        return commit_hash or None, message

    async def _resolve_commit(
        self, run: OperationRun, reference: str
    ) -> Tuple[str, List[str]]:
        outcome = await run.git(
            RESOLVE_TARGET, ["rev-list", "--parents", "-n", "1", reference, "--"]
        )
        hashes = outcome.stdout.split()
        if not hashes:
            raise OperationAborted(
                ErrorKind.INVALID_REFERENCE,
                f"Could not resolve commit {reference}",
            )
        return hashes[0], hashes[1:]

    async def _amend_head(
        self,
        request: GitReword,
        run: OperationRun,
        previous_hash: Optional[str],
        original_message: str,
    ) -> OperationResult:
        # --only leaves staged changes out; --allow-empty keeps empty commits rewordable
        outcome = await run.execute(
            ["commit", "--amend", "--only", "--allow-empty", "--file=-"],
            stdin=request.new_message.encode("utf-8"),
        )
        if not outcome.ok:
            lowered = outcome.combined_output.lower()
            if not outcome.timed_out and any(text in lowered for text in _NOTHING_TO_AMEND):
                raise OperationAborted(
                    ErrorKind.NO_CHANGES_TO_COMMIT,
                    "No commit to amend. The repository has no commits yet, or the "
                    "amend would leave nothing to commit.",
                    detail=outcome.combined_output.strip(),
                )
            raise run.abort(AMEND, outcome)

        confirmed = await run.git(CONFIRM, ["log", "-1", "--format=%H%x00%B", HEAD, "--"])
        new_hash, new_message = parse_commit_record(confirmed.stdout)
        return OperationResult.succeeded(
            "Commit message reworded successfully.",
            originalMessage=original_message,
            newMessage=new_message,
            hash=new_hash,
            previousHash=previous_hash,
        )
