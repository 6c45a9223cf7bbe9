"""Manage the stash stack"""

import logging
import re
from typing import Awaitable, Callable, Dict, List, Optional, Type, Union

from ..error_handling import ErrorKind, ErrorSeverity, OperationAborted
from ..git.models import (
    ConflictDescriptor,
    ConflictKind,
    GitStash,
    GitStashApply,
    GitStashDrop,
    GitStashList,
    GitStashPop,
    GitStashSave,
    OperationResult,
    StashEntry,
)
from ..git.paths import PathResolver
from ..git.runner import CommandRunner
from .base import GitStep, OperationContext, OperationDispatcher, OperationRun

logger = logging.getLogger(__name__)

StashVariant = Union[GitStashList, GitStashSave, GitStashApply, GitStashPop, GitStashDrop]

LIST = GitStep("list stash entries", ErrorSeverity.HIGH)
SAVE = GitStep("save changes to the stash", ErrorSeverity.HIGH)
READ_NEW_STASH = GitStep("read the new stash commit", ErrorSeverity.LOW)
APPLY = GitStep("apply the stash entry", ErrorSeverity.HIGH)
POP = GitStep("pop the stash entry", ErrorSeverity.HIGH)
DROP = GitStep("drop the stash entry", ErrorSeverity.HIGH)
LIST_UNMERGED = GitStep("list unmerged paths", ErrorSeverity.LOW)

FIELD_SEPARATOR = "\x1f"
LIST_FORMAT = "--format=%gd%x1f%H%x1f%gs"

_STASH_REF = re.compile(r"stash@\{(\d+)\}")
_STASH_SUBJECT = re.compile(r"^(?:WIP on|On) (?P<branch>[^:]+): ?(?P<description>.*)$")
_CONFLICT_LINE = re.compile(r"^CONFLICT \((?P<type>[^)]+)\): (?P<detail>.+)$", re.MULTILINE)
_MERGE_CONFLICT_IN = re.compile(r"Merge conflict in (?P<path>.+)$")
_RENAMED_TO = re.compile(r"renamed to (?P<path>.+?) in ")
# Never spans a rename clause; rename/delete lines are reported by destination
_DELETED_IN = re.compile(r"^(?P<path>(?:(?! renamed to ).)+?) deleted in ")
_ALREADY_EXISTS = re.compile(
    r"^(?:error: )?(?P<path>.+) already exists, no checkout$", re.MULTILINE
)
_OVERWRITE_HEADER = re.compile(
    r"^error: (?:Your local changes to|The following untracked working tree files"
    r")(?: the following files)? would be overwritten",
    re.IGNORECASE,
)

NO_LOCAL_CHANGES = "no local changes to save"


def _first_line(text: str) -> str:
    stripped = text.strip()
    return stripped.splitlines()[0] if stripped else ""


def stash_ref(index: int) -> str:
    return f"stash@{{{index}}}"


def parse_stash_list(stdout: str) -> List[StashEntry]:
    """Parse ``stash list --format=%gd%x1f%H%x1f%gs`` output."""
    entries: List[StashEntry] = []
    for line in stdout.splitlines():
        if not line.strip():
            continue
        ref, _, rest = line.partition(FIELD_SEPARATOR)
        commit_hash, _, subject = rest.partition(FIELD_SEPARATOR)
        match = _STASH_REF.search(ref)
        if match is None:
            logger.debug(f"Skipping unrecognized stash line: {line!r}")
            continue
        subject_match = _STASH_SUBJECT.match(subject)
        entries.append(
            StashEntry(
                index=int(match.group(1)),
                ref=stash_ref(int(match.group(1))),
                hash=commit_hash.strip() or None,
                branch=subject_match.group("branch") if subject_match else None,
                description=(
                    subject_match.group("description") if subject_match else subject
                ).strip(),
            )
        )
    return entries


def _conflict_kind(conflict_type: str) -> ConflictKind:
    conflict_type = conflict_type.lower()
    if conflict_type == "add/add":
        return ConflictKind.ADD_ADD
    if conflict_type in ("modify/delete", "delete/modify"):
        return ConflictKind.DELETE_MODIFY
    if "rename" in conflict_type or conflict_type == "file location":
        return ConflictKind.RENAME
    return ConflictKind.CONTENT


def _conflict_path(detail: str) -> Optional[str]:
    for pattern in (_MERGE_CONFLICT_IN, _RENAMED_TO, _DELETED_IN):
        match = pattern.search(detail)
        if match:
            return match.group("path").strip()
    return None


def parse_conflicts(output: str) -> List[ConflictDescriptor]:
    """
    Extract conflicted paths from git merge output.

    Understands ``CONFLICT (<type>): ...`` lines, the file list git prints
    when it refuses to apply because local files would be overwritten, and
    ``<path> already exists, no checkout`` for stashed untracked files.
    Paths are repository relative, as git reports them. Duplicate paths keep
    their first kind.
    """
    found: Dict[str, ConflictKind] = {}

    for match in _CONFLICT_LINE.finditer(output):
        path = _conflict_path(match.group("detail"))
        if path and path not in found:
            found[path] = _conflict_kind(match.group("type"))

    lines = output.splitlines()
    for position, line in enumerate(lines):
        header = _OVERWRITE_HEADER.match(line.strip())
        if not header:
            continue
        kind = ConflictKind.ADD_ADD if "untracked" in line.lower() else ConflictKind.CONTENT
        for listed in lines[position + 1 :]:
            if not listed.startswith(("\t", " ")) or not listed.strip():
                break
            found.setdefault(listed.strip(), kind)

    for match in _ALREADY_EXISTS.finditer(output):
        found.setdefault(match.group("path").strip(), ConflictKind.ADD_ADD)

    return [ConflictDescriptor(file_path=path, kind=kind) for path, kind in found.items()]


def has_conflict_markers(output: str) -> bool:
    lowered = output.lower()
    return (
        "conflict (" in lowered
        or "would be overwritten" in lowered
        or "already exists, no checkout" in lowered
    )


class StashDispatcher(OperationDispatcher[StashVariant]):
    """Implements list, save, apply, pop and drop over ``git stash``."""

    operation = "git_stash"

    def __init__(
        self,
        runner: CommandRunner,
        resolver: PathResolver,
        timeout: Optional[float] = None,
    ):
        super().__init__(runner, resolver, timeout=timeout)
        self._handlers: Dict[
            Type[StashVariant], Callable[..., Awaitable[OperationResult]]
        ] = {
            GitStashList: self._list,
            GitStashSave: self._save,
            GitStashApply: self._apply,
            GitStashPop: self._apply,
            GitStashDrop: self._drop,
        }

    async def execute(
        self, request: Union[GitStash, StashVariant], context: OperationContext
    ) -> OperationResult:
        if isinstance(request, GitStash):
            request = request.root
        return await super().execute(request, context)

    async def dispatch(self, request: StashVariant, run: OperationRun) -> OperationResult:
        handler = self._handlers.get(type(request))
        if handler is None:
            raise TypeError(f"Unsupported stash request: {type(request).__name__}")
        return await handler(request, run)

    async def _entries(self, run: OperationRun) -> List[StashEntry]:
        outcome = await run.git(LIST, ["stash", "list", LIST_FORMAT])
        return parse_stash_list(outcome.stdout)

    async def _require_entry(self, run: OperationRun, index: int) -> StashEntry:
        entries = await self._entries(run)
        for entry in entries:
            if entry.index == index:
                return entry
        if not entries:
            message = "No stash entries found; the stash is empty."
        else:
            message = (
                f"Stash entry {stash_ref(index)} does not exist "
                f"(the stash has {len(entries)} entries)."
            )
        raise OperationAborted(
            ErrorKind.INVALID_REFERENCE, message, metadata={"stashRef": stash_ref(index)}
        )

    async def _list(self, request: GitStashList, run: OperationRun) -> OperationResult:
        entries = await self._entries(run)
        return OperationResult.succeeded(
            f"Found {len(entries)} stash entries." if entries else "No stash entries found.",
            mode="list",
            stashes=[entry.model_dump() for entry in entries],
        )

    async def _save(self, request: GitStashSave, run: OperationRun) -> OperationResult:
        argv = ["stash", "push"]
        if request.include_untracked:
            argv.append("--include-untracked")
        if request.message:
            argv.append(f"--message={request.message}")

        outcome = await run.execute(argv)
        # A stash message can contain the phrase; git's own notice is the first line
        if _first_line(outcome.combined_output).lower().startswith(NO_LOCAL_CHANGES):
            raise OperationAborted(
                ErrorKind.NO_CHANGES_TO_COMMIT,
                "No local changes to save.",
                detail=outcome.combined_output.strip(),
            )
        if not outcome.ok:
            raise run.abort(SAVE, outcome)

        created = await run.git(READ_NEW_STASH, ["rev-parse", "--verify", "refs/stash"])
        return OperationResult.succeeded(
            "Changes stashed successfully.",
            mode="save",
            stashRef=stash_ref(0),
            hash=created.stdout.strip() if created else None,
            output=outcome.stdout.strip(),
        )

    async def _apply(
        self, request: Union[GitStashApply, GitStashPop], run: OperationRun
    ) -> OperationResult:
        mode = request.mode
        step = POP if mode == "pop" else APPLY
        entry = await self._require_entry(run, request.index)

        outcome = await run.execute(["stash", mode, entry.ref])
        output = outcome.combined_output

        if not outcome.timed_out and has_conflict_markers(output):
            conflicts = parse_conflicts(output)
            if not conflicts:
                conflicts = await self._unmerged_paths(run)
            if conflicts:
                kept = " The stash entry was kept." if mode == "pop" else ""
                return OperationResult.advisory(
                    f"Stash {entry.ref} could not be applied cleanly: "
                    f"{len(conflicts)} conflicting path(s) need manual resolution.{kept}",
                    conflicts=conflicts,
                    mode=mode,
                    stashRef=entry.ref,
                    stashKept=True,
                    output=output.strip(),
                )

        if not outcome.ok:
            raise run.abort(step, outcome)

        action = "popped" if mode == "pop" else "applied"
        return OperationResult.succeeded(
            f"Stash {entry.ref} {action} successfully.",
            mode=mode,
            stashRef=entry.ref,
            hash=entry.hash,
            stashKept=mode != "pop",
            output=outcome.stdout.strip(),
        )

    async def _unmerged_paths(self, run: OperationRun) -> List[ConflictDescriptor]:
        outcome = await run.git(
            LIST_UNMERGED, ["diff", "--name-only", "--diff-filter=U"]
        )
        if outcome is None:
            return []
        return [
            ConflictDescriptor(file_path=line.strip(), kind=ConflictKind.CONTENT)
            for line in outcome.stdout.splitlines()
            if line.strip()
        ]

    async def _drop(self, request: GitStashDrop, run: OperationRun) -> OperationResult:
        entry = await self._require_entry(run, request.index)
        await run.git(DROP, ["stash", "drop", entry.ref])
        return OperationResult.succeeded(
            f"Dropped {entry.ref}.",
            mode="drop",
            stashRef=entry.ref,
            hash=entry.hash,
        )
