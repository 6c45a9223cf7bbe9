"""Pydantic models for Git operation requests and results"""

from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    RootModel,
    field_validator,
    model_validator,
)

from ..error_handling import ErrorKind
from .security import ensure_safe_argument, validate_commit_message, validate_reference

PATH_DESCRIPTION = (
    "Path to the Git repository. Defaults to the directory set via "
    "`git_set_working_dir` for the session."
)


class GitToolInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    path: Optional[str] = Field(default=None, description=PATH_DESCRIPTION)

    @field_validator("path")
    @classmethod
    def _check_path(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = value.strip()
        if not value:
            return None
        return ensure_safe_argument(value, "path")


class GitReword(GitToolInput):
    commit_hash: Optional[str] = Field(
        default=None,
        alias="commitHash",
        description="The commit to reword. HEAD is assumed when omitted.",
    )
    new_message: str = Field(
        ..., alias="newMessage", min_length=1, description="The new commit message."
    )

    @field_validator("commit_hash")
    @classmethod
    def _check_commit_hash(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        return validate_reference(value)

    @field_validator("new_message")
    @classmethod
    def _check_new_message(cls, value: str) -> str:
        return validate_commit_message(value)

    @property
    def reference(self) -> str:
        return self.commit_hash or "HEAD"


class StashMode(str, Enum):
    LIST = "list"
    SAVE = "save"
    APPLY = "apply"
    POP = "pop"
    DROP = "drop"


class GitStashList(GitToolInput):
    mode: Literal["list"]


class GitStashSave(GitToolInput):
    mode: Literal["save"]
    message: Optional[str] = Field(default=None, description="Stash message.")
    include_untracked: bool = Field(
        default=False,
        alias="includeUntracked",
        description="Also stash untracked files.",
    )

    @field_validator("message")
    @classmethod
    def _check_message(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        return ensure_safe_argument(value, "message")


class GitStashApply(GitToolInput):
    mode: Literal["apply"]
    index: int = Field(default=0, ge=0, description="Stash index, 0 is the most recent.")


class GitStashPop(GitToolInput):
    mode: Literal["pop"]
    index: int = Field(default=0, ge=0, description="Stash index, 0 is the most recent.")


class GitStashDrop(GitToolInput):
    mode: Literal["drop"]
    index: int = Field(..., ge=0, description="Stash index to drop.")


StashRequest = Annotated[
    Union[GitStashList, GitStashSave, GitStashApply, GitStashPop, GitStashDrop],
    Field(discriminator="mode"),
]


class GitStash(RootModel[StashRequest]):
    """Validated stash request; ``root`` holds the mode-specific variant."""


class GitStashSchema(GitToolInput):
    """Flat shape advertised to clients; requests are validated with GitStash."""

    mode: StashMode = Field(..., description="Stash operation to perform.")
    message: Optional[str] = Field(default=None, description="Message for 'save'.")
    index: Optional[int] = Field(
        default=None, ge=0, description="Stash index for 'apply', 'pop' and 'drop'."
    )
    include_untracked: bool = Field(
        default=False, alias="includeUntracked", description="Untracked files for 'save'."
    )


class GitSetWorkingDir(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    path: str = Field(..., min_length=1, description="Directory to use for this session.")
    validate_git_repo: bool = Field(
        default=True,
        alias="validateGitRepo",
        description="Require the directory to be inside a Git repository.",
    )

    @field_validator("path")
    @classmethod
    def _check_path(cls, value: str) -> str:
        return ensure_safe_argument(value.strip(), "path")


class GitClearWorkingDir(BaseModel):
    pass


class ConflictKind(str, Enum):
    CONTENT = "content"
    ADD_ADD = "add-add"
    DELETE_MODIFY = "delete-modify"
    RENAME = "rename"


class ConflictDescriptor(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    file_path: str = Field(..., alias="filePath")
    kind: ConflictKind


class StashEntry(BaseModel):
    index: int
    ref: str
    hash: Optional[str] = None
    branch: Optional[str] = None
    description: str = ""


class OperationResult(BaseModel):
    """
    Structured result of a git operation.

    A failure either carries an ``error_kind`` (hard failure) or is advisory:
    an expected, recoverable outcome such as a reword that needs an
    interactive rebase or a stash apply that left conflicts.
    """

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: str
    data: Dict[str, Any] = Field(default_factory=dict)
    error_kind: Optional[ErrorKind] = Field(default=None, alias="errorKind")
    conflicts: Optional[List[ConflictDescriptor]] = None

    @model_validator(mode="after")
    def _check_consistency(self) -> "OperationResult":
        if self.success and self.error_kind is not None:
            raise ValueError("a successful result cannot carry an error kind")
        return self

    @classmethod
    def succeeded(cls, message: str, **data: Any) -> "OperationResult":
        return cls(success=True, message=message, data=data)

    @classmethod
    def failed(
        cls, kind: ErrorKind, message: str, detail: Optional[str] = None, **data: Any
    ) -> "OperationResult":
        if detail:
            data["detail"] = detail
        return cls(success=False, message=message, data=data, error_kind=kind)

    @classmethod
    def advisory(
        cls,
        message: str,
        conflicts: Optional[List[ConflictDescriptor]] = None,
        **data: Any,
    ) -> "OperationResult":
        return cls(success=False, message=message, data=data, conflicts=conflicts)

    @property
    def is_advisory(self) -> bool:
        return not self.success and self.error_kind is None

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
