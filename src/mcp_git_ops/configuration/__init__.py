"""Configuration for MCP Git Ops.

Configuration is a validated pydantic model. Values come from keyword
arguments (CLI options), then environment variables, which may themselves be
loaded from ``.env`` files with python-dotenv.

Environment variable binding:
    ```bash
    export MCP_GIT_EXECUTABLE=/usr/bin/git
    export MCP_GIT_TIMEOUT_SECONDS=30
    export MCP_GIT_ALLOWED_ROOTS=/srv/repos:/home/dev/src
    export LOG_LEVEL=DEBUG
    ```

Usage examples:
    >>> from mcp_git_ops.configuration import load_config_from_env
    >>> config = load_config_from_env(Path("/srv/repos/app"))
    >>> config.command_timeout_seconds
    30.0

Configuration testing:
    >>> from mcp_git_ops.configuration import create_test_config
    >>> config = create_test_config(command_timeout_seconds=5)
"""

import logging
import os
from pathlib import Path
from typing import Any, List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

ENV_GIT_EXECUTABLE = "MCP_GIT_EXECUTABLE"
ENV_TIMEOUT = "MCP_GIT_TIMEOUT_SECONDS"
ENV_ALLOWED_ROOTS = "MCP_GIT_ALLOWED_ROOTS"
ENV_LOG_LEVEL = "LOG_LEVEL"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Values that disable the command timeout
_NO_TIMEOUT = ("", "0", "none", "off")


class OrchestratorConfig(BaseModel):
    """Settings shared by the command runner, path resolver and server."""

    git_executable: str = Field(default="git", min_length=1)
    command_timeout_seconds: Optional[float] = Field(default=30.0, gt=0)
    allowed_roots: List[str] = Field(default_factory=list)
    default_directory: Optional[str] = None
    log_level: str = "WARNING"
    test_mode: bool = False

    @field_validator("allowed_roots")
    @classmethod
    def _normalize_roots(cls, value: List[str]) -> List[str]:
        return [
            os.path.normpath(os.path.abspath(os.path.expanduser(root)))
            for root in value
            if root.strip()
        ]

    @field_validator("default_directory")
    @classmethod
    def _normalize_default_directory(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        return os.path.normpath(os.path.abspath(os.path.expanduser(value)))

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        return level


def load_environment_variables(repository_path: Optional[Path] = None) -> List[str]:
    """Load ``.env`` files without overriding variables that are already set.

    The project file (current directory) is read first, then the repository
    file when a repository path is given.
    """
    loaded_files: List[str] = []
    candidates = [Path.cwd() / ".env"]
    if repository_path:
        candidates.append(Path(repository_path) / ".env")

    for env_file in candidates:
        if not env_file.exists() or str(env_file) in loaded_files:
            continue
        load_dotenv(env_file, override=False)
        loaded_files.append(str(env_file))
        logger.info(f"Loaded environment variables from {env_file}")
    return loaded_files


def _timeout_from_env(raw: Optional[str]) -> Any:
    if raw is None:
        return None
    if raw.strip().lower() in _NO_TIMEOUT:
        return None
    return raw.strip()


def load_config_from_env(
    repository: Optional[Path] = None, **overrides: Any
) -> OrchestratorConfig:
    """Build the configuration from ``.env`` files, the environment and overrides.

    Overrides (usually CLI options) win over the environment. ``None``
    overrides are ignored so unset CLI options fall through.
    """
    load_environment_variables(repository)

    values: dict = {}
    if os.getenv(ENV_GIT_EXECUTABLE):
        values["git_executable"] = os.environ[ENV_GIT_EXECUTABLE]
    if ENV_TIMEOUT in os.environ:
        values["command_timeout_seconds"] = _timeout_from_env(os.environ[ENV_TIMEOUT])
    if os.getenv(ENV_ALLOWED_ROOTS):
        values["allowed_roots"] = os.environ[ENV_ALLOWED_ROOTS].split(os.pathsep)
    if os.getenv(ENV_LOG_LEVEL):
        values["log_level"] = os.environ[ENV_LOG_LEVEL]
    if repository is not None:
        values["default_directory"] = str(repository)

    values.update({key: value for key, value in overrides.items() if value is not None})
    return OrchestratorConfig(**values)


def create_test_config(**overrides: Any) -> OrchestratorConfig:
    """Configuration for tests: short timeout, no environment lookups."""
    values: dict = {"command_timeout_seconds": 10.0, "test_mode": True}
    values.update(overrides)
    return OrchestratorConfig(**values)


__all__ = [
    "OrchestratorConfig",
    "load_config_from_env",
    "load_environment_variables",
    "create_test_config",
]
