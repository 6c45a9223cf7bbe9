import asyncio
import os
from pathlib import Path
from typing import Optional, Tuple

import click

from .configuration import load_config_from_env
from .logging_config import configure_logging
from .server import serve


@click.command()
@click.option("--repository", "-r", type=Path, help="Default Git repository path")
@click.option("-v", "--verbose", count=True)
@click.option(
    "--timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Seconds before a git command is killed",
)
@click.option(
    "--allowed-root",
    "allowed_roots",
    multiple=True,
    type=Path,
    help="Restrict operations to this directory tree (repeatable)",
)
@click.option(
    "--enable-file-logging",
    is_flag=True,
    help="Also write debug logs to logs/ under the repository",
)
@click.option(
    "--test-mode",
    is_flag=True,
    help="Run in test mode for CI (exits without attaching to stdio)",
)
def main(
    repository: Optional[Path],
    verbose: int,
    timeout: Optional[float],
    allowed_roots: Tuple[Path, ...],
    enable_file_logging: bool,
    test_mode: bool,
) -> None:
    """MCP Git Ops - commit rewording and stash management for MCP"""
    log_level = None
    if verbose == 1:
        log_level = "INFO"
    elif verbose >= 2:
        log_level = "DEBUG"

    config = load_config_from_env(
        repository,
        command_timeout_seconds=timeout,
        allowed_roots=[str(root) for root in allowed_roots] or None,
        log_level=log_level,
        test_mode=test_mode or None,
    )

    log_file = None
    if enable_file_logging:
        session_stamp = os.environ.get("MCP_SESSION_ID", str(os.getpid()))
        log_file = (repository or Path.cwd()) / "logs" / f"mcp_git_ops-{session_stamp}.log"
    configure_logging(config.log_level, log_file=log_file)

    asyncio.run(serve(config))


if __name__ == "__main__":
    main()
