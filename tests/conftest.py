"""
Global pytest configuration and fixtures.

Every test runs git against an isolated configuration: a private global
config file, no system config, and a ceiling directory so repositories
created in temp directories never see an enclosing repository.
"""

import shutil
import tempfile
from pathlib import Path
from typing import Generator

import pytest

pytest_plugins = ["fixtures.git_repos"]

GLOBAL_GIT_CONFIG = """\
[user]
\tname = Test User
\temail = test@example.com
[init]
\tdefaultBranch = main
[commit]
\tgpgsign = false
[advice]
\tdetachedHead = false
"""


@pytest.fixture(autouse=True)
def isolated_git_env(tmp_path_factory, monkeypatch) -> Path:
    """Point git at a throwaway global config and clear server settings."""
    home = tmp_path_factory.mktemp("git-home")
    gitconfig = home / ".gitconfig"
    gitconfig.write_text(GLOBAL_GIT_CONFIG)

    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(gitconfig))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(Path(tempfile.gettempdir()).resolve()))
    for name in (
        "GIT_DIR",
        "GIT_WORK_TREE",
        "GIT_INDEX_FILE",
        "MCP_GIT_EXECUTABLE",
        "MCP_GIT_TIMEOUT_SECONDS",
        "MCP_GIT_ALLOWED_ROOTS",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    return gitconfig


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    temp_path = Path(tempfile.mkdtemp()).resolve()
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


def pytest_configure(config):
    """Register markers."""
    config.addinivalue_line("markers", "unit: Unit tests for individual components")
    config.addinivalue_line("markers", "integration: Tests that run the real git binary")
    config.addinivalue_line("markers", "requires_git: Tests that require git repository setup")


def pytest_collection_modifyitems(config, items):
    """Mark tests that build repositories."""
    git_fixtures = {"clean_git_repo", "history_repo", "dirty_git_repo", "git_repo_factory"}
    for item in items:
        if git_fixtures.intersection(item.fixturenames):
            item.add_marker(pytest.mark.requires_git)
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)
