"""Tests for configuration loading."""

import os

import pytest
from pydantic import ValidationError

from mcp_git_ops.configuration import (
    OrchestratorConfig,
    create_test_config,
    load_config_from_env,
)


class TestOrchestratorConfig:
    def test_defaults(self):
        config = OrchestratorConfig()
        assert config.git_executable == "git"
        assert config.command_timeout_seconds == 30.0
        assert config.allowed_roots == []
        assert config.default_directory is None
        assert config.log_level == "WARNING"

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValidationError):
            OrchestratorConfig(command_timeout_seconds=0)

    def test_timeout_can_be_disabled(self):
        assert OrchestratorConfig(command_timeout_seconds=None).command_timeout_seconds is None

    def test_log_level_normalized(self):
        assert OrchestratorConfig(log_level=" debug ").log_level == "DEBUG"

    def test_unknown_log_level(self):
        with pytest.raises(ValidationError):
            OrchestratorConfig(log_level="LOUD")

    def test_paths_are_absolute(self, temp_dir, monkeypatch):
        monkeypatch.chdir(temp_dir)
        config = OrchestratorConfig(allowed_roots=["repos", ""], default_directory="repos/app")
        assert config.allowed_roots == [str(temp_dir / "repos")]
        assert config.default_directory == str(temp_dir / "repos" / "app")

    def test_create_test_config(self):
        config = create_test_config(git_executable="/opt/git")
        assert config.test_mode is True
        assert config.git_executable == "/opt/git"
        assert config.command_timeout_seconds == 10.0


class TestLoadConfigFromEnv:
    def test_environment_variables(self, temp_dir, monkeypatch):
        monkeypatch.chdir(temp_dir)
        monkeypatch.setenv("MCP_GIT_EXECUTABLE", "/usr/local/bin/git")
        monkeypatch.setenv("MCP_GIT_TIMEOUT_SECONDS", "12.5")
        monkeypatch.setenv("MCP_GIT_ALLOWED_ROOTS", os.pathsep.join(["/srv/a", "/srv/b"]))
        monkeypatch.setenv("LOG_LEVEL", "info")

        config = load_config_from_env()

        assert config.git_executable == "/usr/local/bin/git"
        assert config.command_timeout_seconds == 12.5
        assert config.allowed_roots == ["/srv/a", "/srv/b"]
        assert config.log_level == "INFO"

    def test_timeout_disabled_from_env(self, temp_dir, monkeypatch):
        monkeypatch.chdir(temp_dir)
        monkeypatch.setenv("MCP_GIT_TIMEOUT_SECONDS", "none")
        assert load_config_from_env().command_timeout_seconds is None

    def test_overrides_win(self, temp_dir, monkeypatch):
        monkeypatch.chdir(temp_dir)
        monkeypatch.setenv("MCP_GIT_TIMEOUT_SECONDS", "12")

        config = load_config_from_env(command_timeout_seconds=3, log_level=None)

        assert config.command_timeout_seconds == 3
        assert config.log_level == "WARNING"

    def test_repository_becomes_default_directory(self, temp_dir, monkeypatch):
        monkeypatch.chdir(temp_dir)
        config = load_config_from_env(temp_dir / "repo")
        assert config.default_directory == str(temp_dir / "repo")

    def test_dotenv_file_in_repository(self, temp_dir, monkeypatch):
        monkeypatch.chdir(temp_dir)
        repo = temp_dir / "repo"
        repo.mkdir()
        (repo / ".env").write_text("MCP_GIT_TIMEOUT_SECONDS=7\n")
        # load_dotenv writes to os.environ; registering the variable makes
        # monkeypatch remove it again at teardown
        monkeypatch.setenv("MCP_GIT_TIMEOUT_SECONDS", "")
        monkeypatch.delenv("MCP_GIT_TIMEOUT_SECONDS")

        config = load_config_from_env(repo)

        assert config.command_timeout_seconds == 7

    def test_dotenv_does_not_override_environment(self, temp_dir, monkeypatch):
        monkeypatch.chdir(temp_dir)
        (temp_dir / ".env").write_text("MCP_GIT_EXECUTABLE=/from/dotenv\n")
        monkeypatch.setenv("MCP_GIT_EXECUTABLE", "/from/env")

        assert load_config_from_env().git_executable == "/from/env"
