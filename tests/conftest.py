"""Pytest fixtures for grovr tests"""
import logging
import tempfile
from pathlib import Path
from unittest.mock import Mock

import git
import pytest

from grovr.config import Config
from grovr.models.worktree import CommandResult
from grovr.services.git import CommandRunner, WorktreeManager
from grovr.services.secret_store import SecretStore


def _init_repo(repo_path: Path) -> git.Repo:
    repo_path.mkdir(parents=True)
    repo = git.Repo.init(repo_path)

    # Configure git user for commits
    with repo.config_writer() as writer:
        writer.set_value("user", "name", "Test User")
        writer.set_value("user", "email", "test@example.com")
        writer.set_value("commit", "gpgsign", "false")

    (repo_path / "README.md").write_text("# Test Repository\n")
    repo.index.add(["README.md"])
    repo.index.commit("Initial commit")

    # Normalise the initial branch name regardless of init.defaultBranch
    repo.git.branch("-M", "main")
    return repo


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def config():
    return Config()


@pytest.fixture
def git_repo(temp_dir):
    """Create a real Git repository with a GitHub-style origin URL (never contacted)."""
    repo = _init_repo(temp_dir / "test_repo")
    repo.create_remote("origin", "git@github.com:test/test-repo.git")

    yield repo

    repo.close()


@pytest.fixture
def repo_with_origin(temp_dir):
    """Create a repository whose origin is a local bare repository holding main."""
    origin_path = temp_dir / "origin.git"
    origin = git.Repo.init(origin_path, bare=True)
    origin.git.symbolic_ref("HEAD", "refs/heads/main")

    repo = _init_repo(temp_dir / "work_repo")
    repo.create_remote("origin", str(origin_path))
    # Newer git creates origin/HEAD on fetch; tests set it explicitly
    with repo.config_writer() as writer:
        writer.set_value('remote "origin"', "followRemoteHEAD", "never")
    repo.git.push("origin", "main")
    repo.git.fetch("origin")

    yield repo

    repo.close()
    origin.close()


@pytest.fixture
def runner():
    with CommandRunner() as runner:
        yield runner


@pytest.fixture
def manager(runner, config):
    return WorktreeManager(runner, config)


@pytest.fixture
def mock_runner():
    """A CommandRunner double that records calls and succeeds by default."""
    runner = Mock(spec=CommandRunner)

    def ok(working_dir, args, timeout=None, operation=None):
        return CommandResult(args=tuple(args), exit_code=0, stdout="", stderr="")

    def check(working_dir, args, operation, timeout=None, branch=None):
        return runner.run(working_dir, args, timeout=timeout, operation=operation)

    runner.run.side_effect = ok
    runner.check.side_effect = check
    return runner


def result(args, exit_code=0, stdout="", stderr=""):
    """Build a CommandResult for mock runners."""
    return CommandResult(args=tuple(args), exit_code=exit_code, stdout=stdout, stderr=stderr)


class MemorySecretStore(SecretStore):
    """Dict-backed secret store."""

    def __init__(self):
        self.values = {}

    def put(self, key, value):
        self.values[key] = value

    def get(self, key):
        return self.values.get(key)

    def delete(self, key):
        self.values.pop(key, None)


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Undo handler changes made by setup_logging (the CLI calls it)."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
