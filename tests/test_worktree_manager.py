"""Tests for WorktreeManager"""
import asyncio
import os
import shutil
from unittest.mock import patch

import git
import pytest

from grovr.config import Config
from grovr.exceptions import (
    BootstrapCopyFailed,
    BranchDeleteFailed,
    CommandTimeout,
    FileCopyError,
    GitCommandFailed,
    GrovrError,
    LaunchFailure,
    PartialSuccess,
)
from grovr.models.remote import RemoteIdentity
from grovr.models.worktree import RemoveState, WorktreeStatus
from grovr.services.git import WorktreeManager

from conftest import result


def _write(path, content="x\n"):
    with open(path, "w") as f:
        f.write(content)


def _commit_in(repo_path, filename, message):
    repo = git.Repo(repo_path)
    try:
        _write(os.path.join(repo_path, filename))
        repo.git.add(filename)
        repo.git.commit("-m", message)
    finally:
        repo.close()


@pytest.fixture
def wt_path(temp_dir):
    return str(temp_dir / "wt-feature")


class TestListWorktrees:
    """Test listing worktrees."""

    def test_fresh_repo_has_only_main(self, git_repo, manager):
        worktrees = manager.list_worktrees(git_repo.working_dir)

        assert len(worktrees) == 1
        assert worktrees[0].is_main is True
        assert worktrees[0].branch == "main"
        assert os.path.realpath(worktrees[0].path) == os.path.realpath(git_repo.working_dir)

    def test_created_worktree_is_listed(self, git_repo, manager, wt_path):
        manager.create_worktree(git_repo.working_dir, wt_path, "feature", "main")

        worktrees = manager.list_worktrees(git_repo.working_dir)

        assert len(worktrees) == 2
        assert worktrees[1].branch == "feature"
        assert worktrees[1].is_main is False
        assert os.path.realpath(worktrees[1].path) == os.path.realpath(wt_path)

    def test_listing_from_linked_worktree_puts_main_first(self, git_repo, manager, wt_path):
        manager.create_worktree(git_repo.working_dir, wt_path, "feature", "main")

        worktrees = manager.list_worktrees(wt_path)

        assert worktrees[0].is_main is True
        assert worktrees[0].branch == "main"

    def test_not_a_repository(self, temp_dir, manager):
        with pytest.raises(GitCommandFailed):
            manager.list_worktrees(str(temp_dir))


class TestWorktreeStatus:
    """Test per-worktree change counts."""

    def test_clean(self, git_repo, manager):
        status = manager.get_worktree_status(git_repo.working_dir)
        assert status == WorktreeStatus()
        assert not status.has_changes

    def test_dirty(self, git_repo, manager):
        root = git_repo.working_dir
        _write(os.path.join(root, "README.md"), "changed\n")
        _write(os.path.join(root, "new.txt"))
        _write(os.path.join(root, "staged.txt"))
        git_repo.index.add(["staged.txt"])

        status = manager.get_worktree_status(root)

        assert status == WorktreeStatus(staged=1, unstaged=1, untracked=1)

    def test_statuses_in_parallel(self, git_repo, manager, wt_path):
        manager.create_worktree(git_repo.working_dir, wt_path, "feature", "main")
        _write(os.path.join(wt_path, "scratch.txt"))

        statuses = manager.get_worktree_statuses([git_repo.working_dir, wt_path])

        assert statuses[git_repo.working_dir] == WorktreeStatus()
        assert statuses[wt_path].untracked == 1

    def test_failure_is_kept_in_its_slot(self, git_repo, manager, temp_dir):
        missing = str(temp_dir / "gone")

        statuses = manager.get_worktree_statuses([git_repo.working_dir, missing])

        assert isinstance(statuses[git_repo.working_dir], WorktreeStatus)
        assert isinstance(statuses[missing], LaunchFailure)
        assert isinstance(statuses[missing], GrovrError)

    def test_no_paths(self, manager):
        assert manager.get_worktree_statuses([]) == {}


class TestCreateWorktree:
    """Test worktree creation."""

    def test_from_local_base_keeps_upstream_error(self, git_repo, manager, wt_path):
        creation = manager.create_worktree(git_repo.working_dir, wt_path, "feature", "main")

        assert creation.path == wt_path
        assert creation.branch == "feature"
        assert creation.base == "main"
        # A branch started from a local branch has no upstream to unset
        assert creation.upstream_cleared is False
        assert creation.upstream_error
        assert os.path.isdir(wt_path)

    def test_from_remote_base_clears_upstream(self, repo_with_origin, manager, temp_dir):
        path = str(temp_dir / "wt-remote")

        creation = manager.create_worktree(repo_with_origin.working_dir, path, "topic", "origin/main")

        assert creation.upstream_cleared is True
        assert creation.upstream_error is None
        reader = repo_with_origin.config_reader()
        assert not reader.has_option('branch "topic"', "merge")

    def test_existing_branch_name_fails_without_side_effects(self, git_repo, manager, wt_path):
        git_repo.git.branch("feature")

        with pytest.raises(GitCommandFailed) as exc_info:
            manager.create_worktree(git_repo.working_dir, wt_path, "feature", "main")

        assert exc_info.value.branch == "feature"
        assert "already exists" in exc_info.value.stderr
        assert len(manager.list_worktrees(git_repo.working_dir)) == 1

    def test_existing_path_fails(self, git_repo, manager, wt_path):
        os.makedirs(wt_path)
        _write(os.path.join(wt_path, "occupied.txt"))

        with pytest.raises(GitCommandFailed):
            manager.create_worktree(git_repo.working_dir, wt_path, "feature", "main")

    def test_from_existing_branch(self, git_repo, manager, wt_path):
        git_repo.git.branch("existing")

        creation = manager.create_worktree_from_branch(git_repo.working_dir, wt_path, "existing")

        assert creation.branch == "existing"
        worktrees = manager.list_worktrees(git_repo.working_dir)
        assert [wt.branch for wt in worktrees] == ["main", "existing"]

    def test_from_missing_branch_fails(self, git_repo, manager, wt_path):
        with pytest.raises(GitCommandFailed):
            manager.create_worktree_from_branch(git_repo.working_dir, wt_path, "nope")

    def test_copies_bootstrap_files(self, git_repo, manager, wt_path):
        _write(os.path.join(git_repo.working_dir, ".env"), "SECRET=1\n")

        manager.create_worktree(
            git_repo.working_dir, wt_path, "feature", "main", copy_paths=[".env", ".env.local"]
        )

        with open(os.path.join(wt_path, ".env")) as f:
            assert f.read() == "SECRET=1\n"
        assert not os.path.exists(os.path.join(wt_path, ".env.local"))

    def test_copy_paths_default_from_config(self, git_repo, runner, wt_path):
        _write(os.path.join(git_repo.working_dir, ".env"), "A=1\n")
        manager = WorktreeManager(runner, Config(copy_paths=[".env"]))

        manager.create_worktree(git_repo.working_dir, wt_path, "feature", "main")

        assert os.path.exists(os.path.join(wt_path, ".env"))

    def test_copy_failure_after_worktree_created(self, git_repo, manager, wt_path):
        root = git_repo.working_dir
        # On branch "base" a tracked file occupies the path the copy needs as a directory
        git_repo.git.checkout("-b", "base")
        _commit_in(root, "settings", "add settings file")
        git_repo.git.checkout("main")
        os.makedirs(os.path.join(root, "settings"))
        _write(os.path.join(root, "settings", "app.json"), "{}")
        os.makedirs(os.path.join(root, "config"))
        _write(os.path.join(root, "config", "local.json"), "{}")
        _write(os.path.join(root, ".env"))

        with pytest.raises(BootstrapCopyFailed) as exc_info:
            manager.create_worktree(
                root, wt_path, "feature", "base",
                copy_paths=["config/local.json", "settings/app.json", ".env"],
            )

        error = exc_info.value
        assert isinstance(error, PartialSuccess)
        assert isinstance(error.__cause__, FileCopyError)
        assert error.path == "settings/app.json"
        assert error.creation.path == wt_path
        assert error.creation.branch == "feature"
        assert error.creation.upstream_cleared is False
        # The worktree and earlier copies stay; later copies are not attempted
        assert os.path.exists(os.path.join(wt_path, "config", "local.json"))
        assert not os.path.exists(os.path.join(wt_path, ".env"))
        assert len(manager.list_worktrees(root)) == 2

    def test_copy_failure_from_existing_branch_carries_creation(self, git_repo, manager, wt_path):
        git_repo.git.branch("existing")
        root = git_repo.working_dir

        with pytest.raises(BootstrapCopyFailed) as exc_info:
            with patch(
                "grovr.services.git.worktrees.copy_paths_to_worktree",
                side_effect=FileCopyError(".env", "Permission denied"),
            ):
                manager.create_worktree_from_branch(root, wt_path, "existing", copy_paths=[".env"])

        assert exc_info.value.creation.branch == "existing"
        assert exc_info.value.path == ".env"
        assert os.path.isdir(wt_path)

    def test_argv(self, mock_runner):
        manager = WorktreeManager(mock_runner)

        manager.create_worktree("/repo", "/wt", "feature", "origin/main", copy_paths=[])

        calls = [(c.args[0], c.args[1]) for c in mock_runner.run.call_args_list]
        assert calls == [
            ("/repo", ["worktree", "add", "-b", "feature", "/wt", "origin/main"]),
            ("/wt", ["branch", "--unset-upstream", "feature"]),
        ]

    def test_fetch_first(self, mock_runner):
        manager = WorktreeManager(mock_runner, Config(fetch_before_create=True))

        manager.create_worktree("/repo", "/wt", "feature", "origin/main", copy_paths=[])

        assert mock_runner.run.call_args_list[0].args[1] == ["fetch", "--all", "--prune"]

    def test_unset_upstream_failure_is_not_raised(self, mock_runner):
        mock_runner.run.side_effect = [
            result(["worktree"]),
            result(["branch"], exit_code=128, stderr="fatal: branch 'feature' has no upstream information\n"),
        ]
        manager = WorktreeManager(mock_runner)

        creation = manager.create_worktree("/repo", "/wt", "feature", "main", copy_paths=[])

        assert creation.upstream_cleared is False
        assert creation.upstream_error == "fatal: branch 'feature' has no upstream information"

    def test_async(self, git_repo, manager, wt_path):
        creation = asyncio.run(
            manager.create_worktree_async(git_repo.working_dir, wt_path, "feature", "main")
        )
        assert creation.branch == "feature"
        assert os.path.isdir(wt_path)


class TestRemoveWorktree:
    """Test worktree removal and branch cleanup."""

    def test_remove_clean_worktree(self, git_repo, manager, wt_path):
        manager.create_worktree(git_repo.working_dir, wt_path, "feature", "main")

        removal = manager.remove_worktree(git_repo.working_dir, wt_path)

        assert removal.branch_deleted is None
        assert removal.state is RemoveState.REMOVED_CLEAN
        assert not os.path.exists(wt_path)
        assert len(manager.list_worktrees(git_repo.working_dir)) == 1
        assert "feature" in [h.name for h in git_repo.heads]

    def test_dirty_worktree_needs_force(self, git_repo, manager, wt_path):
        manager.create_worktree(git_repo.working_dir, wt_path, "feature", "main")
        _write(os.path.join(wt_path, "untracked.txt"))

        with pytest.raises(GitCommandFailed):
            manager.remove_worktree(git_repo.working_dir, wt_path)
        assert os.path.exists(wt_path)

        manager.remove_worktree(git_repo.working_dir, wt_path, force=True)
        assert not os.path.exists(wt_path)

    def test_failed_remove_leaves_branch_alone(self, git_repo, manager, wt_path):
        manager.create_worktree(git_repo.working_dir, wt_path, "feature", "main")
        _write(os.path.join(wt_path, "untracked.txt"))

        with pytest.raises(GitCommandFailed):
            manager.remove_worktree(
                git_repo.working_dir, wt_path, delete_branch=True, branch_name="feature"
            )

        assert "feature" in [h.name for h in git_repo.heads]

    def test_delete_merged_branch(self, git_repo, manager, wt_path):
        manager.create_worktree(git_repo.working_dir, wt_path, "feature", "main")

        removal = manager.remove_worktree(
            git_repo.working_dir, wt_path, delete_branch=True, branch_name="feature"
        )

        assert removal.branch_deleted == "feature"
        assert removal.branch_force_deleted is False
        assert removal.state is RemoveState.REMOVED_CLEAN
        assert "feature" not in [h.name for h in git_repo.heads]

    def test_delete_unmerged_branch_falls_back_to_hard_delete(self, git_repo, manager, wt_path):
        manager.create_worktree(git_repo.working_dir, wt_path, "feature", "main")
        _commit_in(wt_path, "work.txt", "unmerged work")

        removal = manager.remove_worktree(
            git_repo.working_dir, wt_path, delete_branch=True, branch_name="feature"
        )

        assert removal.branch_deleted == "feature"
        assert removal.branch_force_deleted is True
        assert "feature" not in [h.name for h in git_repo.heads]

    def test_branch_delete_failure_is_partial_success(self, git_repo, manager, wt_path):
        manager.create_worktree(git_repo.working_dir, wt_path, "feature", "main")

        with pytest.raises(BranchDeleteFailed) as exc_info:
            manager.remove_worktree(
                git_repo.working_dir, wt_path, delete_branch=True, branch_name="ghost"
            )

        error = exc_info.value
        assert isinstance(error, PartialSuccess)
        assert error.branch == "ghost"
        assert str(error).startswith("Worktree removed but failed to delete branch: ")
        assert "ghost" in error.stderr
        assert error.removal.state is RemoveState.REMOVED_BRANCH_DELETE_FAILED
        assert error.removal.branch_deleted is None
        # The worktree stays removed
        assert not os.path.exists(wt_path)
        assert len(manager.list_worktrees(git_repo.working_dir)) == 1

    def test_delete_branch_without_name_is_ignored(self, git_repo, manager, wt_path):
        manager.create_worktree(git_repo.working_dir, wt_path, "feature", "main")

        removal = manager.remove_worktree(git_repo.working_dir, wt_path, delete_branch=True)

        assert removal.branch_deleted is None
        assert "feature" in [h.name for h in git_repo.heads]

    def test_argv_force(self, mock_runner):
        manager = WorktreeManager(mock_runner)

        manager.remove_worktree("/repo", "/wt", force=True, delete_branch=True, branch_name="feature")

        calls = [c.args[1] for c in mock_runner.run.call_args_list]
        assert calls == [
            ["worktree", "remove", "--force", "/wt"],
            ["branch", "-D", "feature"],
        ]

    def test_branch_delete_failed_carries_stderr(self, mock_runner):
        mock_runner.run.side_effect = [
            result(["worktree"]),
            result(["branch"], exit_code=1, stderr="error: cannot delete branch 'feature' used by worktree at '/x'\n"),
        ]
        manager = WorktreeManager(mock_runner)

        with pytest.raises(BranchDeleteFailed) as exc_info:
            manager.remove_worktree("/repo", "/wt", delete_branch=True, branch_name="feature")

        assert exc_info.value.stderr == "error: cannot delete branch 'feature' used by worktree at '/x'"
        assert exc_info.value.worktree_path == "/wt"

    def test_branch_delete_timeout_is_partial_success(self, mock_runner):
        mock_runner.run.side_effect = [
            result(["worktree"]),
            CommandTimeout("delete_branch", 5),
        ]
        manager = WorktreeManager(mock_runner)

        with pytest.raises(PartialSuccess) as exc_info:
            manager.remove_worktree("/repo", "/wt", delete_branch=True, branch_name="feature")

        error = exc_info.value
        assert isinstance(error, BranchDeleteFailed)
        assert isinstance(error.__cause__, CommandTimeout)
        assert "timed out" in error.stderr
        assert error.removal.path == "/wt"
        assert error.removal.state is RemoveState.REMOVED_BRANCH_DELETE_FAILED

    def test_branch_delete_launch_failure_is_partial_success(self, mock_runner):
        mock_runner.run.side_effect = [
            result(["worktree"]),
            LaunchFailure("delete_branch", "git executable not found"),
        ]
        manager = WorktreeManager(mock_runner)

        with pytest.raises(BranchDeleteFailed) as exc_info:
            manager.remove_worktree("/repo", "/wt", delete_branch=True, branch_name="feature")

        assert "git executable not found" in exc_info.value.stderr

    def test_async(self, git_repo, manager, wt_path):
        manager.create_worktree(git_repo.working_dir, wt_path, "feature", "main")

        asyncio.run(manager.remove_worktree_async(git_repo.working_dir, wt_path))

        assert not os.path.exists(wt_path)


class TestPrune:
    """Test orphan detection and pruning."""

    def test_prune_orphaned_worktree(self, git_repo, manager, wt_path):
        manager.create_worktree(git_repo.working_dir, wt_path, "feature", "main")
        shutil.rmtree(wt_path)

        worktrees = manager.list_worktrees(git_repo.working_dir)
        assert len(worktrees) == 2
        assert manager.is_orphaned(worktrees[1]) is True
        assert manager.is_orphaned(worktrees[0]) is False

        manager.prune_worktrees(git_repo.working_dir)

        assert len(manager.list_worktrees(git_repo.working_dir)) == 1

    def test_prune_without_orphans_is_noop(self, git_repo, manager, wt_path):
        manager.create_worktree(git_repo.working_dir, wt_path, "feature", "main")
        manager.prune_worktrees(git_repo.working_dir)
        assert len(manager.list_worktrees(git_repo.working_dir)) == 2


class TestRemote:
    """Test remote inspection and network operations."""

    def test_remote_identity(self, git_repo, manager):
        assert manager.get_remote_identity(git_repo.working_dir) == RemoteIdentity("test", "test-repo")

    def test_remote_url(self, git_repo, manager):
        assert manager.get_remote_url(git_repo.working_dir) == "git@github.com:test/test-repo.git"

    def test_no_remote(self, git_repo, manager):
        git_repo.delete_remote("origin")
        assert manager.get_remote_url(git_repo.working_dir) is None
        assert manager.get_remote_identity(git_repo.working_dir) is None

    def test_unrecognised_remote(self, repo_with_origin, manager):
        assert manager.get_remote_identity(repo_with_origin.working_dir) is None

    def test_fetch(self, repo_with_origin, manager):
        repo_with_origin.git.push("origin", "main:release")

        manager.fetch(repo_with_origin.working_dir)

        names = [ref.name for ref in repo_with_origin.remotes.origin.refs]
        assert "origin/release" in names

    def test_fetch_async(self, repo_with_origin, manager):
        asyncio.run(manager.fetch_async(repo_with_origin.working_dir))

    def test_pull(self, repo_with_origin, manager, temp_dir):
        repo_with_origin.git.branch("--set-upstream-to=origin/main", "main")
        clone_path = temp_dir / "other"
        other = git.Repo.clone_from(str(temp_dir / "origin.git"), clone_path)
        try:
            with other.config_writer() as writer:
                writer.set_value("user", "name", "Other")
                writer.set_value("user", "email", "other@example.com")
            _write(clone_path / "upstream.txt")
            other.index.add(["upstream.txt"])
            other.index.commit("Upstream change")
            other.git.push("origin", "main")
        finally:
            other.close()

        manager.pull(repo_with_origin.working_dir)

        assert os.path.exists(os.path.join(repo_with_origin.working_dir, "upstream.txt"))

    def test_fetch_failure_raises(self, git_repo, runner):
        git_repo.delete_remote("origin")
        git_repo.create_remote("origin", "/nonexistent/grovr-remote.git")
        manager = WorktreeManager(runner)

        with pytest.raises(GitCommandFailed):
            manager.fetch(git_repo.working_dir)
