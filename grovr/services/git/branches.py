"""Branch queries and mutations for grovr."""

from typing import List

import git

from grovr.exceptions import (
    BranchNotMergedError,
    DetachedHeadError,
    GitCommandFailed,
    GitOperationError,
    NoDefaultBranch,
)
from grovr.logging_config import get_logger
from grovr.models.branch import Branch
from grovr.services.git.runner import CommandRunner

logger = get_logger(__name__)

# git prints this when `branch -d` refuses an unmerged branch.
UNMERGED_MARKER = "not fully merged"


class BranchService:
    """Service for branch listing, default-branch resolution and deletion."""

    def __init__(self, runner: CommandRunner, remote_name: str = "origin"):
        """Initialize the branch service.

        Args:
            runner: Command runner used for every git invocation
            remote_name: Remote whose branches define the default branch
        """
        self.runner = runner
        self.remote_name = remote_name

    def _get_repo(self, repo_path: str) -> git.Repo:
        """Open a fresh git.Repo for one call."""
        try:
            return git.Repo(repo_path)
        except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError) as e:
            raise GitOperationError("open_repository", message=f"Not a git repository: {e}") from e

    def list_branches(self, repo_path: str, include_remote: bool = False) -> List[Branch]:
        """List local branches, and optionally remote-tracking branches.

        Args:
            repo_path: Path to the git repository
            include_remote: Also list branches of every configured remote

        Returns:
            List of Branch records, local branches first
        """
        repo = self._get_repo(repo_path)
        try:
            try:
                active = repo.active_branch.name
            except TypeError:
                # Detached HEAD
                active = None

            branches = [
                Branch(name=head.name, is_remote=False, is_head=head.name == active)
                for head in repo.heads
            ]

            if include_remote:
                for remote in repo.remotes:
                    for ref in remote.refs:
                        # Skip the symbolic <remote>/HEAD pointer
                        if ref.remote_head == "HEAD":
                            continue
                        branches.append(Branch(name=ref.name, is_remote=True, is_head=False))

            logger.debug(f"Found {len(branches)} branches in {repo_path}")
            return branches
        finally:
            repo.close()

    def get_current_branch(self, repo_path: str) -> str:
        """Return the checked-out branch name.

        Raises:
            DetachedHeadError: HEAD does not point at a branch
        """
        repo = self._get_repo(repo_path)
        try:
            return repo.active_branch.name
        except TypeError as e:
            raise DetachedHeadError() from e
        finally:
            repo.close()

    def get_default_branch(self, repo_path: str) -> str:
        """Determine the repository's default branch.

        Tries, in order: the remote's symbolic HEAD, ``<remote>/main``,
        ``<remote>/master``. None of the steps change the repository.

        Returns:
            Qualified branch name such as ``origin/main``

        Raises:
            NoDefaultBranch: none of the strategies succeeded
        """
        remote = self.remote_name

        result = self.runner.run(
            repo_path,
            ["symbolic-ref", f"refs/remotes/{remote}/HEAD", "--short"],
            operation="default_branch",
        )
        if result.ok and result.stdout.strip():
            logger.debug(f"Default branch from {remote}/HEAD: {result.stdout.strip()}")
            return result.stdout.strip()

        for candidate in (f"{remote}/main", f"{remote}/master"):
            result = self.runner.run(
                repo_path, ["rev-parse", "--verify", candidate], operation="default_branch"
            )
            if result.ok:
                logger.debug(f"Default branch from fallback: {candidate}")
                return candidate

        raise NoDefaultBranch()

    def delete_branch(self, repo_path: str, branch_name: str, force: bool = False) -> None:
        """Delete a local branch with ``-d``, or ``-D`` when forced.

        Raises:
            BranchNotMergedError: soft delete refused because the branch is unmerged
            GitCommandFailed: any other git failure
        """
        flag = "-D" if force else "-d"
        result = self.runner.run(repo_path, ["branch", flag, branch_name], operation="delete_branch")
        if result.ok:
            logger.info(f"Deleted branch {branch_name}{' (forced)' if force else ''}")
            return

        if not force and UNMERGED_MARKER in result.stderr:
            raise BranchNotMergedError(
                "delete_branch", result.stderr, result.exit_code, branch=branch_name
            )
        raise GitCommandFailed("delete_branch", result.stderr, result.exit_code, branch=branch_name)

    def delete_branch_with_fallback(
        self, repo_path: str, branch_name: str, force: bool = False
    ) -> bool:
        """Delete a branch, retrying once with ``-D`` if git reports it unmerged.

        Returns:
            True if the hard-delete flag was used

        Raises:
            GitCommandFailed: deletion failed for any other reason, or the retry failed
            CommandTimeout, LaunchFailure: raised by the runner unchanged
        """
        if force:
            self.delete_branch(repo_path, branch_name, force=True)
            return True

        try:
            self.delete_branch(repo_path, branch_name)
            return False
        except BranchNotMergedError:
            logger.info(f"Branch {branch_name} is not fully merged, retrying with -D")

        self.delete_branch(repo_path, branch_name, force=True)
        return True

    def rename_branch(self, repo_path: str, old_name: str, new_name: str) -> None:
        """Rename a local branch."""
        self.runner.check(
            repo_path, ["branch", "-m", old_name, new_name], operation="rename_branch", branch=old_name
        )
        logger.info(f"Renamed branch {old_name} -> {new_name}")
