"""Worktree lifecycle service for grovr."""

import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, Iterable, List, Optional, Union

from grovr.exceptions import (
    BootstrapCopyFailed,
    BranchDeleteFailed,
    FileCopyError,
    GitCommandFailed,
    GitOperationError,
    GrovrError,
)
from grovr.logging_config import get_logger
from grovr.models.remote import RemoteIdentity
from grovr.models.worktree import (
    RemoveState,
    Worktree,
    WorktreeCreation,
    WorktreeRemoval,
    WorktreeStatus,
)
from grovr.services.git.branches import BranchService
from grovr.services.git.file_copy import copy_paths_to_worktree
from grovr.services.git.porcelain import parse_status, parse_worktree_list
from grovr.services.git.remote_url import parse_remote_url
from grovr.services.git.runner import CommandRunner
from grovr.utils.threading import get_optimal_worker_count

logger = get_logger(__name__)


class WorktreeManager:
    """Creates, lists, inspects and removes git worktrees.

    The manager keeps no state of its own: git is queried on every call. Callers
    must not run two mutating operations against the same repository at once;
    git's own lock files are the only guard.
    """

    def __init__(self, runner: CommandRunner, config=None):
        """Initialize the worktree manager.

        Args:
            runner: Command runner used for every git invocation
            config: Optional Config object or dictionary
        """
        self.runner = runner
        self.config = config if config is not None else {}
        self.remote_name = self.config.get("remote_name", "origin")
        self.branches = BranchService(runner, remote_name=self.remote_name)

    # ------------------------------------------------------------------ reads

    def list_worktrees(self, repo_path: str) -> List[Worktree]:
        """List all worktrees of a repository, main worktree first."""
        result = self.runner.check(repo_path, ["worktree", "list", "--porcelain"], "list_worktrees")
        worktrees = parse_worktree_list(result.stdout)

        logger.debug(f"Found {len(worktrees)} worktrees")
        for wt in worktrees:
            logger.debug(f"  {wt}")
        return worktrees

    def get_worktree_status(self, worktree_path: str) -> WorktreeStatus:
        """Count staged, unstaged and untracked paths in a worktree."""
        result = self.runner.check(worktree_path, ["status", "--porcelain"], "worktree_status")
        return parse_status(result.stdout)

    def get_worktree_statuses(
        self, worktree_paths: Iterable[str]
    ) -> Dict[str, Union[WorktreeStatus, GrovrError]]:
        """Get the status of many worktrees in parallel.

        A failure for one worktree is returned in its slot instead of being
        raised, so one broken worktree does not hide the others.
        """
        paths = list(worktree_paths)
        if not paths:
            return {}

        max_workers = min(len(paths), get_optimal_worker_count(self.config.get("background_workers")))
        logger.debug(f"Checking status of {len(paths)} worktrees using {max_workers} workers")

        results: Dict[str, Union[WorktreeStatus, GrovrError]] = {}
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            future_to_path = {
                executor.submit(self.get_worktree_status, path): path for path in paths
            }
            for future in as_completed(future_to_path):
                path = future_to_path[future]
                try:
                    results[path] = future.result()
                except GrovrError as e:
                    logger.warning(f"Could not check worktree status for {path}: {e}")
                    results[path] = e

        return results

    def get_remote_url(self, repo_path: str) -> Optional[str]:
        """Return the fetch URL of the configured remote, or None if there is none."""
        result = self.runner.run(repo_path, ["remote", "get-url", self.remote_name], operation="remote_url")
        if not result.ok:
            logger.debug(f"No URL for remote {self.remote_name}: {result.stderr.strip()}")
            return None
        return result.stdout.strip()

    def get_remote_identity(self, repo_path: str) -> Optional[RemoteIdentity]:
        """Return the owner/repo pair of the configured remote, if it can be parsed."""
        url = self.get_remote_url(repo_path)
        if not url:
            return None
        identity = parse_remote_url(url)
        if identity is None:
            logger.debug(f"Remote URL not recognised: {url}")
        return identity

    # -------------------------------------------------------------- mutations

    def create_worktree(
        self,
        repo_path: str,
        worktree_path: str,
        branch_name: str,
        base_branch: str,
        copy_paths: Optional[Iterable[str]] = None,
        fetch_first: Optional[bool] = None,
    ) -> WorktreeCreation:
        """Create a worktree on a new branch started from ``base_branch``.

        When the base is a remote-tracking ref git makes the new branch track
        it, so a later ``git push`` would target the base branch. The upstream
        is unset afterwards; if that fails the worktree is kept and the error
        is reported on the returned WorktreeCreation.

        Args:
            repo_path: Path to the main repository
            worktree_path: Directory for the new worktree (must not exist yet)
            branch_name: Name of the branch to create
            base_branch: Ref the new branch starts from
            copy_paths: Relative paths to copy from the repository into the new worktree
            fetch_first: Fetch all remotes before creating (defaults to config)

        Raises:
            GitCommandFailed: ``git worktree add`` failed; nothing was created
            BootstrapCopyFailed: the worktree exists but copying ``copy_paths`` failed
        """
        if fetch_first is None:
            fetch_first = self.config.get("fetch_before_create", False)
        if fetch_first:
            self.fetch(repo_path)

        self.runner.check(
            repo_path,
            ["worktree", "add", "-b", branch_name, worktree_path, base_branch],
            "create_worktree",
            branch=branch_name,
        )
        logger.info(f"Created worktree at {worktree_path} on new branch {branch_name} from {base_branch}")

        creation = WorktreeCreation(path=worktree_path, branch=branch_name, base=base_branch)

        result = self.runner.run(
            worktree_path, ["branch", "--unset-upstream", branch_name], operation="unset_upstream"
        )
        if result.ok:
            creation.upstream_cleared = True
        else:
            # Expected when the base was a local branch: there is no upstream to unset
            creation.upstream_error = result.stderr.strip()
            logger.debug(f"Could not unset upstream of {branch_name}: {creation.upstream_error}")

        self._bootstrap(repo_path, creation, copy_paths)
        return creation

    def create_worktree_from_branch(
        self,
        repo_path: str,
        worktree_path: str,
        branch_name: str,
        copy_paths: Optional[Iterable[str]] = None,
    ) -> WorktreeCreation:
        """Create a worktree that checks out an existing branch.

        Raises:
            GitCommandFailed: ``git worktree add`` failed; nothing was created
            BootstrapCopyFailed: the worktree exists but copying ``copy_paths`` failed
        """
        self.runner.check(
            repo_path,
            ["worktree", "add", worktree_path, branch_name],
            "create_worktree",
            branch=branch_name,
        )
        logger.info(f"Created worktree at {worktree_path} for existing branch {branch_name}")

        creation = WorktreeCreation(path=worktree_path, branch=branch_name)
        self._bootstrap(repo_path, creation, copy_paths)
        return creation

    def _bootstrap(
        self, repo_path: str, creation: WorktreeCreation, copy_paths: Optional[Iterable[str]]
    ) -> None:
        if copy_paths is None:
            copy_paths = self.config.get("copy_paths") or []
        copy_paths = list(copy_paths)
        if not copy_paths:
            return
        try:
            copy_paths_to_worktree(repo_path, creation.path, copy_paths)
        except FileCopyError as e:
            logger.error(f"Worktree {creation.path} created but bootstrap copy failed: {e}")
            raise BootstrapCopyFailed(creation, e) from e

    def remove_worktree(
        self,
        repo_path: str,
        worktree_path: str,
        force: bool = False,
        delete_branch: bool = False,
        branch_name: Optional[str] = None,
    ) -> WorktreeRemoval:
        """Remove a worktree and optionally delete its branch.

        The branch is only touched after the worktree is gone. A soft delete
        refused because the branch is unmerged is retried once with ``-D``.

        Args:
            repo_path: Path to the main repository
            worktree_path: Worktree to remove
            force: Remove even with uncommitted changes, and hard-delete the branch
            delete_branch: Delete ``branch_name`` after removing the worktree
            branch_name: Branch checked out in the worktree

        Raises:
            GitCommandFailed: the worktree could not be removed; nothing changed
            BranchDeleteFailed: the worktree was removed but the branch was not deleted
        """
        logger.debug(f"[{RemoveState.REQUESTED.value}] remove {worktree_path} (force={force})")

        args = ["worktree", "remove"]
        if force:
            args.append("--force")
        args.append(worktree_path)

        logger.debug(f"[{RemoveState.REMOVING.value}] {worktree_path}")
        try:
            self.runner.check(repo_path, args, "remove_worktree")
        except GitCommandFailed as e:
            logger.error(f"[{RemoveState.FAILED.value}] Failed to remove worktree at {worktree_path}: {e}")
            raise
        logger.info(f"Removed worktree at {worktree_path}")

        removal = WorktreeRemoval(path=worktree_path, state=RemoveState.REMOVED_CLEAN)
        if not (delete_branch and branch_name):
            return removal

        try:
            removal.branch_force_deleted = self.branches.delete_branch_with_fallback(
                repo_path, branch_name, force=force
            )
        except GitOperationError as e:
            # Timeouts and launch failures carry no stderr
            detail = getattr(e, "stderr", None) or str(e)
            removal.state = RemoveState.REMOVED_BRANCH_DELETE_FAILED
            logger.error(
                f"[{removal.state.value}] "
                f"Worktree {worktree_path} removed but branch {branch_name} was not deleted: {detail}"
            )
            raise BranchDeleteFailed(worktree_path, branch_name, detail, removal=removal) from e

        removal.branch_deleted = branch_name
        logger.debug(f"[{RemoveState.REMOVED_CLEAN.value}] {worktree_path}")
        return removal

    def prune_worktrees(self, repo_path: str) -> None:
        """Prune administrative data of worktrees whose directories are gone."""
        self.runner.check(repo_path, ["worktree", "prune"], "prune_worktrees")
        logger.info("Pruned orphaned worktree metadata")

    def fetch(self, repo_path: str) -> None:
        """Fetch all remotes, pruning deleted remote branches."""
        self.runner.check(repo_path, ["fetch", "--all", "--prune"], "fetch")
        logger.info(f"Fetched all remotes for {repo_path}")

    def pull(self, worktree_path: str) -> None:
        """Pull the current branch of a worktree."""
        self.runner.check(worktree_path, ["pull"], "pull")
        logger.info(f"Pulled {worktree_path}")

    def copy_paths_to_worktree(self, source_path: str, target_path: str, paths: Iterable[str]) -> List[str]:
        """Copy bootstrap files from one worktree into another. See ``file_copy``."""
        return copy_paths_to_worktree(source_path, target_path, paths)

    @staticmethod
    def is_orphaned(worktree: Worktree) -> bool:
        """True when git still lists the worktree but its directory is gone."""
        return not worktree.is_bare and not os.path.exists(worktree.path)

    # ------------------------------------------------------------ background

    async def fetch_async(self, repo_path: str) -> None:
        await self.runner.offload(self.fetch, repo_path)

    async def pull_async(self, worktree_path: str) -> None:
        await self.runner.offload(self.pull, worktree_path)

    async def create_worktree_async(self, *args, **kwargs) -> WorktreeCreation:
        return await self.runner.offload(self.create_worktree, *args, **kwargs)

    async def remove_worktree_async(self, *args, **kwargs) -> WorktreeRemoval:
        return await self.runner.offload(self.remove_worktree, *args, **kwargs)
