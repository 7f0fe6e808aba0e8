"""Custom exceptions for grovr"""

from typing import Optional


class GrovrError(Exception):
    """Base exception for all grovr errors."""
    pass


class GitOperationError(GrovrError):
    """Exception raised for errors in Git operations."""

    def __init__(self, operation: str, branch: Optional[str] = None, message: Optional[str] = None):
        self.operation = operation
        self.branch = branch
        self.message = message

        error_msg = f"Git operation '{operation}' failed"
        if branch:
            error_msg += f" for branch '{branch}'"
        if message:
            error_msg += f": {message}"

        super().__init__(error_msg)


class LaunchFailure(GitOperationError):
    """Exception raised when the git executable cannot be started at all."""

    def __init__(self, operation: str, message: Optional[str] = None):
        super().__init__(operation, message=message or "could not launch git")


class GitCommandFailed(GitOperationError):
    """Exception raised when git ran and exited non-zero.

    ``stderr`` carries git's own error text verbatim.
    """

    def __init__(
        self,
        operation: str,
        stderr: str,
        exit_code: Optional[int] = None,
        branch: Optional[str] = None,
    ):
        self.stderr = stderr.strip()
        self.exit_code = exit_code
        detail = self.stderr or f"exit code {exit_code}"
        super().__init__(operation, branch, detail)


class BranchNotMergedError(GitCommandFailed):
    """Exception raised when a soft branch delete is refused because the branch is unmerged."""
    pass


class CommandTimeout(GitOperationError):
    """Exception raised when git did not finish before its deadline and was killed."""

    def __init__(self, operation: str, timeout: float):
        self.timeout = timeout
        super().__init__(operation, message=f"timed out after {timeout:g}s")


class NoDefaultBranch(GitOperationError):
    """Exception raised when no default branch can be determined for a repository."""

    def __init__(self):
        super().__init__("default_branch", message="Could not determine default branch")


class DetachedHeadError(GitOperationError):
    """Exception raised when repository is in detached HEAD state."""

    def __init__(self):
        super().__init__("check_state", message="Repository is in detached HEAD state")


class PartialSuccess(GrovrError):
    """A composite operation's primary step succeeded but a secondary step failed.

    The primary step is never rolled back.
    """

    def __init__(self, primary: str, secondary: str, message: str):
        self.primary = primary
        self.secondary = secondary
        self.message = message
        super().__init__(message)


class BranchDeleteFailed(PartialSuccess):
    """The worktree was removed, but deleting its branch failed.

    ``removal`` is the WorktreeRemoval record of the removed worktree.
    """

    def __init__(self, worktree_path: str, branch: str, stderr: str, removal=None):
        self.worktree_path = worktree_path
        self.branch = branch
        self.stderr = stderr.strip()
        self.removal = removal
        super().__init__(
            "remove_worktree",
            "delete_branch",
            f"Worktree removed but failed to delete branch: {self.stderr}",
        )


class FileCopyError(GrovrError):
    """Exception raised when copying bootstrap files into a worktree fails."""

    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(f"Failed to copy '{path}': {message}")


class BootstrapCopyFailed(PartialSuccess):
    """The worktree was created, but copying bootstrap files into it failed.

    ``creation`` is the WorktreeCreation record; the worktree and its branch exist.
    """

    def __init__(self, creation, error: FileCopyError):
        self.creation = creation
        self.worktree_path = creation.path
        self.path = error.path
        super().__init__(
            "create_worktree",
            "copy_paths",
            f"Worktree created at {creation.path} but copying bootstrap files failed: {error}",
        )


class SecretStoreError(GrovrError):
    """Exception raised for errors reading or writing secrets."""
    pass


class SettingsError(GrovrError):
    """Exception raised when settings cannot be loaded, changed or saved."""
    pass


class LauncherError(GrovrError):
    """Exception raised when an editor, terminal or file manager cannot be opened."""
    pass


class GitHubAPIError(GrovrError):
    """Exception raised for errors in GitHub API operations."""

    def __init__(self, operation: str, message: Optional[str] = None):
        self.operation = operation
        self.message = message

        error_msg = f"GitHub API operation '{operation}' failed"
        if message:
            error_msg += f": {message}"

        super().__init__(error_msg)


class JiraAPIError(GrovrError):
    """Exception raised for errors in Jira API operations."""

    def __init__(self, operation: str, message: Optional[str] = None):
        self.operation = operation
        self.message = message

        error_msg = f"Jira API operation '{operation}' failed"
        if message:
            error_msg += f": {message}"

        super().__init__(error_msg)
