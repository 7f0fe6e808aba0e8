"""Worktree data models."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


@dataclass
class Worktree:
    """A git worktree as reported by ``git worktree list --porcelain``."""

    path: str
    branch: str  # Empty for detached HEAD
    is_main: bool  # First entry of the listing
    is_bare: bool

    def __str__(self) -> str:
        """String representation of worktree."""
        branch = self.branch or "(detached)"
        main_marker = " (main)" if self.is_main else ""
        bare_marker = " [bare]" if self.is_bare else ""
        return f"{branch} @ {self.path}{main_marker}{bare_marker}"


@dataclass(frozen=True)
class WorktreeStatus:
    """Counts of changed paths in one worktree."""

    staged: int = 0
    unstaged: int = 0
    untracked: int = 0

    @property
    def has_changes(self) -> bool:
        return self.staged > 0 or self.unstaged > 0 or self.untracked > 0

    def to_dict(self) -> dict:
        return {
            "has_changes": self.has_changes,
            "staged": self.staged,
            "unstaged": self.unstaged,
            "untracked": self.untracked,
        }


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one git invocation. A non-zero exit is a normal result."""

    args: Tuple[str, ...]
    exit_code: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


@dataclass
class WorktreeCreation:
    """Result of creating a worktree.

    ``upstream_error`` is set when the new branch was left tracking its base
    because ``git branch --unset-upstream`` failed. The worktree itself exists.
    """

    path: str
    branch: str
    base: Optional[str] = None
    upstream_cleared: bool = False
    upstream_error: Optional[str] = None


class RemoveState(Enum):
    """States a worktree removal passes through."""
    REQUESTED = "requested"
    REMOVING = "removing"
    REMOVED_CLEAN = "removed-clean"
    REMOVED_BRANCH_DELETE_FAILED = "removed-branch-delete-failed"
    FAILED = "failed"


@dataclass
class WorktreeRemoval:
    """Result of a worktree removal.

    ``state`` is REMOVED_CLEAN when every requested step succeeded, and
    REMOVED_BRANCH_DELETE_FAILED on the record carried by ``BranchDeleteFailed``.
    """

    path: str
    branch_deleted: Optional[str] = None
    branch_force_deleted: bool = False
    state: RemoveState = RemoveState.REMOVED_CLEAN
