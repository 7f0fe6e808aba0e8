"""Data models for grovr."""

from .branch import Branch
from .remote import RemoteIdentity
from .worktree import (
    CommandResult,
    RemoveState,
    Worktree,
    WorktreeCreation,
    WorktreeRemoval,
    WorktreeStatus,
)

__all__ = [
    "Branch",
    "CommandResult",
    "RemoteIdentity",
    "RemoveState",
    "Worktree",
    "WorktreeCreation",
    "WorktreeRemoval",
    "WorktreeStatus",
]
