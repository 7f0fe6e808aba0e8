"""Git-related services for grovr."""

from .runner import CommandRunner
from .branches import BranchService
from .worktrees import WorktreeManager
from .porcelain import parse_status, parse_worktree_list
from .remote_url import parse_remote_url
from .file_copy import copy_paths_to_worktree

__all__ = [
    "CommandRunner",
    "BranchService",
    "WorktreeManager",
    "parse_status",
    "parse_worktree_list",
    "parse_remote_url",
    "copy_paths_to_worktree",
]
