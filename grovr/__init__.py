"""
grovr - git worktree lifecycle management
"""

from .__version__ import __version__
from .config import Config
from .services.git import CommandRunner, WorktreeManager, BranchService

__all__ = ["Config", "CommandRunner", "WorktreeManager", "BranchService", "__version__"]
