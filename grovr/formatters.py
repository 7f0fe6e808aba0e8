"""Display formatting shared by the CLI and the TUI."""

from typing import Optional, Union

from grovr.constants import (
    DETACHED_LABEL,
    SYMBOL_BARE,
    SYMBOL_CLEAN,
    SYMBOL_MAIN,
    SYMBOL_ORPHANED,
    WorktreeStyleType,
)
from grovr.exceptions import GrovrError
from grovr.models.worktree import Worktree, WorktreeStatus


def format_branch(worktree: Worktree) -> str:
    """Branch label with the main-worktree marker."""
    name = worktree.branch or DETACHED_LABEL
    return f"{name} {SYMBOL_MAIN}" if worktree.is_main else name


def format_changes(status: Optional[Union[WorktreeStatus, GrovrError]]) -> str:
    """
    Format a worktree status as compact change counts.

    Examples:
        "✓" for a clean worktree, "S2 M1 U3" for a dirty one, "?" when unknown
    """
    if status is None or isinstance(status, GrovrError):
        return "?"
    if not status.has_changes:
        return SYMBOL_CLEAN

    parts = []
    if status.staged:
        parts.append(f"S{status.staged}")
    if status.unstaged:
        parts.append(f"M{status.unstaged}")
    if status.untracked:
        parts.append(f"U{status.untracked}")
    return " ".join(parts)


def format_notes(worktree: Worktree, orphaned: bool) -> str:
    notes = []
    if worktree.is_bare:
        notes.append(f"{SYMBOL_BARE} bare")
    if orphaned:
        notes.append(f"{SYMBOL_ORPHANED} missing")
    return ", ".join(notes)


def get_worktree_style_type(
    worktree: Worktree, status: Optional[Union[WorktreeStatus, GrovrError]], orphaned: bool
) -> str:
    """Pick the row style for a worktree."""
    if orphaned:
        return WorktreeStyleType.ORPHANED
    if worktree.is_main:
        return WorktreeStyleType.MAIN
    if isinstance(status, WorktreeStatus) and status.has_changes:
        return WorktreeStyleType.DIRTY
    return WorktreeStyleType.CLEAN
