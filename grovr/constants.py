"""Shared constants for grovr."""

from dataclasses import dataclass
from typing import List


@dataclass
class ColumnDefinition:
    """Definition of a table column."""

    key: str
    label: str
    width: int = 0  # 0 means auto-width


# Worktree table columns for both CLI and TUI
COLUMNS: List[ColumnDefinition] = [
    ColumnDefinition("branch", "Branch", 30),
    ColumnDefinition("path", "Path", 0),
    ColumnDefinition("changes", "Changes", 14),
    ColumnDefinition("notes", "Notes", 20),
]


SYMBOL_MAIN = "@"
SYMBOL_BARE = "B"
SYMBOL_ORPHANED = "⚠"
SYMBOL_CLEAN = "✓"
DETACHED_LABEL = "(detached)"


# Colors shared by the CLI (Rich) and the TUI (Textual)
class WorktreeStyleType:
    """Style types for worktree rows."""

    MAIN = "main"
    DIRTY = "dirty"
    ORPHANED = "orphaned"
    CLEAN = "clean"


COLORS = {
    WorktreeStyleType.MAIN: "cyan",
    WorktreeStyleType.DIRTY: "yellow",
    WorktreeStyleType.ORPHANED: "red",
    WorktreeStyleType.CLEAN: "green",
}


LEGEND_TEXT = """
Legend:
@ = Main worktree        B = Bare repository entry
S = Staged files         M = Modified (unstaged) files
U = Untracked files      ✓ = Clean
⚠ = Directory missing (run prune)
"""
