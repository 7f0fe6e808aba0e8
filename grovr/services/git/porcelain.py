"""Parsers for git's porcelain output.

Pure functions, no I/O. Malformed input degrades to best-effort values so
that one bad block never hides the rest of a listing.
"""

from typing import Iterable, List, Optional, Union

from grovr.models.worktree import Worktree, WorktreeStatus

BRANCH_PREFIX = "branch "
LOCAL_BRANCH_REF = "refs/heads/"
WORKTREE_PREFIX = "worktree "


def _lines(output: Union[str, Iterable[str]]) -> Iterable[str]:
    if isinstance(output, str):
        return output.splitlines()
    return output


def parse_worktree_list(output: Union[str, Iterable[str]]) -> List[Worktree]:
    """Parse ``git worktree list --porcelain`` output.

    Format (one block per worktree, blank line between blocks):

        worktree /path/to/worktree
        HEAD <sha>
        branch refs/heads/<name>     (or "detached")
        bare                         (bare repository entry only)

    The first record emitted is the main worktree; git always lists it first.

    Args:
        output: Raw command output, or an iterable of its lines

    Returns:
        List of Worktree records in git's listing order
    """
    worktrees: List[Worktree] = []
    path: Optional[str] = None
    branch = ""
    is_bare = False

    def flush() -> None:
        if path:
            worktrees.append(
                Worktree(path=path, branch=branch, is_main=not worktrees, is_bare=is_bare)
            )

    for line in _lines(output):
        if line.startswith(WORKTREE_PREFIX):
            flush()
            path = line[len(WORKTREE_PREFIX):]
            branch = ""
            is_bare = False
        elif line.startswith(BRANCH_PREFIX):
            ref = line[len(BRANCH_PREFIX):]
            if ref.startswith(LOCAL_BRANCH_REF):
                branch = ref[len(LOCAL_BRANCH_REF):]
            else:
                branch = ref
        elif line == "bare":
            is_bare = True

    flush()
    return worktrees


def parse_status(output: Union[str, Iterable[str]]) -> WorktreeStatus:
    """Summarise ``git status --porcelain`` output.

    Each line is ``XY <path>``: X is the index (staged) state, Y the
    working-tree state, ``??`` marks an untracked path. A line such as
    ``MM file`` counts as both staged and unstaged.

    Args:
        output: Raw command output, or an iterable of its lines

    Returns:
        WorktreeStatus with staged/unstaged/untracked counts
    """
    staged = unstaged = untracked = 0

    for line in _lines(output):
        if len(line) < 2:
            continue

        index_status = line[0]
        worktree_status = line[1]

        if index_status == "?":
            untracked += 1
            continue
        if index_status != " ":
            staged += 1
        if worktree_status != " ":
            unstaged += 1

    return WorktreeStatus(staged=staged, unstaged=unstaged, untracked=untracked)
