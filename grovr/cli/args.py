"""Command-line argument parsing for grovr."""

import argparse
from typing import List, Optional

from grovr.__version__ import __version__


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="grovr",
        description="Manage git worktrees and their branches",
    )
    parser.add_argument("--version", action="version", version=f"grovr {__version__}")
    parser.add_argument(
        "-C", "--repo", default=".", metavar="PATH", help="Repository to operate on (default: cwd)"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show verbose output")
    parser.add_argument(
        "--debug", action="store_true", help="Show debug information for troubleshooting"
    )
    parser.add_argument(
        "--timeout",
        type=float,
        metavar="SECONDS",
        help="Kill any git command that runs longer than this",
    )
    parser.add_argument("--git", default="git", metavar="PATH", help="git executable to use")

    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    list_cmd = sub.add_parser("list", help="List worktrees")
    list_cmd.add_argument(
        "--no-status", action="store_true", help="Skip computing per-worktree change counts"
    )

    status_cmd = sub.add_parser("status", help="Show change counts of one worktree")
    status_cmd.add_argument("path", nargs="?", help="Worktree path (default: repository)")

    create_cmd = sub.add_parser("create", help="Create a worktree")
    create_cmd.add_argument("path", help="Directory for the new worktree")
    create_cmd.add_argument("branch", help="Branch to create (or check out with --existing)")
    base_group = create_cmd.add_mutually_exclusive_group()
    base_group.add_argument(
        "--base", help="Ref to start the new branch from (default: the repository's default branch)"
    )
    base_group.add_argument(
        "--existing", action="store_true", help="Check out an existing branch instead of creating one"
    )
    create_cmd.add_argument(
        "--copy",
        nargs="*",
        default=None,
        metavar="REL_PATH",
        help="Files or directories to copy into the new worktree if present (e.g. .env)",
    )
    create_cmd.add_argument("--fetch", action="store_true", help="Fetch all remotes first")

    remove_cmd = sub.add_parser("remove", help="Remove a worktree")
    remove_cmd.add_argument("path", help="Worktree to remove")
    remove_cmd.add_argument(
        "--force", action="store_true", help="Remove even with uncommitted changes"
    )
    remove_cmd.add_argument(
        "--delete-branch", action="store_true", help="Also delete the worktree's branch"
    )
    remove_cmd.add_argument(
        "--branch", help="Branch to delete (default: the branch checked out in the worktree)"
    )

    sub.add_parser("prune", help="Prune metadata of worktrees whose directories are gone")

    branches_cmd = sub.add_parser("branches", help="List branches")
    branches_cmd.add_argument("--remote", action="store_true", help="Include remote branches")

    delete_cmd = sub.add_parser("delete-branch", help="Delete a local branch")
    delete_cmd.add_argument("branch")
    delete_cmd.add_argument("--force", action="store_true", help="Delete even if unmerged")

    rename_cmd = sub.add_parser("rename-branch", help="Rename a local branch")
    rename_cmd.add_argument("old")
    rename_cmd.add_argument("new")

    sub.add_parser("default-branch", help="Show the repository's default branch")
    sub.add_parser("remote", help="Show the owner/repo of the origin remote")
    sub.add_parser("fetch", help="Fetch all remotes")

    pull_cmd = sub.add_parser("pull", help="Pull a worktree's branch")
    pull_cmd.add_argument("path", nargs="?", help="Worktree path (default: repository)")

    sub.add_parser("tui", help="Launch the interactive worktree browser")

    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    return build_parser().parse_args(argv)
