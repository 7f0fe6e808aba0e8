"""Command-line interface for grovr"""

import os
import sys
from typing import List, Optional

from rich.console import Console
from rich.table import Table

from grovr.cli.args import parse_args
from grovr.config import Config
from grovr.constants import COLORS, COLUMNS, LEGEND_TEXT
from grovr.exceptions import BootstrapCopyFailed, BranchDeleteFailed, GrovrError
from grovr.formatters import (
    format_branch,
    format_changes,
    format_notes,
    get_worktree_style_type,
)
from grovr.logging_config import setup_logging
from grovr.services.git import CommandRunner, WorktreeManager

console = Console()


def _print_worktrees(manager: WorktreeManager, repo_path: str, with_status: bool) -> None:
    worktrees = manager.list_worktrees(repo_path)
    statuses = {}
    if with_status:
        statuses = manager.get_worktree_statuses(
            wt.path for wt in worktrees if not wt.is_bare and not manager.is_orphaned(wt)
        )

    table = Table(show_header=True, header_style="bold")
    for col in COLUMNS:
        table.add_column(col.label, min_width=col.width or None)

    for wt in worktrees:
        orphaned = manager.is_orphaned(wt)
        status = statuses.get(wt.path)
        style = COLORS[get_worktree_style_type(wt, status, orphaned)]
        table.add_row(
            format_branch(wt),
            wt.path,
            format_changes(status) if with_status and not wt.is_bare else "",
            format_notes(wt, orphaned),
            style=style,
        )

    console.print(table)
    console.print(LEGEND_TEXT, style="dim")


def _branch_of(manager: WorktreeManager, repo_path: str, worktree_path: str) -> Optional[str]:
    """Look up the branch checked out in a worktree."""
    target = os.path.realpath(worktree_path)
    for wt in manager.list_worktrees(repo_path):
        if os.path.realpath(wt.path) == target:
            return wt.branch or None
    return None


def run_command(args, manager: WorktreeManager, config: Config) -> int:
    repo_path = os.path.abspath(args.repo)
    branches = manager.branches

    if args.command in (None, "list"):
        _print_worktrees(manager, repo_path, with_status=not getattr(args, "no_status", False))

    elif args.command == "status":
        status = manager.get_worktree_status(os.path.abspath(args.path or repo_path))
        console.print(
            f"staged: {status.staged}  unstaged: {status.unstaged}  untracked: {status.untracked}"
        )
        if not status.has_changes:
            console.print("[green]Clean[/green]")

    elif args.command == "create":
        worktree_path = os.path.abspath(args.path)
        copy_paths = args.copy if args.copy is not None else config.copy_paths
        try:
            if args.existing:
                creation = manager.create_worktree_from_branch(
                    repo_path, worktree_path, args.branch, copy_paths=copy_paths
                )
            else:
                if args.fetch:
                    manager.fetch(repo_path)
                base = args.base or branches.get_default_branch(repo_path)
                creation = manager.create_worktree(
                    repo_path, worktree_path, args.branch, base, copy_paths=copy_paths, fetch_first=False
                )
        except BootstrapCopyFailed as e:
            console.print(f"[yellow]{e}[/yellow]")
            return 1
        console.print(f"[green]Created worktree {creation.path} on {creation.branch}[/green]")

    elif args.command == "remove":
        worktree_path = os.path.abspath(args.path)
        branch = args.branch
        if args.delete_branch and not branch:
            branch = _branch_of(manager, repo_path, worktree_path)
        try:
            removal = manager.remove_worktree(
                repo_path,
                worktree_path,
                force=args.force,
                delete_branch=args.delete_branch,
                branch_name=branch,
            )
        except BranchDeleteFailed as e:
            console.print(f"[yellow]{e}[/yellow]")
            return 1
        console.print(f"[green]Removed worktree {removal.path}[/green]")
        if removal.branch_deleted:
            forced = " (forced, was not fully merged)" if removal.branch_force_deleted else ""
            console.print(f"[green]Deleted branch {removal.branch_deleted}{forced}[/green]")

    elif args.command == "prune":
        manager.prune_worktrees(repo_path)
        console.print("[green]Pruned stale worktree metadata[/green]")

    elif args.command == "branches":
        for branch in branches.list_branches(repo_path, include_remote=args.remote):
            marker = "*" if branch.is_head else " "
            style = "dim" if branch.is_remote else ("bold" if branch.is_head else None)
            console.print(f"{marker} {branch.name}", style=style)

    elif args.command == "delete-branch":
        branches.delete_branch(repo_path, args.branch, force=args.force)
        console.print(f"[green]Deleted branch {args.branch}[/green]")

    elif args.command == "rename-branch":
        branches.rename_branch(repo_path, args.old, args.new)
        console.print(f"[green]Renamed {args.old} -> {args.new}[/green]")

    elif args.command == "default-branch":
        console.print(branches.get_default_branch(repo_path))

    elif args.command == "remote":
        identity = manager.get_remote_identity(repo_path)
        if identity is None:
            console.print("[yellow]No recognised remote[/yellow]")
            return 1
        console.print(identity.full_name)

    elif args.command == "fetch":
        with console.status("Fetching..."):
            manager.fetch(repo_path)
        console.print("[green]Fetched all remotes[/green]")

    elif args.command == "pull":
        with console.status("Pulling..."):
            manager.pull(os.path.abspath(args.path or repo_path))
        console.print("[green]Pulled[/green]")

    elif args.command == "tui":
        from grovr.tui import GrovrApp
        GrovrApp(manager, repo_path).run()

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the application."""
    parsed_args = None
    try:
        parsed_args = parse_args(argv)
        tui_mode = parsed_args.command == "tui"

        setup_logging(verbose=parsed_args.verbose, debug=parsed_args.debug, tui_mode=tui_mode)

        config = Config(
            git_executable=parsed_args.git,
            command_timeout=parsed_args.timeout,
            verbose=parsed_args.verbose,
            debug=parsed_args.debug,
        )

        if parsed_args.debug:
            console.print("[yellow]Configuration:[/yellow]")
            for key, value in config.to_dict().items():
                console.print(f"  {key}: {value}")

        with CommandRunner.from_config(config) as runner:
            manager = WorktreeManager(runner, config)
            return run_command(parsed_args, manager, config)
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        return 1
    except (GrovrError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        if parsed_args is not None and parsed_args.debug:
            console.print_exception()
        return 1


if __name__ == "__main__":
    sys.exit(main())
