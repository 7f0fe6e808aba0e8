"""Interactive TUI for grovr using Textual."""

from typing import Dict, List, Optional, Union

from rich.text import Text
from textual import work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, DataTable, Footer, Header, Static

from .__version__ import __version__
from .constants import COLORS, COLUMNS, LEGEND_TEXT
from .exceptions import BranchDeleteFailed, GrovrError
from .formatters import format_branch, format_changes, format_notes, get_worktree_style_type
from .logging_config import get_logger
from .models.worktree import Worktree, WorktreeStatus
from .services.git import WorktreeManager
from .services.launcher import open_ide

logger = get_logger(__name__)


class ConfirmScreen(ModalScreen[bool]):
    """Modal confirmation dialog."""

    DEFAULT_CSS = """
    ConfirmScreen {
        align: center middle;
    }

    #confirm-dialog {
        width: 80%;
        height: auto;
        border: thick $background 80%;
        background: $surface;
        padding: 1 2;
    }

    #confirm-message {
        width: 100%;
        height: auto;
        padding: 1 0;
    }

    #button-container {
        width: 100%;
        height: auto;
        align: center middle;
        padding: 1 0;
    }

    Button {
        margin: 0 1;
    }
    """

    def __init__(self, message: str):
        super().__init__()
        self.message = message

    def compose(self) -> ComposeResult:
        with Vertical(id="confirm-dialog"):
            yield Static(self.message, id="confirm-message")
            with Container(id="button-container"):
                yield Button("Yes", variant="error", id="yes")
                yield Button("No", variant="primary", id="no")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss(event.button.id == "yes")


class InfoScreen(ModalScreen):
    """Modal message dialog for errors and the legend."""

    DEFAULT_CSS = """
    InfoScreen {
        align: center middle;
    }

    #info-dialog {
        width: 80%;
        height: auto;
        border: thick $background 80%;
        background: $surface;
        padding: 1 2;
    }
    """

    BINDINGS = [Binding("escape", "close", "Close")]

    def __init__(self, info: str):
        super().__init__()
        self.info = info

    def compose(self) -> ComposeResult:
        with Vertical(id="info-dialog"):
            yield Static(self.info)
            yield Button("Close", variant="primary")

    def action_close(self) -> None:
        self.dismiss()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss()


class GrovrApp(App):
    """Interactive worktree browser."""

    TITLE = "grovr"
    SUB_TITLE = f"v{__version__}"

    CSS = """
    DataTable {
        height: 1fr;
    }

    #status-bar {
        dock: bottom;
        height: auto;
        background: $panel;
        padding: 0 1;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("r", "refresh", "Refresh"),
        Binding("f", "fetch", "Fetch"),
        Binding("p", "prune", "Prune"),
        Binding("o", "open_ide", "Open in editor"),
        Binding("d", "remove", "Remove"),
        Binding("x", "remove(True)", "Force remove"),
        Binding("l", "show_legend", "Legend"),
    ]

    def __init__(self, manager: WorktreeManager, repo_path: str, ide_preset: str = "code"):
        super().__init__()
        self.manager = manager
        self.repo_path = repo_path
        self.ide_preset = ide_preset
        self.worktrees: List[Worktree] = []
        self.statuses: Dict[str, Union[WorktreeStatus, GrovrError]] = {}

    def compose(self) -> ComposeResult:
        yield Header(show_clock=False)
        yield DataTable(id="worktree-table", cursor_type="row", zebra_stripes=True)
        yield Static(id="status-bar")
        yield Footer()

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        for col in COLUMNS:
            table.add_column(col.label, width=col.width or None, key=col.key)
        table.loading = True
        self.load_worktrees()

    def _selected(self) -> Optional[Worktree]:
        table = self.query_one(DataTable)
        if not self.worktrees or table.cursor_row is None:
            return None
        if 0 <= table.cursor_row < len(self.worktrees):
            return self.worktrees[table.cursor_row]
        return None

    def _populate_table(self) -> None:
        table = self.query_one(DataTable)
        table.clear()
        for wt in self.worktrees:
            orphaned = self.manager.is_orphaned(wt)
            status = self.statuses.get(wt.path)
            color = COLORS[get_worktree_style_type(wt, status, orphaned)]
            table.add_row(
                Text(format_branch(wt), style=color),
                wt.path,
                Text(format_changes(status) if not wt.is_bare else "", justify="center"),
                format_notes(wt, orphaned),
            )

    def _update_status(self, message: str = "") -> None:
        dirty = sum(
            1 for s in self.statuses.values() if isinstance(s, WorktreeStatus) and s.has_changes
        )
        summary = f"{len(self.worktrees)} worktrees, {dirty} with changes"
        self.query_one("#status-bar", Static).update(f"{summary}  {message}".rstrip())

    @work(exclusive=True, thread=False)
    async def load_worktrees(self) -> None:
        """List worktrees and their status off the event loop."""
        table = self.query_one(DataTable)
        try:
            self.worktrees = await self.manager.runner.offload(
                self.manager.list_worktrees, self.repo_path
            )
            paths = [
                wt.path for wt in self.worktrees if not wt.is_bare and not self.manager.is_orphaned(wt)
            ]
            self.statuses = await self.manager.runner.offload(
                self.manager.get_worktree_statuses, paths
            )
            self._populate_table()
            self._update_status()
        except GrovrError as e:
            logger.error(f"Error loading worktrees: {e}", exc_info=True)
            self.push_screen(InfoScreen(f"Error loading worktrees:\n\n{e}"))
        finally:
            table.loading = False

    def action_refresh(self) -> None:
        self.query_one(DataTable).loading = True
        self.load_worktrees()

    def action_fetch(self) -> None:
        self.fetch_remotes()

    def action_prune(self) -> None:
        self.prune_worktrees()

    @work(group="background", thread=False)
    async def fetch_remotes(self) -> None:
        self._update_status("fetching...")
        try:
            await self.manager.fetch_async(self.repo_path)
            self.notify("Fetched all remotes")
        except GrovrError as e:
            logger.warning(f"Fetch failed: {e}")
            self.notify(str(e), severity="error")
        self.action_refresh()

    @work(group="background", thread=False)
    async def prune_worktrees(self) -> None:
        try:
            await self.manager.runner.offload(self.manager.prune_worktrees, self.repo_path)
            self.notify("Pruned stale worktree metadata")
        except GrovrError as e:
            self.notify(str(e), severity="error")
        self.action_refresh()

    def action_open_ide(self) -> None:
        worktree = self._selected()
        if worktree is None:
            return
        try:
            open_ide(worktree.path, self.ide_preset)
        except GrovrError as e:
            self.notify(str(e), severity="error")

    def action_remove(self, force: bool = False) -> None:
        worktree = self._selected()
        if worktree is None:
            return
        if worktree.is_main:
            self.notify("The main worktree cannot be removed", severity="warning")
            return

        branch_note = f" and delete branch '{worktree.branch}'" if worktree.branch else ""
        mode = "FORCE remove" if force else "Remove"
        message = f"{mode} worktree {worktree.path}{branch_note}?"

        def handle(confirmed: Optional[bool]) -> None:
            if confirmed:
                self.remove_worktree(worktree, force)

        self.push_screen(ConfirmScreen(message), handle)

    @work(group="background", thread=False)
    async def remove_worktree(self, worktree: Worktree, force: bool) -> None:
        try:
            await self.manager.remove_worktree_async(
                self.repo_path,
                worktree.path,
                force=force,
                delete_branch=bool(worktree.branch),
                branch_name=worktree.branch or None,
            )
            self.notify(f"Removed {worktree.path}")
        except BranchDeleteFailed as e:
            self.notify(str(e), severity="warning")
        except GrovrError as e:
            self.push_screen(InfoScreen(f"Could not remove worktree:\n\n{e}"))
        self.action_refresh()

    def action_show_legend(self) -> None:
        self.push_screen(InfoScreen(LEGEND_TEXT))
