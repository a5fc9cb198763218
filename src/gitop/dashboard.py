"""Live terminal dashboard: rich renderables hosted in a textual app.

`Dashboard` only reads `Snapshot` objects from the monitor and forwards
expand/collapse requests to it; it never touches repository state directly.
`DashboardApp` owns the terminal, key bindings and the redraw timer.
"""

import logging

from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.style import Style
from rich.table import Table
from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import Static

from .config import ColorConfig, resolve_color
from .constants import APP_NAME, DEFAULT_AHEAD_COLOR, DEFAULT_BEHIND_COLOR
from .engine import RepositoryMonitor
from .models import SlotState, Snapshot

logger = logging.getLogger(APP_NAME)

CONSOLE_LINES = 8
HELP_TEXT = "↑/↓: Navigate  Enter: Expand/Collapse  q: Quit"


class Dashboard:
    """Renders monitor snapshots and tracks the selected row.

    Attributes:
        monitor (RepositoryMonitor): The state source.
        selected (int): Index of the highlighted repository.
        ahead_style (Style): Style for non-zero ahead counts.
        behind_style (Style): Style for non-zero behind counts.
    """

    def __init__(
        self,
        monitor: RepositoryMonitor,
        colors: ColorConfig | None = None,
        warnings: list[str] | None = None,
    ):
        colors = colors or ColorConfig()
        self.monitor = monitor
        self.selected = 0
        self.ahead_style = Style(
            color=resolve_color(colors.ahead_color, DEFAULT_AHEAD_COLOR)
        )
        self.behind_style = Style(
            color=resolve_color(colors.behind_color, DEFAULT_BEHIND_COLOR)
        )
        self.warnings = warnings or []

    # --- Navigation ---

    def move(self, delta: int) -> None:
        """Moves the selection, wrapping around at either end."""
        count = len(self.monitor.slots)
        if count == 0:
            return
        self.selected = (self.selected + delta) % count

    def toggle_selected(self) -> None:
        """Expands or collapses the highlighted repository."""
        if self.monitor.slots:
            self.monitor.toggle_expanded(self.selected)

    # --- Rendering ---

    def _count_cell(self, value: int, arrow: str, style: Style) -> Text:
        if value > 0:
            return Text(f"{arrow}{value}", style=style)
        return Text("0")

    def _add_slot_rows(self, table: Table, index: int, slot: SlotState) -> None:
        row_style = "reverse" if index == self.selected else None

        if slot.error is not None:
            branch = Text(f"error: {slot.error}", style="red")
        elif slot.status is not None:
            branch = Text(slot.status.branch)
        else:
            branch = Text("unknown", style="dim")

        status = slot.status
        table.add_row(
            slot.name,
            self._count_cell(status.ahead if status else 0, "↑", self.ahead_style),
            self._count_cell(status.behind if status else 0, "↓", self.behind_style),
            branch,
            style=row_style,
        )

        if slot.expanded and status is not None:
            for commit in status.commits:
                table.add_row(
                    f"  └─ {commit.hash} - {commit.message}",
                    commit.author,
                    commit.timestamp.strftime("%m/%d %H:%M"),
                    f"({status.branch})",
                    style="grey50",
                )

    def render_table(self, snapshot: Snapshot) -> Table:
        """Builds the repository table for one frame."""
        table = Table(
            title="GitOp - Repositories",
            expand=True,
            header_style="bold",
        )
        table.add_column("Repository", ratio=35, no_wrap=True)
        table.add_column("Ahead", ratio=15)
        table.add_column("Behind", ratio=15)
        table.add_column("Branch", ratio=35, no_wrap=True)

        for index, slot in enumerate(snapshot.slots):
            self._add_slot_rows(table, index, slot)
        return table

    def render_console(self, snapshot: Snapshot) -> Panel:
        """Builds the notification panel, newest entry first."""
        lines = Text()
        for event in snapshot.recent_notifications(CONSOLE_LINES):
            if lines:
                lines.append("\n")
            lines.append(f"[{event.timestamp.astimezone():%H:%M:%S}] ", style="dim")
            lines.append(f"{event.repository_name}: ", style="bold")
            lines.append(event.detail)
        return Panel(lines, title="Console", height=CONSOLE_LINES + 2)

    def render(self, snapshot: Snapshot) -> RenderableType:
        """Builds the full frame."""
        header = Text(f"Monitoring {len(snapshot.slots)} repositories", style="dim")
        for warning in self.warnings:
            header.append(f"\nWarning: {warning}", style="yellow")
        return Group(
            header,
            self.render_table(snapshot),
            self.render_console(snapshot),
            Panel(Text(HELP_TEXT, style="grey50"), title="Controls"),
        )



class DashboardApp(App[None]):
    """Full-screen host for a `Dashboard`.

    Redraws from a fresh snapshot every `tick` seconds and after every key
    press. The monitor keeps polling on its own threads; the app only reads.
    """

    TITLE = "GitOp"

    BINDINGS = [
        Binding("up,k", "cursor_up", "Up", priority=True),
        Binding("down,j", "cursor_down", "Down", priority=True),
        Binding("enter", "toggle_expanded", "Expand/Collapse", priority=True),
        Binding("q", "quit", "Quit", priority=True),
        Binding("ctrl+c", "quit", "Quit", show=False, priority=True),
    ]

    def __init__(self, dashboard: Dashboard, tick: float = 0.25):
        super().__init__()
        self.dashboard = dashboard
        self.tick = tick

    def compose(self) -> ComposeResult:
        yield Static(id="dashboard")

    def on_mount(self) -> None:
        self.redraw()
        self.set_interval(self.tick, self.redraw)

    def on_unmount(self) -> None:
        logger.debug("Dashboard closed.")

    def redraw(self) -> None:
        frame = self.dashboard.render(self.dashboard.monitor.get_snapshot())
        self.query_one("#dashboard", Static).update(frame)

    # --- Actions ---

    def action_cursor_up(self) -> None:
        self.dashboard.move(-1)
        self.redraw()

    def action_cursor_down(self) -> None:
        self.dashboard.move(1)
        self.redraw()

    def action_toggle_expanded(self) -> None:
        self.dashboard.toggle_selected()
        self.redraw()
