"""rip - Textual process picker."""

from collections.abc import Callable

from rich.markup import escape
from rich.text import Text
from textual import events
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import DataTable, Footer, Static

from pyrip.browser import Browser
from pyrip.config import Settings
from pyrip.dispatch import signal_label
from pyrip.models import ProcessEntity, Snapshot
from pyrip.scheduler import RefreshScheduler

NAME_WIDTH = 40
PAGE_ROWS = 10
POLL_INTERVAL = 0.1  # Seconds between scheduler ticks


def format_bytes(size: int) -> str:
    """Format bytes as human-readable string."""
    for unit in ["B", "K", "M", "G", "T"]:
        if size < 1024:
            return f"{size:5.1f}{unit}" if unit != "B" else f"{size:5d}{unit}"
        size = size / 1024
    return f"{size:.1f}P"


def truncate(text: str, max_len: int) -> str:
    """Shorten text to max_len characters, marking the cut with '...'."""
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def cpu_style(cpu_percent: float) -> str:
    """Rich style for a CPU reading."""
    if cpu_percent > 50.0:
        return "bold red"
    if cpu_percent > 10.0:
        return "yellow"
    return "dim"


class RipApp(App[frozenset[int]]):
    """
    Fuzzy process picker.

    Exits with the selected pids on confirm and an empty set on cancel.
    """

    TITLE = "rip"
    SUB_TITLE = "Fuzzy find and kill processes"

    CSS = """
    Screen {
        layout: vertical;
    }

    #query {
        height: 1;
        padding: 0 1;
    }

    #process-table {
        height: 1fr;
        border: solid $primary;
    }

    #status {
        height: 1;
        padding: 0 1;
        color: $text-muted;
    }
    """

    BINDINGS = [
        Binding("escape", "cancel", "Quit", priority=True),
        Binding("ctrl+c", "cancel", "Quit", show=False, priority=True),
        Binding("enter", "confirm", "Kill", priority=True),
        Binding("space", "toggle", "Select", priority=True),
        Binding("f6", "sort", "Sort", priority=True),
        Binding("up", "cursor_up", show=False, priority=True),
        Binding("down", "cursor_down", show=False, priority=True),
        Binding("pageup", "page_up", show=False, priority=True),
        Binding("pagedown", "page_down", show=False, priority=True),
        Binding("home", "home", show=False, priority=True),
        Binding("end", "end", show=False, priority=True),
        Binding("backspace", "delete_char", show=False, priority=True),
        Binding("ctrl+u", "clear_query", show=False, priority=True),
    ]

    def __init__(
        self,
        settings: Settings,
        snapshot: Snapshot,
        scheduler: RefreshScheduler | None = None,
    ) -> None:
        """
        Initialize the RipApp.

        Args:
            settings: Session options.
            snapshot: The first snapshot, taken before the UI starts.
            scheduler: Refresh driver; None means no refreshes.
        """
        super().__init__()
        self._settings = settings
        self._scheduler = scheduler
        self._confirming = False
        self._browser = Browser(
            sort_field=settings.sort,
            query=settings.query,
            ports_mode=settings.ports_mode,
        )
        self._browser.apply_snapshot(snapshot)

    @property
    def browser(self) -> Browser:
        return self._browser

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield Static(id="query")
        yield DataTable(id="process-table", cursor_type="row")
        yield Static(id="status")
        yield Footer()

    def on_mount(self) -> None:
        """Set up the table and start refreshing in live mode."""
        table = self.query_one("#process-table", DataTable)
        table.can_focus = False
        table.add_column(" ", key="mark", width=2)
        table.add_column("PID", key="pid", width=8)
        table.add_column("NAME", key="name", width=NAME_WIDTH)
        table.add_column("CPU%", key="cpu", width=7)
        table.add_column("MEM", key="mem", width=8)
        if self._settings.ports_mode:
            table.add_column("PORTS", key="ports")
        self._redraw()

        if self._scheduler is not None:
            self.set_interval(POLL_INTERVAL, self._check_for_updates)

    def _check_for_updates(self) -> None:
        """Start a due refresh and apply a finished one, if any."""
        if self._scheduler is None:
            return
        self._scheduler.tick()
        snapshot = self._scheduler.take_latest()
        if snapshot is not None and not self._confirming:
            self._browser.apply_snapshot(snapshot)
            self._redraw()

    def _row(self, entity: ProcessEntity) -> list:
        marker = Text("●", style="bold green") if self._browser.tracker.is_selected(entity.pid) else " "
        row = [
            marker,
            Text(str(entity.pid), style="dim"),
            truncate(entity.name, NAME_WIDTH),
            Text(f"{entity.cpu_percent:5.1f}%", style=cpu_style(entity.cpu_percent)),
            Text(format_bytes(entity.memory_bytes), style="cyan"),
        ]
        if self._settings.ports_mode:
            row.append(", ".join(entity.port_labels))
        return row

    def _redraw(self) -> None:
        """Render the current view; rows are rebuilt, never patched."""
        browser = self._browser
        table = self.query_one("#process-table", DataTable)
        table.clear()
        for entry in browser.view:
            table.add_row(*self._row(entry.entity), key=str(entry.entity.pid))
        if len(browser.view):
            table.move_cursor(row=browser.cursor, animate=False)

        self.query_one("#query", Static).update(
            f"[bold]>[/] {escape(browser.query)}[reverse] [/]"
        )

        status = f"{len(browser.view)}/{browser.total} processes  sort: {browser.sort_field.value}"
        selected = len(browser.selected)
        if selected:
            status += f"  {selected} selected"
            hidden = browser.tracker.hidden_selected(browser.view)
            if hidden:
                status += f" ({hidden} hidden)"
        if self._confirming:
            plural = "" if selected == 1 else "es"
            status = (
                f"[bold yellow]Send {signal_label(self._settings.signal)} to {selected} process{plural}?[/]"
                "  \\[Enter] confirm  \\[Esc] back"
            )
        self.query_one("#status", Static).update(status)
        self.sub_title = f"{selected} selected" if selected else self.SUB_TITLE

    def on_key(self, event: events.Key) -> None:
        """Append printable characters to the query."""
        if event.is_printable and event.character and event.character != " ":
            event.stop()
            self._update(lambda: self._browser.type_text(event.character))

    def _update(self, change: Callable[[], object]) -> None:
        """Apply a browsing change and redraw; ignored while confirming."""
        if self._confirming:
            return
        change()
        self._redraw()

    def action_cursor_up(self) -> None:
        self._update(self._browser.cursor_up)

    def action_cursor_down(self) -> None:
        self._update(self._browser.cursor_down)

    def action_page_up(self) -> None:
        self._update(lambda: self._browser.page_up(PAGE_ROWS))

    def action_page_down(self) -> None:
        self._update(lambda: self._browser.page_down(PAGE_ROWS))

    def action_home(self) -> None:
        self._update(self._browser.home)

    def action_end(self) -> None:
        self._update(self._browser.end)

    def action_delete_char(self) -> None:
        self._update(self._browser.backspace)

    def action_clear_query(self) -> None:
        self._update(self._browser.clear_query)

    def action_toggle(self) -> None:
        """Toggle selection of the highlighted process."""
        self._update(self._browser.toggle)

    def action_sort(self) -> None:
        """Cycle through sort fields."""
        if self._confirming:
            return
        field = self._browser.cycle_sort()
        self._redraw()
        self.notify(f"Sort: {field.value.upper()}")

    def action_confirm(self) -> None:
        """Finish with the current selection, asking first if configured."""
        selection = self._browser.confirm()
        if self._confirming or not selection or not self._settings.confirm_kill:
            self._finish(selection)
            return
        self._confirming = True
        self._redraw()

    def action_cancel(self) -> None:
        """Leave without signalling anything, or back out of the prompt."""
        if self._confirming:
            self._confirming = False
            self._redraw()
            return
        self._browser.cancel()
        self._finish(frozenset())

    def _finish(self, selection: frozenset[int]) -> None:
        if self._scheduler is not None:
            self._scheduler.cancel()
        self.exit(selection)
