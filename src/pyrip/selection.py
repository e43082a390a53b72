"""Multi-selection and cursor state that survives refreshes."""

from pyrip.models import RankedView


class SelectionTracker:
    """
    Tracks selected pids and the cursor position in the current view.

    Selection is keyed by pid. A pid hidden by the query stays selected;
    a pid missing from the full snapshot is pruned on reconcile.
    """

    def __init__(self) -> None:
        """Initialize an empty selection with the cursor at the top."""
        self._selected: set[int] = set()
        self._cursor: int = 0
        self._cursor_pid: int | None = None

    @property
    def cursor(self) -> int:
        """Index of the highlighted row."""
        return self._cursor

    @property
    def selected(self) -> frozenset[int]:
        """Currently selected pids."""
        return frozenset(self._selected)

    def is_selected(self, pid: int) -> bool:
        """Check whether a pid is selected."""
        return pid in self._selected

    def hidden_selected(self, view: RankedView) -> int:
        """Count selected pids that the view does not show."""
        return len(self._selected - set(view.pids))

    def toggle_at(self, view: RankedView, index: int) -> None:
        """Flip selection of the pid at a view position."""
        pid = view.pid_at(index)
        if pid is None:
            return
        if pid in self._selected:
            self._selected.discard(pid)
        else:
            self._selected.add(pid)

    def toggle(self, view: RankedView) -> None:
        """Flip selection of the pid under the cursor."""
        self.toggle_at(view, self._cursor)

    def move_to(self, view: RankedView, index: int) -> None:
        """Place the cursor, clamped to the view."""
        if len(view) == 0:
            self._cursor = 0
        else:
            self._cursor = max(0, min(index, len(view) - 1))
        self._cursor_pid = view.pid_at(self._cursor)

    def move(self, view: RankedView, delta: int) -> None:
        """Move the cursor by delta rows."""
        self.move_to(view, self._cursor + delta)

    def home(self, view: RankedView) -> None:
        """Move the cursor to the first row."""
        self.move_to(view, 0)

    def end(self, view: RankedView) -> None:
        """Move the cursor to the last row."""
        self.move_to(view, len(view) - 1)

    def reconcile(self, new_view: RankedView) -> None:
        """
        Adjust state after the view was rebuilt.

        The cursor follows the pid it was on when that pid is still shown,
        otherwise it is clamped into range. Selected pids absent from the
        full entity set are dropped.
        """
        self._selected &= new_view.universe

        index = new_view.index_of(self._cursor_pid) if self._cursor_pid is not None else None
        self.move_to(new_view, self._cursor if index is None else index)

    def confirm(self) -> frozenset[int]:
        """Return the selection for dispatch; the caller clears it."""
        return frozenset(self._selected)

    def clear(self) -> None:
        """Empty the selection."""
        self._selected.clear()

    def cancel(self) -> None:
        """Drop the selection without dispatching."""
        self.clear()
