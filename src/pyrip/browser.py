"""Interactive browsing state: query, sort, view and selection."""

from pyrip.models import ProcessEntity, RankedView, Snapshot, SortField
from pyrip.ranking import next_sort_field, rank
from pyrip.selection import SelectionTracker


class Browser:
    """
    Holds everything the process list shows.

    The view is rebuilt from scratch on every snapshot or query change and
    the selection is reconciled against it.
    """

    def __init__(
        self,
        sort_field: SortField = SortField.CPU,
        query: str = "",
        ports_mode: bool = False,
    ) -> None:
        self._sort_field = sort_field
        self._query = query
        self._ports_mode = ports_mode
        self._entities: tuple[ProcessEntity, ...] = ()
        self._view = RankedView.empty()
        self._tracker = SelectionTracker()

    @property
    def query(self) -> str:
        return self._query

    @property
    def sort_field(self) -> SortField:
        return self._sort_field

    @property
    def ports_mode(self) -> bool:
        return self._ports_mode

    @property
    def view(self) -> RankedView:
        return self._view

    @property
    def tracker(self) -> SelectionTracker:
        return self._tracker

    @property
    def cursor(self) -> int:
        return self._tracker.cursor

    @property
    def selected(self) -> frozenset[int]:
        return self._tracker.selected

    @property
    def total(self) -> int:
        """Number of processes in the latest snapshot."""
        return len(self._entities)

    @property
    def names(self) -> dict[int, str]:
        """Pid to name for the latest snapshot."""
        return {entity.pid: entity.name for entity in self._entities}

    def _rerank(self) -> None:
        self._view = rank(self._entities, self._query, self._sort_field)
        self._tracker.reconcile(self._view)

    def apply_snapshot(self, snapshot: Snapshot) -> None:
        """Replace the entity set with a fresh snapshot."""
        self._entities = snapshot.entities
        self._rerank()

    def type_text(self, text: str) -> None:
        """Append characters to the query."""
        if not text:
            return
        self._query += text
        self._rerank()

    def backspace(self) -> None:
        """Remove the last query character."""
        if not self._query:
            return
        self._query = self._query[:-1]
        self._rerank()

    def clear_query(self) -> None:
        """Reset the query."""
        if not self._query:
            return
        self._query = ""
        self._rerank()

    def cycle_sort(self) -> SortField:
        """Switch to the next sort field and return it."""
        self._sort_field = next_sort_field(self._sort_field, self._ports_mode)
        self._rerank()
        return self._sort_field

    def cursor_up(self) -> None:
        self._tracker.move(self._view, -1)

    def cursor_down(self) -> None:
        self._tracker.move(self._view, 1)

    def page_up(self, rows: int) -> None:
        self._tracker.move(self._view, -max(1, rows))

    def page_down(self, rows: int) -> None:
        self._tracker.move(self._view, max(1, rows))

    def home(self) -> None:
        self._tracker.home(self._view)

    def end(self) -> None:
        self._tracker.end(self._view)

    def toggle(self) -> None:
        """Toggle the row under the cursor."""
        self._tracker.toggle(self._view)

    def confirm(self) -> frozenset[int]:
        """Selected pids, to be signalled."""
        return self._tracker.confirm()

    def cancel(self) -> None:
        """Drop the selection."""
        self._tracker.cancel()
