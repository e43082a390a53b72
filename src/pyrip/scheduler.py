"""Periodic re-snapshotting without blocking the input loop."""

import threading
import time
from collections.abc import Callable
from enum import Enum
from queue import Empty, Queue

import psutil
import structlog

from pyrip.models import Snapshot
from pyrip.monitor import SnapshotError

log = structlog.get_logger()


class SchedulerState(Enum):
    """Lifecycle states of the refresh scheduler."""

    IDLE = "idle"
    LIVE = "live"
    STOPPED = "stopped"


class RefreshScheduler:
    """
    Drives background snapshot fetches for live mode.

    tick() and take_latest() are called from the UI loop and never block.
    Each fetch runs on its own daemon thread and hands back an immutable
    Snapshot through a Queue, tagged with the generation that started it.
    Results from abandoned or cancelled generations are discarded.
    """

    def __init__(
        self,
        fetch: Callable[[], Snapshot],
        live: bool = False,
        interval: float = 2.0,
        stall_timeout: float = 10.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the RefreshScheduler.

        Args:
            fetch: Acquires and normalizes one snapshot (runs off the UI loop).
            live: Refresh periodically; otherwise never refresh.
            interval: Seconds between refreshes in live mode.
            stall_timeout: Seconds after which a pending fetch is abandoned.
            clock: Monotonic time source.
        """
        self._fetch = fetch
        self._state = SchedulerState.LIVE if live else SchedulerState.IDLE
        self._interval = max(0.1, interval)
        self._stall_timeout = stall_timeout
        self._clock = clock
        self._results: Queue[tuple[int, Snapshot]] = Queue()
        self._generation = 0
        self._applied = 0
        self._abandoned: set[int] = set()
        self._thread: threading.Thread | None = None
        self._started_at: float = 0.0
        self._next_due: float = clock() + self._interval

    @property
    def state(self) -> SchedulerState:
        """Current scheduler state."""
        return self._state

    @property
    def interval(self) -> float:
        """Seconds between refreshes."""
        return self._interval

    @property
    def in_flight(self) -> bool:
        """Check if a fetch thread is still running."""
        return self._thread is not None and self._thread.is_alive()

    def tick(self) -> bool:
        """
        Start a fetch if one is due.

        Returns:
            True if a new fetch was started.
        """
        if self._state is not SchedulerState.LIVE:
            return False

        now = self._clock()
        if self.in_flight:
            if now - self._started_at < self._stall_timeout:
                return False
            log.warning("fetch_abandoned", generation=self._generation, waited=now - self._started_at)
            self._abandoned.add(self._generation)
        elif now < self._next_due:
            return False

        self._generation += 1
        self._started_at = now
        # Keep a fixed cadence; only restart it after falling a whole interval behind
        self._next_due += self._interval
        if self._next_due <= now:
            self._next_due = now + self._interval
        self._thread = threading.Thread(
            target=self._run_fetch,
            args=(self._generation,),
            daemon=True,
            name="SnapshotFetch",
        )
        self._thread.start()
        return True

    def _run_fetch(self, generation: int) -> None:
        """Fetch one snapshot on the background thread."""
        try:
            snapshot = self._fetch()
        except (SnapshotError, psutil.Error, OSError) as exc:
            log.warning("snapshot_failed", generation=generation, error=str(exc))
            return
        self._results.put((generation, snapshot))

    def take_latest(self) -> Snapshot | None:
        """Return the newest undelivered result, if any."""
        latest: Snapshot | None = None
        while True:
            try:
                generation, snapshot = self._results.get_nowait()
            except Empty:
                break
            if generation in self._abandoned or generation <= self._applied:
                continue
            self._applied = generation
            latest = snapshot
        self._abandoned = {g for g in self._abandoned if g > self._applied}

        if self._state is SchedulerState.STOPPED:
            return None
        return latest

    def cancel(self) -> None:
        """Stop scheduling; pending results will never be delivered."""
        self._state = SchedulerState.STOPPED
