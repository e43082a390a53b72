"""Tests for the RefreshScheduler class."""

import threading

import psutil

from pyrip.monitor import SnapshotError
from pyrip.scheduler import RefreshScheduler, SchedulerState
from tests.conftest import make_entity, make_snapshot


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def wait_for_fetch(scheduler: RefreshScheduler) -> None:
    """Block until the current fetch thread has finished."""
    if scheduler._thread is not None:
        scheduler._thread.join(timeout=2.0)


class TestSchedulerStates:
    """Tests for scheduler state handling."""

    def test_idle_never_fetches(self):
        """Test idle mode ignores ticks."""
        calls = []
        clock = FakeClock()
        scheduler = RefreshScheduler(lambda: calls.append(1), live=False, clock=clock)

        clock.advance(100)
        assert scheduler.state is SchedulerState.IDLE
        assert not scheduler.tick()
        assert calls == []
        assert scheduler.take_latest() is None

    def test_live_state(self):
        """Test live mode is reported."""
        scheduler = RefreshScheduler(lambda: None, live=True)

        assert scheduler.state is SchedulerState.LIVE

    def test_interval_minimum(self):
        """Test the refresh interval has a minimum value."""
        scheduler = RefreshScheduler(lambda: None, live=True, interval=0.001)

        assert scheduler.interval >= 0.1


class TestLiveRefresh:
    """Tests for periodic fetching."""

    def test_tick_waits_for_interval(self):
        """Test no fetch starts before the interval has elapsed."""
        clock = FakeClock()
        snapshot = make_snapshot(make_entity(1))
        scheduler = RefreshScheduler(lambda: snapshot, live=True, interval=2.0, clock=clock)

        clock.advance(1.0)
        assert not scheduler.tick()

        clock.advance(1.0)
        assert scheduler.tick()
        wait_for_fetch(scheduler)
        assert scheduler.take_latest() is snapshot

    def test_result_consumed_once(self):
        """Test a delivered snapshot is not handed out twice."""
        clock = FakeClock()
        snapshot = make_snapshot(make_entity(1))
        scheduler = RefreshScheduler(lambda: snapshot, live=True, interval=1.0, clock=clock)

        clock.advance(1.0)
        scheduler.tick()
        wait_for_fetch(scheduler)

        assert scheduler.take_latest() is snapshot
        assert scheduler.take_latest() is None

    def test_no_overlapping_fetches(self):
        """Test a tick while a fetch is running starts nothing new."""
        clock = FakeClock()
        release = threading.Event()
        calls = []

        def fetch():
            calls.append(1)
            release.wait(timeout=2.0)
            return make_snapshot()

        scheduler = RefreshScheduler(fetch, live=True, interval=1.0, stall_timeout=10.0, clock=clock)
        clock.advance(1.0)
        assert scheduler.tick()

        clock.advance(1.0)
        assert not scheduler.tick()

        release.set()
        wait_for_fetch(scheduler)
        assert len(calls) == 1

    def test_transient_error_keeps_previous_view(self):
        """Test a failed fetch delivers nothing and the next tick retries."""
        clock = FakeClock()
        good = make_snapshot(make_entity(1))
        results = [SnapshotError("boom"), psutil.AccessDenied(), good]

        def fetch():
            item = results.pop(0)
            if isinstance(item, Exception):
                raise item
            return item

        scheduler = RefreshScheduler(fetch, live=True, interval=1.0, clock=clock)

        for _ in range(2):
            clock.advance(1.0)
            assert scheduler.tick()
            wait_for_fetch(scheduler)
            assert scheduler.take_latest() is None

        clock.advance(1.0)
        scheduler.tick()
        wait_for_fetch(scheduler)
        assert scheduler.take_latest() is good

    def test_stalled_fetch_abandoned(self):
        """Test a stalled fetch is replaced and its late result discarded."""
        clock = FakeClock()
        release = threading.Event()
        stale = make_snapshot(make_entity(1))
        fresh = make_snapshot(make_entity(2))
        calls = []

        def fetch():
            calls.append(1)
            if len(calls) == 1:
                release.wait(timeout=2.0)
                return stale
            return fresh

        scheduler = RefreshScheduler(fetch, live=True, interval=1.0, stall_timeout=5.0, clock=clock)
        clock.advance(1.0)
        scheduler.tick()
        first_thread = scheduler._thread

        clock.advance(6.0)
        assert scheduler.tick()
        wait_for_fetch(scheduler)

        release.set()
        first_thread.join(timeout=2.0)

        assert scheduler.take_latest() is fresh
        assert scheduler.take_latest() is None

    def test_late_ticks_keep_fixed_cadence(self):
        """Test ticks that arrive slightly late or early still refresh every interval."""
        clock = FakeClock()
        scheduler = RefreshScheduler(make_snapshot, live=True, interval=2.0, clock=clock)

        fired = []
        for at in (2.004, 4.001, 6.003, 8.001, 10.002):
            clock.now = at
            fired.append(scheduler.tick())
            wait_for_fetch(scheduler)
            scheduler.take_latest()

        assert fired == [True, True, True, True, True]

    def test_frequent_ticks_fire_once_per_interval(self):
        """Test polling faster than the interval starts one fetch per interval."""
        clock = FakeClock()
        scheduler = RefreshScheduler(make_snapshot, live=True, interval=1.0, clock=clock)

        started = 0
        for _ in range(40):
            clock.advance(0.25)
            started += scheduler.tick()
            wait_for_fetch(scheduler)

        assert started == 10

    def test_abandoned_generations_are_forgotten(self):
        """Test abandoned generations are dropped once a newer result is applied."""
        clock = FakeClock()
        release = threading.Event()
        calls = []

        def fetch():
            calls.append(1)
            if len(calls) == 1:
                release.wait(timeout=2.0)
            return make_snapshot(make_entity(len(calls)))

        scheduler = RefreshScheduler(fetch, live=True, interval=1.0, stall_timeout=5.0, clock=clock)
        clock.advance(1.0)
        scheduler.tick()
        first_thread = scheduler._thread

        clock.advance(6.0)
        scheduler.tick()
        wait_for_fetch(scheduler)
        assert scheduler._abandoned == {1}

        assert scheduler.take_latest() is not None
        assert scheduler._abandoned == set()

        release.set()
        first_thread.join(timeout=2.0)
        assert scheduler.take_latest() is None

    def test_fetch_thread_is_daemon(self):
        """Test fetch threads do not keep the process alive."""
        clock = FakeClock()
        scheduler = RefreshScheduler(make_snapshot, live=True, interval=1.0, clock=clock)
        clock.advance(1.0)
        scheduler.tick()

        try:
            assert scheduler._thread is not None
            assert scheduler._thread.daemon is True
            assert scheduler._thread.name == "SnapshotFetch"
        finally:
            wait_for_fetch(scheduler)


class TestCancel:
    """Tests for cancellation."""

    def test_cancel_stops_ticks(self):
        """Test no fetch starts after cancel."""
        clock = FakeClock()
        scheduler = RefreshScheduler(make_snapshot, live=True, interval=1.0, clock=clock)

        scheduler.cancel()
        clock.advance(10.0)

        assert scheduler.state is SchedulerState.STOPPED
        assert not scheduler.tick()

    def test_cancel_discards_in_flight_result(self):
        """Test a fetch finishing after cancel is never applied."""
        clock = FakeClock()
        release = threading.Event()

        def fetch():
            release.wait(timeout=2.0)
            return make_snapshot(make_entity(1))

        scheduler = RefreshScheduler(fetch, live=True, interval=1.0, clock=clock)
        clock.advance(1.0)
        scheduler.tick()

        scheduler.cancel()
        release.set()
        wait_for_fetch(scheduler)

        assert scheduler.take_latest() is None
