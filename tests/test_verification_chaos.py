"""Verification Test: Chaos Monkey - Random process termination resilience.

Processes can exit at any moment between being listed and being read.
Snapshots must keep coming without NoSuchProcess ever escaping, and a
selection of processes that die must be pruned on the next refresh.
"""

import multiprocessing
import random
import time

import pytest

from pyrip.browser import Browser
from pyrip.models import SortField
from pyrip.monitor import ProcessProvider
from pyrip.scheduler import RefreshScheduler


def dummy_worker(duration: float = 60.0) -> None:
    """A dummy worker process that sleeps for a given duration."""
    try:
        time.sleep(duration)
    except (KeyboardInterrupt, SystemExit):
        pass


def stop_all(processes: list) -> None:
    """Terminate and reap every worker."""
    for p in processes:
        if p.is_alive():
            p.terminate()
    for p in processes:
        p.join(timeout=1.0)


class TestChaosMonkey:
    """Chaos Monkey verification suite tests."""

    def test_snapshots_survive_process_termination(self):
        """
        Test that snapshots don't fail when processes die mid-poll.

        Workers are terminated while snapshots are being taken; every
        snapshot must succeed.
        """
        processes = []
        for _ in range(30):
            p = multiprocessing.Process(target=dummy_worker, args=(60.0,))
            p.start()
            processes.append(p)

        provider = ProcessProvider()

        try:
            to_kill = random.sample(processes, 15)
            for p in to_kill:
                p.terminate()
                try:
                    snapshot = provider.snapshot()
                except Exception as e:
                    pytest.fail(f"snapshot raised during chaos: {e}")
                assert len(snapshot.entities) > 0
        finally:
            stop_all(processes)

    def test_selected_dead_processes_are_pruned(self):
        """
        Test selections of killed workers disappear after a refresh.

        Selects every worker, kills half of them, and reconciles with a
        fresh snapshot.
        """
        processes = []
        for _ in range(6):
            p = multiprocessing.Process(target=dummy_worker, args=(60.0,))
            p.start()
            processes.append(p)

        provider = ProcessProvider()
        browser = Browser(sort_field=SortField.PID)

        try:
            browser.apply_snapshot(provider.snapshot())
            worker_pids = {p.pid for p in processes}
            for _ in range(len(browser.view)):
                if browser.view.pid_at(browser.cursor) in worker_pids:
                    browser.toggle()
                browser.cursor_down()
            assert browser.selected == frozenset(worker_pids)

            dead = processes[:3]
            for p in dead:
                p.terminate()
                p.join(timeout=2.0)

            browser.apply_snapshot(provider.snapshot())
            assert browser.selected == frozenset(p.pid for p in processes[3:])
        finally:
            stop_all(processes)

    def test_live_refresh_during_churn(self):
        """
        Test the scheduler keeps delivering snapshots during process churn.
        """
        provider = ProcessProvider()
        scheduler = RefreshScheduler(provider.snapshot, live=True, interval=0.1)
        processes = []
        delivered = 0

        try:
            deadline = time.time() + 3.0
            while time.time() < deadline:
                p = multiprocessing.Process(target=dummy_worker, args=(10.0,))
                p.start()
                processes.append(p)

                alive = [p for p in processes if p.is_alive()]
                if len(alive) > 5:
                    for victim in random.sample(alive, 2):
                        victim.terminate()

                scheduler.tick()
                if scheduler.take_latest() is not None:
                    delivered += 1
                time.sleep(0.1)

            assert delivered >= 3, f"Expected at least 3 refreshes, got {delivered}"
        finally:
            scheduler.cancel()
            stop_all(processes)
