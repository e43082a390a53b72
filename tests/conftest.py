"""Shared test fixtures for pyrip."""

from contextlib import contextmanager
from types import SimpleNamespace

import psutil
import pytest

from pyrip.models import ProcessEntity, Snapshot


def make_entity(
    pid: int,
    name: str = "proc",
    cpu: float = 0.0,
    mem: int = 0,
    ports: set[int] | None = None,
) -> ProcessEntity:
    """Create a ProcessEntity for testing."""
    return ProcessEntity(
        pid=pid,
        name=name,
        cpu_percent=cpu,
        memory_bytes=mem,
        ppid=1,
        ports=frozenset(ports) if ports is not None else None,
    )


def make_snapshot(*entities: ProcessEntity, taken_at: float = 0.0) -> Snapshot:
    """Create a Snapshot from entities."""
    return Snapshot(entities=tuple(entities), taken_at=taken_at)


class FakeProcess:
    """Stand-in for psutil.Process with scripted behaviour."""

    def __init__(
        self,
        pid: int,
        name: str = "proc",
        cpu: float = 0.0,
        rss: int = 0,
        ppid: int = 1,
        vanished: bool = False,
        denied: tuple[str, ...] = (),
    ) -> None:
        self.pid = pid
        self._info = {
            "pid": pid,
            "name": name,
            "cpu_percent": cpu,
            "memory_info": SimpleNamespace(rss=rss),
            "ppid": ppid,
        }
        self._vanished = vanished
        self._denied = denied

    @contextmanager
    def oneshot(self):
        yield

    def as_dict(self, attrs=None, ad_value=None):
        if self._vanished:
            raise psutil.NoSuchProcess(self.pid)
        attrs = attrs or list(self._info)
        return {attr: ad_value if attr in self._denied else self._info.get(attr) for attr in attrs}


@pytest.fixture
def sample_entities() -> list[ProcessEntity]:
    """A handful of processes with distinct gauges."""
    return [
        make_entity(1, "chrome", cpu=40.0, mem=500),
        make_entity(2, "chromehelper", cpu=5.0, mem=900),
        make_entity(3, "node", cpu=12.0, mem=300),
        make_entity(4, "bash", cpu=0.5, mem=10),
    ]
