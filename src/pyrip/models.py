"""Data models for pyrip."""

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum


class SortField(Enum):
    """Sort fields for the process view."""

    CPU = "cpu"
    MEM = "mem"
    PID = "pid"
    NAME = "name"
    PORT = "port"


@dataclass(slots=True, frozen=True)
class ProcessEntity:
    """Immutable view of one process at snapshot time."""

    pid: int
    name: str
    cpu_percent: float  # 0.0 - 100.0 * core_count
    memory_bytes: int  # RSS
    ppid: int = 0
    ports: frozenset[int] | None = None  # None when ports mode is off

    @property
    def port_labels(self) -> tuple[str, ...]:
        """Listening ports as sorted strings, empty outside ports mode."""
        if not self.ports:
            return ()
        return tuple(str(port) for port in sorted(self.ports))


@dataclass(slots=True, frozen=True)
class Snapshot:
    """One complete read of process (and port) state."""

    entities: tuple[ProcessEntity, ...]
    taken_at: float

    @property
    def pids(self) -> frozenset[int]:
        """All pids present in this snapshot."""
        return frozenset(entity.pid for entity in self.entities)


@dataclass(slots=True, frozen=True)
class RankedEntry:
    """A process paired with its match score."""

    entity: ProcessEntity
    score: int


@dataclass(slots=True, frozen=True)
class RankedView:
    """
    Ordered, filtered view of a snapshot.

    ``universe`` holds the pids of every entity the view was ranked from,
    including the ones the query filtered out.
    """

    entries: tuple[RankedEntry, ...] = ()
    universe: frozenset[int] = field(default_factory=frozenset)

    @classmethod
    def empty(cls) -> "RankedView":
        """Return a view with no entries."""
        return cls()

    def __len__(self) -> int:
        return len(self.entries)

    def __getitem__(self, index: int) -> RankedEntry:
        return self.entries[index]

    def __iter__(self) -> Iterator[RankedEntry]:
        return iter(self.entries)

    @property
    def pids(self) -> tuple[int, ...]:
        """Pids in view order."""
        return tuple(entry.entity.pid for entry in self.entries)

    def pid_at(self, index: int) -> int | None:
        """Return the pid at a view position, or None if out of range."""
        if 0 <= index < len(self.entries):
            return self.entries[index].entity.pid
        return None

    def index_of(self, pid: int) -> int | None:
        """Return the view position of a pid, or None if not shown."""
        for index, entry in enumerate(self.entries):
            if entry.entity.pid == pid:
                return index
        return None


@dataclass(slots=True, frozen=True)
class SignalOutcome:
    """Result of signalling a single pid."""

    pid: int
    succeeded: bool
    error_detail: str | None = None
    name: str | None = None
