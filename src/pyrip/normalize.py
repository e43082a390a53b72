"""Conversion of raw psutil data into ProcessEntity values."""

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass

import psutil

from pyrip.models import ProcessEntity

# Attributes read per process inside oneshot()
PROCESS_ATTRS = ["pid", "name", "cpu_percent", "memory_info", "ppid"]


@dataclass(slots=True, frozen=True)
class RawProcess:
    """Process attributes as read from the OS."""

    pid: int
    name: str
    cpu_percent: float
    memory_bytes: int
    ppid: int


@dataclass(slots=True, frozen=True)
class RawSocket:
    """A listening socket and the pid that owns it."""

    pid: int
    port: int


def read_process(proc: psutil.Process) -> RawProcess | None:
    """
    Read the attributes of a listed process.

    Returns None when the process exited between being listed and being
    read. Fields the OS refuses to disclose fall back to neutral defaults.
    """
    try:
        with proc.oneshot():
            info = proc.as_dict(attrs=PROCESS_ATTRS, ad_value=None)
    except (psutil.NoSuchProcess, psutil.ZombieProcess):
        return None

    mem_info = info.get("memory_info")
    return RawProcess(
        pid=info.get("pid") or proc.pid,
        name=info.get("name") or "",
        cpu_percent=info.get("cpu_percent") or 0.0,
        memory_bytes=mem_info.rss if mem_info else 0,
        ppid=info.get("ppid") or 0,
    )


def index_ports(raw_ports: Iterable[RawSocket]) -> dict[int, set[int]]:
    """Group listening ports by owning pid."""
    by_pid: dict[int, set[int]] = defaultdict(set)
    for sock in raw_ports:
        by_pid[sock.pid].add(sock.port)
    return by_pid


def normalize(
    raw_processes: Iterable[RawProcess | psutil.Process | None],
    raw_ports: Iterable[RawSocket] | None = None,
    *,
    port: int | None = None,
    include_portless: bool = False,
) -> tuple[ProcessEntity, ...]:
    """
    Build the entity set for one snapshot.

    Args:
        raw_processes: Already-read RawProcess values, or psutil.Process
            handles that are read here. Vanished processes are dropped.
        raw_ports: Listening sockets. None disables ports mode entirely.
        port: Keep only processes owning this port (implies ports mode).
        include_portless: In ports mode, keep processes without any port.

    Returns:
        Entities ordered by pid.
    """
    if port is not None and raw_ports is None:
        raw_ports = ()

    ports_by_pid = index_ports(raw_ports) if raw_ports is not None else None

    entities: list[ProcessEntity] = []
    for item in raw_processes:
        raw = item if isinstance(item, RawProcess) or item is None else read_process(item)
        if raw is None:
            continue

        ports: frozenset[int] | None = None
        if ports_by_pid is not None:
            ports = frozenset(ports_by_pid.get(raw.pid, ()))
            if port is not None and port not in ports:
                continue
            if not ports and not include_portless:
                continue

        entities.append(
            ProcessEntity(
                pid=raw.pid,
                name=raw.name,
                cpu_percent=raw.cpu_percent,
                memory_bytes=raw.memory_bytes,
                ppid=raw.ppid,
                ports=ports,
            )
        )

    entities.sort(key=lambda entity: entity.pid)
    return tuple(entities)
