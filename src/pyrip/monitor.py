"""Process and socket collection for pyrip."""

import socket
import time

import psutil
import structlog

from pyrip.models import Snapshot
from pyrip.normalize import RawSocket, normalize

log = structlog.get_logger()


class SnapshotError(RuntimeError):
    """The OS could not be queried for process or socket state."""


class ProcessProvider:
    """
    Reads process and listening-socket state using psutil.

    Handles AccessDenied and vanished processes per process; only failures
    to list processes at all surface as SnapshotError.
    """

    def __init__(
        self,
        ports: bool = False,
        port: int | None = None,
        include_portless: bool = False,
        cpu_sample_interval: float = 0.2,
    ) -> None:
        """
        Initialize the ProcessProvider.

        Args:
            ports: Correlate processes with their listening ports.
            port: Only report processes listening on this port.
            include_portless: In ports mode, also report processes without ports.
            cpu_sample_interval: Seconds to wait after prime() so the first
                cpu_percent reading is a real delta.
        """
        self._ports = ports or port is not None
        self._port = port
        self._include_portless = include_portless
        self._cpu_sample_interval = cpu_sample_interval

    @property
    def ports_mode(self) -> bool:
        """Whether sockets are read alongside processes."""
        return self._ports

    def list_processes(self) -> list[psutil.Process]:
        """List running processes without reading their details."""
        return list(psutil.process_iter())

    def listening_sockets(self) -> list[RawSocket]:
        """Return TCP listeners and bound UDP sockets with an owning pid."""
        seen: set[tuple[int, int]] = set()
        sockets: list[RawSocket] = []
        for conn in psutil.net_connections(kind="inet"):
            if not conn.pid or not conn.laddr:
                continue
            if conn.type == socket.SOCK_STREAM and conn.status != psutil.CONN_LISTEN:
                continue
            if conn.type == socket.SOCK_DGRAM and conn.raddr:
                continue
            key = (conn.pid, conn.laddr.port)
            if key in seen:
                continue
            seen.add(key)
            sockets.append(RawSocket(pid=conn.pid, port=conn.laddr.port))
        return sockets

    def prime(self) -> None:
        """Start CPU accounting so the next snapshot reports real percentages."""
        try:
            procs = self.list_processes()
        except (psutil.Error, OSError) as exc:
            raise SnapshotError(f"cannot read process table: {exc}") from exc
        for proc in procs:
            try:
                proc.cpu_percent(interval=None)
            except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                continue
        time.sleep(self._cpu_sample_interval)

    def snapshot(self) -> Snapshot:
        """Collect and normalize one snapshot."""
        try:
            procs = self.list_processes()
            raw_ports = self.listening_sockets() if self._ports else None
        except (psutil.Error, OSError) as exc:
            raise SnapshotError(f"cannot read process table: {exc}") from exc

        entities = normalize(
            procs,
            raw_ports,
            port=self._port,
            include_portless=self._include_portless,
        )
        log.debug("snapshot_taken", processes=len(entities), ports_mode=self._ports)
        return Snapshot(entities=entities, taken_at=time.time())
