"""Runtime settings for pyrip."""

from __future__ import annotations

import signal
from dataclasses import dataclass
from pathlib import Path

from pyrip.models import SortField


@dataclass(frozen=True)
class Settings:
    """Options for one rip session."""

    query: str = ""
    signal: signal.Signals = signal.SIGKILL
    sort: SortField = SortField.CPU
    live: bool = False
    ports: bool = False
    port: int | None = None
    include_portless: bool = False
    refresh_interval: float = 2.0  # Seconds between live refreshes
    cpu_sample_interval: float = 0.2  # Seconds between CPU samples for the first snapshot
    stall_timeout: float = 10.0  # Seconds before a pending fetch is abandoned
    confirm_kill: bool = False
    log_file: Path | None = None

    def __post_init__(self) -> None:
        if self.refresh_interval <= 0:
            raise ValueError(f"refresh_interval must be positive, got {self.refresh_interval}")
        if self.port is not None and not 1 <= self.port <= 65535:
            raise ValueError(f"port must be in 1..65535, got {self.port}")

    @property
    def ports_mode(self) -> bool:
        """Whether processes are correlated with listening ports."""
        return self.ports or self.port is not None
