"""Console output and structlog configuration.

Human-facing messages go through a Rich console and are only printed
outside the TUI session. Structured events from structlog go to an optional
JSON Lines file and are dropped otherwise, so nothing writes to the
terminal while Textual owns it.
"""

from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path

import structlog
from rich.console import Console
from rich.markup import escape

from pyrip.models import SignalOutcome

_console = Console(highlight=False)
_err_console = Console(highlight=False, stderr=True)

LOG_MAX_BYTES = 1_000_000
LOG_BACKUP_COUNT = 2


class Icon:
    """Icon vocabulary for console output."""

    OK = "[bold green]✓[/]"
    FAIL = "[bold red]✗[/]"


# ─────────────────────────────────────────────────────────────────────────────
# Core Functions
# ─────────────────────────────────────────────────────────────────────────────


def info(msg: str) -> None:
    """Print an informational line."""
    _console.print(msg)


def warn(msg: str) -> None:
    """Print a warning line."""
    _err_console.print(f"[yellow]Warning:[/] {msg}")


def error(msg: str) -> None:
    """Print an error line to stderr."""
    _err_console.print(f"[bold red]Error:[/] {msg}")


# ─────────────────────────────────────────────────────────────────────────────
# Domain Helpers
# ─────────────────────────────────────────────────────────────────────────────


def _describe(outcome: SignalOutcome) -> str:
    name = escape(outcome.name) if outcome.name else "?"
    return f"[bold]{name}[/] [dim](PID: {outcome.pid})[/]"


def signal_outcome(outcome: SignalOutcome, verb: str = "Killed") -> None:
    """Print one dispatch result."""
    if outcome.succeeded:
        _console.print(f"{Icon.OK} [green]{verb}[/] {_describe(outcome)}")
    else:
        detail = escape(outcome.error_detail or "unknown error")
        _err_console.print(f"{Icon.FAIL} [red]Failed[/] {_describe(outcome)}: {detail}")


def dispatch_summary(outcomes: list[SignalOutcome], verb: str = "Killed") -> None:
    """Print every dispatch result, then the failed pids if any."""
    for outcome in outcomes:
        signal_outcome(outcome, verb)
    failed = [str(outcome.pid) for outcome in outcomes if not outcome.succeeded]
    if failed:
        error(f"{len(failed)} of {len(outcomes)} signals failed (PID {', '.join(failed)})")


def no_processes_found() -> None:
    info("[dim]No processes found[/]")


def no_processes_selected() -> None:
    info("[dim]No processes selected[/]")


# ─────────────────────────────────────────────────────────────────────────────
# Structlog Configuration
# ─────────────────────────────────────────────────────────────────────────────


def configure(log_file: Path | None = None, verbose: bool = False) -> None:
    """Configure structlog over stdlib logging.

    With a log file, events are written as JSON Lines to a rotating file.
    Without one, events are discarded.

    Args:
        log_file: Destination for structured logs, or None.
        verbose: Include debug events.
    """
    level = logging.DEBUG if verbose else logging.INFO

    stdlib_root = logging.getLogger()
    stdlib_root.setLevel(level)
    stdlib_root.handlers.clear()

    if log_file is None:
        stdlib_root.addHandler(logging.NullHandler())
    else:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=LOG_MAX_BYTES,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processor=structlog.processors.JSONRenderer(),
                foreign_pre_chain=[
                    structlog.processors.TimeStamper(fmt="iso", utc=False, key="ts"),
                    structlog.processors.add_log_level,
                ],
            )
        )
        stdlib_root.addHandler(file_handler)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.processors.TimeStamper(fmt="iso", utc=False, key="ts"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
