"""Signal delivery to selected processes."""

import signal
from collections.abc import Iterable, Mapping

import psutil
import structlog

from pyrip.models import SignalOutcome

log = structlog.get_logger()

_SIGNAL_NAMES = ("KILL", "TERM", "INT", "HUP", "QUIT", "USR1", "USR2", "STOP", "CONT")

# Signals the user may choose, limited to what this platform defines
SIGNALS: dict[str, signal.Signals] = {
    name: getattr(signal, f"SIG{name}") for name in _SIGNAL_NAMES if hasattr(signal, f"SIG{name}")
}


class UnknownSignalError(ValueError):
    """The requested signal is not one rip can send."""


def parse_signal(text: str) -> signal.Signals:
    """
    Resolve a signal from a name or number.

    Accepts "TERM", "term", "SIGTERM" or the platform's number ("15").
    """
    value = text.strip().upper()
    value = value.removeprefix("SIG")

    if value in SIGNALS:
        return SIGNALS[value]
    if value.isdigit():
        for sig in SIGNALS.values():
            if sig.value == int(value):
                return sig
    raise UnknownSignalError(f"Unknown signal: {text}")


def signal_label(sig: signal.Signals) -> str:
    """Short name of a signal, e.g. TERM."""
    return sig.name.removeprefix("SIG")


def _send(pid: int, sig: signal.Signals) -> str | None:
    """Send one signal and return an error description on failure."""
    try:
        psutil.Process(pid).send_signal(sig)
    except psutil.NoSuchProcess:
        return "no such process"
    except psutil.AccessDenied:
        return "permission denied"
    except (psutil.Error, OSError, ValueError) as exc:
        return str(exc) or exc.__class__.__name__
    return None


def dispatch(
    pids: Iterable[int],
    sig: signal.Signals,
    names: Mapping[int, str] | None = None,
) -> list[SignalOutcome]:
    """
    Send sig to every pid, independently.

    Returns:
        One SignalOutcome per pid, in input order. A failure on one pid
        never prevents attempts on the rest; nothing is retried.
    """
    names = names or {}
    outcomes: list[SignalOutcome] = []
    for pid in pids:
        error = _send(pid, sig)
        if error is None:
            log.info("signal_sent", pid=pid, signal=sig.name)
        else:
            log.warning("signal_failed", pid=pid, signal=sig.name, error=error)
        outcomes.append(
            SignalOutcome(pid=pid, succeeded=error is None, error_detail=error, name=names.get(pid))
        )
    return outcomes


def failed_pids(outcomes: Iterable[SignalOutcome]) -> list[int]:
    """Pids whose signal could not be delivered."""
    return [outcome.pid for outcome in outcomes if not outcome.succeeded]


def exit_status(outcomes: Iterable[SignalOutcome]) -> int:
    """Process exit status: 0 when every signal was delivered, 1 otherwise."""
    return 1 if failed_pids(outcomes) else 0
