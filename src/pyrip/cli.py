"""Command line entry point for rip."""

import signal
import sys
from pathlib import Path

import click
import structlog

from pyrip import logging as console
from pyrip.app import RipApp
from pyrip.config import Settings
from pyrip.dispatch import UnknownSignalError, dispatch, exit_status, parse_signal, signal_label
from pyrip.models import SortField
from pyrip.monitor import ProcessProvider, SnapshotError
from pyrip.scheduler import RefreshScheduler

log = structlog.get_logger()


def _signal_option(ctx: click.Context, param: click.Parameter, value: str) -> signal.Signals:
    try:
        return parse_signal(value)
    except UnknownSignalError as exc:
        raise click.BadParameter(str(exc)) from exc


def _has_terminal() -> bool:
    """Check that both ends of the session are attached to a terminal."""
    return sys.stdin.isatty() and sys.stdout.isatty()


def run(settings: Settings) -> int:
    """
    Run one pick-and-signal session.

    Returns:
        The process exit status.
    """
    if not _has_terminal():
        console.error("rip needs an interactive terminal")
        return 1

    provider = ProcessProvider(
        ports=settings.ports,
        port=settings.port,
        include_portless=settings.include_portless,
        cpu_sample_interval=settings.cpu_sample_interval,
    )
    try:
        provider.prime()
        snapshot = provider.snapshot()
    except SnapshotError as exc:
        log.error("startup_snapshot_failed", error=str(exc))
        console.error(str(exc))
        return 1

    if not snapshot.entities:
        console.no_processes_found()
        return 0

    scheduler = RefreshScheduler(
        provider.snapshot,
        live=settings.live,
        interval=settings.refresh_interval,
        stall_timeout=settings.stall_timeout,
    )

    app = RipApp(settings, snapshot, scheduler)
    selection = app.run()
    if app.return_code:
        console.error("terminal session ended abnormally")
        return 1

    if not selection:
        console.no_processes_selected()
        return 0

    outcomes = dispatch(sorted(selection), settings.signal, app.browser.names)
    verb = "Killed" if settings.signal == signal.SIGKILL else f"Sent {signal_label(settings.signal)} to"
    console.dispatch_summary(outcomes, verb)
    return exit_status(outcomes)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(None, "-v", "--version", package_name="pyrip", prog_name="rip")
@click.option("-f", "--filter", "query", default="", help="Initial search query")
@click.option(
    "-s",
    "--signal",
    "sig",
    default="KILL",
    callback=_signal_option,
    help="Signal to send: KILL, TERM, INT, HUP, QUIT, USR1, USR2, STOP, CONT",
)
@click.option(
    "--sort",
    type=click.Choice([field.value for field in SortField]),
    default=SortField.CPU.value,
    help="Sort processes by field",
)
@click.option("-l", "--live", is_flag=True, help="Auto-refresh the process list")
@click.option("--ports", is_flag=True, help="Show listening ports")
@click.option("--port", type=click.IntRange(1, 65535), help="Only processes listening on PORT")
@click.option("--include-portless", is_flag=True, help="In ports mode, also list processes without ports")
@click.option(
    "--interval",
    type=click.FloatRange(min=0.1),
    default=2.0,
    show_default=True,
    help="Seconds between refreshes in live mode",
)
@click.option("--confirm", "confirm_kill", is_flag=True, help="Ask before sending the signal")
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    envvar="PYRIP_LOG_FILE",
    help="Write structured logs to this file",
)
@click.option("--verbose", is_flag=True, help="Include debug events in the log file")
def main(
    query: str,
    sig: signal.Signals,
    sort: str,
    live: bool,
    ports: bool,
    port: int | None,
    include_portless: bool,
    interval: float,
    confirm_kill: bool,
    log_file: Path | None,
    verbose: bool,
) -> None:
    """Fuzzy find and kill processes."""
    console.configure(log_file, verbose=verbose)
    settings = Settings(
        query=query,
        signal=sig,
        sort=SortField(sort),
        live=live,
        ports=ports,
        port=port,
        include_portless=include_portless,
        refresh_interval=interval,
        confirm_kill=confirm_kill,
        log_file=log_file,
    )
    sys.exit(run(settings))


if __name__ == "__main__":
    main()
