"""CLI entry point for stageclock.

Uses Click to expose the ``stageclock`` command group: the countdown
display itself, the upload relay and the background-image provider.
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Callable, Optional, TextIO, TypeVar

import click

import stageclock
from stageclock.background import UploadError, local_background, upload_background
from stageclock.cli.render import TerminalDisplay
from stageclock.core.display import format_hms
from stageclock.core.panel import HELP_TEXT, OperatorPanel
from stageclock.core.timer import DEFAULT_INTERVAL, DEFAULT_SECONDS, CountdownEngine, CountdownError
from stageclock.logging_config import setup_logging
from stageclock.relay.server import DEFAULT_HOST, DEFAULT_PORT, DEFAULT_UPLOAD_DIR, UploadRelay

T = TypeVar("T")

_QUIT_COMMANDS = frozenset({"quit", "exit", "q"})


def _run(action: Callable[[], T]) -> T:
    """Execute *action*, converting a rejected countdown action to a CLI error."""
    try:
        return action()
    except (CountdownError, UploadError, FileNotFoundError) as exc:
        click.echo(str(exc), err=True)
        sys.exit(1)


def handle_operator_line(panel: OperatorPanel, display: TerminalDisplay, line: str) -> bool:
    """Apply one operator *line*.  Return False when the operator asked to quit."""
    if line.strip().lower() in _QUIT_COMMANDS:
        return False
    message, ok = panel.handle(line)
    display.message(message, ok)
    return True


async def _read_operator_lines(stdin: TextIO, on_line: Callable[[str], bool]) -> None:
    """Feed lines from *stdin* to *on_line* until it returns False.

    Terminals and pipes are watched on the event loop.  Regular files and
    in-memory streams cannot be watched, so they are read on a worker thread.
    """
    loop = asyncio.get_running_loop()
    done = asyncio.Event()

    def on_readable() -> None:
        if not on_line(stdin.readline()):
            done.set()

    try:
        fd = stdin.fileno()
        loop.add_reader(fd, on_readable)
    except (OSError, ValueError, NotImplementedError):
        while on_line(await loop.run_in_executor(None, stdin.readline)):
            pass
        return

    try:
        await done.wait()
    finally:
        loop.remove_reader(fd)


async def _show(
    minutes: float, interval: float, autostart: bool, stdin: Optional[TextIO] = None
) -> None:
    loop = asyncio.get_running_loop()
    display = TerminalDisplay()

    with CountdownEngine(
        DEFAULT_SECONDS, loop=loop, clock=loop.time, interval=interval, on_frame=display.render
    ) as engine:
        panel = OperatorPanel(engine)
        engine.configure(minutes)
        if autostart:
            engine.start()

        def on_line(line: str) -> bool:
            return bool(line) and handle_operator_line(panel, display, line)

        await _read_operator_lines(stdin if stdin is not None else sys.stdin, on_line)
    click.echo()


@click.group()
@click.version_option(version=stageclock.__version__, prog_name="stageclock")
@click.option(
    "--log-level",
    default="WARNING",
    envvar="STAGECLOCK_LOG_LEVEL",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    show_default=True,
)
def cli(log_level: str) -> None:
    """stageclock: a countdown display for live events."""
    setup_logging(log_level)


@cli.command()
@click.option(
    "--minutes",
    type=float,
    default=DEFAULT_SECONDS / 60,
    envvar="STAGECLOCK_MINUTES",
    show_default=True,
    help="Initial duration.",
)
@click.option(
    "--interval",
    type=click.FloatRange(min=0.01),
    default=DEFAULT_INTERVAL,
    envvar="STAGECLOCK_INTERVAL",
    show_default=True,
    help="Display refresh interval in seconds.",
)
@click.option("--autostart", is_flag=True, help="Start counting down immediately.")
def run(minutes: float, interval: float, autostart: bool) -> None:
    """Show the countdown; type operator commands on stdin."""
    click.echo(HELP_TEXT, err=True)
    _run(lambda: asyncio.run(_show(minutes, interval, autostart)))


@cli.command(name="format")
@click.argument("seconds", type=click.IntRange(min=0))
def format_(seconds: int) -> None:
    """Print SECONDS as HH:MM:SS."""
    click.echo(format_hms(seconds))


@cli.command()
@click.option("--host", default=DEFAULT_HOST, envvar="STAGECLOCK_HOST", show_default=True)
@click.option("--port", type=int, default=DEFAULT_PORT, envvar="STAGECLOCK_PORT", show_default=True)
@click.option(
    "--upload-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=DEFAULT_UPLOAD_DIR,
    envvar="STAGECLOCK_UPLOAD_DIR",
    show_default=True,
)
def serve(host: str, port: int, upload_dir: Path) -> None:
    """Run the background-image upload relay."""
    UploadRelay(upload_dir).run(host=host, port=port)


@cli.command()
@click.argument("image", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--server", envvar="STAGECLOCK_SERVER", help="Upload relay URL, e.g. http://localhost:4000")
def background(image: Path, server: str | None) -> None:
    """Print a backdrop URL for IMAGE, uploading it when --server is given."""
    if server:
        url = _run(lambda: asyncio.run(upload_background(image, server)))
    else:
        url = _run(lambda: local_background(image))
    click.echo(url)
