"""
core/countdown.py

Per-key countdown loop and its cooperative cancellation token.

One run_countdown() task exists per running key. It ticks once per
tick_seconds, writes "<label> M:SS" to the status file, shows the raw
"M:SS" on the key and, once the time is up, reports completion back
to the actor before writing the finished label.
"""

import asyncio
import logging
from typing import Callable

from common.models import Settings
from lib.connection import ConnectionAdapter, ConnectionError

from .status_sink import StatusFile


logger = logging.getLogger(__name__)


class CancellationToken:
    """
    Cooperative cancellation flag shared by the actor and one timer loop.

    The actor calls cancel(); the loop observes it at its checkpoints.
    sleep() is the main checkpoint: it wakes up early when cancelled.
    """

    def __init__(self):
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def sleep(self, seconds: float) -> bool:
        """
        Wait for seconds unless cancelled first.

        Returns:
            True if the full delay elapsed, False if cancelled.
        """
        if self.cancelled:
            return False
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return True
        return False

    def __repr__(self) -> str:
        state = "cancelled" if self.cancelled else "active"
        return f"<CancellationToken {state} at {id(self):#x}>"


def format_time(seconds: int) -> str:
    """
    Format whole seconds as M:SS.

    Minutes are not capped, so 3725 seconds renders as "62:05".
    """
    return f"{seconds // 60}:{seconds % 60:02}"


def format_label(settings: Settings, seconds: int) -> str:
    """Running label written to the status file, e.g. "Back in 2:05"."""
    return f"{settings.running_label} {format_time(seconds)}"


async def _write_status(sink: StatusFile, text: str, context: str) -> None:
    try:
        await sink.write(text)
    except OSError as e:
        logger.error(f"Failed to write status file for {context}: {e}")


async def _show_time(host: ConnectionAdapter, context: str, time_text: str) -> None:
    try:
        await host.set_title(context, time_text)
    except ConnectionError as e:
        logger.warning(f"Failed to update title of {context}: {e}")


async def run_countdown(
    settings: Settings,
    context: str,
    token: CancellationToken,
    on_completed: Callable[[str], None],
    *,
    host: ConnectionAdapter,
    sink: StatusFile,
    tick_seconds: float = 1.0,
) -> None:
    """
    Count down from settings.countdown_seconds to zero.

    Cancellation is checked before every write and during every sleep.
    Once observed the loop returns without writing anything else and
    without calling on_completed. Transport and file failures are
    logged and do not interrupt the countdown.

    Args:
        settings: Duration and labels for this run.
        context: Key the countdown belongs to.
        token: Cancellation token owned by the actor.
        on_completed: Called with context once the time is up.
        host: Connection used for title updates.
        sink: Status file receiving the labels.
        tick_seconds: Length of one tick.
    """
    remaining = settings.countdown_seconds
    logger.debug(f"Countdown for {context} started at {format_time(remaining)}")

    while remaining > 0:
        if token.cancelled:
            break
        await _write_status(sink, format_label(settings, remaining), context)

        if token.cancelled:
            break
        await _show_time(host, context, format_time(remaining))

        if not await token.sleep(tick_seconds):
            break
        remaining -= 1

    if token.cancelled:
        logger.debug(f"Countdown for {context} cancelled at {format_time(remaining)}")
        return

    logger.info(f"Countdown for {context} finished")
    on_completed(context)
    await _write_status(sink, settings.finished_label, context)
