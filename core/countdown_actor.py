"""
core/countdown_actor.py

Single serialization point for all countdown state.

The actor owns the mapping from key context to timer state. Every change
to that mapping goes through one asyncio.Queue consumed by one task, so
commands are applied strictly in submission order and the mapping never
needs a lock. Timer loops run as separate tasks and only talk back to
the actor by submitting TimerCompleted.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional, Set, Union

from common.models import Settings
from lib.connection import ConnectionAdapter, ConnectionError

from .countdown import CancellationToken


# =============================================================================
# Timer State
# =============================================================================

@dataclass(frozen=True)
class Stopped:
    """No countdown is running for the key."""
    pass


@dataclass(frozen=True)
class Running:
    """A countdown is running; token is the only handle needed to cancel it."""
    token: CancellationToken


STOPPED = Stopped()

TimerState = Union[Stopped, Running]


# =============================================================================
# Commands
# =============================================================================

@dataclass(frozen=True)
class ButtonPressed:
    """The key was pressed and released."""
    context: str
    settings: Settings


@dataclass(frozen=True)
class TimerCompleted:
    """The key's countdown reached zero."""
    context: str


ActorCommand = Union[ButtonPressed, TimerCompleted]

# (settings, context, token, on_completed) -> countdown coroutine
StartCountdown = Callable[
    [Settings, str, CancellationToken, Callable[[str], None]],
    Awaitable[None],
]


# =============================================================================
# Actor
# =============================================================================

class CountdownActor:
    """
    Toggles per-key countdowns in response to button presses.

    A press on a stopped key starts a countdown; a press on a running key
    cancels it. Completion of a countdown marks the key stopped and shows
    the done title. Failed title updates are logged and never block a
    state transition.

    Args:
        host: Connection used for title updates.
        start_countdown: Coroutine function running one countdown loop.
    """

    STOPPED_TITLE = "Stopped"
    DONE_TITLE = "Done"

    def __init__(self, host: ConnectionAdapter, start_countdown: StartCountdown):
        self.host = host
        self.start_countdown = start_countdown
        self.running = False
        self._queue: asyncio.Queue = asyncio.Queue()
        self._state: Dict[str, TimerState] = {}
        self._task: Optional[asyncio.Task] = None
        self._timers: Set[asyncio.Task] = set()
        self.logger = logging.getLogger(f"{__name__}.actor")

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def start(self) -> None:
        """Start consuming commands."""
        if self.running:
            self.logger.warning("Actor already running")
            return

        self.running = True
        self._task = asyncio.create_task(self._run(), name="countdown-actor")
        self.logger.info("Countdown actor started")

    async def stop(self) -> None:
        """
        Stop consuming commands and cancel every running countdown.

        Commands still queued are discarded.
        """
        if not self.running:
            return

        self.running = False

        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        for state in self._state.values():
            if isinstance(state, Running):
                state.token.cancel()
        self._state.clear()

        timers = list(self._timers)
        for task in timers:
            task.cancel()
        if timers:
            await asyncio.gather(*timers, return_exceptions=True)

        self.logger.info(f"Countdown actor stopped ({len(timers)} countdowns cancelled)")

    async def join(self) -> None:
        """Wait until every submitted command has been processed."""
        await self._queue.join()

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def submit(self, command: ActorCommand) -> None:
        """Queue a command. Never blocks."""
        if not self.running:
            self.logger.debug(f"Queued {command} while actor is not running")
        self._queue.put_nowait(command)

    def pressed_button(self, context: str, settings: Settings) -> None:
        self.submit(ButtonPressed(context, settings))

    def state_of(self, context: str) -> TimerState:
        """Current state of a key; unknown keys are stopped."""
        return self._state.get(context, STOPPED)

    @property
    def running_keys(self) -> List[str]:
        return [c for c, s in self._state.items() if isinstance(s, Running)]

    @property
    def active_timers(self) -> int:
        """Number of countdown tasks that have not finished yet."""
        return len(self._timers)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    async def _run(self) -> None:
        self.logger.debug("Command loop started")
        while True:
            command = await self._queue.get()
            try:
                await self._handle(command)
            except Exception as e:
                self.logger.exception(f"Error handling {command}: {e}")
            finally:
                self._queue.task_done()

    async def _handle(self, command: ActorCommand) -> None:
        if isinstance(command, ButtonPressed):
            await self._handle_button_press(command.context, command.settings)
        elif isinstance(command, TimerCompleted):
            await self._handle_completion(command.context)
        else:
            self.logger.error(f"Unknown command: {command!r}")
            return
        self.logger.debug(f"State after {type(command).__name__}: {self._state}")

    async def _handle_button_press(self, context: str, settings: Settings) -> None:
        state = self.state_of(context)

        if isinstance(state, Running):
            state.token.cancel()
            await self._show(context, self.STOPPED_TITLE)
            self._state[context] = STOPPED
            self.logger.info(f"Countdown for {context} stopped")
            return

        token = CancellationToken()
        task = asyncio.create_task(
            self.start_countdown(settings, context, token, self._on_completed),
            name=f"countdown:{context}",
        )
        self._timers.add(task)
        task.add_done_callback(self._timer_done)
        self._state[context] = Running(token)
        self.logger.info(f"Countdown for {context} started ({settings.countdown_seconds}s)")

    async def _handle_completion(self, context: str) -> None:
        await self._show(context, self.DONE_TITLE)
        # Overwrites unconditionally, even a Running entry installed after
        # the completed loop's last tick
        self._state[context] = STOPPED

    def _on_completed(self, context: str) -> None:
        self.submit(TimerCompleted(context))

    def _timer_done(self, task: asyncio.Task) -> None:
        self._timers.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self.logger.error(
                f"Countdown task {task.get_name()} failed: {error}",
                exc_info=error,
            )

    async def _show(self, context: str, title: str) -> None:
        try:
            await self.host.set_title(context, title)
        except ConnectionError as e:
            self.logger.warning(f"Failed to set title of {context} to {title!r}: {e}")
