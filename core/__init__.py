"""Countdown core: timer loops, the actor that owns their state, and routing."""
from .countdown import CancellationToken, format_label, format_time, run_countdown
from .countdown_actor import (
    STOPPED,
    ButtonPressed,
    CountdownActor,
    Running,
    Stopped,
    TimerCompleted,
)
from .router import EventRouter
from .status_sink import StatusFile

__all__ = [
    'CancellationToken',
    'format_label',
    'format_time',
    'run_countdown',
    'STOPPED',
    'ButtonPressed',
    'CountdownActor',
    'Running',
    'Stopped',
    'TimerCompleted',
    'EventRouter',
    'StatusFile',
]
