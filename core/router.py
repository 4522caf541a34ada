"""
Routes inbound host frames to the countdown actor.

Only key-up events do anything today: they become ButtonPressed
commands. Every other event is decoded and ignored. Frames that fail to
decode are logged and dropped so the receive loop keeps going.
"""

import logging
from typing import Optional

from common.models import DecodeError, EventKind, InboundMessage, decode_message

from .countdown_actor import CountdownActor


logger = logging.getLogger(__name__)

# Receives every raw frame and its decode result when a trace file is configured
TRACE_LOGGER_NAME = "chronodown.frames"


class EventRouter:
    """
    Decode frames and dispatch the resulting messages.

    Args:
        actor: Countdown actor receiving button presses.
        trace: Logger recording every frame, or None to disable tracing.
    """

    def __init__(self, actor: CountdownActor, trace: Optional[logging.Logger] = None):
        self.actor = actor
        self.trace = trace
        self.frames_dropped = 0

    def dispatch(self, raw: str) -> Optional[InboundMessage]:
        """
        Decode one frame and route it.

        Returns:
            The decoded message, or None if the frame was dropped.
        """
        try:
            message = decode_message(raw)
        except DecodeError as e:
            self.frames_dropped += 1
            logger.debug(f"Dropping undecodable frame: {e}")
            self._trace(f"DROPPED ({e}): {raw}")
            return None

        self._trace(f"{message}")
        self.route(message)
        return message

    def route(self, message: InboundMessage) -> None:
        if message.event is EventKind.KEY_UP:
            self.actor.pressed_button(message.context, message.settings)
        else:
            logger.debug(f"Ignoring {message.event_name} for {message.context}")

    def _trace(self, text: str) -> None:
        if self.trace is not None:
            self.trace.info(text)
