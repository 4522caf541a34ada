"""
Abstract connection adapter for the control panel host.

This module defines the ConnectionAdapter abstract base class. The
countdown actor and the timer loops only ever talk to this interface,
so tests can swap in an in-memory connection and the websocket
implementation stays an injected dependency rather than global state.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Dict, Optional

from .errors import ConnectionError
from .protocol import log_message_frame, register_frame, set_title_frame


class ConnectionAdapter(ABC):
    """
    Abstract interface for the host connection.

    Implementations provide the raw frame transport (connect, disconnect,
    send_frame, recv_frames). The protocol-level helpers (set_title,
    log_message, register) are built on top of send_frame and shared by
    every implementation.

    Attributes:
        logger: Logger instance for connection events
        log_prefix: Prefix used for logMessage frames
        is_connected: Connection status flag

    Example:
        >>> conn = HostConnection(port=28196)
        >>> await conn.connect()
        >>> await conn.register("registerPlugin", "ABC123")
        >>> await conn.set_title("ctx-1", "0:30")
    """

    def __init__(self,
                 log_prefix: str = "ChronoDown",
                 logger: Optional[logging.Logger] = None):
        """
        Initialize connection adapter.

        Args:
            log_prefix: Prefix shown in host log messages
            logger: Optional logger instance. If None, creates default logger
                    named after the class.
        """
        self.logger = logger or logging.getLogger(self.__class__.__name__)
        self.log_prefix = log_prefix
        self._is_connected = False

    @abstractmethod
    async def connect(self) -> None:
        """
        Establish connection to the host.

        Raises:
            ConnectionError: If connection fails
        """
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """
        Close connection gracefully.

        This method should not raise exceptions - it should make best
        effort to clean up even if errors occur.
        """
        pass

    @abstractmethod
    async def send_text(self, text: str) -> None:
        """
        Send one text frame.

        Implementations must tolerate concurrent callers: the actor and
        every running timer loop write to the same connection.

        Raises:
            NotConnectedError: If not connected
            SendError: If the frame fails to send
        """
        pass

    @abstractmethod
    def recv_frames(self) -> AsyncIterator[str]:
        """
        Async iterator yielding raw inbound text frames.

        The iterator ends when the host closes the connection.

        Raises:
            NotConnectedError: If not connected
        """
        pass

    @property
    def is_connected(self) -> bool:
        """
        Check if connection is active.

        Returns:
            True if connected, False otherwise
        """
        return self._is_connected

    async def send_frame(self, frame: Dict[str, Any]) -> None:
        """Serialize a frame to JSON and send it."""
        await self.send_text(json.dumps(frame))

    async def register(self, register_event: str, plugin_uuid: str) -> None:
        """Send the registration frame. Must precede all other traffic."""
        await self.send_frame(register_frame(register_event, plugin_uuid))
        self.logger.info(f"Registered plugin {plugin_uuid} ({register_event})")

    async def set_title(self, context: str, title: str, target: str = "both") -> None:
        """
        Set the display text of one key.

        Raises:
            ConnectionError: If the frame could not be delivered
        """
        await self.send_frame(set_title_frame(context, title, target))

    async def log_message(self, message: str) -> None:
        """
        Write a line to the host's plugin log.

        Best-effort: delivery failures are dropped here, since reporting
        them through logging would feed straight back into this method.
        """
        try:
            await self.send_frame(log_message_frame(self.log_prefix, message))
        except ConnectionError:
            pass
