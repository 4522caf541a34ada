"""
Host connection implementation using websockets.

This module provides the concrete ConnectionAdapter used at runtime: a
single websocket to the control panel host on localhost.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import AsyncIterator, Callable, Optional

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from .adapter import ConnectionAdapter
from .errors import ConnectionError, NotConnectedError, SendError


@dataclass
class ConnectionStats:
    """Statistics for monitoring connection health."""
    frames_sent: int = 0
    frames_received: int = 0
    send_failures: int = 0
    last_error: Optional[str] = None
    connected_since: Optional[float] = None


class HostConnection(ConnectionAdapter):
    """
    Websocket connection to the control panel host.

    Sends are serialized through an asyncio.Lock so that the actor and
    all running timer loops can share one connection.

    Attributes:
        host: Host name the websocket listens on
        port: Port handed to the plugin on the command line
        url: Websocket URL built from host and port
        stats: Connection statistics

    Example:
        >>> conn = HostConnection(port=28196)
        >>> await conn.connect()
        >>> async for frame in conn.recv_frames():
        ...     print(frame)
    """

    URL_TEMPLATE = 'ws://%(host)s:%(port)d'

    def __init__(self,
                 port: int,
                 host: str = 'localhost',
                 open_timeout: float = 10.0,
                 log_prefix: str = 'ChronoDown',
                 connect_func: Optional[Callable] = None,
                 logger: Optional[logging.Logger] = None):
        """
        Initialize host connection.

        Args:
            port: Websocket port of the host
            host: Host name (the host always listens locally)
            open_timeout: Timeout for the opening handshake (seconds)
            log_prefix: Prefix shown in host log messages
            connect_func: websocket connect function (default: websockets.connect)
            logger: Logger instance
        """
        super().__init__(log_prefix=log_prefix, logger=logger)

        self.host = host
        self.port = port
        self.url = self.URL_TEMPLATE % {'host': host, 'port': port}
        self.open_timeout = open_timeout

        # Dependency injection
        self.connect_func = connect_func or websockets.connect

        self._ws = None
        self._send_lock = asyncio.Lock()

        self.stats = ConnectionStats()

    async def connect(self) -> None:
        """
        Open the websocket to the host.

        Raises:
            ConnectionError: If the handshake fails or times out
        """
        if self._is_connected:
            self.logger.warning("Already connected")
            return

        self.logger.info(f"Connecting to {self.url}")
        try:
            self._ws = await self.connect_func(self.url, open_timeout=self.open_timeout)
        except (OSError, asyncio.TimeoutError, WebSocketException) as e:
            self.stats.last_error = str(e)
            raise ConnectionError(f"Failed to connect to {self.url}: {e}") from e

        self._is_connected = True
        self.stats.connected_since = time.time()
        self.logger.info("Connected successfully")

    async def disconnect(self) -> None:
        """
        Close the websocket.

        Does not raise exceptions - makes best effort to clean up.
        """
        if self._ws is None:
            return

        try:
            await self._ws.close()
        except Exception as e:
            self.logger.warning(f"Error during disconnect: {e}")
        finally:
            self._ws = None
            self._is_connected = False
            self.stats.connected_since = None
            self.logger.info(
                f"Disconnected (sent: {self.stats.frames_sent}, "
                f"received: {self.stats.frames_received}, "
                f"failed sends: {self.stats.send_failures})"
            )

    async def send_text(self, text: str) -> None:
        """
        Send one text frame to the host.

        Raises:
            NotConnectedError: If not connected
            SendError: If the write fails
        """
        if not self._is_connected or self._ws is None:
            raise NotConnectedError("Not connected to host")

        async with self._send_lock:
            try:
                await self._ws.send(text)
            except ConnectionClosed as e:
                self._is_connected = False
                self.stats.send_failures += 1
                self.stats.last_error = str(e)
                raise SendError(f"Connection closed while sending: {e}") from e
            except (OSError, WebSocketException) as e:
                self.stats.send_failures += 1
                self.stats.last_error = str(e)
                raise SendError(f"Failed to send frame: {e}") from e

        self.stats.frames_sent += 1

    async def recv_frames(self) -> AsyncIterator[str]:
        """
        Yield inbound text frames until the host closes the connection.

        Binary frames that are not valid UTF-8 are dropped.

        Raises:
            NotConnectedError: If not connected
        """
        if not self._is_connected or self._ws is None:
            raise NotConnectedError("Not connected to host")

        try:
            async for frame in self._ws:
                self.stats.frames_received += 1
                if isinstance(frame, bytes):
                    try:
                        frame = frame.decode("utf-8")
                    except UnicodeDecodeError as e:
                        self.logger.warning(f"Dropping binary frame that is not UTF-8: {e}")
                        continue
                yield frame
        except ConnectionClosed as e:
            self.stats.last_error = str(e)
            self.logger.warning(f"Connection lost: {e}")
        finally:
            self._is_connected = False

        self.logger.info("Host closed the connection")
