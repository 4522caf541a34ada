"""
Connection-specific exceptions.

This module defines the exception hierarchy for host connection errors.
All exceptions inherit from ConnectionError for easy catching.
"""


class ConnectionError(Exception):
    """
    Base exception for host connection errors.

    All connection-related exceptions inherit from this class,
    allowing catch-all exception handling around a single outbound call.
    """
    pass


class NotConnectedError(ConnectionError):
    """
    Operation requires an open connection.

    Raised when attempting to send a frame before connect() succeeded
    or after the host closed the socket.
    """
    pass


class SendError(ConnectionError):
    """
    Failed to send a frame to the host.

    Raised when the websocket write fails mid-flight, typically because
    the host dropped the connection.
    """
    pass

