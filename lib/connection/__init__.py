"""
Connection to the control panel host.

This module provides the abstract transport interface, the websocket
implementation used at runtime and the outbound frame builders.
"""

from .adapter import ConnectionAdapter
from .host import HostConnection
from .errors import (
    ConnectionError,
    NotConnectedError,
    SendError,
)
from .protocol import log_message_frame, register_frame, set_title_frame

__all__ = [
    'ConnectionAdapter',
    'HostConnection',
    'ConnectionError',
    'NotConnectedError',
    'SendError',
    'log_message_frame',
    'register_frame',
    'set_title_frame',
]
