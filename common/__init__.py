"""Common utilities for the ChronoDown plugin."""
from .config import (
    ConfigError,
    HostLogHandler,
    PluginConfig,
    configure_logger,
    load_config,
)
from .models import DecodeError, EventKind, InboundMessage, Settings, decode_message

__all__ = [
    'ConfigError',
    'HostLogHandler',
    'PluginConfig',
    'configure_logger',
    'load_config',
    'DecodeError',
    'EventKind',
    'InboundMessage',
    'Settings',
    'decode_message',
]
