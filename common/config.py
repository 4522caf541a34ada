#!/usr/bin/env python3
# -*- coding: utf-8 -*-
import asyncio
import json
import logging
import math
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Optional, Set


LOG_FORMAT = '[%(asctime).19s] [%(name)s] [%(levelname)s] %(message)s'
TRACE_FORMAT = '[%(asctime).19s] %(message)s'


class ConfigError(Exception):
    """Raised when the configuration file cannot be loaded"""
    pass


class RobustFileHandler(logging.FileHandler):
    """FileHandler that gracefully handles flush errors on Windows"""

    def flush(self):
        """Flush the stream, catching OSError on Windows file handles"""
        try:
            super().flush()
        except OSError as e:
            # Windows can fail to flush with "Invalid argument" when the
            # handle is in an inconsistent state
            if e.errno == 22:  # EINVAL
                pass
            else:
                raise


class HostLogHandler(logging.Handler):
    """Forward log records to the host as logMessage frames

    Sending is asynchronous, so each record schedules a task on the
    running loop. Records emitted outside a loop, or while the
    connection is down, are dropped.

    Args:
        connection: ConnectionAdapter used to deliver the frames
        level: Minimum level forwarded to the host
    """

    # Records from the transport itself would loop back into it
    EXCLUDED_PREFIXES = ('lib.connection', 'HostConnection', 'websockets')

    def __init__(self, connection, level=logging.INFO):
        super().__init__(level)
        self.connection = connection
        self._pending: Set[asyncio.Task] = set()

    def filter(self, record):
        if record.name.startswith(self.EXCLUDED_PREFIXES):
            return False
        return super().filter(record)

    def emit(self, record):
        if not self.connection.is_connected:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        try:
            message = self.format(record)
        except Exception:
            self.handleError(record)
            return
        task = loop.create_task(self.connection.log_message(message))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)


def configure_logger(logger,
                     log_file=None,
                     log_format=None,
                     log_level=logging.INFO):
    """Configure a logger with a file or stream handler

    Args:
        logger: Logger instance or logger name string
        log_file: File path string or file-like object (None for stderr)
        log_format: Format string for log messages
        log_level: Logging level (e.g., logging.INFO, logging.DEBUG)

    Returns:
        Configured logger instance
    """
    if isinstance(log_file, str):
        handler = RobustFileHandler(
            log_file,
            mode='a',
            encoding='utf-8',
            errors='replace'
        )
    else:
        handler = logging.StreamHandler(log_file)  # Default to stderr if None

    formatter = logging.Formatter(log_format or LOG_FORMAT)

    if isinstance(logger, str):
        logger = logging.getLogger(logger)

    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.setLevel(log_level)

    return logger


def parse_log_level(name):
    """Convert a level name such as 'info' to a logging constant

    Raises:
        ConfigError: If the name is not a logging level
    """
    level = logging.getLevelName(str(name).upper())
    if not isinstance(level, int):
        raise ConfigError(f'Unknown log level: {name}')
    return level


STRING_KEYS = ('status_file', 'host', 'log_prefix', 'log_level')
OPTIONAL_STRING_KEYS = ('log_file', 'trace_file')


@dataclass(frozen=True)
class PluginConfig:
    """Runtime configuration of the plugin

    Attributes:
        status_file: Text file overwritten with the current countdown label
        host: Host name the control panel listens on
        log_prefix: Prefix for messages written to the host log
        log_level: Level name for the plugin's own logging
        log_file: Log file path (None logs to stderr)
        trace_file: File recording every inbound frame (None disables)
        tick_seconds: Length of one countdown tick
    """
    status_file: str = 'ChronoDown.txt'
    host: str = 'localhost'
    log_prefix: str = 'ChronoDown'
    log_level: str = 'info'
    log_file: Optional[str] = None
    trace_file: Optional[str] = None
    tick_seconds: float = 1.0

    def merged(self, overrides: Dict[str, Any]) -> 'PluginConfig':
        """Return a copy with the non-None overrides applied"""
        known = {f.name for f in fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise ConfigError(f'Unknown config keys: {", ".join(sorted(unknown))}')
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def load_config(config_file=None, overrides=None):
    """Load configuration from an optional JSON file plus overrides

    Defaults are replaced by the file's values, which are replaced by
    the overrides (typically from the command line).

    Args:
        config_file: Path to a JSON config file, or None
        overrides: Dict of values taking precedence over the file

    Returns:
        PluginConfig instance

    Raises:
        ConfigError: If the file is unreadable, not a JSON object, or
                     holds unknown keys or invalid values
    """
    config = PluginConfig()

    if config_file:
        try:
            with open(config_file, 'r', encoding='utf-8') as fp:
                conf = json.load(fp)
        except (OSError, ValueError, RecursionError) as e:
            raise ConfigError(f'Cannot load config file {config_file}: {e}') from e
        if not isinstance(conf, dict):
            raise ConfigError(f'Config file {config_file} must hold a JSON object')
        config = config.merged(conf)

    if overrides:
        config = config.merged(overrides)

    for name in STRING_KEYS + OPTIONAL_STRING_KEYS:
        value = getattr(config, name)
        if value is None and name in OPTIONAL_STRING_KEYS:
            continue
        if not isinstance(value, str) or not value:
            raise ConfigError(f'{name} must be a non-empty string, got {value!r}')

    parse_log_level(config.log_level)
    tick = config.tick_seconds
    if isinstance(tick, bool) or not isinstance(tick, (int, float)):
        raise ConfigError(f'tick_seconds must be a number, got {tick!r}')
    try:
        tick = float(tick)
    except OverflowError:
        raise ConfigError(f'tick_seconds is out of range: {tick!r}') from None
    if not math.isfinite(tick) or tick <= 0:
        raise ConfigError('tick_seconds must be a positive finite number')

    return replace(config, tick_seconds=tick)
