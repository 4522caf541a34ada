#!/usr/bin/env python3
"""
ChronoDown - countdown timers on control panel keys

The host launches this process with the websocket port, the plugin UUID
and the registration event name. Each key the action is placed on gets
its own countdown: press to start, press again to stop.

This file only wires components together and runs the receive loop:
- HostConnection: websocket to the host
- CountdownActor: owns per-key timer state
- EventRouter: decodes frames, forwards key presses to the actor
"""

import argparse
import asyncio
import functools
import json
import logging
import sys
from typing import Optional

from common.config import (
    LOG_FORMAT,
    TRACE_FORMAT,
    ConfigError,
    HostLogHandler,
    PluginConfig,
    configure_logger,
    load_config,
    parse_log_level,
)
from core import CountdownActor, EventRouter, StatusFile, run_countdown
from core.router import TRACE_LOGGER_NAME
from lib.connection import ConnectionError, HostConnection


logger = logging.getLogger(__name__)


class ChronoDown:
    """
    Plugin orchestrator

    Responsibilities:
    1. Connect to the host and register
    2. Start the countdown actor
    3. Feed inbound frames to the router until the host disconnects
    4. Shut everything down in reverse order
    """

    def __init__(self, config: PluginConfig, port: int, plugin_uuid: str, register_event: str):
        self.config = config
        self.port = port
        self.plugin_uuid = plugin_uuid
        self.register_event = register_event

        self.connection: Optional[HostConnection] = None
        self.actor: Optional[CountdownActor] = None
        self.router: Optional[EventRouter] = None
        self.host_log_handler: Optional[HostLogHandler] = None

    async def start(self):
        """Connect, register and start the actor

        Raises:
            ConnectionError: If the host cannot be reached
        """
        # 1. Connection - registration must be the first frame sent
        self.connection = HostConnection(
            port=self.port,
            host=self.config.host,
            log_prefix=self.config.log_prefix,
        )
        await self.connection.connect()
        await self.connection.register(self.register_event, self.plugin_uuid)

        self.host_log_handler = HostLogHandler(self.connection)
        self.host_log_handler.setFormatter(logging.Formatter('%(message)s'))
        logging.getLogger().addHandler(self.host_log_handler)

        # 2. Actor - timer loops share the connection and the status file
        sink = StatusFile(self.config.status_file)
        start_countdown = functools.partial(
            run_countdown,
            host=self.connection,
            sink=sink,
            tick_seconds=self.config.tick_seconds,
        )
        self.actor = CountdownActor(self.connection, start_countdown)
        await self.actor.start()

        # 3. Router
        trace = logging.getLogger(TRACE_LOGGER_NAME) if self.config.trace_file else None
        self.router = EventRouter(self.actor, trace=trace)

        logger.info(f"ChronoDown started (status file: {self.config.status_file})")

    async def run(self):
        """Dispatch frames until the host closes the connection"""
        async for frame in self.connection.recv_frames():
            self.router.dispatch(frame)

    async def stop(self):
        """Stop all components in reverse order"""
        logger.info("Shutting down ChronoDown...")

        if self.host_log_handler:
            logging.getLogger().removeHandler(self.host_log_handler)
            self.host_log_handler = None
        if self.actor:
            await self.actor.stop()
        if self.connection:
            await self.connection.disconnect()

        logger.info("ChronoDown stopped")


def build_parser() -> argparse.ArgumentParser:
    """Command line as passed by the host, plus local overrides"""
    parser = argparse.ArgumentParser(
        prog='chronodown',
        description='Countdown timer plugin for programmable control panels',
    )
    parser.add_argument('-port', '--port', dest='port', type=int, required=True,
                        help='websocket port of the host')
    parser.add_argument('-pluginUUID', '--plugin-uuid', dest='plugin_uuid', required=True,
                        help='identifier used to register the plugin')
    parser.add_argument('-registerEvent', '--register-event', dest='register_event', required=True,
                        help='event name of the registration frame')
    parser.add_argument('-info', '--info', dest='info', default=None,
                        help='JSON description of the host application')
    parser.add_argument('-config', '--config', dest='config', default=None,
                        help='optional JSON config file')
    parser.add_argument('--status-file', dest='status_file', default=None,
                        help='file overwritten with the current countdown label')
    parser.add_argument('--log-level', dest='log_level', default=None,
                        help='debug, info, warning or error')
    parser.add_argument('--log-file', dest='log_file', default=None,
                        help='log to this file instead of stderr')
    parser.add_argument('--trace-file', dest='trace_file', default=None,
                        help='record every inbound frame to this file')
    return parser


def describe_host_info(info: Optional[str]) -> Optional[str]:
    """Summarize the -info JSON in one line, or None if absent or malformed"""
    if not info:
        return None
    try:
        data = json.loads(info)
    except ValueError as e:
        logger.warning(f"Ignoring malformed host info: {e}")
        return None
    if not isinstance(data, dict):
        logger.warning("Ignoring host info that is not a JSON object")
        return None

    application = data.get('application')
    if not isinstance(application, dict):
        application = {}
    devices = data.get('devices')
    if not isinstance(devices, list):
        devices = []
    return (
        f"host {application.get('version', 'unknown')} "
        f"on {application.get('platform', 'unknown')}, "
        f"{len(devices)} device(s)"
    )


def configure_logging(config: PluginConfig):
    configure_logger(
        logging.getLogger(),
        log_file=config.log_file,
        log_format=LOG_FORMAT,
        log_level=parse_log_level(config.log_level),
    )
    if config.trace_file:
        trace = configure_logger(
            TRACE_LOGGER_NAME,
            log_file=config.trace_file,
            log_format=TRACE_FORMAT,
            log_level=logging.INFO,
        )
        trace.propagate = False


async def run_plugin(plugin: ChronoDown):
    try:
        await plugin.start()
        await plugin.run()
    finally:
        await plugin.stop()


def main(argv=None) -> int:
    """Entry point"""
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config, overrides={
            'status_file': args.status_file,
            'log_level': args.log_level,
            'log_file': args.log_file,
            'trace_file': args.trace_file,
        })
    except ConfigError as e:
        print(f'ERROR: {e}', file=sys.stderr)
        return 1

    configure_logging(config)

    summary = describe_host_info(args.info)
    if summary:
        logger.info(f"Launched by {summary}")

    plugin = ChronoDown(config, args.port, args.plugin_uuid, args.register_event)
    try:
        asyncio.run(run_plugin(plugin))
    except ConnectionError as e:
        logger.error(f"Failed to start ChronoDown: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")

    return 0


if __name__ == '__main__':
    sys.exit(main())
