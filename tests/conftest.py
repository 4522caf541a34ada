"""
Global pytest configuration and fixtures for ChronoDown tests

Provides:
- FakeHost, an in-memory ConnectionAdapter
- A status file that records every write
- A spy around run_countdown counting launches and completions
- Frame factories and async wait helpers
"""

import asyncio
import json
import pytest
from typing import Any, Dict, List, Optional, Tuple

from common.models import Settings
from core.countdown import CancellationToken, run_countdown
from core.status_sink import StatusFile
from lib.connection import ConnectionAdapter, NotConnectedError, SendError


# Short tick so countdown tests finish in milliseconds
TICK = 0.01


# ============================================================================
# Pytest Configuration
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom settings"""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "core: Core countdown tests")


# ============================================================================
# Fake Host Connection
# ============================================================================

class FakeHost(ConnectionAdapter):
    """
    In-memory host connection.

    Records every sent frame as a dict and replays scripted inbound
    frames from recv_frames().
    """

    def __init__(self, inbound: Optional[List[str]] = None, linger: float = 0.0, **kwargs):
        super().__init__(**kwargs)
        self._is_connected = True
        self.sent: List[Dict[str, Any]] = []
        self.inbound = list(inbound or [])
        self.linger = linger
        self.fail_sends = False
        self.connect_count = 0
        self.disconnect_count = 0

    async def connect(self) -> None:
        self.connect_count += 1
        self._is_connected = True

    async def disconnect(self) -> None:
        self.disconnect_count += 1
        self._is_connected = False

    async def send_text(self, text: str) -> None:
        if not self._is_connected:
            raise NotConnectedError("Not connected")
        if self.fail_sends:
            raise SendError("Simulated send failure")
        self.sent.append(json.loads(text))
        await asyncio.sleep(0)

    async def recv_frames(self):
        if not self._is_connected:
            raise NotConnectedError("Not connected")
        for frame in self.inbound:
            yield frame
        # Keep the connection open for a while, then the host "closes" it
        await asyncio.sleep(self.linger)

    def frames(self, event: str) -> List[Dict[str, Any]]:
        return [f for f in self.sent if f.get("event") == event]

    def titles(self, context: Optional[str] = None) -> List[str]:
        """Titles sent via setTitle, optionally for one key only"""
        return [
            f["payload"]["title"]
            for f in self.frames("setTitle")
            if context is None or f["context"] == context
        ]


@pytest.fixture
def fake_host():
    """Connected in-memory host"""
    return FakeHost()


# ============================================================================
# Status File
# ============================================================================

class RecordingStatusFile(StatusFile):
    """StatusFile that also keeps the full history of writes"""

    def __init__(self, path):
        super().__init__(path)
        self.writes: List[str] = []

    async def write(self, text: str) -> None:
        await super().write(text)
        self.writes.append(text)


@pytest.fixture
def status_file(tmp_path):
    return RecordingStatusFile(tmp_path / "ChronoDown.txt")


# ============================================================================
# Countdown Spy
# ============================================================================

class CountdownSpy:
    """
    Drop-in start_countdown for CountdownActor.

    Runs the real countdown loop with a short tick and records every
    launch (context, token) and every completion callback.
    """

    def __init__(self, host: ConnectionAdapter, sink: StatusFile, tick: float = TICK):
        self.host = host
        self.sink = sink
        self.tick = tick
        self.launches: List[Tuple[str, CancellationToken]] = []
        self.completions: List[str] = []

    def __call__(self, settings: Settings, context: str, token: CancellationToken, on_completed):
        self.launches.append((context, token))

        def completed(ctx: str) -> None:
            self.completions.append(ctx)
            on_completed(ctx)

        return run_countdown(
            settings, context, token, completed,
            host=self.host, sink=self.sink, tick_seconds=self.tick,
        )

    def tokens(self, context: str) -> List[CancellationToken]:
        return [t for c, t in self.launches if c == context]


@pytest.fixture
def countdown_spy(fake_host, status_file):
    return CountdownSpy(fake_host, status_file)


# ============================================================================
# Frames
# ============================================================================

@pytest.fixture
def make_frame():
    """Factory for raw inbound host frames"""

    def _make(event: str = "keyUp",
              context: str = "ctx-1",
              settings: Optional[Dict[str, Any]] = None,
              device: str = "device-1",
              action: str = "com.chronodown.countdown") -> str:
        return json.dumps({
            "event": event,
            "context": context,
            "device": device,
            "action": action,
            "payload": {
                "settings": {"countdownTime": 3} if settings is None else settings,
            },
        })

    return _make


# ============================================================================
# Async Test Utilities
# ============================================================================

@pytest.fixture
def wait_until():
    """Poll a predicate until it holds, failing the test after timeout"""

    async def _wait_until(predicate, timeout: float = 2.0, interval: float = 0.005):
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                pytest.fail(f"Condition not met within {timeout}s")
            await asyncio.sleep(interval)

    return _wait_until
