"""
Typed models for inbound host events and per-key countdown settings.

Frames arrive as JSON text; decode_message() turns one frame into an
immutable InboundMessage or raises DecodeError. Unknown event names are
not an error: they decode to EventKind.UNKNOWN with the raw name kept.
"""

import json
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union


DEFAULT_COUNTDOWN_TEXT = "Back in"
DEFAULT_FINISHED_TEXT = "Back soon"


class DecodeError(ValueError):
    """Raised when an inbound frame cannot be decoded into a message."""
    pass


class EventKind(Enum):
    """Host event kinds the plugin knows about"""
    DID_RECEIVE_SETTINGS = "didReceiveSettings"
    KEY_UP = "keyUp"
    WILL_APPEAR = "willAppear"
    UNKNOWN = "unknown"

    @classmethod
    def from_name(cls, name: str) -> "EventKind":
        """Map a raw event name to a kind, falling back to UNKNOWN."""
        for kind in cls:
            if kind is not cls.UNKNOWN and kind.value == name:
                return kind
        return cls.UNKNOWN


def parse_duration(value: Union[int, float, str]) -> int:
    """
    Parse a countdown duration into whole seconds.

    Accepts a number of seconds or a clock string: "SS", "M:SS" or
    "H:MM:SS". Fractions are truncated and negative values clamp to 0.

    Args:
        value: Raw duration from the settings payload.

    Returns:
        Duration in whole seconds.

    Raises:
        DecodeError: If the value is not a recognised duration.
    """
    if isinstance(value, bool):
        raise DecodeError(f"Invalid countdown duration: {value!r}")

    if isinstance(value, int):
        return max(0, value)

    if isinstance(value, float):
        if not math.isfinite(value):
            raise DecodeError(f"Invalid countdown duration: {value!r}")
        return max(0, int(value))

    if isinstance(value, str):
        parts = value.strip().split(":")
        if not 1 <= len(parts) <= 3:
            raise DecodeError(f"Invalid countdown duration: {value!r}")
        try:
            numbers = [float(part) for part in parts]
        except ValueError:
            raise DecodeError(f"Invalid countdown duration: {value!r}") from None
        if any(not math.isfinite(n) or n < 0 for n in numbers):
            raise DecodeError(f"Invalid countdown duration: {value!r}")
        seconds = 0.0
        for n in numbers:
            seconds = seconds * 60 + n
        return int(seconds)

    raise DecodeError(f"Invalid countdown duration: {value!r}")


def _optional_text(settings: Dict[str, Any], key: str) -> Optional[str]:
    value = settings.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise DecodeError(f"Setting '{key}' must be a string, got {type(value).__name__}")
    # The property inspector stores cleared text fields as ""
    return value or None


@dataclass(frozen=True)
class Settings:
    """
    Per-key countdown configuration.

    Attributes:
        countdown_seconds: Duration of the countdown in whole seconds.
        countdown_text: Label shown before the remaining time while running.
        finished_text: Label written to the status file once finished.
    """

    countdown_seconds: int
    countdown_text: Optional[str] = None
    finished_text: Optional[str] = None

    @property
    def running_label(self) -> str:
        return self.countdown_text or DEFAULT_COUNTDOWN_TEXT

    @property
    def finished_label(self) -> str:
        return self.finished_text or DEFAULT_FINISHED_TEXT

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Settings":
        """
        Create Settings from the host's settings object.

        Raises:
            DecodeError: If countdownTime is missing or a field is malformed.
        """
        if not isinstance(data, dict):
            raise DecodeError("Settings must be a JSON object")
        if "countdownTime" not in data:
            raise DecodeError("Settings are missing 'countdownTime'")
        return cls(
            countdown_seconds=parse_duration(data["countdownTime"]),
            countdown_text=_optional_text(data, "countdownText"),
            finished_text=_optional_text(data, "finishedText"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to the host's settings object."""
        data: Dict[str, Any] = {"countdownTime": self.countdown_seconds}
        if self.countdown_text is not None:
            data["countdownText"] = self.countdown_text
        if self.finished_text is not None:
            data["finishedText"] = self.finished_text
        return data


@dataclass(frozen=True)
class InboundMessage:
    """
    One decoded host event.

    Attributes:
        event: Kind of event.
        event_name: Raw event name as sent by the host.
        context: Identifier of the key instance the event refers to.
        device: Identifier of the device the key sits on.
        action: Identifier of the plugin action assigned to the key.
        settings: The key's countdown settings.
    """

    event: EventKind
    event_name: str
    context: str
    device: str
    action: str
    settings: Settings


def _required_string(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str):
        raise DecodeError(f"Frame field '{key}' is missing or not a string")
    return value


def decode_message(raw: Union[str, bytes]) -> InboundMessage:
    """
    Decode one raw host frame.

    Args:
        raw: JSON text of the frame.

    Returns:
        The decoded message.

    Raises:
        DecodeError: If the frame is not JSON or lacks a required field.
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError, RecursionError) as e:
        raise DecodeError(f"Frame is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise DecodeError("Frame must be a JSON object")

    event_name = _required_string(data, "event")
    payload = data.get("payload")
    if not isinstance(payload, dict) or "settings" not in payload:
        raise DecodeError("Frame payload is missing 'settings'")

    return InboundMessage(
        event=EventKind.from_name(event_name),
        event_name=event_name,
        context=_required_string(data, "context"),
        device=_required_string(data, "device"),
        action=_required_string(data, "action"),
        settings=Settings.from_dict(payload["settings"]),
    )
