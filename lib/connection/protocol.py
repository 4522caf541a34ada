"""
Outbound frame builders for the host protocol.

Every frame is a JSON object sent as a single websocket text message.
The builders return plain dicts; serialization happens in the connection.
"""

from typing import Any, Dict

# Where a title is rendered: on the physical key, in the host UI, or both
TITLE_TARGETS = ("both", "hardware", "software")


def set_title_frame(context: str, title: str, target: str = "both") -> Dict[str, Any]:
    """
    Build a setTitle frame for one key.

    Args:
        context: Key context the title belongs to
        title: Text to display
        target: One of TITLE_TARGETS

    Raises:
        ValueError: If target is not a known title target
    """
    if target not in TITLE_TARGETS:
        raise ValueError(f"Unknown title target: {target!r}")
    return {
        "event": "setTitle",
        "context": context,
        "payload": {
            "title": title,
            "target": target,
        },
    }


def log_message_frame(prefix: str, message: str) -> Dict[str, Any]:
    """Build a logMessage frame, written to the host's plugin log."""
    return {
        "event": "logMessage",
        "payload": {
            "message": f"[{prefix}]: {message}",
        },
    }


def register_frame(register_event: str, plugin_uuid: str) -> Dict[str, Any]:
    """Build the registration frame sent once right after connecting."""
    return {"event": register_event, "uuid": plugin_uuid}
