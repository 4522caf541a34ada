"""
core/status_sink.py

Status file written by the countdown timers.

The file always holds a single label, the most recent one written by any
key. External tools (streaming overlays, text sources) poll it.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional, Union


class StatusFile:
    """
    Overwrite-on-write text file holding the current countdown label.

    Writes run in a worker thread so a slow disk never stalls the event
    loop. Concurrent writes from different keys are last-writer-wins.

    Args:
        path: Location of the status file.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self.last_written: Optional[str] = None
        self.logger = logging.getLogger(f"{__name__}.status")

    async def write(self, text: str) -> None:
        """
        Replace the file's contents with text.

        Raises:
            OSError: If the file cannot be written.
        """
        await asyncio.to_thread(self.path.write_text, text, encoding="utf-8")
        self.last_written = text
        self.logger.debug(f"Status file {self.path} <- {text!r}")
