"""
FontSync Server - Rescan Sources

A rescan source tells the server when to scan the font directory again.
The server only consumes "rescan now" triggers and does not care which
variant produces them:
- PolledScanner: fixed-interval rescans
- EventedWatcher: filesystem notifications via watchfiles, font files only
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, AsyncIterator, Dict, Iterable, Optional

from watchfiles import Change, awatch

from fontsync.inventory import IsFontFile

logger = logging.getLogger(__name__)

WATCH_MODES = ["poll", "events"]


class RescanSource(ABC):
    """Produces rescan triggers"""

    @abstractmethod
    def Triggers(self) -> AsyncIterator[str]:
        """Yield a short reason each time a rescan should happen"""


class PolledScanner(RescanSource):
    def __init__(self, interval_seconds: float):
        if interval_seconds <= 0:
            raise ValueError("Rescan interval must be positive")
        self.interval_seconds = interval_seconds

    async def Triggers(self) -> AsyncIterator[str]:
        while True:
            await asyncio.sleep(self.interval_seconds)
            yield "interval"


class EventedWatcher(RescanSource):
    """
    Rescan on filesystem notifications for font files

    Bursts of notifications are batched by watchfiles (debounce_ms), so one
    batch yields one trigger.
    """

    def __init__(self, directory: Path, recursive: bool = True,
                 extensions: Optional[Iterable[str]] = None, debounce_ms: int = 500):
        self.directory = Path(directory)
        self.recursive = recursive
        self.extensions = extensions
        self.debounce_ms = debounce_ms

    def FilterChanges(self, change: Change, path: str) -> bool:
        """Only font files matter; deletions of directories show up as their fonts' deletions"""
        return IsFontFile(path, self.extensions)

    async def Triggers(self) -> AsyncIterator[str]:
        async for changes in awatch(
            self.directory,
            watch_filter=self.FilterChanges,
            debounce=self.debounce_ms,
            recursive=self.recursive,
        ):
            logger.debug(f"Filesystem reported {len(changes)} font change(s) in {self.directory}")
            yield "filesystem"


def CreateRescanSource(config: Dict[str, Any], font_dir: Path) -> RescanSource:
    """
    Build the rescan source selected by config["watch_mode"]

    Raises:
        ValueError: If the watch mode is unknown
    """
    watch_mode = config.get("watch_mode", "poll")
    if watch_mode == "poll":
        return PolledScanner(float(config.get("rescan_interval_seconds", 5.0)))
    if watch_mode == "events":
        return EventedWatcher(
            font_dir,
            recursive=config.get("recursive", True),
            extensions=config.get("font_extensions"),
            debounce_ms=int(config.get("watch_debounce_ms", 500))
        )
    raise ValueError(f"Invalid watch_mode: {watch_mode}. Must be one of {WATCH_MODES}")
