"""
FontSync Server - Manifest Store

Holds the server's authoritative manifest and runs rescans of the font
directory under a single-writer discipline:
- Only one scan is in flight at a time; a scan requested meanwhile is skipped
- Readers always get the last completed manifest, never a partial one
- The version is bumped only when a scan detects a content change
- A failed scan keeps the last good manifest and marks the server unavailable
"""

import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from fontsync.exceptions import FontNotFoundError, FontSyncIOError, ServerUnavailableError
from fontsync.inventory import DiffAgainstPrevious, ScanDirectory
from fontsync.models import ChangeEvent, FontFile, Manifest

logger = logging.getLogger(__name__)


class ManifestStore:
    """
    Authoritative manifest of one font directory
    """

    def __init__(self, font_dir: Path, recursive: bool = True,
                 extensions: Optional[Iterable[str]] = None):
        self.font_dir = Path(font_dir)
        self.recursive = recursive
        self.extensions = extensions
        self.manifest = Manifest()
        self.last_scan_utc: Optional[datetime] = None
        self.last_scan_error: Optional[str] = None
        self.scan_count = 0
        self._scan_lock = asyncio.Lock()

    def InitializeFontDirectory(self) -> None:
        """Create the font directory if it doesn't exist yet"""
        if not self.font_dir.exists():
            self.font_dir.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created font directory: {self.font_dir.absolute()}")

    def IsScanning(self) -> bool:
        return self._scan_lock.locked()

    async def Rescan(self) -> Optional[List[ChangeEvent]]:
        """
        Scan the font directory and publish a new manifest if content changed

        Returns:
            List of change events (empty if nothing changed or the scan failed),
            or None if another scan was already in flight
        """
        if self._scan_lock.locked():
            logger.debug("Scan already in progress, skipping rescan request")
            return None

        async with self._scan_lock:
            try:
                scanned = await asyncio.to_thread(
                    ScanDirectory, self.font_dir, self.recursive, self.extensions
                )
            except FontSyncIOError as e:
                if self.last_scan_error is None:
                    logger.error(f"Scan of {self.font_dir} failed, serving last good manifest "
                                 f"(version {self.manifest.version}): {e}")
                self.last_scan_error = str(e)
                self.last_scan_utc = datetime.now(timezone.utc)
                return []

            self.scan_count += 1
            self.last_scan_utc = datetime.now(timezone.utc)
            if self.last_scan_error is not None:
                logger.info(f"Scan of {self.font_dir} recovered")
                self.last_scan_error = None

            next_version = self.manifest.version + 1
            events = DiffAgainstPrevious(self.manifest, scanned, next_version)
            if events:
                # Replace only on content change so a version always names one exact manifest
                self.manifest = scanned.model_copy(update={"version": next_version})
                logger.info(f"Manifest version {next_version}: {len(events)} change(s), "
                            f"{len(self.manifest.files)} fonts")

            return events

    def GetManifest(self) -> Manifest:
        """
        Get the current manifest

        Raises:
            ServerUnavailableError: If the last scan failed
        """
        if self.last_scan_error is not None:
            raise ServerUnavailableError(
                f"Last scan of the font directory failed: {self.last_scan_error}",
                last_good_version=self.manifest.version
            )
        return self.manifest

    def ResolveFile(self, relative_path: str) -> Tuple[Path, FontFile]:
        """
        Resolve a manifest path to its file on disk

        Only paths present in the current manifest are served, which also keeps
        requests from escaping the font directory.

        Raises:
            FontNotFoundError: If the path is not in the manifest or vanished from disk
        """
        font = self.manifest.Get(relative_path)
        if font is None:
            raise FontNotFoundError(relative_path)

        file_path = self.font_dir / relative_path
        if not file_path.is_file():
            logger.warning(f"Font in manifest version {self.manifest.version} is missing on disk: {relative_path}")
            raise FontNotFoundError(relative_path)

        return file_path, font

    def Status(self) -> dict:
        return {
            "font_dir": str(self.font_dir.absolute()),
            "version": self.manifest.version,
            "digest": self.manifest.Digest(),
            "file_count": len(self.manifest.files),
            "total_size": self.manifest.TotalSize(),
            "scanning": self.IsScanning(),
            "scan_count": self.scan_count,
            "last_scan_utc": self.last_scan_utc.isoformat() if self.last_scan_utc else None,
            "last_scan_error": self.last_scan_error
        }
