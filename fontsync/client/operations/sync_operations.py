"""
FontSync Client - Sync Operations Module

Implements the one-directional reconciliation pass: pull the server's
manifest, scan the local directory, fetch what is missing or different and
delete what the server no longer has.

Downloads go to a hidden temporary file next to their destination and are
renamed into place only after the hash checks out, so a partially written
font never appears under its final name.

Author: FontSync Project
"""

import logging
import os
import threading
import uuid
from pathlib import Path
from typing import Callable, Iterable, Optional

from fontsync.exceptions import (
    FontNotFoundError,
    FontSyncIOError,
    HashMismatchError,
    SyncCancelledError
)
from fontsync.inventory import CalculateFileHash, ScanDirectory
from fontsync.models import FontFile, ReconciliationPlan, SyncReport
from fontsync.reconcile import Reconcile

# Configure logging
logger = logging.getLogger(__name__)

TEMP_SUFFIX = ".fontsync-part"


class SyncOperations:
    """
    Handles file synchronization from the server into a local directory.

    Responsibilities:
    - Compute the reconciliation plan against the server's manifest
    - Download with integrity verification and one retry on hash mismatch
    - Apply deletions
    - Collect per-file failures without aborting the pass
    - Report progress via callbacks
    """

    def __init__(self, api_client, local_dir: Path, recursive: bool = True,
                 extensions: Optional[Iterable[str]] = None, hash_mismatch_retries: int = 1,
                 after_sync: Optional[Callable[[Path, SyncReport], None]] = None):
        """
        Initialize sync operations handler.

        Args:
            api_client: FontSyncAPI instance for server communication
            local_dir: Directory kept in line with the server
            recursive: Scan sub-directories of local_dir
            extensions: Font extension allow-list, None for the default
            hash_mismatch_retries: Extra attempts after a hash mismatch
            after_sync: Optional hook called after a pass that changed files
        """
        self.api = api_client
        self.local_dir = Path(local_dir)
        self.recursive = recursive
        self.extensions = extensions
        self.hash_mismatch_retries = hash_mismatch_retries
        self.after_sync = after_sync
        self.last_plan: Optional[ReconciliationPlan] = None

    def pull_and_sync(self, cancel_event: Optional[threading.Event] = None,
                      progress_callback: Optional[Callable] = None) -> SyncReport:
        """
        Bring the local directory in line with the server's manifest.

        Process:
        1. Fetch the server manifest
        2. Remove stale temporary files, then scan the local directory
        3. Reconcile the two manifests
        4. Download every path in to_fetch
        5. Delete every path in to_delete

        Args:
            cancel_event: Set it to abort cooperatively between files and chunks
            progress_callback: Optional callback for progress updates
                             Called with (message: str, current: int, total: int)

        Returns:
            SyncReport with fetched/deleted/unchanged counts and per-file failures

        Raises:
            ConnectionLostError / ServerUnavailableError: Connection-level errors abort the pass
            FontSyncIOError: If the local directory cannot be created or scanned
            SyncCancelledError: If cancel_event was set
        """
        logger.info(f"Starting sync of {self.local_dir}")

        remote = self.api.get_manifest()

        try:
            self.local_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FontSyncIOError(f"Cannot create local directory {self.local_dir}: {e}") from e
        self._remove_stale_temp_files()

        local = ScanDirectory(self.local_dir, self.recursive, self.extensions, use_ignore_file=False)
        plan = Reconcile(local, remote)
        self.last_plan = plan

        report = SyncReport(version=remote.version, unchanged=len(plan.up_to_date))
        total_operations = plan.ActionCount()

        if plan.IsEmpty():
            logger.info(f"Already in sync with server version {remote.version}")
            if progress_callback:
                progress_callback("Already synchronized", 0, 0)
            return report

        logger.info(f"Need to fetch {len(plan.to_fetch)} files, delete {len(plan.to_delete)} files")
        remote_files = remote.AsMapping()
        current = 0

        for path in plan.to_fetch:
            self._check_cancelled(cancel_event)
            current += 1
            if progress_callback:
                progress_callback(f"Downloading {path}...", current, total_operations)
            self._fetch_with_retry(remote_files[path], report, cancel_event)

        for path in plan.to_delete:
            self._check_cancelled(cancel_event)
            current += 1
            if progress_callback:
                progress_callback(f"Deleting {path}...", current, total_operations)
            self._delete_local(path, report)

        logger.info(f"Sync completed: {report.Summary()}")

        if self.after_sync and report.Changed():
            self.after_sync(self.local_dir, report)

        return report

    # ==================== Fetching ====================

    def _fetch_with_retry(self, font: FontFile, report: SyncReport,
                          cancel_event: Optional[threading.Event]):
        """Fetch one file; per-file errors are recorded in the report."""
        attempts = 1 + max(0, self.hash_mismatch_retries)

        for attempt in range(1, attempts + 1):
            try:
                self._fetch_file(font, cancel_event)
            except HashMismatchError as e:
                if attempt < attempts:
                    report.retries[font.path] = report.retries.get(font.path, 0) + 1
                    logger.warning(f"{e}; retrying ({attempt}/{attempts - 1})")
                    continue
                logger.error(f"{e}; giving up")
                report.failures[font.path] = str(e)
                return
            except FontNotFoundError as e:
                # Removed on the server after the manifest was fetched; the next pass settles it
                logger.warning(f"{e}; it was removed from the server during this pass")
                report.failures[font.path] = str(e)
                return
            except FontSyncIOError as e:
                logger.error(f"Failed to fetch {font.path}: {e}")
                report.failures[font.path] = str(e)
                return

            report.fetched.append(font.path)
            logger.info(f"Fetched {font.path}")
            return

    def _fetch_file(self, font: FontFile, cancel_event: Optional[threading.Event]):
        """
        Download one file into place through a temporary file.

        Raises:
            HashMismatchError: If the downloaded bytes don't match the manifest
        """
        destination = self._local_path(font.path)
        temp_path = destination.parent / f".{destination.name}.{uuid.uuid4().hex[:8]}{TEMP_SUFFIX}"

        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_path, 'wb') as f:
                self.api.download_file(font.path, f, cancel_event)

            actual_hash = CalculateFileHash(temp_path)
            if actual_hash != font.hash:
                raise HashMismatchError(font.path, font.hash, actual_hash)

            # Keep the server's modification time
            os.utime(temp_path, (font.mtime, font.mtime))
            os.replace(temp_path, destination)
        except OSError as e:
            raise FontSyncIOError(f"Cannot write {destination}: {e}") from e
        finally:
            if temp_path.exists():
                try:
                    temp_path.unlink()
                except OSError as e:
                    logger.warning(f"Failed to remove temporary file {temp_path}: {e}")

    # ==================== Deleting ====================

    def _delete_local(self, path: str, report: SyncReport):
        """Delete one local file and prune directories it leaves empty."""
        local_file = self._local_path(path)
        try:
            local_file.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error(f"Failed to delete {path}: {e}")
            report.failures[path] = f"Failed to delete {path}: {e}"
            return

        report.deleted.append(path)
        logger.info(f"Deleted {path}")
        self._prune_empty_dirs(local_file.parent)

    def _remove_stale_temp_files(self) -> int:
        """Delete temporary downloads left behind by an interrupted earlier pass."""
        removed = 0
        for temp_path in self.local_dir.rglob(f".*{TEMP_SUFFIX}"):
            try:
                if temp_path.is_file():
                    temp_path.unlink()
                    removed += 1
            except OSError as e:
                logger.warning(f"Failed to remove stale temporary file {temp_path}: {e}")
        if removed:
            logger.info(f"Removed {removed} stale temporary file(s) from {self.local_dir}")
        return removed

    def _prune_empty_dirs(self, directory: Path):
        root = self.local_dir.resolve()
        current = directory.resolve()
        while current != root and root in current.parents:
            try:
                current.rmdir()
            except OSError:
                # Not empty (or not removable): stop here
                return
            current = current.parent

    # ==================== Helpers ====================

    def _local_path(self, relative_path: str) -> Path:
        """
        Map a manifest path under local_dir.

        Raises:
            FontSyncIOError: If the path would escape local_dir
        """
        candidate = (self.local_dir / relative_path).resolve()
        root = self.local_dir.resolve()
        if candidate != root and root not in candidate.parents:
            raise FontSyncIOError(f"Refusing path outside the local directory: {relative_path}")
        return self.local_dir / relative_path

    @staticmethod
    def _check_cancelled(cancel_event: Optional[threading.Event]):
        if cancel_event is not None and cancel_event.is_set():
            logger.warning("Sync cancelled")
            raise SyncCancelledError("Sync cancelled")
