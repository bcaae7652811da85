"""
FontSync - Font Inventory

This module turns a font directory into a content-addressed manifest:
- Font file recognition by extension allow-list
- SHA-256 hash calculation (streaming for large files)
- Directory scanning (recursive or flat) into a sorted Manifest
- Change detection between two successive scans

Used by the server to build its authoritative manifest and by the client to
describe its local directory before reconciliation.
"""

import hashlib
import logging
import os
from pathlib import Path
from typing import Iterable, List, Optional, Union

from fontsync.exceptions import FontSyncIOError
from fontsync.ignore_patterns import IgnoreRules, LoadIgnoreRules
from fontsync.models import ChangeEvent, ChangeType, FontFile, Manifest

logger = logging.getLogger(__name__)


# ==================== Font Formats ====================

FONT_EXTENSIONS = frozenset({
    "ttf", "otf", "woff", "woff2", "eot", "ttc", "pfa", "pfb", "afm", "pfm"
})

FONT_MIME_TYPES = {
    "ttf": "font/ttf",
    "otf": "font/otf",
    "woff": "font/woff",
    "woff2": "font/woff2",
    "eot": "application/vnd.ms-fontobject",
    "ttc": "font/collection",
    "pfa": "application/x-font-type1",
    "pfb": "application/x-font-type1",
    "afm": "application/x-font-afm",
    "pfm": "application/x-font-pfm",
}

HASH_CHUNK_SIZE = 64 * 1024


def NormalizeExtensions(extensions: Optional[Iterable[str]]) -> frozenset:
    """Lower-case extensions without leading dots; None means the default allow-list"""
    if extensions is None:
        return FONT_EXTENSIONS
    return frozenset(ext.lower().lstrip('.') for ext in extensions)


def IsFontFile(path: Union[str, Path], extensions: Optional[Iterable[str]] = None) -> bool:
    suffix = Path(path).suffix.lower().lstrip('.')
    return bool(suffix) and suffix in NormalizeExtensions(extensions)


def GetFontMimeType(path: Union[str, Path]) -> str:
    suffix = Path(path).suffix.lower().lstrip('.')
    return FONT_MIME_TYPES.get(suffix, "application/octet-stream")


def FormatFileSize(size: int) -> str:
    """Human-readable size, e.g. 1536 -> '1.50 KB'"""
    units = ["B", "KB", "MB", "GB", "TB"]
    value = float(size)
    unit_index = 0
    while value >= 1024 and unit_index < len(units) - 1:
        value /= 1024
        unit_index += 1
    if unit_index == 0:
        return f"{int(value)} {units[0]}"
    return f"{value:.2f} {units[unit_index]}"


# ==================== File Hash Calculation ====================

def CalculateFileHash(file_path: Path, chunk_size: int = HASH_CHUNK_SIZE) -> str:
    """
    Calculate SHA-256 hash of a file using chunked reading

    Args:
        file_path: Path to file to hash
        chunk_size: Size of chunks to read

    Returns:
        str: Hex-encoded SHA-256 hash

    Raises:
        FileNotFoundError: If file doesn't exist (callers treat this as a race)
        FontSyncIOError: If file cannot be read
    """
    sha256_hash = hashlib.sha256()

    try:
        with open(file_path, 'rb') as f:
            while chunk := f.read(chunk_size):
                sha256_hash.update(chunk)
    except FileNotFoundError:
        raise
    except OSError as e:
        logger.error(f"Failed to calculate hash for {file_path}: {e}")
        raise FontSyncIOError(f"Failed to read {file_path}: {e}") from e

    return sha256_hash.hexdigest()


# ==================== Directory Scanning ====================

def ScanDirectory(directory: Union[str, Path], recursive: bool = True,
                  extensions: Optional[Iterable[str]] = None,
                  use_ignore_file: bool = True) -> Manifest:
    """
    Scan a directory into a manifest of font files

    Only files whose extension is in the allow-list are read. Files and
    sub-directories that disappear or cannot be read while the scan is running
    are omitted and logged. The result is sorted by path, so it does not
    depend on filesystem iteration order.

    Args:
        directory: Directory to scan
        recursive: Descend into sub-directories (symlinked directories are not followed)
        extensions: Allowed extensions, defaults to FONT_EXTENSIONS
        use_ignore_file: Honour <directory>/.fontsyncignore

    Returns:
        Manifest: Version 0 manifest; versions are assigned by the server

    Raises:
        FontSyncIOError: If the root directory cannot be listed
    """
    root = Path(directory)
    if not root.is_dir():
        raise FontSyncIOError(f"Font directory does not exist or is not a directory: {root}")

    allowed = NormalizeExtensions(extensions)
    rules = LoadIgnoreRules(root) if use_ignore_file else IgnoreRules()

    fonts: List[FontFile] = []
    omitted = 0
    pending = [root]

    while pending:
        current = pending.pop()
        try:
            with os.scandir(current) as iterator:
                entries = list(iterator)
        except OSError as e:
            if current == root:
                raise FontSyncIOError(f"Cannot read font directory {root}: {e}") from e
            logger.warning(f"Cannot read directory during scan, omitted: {current}: {e}")
            omitted += 1
            continue

        for entry in entries:
            relative_path = Path(entry.path).relative_to(root).as_posix()
            try:
                if entry.is_dir(follow_symlinks=False):
                    if recursive and not rules.ShouldIgnore(relative_path, is_dir=True):
                        pending.append(Path(entry.path))
                    continue
                if not entry.is_file():
                    continue
            except OSError:
                # Broken symlink or entry removed between listing and stat
                continue

            if not IsFontFile(entry.name, allowed) or rules.ShouldIgnore(relative_path):
                continue

            try:
                stat_result = os.stat(entry.path)
                file_hash = CalculateFileHash(Path(entry.path))
            except FileNotFoundError:
                logger.warning(f"Font disappeared during scan, omitted: {relative_path}")
                omitted += 1
                continue
            except (OSError, FontSyncIOError) as e:
                logger.warning(f"Failed to scan font file, omitted: {relative_path}: {e}")
                omitted += 1
                continue

            fonts.append(FontFile(
                path=relative_path,
                size=stat_result.st_size,
                hash=file_hash,
                mtime=stat_result.st_mtime
            ))

    manifest = Manifest(files=fonts)
    logger.debug(f"Scanned {root}: {len(manifest.files)} fonts ({FormatFileSize(manifest.TotalSize())}), {omitted} omitted")
    return manifest


# ==================== Change Detection ====================

def DiffAgainstPrevious(old: Manifest, new: Manifest, version: int) -> List[ChangeEvent]:
    """
    Turn two successive scans into discrete change events

    Walks both sorted file lists in a single merge pass. An entry whose size
    and hash are unchanged is not reported, even if its mtime changed.

    Args:
        old: Previous manifest
        new: Freshly scanned manifest
        version: Manifest version the events will result in

    Returns:
        List[ChangeEvent]: Events ordered by path
    """
    events: List[ChangeEvent] = []
    old_files, new_files = old.files, new.files
    i = j = 0

    while i < len(old_files) or j < len(new_files):
        if j >= len(new_files) or (i < len(old_files) and old_files[i].path < new_files[j].path):
            events.append(ChangeEvent(type=ChangeType.REMOVED, path=old_files[i].path, version=version))
            i += 1
        elif i >= len(old_files) or new_files[j].path < old_files[i].path:
            events.append(ChangeEvent(type=ChangeType.ADDED, path=new_files[j].path, version=version))
            j += 1
        else:
            if not old_files[i].SameContent(new_files[j]):
                events.append(ChangeEvent(type=ChangeType.MODIFIED, path=new_files[j].path, version=version))
            i += 1
            j += 1

    return events
