"""
FontSync - Exceptions Package

Contains all exception classes for FontSync.

Author: FontSync Project
"""

from .fontsync_error import FontSyncError
from .io_error import FontSyncIOError
from .not_found_error import FontNotFoundError
from .hash_mismatch_error import HashMismatchError
from .server_unavailable_error import ServerUnavailableError
from .connection_lost_error import ConnectionLostError
from .sync_cancelled_error import SyncCancelledError

__all__ = [
    'FontSyncError',
    'FontSyncIOError',
    'FontNotFoundError',
    'HashMismatchError',
    'ServerUnavailableError',
    'ConnectionLostError',
    'SyncCancelledError'
]
