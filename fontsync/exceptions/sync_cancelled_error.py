"""
FontSync - Sync Cancelled Error Exception

Raised when a sync pass is cancelled cooperatively, e.g. on a shutdown signal.

Author: FontSync Project
"""

from .fontsync_error import FontSyncError


class SyncCancelledError(FontSyncError):
    """Exception raised when an operation is cancelled."""
    pass
