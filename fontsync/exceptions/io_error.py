"""
FontSync - I/O Error Exception

Raised when a directory or file cannot be read or written. Fatal to the
current operation, never to the process.

Author: FontSync Project
"""

from .fontsync_error import FontSyncError


class FontSyncIOError(FontSyncError):
    """Exception for unreadable or unwritable directories and files."""
    pass
