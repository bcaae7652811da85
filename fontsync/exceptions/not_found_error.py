"""
FontSync - Not Found Error Exception

Raised when a requested file is absent from the server's current manifest.
Recoverable by pulling the manifest again.

Author: FontSync Project
"""

from .fontsync_error import FontSyncError


class FontNotFoundError(FontSyncError):
    """Exception for files missing from the current manifest."""

    def __init__(self, path: str):
        super().__init__(f"Font not found: {path}")
        self.path = path
