"""
FontSync - Server Unavailable Error Exception

Raised when the server's last scan failed. Carries the last known-good
manifest version for client information.

Author: FontSync Project
"""

from typing import Optional

from .fontsync_error import FontSyncError


class ServerUnavailableError(FontSyncError):
    """Exception for server-side scan failures (HTTP 503)."""

    def __init__(self, message: str, last_good_version: Optional[int] = None):
        super().__init__(message)
        self.last_good_version = last_good_version
