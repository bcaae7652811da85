"""
FontSync - Connection Lost Error Exception

Raised when the server cannot be reached or a notification connection drops.

Author: FontSync Project
"""

from .fontsync_error import FontSyncError


class ConnectionLostError(FontSyncError):
    """Exception for dropped or refused connections."""
    pass
