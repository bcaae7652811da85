"""
FontSync - Hash Mismatch Error Exception

Raised when a downloaded file does not hash to the value declared in the
manifest.

Author: FontSync Project
"""

from .fontsync_error import FontSyncError


class HashMismatchError(FontSyncError):
    """Exception for post-download integrity failures."""

    def __init__(self, path: str, expected: str, actual: str):
        super().__init__(f"Hash mismatch for {path}: expected {expected}, got {actual}")
        self.path = path
        self.expected = expected
        self.actual = actual
