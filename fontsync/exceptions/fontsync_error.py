"""
FontSync - Base Error Exception

Base exception class for all FontSync errors.

Author: FontSync Project
"""


class FontSyncError(Exception):
    """Base exception for FontSync errors."""
    pass
