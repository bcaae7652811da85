"""
FontSync Client - Operations Package

Contains the one-shot sync pass, monitor mode and their helpers.
"""

from .backoff import Backoff
from .font_cache import refresh_font_cache
from .monitor import MonitorOperations
from .sync_operations import SyncOperations

__all__ = [
    'Backoff',
    'MonitorOperations',
    'SyncOperations',
    'refresh_font_cache'
]
