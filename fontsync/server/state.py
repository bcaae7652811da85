"""
FontSync Server - Shared State Module

This module exports the global manifest store and notification hub used
across the route modules. Both are initialized in server.py's lifespan handler.
"""

from fontsync.server.manifest_store import ManifestStore
from fontsync.server.notifications import NotificationHub

manifest_store: ManifestStore = None
notification_hub: NotificationHub = None
heartbeat_interval_seconds: float = 30.0
