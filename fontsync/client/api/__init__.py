"""
FontSync Client - API Package

This package contains the HTTP API client and the notification channel client.
"""

from .fontsync_api import FontSyncAPI
from .notification_client import NotificationClient, build_http_url, build_ws_url

__all__ = ['FontSyncAPI', 'NotificationClient', 'build_http_url', 'build_ws_url']
