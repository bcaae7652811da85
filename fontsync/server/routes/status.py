"""
FontSync Server - Status Endpoints

This module contains the health check, scan status and manual rescan endpoints.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter

from fontsync import __version__
from fontsync.server import state


# Create logger
logger = logging.getLogger(__name__)

# Create router instance
router = APIRouter()


# ==================== Health Check Endpoint ====================

@router.get("/health", tags=["Status"])
async def health_check():
    """
    Health check endpoint to verify server is running

    Returns:
        dict: Server status information
    """
    return {
        "status": "healthy",
        "service": "FontSync Server",
        "version": __version__,
        "timestamp_utc": datetime.now(timezone.utc).isoformat()
    }


# ==================== Status Endpoints ====================

@router.get("/status", tags=["Status"])
async def get_status():
    """
    Get scan state of the font directory and the number of connected clients

    Returns:
        dict: Manifest version and digest, file count, last scan time and error,
              connected notification clients
    """
    status_info = state.manifest_store.Status()
    status_info["connected_clients"] = state.notification_hub.ClientCount()
    return status_info


@router.post("/rescan", tags=["Status"])
async def request_rescan():
    """
    Scan the font directory now and broadcast resulting change events

    A scan already in progress is not interrupted; the request then reports
    scanned = False and the running scan's results are broadcast as usual.

    Returns:
        dict: Whether a scan ran, number of change events, current version
    """
    events = await state.manifest_store.Rescan()
    if events is None:
        return {
            "scanned": False,
            "events": 0,
            "version": state.manifest_store.manifest.version
        }

    state.notification_hub.Broadcast(events)
    logger.info(f"Manual rescan produced {len(events)} change event(s)")

    return {
        "scanned": True,
        "events": len(events),
        "version": state.manifest_store.manifest.version,
        "last_scan_error": state.manifest_store.last_scan_error
    }
