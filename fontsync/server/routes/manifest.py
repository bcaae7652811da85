"""
FontSync Server - Manifest Endpoint

Returns the current authoritative manifest of the font directory.
"""

import logging

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from fontsync.exceptions import ServerUnavailableError
from fontsync.server import state


# Create logger
logger = logging.getLogger(__name__)

# Create router instance
router = APIRouter()


@router.get("/manifest", tags=["Sync"])
async def get_manifest():
    """
    Get the current manifest

    Always served from the last completed scan, never a scan in progress.

    Returns:
        dict: {version, digest, files: [{path, size, hash, mtime}]}
        503: If the last scan failed, with the last known-good version
    """
    try:
        manifest = state.manifest_store.GetManifest()
    except ServerUnavailableError as e:
        logger.warning(f"Manifest requested while unavailable: {e}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "error": "server_unavailable",
                "message": str(e),
                "last_good_version": e.last_good_version
            }
        )

    return {
        "version": manifest.version,
        "digest": manifest.Digest(),
        "files": [font.model_dump() for font in manifest.files]
    }
