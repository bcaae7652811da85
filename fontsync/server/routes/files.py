"""
FontSync Server - File Download Endpoint

Streams font files listed in the current manifest, and answers per-font
hash lookups so a client can check one file without pulling the manifest.
"""

import logging

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import FileResponse

from fontsync.exceptions import FontNotFoundError
from fontsync.inventory import GetFontMimeType
from fontsync.server import state


# Create logger
logger = logging.getLogger(__name__)

# Create router instance
router = APIRouter()


@router.get("/files/{path:path}/hash", tags=["Sync"])
async def get_file_hash(path: str):
    """
    Get the SHA-256 hash of one font in the current manifest

    Declared before the download route, which would otherwise take
    "/hash" as part of the font path.
    """
    try:
        _, font = state.manifest_store.ResolveFile(path)
    except FontNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Font not found: {path}"
        )

    return {
        "path": font.path,
        "hash": font.hash,
        "size": font.size,
        "version": state.manifest_store.manifest.version
    }


@router.get("/files/{path:path}", tags=["Sync"])
async def download_file(path: str):
    """
    Download a font file

    Only paths present in the current manifest are served. A client racing
    the reconciliation window (file removed between its manifest fetch and
    this request) gets 404 and should pull the manifest again.

    Args:
        path: Relative path from the manifest (e.g., "serif/Body.ttf")

    Returns:
        FileResponse: Raw bytes with Content-Length and font Content-Type

    Raises:
        HTTPException: 404 if the path is unknown
    """
    try:
        file_path, font = state.manifest_store.ResolveFile(path)
    except FontNotFoundError:
        logger.warning(f"Download requested for unknown font: {path}")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Font not found: {path}"
        )

    logger.info(f"Serving font: {path} ({font.size} bytes, manifest version {state.manifest_store.manifest.version})")

    return FileResponse(
        path=str(file_path),
        filename=file_path.name,
        media_type=GetFontMimeType(file_path),
        headers={"X-Font-Hash": font.hash}
    )
