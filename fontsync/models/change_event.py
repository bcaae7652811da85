"""
FontSync - Change Event Model

Events pushed to connected clients when a server scan detects a manifest delta.
"""

from enum import Enum

from pydantic import BaseModel


class ChangeType(str, Enum):
    """Kind of change detected between two successive scans"""
    ADDED = "Added"
    MODIFIED = "Modified"
    REMOVED = "Removed"


class ChangeEvent(BaseModel):
    """One file addition, modification or removal and the manifest version it produced"""
    type: ChangeType
    path: str
    version: int
