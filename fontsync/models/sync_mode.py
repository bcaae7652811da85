"""
FontSync - Operating Mode Models

Enums for the orchestrator's operating modes and lifecycle states.
"""

from enum import Enum


class SyncMode(Enum):
    """
    Operating modes, entered exclusively at startup.

    - SERVE: scan the font directory and answer sync/notification requests
    - SYNC: one reconciliation pass, then exit
    - MONITOR: initial sync, then re-sync on change notifications
    """
    SERVE = "serve"
    SYNC = "sync"
    MONITOR = "monitor"


class OrchestratorState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"
    FAILED = "failed"
