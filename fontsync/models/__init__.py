"""
FontSync - Models Package

Data models shared by the server and the client.

Author: FontSync Project
"""

from fontsync.models.font_file import FontFile
from fontsync.models.manifest import Manifest
from fontsync.models.change_event import ChangeEvent, ChangeType
from fontsync.models.reconciliation_plan import ReconciliationPlan
from fontsync.models.sync_report import SyncReport
from fontsync.models.sync_mode import SyncMode, OrchestratorState

__all__ = [
    'FontFile',
    'Manifest',
    'ChangeEvent',
    'ChangeType',
    'ReconciliationPlan',
    'SyncReport',
    'SyncMode',
    'OrchestratorState',
]
