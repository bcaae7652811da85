"""
FontSync - Reconciliation Plan Model

Dataclass describing what a client must do to match the server's manifest.
"""

from dataclasses import dataclass, field
from typing import List


@dataclass
class ReconciliationPlan:
    """
    Three disjoint, sorted lists of relative paths

    to_fetch: missing locally or hash differs from the remote manifest
    to_delete: present locally, absent remotely
    up_to_date: hash matches the remote manifest
    """
    to_fetch: List[str] = field(default_factory=list)
    to_delete: List[str] = field(default_factory=list)
    up_to_date: List[str] = field(default_factory=list)

    def IsEmpty(self) -> bool:
        """True when there is nothing to fetch or delete"""
        return not self.to_fetch and not self.to_delete

    def ActionCount(self) -> int:
        return len(self.to_fetch) + len(self.to_delete)
