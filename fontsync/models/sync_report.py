"""
FontSync - Sync Report Model

Outcome of one client reconciliation pass.
"""

from dataclasses import dataclass, field
from typing import Dict, List


@dataclass
class SyncReport:
    """
    Counts and per-file outcomes of a pull_and_sync pass

    Per-file errors are collected in failures (path -> message) instead of
    aborting the pass. retries records how many extra download attempts a
    path needed after a hash mismatch.
    """
    version: int = 0
    fetched: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)
    unchanged: int = 0
    failures: Dict[str, str] = field(default_factory=dict)
    retries: Dict[str, int] = field(default_factory=dict)

    @property
    def requested(self) -> int:
        return len(self.fetched) + len(self.deleted) + len(self.failures)

    @property
    def retry_count(self) -> int:
        return sum(self.retries.values())

    def HasFailures(self) -> bool:
        return bool(self.failures)

    def AllFailed(self) -> bool:
        """True only when at least one action was requested and every one failed"""
        return self.requested > 0 and len(self.failures) == self.requested

    def Changed(self) -> bool:
        return bool(self.fetched or self.deleted)

    def Summary(self) -> str:
        return (
            f"version {self.version}: {len(self.fetched)} fetched, {len(self.deleted)} deleted, "
            f"{self.unchanged} unchanged, {len(self.failures)} failed, {self.retry_count} retried"
        )
