"""
FontSync - Reconciliation

Compares a client's local manifest with the server's manifest and decides
which files to fetch, delete or leave alone. Pure function, no I/O.
"""

import logging

from fontsync.models import Manifest, ReconciliationPlan

logger = logging.getLogger(__name__)


def Reconcile(local: Manifest, remote: Manifest) -> ReconciliationPlan:
    """
    Compute the reconciliation plan bringing local in line with remote

    Both manifests are sorted by path, so a single merge pass is enough
    (O(n log n) overall including the sort done on construction).

    Comparison rules:
    - In remote only, or hash differs: fetch
    - Same hash: up to date
    - In local only: delete

    Args:
        local: Manifest of the client's directory
        remote: Authoritative manifest from the server

    Returns:
        ReconciliationPlan: Disjoint to_fetch / to_delete / up_to_date lists
    """
    plan = ReconciliationPlan()
    local_files, remote_files = local.files, remote.files
    i = j = 0

    while i < len(local_files) or j < len(remote_files):
        if j >= len(remote_files) or (i < len(local_files) and local_files[i].path < remote_files[j].path):
            plan.to_delete.append(local_files[i].path)
            i += 1
        elif i >= len(local_files) or remote_files[j].path < local_files[i].path:
            plan.to_fetch.append(remote_files[j].path)
            j += 1
        else:
            if local_files[i].hash == remote_files[j].hash:
                plan.up_to_date.append(remote_files[j].path)
            else:
                plan.to_fetch.append(remote_files[j].path)
            i += 1
            j += 1

    logger.info(f"Reconcile comparison: {len(plan.to_fetch)} to fetch, {len(plan.to_delete)} to delete, "
                f"{len(plan.up_to_date)} up to date")

    return plan
