"""
FontSync Client - Font Cache Refresh

After a pass that changed files, fontconfig's cache can be rebuilt so newly
synced fonts show up in applications without a re-login.

Author: FontSync Project
"""

import logging
import shutil
import subprocess
from pathlib import Path

from fontsync.models import SyncReport

logger = logging.getLogger(__name__)

FC_CACHE_TIMEOUT_SECONDS = 120


def refresh_font_cache(directory: Path, report: SyncReport = None) -> bool:
    """
    Run `fc-cache -f <directory>` if fc-cache is installed.

    Failures are logged; they never fail the sync.

    Returns:
        True if fc-cache ran successfully
    """
    fc_cache = shutil.which("fc-cache")
    if fc_cache is None:
        logger.debug("fc-cache not found, skipping font cache refresh")
        return False

    command = [fc_cache, "-f", str(directory)]
    if report is not None:
        logger.info(f"Refreshing font cache after {len(report.fetched)} fetch(es), {len(report.deleted)} deletion(s)")
    logger.debug(f"Running: {' '.join(command)}")

    try:
        subprocess.run(command, check=True, capture_output=True, text=True,
                       timeout=FC_CACHE_TIMEOUT_SECONDS)
    except subprocess.CalledProcessError as e:
        logger.warning(f"fc-cache failed with exit code {e.returncode}: {(e.stderr or '').strip()}")
        return False
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.warning(f"fc-cache could not be run: {e}")
        return False

    logger.info("Font cache updated using fc-cache")
    return True
