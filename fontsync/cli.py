"""
FontSync - CLI Mode Module

Runs one operating mode headless: sets up logging, loads configuration,
hands control to the SyncOrchestrator and turns the outcome into an exit
code.

Author: FontSync Project
"""

import logging
import signal
import sys
import threading
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

from fontsync.exceptions import (
    ConnectionLostError,
    FontSyncError,
    FontSyncIOError,
    ServerUnavailableError,
    SyncCancelledError
)
from fontsync.managers import ConfigManager
from fontsync.models import SyncMode, SyncReport
from fontsync.orchestrator import SyncOrchestrator


# Exit codes
EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_CONFIG_ERROR = 2
EXIT_SERVER_UNREACHABLE = 3
EXIT_BIND_ERROR = 4
EXIT_CANCELLED = 130

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def _log_level(config_manager: ConfigManager) -> int:
    return getattr(logging, str(config_manager.get("log_level", "INFO")).upper(), logging.INFO)


def setup_server_logging(config_manager: ConfigManager) -> Path:
    """
    Setup logging for serve mode: console plus a daily, size-rotated log file.

    Creates log file with format: fontsync-server-YYYY-MM-DD.log

    Returns:
        Path to the log file
    """
    log_dir = Path(config_manager.get("log_dir", "logs"))
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"fontsync-server-{datetime.now().strftime('%Y-%m-%d')}.log"

    logging.basicConfig(
        level=_log_level(config_manager),
        format=LOG_FORMAT,
        handlers=[
            logging.StreamHandler(),
            # Max 10MB per file, keep 10 backup files
            RotatingFileHandler(
                log_file,
                maxBytes=10 * 1024 * 1024,
                backupCount=10,
                encoding='utf-8'
            )
        ]
    )

    logger = logging.getLogger(__name__)
    logger.info(f"FontSync Server - Log file: {log_file}")
    return log_file


def setup_cli_logging(config_manager: ConfigManager) -> Path:
    """
    Setup logging for sync and monitor modes with a timestamped log file.

    Creates log file with format: fontsync-YYYY-MM-DD-HH-MM-SS.log
    in the configured log directory.

    Args:
        config_manager: ConfigManager instance for log settings

    Returns:
        Path to the created log file
    """
    log_level = config_manager.get("log_level", "INFO")

    timestamp = datetime.now().strftime("%Y-%m-%d-%H-%M-%S")
    log_dir = Path(config_manager.get("log_dir", "logs"))
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"fontsync-{timestamp}.log"

    logging.basicConfig(
        level=_log_level(config_manager),
        format=LOG_FORMAT,
        handlers=[
            logging.FileHandler(log_file, encoding='utf-8'),
            logging.StreamHandler(sys.stdout)  # Also output to console
        ]
    )

    logger = logging.getLogger(__name__)
    logger.info(f"FontSync CLI Mode - Log file: {log_file}")
    logger.info(f"Log level: {log_level}")

    return log_file


def cleanup_old_logs(config_manager: ConfigManager, current_log: Path) -> int:
    """
    Delete client log files older than the retention period.

    Args:
        config_manager: ConfigManager instance for retention settings
        current_log: Path to current log file (never deleted)

    Returns:
        Number of deleted files
    """
    logger = logging.getLogger(__name__)
    retention_days = config_manager.get("log_retention_days", 30)

    if not retention_days or retention_days <= 0:
        return 0  # Retention disabled

    log_dir = current_log.parent
    cutoff_time = datetime.now().timestamp() - (retention_days * 86400)

    deleted_count = 0
    for log_file in log_dir.glob("fontsync-*.log"):
        if log_file == current_log or log_file.name.startswith("fontsync-server-"):
            continue

        try:
            if log_file.stat().st_mtime < cutoff_time:
                log_file.unlink()
                deleted_count += 1
        except OSError as e:
            logger.warning(f"Failed to delete old log file {log_file}: {e}")

    if deleted_count > 0:
        logger.info(f"Deleted {deleted_count} log file(s) older than {retention_days} days")
    return deleted_count


def exit_code_for_report(report: Optional[SyncReport], strict: bool) -> int:
    """
    Map a finished pass to an exit code.

    A pass fails when every requested action failed, or under strict mode
    when any action failed. Partial failures otherwise still succeed.
    """
    if report is None:
        return EXIT_SUCCESS
    if report.AllFailed():
        return EXIT_FAILURE
    if strict and report.HasFailures():
        return EXIT_FAILURE
    return EXIT_SUCCESS


def install_signal_handlers(orchestrator: SyncOrchestrator) -> Dict[int, Any]:
    """
    Route SIGINT/SIGTERM to orchestrator.stop().

    Returns:
        Previous handlers, for restore_signal_handlers
    """
    if threading.current_thread() is not threading.main_thread():
        return {}

    def handle_signal(signum, frame):
        logging.getLogger(__name__).warning(f"Received {signal.Signals(signum).name}, stopping")
        orchestrator.stop()

    previous = {}
    for signum in (signal.SIGINT, signal.SIGTERM):
        previous[signum] = signal.signal(signum, handle_signal)
    return previous


def restore_signal_handlers(previous: Dict[int, Any]):
    for signum, handler in previous.items():
        signal.signal(signum, handler)


def run_cli_operation(mode: SyncMode, config_file: Optional[Path] = None,
                      overrides: Optional[Dict[str, Any]] = None) -> int:
    """
    Execute one operating mode without GUI.

    Process:
    1. Load configuration and apply command-line overrides
    2. Setup logging (rotating server log or timestamped client log)
    3. Run the mode through the orchestrator
    4. Return appropriate exit code

    Args:
        mode: Operating mode to run
        config_file: Optional path to the JSON config file
        overrides: Command-line values for this run (None values ignored)

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    try:
        config_mgr = ConfigManager(config_file)
        config_mgr.load_config()
        config_mgr.apply_overrides(overrides or {})
    except (OSError, ValueError) as e:
        # json.JSONDecodeError is a ValueError
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    try:
        if mode == SyncMode.SERVE:
            setup_server_logging(config_mgr)
        else:
            log_file = setup_cli_logging(config_mgr)
            cleanup_old_logs(config_mgr, log_file)
    except OSError as e:
        print(f"Cannot set up logging: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    logger = logging.getLogger(__name__)
    logger.info("=" * 60)
    logger.info(f"Starting FontSync: {mode.value.upper()}")
    logger.info("=" * 60)

    def cli_progress_callback(message: str, current: int, total: int):
        if total > 0:
            percentage = (current / total) * 100
            logger.info(f"[{percentage:5.1f}%] {message}")
        else:
            logger.info(message)

    orchestrator = SyncOrchestrator(config_mgr.as_dict(), progress_callback=cli_progress_callback)
    previous_handlers = install_signal_handlers(orchestrator)

    try:
        report = orchestrator.start(mode)

    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_CONFIG_ERROR

    except SyncCancelledError:
        logger.warning("Operation cancelled")
        return EXIT_CANCELLED

    except (ConnectionLostError, ServerUnavailableError) as e:
        logger.error(f"Server unreachable: {e}")
        return EXIT_SERVER_UNREACHABLE

    except FontSyncIOError as e:
        logger.error(f"{mode.value.upper()} FAILED: {e}")
        return EXIT_BIND_ERROR if mode == SyncMode.SERVE else EXIT_FAILURE

    except FontSyncError as e:
        logger.error(f"{mode.value.upper()} FAILED: {e}")
        return EXIT_FAILURE

    except KeyboardInterrupt:
        logger.warning("Operation cancelled by user (Ctrl+C)")
        return EXIT_CANCELLED

    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        return EXIT_FAILURE

    finally:
        restore_signal_handlers(previous_handlers)

    if mode == SyncMode.SERVE:
        logger.info("Server stopped")
        return EXIT_SUCCESS

    exit_code = exit_code_for_report(report, bool(config_mgr.get("strict", False)))
    summary = report.Summary() if report else "no sync pass completed"
    if exit_code == EXIT_SUCCESS:
        logger.info("=" * 60)
        logger.info(f"{mode.value.upper()} COMPLETED: {summary}")
        logger.info("=" * 60)
    else:
        logger.error("=" * 60)
        logger.error(f"{mode.value.upper()} FAILED: {summary}")
        for path, message in sorted(report.failures.items()):
            logger.error(f"  {path}: {message}")
        logger.error("=" * 60)
    return exit_code
