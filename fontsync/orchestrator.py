"""
FontSync - Sync Orchestrator

Runs exactly one operating mode per process:
- serve: uvicorn server with the rescan loop, until stopped
- sync: one reconciliation pass, retried on connection-level errors
- monitor: initial sync, then debounced re-syncs on change notifications

stop() may be called from a signal handler or another thread; it asks the
running mode to wind down cooperatively.

Author: FontSync Project
"""

import logging
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from fontsync.client.api import FontSyncAPI, NotificationClient, build_http_url
from fontsync.client.operations import Backoff, MonitorOperations, SyncOperations, refresh_font_cache
from fontsync.exceptions import (
    ConnectionLostError,
    FontSyncIOError,
    ServerUnavailableError,
    SyncCancelledError
)
from fontsync.managers import DEFAULT_CONFIG, get_user_font_folder
from fontsync.models import OrchestratorState, SyncMode, SyncReport

logger = logging.getLogger(__name__)


class SyncOrchestrator:
    """
    Owns the lifecycle of one FontSync process.

    States: IDLE -> RUNNING -> STOPPING -> STOPPED, or FAILED when the mode
    ended with an error. A mode can only be started once.
    """

    def __init__(self, config: Dict[str, Any] = None, progress_callback: Optional[Callable] = None):
        """
        Initialize orchestrator.

        Args:
            config: Effective configuration; missing keys use DEFAULT_CONFIG
            progress_callback: Passed to sync passes, called with (message, current, total)
        """
        self.config = dict(DEFAULT_CONFIG)
        self.config.update(config or {})
        self.progress_callback = progress_callback

        self.mode: Optional[SyncMode] = None
        self.state = OrchestratorState.IDLE
        self.cancel_event = threading.Event()
        self.last_report: Optional[SyncReport] = None
        self.error: Optional[BaseException] = None

        self._lock = threading.Lock()
        self._server = None
        self._monitor: Optional[MonitorOperations] = None

    # ==================== Lifecycle ====================

    def start(self, mode: SyncMode):
        """
        Run the given mode to completion.

        Returns:
            SyncReport for sync mode, the last pass's report (or None) for
            monitor mode, None for serve mode

        Raises:
            RuntimeError: If a mode was already started
            FontSyncError subclasses: Whatever ended the mode
        """
        with self._lock:
            if self.state != OrchestratorState.IDLE:
                raise RuntimeError(f"Orchestrator already {self.state.value} in {self.mode.value} mode")
            self.mode = mode
            self.state = OrchestratorState.RUNNING

        logger.info(f"Entering {mode.value} mode")
        handlers = {
            SyncMode.SERVE: self.serve,
            SyncMode.SYNC: self.sync_once,
            SyncMode.MONITOR: self.monitor
        }

        try:
            result = handlers[mode]()
        except SyncCancelledError:
            self._set_state(OrchestratorState.STOPPED)
            raise
        except Exception as e:
            self.error = e
            self._set_state(OrchestratorState.FAILED)
            raise

        self._set_state(OrchestratorState.STOPPED)
        logger.info(f"Left {mode.value} mode")
        return result

    def stop(self):
        """Ask the running mode to stop. Safe to call more than once."""
        with self._lock:
            if self.state == OrchestratorState.RUNNING:
                self.state = OrchestratorState.STOPPING
                logger.info(f"Stopping {self.mode.value} mode")
        self.cancel_event.set()
        if self._server is not None:
            if self._server.should_exit:
                # Second stop request: do not wait for open connections
                self._server.force_exit = True
            self._server.should_exit = True

    def status(self) -> Dict[str, Any]:
        """Snapshot of the orchestrator for logging and tests."""
        info = {
            "mode": self.mode.value if self.mode else None,
            "state": self.state.value,
            "error": str(self.error) if self.error else None,
            "last_report": self.last_report.Summary() if self.last_report else None
        }
        if self._monitor is not None:
            info["sync_passes"] = self._monitor.passes
            info["last_synced_version"] = self._monitor.last_synced_version
        if self._server is not None:
            info["server_started"] = bool(self._server.started)
        return info

    def _set_state(self, new_state: OrchestratorState):
        with self._lock:
            self.state = new_state

    # ==================== Modes ====================

    def serve(self):
        """
        Run the HTTP/WebSocket server until stop() or a shutdown signal.

        Raises:
            FontSyncIOError: If the server could not bind or start up
        """
        # Imported here so client-only installs never load the server stack
        from fontsync.server.server import CreateUvicornServer

        host, port = self.config["host"], self.config["port"]
        server = CreateUvicornServer(self.config)
        self._server = server

        if self.cancel_event.is_set():
            return None

        logger.info(f"Serving {self.config['font_dir']} on {host}:{port}")
        try:
            server.run()
        except SystemExit as e:
            # uvicorn exits the process when the socket cannot be bound
            raise FontSyncIOError(f"Cannot bind {host}:{port}") from e

        if not server.started and not self.cancel_event.is_set():
            raise FontSyncIOError(f"Server on {host}:{port} failed to start")
        return None

    def sync_once(self) -> SyncReport:
        """
        One reconciliation pass with up to sync_retries retries on
        connection-level errors.

        Raises:
            ConnectionLostError / ServerUnavailableError: After the last retry
            SyncCancelledError: If stopped during the pass or a retry wait
        """
        api, sync_operations = self._create_sync_operations()
        backoff = Backoff(
            initial=float(self.config["reconnect_initial_delay_seconds"]),
            ceiling=float(self.config["reconnect_max_delay_seconds"]),
            max_attempts=int(self.config["sync_retries"])
        )

        try:
            while True:
                try:
                    report = sync_operations.pull_and_sync(self.cancel_event, self.progress_callback)
                except (ConnectionLostError, ServerUnavailableError) as e:
                    delay = backoff.next_delay()
                    if delay is None:
                        logger.error(f"Sync failed after {backoff.attempts} retries: {e}")
                        raise
                    logger.warning(f"{e}; retry {backoff.attempts}/{backoff.max_attempts} in {delay:.1f}s")
                    if self.cancel_event.wait(delay):
                        raise SyncCancelledError("Sync cancelled") from e
                    continue

                self.last_report = report
                return report
        finally:
            api.close()

    def monitor(self) -> Optional[SyncReport]:
        """Run monitor mode until stop()."""
        api, sync_operations = self._create_sync_operations()
        server_url = self.config["server_url"]
        timeout = float(self.config["request_timeout_seconds"])
        stale_after = NotificationClient.STALE_HEARTBEATS * float(self.config["heartbeat_interval_seconds"])

        def open_channel() -> NotificationClient:
            return NotificationClient(server_url, open_timeout=timeout, stale_after=stale_after)

        max_attempts = self.config["reconnect_max_attempts"]
        self._monitor = MonitorOperations(
            sync_operations,
            open_channel,
            debounce_seconds=float(self.config["debounce_seconds"]),
            debounce_max_seconds=float(self.config["debounce_max_seconds"]),
            backoff=Backoff(
                initial=float(self.config["reconnect_initial_delay_seconds"]),
                ceiling=float(self.config["reconnect_max_delay_seconds"]),
                max_attempts=int(max_attempts) if max_attempts is not None else None
            ),
            on_pass=self._record_pass
        )

        try:
            self._monitor.run(self.cancel_event)
        finally:
            api.close()
        return self.last_report

    # ==================== Helpers ====================

    def resolve_local_dir(self) -> Path:
        """Configured local_dir, or the user's font folder when unset."""
        local_dir = self.config.get("local_dir")
        if local_dir:
            return Path(local_dir).expanduser()
        return get_user_font_folder()

    def _create_sync_operations(self):
        """
        Build the API client and sync handler from config.

        Raises:
            ValueError: If server_url is not an http(s)/ws(s) URL
        """
        base_url = build_http_url(self.config["server_url"])
        api = FontSyncAPI(base_url, timeout=float(self.config["request_timeout_seconds"]))
        sync_operations = SyncOperations(
            api,
            self.resolve_local_dir(),
            recursive=self.config["recursive"],
            extensions=self.config["font_extensions"],
            hash_mismatch_retries=int(self.config["hash_mismatch_retries"]),
            after_sync=refresh_font_cache if self.config["refresh_font_cache"] else None
        )
        return api, sync_operations

    def _record_pass(self, report: SyncReport):
        self.last_report = report
        logger.info(f"Sync pass finished: {report.Summary()}")
