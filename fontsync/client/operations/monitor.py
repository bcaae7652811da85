"""
FontSync Client - Monitor Mode

Keeps a local directory in line with the server continuously: one full sync
at startup, then a debounced full sync whenever the notification channel
reports changes. Lost connections are retried with exponential backoff and
every reconnect is followed by a full pull, so events missed while
disconnected cannot leave the directory stale.

Author: FontSync Project
"""

import logging
import threading
import time
from typing import Callable, Optional

from fontsync.client.operations.backoff import Backoff
from fontsync.client.operations.sync_operations import SyncOperations
from fontsync.exceptions import (
    ConnectionLostError,
    FontSyncIOError,
    ServerUnavailableError,
    SyncCancelledError
)
from fontsync.models import SyncReport

# Configure logging
logger = logging.getLogger(__name__)


class MonitorOperations:
    """
    Event-driven sync loop.

    Debounce: the first change event opens a window; each further event
    pushes the deadline out to debounce_seconds after it, capped at
    debounce_max_seconds after the first. One pull_and_sync runs when the
    deadline passes.
    """

    def __init__(self, sync_operations: SyncOperations, channel_factory: Callable,
                 debounce_seconds: float = 1.0, debounce_max_seconds: float = 10.0,
                 backoff: Optional[Backoff] = None, poll_interval: float = 1.0,
                 on_pass: Optional[Callable[[SyncReport], None]] = None):
        """
        Initialize monitor.

        Args:
            sync_operations: Performs each reconciliation pass
            channel_factory: Returns an unconnected NotificationClient-like object
            debounce_seconds: Quiet period that ends a burst of events
            debounce_max_seconds: Longest a burst can delay the pass
            backoff: Delay schedule for reconnects (default 1s doubling to 60s, unlimited)
            poll_interval: Longest single wait on the channel, bounds cancel latency
            on_pass: Optional callback receiving each pass's SyncReport
        """
        if debounce_seconds < 0 or debounce_max_seconds < debounce_seconds:
            raise ValueError("debounce window must satisfy 0 <= debounce_seconds <= debounce_max_seconds")

        self.sync_operations = sync_operations
        self.channel_factory = channel_factory
        self.debounce_seconds = debounce_seconds
        self.debounce_max_seconds = debounce_max_seconds
        self.backoff = backoff or Backoff()
        self.poll_interval = poll_interval
        self.on_pass = on_pass

        self.last_synced_version: Optional[int] = None
        self.last_report: Optional[SyncReport] = None
        self.passes = 0
        self.connections = 0

    def run(self, cancel_event: threading.Event):
        """
        Run until cancel_event is set.

        Raises:
            ConnectionLostError / ServerUnavailableError: When the backoff's
                attempt limit is exhausted
        """
        logger.info("Monitor started")

        while not cancel_event.is_set():
            channel = None
            try:
                if self.last_synced_version is None:
                    self._run_pass(cancel_event, "initial sync")

                channel = self.channel_factory()
                channel.connect()
                reconnect = self.connections > 0
                self.connections += 1

                if reconnect:
                    self._run_pass(cancel_event, "reconnected")
                elif channel.server_version != self.last_synced_version:
                    self._run_pass(cancel_event, f"server at version {channel.server_version}")

                self.backoff.reset()
                self._listen(channel, cancel_event)

            except SyncCancelledError:
                break

            except (ConnectionLostError, ServerUnavailableError, FontSyncIOError) as e:
                delay = self.backoff.next_delay()
                if delay is None:
                    logger.error(f"Giving up after {self.backoff.attempts} reconnect attempt(s): {e}")
                    raise
                logger.warning(f"{e}; retrying in {delay:.1f}s")
                cancel_event.wait(delay)

            finally:
                if channel is not None:
                    channel.close()

        logger.info(f"Monitor stopped after {self.passes} sync pass(es)")

    def _listen(self, channel, cancel_event: threading.Event):
        """Read events and run debounced passes until cancelled or disconnected."""
        window_opened: Optional[float] = None
        deadline: Optional[float] = None
        pending = 0

        while not cancel_event.is_set():
            now = time.monotonic()
            if deadline is not None and now >= deadline:
                self._run_pass(cancel_event, f"{pending} change(s)", tolerate_io_errors=True)
                window_opened = deadline = None
                pending = 0
                continue

            timeout = self.poll_interval if deadline is None else min(self.poll_interval, deadline - now)
            event = channel.receive_event(timeout=max(timeout, 0.0))
            if event is None:
                continue

            if self.last_synced_version is not None and event.version <= self.last_synced_version:
                logger.debug(f"Skipping {event.type.value} {event.path}: version {event.version} already synced")
                continue

            now = time.monotonic()
            if window_opened is None:
                window_opened = now
            pending += 1
            deadline = min(now + self.debounce_seconds, window_opened + self.debounce_max_seconds)
            logger.debug(f"{event.type.value}: {event.path} (version {event.version}), sync in {deadline - now:.2f}s")

    def _run_pass(self, cancel_event: threading.Event, reason: str, tolerate_io_errors: bool = False):
        logger.info(f"Sync pass: {reason}")
        try:
            report = self.sync_operations.pull_and_sync(cancel_event)
        except FontSyncIOError as e:
            if not tolerate_io_errors:
                raise
            logger.error(f"Sync pass failed: {e}")
            return

        self.passes += 1
        self.last_report = report
        self.last_synced_version = report.version
        if self.on_pass:
            self.on_pass(report)
