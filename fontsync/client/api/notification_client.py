"""
FontSync Client - Notification Channel Client

Blocking WebSocket client for the server's /events endpoint, used by monitor
mode. Change events are returned one at a time; Hello and Heartbeat frames
only update connection bookkeeping.

Author: FontSync Project
"""

import json
import logging
import time
from contextlib import ExitStack
from typing import Callable, Optional
from urllib.parse import urlsplit, urlunsplit

from pydantic import ValidationError
from websockets.exceptions import ConnectionClosed, InvalidHandshake, InvalidURI
from websockets.sync.client import connect

from fontsync.exceptions import ConnectionLostError
from fontsync.models import ChangeEvent, ChangeType

# Configure logging
logger = logging.getLogger(__name__)

EVENTS_PATH = "/events"
CHANGE_TYPES = {change_type.value for change_type in ChangeType}


def _base_path(path: str) -> str:
    """Server path prefix without a trailing slash or /events suffix"""
    path = path.rstrip("/")
    if path.endswith(EVENTS_PATH):
        path = path[:-len(EVENTS_PATH)]
    return path


def build_ws_url(server_url: str) -> str:
    """
    Derive the notification URL from a server URL.

    http -> ws, https -> wss; ws/wss are kept. A path prefix (a server behind
    a reverse proxy) is kept and /events appended to it.

    Raises:
        ValueError: For unsupported schemes
    """
    if "://" not in server_url:
        server_url = f"ws://{server_url}"
    parts = urlsplit(server_url)
    schemes = {"http": "ws", "https": "wss", "ws": "ws", "wss": "wss"}
    if parts.scheme not in schemes:
        raise ValueError(f"Unsupported URL scheme: {parts.scheme}")
    path = _base_path(parts.path) + EVENTS_PATH
    return urlunsplit((schemes[parts.scheme], parts.netloc, path, parts.query, ""))


def build_http_url(server_url: str) -> str:
    """
    Derive the HTTP base URL from a server URL.

    ws -> http, wss -> https; a trailing /events is dropped, any other path
    prefix is kept.

    Raises:
        ValueError: For unsupported schemes
    """
    if "://" not in server_url:
        server_url = f"http://{server_url}"
    parts = urlsplit(server_url)
    schemes = {"ws": "http", "wss": "https", "http": "http", "https": "https"}
    if parts.scheme not in schemes:
        raise ValueError(f"Unsupported URL scheme: {parts.scheme}")
    return urlunsplit((schemes[parts.scheme], parts.netloc, _base_path(parts.path), "", ""))


class NotificationClient:
    """
    Holds one WebSocket connection to the server's change notifications.

    Responsibilities:
    - Connect and read the Hello frame (client id, server manifest version,
      heartbeat interval)
    - Return change events, skipping heartbeats
    - Report dropped or silent connections as ConnectionLostError
    """

    STALE_HEARTBEATS = 3

    def __init__(self, server_url: str, open_timeout: float = 10.0, stale_after: Optional[float] = 90.0,
                 connector: Callable = connect):
        """
        Initialize notification client.

        Args:
            server_url: Server URL in http(s) or ws(s) form
            open_timeout: Timeout for the opening handshake
            stale_after: Seconds without any frame before the connection is
                         considered lost (None disables the check). Replaced
                         by three of the server's heartbeat intervals once its
                         Hello frame announces one.
            connector: Opens the WebSocket; websockets' sync connect() by default
        """
        self.ws_url = build_ws_url(server_url)
        self.open_timeout = open_timeout
        self.stale_after = stale_after
        self.connector = connector
        self.connection = None
        self.client_id: Optional[str] = None
        self.server_version: Optional[int] = None
        self.heartbeat_interval: Optional[float] = None
        self.last_frame_at: Optional[float] = None
        self._stack: Optional[ExitStack] = None

    def connect(self):
        """
        Open the connection and wait for the Hello frame.

        Raises:
            ConnectionLostError: If the server cannot be reached
        """
        logger.info(f"Connecting to notification channel: {self.ws_url}")
        stack = ExitStack()
        try:
            self.connection = stack.enter_context(self.connector(self.ws_url, open_timeout=self.open_timeout))
        except (OSError, InvalidHandshake, InvalidURI, TimeoutError) as e:
            stack.close()
            raise ConnectionLostError(f"Cannot connect to {self.ws_url}: {e}") from e
        self._stack = stack

        self.last_frame_at = time.monotonic()
        # Hello arrives first; read it so server_version is known before returning
        self.receive_event(timeout=self.open_timeout)
        logger.info(f"Connected to notification channel as {self.client_id} (server version {self.server_version})")

    def receive_event(self, timeout: float) -> Optional[ChangeEvent]:
        """
        Wait up to timeout seconds for the next frame.

        Returns:
            ChangeEvent for Added/Modified/Removed frames, None for timeouts,
            Hello, Heartbeat and unrecognized frames

        Raises:
            ConnectionLostError: If the connection dropped or went silent
        """
        if self.connection is None:
            raise ConnectionLostError("Notification channel is not connected")

        try:
            raw = self.connection.recv(timeout=timeout)
        except TimeoutError:
            if self.stale_after is not None and time.monotonic() - self.last_frame_at > self.stale_after:
                raise ConnectionLostError(f"No frames from server for more than {self.stale_after:.0f} seconds")
            return None
        except (ConnectionClosed, OSError) as e:
            raise ConnectionLostError(f"Notification channel closed: {e}") from e

        self.last_frame_at = time.monotonic()
        return self._parse_frame(raw)

    def _parse_frame(self, raw) -> Optional[ChangeEvent]:
        try:
            frame = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning(f"Ignoring malformed notification frame: {raw!r:.100}")
            return None
        if not isinstance(frame, dict):
            return None

        frame_type = frame.get("type")
        if isinstance(frame.get("version"), int):
            self.server_version = frame["version"]

        if frame_type == "Hello":
            self.client_id = frame.get("client_id")
            interval = frame.get("heartbeat_interval")
            if isinstance(interval, (int, float)) and interval > 0:
                self.heartbeat_interval = float(interval)
                if self.stale_after is not None:
                    self.stale_after = self.STALE_HEARTBEATS * self.heartbeat_interval
            return None
        if frame_type == "Heartbeat":
            return None
        if frame_type not in CHANGE_TYPES:
            logger.debug(f"Ignoring notification frame of type {frame_type}")
            return None

        try:
            event = ChangeEvent.model_validate(frame)
        except ValidationError as e:
            logger.warning(f"Ignoring invalid change event: {e}")
            return None

        logger.debug(f"Server reported {event.type.value}: {event.path} (version {event.version})")
        return event

    def close(self):
        """Close the connection if open."""
        if self._stack is not None:
            try:
                self._stack.close()
            except (ConnectionClosed, OSError) as e:
                logger.debug(f"Error while closing notification channel: {e}")
            self._stack = None
        if self.connection is not None:
            self.connection = None
            logger.debug("Notification channel closed")
