"""
FontSync Client - API Communication Module

Handles communication with the FontSync server via its HTTP API:
manifest retrieval and streaming font downloads.

Author: FontSync Project
"""

import json
import logging
import threading
from typing import Any, BinaryIO, Dict, Optional
from urllib.parse import quote

import requests

from fontsync.exceptions import (
    ConnectionLostError,
    FontNotFoundError,
    FontSyncIOError,
    ServerUnavailableError,
    SyncCancelledError
)
from fontsync.models import Manifest

# Configure logging
logger = logging.getLogger(__name__)

DOWNLOAD_CHUNK_SIZE = 64 * 1024


class FontSyncAPI:
    """
    API client for communicating with a FontSync server.

    Responsibilities:
    - Fetch the authoritative manifest
    - Stream font files into caller-provided file objects
    - Translate HTTP and transport failures into FontSync exceptions
    """

    def __init__(self, server_url: str, timeout: float = 30.0, verify_ssl: bool = True):
        """
        Initialize API client.

        Args:
            server_url: Base URL of server (e.g., "http://fonts.local:8080")
            timeout: Connect/read timeout in seconds for each request
            verify_ssl: Whether to verify SSL certificates
        """
        self.base_url = server_url.rstrip("/")
        self.timeout = timeout
        self.verify_ssl = verify_ssl
        # Use session for connection pooling to avoid TCP handshake overhead on each request
        self.session = requests.Session()
        logger.debug(f"Initialized API client for {self.base_url}")

    def close(self):
        """
        Close the session and release resources.

        Should be called when done using the API client.
        """
        if hasattr(self, 'session') and self.session:
            self.session.close()
            logger.debug("API client session closed")

    def __del__(self):
        """Cleanup on deletion."""
        self.close()

    def _request(self, method: str, endpoint: str, **kwargs) -> requests.Response:
        """
        Make a request and map transport failures.

        Raises:
            ConnectionLostError: If the server cannot be reached
            FontSyncIOError: On timeouts and other transport errors
        """
        url = f"{self.base_url}{endpoint}"
        logger.debug(f"API request: {method} {endpoint}")
        kwargs.setdefault("timeout", self.timeout)
        kwargs.setdefault("verify", self.verify_ssl)

        try:
            return self.session.request(method, url, **kwargs)
        except requests.exceptions.ConnectionError as e:
            logger.error(f"Cannot connect to server at {self.base_url}: {e}")
            raise ConnectionLostError(f"Cannot connect to server at {self.base_url}") from e
        except requests.exceptions.Timeout as e:
            logger.error(f"Request timed out: {method} {endpoint}")
            raise FontSyncIOError(f"Request timed out: {endpoint}") from e
        except requests.exceptions.RequestException as e:
            logger.error(f"Request error: {str(e)}")
            raise FontSyncIOError(f"Request error: {str(e)}") from e

    @staticmethod
    def _error_payload(response: requests.Response) -> Dict[str, Any]:
        try:
            payload = response.json()
        except (json.JSONDecodeError, ValueError):
            return {"message": response.text}
        return payload if isinstance(payload, dict) else {"message": str(payload)}

    def _raise_for_status(self, response: requests.Response, path: Optional[str] = None):
        """
        Raise the FontSync exception matching an error response.

        Raises:
            ServerUnavailableError: On 503 (server's last scan failed)
            FontNotFoundError: On 404 for a file request
            FontSyncIOError: On any other error status
        """
        if response.status_code < 400:
            return

        payload = self._error_payload(response)
        message = payload.get("message") or payload.get("detail") or response.reason

        if response.status_code == 503:
            last_good_version = payload.get("last_good_version")
            logger.warning(f"Server unavailable (last good version {last_good_version}): {message}")
            raise ServerUnavailableError(str(message), last_good_version=last_good_version)

        if response.status_code == 404 and path is not None:
            raise FontNotFoundError(path)

        logger.error(f"Request failed with status {response.status_code}: {message}")
        raise FontSyncIOError(f"Request failed with status {response.status_code}: {message}")

    # ==================== Sync Endpoints ====================

    def get_manifest(self) -> Manifest:
        """
        Fetch the server's current manifest.

        Returns:
            Manifest with its server-assigned version

        Raises:
            ServerUnavailableError: If the server's last scan failed
            ConnectionLostError: If the server cannot be reached
        """
        response = self._request("GET", "/manifest")
        self._raise_for_status(response)

        try:
            payload = response.json()
            manifest = Manifest.model_validate(payload)
        except ValueError as e:
            raise FontSyncIOError(f"Invalid manifest received from server: {e}") from e

        declared_digest = payload.get("digest")
        if declared_digest and declared_digest != manifest.Digest():
            raise FontSyncIOError(f"Manifest version {manifest.version} failed digest verification")

        logger.info(f"Server manifest version {manifest.version}: {len(manifest.files)} fonts")
        return manifest

    def download_file(self, path: str, destination: BinaryIO,
                      cancel_event: Optional[threading.Event] = None) -> int:
        """
        Stream a font file into an open binary file object.

        Args:
            path: Relative path from the manifest
            destination: Writable binary file object
            cancel_event: Checked between chunks; set it to abort the transfer

        Returns:
            Number of bytes written

        Raises:
            FontNotFoundError: If the path is no longer in the server's manifest
            SyncCancelledError: If cancel_event was set during the transfer
            ConnectionLostError / FontSyncIOError: On transport failures
        """
        endpoint = f"/files/{quote(path, safe='/')}"
        response = self._request("GET", endpoint, stream=True)

        with response:
            self._raise_for_status(response, path=path)

            written = 0
            try:
                for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                    if cancel_event is not None and cancel_event.is_set():
                        raise SyncCancelledError(f"Download of {path} cancelled")
                    if chunk:
                        destination.write(chunk)
                        written += len(chunk)
            except requests.exceptions.ConnectionError as e:
                raise ConnectionLostError(f"Connection lost while downloading {path}") from e
            except requests.exceptions.RequestException as e:
                raise FontSyncIOError(f"Download of {path} failed: {e}") from e
            except OSError as e:
                raise FontSyncIOError(f"Failed to write {path}: {e}") from e

        logger.debug(f"Downloaded {path} ({written} bytes)")
        return written

    def get_file_hash(self, path: str) -> str:
        """
        Get the server's SHA-256 hash of one font.

        Raises:
            FontNotFoundError: If the path is not in the server's manifest
        """
        response = self._request("GET", f"/files/{quote(path, safe='/')}/hash")
        self._raise_for_status(response, path=path)
        return response.json()["hash"]

    def health(self) -> Dict[str, Any]:
        """Get the server's health information."""
        response = self._request("GET", "/health")
        self._raise_for_status(response)
        return response.json()
