"""
FontSync Server - Main FastAPI Application

This module builds the FastAPI application for the FontSync server. The
application serves the authoritative manifest of one font directory, streams
font files and pushes change notifications to connected clients. A background
task rescans the directory whenever the configured rescan source fires.
"""

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Dict

import uvicorn
from fastapi import FastAPI

from fontsync import __version__
from fontsync.managers import DEFAULT_CONFIG
from fontsync.server import state
from fontsync.server.manifest_store import ManifestStore
from fontsync.server.notifications import NotificationHub
from fontsync.server.watchers import CreateRescanSource, RescanSource

logger = logging.getLogger(__name__)


# ==================== Rescan Loop ====================

async def WatchFontDirectory(source: RescanSource, store: ManifestStore, hub: NotificationHub) -> None:
    """
    Rescan on every trigger and broadcast the resulting change events

    Scan errors are handled inside the store (last good manifest kept), so
    this loop only ends when the server shuts down.
    """
    async for reason in source.Triggers():
        events = await store.Rescan()
        if events:
            logger.info(f"Rescan ({reason}) detected {len(events)} change(s), now at version {store.manifest.version}")
            hub.Broadcast(events)


# ==================== Uvicorn Server ====================

class FontSyncServer(uvicorn.Server):
    """
    uvicorn server that leaves SIGINT/SIGTERM to its owner

    Stock uvicorn re-raises a captured signal after shutdown. Here the CLI
    routes both signals to SyncOrchestrator.stop(), which sets should_exit,
    and a stopped server returns normally.
    """

    def capture_signals(self):
        return contextlib.nullcontext()

    def install_signal_handlers(self) -> None:
        pass


# ==================== Application Factory ====================

def CreateApp(config: Dict[str, Any] = None) -> FastAPI:
    """
    Build the FontSync FastAPI application

    Args:
        config: Effective configuration (see DEFAULT_CONFIG); missing keys use defaults

    Returns:
        FastAPI: Application with lifespan-managed scan state
    """
    settings = dict(DEFAULT_CONFIG)
    settings.update(config or {})
    font_dir = Path(settings["font_dir"])

    # Validate before startup so a bad watch_mode fails fast
    rescan_source = CreateRescanSource(settings, font_dir)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        FastAPI lifespan event handler for startup and shutdown
        Performs the initial scan and runs the rescan loop
        """
        # Startup
        logger.info("FontSync Server starting up...")

        store = ManifestStore(
            font_dir,
            recursive=settings["recursive"],
            extensions=settings["font_extensions"]
        )
        store.InitializeFontDirectory()
        hub = NotificationHub(buffer_size=int(settings["event_buffer_size"]))

        state.manifest_store = store
        state.notification_hub = hub
        state.heartbeat_interval_seconds = float(settings["heartbeat_interval_seconds"])

        await store.Rescan()
        if store.last_scan_error:
            logger.error("Initial scan failed, manifest unavailable until the next successful scan")
        else:
            logger.info(f"Initial scan complete: {len(store.manifest.files)} fonts, version {store.manifest.version}")

        watch_task = asyncio.create_task(WatchFontDirectory(rescan_source, store, hub))
        logger.info(f"Rescan source: {type(rescan_source).__name__}")
        logger.info("Server startup complete")

        yield

        # Shutdown
        logger.info("FontSync Server shutting down...")
        watch_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await watch_task
        hub.Close()
        logger.info("Shutdown complete")

    app = FastAPI(
        title="FontSync Server",
        description="Font directory synchronization server",
        version=__version__,
        lifespan=lifespan
    )

    # ==================== Include Routers ====================

    from fontsync.server.routes import events, files, manifest, status

    app.include_router(status.router)
    app.include_router(manifest.router)
    app.include_router(files.router)
    app.include_router(events.router)

    return app


def CreateUvicornServer(config: Dict[str, Any]) -> FontSyncServer:
    """
    Wrap the application in a uvicorn server bound to config host/port

    The caller runs it with server.run() and stops it by setting
    server.should_exit; a second request sets force_exit.
    """
    app = CreateApp(config)
    uvicorn_config = uvicorn.Config(
        app,
        host=config.get("host", DEFAULT_CONFIG["host"]),
        port=int(config.get("port", DEFAULT_CONFIG["port"])),
        log_level=str(config.get("log_level", "INFO")).lower(),
        log_config=None
    )
    return FontSyncServer(uvicorn_config)
