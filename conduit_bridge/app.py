"""Main application entry-point for conduit-bridge."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from .adapters import (
    DevicePermissionOracle,
    FileQueryService,
    JpegEncoder,
    MediaStorage,
    SnapshotCameraProvider,
)
from .commands import CommandDispatcher
from .config import BridgeConfig, load_config
from .core import CameraSession, LensDirection, PermissionOracle, ProcessGateway
from .health import HealthReporter
from .logging import configure_logging
from .server import BridgeServer

LOGGER = logging.getLogger(__name__)


class ConduitBridgeApp:
    """Coordinates application startup and shutdown.

    Owns the host-side resources behind the channels:
    - the camera session and its snapshot provider
    - the process gateway worker
    - the HTTP server that carries requests and replies

    Host teardown disposes the camera session before anything else is closed.
    """

    def __init__(
        self,
        config: Optional[BridgeConfig] = None,
        *,
        camera_provider: Optional[SnapshotCameraProvider] = None,
        permissions: Optional[PermissionOracle] = None,
    ) -> None:
        """Initialize the bridge.

        Args:
            config: Application configuration. If None, loads from default path.
            camera_provider: Snapshot provider. If None, built from the camera
                section of the configuration.
            permissions: Capture permission oracle. If None, built from config.
        """
        self._config = config or load_config()
        camera_config = self._config.camera
        self._camera_provider = camera_provider or SnapshotCameraProvider(
            {
                LensDirection.FRONT: camera_config.front_snapshot_url or "",
                LensDirection.BACK: camera_config.back_snapshot_url or "",
            },
            timeout=camera_config.timeout_seconds,
            encoder=JpegEncoder(camera_config.jpeg_quality),
        )
        self._permissions = permissions or DevicePermissionOracle(
            camera_config.permission_granted, camera_config.required_devices
        )
        self._health = HealthReporter()
        self._camera_session: Optional[CameraSession] = None
        self._process_gateway: Optional[ProcessGateway] = None
        self._dispatcher: Optional[CommandDispatcher] = None
        self._server: Optional[BridgeServer] = None
        self._shutdown_event: Optional[asyncio.Event] = None

    @property
    def dispatcher(self) -> Optional[CommandDispatcher]:
        return self._dispatcher

    async def run(self) -> None:
        """Run until :meth:`request_shutdown` is called or the task is cancelled."""

        self._shutdown_event = asyncio.Event()

        LOGGER.info("conduit-bridge starting with config: %s", self._config.path)
        try:
            await self._start_services()
            await self._idle_loop()
        except asyncio.CancelledError:
            LOGGER.info("conduit-bridge received shutdown signal")
            raise
        finally:
            await self._stop_services()

    def request_shutdown(self) -> None:
        if self._shutdown_event is not None:
            self._shutdown_event.set()

    async def _idle_loop(self) -> None:
        LOGGER.info("conduit-bridge active; awaiting shutdown signal")
        if self._shutdown_event is None:
            self._shutdown_event = asyncio.Event()
        await self._shutdown_event.wait()

    @classmethod
    def start(cls, config: Optional[BridgeConfig] = None) -> None:
        instance = cls(config=config)
        configure_logging(
            instance._config.logging.level,
            log_path=instance._config.logging.path,
            log_network=instance._config.logging.log_network,
        )
        try:
            asyncio.run(instance.run())
        except KeyboardInterrupt:
            LOGGER.info("conduit-bridge received shutdown signal")

    async def _start_services(self) -> None:
        storage_config = self._config.storage
        process_config = self._config.process

        storage = MediaStorage(
            storage_config.files_dir,
            storage_config.media_dir,
            media_subdir=storage_config.media_subdir,
        )
        self._camera_session = CameraSession(self._camera_provider.acquire, storage)
        self._process_gateway = ProcessGateway(
            process_config.allow_list,
            working_directory=process_config.working_directory,
            timeout=process_config.timeout_seconds,
        )
        self._dispatcher = CommandDispatcher(
            self._camera_session,
            self._process_gateway,
            self._permissions,
            files=FileQueryService(storage_config.files_dir),
            health=self._health,
        )

        lenses = self._camera_provider.available_lenses
        await self._health.update(
            "camera",
            bool(lenses),
            ", ".join(lens.value for lens in lenses) or "no snapshot endpoints configured",
        )
        await self._health.update(
            "process",
            True,
            ", ".join(sorted(self._process_gateway.allow_list)) or "empty allow-list",
        )

        self._server = BridgeServer(
            self._dispatcher,
            self._config.server.host,
            self._config.server.port,
            health=self._health,
        )
        await self._server.start()
        await self._health.update("server", True)

    async def _stop_services(self) -> None:
        if self._camera_session is not None:
            self._camera_session.dispose()

        if self._server is not None:
            await self._server.stop()
            self._server = None

        if self._process_gateway is not None:
            self._process_gateway.close()

        try:
            await self._camera_provider.close()
        except Exception:
            LOGGER.warning("Failed to close camera provider", exc_info=True)

        LOGGER.info("conduit-bridge stopped")
