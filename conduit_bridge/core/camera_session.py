"""Lifecycle of the single camera binding owned by the bridge.

All transitions run on the event loop that owns the session. Device provider
resolution and image capture are the only suspension points; every operation
that suspends records the session generation before awaiting and re-checks it
afterwards, so a completion that lands after ``dispose()`` (or after a newer
``start()``) never mutates the session.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Optional

from ..constants import DEFAULT_IMAGE_EXTENSION
from .models import CapturedImage, LensDirection, SessionState
from .protocols import DeviceHandle, DeviceProvider, ImageStore, ProviderSource

LOGGER = logging.getLogger(__name__)


class CameraSessionError(RuntimeError):
    """Base class for camera session failures."""

    def __init__(self, message: str, *, details: Optional[str] = None) -> None:
        super().__init__(message)
        self.details = details


class CameraStartError(CameraSessionError):
    """Raised when the session could not reach the bound state."""


class CameraNotInitializedError(CameraSessionError):
    """Raised when a capture is requested without a bound device."""


class CaptureError(CameraSessionError):
    """Raised when the bound device fails to capture an image."""


class CameraSession:
    """Owns the camera binding and its acquisition/capture/teardown cycle."""

    def __init__(
        self,
        provider_source: ProviderSource,
        image_store: ImageStore,
        *,
        image_extension: str = DEFAULT_IMAGE_EXTENSION,
    ) -> None:
        self._provider_source = provider_source
        self._image_store = image_store
        self._image_extension = image_extension
        self._state = SessionState.IDLE
        self._generation = 0
        self._provider: Optional[DeviceProvider] = None
        self._device: Optional[DeviceHandle] = None
        self._lens_direction = LensDirection.BACK

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def lens_direction(self) -> LensDirection:
        return self._lens_direction

    @property
    def is_bound(self) -> bool:
        return self._device is not None and self._state in (
            SessionState.BOUND,
            SessionState.CAPTURING,
        )

    async def start(self, lens_direction: Any = LensDirection.BACK) -> None:
        """Acquire the device provider and bind the device for ``lens_direction``.

        Safe to call repeatedly; an existing binding is always released first.

        Raises:
            CameraStartError: The provider could not be resolved, binding failed,
                or the start was superseded by ``dispose()`` or a newer start.
        """
        lens = LensDirection.parse(lens_direction)
        self._generation += 1
        generation = self._generation
        self._state = SessionState.ACQUIRING

        try:
            provider = await self._provider_source()
        except asyncio.CancelledError:
            self._abandon_start(generation)
            raise
        except Exception as exc:
            LOGGER.error("Camera provider resolution failed: %s", exc)
            self._abandon_start(generation)
            raise CameraStartError(
                f"Camera provider unavailable: {exc}", details=repr(exc)
            ) from exc

        if generation != self._generation:
            LOGGER.debug(
                "Discarding stale camera start (generation %d, current %d)",
                generation,
                self._generation,
            )
            raise CameraStartError("Camera start was superseded before completion")

        try:
            self._release_binding()
            self._provider = provider
            # Unbind use cases before rebinding
            provider.unbind_all()
            device = provider.bind(lens)
        except Exception as exc:
            LOGGER.error("Camera binding failed for %s lens: %s", lens.value, exc)
            self._safe_release("binding failure")
            self._state = SessionState.IDLE
            raise CameraStartError(
                f"Camera binding failed: {exc}", details=repr(exc)
            ) from exc

        self._device = device
        self._lens_direction = lens
        self._state = SessionState.BOUND
        LOGGER.debug("Camera started successfully with lens: %s", lens.value)

    async def capture(self) -> CapturedImage:
        """Capture one image with the bound device.

        Raises:
            CameraNotInitializedError: The session is not bound.
            CaptureError: The device reported a failure.
        """
        device = self._device
        if self._state is not SessionState.BOUND or device is None:
            raise CameraNotInitializedError(
                f"Camera is not initialized (state: {self._state.value})"
            )

        try:
            destination = self._image_store.new_image_file(self._image_extension)
        except OSError as exc:
            raise CaptureError(
                f"Photo capture failed: {exc}", details=repr(exc)
            ) from exc

        generation = self._generation
        self._state = SessionState.CAPTURING
        try:
            saved = await device.take_picture(destination)
        except asyncio.CancelledError:
            self._finish_capture(generation)
            raise
        except Exception as exc:
            self._finish_capture(generation)
            raise CaptureError(
                f"Photo capture failed: {exc}", details=repr(exc)
            ) from exc

        self._finish_capture(generation)
        if generation != self._generation:
            LOGGER.info("Capture completed after the camera session was released")

        return CapturedImage(absolute_path=str(Path(saved).absolute()))

    def dispose(self) -> None:
        """Release the binding and enter the disposed state. Never raises."""
        self._generation += 1
        self._safe_release("dispose")
        self._provider = None
        self._state = SessionState.DISPOSED
        LOGGER.debug("Camera resources disposed")

    def _release_binding(self) -> None:
        provider = self._provider
        self._device = None
        if provider is not None:
            provider.unbind_all()

    def _abandon_start(self, generation: int) -> None:
        if generation != self._generation:
            return
        self._safe_release("start failure")
        self._state = SessionState.IDLE

    def _finish_capture(self, generation: int) -> None:
        if generation == self._generation and self._state is SessionState.CAPTURING:
            self._state = SessionState.BOUND

    def _safe_release(self, reason: str) -> None:
        try:
            self._release_binding()
        except Exception:
            LOGGER.warning("Camera unbind failed during %s", reason, exc_info=True)
        self._device = None
