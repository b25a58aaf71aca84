"""HTTP snapshot camera provider.

Each lens is backed by a snapshot endpoint (ustreamer, mjpg-streamer,
go2rtc and similar services expose one, e.g. ``/?action=snapshot``).
Acquiring the provider opens the HTTP session; binding a lens selects its
endpoint; a capture fetches one frame and writes it to disk as JPEG.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import List, Mapping, Optional

import aiohttp

from ..core.models import LensDirection
from .image_encoding import ImageEncodingError, JpegEncoder

LOGGER = logging.getLogger(__name__)


class DeviceError(RuntimeError):
    """Raised when the camera device cannot be bound or fails to capture."""


class SnapshotCamera:
    """A bound snapshot endpoint for one lens."""

    def __init__(
        self,
        provider: "SnapshotCameraProvider",
        lens_direction: LensDirection,
        snapshot_url: str,
    ) -> None:
        self._provider = provider
        self._lens_direction = lens_direction
        self._snapshot_url = snapshot_url
        self._released = False

    @property
    def lens_direction(self) -> LensDirection:
        return self._lens_direction

    @property
    def snapshot_url(self) -> str:
        return self._snapshot_url

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        self._released = True

    async def take_picture(self, destination: Path) -> Path:
        """Fetch one frame and write it to ``destination`` as JPEG.

        Raises:
            DeviceError: The binding was released, the endpoint failed or the
                frame could not be written.
        """
        if self._released:
            raise DeviceError("Camera is no longer bound")

        session = await self._provider.ensure_session()
        try:
            async with session.get(self._snapshot_url) as response:
                if response.status == 404:
                    raise DeviceError(
                        f"Webcam endpoint not found: {self._snapshot_url}"
                    )
                if response.status != 200:
                    raise DeviceError(f"HTTP {response.status} from webcam")

                content_type = response.headers.get("Content-Type", "image/jpeg")
                if not content_type.startswith("image/"):
                    raise DeviceError(f"Expected image, got {content_type}")

                image_data = await response.read()
        except asyncio.TimeoutError as exc:
            raise DeviceError("Camera capture timed out") from exc
        except aiohttp.ClientError as exc:
            raise DeviceError(f"Camera request failed: {exc}") from exc

        if not image_data:
            raise DeviceError("Camera returned empty image data")

        try:
            encoded = self._provider.encoder.encode(image_data, content_type)
        except ImageEncodingError as exc:
            raise DeviceError(str(exc)) from exc

        try:
            destination.write_bytes(encoded.image_data)
        except OSError as exc:
            raise DeviceError(f"Failed to write image: {exc}") from exc

        LOGGER.debug(
            "Captured %d bytes from %s lens into %s",
            len(encoded.image_data),
            self._lens_direction.value,
            destination,
        )
        return destination


class SnapshotCameraProvider:
    """Device provider backed by per-lens HTTP snapshot endpoints."""

    def __init__(
        self,
        snapshot_urls: Mapping[LensDirection, str],
        *,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = 10.0,
        encoder: Optional[JpegEncoder] = None,
    ) -> None:
        """Initialize the provider.

        Args:
            snapshot_urls: Snapshot endpoint per lens; lenses without an entry
                cannot be bound.
            session: Optional aiohttp session to use. If None, creates one.
            timeout: Request timeout in seconds.
            encoder: JPEG encoder for non-JPEG frames.
        """
        self._snapshot_urls = {
            lens: url for lens, url in snapshot_urls.items() if url
        }
        self._session = session
        self._owns_session = session is None
        self._timeout = timeout
        self._encoder = encoder or JpegEncoder()
        self._bound: List[SnapshotCamera] = []

    @property
    def encoder(self) -> JpegEncoder:
        return self._encoder

    @property
    def available_lenses(self) -> List[LensDirection]:
        return sorted(self._snapshot_urls, key=lambda lens: lens.value)

    @property
    def outstanding_bindings(self) -> int:
        return len(self._bound)

    async def acquire(self) -> "SnapshotCameraProvider":
        """Resolve the provider, opening the HTTP session if needed."""
        await self.ensure_session()
        return self

    async def ensure_session(self) -> aiohttp.ClientSession:
        """Get or create the aiohttp session."""
        if self._session is None:
            timeout = aiohttp.ClientTimeout(total=self._timeout)
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._owns_session = True
        return self._session

    def bind(self, lens_direction: LensDirection) -> SnapshotCamera:
        url = self._snapshot_urls.get(lens_direction)
        if url is None:
            raise DeviceError(
                f"No snapshot endpoint configured for the {lens_direction.value} lens"
            )
        camera = SnapshotCamera(self, lens_direction, url)
        self._bound.append(camera)
        return camera

    def unbind_all(self) -> None:
        for camera in self._bound:
            camera.release()
        self._bound.clear()

    async def close(self) -> None:
        """Release bindings and close the HTTP session if we own it."""
        self.unbind_all()
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None
