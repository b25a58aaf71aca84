"""Protocol definitions for the environment collaborators used by the core."""

from __future__ import annotations

from pathlib import Path
from typing import Awaitable, Callable, Protocol

from .models import LensDirection


class DeviceHandle(Protocol):
    """A bound capture device."""

    async def take_picture(self, destination: Path) -> Path:
        """Capture one still image into ``destination``.

        Returns:
            The path of the written file.

        Raises:
            Exception: Any device-reported failure.
        """
        ...


class DeviceProvider(Protocol):
    """Hands out device bindings for a lens selector."""

    def bind(self, lens_direction: LensDirection) -> DeviceHandle:
        """Bind the device for the given lens and return its handle."""
        ...

    def unbind_all(self) -> None:
        """Release every binding handed out by this provider."""
        ...


ProviderSource = Callable[[], Awaitable[DeviceProvider]]
"""Resolves the device provider; resolution may suspend."""


class PermissionOracle(Protocol):
    def camera_permission_granted(self) -> bool:
        """Return whether the capture capability is currently granted."""
        ...


class ImageStore(Protocol):
    def new_image_file(self, extension: str) -> Path:
        """Allocate a unique, not yet existing path for a captured image."""
        ...
