"""Capture permission checks."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable

LOGGER = logging.getLogger(__name__)


class DevicePermissionOracle:
    """Grants camera access when enabled and every required device is readable."""

    def __init__(self, granted: bool = True, required_devices: Iterable[Path] = ()) -> None:
        self._granted = granted
        self._required_devices = tuple(required_devices)

    @property
    def required_devices(self) -> tuple[Path, ...]:
        return self._required_devices

    def camera_permission_granted(self) -> bool:
        if not self._granted:
            return False
        for device in self._required_devices:
            if not os.access(device, os.R_OK):
                LOGGER.debug("Camera device %s is not readable", device)
                return False
        return True
