import asyncio
from pathlib import Path
from typing import Optional

import pytest

from conduit_bridge.adapters.storage import MediaStorage
from conduit_bridge.core import CameraSession, LensDirection


class FakeDevice:
    def __init__(self, provider: "FakeDeviceProvider", lens: LensDirection) -> None:
        self.provider = provider
        self.lens = lens
        self.released = False
        self.captures = 0

    async def take_picture(self, destination: Path) -> Path:
        self.captures += 1
        gate = self.provider.capture_gate
        if gate is not None:
            await gate.wait()
        if self.provider.capture_error is not None:
            raise self.provider.capture_error
        destination.write_bytes(b"\xff\xd8\xff\xe0fake-jpeg")
        return destination


class FakeDeviceProvider:
    """Counts outstanding bindings so tests can assert the single-binding invariant."""

    def __init__(self) -> None:
        self.bindings: list[FakeDevice] = []
        self.bind_history: list[FakeDevice] = []
        self.bind_calls: list[LensDirection] = []
        self.unbind_calls = 0
        self.max_outstanding = 0
        self.bind_error: Optional[Exception] = None
        self.capture_error: Optional[Exception] = None
        self.capture_gate: Optional[asyncio.Event] = None

    @property
    def outstanding(self) -> int:
        return len(self.bindings)

    @property
    def captures(self) -> int:
        return sum(device.captures for device in self.bind_history)

    def bind(self, lens_direction: LensDirection) -> FakeDevice:
        self.bind_calls.append(lens_direction)
        if self.bind_error is not None:
            raise self.bind_error
        device = FakeDevice(self, lens_direction)
        self.bindings.append(device)
        self.bind_history.append(device)
        self.max_outstanding = max(self.max_outstanding, self.outstanding)
        return device

    def unbind_all(self) -> None:
        self.unbind_calls += 1
        for device in self.bindings:
            device.released = True
        self.bindings.clear()


class FakeProviderSource:
    """Async provider resolution with an optional gate and failure injection."""

    def __init__(self, provider: FakeDeviceProvider) -> None:
        self.provider = provider
        self.calls = 0
        self.error: Optional[Exception] = None
        self.gate: Optional[asyncio.Event] = None

    async def __call__(self) -> FakeDeviceProvider:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        else:
            await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return self.provider


class FakePermissions:
    def __init__(self, granted: bool = True) -> None:
        self.granted = granted
        self.checks = 0

    def camera_permission_granted(self) -> bool:
        self.checks += 1
        return self.granted


@pytest.fixture
def provider() -> FakeDeviceProvider:
    return FakeDeviceProvider()


@pytest.fixture
def provider_source(provider: FakeDeviceProvider) -> FakeProviderSource:
    return FakeProviderSource(provider)


@pytest.fixture
def storage(tmp_path: Path) -> MediaStorage:
    return MediaStorage(tmp_path / "files", tmp_path / "media")


@pytest.fixture
def session(provider_source: FakeProviderSource, storage: MediaStorage) -> CameraSession:
    return CameraSession(provider_source, storage)


@pytest.fixture
def permissions() -> FakePermissions:
    return FakePermissions()
