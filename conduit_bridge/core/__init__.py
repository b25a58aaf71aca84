"""Core primitives for conduit-bridge."""

from .camera_session import (
    CameraNotInitializedError,
    CameraSession,
    CameraSessionError,
    CameraStartError,
    CaptureError,
)
from .models import (
    BridgeRequest,
    CapturedImage,
    Failure,
    LensDirection,
    ProcessInvocation,
    ProcessResult,
    Reply,
    SessionState,
    Success,
)
from .process_gateway import ExecError, ExecErrorKind, ProcessGateway
from .protocols import (
    DeviceHandle,
    DeviceProvider,
    ImageStore,
    PermissionOracle,
    ProviderSource,
)

__all__ = [
    "BridgeRequest",
    "CameraNotInitializedError",
    "CameraSession",
    "CameraSessionError",
    "CameraStartError",
    "CapturedImage",
    "CaptureError",
    "DeviceHandle",
    "DeviceProvider",
    "ExecError",
    "ExecErrorKind",
    "Failure",
    "ImageStore",
    "LensDirection",
    "PermissionOracle",
    "ProcessGateway",
    "ProcessInvocation",
    "ProcessResult",
    "ProviderSource",
    "Reply",
    "SessionState",
    "Success",
]
