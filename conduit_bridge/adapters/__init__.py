"""Adapter modules for the host environment."""

from .camera import DeviceError, SnapshotCamera, SnapshotCameraProvider
from .files import FileQueryError, FileQueryService, InvalidPathError, ListFilesError
from .image_encoding import EncodedImage, ImageEncodingError, JpegEncoder
from .permissions import DevicePermissionOracle
from .storage import MediaStorage, image_filename

__all__ = [
    "DeviceError",
    "DevicePermissionOracle",
    "EncodedImage",
    "FileQueryError",
    "FileQueryService",
    "ImageEncodingError",
    "InvalidPathError",
    "JpegEncoder",
    "ListFilesError",
    "MediaStorage",
    "SnapshotCamera",
    "SnapshotCameraProvider",
    "image_filename",
]
