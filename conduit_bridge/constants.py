"""Constants used across the conduit-bridge package."""

from __future__ import annotations

from pathlib import Path

APP_NAME = "conduit-bridge"
DEFAULT_HOME = Path.home() / ".conduit"
DEFAULT_CONFIG_FILENAME = f"{APP_NAME}.cfg"
DEFAULT_CONFIG_PATH = DEFAULT_HOME / DEFAULT_CONFIG_FILENAME

DEFAULT_LOG_PATH = DEFAULT_HOME / "logs" / f"{APP_NAME}.log"

# Private application directory; always writable, used as the capture fallback.
DEFAULT_FILES_DIR = DEFAULT_HOME / "files"
DEFAULT_MEDIA_DIR = DEFAULT_HOME / "media"
DEFAULT_MEDIA_SUBDIR = "captures"

DEFAULT_SERVER_HOST = "127.0.0.1"
DEFAULT_SERVER_PORT = 8765

DEFAULT_IMAGE_EXTENSION = "jpg"
IMAGE_FILENAME_PREFIX = "IMG_"

DEFAULT_ALLOW_LIST = {
    "pwd": ("pwd",),
    "ls": ("ls",),
}
