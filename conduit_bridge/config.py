"""Configuration loader for conduit-bridge."""

from __future__ import annotations

import logging
import shlex
from configparser import ConfigParser
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from . import constants

LOGGER = logging.getLogger(__name__)

DEFAULT_CAMERA_TIMEOUT_SECONDS = 10.0
DEFAULT_JPEG_QUALITY = 90


def _default_allow_list() -> Dict[str, Tuple[str, ...]]:
    return {key: tuple(argv) for key, argv in constants.DEFAULT_ALLOW_LIST.items()}


@dataclass(slots=True)
class ServerConfig:
    host: str = constants.DEFAULT_SERVER_HOST
    port: int = constants.DEFAULT_SERVER_PORT


@dataclass(slots=True)
class CameraConfig:
    permission_granted: bool = True
    required_devices: List[Path] = field(default_factory=list)  # e.g. /dev/video0
    front_snapshot_url: Optional[str] = None
    back_snapshot_url: Optional[str] = None
    timeout_seconds: float = DEFAULT_CAMERA_TIMEOUT_SECONDS
    jpeg_quality: int = DEFAULT_JPEG_QUALITY


@dataclass(slots=True)
class StorageConfig:
    media_dir: Optional[Path] = constants.DEFAULT_MEDIA_DIR
    media_subdir: str = constants.DEFAULT_MEDIA_SUBDIR
    files_dir: Path = constants.DEFAULT_FILES_DIR


@dataclass(slots=True)
class ProcessConfig:
    allow_list: Dict[str, Tuple[str, ...]] = field(default_factory=_default_allow_list)
    working_directory: Optional[Path] = None
    timeout_seconds: Optional[float] = None  # None disables the timeout


@dataclass(slots=True)
class LoggingConfig:
    level: str = "INFO"
    path: Optional[Path] = constants.DEFAULT_LOG_PATH
    log_network: bool = False


@dataclass(slots=True)
class BridgeConfig:
    server: ServerConfig
    camera: CameraConfig
    storage: StorageConfig
    process: ProcessConfig
    logging: LoggingConfig
    raw: ConfigParser
    path: Path


def _parse_list(value: str, *, default: Iterable[str]) -> List[str]:
    if not value:
        return list(default)
    return [item.strip() for item in value.split(",") if item.strip()]


def _optional_path(value: Optional[str]) -> Optional[Path]:
    if value is None or not value.strip():
        return None
    return Path(value.strip()).expanduser()


def _optional_str(value: Optional[str]) -> Optional[str]:
    if value is None or not value.strip():
        return None
    return value.strip()


def _get_int(parser: ConfigParser, section: str, option: str, default: int) -> int:
    try:
        return parser.getint(section, option, fallback=default)
    except ValueError:
        LOGGER.warning(
            "Invalid integer for [%s] %s; using %s", section, option, default
        )
        return default


def _get_float(
    parser: ConfigParser, section: str, option: str, default: float
) -> float:
    try:
        return parser.getfloat(section, option, fallback=default)
    except ValueError:
        LOGGER.warning(
            "Invalid number for [%s] %s; using %s", section, option, default
        )
        return default


def _parse_allow_list(parser: ConfigParser) -> Dict[str, Tuple[str, ...]]:
    allow_list: Dict[str, Tuple[str, ...]] = {}
    for key, value in parser.items("allow_list"):
        try:
            argv = tuple(shlex.split(value))
        except ValueError as exc:
            LOGGER.warning("Skipping allow-list entry %s (%s): %r", key, exc, value)
            continue
        if not argv:
            # An empty entry removes a default command from the allow-list.
            continue
        allow_list[key] = argv
    return allow_list


def load_config(path: Optional[Path] = None) -> BridgeConfig:
    """Load configuration from disk, applying defaults where necessary."""

    config_path = path or constants.DEFAULT_CONFIG_PATH
    # Allow-list argv is taken literally; "%" is an ordinary shell token there.
    parser = ConfigParser(interpolation=None)
    # Allow-list keys are command names sent by the caller; keep their case.
    parser.optionxform = str  # type: ignore[assignment,method-assign]
    parser.read_dict(
        {
            "server": {
                "host": constants.DEFAULT_SERVER_HOST,
                "port": str(constants.DEFAULT_SERVER_PORT),
            },
            "camera": {
                "permission_granted": "true",
                "required_devices": "",
                "front_snapshot_url": "",
                "back_snapshot_url": "",
                "timeout_seconds": str(DEFAULT_CAMERA_TIMEOUT_SECONDS),
                "jpeg_quality": str(DEFAULT_JPEG_QUALITY),
            },
            "storage": {
                "media_dir": str(constants.DEFAULT_MEDIA_DIR),
                "media_subdir": constants.DEFAULT_MEDIA_SUBDIR,
                "files_dir": str(constants.DEFAULT_FILES_DIR),
            },
            "process": {
                "working_directory": "",
                "timeout_seconds": "0",
            },
            "allow_list": {
                key: shlex.join(argv)
                for key, argv in constants.DEFAULT_ALLOW_LIST.items()
            },
            "logging": {
                "level": "INFO",
                "path": str(constants.DEFAULT_LOG_PATH),
                "log_network": "false",
            },
        }
    )

    if config_path.exists():
        parser.read(config_path)

    server = ServerConfig(
        host=parser.get("server", "host", fallback=constants.DEFAULT_SERVER_HOST),
        port=_get_int(parser, "server", "port", constants.DEFAULT_SERVER_PORT),
    )

    camera_timeout = _get_float(
        parser, "camera", "timeout_seconds", DEFAULT_CAMERA_TIMEOUT_SECONDS
    )

    camera = CameraConfig(
        permission_granted=parser.getboolean(
            "camera", "permission_granted", fallback=True
        ),
        required_devices=[
            Path(item).expanduser()
            for item in _parse_list(
                parser.get("camera", "required_devices", fallback=""), default=[]
            )
        ],
        front_snapshot_url=_optional_str(
            parser.get("camera", "front_snapshot_url", fallback=None)
        ),
        back_snapshot_url=_optional_str(
            parser.get("camera", "back_snapshot_url", fallback=None)
        ),
        timeout_seconds=max(0.1, camera_timeout),
        jpeg_quality=max(
            1,
            min(
                100,
                _get_int(parser, "camera", "jpeg_quality", DEFAULT_JPEG_QUALITY),
            ),
        ),
    )

    storage = StorageConfig(
        media_dir=_optional_path(parser.get("storage", "media_dir", fallback=None)),
        media_subdir=parser.get(
            "storage", "media_subdir", fallback=constants.DEFAULT_MEDIA_SUBDIR
        ).strip()
        or constants.DEFAULT_MEDIA_SUBDIR,
        files_dir=Path(
            parser.get("storage", "files_dir", fallback=str(constants.DEFAULT_FILES_DIR))
        ).expanduser(),
    )

    process_timeout = _get_float(parser, "process", "timeout_seconds", 0.0)
    process = ProcessConfig(
        allow_list=_parse_allow_list(parser),
        working_directory=_optional_path(
            parser.get("process", "working_directory", fallback=None)
        ),
        timeout_seconds=process_timeout if process_timeout > 0 else None,
    )

    logging_config = LoggingConfig(
        level=parser.get("logging", "level", fallback="INFO"),
        path=_optional_path(
            parser.get("logging", "path", fallback=str(constants.DEFAULT_LOG_PATH))
        ),
        log_network=parser.getboolean("logging", "log_network", fallback=False),
    )

    return BridgeConfig(
        server=server,
        camera=camera,
        storage=storage,
        process=process,
        logging=logging_config,
        raw=parser,
        path=config_path,
    )

