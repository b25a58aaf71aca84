"""Directory listing for the files channel."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

LOGGER = logging.getLogger(__name__)


class FileQueryError(RuntimeError):
    """Base class for directory listing failures."""

    def __init__(self, message: str, *, details: Optional[str] = None) -> None:
        super().__init__(message)
        self.details = details


class InvalidPathError(FileQueryError):
    """Raised when the requested path is missing or not a directory."""


class ListFilesError(FileQueryError):
    """Raised when the directory exists but cannot be read."""


class FileQueryService:
    """Lists directory entries; defaults to the private files directory."""

    def __init__(self, default_dir: Path) -> None:
        self._default_dir = default_dir

    @property
    def default_dir(self) -> Path:
        return self._default_dir

    def list_files(self, path: Optional[str] = None) -> Dict[str, Any]:
        directory = Path(path).expanduser() if path else self._default_dir
        if path is None:
            directory.mkdir(parents=True, exist_ok=True)

        if not directory.exists() or not directory.is_dir():
            raise InvalidPathError("Path is not a valid directory or does not exist.")

        try:
            entries: List[Dict[str, Any]] = [
                _describe(entry)
                for entry in sorted(directory.iterdir(), key=lambda item: item.name)
            ]
        except OSError as exc:
            raise ListFilesError("Failed to list files.", details=str(exc)) from exc

        return {"files": entries, "path": str(directory.absolute())}


def _describe(entry: Path) -> Dict[str, Any]:
    try:
        stat = entry.stat()
    except FileNotFoundError:
        # Dangling symlink
        stat = entry.lstat()
    return {
        "name": entry.name,
        "path": str(entry.absolute()),
        "isDirectory": entry.is_dir(),
        "size": stat.st_size,
        "lastModified": int(stat.st_mtime * 1000),
    }
