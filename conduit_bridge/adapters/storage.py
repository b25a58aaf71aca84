"""Writable-directory resolution and capture file naming."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from ..constants import DEFAULT_MEDIA_SUBDIR, IMAGE_FILENAME_PREFIX

LOGGER = logging.getLogger(__name__)


def image_filename(moment: datetime, extension: str) -> str:
    """Return ``IMG_<yyyyMMdd_HHmmssSSS>.<extension>`` for ``moment``."""
    stamp = moment.strftime("%Y%m%d_%H%M%S") + f"{moment.microsecond // 1000:03d}"
    return f"{IMAGE_FILENAME_PREFIX}{stamp}.{extension}"


class MediaStorage:
    """Chooses where captured images are written.

    The preferred location is ``<media_dir>/<media_subdir>``, created on
    demand. When it is not configured or cannot be created, images go to the
    private files directory instead.
    """

    def __init__(
        self,
        files_dir: Path,
        media_dir: Optional[Path] = None,
        *,
        media_subdir: str = DEFAULT_MEDIA_SUBDIR,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._files_dir = files_dir
        self._media_dir = media_dir
        self._media_subdir = media_subdir
        self._clock = clock

    @property
    def files_dir(self) -> Path:
        return self._files_dir

    def resolve_directory(self) -> Path:
        if self._media_dir is not None:
            preferred = self._media_dir / self._media_subdir
            try:
                preferred.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                LOGGER.warning(
                    "Media directory %s unavailable (%s); using %s",
                    preferred,
                    exc,
                    self._files_dir,
                )
            else:
                if preferred.is_dir():
                    return preferred

        self._files_dir.mkdir(parents=True, exist_ok=True)
        return self._files_dir

    def new_image_file(self, extension: str) -> Path:
        directory = self.resolve_directory()
        moment = self._clock()
        candidate = directory / image_filename(moment, extension)
        suffix = 1
        while candidate.exists():
            # Same millisecond as a previous capture
            stem = image_filename(moment, extension).rsplit(".", 1)[0]
            candidate = directory / f"{stem}_{suffix}.{extension}"
            suffix += 1
        return candidate.absolute()
