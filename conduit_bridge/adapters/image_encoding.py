"""JPEG normalization for captured frames.

Captured images are always stored as ``IMG_<timestamp>.jpg``. Snapshot
endpoints usually serve JPEG already, in which case the bytes are written
untouched; anything else (PNG, BMP, ...) is decoded and re-encoded as JPEG.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError

LOGGER = logging.getLogger(__name__)

JPEG_CONTENT_TYPES = frozenset({"image/jpeg", "image/jpg", "image/pjpeg"})


class ImageEncodingError(ValueError):
    """Raised when captured bytes cannot be decoded as an image."""


@dataclass(slots=True)
class EncodedImage:
    """Result of JPEG normalization."""

    image_data: bytes
    """JPEG bytes ready to be written."""

    size: Tuple[int, int]
    """Image dimensions (width, height); (0, 0) when passed through undecoded."""

    was_reencoded: bool
    """Whether the source had to be decoded and re-encoded."""


class JpegEncoder:
    """Converts captured frames to JPEG."""

    def __init__(self, jpeg_quality: int = 90) -> None:
        """Initialize the encoder.

        Args:
            jpeg_quality: JPEG quality setting (1-100) used when re-encoding.
        """
        self._jpeg_quality = jpeg_quality

    @property
    def jpeg_quality(self) -> int:
        return self._jpeg_quality

    def encode(self, image_data: bytes, content_type: Optional[str] = None) -> EncodedImage:
        """Return JPEG bytes for ``image_data``.

        Args:
            image_data: Raw image bytes as delivered by the device.
            content_type: Optional MIME type hint.

        Raises:
            ImageEncodingError: The bytes are not a decodable image.
        """
        mime = (content_type or "").split(";", 1)[0].strip().lower()
        if mime in JPEG_CONTENT_TYPES or image_data[:3] == b"\xff\xd8\xff":
            return EncodedImage(image_data=image_data, size=(0, 0), was_reencoded=False)

        try:
            img = Image.open(io.BytesIO(image_data))
            img.load()
        except (UnidentifiedImageError, OSError) as exc:
            raise ImageEncodingError(f"Unsupported image data: {exc}") from exc

        # JPEG has no alpha channel; flatten onto white
        if img.mode in ("RGBA", "LA", "P"):
            if img.mode != "RGBA":
                img = img.convert("RGBA")
            background = Image.new("RGB", img.size, (255, 255, 255))
            background.paste(img, mask=img.split()[-1])
            img = background
        elif img.mode != "RGB":
            img = img.convert("RGB")

        buffer = io.BytesIO()
        img.save(buffer, format="JPEG", quality=self._jpeg_quality, optimize=True)
        encoded = buffer.getvalue()

        LOGGER.debug(
            "Re-encoded %s frame %dx%d as JPEG (%d -> %d bytes)",
            mime or "unknown",
            img.size[0],
            img.size[1],
            len(image_data),
            len(encoded),
        )
        return EncodedImage(image_data=encoded, size=img.size, was_reencoded=True)
