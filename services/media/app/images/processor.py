"""
Image processor — upload sniffing and the forced-size derivative.

Uses Pillow for image manipulation. The derivative ignores aspect ratio: the
source is stretched to exactly width x height with Lanczos resampling.

Output format:
  JPEG sources → JPEG (quality 85, baseline)
  anything else → PNG (compress level 6)

Encoder settings are fixed and no metadata is copied across, so the same
input always produces the same bytes. The resize worker relies on this to
stay idempotent under repeated delivery.
"""
from __future__ import annotations

import io
import logging

from PIL import Image, ImageOps, UnidentifiedImageError

from app.images.constants import (
    JPEG_QUALITY,
    PIL_FORMAT_CONTENT_TYPES,
    PNG_COMPRESS_LEVEL,
    ImageContentType,
)

logger = logging.getLogger(__name__)

# Errors Pillow raises for payloads it cannot decode
DECODE_ERRORS = (
    UnidentifiedImageError,
    Image.DecompressionBombError,
    OSError,
    SyntaxError,
    ValueError,
)


def detect_content_type(data: bytes) -> ImageContentType:
    """Identify an uploaded payload from its bytes, never from the client's claims."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            fmt = img.format or ""
            img.verify()
    except DECODE_ERRORS as exc:
        logger.info("Rejected undecodable upload payload: %s", exc)
        return ImageContentType.UNKNOWN
    return PIL_FORMAT_CONTENT_TYPES.get(fmt, ImageContentType.UNKNOWN)


class ImageProcessor:
    """Decode one image and render fixed-size derivatives from it."""

    def __init__(self, image_data: bytes) -> None:
        with Image.open(io.BytesIO(image_data)) as img:
            self.source_format = img.format or ""
            # Apply camera orientation so the thumbnail is upright
            self._image = ImageOps.exif_transpose(img)
            self._image.load()

    @property
    def output_type(self) -> ImageContentType:
        if self.source_format == "JPEG":
            return ImageContentType.JPEG
        return ImageContentType.PNG

    def resize(self, width: int, height: int) -> bytes:
        """Stretch to exactly width x height and encode."""
        if width <= 0 or height <= 0:
            raise ValueError(f"Invalid target size {width}x{height}")

        if self.output_type is ImageContentType.JPEG:
            image = _to_rgb(self._image)
        elif self._image.mode in ("RGB", "RGBA", "L", "LA"):
            image = self._image
        else:
            image = self._image.convert("RGBA")

        resized = image.resize((width, height), Image.Resampling.LANCZOS)

        buf = io.BytesIO()
        if self.output_type is ImageContentType.JPEG:
            resized.save(buf, format="JPEG", quality=JPEG_QUALITY, optimize=False, progressive=False)
        else:
            resized.save(buf, format="PNG", compress_level=PNG_COMPRESS_LEVEL)
        return buf.getvalue()


def _to_rgb(image: Image.Image) -> Image.Image:
    """JPEG has no alpha: composite transparent pixels onto white."""
    if image.mode in ("RGBA", "LA", "PA"):
        background = Image.new("RGB", image.size, (255, 255, 255))
        background.paste(image, mask=image.split()[-1])
        return background
    if image.mode != "RGB":
        return image.convert("RGB")
    return image
