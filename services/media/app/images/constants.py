"""
Image pipeline — static constants and enum types.
"""
import enum


class ImagePrefix(str, enum.Enum):
    """Reserved key namespaces; every image key starts with one of these."""
    ORIGINAL = "original-images"
    RESIZED = "resized-images"

    @property
    def root(self) -> str:
        return f"{self.value}/"


class ImageContentType(str, enum.Enum):
    JPEG = "jpeg"
    PNG = "png"
    UNKNOWN = "unknown"

    @property
    def mime_type(self) -> str:
        return _MIME_TYPES[self]


_MIME_TYPES: dict[ImageContentType, str] = {
    ImageContentType.JPEG: "image/jpeg",
    ImageContentType.PNG: "image/png",
    ImageContentType.UNKNOWN: "application/octet-stream",
}

# Filename extension → content type, used for listings (which carry no MIME type)
EXTENSION_CONTENT_TYPES: dict[str, ImageContentType] = {
    ".jpg": ImageContentType.JPEG,
    ".jpeg": ImageContentType.JPEG,
    ".png": ImageContentType.PNG,
}

# Pillow format name → content type; anything else is rejected on upload
PIL_FORMAT_CONTENT_TYPES: dict[str, ImageContentType] = {
    "JPEG": ImageContentType.JPEG,
    "PNG": ImageContentType.PNG,
}

# Fixed encoder settings keep derivatives byte-for-byte reproducible
JPEG_QUALITY = 85
PNG_COMPRESS_LEVEL = 6

# Owners become a key segment, so they are restricted to one safe path component
OWNER_PATTERN = r"^[A-Za-z0-9][A-Za-z0-9_.-]{0,63}$"
