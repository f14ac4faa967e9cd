"""
Object key helpers.

  original-images/{owner}/{filename}  →  resized-images/{owner}/{filename}

The mapping is preserved bit-for-bit; the derivative key is the source key
with its prefix swapped.
"""
from __future__ import annotations

from pathlib import PurePosixPath

from app.images.constants import EXTENSION_CONTENT_TYPES, ImageContentType, ImagePrefix


def owner_prefix(prefix: ImagePrefix, owner: str) -> str:
    return f"{prefix.value}/{owner}/"


def original_key(owner: str, filename: str) -> str:
    return owner_prefix(ImagePrefix.ORIGINAL, owner) + filename


def resized_key_for(source_key: str) -> str:
    """Derive the resized key from an original key."""
    root = ImagePrefix.ORIGINAL.root
    if not source_key.startswith(root):
        raise ValueError(f"Not an original image key: {source_key!r}")
    return ImagePrefix.RESIZED.root + source_key[len(root):]


def is_safe_segment(name: str) -> bool:
    """True when ``name`` can stand as exactly one key segment."""
    return (
        bool(name)
        and name not in (".", "..")
        and "/" not in name
        and "\\" not in name
        and not any(ord(ch) < 32 for ch in name)
    )


def split_key(key: str) -> tuple[ImagePrefix, str, str]:
    """Return (prefix, owner, filename) or raise ValueError for a foreign key."""
    head, sep, rest = key.partition("/")
    if not sep:
        raise ValueError(f"Key has no prefix: {key!r}")
    try:
        prefix = ImagePrefix(head)
    except ValueError:
        raise ValueError(f"Key is outside the image namespaces: {key!r}") from None
    owner, sep, filename = rest.partition("/")
    if not sep or not is_safe_segment(owner) or not is_safe_segment(filename):
        raise ValueError(f"Key does not end in {owner}/{filename}: {key!r}")
    return prefix, owner, filename


def is_owned_by(key: str, owner: str) -> bool:
    try:
        _, key_owner, _ = split_key(key)
    except ValueError:
        return False
    return key_owner == owner


def content_type_for(filename: str) -> ImageContentType:
    suffix = PurePosixPath(filename).suffix.lower()
    return EXTENSION_CONTENT_TYPES.get(suffix, ImageContentType.UNKNOWN)
