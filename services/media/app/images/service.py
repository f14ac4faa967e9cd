"""
Image pipeline — pure business logic.

Zero FastAPI imports. Receives the object store and plain data via
parameters, so everything here is testable against an in-memory store.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from app.images import keys
from app.images.constants import ImageContentType, ImagePrefix
from app.images.exceptions import (
    EmptyUploadError,
    ImageNotFoundError,
    ImageTooLargeError,
    InvalidFilenameError,
    KeyAccessDeniedError,
    UnsupportedImageTypeError,
)
from app.images.processor import detect_content_type
from app.images.schemas import ImageObject, UploadRequest

if TYPE_CHECKING:
    from app.s3 import ObjectStore, StoredObject

logger = logging.getLogger(__name__)


# ── Upload ───────────────────────────────────────────────────────────────────

def validate_filename(filename: str) -> str:
    """The filename is used verbatim as the last key segment; it must stay one segment."""
    if not keys.is_safe_segment(filename):
        raise InvalidFilenameError(filename)
    return filename


async def upload_original(
    store: ObjectStore,
    request: UploadRequest,
    *,
    max_bytes: int,
) -> str:
    """
    Write an original image to original-images/{owner}/{filename}.

    Last write wins on a repeated filename. The resize worker is triggered by
    the store's own notification, not from here; this returns as soon as the
    put is acknowledged.
    """
    validate_filename(request.filename)
    if not request.payload:
        raise EmptyUploadError()
    if len(request.payload) > max_bytes:
        raise ImageTooLargeError(len(request.payload), max_bytes)

    # Pillow parsing is CPU-bound → offload to thread
    loop = asyncio.get_running_loop()
    content_type = await loop.run_in_executor(None, detect_content_type, request.payload)
    if content_type is ImageContentType.UNKNOWN:
        raise UnsupportedImageTypeError(None)

    key = keys.original_key(request.owner, request.filename)
    await store.put_object(key, request.payload, content_type.mime_type)
    logger.info("Stored original %s (%d bytes)", key, len(request.payload))
    return key


# ── Listing & resolution ─────────────────────────────────────────────────────

async def list_images(
    store: ObjectStore,
    owner: str,
    prefix: ImagePrefix,
) -> list[ImageObject]:
    """All images of one owner under one prefix, in store listing order."""
    summaries = await store.list_objects(keys.owner_prefix(prefix, owner))
    images: list[ImageObject] = []
    for summary in summaries:
        try:
            images.append(ImageObject.from_summary(summary))
        except ValueError:
            # Folder placeholders such as "resized-images/alice/" have no filename
            logger.debug("Ignoring non-image key %s", summary.key)
    return images


async def list_thumbnail_keys(store: ObjectStore, owner: str) -> list[str]:
    return [image.key for image in await list_images(store, owner, ImagePrefix.RESIZED)]


def select_latest(images: Iterable[ImageObject]) -> ImageObject | None:
    """
    Most recently modified image, or None for an empty input.

    Equal timestamps are broken by the lexicographically greatest key, so the
    answer never depends on listing order.
    """
    return max(images, key=lambda image: (image.last_modified, image.key), default=None)


async def resolve_latest(
    store: ObjectStore,
    owner: str,
    prefix: ImagePrefix = ImagePrefix.RESIZED,
) -> ImageObject | None:
    return select_latest(await list_images(store, owner, prefix))


async def get_profile_image(store: ObjectStore, owner: str) -> ImageObject:
    """The owner's profile picture: their latest resized image."""
    latest = await resolve_latest(store, owner, ImagePrefix.RESIZED)
    if latest is None:
        raise ImageNotFoundError(owner, ImagePrefix.RESIZED.value)
    return latest


# ── Retrieval ────────────────────────────────────────────────────────────────

async def fetch_owned_object(store: ObjectStore, key: str, owner: str) -> StoredObject:
    """Download ``key`` only if it lives in one of ``owner``'s namespaces."""
    if not keys.is_owned_by(key, owner):
        raise KeyAccessDeniedError(key, owner)
    return await store.get_object(key)


async def list_owner_images(store: ObjectStore, owner: str) -> list[ImageObject]:
    """Originals followed by derivatives."""
    images: list[ImageObject] = []
    for prefix in (ImagePrefix.ORIGINAL, ImagePrefix.RESIZED):
        images.extend(await list_images(store, owner, prefix))
    return images
