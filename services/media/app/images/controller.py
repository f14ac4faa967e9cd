"""
Image routes — controller layer.

Receives validated input from the router, calls service functions and maps
domain and storage errors onto HTTP exceptions. No request path lets a store
failure escape unclassified.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from starlette.datastructures import UploadFile as StarletteUploadFile

from app.exceptions import (
    ImageFileTooLarge,
    ImageNotFound,
    InvalidImageFilename,
    KeyAccessDenied,
    NoImageUploaded,
    OwnerMismatch,
    StorageUnavailable,
    UnsupportedImageType,
)
from app.images import service
from app.images.exceptions import (
    EmptyUploadError,
    ImageNotFoundError,
    ImageTooLargeError,
    InvalidFilenameError,
    KeyAccessDeniedError,
    UnsupportedImageTypeError,
)
from app.images.schemas import ImageObject, ProfileImageResponse, UploadRequest, UploadResponse
from app.s3 import ObjectNotFound, StorageError

if TYPE_CHECKING:
    from fastapi import UploadFile

    from app.config import Settings
    from app.s3 import ObjectStore, StoredObject
    from shared.models.user import CurrentUser

logger = logging.getLogger(__name__)


async def upload_image(
    owner: str,
    image: UploadFile | str | None,
    user: CurrentUser,
    store: ObjectStore,
    settings: Settings,
) -> UploadResponse:
    """Validate and store an original; the resize happens later, out of process."""
    if user.username != owner:
        raise OwnerMismatch()
    # A plain form value under "image" is not a file
    if not isinstance(image, StarletteUploadFile):
        raise NoImageUploaded()

    # One byte past the limit is enough to know the upload is too large
    payload = await image.read(settings.max_upload_bytes + 1)
    request = UploadRequest(owner=owner, filename=image.filename or "", payload=payload)

    try:
        key = await service.upload_original(
            store, request, max_bytes=settings.max_upload_bytes,
        )
    except EmptyUploadError:
        raise NoImageUploaded()
    except InvalidFilenameError as exc:
        raise InvalidImageFilename(exc.filename)
    except ImageTooLargeError as exc:
        raise ImageFileTooLarge(exc.max_bytes / (1024 * 1024))
    except UnsupportedImageTypeError:
        raise UnsupportedImageType()
    except StorageError:
        logger.exception("Upload of %s for %s failed", request.filename, owner)
        raise StorageUnavailable()

    return UploadResponse(
        message=f"Image {request.filename} uploaded successfully for {owner}.",
        key=key,
    )


async def list_thumbnails(owner: str, store: ObjectStore) -> list[str]:
    try:
        return await service.list_thumbnail_keys(store, owner)
    except StorageError:
        logger.exception("Listing thumbnails for %s failed", owner)
        raise StorageUnavailable()


async def get_profile(owner: str, store: ObjectStore) -> ProfileImageResponse:
    try:
        image = await service.get_profile_image(store, owner)
    except ImageNotFoundError:
        raise ImageNotFound()
    except StorageError:
        logger.exception("Resolving profile image for %s failed", owner)
        raise StorageUnavailable()
    return ProfileImageResponse(**image.model_dump())


async def retrieve_object(key: str, user: CurrentUser, store: ObjectStore) -> StoredObject:
    try:
        return await service.fetch_owned_object(store, key, user.username)
    except KeyAccessDeniedError:
        logger.warning("%s attempted to read foreign key %s", user.username, key)
        raise KeyAccessDenied()
    except ObjectNotFound:
        raise ImageNotFound()
    except StorageError:
        logger.exception("Retrieving %s failed", key)
        raise StorageUnavailable()


async def list_my_images(user: CurrentUser, store: ObjectStore) -> list[ImageObject]:
    try:
        return await service.list_owner_images(store, user.username)
    except StorageError:
        logger.exception("Listing images for %s failed", user.username)
        raise StorageUnavailable()
