"""
Image pipeline — HTTP routes.

Upload and arbitrary-key retrieval require a Bearer token and only ever touch
the caller's own keys. Thumbnails and the profile picture are public so they
can be used directly by <img> tags.
"""
from fastapi import APIRouter, Depends, File, Path, Request, Response, UploadFile

from app.config import Settings
from app.images import controller
from app.images.constants import OWNER_PATTERN
from app.images.dependencies import get_current_user_required, get_settings, get_store
from app.images.schemas import ImageObject, ProfileImageResponse, UploadResponse
from app.rate_limit import limiter
from app.s3 import ObjectStore
from shared.models.user import CurrentUser

router = APIRouter(tags=["images"])


def _upload_rate_limit() -> str:
    return get_settings().upload_rate_limit


# ── Upload ───────────────────────────────────────────────────────────────────

@router.post(
    "/upload/{owner}",
    response_model=UploadResponse,
    summary="Upload an original image",
    description=(
        "Stores the multipart field `image` at original-images/{owner}/{filename}. "
        "Returns once the write is acknowledged; the resized derivative is "
        "produced asynchronously by the resize worker."
    ),
)
@limiter.limit(_upload_rate_limit)
async def upload_image(
    request: Request,
    owner: str = Path(pattern=OWNER_PATTERN),
    image: UploadFile | str | None = File(default=None, description="JPEG or PNG image"),
    user: CurrentUser = Depends(get_current_user_required),
    store: ObjectStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> UploadResponse:
    return await controller.upload_image(owner, image, user, store, settings)


# ── Public reads ─────────────────────────────────────────────────────────────

@router.get(
    "/thumbnails/{owner}",
    response_model=list[str],
    summary="List resized image keys",
    description="Keys under resized-images/{owner}/ in storage listing order.",
)
async def list_thumbnails(
    owner: str = Path(pattern=OWNER_PATTERN),
    store: ObjectStore = Depends(get_store),
) -> list[str]:
    return await controller.list_thumbnails(owner, store)


@router.get(
    "/profile/{owner}",
    response_model=ProfileImageResponse,
    summary="Resolve the current profile picture",
    description="The most recently modified resized image of the owner, by key.",
)
async def get_profile(
    owner: str = Path(pattern=OWNER_PATTERN),
    store: ObjectStore = Depends(get_store),
) -> ProfileImageResponse:
    return await controller.get_profile(owner, store)


# ── Authenticated reads ──────────────────────────────────────────────────────

@router.get(
    "/retrieve/{key:path}",
    summary="Download one of your objects",
    description=(
        "Returns the raw object body. The key must live under "
        "original-images/{you}/ or resized-images/{you}/."
    ),
    response_class=Response,
)
async def retrieve_object(
    key: str,
    user: CurrentUser = Depends(get_current_user_required),
    store: ObjectStore = Depends(get_store),
) -> Response:
    stored = await controller.retrieve_object(key, user, store)
    return Response(
        content=stored.body,
        media_type=stored.content_type,
        headers={"Cache-Control": "private, max-age=60"},
    )


@router.get(
    "/list",
    response_model=list[ImageObject],
    summary="List my images",
    description="Your originals followed by your resized images, with metadata.",
)
async def list_my_images(
    user: CurrentUser = Depends(get_current_user_required),
    store: ObjectStore = Depends(get_store),
) -> list[ImageObject]:
    return await controller.list_my_images(user, store)
