"""
Image pipeline — Pydantic V2 models.
"""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from app.images import keys
from app.images.constants import ImageContentType
from app.s3 import ObjectSummary


# ── Base ─────────────────────────────────────────────────────────────────────

class _Base(BaseModel):
    model_config = ConfigDict(extra="forbid")


# ── Domain ───────────────────────────────────────────────────────────────────

class ImageObject(BaseModel):
    """An image in the store. The key is the only identifier."""
    model_config = ConfigDict(frozen=True)

    key: str
    owner: str
    last_modified: datetime
    size_bytes: int = Field(ge=0)
    content_type: ImageContentType = ImageContentType.UNKNOWN

    @classmethod
    def from_summary(cls, summary: ObjectSummary) -> ImageObject:
        """Build from a listing entry; raises ValueError for keys outside the image namespaces."""
        _, owner, filename = keys.split_key(summary.key)
        return cls(
            key=summary.key,
            owner=owner,
            last_modified=summary.last_modified,
            size_bytes=summary.size_bytes,
            content_type=keys.content_type_for(filename),
        )


class UploadRequest(BaseModel):
    """A single original image on its way into the store."""
    owner: str
    filename: str
    payload: bytes


class ResizeEvent(BaseModel):
    """One object-created notification for the resize worker."""
    source_bucket: str
    source_key: str
    region: str = ""
    message_id: str | None = Field(
        default=None, description="SQS message id when the record arrived via a queue",
    )


class ResizeResult(BaseModel):
    status: str = Field(description="resized, skipped or failed")
    source_key: str
    resized_key: str | None = None
    retryable: bool = False
    error: str | None = None
    message_id: str | None = None


# ── Responses ────────────────────────────────────────────────────────────────

class UploadResponse(_Base):
    message: str
    key: str


class ProfileImageResponse(_Base):
    """The owner's current profile picture, referenced by key."""
    key: str
    owner: str
    last_modified: datetime
    size_bytes: int
    content_type: ImageContentType


class WelcomeResponse(_Base):
    message: str
