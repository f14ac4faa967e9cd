"""
Media service — HTTP exceptions.

Each exception carries a preset status code and detail message so call sites
never choose them. The controller layer raises these after catching the
domain and storage errors underneath.
"""
from fastapi import HTTPException, status


# ── Upload ───────────────────────────────────────────────────────────────────

class NoImageUploaded(HTTPException):
    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No image was uploaded. Send a non-empty file in the 'image' field.",
        )


class InvalidImageFilename(HTTPException):
    def __init__(self, filename: str) -> None:
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid image filename: {filename!r}.",
        )


class ImageFileTooLarge(HTTPException):
    def __init__(self, max_mb: float) -> None:
        super().__init__(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File exceeds the maximum allowed size of {max_mb:g} MB.",
        )


class UnsupportedImageType(HTTPException):
    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Only JPEG and PNG images are accepted.",
        )


# ── Access ───────────────────────────────────────────────────────────────────

class OwnerMismatch(HTTPException):
    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only manage your own images.",
        )


class KeyAccessDenied(HTTPException):
    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="This object does not belong to you.",
        )


# ── Retrieval ────────────────────────────────────────────────────────────────

class ImageNotFound(HTTPException):
    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Image not found.",
        )


class StorageUnavailable(HTTPException):
    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Image storage is unavailable. Please try again.",
        )
