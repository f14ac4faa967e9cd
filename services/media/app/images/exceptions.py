# Domain exceptions raised by the image service layer.
# The controller layer catches these and converts them to HTTPException.


class ImageValidationError(Exception):
    """The request can be fixed by the caller."""


class EmptyUploadError(ImageValidationError):
    def __init__(self) -> None:
        super().__init__("No image payload was supplied")


class InvalidFilenameError(ImageValidationError):
    def __init__(self, filename: str) -> None:
        self.filename = filename
        super().__init__(f"Invalid filename {filename!r}")


class ImageTooLargeError(ImageValidationError):
    def __init__(self, size_bytes: int, max_bytes: int) -> None:
        self.size_bytes = size_bytes
        self.max_bytes = max_bytes
        super().__init__(f"Image is {size_bytes} bytes, limit is {max_bytes}")


class UnsupportedImageTypeError(ImageValidationError):
    def __init__(self, detected: str | None) -> None:
        self.detected = detected
        super().__init__(f"Unsupported image type: {detected or 'unrecognised'}")


class ImageNotFoundError(Exception):
    def __init__(self, owner: str, prefix: str) -> None:
        self.owner = owner
        self.prefix = prefix
        super().__init__(f"No image under {prefix}/{owner}/")


class KeyAccessDeniedError(Exception):
    def __init__(self, key: str, owner: str) -> None:
        self.key = key
        self.owner = owner
        super().__init__(f"{owner} may not read {key}")
