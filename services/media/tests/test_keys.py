import pytest

from app.images import keys
from app.images.constants import ImageContentType, ImagePrefix


def test_original_key_layout() -> None:
    assert keys.original_key("alice", "cat.jpg") == "original-images/alice/cat.jpg"


def test_resized_key_swaps_only_the_prefix() -> None:
    assert keys.resized_key_for("original-images/alice/cat.jpg") == "resized-images/alice/cat.jpg"
    assert (
        keys.resized_key_for("original-images/bob/holiday photo (1).PNG")
        == "resized-images/bob/holiday photo (1).PNG"
    )


@pytest.mark.parametrize(
    "key",
    ["resized-images/alice/cat.jpg", "alice/cat.jpg", "original-imagesX/alice/cat.jpg", ""],
)
def test_resized_key_rejects_non_originals(key: str) -> None:
    with pytest.raises(ValueError):
        keys.resized_key_for(key)


def test_split_key() -> None:
    assert keys.split_key("resized-images/alice/cat.jpg") == (ImagePrefix.RESIZED, "alice", "cat.jpg")


@pytest.mark.parametrize(
    "key",
    ["other/alice/cat.jpg", "resized-images/alice/", "resized-images/alice", "resized-images//cat.jpg"],
)
def test_split_key_rejects_foreign_or_incomplete_keys(key: str) -> None:
    with pytest.raises(ValueError):
        keys.split_key(key)


def test_is_owned_by() -> None:
    assert keys.is_owned_by("original-images/alice/cat.jpg", "alice")
    assert keys.is_owned_by("resized-images/alice/cat.jpg", "alice")
    assert not keys.is_owned_by("resized-images/bob/cat.jpg", "alice")
    assert not keys.is_owned_by("resized-images/alice2/cat.jpg", "alice")
    assert not keys.is_owned_by("secrets/alice/cat.jpg", "alice")


def test_content_type_from_extension() -> None:
    assert keys.content_type_for("cat.JPG") is ImageContentType.JPEG
    assert keys.content_type_for("cat.jpeg") is ImageContentType.JPEG
    assert keys.content_type_for("cat.png") is ImageContentType.PNG
    assert keys.content_type_for("cat.gif") is ImageContentType.UNKNOWN
    assert keys.content_type_for("cat") is ImageContentType.UNKNOWN


@pytest.mark.parametrize(
    "key",
    [
        "original-images/alice/../bob/cat.jpg",
        "original-images/alice/./cat.jpg",
        "original-images/alice/..",
        "original-images/../bob/cat.jpg",
        "resized-images/alice/sub/cat.jpg",
    ],
)
def test_dot_segments_and_nested_paths_are_not_owned(key: str) -> None:
    assert not keys.is_owned_by(key, "alice")
    with pytest.raises(ValueError):
        keys.split_key(key)
