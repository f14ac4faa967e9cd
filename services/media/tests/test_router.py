import io
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from app import worker
from app.config import Settings
from app.images.dependencies import get_settings
from app.main import app
from factories import BUCKET, InMemoryObjectStore, auth_headers, make_image, make_token, s3_event

T0 = datetime(2024, 5, 1, tzinfo=timezone.utc)


def _upload(client: TestClient, owner: str, filename: str, payload: bytes, user: str | None = None):
    return client.post(
        f"/upload/{owner}",
        files={"image": (filename, payload, "image/jpeg")},
        headers=auth_headers(user or owner),
    )


def test_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "media"}


def test_welcome(client: TestClient) -> None:
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["message"] == "Welcome to Cinedex!"
    assert response.headers["X-Request-ID"]


# ── Upload ───────────────────────────────────────────────────────────────────

def test_upload_stores_original(client: TestClient, store: InMemoryObjectStore) -> None:
    response = _upload(client, "alice", "cat.jpg", make_image())

    assert response.status_code == 200
    assert response.json()["key"] == "original-images/alice/cat.jpg"
    assert store.keys() == ["original-images/alice/cat.jpg"]


def test_upload_without_file_is_400(client: TestClient) -> None:
    response = client.post("/upload/alice", headers=auth_headers("alice"))
    assert response.status_code == 400


def test_upload_with_text_field_instead_of_file_is_400(client: TestClient, store: InMemoryObjectStore) -> None:
    response = client.post("/upload/alice", data={"image": "hello"}, headers=auth_headers("alice"))
    assert response.status_code == 400
    assert store.keys() == []


def test_upload_with_empty_file_is_400(client: TestClient, store: InMemoryObjectStore) -> None:
    response = _upload(client, "alice", "cat.jpg", b"")
    assert response.status_code == 400
    assert store.keys() == []


def test_upload_requires_authentication(client: TestClient) -> None:
    response = client.post("/upload/alice", files={"image": ("cat.jpg", make_image(), "image/jpeg")})
    assert response.status_code == 401


def test_upload_rejects_invalid_token(client: TestClient) -> None:
    response = client.post(
        "/upload/alice",
        files={"image": ("cat.jpg", make_image(), "image/jpeg")},
        headers={"Authorization": f"Bearer {make_token('alice', aud='someone-else')}"},
    )
    assert response.status_code == 401


def test_upload_for_another_owner_is_403(client: TestClient, store: InMemoryObjectStore) -> None:
    response = _upload(client, "alice", "cat.jpg", make_image(), user="mallory")
    assert response.status_code == 403
    assert store.keys() == []


def test_upload_of_non_image_is_422(client: TestClient) -> None:
    response = _upload(client, "alice", "notes.jpg", b"just some text pretending")
    assert response.status_code == 422


def test_upload_over_size_limit_is_413(client: TestClient) -> None:
    app.dependency_overrides[get_settings] = lambda: Settings(max_upload_bytes=64)
    response = _upload(client, "alice", "cat.jpg", make_image(size=(64, 64)))
    assert response.status_code == 413


def test_upload_with_invalid_owner_is_rejected(client: TestClient) -> None:
    response = _upload(client, "..hidden", "cat.jpg", make_image())
    assert response.status_code == 422


def test_upload_store_failure_is_500(client: TestClient, store: InMemoryObjectStore) -> None:
    store.failing.add("put_object")
    response = _upload(client, "alice", "cat.jpg", make_image())
    assert response.status_code == 500


# ── Thumbnails & profile ─────────────────────────────────────────────────────

def test_thumbnails_empty_list(client: TestClient) -> None:
    response = client.get("/thumbnails/alice")
    assert response.status_code == 200
    assert response.json() == []


def test_thumbnails_only_list_resized_keys_of_owner(client: TestClient, store: InMemoryObjectStore) -> None:
    store.seed("resized-images/alice/b.jpg")
    store.seed("resized-images/alice/a.jpg")
    store.seed("original-images/alice/c.jpg")
    store.seed("resized-images/bob/d.jpg")

    response = client.get("/thumbnails/alice")

    assert response.json() == ["resized-images/alice/a.jpg", "resized-images/alice/b.jpg"]


def test_thumbnails_store_failure_is_500(client: TestClient, store: InMemoryObjectStore) -> None:
    store.failing.add("list_objects")
    assert client.get("/thumbnails/alice").status_code == 500


def test_profile_without_images_is_404(client: TestClient) -> None:
    assert client.get("/profile/alice").status_code == 404


def test_profile_resolves_latest_resized(client: TestClient, store: InMemoryObjectStore) -> None:
    store.seed("resized-images/alice/newest.jpg", last_modified=T0 + timedelta(days=2))
    store.seed("resized-images/alice/oldest.jpg", last_modified=T0)
    store.seed("resized-images/alice/middle.jpg", last_modified=T0 + timedelta(days=1))
    store.seed("original-images/alice/unprocessed.jpg", last_modified=T0 + timedelta(days=3))

    response = client.get("/profile/alice")

    assert response.status_code == 200
    body = response.json()
    assert body["key"] == "resized-images/alice/newest.jpg"
    assert body["owner"] == "alice"
    assert body["content_type"] == "jpeg"


def test_profile_store_failure_is_500(client: TestClient, store: InMemoryObjectStore) -> None:
    store.failing.add("list_objects")
    assert client.get("/profile/alice").status_code == 500


# ── Retrieve & list ──────────────────────────────────────────────────────────

def test_retrieve_own_object_returns_body(client: TestClient, store: InMemoryObjectStore) -> None:
    payload = make_image("PNG")
    store.seed("resized-images/alice/me.png", payload, content_type="image/png")

    response = client.get("/retrieve/resized-images/alice/me.png", headers=auth_headers("alice"))

    assert response.status_code == 200
    assert response.content == payload
    assert response.headers["content-type"] == "image/png"


def test_retrieve_foreign_key_is_403(client: TestClient, store: InMemoryObjectStore) -> None:
    store.seed("original-images/bob/secret.jpg")

    response = client.get("/retrieve/original-images/bob/secret.jpg", headers=auth_headers("alice"))

    assert response.status_code == 403
    assert ("get_object", "original-images/bob/secret.jpg") not in store.calls


@pytest.mark.parametrize("key", ["movies.json", "original-images/alice", "uploads/alice/x.jpg"])
def test_retrieve_outside_image_namespaces_is_403(client: TestClient, key: str) -> None:
    assert client.get(f"/retrieve/{key}", headers=auth_headers("alice")).status_code == 403


def test_retrieve_dot_segment_key_is_403(client: TestClient, store: InMemoryObjectStore) -> None:
    store.seed("original-images/bob/cat.jpg")

    # Encoded so the client sends the dot segments as-is
    response = client.get(
        "/retrieve/original-images/alice/%2E%2E/bob/cat.jpg", headers=auth_headers("alice"),
    )

    assert response.status_code == 403
    assert not [call for call in store.calls if call[0] == "get_object"]


def test_retrieve_missing_key_is_404(client: TestClient) -> None:
    response = client.get("/retrieve/original-images/alice/nope.jpg", headers=auth_headers("alice"))
    assert response.status_code == 404
    assert response.json() == {"detail": "Image not found."}


def test_retrieve_store_failure_is_500(client: TestClient, store: InMemoryObjectStore) -> None:
    store.seed("original-images/alice/cat.jpg")
    store.failing.add("get_object")
    response = client.get("/retrieve/original-images/alice/cat.jpg", headers=auth_headers("alice"))
    assert response.status_code == 500


def test_retrieve_requires_authentication(client: TestClient) -> None:
    assert client.get("/retrieve/original-images/alice/cat.jpg").status_code == 401


def test_list_returns_callers_images(client: TestClient, store: InMemoryObjectStore) -> None:
    store.seed("original-images/alice/cat.jpg", b"12345")
    store.seed("resized-images/alice/cat.jpg", b"123")
    store.seed("original-images/bob/dog.jpg")

    response = client.get("/list", headers=auth_headers("alice"))

    assert response.status_code == 200
    body = response.json()
    assert [item["key"] for item in body] == [
        "original-images/alice/cat.jpg",
        "resized-images/alice/cat.jpg",
    ]
    assert body[0]["size_bytes"] == 5


# ── End to end ───────────────────────────────────────────────────────────────

def test_upload_resize_then_read_back(
    client: TestClient,
    store: InMemoryObjectStore,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(worker, "_get_runtime", lambda: (Settings(), store))

    uploaded = _upload(client, "alice", "cat.jpg", make_image(size=(640, 480)))
    assert uploaded.status_code == 200

    # The store notification the upload would have produced
    result = worker.handler(s3_event(uploaded.json()["key"]), None)
    assert result["statusCode"] == 200

    resized = store.objects[(BUCKET, "resized-images/alice/cat.jpg")]
    with Image.open(io.BytesIO(resized.body)) as img:
        assert img.size == (100, 100)

    assert client.get("/thumbnails/alice").json() == ["resized-images/alice/cat.jpg"]
    assert client.get("/profile/alice").json()["key"] == "resized-images/alice/cat.jpg"
