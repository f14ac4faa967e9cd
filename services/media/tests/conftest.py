import os

# Must be set before the app is imported: disables rate limiting and keeps the
# boto session from walking the credential chain.
os.environ.setdefault("ENV_NAME", "development")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
os.environ.setdefault("AWS_EC2_METADATA_DISABLED", "true")

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from app.images.dependencies import get_store
from app.main import app
from factories import InMemoryObjectStore


@pytest.fixture
def store() -> InMemoryObjectStore:
    return InMemoryObjectStore()


@pytest.fixture
def client(store: InMemoryObjectStore) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_store] = lambda: store
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
