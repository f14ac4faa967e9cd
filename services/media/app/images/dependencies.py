"""
Image routes — dependencies.

The object store is built once in the app lifespan and shared by reference;
handlers receive it through ``get_store``. Auth guards are re-exported from
shared: tokens are issued elsewhere and only verified here.
"""
from functools import lru_cache

from fastapi import Request

from app.config import Settings
from app.s3 import ObjectStore
from shared.auth import get_current_user_optional, get_current_user_required

__all__ = [
    "get_current_user_optional",
    "get_current_user_required",
    "get_settings",
    "get_store",
]


@lru_cache
def get_settings() -> Settings:
    return Settings()


def get_store(request: Request) -> ObjectStore:
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise RuntimeError("Object store not initialized")
    return store
