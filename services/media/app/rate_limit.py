"""
Global slowapi rate limiter.

Imported by images/router.py for per-endpoint limits. Mounted onto app.state
in main.py so the slowapi middleware can find it.

Storage: in-memory unless RATE_LIMIT_STORAGE_URI points at a shared backend.
Disabled only when ENV_NAME is explicitly "development".
"""
import os

from slowapi import Limiter
from slowapi.util import get_remote_address


def rate_limiting_enabled() -> bool:
    return os.getenv("ENV_NAME") != "development"


limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=os.getenv("RATE_LIMIT_STORAGE_URI", "memory://"),
    enabled=rate_limiting_enabled(),
)
