import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

# Configure application logging so request and storage logs are visible
logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(name)s: %(message)s")
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from app.images.dependencies import get_settings
from app.images.router import router as images_router
from app.images.schemas import WelcomeResponse
from app.rate_limit import limiter
from app.s3 import ObjectStore
from shared.middleware import error_envelope_middleware, request_id_middleware

logger = logging.getLogger(__name__)


# ── OpenAPI metadata ──────────────────────────────────────────────────────────

_DESCRIPTION = """
## Cinedex Media Service

Profile imagery for Cinedex users, stored in S3.

* **Upload** — `POST /upload/{owner}` stores an original under `original-images/{owner}/`.
* **Resize** — an S3 notification triggers the resize worker (`app.worker.handler`),
  which writes a fixed-size derivative under `resized-images/{owner}/`.
* **Thumbnails** — `GET /thumbnails/{owner}` lists the resized keys.
* **Profile** — `GET /profile/{owner}` resolves the most recent resized image.
* **Retrieve** — `GET /retrieve/{key}` downloads one of your own objects.

### Authentication
Upload, retrieve and list require:
```
Authorization: Bearer <access_token>
```

### Error shape
```json
{ "detail": "Human-readable message" }
```
"""

_TAGS_METADATA = [
    {
        "name": "images",
        "description": "Upload originals, list thumbnails and resolve profile pictures.",
    },
]


# ── Health schema ─────────────────────────────────────────────────────────────

class HealthResponse(BaseModel):
    status: str
    service: str


# ── App factory ───────────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    # One store per process, shared by reference with every request
    store = ObjectStore.from_settings(get_settings())
    async with store:
        app.state.store = store
        logger.info("Media service ready (bucket %s)", store.bucket)
        yield
    app.state.store = None


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title="Cinedex Media Service",
        version="1.0.0",
        description=_DESCRIPTION,
        openapi_tags=_TAGS_METADATA,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Attach rate limiter state before middleware
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Middleware (applied in reverse-registration order: last added = outermost)
    app.add_middleware(SlowAPIMiddleware)
    app.middleware("http")(request_id_middleware)
    app.middleware("http")(error_envelope_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        max_age=600,
    )

    app.include_router(images_router)

    @app.get("/", response_model=WelcomeResponse, tags=["health"])
    async def welcome() -> WelcomeResponse:
        return WelcomeResponse(message="Welcome to Cinedex!")

    @app.get("/health", response_model=HealthResponse, tags=["health"])
    async def health() -> HealthResponse:
        return HealthResponse(status="ok", service="media")

    return app


app = create_app()
