"""
Object store client — typed async wrapper over a single S3 bucket.

The image pipeline partitions one flat key space by prefix:
  original-images/{owner}/{filename}   written by the upload route
  resized-images/{owner}/{filename}    written by the resize worker

One ObjectStore is built per process. The API opens its client in the FastAPI
lifespan and keeps it until shutdown. The Lambda worker keeps the store for the
life of the container but opens the client inside each invocation, because
every invocation runs on a fresh event loop.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from datetime import datetime
from typing import Any, TypeVar

import aioboto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import BaseModel, ConfigDict

from app.config import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}
_RETRYABLE_CODES = {
    "RequestTimeout",
    "RequestTimeoutException",
    "SlowDown",
    "Throttling",
    "ThrottlingException",
    "InternalError",
    "ServiceUnavailable",
}


# ── Errors ────────────────────────────────────────────────────────────────────

class StorageError(Exception):
    """Any failure talking to the object store."""

    def __init__(self, message: str, *, key: str | None = None, retryable: bool = True) -> None:
        self.key = key
        self.retryable = retryable
        super().__init__(message)


class ObjectNotFound(StorageError):
    def __init__(self, key: str) -> None:
        super().__init__(f"Object {key!r} not found", key=key, retryable=False)


class StorageTimeout(StorageError):
    def __init__(self, operation: str, key: str | None, timeout: float) -> None:
        super().__init__(
            f"{operation} timed out after {timeout:g}s", key=key, retryable=True,
        )


def classify_error(exc: Exception, operation: str, key: str | None = None) -> StorageError:
    """Map a botocore failure onto the storage error taxonomy."""
    if isinstance(exc, ClientError):
        code = str(exc.response.get("Error", {}).get("Code", ""))
        if code in _NOT_FOUND_CODES:
            return ObjectNotFound(key or "")
        http_status = int(exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode", 0) or 0)
        return StorageError(
            f"{operation} failed: {code or 'unknown error'}",
            key=key,
            retryable=code in _RETRYABLE_CODES or http_status >= 500,
        )
    return StorageError(f"{operation} failed: {exc}", key=key, retryable=True)


# ── Records ───────────────────────────────────────────────────────────────────

class ObjectSummary(BaseModel):
    """One entry of a bucket listing."""
    model_config = ConfigDict(frozen=True)

    key: str
    last_modified: datetime
    size_bytes: int


class StoredObject(BaseModel):
    """A fully downloaded object."""
    model_config = ConfigDict(frozen=True)

    key: str
    body: bytes
    content_type: str
    last_modified: datetime | None = None


# ── Client ────────────────────────────────────────────────────────────────────

def _s3_session(settings: Settings) -> aioboto3.Session:
    return aioboto3.Session(
        aws_access_key_id=settings.aws_access_key_id or None,
        aws_secret_access_key=settings.aws_secret_access_key or None,
        region_name=settings.aws_region,
    )


def _client_config(settings: Settings) -> Config:
    return Config(
        connect_timeout=settings.s3_connect_timeout_seconds,
        read_timeout=settings.s3_timeout_seconds,
        retries={"max_attempts": settings.s3_max_attempts, "mode": "standard"},
    )


class ObjectStore:
    """put/get/list/copy against one bucket, every call bounded by a timeout."""

    def __init__(
        self,
        session: aioboto3.Session,
        bucket: str,
        *,
        region: str,
        endpoint_url: str | None = None,
        timeout_seconds: float = 10.0,
        client_config: Config | None = None,
    ) -> None:
        self.bucket = bucket
        self._session = session
        self._region = region
        self._endpoint_url = endpoint_url or None
        self._timeout = timeout_seconds
        self._client_config = client_config
        self._client_cm: Any = None
        self._client: Any = None

    @classmethod
    def from_settings(cls, settings: Settings) -> ObjectStore:
        return cls(
            _s3_session(settings),
            settings.s3_bucket_images,
            region=settings.aws_region,
            endpoint_url=settings.s3_endpoint_url,
            timeout_seconds=settings.s3_timeout_seconds,
            client_config=_client_config(settings),
        )

    # ── Lifetime ──────────────────────────────────────────────────────────

    async def open(self) -> None:
        if self._client is not None:
            return
        self._client_cm = self._session.client(
            "s3",
            region_name=self._region,
            endpoint_url=self._endpoint_url,
            config=self._client_config,
        )
        self._client = await self._client_cm.__aenter__()
        logger.info("S3 client opened for bucket %s", self.bucket)

    async def close(self) -> None:
        if self._client_cm is not None:
            await self._client_cm.__aexit__(None, None, None)
            logger.info("S3 client closed for bucket %s", self.bucket)
        self._client_cm = None
        self._client = None

    async def __aenter__(self) -> ObjectStore:
        await self.open()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @property
    def client(self) -> Any:
        if self._client is None:
            raise RuntimeError("ObjectStore is not open")
        return self._client

    async def _call(self, operation: str, key: str | None, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.warning("S3 %s timed out for %s", operation, key)
            raise StorageTimeout(operation, key, self._timeout) from None
        except (BotoCoreError, ClientError) as exc:
            error = classify_error(exc, operation, key)
            if not isinstance(error, ObjectNotFound):
                logger.error("S3 %s failed for %s: %s", operation, key, exc)
            raise error from exc

    # ── Operations ────────────────────────────────────────────────────────

    async def put_object(
        self,
        key: str,
        body: bytes,
        content_type: str,
        *,
        bucket: str | None = None,
    ) -> None:
        """Whole-object write; the store gives last-write-wins per key."""
        await self._call(
            "put_object",
            key,
            self.client.put_object(
                Bucket=bucket or self.bucket,
                Key=key,
                Body=body,
                ContentType=content_type,
            ),
        )

    async def get_object(self, key: str, *, bucket: str | None = None) -> StoredObject:
        """Download the whole object. Raises ObjectNotFound for a missing key."""

        async def _fetch() -> StoredObject:
            response = await self.client.get_object(Bucket=bucket or self.bucket, Key=key)
            async with response["Body"] as stream:
                body = await stream.read()
            expected = response.get("ContentLength")
            if expected is not None and int(expected) != len(body):
                raise StorageError(
                    f"get_object returned {len(body)} of {expected} bytes", key=key,
                )
            return StoredObject(
                key=key,
                body=body,
                content_type=response.get("ContentType") or "application/octet-stream",
                last_modified=response.get("LastModified"),
            )

        return await self._call("get_object", key, _fetch())

    async def list_objects(self, prefix: str, *, bucket: str | None = None) -> list[ObjectSummary]:
        """All objects under ``prefix`` in store listing order (follows pagination)."""

        async def _collect() -> list[ObjectSummary]:
            paginator = self.client.get_paginator("list_objects_v2")
            summaries: list[ObjectSummary] = []
            async for page in paginator.paginate(Bucket=bucket or self.bucket, Prefix=prefix):
                for item in page.get("Contents", []):
                    summaries.append(
                        ObjectSummary(
                            key=item["Key"],
                            last_modified=item["LastModified"],
                            size_bytes=int(item.get("Size", 0)),
                        )
                    )
            return summaries

        return await self._call("list_objects_v2", prefix, _collect())

    async def copy_object(
        self,
        source_key: str,
        dest_bucket: str,
        *,
        source_bucket: str | None = None,
        dest_key: str | None = None,
    ) -> None:
        await self._call(
            "copy_object",
            source_key,
            self.client.copy_object(
                Bucket=dest_bucket,
                Key=dest_key or source_key,
                CopySource={"Bucket": source_bucket or self.bucket, "Key": source_key},
            ),
        )
