"""
Resize worker — turns object-created notifications into derivatives.

Per record:
  1. Keys outside original-images/ are skipped and reported as success. This
     also stops the worker from re-triggering on its own output.
  2. The original is downloaded from the record's bucket.
  3. It is stretched to the configured width x height.
  4. The derivative is written to resized-images/{owner}/{filename} in the
     same bucket.

Reprocessing a key rewrites the same bytes to the same key, so at-least-once
delivery is harmless. Failures are never swallowed: each one is logged and
returned as a failed result, and the outcome carries the SQS message ids the
event source must redeliver.
"""
from __future__ import annotations

import asyncio
import json
import logging
import urllib.parse
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from app.images import keys
from app.images.constants import ImageContentType, ImagePrefix
from app.images.processor import DECODE_ERRORS, ImageProcessor
from app.images.schemas import ResizeEvent, ResizeResult
from app.s3 import StorageError

if TYPE_CHECKING:
    from app.s3 import ObjectStore

logger = logging.getLogger(__name__)

# Response bodies the event infrastructure sees
MSG_RESIZED = "Image resized successfully"
MSG_SKIPPED = "Object does not match processing criteria"
MSG_FAILED = "Error resizing image"


class ResizeOutcome(BaseModel):
    """Structured result handed back to the event infrastructure."""
    model_config = ConfigDict(populate_by_name=True)

    status_code: int = Field(serialization_alias="statusCode")
    body: str
    results: list[ResizeResult]
    batch_item_failures: list[dict[str, str]] = Field(
        default_factory=list, serialization_alias="batchItemFailures",
    )

    @property
    def failed(self) -> list[ResizeResult]:
        return [r for r in self.results if r.status == "failed"]

    @classmethod
    def from_results(cls, results: list[ResizeResult]) -> ResizeOutcome:
        failed = [r for r in results if r.status == "failed"]
        message_ids: list[str] = []
        for result in failed:
            if result.message_id and result.message_id not in message_ids:
                message_ids.append(result.message_id)

        if failed:
            status_code, body = 500, MSG_FAILED
        elif any(r.status == "resized" for r in results):
            status_code, body = 200, MSG_RESIZED
        else:
            status_code, body = 200, MSG_SKIPPED

        return cls(
            status_code=status_code,
            body=body,
            results=results,
            batch_item_failures=[{"itemIdentifier": mid} for mid in message_ids],
        )


# ── Event parsing ────────────────────────────────────────────────────────────

def is_sqs_event(event: dict) -> bool:
    return any(r.get("eventSource") == "aws:sqs" for r in event.get("Records", []))


def _parse_s3_record(record: dict, message_id: str | None = None) -> ResizeEvent:
    s3_info = record.get("s3", {})
    return ResizeEvent(
        source_bucket=s3_info.get("bucket", {}).get("name", ""),
        # S3 notifications URL-encode keys (spaces arrive as '+')
        source_key=urllib.parse.unquote_plus(s3_info.get("object", {}).get("key", "")),
        region=record.get("awsRegion", ""),
        message_id=message_id,
    )


def parse_record(record: dict) -> list[ResizeEvent]:
    """
    Expand one top-level record into resize events.

    A direct S3 record yields one event. An SQS record carries a whole S3
    notification in its body and may yield several, or none for the
    s3:TestEvent S3 sends when notifications are first configured.
    Raises ValueError for a body that is not an S3 notification.
    """
    if record.get("eventSource") != "aws:sqs":
        return [_parse_s3_record(record)]

    message_id = record.get("messageId")
    body = json.loads(record.get("body") or "{}")
    if not isinstance(body, dict):
        raise ValueError("SQS body is not a JSON object")
    if body.get("Event") == "s3:TestEvent":
        return []
    return [_parse_s3_record(r, message_id) for r in body.get("Records", [])]


# ── Processing ───────────────────────────────────────────────────────────────

def _render(image_data: bytes, width: int, height: int) -> tuple[bytes, ImageContentType]:
    processor = ImageProcessor(image_data)
    return processor.resize(width, height), processor.output_type


async def resize_object(
    store: ObjectStore,
    event: ResizeEvent,
    *,
    width: int,
    height: int,
    backup_bucket: str = "",
) -> ResizeResult:
    """Produce the derivative for one original."""
    key = event.source_key
    if not event.source_bucket or not key:
        logger.error("Event record without bucket or key: %s", event)
        return ResizeResult(
            status="failed",
            source_key=key,
            error="Missing bucket or key",
            message_id=event.message_id,
        )

    if not key.startswith(ImagePrefix.ORIGINAL.root):
        logger.info("Skipping s3://%s/%s: not an original image", event.source_bucket, key)
        return ResizeResult(status="skipped", source_key=key, message_id=event.message_id)

    resized_key = keys.resized_key_for(key)
    logger.info("Resizing s3://%s/%s -> %s", event.source_bucket, key, resized_key)

    try:
        if backup_bucket:
            await store.copy_object(key, backup_bucket, source_bucket=event.source_bucket)

        original = await store.get_object(key, bucket=event.source_bucket)

        # Pillow is CPU-bound → offload to thread
        loop = asyncio.get_running_loop()
        data, output_type = await loop.run_in_executor(
            None, _render, original.body, width, height,
        )

        await store.put_object(
            resized_key, data, output_type.mime_type, bucket=event.source_bucket,
        )
    except StorageError as exc:
        logger.exception("Resize failed for %s (storage)", key)
        return ResizeResult(
            status="failed",
            source_key=key,
            resized_key=resized_key,
            retryable=exc.retryable,
            error=str(exc),
            message_id=event.message_id,
        )
    except DECODE_ERRORS as exc:
        logger.exception("Resize failed for %s (decode)", key)
        return ResizeResult(
            status="failed",
            source_key=key,
            resized_key=resized_key,
            error=f"Could not decode image: {exc}",
            message_id=event.message_id,
        )

    logger.info("Wrote %s (%d bytes, %dx%d)", resized_key, len(data), width, height)
    return ResizeResult(
        status="resized",
        source_key=key,
        resized_key=resized_key,
        message_id=event.message_id,
    )


async def process_event(
    event: dict,
    store: ObjectStore,
    *,
    width: int,
    height: int,
    backup_bucket: str = "",
) -> ResizeOutcome:
    """Handle every record of one invocation; keys in one batch run concurrently."""
    results: list[ResizeResult] = []
    pending: list[ResizeEvent] = []

    for record in event.get("Records", []):
        try:
            pending.extend(parse_record(record))
        except (ValueError, TypeError, AttributeError) as exc:
            message_id = record.get("messageId")
            logger.error("Malformed event record %s: %s", message_id, exc)
            results.append(
                ResizeResult(
                    status="failed",
                    source_key="",
                    error=f"Malformed event record: {exc}",
                    message_id=message_id,
                )
            )

    results.extend(
        await asyncio.gather(
            *(
                resize_object(
                    store, resize_event,
                    width=width, height=height, backup_bucket=backup_bucket,
                )
                for resize_event in pending
            )
        )
    )
    return ResizeOutcome.from_results(results)
