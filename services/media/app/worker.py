"""
Resize worker — AWS Lambda entry point.

Runs as a SEPARATE process from the FastAPI API server. Invoked by S3
object-created notifications on the images bucket, either directly or
through an SQS queue with ReportBatchItemFailures enabled.

Deploy:  handler = app.worker.handler

Retry contract:
  direct S3 invoke → a retryable failure makes the handler raise ResizeFailed,
                     so Lambda's async retry policy redelivers the event.
                     Permanent failures (deleted original, undecodable image,
                     malformed record) are logged and returned instead.
  SQS              → the handler returns; failed message ids are listed in
                     batchItemFailures and only those messages are redelivered
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any

from app.config import Settings
from app.images.resize import ResizeOutcome, is_sqs_event, process_event
from app.s3 import ObjectStore

logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(name)s: %(message)s")
logger = logging.getLogger("media.worker")

# Built once per Lambda container, reused by every warm invocation
_settings: Settings | None = None
_store: ObjectStore | None = None


class ResizeFailed(RuntimeError):
    """Raised so the invoking event infrastructure retries the event."""

    def __init__(self, outcome: ResizeOutcome) -> None:
        self.outcome = outcome
        failed = outcome.failed
        keys = ", ".join(r.source_key or "<malformed>" for r in failed)
        super().__init__(f"{len(failed)} of {len(outcome.results)} records failed: {keys}")


def _get_runtime() -> tuple[Settings, ObjectStore]:
    global _settings, _store
    if _settings is None or _store is None:
        _settings = Settings()
        _store = ObjectStore.from_settings(_settings)
        logger.info(
            "Worker started — target %dx%d", _settings.resize_width, _settings.resize_height,
        )
    return _settings, _store


async def _run(event: dict[str, Any]) -> ResizeOutcome:
    settings, store = _get_runtime()
    # Each invocation runs on its own event loop, so the client is opened here
    async with store:
        return await process_event(
            event,
            store,
            width=settings.resize_width,
            height=settings.resize_height,
            backup_bucket=settings.resize_backup_bucket,
        )


def handler(event: dict[str, Any], context: object) -> dict[str, Any]:
    """Lambda entry point — resizes newly created originals."""
    outcome = asyncio.run(_run(event))
    logger.info(
        "Processed %d records: %s", len(outcome.results), outcome.body,
    )
    if is_sqs_event(event):
        return outcome.model_dump(mode="json", by_alias=True)

    if any(result.retryable for result in outcome.failed):
        raise ResizeFailed(outcome)
    for result in outcome.failed:
        logger.error("Not retrying %s: %s", result.source_key or "<malformed>", result.error)
    return outcome.model_dump(mode="json", by_alias=True)
