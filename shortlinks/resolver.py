"""Public redirect resolution.

Flow Diagram: GET /{group}/{slug}
==================================
::
    ┌─────────────┐
    │ validate    │──── malformed ──▶ 400
    │ segments    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ read record │──── absent ─────▶ 404
    │ (reader)    │──── unparseable ▶ 500
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ spawn click │  detached task, never awaited here
    │ increment   │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ 302 to      │
    │ target      │
    └─────────────┘

Key Behaviours
===============
- Resolution never reads or writes index partitions.
- The click increment runs as a separate asyncio task; its failure is logged
  and cannot change the response.
- In-flight increments are held in a module-level set.
  drain_pending_increments() awaits them and is called on shutdown.
"""

import asyncio
import logging
import time
from typing import TYPE_CHECKING

from pydantic import ValidationError
from redis.exceptions import RedisError

from shortlinks.click_counter import ClickCounter
from shortlinks.enums import Namespace, RequestStatus
from shortlinks.errors import BadRequestError, CorruptedRecordError, NotFoundError, StorageError
from shortlinks.keys import is_valid_path_segment, make_key
from shortlinks.metrics import (
    CORRUPTED_RECORDS_TOTAL,
    REDIRECT_RESOLUTION_DURATION,
    REDIRECT_RESOLUTIONS_TOTAL,
    SIDE_EFFECT_FAILURES_TOTAL,
)
from shortlinks.schemas import RedirectRecord
from shortlinks.store import KeyValueNamespace, namespaces_for

if TYPE_CHECKING:
    from shortlinks.dependencies import RequestContext

__all__ = ["RedirectResolver", "drain_pending_increments"]

_pending_increments: set[asyncio.Task] = set()


async def drain_pending_increments() -> None:
    """Wait for every click increment spawned so far."""
    while _pending_increments:
        await asyncio.gather(*list(_pending_increments), return_exceptions=True)


class RedirectResolver:
    def __init__(
        self,
        records: KeyValueNamespace,
        counter: ClickCounter,
        logger: logging.Logger | logging.LoggerAdapter,
    ):
        self._records = records
        self._counter = counter
        self._logger = logger

    @classmethod
    def from_context(cls, ctx: "RequestContext") -> "RedirectResolver":
        reader = namespaces_for(ctx.cache_reader)
        writer = namespaces_for(ctx.cache_writer)
        return cls(
            records=reader[Namespace.RECORDS],
            counter=ClickCounter(writer[Namespace.COUNTERS], ctx.logger),
            logger=ctx.logger,
        )

    async def resolve(self, group: str, slug: str) -> str:
        """Return the target URL for ``group/slug`` and count the click.

        Raises:
            BadRequestError: a segment is not a usable path segment.
            NotFoundError: no record at the key.
            CorruptedRecordError: the stored record does not parse.
            StorageError: the record read failed.
        """
        start_time = time.perf_counter()
        if not (is_valid_path_segment(group) and is_valid_path_segment(slug)):
            REDIRECT_RESOLUTIONS_TOTAL.labels(status=RequestStatus.VALIDATION_ERROR).inc()
            raise BadRequestError("Invalid redirect path")

        key = make_key(group, slug)
        try:
            raw = await self._records.get(key)
        except RedisError as exc:
            REDIRECT_RESOLUTIONS_TOTAL.labels(status=RequestStatus.ERROR).inc()
            self._logger.error(f"Redirect lookup failed for {key}: {exc}")
            raise StorageError() from exc

        if raw is None:
            REDIRECT_RESOLUTIONS_TOTAL.labels(status=RequestStatus.NOT_FOUND).inc()
            raise NotFoundError("Redirect not found")

        try:
            record = RedirectRecord.model_validate_json(raw)
        except ValidationError as exc:
            REDIRECT_RESOLUTIONS_TOTAL.labels(status=RequestStatus.CORRUPTED).inc()
            CORRUPTED_RECORDS_TOTAL.labels(namespace=Namespace.RECORDS).inc()
            self._logger.error(f"Redirect data corrupted for {key}")
            raise CorruptedRecordError(key) from exc

        self._spawn_increment(key)

        REDIRECT_RESOLUTION_DURATION.observe(time.perf_counter() - start_time)
        REDIRECT_RESOLUTIONS_TOTAL.labels(status=RequestStatus.SUCCESS).inc()
        return record.target

    def _spawn_increment(self, key: str) -> None:
        task = asyncio.create_task(self._increment(key))
        _pending_increments.add(task)
        task.add_done_callback(_pending_increments.discard)

    async def _increment(self, key: str) -> None:
        try:
            count = await self._counter.increment(key)
            self._logger.debug(f"Click counted for {key}: {count}")
        except RedisError as exc:
            SIDE_EFFECT_FAILURES_TOTAL.labels(component="counter", operation="increment").inc()
            self._logger.error(f"Failed to increment clicks for {key}: {exc}")
