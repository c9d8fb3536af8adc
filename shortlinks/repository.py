"""Redirect record repository - the admin side of the service.

The records namespace is the source of truth. Every admin operation writes
the record first and only then reconciles the derived state (index
partitions and click counters). Derived writes are best effort: a failure is
logged and counted, never raised. Drift left behind this way is repaired
by ``python -m shortlinks.reconcile``.

Flow Diagram: Admin Operations
===============================
::
    create(payload)                 update(key, patch)
    ┌──────────────────┐            ┌──────────────────┐
    │ key free?  ──409 │            │ load ────────404 │
    │ put record       │            │ same key?        │
    │ counter := 0  *  │            │  ├─ yes: put     │
    │ add ALL       *  │            │  └─ no: rename   │
    │ add USER:<by> *  │            │     new free? 409│
    └──────────────────┘            │     put new      │
                                    │     delete old   │
    delete(key)                     │     move counter*│
    ┌──────────────────┐            │     rename index*│
    │ load ────────404 │            └──────────────────┘
    │ delete record    │
    │ delete counter * │            * best effort
    │ remove ALL     * │
    │ remove USER    * │
    └──────────────────┘

Key Behaviours
===============
- Input is validated by the pydantic schemas before any store call.
- A stored value that does not parse raises CorruptedRecordError; list pages
  report such members as null instead.
- No locking: concurrent edits of one key are last-write-wins.
"""

import asyncio
import datetime
import logging
from collections.abc import Awaitable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from pydantic import ValidationError
from redis.exceptions import RedisError

from shortlinks.click_counter import ClickCounter
from shortlinks.enums import AdminOperation, Namespace, RequestStatus
from shortlinks.errors import (
    BadRequestError,
    ConflictError,
    CorruptedRecordError,
    NotFoundError,
    StorageError,
)
from shortlinks.index_manager import IndexManager, IndexPage
from shortlinks.keys import ALL_PARTITION, make_key, user_partition
from shortlinks.metrics import ADMIN_OPERATIONS_TOTAL, CORRUPTED_RECORDS_TOTAL, SIDE_EFFECT_FAILURES_TOTAL
from shortlinks.schemas import RedirectCreate, RedirectRecord, RedirectUpdate
from shortlinks.store import KeyValueNamespace, namespaces_for

if TYPE_CHECKING:
    from shortlinks.dependencies import RequestContext

__all__ = ["RedirectRepository", "UpdateResult", "PageResult"]


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


@dataclass
class UpdateResult:
    record: RedirectRecord
    old_key: str

    @property
    def new_key(self) -> str:
        return self.record.key

    @property
    def renamed(self) -> bool:
        return self.old_key != self.new_key


@dataclass
class PageResult:
    index_page: IndexPage
    records: list[tuple[str, RedirectRecord | None]]


class RedirectRepository:
    """Create, read, update and delete redirect records and keep their indexes in step.

    Example:
        >>> repository = RedirectRepository.from_context(ctx)
        >>> record = await repository.create(RedirectCreate(group="ab", slug="home", ...))
        >>> record.key
        'ab/home'
    """

    def __init__(
        self,
        records: KeyValueNamespace,
        counters: ClickCounter,
        indexes: IndexManager,
        logger: logging.Logger | logging.LoggerAdapter,
    ):
        self._records = records
        self.counters = counters
        self.indexes = indexes
        self._logger = logger

    @classmethod
    def from_context(cls, ctx: "RequestContext") -> "RedirectRepository":
        namespaces = namespaces_for(ctx.cache_writer)
        return cls(
            records=namespaces[Namespace.RECORDS],
            counters=ClickCounter(namespaces[Namespace.COUNTERS], ctx.logger),
            indexes=IndexManager(namespaces[Namespace.INDEXES], ctx.logger),
            logger=ctx.logger,
        )

    # ========================================================================
    # READS
    # ========================================================================

    async def load(self, key: str) -> RedirectRecord | None:
        """Return the stored record, None if absent.

        Raises:
            CorruptedRecordError: the stored value is not a valid record.
            StorageError: the store call failed.
        """
        raw = await self._primary(self._records.get(key), f"read {key}")
        if raw is None:
            return None
        try:
            return RedirectRecord.model_validate_json(raw)
        except ValidationError as exc:
            CORRUPTED_RECORDS_TOTAL.labels(namespace=Namespace.RECORDS).inc()
            self._logger.warning(f"Corrupted redirect record at {key}: {exc.error_count()} validation errors")
            raise CorruptedRecordError(key) from exc

    async def get(self, key: str) -> RedirectRecord:
        record = await self.load(key)
        if record is None:
            raise NotFoundError()
        return record

    async def exists(self, key: str) -> bool:
        return await self._primary(self._records.get(key), f"read {key}") is not None

    async def clicks(self, key: str) -> int:
        try:
            return await self.counters.value(key)
        except RedisError as exc:
            self._side_effect_failed("counter", "read", key, exc)
            return 0

    async def list_page(self, partition: str, page: int, page_size: int) -> PageResult:
        index_page = await self._primary(self.indexes.list_page(partition, page, page_size), f"read index {partition}")
        records = await asyncio.gather(*(self._load_for_listing(key) for key in index_page.keys))
        return PageResult(index_page=index_page, records=list(zip(index_page.keys, records)))

    async def _load_for_listing(self, key: str) -> RedirectRecord | None:
        try:
            record = await self.load(key)
        except CorruptedRecordError:
            return None
        if record is None:
            self._logger.warning(f"Index lists {key} but no record exists")
        return record

    # ========================================================================
    # MUTATIONS
    # ========================================================================

    async def create(self, payload: RedirectCreate) -> RedirectRecord:
        key = payload.key
        if await self.exists(key):
            self._count(AdminOperation.CREATE, RequestStatus.CONFLICT)
            self._logger.warning(f"Create rejected, key already taken: {key}")
            raise ConflictError("Slug already taken")

        now = _utcnow()
        record = RedirectRecord(
            group=payload.group,
            slug=payload.slug,
            target=payload.target,
            created_by=payload.created_by,
            created_at=now,
            updated_at=now,
            title=payload.title,
            notes=payload.notes,
        )
        await self._put(record)

        await self._best_effort("counter", "init", key, self.counters.init(key))
        await self._best_effort("index", "add", key, self.indexes.add_to_partition(ALL_PARTITION, key))
        await self._best_effort(
            "index", "add", key, self.indexes.add_to_partition(user_partition(record.created_by), key)
        )

        self._count(AdminOperation.CREATE, RequestStatus.SUCCESS)
        self._logger.info(f"Redirect created: {key} -> {record.target}", extra={"created_by": record.created_by})
        return record

    async def update(self, key: str, patch: RedirectUpdate) -> UpdateResult:
        changes = patch.changes()
        if not changes:
            self._count(AdminOperation.UPDATE, RequestStatus.VALIDATION_ERROR)
            raise BadRequestError("Nothing to update")

        current = await self.get(key)
        new_group = changes.get("group", current.group)
        new_slug = changes.get("slug", current.slug)
        new_key = make_key(new_group, new_slug)

        updated = current.model_copy(update={**changes, "updated_at": _utcnow()})

        if new_key == key:
            await self._put(updated)
            self._count(AdminOperation.UPDATE, RequestStatus.SUCCESS)
            self._logger.info(f"Redirect updated: {key}", extra={"fields": sorted(changes)})
            return UpdateResult(record=updated, old_key=key)

        return await self._rename(current, updated)

    async def _rename(self, current: RedirectRecord, updated: RedirectRecord) -> UpdateResult:
        old_key, new_key = current.key, updated.key
        if await self.exists(new_key):
            self._count(AdminOperation.RENAME, RequestStatus.CONFLICT)
            self._logger.warning(f"Rename rejected, {new_key} already exists")
            raise ConflictError("New slug already exists")

        await self._put(updated)
        await self._primary(self._records.delete(old_key), f"delete {old_key}")

        await self._best_effort("counter", "move", old_key, self.counters.move(old_key, new_key))
        await self._best_effort(
            "index", "rename", old_key, self.indexes.rename(old_key, new_key, current.created_by)
        )

        self._count(AdminOperation.RENAME, RequestStatus.SUCCESS)
        self._logger.info(f"Redirect renamed: {old_key} -> {new_key}")
        return UpdateResult(record=updated, old_key=old_key)

    async def delete(self, key: str) -> RedirectRecord:
        try:
            record = await self.get(key)
        except NotFoundError:
            self._count(AdminOperation.DELETE, RequestStatus.NOT_FOUND)
            raise

        await self._primary(self._records.delete(key), f"delete {key}")

        await self._best_effort("counter", "remove", key, self.counters.remove(key))
        await self._best_effort("index", "remove", key, self.indexes.remove_from_partition(ALL_PARTITION, key))
        await self._best_effort(
            "index", "remove", key, self.indexes.remove_from_partition(user_partition(record.created_by), key)
        )

        self._count(AdminOperation.DELETE, RequestStatus.SUCCESS)
        self._logger.info(f"Redirect deleted: {key}")
        return record

    # ========================================================================
    # PRIVATE HELPERS
    # ========================================================================

    async def _put(self, record: RedirectRecord) -> None:
        await self._primary(
            self._records.put(record.key, record.model_dump_json(by_alias=True)),
            f"write {record.key}",
        )

    async def _primary(self, call: Awaitable, description: str):
        """Await a store call whose failure must fail the whole operation."""
        try:
            return await call
        except RedisError as exc:
            self._logger.error(f"Store call failed ({description}): {exc}")
            raise StorageError() from exc

    async def _best_effort(self, component: str, operation: str, key: str, call: Awaitable) -> None:
        try:
            await call
        except RedisError as exc:
            self._side_effect_failed(component, operation, key, exc)

    def _side_effect_failed(self, component: str, operation: str, key: str, exc: Exception) -> None:
        SIDE_EFFECT_FAILURES_TOTAL.labels(component=component, operation=operation).inc()
        self._logger.error(
            f"Best-effort {component} {operation} failed for {key}: {exc}",
            extra={"component": component, "operation": operation, "key": key},
        )

    @staticmethod
    def _count(operation: AdminOperation, status: RequestStatus) -> None:
        ADMIN_OPERATIONS_TOTAL.labels(operation=operation, status=status).inc()
