"""Materialized index partitions over the key-value store.

The store has no secondary indexes, so "all redirects" and "redirects created
by X" are kept as explicit lists. Each partition is a single JSON array value
in the indexes namespace, read and rewritten whole on every mutation.

Partitions
==========
::
    ALL              every live composite key, in creation order
    USER:<id>        composite keys whose record has createdBy == <id>

Rename Sequence
===============
::
    remove(ALL, old) → add(ALL, new) → remove(USER, old) → add(USER, new)

Removing before adding means a concurrent reader may briefly miss the key,
but never sees it twice.

Key Behaviours
===============
- add and remove test membership first, so both are idempotent and skip the
  write when there is nothing to change.
- No locking: two writers on the same partition can lose one update.
- listPage reads the whole partition, so cost grows with partition size,
  not page size.
- A partition value that does not parse reads as empty, and add/remove
  refuse to write over it. Only reconciliation rewrites such a partition.
"""

import json
import logging
import math
from dataclasses import dataclass

from shortlinks.enums import Namespace
from shortlinks.errors import BadRequestError
from shortlinks.keys import ALL_PARTITION, user_partition
from shortlinks.metrics import CORRUPTED_RECORDS_TOTAL, INDEX_WRITES_TOTAL, SIDE_EFFECT_FAILURES_TOTAL
from shortlinks.store import KeyValueNamespace

__all__ = ["IndexManager", "IndexPage"]


@dataclass
class IndexPage:
    """One page of a partition's membership."""

    partition: str
    page: int
    page_size: int
    keys: list[str]
    total_items: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_items / self.page_size)


class IndexManager:
    def __init__(self, indexes: KeyValueNamespace, logger: logging.Logger | logging.LoggerAdapter):
        self._indexes = indexes
        self._logger = logger

    async def members(self, partition: str) -> list[str]:
        return await self._load(partition) or []

    async def _load(self, partition: str) -> list[str] | None:
        """Partition members, or None when the stored value does not parse."""
        raw = await self._indexes.get(partition)
        if raw is None:
            return []
        try:
            members = json.loads(raw)
        except json.JSONDecodeError:
            members = None
        if not isinstance(members, list):
            CORRUPTED_RECORDS_TOTAL.labels(namespace=Namespace.INDEXES).inc()
            self._logger.warning(f"Index partition {partition} is corrupted, reading it as empty")
            return None
        return [str(member) for member in members]

    async def save(self, partition: str, members: list[str]) -> None:
        await self._indexes.put(partition, json.dumps(members))

    async def add_to_partition(self, partition: str, key: str) -> bool:
        """Append ``key`` unless already present. Returns True if the partition was written."""
        members = await self._load(partition)
        if members is None:
            self._refuse_write(partition, "add", key)
            return False
        if key in members:
            return False
        members.append(key)
        await self.save(partition, members)
        INDEX_WRITES_TOTAL.labels(operation="add").inc()
        self._logger.debug(f"Added {key} to index {partition}")
        return True

    async def remove_from_partition(self, partition: str, key: str) -> bool:
        """Drop every occurrence of ``key``. Returns True if the partition was written."""
        members = await self._load(partition)
        if members is None:
            self._refuse_write(partition, "remove", key)
            return False
        if key not in members:
            return False
        await self.save(partition, [member for member in members if member != key])
        INDEX_WRITES_TOTAL.labels(operation="remove").inc()
        self._logger.debug(f"Removed {key} from index {partition}")
        return True

    def _refuse_write(self, partition: str, operation: str, key: str) -> None:
        SIDE_EFFECT_FAILURES_TOTAL.labels(component="index", operation=operation).inc()
        self._logger.error(
            f"Index {operation} of {key} skipped: partition {partition} is corrupted and needs reconciliation"
        )

    async def rename(self, old_key: str, new_key: str, created_by: str) -> None:
        user_index = user_partition(created_by)
        await self.remove_from_partition(ALL_PARTITION, old_key)
        await self.add_to_partition(ALL_PARTITION, new_key)
        await self.remove_from_partition(user_index, old_key)
        await self.add_to_partition(user_index, new_key)

    async def list_page(self, partition: str, page: int, page_size: int) -> IndexPage:
        if page < 1:
            raise BadRequestError("page must be >= 1")
        if page_size < 1:
            raise BadRequestError("pageSize must be >= 1")

        members = await self.members(partition)
        start = (page - 1) * page_size
        return IndexPage(
            partition=partition,
            page=page,
            page_size=page_size,
            keys=members[start:start + page_size],
            total_items=len(members),
        )
