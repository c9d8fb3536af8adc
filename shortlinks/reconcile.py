"""Offline reconciliation of index partitions against redirect records.

Admin operations reconcile indexes best effort, so a failed index write can
leave a dangling key (record gone, still listed) or a missing key (record
live, not listed). This command rebuilds every partition from the records
namespace.

Usage::

    python -m shortlinks.reconcile            # rewrite drifted partitions
    python -m shortlinks.reconcile --dry-run  # report only

Run it while admin traffic is quiet: it uses the same unlocked
read-modify-write as the API and can lose a concurrent admin's index update.

Per partition:
    - existing order is kept
    - dangling and duplicate keys are dropped
    - missing keys are appended in scan order
    - corrupted records stay in ALL and keep any USER:<id> membership they
      already have, since their createdBy cannot be read
"""

import argparse
import asyncio
import logging
import sys
from dataclasses import dataclass, field

import redis.asyncio as redis
from pydantic import ValidationError

from shortlinks.config import get_settings
from shortlinks.enums import Namespace
from shortlinks.index_manager import IndexManager
from shortlinks.keys import ALL_PARTITION, USER_PARTITION_PREFIX, user_partition
from shortlinks.schemas import RedirectRecord
from shortlinks.store import namespaces_for

__all__ = ["ReconcileReport", "reconcile", "main"]

logger = logging.getLogger("shortlinks.reconcile")


@dataclass
class ReconcileReport:
    records_scanned: int = 0
    corrupted_records: list[str] = field(default_factory=list)
    dangling_removed: int = 0
    duplicates_removed: int = 0
    missing_added: int = 0
    partitions_rewritten: list[str] = field(default_factory=list)

    @property
    def clean(self) -> bool:
        return not (self.dangling_removed or self.duplicates_removed or self.missing_added)


def _reconciled(current: list[str], expected: list[str], report: ReconcileReport) -> list[str]:
    expected_set = set(expected)
    seen: set[str] = set()
    result: list[str] = []
    for key in current:
        if key not in expected_set:
            report.dangling_removed += 1
        elif key in seen:
            report.duplicates_removed += 1
        else:
            seen.add(key)
            result.append(key)
    for key in expected:
        if key not in seen:
            seen.add(key)
            result.append(key)
            report.missing_added += 1
    return result


async def reconcile(cache: redis.Redis, dry_run: bool = False, scan_count: int = 500) -> ReconcileReport:
    namespaces = namespaces_for(cache)
    records = namespaces[Namespace.RECORDS]
    indexes = IndexManager(namespaces[Namespace.INDEXES], logger)
    report = ReconcileReport()

    expected: dict[str, list[str]] = {ALL_PARTITION: []}
    corrupted: set[str] = set()
    scanned: set[str] = set()
    async for key in records.scan_keys(count=scan_count):
        # SCAN may return a key more than once.
        if key in scanned:
            continue
        scanned.add(key)
        report.records_scanned += 1
        raw = await records.get(key)
        if raw is None:
            continue
        try:
            record = RedirectRecord.model_validate_json(raw)
        except ValidationError:
            logger.warning(f"Corrupted record {key} kept in its partitions")
            report.corrupted_records.append(key)
            corrupted.add(key)
            expected[ALL_PARTITION].append(key)
            continue
        expected[ALL_PARTITION].append(key)
        expected.setdefault(user_partition(record.created_by), []).append(key)

    async for partition in namespaces[Namespace.INDEXES].scan_keys(count=scan_count):
        if partition.startswith(USER_PARTITION_PREFIX):
            expected.setdefault(partition, [])

    for partition, keys in sorted(expected.items()):
        current = await indexes.members(partition)
        if partition != ALL_PARTITION:
            keys = keys + [key for key in current if key in corrupted and key not in keys]
        reconciled = _reconciled(current, keys, report)
        if reconciled == current:
            continue
        report.partitions_rewritten.append(partition)
        logger.info(f"Partition {partition}: {len(current)} -> {len(reconciled)} keys")
        if not dry_run:
            await indexes.save(partition, reconciled)

    return report


async def _run(dry_run: bool) -> ReconcileReport:
    settings = get_settings()
    cache = redis.from_url(settings.REDIS_URL, encoding="utf-8", decode_responses=True)
    try:
        return await reconcile(cache, dry_run=dry_run, scan_count=settings.RECONCILE_SCAN_COUNT)
    finally:
        await cache.aclose()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Rebuild redirect index partitions from records")
    parser.add_argument("--dry-run", action="store_true", help="Report drift without writing")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    report = asyncio.run(_run(args.dry_run))
    logger.info(
        f"Scanned {report.records_scanned} records; removed {report.dangling_removed} dangling and "
        f"{report.duplicates_removed} duplicate keys; added {report.missing_added} missing keys; "
        f"{len(report.corrupted_records)} corrupted records left listed"
    )
    if report.partitions_rewritten:
        verb = "Would rewrite" if args.dry_run else "Rewrote"
        logger.info(f"{verb}: {', '.join(report.partitions_rewritten)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
