"""Per-redirect click counters.

Counters are soft state: the redirect record is the source of truth, and a
missing counter simply reads as zero. Values are stored as decimal strings in
the counters namespace under the redirect's composite key.

Lifecycle
=========
::
    create record  → init(key)          "0"
    resolve        → increment(key)     n → n + 1
    rename record  → move(old, new)     copy, then delete old
    delete record  → remove(key)

Key Behaviours
===============
- increment is a read-modify-write, not an atomic INCR: concurrent clicks on
  the same key can lose updates. The count is approximate telemetry.
- A non-numeric stored value reads as zero and is overwritten on the next
  increment.
- Callers decide whether a failure matters; this class lets store errors
  propagate.
"""

import logging

from shortlinks.store import KeyValueNamespace

__all__ = ["ClickCounter"]


def _parse_count(raw: str | None) -> int:
    if raw is None:
        return 0
    try:
        value = int(raw)
    except ValueError:
        return 0
    return max(value, 0)


class ClickCounter:
    def __init__(self, counters: KeyValueNamespace, logger: logging.Logger | logging.LoggerAdapter):
        self._counters = counters
        self._logger = logger

    async def init(self, key: str) -> None:
        await self._counters.put(key, "0")

    async def value(self, key: str) -> int:
        return _parse_count(await self._counters.get(key))

    async def increment(self, key: str) -> int:
        count = _parse_count(await self._counters.get(key)) + 1
        await self._counters.put(key, str(count))
        return count

    async def move(self, old_key: str, new_key: str) -> None:
        # Absent old counter leaves new_key untouched.
        raw = await self._counters.get(old_key)
        if raw is None:
            self._logger.debug(f"No click counter to move from {old_key}")
            return
        await self._counters.put(new_key, raw)
        await self._counters.delete(old_key)

    async def remove(self, key: str) -> None:
        await self._counters.delete(key)
