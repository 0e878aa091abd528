"""
cache.py — Expense list cache
Entries are explicit CacheRecord values stamped by an injected clock, so the
owner of the clock decides staleness. Nothing is kept at module level.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable

DEFAULT_TTL_SECONDS = 30.0


@dataclass(frozen=True)
class CacheRecord:
    timestamp: float
    key: str
    value: Any


class ExpiringCache:
    """In-memory cache with a per-instance TTL and clock."""

    def __init__(self, ttl_seconds: float = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._records: dict[str, CacheRecord] = {}

    def is_fresh(self, record: CacheRecord) -> bool:
        return self._clock() - record.timestamp < self.ttl_seconds

    def record(self, key: str) -> CacheRecord | None:
        """Return the live record for key, evicting it if it has expired."""
        record = self._records.get(key)
        if record is None:
            return None
        if not self.is_fresh(record):
            del self._records[key]
            return None
        return record

    def get(self, key: str) -> Any | None:
        record = self.record(key)
        return record.value if record else None

    def put(self, key: str, value: Any) -> CacheRecord:
        record = CacheRecord(timestamp=self._clock(), key=key, value=value)
        self._records[key] = record
        return record

    def invalidate(self, key: str | None = None) -> None:
        if key is None:
            self._records.clear()
        else:
            self._records.pop(key, None)

    def __len__(self) -> int:
        return len(self._records)
