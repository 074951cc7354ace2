"""
Historical range cache.

Maps (device_id, range_key) to the records fetched for that range plus the
time they were fetched. One row per entry in SessionStorage:

    iot-charts-cache:<device_id>:<range_key> -> {"records": [...], "fetched_at": <epoch>}

An entry is served only while ``now - fetched_at < ttl``; stale rows are left
in place and simply read as a miss. Anything that cannot be read back is
removed and treated as a miss, so a broken cache never breaks a chart.
"""

import json
import logging
import time
from typing import Callable, List, Optional, Union

from pydantic import ValidationError

from ..errors import StorageError
from ..models import LogRecord
from .session_storage import SessionStorage

logger = logging.getLogger("iotview.cache")

CACHE_KEY_PREFIX = "iot-charts-cache"
CACHE_TTL_SECONDS = 10 * 60


class TimeRangeCache:
    """TTL cache for historical (closed) date ranges."""

    def __init__(
        self,
        storage: SessionStorage,
        ttl: float = CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.storage = storage
        self.ttl = ttl
        self.clock = clock

    @staticmethod
    def entry_key(device_id: Union[int, str], range_key: str) -> str:
        return f"{CACHE_KEY_PREFIX}:{device_id}:{range_key}"

    def get(self, device_id: Union[int, str], range_key: str) -> Optional[List[LogRecord]]:
        """
        Return cached records, or None when absent, expired or unreadable.
        """
        key = self.entry_key(device_id, range_key)
        try:
            raw = self.storage.get_item(key)
        except StorageError as e:
            logger.warning(f"Cache read failed for {key}: {e}")
            return None

        if raw is None:
            logger.debug(f"Cache miss: {key}")
            return None

        try:
            entry = json.loads(raw)
            fetched_at = float(entry["fetched_at"])
            records = [LogRecord.model_validate(r) for r in entry["records"]]
        except (ValueError, KeyError, TypeError, ValidationError) as e:
            logger.warning(f"Corrupt cache entry {key}, clearing: {e}")
            self._discard(key)
            return None

        age = self.clock() - fetched_at
        if age >= self.ttl:
            logger.debug(f"Cache expired: {key} (age {age:.0f}s)")
            return None

        logger.debug(f"Cache hit: {key} ({len(records)} records, age {age:.0f}s)")
        return records

    def put(self, device_id: Union[int, str], range_key: str, records: List[LogRecord]) -> None:
        """Store records for a range. Empty results are never cached."""
        if not records:
            logger.debug(f"Not caching empty result for device {device_id} range {range_key}")
            return

        key = self.entry_key(device_id, range_key)
        entry = {
            "records": [r.model_dump(mode="json") for r in records],
            "fetched_at": self.clock(),
        }
        try:
            self.storage.set_item(key, json.dumps(entry))
        except StorageError as e:
            # Storage full or unavailable: the next read just misses
            logger.warning(f"Cache write failed for {key}: {e}")

    def invalidate(self, device_id: Optional[Union[int, str]] = None) -> int:
        """Drop entries for one device (or all). Returns the number removed."""
        prefix = f"{CACHE_KEY_PREFIX}:" if device_id is None else f"{CACHE_KEY_PREFIX}:{device_id}:"
        try:
            keys = self.storage.keys(prefix)
            for key in keys:
                self.storage.remove_item(key)
        except StorageError as e:
            logger.warning(f"Cache invalidation failed: {e}")
            return 0
        return len(keys)

    def _discard(self, key: str) -> None:
        try:
            self.storage.remove_item(key)
        except StorageError as e:
            logger.warning(f"Could not clear cache entry {key}: {e}")
