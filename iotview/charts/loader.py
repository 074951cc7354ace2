"""
Where a chart's records come from for a given date range.

- today only            -> LiveLogBuffer (still growing, never cached)
- ends before today     -> TimeRangeCache, network on miss, result cached
- starts earlier, ends today -> network every time, never cached
"""

import logging
import time
from typing import Callable, List, Sequence, Union

from ..api.data_source import DeviceDataSource
from ..live.log_buffer import LiveLogBuffer
from ..models import DateRange, LogRecord
from ..storage.range_cache import TimeRangeCache
from ..timeutils import day_bounds, today

logger = logging.getLogger("iotview.charts")


class RangeLoader:
    """Fetch policy shared by every chart of one device view."""

    def __init__(
        self,
        device_id: Union[int, str],
        source: DeviceDataSource,
        cache: TimeRangeCache,
        buffer: LiveLogBuffer,
        clock: Callable[[], float] = time.time,
    ):
        self.device_id = device_id
        self.source = source
        self.cache = cache
        self.buffer = buffer
        self.clock = clock

    def is_live(self, date_range: DateRange) -> bool:
        return date_range.is_live(today(self.clock()))

    async def load(self, date_range: DateRange, keys: Sequence[str]) -> List[LogRecord]:
        """
        Records for the given variable keys in the range.

        Raises the data source's transient errors when a network fetch fails.
        """
        keys = list(dict.fromkeys(keys))
        if not keys:
            return []

        day = today(self.clock())
        if date_range.is_live(day):
            return self.buffer.records(keys)

        if not date_range.is_historical(day):
            return await self._fetch(date_range, keys)

        wanted = set(keys)
        cached = self.cache.get(self.device_id, date_range.key)
        if cached is None:
            fetched = await self._fetch(date_range, keys)
            self._store(date_range, fetched)
            return fetched

        covered = {r.key for r in cached}
        missing = [k for k in keys if k not in covered]
        hits = [r for r in cached if r.key in wanted]
        if not missing:
            return hits

        # Entry exists but was filled for other variables
        logger.debug(f"Cache entry {date_range.key} lacks {missing}, fetching them")
        fetched = await self._fetch(date_range, missing)
        self._store(date_range, fetched)
        return hits + fetched

    def _store(self, date_range: DateRange, fetched: List[LogRecord]) -> None:
        if not fetched:
            return
        # Other charts may have filled the entry while this fetch was in flight
        current = self.cache.get(self.device_id, date_range.key) or []
        merged = {r.identity: r for r in current}
        merged.update((r.identity, r) for r in fetched)
        self.cache.put(self.device_id, date_range.key, list(merged.values()))

    async def _fetch(self, date_range: DateRange, keys: List[str]) -> List[LogRecord]:
        date_from, date_to = day_bounds(date_range.date_from, date_range.date_to)
        return await self.source.fetch_logs(self.device_id, date_from, date_to, keys)
