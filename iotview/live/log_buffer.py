"""Today's readings for one device, merged incrementally by record id."""

import logging
from typing import Callable, Dict, Iterable, List, Optional, Union

from ..models import LogRecord

logger = logging.getLogger("iotview.live")


class LiveLogBuffer:
    """
    Append-only, de-duplicated record collection.

    Records keep arrival order. Merging a record whose identity is already
    present is a no-op, so merging the same batch twice leaves the buffer
    unchanged.
    """

    def __init__(self, device_id: Union[int, str]):
        self.device_id = device_id
        self._records: List[LogRecord] = []
        self._seen: set = set()
        self._listeners: List[Callable[[List[LogRecord]], None]] = []

    def merge(self, records: Iterable[LogRecord]) -> List[LogRecord]:
        """
        Append records not seen before.

        Returns:
            The newly added records (empty when everything was a duplicate)
        """
        added = []
        for record in records:
            identity = record.identity
            if identity in self._seen:
                continue
            self._seen.add(identity)
            self._records.append(record)
            added.append(record)

        if added:
            logger.debug(f"Device {self.device_id}: merged {len(added)} new records ({len(self._records)} total)")
            for listener in list(self._listeners):
                listener(added)
        return added

    def replace(self, records: Iterable[LogRecord]) -> None:
        """Reset to a fresh day load (initial fetch)."""
        self._records = []
        self._seen = set()
        self.merge(records)

    def records(self, keys: Optional[Iterable[str]] = None) -> List[LogRecord]:
        """Buffered records, optionally only those of the given variable keys."""
        if keys is None:
            return list(self._records)
        wanted = set(keys)
        return [r for r in self._records if r.key in wanted]

    def keys(self) -> List[str]:
        """Unique variable keys in first-seen order."""
        return list(dict.fromkeys(r.key for r in self._records))

    def latest_by_key(self) -> Dict[str, LogRecord]:
        latest: Dict[str, LogRecord] = {}
        for record in self._records:
            current = latest.get(record.key)
            if current is None or record.timestamp >= current.timestamp:
                latest[record.key] = record
        return latest

    def subscribe(self, listener: Callable[[List[LogRecord]], None]) -> Callable[[], None]:
        """Call ``listener(added)`` after each merge that added records. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, record: LogRecord) -> bool:
        return record.identity in self._seen
