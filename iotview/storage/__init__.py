"""
Session-scoped storage

- session_storage.py: peewee key/value table (one per browser session)
- range_cache.py: TTL cache for historical date ranges
- view_state.py: per-device charts tab snapshots
"""

from .range_cache import CACHE_TTL_SECONDS, TimeRangeCache
from .session_storage import SessionStorage
from .view_state import PersistedChart, PersistedViewState, ViewStateStore

__all__ = [
    'CACHE_TTL_SECONDS',
    'PersistedChart',
    'PersistedViewState',
    'SessionStorage',
    'TimeRangeCache',
    'ViewStateStore',
]
