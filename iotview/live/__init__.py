"""
Live (today) data

- log_buffer.py: de-duplicated record buffer for today's readings
- freshness.py: last-update token probe
- refresh.py: smart refresh protocol and RefreshState
- scheduler.py: countdown trigger for refresh cycles
"""

from .freshness import FreshnessProbe
from .log_buffer import LiveLogBuffer
from .refresh import RefreshOutcome, RefreshResult, RefreshState, SmartRefresher
from .scheduler import RefreshScheduler

__all__ = [
    'FreshnessProbe',
    'LiveLogBuffer',
    'RefreshOutcome',
    'RefreshResult',
    'RefreshScheduler',
    'RefreshState',
    'SmartRefresher',
]
