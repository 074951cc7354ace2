"""
iotview: client-side charting engine for IoT device dashboards

- api/: HTTP client and async data source for the device logs API
- storage/: session storage, historical range cache, view-state snapshots
- live/: today's log buffer, smart refresh protocol, refresh countdown
- charts/: chart collection, fetch policy, shared zoom, visibility gates
- session.py: BrowserSession / DeviceView / ChartsTab orchestration
"""

from .config import ViewConfig, load_config
from .errors import ApiError, IotViewError, StorageError
from .models import AxisOverride, ChartVariable, DateRange, LogRecord, ZoomRange
from .session import BrowserSession, ChartsTab, DeviceView

__version__ = "0.1.0"

__all__ = [
    'ApiError',
    'AxisOverride',
    'BrowserSession',
    'ChartVariable',
    'ChartsTab',
    'DateRange',
    'DeviceView',
    'IotViewError',
    'LogRecord',
    'StorageError',
    'ViewConfig',
    'ZoomRange',
    'load_config',
]
