"""
IoT API access

- http_client.py: blocking urllib JSON client
- schemas.py: pydantic response models and wire → LogRecord mapping
- data_source.py: async facade used by the engine
"""

from .data_source import DeviceDataSource
from .http_client import IotHttpClient
from .schemas import LastUpdateResponse, LogsRangeResponse, SensorConfig, SensorConfigsResponse, WireLogRecord

__all__ = [
    'DeviceDataSource',
    'IotHttpClient',
    'LastUpdateResponse',
    'LogsRangeResponse',
    'SensorConfig',
    'SensorConfigsResponse',
    'WireLogRecord',
]
