"""Pytest configuration and shared fixtures"""
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, Mock

import pytest

from iotview.api.schemas import SensorConfigsResponse
from iotview.models import LogRecord
from iotview.storage.session_storage import SessionStorage

# 2024-03-15 12:00:00 UTC; "today" in every test unless a test moves the clock
NOW = datetime(2024, 3, 15, 12, 0, 0, tzinfo=timezone.utc).timestamp()
DEVICE_ID = 7


class FakeClock:
    """Callable epoch-seconds clock that only moves when told to."""

    def __init__(self, now: float = NOW):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage():
    """In-memory session storage, dropped after the test"""
    session_storage = SessionStorage(":memory:")
    yield session_storage
    session_storage.close()


@pytest.fixture
def make_record():
    """Factory for LogRecords; ``minutes`` is the offset from NOW"""
    def _make(key="TMP_1", value=21.5, minutes=0, record_id=None, status=None, device_id=DEVICE_ID):
        moment = datetime.fromtimestamp(NOW, tz=timezone.utc) + timedelta(minutes=minutes)
        return LogRecord(
            id=record_id,
            device_id=device_id,
            key=key,
            value=value,
            timestamp=moment,
            status=status,
        )
    return _make


@pytest.fixture
def source():
    """DeviceDataSource stand-in with async endpoints"""
    data_source = Mock()
    data_source.fetch_logs = AsyncMock(return_value=[])
    data_source.last_update = AsyncMock(return_value="T0")
    data_source.sensor_configs = AsyncMock(return_value=SensorConfigsResponse(success=True))
    return data_source
