"""
IoT API Schemas - Pydantic models for response validation
"""

from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from ..models import LogRecord, coerce_numeric


class WireLogRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[Union[int, str]] = None
    device_id: Optional[Union[int, str]] = None
    log_key: str = Field(..., min_length=1)
    log_value: Any = None
    logged_at: Union[str, int, float]
    unit: Optional[str] = None
    status: Optional[str] = None

    def to_record(self, device_id: Optional[Union[int, str]] = None) -> LogRecord:
        """Map wire names onto LogRecord (log_key→key, log_value→value, logged_at→timestamp)."""
        numeric = coerce_numeric(self.log_value)
        if numeric is not None:
            value = numeric
        elif self.log_value is None:
            value = None
        else:
            value = str(self.log_value)
        return LogRecord(
            id=self.id,
            device_id=self.device_id if self.device_id is not None else device_id,
            key=self.log_key,
            value=value,
            timestamp=self.logged_at,
            unit=self.unit or None,
            status=self.status,
        )


class LogsRangeResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    success: bool
    logs: List[WireLogRecord] = []
    total: Optional[int] = None
    has_more: bool = False
    error: Optional[str] = None


class LastUpdateResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    success: bool
    # Opaque freshness token, compared by equality only
    last_update: Any = None
    has_data: Optional[bool] = None
    error: Optional[str] = None


class SensorConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    log_key: str
    label: Optional[str] = None
    sensor_type: Optional[str] = None
    unit: Optional[str] = None
    alarm_enabled: bool = False
    min_alarm: Optional[float] = None
    max_alarm: Optional[float] = None


class SensorConfigsResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    success: bool
    configs: List[SensorConfig] = []
    available_keys: List[str] = []
    error: Optional[str] = None
