"""
iotview data model

- LogRecord: one immutable sensor reading, identified by its record id
- DateRange: the (from, to) day window a chart collection is showing
- ChartVariable / AxisOverride: chart configuration, persisted camelCase
- ZoomRange: visible time window shared by every chart of a collection
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .timeutils import parse_timestamp

KNOWN_STATUSES = ("normal", "warning", "critical")


class LogRecord(BaseModel):
    """A single reading as used inside the engine (wire names already mapped)."""

    model_config = ConfigDict(frozen=True)

    id: Optional[Union[int, str]] = None
    device_id: Optional[Union[int, str]] = None
    key: str = Field(..., min_length=1)
    value: Union[float, str, None] = None
    timestamp: datetime
    unit: Optional[str] = None
    status: Optional[str] = None

    @field_validator("timestamp", mode="before")
    @classmethod
    def _parse_timestamp(cls, v):
        return parse_timestamp(v)

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, v):
        if v is None or v == "":
            return None
        status = str(v).strip().lower()
        return status if status in KNOWN_STATUSES else "unknown"

    @property
    def identity(self) -> str:
        """De-duplication identity: the record id, or key@timestamp without one."""
        if self.id is not None:
            return str(self.id)
        return f"{self.key}@{self.timestamp.isoformat()}"

    @property
    def numeric_value(self) -> Optional[float]:
        return coerce_numeric(self.value)

    @property
    def epoch(self) -> float:
        return self.timestamp.timestamp()


def coerce_numeric(value) -> Optional[float]:
    """float(value) when the value is numeric-coercible, else None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    # NaN never plots
    return None if number != number else number


@dataclass(frozen=True)
class DateRange:
    """Inclusive day range. ``key`` is the cache/persistence identifier."""

    date_from: date
    date_to: date

    def __post_init__(self):
        if self.date_from > self.date_to:
            raise ValueError(f"date_from {self.date_from} is after date_to {self.date_to}")

    @classmethod
    def parse(cls, date_from: str, date_to: str) -> "DateRange":
        return cls(date.fromisoformat(date_from), date.fromisoformat(date_to))

    @classmethod
    def today_only(cls, day: date) -> "DateRange":
        return cls(day, day)

    @property
    def key(self) -> str:
        return f"{self.date_from.isoformat()}_{self.date_to.isoformat()}"

    def is_live(self, day: date) -> bool:
        """True for the still-growing today-only window."""
        return self.date_from == day and self.date_to == day

    def is_historical(self, day: date) -> bool:
        """True once every day in the range has ended (cache-eligible)."""
        return self.date_to < day


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChartVariable(_CamelModel):
    """A selectable sensor variable with its alarm thresholds."""

    model_config = ConfigDict(frozen=True)

    key: str = Field(..., min_length=1)
    label: str = ""
    color: Optional[str] = None
    unit: str = ""
    type: str = "GEN"
    category: str = "general"
    alarm_enabled: bool = False
    min_alarm: Optional[float] = None
    max_alarm: Optional[float] = None

    @model_validator(mode="before")
    @classmethod
    def _default_label(cls, data):
        if isinstance(data, dict) and not data.get("label"):
            data = {**data, "label": data.get("key")}
        return data

    @property
    def has_alarm(self) -> bool:
        return self.alarm_enabled and (self.min_alarm is not None or self.max_alarm is not None)


class AxisOverride(_CamelModel):
    """Per chart/variable y-axis and alarm-line display settings."""

    custom_range: bool = False
    min: Optional[float] = None
    max: Optional[float] = None
    show_alarm_thresholds: Optional[bool] = None

    @model_validator(mode="after")
    def _check_bounds(self):
        if self.custom_range and self.min is not None and self.max is not None and self.min >= self.max:
            raise ValueError(f"custom y range needs min < max, got {self.min} >= {self.max}")
        return self

    @property
    def thresholds_visible(self) -> bool:
        # Unset means shown
        return self.show_alarm_thresholds is not False


class ZoomRange(BaseModel):
    """Visible window in the charts' time domain (epoch seconds)."""

    model_config = ConfigDict(frozen=True)

    min: float
    max: float

    @model_validator(mode="after")
    def _check_order(self):
        if self.min >= self.max:
            raise ValueError(f"zoom range needs min < max, got [{self.min}, {self.max}]")
        return self
