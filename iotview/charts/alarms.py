"""
Alarm status for display.

Two sources, fixed precedence:
1. the status reported by the backend with the reading, unless missing or
   "unknown"
2. the variable's configured min/max thresholds (pure fallback)
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..models import ChartVariable, LogRecord, coerce_numeric


class ThresholdBreach(str, Enum):
    LOW = "low"
    HIGH = "high"


class StatusSource(str, Enum):
    SERVER = "server"
    THRESHOLD = "threshold"


@dataclass(frozen=True)
class AlarmStatus:
    status: str                       # normal | warning | critical
    source: StatusSource
    breach: Optional[ThresholdBreach] = None

    @property
    def is_alarm(self) -> bool:
        return self.status != "normal"


def threshold_status(value, variable: Optional[ChartVariable]) -> Optional[ThresholdBreach]:
    """LOW/HIGH when value crosses an enabled threshold, else None."""
    if variable is None or not variable.alarm_enabled:
        return None

    number = coerce_numeric(value)
    if number is None:
        return None

    if variable.min_alarm is not None and number < variable.min_alarm:
        return ThresholdBreach.LOW
    if variable.max_alarm is not None and number > variable.max_alarm:
        return ThresholdBreach.HIGH
    return None


def resolve_status(record: LogRecord, variable: Optional[ChartVariable] = None) -> AlarmStatus:
    if record.status and record.status != "unknown":
        return AlarmStatus(record.status, StatusSource.SERVER)

    breach = threshold_status(record.value, variable)
    if breach is None:
        return AlarmStatus("normal", StatusSource.THRESHOLD)
    return AlarmStatus("critical", StatusSource.THRESHOLD, breach)
