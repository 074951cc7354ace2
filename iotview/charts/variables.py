"""
Variable catalog for the charts tab.

Variables come from the device's sensor configs when it has any; otherwise
every distinct key in today's logs becomes a plain variable.
"""

from typing import Dict, Iterable, List, Optional

from ..api.schemas import SensorConfig
from ..models import ChartVariable
from .sensor_types import CATEGORIES, detect_type, get_sensor_type, normalize_type

ALL_CATEGORY = "all"


def variable_from_config(config: SensorConfig) -> ChartVariable:
    code = normalize_type(config.sensor_type) if config.sensor_type else detect_type(config.log_key)
    sensor_type = get_sensor_type(code)
    return ChartVariable(
        key=config.log_key,
        label=config.label or config.log_key,
        type=code,
        category=sensor_type["category"],
        unit=config.unit or "",
        alarm_enabled=config.alarm_enabled,
        min_alarm=config.min_alarm,
        max_alarm=config.max_alarm,
    )


def variable_from_key(log_key: str, unit: str = "") -> ChartVariable:
    code = detect_type(log_key)
    return ChartVariable(
        key=log_key,
        label=log_key,
        type=code,
        category=get_sensor_type(code)["category"],
        unit=unit,
    )


class VariableCatalog:
    """Available variables grouped by category."""

    def __init__(self, variables: Iterable[ChartVariable]):
        self.variables: List[ChartVariable] = list(variables)

    @classmethod
    def build(cls, sensor_configs: Optional[List[SensorConfig]], log_keys: Iterable[str] = ()) -> "VariableCatalog":
        if sensor_configs:
            return cls(variable_from_config(c) for c in sensor_configs)
        return cls(variable_from_key(k) for k in dict.fromkeys(log_keys))

    def get(self, key: str) -> Optional[ChartVariable]:
        for variable in self.variables:
            if variable.key == key:
                return variable
        return None

    def by_category(self) -> Dict[str, List[ChartVariable]]:
        grouped: Dict[str, List[ChartVariable]] = {ALL_CATEGORY: list(self.variables)}
        for variable in self.variables:
            grouped.setdefault(variable.category, []).append(variable)
        return grouped

    def counts(self) -> Dict[str, int]:
        return {category: len(items) for category, items in self.by_category().items()}

    def filter(self, category: str = ALL_CATEGORY) -> List[ChartVariable]:
        if category == ALL_CATEGORY:
            return list(self.variables)
        return self.by_category().get(category, [])

    def visible_categories(self) -> List[str]:
        """Categories with at least one variable, in display order."""
        counts = self.counts()
        return [c for c in CATEGORIES if counts.get(c)]

    def __len__(self) -> int:
        return len(self.variables)
