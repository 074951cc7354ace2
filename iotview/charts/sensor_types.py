"""
Sensor Types Registry

Type code -> display label, icon and grouping category.
To add a new type: add one entry to SENSOR_TYPES.
"""

import re
from typing import Dict, List, Optional, Tuple

SENSOR_TYPES: Dict[str, Dict[str, str]] = {
    # Environmental
    'TMP': {'icon': 'thermometer-half', 'label': 'Temperature', 'category': 'environmental'},
    'HUM': {'icon': 'droplet-fill', 'label': 'Humidity', 'category': 'environmental'},
    'AMB': {'icon': 'brightness-high', 'label': 'Ambient Light', 'category': 'environmental'},
    'UV': {'icon': 'sun-fill', 'label': 'UV Index', 'category': 'environmental'},
    'ATM': {'icon': 'globe', 'label': 'Atmospheric Pressure', 'category': 'environmental'},

    # Electrical
    'VLT': {'icon': 'lightning-fill', 'label': 'Voltage', 'category': 'electrical'},
    'CUR': {'icon': 'plug-fill', 'label': 'Current', 'category': 'electrical'},
    'PWR': {'icon': 'battery-charging', 'label': 'Power', 'category': 'electrical'},
    'FRQ': {'icon': 'activity', 'label': 'Frequency', 'category': 'electrical'},
    'RES': {'icon': 'circle', 'label': 'Resistance', 'category': 'electrical'},
    'ENG': {'icon': 'battery-full', 'label': 'Energy', 'category': 'electrical'},

    # Air Quality
    'CO2': {'icon': 'wind', 'label': 'CO2', 'category': 'air_quality'},
    'CO': {'icon': 'exclamation-triangle-fill', 'label': 'Carbon Monoxide', 'category': 'air_quality'},
    'O2': {'icon': 'lungs-fill', 'label': 'Oxygen', 'category': 'air_quality'},
    'CH4': {'icon': 'fire', 'label': 'Methane', 'category': 'air_quality'},
    'PM25': {'icon': 'cloud-haze-fill', 'label': 'PM 2.5', 'category': 'air_quality'},
    'PM10': {'icon': 'cloud-haze', 'label': 'PM 10', 'category': 'air_quality'},
    'VOC': {'icon': 'droplet', 'label': 'VOC', 'category': 'air_quality'},

    # Mechanical / Flow
    'PRS': {'icon': 'speedometer2', 'label': 'Pressure', 'category': 'mechanical'},
    'FLW': {'icon': 'water', 'label': 'Flow Rate', 'category': 'mechanical'},
    'SPD': {'icon': 'speedometer', 'label': 'Speed', 'category': 'mechanical'},
    'VIB': {'icon': 'phone-vibrate', 'label': 'Vibration', 'category': 'mechanical'},
    'LVL': {'icon': 'rulers', 'label': 'Level', 'category': 'mechanical'},

    # Status / Binary
    'STS': {'icon': 'circle-fill', 'label': 'Status', 'category': 'status'},
    'ALM': {'icon': 'bell-fill', 'label': 'Alarm', 'category': 'status'},
    'BAT': {'icon': 'battery-half', 'label': 'Battery', 'category': 'status'},
    'SIG': {'icon': 'wifi', 'label': 'Signal', 'category': 'status'},

    # Default / General
    'GEN': {'icon': 'bar-chart-fill', 'label': 'General', 'category': 'general'},
}

DEFAULT_TYPE = 'GEN'

# Category labels for grouping (display order)
CATEGORIES: Dict[str, Dict[str, str]] = {
    'environmental': {'label': 'Environmental', 'icon': 'tree'},
    'electrical': {'label': 'Electrical', 'icon': 'lightning'},
    'air_quality': {'label': 'Air Quality', 'icon': 'wind'},
    'mechanical': {'label': 'Mechanical', 'icon': 'gear'},
    'status': {'label': 'Status', 'icon': 'info-circle'},
    'general': {'label': 'General', 'icon': 'grid'},
}

# Series palette; red is reserved for alarm segments
CHART_COLORS = [
    '#0d6efd', '#10b981', '#f59e0b', '#8b5cf6', '#06b6d4',
    '#ec4899', '#84cc16', '#f97316', '#6366f1', '#14b8a6',
    '#a855f7', '#22c55e', '#0891b2', '#0ea5e9', '#8b5cf6',
]

_TYPE_PREFIX = re.compile(r'^([A-Z0-9]{2,4})_?', re.IGNORECASE)


def normalize_type(code: Optional[str]) -> str:
    """Known upper-case type code, or DEFAULT_TYPE."""
    upper = (code or '').upper()
    return upper if upper in SENSOR_TYPES else DEFAULT_TYPE


def get_sensor_type(code: Optional[str]) -> Dict[str, str]:
    return SENSOR_TYPES[normalize_type(code)]


def detect_type(log_key: str) -> str:
    """Guess a type code from a key prefix, e.g. ``tmp_room1`` -> ``TMP``."""
    match = _TYPE_PREFIX.match(log_key or '')
    return normalize_type(match.group(1)) if match else DEFAULT_TYPE


def sensors_by_category(category: str) -> List[Tuple[str, Dict[str, str]]]:
    return [(code, cfg) for code, cfg in SENSOR_TYPES.items() if cfg['category'] == category]


def category_info(category: str) -> Dict[str, str]:
    return CATEGORIES.get(category, {'label': category, 'icon': 'grid'})
