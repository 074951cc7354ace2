"""
Multi-chart state model

- collection.py: ChartSpec / ChartCollection (variables, data, axis overrides)
- loader.py: live / cached / network fetch policy per date range
- zoom.py: zoom window shared by all charts
- visibility.py: sticky visibility gate for lazy chart construction
- plot_data.py: aligned arrays and display options for the drawing primitive
- variables.py, sensor_types.py: available variables and their categories
- alarms.py: server status / threshold fallback
"""

from .alarms import AlarmStatus, ThresholdBreach, resolve_status, threshold_status
from .collection import ChartCollection, ChartSpec
from .loader import RangeLoader
from .plot_data import PlotData, build_plot_data, chart_payload, resolve_y_range, series_options
from .variables import ALL_CATEGORY, VariableCatalog
from .visibility import GateState, Rect, VisibilityGate, intersects
from .zoom import ZoomCoordinator

__all__ = [
    'ALL_CATEGORY',
    'AlarmStatus',
    'ChartCollection',
    'ChartSpec',
    'GateState',
    'PlotData',
    'RangeLoader',
    'Rect',
    'ThresholdBreach',
    'VariableCatalog',
    'VisibilityGate',
    'ZoomCoordinator',
    'build_plot_data',
    'chart_payload',
    'intersects',
    'resolve_status',
    'resolve_y_range',
    'series_options',
    'threshold_status',
]
