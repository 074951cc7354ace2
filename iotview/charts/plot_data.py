"""
Chart-ready data for the drawing primitive.

build_plot_data() aligns records of several variables on one sorted time
axis: ``[timestamps, series_1, series_2, ...]`` where ``None`` marks "no
sample for this series at this timestamp" (drawn as a gap).
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pandas as pd

from ..models import LogRecord
from .collection import ChartSpec
from .sensor_types import CHART_COLORS

Y_PADDING = 0.1


@dataclass
class PlotData:
    arrays: List[List[Optional[float]]]
    time_range: Tuple[float, float]

    @property
    def timestamps(self) -> List[float]:
        return self.arrays[0]

    def series(self, index: int) -> List[Optional[float]]:
        return self.arrays[index + 1]


def records_frame(records: Sequence[LogRecord]) -> pd.DataFrame:
    """DataFrame with columns timestamp (epoch s), key, value (numeric or NaN)."""
    if not records:
        return pd.DataFrame(columns=["timestamp", "key", "value"])
    df = pd.DataFrame(
        [{"timestamp": r.epoch, "key": r.key, "value": r.value} for r in records]
    )
    df["value"] = pd.to_numeric(df["value"], errors="coerce")
    return df


def build_plot_data(records: Sequence[LogRecord], keys: Sequence[str]) -> Optional[PlotData]:
    """
    Align records into ``[timestamps, *series]`` in ``keys`` order.

    Non-numeric values are dropped; on duplicate (timestamp, key) the later
    record wins. Returns None when no numeric sample remains.
    """
    if not keys:
        return None

    df = records_frame(records)
    df = df[df["key"].isin(keys)].dropna(subset=["value"])
    if df.empty:
        return None

    wide = (df.groupby(["timestamp", "key"], sort=False)["value"].last()
              .unstack("key")
              .reindex(columns=list(keys))
              .sort_index())

    timestamps = [float(t) for t in wide.index]
    series = [
        [None if pd.isna(v) else float(v) for v in wide[key].tolist()]
        for key in keys
    ]
    return PlotData(arrays=[timestamps, *series], time_range=(timestamps[0], timestamps[-1]))


def series_options(chart: ChartSpec) -> List[Dict[str, Any]]:
    """
    Per-variable display options with the chart's axis overrides applied.

    Alarm lines show only when the variable has alarms enabled and the
    override has not hidden them.
    """
    options = []
    for idx, v in enumerate(chart.variables):
        override = chart.axis_override(v.key)
        options.append({
            "key": v.key,
            "label": v.label or v.key,
            "color": v.color or CHART_COLORS[idx % len(CHART_COLORS)],
            "unit": v.unit,
            "y_min": override.min if override.custom_range else None,
            "y_max": override.max if override.custom_range else None,
            "alarm_enabled": v.alarm_enabled and override.thresholds_visible,
            "min_alarm": v.min_alarm,
            "max_alarm": v.max_alarm,
        })
    return options


def resolve_y_range(options: Sequence[Dict[str, Any]], data_min: float, data_max: float) -> Tuple[float, float]:
    """
    Y scale for a chart: the first custom bounds found win, missing bounds
    get 10% padding around the data (a flat series pads by 0.1).
    """
    custom_min = next((o["y_min"] for o in options if o.get("y_min") is not None), None)
    custom_max = next((o["y_max"] for o in options if o.get("y_max") is not None), None)

    if custom_min is not None and custom_max is not None:
        return custom_min, custom_max

    span = (data_max - data_min) or 1
    padding = span * Y_PADDING
    return (
        custom_min if custom_min is not None else data_min - padding,
        custom_max if custom_max is not None else data_max + padding,
    )


def data_extent(plot: PlotData) -> Optional[Tuple[float, float]]:
    """Min/max over all series values, ignoring gaps."""
    values = [v for s in plot.arrays[1:] for v in s if v is not None and not math.isnan(v)]
    if not values:
        return None
    return min(values), max(values)


def chart_payload(chart: ChartSpec) -> Dict[str, Any]:
    """Everything the drawing primitive needs for one chart."""
    plot = build_plot_data(chart.data, chart.keys)
    options = series_options(chart)
    zoom = chart.zoom_range
    payload: Dict[str, Any] = {
        "id": chart.id,
        "series": options,
        "data": plot.arrays if plot else None,
        "time_range": list(plot.time_range) if plot else None,
        "zoom_range": zoom.model_dump() if zoom else None,
        "y_range": None,
        "loading": chart.loading,
    }
    extent = data_extent(plot) if plot else None
    if extent:
        payload["y_range"] = list(resolve_y_range(options, *extent))
    return payload
