"""
Chart collection for one device's charts tab.

Each chart is a set of variables drawn on a shared time axis. The
collection owns the active date range, hands out chart ids (never reused)
and keeps every chart's data in step with the range:

- range change: all charts reload concurrently; one chart failing keeps its
  previous data and does not touch the others
- results are applied only if they belong to the chart's newest request and
  the range is still active, so a slow early response never overwrites a
  later one
- a chart never exists without variables: removing the last one removes
  the chart
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional, Union

from ..errors import TRANSIENT_ERRORS
from ..models import AxisOverride, ChartVariable, DateRange, LogRecord, ZoomRange
from .loader import RangeLoader
from .zoom import ZoomCoordinator

logger = logging.getLogger("iotview.charts")


@dataclass
class ChartSpec:
    id: int
    variables: List[ChartVariable]
    zoom: ZoomCoordinator = field(repr=False)
    data: List[LogRecord] = field(default_factory=list, repr=False)
    axis_overrides: Dict[str, AxisOverride] = field(default_factory=dict)
    range_key: Optional[str] = None
    loading: bool = False
    error: Optional[str] = None
    fetch_seq: int = 0

    @property
    def keys(self) -> List[str]:
        return [v.key for v in self.variables]

    @property
    def zoom_range(self) -> Optional[ZoomRange]:
        """The collection-wide zoom window (same object for every chart)."""
        return self.zoom.range

    def variable(self, key: str) -> Optional[ChartVariable]:
        for v in self.variables:
            if v.key == key:
                return v
        return None

    def axis_override(self, key: str) -> AxisOverride:
        return self.axis_overrides.get(key) or AxisOverride()


def _unique_variables(variables: Iterable[ChartVariable]) -> List[ChartVariable]:
    seen: Dict[str, ChartVariable] = {}
    for v in variables:
        seen.setdefault(v.key, v)
    return list(seen.values())


class ChartCollection:
    """Ordered charts sharing one date range and one zoom window."""

    def __init__(
        self,
        loader: RangeLoader,
        date_range: DateRange,
        zoom: Optional[ZoomCoordinator] = None,
        chart_id_counter: int = 0,
    ):
        self.loader = loader
        self.date_range = date_range
        self.zoom = zoom or ZoomCoordinator()
        self.chart_id_counter = chart_id_counter
        self.charts: List[ChartSpec] = []
        self._pending = 0

    # ---------------- lookup ----------------

    def __iter__(self) -> Iterator[ChartSpec]:
        return iter(list(self.charts))

    def __len__(self) -> int:
        return len(self.charts)

    def __contains__(self, chart_id: int) -> bool:
        return self.get(chart_id) is not None

    def get(self, chart_id: int) -> Optional[ChartSpec]:
        for chart in self.charts:
            if chart.id == chart_id:
                return chart
        return None

    def _require(self, chart_id: int) -> ChartSpec:
        chart = self.get(chart_id)
        if chart is None:
            raise KeyError(f"no chart with id {chart_id}")
        return chart

    @property
    def loading(self) -> bool:
        """True while any chart data request is outstanding."""
        return self._pending > 0

    @property
    def is_live(self) -> bool:
        return self.loader.is_live(self.date_range)

    # ---------------- charts ----------------

    def _new_chart(self, variables: List[ChartVariable], chart_id: Optional[int] = None) -> ChartSpec:
        if chart_id is None:
            self.chart_id_counter += 1
            chart_id = self.chart_id_counter
        else:
            self.chart_id_counter = max(self.chart_id_counter, chart_id)
        chart = ChartSpec(id=chart_id, variables=variables, zoom=self.zoom)
        self.charts.append(chart)
        return chart

    def restore_chart(self, chart_id: int, variables: Iterable[ChartVariable]) -> ChartSpec:
        """Re-create a saved chart under its old id without loading data."""
        return self._new_chart(_unique_variables(variables), chart_id=chart_id)

    async def add_chart(self, variables: Iterable[ChartVariable]) -> ChartSpec:
        """
        Create a chart for the given variables and load its data.

        The chart is listed immediately (``loading`` set) so a range change
        issued meanwhile also covers it.

        Raises:
            ValueError: when no variables are given
        """
        variables = _unique_variables(variables)
        if not variables:
            raise ValueError("a chart needs at least one variable")

        chart = self._new_chart(variables)
        logger.info(f"Added chart {chart.id} with {chart.keys}")
        await self._load_chart(chart)
        return chart

    def remove_chart(self, chart_id: int) -> bool:
        chart = self.get(chart_id)
        if chart is None:
            return False
        self.charts.remove(chart)
        logger.info(f"Removed chart {chart_id}")
        return True

    async def add_variable(self, chart_id: int, variable: ChartVariable) -> bool:
        """Append a variable to a chart and reload it. False if already present."""
        chart = self._require(chart_id)
        if chart.variable(variable.key) is not None:
            return False
        chart.variables.append(variable)
        await self._load_chart(chart)
        return True

    def remove_variable(self, chart_id: int, variable_key: str) -> bool:
        """
        Remove a variable from a chart.

        Returns:
            True when this removed the chart itself (it was the last variable)
        """
        chart = self._require(chart_id)
        chart.variables = [v for v in chart.variables if v.key != variable_key]
        chart.axis_overrides.pop(variable_key, None)
        chart.data = [r for r in chart.data if r.key != variable_key]

        if not chart.variables:
            self.remove_chart(chart_id)
            return True
        return False

    # ---------------- axis settings ----------------

    def set_axis_override(self, chart_id: int, variable_key: str, override: Union[AxisOverride, dict]) -> AxisOverride:
        chart = self._require(chart_id)
        if chart.variable(variable_key) is None:
            raise KeyError(f"chart {chart_id} has no variable {variable_key}")
        if not isinstance(override, AxisOverride):
            override = AxisOverride.model_validate(override)
        chart.axis_overrides[variable_key] = override
        return override

    def axis_settings(self) -> Dict[str, AxisOverride]:
        """Flat ``"<chart_id>-<key>"`` map of every override (persisted form)."""
        return {
            f"{chart.id}-{key}": override
            for chart in self.charts
            for key, override in chart.axis_overrides.items()
        }

    # ---------------- data ----------------

    async def set_active_range(self, date_range: DateRange) -> Dict[int, bool]:
        """
        Switch the range and reload every chart concurrently.

        Returns:
            chart id -> whether fresh data was applied
        """
        self.date_range = date_range
        logger.debug(f"Active range {date_range.key}, reloading {len(self.charts)} charts")
        return await self.reload_all()

    async def reload_all(self) -> Dict[int, bool]:
        charts = list(self.charts)
        results = await asyncio.gather(*(self._load_chart(chart) for chart in charts))
        return {chart.id: ok for chart, ok in zip(charts, results)}

    def refresh_live(self) -> int:
        """Re-derive live-range charts from the buffer. Returns charts updated."""
        if not self.is_live:
            return 0
        for chart in self.charts:
            chart.fetch_seq += 1
            chart.data = self.loader.buffer.records(chart.keys)
            chart.range_key = self.date_range.key
            chart.loading = False
            chart.error = None
        return len(self.charts)

    async def _load_chart(self, chart: ChartSpec) -> bool:
        chart.fetch_seq += 1
        seq = chart.fetch_seq
        date_range = self.date_range
        chart.loading = True
        self._pending += 1

        try:
            records = await self.loader.load(date_range, chart.keys)
        except TRANSIENT_ERRORS as e:
            logger.warning(f"Chart {chart.id}: failed to load {date_range.key}: {e}")
            if seq == chart.fetch_seq:
                chart.error = str(e)
            return False
        finally:
            self._pending -= 1
            if seq == chart.fetch_seq:
                chart.loading = False

        if seq != chart.fetch_seq or date_range != self.date_range or self.get(chart.id) is not chart:
            logger.debug(f"Chart {chart.id}: discarding stale result for {date_range.key}")
            return False

        # A variable removed while the request was in flight stays removed
        keys = set(chart.keys)
        chart.data = [r for r in records if r.key in keys]
        chart.range_key = date_range.key
        chart.error = None
        return True
