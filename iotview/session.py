"""
Device view orchestration.

BrowserSession   one per browser session/tab: session storage, the range
                 cache and the view-state store live here and die with it
DeviceView       one per opened device: live buffer, smart refresher and
                 its scheduler, variable catalog, optional charts tab
ChartsTab        charts tab state (range, category, selection, charts,
                 zoom, visibility gates); restored from the view-state store
                 on open, saved back on close
"""

import logging
import time
from datetime import date
from typing import Callable, Dict, Iterable, List, Optional, Union

from .api.data_source import DeviceDataSource
from .api.http_client import IotHttpClient
from .charts.collection import ChartCollection, ChartSpec
from .charts.loader import RangeLoader
from .charts.plot_data import chart_payload
from .charts.variables import ALL_CATEGORY, VariableCatalog, variable_from_key
from .charts.visibility import VisibilityGate
from .charts.zoom import ZoomCoordinator
from .config import ViewConfig
from .errors import TRANSIENT_ERRORS
from .live.log_buffer import LiveLogBuffer
from .live.refresh import RefreshResult, SmartRefresher
from .live.scheduler import RefreshScheduler
from .models import AxisOverride, ChartVariable, DateRange, ZoomRange
from .storage.range_cache import TimeRangeCache
from .storage.session_storage import SessionStorage
from .storage.view_state import PersistedChart, PersistedViewState, ViewStateStore
from .timeutils import today

logger = logging.getLogger("iotview.session")

DeviceId = Union[int, str]


class ChartsTab:
    """State behind the charts tab of one device view."""

    def __init__(
        self,
        device_id: DeviceId,
        loader: RangeLoader,
        view_states: ViewStateStore,
        catalog: Optional[VariableCatalog] = None,
        visibility_margin: int = 100,
        clock: Callable[[], float] = time.time,
    ):
        self.device_id = device_id
        self.loader = loader
        self.view_states = view_states
        self.catalog = catalog or VariableCatalog([])
        self.visibility_margin = visibility_margin
        self.clock = clock
        self.active_category = ALL_CATEGORY
        self.selected: List[ChartVariable] = []
        self.gates: Dict[int, VisibilityGate] = {}
        self.collection = ChartCollection(loader, DateRange.today_only(today(clock())))
        self._unsubscribe = loader.buffer.subscribe(self._on_live_records)
        self.closed = False

    @classmethod
    def open(cls, device_id: DeviceId, loader: RangeLoader, view_states: ViewStateStore, **kwargs) -> "ChartsTab":
        """Build the tab and apply the device's saved snapshot, if any (no I/O beyond storage)."""
        tab = cls(device_id, loader, view_states, **kwargs)
        saved = view_states.load(device_id)
        if saved is not None:
            tab.restore(saved)
        return tab

    # ---------------- snapshot ----------------

    def restore(self, saved: PersistedViewState) -> None:
        try:
            date_range = DateRange.parse(saved.date_from, saved.date_to)
        except ValueError as e:
            logger.warning(f"Ignoring saved range for device {self.device_id}: {e}")
            date_range = self.collection.date_range

        zoom = ZoomCoordinator(saved.shared_zoom_range)
        collection = ChartCollection(self.loader, date_range, zoom, saved.chart_id_counter)
        for persisted in saved.charts:
            collection.restore_chart(persisted.id, persisted.variables)

        for settings_key, override in saved.y_axis_settings.items():
            chart_id, _, variable_key = settings_key.partition("-")
            try:
                collection.set_axis_override(int(chart_id), variable_key, override)
            except (KeyError, ValueError):
                logger.debug(f"Dropping orphan axis setting {settings_key}")

        self.collection = collection
        self.active_category = saved.active_category
        self.gates = {}

    def snapshot(self) -> PersistedViewState:
        zoom = self.collection.zoom.range
        return PersistedViewState(
            date_from=self.collection.date_range.date_from.isoformat(),
            date_to=self.collection.date_range.date_to.isoformat(),
            active_category=self.active_category,
            charts=[
                PersistedChart(id=c.id, variables=list(c.variables), zoom_range=zoom)
                for c in self.collection.charts
            ],
            chart_id_counter=self.collection.chart_id_counter,
            shared_zoom_range=zoom,
            y_axis_settings=self.collection.axis_settings(),
        )

    def close(self) -> None:
        """Write the snapshot once, on the way out."""
        if self.closed:
            return
        self.closed = True
        self._unsubscribe()
        self.view_states.save(self.device_id, self.snapshot())

    async def reload(self) -> Dict[int, bool]:
        """Load data for every chart (restored charts start empty)."""
        return await self.collection.reload_all()

    # ---------------- selection ----------------

    def set_category(self, category: str) -> List[ChartVariable]:
        self.active_category = category
        return self.catalog.filter(category)

    def toggle_variable(self, variable: ChartVariable) -> bool:
        """Select or deselect a variable. Returns True when now selected."""
        for selected in self.selected:
            if selected.key == variable.key:
                self.selected.remove(selected)
                return False
        self.selected.append(variable)
        return True

    def clear_selection(self) -> None:
        self.selected = []

    async def add_selected_chart(self) -> Optional[ChartSpec]:
        if not self.selected:
            return None
        chart = await self.collection.add_chart(self.selected)
        self.selected = []
        return chart

    # ---------------- range / zoom ----------------

    @property
    def is_live(self) -> bool:
        return self.collection.is_live

    async def set_dates(self, date_from: Union[str, date], date_to: Union[str, date]) -> Dict[int, bool]:
        if isinstance(date_from, str) or isinstance(date_to, str):
            date_range = DateRange.parse(str(date_from), str(date_to))
        else:
            date_range = DateRange(date_from, date_to)
        return await self.collection.set_active_range(date_range)

    def handle_zoom(self, chart_id: int, zoom: Optional[ZoomRange]) -> None:
        """Zoom callback from any chart; applies to the whole collection."""
        logger.debug(f"Chart {chart_id} zoomed to {zoom}")
        self.collection.zoom.set_zoom(zoom)

    def reset_zoom(self) -> None:
        self.collection.zoom.reset_zoom()

    def set_axis_override(self, chart_id: int, variable_key: str, override: Union[AxisOverride, dict]) -> AxisOverride:
        return self.collection.set_axis_override(chart_id, variable_key, override)

    # ---------------- presentation ----------------

    def gate(self, chart_id: int) -> VisibilityGate:
        if chart_id not in self.gates:
            self.gates[chart_id] = VisibilityGate(self.visibility_margin)
        return self.gates[chart_id]

    def render(self) -> List[dict]:
        """Payload per chart; charts not yet scrolled into view get a placeholder."""
        for chart_id in list(self.gates):
            if chart_id not in self.collection:
                del self.gates[chart_id]

        return [
            self.gate(chart.id).render(
                lambda chart=chart: chart_payload(chart),
                lambda chart=chart: {"id": chart.id, "placeholder": True},
            )
            for chart in self.collection
        ]

    def _on_live_records(self, added) -> None:
        self.collection.refresh_live()


class DeviceView:
    """One opened device: live data, refresh cycle and charts."""

    def __init__(
        self,
        device_id: DeviceId,
        source: DeviceDataSource,
        cache: TimeRangeCache,
        view_states: ViewStateStore,
        refresh_interval: int = 10,
        visibility_margin: int = 100,
        clock: Callable[[], float] = time.time,
    ):
        self.device_id = device_id
        self.source = source
        self.view_states = view_states
        self.visibility_margin = visibility_margin
        self.clock = clock
        self.buffer = LiveLogBuffer(device_id)
        self.refresher = SmartRefresher(device_id, source, self.buffer, clock=clock)
        self.scheduler = RefreshScheduler(self.refresh, interval=refresh_interval)
        self.loader = RangeLoader(device_id, source, cache, self.buffer, clock=clock)
        self.catalog = VariableCatalog([])
        self.charts: Optional[ChartsTab] = None

    async def open(self) -> RefreshResult:
        """Initial load: today's logs, freshness token and sensor configs."""
        result = await self.refresher.initialize()

        configs = None
        try:
            configs = (await self.source.sensor_configs(self.device_id)).configs
        except TRANSIENT_ERRORS as e:
            logger.warning(f"Device {self.device_id}: sensor configs unavailable: {e}")
        self.catalog = VariableCatalog.build(configs, self.buffer.keys())
        if self.charts is not None:
            self.charts.catalog = self.catalog

        logger.info(f"Device {self.device_id}: view opened ({result.outcome.value}, {len(self.catalog)} variables)")
        return result

    async def refresh(self) -> RefreshResult:
        """One smart refresh cycle; live charts follow through the buffer subscription."""
        return await self.refresher.refresh()

    def start(self):
        return self.scheduler.start()

    def open_charts(self) -> ChartsTab:
        if self.charts is None:
            self.charts = ChartsTab.open(
                self.device_id,
                self.loader,
                self.view_states,
                catalog=self.catalog,
                visibility_margin=self.visibility_margin,
                clock=self.clock,
            )
        return self.charts

    def close_charts(self) -> None:
        if self.charts is not None:
            self.charts.close()
            self.charts = None

    def close(self) -> None:
        self.scheduler.stop()
        self.close_charts()
        self.refresher.discard()
        logger.info(f"Device {self.device_id}: view closed")


class BrowserSession:
    """Resources scoped to one browser session/tab."""

    def __init__(
        self,
        config: Optional[ViewConfig] = None,
        source: Optional[DeviceDataSource] = None,
        storage: Optional[SessionStorage] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config or ViewConfig()
        self.clock = clock
        self.storage = storage or SessionStorage(self.config.storage_path)
        self.cache = TimeRangeCache(self.storage, ttl=self.config.cache_ttl, clock=clock)
        self.view_states = ViewStateStore(self.storage, clock=clock)
        self.source = source or DeviceDataSource(
            IotHttpClient(
                self.config.api_base,
                token=self.config.api_token,
                timeout=self.config.timeout,
                verify_tls=self.config.verify_tls,
            ),
            page_size=self.config.page_size,
        )
        self.views: Dict[str, DeviceView] = {}

    def device_view(self, device_id: DeviceId, refresh_interval: Optional[int] = None) -> DeviceView:
        view = DeviceView(
            device_id,
            self.source,
            self.cache,
            self.view_states,
            refresh_interval=refresh_interval or self.config.refresh_interval,
            visibility_margin=self.config.visibility_margin,
            clock=self.clock,
        )
        self.views[str(device_id)] = view
        return view

    def close_view(self, device_id: DeviceId) -> None:
        view = self.views.pop(str(device_id), None)
        if view is not None:
            view.close()

    def close(self) -> None:
        """Session end: close every view (saving snapshots), then drop storage."""
        for device_id in list(self.views):
            self.close_view(device_id)
        self.storage.close()


def variables_for_keys(catalog: VariableCatalog, keys: Iterable[str]) -> List[ChartVariable]:
    """Catalog entries for keys, creating plain variables for unknown keys."""
    return [catalog.get(k) or variable_from_key(k) for k in keys]
