"""
Per-device view state snapshots.

The charts tab writes a snapshot when it closes and reads it back when the
same device is opened again in the session, so the first render already
shows the previous charts, range, zoom and axis settings. All devices share
one storage key:

    iot-charts-state -> {"<device_id>": {dateFrom, dateTo, activeCategory,
                         charts, chartIdCounter, sharedZoomRange,
                         yAxisSettings, timestamp}, ...}
"""

import json
import logging
import time
from typing import Callable, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from ..errors import StorageError
from ..models import AxisOverride, ChartVariable, ZoomRange
from .session_storage import SessionStorage

logger = logging.getLogger("iotview.view_state")

STATE_KEY = "iot-charts-state"


class _Snapshot(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PersistedChart(_Snapshot):
    id: int
    variables: List[ChartVariable] = Field(..., min_length=1)
    zoom_range: Optional[ZoomRange] = None


class PersistedViewState(_Snapshot):
    """Everything needed to rebuild the charts tab, minus chart data."""

    date_from: str
    date_to: str
    active_category: str = "all"
    charts: List[PersistedChart] = []
    chart_id_counter: int = 0
    shared_zoom_range: Optional[ZoomRange] = None
    # "<chart_id>-<variable_key>" -> settings
    y_axis_settings: Dict[str, AxisOverride] = {}
    timestamp: Optional[float] = None

    def to_storage(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class ViewStateStore:
    """save/load of PersistedViewState keyed by device id."""

    def __init__(self, storage: SessionStorage, clock: Callable[[], float] = time.time):
        self.storage = storage
        self.clock = clock

    def _read_all(self) -> Dict[str, dict]:
        try:
            raw = self.storage.get_item(STATE_KEY)
        except StorageError as e:
            logger.warning(f"View state read failed: {e}")
            return {}
        if raw is None:
            return {}

        try:
            data = json.loads(raw)
        except ValueError as e:
            logger.warning(f"Corrupt view state storage, clearing: {e}")
            self._clear()
            return {}
        if not isinstance(data, dict):
            logger.warning("Corrupt view state storage (not an object), clearing")
            self._clear()
            return {}
        return data

    def load(self, device_id: Union[int, str]) -> Optional[PersistedViewState]:
        """Return the snapshot for a device, or None if absent or unreadable."""
        all_state = self._read_all()
        entry = all_state.get(str(device_id))
        if entry is None:
            return None

        try:
            state = PersistedViewState.model_validate(entry)
        except ValidationError as e:
            logger.warning(f"Corrupt view state for device {device_id}, discarding: {e}")
            all_state.pop(str(device_id), None)
            self._write_all(all_state)
            return None

        logger.debug(f"Restored view state for device {device_id}: {len(state.charts)} charts")
        return state

    def save(self, device_id: Union[int, str], state: PersistedViewState) -> None:
        all_state = self._read_all()
        snapshot = state.model_copy(update={"timestamp": self.clock()})
        all_state[str(device_id)] = snapshot.to_storage()
        self._write_all(all_state)
        logger.debug(f"Saved view state for device {device_id}: {len(state.charts)} charts")

    def discard(self, device_id: Union[int, str]) -> None:
        all_state = self._read_all()
        if all_state.pop(str(device_id), None) is not None:
            self._write_all(all_state)

    def _write_all(self, all_state: Dict[str, dict]) -> None:
        try:
            self.storage.set_item(STATE_KEY, json.dumps(all_state))
        except StorageError as e:
            logger.warning(f"View state write failed: {e}")

    def _clear(self) -> None:
        try:
            self.storage.remove_item(STATE_KEY)
        except StorageError as e:
            logger.warning(f"Could not clear view state: {e}")
