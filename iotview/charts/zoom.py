"""Shared zoom window for every chart in a collection."""

import logging
from typing import Callable, List, Optional

from ..models import ZoomRange

logger = logging.getLogger("iotview.charts")


class ZoomCoordinator:
    """
    Single zoom value read by all charts of a collection.

    Brushing one chart sets the window for all of them since they share the
    time axis. No history is kept; each set overwrites the last.
    """

    def __init__(self, initial: Optional[ZoomRange] = None):
        self._range: Optional[ZoomRange] = initial
        self._listeners: List[Callable[[Optional[ZoomRange]], None]] = []

    @property
    def range(self) -> Optional[ZoomRange]:
        return self._range

    @property
    def is_zoomed(self) -> bool:
        return self._range is not None

    def set_zoom(self, zoom: Optional[ZoomRange]) -> None:
        self._range = zoom
        logger.debug(f"zoom set to {zoom}")
        self._notify()

    def zoom_to(self, min_value: float, max_value: float) -> ZoomRange:
        zoom = ZoomRange(min=min_value, max=max_value)
        self.set_zoom(zoom)
        return zoom

    def reset_zoom(self) -> None:
        self.set_zoom(None)

    def subscribe(self, listener: Callable[[Optional[ZoomRange]], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self._range)
