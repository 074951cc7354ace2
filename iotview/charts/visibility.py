"""
Visibility-gated chart rendering.

A chart is built only once its container comes within ``margin`` pixels of
the viewport. After that it stays built: scrolling it out of view again does
not tear it down.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, TypeVar

DEFAULT_MARGIN = 100  # px

T = TypeVar("T")


class GateState(str, Enum):
    HIDDEN = "hidden"
    SHOWN = "shown"


@dataclass(frozen=True)
class Rect:
    top: float
    left: float
    width: float
    height: float

    @property
    def bottom(self) -> float:
        return self.top + self.height

    @property
    def right(self) -> float:
        return self.left + self.width


def intersects(container: Rect, viewport: Rect, margin: float = DEFAULT_MARGIN) -> bool:
    """True when the container overlaps the viewport grown by ``margin`` on every side."""
    return (
        container.bottom >= viewport.top - margin
        and container.top <= viewport.bottom + margin
        and container.right >= viewport.left - margin
        and container.left <= viewport.right + margin
    )


class VisibilityGate:
    """Two-state machine HIDDEN -> SHOWN; the transition is one-way."""

    def __init__(self, margin: float = DEFAULT_MARGIN):
        self.margin = margin
        self.state = GateState.HIDDEN
        self.is_visible = False

    @property
    def shown(self) -> bool:
        return self.state is GateState.SHOWN

    def observe(self, is_intersecting: bool) -> GateState:
        """Feed one intersection observation."""
        self.is_visible = is_intersecting
        if is_intersecting:
            self.state = GateState.SHOWN
        return self.state

    def observe_rects(self, container: Rect, viewport: Rect) -> GateState:
        return self.observe(intersects(container, viewport, self.margin))

    def render(self, render_chart: Callable[[], T], render_placeholder: Callable[[], T]) -> T:
        if self.shown:
            return render_chart()
        return render_placeholder()
