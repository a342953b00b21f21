"""Screen hot-zones that turn a touch-down into a discrete step."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Callable, Optional

from cubespin.core.touch_event import Point


class TouchRegion(Enum):
    """Named hot-zones of the touch surface."""
    ZOOM_IN = auto()
    ZOOM_OUT = auto()
    SPIN_IN = auto()
    SPIN_OUT = auto()


# Strategy: screen point -> hot-zone, or None for "elsewhere".
RegionClassifier = Callable[[Point], Optional[TouchRegion]]


def no_touch_region(point: Point) -> Optional[TouchRegion]:
    """Default classifier: no hot-zone is active anywhere."""
    return None


@dataclass(frozen=True)
class Rect:
    left: float
    top: float
    right: float
    bottom: float

    def contains(self, point: Point) -> bool:
        return self.left <= point.x < self.right and self.top <= point.y < self.bottom


@dataclass
class RectRegionMap:
    """
    Region classifier backed by a list of rectangles.

    The first rectangle containing the point wins.

    Usage:
        regions = RectRegionMap()
        regions.add(Rect(0, 0, 100, 100), TouchRegion.ZOOM_IN)
        controller = OrientationController(region_classifier=regions)
    """
    zones: list[tuple[Rect, TouchRegion]] = field(default_factory=list)

    def add(self, rect: Rect, region: TouchRegion) -> None:
        self.zones.append((rect, region))

    def __call__(self, point: Point) -> Optional[TouchRegion]:
        for rect, region in self.zones:
            if rect.contains(point):
                return region
        return None
