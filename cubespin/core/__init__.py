"""Core components layer - math primitives and the touch input model."""

from cubespin.core.vector3 import Vector3
from cubespin.core.quaternion import Quaternion
from cubespin.core.touch_event import Point, TouchAction, TouchEvent
from cubespin.core.regions import Rect, RectRegionMap, TouchRegion, no_touch_region
from cubespin.core.geometry_utils import calculate_distance, direction_vector, pointer_spacing

__all__ = [
    "Vector3",
    "Quaternion",
    "Point",
    "TouchAction",
    "TouchEvent",
    "Rect",
    "RectRegionMap",
    "TouchRegion",
    "no_touch_region",
    "calculate_distance",
    "direction_vector",
    "pointer_spacing",
]
