"""Geometry utility functions for screen-space points."""
from __future__ import annotations

import math
from typing import Iterable, Tuple

from cubespin.core.touch_event import TouchEvent


def direction_vector(
        start_point: Iterable[float],
        end_point: Iterable[float],
) -> Tuple[float, float]:
    """Calculate the direction vector between two screen points."""
    sx, sy = start_point
    ex, ey = end_point
    return ex - sx, ey - sy


def calculate_distance(
        start_point: Iterable[float],
        end_point: Iterable[float],
) -> float:
    """
    Calculate the distance between two screen points.

    :param start_point: Starting point (x, y)
    :param end_point: Ending point (x, y)
    :return: Distance between the two points
    """
    dx, dy = direction_vector(start_point, end_point)
    return math.sqrt(dx * dx + dy * dy)


def pointer_spacing(event: TouchEvent) -> float:
    """
    Distance between the first two pointers of an event.

    Used as the pinch reference. A single pointer event has no spacing (0).
    """
    if event.pointer_count < 2:
        return 0.0
    return calculate_distance(event.pointers[0], event.pointers[1])
