import pytest

from cubespin.core.geometry_utils import calculate_distance, direction_vector, pointer_spacing
from cubespin.core.regions import Rect, RectRegionMap, TouchRegion, no_touch_region
from cubespin.core.touch_event import Point, TouchAction, TouchEvent


def test_no_touch_region_reports_nothing():
    assert no_touch_region(Point(0, 0)) is None
    assert no_touch_region(Point(1e6, -1e6)) is None


def test_rect_region_map_first_match_wins():
    regions = RectRegionMap()
    regions.add(Rect(0, 0, 100, 100), TouchRegion.ZOOM_IN)
    regions.add(Rect(50, 50, 150, 150), TouchRegion.ZOOM_OUT)

    assert regions(Point(10, 10)) is TouchRegion.ZOOM_IN
    assert regions(Point(75, 75)) is TouchRegion.ZOOM_IN
    assert regions(Point(120, 120)) is TouchRegion.ZOOM_OUT
    assert regions(Point(200, 10)) is None
    # right/bottom edges are exclusive
    assert regions(Point(150, 150)) is None


def test_touch_event_helpers():
    e = TouchEvent.multi("pointer_down", [(0, 0), (3, 4)], 1.5)
    assert e.action is TouchAction.POINTER_DOWN
    assert e.pointer_count == 2
    assert e.position == Point(0, 0)
    assert pointer_spacing(e) == pytest.approx(5.0)
    assert pointer_spacing(TouchEvent.at("move", 1, 1)) == 0.0


def test_touch_event_needs_a_pointer():
    with pytest.raises(ValueError):
        TouchEvent(TouchAction.DOWN, ())


def test_distance_helpers():
    assert direction_vector((1, 1), Point(4, 5)) == (3, 4)
    assert calculate_distance(Point(1, 1), (4, 5)) == pytest.approx(5.0)


def test_touch_event_converts_plain_values():
    e = TouchEvent("down", ((3, 4),), 0.5)
    assert e.action is TouchAction.DOWN
    assert e.pointers == (Point(3, 4),)

    with pytest.raises(ValueError):
        TouchEvent("hover", ((0, 0),))
