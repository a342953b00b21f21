"""
Gesture classifier - turns the raw touch stream into gesture signals.

Recognises fling, double tap, single tap confirmed and long press, with the
usual touch-screen timing rules. Timers are not backed by an event loop:
deadlines are checked lazily on each event and on `poll()`, so the host
decides when time advances.
"""
from __future__ import annotations

import logging
from collections import deque
from typing import Optional, Protocol

import numpy as np

from cubespin.core.geometry_utils import calculate_distance
from cubespin.core.touch_event import TouchAction, TouchEvent

logger = logging.getLogger(__name__)

# Distances are in screen units, times in seconds.
TOUCH_SLOP = 8.0
DOUBLE_TAP_SLOP = 100.0
DOUBLE_TAP_TIMEOUT = 0.300
DOUBLE_TAP_MIN_TIME = 0.040
LONG_PRESS_TIMEOUT = 0.500
MIN_FLING_VELOCITY = 50.0
MAX_FLING_VELOCITY = 8000.0
VELOCITY_HORIZON = 0.100


class GestureListener(Protocol):
    """Receiver of recognised gestures."""

    def on_fling(self, down: TouchEvent, up: TouchEvent,
                 velocity_x: float, velocity_y: float) -> bool: ...

    def on_double_tap(self, event: TouchEvent) -> bool: ...

    def on_single_tap_confirmed(self, event: TouchEvent) -> bool: ...

    def on_long_press(self, event: TouchEvent) -> None: ...


class VelocityTracker:
    """
    Estimates pointer velocity from recent samples.

    Fits a straight line (least squares) to x(t) and y(t) over the samples
    inside the horizon and returns the slopes.
    """

    def __init__(self, horizon: float = VELOCITY_HORIZON, max_samples: int = 20) -> None:
        self.horizon = horizon
        self._samples: deque[tuple[float, float, float]] = deque(maxlen=max_samples)

    def clear(self) -> None:
        self._samples.clear()

    def add(self, event: TouchEvent) -> None:
        self._samples.append((event.timestamp, event.x, event.y))

    def velocity(self) -> tuple[float, float]:
        """
        :return: (vx, vy) in units per second, (0, 0) without enough data
        """
        if len(self._samples) < 2:
            return 0.0, 0.0
        latest = self._samples[-1][0]
        window = [s for s in self._samples if latest - s[0] <= self.horizon]
        if len(window) < 2:
            return 0.0, 0.0

        data = np.asarray(window, dtype=np.float64)
        t = data[:, 0] - latest
        if np.ptp(t) == 0:
            return 0.0, 0.0
        vx = np.polyfit(t, data[:, 1], 1)[0]
        vy = np.polyfit(t, data[:, 2], 1)[0]
        return float(vx), float(vy)


class GestureClassifier:
    """
    Gesture recogniser fed with every touch event.

    Usage:
        classifier = GestureClassifier(listener)
        classifier.on_touch_event(event)
        classifier.poll(now)   # optional, lets long press fire without new events
    """

    def __init__(
            self,
            listener: GestureListener,
            *,
            touch_slop: float = TOUCH_SLOP,
            double_tap_slop: float = DOUBLE_TAP_SLOP,
            double_tap_timeout: float = DOUBLE_TAP_TIMEOUT,
            double_tap_min_time: float = DOUBLE_TAP_MIN_TIME,
            long_press_timeout: float = LONG_PRESS_TIMEOUT,
            min_fling_velocity: float = MIN_FLING_VELOCITY,
            max_fling_velocity: float = MAX_FLING_VELOCITY,
    ) -> None:
        self._listener = listener
        self.touch_slop = touch_slop
        self.double_tap_slop = double_tap_slop
        self.double_tap_timeout = double_tap_timeout
        self.double_tap_min_time = double_tap_min_time
        self.long_press_timeout = long_press_timeout
        self.min_fling_velocity = min_fling_velocity
        self.max_fling_velocity = max_fling_velocity

        self._velocity = VelocityTracker()

        self._current_down: Optional[TouchEvent] = None
        self._previous_up: Optional[TouchEvent] = None
        self._tap_deadline: Optional[float] = None
        self._long_press_deadline: Optional[float] = None

        self._still_down = False
        self._in_long_press = False
        self._is_double_tapping = False
        self._always_in_tap_region = False
        self._always_in_bigger_tap_region = False
        self._defer_confirm_single_tap = False

    @property
    def in_long_press(self) -> bool:
        return self._in_long_press

    def on_touch_event(self, event: TouchEvent) -> bool:
        """
        Feed one event.

        :return: True if a listener callback consumed it
        """
        self.poll(event.timestamp)

        action = event.action
        if action is TouchAction.DOWN:
            return self._on_down(event)
        if action is TouchAction.POINTER_DOWN:
            self._cancel_taps()
            return False
        if action is TouchAction.MOVE:
            return self._on_move(event)
        if action is TouchAction.UP:
            return self._on_up(event)
        if action is TouchAction.CANCEL:
            self._cancel()
            return False
        return False

    def poll(self, now: float) -> None:
        """Fire the timed gestures whose deadline is at or before `now`."""
        # The tap deadline is always the earlier one.
        if self._tap_deadline is not None and now >= self._tap_deadline:
            self._tap_deadline = None
            if self._still_down:
                self._defer_confirm_single_tap = True
            elif self._current_down is not None:
                logger.debug("Single tap confirmed at %s", self._current_down.position)
                self._listener.on_single_tap_confirmed(self._current_down)

        if self._long_press_deadline is not None and now >= self._long_press_deadline:
            self._long_press_deadline = None
            self._dispatch_long_press()

    def _on_down(self, event: TouchEvent) -> bool:
        handled = False
        had_tap = self._tap_deadline is not None
        self._tap_deadline = None

        if (had_tap and self._current_down is not None and self._previous_up is not None
                and self._is_considered_double_tap(self._current_down, self._previous_up, event)):
            self._is_double_tapping = True
            logger.debug("Double tap at %s", self._current_down.position)
            handled = bool(self._listener.on_double_tap(self._current_down))
        else:
            self._tap_deadline = event.timestamp + self.double_tap_timeout

        self._velocity.clear()
        self._velocity.add(event)

        self._current_down = event
        self._always_in_tap_region = True
        self._always_in_bigger_tap_region = True
        self._still_down = True
        self._in_long_press = False
        self._defer_confirm_single_tap = False
        self._long_press_deadline = event.timestamp + self.long_press_timeout
        return handled

    def _on_move(self, event: TouchEvent) -> bool:
        self._velocity.add(event)
        if self._in_long_press or self._is_double_tapping:
            return False
        if self._always_in_tap_region and self._current_down is not None:
            distance = calculate_distance(self._current_down.position, event.position)
            if distance > self.touch_slop:
                self._always_in_tap_region = False
                self._tap_deadline = None
                self._long_press_deadline = None
            if distance > self.double_tap_slop:
                self._always_in_bigger_tap_region = False
        return False

    def _on_up(self, event: TouchEvent) -> bool:
        self._still_down = False
        self._velocity.add(event)
        handled = False

        if self._is_double_tapping:
            handled = True
        elif self._in_long_press:
            self._tap_deadline = None
            self._in_long_press = False
        elif self._always_in_tap_region:
            if self._defer_confirm_single_tap:
                logger.debug("Single tap confirmed at %s", event.position)
                handled = bool(self._listener.on_single_tap_confirmed(event))
        else:
            vx, vy = self._velocity.velocity()
            vx = max(-self.max_fling_velocity, min(self.max_fling_velocity, vx))
            vy = max(-self.max_fling_velocity, min(self.max_fling_velocity, vy))
            if abs(vx) > self.min_fling_velocity or abs(vy) > self.min_fling_velocity:
                logger.debug("Fling velocity (%.1f, %.1f)", vx, vy)
                down = self._current_down if self._current_down is not None else event
                handled = bool(self._listener.on_fling(down, event, vx, vy))

        self._previous_up = event
        self._is_double_tapping = False
        self._defer_confirm_single_tap = False
        self._long_press_deadline = None
        return handled

    def _dispatch_long_press(self) -> None:
        if self._current_down is None:
            return
        self._tap_deadline = None
        self._defer_confirm_single_tap = False
        self._in_long_press = True
        logger.debug("Long press at %s", self._current_down.position)
        self._listener.on_long_press(self._current_down)

    def _is_considered_double_tap(self, first_down: TouchEvent, first_up: TouchEvent,
                                  second_down: TouchEvent) -> bool:
        if not self._always_in_bigger_tap_region:
            return False
        delta = second_down.timestamp - first_up.timestamp
        if delta > self.double_tap_timeout or delta < self.double_tap_min_time:
            return False
        return calculate_distance(first_down.position, second_down.position) < self.double_tap_slop

    def _cancel_taps(self) -> None:
        self._tap_deadline = None
        self._long_press_deadline = None
        self._is_double_tapping = False
        self._always_in_tap_region = False
        self._always_in_bigger_tap_region = False
        self._defer_confirm_single_tap = False
        self._in_long_press = False

    def _cancel(self) -> None:
        self._cancel_taps()
        self._velocity.clear()
        self._still_down = False
