"""
Orientation controller - turns touch input into a rotation and a scale.

Drag rotates, pinch and long-press zoom, double tap resets the zoom and a
fling keeps the object spinning with damping. The renderer reads the result
once per frame with `current_orientation()`.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, Optional, TYPE_CHECKING

from cubespin.core.geometry_utils import calculate_distance, pointer_spacing
from cubespin.core.quaternion import Quaternion
from cubespin.core.regions import RegionClassifier, TouchRegion, no_touch_region
from cubespin.core.touch_event import Point, TouchAction, TouchEvent
from cubespin.core.vector3 import Vector3
from cubespin.gestures.gesture_classifier import GestureClassifier
from cubespin.utils.log_util import log_io

if TYPE_CHECKING:
    from cubespin.app.app_settings_manager import AppSettingsManager


logger = logging.getLogger(__name__)

FLING_REDUCTION = 3000.0
DRAG_SLOWING = 90.0

PINCH_THRESHOLD = 20.0
LONG_ZOOM_THRESHOLD = 3.0

REGION_ZOOM_STEP = 0.5
LONG_ZOOM_STEP = 0.1

# Damping moves in finer steps below 0.9.
SPIN_STEP_FINE = 0.015
SPIN_STEP_COARSE = 0.02
SPIN_COARSE_FROM = 0.9

LONG_PRESS_HINT_OFFSET = Point(-130.0, -80.0)


class TouchMode(Enum):
    """Exclusive interaction state."""
    NONE = auto()
    DRAG = auto()
    ZOOM = auto()
    ZOOM_LONG = auto()


class DecayMode(str, Enum):
    """How fling speed decays between frame reads."""
    PER_FRAME = "frame"
    WALL_CLOCK = "wall_clock"

    def __str__(self):
        return self.value


@dataclass(frozen=True)
class Orientation:
    """Value handed to the renderer each frame."""
    rotation: Quaternion
    scale: float


LongPressHint = Callable[[Point, Point], None]
ModeChangedCallback = Callable[[TouchMode, TouchMode], None]


class OrientationController:
    """
    Touch state machine owning the rotation, scale and fling state.

    - `on_touch(event)` consumes one pointer event and returns whether it was handled.
    - `current_orientation()` is called once per rendered frame; it applies
      fling decay lazily, so the spin-down rate follows the frame count
      unless `DecayMode.WALL_CLOCK` is selected.
    - Must be driven from a single thread.

    Usage:
        controller = OrientationController(-5.0, -10.0, -3.0)
        controller.on_touch(TouchEvent.at("down", 10, 10, 0.0))
        orientation = controller.current_orientation()
    """

    def __init__(
            self,
            standard_scale: float = -5.0,
            min_scale: float = -10.0,
            max_scale: float = -3.0,
            *,
            fling_damping: float = 1.0,
            region_classifier: RegionClassifier | None = None,
            long_press_hint: LongPressHint | None = None,
            decay_mode: DecayMode = DecayMode.PER_FRAME,
            reference_fps: float = 60.0,
            clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if min_scale > max_scale:
            raise ValueError(f"min_scale ({min_scale}) must not exceed max_scale ({max_scale})")
        if not min_scale <= standard_scale <= max_scale:
            raise ValueError(
                f"standard_scale ({standard_scale}) must lie in [{min_scale}, {max_scale}]")
        if reference_fps <= 0:
            raise ValueError(f"reference_fps must be positive: {reference_fps}")

        self._standard_scale = float(standard_scale)
        self._min_scale = float(min_scale)
        self._max_scale = float(max_scale)
        self._scale = self._standard_scale

        self._mode = TouchMode.NONE
        self._rotation = Quaternion.identity()

        self._drag_start = Point(0.0, 0.0)
        self._drag_end = Point(0.0, 0.0)
        self._long_zoom = Point(0.0, 0.0)
        # Pinch reference distance.
        self._old_dist = 1.0

        self._fling_axis = Vector3(0.0, 0.0)
        self._fling_speed = 0.0
        self._fling_damping = 1.0
        self.set_fling_damping(fling_damping)

        self._decay_mode = DecayMode(decay_mode)
        self._reference_fps = float(reference_fps)
        self._clock = clock
        self._last_decay_time: Optional[float] = None

        self._region_classifier: RegionClassifier = region_classifier or no_touch_region
        self._long_press_hint = long_press_hint
        self._on_mode_changed_callbacks: list[ModeChangedCallback] = []

        self._gestures = GestureClassifier(self)

    @classmethod
    def from_settings(cls, settings: AppSettingsManager, **kwargs) -> OrientationController:
        """Build a controller from the persisted controller settings."""
        cfg = settings.data.controller
        params = dict(
            standard_scale=cfg.standard_scale,
            min_scale=cfg.min_scale,
            max_scale=cfg.max_scale,
            fling_damping=cfg.fling_damping,
            decay_mode=cfg.decay_mode,
            reference_fps=cfg.reference_fps,
        )
        params.update(kwargs)
        logger.debug("Controller from settings: %s", params)
        return cls(**params)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def mode(self) -> TouchMode:
        return self._mode

    @property
    def scale(self) -> float:
        return self._scale

    @property
    def standard_scale(self) -> float:
        return self._standard_scale

    @property
    def min_scale(self) -> float:
        return self._min_scale

    @property
    def max_scale(self) -> float:
        return self._max_scale

    @property
    def rotation(self) -> Quaternion:
        """Committed rotation (copy), without any live drag."""
        return self._rotation.copy()

    @property
    def fling_speed(self) -> float:
        return self._fling_speed

    @property
    def fling_axis(self) -> Vector3:
        return self._fling_axis.copy()

    @property
    def fling_damping(self) -> float:
        return self._fling_damping

    @property
    def drag_delta(self) -> tuple[float, float]:
        """Live drag delta (end - start)."""
        return self._drag_end.x - self._drag_start.x, self._drag_end.y - self._drag_start.y

    @property
    def long_zoom_anchor(self) -> Point:
        return self._long_zoom

    @property
    def decay_mode(self) -> DecayMode:
        return self._decay_mode

    @log_io()
    def set_fling_damping(self, value: float) -> None:
        """
        Set the fling damping, clamped to [0, 1].

        0 stops a fling on the next frame, 1 spins forever.
        """
        self._fling_damping = min(1.0, max(0.0, float(value)))

    @log_io()
    def reset_scale(self) -> None:
        """Return to the standard scale."""
        self._scale = self._standard_scale

    def set_region_classifier(self, classifier: RegionClassifier | None) -> None:
        self._region_classifier = classifier or no_touch_region

    def set_long_press_hint(self, hint: LongPressHint | None) -> None:
        self._long_press_hint = hint

    def add_mode_changed_callback(self, callback: ModeChangedCallback) -> None:
        """
        Add a callback for touch mode changes.

        Callback signature: callback(old_mode: TouchMode, new_mode: TouchMode) -> None
        """
        self._on_mode_changed_callbacks.append(callback)

    # ------------------------------------------------------------------
    # Touch input
    # ------------------------------------------------------------------
    def on_touch(self, event: TouchEvent) -> bool:
        """
        Consume one touch event.

        :param event: Pointer sample from the host, in device order
        :return: True if the event kind was handled
        """
        self._gestures.on_touch_event(event)

        action = event.action
        if action is TouchAction.DOWN:
            self._on_down(event)
        elif action is TouchAction.POINTER_DOWN:
            self._on_pointer_down(event)
        elif action is TouchAction.MOVE:
            self._on_move(event)
        elif action is TouchAction.UP:
            self._on_up()
        elif action is TouchAction.POINTER_UP:
            self._set_mode(TouchMode.NONE)
        else:
            return False
        return True

    def poll(self, now: float) -> None:
        """Let timed gestures (long press, single tap) fire without a new event."""
        self._gestures.poll(now)

    def _on_down(self, event: TouchEvent) -> None:
        region = self._region_classifier(event.position)
        if region is TouchRegion.ZOOM_IN:
            if self._scale < self._max_scale:
                self._set_scale(self._scale + REGION_ZOOM_STEP)
        elif region is TouchRegion.ZOOM_OUT:
            if self._scale > self._min_scale:
                self._set_scale(self._scale - REGION_ZOOM_STEP)
        elif region is TouchRegion.SPIN_IN:
            damping = self._fling_damping
            if 0 <= damping < SPIN_COARSE_FROM:
                self.set_fling_damping(damping + SPIN_STEP_FINE)
            elif SPIN_COARSE_FROM <= damping < 1:
                self.set_fling_damping(damping + SPIN_STEP_COARSE)
        elif region is TouchRegion.SPIN_OUT:
            damping = self._fling_damping
            if 0 < damping < SPIN_COARSE_FROM:
                self.set_fling_damping(damping - SPIN_STEP_FINE)
            elif SPIN_COARSE_FROM <= damping <= 1:
                self.set_fling_damping(damping - SPIN_STEP_COARSE)
        else:
            self._drag_start = self._drag_end = event.position
            self._fling_speed = 0.0
            self._set_mode(TouchMode.DRAG)
            return
        logger.debug("Hot zone %s: scale=%.2f damping=%.3f",
                     region.name, self._scale, self._fling_damping)

    def _on_pointer_down(self, event: TouchEvent) -> None:
        self._old_dist = pointer_spacing(event)
        if self._old_dist > PINCH_THRESHOLD:
            self._set_mode(TouchMode.ZOOM)

    def _on_move(self, event: TouchEvent) -> None:
        if self._mode is TouchMode.DRAG:
            self._drag_end = event.position
        elif self._mode is TouchMode.ZOOM:
            new_dist = pointer_spacing(event)
            if new_dist > PINCH_THRESHOLD:
                candidate = self._scale * (self._old_dist / new_dist)
                if self._min_scale < candidate < self._max_scale:
                    self._scale = candidate
                self._old_dist = new_dist
        elif self._mode is TouchMode.ZOOM_LONG:
            if calculate_distance(self._long_zoom, event.position) > LONG_ZOOM_THRESHOLD:
                # Vertical only: above the anchor zooms in.
                if event.y < self._long_zoom.y:
                    if self._scale < self._max_scale:
                        self._set_scale(self._scale + LONG_ZOOM_STEP)
                else:
                    if self._scale > self._min_scale:
                        self._set_scale(self._scale - LONG_ZOOM_STEP)
            self._long_zoom = event.position

    def _on_up(self) -> None:
        dx, dy = self.drag_delta
        if dx != 0 or dy != 0:
            self._rotation.mul_this(_drag_rotation(dx, dy))
            logger.debug("Drag committed: delta=(%.1f, %.1f) rotation=%s", dx, dy, self._rotation)
        self._drag_start = self._drag_end = Point(0.0, 0.0)
        self._set_mode(TouchMode.NONE)

    # ------------------------------------------------------------------
    # Gesture listener
    # ------------------------------------------------------------------
    def on_fling(self, down: TouchEvent, up: TouchEvent,
                 velocity_x: float, velocity_y: float) -> bool:
        self._fling_axis.set(-velocity_y, -velocity_x)
        self._fling_speed = self._fling_axis.magnitude() / FLING_REDUCTION
        self._fling_axis.normalise()
        self._last_decay_time = None
        logger.debug("Fling started: axis=%s speed=%.4f", self._fling_axis, self._fling_speed)
        return True

    def on_double_tap(self, event: TouchEvent) -> bool:
        self.reset_scale()
        return True

    def on_single_tap_confirmed(self, event: TouchEvent) -> bool:
        return True

    def on_long_press(self, event: TouchEvent) -> None:
        self._set_mode(TouchMode.ZOOM_LONG)
        self._long_zoom = event.position
        if self._long_press_hint is not None:
            try:
                self._long_press_hint(self._long_zoom, LONG_PRESS_HINT_OFFSET)
            except Exception as e:
                logger.exception(f"Error in long press hint callback: {e}")

    # ------------------------------------------------------------------
    # Frame read
    # ------------------------------------------------------------------
    def current_orientation(self, now: float | None = None) -> Orientation:
        """
        Read the orientation for this frame.

        While dragging, the live delta is applied on top of the committed
        rotation without committing it. Otherwise an active fling is decayed
        and composed into the committed rotation.

        :param now: Frame time in seconds, only used by DecayMode.WALL_CLOCK
                    (defaults to the controller clock)
        :return: Orientation(rotation, scale)
        """
        dx, dy = self.drag_delta
        if self._mode is TouchMode.DRAG and (dx != 0 or dy != 0):
            provisional = self._rotation.copy().mul_this(_drag_rotation(dx, dy))
            return Orientation(provisional, self._scale)

        if self._fling_speed > 0:
            self._decay_fling(now)
        return Orientation(self._rotation.copy(), self._scale)

    def _decay_fling(self, now: float | None) -> None:
        if self._decay_mode is DecayMode.PER_FRAME:
            self._fling_speed *= self._fling_damping
            angle = self._fling_speed
        else:
            now = self._clock() if now is None else now
            if self._last_decay_time is None:
                frames = 1.0
            else:
                frames = max(0.0, now - self._last_decay_time) * self._reference_fps
            self._last_decay_time = now
            self._fling_speed *= self._fling_damping ** frames
            angle = self._fling_speed * frames
        self._rotation.mul_this(Quaternion.from_axis_angle(self._fling_axis, angle))

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------
    def _set_scale(self, value: float) -> None:
        self._scale = min(self._max_scale, max(self._min_scale, value))

    def _set_mode(self, mode: TouchMode) -> None:
        if mode is self._mode:
            return
        old_mode = self._mode
        self._mode = mode
        logger.debug("Touch mode changed from %s -> %s", old_mode.name, mode.name)
        for callback in self._on_mode_changed_callbacks:
            try:
                callback(old_mode, mode)
            except Exception as e:
                logger.exception(f"Error in mode changed callback: {e}")


def _drag_rotation(dx: float, dy: float) -> Quaternion:
    """Rotation for a screen delta: axis (-dy, -dx, 0), angle |delta| / DRAG_SLOWING."""
    axis = Vector3(-dy, -dx)
    magnitude = axis.magnitude()
    axis.normalise()
    return Quaternion.from_axis_angle(axis, magnitude / DRAG_SLOWING)
