"""Touch input model - platform independent pointer samples."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class TouchAction(str, Enum):
    """Pointer lifecycle action of a touch event."""
    DOWN = "down"
    POINTER_DOWN = "pointer_down"
    MOVE = "move"
    UP = "up"
    POINTER_UP = "pointer_up"
    CANCEL = "cancel"

    def __str__(self):
        return self.value


@dataclass(frozen=True)
class Point:
    x: float
    y: float

    def __iter__(self):
        yield self.x
        yield self.y


@dataclass(frozen=True)
class TouchEvent:
    """
    One pointer sample delivered by the host.

    :ivar action: Lifecycle action
    :ivar pointers: Coordinates of every active pointer, primary first
    :ivar timestamp: Event time in seconds (monotonic)
    """
    action: TouchAction
    pointers: tuple[Point, ...]
    timestamp: float = 0.0

    def __post_init__(self):
        if not self.pointers:
            raise ValueError("TouchEvent needs at least one pointer")
        # Frozen: normalise through object.__setattr__.
        object.__setattr__(self, "action", TouchAction(self.action))
        object.__setattr__(self, "pointers", tuple(Point(*p) for p in self.pointers))

    @classmethod
    def at(cls, action: TouchAction | str, x: float, y: float, timestamp: float = 0.0) -> TouchEvent:
        """Single pointer event."""
        return cls(TouchAction(action), (Point(x, y),), timestamp)

    @classmethod
    def multi(cls, action: TouchAction | str,
              points: list[tuple[float, float]],
              timestamp: float = 0.0) -> TouchEvent:
        """Event carrying several pointers, primary first."""
        return cls(TouchAction(action), tuple(Point(x, y) for x, y in points), timestamp)

    @property
    def position(self) -> Point:
        """Primary pointer position."""
        return self.pointers[0]

    @property
    def x(self) -> float:
        return self.pointers[0].x

    @property
    def y(self) -> float:
        return self.pointers[0].y

    @property
    def pointer_count(self) -> int:
        return len(self.pointers)
