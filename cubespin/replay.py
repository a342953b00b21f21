"""
Touch trace replay.

A trace is a JSON object:

    {
        "events": [
            {"action": "down", "t": 0.00, "pointers": [[100, 100]]},
            {"action": "move", "t": 0.02, "pointers": [[140, 100]], "frames": 2},
            {"action": "up",   "t": 0.04, "pointers": [[180, 100]], "frames": 30}
        ]
    }

`frames` is the number of frames rendered after the event (default 1).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

from cubespin.controllers.orientation_controller import Orientation, OrientationController
from cubespin.core.touch_event import Point, TouchAction, TouchEvent
from cubespin.utils.json_loader import read_json_dict
from cubespin.utils.log_util import log_io

logger = logging.getLogger(__name__)

DEFAULT_FRAME_INTERVAL = 1.0 / 60.0


class TraceError(ValueError):
    """Raised when a trace has an invalid event."""


@dataclass(frozen=True)
class TraceStep:
    event: TouchEvent
    frames: int = 1


@dataclass(frozen=True)
class FrameRecord:
    timestamp: float
    action: TouchAction
    handled: bool
    orientation: Orientation


def _parse_pointers(raw: Any, index: int) -> tuple[Point, ...]:
    if not isinstance(raw, list) or not raw:
        raise TraceError(f"event {index}: 'pointers' must be a non-empty list")
    points = []
    for p in raw:
        if not isinstance(p, (list, tuple)) or len(p) != 2:
            raise TraceError(f"event {index}: pointer must be [x, y], got {p!r}")
        try:
            points.append(Point(float(p[0]), float(p[1])))
        except (TypeError, ValueError) as e:
            raise TraceError(f"event {index}: non-numeric pointer {p!r}") from e
    return tuple(points)


def parse_trace(data: dict[str, Any]) -> list[TraceStep]:
    """
    Turn a decoded trace object into replay steps.

    :param data: decoded JSON object
    :return: steps in trace order
    """
    events = data.get("events")
    if not isinstance(events, list):
        raise TraceError("trace must contain an 'events' list")

    steps: list[TraceStep] = []
    last_t = 0.0
    for i, raw in enumerate(events):
        if not isinstance(raw, dict):
            raise TraceError(f"event {i}: must be an object")
        try:
            action = TouchAction(str(raw.get("action", "")).lower())
        except ValueError as e:
            raise TraceError(f"event {i}: unknown action {raw.get('action')!r}") from e

        try:
            t = float(raw.get("t", last_t))
        except (TypeError, ValueError) as e:
            raise TraceError(f"event {i}: 't' must be a number") from e
        if t < last_t:
            raise TraceError(f"event {i}: timestamps must not go backwards ({t} < {last_t})")
        last_t = t

        frames = raw.get("frames", 1)
        if not isinstance(frames, int) or isinstance(frames, bool) or frames < 0:
            raise TraceError(f"event {i}: 'frames' must be a non-negative integer")

        event = TouchEvent(action, _parse_pointers(raw.get("pointers"), i), t)
        steps.append(TraceStep(event=event, frames=frames))
    return steps


@log_io(level=logging.INFO)
def load_trace(path: Path, *, strict: bool = True) -> list[TraceStep]:
    """
    Load a trace file.

    With strict=False an unreadable file gives an empty trace (the problem is logged).
    """
    data = read_json_dict(Path(path), strict=strict, logger=logger)
    if data is None:
        return []
    return parse_trace(data)


def replay(
        controller: OrientationController,
        steps: Iterable[TraceStep],
        frame_interval: float = DEFAULT_FRAME_INTERVAL,
) -> list[FrameRecord]:
    """
    Feed the steps to the controller and read one orientation per frame.

    Frame i after an event is stamped event.t + i * frame_interval, capped at
    the next event's time so frame reads never run ahead of the input.
    Pending gesture timers are polled at that time before the read.
    """
    steps = list(steps)
    records: list[FrameRecord] = []
    for index, step in enumerate(steps):
        event = step.event
        handled = controller.on_touch(event)
        limit = steps[index + 1].event.timestamp if index + 1 < len(steps) else None
        for i in range(step.frames):
            now = event.timestamp + i * frame_interval
            if limit is not None and now > limit:
                now = limit
            controller.poll(now)
            records.append(FrameRecord(
                timestamp=now,
                action=event.action,
                handled=handled,
                orientation=controller.current_orientation(now),
            ))
    logger.debug("Replayed %d frames", len(records))
    return records


def format_record(record: FrameRecord) -> str:
    q = record.orientation.rotation
    return (f"t={record.timestamp:.3f} {record.action.value:<12} "
            f"{'handled' if record.handled else 'ignored':<8} "
            f"w={q.w:+.5f} x={q.x:+.5f} y={q.y:+.5f} z={q.z:+.5f} "
            f"scale={record.orientation.scale:.2f}")
