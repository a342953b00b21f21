import json
from pathlib import Path

import pytest

from cubespin import __main__ as cli
from cubespin.app.app_settings_manager import AppSettingsData, RunMode
from cubespin.controllers.orientation_controller import DRAG_SLOWING, OrientationController, TouchMode
from cubespin.core.quaternion import Quaternion
from cubespin.core.touch_event import TouchAction
from cubespin.core.vector3 import Vector3
from cubespin.replay import TraceError, format_record, load_trace, parse_trace, replay
from cubespin.utils.json_loader import SettingsError, read_json_dict


def _write(path: Path, data) -> Path:
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


DRAG_TRACE = {
    "events": [
        {"action": "down", "t": 0.0, "pointers": [[0, 0]]},
        {"action": "move", "t": 0.0, "pointers": [[90, 0]], "frames": 2},
        {"action": "up", "t": 0.0, "pointers": [[90, 0]], "frames": 1},
    ]
}


def test_parse_trace():
    steps = parse_trace(DRAG_TRACE)
    assert [s.event.action for s in steps] == [TouchAction.DOWN, TouchAction.MOVE, TouchAction.UP]
    assert [s.frames for s in steps] == [1, 2, 1]
    assert steps[1].event.x == 90.0


@pytest.mark.parametrize("data", [
    {},
    {"events": [{"action": "hover", "pointers": [[0, 0]]}]},
    {"events": [{"action": "down", "pointers": []}]},
    {"events": [{"action": "down", "pointers": [[0]]}]},
    {"events": [{"action": "down", "pointers": [[0, 0]], "frames": -1}]},
    {"events": [{"action": "down", "t": 1.0, "pointers": [[0, 0]]},
                {"action": "up", "t": 0.5, "pointers": [[0, 0]]}]},
])
def test_parse_trace_rejects_bad_events(data):
    with pytest.raises(TraceError):
        parse_trace(data)


def test_replay_drag(tmp_path):
    steps = load_trace(_write(tmp_path / "drag.json", DRAG_TRACE))
    records = replay(OrientationController(), steps)

    assert len(records) == 4
    assert all(r.handled for r in records)
    expected = Quaternion.from_axis_angle(Vector3(0, -1), 1.0)
    # provisional during the move frames, committed after release
    assert records[1].orientation.rotation.isclose(expected)
    assert records[2].orientation.rotation.isclose(expected)
    assert records[3].orientation.rotation.isclose(expected)
    assert records[0].orientation.rotation == Quaternion.identity()

    line = format_record(records[3])
    assert line.startswith("t=0.000 up")
    assert "scale=-5.00" in line


def test_replay_polls_long_press():
    data = {"events": [{"action": "down", "t": 0.0, "pointers": [[100, 100]], "frames": 40}]}
    controller = OrientationController()
    replay(controller, parse_trace(data), frame_interval=1 / 60)
    assert controller.mode.name == "ZOOM_LONG"


def test_replay_frames_never_run_past_next_event():
    data = {"events": [
        {"action": "down", "t": 0.0, "pointers": [[0, 100]], "frames": 40},
        {"action": "move", "t": 0.1, "pointers": [[0, 60]]},
        {"action": "up", "t": 0.12, "pointers": [[0, 60]], "frames": 0},
    ]}
    controller = OrientationController()
    records = replay(controller, parse_trace(data), frame_interval=1 / 60)

    assert len(records) == 41
    stamps = [r.timestamp for r in records]
    assert stamps == sorted(stamps)
    assert max(stamps[:40]) == pytest.approx(0.1)
    # no long press fired while the finger was still on its way
    assert controller.scale == -5.0
    assert controller.mode is TouchMode.NONE
    expected = Quaternion.from_axis_angle(Vector3(1, 0), 40 / DRAG_SLOWING)
    assert controller.rotation.isclose(expected)


def test_load_trace_strict_and_lenient(tmp_path):
    missing = tmp_path / "missing.json"
    with pytest.raises(SettingsError):
        load_trace(missing)
    assert load_trace(missing, strict=False) == []


def test_read_json_dict_quarantines_broken_file(tmp_path):
    broken = tmp_path / "trace.json"
    broken.write_text("{not json", encoding="utf-8")
    warnings = []

    assert read_json_dict(broken, strict=False, quarantine_broken=True, warnings=warnings) is None
    assert not broken.exists()
    assert len(list(tmp_path.glob("trace.broken-*"))) == 1
    assert "quarantined" in warnings[0]


def test_read_json_dict_requires_object(tmp_path):
    path = _write(tmp_path / "list.json", [1, 2])
    with pytest.raises(SettingsError):
        read_json_dict(path, strict=True)


class _FakeLogs:
    def __init__(self, app_name):
        self.stopped = False
        self.crash_log = False
        _FakeLogs.last = self

    def enable_crash_log(self):
        self.crash_log = True

    def apply_levels(self, *args, **kwargs):
        pass

    def stop(self):
        self.stopped = True


class _FakeSettings:
    def __init__(self):
        self.data = AppSettingsData()
        self.run_mode = RunMode.PRODUCTION
        self.logging_level = "INFO"


def test_cli_prints_frames(tmp_path, monkeypatch, capsys):
    monkeypatch.setattr(cli, "LogSystem", _FakeLogs)
    monkeypatch.setattr(cli, "AppSettingsManager", _FakeSettings)
    trace = _write(tmp_path / "drag.json", DRAG_TRACE)

    assert cli.main([str(trace), "--damping", "0.5"]) == 0
    out = capsys.readouterr().out.splitlines()
    assert len(out) == 4
    assert out[0].startswith("t=0.000 down")
    assert _FakeLogs.last.crash_log
    assert _FakeLogs.last.stopped


def test_cli_reports_bad_trace(tmp_path, monkeypatch, capsys):
    monkeypatch.setattr(cli, "LogSystem", _FakeLogs)
    monkeypatch.setattr(cli, "AppSettingsManager", _FakeSettings)

    assert cli.main([str(tmp_path / "nope.json")]) == 1
    assert "[ERROR]" in capsys.readouterr().err
