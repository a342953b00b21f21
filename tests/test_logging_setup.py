import logging
import time
from pathlib import Path

import pytest

from cubespin.app import logging_setup
from cubespin.app.app_settings_manager import RunMode


@pytest.fixture(autouse=True)
def _isolate_logging():
    """
    Reset logging after each test so handlers do not leak between tests.
    """
    root = logging.getLogger()
    saved_level = root.level
    yield
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()
    root.setLevel(saved_level)


@pytest.fixture
def tmp_log_dir(tmp_path: Path):
    d = tmp_path / "logs"
    d.mkdir(parents=True, exist_ok=True)
    return d


@pytest.fixture
def module(tmp_log_dir, monkeypatch):
    """
    Point default_log_dir at the temporary directory.
    :return: logging_setup
    """
    monkeypatch.setattr(logging_setup, "default_log_dir", lambda app_name: tmp_log_dir)
    return logging_setup


def _read_text(path: Path) -> str:
    "Short retry in case the listener is still writing."
    for _ in range(10):
        try:
            return path.read_text(encoding="utf-8", errors="replace")
        except OSError:
            time.sleep(0.02)
    return path.read_text(encoding="utf-8", errors="replace")


def test_info_level_writes_file(module, tmp_log_dir):
    logs = module.LogSystem.from_levels("cubespin", root_level=logging.INFO, console_level=logging.INFO)
    logger = logging.getLogger("cubespin.test")

    logger.debug("debug should NOT appear")
    logger.info("info should appear")
    logger.warning("warning should appear")
    logs.stop()

    log_file = tmp_log_dir / "cubespin.log"
    assert log_file.exists()

    text = _read_text(log_file)
    assert "info should appear" in text
    assert "warning should appear" in text
    assert "debug should NOT appear" not in text
    assert " INFO " in text or " WARNING " in text
    assert "cubespin.test" in text


def test_debug_level_outputs_debug(module, tmp_log_dir):
    logs = module.LogSystem.from_levels("cubespin", root_level=logging.DEBUG, console_level=logging.DEBUG)
    logger = logging.getLogger("cubespin.controllers")

    logger.debug("debug visible")
    logger.info("info visible")
    logs.stop()

    text = _read_text(tmp_log_dir / "cubespin.log")
    assert "debug visible" in text
    assert "info visible" in text


def test_queue_listener_flush_on_stop(module, tmp_log_dir):
    logs = module.LogSystem.from_levels("cubespin", root_level=logging.INFO, console_level=logging.INFO)
    logger = logging.getLogger("cubespin.bulk")

    for i in range(200):
        logger.info("line %04d", i)

    # stop() flushes the queue before returning
    logs.stop()

    text = _read_text(tmp_log_dir / "cubespin.log")
    assert "line 0000" in text
    assert "line 0199" in text
    assert text.count("cubespin.bulk") == 200


class _Settings:
    def __init__(self, run_mode, logging_level="INFO"):
        self.run_mode = run_mode
        self.logging_level = logging_level


def test_logging_policy_follows_run_mode(module, tmp_log_dir):
    logs = module.LogSystem.from_levels("cubespin", root_level=logging.INFO, console_level=logging.INFO)
    try:
        module.apply_logging_policy(logs, _Settings(RunMode.DEVELOPMENT))
        assert logging.getLogger().level == logging.DEBUG

        module.apply_logging_policy(logs, _Settings(RunMode.PRODUCTION, "WARNING"))
        assert logging.getLogger().level == logging.WARNING
    finally:
        logs.stop()


def test_crash_log_hooks_and_restores(module, tmp_log_dir, monkeypatch):
    # keep pytest's own faulthandler in place
    enabled = []
    monkeypatch.setattr(module.faulthandler, "enable", lambda file=None, **kwargs: enabled.append(file))
    monkeypatch.setattr(module.faulthandler, "disable", lambda: enabled.clear())
    monkeypatch.setattr(module.sys, "excepthook", module.sys.excepthook)
    previous_hook = module.sys.excepthook

    logs = module.LogSystem.from_levels("cubespin", root_level=logging.INFO, console_level=logging.INFO)
    crash_file = logs.enable_crash_log()
    assert crash_file == tmp_log_dir / "cubespin.crash.log"
    assert crash_file.exists()
    assert len(enabled) == 1
    assert module.sys.excepthook is not previous_hook

    try:
        raise RuntimeError("boom")
    except RuntimeError as e:
        module.sys.excepthook(type(e), e, e.__traceback__)
    logs.stop()

    assert enabled == []
    assert module.sys.excepthook is previous_hook
    text = _read_text(tmp_log_dir / "cubespin.log")
    assert "cubespin starting" in text
    assert "Uncaught exception" in text
    assert "boom" in text
