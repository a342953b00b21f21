from __future__ import annotations

import logging
import logging.config
import os
import queue
import sys
import traceback
from logging.handlers import QueueHandler, QueueListener, RotatingFileHandler
from pathlib import Path

import faulthandler

from cubespin.app.app_settings_manager import AppSettingsManager, RunMode
from cubespin.utils.log_util import level_from_name


def default_log_dir(app_name: str) -> Path:
    base = Path.home() / f".{app_name.lower()}" / "logs"
    base.mkdir(parents=True, exist_ok=True)
    return base


def build_config(app_name: str, level: str | None = None, log_dir: Path | None = None) -> dict:
    """Build a logging config dict."""
    level = (level or os.getenv("CUBESPIN_LOG_LEVEL", "INFO")).upper()
    log_dir = log_dir or default_log_dir(app_name)
    log_file = str(log_dir / f"{app_name}.log")

    fmt = "%(asctime)s.%(msecs)03dZ %(levelname)s %(process)d %(threadName)s %(name)s %(message)s"
    datefmt = "%Y-%m-%dT%H:%M:%S"
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": fmt, "datefmt": datefmt,
            },
        },
        "handlers": {
            # The file is written on the listener side of the queue.
            "queue": {"class": "logging.handlers.QueueHandler", "queue": queue.Queue(-1)},
            "console": {"class": "logging.StreamHandler", "formatter": "standard", "level": "INFO"},
        },
        "root": {"level": level, "handlers": ["queue", "console"]},
        "_file_settings": {
            "filename": log_file,
            "maxBytes": 1024 * 1024 * 5,
            "backupCount": int(os.getenv("CUBESPIN_LOG_BACKUP_COUNT", 5)),
            "encoding": "utf-8",
            "format": fmt,
            "datefmt": datefmt
        },
    }


class LogSystem:
    """
    Owns the QueueListener and, once enabled, the crash log.

    Usage:
        logs = LogSystem("cubespin")
        logs.enable_crash_log()
        ...
        logs.stop()
    """
    def __init__(self, app_name: str, level: str | None = None):
        self.app_name = app_name
        cfg = build_config(app_name, level)
        # Not a dictConfig key, consumed below.
        file_settings = cfg.pop("_file_settings")
        logging.config.dictConfig(cfg)

        qh: QueueHandler | None = None
        for h in logging.getLogger().handlers:
            if isinstance(h, QueueHandler):
                qh = h
                break
        if qh is None:
            raise RuntimeError("QueueHandler not found.")

        self._console_handler = None
        root_logger = logging.getLogger()
        for h in root_logger.handlers:
            if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler):
                self._console_handler = h
                break

        self.log_file = Path(file_settings["filename"])
        self._file_handler = RotatingFileHandler(
            self.log_file,
            maxBytes=file_settings["maxBytes"],
            backupCount=file_settings["backupCount"],
            encoding=file_settings["encoding"],
        )
        self._file_handler.setFormatter(logging.Formatter(file_settings["format"], file_settings["datefmt"]))

        self.listener = QueueListener(qh.queue, self._file_handler, respect_handler_level=True)
        self.listener.start()

        self.crash_file: Path | None = None
        self._crash_fh = None
        self._previous_excepthook = None

    @classmethod
    def from_levels(cls, app_name: str, root_level: int, console_level: int | None = None,
                    file_level: int | None = None) -> LogSystem:
        """Create the log system and apply numeric levels right away."""
        logs = cls(app_name, logging.getLevelName(root_level))
        logs.apply_levels(root_level, console_level, file_level)
        return logs

    def apply_levels(self, root_level: int, console_level: int | None = None, file_level: int | None = None) -> None:
        """Update levels after startup."""
        logging.getLogger().setLevel(root_level)
        if self._console_handler is not None and console_level is not None:
            self._console_handler.setLevel(console_level)
        if file_level is not None:
            self._file_handler.setLevel(file_level)

    def enable_crash_log(self) -> Path | None:
        """
        Crash diagnostics beside the log file.
        - faulthandler writes native crashes to <app_name>.crash.log
        - uncaught exceptions are logged as CRITICAL
        :return: crash file path, or None when it cannot be opened
        """
        crash_file = self.log_file.with_name(f"{self.app_name}.crash.log")
        try:
            self._crash_fh = open(crash_file, "w", encoding="utf-8")
        except OSError:
            logging.getLogger(__name__).warning("Crash log unavailable: %s", crash_file)
            return None
        faulthandler.enable(file=self._crash_fh)
        self.crash_file = crash_file

        def _excepthook(exc_type, exc, tb):
            logging.critical(
                "Uncaught exception: \n%s",
                "".join(traceback.format_exception(exc_type, exc, tb)),
            )

        self._previous_excepthook = sys.excepthook
        sys.excepthook = _excepthook

        logging.info("%s starting: executable=%s cwd=%s", self.app_name, sys.executable, os.getcwd())
        logging.info("log_file=%s crash_file=%s", self.log_file, crash_file)
        return crash_file

    def stop(self):
        self.listener.stop()
        self._file_handler.close()
        if self._crash_fh is not None:
            faulthandler.disable()
            sys.excepthook = self._previous_excepthook
            self._crash_fh.close()
            self._crash_fh = None


def apply_logging_policy(logs: LogSystem, settings: AppSettingsManager) -> None:
    """Switch log levels according to the run mode."""
    if settings.run_mode in (RunMode.DEVELOPMENT, RunMode.VERBOSE):
        root = logging.DEBUG
        console = logging.DEBUG
        file = logging.DEBUG
    else:
        root = level_from_name(settings.logging_level)
        console = logging.INFO
        file = logging.DEBUG

    logs.apply_levels(root_level=root, console_level=console, file_level=file)
