from __future__ import annotations
from dataclasses import dataclass, asdict, field
from enum import Enum
from typing import Any, Dict
from PySide6.QtCore import QSettings
import logging

logger = logging.getLogger(__name__)


class RunMode(str, Enum):
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    VERBOSE = "verbose"

    def __str__(self):
        return self.value
    def __repr__(self):
        return self.value


# ----------------------
# Defaults
# ----------------------
DEFAULTS: Dict[str, Any] = {
    "general": {
        "run_mode": RunMode.PRODUCTION.value,
        "logging_level": "INFO",  # "DEBUG", "INFO", "WARNING", "ERROR"
    },
    "controller": {
        "standard_scale": -5.0,
        "min_scale": -10.0,
        "max_scale": -3.0,
        "fling_damping": 1.0,
        "decay_mode": "frame",  # "frame" | "wall_clock"
        "reference_fps": 60.0,
    },
}

_SECTIONS = ("general", "controller")
_DECAY_MODES = ("frame", "wall_clock")

# ---------------------
# Data model
# ---------------------
@dataclass
class GeneralConfig:
    run_mode: RunMode = RunMode.PRODUCTION
    logging_level: str = "INFO"

@dataclass
class ControllerConfig:
    standard_scale: float = -5.0
    min_scale: float = -10.0
    max_scale: float = -3.0
    fling_damping: float = 1.0
    decay_mode: str = "frame"
    reference_fps: float = 60.0

@dataclass
class AppSettingsData:
    general: GeneralConfig = field(default_factory=GeneralConfig)
    controller: ControllerConfig = field(default_factory=ControllerConfig)

# ----------------------
# Utility
# ----------------------
def _validate_run_mode(v: Any) -> RunMode:
    if isinstance(v, RunMode):
        return v
    mode = str(v).strip().lower()
    try:
        return RunMode(mode)
    except ValueError:
        return RunMode(DEFAULTS["general"]["run_mode"])

def _validate_logging_level(v: str) -> str:
    v = str(v).upper()
    return v if v in ("DEBUG", "INFO", "WARNING", "ERROR") else "INFO"

def _validate_float(v: Any, default: float) -> float:
    try:
        return float(v)
    except (TypeError, ValueError):
        return default

def _validate_fling_damping(v: Any) -> float:
    f = _validate_float(v, DEFAULTS["controller"]["fling_damping"])
    return min(1.0, max(0.0, f))

def _validate_decay_mode(v: Any) -> str:
    mode = str(v).strip().lower()
    return mode if mode in _DECAY_MODES else DEFAULTS["controller"]["decay_mode"]

def _validate_reference_fps(v: Any) -> float:
    f = _validate_float(v, DEFAULTS["controller"]["reference_fps"])
    return f if (0 < f <= 1000) else DEFAULTS["controller"]["reference_fps"]

def _validate_scales(standard: Any, minimum: Any, maximum: Any) -> tuple[float, float, float]:
    """Inconsistent bounds fall back to the default triple."""
    d = DEFAULTS["controller"]
    s = _validate_float(standard, d["standard_scale"])
    lo = _validate_float(minimum, d["min_scale"])
    hi = _validate_float(maximum, d["max_scale"])
    if not lo <= s <= hi:
        logger.warning("Inconsistent scale settings (%s, %s, %s); using defaults", s, lo, hi)
        return d["standard_scale"], d["min_scale"], d["max_scale"]
    return s, lo, hi


# ---------------------
# AppSettingsManager
# ---------------------
class AppSettingsManager:
    """
    Manages the application settings.
    The in-code DEFAULTS are the base, QSettings values override them.
    Values are validated on load and fall back when out of range.
    set_* saves to QSettings immediately.
    """
    def __init__(self, org_domain: str = "cubespin.org", app_name: str = "cubespin"):
        self._settings = QSettings(org_domain, app_name)
        self._data = self._load_effective()

    # Read
    @property
    def data(self) -> AppSettingsData:
        return self._data

    @property
    def run_mode(self) -> RunMode:
        return self._data.general.run_mode

    @property
    def logging_level(self) -> str:
        return self._data.general.logging_level

    @property
    def fling_damping(self) -> float:
        return self._data.controller.fling_damping

    @property
    def decay_mode(self) -> str:
        return self._data.controller.decay_mode

    # Write
    def set_run_mode(self, v: str | RunMode) -> None:
        mode = _validate_run_mode(v)
        self._settings.setValue("general/run_mode", mode.value)
        self._data.general.run_mode = mode

    def set_logging_level(self, v: str) -> None:
        level = _validate_logging_level(v)
        self._settings.setValue("general/logging_level", level)
        self._data.general.logging_level = level

    def set_scales(self, standard: float, minimum: float, maximum: float) -> None:
        if not minimum <= standard <= maximum:
            raise ValueError(f"Scale bounds must satisfy min <= standard <= max: "
                             f"({minimum}, {standard}, {maximum})")
        self._settings.setValue("controller/standard_scale", float(standard))
        self._settings.setValue("controller/min_scale", float(minimum))
        self._settings.setValue("controller/max_scale", float(maximum))
        c = self._data.controller
        c.standard_scale, c.min_scale, c.max_scale = float(standard), float(minimum), float(maximum)

    def set_fling_damping(self, v: float) -> None:
        damping = _validate_fling_damping(v)
        self._settings.setValue("controller/fling_damping", damping)
        self._data.controller.fling_damping = damping

    def set_decay_mode(self, v: str) -> None:
        mode = _validate_decay_mode(v)
        self._settings.setValue("controller/decay_mode", mode)
        self._data.controller.decay_mode = mode

    def set_reference_fps(self, v: float) -> None:
        fps = _validate_reference_fps(v)
        self._settings.setValue("controller/reference_fps", fps)
        self._data.controller.reference_fps = fps

    # Reset
    def reset_all_to_default(self) -> None:
        """Remove every user setting."""
        for section in _SECTIONS:
            self._settings.remove(section)
        self._data = self._load_effective()

    def reset_section(self, section: str) -> None:
        """Reset one section to the defaults."""
        if section not in _SECTIONS:
            raise ValueError(f"Invalid section: {section}")
        self._settings.remove(section)
        self._data = self._load_effective()

    def to_dict(self) -> dict[str, Any]:
        data = {
            "general": asdict(self._data.general),
            "controller": asdict(self._data.controller),
        }
        data["general"]["run_mode"] = self._data.general.run_mode.value
        return data

    # ---------- internals ---------------
    def _load_effective(self) -> AppSettingsData:
        """DEFAULTS overridden by QSettings, validated and turned into the model."""
        merged = self._apply_qsettings_overrides(DEFAULTS)
        return self._make_model_from(merged)

    def _apply_qsettings_overrides(self, base: dict[str, Any]) -> dict[str, Any]:
        """
        Apply QSettings overrides on top of the dict based settings.
        :param base:
        :return: merged settings dict
        """
        # general
        g = dict(base.get("general", {}))
        v = self._settings.value("general/run_mode", None)
        if v is not None:
            g["run_mode"] = _validate_run_mode(v).value
        v = self._settings.value("general/logging_level", None)
        if v is not None:
            g["logging_level"] = _validate_logging_level(v)

        # controller
        c = dict(base.get("controller", {}))
        for key in c:
            v = self._settings.value(f"controller/{key}", None)
            if v is not None:
                c[key] = v

        return {"general": g, "controller": c}

    def _make_model_from(self, merged: dict[str, Any]) -> AppSettingsData:
        """
        Build the validated model from the merged dict.
        :param merged:
        :return: AppSettingsData
        """
        g = merged.get("general", {})
        c = merged.get("controller", {})
        d = DEFAULTS["controller"]
        standard, minimum, maximum = _validate_scales(
            c.get("standard_scale", d["standard_scale"]),
            c.get("min_scale", d["min_scale"]),
            c.get("max_scale", d["max_scale"]),
        )
        return AppSettingsData(
            general=GeneralConfig(
                run_mode=_validate_run_mode(g.get("run_mode", DEFAULTS["general"]["run_mode"])),
                logging_level=_validate_logging_level(g.get("logging_level", DEFAULTS["general"]["logging_level"])),
            ),
            controller=ControllerConfig(
                standard_scale=standard,
                min_scale=minimum,
                max_scale=maximum,
                fling_damping=_validate_fling_damping(c.get("fling_damping", d["fling_damping"])),
                decay_mode=_validate_decay_mode(c.get("decay_mode", d["decay_mode"])),
                reference_fps=_validate_reference_fps(c.get("reference_fps", d["reference_fps"])),
            ),
        )
