"""
Centralized configuration manager.

One YAML file (config/config.yaml) holds every tunable. Values are read
through dot paths, e.g. config.get("controller.rotation_alpha"), and
command-line flags are merged on top with update().

Validation only warns. Components read their settings through
config_value(), which falls back to the component's default (and logs a
warning) when a value has the wrong type or breaks its bounds.

The default file is config/config.yaml in the working directory, or the
one in the source checkout when the working directory has none.
"""

import os
import math
import logging
from typing import NamedTuple, Optional

import yaml

logger = logging.getLogger(__name__)

_SOURCE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))
CONFIG_RELPATH = os.path.join("config", "config.yaml")


class FieldRule(NamedTuple):
    """Expected type and optional inclusive bounds of one config value."""
    kind: type
    lo: Optional[float] = None
    hi: Optional[float] = None


_RULES = {
    "camera": {
        "device_id": FieldRule(int, 0),
        "width": FieldRule(int, 1),
        "height": FieldRule(int, 1),
        "fps": FieldRule(int, 1),
    },
    "detector": {
        "delegate": FieldRule(str),
        "min_detection_confidence": FieldRule(float, 0.0, 1.0),
        "min_presence_confidence": FieldRule(float, 0.0, 1.0),
        "min_tracking_confidence": FieldRule(float, 0.0, 1.0),
    },
    "controller": {
        "azimuth_gain": FieldRule(float),
        "polar_gain": FieldRule(float),
        "rotation_alpha": FieldRule(float, 0.0, 1.0),
        "zoom_alpha": FieldRule(float, 0.0, 1.0),
        "polar_epsilon": FieldRule(float, 0.0, 1.5),
        "pinch_min": FieldRule(float, 0.0),
        "pinch_max": FieldRule(float, 0.0),
        "zoom_near": FieldRule(float, 0.0),
        "zoom_far": FieldRule(float, 0.0),
    },
    "display": {
        "refresh_hz": FieldRule(float, 1.0),
        "width": FieldRule(int, 1),
        "height": FieldRule(int, 1),
        "fov_deg": FieldRule(float, 1.0, 179.0),
    },
}


def _check_value(path: str, value, rule: FieldRule) -> Optional[str]:
    """Return a problem description, or None if the value is acceptable."""
    if isinstance(value, bool):
        is_kind = rule.kind is bool
    elif rule.kind is float:
        is_kind = isinstance(value, (int, float))
    else:
        is_kind = isinstance(value, rule.kind)
    if not is_kind:
        return f"{path}: expected {rule.kind.__name__}, got {type(value).__name__} ({value!r})"

    if rule.lo is not None and value < rule.lo:
        return f"{path}: {value!r} is below {rule.lo}"
    if rule.hi is not None and value > rule.hi:
        return f"{path}: {value!r} is above {rule.hi}"
    return None


def _convert(value, kind):
    if kind is bool:
        if not isinstance(value, bool):
            raise TypeError(f"expected bool, got {value!r}")
        return value
    if kind in (int, float):
        if isinstance(value, bool):
            raise TypeError(f"expected {kind.__name__}, got bool")
        converted = kind(value)
        if kind is float and not math.isfinite(converted):
            raise ValueError(f"{value!r} is not finite")
        return converted
    return kind(value)


def config_value(section: dict, section_name: str, key: str, default):
    """Read section[key] converted to the type of default.

    A missing or null value gives the default silently. A value that does not
    convert, or that breaks the rule for section_name.key, gives the default
    and logs a warning.
    """
    value = section.get(key)
    if value is None:
        return default

    path = f"{section_name}.{key}"
    rule = _RULES.get(section_name, {}).get(key)
    kind = rule.kind if rule else type(default)
    try:
        converted = _convert(value, kind)
    except (TypeError, ValueError, OverflowError) as e:
        logger.warning("Config %s: %s, using default %r", path, e, default)
        return default

    if rule is not None:
        problem = _check_value(path, converted, rule)
        if problem:
            logger.warning("Config %s, using default %r", problem, default)
            return default
    return converted


def default_config_path() -> str:
    """config/config.yaml in the working directory, else the source checkout's."""
    local = os.path.join(os.getcwd(), CONFIG_RELPATH)
    if os.path.isfile(local):
        return local
    return os.path.join(_SOURCE_DIR, CONFIG_RELPATH)


def _deep_merge(base: dict, override: dict) -> dict:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(merged.get(key), dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class Config:
    """Singleton configuration manager."""

    _instance = None
    _data = {}
    _path = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def load(self, config_path=None):
        """Load configuration from a YAML file (missing file = all defaults)."""
        config_path = config_path or default_config_path()
        self._path = config_path

        try:
            with open(config_path, "r") as f:
                self._data = yaml.safe_load(f) or {}
            logger.info("Loaded config from %s", config_path)
        except FileNotFoundError:
            logger.warning("Config file not found: %s, using defaults", config_path)
            self._data = {}

        for problem in self.validate():
            logger.warning("Config validation: %s", problem)
        return self

    def update(self, overrides: dict):
        """Merge overrides (e.g. from the command line) into the loaded config."""
        self._data = _deep_merge(self._data, overrides)

    def validate(self) -> list:
        """Check known fields against their rules.

        Returns:
            List of human-readable problems (empty when the config is clean)
        """
        problems = []
        for section_name, rules in _RULES.items():
            section = self._data.get(section_name)
            if section is None:
                problems.append(f"Missing config section: '{section_name}'")
                continue
            if not isinstance(section, dict):
                problems.append(f"Section '{section_name}' should be a mapping, "
                                f"got {type(section).__name__}")
                continue
            for field_name, rule in rules.items():
                if field_name not in section:
                    continue
                problem = _check_value(f"{section_name}.{field_name}", section[field_name], rule)
                if problem:
                    problems.append(problem)

        # A zero-width pinch range makes zoom undefined
        controller = self._data.get("controller")
        if isinstance(controller, dict) and "pinch_min" in controller and "pinch_max" in controller:
            if controller["pinch_min"] == controller["pinch_max"]:
                problems.append("controller.pinch_min equals pinch_max, pinch zoom is disabled")

        return problems

    def get(self, key_path: str, default=None):
        """Get nested config value using dot notation: 'camera.width'."""
        value = self._data
        for key in key_path.split("."):
            if not isinstance(value, dict) or key not in value:
                return default
            value = value[key]
        return value

    def get_section(self, section: str) -> dict:
        """Get an entire config section ({} if absent or empty)."""
        value = self._data.get(section)
        return value if isinstance(value, dict) else {}

    @property
    def camera(self) -> dict:
        return self.get_section("camera")

    @property
    def detector(self) -> dict:
        return self.get_section("detector")

    @property
    def controller(self) -> dict:
        return self.get_section("controller")

    @property
    def galaxy(self) -> dict:
        return self.get_section("galaxy")

    @property
    def starfield(self) -> dict:
        return self.get_section("starfield")

    @property
    def display(self) -> dict:
        return self.get_section("display")

    @property
    def logging(self) -> dict:
        return self.get_section("logging")

    @property
    def path(self) -> Optional[str]:
        """File the config was last loaded from."""
        return self._path

    @classmethod
    def reset(cls):
        """Reset singleton instance (for testing)."""
        cls._instance = None
        cls._data = {}
        cls._path = None
