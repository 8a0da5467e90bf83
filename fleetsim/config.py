"""
Simulator configuration, loaded from YAML.

Every probability and bound used by the motion engine lives in MotionConfig
so scenarios can be tuned without code changes. Missing keys keep their
defaults; unknown keys and values of the wrong type are rejected.
"""

import dataclasses
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = os.environ.get("FLEETSIM_CONFIG", "config/fleet.yaml")


class ConfigError(ValueError):
    """Invalid configuration file or value."""


@dataclass(frozen=True)
class MotionConfig:
    """Speed dynamics, arrival handling and status thresholds."""
    speed_limit: float = 100.0           # km/h, hard cap
    jitter_pct: float = 0.05             # uniform multiplicative jitter
    traffic_probability: float = 0.05
    traffic_factor: float = 0.5
    traffic_floor: float = 10.0
    clear_road_probability: float = 0.03
    clear_road_factor: float = 1.2
    clear_road_cap: float = 60.0
    highway_probability: float = 0.02
    highway_min: float = 85.0
    highway_max: float = 98.0
    normal_min_speed: float = 5.0
    normal_max_speed: float = 98.0
    arrival_radius_m: float = 100.0
    slowdown_radius_m: float = 500.0
    slowdown_speed: float = 20.0
    stationary_speed: float = 5.0
    history_limit: int = 450             # 30 min at a 4 s tick
    temperature_drift: float = 0.25      # +/- degrees C per tick
    temperature_min: float = 0.0
    temperature_max: float = 10.0
    stall_speed: float = 8.0
    stall_minutes: float = 10.0


@dataclass(frozen=True)
class SimulatorConfig:
    """Host-level settings for a simulator run."""
    tick_interval_s: float = 4.0
    clock_speed: float = 1.0
    fleet_size: int = 12
    center: tuple[float, float] = (12.9716, 77.5946)  # Bangalore
    spread_deg: float = 0.2
    seed: int | None = None
    osrm_url: str = "http://router.project-osrm.org"
    route_timeout_s: float = 10.0
    ws_port: int = 8765
    health_port: int = 8766
    transports: tuple[str, ...] = ("ws", "console")
    motion: MotionConfig = field(default_factory=MotionConfig)


def _coerce(name: str, value: Any, default: Any) -> Any:
    """Coerce a YAML value to the type of the default, or raise ConfigError."""
    if isinstance(default, bool):
        if not isinstance(value, bool):
            raise ConfigError(f"{name}: expected bool, got {value!r}")
        return value
    if isinstance(default, int) and not isinstance(default, bool):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(f"{name}: expected int, got {value!r}")
        return value
    if isinstance(default, float):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigError(f"{name}: expected number, got {value!r}")
        return float(value)
    if isinstance(default, str):
        if not isinstance(value, str):
            raise ConfigError(f"{name}: expected string, got {value!r}")
        return value
    if isinstance(default, tuple):
        if isinstance(value, str):
            value = [v.strip() for v in value.split(",") if v.strip()]
        if not isinstance(value, (list, tuple)):
            raise ConfigError(f"{name}: expected list, got {value!r}")
        return tuple(value)
    return value


def _build(cls, data: dict[str, Any], prefix: str = ""):
    if not isinstance(data, dict):
        raise ConfigError(f"{prefix or 'config'}: expected mapping, got {type(data).__name__}")
    defaults = cls()
    known = {f.name for f in dataclasses.fields(cls)}
    unknown = set(data) - known
    if unknown:
        raise ConfigError(f"Unknown config keys: {', '.join(sorted(prefix + k for k in unknown))}")

    kwargs: dict[str, Any] = {}
    for key, value in data.items():
        default = getattr(defaults, key)
        name = prefix + key
        if key == "motion":
            kwargs[key] = _build(MotionConfig, value or {}, prefix="motion.")
        elif key == "seed":
            if value is not None and (isinstance(value, bool) or not isinstance(value, int)):
                raise ConfigError(f"{name}: expected int or null, got {value!r}")
            kwargs[key] = value
        elif key == "center":
            if not isinstance(value, (list, tuple)) or len(value) != 2:
                raise ConfigError(f"{name}: expected [lat, lng], got {value!r}")
            kwargs[key] = (float(value[0]), float(value[1]))
        else:
            kwargs[key] = _coerce(name, value, default)
    return cls(**kwargs)


def validate_motion(motion: MotionConfig) -> None:
    """Reject bound combinations the motion engine cannot honour."""
    for name in ("traffic_probability", "clear_road_probability", "highway_probability"):
        p = getattr(motion, name)
        if not 0.0 <= p <= 1.0:
            raise ConfigError(f"motion.{name}: probability must be in [0, 1], got {p}")
    if motion.normal_min_speed > motion.normal_max_speed:
        raise ConfigError("motion.normal_min_speed exceeds motion.normal_max_speed")
    if motion.highway_min > motion.highway_max:
        raise ConfigError("motion.highway_min exceeds motion.highway_max")
    if motion.speed_limit <= 0:
        raise ConfigError("motion.speed_limit must be positive")
    if motion.history_limit < 0:
        raise ConfigError("motion.history_limit must not be negative")
    if motion.temperature_min > motion.temperature_max:
        raise ConfigError("motion.temperature_min exceeds motion.temperature_max")


def validate_config(config: SimulatorConfig) -> SimulatorConfig:
    """Check host-level bounds and the motion block. Returns config unchanged."""
    if not config.tick_interval_s > 0:
        raise ConfigError(f"tick_interval_s must be positive, got {config.tick_interval_s}")
    if not config.clock_speed > 0:
        raise ConfigError(f"clock_speed must be positive, got {config.clock_speed}")
    if config.fleet_size < 0:
        raise ConfigError("fleet_size must not be negative")
    validate_motion(config.motion)
    return config


def apply_overrides(config: SimulatorConfig, **overrides: Any) -> SimulatorConfig:
    """Replace the given fields, skipping None, and validate the result."""
    changes = {k: v for k, v in overrides.items() if v is not None}
    return validate_config(dataclasses.replace(config, **changes))


def parse_config(data: dict[str, Any] | None) -> SimulatorConfig:
    """Build a SimulatorConfig from an already-parsed mapping."""
    return validate_config(_build(SimulatorConfig, data or {}))


def load_config(path: str | Path | None = None) -> SimulatorConfig:
    """Load configuration from YAML. A missing default file yields defaults."""
    explicit = path is not None
    config_path = Path(path if explicit else DEFAULT_CONFIG_PATH)
    if not config_path.exists():
        if explicit:
            raise ConfigError(f"Config file not found: {config_path}")
        logger.info(f"No config file at {config_path}, using defaults")
        return SimulatorConfig()

    try:
        with open(config_path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

    config = parse_config(data)
    logger.info(f"Loaded config from {config_path}")
    return config
