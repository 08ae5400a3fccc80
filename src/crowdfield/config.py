from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Optional

import yaml

from .errors import ConfigurationError
from .scenarios import Scenario
from .sim.core.spatial_grid import grid_resolution


@dataclass
class SimulationConfig:
    agent_footprint_size: float = 8.0
    plane_size: float = 100.0
    # Defaults to half the footprint, i.e. the capture radius.
    cell_size: Optional[float] = None
    marker_count: int = 10_000
    scenario: str = Scenario.CROSSING.value
    agent_count: int = 20
    patrol_mode_enabled: bool = False
    patrol_arrival_distance_sq: float = 10.0
    # One tick never moves an agent further than its capture radius.
    max_speed: float = 0.1
    min_speed: float = 0.0
    elevation: float = 0.0
    seed: int = 42
    config_version: str = "v1"

    @property
    def capture_radius(self) -> float:
        return self.agent_footprint_size / 2.0

    @property
    def resolved_cell_size(self) -> float:
        return self.capture_radius if self.cell_size is None else self.cell_size

    @property
    def resolution(self) -> int:
        return grid_resolution(self.plane_size, self.resolved_cell_size)

    @staticmethod
    def from_yaml(path: Path) -> "SimulationConfig":
        data = yaml.safe_load(Path(path).read_text()) or {}
        return load_config(data)


@dataclass
class AppConfig:
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    broadcast_interval: int = 2
    frame_interval: float = 1.0 / 60.0
    # Unacknowledged snapshots kept for late or slow clients; oldest are dropped first.
    snapshot_queue_limit: int = 32


_FLOAT_KEYS = {
    "agent_footprint_size",
    "plane_size",
    "cell_size",
    "patrol_arrival_distance_sq",
    "max_speed",
    "min_speed",
    "elevation",
}
_INT_KEYS = {"marker_count", "agent_count", "seed"}
_BOOL_KEYS = {"patrol_mode_enabled"}
_STR_KEYS = {"scenario", "config_version"}


def _coerce_value(key: str, value):
    if key == "cell_size" and value is None:
        return None
    # bool is an int subclass; YAML yes/no must not pass as a number.
    if key in _FLOAT_KEYS and isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    if key in _INT_KEYS and isinstance(value, int) and not isinstance(value, bool):
        return value
    if key in _BOOL_KEYS and isinstance(value, bool):
        return value
    if key in _STR_KEYS and isinstance(value, str):
        return value
    if key in _FLOAT_KEYS:
        expected = "a number"
    elif key in _INT_KEYS:
        expected = "an integer"
    elif key in _BOOL_KEYS:
        expected = "a boolean"
    else:
        expected = "a string"
    raise ConfigurationError(f"{key} must be {expected}, got {value!r}")


def load_config(raw: dict) -> SimulationConfig:
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Configuration must be a mapping, got {type(raw).__name__}")
    known = {f.name for f in fields(SimulationConfig)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ConfigurationError(f"Unknown configuration keys: {', '.join(unknown)}")
    config = SimulationConfig(**{key: _coerce_value(key, value) for key, value in raw.items()})
    validate_config(config)
    return config


def validate_config(config: SimulationConfig) -> int:
    """Check every construction-time constraint and return the grid resolution.

    Raises ConfigurationError on the first violated constraint.
    """

    if config.agent_footprint_size <= 0:
        raise ConfigurationError(f"agent_footprint_size must be positive, got {config.agent_footprint_size}")
    if config.plane_size <= 0:
        raise ConfigurationError(f"plane_size must be positive, got {config.plane_size}")
    cell_size = config.resolved_cell_size
    if cell_size <= 0:
        raise ConfigurationError(f"cell_size must be positive, got {cell_size}")
    resolution = grid_resolution(config.plane_size, cell_size)
    # The 3x3 cell query only sees markers within one cell of the agent's cell.
    if config.capture_radius > cell_size:
        raise ConfigurationError(
            f"capture radius {config.capture_radius} exceeds cell size {cell_size}; "
            "markers in range could fall outside the queried cells"
        )
    if config.min_speed < 0:
        raise ConfigurationError(f"min_speed must not be negative, got {config.min_speed}")
    if config.max_speed < config.min_speed:
        raise ConfigurationError(f"max_speed {config.max_speed} is below min_speed {config.min_speed}")
    if config.max_speed > config.capture_radius:
        raise ConfigurationError(
            f"max_speed {config.max_speed} exceeds capture radius {config.capture_radius}; "
            "agents would outrun their own markers"
        )
    if config.marker_count < 0:
        raise ConfigurationError(f"marker_count must not be negative, got {config.marker_count}")
    if config.agent_count < 0:
        raise ConfigurationError(f"agent_count must not be negative, got {config.agent_count}")
    if config.patrol_arrival_distance_sq < 0:
        raise ConfigurationError(
            f"patrol_arrival_distance_sq must not be negative, got {config.patrol_arrival_distance_sq}"
        )
    try:
        Scenario(config.scenario)
    except ValueError:
        choices = ", ".join(s.value for s in Scenario)
        raise ConfigurationError(f"Unknown scenario {config.scenario!r} (expected one of: {choices})") from None
    return resolution
