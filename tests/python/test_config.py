from __future__ import annotations

import pytest

from crowdfield.config import AppConfig, SimulationConfig, load_config, validate_config
from crowdfield.errors import ConfigurationError
from crowdfield.sim.core.world import World


@pytest.mark.config_change
def test_default_config_values():
    config = SimulationConfig()

    assert config.agent_footprint_size == 8.0
    assert config.plane_size == 100.0
    assert config.marker_count == 10_000
    assert config.agent_count == 20
    assert config.max_speed == 0.1
    assert config.patrol_arrival_distance_sq == 10.0
    assert AppConfig().broadcast_interval == 2


def test_cell_size_defaults_to_capture_radius():
    config = SimulationConfig(agent_footprint_size=8.0, plane_size=100.0)

    assert config.capture_radius == 4.0
    assert config.resolved_cell_size == 4.0
    assert config.resolution == 25
    assert validate_config(config) == 25


def test_explicit_cell_size_is_used():
    config = SimulationConfig(agent_footprint_size=10.0, plane_size=100.0, cell_size=10.0)

    assert config.resolved_cell_size == 10.0
    assert validate_config(config) == 10


@pytest.mark.parametrize(
    "overrides",
    [
        {"plane_size": 100.0, "agent_footprint_size": 6.0},
        {"plane_size": 100.0, "cell_size": 7.0, "agent_footprint_size": 6.0},
        {"plane_size": 0.0},
        {"agent_footprint_size": -1.0},
        {"cell_size": 2.0},
        {"max_speed": 5.0},
        {"min_speed": -0.1},
        {"min_speed": 0.2, "max_speed": 0.1},
        {"marker_count": -1},
        {"agent_count": -1},
        {"patrol_arrival_distance_sq": -1.0},
        {"scenario": "spiral"},
    ],
)
def test_invalid_configurations_are_rejected(overrides):
    config = SimulationConfig(**overrides)

    with pytest.raises(ConfigurationError):
        validate_config(config)
    with pytest.raises(ConfigurationError):
        World(config)


def test_load_config_rejects_unknown_keys():
    with pytest.raises(ConfigurationError, match="warp_speed"):
        load_config({"warp_speed": 3})
    with pytest.raises(ConfigurationError):
        load_config(["not", "a", "mapping"])


def test_from_yaml_reads_and_validates(tmp_path):
    path = tmp_path / "crowd.yaml"
    path.write_text(
        "agent_footprint_size: 10.0\n"
        "plane_size: 50.0\n"
        "marker_count: 500\n"
        "scenario: corners\n"
        "patrol_mode_enabled: true\n"
    )

    config = SimulationConfig.from_yaml(path)

    assert config.plane_size == 50.0
    assert config.resolution == 10
    assert config.scenario == "corners"
    assert config.patrol_mode_enabled is True

    path.write_text("plane_size: 51.0\nagent_footprint_size: 10.0\n")
    with pytest.raises(ConfigurationError):
        SimulationConfig.from_yaml(path)


def test_empty_yaml_gives_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")

    assert SimulationConfig.from_yaml(path) == SimulationConfig()


@pytest.mark.parametrize(
    "raw",
    [
        {"plane_size": "100"},
        {"marker_count": 10.5},
        {"agent_count": True},
        {"max_speed": None},
        {"patrol_mode_enabled": "yes"},
        {"scenario": 3},
    ],
)
def test_load_config_rejects_wrong_value_types(raw):
    with pytest.raises(ConfigurationError):
        load_config(raw)


def test_load_config_accepts_integer_sizes_and_null_cell_size():
    config = load_config({"plane_size": 100, "agent_footprint_size": 8, "cell_size": None})

    assert config.plane_size == 100.0
    assert isinstance(config.plane_size, float)
    assert config.cell_size is None
    assert config.resolution == 25


def test_from_yaml_quoted_number_is_a_configuration_error(tmp_path):
    path = tmp_path / "quoted.yaml"
    path.write_text('plane_size: "100"\n')

    with pytest.raises(ConfigurationError, match="plane_size"):
        SimulationConfig.from_yaml(path)
