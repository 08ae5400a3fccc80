from __future__ import annotations

import pytest
from pygame.math import Vector2

from crowdfield.rng import DeterministicRng
from crowdfield.scenarios import Scenario, generate_pairs


def test_crossing_splits_agents_between_edges():
    pairs = generate_pairs(Scenario.CROSSING, 5, 100.0, 8.0, DeterministicRng(1))

    assert len(pairs) == 5
    right_to_left = pairs[:3]
    left_to_right = pairs[3:]
    for start, goal in right_to_left:
        assert start.x == 99.0
        assert goal.x == 0.0
    for start, goal in left_to_right:
        assert start.x == 0.0
        assert goal.x == 99.0
    for start, goal in pairs:
        assert 0.0 <= start.y <= 99.0
        assert 0.0 <= goal.y <= 99.0


def test_crossing_is_deterministic_per_seed():
    first = generate_pairs("crossing", 6, 100.0, 8.0, DeterministicRng(4))
    second = generate_pairs("crossing", 6, 100.0, 8.0, DeterministicRng(4))

    assert first == second


def test_corners_head_to_opposite_corner():
    pairs = generate_pairs(Scenario.CORNERS, 4, 100.0, 8.0, DeterministicRng(0))

    assert pairs == [
        (Vector2(99.0, 99.0), Vector2(0.0, 0.0)),
        (Vector2(0.0, 0.0), Vector2(99.0, 99.0)),
        (Vector2(0.0, 99.0), Vector2(99.0, 0.0)),
        (Vector2(99.0, 0.0), Vector2(0.0, 99.0)),
    ]


def test_corners_step_inward_after_each_round():
    pairs = generate_pairs(Scenario.CORNERS, 5, 100.0, 8.0, DeterministicRng(0))

    start, goal = pairs[4]
    assert goal == Vector2(0.0, 0.0)
    assert start.distance_to(Vector2(99.0, 99.0)) == pytest.approx(8.0)


def test_unknown_scenario_is_rejected():
    with pytest.raises(ValueError):
        generate_pairs("spiral", 2, 100.0, 8.0, DeterministicRng(0))
