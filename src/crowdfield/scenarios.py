from __future__ import annotations

from enum import Enum
from typing import List, Tuple

from pygame.math import Vector2

from .rng import DeterministicRng

StartGoalPair = Tuple[Vector2, Vector2]

# Agents start this far inside the plane edge so their first query stays in bounds.
_EDGE_INSET = 1.0


class Scenario(str, Enum):
    CROSSING = "crossing"
    CORNERS = "corners"


def generate_pairs(
    scenario: Scenario | str,
    agent_count: int,
    plane_size: float,
    footprint_size: float,
    rng: DeterministicRng,
) -> List[StartGoalPair]:
    scenario = Scenario(scenario)
    if scenario is Scenario.CROSSING:
        return _crossing(agent_count, plane_size, rng)
    return _corners(agent_count, plane_size, footprint_size)


def _crossing(agent_count: int, plane_size: float, rng: DeterministicRng) -> List[StartGoalPair]:
    far = plane_size - _EDGE_INSET
    pairs: List[StartGoalPair] = []
    right_to_left = (agent_count + 1) // 2
    for _ in range(right_to_left):
        start = Vector2(far, rng.next_range(0.0, far))
        goal = Vector2(0.0, rng.next_range(0.0, far))
        pairs.append((start, goal))
    for _ in range(agent_count - right_to_left):
        start = Vector2(0.0, rng.next_range(0.0, far))
        goal = Vector2(far, rng.next_range(0.0, far))
        pairs.append((start, goal))
    return pairs


def _corners(agent_count: int, plane_size: float, footprint_size: float) -> List[StartGoalPair]:
    near = 0.0
    far = plane_size - _EDGE_INSET
    corners = [
        (Vector2(far, far), Vector2(near, near)),
        (Vector2(near, near), Vector2(far, far)),
        (Vector2(near, far), Vector2(far, near)),
        (Vector2(far, near), Vector2(near, far)),
    ]
    pairs: List[StartGoalPair] = []
    for index in range(agent_count):
        start, goal = corners[index % 4]
        ring = index // 4
        if ring:
            # Step inward along the start->goal diagonal so later rounds do not stack.
            step = (goal - start).normalize() * (footprint_size * ring)
            start = start + step
        pairs.append((start.copy(), goal.copy()))
    return pairs
