from __future__ import annotations

import math
from typing import Sequence

from pygame.math import Vector2

from ..core.agent import Agent
from ..core.marker import Marker
from ..utils.math2d import _clamp_length_range_xy, _cos_angle_xy, _is_degenerate_xy


def marker_weight(position: Vector2, goal: Vector2, marker: Marker) -> float:
    """Weight of one owned marker in the agent's velocity.

    Markers lying toward the goal weigh up to 2, markers behind the agent
    weigh close to 0, and nearer markers weigh more. A marker on top of the
    agent, or an agent sitting on its goal, has no direction and weighs 0.
    """

    from_x = position.x - marker.x
    from_y = position.y - marker.y
    goal_x = position.x - goal.x
    goal_y = position.y - goal.y
    if _is_degenerate_xy(from_x, from_y) or _is_degenerate_xy(goal_x, goal_y):
        return 0.0
    distance = math.sqrt(from_x * from_x + from_y * from_y)
    return (1.0 + _cos_angle_xy(from_x, from_y, goal_x, goal_y)) / (1.0 + distance)


def field_velocity(
    position: Vector2,
    goal: Vector2,
    markers: Sequence[Marker],
    max_speed: float,
    min_speed: float = 0.0,
) -> Vector2:
    if not markers:
        return Vector2()
    weight_sum = 0.0
    sum_x = 0.0
    sum_y = 0.0
    pos_x = position.x
    pos_y = position.y
    for marker in markers:
        weight = marker_weight(position, goal, marker)
        if weight == 0.0:
            continue
        weight_sum += weight
        sum_x += (marker.x - pos_x) * weight
        sum_y += (marker.y - pos_y) * weight
    if weight_sum <= 0.0:
        return Vector2()
    return _clamp_length_range_xy(sum_x / weight_sum, sum_y / weight_sum, min_speed, max_speed)


def compute_velocity(agent: Agent, max_speed: float, min_speed: float = 0.0) -> Vector2:
    return field_velocity(agent.position, agent.goal, agent.owned_markers, max_speed, min_speed)
