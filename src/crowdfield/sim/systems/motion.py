from __future__ import annotations

import logging

from ..core.agent import Agent

logger = logging.getLogger(__name__)


def integrate_position(agent: Agent) -> None:
    # Unit time step: one tick moves the agent by exactly its velocity.
    agent.position += agent.velocity


def swap_goal_if_arrived(agent: Agent, arrival_distance_sq: float) -> bool:
    if agent.distance_to_goal_sq() >= arrival_distance_sq:
        return False
    agent.goal, agent.start_position = agent.start_position, agent.goal
    agent.arrivals += 1
    logger.debug("agent %d reached its goal, heading back to (%.2f, %.2f)", agent.id, agent.goal.x, agent.goal.y)
    return True


def update_position(agent: Agent, patrol_enabled: bool = False, arrival_distance_sq: float = 10.0) -> bool:
    """Advance ``agent`` one tick; return True when a patrol swap happened."""

    integrate_position(agent)
    if not patrol_enabled:
        return False
    return swap_goal_if_arrived(agent, arrival_distance_sq)
