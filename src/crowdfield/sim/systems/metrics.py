from __future__ import annotations

from typing import Sequence

from ..core.agent import Agent
from ..types.metrics import TickMetrics


def create_metrics(
    tick: int,
    agents: Sequence[Agent],
    marker_total: int,
    candidate_checks: int,
    patrol_swaps: int,
    duration_ms: float,
) -> TickMetrics:
    owned = 0
    stalled = 0
    speed_sum = 0.0
    for agent in agents:
        owned += len(agent.owned_markers)
        speed = agent.velocity.length()
        speed_sum += speed
        if speed == 0.0:
            stalled += 1
    count = len(agents)
    return TickMetrics(
        tick=tick,
        agents=count,
        owned_markers=owned,
        unowned_markers=marker_total - owned,
        candidate_checks=candidate_checks,
        average_speed=0.0 if count == 0 else speed_sum / count,
        stalled_agents=stalled,
        patrol_swaps=patrol_swaps,
        tick_duration_ms=duration_ms,
    )
