from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class TickMetrics:
    tick: int
    agents: int
    owned_markers: int
    unowned_markers: int
    candidate_checks: int
    average_speed: float
    stalled_agents: int
    patrol_swaps: int
    tick_duration_ms: float = 0.0
