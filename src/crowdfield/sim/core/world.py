from __future__ import annotations

import logging
from time import perf_counter
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from pygame.math import Vector2

from ...config import SimulationConfig, validate_config
from ...rng import DeterministicRng
from ...scenarios import Scenario, generate_pairs
from ..systems import metrics as metrics_system
from ..systems.assignment import assign_markers, reset_ownership
from ..systems.motion import update_position
from ..systems.velocity import compute_velocity
from ..types.metrics import TickMetrics
from ..types.snapshot import Snapshot, SnapshotMetadata, SnapshotWorld
from .agent import Agent
from .marker import Marker
from .spatial_grid import SpatialGrid

logger = logging.getLogger(__name__)

_SCENARIO_RNG_SALT = 0x5CE7A410C0FFEE17


def _derive_stream_seed(seed: int, salt: int) -> int:
    return (int(seed) ^ int(salt)) & 0xFFFFFFFFFFFFFFFF


class World:
    """Agents steered by the markers they claim on a gridded plane.

    Every ``tick`` runs the marker assignment for all agents first, then
    computes each agent's velocity from its owned markers and moves it.
    """

    def __init__(
        self,
        config: SimulationConfig,
        pairs: Optional[Sequence[Tuple[Vector2, Vector2]]] = None,
        markers: Optional[Iterable[Marker]] = None,
    ):
        resolution = validate_config(config)
        self._config = config
        self._marker_rng = DeterministicRng(config.seed)
        self._scenario_rng = DeterministicRng(_derive_stream_seed(config.seed, _SCENARIO_RNG_SALT))
        if markers is None:
            self._grid = SpatialGrid.scatter(
                config.resolved_cell_size, config.plane_size, config.marker_count, self._marker_rng
            )
        else:
            self._grid = SpatialGrid.build(markers, config.resolved_cell_size, config.plane_size)
        if pairs is None:
            pairs = generate_pairs(
                config.scenario,
                config.agent_count,
                config.plane_size,
                config.agent_footprint_size,
                self._scenario_rng,
            )
        self._pairs: List[Tuple[Vector2, Vector2]] = [(Vector2(start), Vector2(goal)) for start, goal in pairs]
        self._agents: List[Agent] = []
        self._candidate_scratch: List[Marker] = []
        self._tick = 0
        self._metrics: TickMetrics | None = None
        self._bootstrap_agents()
        logger.info(
            "world ready: %dx%d cells of size %.3g, %d markers, %d agents",
            resolution,
            resolution,
            config.resolved_cell_size,
            len(self._grid.markers),
            len(self._agents),
        )

    @property
    def config(self) -> SimulationConfig:
        return self._config

    @property
    def agents(self) -> List[Agent]:
        return self._agents

    @property
    def markers(self) -> Sequence[Marker]:
        return self._grid.markers

    @property
    def grid(self) -> SpatialGrid:
        return self._grid

    @property
    def tick_count(self) -> int:
        return self._tick

    @property
    def metrics(self) -> TickMetrics | None:
        return self._metrics

    def add_agent(self, start: Vector2, goal: Vector2) -> Agent:
        self._pairs.append((Vector2(start), Vector2(goal)))
        return self._spawn(start, goal)

    def reset(self) -> None:
        self._agents.clear()
        self._candidate_scratch.clear()
        reset_ownership(self._grid.markers)
        self._tick = 0
        self._metrics = None
        self._bootstrap_agents()
        logger.debug("world reset: %d agents back at their start positions", len(self._agents))

    def tick(self) -> None:
        start = perf_counter()
        config = self._config
        agents = self._agents

        checks = assign_markers(agents, self._grid, self._candidate_scratch)
        # Velocities only read owned markers, which are settled once assignment returns.
        for agent in agents:
            agent.velocity = compute_velocity(agent, config.max_speed, config.min_speed)

        swaps = 0
        for agent in agents:
            if update_position(agent, config.patrol_mode_enabled, config.patrol_arrival_distance_sq):
                swaps += 1

        elapsed_ms = (perf_counter() - start) * 1000.0
        self._metrics = metrics_system.create_metrics(
            self._tick, agents, len(self._grid.markers), checks, swaps, elapsed_ms
        )
        self._tick += 1

    def snapshot(self, include_markers: bool = False) -> Snapshot:
        metrics = self._metrics
        if metrics is None:
            metrics = metrics_system.create_metrics(self._tick, self._agents, len(self._grid.markers), 0, 0, 0.0)
        config = self._config
        return Snapshot(
            tick=self._tick,
            metrics=metrics,
            agents=[self._agent_snapshot(agent) for agent in self._agents],
            world=SnapshotWorld(
                size=config.plane_size,
                resolution=self._grid.resolution,
                cell_size=self._grid.cell_size,
            ),
            metadata=SnapshotMetadata(
                plane_size=config.plane_size,
                marker_count=len(self._grid.markers),
                scenario=Scenario(config.scenario).value,
                patrol_mode_enabled=config.patrol_mode_enabled,
                seed=config.seed,
                config_version=config.config_version,
            ),
            markers=self.marker_payload() if include_markers else [],
        )

    def marker_payload(self) -> List[List[Any]]:
        return [[marker.x, marker.y, -1 if marker.owner is None else marker.owner] for marker in self._grid.markers]

    def _bootstrap_agents(self) -> None:
        for start, goal in self._pairs:
            self._spawn(start, goal)

    def _spawn(self, start: Vector2, goal: Vector2) -> Agent:
        # Markers refer to agents by list index, so ids follow list order.
        agent = Agent.create(
            len(self._agents),
            start,
            goal,
            self._config.agent_footprint_size,
            elevation=self._config.elevation,
        )
        self._agents.append(agent)
        return agent

    def _agent_snapshot(self, agent: Agent) -> Dict[str, Any]:
        return {
            "id": agent.id,
            "x": agent.position.x,
            "y": agent.position.y,
            "z": agent.elevation,
            "vx": agent.velocity.x,
            "vy": agent.velocity.y,
            "speed": agent.velocity.length(),
            "goal_x": agent.goal.x,
            "goal_y": agent.goal.y,
            "owned_markers": len(agent.owned_markers),
            "arrivals": agent.arrivals,
        }
