"""Per-tick marker assignment.

Ownership is rebuilt from scratch every tick in two phases. The claim phase
lets every agent claim the markers inside its capture radius, keeping the
closest claimant per marker. The collect phase then hands each claimed marker
to its owner's list. The collect phase must not start before every agent has
been scanned, otherwise an agent could keep a marker that a later, closer
agent takes over.
"""

from __future__ import annotations

from typing import Iterable, List, Sequence, Tuple

from ..core.agent import Agent
from ..core.marker import Marker
from ..core.spatial_grid import SpatialGrid


def reset_ownership(markers: Iterable[Marker]) -> None:
    for marker in markers:
        marker.release()


def claim_markers(
    agents: Sequence[Agent], grid: SpatialGrid, scratch: List[Marker] | None = None
) -> Tuple[List[Marker], int]:
    """Run the claim phase.

    Returns the markers that ended up owned and the number of candidates
    examined. Equal distances keep the earlier agent, since a claim needs a
    strictly smaller distance to replace the current owner.
    """

    candidates: List[Marker] = [] if scratch is None else scratch
    claimed: List[Marker] = []
    checks = 0
    for index, agent in enumerate(agents):
        agent.owned_markers.clear()
        grid.collect(agent.position, candidates)
        checks += len(candidates)
        pos_x = agent.position.x
        pos_y = agent.position.y
        radius_sq = agent.capture_radius_sq
        for marker in candidates:
            dx = marker.x - pos_x
            dy = marker.y - pos_y
            dist_sq = dx * dx + dy * dy
            if dist_sq < radius_sq and dist_sq < marker.owner_distance_sq:
                if marker.owner is None:
                    claimed.append(marker)
                marker.owner = index
                marker.owner_distance_sq = dist_sq
    return claimed, checks


def collect_owned(agents: Sequence[Agent], claimed: Iterable[Marker]) -> None:
    for marker in claimed:
        if marker.owner is not None:
            agents[marker.owner].owned_markers.append(marker)


def assign_markers(agents: Sequence[Agent], grid: SpatialGrid, scratch: List[Marker] | None = None) -> int:
    """Rebuild marker ownership for this tick and return the candidate count."""

    reset_ownership(grid.markers)
    claimed, checks = claim_markers(agents, grid, scratch)
    collect_owned(agents, claimed)
    return checks
