from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

from .metrics import TickMetrics


@dataclass(slots=True)
class Snapshot:
    tick: int
    metrics: TickMetrics
    agents: List[Dict[str, Any]]
    world: "SnapshotWorld"
    metadata: "SnapshotMetadata"
    markers: List[List[Any]] = field(default_factory=list)


@dataclass(slots=True)
class SnapshotWorld:
    size: float
    resolution: int
    cell_size: float


@dataclass(slots=True)
class SnapshotMetadata:
    plane_size: float
    marker_count: int
    scenario: str
    patrol_mode_enabled: bool
    seed: int
    config_version: str
