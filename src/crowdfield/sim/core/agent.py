from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from pygame.math import Vector2, Vector3

from .marker import Marker


@dataclass(slots=True)
class Agent:
    id: int
    position: Vector2
    goal: Vector2
    start_position: Vector2
    capture_radius: float
    velocity: Vector2 = field(default_factory=Vector2)
    owned_markers: List[Marker] = field(default_factory=list)
    elevation: float = 0.0
    arrivals: int = 0

    @classmethod
    def create(
        cls, agent_id: int, start: Vector2, goal: Vector2, footprint_size: float, elevation: float = 0.0
    ) -> "Agent":
        return cls(
            id=agent_id,
            position=Vector2(start),
            goal=Vector2(goal),
            start_position=Vector2(start),
            capture_radius=footprint_size / 2.0,
            elevation=elevation,
        )

    @property
    def capture_radius_sq(self) -> float:
        return self.capture_radius * self.capture_radius

    @property
    def position3d(self) -> Vector3:
        # Plane coordinates map to the horizontal x/z axes.
        return Vector3(self.position.x, self.elevation, self.position.y)

    def distance_to_goal_sq(self) -> float:
        return self.position.distance_squared_to(self.goal)
