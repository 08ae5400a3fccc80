from __future__ import annotations

import math
from dataclasses import dataclass, field

from pygame.math import Vector2


@dataclass(slots=True)
class Marker:
    x: float
    y: float
    # Index of the owning agent in the world's agent list.
    owner: int | None = None
    owner_distance_sq: float = math.inf
    position: Vector2 = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.position = Vector2(self.x, self.y)

    @property
    def owned(self) -> bool:
        return self.owner is not None

    def release(self) -> None:
        self.owner = None
        self.owner_distance_sq = math.inf
