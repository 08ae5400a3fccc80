from __future__ import annotations

import random

from pygame.math import Vector2


class DeterministicRng:
    def __init__(self, seed: int):
        self._random = random.Random(seed)

    def next_float(self) -> float:
        return self._random.random()

    def next_range(self, low: float, high: float) -> float:
        return self._random.uniform(low, high)

    def next_point(self, low_x: float, low_y: float, size: float) -> Vector2:
        # random() is half-open, so the point never lands on the far edge of the square.
        return Vector2(low_x + self._random.random() * size, low_y + self._random.random() * size)
