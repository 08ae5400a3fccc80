from __future__ import annotations

import math
from typing import TYPE_CHECKING, Iterable, List, Sequence, Tuple

from pygame.math import Vector2

from ...errors import ConfigurationError
from .marker import Marker

if TYPE_CHECKING:
    from ...rng import DeterministicRng

# Absorbs float noise such as 100 / 0.1; anything larger is a real fraction.
_RESOLUTION_TOLERANCE = 1e-9


def grid_resolution(plane_size: float, cell_size: float) -> int:
    if cell_size <= 0:
        raise ConfigurationError(f"cell_size must be positive, got {cell_size}")
    ratio = plane_size / cell_size
    resolution = round(ratio)
    if resolution <= 0 or abs(ratio - resolution) > _RESOLUTION_TOLERANCE:
        raise ConfigurationError(
            f"plane_size / cell_size must be a positive integer, got {plane_size} / {cell_size} = {ratio}"
        )
    return int(resolution)


def scatter_markers(resolution: int, cell_size: float, marker_count: int, rng: "DeterministicRng") -> List[Marker]:
    """Scatter markers uniformly at random, the same number in every cell.

    The per-cell count is ``marker_count // resolution**2``, so up to
    ``resolution**2 - 1`` markers of the requested total are dropped.
    """

    per_cell = marker_count // (resolution * resolution)
    markers: List[Marker] = []
    for i in range(resolution):
        for j in range(resolution):
            for _ in range(per_cell):
                point = rng.next_point(i * cell_size, j * cell_size, cell_size)
                markers.append(Marker(point.x, point.y))
    return markers


class SpatialGrid:
    def __init__(self, cell_size: float, plane_size: float) -> None:
        self._resolution = grid_resolution(plane_size, cell_size)
        self._cell_size = cell_size
        self._plane_size = plane_size
        self._cells: List[List[List[Marker]]] = [[[] for _ in range(self._resolution)] for _ in range(self._resolution)]
        self._markers: List[Marker] = []

    @classmethod
    def build(cls, markers: Iterable[Marker], cell_size: float, plane_size: float) -> "SpatialGrid":
        grid = cls(cell_size, plane_size)
        for marker in markers:
            grid._insert(marker)
        return grid

    @classmethod
    def scatter(
        cls, cell_size: float, plane_size: float, marker_count: int, rng: "DeterministicRng"
    ) -> "SpatialGrid":
        resolution = grid_resolution(plane_size, cell_size)
        return cls.build(scatter_markers(resolution, cell_size, marker_count, rng), cell_size, plane_size)

    @property
    def resolution(self) -> int:
        return self._resolution

    @property
    def cell_size(self) -> float:
        return self._cell_size

    @property
    def plane_size(self) -> float:
        return self._plane_size

    @property
    def markers(self) -> Sequence[Marker]:
        return self._markers

    def cell(self, i: int, j: int) -> Sequence[Marker]:
        if not self._in_bounds(i, j):
            return ()
        return self._cells[i][j]

    def cell_key(self, position: Vector2) -> Tuple[int, int]:
        return (int(math.floor(position.x / self._cell_size)), int(math.floor(position.y / self._cell_size)))

    def query(self, position: Vector2, radius: int = 1) -> List[Marker]:
        """Return every marker in the block of cells around ``position``.

        The block spans ``radius`` cells on each side of the cell holding
        ``position`` (3x3 by default). Markers are not filtered by distance.
        """

        out: List[Marker] = []
        self.collect(position, out, radius)
        return out

    def collect(self, position: Vector2, out: List[Marker], radius: int = 1) -> None:
        """Fill ``out`` with the markers ``query`` would return, reusing the buffer."""

        out.clear()
        base_i, base_j = self.cell_key(position)
        resolution = self._resolution
        cells = self._cells
        extend = out.extend
        for i in range(max(0, base_i - radius), min(resolution, base_i + radius + 1)):
            column = cells[i]
            for j in range(max(0, base_j - radius), min(resolution, base_j + radius + 1)):
                bucket = column[j]
                if bucket:
                    extend(bucket)

    def _insert(self, marker: Marker) -> bool:
        if not (0.0 <= marker.x < self._plane_size and 0.0 <= marker.y < self._plane_size):
            return False
        i, j = self.cell_key(marker.position)
        # Guards the upper edge against rounding in the floor division.
        if not self._in_bounds(i, j):
            return False
        self._cells[i][j].append(marker)
        self._markers.append(marker)
        return True

    def _in_bounds(self, i: int, j: int) -> bool:
        return 0 <= i < self._resolution and 0 <= j < self._resolution
