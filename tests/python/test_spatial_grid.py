from __future__ import annotations

import pytest
from pygame.math import Vector2

from crowdfield.errors import ConfigurationError
from crowdfield.rng import DeterministicRng
from crowdfield.sim.core.marker import Marker
from crowdfield.sim.core.spatial_grid import SpatialGrid, grid_resolution, scatter_markers


def _cell_centers(resolution: int, cell_size: float) -> list[Marker]:
    return [
        Marker((i + 0.5) * cell_size, (j + 0.5) * cell_size)
        for i in range(resolution)
        for j in range(resolution)
    ]


def test_resolution_requires_integer_ratio():
    assert grid_resolution(100.0, 10.0) == 10
    assert grid_resolution(100.0, 4.0) == 25
    assert grid_resolution(1.0, 0.1) == 10
    with pytest.raises(ConfigurationError):
        grid_resolution(100.0, 3.0)
    with pytest.raises(ConfigurationError):
        grid_resolution(100.0, 0.0)
    with pytest.raises(ConfigurationError):
        SpatialGrid.build([], cell_size=7.0, plane_size=100.0)


def test_build_places_each_marker_in_one_cell():
    grid = SpatialGrid.build(_cell_centers(10, 10.0), cell_size=10.0, plane_size=100.0)

    assert grid.resolution == 10
    assert len(grid.markers) == 100
    for i in range(10):
        for j in range(10):
            bucket = grid.cell(i, j)
            assert len(bucket) == 1
            assert grid.cell_key(bucket[0].position) == (i, j)


def test_markers_outside_plane_are_not_tracked():
    inside = Marker(5.0, 5.0)
    outside = [Marker(-1.0, 5.0), Marker(100.0, 5.0), Marker(5.0, 250.0)]
    grid = SpatialGrid.build([inside, *outside], cell_size=10.0, plane_size=100.0)

    assert list(grid.markers) == [inside]
    assert grid.cell(-1, 0) == ()
    assert grid.cell(10, 0) == ()


def test_query_returns_three_by_three_block():
    grid = SpatialGrid.build(_cell_centers(10, 10.0), cell_size=10.0, plane_size=100.0)

    found = grid.query(Vector2(25.0, 25.0))
    keys = sorted(grid.cell_key(marker.position) for marker in found)
    assert keys == [(i, j) for i in range(1, 4) for j in range(1, 4)]


def test_query_is_clipped_at_plane_edges():
    grid = SpatialGrid.build(_cell_centers(10, 10.0), cell_size=10.0, plane_size=100.0)

    assert len(grid.query(Vector2(1.0, 1.0))) == 4
    assert len(grid.query(Vector2(99.0, 50.0))) == 6
    assert len(grid.query(Vector2(-10.5, 50.0))) == 0
    assert len(grid.query(Vector2(-0.5, 50.0))) == 3


def test_wider_query_radius_covers_more_cells():
    grid = SpatialGrid.build(_cell_centers(10, 10.0), cell_size=10.0, plane_size=100.0)

    assert len(grid.query(Vector2(55.0, 55.0), radius=2)) == 25
    assert len(grid.query(Vector2(55.0, 55.0), radius=0)) == 1


def test_collect_reuses_buffer():
    grid = SpatialGrid.build(_cell_centers(10, 10.0), cell_size=10.0, plane_size=100.0)
    buffer = [Marker(0.0, 0.0)] * 20

    grid.collect(Vector2(55.0, 55.0), buffer)
    assert len(buffer) == 9

    grid.collect(Vector2(-50.0, -50.0), buffer)
    assert buffer == []


def test_scatter_fills_every_cell_evenly():
    rng = DeterministicRng(3)
    markers = scatter_markers(resolution=5, cell_size=4.0, marker_count=260, rng=rng)

    # 260 // 25 == 10 per cell; the remainder is dropped.
    assert len(markers) == 250
    grid = SpatialGrid.build(markers, cell_size=4.0, plane_size=20.0)
    assert len(grid.markers) == 250
    for i in range(5):
        for j in range(5):
            bucket = grid.cell(i, j)
            assert len(bucket) == 10
            for marker in bucket:
                assert i * 4.0 <= marker.x < (i + 1) * 4.0
                assert j * 4.0 <= marker.y < (j + 1) * 4.0


def test_scatter_is_deterministic_per_seed():
    first = SpatialGrid.scatter(4.0, 20.0, 100, DeterministicRng(11))
    second = SpatialGrid.scatter(4.0, 20.0, 100, DeterministicRng(11))
    other = SpatialGrid.scatter(4.0, 20.0, 100, DeterministicRng(12))

    assert [(m.x, m.y) for m in first.markers] == [(m.x, m.y) for m in second.markers]
    assert [(m.x, m.y) for m in first.markers] != [(m.x, m.y) for m in other.markers]


def test_query_contains_every_marker_within_one_cell_size():
    cell_size = 4.0
    grid = SpatialGrid.scatter(cell_size, 40.0, 2000, DeterministicRng(5))
    rng = DeterministicRng(6)

    for _ in range(50):
        center = Vector2(rng.next_range(0.0, 40.0), rng.next_range(0.0, 40.0))
        found = {id(marker) for marker in grid.query(center)}
        for marker in grid.markers:
            if marker.position.distance_squared_to(center) < cell_size * cell_size:
                assert id(marker) in found
