import sys
import os

import numpy as np
import pytest
from PIL import Image

sys.path.append(os.path.abspath(os.path.dirname(__file__)))

from mesh_generator import cartesian_to_latlon, generate_elevation, latlon_to_cartesian
from raster_export import build_pixel_lookup, export_equirectangular, field_to_raster
from world_grid import WorldGrid


@pytest.fixture(scope='module')
def grid():
    grid = WorldGrid(resolution=5, radius=6.371e6)
    grid.generate_elevation(seed=9, max_elevation=8000.0, water_ratio=0.6)
    return grid


def test_latlon_conventions():
    lat, lon = cartesian_to_latlon(0.0, 1.0, 0.0)
    assert lat == pytest.approx(np.pi / 2)
    lat, lon = cartesian_to_latlon(1.0, 0.0, 0.0)
    assert (lat, lon) == pytest.approx((0.0, 0.0))
    x, y, z = latlon_to_cartesian(0.3, 1.2)
    assert cartesian_to_latlon(x, y, z) == pytest.approx((0.3, 1.2))


@pytest.mark.parametrize('resolution', [2, 5, 12])
def test_cell_count(resolution):
    grid = WorldGrid(resolution=resolution)
    assert grid.cell_count == 6 * (resolution - 1) ** 2 + 2
    assert len(grid.quads) == 6 * (resolution - 1) ** 2


def test_invalid_grid():
    with pytest.raises(ValueError):
        WorldGrid(resolution=1)
    with pytest.raises(ValueError):
        WorldGrid(resolution=4, radius=0.0)


def test_geometry(grid):
    assert grid.area.sum() == pytest.approx(4 * np.pi * grid.radius ** 2)
    assert np.all(grid.area > 0)
    assert np.linalg.norm(grid.positions, axis=1) == pytest.approx(np.ones(grid.cell_count))
    assert grid.latitude.min() >= -np.pi / 2 and grid.latitude.max() <= np.pi / 2
    assert grid.latitude.max() == pytest.approx(np.pi / 2)

    counts = np.array([len(n) for n in grid.neighbors])
    assert counts.min() == 3
    assert counts.max() == 4
    assert np.sum(counts == 3) == 8


def test_neighbors_are_symmetric(grid):
    for cell, neighbors in enumerate(grid.neighbors):
        for other in neighbors:
            assert cell in grid.neighbors[other]


def test_elevation_matches_water_ratio(grid):
    water = np.mean(grid.elevation <= 0)
    assert water == pytest.approx(0.6, abs=2.0 / grid.cell_count)
    assert np.abs(grid.elevation).max() == pytest.approx(8000.0)
    assert np.array_equal(grid.is_land, grid.elevation > 0)


def test_elevation_is_deterministic(grid):
    again = generate_elevation(grid.positions, 9, 8000.0, 0.6)
    assert np.array_equal(again, grid.elevation)
    with pytest.raises(ValueError):
        generate_elevation(grid.positions, 9, 8000.0, 1.5)


def test_steepest_descent(grid):
    for cell, target in enumerate(grid.downhill):
        neighbors = grid.neighbors[cell]
        if target >= 0:
            assert target in neighbors
            assert grid.elevation[target] < grid.elevation[cell]
            assert grid.elevation[target] == grid.elevation[neighbors].min()
        else:
            assert np.all(grid.elevation[neighbors] >= grid.elevation[cell])


def test_set_elevation_shape(grid):
    with pytest.raises(ValueError):
        grid.set_elevation(np.zeros(grid.cell_count + 1))


# ========== RASTER ==========

def test_pixel_lookup(grid):
    lookup = build_pixel_lookup(grid, width=36, height=18)
    assert lookup.shape == (18, 36)
    north = np.argmax(grid.positions[:, 1])
    assert np.all(lookup[0] == north)


def test_field_to_raster(grid):
    raster = field_to_raster(grid.elevation, grid, width=36, height=18)
    assert raster.shape == (18, 36)
    assert raster.min() >= grid.elevation.min()
    assert raster.max() <= grid.elevation.max()
    with pytest.raises(ValueError):
        field_to_raster(np.zeros(3), grid, width=36, height=18)


def test_export_png(grid, tmp_path):
    path = tmp_path / 'elevation.png'
    export_equirectangular(grid.elevation, grid, str(path), width=36, height=18)
    with Image.open(path) as image:
        assert image.size == (36, 18)
        assert image.mode == 'L'
        pixels = np.asarray(image)
    assert pixels.min() == 0
    assert pixels.max() == 255


def test_export_missing_directory(grid, tmp_path):
    with pytest.raises(FileNotFoundError):
        export_equirectangular(grid.elevation, grid, str(tmp_path / 'missing' / 'map.png'),
                               width=36, height=18)
