import sys
import os
from types import SimpleNamespace

import numpy as np
import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from world_grid import WorldGrid
from seasonal_climate import compute_river_flow, compute_runoff, route_receivers


def chain_grid(elevation, is_land, downhill):
    count = len(elevation)
    neighbors = [np.array([j for j in (i - 1, i + 1) if 0 <= j < count]) for i in range(count)]
    return SimpleNamespace(
        elevation=np.array(elevation, dtype=float),
        is_land=np.array(is_land),
        downhill=np.array(downhill),
        neighbors=neighbors,
        area=np.full(count, 1.0e6),
    )


def test_runoff_only_on_land():
    grid = chain_grid([300, 200, 100, -50], [True, True, True, False], [1, 2, 3, -1])
    runoff = compute_runoff(grid, np.full(4, 1000.0), 1000.0)
    assert runoff == pytest.approx([1000.0, 1000.0, 1000.0, 0.0])


def test_flow_accumulates_downhill():
    grid = chain_grid([300, 200, 100, -50], [True, True, True, False], [1, 2, 3, -1])
    flow, is_lake, lake_depth = compute_river_flow(grid, np.full(4, 1000.0), 1000.0)
    assert flow == pytest.approx([1000.0, 2000.0, 3000.0, 3000.0])
    assert not is_lake.any()
    assert np.all(lake_depth == 0)


def test_basin_forms_lake():
    grid = chain_grid([300, 100, 200], [True, True, True], [1, -1, 1])
    flow, is_lake, lake_depth = compute_river_flow(grid, np.full(3, 1000.0), 1000.0)
    assert is_lake.tolist() == [False, True, False]
    assert lake_depth[1] == pytest.approx(100.0)
    # The rim drains back into the lake, so it keeps everything
    assert route_receivers(grid)[1] == -1
    assert flow[1] == pytest.approx(3000.0)


def test_full_lake_spills_downstream():
    grid = chain_grid([300, 100, 200, 50, -50], [True, True, True, True, False], [1, -1, 3, 4, -1])
    flow, is_lake, lake_depth = compute_river_flow(grid, np.full(5, 1000.0), 1000.0)
    assert is_lake.tolist() == [False, True, False, False, False]
    assert lake_depth[1] == pytest.approx(100.0)
    assert route_receivers(grid).tolist() == [1, 2, 3, 4, -1]
    assert flow == pytest.approx([1000.0, 2000.0, 3000.0, 4000.0, 4000.0])


def test_lake_does_not_drain_into_a_lake_draining_into_it():
    grid = chain_grid([300, 100, 200, 150, 400], [True] * 5, [1, -1, 1, -1, 3])
    flow, is_lake, lake_depth = compute_river_flow(grid, np.full(5, 1000.0), 1000.0)
    assert is_lake.tolist() == [False, True, False, True, False]
    assert lake_depth[3] == pytest.approx(50.0)
    receivers = route_receivers(grid)
    assert receivers[1] == -1
    assert receivers[3] == 2
    assert flow[3] == pytest.approx(2000.0)
    assert flow[1] == pytest.approx(5000.0)


def test_invalid_inputs():
    grid = chain_grid([10, 5], [True, True], [1, -1])
    with pytest.raises(ValueError):
        compute_river_flow(grid, np.ones(2), 0.0)
    with pytest.raises(ValueError):
        compute_river_flow(grid, np.ones(3), 100.0)


def test_flow_on_generated_terrain():
    grid = WorldGrid(resolution=6)
    grid.generate_elevation(seed=5, max_elevation=5000.0, water_ratio=0.6)
    precipitation = np.full(grid.cell_count, 800.0)
    runoff = compute_runoff(grid, precipitation, 3.15e7)
    flow, is_lake, lake_depth = compute_river_flow(grid, precipitation, 3.15e7)

    assert np.all(flow >= runoff - 1e-12)
    assert np.all(grid.is_land[is_lake])
    assert np.all(grid.downhill[is_lake] == -1)
    assert np.all(lake_depth[is_lake] >= 0)
    # Every drop of land runoff ends in a closed lake or reaches the sea
    receivers = route_receivers(grid)
    land = np.where(grid.is_land)[0]
    coast_inflow = sum(flow[cell] for cell in land
                       if receivers[cell] >= 0 and not grid.is_land[receivers[cell]])
    closed = [cell for cell in land if receivers[cell] < 0]
    assert np.all(is_lake[closed])
    assert coast_inflow + flow[closed].sum() == pytest.approx(runoff.sum())
