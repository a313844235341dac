"""
River flow accumulation over the surface grid.

Each land cell contributes runoff from its annual precipitation; flow is
passed down the steepest-descent graph until it reaches the sea. Land cells
with no lower neighbour collect their inflow as lakes. A full lake spills
over its lowest neighbour unless that water would run back into it.
"""

from typing import Tuple

import numpy as np


def compute_runoff(grid, annual_precipitation, revolution_period: float) -> np.ndarray:
    """
    Runoff of every land cell in m³/s.

    Parameters
    ----------
    grid : WorldGrid
        Surface grid with cell areas (m²) and land flags
    annual_precipitation : array-like
        Precipitation per cell over one year (mm)
    revolution_period : float
        Orbital period (s)
    """
    if revolution_period <= 0:
        raise ValueError(f"Revolution period must be positive, got {revolution_period}")
    precipitation = np.asarray(annual_precipitation, dtype=float)
    if precipitation.shape != (len(grid.area),):
        raise ValueError(f"Expected {len(grid.area)} precipitation values, got shape {precipitation.shape}")
    return np.where(grid.is_land, precipitation * 0.001 * grid.area / revolution_period, 0.0)


def _drains_into(receivers: np.ndarray, start: int, cell: int) -> bool:
    while start >= 0:
        if start == cell:
            return True
        start = receivers[start]
    return False


def route_receivers(grid) -> np.ndarray:
    """
    Cell that receives each land cell's flow; -1 for the sea and closed lakes.

    Lakes are visited from the lowest up. Each one spills to its lowest
    neighbour, except where the water from there already drains back into
    the lake, which keeps the routing graph free of cycles.
    """
    elevation = grid.elevation
    receivers = np.where(grid.is_land, grid.downhill, -1).astype(np.int64)

    for cell in np.argsort(elevation, kind='stable'):
        if not grid.is_land[cell] or grid.downhill[cell] >= 0:
            continue
        neighbors = np.asarray(grid.neighbors[cell])
        if len(neighbors) == 0:
            continue
        outlet = int(neighbors[np.argmin(elevation[neighbors])])
        if not _drains_into(receivers, outlet, cell):
            receivers[cell] = outlet
    return receivers


def compute_river_flow(grid, annual_precipitation,
                       revolution_period: float) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Accumulate runoff downstream and locate lakes.

    Returns
    -------
    flow : ndarray
        Water passing through each cell (m³/s), including its own runoff
    is_lake : ndarray
        True for land cells with no lower neighbour
    lake_depth : ndarray
        Height of the lowest neighbour above the lake floor (m); 0 elsewhere
    """
    flow = compute_runoff(grid, annual_precipitation, revolution_period)
    elevation = grid.elevation
    cell_count = len(elevation)

    is_lake = np.zeros(cell_count, dtype=bool)
    lake_depth = np.zeros(cell_count)
    for cell in np.where(grid.is_land & (grid.downhill < 0))[0]:
        neighbors = np.asarray(grid.neighbors[cell])
        if len(neighbors) == 0:
            continue
        is_lake[cell] = True
        lake_depth[cell] = elevation[neighbors].min() - elevation[cell]

    receivers = route_receivers(grid)
    pending = np.bincount(receivers[receivers >= 0], minlength=cell_count)
    stack = list(np.where(pending == 0)[0])
    while stack:
        cell = stack.pop()
        target = receivers[cell]
        if target < 0:
            continue
        flow[target] += flow[cell]
        pending[target] -= 1
        if pending[target] == 0:
            stack.append(target)

    return flow, is_lake, lake_depth
