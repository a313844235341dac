"""
Surface grid built from the cubed-sphere mesh.

The six face grids are merged into one set of unique cells (shared edge and
corner points are fused with a spatial hash). Each cell carries its unit
position, latitude/longitude, area, neighbours along quad edges, elevation
and the index of its steepest-descent neighbour.
"""

import numpy as np
from typing import Dict, List, Tuple

from mesh_generator import cartesian_to_latlon, generate_cubed_sphere_grid, generate_elevation
from simulation_params import DEFAULT_GRID_RESOLUTION, EARTH_RADIUS


def merge_cubed_sphere_nodes(grid_points: Dict, verbose: bool = False) -> Tuple[np.ndarray, np.ndarray]:
    """
    Convert cubed-sphere grid (6 faces) into unique nodes and quad connectivity.

    Returns
    -------
    nodes : ndarray
        (N, 3) unique node positions
    quads : ndarray
        (M, 4) node indices of every quad, counter-clockwise per face
    """
    face_0 = grid_points['face_0']
    rows, cols = face_0['x'].shape

    x0, y0, z0 = face_0['x'][0, 0], face_0['y'][0, 0], face_0['z'][0, 0]
    radius = np.sqrt(x0**2 + y0**2 + z0**2)

    # Fusion tolerance: 1/10 of the mean grid spacing
    tol = 2.0 * radius / (rows - 1) * 0.1

    nodes = []
    node_hash = {}
    node_mapping = {}

    for face_id in range(6):
        face_key = f'face_{face_id}'
        face_data = grid_points[face_key]
        face_node_indices = np.zeros((rows, cols), dtype=np.int64)

        for i in range(rows):
            for j in range(cols):
                coord = np.array([face_data['x'][i, j], face_data['y'][i, j], face_data['z'][i, j]])
                h = tuple(np.round(coord / tol, 4))
                if h not in node_hash:
                    node_hash[h] = len(nodes)
                    nodes.append(coord)
                face_node_indices[i, j] = node_hash[h]

        node_mapping[face_key] = face_node_indices

    quads = []
    for face_id in range(6):
        indices = node_mapping[f'face_{face_id}']
        for i in range(rows - 1):
            for j in range(cols - 1):
                quads.append([indices[i, j], indices[i + 1, j], indices[i + 1, j + 1], indices[i, j + 1]])

    nodes = np.array(nodes)
    quads = np.array(quads, dtype=np.int64)

    if verbose:
        print(f"  Grid merged: {len(nodes)} cells, {len(quads)} quads (tolerance {tol:.2e})")

    return nodes, quads


class WorldGrid:
    """
    Discretized planet surface.

    Parameters
    ----------
    resolution : int
        Points per cube-face edge; at least 2.
    radius : float
        Planet radius (m), used for cell areas.
    verbose : bool
        Print grid statistics.
    """

    def __init__(self, resolution: int = DEFAULT_GRID_RESOLUTION, radius: float = EARTH_RADIUS,
                 verbose: bool = False):
        if resolution < 2:
            raise ValueError(f"Grid resolution must be at least 2, got {resolution}")
        if radius <= 0:
            raise ValueError(f"Planet radius must be positive, got {radius}")
        self.resolution = resolution
        self.radius = radius

        grid_points = generate_cubed_sphere_grid(n_points=resolution, radius=1.0)
        positions, self.quads = merge_cubed_sphere_nodes(grid_points, verbose=verbose)
        self.positions = positions / np.linalg.norm(positions, axis=1)[:, None]
        self.latitude, self.longitude = cartesian_to_latlon(
            self.positions[:, 0], self.positions[:, 1], self.positions[:, 2])

        self.neighbors = self._build_neighbors()
        self.area = self._build_areas()

        self.elevation = np.zeros(self.cell_count)
        self.is_land = np.zeros(self.cell_count, dtype=bool)
        self.downhill = np.full(self.cell_count, -1, dtype=np.int64)

        if verbose:
            print(f"  Surface grid: {self.cell_count} cells, "
                  f"mean area {self.area.mean() / 1e6:.1f} km²")

    @property
    def cell_count(self) -> int:
        return len(self.positions)

    def _build_neighbors(self) -> List[np.ndarray]:
        neighbors = [set() for _ in range(self.cell_count)]
        for quad in self.quads:
            for k in range(4):
                a, b = quad[k], quad[(k + 1) % 4]
                neighbors[a].add(b)
                neighbors[b].add(a)
        return [np.array(sorted(n), dtype=np.int64) for n in neighbors]

    def _build_areas(self) -> np.ndarray:
        """Quad areas shared equally among their corners, scaled to the sphere area."""
        p = self.positions[self.quads]
        diagonal_a = p[:, 2] - p[:, 0]
        diagonal_b = p[:, 3] - p[:, 1]
        quad_area = 0.5 * np.linalg.norm(np.cross(diagonal_a, diagonal_b), axis=1)

        area = np.zeros(self.cell_count)
        for k in range(4):
            np.add.at(area, self.quads[:, k], quad_area / 4.0)
        return area * (4.0 * np.pi * self.radius**2 / area.sum())

    # ========== ELEVATION ==========

    def generate_elevation(self, seed: int, max_elevation: float, water_ratio: float):
        """Fill elevations from a noise field with the given share of ocean cells."""
        self.set_elevation(generate_elevation(self.positions, seed, max_elevation, water_ratio))

    def set_elevation(self, elevation):
        elevation = np.asarray(elevation, dtype=float)
        if elevation.shape != (self.cell_count,):
            raise ValueError(f"Expected {self.cell_count} elevations, got shape {elevation.shape}")
        self.elevation = elevation
        self.is_land = elevation > 0
        self.downhill = self._steepest_descent()

    def _steepest_descent(self) -> np.ndarray:
        """Index of the lowest neighbour when it is lower than the cell, else -1."""
        downhill = np.full(self.cell_count, -1, dtype=np.int64)
        for cell, neighbors in enumerate(self.neighbors):
            if len(neighbors) == 0:
                continue
            lowest = neighbors[np.argmin(self.elevation[neighbors])]
            if self.elevation[lowest] < self.elevation[cell]:
                downhill[cell] = lowest
        return downhill

    @property
    def land_fraction(self) -> float:
        return float(self.area[self.is_land].sum() / self.area.sum())
