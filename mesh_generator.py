"""
Cubed-Sphere Mesh Generator using Gnomonic Projection

This module provides functions to generate spherical grids using the
cubed-sphere approach with gnomonic projection, and a noise-based
elevation field for the resulting surface points.
"""

import numpy as np
from typing import Dict

from seasonal_climate.noise_fields import NoiseField
from simulation_params import ELEVATION_NOISE_FREQUENCY


def cartesian_to_latlon(x, y, z):
    """
    Convert Cartesian coordinates (x, y, z) to latitude/longitude.

    Y axis points up (north pole = +Y, south pole = -Y); X and Z define the
    equatorial plane, with longitude 0 along +X.

    Parameters
    ----------
    x, y, z : float or ndarray
        Cartesian coordinates on unit sphere

    Returns
    -------
    lat, lon : float or ndarray
        Latitude and longitude in radians
    """
    lat = np.arcsin(np.clip(y, -1.0, 1.0))

    # Negate to match standard East/West convention
    lon = -np.arctan2(z, x)

    return lat, lon


def latlon_to_cartesian(lat, lon):
    """Inverse of ``cartesian_to_latlon``; angles in radians."""
    cos_lat = np.cos(lat)
    return cos_lat * np.cos(lon), np.sin(lat), -cos_lat * np.sin(lon)


def generate_cubed_sphere_grid(n_points: int = 15, radius: float = 1.0, a: float = 1.0) -> Dict:
    """
    Generate cubed-sphere grid using gnomonic projection.

    Parameters
    ----------
    n_points : int
        Number of grid points per face dimension
    radius : float
        Sphere radius
    a : float
        Half-width of cube face

    Returns
    -------
    grid_points : dict
        Dictionary containing grid data for all six faces
    """
    if n_points < 2:
        raise ValueError(f"A cube face needs at least 2 points per edge, got {n_points}")

    coords = np.linspace(-a, a, n_points)
    x_local, y_local = np.meshgrid(coords, coords)

    grid_points = {}

    face_transforms = [
        # +X face
        lambda x, y: (np.ones_like(x) * a, x, y),
        # -X face
        lambda x, y: (-np.ones_like(x) * a, -x, y),
        # +Y face
        lambda x, y: (-x, np.ones_like(x) * a, y),
        # -Y face
        lambda x, y: (x, -np.ones_like(x) * a, y),
        # +Z face
        lambda x, y: (x, y, np.ones_like(x) * a),
        # -Z face
        lambda x, y: (x, -y, -np.ones_like(x) * a),
    ]

    for face_id, transform in enumerate(face_transforms):
        xc, yc, zc = transform(x_local, y_local)

        # Gnomonic projection onto the sphere
        r = np.sqrt(xc**2 + yc**2 + zc**2)
        grid_points[f'face_{face_id}'] = {
            'x': radius * xc / r,
            'y': radius * yc / r,
            'z': radius * zc / r,
        }

    return grid_points


def generate_elevation(positions: np.ndarray, seed: int, max_elevation: float,
                       water_ratio: float) -> np.ndarray:
    """
    Noise-based elevation for points on the unit sphere.

    Two octaves of OpenSimplex noise are offset so that ``water_ratio`` of the
    points lie below sea level (elevation <= 0), then scaled so the highest
    or deepest point reaches ``max_elevation``.

    Parameters
    ----------
    positions : ndarray
        (N, 3) unit vectors
    seed : int
        Noise seed
    max_elevation : float
        Maximum elevation magnitude (m)
    water_ratio : float
        Fraction of points below sea level, in [0, 1]

    Returns
    -------
    elevation : ndarray
        (N,) elevation in meters
    """
    if not 0.0 <= water_ratio <= 1.0:
        raise ValueError(f"Water ratio must be in [0, 1], got {water_ratio}")

    raw = (NoiseField(seed, ELEVATION_NOISE_FREQUENCY).sample(positions)
           + 0.5 * NoiseField(seed + 7, ELEVATION_NOISE_FREQUENCY * 2.0).sample(positions))

    if water_ratio <= 0.0:
        sea_level = raw.min() - 1.0e-6
    elif water_ratio >= 1.0:
        sea_level = raw.max()
    else:
        sea_level = np.quantile(raw, water_ratio)

    relief = raw - sea_level
    extent = np.abs(relief).max()
    if extent <= 0:
        return np.zeros_like(relief)
    return relief / extent * max_elevation
