"""
Raster export of per-cell fields.

Projects a scalar field defined on the surface grid onto an equirectangular
image: each pixel takes the value of the nearest cell. Latitude runs from +90
(top row) to -90, longitude from -180 (left column) to +180.
"""

import os

import numpy as np
from PIL import Image

from mesh_generator import latlon_to_cartesian
from simulation_params import RASTER_HEIGHT, RASTER_WIDTH


def pixel_latlon(width: int, height: int):
    """Latitude and longitude (radians) of every pixel center, each shaped (height, width)."""
    if width < 1 or height < 1:
        raise ValueError(f"Raster size must be positive, got {width}x{height}")
    lat = np.radians(90.0 - (np.arange(height) + 0.5) * 180.0 / height)
    lon = np.radians(-180.0 + (np.arange(width) + 0.5) * 360.0 / width)
    return np.meshgrid(lat, lon, indexing='ij')


def build_pixel_lookup(grid, width: int = RASTER_WIDTH, height: int = RASTER_HEIGHT) -> np.ndarray:
    """
    Nearest grid cell for every pixel.

    Returns
    -------
    lookup : ndarray
        (height, width) cell indices
    """
    lat, lon = pixel_latlon(width, height)
    x, y, z = latlon_to_cartesian(lat, lon)
    lookup = np.empty((height, width), dtype=np.int64)
    for row in range(height):
        directions = np.stack([x[row], y[row], z[row]], axis=1)
        lookup[row] = np.argmax(directions @ grid.positions.T, axis=1)
    return lookup


def field_to_raster(values, grid, width: int = RASTER_WIDTH, height: int = RASTER_HEIGHT,
                    lookup=None) -> np.ndarray:
    """Per-cell values resampled to a (height, width) array."""
    values = np.asarray(values, dtype=float)
    if values.shape != (grid.cell_count,):
        raise ValueError(f"Expected {grid.cell_count} values, got shape {values.shape}")
    if lookup is None:
        lookup = build_pixel_lookup(grid, width, height)
    return values[lookup]


def export_equirectangular(values, grid, path: str, width: int = RASTER_WIDTH,
                           height: int = RASTER_HEIGHT, vmin=None, vmax=None,
                           lookup=None, verbose: bool = False) -> str:
    """
    Write a per-cell field as an 8-bit grayscale PNG.

    Parameters
    ----------
    values : array-like
        One value per grid cell
    grid : WorldGrid
        Grid the values are defined on
    path : str
        Output file path; its directory must exist
    width, height : int
        Image size in pixels
    vmin, vmax : float, optional
        Values mapped to black and white. Default to the field's range.

    Returns
    -------
    path : str
    """
    directory = os.path.dirname(os.path.abspath(path))
    if not os.path.isdir(directory):
        raise FileNotFoundError(f"Output directory not found: {directory}")

    raster = field_to_raster(values, grid, width, height, lookup)
    vmin = float(np.min(raster)) if vmin is None else vmin
    vmax = float(np.max(raster)) if vmax is None else vmax
    span = vmax - vmin
    if span <= 0:
        scaled = np.zeros_like(raster)
    else:
        scaled = np.clip((raster - vmin) / span, 0.0, 1.0)

    Image.fromarray((scaled * 255).round().astype(np.uint8)).save(path)
    if verbose:
        print(f"  Saved {width}x{height} raster to {path}")
    return path
