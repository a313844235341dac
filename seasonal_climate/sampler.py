"""
Seasonal Climate Sampler

Evaluates temperature, precipitation and snowfall for every grid cell at N
evenly spaced points of the year, starting at the northern winter solstice,
and derives annual ranges plus sea-ice and snow-cover windows from them.
"""

import math
from typing import Dict, Optional, Tuple

import numpy as np

from simulation_params import (
    DEFAULT_SEASONS, HADLEY_TABLE_STEP, HUMIDITY_RAMP_WIDTH, SNOW_TO_RAIN_RATIO,
    SUPERARID_PRECIPITATION,
)
from atmosphere_model import get_chemical
from atmosphere_model.chemicals import SEAWATER, WATER
from .noise_fields import MoistureNoise
from .rivers import compute_river_flow


WATER_MELTING_POINT = get_chemical(WATER).melting_point
SEAWATER_MELTING_POINT = get_chemical(SEAWATER).melting_point

ALWAYS = (0.0, 1.0)
TEMPERATE_LATITUDE = math.pi / 4.0


def hadley_value(abs_latitude):
    """Humidity weighting by absolute latitude (rad): ITCZ, desert bands, temperate and polar zones."""
    abs_latitude = np.abs(abs_latitude)
    return (np.cos(2.0 * np.pi * np.sqrt(abs_latitude)) / (8.0 * abs_latitude + 1.0)
            - abs_latitude / np.pi + 0.5)


def build_hadley_table(step: float = HADLEY_TABLE_STEP) -> np.ndarray:
    """Hadley values from 0 to π/2 at ``step`` resolution."""
    count = int(round((math.pi / 2.0) / step)) + 1
    return hadley_value(np.arange(count) * step)


def humidity_ramp(temperature):
    """0 at or below (melting point − 24 K), rising linearly to 1 at the melting point."""
    low = WATER_MELTING_POINT - HUMIDITY_RAMP_WIDTH
    return np.clip((np.asarray(temperature, dtype=float) - low) / HUMIDITY_RAMP_WIDTH, 0.0, 1.0)


def precipitation_factor(humidity):
    """Steep amplification of relative humidity into a precipitation multiplier."""
    h = np.asarray(humidity, dtype=float)
    return (1.0 + h * (0.1 * h - 0.15) + np.maximum(0.0, np.exp(h / 2.0) - 1.2)) ** 2


def is_in_range(window: Tuple[float, float], proportion):
    """
    Whether a proportion of the year falls in a [start, end] window.

    A window whose start is after its end wraps over the year boundary.
    ``(0, 0)`` never matches; ``(0, 1)`` always does. Array-aware.
    """
    start, end = window
    proportion = np.asarray(proportion, dtype=float)
    if start == end:
        return np.zeros_like(proportion, dtype=bool) if proportion.ndim else False
    if start < end:
        result = (proportion >= start) & (proportion <= end)
    else:
        result = (proportion >= start) | (proportion <= end)
    return result if proportion.ndim else bool(result)


def freeze_windows(min_temperature, max_temperature, melting_point, latitude,
                   eligible, melt_scale: float = 1.0) -> np.ndarray:
    """
    Seasonal frozen windows from each cell's annual temperature range.

    Cells colder than ``melting_point`` all year are frozen all year; cells
    that are below it for at least half of their range never fully melt. Other
    cells freeze late in the year and melt after a span proportional to how
    far the range dips below freezing. Southern windows are shifted half a year.

    Returns
    -------
    windows : ndarray
        (N, 2) start/end proportions of the year
    """
    min_temperature = np.asarray(min_temperature, dtype=float)
    max_temperature = np.asarray(max_temperature, dtype=float)
    windows = np.zeros((len(min_temperature), 2))

    candidate = np.asarray(eligible, dtype=bool) & (min_temperature <= melting_point)
    always = candidate & (max_temperature < melting_point)

    span = max_temperature - min_temperature
    with np.errstate(divide='ignore', invalid='ignore'):
        freeze = np.where(span > 0, (melting_point - min_temperature) / span, np.nan)
    partial = candidate & ~always & np.isfinite(freeze)
    always |= partial & (freeze >= 0.5)
    partial &= freeze < 0.5

    windows[always] = ALWAYS

    start = 1.0 - freeze / 2.0
    end = freeze * melt_scale
    south = np.asarray(latitude) < 0
    start = np.where(south, start - 0.5, start)
    end = np.where(south, end + 0.5, end)
    end = np.where(end > 1.0, end - 1.0, end)
    windows[partial, 0] = start[partial]
    windows[partial, 1] = end[partial]
    return windows


class ClimateState:
    """
    Annual climate of every grid cell.

    Seasonal arrays are shaped (seasons, cells); annual arrays (cells,).
    Temperatures in K, precipitation and snowfall in mm.
    """

    def __init__(self, season_proportions, temperature, precipitation, snowfall,
                 sea_ice_range, snow_cover_range, equatorial_temperature, polar_temperature,
                 seasonal_progress=None):
        self.season_proportions = np.asarray(season_proportions)
        self.temperature = temperature
        self.precipitation = precipitation
        self.snowfall = snowfall

        self.min_temperature = temperature.min(axis=0)
        self.max_temperature = temperature.max(axis=0)
        self.average_temperature = temperature.mean(axis=0)
        self.annual_precipitation = precipitation.sum(axis=0)
        self.annual_snowfall = snowfall.sum(axis=0)

        self.sea_ice_range = sea_ice_range
        self.snow_cover_range = snow_cover_range
        self.equatorial_temperature = np.asarray(equatorial_temperature)
        self.polar_temperature = np.asarray(polar_temperature)
        # Midwinter (0) to midsummer (1) in the northern temperate zone, per sample
        self.seasonal_progress = np.asarray(seasonal_progress if seasonal_progress is not None else [])

        self.river_flow = np.zeros(temperature.shape[1])
        self.is_lake = np.zeros(temperature.shape[1], dtype=bool)
        self.lake_depth = np.zeros(temperature.shape[1])

    @property
    def seasons(self) -> int:
        return len(self.season_proportions)

    @property
    def cell_count(self) -> int:
        return self.temperature.shape[1]

    def sea_ice_at(self, proportion: float) -> np.ndarray:
        """Cells covered by sea ice at a proportion of the year."""
        return self._covered(self.sea_ice_range, proportion)

    def snow_cover_at(self, proportion: float) -> np.ndarray:
        return self._covered(self.snow_cover_range, proportion)

    @staticmethod
    def _covered(windows, proportion):
        return np.array([is_in_range((start, end), proportion) for start, end in windows], dtype=bool)

    def to_record(self) -> Dict:
        """Planet-level summary of the annual climate."""
        return {
            'seasons': self.seasons,
            'min_temperature': float(self.min_temperature.min()),
            'max_temperature': float(self.max_temperature.max()),
            'average_temperature': float(self.average_temperature.mean()),
            'average_annual_precipitation': float(self.annual_precipitation.mean()),
            'equatorial_temperature': self.equatorial_temperature.tolist(),
            'polar_temperature': self.polar_temperature.tolist(),
            'seasonal_progress': self.seasonal_progress.tolist(),
            'lake_count': int(self.is_lake.sum()),
            'max_river_flow': float(self.river_flow.max()) if self.cell_count else 0.0,
        }


class SeasonalClimateSampler:
    """
    Sample the annual climate of a converged planet over a surface grid.

    Parameters
    ----------
    planet : TerrestrialPlanet
        Planet with equilibrated atmosphere and hydrosphere.
    grid : WorldGrid
        Surface grid with elevations.
    seasons : int
        Number of samples over one orbit.
    seed : int, optional
        Moisture noise seed; defaults to the planet's seed.
    verbose : bool
        Print per-season progress.
    """

    def __init__(self, planet, grid, seasons: int = DEFAULT_SEASONS,
                 seed: Optional[int] = None, verbose: bool = False):
        if seasons < 1:
            raise ValueError(f"At least one season is required, got {seasons}")
        self.planet = planet
        self.grid = grid
        self.seasons = seasons
        self.verbose = verbose
        self.hadley_table = build_hadley_table()
        seed = planet.params.seed if seed is None else seed
        self.moisture = MoistureNoise(seed).sample(grid.positions)

    def hadley(self, latitude) -> np.ndarray:
        """Tabulated Hadley value for any latitude (rad)."""
        index = np.rint(np.abs(latitude) / HADLEY_TABLE_STEP).astype(np.int64)
        return self.hadley_table[np.clip(index, 0, len(self.hadley_table) - 1)]

    def sample_season(self, proportion: float):
        """
        Temperature, precipitation and snowfall of every cell at a proportion of the year.

        Returns
        -------
        temperature, precipitation, snowfall : ndarray
            (cells,) arrays in K, mm and mm
        """
        planet = self.planet
        grid = self.grid
        true_anomaly = planet.true_anomaly_at_proportion(proportion)
        blackbody = planet.temperature_at_true_anomaly(true_anomaly)
        declination = planet.solar_declination(true_anomaly)
        seasonal_latitude = planet.seasonal_latitude(grid.latitude, declination)

        surface = planet.seasonal_surface_temperature(blackbody, seasonal_latitude)
        temperature = planet.temperature_at_elevation(surface, np.maximum(0.0, grid.elevation))

        humidity = np.maximum(0.0, self.moisture + self.hadley(seasonal_latitude))
        humidity = humidity * humidity_ramp(temperature)
        precipitation = np.where(
            humidity > 0,
            planet.atmosphere.average_precipitation * precipitation_factor(humidity) / self.seasons,
            0.0)
        snowfall = np.where(temperature <= WATER_MELTING_POINT, precipitation * SNOW_TO_RAIN_RATIO, 0.0)
        return temperature, precipitation, snowfall

    def sample(self) -> ClimateState:
        """Sample every season and derive the annual climate."""
        planet = self.planet
        grid = self.grid
        if self.verbose:
            print("=" * 60)
            print(f"Sampling {self.seasons} seasons over {grid.cell_count} cells")
            print("=" * 60)

        proportions = np.arange(self.seasons) / self.seasons
        temperature = np.empty((self.seasons, grid.cell_count))
        precipitation = np.empty_like(temperature)
        snowfall = np.empty_like(temperature)
        equatorial = []
        polar = []
        progress = []

        for index, proportion in enumerate(proportions):
            temperature[index], precipitation[index], snowfall[index] = self.sample_season(proportion)

            true_anomaly = planet.true_anomaly_at_proportion(proportion)
            blackbody = planet.temperature_at_true_anomaly(true_anomaly)
            declination = planet.solar_declination(true_anomaly)
            equatorial.append(float(planet.seasonal_surface_temperature(
                blackbody, planet.seasonal_latitude(0.0, declination))))
            polar.append(float(planet.seasonal_surface_temperature(
                blackbody, planet.seasonal_latitude(math.pi / 2.0, declination))))
            progress.append(planet.seasonal_proportion(proportion, TEMPERATE_LATITUDE))

            if self.verbose:
                print(f"  Season {index + 1:2d} ({proportion:.3f}): "
                      f"T {temperature[index].mean():.1f} K, "
                      f"precipitation {precipitation[index].mean():.1f} mm")

        min_temperature = temperature.min(axis=0)
        max_temperature = temperature.max(axis=0)
        annual_precipitation = precipitation.sum(axis=0)

        sea_ice = freeze_windows(min_temperature, max_temperature, SEAWATER_MELTING_POINT,
                                 grid.latitude, ~grid.is_land)
        snow_cover = freeze_windows(min_temperature, max_temperature, WATER_MELTING_POINT,
                                    grid.latitude,
                                    grid.is_land & (annual_precipitation >= SUPERARID_PRECIPITATION),
                                    melt_scale=0.75)

        state = ClimateState(proportions, temperature, precipitation, snowfall, sea_ice, snow_cover,
                             equatorial, polar, progress)
        state.river_flow, state.is_lake, state.lake_depth = compute_river_flow(
            grid, state.annual_precipitation, planet.revolution_period)

        if self.verbose:
            print(f"  Annual temperature {state.min_temperature.min():.1f}-{state.max_temperature.max():.1f} K, "
                  f"{int(state.is_lake.sum())} lakes")
        return state
