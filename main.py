"""
Main script for terrestrial planet climate generation

Builds an Earth-analog planet, equilibrates its atmosphere and hydrosphere,
places it on an orbit matching its target temperature, reports habitability,
then samples a full year of climate over a cubed-sphere surface grid.
"""

import os
from typing import Optional

from simulation_params import ASTRONOMICAL_UNIT, TEMP_MAX, TEMP_MIN, print_parameters
from equilibrium_solver import (HabitabilityRequirements, OrbitTemperatureSolver,
                                PhaseEquilibrationEngine, PlanetParams, TerrestrialPlanet,
                                evaluate_habitability, reason_names)
from seasonal_climate import SeasonalClimateSampler
from world_grid import WorldGrid
from raster_export import build_pixel_lookup, export_equirectangular


def main(grid_resolution: int = 12, seed: int = 42, output_dir: Optional[str] = None):
    """
    Run the full pipeline for one planet.

    Parameters
    ----------
    grid_resolution : int
        Points per cube-face edge of the surface grid.
        Recommended values:
        - 5-10: Coarse (fast)
        - 12-20: Medium
        - 25+: Fine (slow, noise is sampled per cell)
    seed : int
        Seed for every random draw.
    output_dir : str, optional
        Directory for equirectangular PNG maps. Nothing is written when None.

    Returns
    -------
    planet, climate : TerrestrialPlanet, ClimateState
    """
    print("=" * 60)
    print("Terrestrial Planet Climate Generation")
    print("=" * 60)
    print_parameters()

    # ========== ATMOSPHERE ==========
    planet = TerrestrialPlanet(PlanetParams.earth_analog(seed=seed))
    print(f"\nSeed: {seed}")
    print(f"Radius: {planet.radius / 1000:.0f} km, gravity: {planet.gravity:.2f} m/s²")

    engine = PhaseEquilibrationEngine(planet, verbose=True)
    engine.generate_hydrosphere()
    engine.generate_atmosphere()

    # ========== ORBIT ==========
    print("\n" + "=" * 60)
    print("Orbit / Temperature Solver")
    print("=" * 60)
    solver = OrbitTemperatureSolver(planet, engine, verbose=True)
    solver.solve()

    print(f"\nSemi-major axis: {planet.semi_major_axis / ASTRONOMICAL_UNIT:.4f} AU")
    print(f"Average surface temperature: {planet.average_surface_temperature:.2f} K")
    print(f"Equatorial (min): {planet.min_equatorial_temperature:.2f} K, "
          f"polar (max): {planet.max_polar_temperature:.2f} K")
    print(f"Surface pressure: {planet.atmosphere.pressure:.3f} kPa, albedo: {planet.albedo:.3f}")
    composition = planet.atmosphere.composition
    gases = sorted(((composition.get_proportion(s), s) for s in composition.species()), reverse=True)
    print("Atmosphere: " + ", ".join(f"{name} {proportion:.2%}" for proportion, name in gases[:5]))

    # ========== HABITABILITY ==========
    reasons = evaluate_habitability(planet, HabitabilityRequirements.human())
    names = reason_names(reasons)
    print(f"\nHuman habitability: {'habitable' if not names else ', '.join(names)}")

    # ========== SURFACE GRID ==========
    print("\n" + "=" * 60)
    print("Surface Grid")
    print("=" * 60)
    grid = WorldGrid(resolution=grid_resolution, radius=planet.radius, verbose=True)
    grid.generate_elevation(seed, planet.max_elevation, planet.params.water_ratio)
    print(f"  Land fraction: {grid.land_fraction:.3f}")

    # ========== SEASONAL CLIMATE ==========
    print()
    climate = SeasonalClimateSampler(planet, grid, verbose=True).sample()
    record = climate.to_record()
    print(f"\nAnnual average temperature: {record['average_temperature']:.2f} K")
    print(f"Average annual precipitation: {record['average_annual_precipitation']:.1f} mm")
    print(f"Lakes: {record['lake_count']}, max river flow: {record['max_river_flow']:.1f} m³/s")

    # ========== EXPORT ==========
    if output_dir is not None:
        print("\n" + "=" * 60)
        print(f"Exporting maps to {output_dir}")
        print("=" * 60)
        os.makedirs(output_dir, exist_ok=True)
        lookup = build_pixel_lookup(grid)
        export_equirectangular(grid.elevation, grid, os.path.join(output_dir, 'elevation.png'),
                               lookup=lookup, verbose=True)
        export_equirectangular(climate.average_temperature, grid,
                               os.path.join(output_dir, 'temperature.png'),
                               vmin=TEMP_MIN, vmax=TEMP_MAX, lookup=lookup, verbose=True)
        export_equirectangular(climate.annual_precipitation, grid,
                               os.path.join(output_dir, 'precipitation.png'),
                               vmin=0.0, lookup=lookup, verbose=True)
        export_equirectangular(climate.river_flow, grid, os.path.join(output_dir, 'rivers.png'),
                               vmin=0.0, lookup=lookup, verbose=True)

    return planet, climate


if __name__ == "__main__":
    # ========== RUN CONFIGURATION ==========
    GRID_RESOLUTION = 12
    SEED = 42
    OUTPUT_DIR = "maps"

    main(grid_resolution=GRID_RESOLUTION, seed=SEED, output_dir=OUTPUT_DIR)
