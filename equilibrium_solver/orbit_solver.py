"""
Orbit/Temperature Solver

Finds the orbital distance (or stellar luminosity) that gives a planet a
target surface temperature. The search starts from an effective blackbody
temperature estimated from the target, then corrects it by the remaining
temperature error, damping oscillation and restarting with a regenerated
atmosphere when the error grows.
"""

import math
import warnings
from typing import Optional

from simulation_params import (
    AVERAGE_ELEVATION_RATIO, DEFAULT_GREENHOUSE_ESTIMATE, DEFAULT_TARGET_TEMPERATURE,
    EQUATORIAL_TEMPERATURE_RATIO, MAX_ORBIT_ITERATIONS, ORBIT_TEMPERATURE_TOLERANCE,
)


ADJUST_MODES = ('distance', 'luminosity')


class OrbitTemperatureSolver:
    """
    Iteratively place a planet so that it reaches a target temperature.

    Parameters
    ----------
    planet : TerrestrialPlanet
        Planet to move. Its orbit or luminosity is modified in place.
    engine : PhaseEquilibrationEngine
        Used to regenerate the atmosphere when the search diverges.
    adjust : str
        'distance' moves the orbit, 'luminosity' changes the star.
    target_temperature : float, optional
        Average surface temperature to reach (K). Defaults to the planet's
        explicit surface temperature, then the requirements' midpoint, then
        250 K.
    verbose : bool
        Print each iteration.
    """

    def __init__(self, planet, engine, adjust: str = 'distance',
                 target_temperature: Optional[float] = None, verbose: bool = False):
        if adjust not in ADJUST_MODES:
            raise ValueError(f"adjust must be one of {ADJUST_MODES}, got {adjust!r}")
        self.planet = planet
        self.engine = engine
        self.adjust = adjust
        self.verbose = verbose

        if target_temperature is None:
            target_temperature = planet.params.surface_temperature
        if target_temperature is None and planet.requirements is not None:
            target_temperature = planet.requirements.target_temperature
        if target_temperature is None:
            target_temperature = DEFAULT_TARGET_TEMPERATURE
        if target_temperature <= planet.ambient_temperature:
            raise ValueError(f"Target temperature {target_temperature} K is below the ambient "
                             f"temperature {planet.ambient_temperature} K")
        self.target_temperature = target_temperature
        self.target_equatorial_temperature = target_temperature * EQUATORIAL_TEMPERATURE_RATIO
        self.average_elevation = AVERAGE_ELEVATION_RATIO * planet.max_elevation

        self.iterations = 0
        self.regenerations = 0
        self.final_delta = math.nan

    def estimate_greenhouse_effect(self) -> float:
        """Greenhouse warming (K) expected at the target, before the orbit is known."""
        planet = self.planet
        if planet.params.surface_pressure is None or planet.atmosphere.is_empty:
            return DEFAULT_GREENHOUSE_ESTIMATE
        insolation = planet.get_insolation_factor(planet.atmosphere_mass)
        return planet.get_greenhouse_effect(insolation, planet.atmosphere.greenhouse_factor)

    def effective_target(self) -> float:
        """Blackbody temperature that the first iteration aims for."""
        total = (self.target_equatorial_temperature
                 + self.average_elevation * self.planet.lapse_rate_dry)
        return max(self.planet.ambient_temperature + 1.0, total - self.estimate_greenhouse_effect())

    def temperature_delta(self) -> float:
        """
        Remaining temperature error (K); positive when the planet is too cold.

        Measured against the area-weighted average surface temperature. With
        habitability requirements, a cold equator or hot poles override it.
        """
        planet = self.planet
        delta = self.target_temperature - planet.average_surface_temperature

        requirements = planet.requirements
        if requirements is not None:
            if (requirements.min_temperature is not None
                    and planet.min_equatorial_temperature < requirements.min_temperature):
                delta = max(delta, requirements.min_temperature - planet.min_equatorial_temperature)
            if (requirements.max_temperature is not None
                    and planet.max_polar_temperature > requirements.max_temperature):
                delta = min(delta, requirements.max_temperature - planet.max_polar_temperature)
        return delta

    def _snapshot(self):
        planet = self.planet
        return planet.hydrosphere.copy(), planet.atmosphere.copy(), planet.albedo

    def _restore(self, snapshot):
        """Undo evaporation or freezing left over from the previous iteration."""
        hydrosphere, atmosphere, albedo = snapshot
        self.planet.hydrosphere = hydrosphere.copy()
        self.planet.atmosphere = atmosphere.copy()
        self.planet.set_albedo(albedo)

    def _apply(self, temperature: float):
        if self.adjust == 'distance':
            self.planet.set_orbit_for_temperature(temperature)
        else:
            self.planet.set_luminosity_for_temperature(temperature)

    def solve(self) -> float:
        """
        Run the search.

        Returns
        -------
        final_delta : float
            Temperature error (K) after the last iteration. A search that hits
            the iteration cap keeps its last state.
        """
        planet = self.planet
        if self.verbose:
            print("=" * 60)
            print(f"Solving {self.adjust} for target {self.target_temperature:.2f} K")
            print("=" * 60)

        target_effective = self.effective_target()
        current = target_effective
        snapshot = self._snapshot()
        previous_delta = None
        regenerate = False
        delta = math.nan

        self.iterations = 0
        for _ in range(MAX_ORBIT_ITERATIONS):
            self.iterations += 1
            self._restore(snapshot)
            self._apply(current)
            planet.reset_cached_temperatures()
            if regenerate:
                self.engine.generate_atmosphere()
                self.regenerations += 1
                regenerate = False
                snapshot = self._snapshot()

            delta = self.temperature_delta()
            if self.verbose:
                print(f"  Iteration {self.iterations}: blackbody target {current:.2f} K, "
                      f"delta {delta:+.3f} K")
            if abs(delta) <= ORBIT_TEMPERATURE_TOLERANCE:
                break

            if previous_delta is not None:
                if (delta > 0) != (previous_delta > 0):
                    delta /= 2.0
                elif abs(delta) > abs(previous_delta):
                    regenerate = True
                    current = target_effective
                    previous_delta = delta
                    continue
            current = max(0.0, current + delta)
            previous_delta = delta

        self.final_delta = delta
        if abs(delta) > ORBIT_TEMPERATURE_TOLERANCE:
            warnings.warn(f"Orbit search stopped after {self.iterations} iterations "
                          f"with a {delta:+.2f} K error")
        if self.verbose:
            print(f"  Semi-major axis: {planet.semi_major_axis:.4e} m, "
                  f"luminosity: {planet.luminosity:.4e} W")
        return delta
