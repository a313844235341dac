"""
Atmosphere Builder

Generates the initial randomized atmosphere (thick or trace regime) and
surface hydrosphere of a terrestrial planet from its bulk properties.
"""

import math
from typing import Dict, Optional

from simulation_params import (
    GRAVITATIONAL_CONSTANT, OZONE_OXYGEN_RATIO, PHOTODISSOCIATION_OXYGEN_RATIO,
    STANDARD_PRESSURE, THIN_ATMOSPHERE_COEFFICIENT, EARTH_WATER_VAPOR_RATIO, is_zero,
)
from .atmosphere import AtmosphereState, HydrosphereState, get_hydrosphere_mass
from .chemicals import (
    ARGON, CARBON_DIOXIDE, CARBON_MONOXIDE, HELIUM, HYDROGEN, KRYPTON, METHANE, NEON,
    NITROGEN, OXYGEN, OZONE, Phase, SEAWATER, SULFUR_DIOXIDE, WATER, XENON,
)
from .composition import Composition
from .seeded_random import SeededRandom


# Noble gas carve-out ratio ranges, applied to the remaining N2 in this order
THICK_NOBLE_GAS_RATIOS = (
    (ARGON, -0.02, 0.04),
    (KRYPTON, -2.5e-4, 5.0e-4),
    (XENON, -1.8e-5, 3.5e-5),
    (NEON, -1.8e-5, 3.5e-5),
)
TRACE_NOBLE_GAS_RATIOS = THICK_NOBLE_GAS_RATIOS[:3]

# Atmospheric mass divisors (planet mass / atmosphere mass): mean, std, min, max
MASSIVE_MASS_DIVISOR = (1158568.0, 38600.0, 579300.0, 1737900.0)
LIGHT_MASS_DIVISOR = (7723785.0, 258000.0, 3862000.0, 11586000.0)
MASSIVE_PLANET_THRESHOLD = 1.5e24  # kg

EARTHLIKE_COMPOSITION = {
    HYDROGEN: 3.8e-8,
    HELIUM: 7.24e-6,
    METHANE: 2.9e-6,
    CARBON_MONOXIDE: 2.5e-7,
    SULFUR_DIOXIDE: 1.0e-7,
    CARBON_DIOXIDE: 5.3e-4,
    WATER: EARTH_WATER_VAPOR_RATIO,
    OXYGEN: 0.23133,
    OZONE: 0.23133 * OZONE_OXYGEN_RATIO,
    ARGON: 1.288e-3,
    KRYPTON: 3.3e-6,
    XENON: 8.7e-8,
    NEON: 1.267e-5,
}


def get_thin_atmosphere_temperature(mass: float, radius: float) -> float:
    """Blackbody temperature (K) above which a body keeps only a trace atmosphere."""
    return 2.0 * GRAVITATIONAL_CONSTANT * mass * THIN_ATMOSPHERE_COEFFICIENT / radius


def _gas_composition(proportions: Dict[str, float]) -> Composition:
    return Composition({(species, Phase.GAS): value
                        for species, value in proportions.items() if value > 0})


class AtmosphereBuilder:
    """
    Builds initial atmospheres and hydrospheres.

    Parameters
    ----------
    random : SeededRandom
        Keyed random source; the same seed always yields the same planet.
    verbose : bool
        Print the chosen regime and resulting pressure.
    """

    def __init__(self, random: SeededRandom, verbose: bool = False):
        self.random = random
        self.verbose = verbose

    # ========== HYDROSPHERE ==========

    def build_hydrosphere(self, radius: float, max_elevation: float,
                          water_ratio: Optional[float] = None) -> HydrosphereState:
        """Surface water as seawater plus fresh water."""
        if water_ratio is None:
            water_ratio = self.random.uniform('hydrosphere.ratio', 0.0, 1.0)
        if not 0.0 <= water_ratio <= 1.0:
            raise ValueError(f"Water ratio must be in [0, 1], got {water_ratio}")
        if is_zero(water_ratio):
            return HydrosphereState()

        seawater = self.random.normal('hydrosphere.seawater', 0.945, 0.015, 0.0, 1.0)
        composition = Composition({
            (SEAWATER, Phase.LIQUID): seawater,
            (WATER, Phase.LIQUID): 1.0 - seawater,
        })
        mass = get_hydrosphere_mass(radius, water_ratio, max_elevation)
        if self.verbose:
            print(f"  Hydrosphere: water ratio {water_ratio:.3f}, mass {mass:.3e} kg")
        return HydrosphereState(composition, mass)

    # ========== ATMOSPHERE ==========

    def build(self, mass: float, radius: float, gravity: float,
              average_blackbody_temperature: float,
              has_magnetosphere: bool = False,
              has_surface_water: bool = False,
              pressure: Optional[float] = None,
              min_pressure: Optional[float] = None,
              max_pressure: Optional[float] = None,
              earthlike: bool = False) -> AtmosphereState:
        """
        Choose a regime and build the initial atmosphere.

        Parameters
        ----------
        mass, radius, gravity : float
            Planet mass (kg), radius (m) and surface gravity (m/s²).
        average_blackbody_temperature : float
            Orbit-averaged blackbody temperature (K).
        has_magnetosphere : bool
            Magnetised planets retain heavier atmospheres.
        has_surface_water : bool
            Water vapor is only seeded when there is no surface water.
        pressure : float, optional
            Explicit surface pressure (kPa).
        min_pressure, max_pressure : float, optional
            Habitability bounds on surface pressure (kPa).
        earthlike : bool
            Use the Earth preset composition.

        Returns
        -------
        atmosphere : AtmosphereState
        """
        if mass <= 0 or radius <= 0:
            raise ValueError(f"Planet mass and radius must be positive, got {mass}, {radius}")

        threshold = get_thin_atmosphere_temperature(mass, radius)
        if not earthlike and average_blackbody_temperature >= threshold:
            atmosphere = self.build_trace(has_surface_water)
            regime = 'trace'
        else:
            atmosphere = self.build_thick(mass, radius, gravity, has_magnetosphere,
                                          has_surface_water, pressure, min_pressure,
                                          max_pressure, earthlike)
            regime = 'earthlike' if earthlike else 'thick'

        if self.verbose:
            print(f"  Atmosphere regime: {regime} (threshold {threshold:.1f} K, "
                  f"blackbody {average_blackbody_temperature:.1f} K)")
            print(f"  Surface pressure: {atmosphere.pressure:.3f} kPa")
        return atmosphere

    def build_trace(self, has_surface_water: bool = False) -> AtmosphereState:
        """Thin atmosphere of randomly present volatiles; may come out empty."""
        rnd = self.random
        h = rnd.uniform('trace.h', 5.0e-8, 2.0e-7)
        he = rnd.uniform('trace.he', 2.6e-7, 1.0e-5)

        gases = {
            METHANE: rnd.positive_uniform('trace.ch4', -0.5, 0.5),
            CARBON_MONOXIDE: rnd.positive_uniform('trace.co', -0.5, 0.5),
            SULFUR_DIOXIDE: rnd.positive_uniform('trace.so2', -0.5, 0.5),
        }
        n2 = rnd.positive_uniform('trace.n2', -0.5, 0.5)
        if n2 > 0:
            n2 = self._carve_noble_gases(gases, n2, TRACE_NOBLE_GAS_RATIOS, 'trace')
        gases[NITROGEN] = n2

        if gases[CARBON_MONOXIDE] > 0:
            gases[CARBON_DIOXIDE] = rnd.uniform('trace.co2', 0.0, 0.5)
        else:
            gases[CARBON_DIOXIDE] = rnd.positive_uniform('trace.co2', -0.5, 0.5)

        vapor = 0.0
        if not has_surface_water:
            vapor = rnd.positive_uniform('trace.vapor', -0.05, 0.001)
        gases[WATER] = vapor
        if vapor > 0:
            gases[OXYGEN] = vapor * PHOTODISSOCIATION_OXYGEN_RATIO
        else:
            gases[OXYGEN] = rnd.positive_uniform('trace.o2', -0.05, 0.5)

        total = sum(gases.values())
        if is_zero(total):
            # Hydrogen and helium alone do not make an atmosphere
            return AtmosphereState()

        scale = (1.0 - h - he) / total
        proportions = {species: value * scale for species, value in gases.items()}
        proportions[HYDROGEN] = h
        proportions[HELIUM] = he
        pressure = rnd.uniform('trace.pressure', 0.0, 25.0)
        return AtmosphereState(_gas_composition(proportions), pressure)

    def build_thick(self, mass: float, radius: float, gravity: float,
                    has_magnetosphere: bool = False,
                    has_surface_water: bool = False,
                    pressure: Optional[float] = None,
                    min_pressure: Optional[float] = None,
                    max_pressure: Optional[float] = None,
                    earthlike: bool = False) -> AtmosphereState:
        """CO2-dominated atmosphere with N2 filling the remainder."""
        if earthlike:
            return self.build_earthlike(pressure)

        if pressure is None:
            pressure = self._sample_pressure(mass, radius, gravity, has_magnetosphere,
                                             min_pressure, max_pressure)
        if pressure < 0:
            raise ValueError(f"Atmospheric pressure cannot be negative, got {pressure}")

        rnd = self.random
        proportions = {
            HYDROGEN: rnd.uniform('thick.h', 1.0e-8, 2.0e-7),
            HELIUM: rnd.uniform('thick.he', 2.6e-7, 1.0e-5),
        }

        trace_gases = {
            METHANE: rnd.positive_uniform('thick.ch4', -0.5, 0.5),
            CARBON_MONOXIDE: rnd.positive_uniform('thick.co', -0.5, 0.5),
            SULFUR_DIOXIDE: rnd.positive_uniform('thick.so2', -0.5, 0.5),
        }
        trace_total = sum(trace_gases.values())
        trace = 0.0
        if trace_total > 0:
            trace = rnd.uniform('thick.trace', 1.0e-6, 2.5e-4)
            for species, value in trace_gases.items():
                proportions[species] = value * trace / trace_total

        proportions[CARBON_DIOXIDE] = rnd.uniform('thick.co2', 0.97, 0.99) - trace

        vapor = 0.0
        if not has_surface_water:
            vapor = rnd.positive_uniform('thick.vapor', -0.05, 0.001)
            proportions[WATER] = vapor
        if vapor > 0:
            proportions[OXYGEN] = vapor * PHOTODISSOCIATION_OXYGEN_RATIO
        elif has_surface_water:
            proportions[OXYGEN] = rnd.uniform('thick.o2', 0.0, 0.002)

        n2 = max(0.0, 1.0 - sum(proportions.values()))
        n2 = self._carve_noble_gases(proportions, n2, THICK_NOBLE_GAS_RATIOS, 'thick')
        proportions[NITROGEN] = n2

        return AtmosphereState(_gas_composition(proportions), pressure)

    def build_earthlike(self, pressure: Optional[float] = None) -> AtmosphereState:
        proportions = dict(EARTHLIKE_COMPOSITION)
        proportions[NITROGEN] = 1.0 - sum(proportions.values())
        return AtmosphereState(_gas_composition(proportions),
                               STANDARD_PRESSURE if pressure is None else pressure)

    def _sample_pressure(self, mass, radius, gravity, has_magnetosphere,
                         min_pressure, max_pressure) -> float:
        rnd = self.random
        if min_pressure is not None and max_pressure is not None:
            return rnd.uniform('thick.pressure', min_pressure, max_pressure)
        if min_pressure is not None:
            return min_pressure + abs(rnd.normal('thick.pressure', 0.0, min_pressure / 3.0))
        if max_pressure is not None:
            return rnd.uniform('thick.pressure', 0.0, max_pressure)

        if mass >= MASSIVE_PLANET_THRESHOLD or has_magnetosphere:
            mean, std, low, high = MASSIVE_MASS_DIVISOR
        else:
            mean, std, low, high = LIGHT_MASS_DIVISOR
        atmosphere_mass = mass / rnd.normal('thick.mass_divisor', mean, std, low, high)
        return atmosphere_mass * gravity / (1000.0 * 4.0 * math.pi * radius * radius)

    def _carve_noble_gases(self, proportions: Dict[str, float], n2: float,
                           ratios, prefix: str) -> float:
        """Take noble gases out of the N2 share in priority order; return what is left."""
        for species, low, high in ratios:
            amount = max(proportions.get(species, 0.0),
                         n2 * self.random.uniform(f'{prefix}.{species}', low, high))
            amount = min(max(0.0, amount), n2)
            proportions[species] = amount
            n2 -= amount
        return n2
