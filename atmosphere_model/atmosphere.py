"""
Atmosphere and hydrosphere state.

Each state owns one Composition plus the scalar properties derived from it.
Derived values are cached and must be reset explicitly when the composition,
pressure or temperature changes.
"""

import math
from typing import Dict, List, Optional

from simulation_params import (
    AVERAGE_PRECIPITATION_DIVISOR, ATMOSPHERE_TOP_PRESSURE, DEEP_WATER_TEMPERATURE,
    GREENHOUSE_BASE, GREENHOUSE_EXPONENT, GREENHOUSE_PRESSURE_OFFSET, GREENHOUSE_SCALE,
    HYDROSPHERE_SURFACE_DEPTH, IDEAL_GAS_CONSTANT, MAX_PRECIPITATION_FACTOR,
    MOLAR_MASS_AIR, R_SPECIFIC_DRY_AIR, SEAWATER_DENSITY, SNOW_TO_RAIN_RATIO,
    STANDARD_HEIGHT_DENSITY, STANDARD_PRESSURE, TROPOSPHERE_PROPORTION,
    WETNESS_MASS_DIVISOR, is_zero,
)
from .chemicals import Phase, WATER_SPECIES, get_chemical
from .composition import Composition


class SubstanceRequirement:
    """Bounds on the proportion of one species in an atmosphere at 1 atm."""

    def __init__(self, species: str, minimum: float = 0.0, maximum: float = 1.0,
                 phase: str = Phase.ANY):
        get_chemical(species)
        if minimum > maximum:
            raise ValueError(f"Requirement for {species}: minimum {minimum} exceeds maximum {maximum}")
        self.species = species
        self.minimum = minimum
        self.maximum = maximum
        self.phase = phase

    def __repr__(self):
        return f"SubstanceRequirement({self.species!r}, {self.minimum}, {self.maximum})"

    def convert_for_pressure(self, pressure: float) -> 'SubstanceRequirement':
        """Partial-pressure bounds re-expressed as proportions at the given pressure."""
        factor = STANDARD_PRESSURE / pressure
        return SubstanceRequirement(self.species, min(1.0, self.minimum * factor),
                                    min(1.0, self.maximum * factor), self.phase)

    def is_satisfied_by(self, composition: Composition) -> bool:
        proportion = composition.get_proportion(self.species, self.phase)
        return self.minimum <= proportion <= self.maximum


def get_hydrosphere_mass(radius: float, water_ratio: float, max_elevation: float) -> float:
    """Mass (kg) of surface water covering ``water_ratio`` of a planet."""
    area = 4.0 * math.pi * radius * radius
    return area * water_ratio * max_elevation * 0.5 * SEAWATER_DENSITY


class AtmosphereState:
    """Gas envelope of a planet: composition, surface pressure (kPa) and derived values."""

    def __init__(self, composition: Optional[Composition] = None, pressure: float = 0.0):
        if pressure < 0:
            raise ValueError(f"Atmospheric pressure cannot be negative, got {pressure}")
        self.composition = composition if composition is not None else Composition()
        self.pressure = pressure
        self._greenhouse_factor = None
        self._water_ratio = None

        self.average_precipitation = 0.0
        self.max_precipitation = 0.0
        self.max_snowfall = 0.0
        self.atmospheric_height = 0.0

    def __repr__(self):
        return f"AtmosphereState(pressure={self.pressure:.3f} kPa, {self.composition!r})"

    @property
    def is_empty(self) -> bool:
        return self.composition.is_empty

    # ========== CACHED COMPOSITION PROPERTIES ==========

    @property
    def greenhouse_factor(self) -> float:
        if self._greenhouse_factor is None:
            self._greenhouse_factor = self._compute_greenhouse_factor()
        return self._greenhouse_factor

    def _compute_greenhouse_factor(self) -> float:
        potential = self.composition.overall_value(lambda c: c.greenhouse_potential)
        if is_zero(potential) or self.pressure <= 0:
            return 1.0
        return (GREENHOUSE_BASE + GREENHOUSE_SCALE * math.exp(GREENHOUSE_EXPONENT * potential)
                * (GREENHOUSE_PRESSURE_OFFSET + math.log(self.pressure)))

    def reset_greenhouse_factor(self):
        self._greenhouse_factor = None

    @property
    def water_ratio(self) -> float:
        """Proportion of the atmosphere that is water in any phase."""
        if self._water_ratio is None:
            self._water_ratio = sum(self.composition.get_proportion(s) for s in WATER_SPECIES)
        return self._water_ratio

    def reset_water(self):
        self._water_ratio = None

    # ========== PHYSICAL PROPERTIES ==========

    def mass(self, radius: float, gravity: float) -> float:
        """Mass of the atmosphere (kg)."""
        if self.is_empty or gravity <= 0:
            return 0.0
        return 4.0 * math.pi * radius * radius * self.pressure * 1000.0 / gravity

    def density(self, temperature: float) -> float:
        """Near-surface air density (kg/m³)."""
        if temperature <= 0:
            return 0.0
        return self.pressure * 1000.0 / (R_SPECIFIC_DRY_AIR * temperature)

    def scale_height(self, gravity: float, blackbody_temperature: float) -> float:
        density = self.density(blackbody_temperature)
        if is_zero(density) or gravity <= 0:
            return 0.0
        return self.pressure * 1000.0 / gravity / density

    def get_atmospheric_height(self, gravity: float, temperature: float) -> float:
        """Altitude (m) at which pressure falls to the top-of-atmosphere value."""
        if self.is_empty or self.pressure <= ATMOSPHERE_TOP_PRESSURE or gravity <= 0:
            return 0.0
        return (math.log(ATMOSPHERE_TOP_PRESSURE / self.pressure) * IDEAL_GAS_CONSTANT
                * temperature / (-gravity * MOLAR_MASS_AIR))

    def pressure_at_elevation(self, elevation: float, temperature: float, gravity: float) -> float:
        """Pressure (kPa) at an elevation, given the temperature there."""
        if elevation <= 0 or temperature <= 0:
            return self.pressure
        return self.pressure * math.exp(-gravity * MOLAR_MASS_AIR * elevation
                                        / (IDEAL_GAS_CONSTANT * temperature))

    def update_temperature_dependent_properties(self, radius: float, gravity: float,
                                                surface_temperature: float):
        """Recompute height and precipitation capacities for the current surface temperature."""
        self.reset_water()
        self.atmospheric_height = self.get_atmospheric_height(gravity, surface_temperature)
        wetness = self.water_ratio * self.mass(radius, gravity) / WETNESS_MASS_DIVISOR
        self.average_precipitation = (wetness * self.density(surface_temperature)
                                      * self.atmospheric_height / STANDARD_HEIGHT_DENSITY
                                      * AVERAGE_PRECIPITATION_DIVISOR)
        self.max_precipitation = self.average_precipitation * MAX_PRECIPITATION_FACTOR
        self.max_snowfall = self.max_precipitation * SNOW_TO_RAIN_RATIO

    # ========== LAYERING ==========

    def differentiate_troposphere(self):
        """Split a flat atmosphere into troposphere and upper atmosphere."""
        if not self.composition.is_layered and not self.composition.is_empty:
            self.composition = self.composition.split(TROPOSPHERE_PROPORTION)

    def add_to_troposphere(self, species: str, phase: str, amount: float):
        self.differentiate_troposphere()
        if not self.composition.is_empty:
            self.composition.add_to_layer(0, species, phase, amount)
        self.reset_greenhouse_factor()
        self.reset_water()

    # ========== REQUIREMENTS ==========

    def meets_requirements(self, requirements: List[SubstanceRequirement]) -> bool:
        if not requirements:
            return True
        if is_zero(self.pressure):
            return all(r.minimum <= 0 for r in requirements)
        return all(r.convert_for_pressure(self.pressure).is_satisfied_by(self.composition)
                   for r in requirements)

    def copy(self) -> 'AtmosphereState':
        result = AtmosphereState(self.composition.copy(), self.pressure)
        result.average_precipitation = self.average_precipitation
        result.max_precipitation = self.max_precipitation
        result.max_snowfall = self.max_snowfall
        result.atmospheric_height = self.atmospheric_height
        return result

    def to_record(self) -> Dict:
        return {'pressure': self.pressure, 'composition': self.composition.to_record()}


class HydrosphereState:
    """Surface liquids and ices of a planet: composition plus total mass (kg)."""

    def __init__(self, composition: Optional[Composition] = None, mass: float = 0.0):
        self.composition = composition if composition is not None else Composition()
        self.mass = mass if not self.composition.is_empty else 0.0

    def __repr__(self):
        return f"HydrosphereState(mass={self.mass:.3e} kg, {self.composition!r})"

    @property
    def is_empty(self) -> bool:
        return self.composition.is_empty

    def proportion_of_mass(self, planet_mass: float) -> float:
        if planet_mass <= 0:
            return 0.0
        return self.mass / planet_mass

    def water_proportion(self, phase: str = Phase.ANY) -> float:
        return sum(self.composition.get_proportion(s, phase) for s in WATER_SPECIES)

    def component_masses(self) -> Dict:
        """Mass (kg) of every (species, phase) component of the whole hydrosphere."""
        return {key: value * self.mass for key, value in self.composition.components().items()}

    def set_component_masses(self, masses: Dict):
        """Rebuild a flat hydrosphere from component masses (kg)."""
        masses = {key: value for key, value in masses.items() if value > 0}
        total = sum(masses.values())
        if total <= 0:
            self.composition = Composition()
            self.mass = 0.0
            return
        self.composition = Composition({key: value / total for key, value in masses.items()})
        self.mass = total

    def average_depth(self, radius: float) -> float:
        area = 4.0 * math.pi * radius * radius
        return self.mass / (SEAWATER_DENSITY * area)

    def homogenize(self):
        if self.composition.is_layered:
            self.composition = self.composition.homogenize()

    def fraction(self, surface_temperature: float, radius: float):
        """
        Separate a frozen surface from liquid water at depth.

        Below the surface mixed layer water is held near its density maximum
        (277 K), so a sub-freezing surface over deep water becomes an ice layer
        on top of a liquid ocean.
        """
        self.homogenize()
        present = [s for s in WATER_SPECIES if self.composition.contains(s)]
        if not present:
            return
        melting_point = min(get_chemical(s).melting_point for s in present)
        depth = self.average_depth(radius)
        if (surface_temperature >= melting_point or DEEP_WATER_TEMPERATURE < melting_point
                or depth <= HYDROSPHERE_SURFACE_DEPTH):
            return
        self.composition = self.composition.split(HYDROSPHERE_SURFACE_DEPTH / depth)
        for species in present:
            self.composition.set_phase(species, Phase.LIQUID, Phase.SOLID, layer=0)
            self.composition.set_phase(species, Phase.SOLID, Phase.LIQUID, layer=1)

    def copy(self) -> 'HydrosphereState':
        return HydrosphereState(self.composition.copy(), self.mass)

    def to_record(self) -> Dict:
        return {'mass': self.mass, 'composition': self.composition.to_record()}
