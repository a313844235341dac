"""
Habitability Evaluator

Pure checks of a converged planet against a set of habitability bounds.
"""

from typing import List, Optional

from simulation_params import (
    HUMAN_MAX_GRAVITY, HUMAN_MAX_PRESSURE, HUMAN_MAX_TEMPERATURE, HUMAN_MIN_PRESSURE,
    HUMAN_MIN_TEMPERATURE,
)
from atmosphere_model import SubstanceRequirement
from atmosphere_model.chemicals import (
    AMMONIA, CARBON_DIOXIDE, CARBON_MONOXIDE, HYDROGEN_SULFIDE, METHANE, OXYGEN, OZONE,
    SULFUR_DIOXIDE,
)


class UninhabitabilityReason:
    """Bit flags describing why a planet fails its requirements."""
    NONE = 0
    INHOSPITABLE = 1
    NO_WATER = 2
    UNBREATHABLE_ATMOSPHERE = 4
    TOO_COLD = 8
    TOO_HOT = 16
    LOW_PRESSURE = 32
    HIGH_PRESSURE = 64
    LOW_GRAVITY = 128
    HIGH_GRAVITY = 256

    NAMES = {
        INHOSPITABLE: 'inhospitable',
        NO_WATER: 'no_water',
        UNBREATHABLE_ATMOSPHERE: 'unbreathable_atmosphere',
        TOO_COLD: 'too_cold',
        TOO_HOT: 'too_hot',
        LOW_PRESSURE: 'low_pressure',
        HIGH_PRESSURE: 'high_pressure',
        LOW_GRAVITY: 'low_gravity',
        HIGH_GRAVITY: 'high_gravity',
    }


def reason_names(mask: int) -> List[str]:
    """Names of the flags set in a reason bitmask."""
    return [name for flag, name in UninhabitabilityReason.NAMES.items() if mask & flag]


HUMAN_BREATHABILITY = (
    SubstanceRequirement(OXYGEN, 0.07, 0.53),
    SubstanceRequirement(AMMONIA, 0.0, 5.0e-5),
    SubstanceRequirement(CARBON_MONOXIDE, 0.0, 5.0e-5),
    SubstanceRequirement(CARBON_DIOXIDE, 0.0, 0.005),
    SubstanceRequirement(METHANE, 0.0, 0.001),
    SubstanceRequirement(OZONE, 0.0, 1.0e-7),
    SubstanceRequirement(SULFUR_DIOXIDE, 0.0, 2.0e-6),
    SubstanceRequirement(HYDROGEN_SULFIDE, 0.0, 0.0),
)


class HabitabilityRequirements:
    """
    Optional bounds a planet is generated toward and checked against.

    Temperatures in K, pressures in kPa, gravity in m/s².
    """

    def __init__(self, min_temperature: Optional[float] = None,
                 max_temperature: Optional[float] = None,
                 min_pressure: Optional[float] = None,
                 max_pressure: Optional[float] = None,
                 min_gravity: Optional[float] = None,
                 max_gravity: Optional[float] = None,
                 require_liquid_water: bool = False,
                 atmosphere_requirements=None):
        for low, high, label in ((min_temperature, max_temperature, 'temperature'),
                                 (min_pressure, max_pressure, 'pressure'),
                                 (min_gravity, max_gravity, 'gravity')):
            if low is not None and high is not None and low > high:
                raise ValueError(f"Minimum {label} {low} exceeds maximum {high}")
        self.min_temperature = min_temperature
        self.max_temperature = max_temperature
        self.min_pressure = min_pressure
        self.max_pressure = max_pressure
        self.min_gravity = min_gravity
        self.max_gravity = max_gravity
        self.require_liquid_water = require_liquid_water
        self.atmosphere_requirements = tuple(atmosphere_requirements or ())

    @classmethod
    def human(cls) -> 'HabitabilityRequirements':
        return cls(min_temperature=HUMAN_MIN_TEMPERATURE,
                   max_temperature=HUMAN_MAX_TEMPERATURE,
                   min_pressure=HUMAN_MIN_PRESSURE,
                   max_pressure=HUMAN_MAX_PRESSURE,
                   min_gravity=0.0,
                   max_gravity=HUMAN_MAX_GRAVITY,
                   require_liquid_water=True,
                   atmosphere_requirements=HUMAN_BREATHABILITY)

    @property
    def target_temperature(self) -> Optional[float]:
        """Midpoint of the temperature bounds, or the minimum when only that is set."""
        if self.min_temperature is not None and self.max_temperature is not None:
            return (self.min_temperature + self.max_temperature) / 2.0
        return self.min_temperature


def evaluate_habitability(planet, requirements: HabitabilityRequirements) -> int:
    """
    Check a planet against habitability requirements.

    Parameters
    ----------
    planet : TerrestrialPlanet
        Converged planet.
    requirements : HabitabilityRequirements
        Bounds to check.

    Returns
    -------
    mask : int
        Bitwise OR of ``UninhabitabilityReason`` flags; 0 when habitable.
    """
    reasons = UninhabitabilityReason.NONE

    if planet.is_inhospitable:
        reasons |= UninhabitabilityReason.INHOSPITABLE

    if requirements.require_liquid_water and not planet.has_liquid_water():
        reasons |= UninhabitabilityReason.NO_WATER

    if (requirements.atmosphere_requirements
            and not planet.atmosphere.meets_requirements(list(requirements.atmosphere_requirements))):
        reasons |= UninhabitabilityReason.UNBREATHABLE_ATMOSPHERE

    if (requirements.min_temperature is not None
            and planet.min_equatorial_temperature < requirements.min_temperature):
        reasons |= UninhabitabilityReason.TOO_COLD
    if (requirements.max_temperature is not None
            and planet.max_polar_temperature > requirements.max_temperature):
        reasons |= UninhabitabilityReason.TOO_HOT

    pressure = planet.atmosphere.pressure
    if requirements.min_pressure is not None and pressure < requirements.min_pressure:
        reasons |= UninhabitabilityReason.LOW_PRESSURE
    if requirements.max_pressure is not None and pressure > requirements.max_pressure:
        reasons |= UninhabitabilityReason.HIGH_PRESSURE

    if requirements.min_gravity is not None and planet.gravity < requirements.min_gravity:
        reasons |= UninhabitabilityReason.LOW_GRAVITY
    if requirements.max_gravity is not None and planet.gravity > requirements.max_gravity:
        reasons |= UninhabitabilityReason.HIGH_GRAVITY

    return reasons
