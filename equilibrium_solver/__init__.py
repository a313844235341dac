"""
Equilibrium solver package.

Planet temperature model, phase equilibration between atmosphere and
hydrosphere, the orbit/temperature search and habitability checks.
"""

from .planet import PlanetParams, TerrestrialPlanet
from .phases import PhaseEquilibrationEngine
from .orbit_solver import OrbitTemperatureSolver
from .habitability import (HabitabilityRequirements, UninhabitabilityReason, HUMAN_BREATHABILITY,
                           evaluate_habitability, reason_names)

__all__ = [
    'PlanetParams',
    'TerrestrialPlanet',
    'PhaseEquilibrationEngine',
    'OrbitTemperatureSolver',
    'HabitabilityRequirements',
    'UninhabitabilityReason',
    'HUMAN_BREATHABILITY',
    'evaluate_habitability',
    'reason_names',
]
