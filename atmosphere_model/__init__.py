"""
Atmosphere model package.

Chemical property table, composition ledger, atmosphere/hydrosphere state and
the initial atmosphere builder.
"""

from .chemicals import Chemical, Phase, CHEMICALS, WATER_SPECIES, CONDENSABLE_ORDER, get_chemical
from .composition import Composition
from .atmosphere import AtmosphereState, HydrosphereState, SubstanceRequirement, get_hydrosphere_mass
from .builder import AtmosphereBuilder, get_thin_atmosphere_temperature
from .seeded_random import SeededRandom

__all__ = [
    'Chemical',
    'Phase',
    'CHEMICALS',
    'WATER_SPECIES',
    'CONDENSABLE_ORDER',
    'get_chemical',
    'Composition',
    'AtmosphereState',
    'HydrosphereState',
    'SubstanceRequirement',
    'get_hydrosphere_mass',
    'AtmosphereBuilder',
    'get_thin_atmosphere_temperature',
    'SeededRandom',
]
