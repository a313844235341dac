"""
Chemical property table.

Static physical constants for every substance the atmosphere and hydrosphere
models track. Vapor pressure follows the Antoine equation
``log10(P[bar]) = A - B / (C + T)`` over each species' validity range.
"""

import math
from typing import Dict, NamedTuple, Optional, Tuple


class Phase:
    """Phases a composition entry may be stored in."""
    SOLID = 'solid'
    LIQUID = 'liquid'
    GAS = 'gas'
    ANY = 'any'

    ALL = (SOLID, LIQUID, GAS)


class Chemical(NamedTuple):
    """An immutable chemical species."""
    name: str
    formula: str
    melting_point: float
    antoine: Optional[Tuple[float, float, float]] = None
    antoine_range: Tuple[float, float] = (math.inf, 0.0)
    density: float = 0.0
    greenhouse_potential: float = 0.0
    is_metal: bool = False

    @property
    def antoine_min(self) -> float:
        return self.antoine_range[0]

    @property
    def antoine_max(self) -> float:
        return self.antoine_range[1]

    @property
    def is_greenhouse_gas(self) -> bool:
        return self.greenhouse_potential > 0

    @property
    def is_water(self) -> bool:
        return self.name in WATER_SPECIES

    def vapor_pressure(self, temperature: float) -> float:
        """
        Vapor pressure at the given temperature.

        Parameters
        ----------
        temperature : float
            Temperature in K.

        Returns
        -------
        pressure : float
            Vapor pressure in kPa. 0 below the validity range, infinite above it.
        """
        if self.antoine is None:
            return math.inf if temperature > self.melting_point else 0.0
        if temperature < self.antoine_min:
            return 0.0
        if temperature > self.antoine_max:
            return math.inf
        a, b, c = self.antoine
        return 10.0 ** (a - b / (c + temperature)) * 100.0

    def phase_at(self, temperature: float, pressure: float) -> str:
        """Phase of this species at the given temperature (K) and pressure (kPa)."""
        if temperature < self.melting_point:
            return Phase.SOLID
        if self.vapor_pressure(temperature) >= pressure:
            return Phase.GAS
        return Phase.LIQUID


METHANE = 'methane'
CARBON_MONOXIDE = 'carbon_monoxide'
CARBON_DIOXIDE = 'carbon_dioxide'
NITROGEN = 'nitrogen'
OXYGEN = 'oxygen'
SULFUR_DIOXIDE = 'sulfur_dioxide'
WATER = 'water'
SEAWATER = 'seawater'
OZONE = 'ozone'
ARGON = 'argon'
KRYPTON = 'krypton'
XENON = 'xenon'
NEON = 'neon'
HYDROGEN = 'hydrogen'
HELIUM = 'helium'
HYDROGEN_SULFIDE = 'hydrogen_sulfide'
AMMONIA = 'ammonia'

WATER_SPECIES = (WATER, SEAWATER)

# Order in which volatiles are equilibrated
CONDENSABLE_ORDER = (METHANE, CARBON_MONOXIDE, CARBON_DIOXIDE, NITROGEN, OXYGEN, SULFUR_DIOXIDE)


CHEMICALS: Dict[str, Chemical] = {c.name: c for c in (
    Chemical(METHANE, 'CH4', 91.15, (3.7687, 395.744, -6.469), (90.7, 120.6),
             density=0.657, greenhouse_potential=34.0),
    Chemical(CARBON_MONOXIDE, 'CO', 68.15, (3.81912, 291.743, -5.151), (68.2, 88.1),
             density=1.14),
    Chemical(CARBON_DIOXIDE, 'CO2', 195.15, (6.93556, 1347.786, -0.15), (153.2, 203.3),
             density=1.977, greenhouse_potential=1.0),
    Chemical(NITROGEN, 'N2', 63.15, (3.61947, 255.68, -6.6), (63.2, 83.7),
             density=1.251),
    Chemical(OXYGEN, 'O2', 54.36, (3.81634, 319.01, -6.453), (62.6, 97.2),
             density=1.429),
    Chemical(SULFUR_DIOXIDE, 'SO2', 202.15, (4.40718, 999.90, -35.96), (210.0, 279.5),
             density=2.6288),
    Chemical(WATER, 'H2O', 273.15, (4.6543, 1435.264, -64.848), (255.9, 373.0),
             density=1000.0, greenhouse_potential=1.0),
    Chemical(SEAWATER, 'H2O+NaCl', 271.35, (4.6543, 1435.264, -62.848), (255.9, 373.0),
             density=1025.0, greenhouse_potential=1.0),
    Chemical(OZONE, 'O3', 81.15, (4.23637, 712.487, 6.982), (92.8, 162.0),
             density=2.144),
    Chemical(ARGON, 'Ar', 83.8, (3.29555, 215.24, -22.233), (83.78, 150.72),
             density=1.784),
    Chemical(KRYPTON, 'Kr', 115.75, (4.2064, 539.004, 8.855), (126.68, 208.0),
             density=3.749),
    Chemical(XENON, 'Xe', 161.35, (3.80675, 577.661, -13.0), (161.7, 184.7),
             density=5.894),
    Chemical(NEON, 'Ne', 24.55, (3.75641, 95.599, -1.503), (15.9, 27.0),
             density=0.9),
    Chemical(HYDROGEN, 'H2', 14.01, (3.54314, 99.395, 7.726), (21.01, 32.27),
             density=0.08988),
    Chemical(HELIUM, 'He', 0.95, density=0.1786),
    Chemical(HYDROGEN_SULFIDE, 'H2S', 191.15, (4.52887, 958.587, -0.539), (212.8, 349.5),
             density=1.363),
    Chemical(AMMONIA, 'NH3', 195.42, (3.18757, 506.713, -80.78), (164.0, 239.6),
             density=0.769),
)}


def get_chemical(name: str) -> Chemical:
    """Look up a chemical by name."""
    try:
        return CHEMICALS[name]
    except KeyError:
        raise ValueError(f"Unknown chemical species: {name!r}") from None
