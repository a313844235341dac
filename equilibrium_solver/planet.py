"""
Terrestrial planet state and temperature model.

Holds the scalar inputs of a planet (bulk properties, orbit, star) together with
its atmosphere and hydrosphere, and derives every temperature the equilibrium
engine, orbit solver and seasonal sampler need. Derived temperatures are
cached; any change to orbit, albedo or atmosphere must be followed by
``reset_cached_temperatures()``.
"""

import math
from typing import Dict, Optional

import numpy as np

from simulation_params import (
    AMBIENT_TEMPERATURE, CP_DRY_AIR, DELTA_H_VAP_WATER, EARTH_MASS, EARTH_RADIUS,
    EARTH_ALBEDO, EARTH_AXIAL_TILT, EARTH_ECCENTRICITY, EARTH_REVOLUTION_PERIOD,
    EARTH_ROTATION_PERIOD, EARTH_SEMI_MAJOR_AXIS, INSOLATION_COEFFICIENT,
    INSOLATION_TRANSMITTANCE, MAX_ELEVATION, POLAR_AIR_MASS_EXPONENT, POLAR_LATITUDE_COSINE,
    R_SPECIFIC_DRY_AIR, R_SPECIFIC_WATER, SOLAR_LUMINOSITY, STEFAN_BOLTZMANN,
    get_earth_defaults, is_zero, surface_gravity, validate_parameters,
)
from atmosphere_model import (AtmosphereState, HydrosphereState, Phase, SeededRandom,
                              WATER_SPECIES, get_chemical)
from atmosphere_model.builder import get_thin_atmosphere_temperature


HALF_PI = math.pi / 2.0
TWO_PI = 2.0 * math.pi

# One hemisphere is enough, the annual profile is symmetric
LATITUDE_BANDS = (np.arange(90) + 0.5) * HALF_PI / 90
LATITUDE_WEIGHTS = np.cos(LATITUDE_BANDS) / np.cos(LATITUDE_BANDS).sum()


def lerp(a, b, t):
    return a + (b - a) * t


class PlanetParams:
    """
    Optional planet inputs.

    Any attribute left as ``None`` is defaulted (bulk and orbital values) or
    generated (atmosphere pressure, water ratio) by the engine.
    """

    def __init__(self, mass: Optional[float] = None, radius: Optional[float] = None,
                 albedo: Optional[float] = None, axial_tilt: Optional[float] = None,
                 eccentricity: Optional[float] = None,
                 surface_pressure: Optional[float] = None,
                 surface_temperature: Optional[float] = None,
                 water_ratio: Optional[float] = None,
                 water_vapor_ratio: Optional[float] = None,
                 revolution_period: Optional[float] = None,
                 rotational_period: Optional[float] = None,
                 max_elevation: Optional[float] = None,
                 luminosity: Optional[float] = None,
                 semi_major_axis: Optional[float] = None,
                 longitude_of_periapsis: Optional[float] = None,
                 has_magnetosphere: Optional[bool] = None,
                 earthlike: bool = False,
                 seed: int = 0):
        validate_parameters(mass=mass, radius=radius, eccentricity=eccentricity, albedo=albedo)
        if surface_pressure is not None and surface_pressure < 0:
            raise ValueError(f"Surface pressure cannot be negative, got {surface_pressure}")
        if rotational_period is not None and rotational_period <= 0:
            raise ValueError(f"Rotational period must be positive, got {rotational_period}")
        self.mass = mass
        self.radius = radius
        self.albedo = albedo
        self.axial_tilt = axial_tilt
        self.eccentricity = eccentricity
        self.surface_pressure = surface_pressure
        self.surface_temperature = surface_temperature
        self.water_ratio = water_ratio
        self.water_vapor_ratio = water_vapor_ratio
        self.revolution_period = revolution_period
        self.rotational_period = rotational_period
        self.max_elevation = max_elevation
        self.luminosity = luminosity
        self.semi_major_axis = semi_major_axis
        self.longitude_of_periapsis = longitude_of_periapsis
        self.has_magnetosphere = has_magnetosphere
        self.earthlike = earthlike
        self.seed = seed

    @classmethod
    def earth_analog(cls, **overrides) -> 'PlanetParams':
        """Earth bulk, orbit and surface values with generated chemistry."""
        values = get_earth_defaults()
        values.update(overrides)
        return cls(**values)


class TerrestrialPlanet:
    """
    A rocky planet with atmosphere and hydrosphere.

    Parameters
    ----------
    params : PlanetParams, optional
        Planet inputs. Earth bulk and orbital values fill any gaps.
    requirements : HabitabilityRequirements, optional
        Bounds that atmosphere generation and the orbit solver aim for.
    """

    def __init__(self, params: Optional[PlanetParams] = None, requirements=None):
        params = params if params is not None else PlanetParams()
        self.params = params
        self.requirements = requirements
        self.random = SeededRandom(params.seed)

        self.mass = params.mass if params.mass is not None else EARTH_MASS
        self.radius = params.radius if params.radius is not None else EARTH_RADIUS
        self.gravity = surface_gravity(self.mass, self.radius)
        self.has_magnetosphere = (params.has_magnetosphere if params.has_magnetosphere is not None
                                  else True)
        self.axial_tilt = params.axial_tilt if params.axial_tilt is not None else EARTH_AXIAL_TILT
        self.eccentricity = (params.eccentricity if params.eccentricity is not None
                             else EARTH_ECCENTRICITY)
        self.rotational_period = (params.rotational_period if params.rotational_period is not None
                                  else EARTH_ROTATION_PERIOD)
        self.revolution_period = (params.revolution_period if params.revolution_period is not None
                                  else EARTH_REVOLUTION_PERIOD)
        self.max_elevation = (params.max_elevation if params.max_elevation is not None
                              else MAX_ELEVATION)
        self.luminosity = params.luminosity if params.luminosity is not None else SOLAR_LUMINOSITY
        self.semi_major_axis = (params.semi_major_axis if params.semi_major_axis is not None
                                else EARTH_SEMI_MAJOR_AXIS)
        self.longitude_of_periapsis = (params.longitude_of_periapsis
                                       if params.longitude_of_periapsis is not None else 0.0)
        self.surface_albedo = params.albedo if params.albedo is not None else EARTH_ALBEDO
        self.albedo = self.surface_albedo
        self.ambient_temperature = AMBIENT_TEMPERATURE

        self.atmosphere = AtmosphereState()
        self.hydrosphere = HydrosphereState()
        self.has_biosphere = False
        self.is_inhospitable = False

        self._temperatures: Dict[str, float] = {}

    def __repr__(self):
        return (f"TerrestrialPlanet(radius={self.radius:.0f} m, "
                f"T_avg={self.average_surface_temperature:.1f} K, "
                f"P={self.atmosphere.pressure:.2f} kPa)")

    # ========== STATE MANAGEMENT ==========

    def reset_cached_temperatures(self):
        """Invalidate every cached temperature after an orbit, albedo or atmosphere change."""
        self._temperatures.clear()

    def _cached(self, name: str, compute):
        value = self._temperatures.get(name)
        if value is None:
            value = compute()
            self._temperatures[name] = value
        return value

    def set_albedo(self, albedo: float):
        self.albedo = min(1.0, max(0.0, albedo))
        self.reset_cached_temperatures()

    @property
    def is_earthlike(self) -> bool:
        return self.params.earthlike

    @property
    def surface_area(self) -> float:
        return 4.0 * math.pi * self.radius * self.radius

    @property
    def atmosphere_mass(self) -> float:
        return self.atmosphere.mass(self.radius, self.gravity)

    def hydrosphere_atmosphere_ratio(self) -> float:
        """Hydrosphere mass relative to atmosphere mass, capped at 1."""
        atmosphere_mass = self.atmosphere_mass
        if self.atmosphere.is_empty or is_zero(atmosphere_mass):
            return 0.0
        return min(1.0, self.hydrosphere.mass / atmosphere_mass)

    def update_atmosphere_properties(self):
        """Refresh the atmosphere's temperature-dependent values (height, precipitation)."""
        self.atmosphere.update_temperature_dependent_properties(
            self.radius, self.gravity, self.average_surface_temperature)

    # ========== ORBIT AND STAR ==========

    @property
    def area_ratio(self) -> float:
        """Day/night heat redistribution factor from the rotational period."""
        period = self.rotational_period
        if period <= 2500:
            return 1.0
        if period <= 75000:
            return 4.0
        if period <= 150000:
            return 3.0
        if period <= 300000:
            return 2.0
        return 1.0

    @property
    def periapsis(self) -> float:
        return self.semi_major_axis * (1.0 - self.eccentricity)

    @property
    def apoapsis(self) -> float:
        return self.semi_major_axis * (1.0 + self.eccentricity)

    @property
    def average_distance(self) -> float:
        return self.semi_major_axis * (1.0 + self.eccentricity ** 2 / 2.0)

    def temperature_at_distance(self, distance: float) -> float:
        """Blackbody temperature (K) at a distance (m) from the star."""
        if distance <= 0:
            raise ValueError(f"Distance must be positive, got {distance}")
        return self.ambient_temperature + (
            (self.luminosity / (distance * distance)) ** 0.25
            * ((1.0 - self.albedo) / (4.0 * math.pi * STEFAN_BOLTZMANN * self.area_ratio)) ** 0.25)

    def distance_for_temperature(self, temperature: float) -> float:
        """Distance (m) at which the blackbody temperature equals ``temperature``."""
        delta = temperature - self.ambient_temperature
        if delta <= 0:
            return math.inf
        return math.sqrt(self.luminosity * (1.0 - self.albedo)
                         / (delta ** 4 * 4.0 * math.pi * STEFAN_BOLTZMANN * self.area_ratio))

    def set_orbit_for_temperature(self, temperature: float):
        """Move the orbit so the average blackbody temperature approaches ``temperature``."""
        distance = self.distance_for_temperature(temperature)
        if math.isfinite(distance) and distance > 0:
            self.semi_major_axis = distance / (1.0 + self.eccentricity ** 2 / 2.0)
        self.reset_cached_temperatures()

    def set_luminosity_for_temperature(self, temperature: float):
        """Adjust the star's output instead of the orbit."""
        delta = max(0.0, temperature - self.ambient_temperature)
        if not is_zero(1.0 - self.albedo):
            distance = self.average_distance
            self.luminosity = (delta ** 4 * 4.0 * math.pi * STEFAN_BOLTZMANN * self.area_ratio
                               * distance * distance / (1.0 - self.albedo))
        self.reset_cached_temperatures()

    # ========== BLACKBODY TEMPERATURES ==========

    @property
    def blackbody_temperature(self) -> float:
        """Blackbody temperature at the current (average) orbital distance."""
        return self._cached('blackbody', lambda: self.temperature_at_distance(self.average_distance))

    @property
    def temperature_at_periapsis(self) -> float:
        return self._cached('periapsis', lambda: self.temperature_at_distance(self.periapsis))

    @property
    def temperature_at_apoapsis(self) -> float:
        return self._cached('apoapsis', lambda: self.temperature_at_distance(self.apoapsis))

    @property
    def average_blackbody_temperature(self) -> float:
        e = self.eccentricity
        return self._cached('average_blackbody', lambda: (
            self.temperature_at_periapsis * (1.0 + e) + self.temperature_at_apoapsis * (1.0 - e)) / 2.0)

    def temperature_at_true_anomaly(self, true_anomaly: float) -> float:
        """Blackbody temperature at an orbital position, interpolated periapsis to apoapsis."""
        true_anomaly %= TWO_PI
        proportion = true_anomaly / math.pi
        if true_anomaly > math.pi:
            proportion = 2.0 - proportion
        return lerp(self.temperature_at_periapsis, self.temperature_at_apoapsis, proportion)

    @property
    def thin_atmosphere_temperature(self) -> float:
        return get_thin_atmosphere_temperature(self.mass, self.radius)

    # ========== INSOLATION AND GREENHOUSE ==========

    def polar_air_mass(self) -> float:
        """Relative path length of sunlight through the atmosphere near the poles."""
        scale_height = self.atmosphere.scale_height(self.gravity, self.average_blackbody_temperature)
        if is_zero(scale_height):
            return 1.0
        r = self.radius / scale_height
        rc = r * POLAR_LATITUDE_COSINE
        return math.sqrt(rc * rc + 2.0 * r + 1.0) - rc

    def get_insolation_factor(self, atmosphere_mass: float, polar: bool = False) -> float:
        if is_zero(atmosphere_mass):
            return 1.0
        transmittance = INSOLATION_TRANSMITTANCE
        if polar:
            transmittance = INSOLATION_TRANSMITTANCE ** (self.polar_air_mass() ** POLAR_AIR_MASS_EXPONENT)
        return (INSOLATION_COEFFICIENT * atmosphere_mass * transmittance / self.mass) ** 0.25

    @property
    def insolation_factor_equatorial(self) -> float:
        return self._cached('insolation_equatorial',
                            lambda: self.get_insolation_factor(self.atmosphere_mass))

    @property
    def insolation_factor_polar(self) -> float:
        return self._cached('insolation_polar',
                            lambda: self.get_insolation_factor(self.atmosphere_mass, polar=True))

    def insolation_factor_at_latitude(self, latitude):
        """Insolation factor blended from polar to equatorial by latitude (rad); array-aware."""
        polar = self.insolation_factor_polar
        equatorial = self.insolation_factor_equatorial
        tilt = self.axial_tilt
        angle = np.maximum(0.0, np.abs(2.0 * np.asarray(latitude)) * (HALF_PI + tilt) / HALF_PI - tilt)
        return polar + (equatorial - polar) * (0.5 + np.cos(angle) / 2.0)

    def get_greenhouse_effect(self, insolation_factor: float, greenhouse_factor: float) -> float:
        blackbody = self.average_blackbody_temperature
        return max(0.0, blackbody * insolation_factor * greenhouse_factor - blackbody)

    @property
    def greenhouse_effect(self) -> float:
        return self._cached('greenhouse', lambda: self.get_greenhouse_effect(
            self.insolation_factor_equatorial, self.atmosphere.greenhouse_factor))

    # ========== SURFACE TEMPERATURES ==========

    @property
    def equatorial_surface_temperature(self) -> float:
        """Time-averaged surface temperature at the equator."""
        return self._cached('equatorial_surface', lambda: (
            self.average_blackbody_temperature * self.insolation_factor_equatorial
            + self.greenhouse_effect))

    @property
    def average_surface_temperature(self) -> float:
        """
        Area-weighted mean surface temperature over the orbit.

        The equator-to-pole profile of ``seasonal_surface_temperature`` at the
        average blackbody temperature is weighted by the cosine of latitude.
        """
        return self._cached('average_surface', lambda: float(np.sum(
            self.seasonal_surface_temperature(self.average_blackbody_temperature, LATITUDE_BANDS)
            * LATITUDE_WEIGHTS)))

    @property
    def diurnal_temperature_variation(self) -> float:
        def compute():
            time_factor = min(1.0, max(0.0, 1.0 - (self.rotational_period - 2500.0) / 595000.0))
            lit = self.average_blackbody_temperature * self.insolation_factor_equatorial
            dark = ((lit - self.ambient_temperature) * time_factor
                    + self.ambient_temperature + self.greenhouse_effect)
            return self.equatorial_surface_temperature - dark
        return self._cached('diurnal', compute)

    @property
    def max_surface_temperature(self) -> float:
        return self._cached('max_surface', lambda: (
            self.temperature_at_periapsis * self.insolation_factor_equatorial + self.greenhouse_effect))

    @property
    def min_surface_temperature(self) -> float:
        return self._cached('min_surface', lambda: (
            self.temperature_at_apoapsis * self.insolation_factor_polar + self.greenhouse_effect
            - self.diurnal_temperature_variation))

    @property
    def min_equatorial_temperature(self) -> float:
        """Coldest equatorial temperature (apoapsis, night side)."""
        return self._cached('min_equatorial', lambda: (
            self.temperature_at_apoapsis * self.insolation_factor_equatorial + self.greenhouse_effect
            - self.diurnal_temperature_variation))

    @property
    def max_polar_temperature(self) -> float:
        """Warmest polar temperature (periapsis)."""
        return self._cached('max_polar', lambda: (
            self.temperature_at_periapsis * self.insolation_factor_polar + self.greenhouse_effect))

    @property
    def polar_temperature(self) -> float:
        """Average polar surface temperature."""
        return self._cached('polar', lambda: (
            self.average_blackbody_temperature * self.insolation_factor_polar + self.greenhouse_effect))

    def seasonal_surface_temperature(self, blackbody_temperature: float, seasonal_latitude):
        """
        Surface temperature at a seasonal latitude for a given blackbody temperature.

        Parameters
        ----------
        blackbody_temperature : float
            Blackbody temperature at the orbital position (K).
        seasonal_latitude : float or np.ndarray
            Latitude relative to the subsolar latitude (rad).

        Returns
        -------
        temperature : float or np.ndarray
            Surface temperature (K), same shape as ``seasonal_latitude``.
        """
        greenhouse = self.greenhouse_effect
        temperature = (blackbody_temperature * self.insolation_factor_at_latitude(seasonal_latitude)
                       + greenhouse)
        if self.atmosphere.is_empty:
            return temperature
        equatorial = blackbody_temperature * self.insolation_factor_equatorial + greenhouse
        weight = np.sin(2.5 * np.sqrt(np.abs(seasonal_latitude))) / 1.75
        return lerp(temperature, equatorial, weight)

    # ========== LAPSE RATES ==========

    @property
    def lapse_rate_dry(self) -> float:
        return self.gravity / CP_DRY_AIR

    def lapse_rate_moist(self, surface_temperature):
        ratio = self.atmosphere.water_ratio
        t2 = surface_temperature * surface_temperature
        return (self.gravity * (R_SPECIFIC_DRY_AIR * t2 + DELTA_H_VAP_WATER * ratio * surface_temperature)
                / (CP_DRY_AIR * R_SPECIFIC_DRY_AIR * t2
                   + DELTA_H_VAP_WATER ** 2 * ratio * R_SPECIFIC_DRY_AIR / R_SPECIFIC_WATER))

    def lapse_rate(self, surface_temperature):
        if self.atmosphere.water_ratio > 0:
            return self.lapse_rate_moist(surface_temperature)
        return self.lapse_rate_dry

    def temperature_at_elevation(self, surface_temperature, elevation):
        """
        Temperature at an elevation above the local surface; array-aware.

        Above the top of the atmosphere the blackbody temperature applies. In
        between, the lapse rate is evaluated twice (at the surface and at the
        first estimate), then blended in over the lowest quarter of the relief.
        """
        temperature = np.asarray(surface_temperature, dtype=float)
        height = np.asarray(elevation, dtype=float)
        temperature, height = np.broadcast_arrays(temperature, height)

        estimate = temperature - height * self.lapse_rate(temperature)
        estimate = temperature - height * self.lapse_rate(np.maximum(estimate, self.ambient_temperature))
        if not self.atmosphere.is_empty and not is_zero(self.max_elevation):
            estimate = lerp(temperature, estimate, np.minimum(1.0, 4.0 * height / self.max_elevation))
        estimate = np.maximum(estimate, self.ambient_temperature)

        top = self._cached('atmospheric_height', lambda: self.atmosphere.get_atmospheric_height(
            self.gravity, self.average_surface_temperature))
        result = np.where(height > 0, estimate, temperature)
        result = np.where((height > 0) & (height >= top), self.blackbody_temperature, result)
        if result.ndim == 0:
            return float(result)
        return result

    # ========== SEASONS ==========

    @property
    def winter_solstice_true_anomaly(self) -> float:
        return (3.0 * HALF_PI - self.longitude_of_periapsis) % TWO_PI

    def proportion_of_year(self, true_anomaly: float) -> float:
        """Proportion of the year elapsed since the northern winter solstice."""
        return ((true_anomaly - self.winter_solstice_true_anomaly + TWO_PI) % TWO_PI) / TWO_PI

    def true_anomaly_at_proportion(self, proportion: float) -> float:
        return (self.winter_solstice_true_anomaly + proportion * TWO_PI) % TWO_PI

    def solar_declination(self, true_anomaly: float) -> float:
        ecliptic_longitude = self.longitude_of_periapsis + true_anomaly
        return math.asin(math.sin(-self.axial_tilt) * math.sin(ecliptic_longitude))

    @staticmethod
    def seasonal_latitude(latitude, solar_declination: float):
        """Latitude relative to the subsolar point, reflected back into [-π/2, π/2]."""
        shifted = np.asarray(latitude, dtype=float) + solar_declination
        shifted = np.where(shifted > HALF_PI, math.pi - shifted, shifted)
        shifted = np.where(shifted < -HALF_PI, -shifted - math.pi, shifted)
        if shifted.ndim == 0:
            return float(shifted)
        return shifted

    def seasonal_proportion(self, annual_proportion: float, latitude: float) -> float:
        """
        Proportion of the way from midwinter to midsummer at a latitude.

        Within the tropics the sun passes overhead twice, so the peak is shifted
        toward the equinox.
        """
        proportion = annual_proportion
        if proportion > 0.5:
            proportion = 1.0 - proportion
        proportion *= 2.0
        if latitude < 0:
            proportion = 1.0 - proportion
        tilt = self.axial_tilt
        if abs(latitude) < tilt and tilt > 0:
            peak = 1.0 - (tilt - abs(latitude)) / (2.0 * tilt)
            proportion = 1.0 - abs(proportion - peak) / peak
        return proportion

    # ========== WATER ==========

    def has_liquid_water(self) -> bool:
        """True if surface water is liquid at the minimum, average or maximum temperature."""
        present = [s for s in WATER_SPECIES if self.hydrosphere.composition.contains(s)]
        if not present:
            return False
        pressure = self.atmosphere.pressure
        temperatures = (self.max_surface_temperature, self.min_surface_temperature,
                        self.average_surface_temperature)
        return any(get_chemical(species).phase_at(t, pressure) == Phase.LIQUID
                   for species in present for t in temperatures)

    def to_record(self) -> Dict:
        """Plain record of the converged scalar state."""
        return {
            'mass': self.mass,
            'radius': self.radius,
            'gravity': self.gravity,
            'semi_major_axis': self.semi_major_axis,
            'eccentricity': self.eccentricity,
            'luminosity': self.luminosity,
            'albedo': self.albedo,
            'has_biosphere': self.has_biosphere,
            'is_inhospitable': self.is_inhospitable,
            'average_surface_temperature': self.average_surface_temperature,
            'equatorial_surface_temperature': self.equatorial_surface_temperature,
            'min_equatorial_temperature': self.min_equatorial_temperature,
            'max_polar_temperature': self.max_polar_temperature,
            'atmosphere': self.atmosphere.to_record(),
            'hydrosphere': self.hydrosphere.to_record(),
        }
