"""
Simulation Parameters

This module contains the physical constants, empirical tunables and Earth
defaults used by the atmosphere, phase-equilibrium and seasonal climate models.
"""

import math


# ============================================================
# PHYSICAL CONSTANTS
# ============================================================

# Stefan-Boltzmann constant (W⋅m⁻²⋅K⁻⁴)
STEFAN_BOLTZMANN = 5.670374e-8

# Gravitational constant (m³⋅kg⁻¹⋅s⁻²)
GRAVITATIONAL_CONSTANT = 6.674e-11

# Universal gas constant (J⋅mol⁻¹⋅K⁻¹)
IDEAL_GAS_CONSTANT = 8.31446

# Molar mass of dry air (kg/mol)
MOLAR_MASS_AIR = 0.0289644

# Specific heat of dry air at constant pressure (J⋅kg⁻¹⋅K⁻¹)
CP_DRY_AIR = 1004.64

# Specific gas constants (J⋅kg⁻¹⋅K⁻¹)
R_SPECIFIC_DRY_AIR = 287.058
R_SPECIFIC_WATER = 461.5

# Heat of vaporization of water (J/kg)
DELTA_H_VAP_WATER = 2.501e6

# Cosmic background temperature (K), the floor for blackbody temperatures
AMBIENT_TEMPERATURE = 2.725

# Luminosity of the Sun (W)
SOLAR_LUMINOSITY = 3.846e26

# Astronomical unit (m)
ASTRONOMICAL_UNIT = 1.495978707e11

# Floating point epsilon for "is zero" checks
EPSILON = 1.0e-12


# ============================================================
# ATMOSPHERE PARAMETERS
# ============================================================

# One standard atmosphere (kPa)
STANDARD_PRESSURE = 101.325

# Pressure at which the top of the atmosphere is considered reached (kPa)
ATMOSPHERE_TOP_PRESSURE = 0.0005

# Snow depth produced by one unit of rain
SNOW_TO_RAIN_RATIO = 13.0

# Empirical precipitation calibration (Earth-tuned)
AVERAGE_PRECIPITATION_DIVISOR = 0.11293634496919917864
MAX_PRECIPITATION_FACTOR = 7.0806859149236827
STANDARD_HEIGHT_DENSITY = 124191.6
WETNESS_MASS_DIVISOR = 1.287e16

# Greenhouse factor fit coefficients
GREENHOUSE_BASE = 0.933835
GREENHOUSE_SCALE = 0.0441533
GREENHOUSE_EXPONENT = 1.79077
GREENHOUSE_PRESSURE_OFFSET = 1.11169

# Insolation factor coefficients
INSOLATION_COEFFICIENT = 1320000.0
INSOLATION_TRANSMITTANCE = 0.7
POLAR_AIR_MASS_EXPONENT = 0.678
POLAR_LATITUDE_COSINE = 0.095

# Proportion of the atmosphere treated as troposphere when layered
TROPOSPHERE_PROPORTION = 0.8

# Proportion of the upper layer holding ozone
OZONE_LAYER_PROPORTION = 0.01

# Thin-atmosphere threshold coefficient (multiplies 2GM/r)
THIN_ATMOSPHERE_COEFFICIENT = 7.0594833834763e-5


# ============================================================
# PHASE EQUILIBRIUM PARAMETERS
# ============================================================

# Average relative humidity applied to residual vapor
AVERAGE_HUMIDITY = 0.25

# Fraction of vapor deposited as cloud
CLOUD_FRACTION = 0.2

# Elevation of the cloud layer used to choose the cloud phase (m)
CLOUD_LAYER_ELEVATION = 2000.0

# Albedo of ice and cloud tops
ICE_ALBEDO = 0.9

# Fraction of surface liquid frozen as polar ice caps
ICE_CAP_FRACTION = 0.28

# Minimum hydrosphere mass fraction for a subsurface ocean under ice
SUBSURFACE_OCEAN_THRESHOLD = 0.01

# Liquid fraction kept under a frozen surface
SUBSURFACE_OCEAN_LIQUID = 0.01

# Photodissociation oxygen byproduct per unit water vapor
PHOTODISSOCIATION_OXYGEN_RATIO = 1.0e-4

# CO2 reduction trigger levels
CO2_REDUCTION_HUMIDITY = 0.01
CO2_TRACE_THRESHOLD = 1.0e-3

# Ozone produced per unit free oxygen
OZONE_OXYGEN_RATIO = 4.5e-5

# Methane left after biological conversion
METHANE_RESIDUAL = 0.001

# Temperature shift that triggers another phase pass (K)
PHASE_TEMPERATURE_TOLERANCE = 5.0

# Maximum passes of the phase calculation (hard cap)
MAX_PHASE_PASSES = 10

# Hydrosphere layering: depth of the mixed surface layer (m) and deep water temperature (K)
HYDROSPHERE_SURFACE_DEPTH = 1000.0
DEEP_WATER_TEMPERATURE = 277.0

# Density of seawater (kg/m³)
SEAWATER_DENSITY = 1025.0

# Composition balance tolerance
PROPORTION_TOLERANCE = 1.0e-4


# ============================================================
# ORBIT SOLVER PARAMETERS
# ============================================================

# Default target average surface temperature (K)
DEFAULT_TARGET_TEMPERATURE = 250.0

# Average surface temperature to equatorial temperature ratio
EQUATORIAL_TEMPERATURE_RATIO = 1.0275

# Typical surface elevation as a proportion of max elevation
AVERAGE_ELEVATION_RATIO = 0.07

# Greenhouse effect assumed when nothing better is known (K)
DEFAULT_GREENHOUSE_ESTIMATE = 30.0

# Convergence tolerance (K)
ORBIT_TEMPERATURE_TOLERANCE = 0.5

# Maximum iterations of the orbit solver (hard cap)
MAX_ORBIT_ITERATIONS = 10


# ============================================================
# SEASONAL CLIMATE PARAMETERS
# ============================================================

# Number of seasons sampled over one orbit
DEFAULT_SEASONS = 12

# Hadley lookup table resolution (radians)
HADLEY_TABLE_STEP = 0.001

# Width of the humidity ramp below freezing (K)
HUMIDITY_RAMP_WIDTH = 24.0

# Noise frequencies for broad regional and fine local moisture
BROAD_NOISE_FREQUENCY = 0.5
FINE_NOISE_FREQUENCY = 4.0

# Annual precipitation (mm) under which land is too arid for snow cover
SUPERARID_PRECIPITATION = 125.0


# ============================================================
# GEOGRAPHICAL PARAMETERS
# ============================================================

# Earth radius (meters)
EARTH_RADIUS = 6371000.0  # m (6371 km)

# Earth mass (kg)
EARTH_MASS = 5.97237e24

# Maximum elevation (Mount Everest)
MAX_ELEVATION = 8849.0  # m

# Default grid resolution (points per cube face edge)
DEFAULT_GRID_RESOLUTION = 12

# Elevation noise frequency
ELEVATION_NOISE_FREQUENCY = 1.5


# ============================================================
# EARTH DEFAULTS
# ============================================================

EARTH_ALBEDO = 0.325
EARTH_AXIAL_TILT = 0.41  # rad
EARTH_ECCENTRICITY = 0.0167
EARTH_SURFACE_TEMPERATURE = 289.0  # K
EARTH_WATER_RATIO = 0.709
EARTH_WATER_VAPOR_RATIO = 0.0025
EARTH_REVOLUTION_PERIOD = 31558150.0  # s
EARTH_ROTATION_PERIOD = 86164.0  # s (sidereal day)
EARTH_SEMI_MAJOR_AXIS = ASTRONOMICAL_UNIT


# ============================================================
# HUMAN HABITABILITY
# ============================================================

HUMAN_MIN_TEMPERATURE = 236.0  # K
HUMAN_MAX_TEMPERATURE = 308.0  # K
HUMAN_MIN_PRESSURE = 6.18  # kPa
HUMAN_MAX_PRESSURE = 4980.0  # kPa
HUMAN_MAX_GRAVITY = 14.7  # m/s²


# ============================================================
# OUTPUT PARAMETERS
# ============================================================

RASTER_WIDTH = 360
RASTER_HEIGHT = 180

# Temperature range for raster scaling (Kelvin)
TEMP_MIN = 233.0  # -40°C
TEMP_MAX = 313.0  # +40°C


# ============================================================
# HELPER FUNCTIONS
# ============================================================

def kelvin_to_celsius(temp_k):
    """Convert temperature from Kelvin to Celsius."""
    return temp_k - 273.15


def is_zero(value, epsilon=EPSILON):
    """Return True if value is zero within floating point epsilon."""
    return abs(value) < epsilon


def surface_gravity(mass, radius):
    """Surface gravity (m/s²) of a body of the given mass (kg) and radius (m)."""
    return GRAVITATIONAL_CONSTANT * mass / (radius * radius)


def get_earth_defaults():
    """
    Earth-analog planet inputs.

    Returns
    -------
    defaults : dict
        Keyword arguments accepted by ``PlanetParams``.
    """
    return {
        'mass': EARTH_MASS,
        'radius': EARTH_RADIUS,
        'albedo': EARTH_ALBEDO,
        'axial_tilt': EARTH_AXIAL_TILT,
        'eccentricity': EARTH_ECCENTRICITY,
        'surface_pressure': STANDARD_PRESSURE,
        'surface_temperature': EARTH_SURFACE_TEMPERATURE,
        'water_ratio': EARTH_WATER_RATIO,
        'water_vapor_ratio': EARTH_WATER_VAPOR_RATIO,
        'revolution_period': EARTH_REVOLUTION_PERIOD,
        'rotational_period': EARTH_ROTATION_PERIOD,
        'max_elevation': MAX_ELEVATION,
        'has_magnetosphere': True,
    }


def validate_parameters(mass=None, radius=None, eccentricity=None, albedo=None):
    """
    Validate planet inputs at the API boundary.

    Raises
    ------
    ValueError
        If any supplied value is physically invalid.
    """
    if mass is not None and mass <= 0:
        raise ValueError(f"Planet mass must be positive, got {mass}")
    if radius is not None and radius <= 0:
        raise ValueError(f"Planet radius must be positive, got {radius}")
    if eccentricity is not None and not 0.0 <= eccentricity < 1.0:
        raise ValueError(f"Eccentricity must be in [0, 1), got {eccentricity}")
    if albedo is not None and not 0.0 <= albedo <= 1.0:
        raise ValueError(f"Albedo must be in [0, 1], got {albedo}")


def print_parameters():
    """Print the main simulation parameters."""
    print("\n" + "="*60)
    print("SIMULATION PARAMETERS")
    print("="*60)

    print("\nPhysical:")
    print(f"  Stefan-Boltzmann:         {STEFAN_BOLTZMANN:.6e} W/(m²⋅K⁴)")
    print(f"  Dry air Cp:               {CP_DRY_AIR:.2f} J/(kg⋅K)")
    print(f"  Solar luminosity:         {SOLAR_LUMINOSITY:.3e} W")

    print("\nAtmosphere:")
    print(f"  Standard pressure:        {STANDARD_PRESSURE:.3f} kPa")
    print(f"  Troposphere proportion:   {TROPOSPHERE_PROPORTION:.2f}")
    print(f"  Snow to rain ratio:       {SNOW_TO_RAIN_RATIO:.1f}")

    print("\nSolvers:")
    print(f"  Max phase passes:         {MAX_PHASE_PASSES}")
    print(f"  Max orbit iterations:     {MAX_ORBIT_ITERATIONS}")
    print(f"  Orbit tolerance:          {ORBIT_TEMPERATURE_TOLERANCE:.2f} K")

    print("\nEarth defaults:")
    print(f"  Radius:                   {EARTH_RADIUS/1000:.1f} km")
    print(f"  Albedo:                   {EARTH_ALBEDO:.3f}")
    print(f"  Axial tilt:               {math.degrees(EARTH_AXIAL_TILT):.2f}°")
    print(f"  Surface temperature:      {kelvin_to_celsius(EARTH_SURFACE_TEMPERATURE):.1f}°C")

    print("\nSeasonal climate:")
    print(f"  Seasons per year:         {DEFAULT_SEASONS}")
    print(f"  Humidity ramp width:      {HUMIDITY_RAMP_WIDTH:.1f} K")

    print("="*60)


if __name__ == "__main__":
    print_parameters()
