import sys
import os
import math

import numpy as np
import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from simulation_params import EARTH_RADIUS, EARTH_AXIAL_TILT
from atmosphere_model import get_thin_atmosphere_temperature
from equilibrium_solver import PlanetParams, TerrestrialPlanet


@pytest.fixture
def airless():
    return TerrestrialPlanet(PlanetParams(seed=2))


def test_defaults(airless):
    assert airless.radius == EARTH_RADIUS
    assert airless.gravity == pytest.approx(9.8, abs=0.05)
    assert airless.axial_tilt == EARTH_AXIAL_TILT
    assert not airless.has_biosphere


def test_invalid_params():
    with pytest.raises(ValueError):
        PlanetParams(radius=-1.0)
    with pytest.raises(ValueError):
        PlanetParams(eccentricity=1.0)
    with pytest.raises(ValueError):
        TerrestrialPlanet().temperature_at_distance(0.0)


def test_airless_surface_is_blackbody(airless):
    assert airless.insolation_factor_equatorial == 1.0
    assert airless.greenhouse_effect == 0.0
    assert airless.average_surface_temperature == pytest.approx(airless.average_blackbody_temperature)


def test_orbit_for_temperature(airless):
    airless.set_orbit_for_temperature(300.0)
    assert airless.blackbody_temperature == pytest.approx(300.0)

    airless.set_orbit_for_temperature(200.0)
    assert airless.blackbody_temperature == pytest.approx(200.0)


def test_luminosity_for_temperature(airless):
    distance = airless.semi_major_axis
    airless.set_luminosity_for_temperature(320.0)
    assert airless.semi_major_axis == distance
    assert airless.blackbody_temperature == pytest.approx(320.0)


def test_albedo_change_resets_temperatures(airless):
    before = airless.average_blackbody_temperature
    airless.set_albedo(0.8)
    assert airless.average_blackbody_temperature < before
    airless.set_albedo(1.5)
    assert airless.albedo == 1.0


def test_temperature_over_the_orbit(airless):
    assert airless.temperature_at_periapsis > airless.temperature_at_apoapsis
    assert airless.temperature_at_true_anomaly(0.0) == pytest.approx(airless.temperature_at_periapsis)
    assert airless.temperature_at_true_anomaly(math.pi) == pytest.approx(airless.temperature_at_apoapsis)
    assert airless.temperature_at_true_anomaly(0.5 * math.pi) \
        == pytest.approx(airless.temperature_at_true_anomaly(1.5 * math.pi))


def test_surface_temperature_ordering(airless):
    assert airless.diurnal_temperature_variation > 0
    assert airless.min_surface_temperature < airless.average_surface_temperature
    assert airless.average_surface_temperature < airless.max_surface_temperature


def test_year_proportions(airless):
    for proportion in (0.0, 0.3, 0.75):
        true_anomaly = airless.true_anomaly_at_proportion(proportion)
        assert airless.proportion_of_year(true_anomaly) == pytest.approx(proportion)


def test_solstice_declination(airless):
    solstice = airless.true_anomaly_at_proportion(0.0)
    assert airless.solar_declination(solstice) == pytest.approx(airless.axial_tilt)
    midsummer = airless.true_anomaly_at_proportion(0.5)
    assert airless.solar_declination(midsummer) == pytest.approx(-airless.axial_tilt)


def test_seasonal_latitude_reflects_past_the_pole():
    assert TerrestrialPlanet.seasonal_latitude(1.5, 0.2) == pytest.approx(math.pi - 1.7)
    assert TerrestrialPlanet.seasonal_latitude(-1.5, -0.2) == pytest.approx(1.7 - math.pi)
    shifted = TerrestrialPlanet.seasonal_latitude(np.array([0.0, 0.5]), 0.1)
    assert shifted == pytest.approx([0.1, 0.6])


def test_seasonal_proportion(airless):
    assert airless.seasonal_proportion(0.0, 1.0) == pytest.approx(0.0)
    assert airless.seasonal_proportion(0.5, 1.0) == pytest.approx(1.0)
    assert airless.seasonal_proportion(0.25, 1.0) == pytest.approx(0.5)
    assert airless.seasonal_proportion(0.0, -1.0) == pytest.approx(1.0)
    # Within the tropics the peak moves toward the equinox
    assert airless.seasonal_proportion(0.5, 0.1) < 1.0


def test_thin_atmosphere_threshold(airless):
    assert airless.thin_atmosphere_temperature \
        == pytest.approx(get_thin_atmosphere_temperature(airless.mass, airless.radius))
    assert airless.thin_atmosphere_temperature > airless.average_blackbody_temperature


def test_record(airless):
    record = airless.to_record()
    assert record['radius'] == EARTH_RADIUS
    assert record['atmosphere']['pressure'] == 0.0
    assert record['has_biosphere'] is False
