import sys
import os
import math

import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from simulation_params import EARTH_MASS, EARTH_RADIUS, MAX_ELEVATION, surface_gravity
from atmosphere_model import (AtmosphereBuilder, AtmosphereState, Phase, SeededRandom,
                              SubstanceRequirement, get_thin_atmosphere_temperature)
from atmosphere_model.chemicals import (ARGON, CARBON_DIOXIDE, HELIUM, HYDROGEN, NITROGEN,
                                        OXYGEN, SEAWATER, WATER)


EARTH_GRAVITY = surface_gravity(EARTH_MASS, EARTH_RADIUS)


def build(seed, blackbody, **kwargs):
    builder = AtmosphereBuilder(SeededRandom(seed))
    return builder.build(EARTH_MASS, EARTH_RADIUS, EARTH_GRAVITY, blackbody, **kwargs)


def test_thin_atmosphere_threshold_for_earth():
    threshold = get_thin_atmosphere_temperature(EARTH_MASS, EARTH_RADIUS)
    assert 8000.0 < threshold < 9500.0


@pytest.mark.parametrize('seed', range(20))
def test_hot_bodies_get_trace_atmospheres(seed):
    threshold = get_thin_atmosphere_temperature(EARTH_MASS, EARTH_RADIUS)
    atmosphere = build(seed, threshold + 1.0)

    assert not math.isnan(atmosphere.pressure)
    assert 0.0 <= atmosphere.pressure <= 25.0
    if atmosphere.is_empty:
        assert atmosphere.pressure == 0.0
    else:
        # Trace regime keeps hydrogen and helium in minute amounts
        assert atmosphere.composition.get_proportion(HYDROGEN) < 2.0e-7
        assert atmosphere.composition.get_proportion(HELIUM) < 1.0e-5


@pytest.mark.parametrize('seed', range(10))
def test_thick_atmosphere_is_co2_dominated(seed):
    atmosphere = build(seed, 255.0, has_magnetosphere=True)

    co2 = atmosphere.composition.get_proportion(CARBON_DIOXIDE)
    assert 0.96 < co2 < 0.99
    assert atmosphere.composition.get_proportion(NITROGEN) > 0
    assert atmosphere.pressure > 0
    assert sum(atmosphere.composition.components().values()) == pytest.approx(1.0)


def test_same_seed_same_atmosphere():
    first = build(7, 255.0)
    second = build(7, 255.0)
    assert first.pressure == second.pressure
    assert first.composition.to_record() == second.composition.to_record()


def test_surface_water_suppresses_vapor_seeding():
    atmosphere = build(3, 255.0, has_surface_water=True)
    assert not atmosphere.composition.contains(WATER)
    assert atmosphere.composition.get_proportion(OXYGEN) <= 0.002


def test_explicit_and_bounded_pressure():
    assert build(1, 255.0, pressure=50.0).pressure == 50.0

    for seed in range(10):
        bounded = build(seed, 255.0, min_pressure=60.0, max_pressure=80.0)
        assert 60.0 <= bounded.pressure <= 80.0
        at_least = build(seed, 255.0, min_pressure=60.0)
        assert at_least.pressure >= 60.0


def test_earthlike_preset():
    atmosphere = build(0, 255.0, earthlike=True)
    composition = atmosphere.composition

    assert atmosphere.pressure == pytest.approx(101.325)
    assert composition.get_proportion(OXYGEN) == pytest.approx(0.23133, rel=1e-6)
    assert composition.get_proportion(ARGON) == pytest.approx(1.288e-3, rel=1e-6)
    assert composition.get_proportion(NITROGEN) > 0.75


def test_hydrosphere_is_mostly_seawater():
    builder = AtmosphereBuilder(SeededRandom(11))
    hydrosphere = builder.build_hydrosphere(EARTH_RADIUS, MAX_ELEVATION, water_ratio=0.65)

    assert hydrosphere.composition.get_proportion(SEAWATER, Phase.LIQUID) > 0.85
    assert hydrosphere.water_proportion() == pytest.approx(1.0)
    assert hydrosphere.mass > 1.0e20


def test_dry_planet_has_empty_hydrosphere():
    builder = AtmosphereBuilder(SeededRandom(11))
    assert builder.build_hydrosphere(EARTH_RADIUS, MAX_ELEVATION, water_ratio=0.0).is_empty
    with pytest.raises(ValueError):
        builder.build_hydrosphere(EARTH_RADIUS, MAX_ELEVATION, water_ratio=1.5)


def test_atmosphere_derived_properties():
    atmosphere = build(0, 255.0, earthlike=True)
    mass = atmosphere.mass(EARTH_RADIUS, EARTH_GRAVITY)
    assert mass == pytest.approx(5.27e18, rel=0.05)

    atmosphere.update_temperature_dependent_properties(EARTH_RADIUS, EARTH_GRAVITY, 289.0)
    assert atmosphere.atmospheric_height > 50000.0
    assert atmosphere.average_precipitation > 0
    assert atmosphere.max_snowfall == pytest.approx(atmosphere.max_precipitation * 13.0)
    assert atmosphere.greenhouse_factor > 1.0
    assert atmosphere.pressure_at_elevation(5000.0, 260.0, EARTH_GRAVITY) < atmosphere.pressure


def test_requirements_scale_with_pressure():
    atmosphere = build(0, 255.0, earthlike=True)
    oxygen = [SubstanceRequirement(OXYGEN, 0.07, 0.53)]
    assert atmosphere.meets_requirements(oxygen)

    atmosphere.pressure = 10.0
    assert not atmosphere.meets_requirements(oxygen)
    assert not AtmosphereState().meets_requirements(oxygen)
