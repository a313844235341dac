import sys
import os
from types import SimpleNamespace

import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from simulation_params import ASTRONOMICAL_UNIT, STANDARD_PRESSURE
from atmosphere_model import AtmosphereState, Composition, Phase
from atmosphere_model.chemicals import CARBON_DIOXIDE, NITROGEN, OXYGEN
from equilibrium_solver import (HabitabilityRequirements, PhaseEquilibrationEngine, PlanetParams,
                                TerrestrialPlanet, UninhabitabilityReason, evaluate_habitability,
                                reason_names)


def airless_planet(distance_au=1.0):
    return TerrestrialPlanet(PlanetParams(semi_major_axis=distance_au * ASTRONOMICAL_UNIT,
                                          water_ratio=0.0, seed=1))


def test_cold_planet_is_too_cold():
    planet = airless_planet(3.0)
    requirements = HabitabilityRequirements(min_temperature=236.0, max_temperature=308.0)

    mask = evaluate_habitability(planet, requirements)

    assert planet.average_surface_temperature < 200.0
    assert mask & UninhabitabilityReason.TOO_COLD
    assert not mask & UninhabitabilityReason.TOO_HOT
    assert 'too_cold' in reason_names(mask)


def converged_state(coldest_equator, warmest_pole):
    return SimpleNamespace(is_inhospitable=False, min_equatorial_temperature=coldest_equator,
                           max_polar_temperature=warmest_pole, gravity=9.8,
                           atmosphere=SimpleNamespace(pressure=STANDARD_PRESSURE))


def test_temperature_boundary():
    requirements = HabitabilityRequirements(min_temperature=236.0, max_temperature=308.0)

    assert evaluate_habitability(converged_state(200.0, 280.0), requirements) \
        == UninhabitabilityReason.TOO_COLD
    assert evaluate_habitability(converged_state(240.0, 300.0), requirements) \
        == UninhabitabilityReason.NONE
    assert evaluate_habitability(converged_state(240.0, 320.0), requirements) \
        == UninhabitabilityReason.TOO_HOT


def test_gravity_and_pressure_bounds():
    planet = airless_planet()

    assert evaluate_habitability(planet, HabitabilityRequirements(max_gravity=5.0)) \
        == UninhabitabilityReason.HIGH_GRAVITY
    assert evaluate_habitability(planet, HabitabilityRequirements(min_gravity=20.0)) \
        == UninhabitabilityReason.LOW_GRAVITY
    assert evaluate_habitability(planet, HabitabilityRequirements(min_pressure=50.0)) \
        == UninhabitabilityReason.LOW_PRESSURE


def test_dry_planet_has_no_water():
    planet = airless_planet()
    mask = evaluate_habitability(planet, HabitabilityRequirements(require_liquid_water=True))
    assert mask == UninhabitabilityReason.NO_WATER


def test_carbon_dioxide_atmosphere_is_unbreathable():
    planet = airless_planet()
    planet.atmosphere = AtmosphereState(Composition({(CARBON_DIOXIDE, Phase.GAS): 0.96,
                                                     (NITROGEN, Phase.GAS): 0.04}), STANDARD_PRESSURE)

    mask = evaluate_habitability(planet, HabitabilityRequirements.human())

    assert mask & UninhabitabilityReason.UNBREATHABLE_ATMOSPHERE
    assert mask & UninhabitabilityReason.NO_WATER


def test_breathable_atmosphere_passes():
    planet = airless_planet()
    planet.atmosphere = AtmosphereState(Composition({(NITROGEN, Phase.GAS): 0.79,
                                                     (OXYGEN, Phase.GAS): 0.21}), STANDARD_PRESSURE)
    requirements = HabitabilityRequirements(
        atmosphere_requirements=HabitabilityRequirements.human().atmosphere_requirements)

    assert evaluate_habitability(planet, requirements) == UninhabitabilityReason.NONE


def test_inhospitable_flag_is_reported():
    planet = airless_planet()
    planet.is_inhospitable = True
    assert evaluate_habitability(planet, HabitabilityRequirements()) == UninhabitabilityReason.INHOSPITABLE


def test_earth_analog_within_wide_bounds():
    planet = TerrestrialPlanet(PlanetParams.earth_analog(seed=3))
    engine = PhaseEquilibrationEngine(planet)
    engine.generate_hydrosphere()
    engine.generate_atmosphere()
    requirements = HabitabilityRequirements(min_temperature=200.0, max_temperature=350.0,
                                            min_pressure=50.0, max_pressure=200.0,
                                            require_liquid_water=True)

    assert evaluate_habitability(planet, requirements) == UninhabitabilityReason.NONE


def test_inverted_bounds_rejected():
    with pytest.raises(ValueError):
        HabitabilityRequirements(min_temperature=300.0, max_temperature=250.0)


def test_reason_names_lists_every_flag():
    mask = UninhabitabilityReason.LOW_PRESSURE | UninhabitabilityReason.HIGH_GRAVITY
    assert sorted(reason_names(mask)) == ['high_gravity', 'low_pressure']
    assert reason_names(UninhabitabilityReason.NONE) == []
