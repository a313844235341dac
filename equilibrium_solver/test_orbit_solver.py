import sys
import os
import itertools

import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from simulation_params import (ASTRONOMICAL_UNIT, DEFAULT_TARGET_TEMPERATURE, HUMAN_MAX_TEMPERATURE,
                               HUMAN_MIN_TEMPERATURE, MAX_ORBIT_ITERATIONS, SOLAR_LUMINOSITY)
from atmosphere_model import HydrosphereState
from atmosphere_model.chemicals import CARBON_DIOXIDE
from equilibrium_solver import (HabitabilityRequirements, OrbitTemperatureSolver,
                                PhaseEquilibrationEngine, PlanetParams, TerrestrialPlanet)


class RecordingEngine:
    def __init__(self):
        self.calls = 0

    def generate_atmosphere(self):
        self.calls += 1


def equilibrated_earth(seed):
    planet = TerrestrialPlanet(PlanetParams.earth_analog(seed=seed))
    engine = PhaseEquilibrationEngine(planet)
    engine.generate_hydrosphere()
    engine.generate_atmosphere()
    return planet, engine


def test_target_defaults():
    planet = TerrestrialPlanet(PlanetParams(seed=1))
    assert OrbitTemperatureSolver(planet, None).target_temperature == DEFAULT_TARGET_TEMPERATURE

    planet = TerrestrialPlanet(PlanetParams(seed=1), HabitabilityRequirements.human())
    solver = OrbitTemperatureSolver(planet, None)
    assert solver.target_temperature == pytest.approx((HUMAN_MIN_TEMPERATURE + HUMAN_MAX_TEMPERATURE) / 2)

    planet = TerrestrialPlanet(PlanetParams.earth_analog())
    assert OrbitTemperatureSolver(planet, None).target_temperature == pytest.approx(289.0)


def test_invalid_mode():
    planet = TerrestrialPlanet(PlanetParams(seed=1))
    with pytest.raises(ValueError):
        OrbitTemperatureSolver(planet, None, adjust='eccentricity')


def test_oscillating_search_stops_at_cap(monkeypatch):
    planet = TerrestrialPlanet(PlanetParams.earth_analog(seed=1))
    solver = OrbitTemperatureSolver(planet, RecordingEngine())
    deltas = itertools.cycle([10.0, -10.0])
    monkeypatch.setattr(solver, 'temperature_delta', lambda: next(deltas))

    with pytest.warns(UserWarning):
        solver.solve()

    assert solver.iterations == MAX_ORBIT_ITERATIONS
    assert abs(solver.final_delta) > 0.5


def test_diverging_search_regenerates_atmosphere(monkeypatch):
    planet = TerrestrialPlanet(PlanetParams.earth_analog(seed=1))
    engine = RecordingEngine()
    solver = OrbitTemperatureSolver(planet, engine)
    deltas = iter([5.0, 10.0, 0.1])
    monkeypatch.setattr(solver, 'temperature_delta', lambda: next(deltas))

    solver.solve()

    assert solver.iterations == 3
    assert solver.regenerations == 1
    assert engine.calls == 1
    assert solver.final_delta == pytest.approx(0.1)


def test_damping_survives_regeneration(monkeypatch):
    planet = TerrestrialPlanet(PlanetParams.earth_analog(seed=1))
    solver = OrbitTemperatureSolver(planet, RecordingEngine())
    start = solver.effective_target()
    applied = []
    deltas = iter([5.0, 10.0, -4.0, 0.1])
    monkeypatch.setattr(solver, '_apply', applied.append)
    monkeypatch.setattr(solver, 'temperature_delta', lambda: next(deltas))

    solver.solve()

    assert solver.regenerations == 1
    # The sign flip after the restart is still halved
    assert applied == pytest.approx([start, start + 5.0, start, start - 2.0])


def test_each_iteration_starts_from_saved_hydrosphere(monkeypatch):
    planet = TerrestrialPlanet(PlanetParams.earth_analog(seed=1))
    PhaseEquilibrationEngine(planet).generate_hydrosphere()
    mass = planet.hydrosphere.mass
    solver = OrbitTemperatureSolver(planet, RecordingEngine())
    deltas = iter([8.0, 4.0, 0.1])
    seen = []

    def evaporating_delta():
        seen.append(planet.hydrosphere.mass)
        planet.hydrosphere = HydrosphereState()
        return next(deltas)

    monkeypatch.setattr(solver, 'temperature_delta', evaporating_delta)
    solver.solve()

    assert solver.iterations == 3
    assert seen == pytest.approx([mass] * 3)
    assert mass > 0


@pytest.mark.parametrize('seed', [1, 4, 5])
def test_earth_analog_orbit(seed):
    planet, engine = equilibrated_earth(seed)
    solver = OrbitTemperatureSolver(planet, engine)

    solver.solve()

    assert 1 <= solver.iterations <= MAX_ORBIT_ITERATIONS
    assert 0.5 * ASTRONOMICAL_UNIT < planet.semi_major_axis < 2.0 * ASTRONOMICAL_UNIT
    assert abs(planet.average_surface_temperature - 289.0) <= 5.0
    assert planet.equatorial_surface_temperature > planet.average_surface_temperature
    assert planet.has_liquid_water()
    assert planet.atmosphere.composition.get_proportion(CARBON_DIOXIDE) < 1.0e-3


def test_luminosity_mode_keeps_orbit():
    planet, engine = equilibrated_earth(6)
    semi_major_axis = planet.semi_major_axis
    solver = OrbitTemperatureSolver(planet, engine, adjust='luminosity')

    solver.solve()

    assert planet.semi_major_axis == semi_major_axis
    assert 0.3 * SOLAR_LUMINOSITY < planet.luminosity < 3.0 * SOLAR_LUMINOSITY
