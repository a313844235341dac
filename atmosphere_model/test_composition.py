import sys
import os

import pytest

# Root directory on the path for simulation_params
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from atmosphere_model import Composition, Phase, get_chemical
from atmosphere_model.chemicals import CARBON_DIOXIDE, NITROGEN, OXYGEN, SEAWATER, WATER


def layer_sums(composition):
    return [sum(composition.components(i).values()) for i in range(composition.layer_count)]


def make_air():
    return Composition({
        (NITROGEN, Phase.GAS): 0.78,
        (OXYGEN, Phase.GAS): 0.21,
        (CARBON_DIOXIDE, Phase.GAS): 0.01,
    })


def test_vapor_pressure_of_water_near_boiling():
    water = get_chemical(WATER)
    assert water.vapor_pressure(373.0) == pytest.approx(101.325, rel=0.03)
    assert water.vapor_pressure(200.0) == 0.0
    assert water.vapor_pressure(400.0) == float('inf')


def test_phase_rule():
    water = get_chemical(WATER)
    assert water.phase_at(250.0, 101.325) == Phase.SOLID
    assert water.phase_at(288.0, 101.325) == Phase.LIQUID
    assert water.phase_at(288.0, 0.5) == Phase.GAS
    assert get_chemical(NITROGEN).phase_at(288.0, 101.325) == Phase.GAS


def test_unknown_chemical_rejected():
    with pytest.raises(ValueError):
        get_chemical('unobtainium')
    with pytest.raises(ValueError):
        Composition({('unobtainium', Phase.GAS): 1.0})


def test_set_proportion_rescales_the_rest():
    air = make_air()
    air.set_proportion(OXYGEN, Phase.GAS, 0.5)

    assert air.get_proportion(OXYGEN) == pytest.approx(0.5)
    assert air.get_proportion(NITROGEN) == pytest.approx(0.78 * 0.5 / 0.79)
    assert sum(air.components().values()) == pytest.approx(1.0)


def test_add_component_is_additive_and_renormalized():
    air = make_air()
    air.add_component(WATER, Phase.GAS, 0.25)

    assert air.get_proportion(WATER) == pytest.approx(0.2)
    assert air.get_proportion(NITROGEN) == pytest.approx(0.78 / 1.25)


def test_remove_component_keeps_balance():
    air = make_air()
    air.remove_component(NITROGEN)

    assert not air.contains(NITROGEN)
    assert air.get_proportion(OXYGEN) == pytest.approx(0.21 / 0.22)


def test_removing_everything_leaves_an_empty_composition():
    only = Composition({(WATER, Phase.GAS): 1.0})
    only.remove_component(WATER)
    assert only.is_empty
    assert only.layer_count == 0


def test_set_phase_preserves_total():
    ocean = Composition({(WATER, Phase.LIQUID): 0.1, (SEAWATER, Phase.LIQUID): 0.9})
    ocean.set_phase(SEAWATER, Phase.LIQUID, Phase.SOLID, fraction=0.25)

    assert ocean.get_proportion(SEAWATER) == pytest.approx(0.9)
    assert ocean.get_proportion(SEAWATER, Phase.SOLID) == pytest.approx(0.225)
    assert ocean.phase_proportion([Phase.SOLID]) == pytest.approx(0.225)


def test_mass_conservation_over_a_sequence_of_edits():
    composition = make_air()
    composition.add_component(WATER, Phase.GAS, 0.03)
    composition = composition.split(0.8)
    composition.add_to_layer(0, WATER, Phase.LIQUID, 0.002)
    composition.set_phase(WATER, Phase.GAS, Phase.SOLID, fraction=0.5, layer=1)
    composition.remove_component(CARBON_DIOXIDE)
    composition.copy_layer(1, 0.01)
    composition.balance_proportions()

    for total in layer_sums(composition):
        assert total == pytest.approx(1.0, abs=1e-4)
    assert sum(composition.layer_proportions()) == pytest.approx(1.0, abs=1e-4)
    composition = composition.homogenize()
    assert sum(composition.components().values()) == pytest.approx(1.0, abs=1e-4)


def test_split_then_homogenize_round_trip():
    air = make_air()
    layered = air.split(0.3)

    assert layered.is_layered
    assert layered.layer_proportions() == pytest.approx([0.3, 0.7])

    flat = layered.homogenize()
    assert not flat.is_layered
    for key, value in air.components().items():
        assert flat.components()[key] == pytest.approx(value)


def test_split_rejects_bad_ratio():
    with pytest.raises(ValueError):
        make_air().split(1.5)


def test_balance_is_idempotent():
    composition = make_air().split(0.4)
    composition.add_to_layer(1, WATER, Phase.GAS, 0.1)
    composition.balance_proportions()
    first = composition.to_record()

    composition.balance_proportions()
    assert composition.to_record() == first


def test_layer_edit_only_touches_one_layer():
    composition = make_air().split(0.8)
    composition.add_to_layer(0, WATER, Phase.LIQUID, 0.01)

    assert composition.get_layer_proportion(0, WATER) > 0
    assert composition.get_layer_proportion(1, WATER) == 0
    assert composition.get_proportion(WATER) == pytest.approx(0.8 * 0.01 / 1.01)


def test_record_round_trip():
    composition = make_air().split(0.5)
    restored = Composition.from_record(composition.to_record())
    assert restored.to_record() == composition.to_record()


def test_greenhouse_weighting():
    composition = Composition({(CARBON_DIOXIDE, Phase.GAS): 0.5, (NITROGEN, Phase.GAS): 0.5})
    assert composition.overall_value(lambda c: c.greenhouse_potential) == pytest.approx(0.5)


def test_separate_by_phase():
    composition = Composition({(WATER, Phase.ANY): 0.5, (NITROGEN, Phase.GAS): 0.5})
    assert composition.separate_by_phase(250.0, 101.325, [Phase.SOLID]) == pytest.approx(0.5)
    assert composition.separate_by_phase(250.0, 101.325, [Phase.GAS]) == pytest.approx(0.5)
    assert composition.separate_by_phase(300.0, 101.325, [Phase.LIQUID]) == pytest.approx(0.5)
    assert dict(composition.items()) == composition.components()
