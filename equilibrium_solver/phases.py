"""
Phase-Equilibration Engine

Partitions every volatile species between atmosphere, hydrosphere and clouds
for the planet's current temperature, feeds the resulting ice and cloud cover
back into albedo, and repeats while the implied temperature keeps moving. The
retry loop is capped at MAX_PHASE_PASSES; a capped run is accepted as is.
"""

import math
from typing import Tuple

from simulation_params import (
    AVERAGE_HUMIDITY, CLOUD_FRACTION, CLOUD_LAYER_ELEVATION, CO2_REDUCTION_HUMIDITY,
    CO2_TRACE_THRESHOLD, ICE_ALBEDO, ICE_CAP_FRACTION, MAX_PHASE_PASSES, METHANE_RESIDUAL,
    OZONE_LAYER_PROPORTION, OZONE_OXYGEN_RATIO, PHASE_TEMPERATURE_TOLERANCE,
    PHOTODISSOCIATION_OXYGEN_RATIO, SUBSURFACE_OCEAN_LIQUID, SUBSURFACE_OCEAN_THRESHOLD, is_zero,
)
from atmosphere_model import AtmosphereBuilder, Chemical, CONDENSABLE_ORDER, Phase, WATER_SPECIES, get_chemical
from atmosphere_model.chemicals import (
    ARGON, CARBON_DIOXIDE, KRYPTON, METHANE, NEON, NITROGEN, OXYGEN, OZONE, WATER, XENON,
)


# Inert gases that replace weathered-out CO2, carved from N2 in this order
CO2_REDUCTION_NOBLE_GASES = (
    (ARGON, -0.02, 0.04),
    (KRYPTON, -2.5e-4, 5.0e-4),
    (XENON, -1.8e-5, 3.5e-5),
    (NEON, -1.8e-5, 3.5e-5),
)


class PhaseEquilibrationEngine:
    """
    Builds and equilibrates the atmosphere and hydrosphere of a planet.

    Parameters
    ----------
    planet : TerrestrialPlanet
        Planet whose atmosphere and hydrosphere are mutated in place.
    verbose : bool
        Print progress of each phase pass.
    """

    def __init__(self, planet, verbose: bool = False):
        self.planet = planet
        self.verbose = verbose
        self.builder = AtmosphereBuilder(planet.random, verbose=verbose)
        self.passes = 0
        self.ice_cover = 0.0
        self.cloud_cover = 0.0
        self.ice_albedo = planet.surface_albedo

    # ========== GENERATION ==========

    def generate_hydrosphere(self):
        planet = self.planet
        planet.hydrosphere = self.builder.build_hydrosphere(
            planet.radius, planet.max_elevation, planet.params.water_ratio)
        planet.reset_cached_temperatures()

    def generate_atmosphere(self):
        """
        Build a new atmosphere and bring it into equilibrium with the hydrosphere.

        Water is processed at a provisional temperature, then again at the
        temperature it implies, and a third time if life appears. Requirements
        are applied before the full phase calculation.
        """
        planet = self.planet
        params = planet.params
        requirements = planet.requirements
        planet.has_biosphere = False
        planet.set_albedo(planet.surface_albedo)

        planet.atmosphere = self.builder.build(
            planet.mass, planet.radius, planet.gravity,
            planet.average_blackbody_temperature,
            has_magnetosphere=planet.has_magnetosphere,
            has_surface_water=planet.hydrosphere.water_proportion() > 0,
            pressure=params.surface_pressure,
            min_pressure=requirements.min_pressure if requirements else None,
            max_pressure=requirements.max_pressure if requirements else None,
            earthlike=planet.is_earthlike)
        self._reset_atmosphere()
        adjusted_pressure = planet.atmosphere.pressure

        if self._water_present():
            provisional = params.surface_temperature
            if provisional is None and requirements is not None:
                provisional = requirements.target_temperature
            if provisional is None:
                provisional = planet.average_blackbody_temperature
            adjusted_pressure = self.calculate_gas_phase_mix(WATER, provisional, adjusted_pressure)
            self._reset_atmosphere()
            planet.hydrosphere.fraction(planet.average_surface_temperature, planet.radius)

            adjusted_pressure = self.calculate_gas_phase_mix(
                WATER, planet.average_surface_temperature, adjusted_pressure)
            if self.generate_life():
                adjusted_pressure = self.calculate_gas_phase_mix(
                    WATER, planet.average_surface_temperature, adjusted_pressure)
                self._reset_atmosphere()
                planet.hydrosphere.fraction(planet.average_surface_temperature, planet.radius)
        else:
            self._reset_atmosphere()

        pressure_pinned = params.surface_pressure is not None
        if requirements is not None:
            adjusted_pressure, pinned = self._apply_requirements(adjusted_pressure)
            pressure_pinned = pressure_pinned or pinned

        adjusted_pressure = self.calculate_phases(adjusted_pressure)
        planet.hydrosphere.fraction(planet.average_surface_temperature, planet.radius)

        if not pressure_pinned:
            planet.atmosphere.pressure = max(0.0, adjusted_pressure)
            self._reset_atmosphere()

        # Life that has lost its liquid water loses the flag, not its gases
        if not planet.has_liquid_water():
            planet.has_biosphere = False

        planet.update_atmosphere_properties()
        if self.verbose:
            print(f"  Equilibrium: T_avg={planet.average_surface_temperature:.2f} K, "
                  f"P={planet.atmosphere.pressure:.3f} kPa, albedo={planet.albedo:.3f}, "
                  f"biosphere={planet.has_biosphere}")

    # ========== PHASE CALCULATION ==========

    def calculate_phases(self, adjusted_pressure: float) -> float:
        """
        Equilibrate every condensable species and update albedo.

        Parameters
        ----------
        adjusted_pressure : float
            Running surface pressure estimate (kPa).

        Returns
        -------
        adjusted_pressure : float
            Pressure estimate after all condensation and evaporation.
        """
        planet = self.planet
        self.passes = 0
        for pass_index in range(MAX_PHASE_PASSES):
            self.passes += 1
            temperature = planet.average_surface_temperature

            for species in CONDENSABLE_ORDER:
                adjusted_pressure = self.calculate_gas_phase_mix(species, temperature, adjusted_pressure)
            if pass_index > 0 and self._water_present():
                adjusted_pressure = self.calculate_gas_phase_mix(WATER, temperature, adjusted_pressure)

            previous_albedo = planet.albedo
            albedo = self.calculate_albedo(temperature)
            planet.set_albedo(albedo)
            self._reset_atmosphere()
            planet.update_atmosphere_properties()
            new_temperature = planet.average_surface_temperature

            if self.verbose:
                print(f"    Phase pass {self.passes}: T {temperature:.2f} -> {new_temperature:.2f} K, "
                      f"albedo {albedo:.4f}")

            albedo_changed = not math.isclose(albedo, previous_albedo, rel_tol=0.0, abs_tol=1e-9)
            if not albedo_changed or abs(temperature - new_temperature) <= PHASE_TEMPERATURE_TOLERANCE:
                break
        return adjusted_pressure

    def calculate_albedo(self, temperature: float) -> float:
        """
        Blend the surface albedo with ice and cloud cover.

        Both blends are computed; the cloud blend is the one applied.
        """
        planet = self.planet
        surface = planet.surface_albedo

        hydrosphere = planet.hydrosphere.composition
        self.ice_cover = 0.0
        if not hydrosphere.is_empty:
            self.ice_cover = min(1.0, hydrosphere.phase_proportion([Phase.SOLID], layer=0))
        self.ice_albedo = surface * (1.0 - self.ice_cover) + ICE_ALBEDO * self.ice_cover

        atmosphere = planet.atmosphere
        self.cloud_cover = 0.0
        if not atmosphere.is_empty:
            condensed = atmosphere.composition.phase_proportion([Phase.SOLID, Phase.LIQUID])
            self.cloud_cover = min(1.0, atmosphere.pressure * condensed / 100.0)
        albedo = surface * (1.0 - self.cloud_cover) + ICE_ALBEDO * self.cloud_cover
        return min(1.0, max(0.0, albedo))

    def calculate_gas_phase_mix(self, species: str, temperature: float,
                                adjusted_pressure: float) -> float:
        """Condense or evaporate one species at the given temperature."""
        planet = self.planet
        chemical = get_chemical(species)
        hydro = self._hydrosphere_proportion(chemical)
        vapor = planet.atmosphere.composition.get_proportion(species, Phase.GAS)
        if hydro <= 0 and vapor <= 0:
            return adjusted_pressure

        vapor_pressure = chemical.vapor_pressure(temperature)
        if (temperature < chemical.antoine_min
                or (temperature <= chemical.antoine_max and planet.atmosphere.pressure > vapor_pressure)):
            adjusted_pressure = self.condense(chemical, temperature, vapor, vapor_pressure, adjusted_pressure)
        elif hydro > 0:
            adjusted_pressure = self.evaporate(chemical, hydro, vapor, adjusted_pressure)

        if species == WATER and not planet.is_earthlike:
            self.check_co2_reduction(vapor_pressure)
        return adjusted_pressure

    def condense(self, chemical: Chemical, temperature: float, vapor: float,
                 vapor_pressure: float, adjusted_pressure: float) -> float:
        """
        Move a species out of the atmosphere down to its saturation level.

        Below the melting point all of it leaves the atmosphere. Otherwise a
        residual vapor fraction stays behind, part of it as cloud. The mass
        that leaves is deposited on the surface as ice or liquid.
        """
        planet = self.planet
        atmosphere = planet.atmosphere
        species = chemical.name
        atmosphere_mass = planet.atmosphere_mass
        held = atmosphere.composition.get_proportion(species)

        if temperature < chemical.melting_point:
            atmosphere.composition.remove_component(species)
            if atmosphere.composition.is_empty:
                adjusted_pressure = 0.0
            else:
                adjusted_pressure += adjusted_pressure * (0.0 - vapor)
        else:
            ratio = 1.0
            if atmosphere.pressure > 0:
                ratio = min(1.0, max(0.0, vapor_pressure / atmosphere.pressure))
            if chemical.is_water and planet.params.water_vapor_ratio is not None:
                new_vapor = planet.params.water_vapor_ratio
            else:
                new_vapor = (self._hydrosphere_proportion(chemical) + vapor) * ratio * AVERAGE_HUMIDITY

            gas, previous_gas = new_vapor, vapor
            atmosphere.composition.remove_component(species, Phase.LIQUID)
            atmosphere.composition.remove_component(species, Phase.SOLID)
            if new_vapor > 0 and not atmosphere.composition.is_empty:
                atmosphere.composition.set_proportion(species, Phase.GAS, new_vapor)
                if chemical.is_water and not planet.is_earthlike:
                    oxygen = atmosphere.composition.get_proportion(OXYGEN, Phase.GAS)
                    byproduct = max(oxygen, new_vapor * PHOTODISSOCIATION_OXYGEN_RATIO)
                    atmosphere.composition.set_proportion(OXYGEN, Phase.GAS, byproduct)
                    previous_gas += oxygen
                    gas += byproduct
                atmosphere.differentiate_troposphere()
                self._add_clouds(chemical, temperature, new_vapor)
            else:
                gas = 0.0
                atmosphere.composition.remove_component(species, Phase.GAS)

            if not atmosphere.composition.is_empty:
                adjusted_pressure += adjusted_pressure * (gas - previous_gas)
            else:
                adjusted_pressure = 0.0

        self._reset_atmosphere()
        remaining = atmosphere.composition.get_proportion(species)
        self._transfer_to_hydrosphere(chemical, temperature, (held - remaining) * atmosphere_mass)
        return adjusted_pressure

    def evaporate(self, chemical: Chemical, hydro: float, vapor: float,
                  adjusted_pressure: float) -> float:
        """
        Move a species from the hydrosphere into the atmosphere.

        Evaporated water is mostly lost to photodissociation, leaving a trace
        of vapor and a proportional amount of oxygen.
        """
        planet = self.planet
        atmosphere = planet.atmosphere
        hydrosphere = planet.hydrosphere
        if hydro <= 0:
            return adjusted_pressure

        hydrosphere.homogenize()
        gas = 0.0
        if not atmosphere.is_empty:
            gas = hydro * planet.hydrosphere_atmosphere_ratio()
        previous_gas = vapor

        species_list = WATER_SPECIES if chemical.is_water else (chemical.name,)
        masses = hydrosphere.component_masses()
        hydrosphere.set_component_masses({key: value for key, value in masses.items()
                                          if key[0] not in species_list})

        if chemical.is_water:
            water_vapor = min(gas, planet.random.uniform('evaporation.water', 0.0, 0.001))
            gas = previous_gas
            if water_vapor > 0:
                # Most of the water is photodissociated; its hydrogen escapes
                oxygen = atmosphere.composition.get_proportion(OXYGEN, Phase.GAS)
                previous_gas += oxygen
                byproduct = water_vapor * PHOTODISSOCIATION_OXYGEN_RATIO
                atmosphere.composition.set_proportion(WATER, Phase.GAS, water_vapor)
                atmosphere.composition.set_proportion(OXYGEN, Phase.GAS, byproduct)
                gas = water_vapor + byproduct
        elif gas > 0:
            atmosphere.composition.set_proportion(chemical.name, Phase.GAS, gas)
        else:
            gas = previous_gas

        adjusted_pressure += adjusted_pressure * (gas - previous_gas)
        self._reset_atmosphere()
        return adjusted_pressure

    def check_co2_reduction(self, vapor_pressure: float):
        """
        Replace most CO2 with inert gases when the air is humid.

        Models carbon-silicate weathering. Each atmosphere layer is adjusted
        independently from its own proportions.
        """
        planet = self.planet
        atmosphere = planet.atmosphere
        composition = atmosphere.composition
        if composition.is_empty or not math.isfinite(vapor_pressure):
            return
        humidity = composition.get_layer_proportion(0, WATER, Phase.GAS)
        if humidity <= 0 or humidity * atmosphere.pressure < CO2_REDUCTION_HUMIDITY * vapor_pressure:
            return
        if composition.get_proportion(CARBON_DIOXIDE) < CO2_TRACE_THRESHOLD:
            return

        rnd = planet.random
        co2 = rnd.uniform('co2_reduction.co2', 1.5e-5, 1.0e-3)
        for index in range(composition.layer_count):
            mixture = composition.components(index)
            old_co2 = mixture.get((CARBON_DIOXIDE, Phase.GAS), 0.0)
            if old_co2 <= co2:
                continue
            n2 = mixture.get((NITROGEN, Phase.GAS), 0.0) + old_co2 - co2
            mixture[(CARBON_DIOXIDE, Phase.GAS)] = co2
            for species, low, high in CO2_REDUCTION_NOBLE_GASES:
                existing = mixture.get((species, Phase.GAS), 0.0)
                amount = max(existing, n2 * rnd.uniform(f'co2_reduction.{species}', low, high))
                n2 -= min(n2, amount - existing)
                mixture[(species, Phase.GAS)] = amount
            mixture[(NITROGEN, Phase.GAS)] = n2
            composition.replace_layer(index, mixture)

        self._reset_atmosphere()

    # ========== BIOSPHERE ==========

    def generate_life(self) -> bool:
        """
        Inject a biosphere's atmospheric signature.

        Returns True when the atmosphere was changed. The biosphere flag is
        sticky: once set, later passes never inject again, and clearing it does
        not undo the gases already added.
        """
        planet = self.planet
        atmosphere = planet.atmosphere
        if atmosphere.is_empty or not planet.has_liquid_water():
            planet.has_biosphere = False
            return False
        if planet.has_biosphere:
            return False

        planet.has_biosphere = True
        # A subsurface ocean or a preset atmosphere gets no surface signature
        if planet.hydrosphere.composition.is_layered or planet.is_earthlike:
            return False

        composition = atmosphere.composition
        oxygen = planet.random.uniform('life.o2', 0.20, 0.25)
        composition.set_proportion(OXYGEN, Phase.GAS, oxygen)

        atmosphere.differentiate_troposphere()
        composition = atmosphere.composition
        if composition.layer_count < 3:
            composition.copy_layer(1, OZONE_LAYER_PROPORTION)
        composition.set_proportion(OZONE, Phase.GAS, oxygen * OZONE_OXYGEN_RATIO, layer=2)

        for index in range(composition.layer_count):
            methane = composition.get_layer_proportion(index, METHANE, Phase.GAS)
            if methane <= 0:
                continue
            converted = methane * (1.0 - METHANE_RESIDUAL)
            mixture = composition.components(index)
            mixture[(METHANE, Phase.GAS)] = methane - converted
            mixture[(CARBON_DIOXIDE, Phase.GAS)] = mixture.get((CARBON_DIOXIDE, Phase.GAS), 0.0) + converted / 3.0
            mixture[(WATER, Phase.GAS)] = mixture.get((WATER, Phase.GAS), 0.0) + converted * 2.0 / 3.0
            composition.replace_layer(index, mixture)

        self._reset_atmosphere()
        if self.verbose:
            print(f"  Biosphere generated: O2 {oxygen:.4f}")
        return True

    # ========== HELPERS ==========

    def _apply_requirements(self, adjusted_pressure: float) -> Tuple[float, bool]:
        """Pull pressure and atmospheric constituents inside the requirement bounds."""
        planet = self.planet
        requirements = planet.requirements
        atmosphere = planet.atmosphere
        low, high = requirements.min_pressure, requirements.max_pressure
        pinned = low is not None or high is not None

        if ((low is not None and atmosphere.pressure < low)
                or (high is not None and atmosphere.pressure > high)):
            if low is not None and high is not None:
                atmosphere.pressure = (low + high) / 2.0
            else:
                atmosphere.pressure = low if low is not None else high
            adjusted_pressure = atmosphere.pressure

        if not atmosphere.is_empty and atmosphere.pressure > 0:
            for requirement in requirements.atmosphere_requirements:
                bounds = requirement.convert_for_pressure(atmosphere.pressure)
                proportion = atmosphere.composition.get_proportion(requirement.species, requirement.phase)
                if bounds.minimum <= proportion <= bounds.maximum:
                    continue
                atmosphere.composition.remove_component(requirement.species)
                target = (bounds.minimum + bounds.maximum) / 2.0 if bounds.maximum < 1.0 else bounds.minimum
                if target > 0:
                    atmosphere.composition.set_proportion(requirement.species, Phase.GAS, target)

        self._reset_atmosphere()
        return adjusted_pressure, pinned

    def _add_clouds(self, chemical: Chemical, temperature: float, vapor: float):
        """Deposit part of the vapor as cloud in the troposphere."""
        planet = self.planet
        amount = vapor * CLOUD_FRACTION
        if amount <= 0:
            return
        if temperature < chemical.melting_point:
            planet.atmosphere.add_to_troposphere(chemical.name, Phase.SOLID, amount)
            return
        cloud_temperature = planet.temperature_at_elevation(temperature, CLOUD_LAYER_ELEVATION)
        if cloud_temperature < chemical.melting_point:
            planet.atmosphere.add_to_troposphere(chemical.name, Phase.SOLID, amount / 2.0)
            planet.atmosphere.add_to_troposphere(chemical.name, Phase.LIQUID, amount / 2.0)
        else:
            planet.atmosphere.add_to_troposphere(chemical.name, Phase.LIQUID, amount)

    def _transfer_to_hydrosphere(self, chemical: Chemical, temperature: float, mass: float):
        """
        Deposit (positive) or withdraw (negative) mass of a species at the surface.

        Deposits freeze below the melting point, keeping a small liquid share
        under the ice when the hydrosphere is a large part of the planet.
        Above it they stay liquid, with polar caps if the poles are frozen.
        """
        planet = self.planet
        hydrosphere = planet.hydrosphere
        species = chemical.name
        species_list = WATER_SPECIES if chemical.is_water else (species,)
        frozen = temperature < chemical.melting_point

        if is_zero(mass) and not hydrosphere.composition.contains(species):
            return
        hydrosphere.homogenize()
        masses = hydrosphere.component_masses()
        if mass > 0:
            phase = Phase.SOLID if frozen else Phase.LIQUID
            masses[(species, phase)] = masses.get((species, phase), 0.0) + mass
        elif mass < 0:
            available = sum(v for k, v in masses.items() if k[0] in species_list)
            if available > 0:
                keep = max(0.0, 1.0 - (-mass) / available)
                for key in masses:
                    if key[0] in species_list:
                        masses[key] *= keep
        hydrosphere.set_component_masses(masses)
        if hydrosphere.is_empty:
            return

        composition = hydrosphere.composition
        for name in species_list:
            melting_point = get_chemical(name).melting_point
            if not composition.contains(name):
                continue
            if temperature < melting_point:
                composition.set_phase(name, Phase.LIQUID, Phase.SOLID)
                if hydrosphere.proportion_of_mass(planet.mass) >= SUBSURFACE_OCEAN_THRESHOLD:
                    composition.set_phase(name, Phase.SOLID, Phase.LIQUID, fraction=SUBSURFACE_OCEAN_LIQUID)
            else:
                composition.set_phase(name, Phase.SOLID, Phase.LIQUID)
                if planet.polar_temperature < melting_point:
                    composition.set_phase(name, Phase.LIQUID, Phase.SOLID, fraction=ICE_CAP_FRACTION)

    def _hydrosphere_proportion(self, chemical: Chemical) -> float:
        composition = self.planet.hydrosphere.composition
        if chemical.is_water:
            return sum(composition.get_proportion(s) for s in WATER_SPECIES)
        return composition.get_proportion(chemical.name)

    def _water_present(self) -> bool:
        planet = self.planet
        return (planet.hydrosphere.water_proportion() > 0
                or any(planet.atmosphere.composition.contains(s) for s in WATER_SPECIES))

    def _reset_atmosphere(self):
        self.planet.atmosphere.reset_greenhouse_factor()
        self.planet.atmosphere.reset_water()
        self.planet.reset_cached_temperatures()
