"""
Composition ledger.

A mutable multi-phase mixture of chemical species. Every composition is an
ordered list of layers, each a mapping ``(species, phase) -> proportion`` plus
the layer's share of the whole. A flat mixture is simply the one-layer case.
Layer 0 is the surface-adjacent layer (troposphere or surface water).
"""

from typing import Callable, Dict, Iterable, List, Optional, Tuple

from simulation_params import EPSILON, PROPORTION_TOLERANCE
from .chemicals import Chemical, Phase, get_chemical


Key = Tuple[str, str]


def _matches(key: Key, species: str, phase: str) -> bool:
    return key[0] == species and (phase == Phase.ANY or key[1] == phase)


def _normalize(mixture: Dict[Key, float]):
    """Rescale a single layer in place so that it sums to 1."""
    for key in [k for k, v in mixture.items() if v <= 0.0]:
        del mixture[key]
    total = sum(mixture.values())
    if total <= EPSILON:
        mixture.clear()
    elif abs(total - 1.0) > EPSILON:
        for key in mixture:
            mixture[key] /= total


class Composition:
    """Mixture of (species, phase) proportions, optionally layered by depth."""

    def __init__(self, components: Optional[Dict[Key, float]] = None):
        self._layers: List[List] = []
        if components:
            for species, _ in components:
                get_chemical(species)
            self._layers.append([dict(components), 1.0])
            self.balance_proportions()

    @classmethod
    def from_layers(cls, layers: Iterable[Tuple['Composition', float]]) -> 'Composition':
        """Build a layered composition from (flat composition, proportion) pairs."""
        result = cls()
        for composition, proportion in layers:
            result._layers.append([composition.homogenize().components(), proportion])
        result.balance_proportions()
        return result

    def __repr__(self):
        return f"Composition(layers={self.layer_count}, species={sorted(self.species())})"

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def is_empty(self) -> bool:
        return not any(mixture for mixture, _ in self._layers)

    @property
    def is_layered(self) -> bool:
        return len(self._layers) > 1

    @property
    def layer_count(self) -> int:
        return len(self._layers)

    def layer_proportions(self) -> List[float]:
        return [proportion for _, proportion in self._layers]

    def components(self, layer: Optional[int] = None) -> Dict[Key, float]:
        """Copy of the (species, phase) mapping of one layer, or of the whole mixture."""
        if layer is not None:
            return dict(self._layers[layer][0])
        combined: Dict[Key, float] = {}
        for mixture, proportion in self._layers:
            for key, value in mixture.items():
                combined[key] = combined.get(key, 0.0) + value * proportion
        return combined

    def species(self) -> set:
        return {key[0] for mixture, _ in self._layers for key in mixture}

    def get_proportion(self, species: str, phase: str = Phase.ANY) -> float:
        """Overall proportion of a species (optionally in one phase), weighted by layer."""
        return sum(proportion * self._sum(mixture, species, phase)
                   for mixture, proportion in self._layers)

    def get_layer_proportion(self, index: int, species: str, phase: str = Phase.ANY) -> float:
        if index >= len(self._layers):
            return 0.0
        return self._sum(self._layers[index][0], species, phase)

    def contains(self, species: str, phase: str = Phase.ANY) -> bool:
        return self.get_proportion(species, phase) > 0.0

    def phase_proportion(self, phases: Iterable[str], layer: Optional[int] = None) -> float:
        """Proportion of the mixture stored in any of the given phases."""
        phases = set(phases)
        total = 0.0
        for index in self._layer_indices(layer):
            mixture, proportion = self._layers[index]
            weight = 1.0 if layer is not None else proportion
            total += weight * sum(v for k, v in mixture.items() if k[1] in phases)
        return total

    def separate_by_phase(self, temperature: float, pressure: float, phases: Iterable[str],
                          layer: Optional[int] = None) -> float:
        """
        Proportion of the mixture that is in one of ``phases`` at (T, P).

        Entries stored without a definite phase take the phase their chemical
        has at the given conditions.
        """
        phases = set(phases)
        total = 0.0
        for index in self._layer_indices(layer):
            mixture, proportion = self._layers[index]
            weight = 1.0 if layer is not None else proportion
            for (species, phase), value in mixture.items():
                if phase == Phase.ANY:
                    phase = get_chemical(species).phase_at(temperature, pressure)
                if phase in phases:
                    total += weight * value
        return total

    def items(self, layer: Optional[int] = None):
        """``((species, phase), proportion)`` pairs of one layer or of the whole mixture."""
        return self.components(layer).items()

    def overall_value(self, selector: Callable[[Chemical], float]) -> float:
        """Proportion-weighted sum of a per-chemical value."""
        return sum(value * selector(get_chemical(key[0]))
                   for key, value in self.components().items())

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def set_proportion(self, species: str, phase: str, proportion: float,
                       layer: Optional[int] = None):
        """
        Set a component to an exact proportion, rescaling the rest of the layer.

        Parameters
        ----------
        species : str
            Chemical name.
        phase : str
            Storage phase.
        proportion : float
            New proportion, clamped to [0, 1].
        layer : int, optional
            Only mutate this layer. All layers by default.
        """
        get_chemical(species)
        proportion = min(1.0, max(0.0, proportion))
        key = (species, phase)
        if not self._layers:
            if proportion > 0.0:
                self._layers.append([{key: 1.0}, 1.0])
            return
        for index in self._layer_indices(layer):
            mixture = self._layers[index][0]
            others = sum(v for k, v in mixture.items() if k != key)
            if proportion <= 0.0:
                mixture.pop(key, None)
            elif others <= EPSILON:
                mixture.clear()
                mixture[key] = 1.0
                continue
            else:
                scale = (1.0 - proportion) / others
                for k in mixture:
                    mixture[k] *= scale
                mixture[key] = proportion
            _normalize(mixture)
        self._check_balance()

    def add_component(self, species: str, phase: str, amount: float,
                      layer: Optional[int] = None):
        """Add an amount of a component, then renormalize the layer proportionally."""
        get_chemical(species)
        if amount <= 0.0:
            return
        key = (species, phase)
        if not self._layers:
            self._layers.append([{key: 1.0}, 1.0])
            return
        for index in self._layer_indices(layer):
            mixture = self._layers[index][0]
            mixture[key] = mixture.get(key, 0.0) + amount
            _normalize(mixture)
        self._check_balance()

    def add_to_layer(self, index: int, species: str, phase: str, amount: float):
        """Additive edit of a single layer (e.g. clouds in the troposphere)."""
        if index >= len(self._layers):
            raise ValueError(f"Layer {index} does not exist ({len(self._layers)} layers)")
        self.add_component(species, phase, amount, layer=index)

    def remove_component(self, species: str, phase: str = Phase.ANY,
                         layer: Optional[int] = None):
        """Remove a species (optionally only one phase) and renormalize the remainder."""
        for index in self._layer_indices(layer):
            mixture = self._layers[index][0]
            for key in [k for k in mixture if _matches(k, species, phase)]:
                del mixture[key]
            _normalize(mixture)
        self.balance_proportions()

    def set_phase(self, species: str, from_phase: str, to_phase: str,
                  fraction: float = 1.0, layer: Optional[int] = None):
        """Move a fraction of a species from one phase to another, preserving the total."""
        fraction = min(1.0, max(0.0, fraction))
        for index in self._layer_indices(layer):
            mixture = self._layers[index][0]
            moved = mixture.get((species, from_phase), 0.0) * fraction
            if moved <= 0.0:
                continue
            mixture[(species, from_phase)] -= moved
            mixture[(species, to_phase)] = mixture.get((species, to_phase), 0.0) + moved
            _normalize(mixture)
        self._check_balance()

    def replace_layer(self, index: int, components: Dict[Key, float]):
        """Replace the mixture of one layer, renormalized."""
        for species, _ in components:
            get_chemical(species)
        mixture = self._layers[self._layer_indices(index)[0]][0]
        mixture.clear()
        mixture.update(components)
        self.balance_proportions()

    def copy_layer(self, index: int, proportion: float):
        """Append a copy of a layer holding ``proportion`` of the whole."""
        if not 0.0 < proportion < 1.0:
            raise ValueError(f"Layer proportion must be in (0, 1), got {proportion}")
        mixture = dict(self._layers[index][0])
        for layer in self._layers:
            layer[1] *= 1.0 - proportion
        self._layers.append([mixture, proportion])
        self._check_balance()

    def balance_proportions(self):
        """Renormalize every layer and the layer shares so each sums to 1."""
        for mixture, _ in self._layers:
            _normalize(mixture)
        self._layers = [layer for layer in self._layers if layer[0] and layer[1] > 0.0]
        total = sum(proportion for _, proportion in self._layers)
        if self._layers and abs(total - 1.0) > EPSILON:
            for layer in self._layers:
                layer[1] /= total
        self._check_balance()

    # ------------------------------------------------------------------
    # Layering
    # ------------------------------------------------------------------

    def split(self, ratio: float) -> 'Composition':
        """
        Split into a two-layer composition.

        The surface layer holds ``ratio`` of the whole; both layers start with
        the same mixture. Layered input is homogenized first.
        """
        if not 0.0 < ratio < 1.0:
            raise ValueError(f"Split ratio must be in (0, 1), got {ratio}")
        flat = self.homogenize()
        result = Composition()
        if flat.is_empty:
            return result
        mixture = flat.components()
        result._layers = [[dict(mixture), ratio], [dict(mixture), 1.0 - ratio]]
        return result

    def homogenize(self) -> 'Composition':
        """Collapse all layers into one flat, mass-weighted mixture."""
        return Composition(self.components())

    def copy(self) -> 'Composition':
        result = Composition()
        result._layers = [[dict(mixture), proportion] for mixture, proportion in self._layers]
        return result

    # ------------------------------------------------------------------
    # Serialisation
    # ------------------------------------------------------------------

    def to_record(self) -> Dict:
        """Plain nested record of the composition."""
        return {
            'layers': [
                {
                    'proportion': proportion,
                    'components': [
                        {'species': k[0], 'phase': k[1], 'proportion': v}
                        for k, v in sorted(mixture.items())
                    ],
                }
                for mixture, proportion in self._layers
            ]
        }

    @classmethod
    def from_record(cls, record: Dict) -> 'Composition':
        result = cls()
        for layer in record.get('layers', []):
            mixture = {(c['species'], c['phase']): c['proportion'] for c in layer['components']}
            for species, _ in mixture:
                get_chemical(species)
            result._layers.append([mixture, layer['proportion']])
        result.balance_proportions()
        return result

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _layer_indices(self, layer: Optional[int]):
        if layer is None:
            return range(len(self._layers))
        if not 0 <= layer < len(self._layers):
            raise ValueError(f"Layer {layer} does not exist ({len(self._layers)} layers)")
        return (layer,)

    @staticmethod
    def _sum(mixture: Dict[Key, float], species: str, phase: str) -> float:
        return sum(v for k, v in mixture.items() if _matches(k, species, phase))

    def _check_balance(self):
        for mixture, _ in self._layers:
            assert not mixture or abs(sum(mixture.values()) - 1.0) <= PROPORTION_TOLERANCE, \
                "composition layer out of balance"
        if self._layers:
            assert abs(sum(p for _, p in self._layers) - 1.0) <= PROPORTION_TOLERANCE, \
                "layer proportions out of balance"

