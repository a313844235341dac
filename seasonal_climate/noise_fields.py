"""
Deterministic noise fields on the unit sphere.

Fields are sampled at cell unit vectors so they wrap seamlessly around the
planet. The moisture signal multiplies a broad regional field with a fine
local one.
"""

import numpy as np
from opensimplex import OpenSimplex

from simulation_params import BROAD_NOISE_FREQUENCY, FINE_NOISE_FREQUENCY


class NoiseField:
    """
    Single OpenSimplex field.

    Parameters
    ----------
    seed : int
        Noise seed.
    frequency : float
        Spatial frequency applied to unit-sphere coordinates.
    """

    def __init__(self, seed: int, frequency: float):
        self.seed = int(seed)
        self.frequency = frequency
        self._generator = OpenSimplex(seed=self.seed)

    def sample(self, positions: np.ndarray) -> np.ndarray:
        """Noise value in [-1, 1] at each (x, y, z) row of ``positions``."""
        positions = np.asarray(positions, dtype=float).reshape(-1, 3) * self.frequency
        return np.array([self._generator.noise3(x, y, z) for x, y, z in positions])


class MoistureNoise:
    """Product of a broad regional field and a fine local field."""

    def __init__(self, seed: int):
        self.broad = NoiseField(seed, BROAD_NOISE_FREQUENCY)
        self.fine = NoiseField(seed + 1, FINE_NOISE_FREQUENCY)

    def sample(self, positions: np.ndarray) -> np.ndarray:
        return self.broad.sample(positions) * self.fine.sample(positions)
