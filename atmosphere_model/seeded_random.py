"""
Keyed random draws.

Each draw is identified by a label, so regenerating part of a planet replays
exactly the same values regardless of how many other draws happened before.
"""

import zlib

import numpy as np


class SeededRandom:
    """Deterministic random source keyed by (seed, label)."""

    def __init__(self, seed: int = 0):
        self.seed = int(seed)

    def _generator(self, key: str) -> np.random.Generator:
        return np.random.default_rng([self.seed, zlib.crc32(key.encode('utf-8'))])

    def uniform(self, key: str, low: float = 0.0, high: float = 1.0) -> float:
        return float(self._generator(key).uniform(low, high))

    def normal(self, key: str, mean: float = 0.0, std: float = 1.0,
               minimum: float = -np.inf, maximum: float = np.inf) -> float:
        """Normal sample clipped to [minimum, maximum]."""
        return float(np.clip(self._generator(key).normal(mean, std), minimum, maximum))

    def positive_uniform(self, key: str, low: float, high: float) -> float:
        """max(0, U(low, high)); with a negative low this is zero some of the time."""
        return max(0.0, self.uniform(key, low, high))
