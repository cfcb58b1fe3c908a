"""Bounded process-noise sources for the plant model.

The plant functions take a noise source instead of calling a global RNG, so
tests can swap in ZeroNoise or a seeded UniformNoise for exact assertions.
"""

from typing import Protocol

import numpy as np


class NoiseSource(Protocol):
    def uniform(self, bound: float) -> float:
        """Return a sample in [-bound, +bound]."""
        ...


class UniformNoise:
    """Uniform noise over ±bound, backed by a numpy Generator."""

    def __init__(self, seed: int | None = None):
        self.seed = seed
        self._rng = np.random.default_rng(seed)

    def uniform(self, bound: float) -> float:
        if bound <= 0:
            return 0.0
        return float(self._rng.uniform(-bound, bound))


class ZeroNoise:
    """Noise-free source for deterministic runs."""

    def uniform(self, bound: float) -> float:
        return 0.0
