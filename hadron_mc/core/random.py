"""
Random number stream for the cascade.

Every sampling construct in the package (fate selection, angle tables,
Box-Muller variates, rejection loops, phase-space decays) is built from
repeated calls to RandomStream.uniform().
"""

import math
import numpy as np
from typing import List, Optional, Tuple


class RandomStream:
    """Uniform(0,1) stream backed by a NumPy Generator."""

    def __init__(self, generator: Optional[np.random.Generator] = None,
                 seed_seq: Optional[np.random.SeedSequence] = None):
        if seed_seq is None:
            seed_seq = np.random.SeedSequence()
        self.seed_seq = seed_seq
        self.generator = generator if generator is not None else np.random.default_rng(seed_seq)

    @classmethod
    def from_seed(cls, seed: Optional[int] = None) -> "RandomStream":
        """Deterministic stream for a given seed (fresh entropy if None)."""
        seed_seq = np.random.SeedSequence(seed)
        return cls(np.random.default_rng(seed_seq), seed_seq)

    def uniform(self) -> float:
        """Draw from U[0, 1)."""
        return float(self.generator.random())

    def uniforms(self, n: int) -> np.ndarray:
        """Draw n uniforms as an array, one primitive draw each."""
        return np.array([self.uniform() for _ in range(n)], dtype=np.float64)

    def reseed(self, seed_seq: np.random.SeedSequence):
        """Restart the stream in place from another SeedSequence."""
        self.seed_seq = seed_seq
        self.generator = np.random.default_rng(seed_seq)

    def spawn(self, n: int) -> List["RandomStream"]:
        """Independent child streams, one per event or worker."""
        return [RandomStream(np.random.default_rng(child), child)
                for child in self.seed_seq.spawn(n)]


def _nonzero_uniform(stream: RandomStream) -> float:
    # log(0) guard
    u = stream.uniform()
    while u == 0.0:
        u = stream.uniform()
    return u


def box_muller(stream: RandomStream) -> Tuple[float, float]:
    """
    Box-Muller radius and phase from two uniform draws.

    Returns:
        (rho, phase) with rho = sqrt(-2 ln u1) and phase = 2*pi*u2; the
        normal variates are rho*cos(phase) and rho*sin(phase).
    """
    u1 = _nonzero_uniform(stream)
    u2 = _nonzero_uniform(stream)
    return math.sqrt(-2.0 * math.log(u1)), 2.0 * math.pi * u2


def normal_variate(stream: RandomStream, use_sine: bool = False) -> float:
    """Standard normal variate via Box-Muller (cosine branch unless use_sine)."""
    rho, phase = box_muller(stream)
    return rho * (math.sin(phase) if use_sine else math.cos(phase))


def exponential_variate(stream: RandomStream, rate: float) -> float:
    """Exponential variate with the given rate, -ln(u)/rate."""
    return -math.log(_nonzero_uniform(stream)) / rate
