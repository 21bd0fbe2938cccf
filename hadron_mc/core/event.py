"""
Append-only event ledger.

The cascade never owns the ledger: it returns FinalStateParticle
descriptors and the caller (or the cascade on its behalf) appends them here.
"""

import numpy as np
from typing import Iterator, List, Optional, Sequence

from hadron_mc.core.particle import FinalStateParticle, PARTICLE_DTYPE, Status


class EventRecord:
    """Ordered list of particles produced in one event."""

    def __init__(self):
        self._particles: List[FinalStateParticle] = []

    def add(self, particle: FinalStateParticle) -> int:
        """Append a particle; returns its ledger index."""
        self._particles.append(particle)
        return len(self._particles) - 1

    def add_particle(self, pdg: int, status: Status, mother: int,
                     p4: Sequence[float], x4: Optional[Sequence[float]] = None) -> int:
        """Append a particle from its fields; returns its ledger index."""
        x4 = np.zeros(4) if x4 is None else np.array(x4, dtype=np.float64)
        return self.add(FinalStateParticle(pdg, Status(status), mother,
                                           np.array(p4, dtype=np.float64), x4))

    def extend(self, particles) -> List[int]:
        return [self.add(p) for p in particles]

    def __len__(self) -> int:
        return len(self._particles)

    def __getitem__(self, index: int) -> FinalStateParticle:
        return self._particles[index]

    def __iter__(self) -> Iterator[FinalStateParticle]:
        return iter(self._particles)

    def with_status(self, status: Status) -> List[FinalStateParticle]:
        return [p for p in self._particles if p.status == status]

    def total_p4(self, status: Optional[Status] = None) -> np.ndarray:
        """Summed four-momentum, optionally restricted to one status."""
        total = np.zeros(4)
        for p in self._particles:
            if status is None or p.status == status:
                total += p.p4
        return total

    def to_structured_array(self) -> np.ndarray:
        """Export the ledger as a NumPy structured array (PARTICLE_DTYPE)."""
        rows = np.zeros(len(self._particles), dtype=PARTICLE_DTYPE)
        for i, p in enumerate(self._particles):
            rows[i] = p.to_structured_array()[0]
        return rows

    def __repr__(self) -> str:
        return f"EventRecord(n={len(self)})"
