"""
Bound-nucleon momentum distributions.

FermiGasModel: uniform Fermi sphere with a high-momentum tail falling as
1/p^4 (Bodek-Ritchie style), Fermi momenta tabulated per target.
"""

import math
import numpy as np
from typing import Optional, Protocol

from hadron_mc.core.nucleus import RemnantNucleus
from hadron_mc.core.random import RandomStream
from hadron_mc.physics.kinematics import isotropic_direction

# Fermi momentum [GeV] by target mass number (Moniz et al., e-A quasielastic fits)
FERMI_MOMENTUM_TABLE = {
    2: 0.100,
    4: 0.169,
    6: 0.169,
    12: 0.221,
    16: 0.225,
    24: 0.235,
    27: 0.239,
    40: 0.251,
    56: 0.260,
    58: 0.260,
    89: 0.254,
    120: 0.260,
    181: 0.265,
    208: 0.265,
}


def fermi_momentum_for(A: int) -> float:
    """Fermi momentum [GeV] of the tabulated nucleus closest in A."""
    if A < 1:
        raise ValueError(f"No Fermi momentum for A = {A}")
    nearest = min(FERMI_MOMENTUM_TABLE, key=lambda a: (abs(a - A), a))
    return FERMI_MOMENTUM_TABLE[nearest]


class NuclearModel(Protocol):
    def sample_momentum(self, nucleon_pdg: int, remnant: RemnantNucleus,
                        stream: RandomStream) -> np.ndarray: ...


class FermiGasModel:
    """
    Relativistic Fermi gas with a 1/p^4 tail.

    Usage:
        model = FermiGasModel()
        p3 = model.sample_momentum(PDG_PROTON, remnant, stream)
    """

    def __init__(self, fermi_momentum: Optional[float] = None,
                 tail_fraction: float = 0.12, tail_cutoff: float = 0.5):
        """
        Parameters:
            fermi_momentum: Fixed kF [GeV] (None = table keyed by target A)
            tail_fraction: Probability of drawing from the tail above kF
            tail_cutoff: Upper end of the tail [GeV]
        """
        if not 0.0 <= tail_fraction < 1.0:
            raise ValueError(f"tail_fraction must be in [0, 1), got {tail_fraction}")
        self.fermi_momentum = fermi_momentum
        self.tail_fraction = tail_fraction
        self.tail_cutoff = tail_cutoff

    def kf(self, remnant: RemnantNucleus) -> float:
        if self.fermi_momentum is not None:
            return self.fermi_momentum
        return fermi_momentum_for(remnant.target_A)

    def sample_magnitude(self, kf: float, stream: RandomStream) -> float:
        """|p| [GeV] from the Fermi sphere or the tail."""
        if self.tail_fraction > 0 and self.tail_cutoff > kf \
                and stream.uniform() < self.tail_fraction:
            # p^2 n(p) ~ 1/p^2 on [kF, cutoff]
            u = stream.uniform()
            return 1.0 / (1.0/kf - u * (1.0/kf - 1.0/self.tail_cutoff))
        # p^2 density inside the sphere
        return kf * math.pow(stream.uniform(), 1.0/3.0)

    def sample_momentum(self, nucleon_pdg: int, remnant: RemnantNucleus,
                        stream: RandomStream) -> np.ndarray:
        p = self.sample_magnitude(self.kf(remnant), stream)
        return p * isotropic_direction(stream)
