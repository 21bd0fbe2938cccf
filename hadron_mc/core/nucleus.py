"""
Remnant nucleus bookkeeping.

The remnant is the shared, mutable record of what is left of the target
after each sub-interaction: mass number A, charge Z and four-momentum.
Generators never touch the live remnant; they receive a staged copy from
RemnantNucleus.transaction() and the copy is committed only when the
interaction attempt completes.
"""

import logging
import numpy as np
from contextlib import contextmanager
from typing import Iterator, Tuple

from hadron_mc.core.exceptions import RemnantInvariantError
from hadron_mc.core.particle import PDG_NEUTRON, PDG_PROTON, mass

logger = logging.getLogger(__name__)

# Semi-empirical mass formula coefficients [MeV]
_A_VOLUME = 15.75
_A_SURFACE = 17.8
_A_COULOMB = 0.711
_A_ASYMMETRY = 23.7
_A_PAIRING = 11.18

NUCLEI = {
    'H-1': (1, 1),
    'proton': (1, 1),
    'H-2': (2, 1),
    'deuteron': (2, 1),
    'He-4': (4, 2),
    'alpha': (4, 2),
    'Li-7': (7, 3),
    'Be-9': (9, 4),
    'B-11': (11, 5),
    'C-12': (12, 6),
    'N-14': (14, 7),
    'O-16': (16, 8),
    'Ne-20': (20, 10),
    'Al-27': (27, 13),
    'Si-28': (28, 14),
    'Ar-40': (40, 18),
    'Ca-40': (40, 20),
    'Fe-56': (56, 26),
    'Cu-63': (63, 29),
    'Sn-120': (120, 50),
    'Pb-208': (208, 82),
}


def parse_nucleus(name: str) -> Tuple[int, int]:
    """Parse 'Fe-56' -> (A=56, Z=26)."""
    try:
        return NUCLEI[name]
    except KeyError:
        raise ValueError(f"Unknown nucleus '{name}'. "
                         f"Available: {list(NUCLEI.keys())}") from None


def nuclear_mass(A: int, Z: int) -> float:
    """
    Nuclear rest mass [GeV] from the Weizsaecker mass formula.

    Free nucleon masses are returned for A = 1. Binding energy is floored
    at zero, which only matters for the lightest systems.
    """
    if A < 0 or Z < 0 or Z > A:
        raise ValueError(f"Invalid nucleus (A,Z) = ({A},{Z})")
    if A == 0:
        return 0.0
    N = A - Z
    m_free = Z * mass(PDG_PROTON) + N * mass(PDG_NEUTRON)
    if A == 1:
        return m_free

    if Z % 2 == 0 and N % 2 == 0:
        pairing = _A_PAIRING / np.sqrt(A)
    elif Z % 2 == 1 and N % 2 == 1:
        pairing = -_A_PAIRING / np.sqrt(A)
    else:
        pairing = 0.0

    binding = (_A_VOLUME * A
               - _A_SURFACE * A**(2.0/3.0)
               - _A_COULOMB * Z * (Z - 1) / A**(1.0/3.0)
               - _A_ASYMMETRY * (A - 2*Z)**2 / A
               + pairing)
    return m_free - max(binding, 0.0) / 1000.0


class RemnantNucleus:
    """Mass number, charge and four-momentum of what remains of the target."""

    def __init__(self, A: int, Z: int, p4=None, target_A: int = None, target_Z: int = None):
        """
        Parameters:
            A: Mass number
            Z: Charge
            p4: Four-momentum [px, py, pz, E] (at rest with the nuclear mass if None)
            target_A, target_Z: Initial target (defaults to A, Z)
        """
        self.A = int(A)
        self.Z = int(Z)
        self.target_A = self.A if target_A is None else int(target_A)
        self.target_Z = self.Z if target_Z is None else int(target_Z)
        if p4 is None:
            p4 = [0.0, 0.0, 0.0, nuclear_mass(self.A, self.Z)]
        self.p4 = np.array(p4, dtype=np.float64)
        self.check_invariants()

    @classmethod
    def from_target(cls, A: int, Z: int) -> "RemnantNucleus":
        return cls(A, Z)

    @classmethod
    def from_name(cls, name: str) -> "RemnantNucleus":
        A, Z = parse_nucleus(name)
        return cls(A, Z)

    @property
    def n_neutrons(self) -> int:
        return self.A - self.Z

    @property
    def proton_fraction(self) -> float:
        """Z/A (0 for an empty remnant)."""
        return self.Z / self.A if self.A > 0 else 0.0

    @property
    def target_mass(self) -> float:
        return nuclear_mass(self.target_A, self.target_Z)

    @property
    def invariant_mass_squared(self) -> float:
        return float(self.p4[3]**2 - np.dot(self.p4[:3], self.p4[:3]))

    @property
    def mass(self) -> float:
        """Target mass while nothing has been removed, else |p4|."""
        if self.A == self.target_A:
            return self.target_mass
        return float(np.sqrt(max(self.invariant_mass_squared, 0.0)))

    @property
    def pdg(self) -> int:
        """Ion code 10LZZZAAAI."""
        return 1000000000 + self.Z * 10000 + self.A * 10

    def can_supply(self, n_protons: int = 0, n_neutrons: int = 0) -> bool:
        """True if the remnant holds at least this many protons and neutrons."""
        return self.Z >= n_protons and self.n_neutrons >= n_neutrons

    def check_invariants(self):
        """Raise RemnantInvariantError unless 0 <= Z <= A."""
        if self.A < 0 or self.Z < 0 or self.Z > self.A:
            raise RemnantInvariantError(
                f"Invalid remnant (A,Z) = ({self.A},{self.Z})")

    def copy(self) -> "RemnantNucleus":
        clone = RemnantNucleus.__new__(RemnantNucleus)
        clone.A = self.A
        clone.Z = self.Z
        clone.target_A = self.target_A
        clone.target_Z = self.target_Z
        clone.p4 = self.p4.copy()
        return clone

    def _assign(self, other: "RemnantNucleus"):
        self.A = other.A
        self.Z = other.Z
        self.p4 = other.p4.copy()

    @contextmanager
    def transaction(self) -> Iterator["RemnantNucleus"]:
        """
        Stage remnant mutations for one interaction attempt.

        Yields a copy of the remnant. When the block finishes normally the
        copy is validated and committed; if the block raises, the copy is
        discarded and the exception propagates.

        Example:
            with remnant.transaction() as staged:
                staged.A -= 1
        """
        staged = self.copy()
        yield staged
        staged.check_invariants()
        self._assign(staged)
        logger.debug("Committed remnant (A,Z) = (%d,%d)", self.A, self.Z)

    def __repr__(self) -> str:
        return (f"RemnantNucleus(A={self.A}, Z={self.Z}, "
                f"p4=[{self.p4[0]:.4f}, {self.p4[1]:.4f}, {self.p4[2]:.4f}, {self.p4[3]:.4f}])")
