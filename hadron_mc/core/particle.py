"""
Hadron species and particle state.

Species are identified by PDG codes. Four-momenta are NumPy arrays laid out
as [px, py, pz, E] in GeV; vertices as [x, y, z, t].
"""

import numpy as np
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Optional, Sequence


# PDG codes
PDG_PROTON = 2212
PDG_NEUTRON = 2112
PDG_PIP = 211
PDG_PIM = -211
PDG_PI0 = 111
PDG_KP = 321
PDG_KM = -321
PDG_GAMMA = 22


class Family(Enum):
    """Closed set of species families handled by the cascade."""
    PION = "pion"
    NUCLEON = "nucleon"
    KAON = "kaon"
    PHOTON = "photon"


@dataclass(frozen=True)
class Species:
    """Static properties of one hadron species."""
    pdg: int
    name: str
    mass: float        # GeV
    charge: int
    baryon_number: int
    family: Family


SPECIES = {
    PDG_PROTON: Species(PDG_PROTON, 'proton', 0.938272, 1, 1, Family.NUCLEON),
    PDG_NEUTRON: Species(PDG_NEUTRON, 'neutron', 0.939565, 0, 1, Family.NUCLEON),
    PDG_PIP: Species(PDG_PIP, 'pi+', 0.139570, 1, 0, Family.PION),
    PDG_PIM: Species(PDG_PIM, 'pi-', 0.139570, -1, 0, Family.PION),
    PDG_PI0: Species(PDG_PI0, 'pi0', 0.134977, 0, 0, Family.PION),
    PDG_KP: Species(PDG_KP, 'K+', 0.493677, 1, 0, Family.KAON),
    PDG_KM: Species(PDG_KM, 'K-', 0.493677, -1, 0, Family.KAON),
    PDG_GAMMA: Species(PDG_GAMMA, 'gamma', 0.0, 0, 0, Family.PHOTON),
}

# Pion code for each charge state
PION_BY_CHARGE = {1: PDG_PIP, 0: PDG_PI0, -1: PDG_PIM}
NUCLEON_BY_CHARGE = {1: PDG_PROTON, 0: PDG_NEUTRON}


def species(pdg: int) -> Species:
    """Look up a species; unknown codes raise KeyError."""
    try:
        return SPECIES[pdg]
    except KeyError:
        raise KeyError(f"Unsupported PDG code {pdg}") from None


def is_handled(pdg: int) -> bool:
    return pdg in SPECIES


def mass(pdg: int) -> float:
    return species(pdg).mass


def charge(pdg: int) -> int:
    return species(pdg).charge


def baryon_number(pdg: int) -> int:
    return species(pdg).baryon_number


def family_of(pdg: int) -> Family:
    return species(pdg).family


def particle_name(pdg: int) -> str:
    spec = SPECIES.get(pdg)
    return spec.name if spec is not None else str(pdg)


def is_nucleon(pdg: int) -> bool:
    return pdg in (PDG_PROTON, PDG_NEUTRON)


class Status(IntEnum):
    """Status codes of entries in the event ledger."""
    INITIAL = 0
    STABLE_FINAL_STATE = 1
    HADRON_IN_NUCLEUS = 14
    DECAYED = 3


def four_momentum(px: float, py: float, pz: float, E: float) -> np.ndarray:
    return np.array([px, py, pz, E], dtype=np.float64)


def on_shell(pdg: int, p3: Sequence[float]) -> np.ndarray:
    """Build an on-shell four-momentum for a species from its 3-momentum."""
    p3 = np.asarray(p3, dtype=np.float64)
    E = np.sqrt(np.dot(p3, p3) + mass(pdg)**2)
    return np.array([p3[0], p3[1], p3[2], E], dtype=np.float64)


# Ledger dtype for export (one row per final-state particle)
PARTICLE_DTYPE = np.dtype([
    ('pdg', np.int32),
    ('status', np.int16),
    ('mother', np.int32),
    ('p4', np.float64, 4),            # px, py, pz, E [GeV]
    ('x4', np.float64, 4),            # x, y, z, t
])


@dataclass(frozen=True)
class FinalStateParticle:
    """Value-type descriptor of a particle leaving an interaction."""
    pdg: int
    status: Status
    mother: int
    p4: np.ndarray
    x4: np.ndarray = field(default_factory=lambda: np.zeros(4))

    @property
    def name(self) -> str:
        return particle_name(self.pdg)

    @property
    def kinetic_energy(self) -> float:
        return float(self.p4[3] - mass(self.pdg))

    def to_structured_array(self) -> np.ndarray:
        """Convert to structured array format."""
        row = np.zeros(1, dtype=PARTICLE_DTYPE)
        row['pdg'][0] = self.pdg
        row['status'][0] = int(self.status)
        row['mother'][0] = self.mother
        row['p4'][0] = self.p4
        row['x4'][0] = self.x4
        return row


class Hadron:
    """The probe being transported through the nucleus."""

    def __init__(self, pdg: int, p4: Sequence[float],
                 x4: Optional[Sequence[float]] = None,
                 status: Status = Status.HADRON_IN_NUCLEUS,
                 mother: int = -1):
        """
        Initialize a hadron.

        Parameters:
            pdg: PDG code
            p4: Four-momentum [px, py, pz, E] [GeV]
            x4: Creation vertex [x, y, z, t] (origin if None)
            status: Ledger status
            mother: Ledger index of the mother entry (-1 if none)
        """
        self.pdg = pdg
        self.p4 = np.array(p4, dtype=np.float64)
        self.x4 = np.zeros(4) if x4 is None else np.array(x4, dtype=np.float64)
        self.status = status
        self.mother = mother

    @classmethod
    def with_kinetic_energy(cls, pdg: int, kinetic_energy: float,
                            direction: Sequence[float] = (0.0, 0.0, 1.0),
                            **kwargs) -> "Hadron":
        """
        Create a hadron with a given kinetic energy [GeV] along a direction.

        The direction is normalized internally.
        """
        m = mass(pdg)
        E = m + kinetic_energy
        p = np.sqrt(max(E*E - m*m, 0.0))
        dir_array = np.array(direction, dtype=np.float64)
        dir_array = dir_array / np.linalg.norm(dir_array)
        return cls(pdg, np.append(p * dir_array, E), **kwargs)

    @property
    def name(self) -> str:
        return particle_name(self.pdg)

    @property
    def mass(self) -> float:
        return mass(self.pdg)

    @property
    def charge(self) -> int:
        return charge(self.pdg)

    @property
    def baryon_number(self) -> int:
        return baryon_number(self.pdg)

    @property
    def family(self) -> Family:
        return family_of(self.pdg)

    @property
    def momentum(self) -> float:
        """|p| [GeV]"""
        return float(np.linalg.norm(self.p4[:3]))

    @property
    def kinetic_energy(self) -> float:
        """Kinetic energy [GeV]"""
        return float(self.p4[3] - self.mass)

    @property
    def kinetic_energy_mev(self) -> float:
        return 1000.0 * self.kinetic_energy

    def as_final_state(self, status: Status = Status.STABLE_FINAL_STATE) -> FinalStateParticle:
        """Descriptor of this hadron leaving the nucleus with its current momentum."""
        return FinalStateParticle(self.pdg, status, self.mother,
                                  self.p4.copy(), self.x4.copy())

    def copy(self) -> "Hadron":
        return Hadron(self.pdg, self.p4.copy(), self.x4.copy(), self.status, self.mother)

    def __repr__(self) -> str:
        return (f"Hadron({self.name}, KE={self.kinetic_energy_mev:.1f} MeV, "
                f"status={self.status.name})")
