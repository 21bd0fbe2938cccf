"""
Base class for fate generators.

A generator turns (hadron, staged remnant, fate) into final-state
particles. It mutates only the staged remnant handed to it and signals
failure by raising KinematicsError (retry) or TerminalCondition (exit).
"""

import logging
import numpy as np
from typing import List, Optional

from hadron_mc.core.config import CascadeConfig
from hadron_mc.core.nucleus import RemnantNucleus
from hadron_mc.core.particle import (FinalStateParticle, Hadron, PDG_NEUTRON, PDG_PROTON,
                                     Status, mass)
from hadron_mc.core.random import RandomStream
from hadron_mc.data.hadro_data import HadronData
from hadron_mc.physics.fates import Fate
from hadron_mc.physics.nuclear_model import NuclearModel
from hadron_mc.physics.phase_space import PhaseSpaceDecay

logger = logging.getLogger(__name__)


class FateGenerator:
    """Shared services and helpers for the per-fate generators."""

    fates = ()

    def __init__(self, config: CascadeConfig, stream: RandomStream,
                 hadron_data: HadronData, nuclear_model: NuclearModel,
                 phase_space: Optional[PhaseSpaceDecay] = None):
        self.config = config
        self.stream = stream
        self.hadron_data = hadron_data
        self.nuclear_model = nuclear_model
        self.phase_space = phase_space or PhaseSpaceDecay(
            max_particles=config.max_decay_group_size,
            max_iterations=config.phase_space_max_iterations)
        # Kinetic energy [GeV] of the event probe, set per event
        self.probe_energy: Optional[float] = None

    def begin_event(self, probe_energy: Optional[float] = None):
        self.probe_energy = probe_energy

    def generate(self, hadron: Hadron, remnant: RemnantNucleus,
                 fate: Fate) -> List[FinalStateParticle]:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def pick_struck_nucleon(self, remnant: RemnantNucleus) -> int:
        """Proton with probability Z/A, else neutron."""
        if self.stream.uniform() <= remnant.proton_fraction:
            return PDG_PROTON
        return PDG_NEUTRON

    def bound_nucleon_p4(self, pdg: int, remnant: RemnantNucleus) -> np.ndarray:
        """On-shell four-momentum of a nucleon taken from the remnant."""
        m = mass(pdg)
        if self.config.do_fermi:
            p3 = self.config.fermi_factor * self.nuclear_model.sample_momentum(
                pdg, remnant, self.stream)
        else:
            p3 = np.zeros(3)
        return np.array([p3[0], p3[1], p3[2], np.sqrt(np.dot(p3, p3) + m*m)])

    @staticmethod
    def emit(hadron: Hadron, pdg: int, p4: np.ndarray,
             status: Status = Status.STABLE_FINAL_STATE) -> FinalStateParticle:
        """Descendant of hadron sharing its mother and vertex."""
        return FinalStateParticle(pdg, status, hadron.mother,
                                  np.array(p4, dtype=np.float64), hadron.x4.copy())
