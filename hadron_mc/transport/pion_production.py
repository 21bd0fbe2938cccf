"""
Single pion production on a struck nucleon.

    N + N  -> N + N + pi
    pi + N -> pi + pi + N

Charges are chosen uniformly among the assignments that conserve the
charge of the colliding pair; momenta come from a three-body phase-space
decay of the probe + nucleon system.
"""

import itertools
import logging
from typing import List, Tuple

from hadron_mc.core.exceptions import KinematicsError, TerminalCondition
from hadron_mc.core.nucleus import RemnantNucleus
from hadron_mc.core.particle import (FinalStateParticle, Family, Hadron, NUCLEON_BY_CHARGE,
                                     PDG_PROTON, PION_BY_CHARGE, Status, charge, mass,
                                     particle_name)
from hadron_mc.physics.fates import Fate
from hadron_mc.physics.kinematics import invariant_mass
from hadron_mc.transport.generator import FateGenerator

logger = logging.getLogger(__name__)

NUCLEON_CHARGES = (0, 1)
PION_CHARGES = (-1, 0, 1)

# final-state families by probe family
FINAL_STATE_FAMILIES = {
    Family.NUCLEON: (Family.NUCLEON, Family.NUCLEON, Family.PION),
    Family.PION: (Family.PION, Family.PION, Family.NUCLEON),
}


def charge_assignments(families: Tuple[Family, ...], total_charge: int) -> List[Tuple[int, ...]]:
    """All PDG code combinations for the given families with the given net charge."""
    choices = [NUCLEON_CHARGES if f == Family.NUCLEON else PION_CHARGES for f in families]
    codes = []
    for charges in itertools.product(*choices):
        if sum(charges) != total_charge:
            continue
        codes.append(tuple(NUCLEON_BY_CHARGE[c] if f == Family.NUCLEON else PION_BY_CHARGE[c]
                           for f, c in zip(families, charges)))
    return codes


class PionProductionGenerator(FateGenerator):
    """hadron + N -> three-body final state with one extra pion."""

    fates = (Fate.PION_PRODUCTION,)

    def choose_final_state(self, hadron: Hadron, target: int) -> Tuple[int, ...]:
        options = charge_assignments(FINAL_STATE_FAMILIES[hadron.family],
                                     hadron.charge + charge(target))
        return options[int(self.stream.uniform() * len(options))]

    def generate(self, hadron: Hadron, remnant: RemnantNucleus,
                 fate: Fate) -> List[FinalStateParticle]:
        if remnant.A < 1:
            raise TerminalCondition("Pion production: no nucleons left in the remnant")
        if hadron.family not in FINAL_STATE_FAMILIES:
            raise TerminalCondition(f"No pion production channel for {hadron.name}")

        target = self.pick_struck_nucleon(remnant)
        n_protons = 1 if target == PDG_PROTON else 0
        if not remnant.can_supply(n_protons, 1 - n_protons):
            raise TerminalCondition(
                f"Remnant {remnant} cannot supply a {particle_name(target)}")

        final_state = self.choose_final_state(hadron, target)
        masses = [mass(pdg) for pdg in final_state]

        t4 = self.bound_nucleon_p4(target, remnant)
        total = hadron.p4 + t4
        W = invariant_mass(total)
        if W <= sum(masses):
            raise KinematicsError(
                f"Pion production below threshold: W = {W:.4f} GeV < {sum(masses):.4f} GeV")

        daughters = self.phase_space.decay(total, masses, self.stream)

        remnant.A -= 1
        remnant.Z -= charge(target)
        remnant.p4 = remnant.p4 - t4

        pion_status = (Status.HADRON_IN_NUCLEUS if self.config.rescatter_produced_pions
                       else Status.STABLE_FINAL_STATE)
        products = []
        for pdg, p4 in zip(final_state, daughters):
            status = pion_status if pdg in PION_BY_CHARGE.values() else Status.STABLE_FINAL_STATE
            products.append(self.emit(hadron, pdg, p4, status))

        logger.debug("Pion production %s + %s -> %s", hadron.name, particle_name(target),
                     ", ".join(particle_name(pdg) for pdg in final_state))
        return products
